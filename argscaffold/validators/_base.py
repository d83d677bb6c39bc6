from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineArgument
    from argscaffold.hooks import HookContext


class ArgValidator:
    """Base class for validators that may transform or synthesize an argument's value.

    Plain callables with signature ``validator(type_, value)`` are also accepted as validators;
    subclass this instead when the validator needs the argument, the parse context, or
    has to run even when no value was supplied.
    """

    validate_always: ClassVar[bool] = False
    """If :obj:`True`, :meth:`validate` is invoked even when the argument received no value."""

    def validate(self, argument: "CommandLineArgument", value: Any, context: "HookContext") -> Any:
        """Return the (possibly replaced) value, or raise ``ValueError`` to reject it.

        ``value`` is :obj:`~argscaffold.UNSET` when nothing was supplied.
        """
        raise NotImplementedError
