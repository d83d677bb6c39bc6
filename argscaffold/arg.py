"""Declarative metadata attached to scaffold classes, their attributes and methods."""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union, cast

from attrs import define, field

from argscaffold.utils import default_name_transform, frozen, record_init, to_tuple_converter

if TYPE_CHECKING:
    from argscaffold.hooks import ArgHook

T = TypeVar("T")

SCAFFOLD_ATTRIBUTE = "__argscaffold__"
ACTION_ATTRIBUTE = "__argscaffold_action__"
REVIVER_ATTRIBUTE = "__argscaffold_reviver__"

# Fields that accumulate instead of override when combining ``Arg`` objects.
_ACCUMULATING_FIELDS = frozenset({"validator", "hook"})


@record_init("_provided_args")
@frozen(kw_only=True)
class Arg:
    """Per-attribute configuration, attached with :obj:`~typing.Annotated`.

    Example usage:

    .. code-block:: python

        from typing import Annotated
        from argscaffold import Arg, parse


        class Cli:
            name: Annotated[str, Arg(required=True, shortcuts="-n")]
            count: Annotated[int, Arg(position=0)] = 1


        cli = parse(Cli, ["-n", "Ada", "3"])
    """

    name: str | None = None
    """Long name; defaults to the attribute name in kebab-case."""

    # This can ONLY ever be a Tuple[str, ...]
    shortcuts: Union[None, str, Iterable[str]] = field(
        default=None,
        converter=lambda x: cast(tuple[str, ...], tuple(s.lstrip("-/") for s in to_tuple_converter(x))),
    )

    position: int | None = None

    required: bool | None = None

    prompt_if_missing: bool | None = None

    # This can ONLY ever be a Tuple[Callable, ...]
    validator: Union[None, Callable, Iterable[Callable]] = field(default=(), converter=to_tuple_converter)

    # This can ONLY ever be a Tuple[ArgHook, ...]
    hook: Union[None, "ArgHook", Iterable["ArgHook"]] = field(default=(), converter=to_tuple_converter)

    reviver: Callable[[str, str], Any] | None = None
    """Overrides the registry lookup for this argument only."""

    help: str | None = None

    parse: bool | None = None
    """Set to :obj:`False` to keep the attribute out of the definition."""

    # Populated by the record_init decorator.
    _provided_args: tuple[str, ...] = field(factory=tuple, init=False, eq=False)

    def __repr__(self):
        """Only shows non-default values."""
        content = ", ".join(
            [
                f"{a.alias}={getattr(self, a.name)!r}"
                for a in self.__attrs_attrs__  # pyright: ignore[reportAttributeAccessIssue]
                if a.alias in self._provided_args
            ]
        )
        return f"{type(self).__name__}({content})"

    @classmethod
    def combine(cls, *args: Optional["Arg"]) -> "Arg":
        """Returns a new Arg with combined values of all provided ``args``.

        Ordered from least-to-highest attribute priority; validators and hooks accumulate.
        """
        filtered = [x for x in args if x is not None]
        if len(filtered) == 1:
            return filtered[0]
        elif not filtered:
            return EMPTY_ARG

        kwargs: dict[str, Any] = {}
        for arg in filtered:
            for alias in arg._provided_args:
                value = getattr(arg, alias)
                if alias in _ACCUMULATING_FIELDS:
                    kwargs[alias] = kwargs.get(alias, ()) + value
                else:
                    kwargs[alias] = value
        return cls(**kwargs)


EMPTY_ARG = Arg()


@frozen(kw_only=True)
class Scaffold:
    """Definition-level settings, applied as a class decorator.

    .. code-block:: python

        @Scaffold(aggregate_errors=True)
        class Cli: ...
    """

    aggregate_errors: bool = False
    """Collect every per-argument failure instead of stopping at the first one."""

    option_prefixes: Union[str, Iterable[str]] = field(
        default=("--", "-"),
        converter=lambda x: tuple(sorted(to_tuple_converter(x), key=len, reverse=True)),
    )

    value_separators: Union[str, Iterable[str]] = field(default=(":", "="), converter=to_tuple_converter)

    case_sensitive: bool = False

    action_required: bool = False

    allow_abbreviations: bool = False

    # This can ONLY ever be a Tuple[ArgHook, ...]
    hooks: Union[None, "ArgHook", Iterable["ArgHook"]] = field(default=(), converter=to_tuple_converter, hash=False)

    name_transform: Callable[[str], str] = field(default=default_name_transform, hash=False)

    @option_prefixes.validator  # pyright: ignore[reportAttributeAccessIssue]
    def _check_prefixes(self, attribute, value):
        if not value or any(not x for x in value):
            raise ValueError("option_prefixes must contain non-empty strings.")

    def __call__(self, obj: T) -> T:
        config = scaffold_config(obj, create=True)
        config.settings = self
        return obj


DEFAULT_SCAFFOLD = Scaffold()


@define
class ScaffoldConfig:
    """
    Intended for storing class-level metadata to a ``__argscaffold__`` attribute via decoration.
    """

    obj: Any = None
    settings: Scaffold | None = None
    hooks: list["ArgHook"] = field(factory=list)


def scaffold_config(obj: Any, *, create: bool = False) -> ScaffoldConfig | None:
    """Return the :class:`ScaffoldConfig` declared directly on ``obj``.

    Inherited configs are never returned; with ``create=True`` a fresh one is attached.
    """
    config = vars(obj).get(SCAFFOLD_ATTRIBUTE) if hasattr(obj, "__dict__") else None
    if config is None and create:
        config = ScaffoldConfig(obj=obj)
        setattr(obj, SCAFFOLD_ATTRIBUTE, config)
    return config


@frozen(kw_only=True)
class ActionInfo:
    name: str | None = None
    shortcuts: tuple[str, ...] = field(default=(), converter=lambda x: tuple(s.lstrip("-/") for s in to_tuple_converter(x)))
    hooks: tuple["ArgHook", ...] = field(default=(), converter=to_tuple_converter, hash=False)
    help: str | None = None


def action(
    func: Callable | str | None = None,
    *,
    shortcuts: None | str | Iterable[str] = None,
    hooks: Union[None, "ArgHook", Iterable["ArgHook"]] = None,
    help: str | None = None,
):
    """Mark a scaffold method as an action (sub-command).

    The method must accept exactly one parameter besides ``self``, annotated with the
    scaffold class describing the action's arguments.

    .. code-block:: python

        class Cli:
            @action(shortcuts="c")
            def clip(self, args: ClipArgs): ...

            @action
            def encode(self, args: EncodeArgs): ...
    """

    def decorator(f: Callable) -> Callable:
        name = func if isinstance(func, str) else None
        setattr(f, ACTION_ATTRIBUTE, ActionInfo(name=name, shortcuts=shortcuts, hooks=hooks, help=help))
        return f

    if callable(func):
        return decorator(func)
    return decorator


def reviver(func: T) -> T:
    """Mark a function as a reviver for the type named by its return annotation.

    Shape: ``(argument_name: str, raw: str) -> TargetType``.
    Place it on the scaffold class, or on the target class itself:

    .. code-block:: python

        class Point:
            @staticmethod
            @reviver
            def revive(argument_name: str, raw: str) -> "Point": ...
    """
    target = func.__func__ if isinstance(func, staticmethod | classmethod) else func
    setattr(target, REVIVER_ATTRIBUTE, True)
    return func


def get_args_metadata(metadata: Iterable[Any]) -> list[Arg]:
    return [x for x in metadata if isinstance(x, Arg)]


def resolve_settings(cls: type | None) -> Scaffold:
    """Nearest ``Scaffold`` settings declared along the MRO."""
    if cls is None:
        return DEFAULT_SCAFFOLD
    for klass in cls.__mro__:
        config = scaffold_config(klass)
        if config is not None and config.settings is not None:
            return config.settings
    return DEFAULT_SCAFFOLD


def resolve_class_hooks(cls: type) -> list["ArgHook"]:
    """Class-level hooks along the MRO; base classes first, then ``Scaffold(hooks=...)`` entries."""
    out: list[ArgHook] = []
    for klass in reversed(cls.__mro__):
        config = scaffold_config(klass)
        if config is None:
            continue
        if config.settings is not None:
            out.extend(x for x in config.settings.hooks if x not in out)
        out.extend(x for x in config.hooks if x not in out)
    return out


def is_parse_disabled(args: Iterable[Arg]) -> bool:
    return any(a.parse is False for a in args)

