"""The immutable metadata model describing one scaffold's arguments and actions."""

import dataclasses
import inspect
import warnings
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Optional, get_type_hints

import attrs
import docstring_parser
from attrs import field

from argscaffold._cache import cache
from argscaffold.annotations import (
    get_hint_name,
    is_attrs,
    is_classvar,
    is_dataclass,
    resolve,
    split_annotated,
)
from argscaffold.arg import (
    ACTION_ATTRIBUTE,
    REVIVER_ATTRIBUTE,
    ActionInfo,
    Arg,
    Scaffold,
    get_args_metadata,
    is_parse_disabled,
    resolve_class_hooks,
    resolve_settings,
)
from argscaffold.exceptions import DefinitionError
from argscaffold.hooks import ArgHook
from argscaffold.revivers import DEFAULT_REVIVERS, ReviverRegistry
from argscaffold.utils import UNSET, frozen, is_builtin, signature_parameters, to_tuple_converter
from argscaffold.validators import ArgValidator, Required


def _name_converter(value: str) -> str:
    return value.lstrip("-/")


def _shortcuts_converter(value: None | str | Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(_name_converter(x) for x in to_tuple_converter(value)))


def _check_validators(instance, attribute, value):
    for validator in value:
        if not (isinstance(validator, ArgValidator) or callable(validator)):
            raise DefinitionError(f'Validator {validator!r} of argument "{instance.name}" is not callable.')


def _check_hooks(instance, attribute, value):
    for hook in value:
        if not isinstance(hook, ArgHook):
            raise DefinitionError(f'Hook {hook!r} of "{instance.name}" must be an ArgHook instance.')


def _check_reviver(instance, attribute, value):
    if value is not None:
        check_reviver_shape(value, f'argument "{instance.name}"')


@frozen(kw_only=True)
class CommandLineArgument:
    """One bindable slot."""

    name: str = field(converter=_name_converter)
    """Long name, without option prefix."""

    shortcuts: tuple[str, ...] = field(default=(), converter=_shortcuts_converter)

    type: Any = str
    """Revival target; ``Annotated`` metadata removed."""

    attribute: str | None = None
    """Python attribute the revived value is assigned to; defaults to ``name`` in snake_case."""

    position: int | None = None

    required: bool = False
    """A value must be supplied; a ``Required`` validator is inserted first when none is given."""

    default: Any = UNSET

    default_factory: Callable[[], Any] | None = field(default=None, hash=False)

    validators: tuple[Any, ...] = field(default=(), converter=to_tuple_converter, validator=_check_validators, hash=False)

    hooks: tuple[ArgHook, ...] = field(default=(), converter=to_tuple_converter, validator=_check_hooks, hash=False)

    reviver: Callable[[str, str], Any] | None = field(default=None, validator=_check_reviver, hash=False)

    help: str | None = field(default=None, eq=False)

    source: Any = field(default=None, eq=False, hash=False, repr=False)
    """Originating metadata element; lookup only."""

    def __attrs_post_init__(self):
        if not self.name:
            raise DefinitionError("Argument name cannot be empty.")
        if self.position is not None and (not isinstance(self.position, int) or self.position < 0):
            raise DefinitionError(f'Argument "{self.name}" has invalid position {self.position!r}.')
        if self.attribute is None:
            object.__setattr__(self, "attribute", self.name.replace("-", "_"))
        if any(isinstance(v, Required) for v in self.validators):
            object.__setattr__(self, "required", True)
        elif self.required:
            object.__setattr__(self, "validators", (Required(), *self.validators))

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.shortcuts)

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def is_required(self) -> bool:
        return self.required

    @property
    def is_switch(self) -> bool:
        return resolve(self.type) is bool

    def get_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default

    def revive(self, raw: str, registry: ReviverRegistry) -> Any:
        if self.reviver is not None:
            # Reuse the registry's error wrapping for per-argument revivers.
            return ReviverRegistry({self.type: self.reviver}).revive(self.type, self.name, raw)
        return registry.revive(self.type, self.name, raw)


@frozen(kw_only=True)
class CommandLineAction:
    """A named sub-command with its own argument set."""

    name: str = field(converter=_name_converter)

    shortcuts: tuple[str, ...] = field(default=(), converter=_shortcuts_converter)

    arguments: tuple[CommandLineArgument, ...] = field(default=(), converter=tuple)

    hooks: tuple[ArgHook, ...] = field(default=(), converter=to_tuple_converter, validator=_check_hooks, hash=False)

    method: Callable[[Any, Any], Any] | None = field(default=None, hash=False)
    """Invoked as ``method(scaffold_instance, action_args)``."""

    args_type: type | None = None
    """Class instantiated to hold this action's arguments."""

    help: str | None = field(default=None, eq=False)

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.shortcuts)

    @property
    def display_name(self) -> str:
        return self.name


def _fold(name: str, case_sensitive: bool) -> str:
    return name if case_sensitive else name.casefold()


def _check_scope(
    arguments: Sequence[CommandLineArgument],
    case_sensitive: bool,
    taken: dict[str, CommandLineArgument] | None = None,
    owner: str = "",
) -> dict[str, CommandLineArgument]:
    """Raise :exc:`DefinitionError` on any name/shortcut/position collision."""
    names: dict[str, CommandLineArgument] = dict(taken or {})
    positions: dict[int, CommandLineArgument] = {}
    attributes: set[str] = set()
    for argument in arguments:
        for name in argument.names:
            key = _fold(name, case_sensitive)
            if key in names and names[key] is not argument:
                raise DefinitionError(
                    f'{owner}Argument "{argument.name}" name/shortcut "{name}" collides with argument "{names[key].name}".'
                )
            names[key] = argument
        if argument.position is not None:
            if argument.position in positions:
                raise DefinitionError(
                    f'{owner}Arguments "{positions[argument.position].name}" and "{argument.name}" '
                    f"share position {argument.position}."
                )
            positions[argument.position] = argument
        assert argument.attribute is not None
        if argument.attribute in attributes:
            raise DefinitionError(f'{owner}Attribute "{argument.attribute}" is bound more than once.')
        attributes.add(argument.attribute)
    return names


@frozen(kw_only=True)
class CommandLineArgumentsDefinition:
    """Root aggregate for a parse operation.

    Usually built from a class with :func:`build_definition`; can also be assembled by hand:

    .. code-block:: python

        definition = CommandLineArgumentsDefinition(
            arguments=[CommandLineArgument(name="count", type=int, position=0)],
        )
    """

    scaffold_type: type | None = None

    arguments: tuple[CommandLineArgument, ...] = field(default=(), converter=tuple)

    actions: tuple[CommandLineAction, ...] = field(default=(), converter=tuple)

    hooks: tuple[ArgHook, ...] = field(default=(), converter=to_tuple_converter, validator=_check_hooks, hash=False)

    settings: Scaffold = field(factory=Scaffold)

    revivers: ReviverRegistry = field(factory=DEFAULT_REVIVERS.child, eq=False, hash=False, repr=False)

    help: str | None = field(default=None, eq=False)

    def __attrs_post_init__(self):
        case_sensitive = self.settings.case_sensitive
        root_names = _check_scope(self.arguments, case_sensitive)

        action_names: dict[str, CommandLineAction] = {}
        for action in self.actions:
            for name in action.names:
                key = _fold(name, case_sensitive)
                if key in action_names and action_names[key] is not action:
                    raise DefinitionError(f'Action "{action.name}" name/shortcut "{name}" collides with action "{action_names[key].name}".')
                action_names[key] = action
            _check_scope(action.arguments, case_sensitive, taken=root_names, owner=f'Action "{action.name}": ')

        for argument in self.all_arguments():
            for name in argument.names:
                if any(name.startswith(p[0]) for p in self.settings.option_prefixes):
                    raise DefinitionError(f'Argument name "{name}" cannot start with an option prefix.')
                if any(sep in name for sep in self.settings.value_separators):
                    raise DefinitionError(f'Argument name "{name}" cannot contain a value separator.')

    def all_arguments(self) -> Iterable[CommandLineArgument]:
        yield from self.arguments
        for action in self.actions:
            yield from action.arguments

    def find_action(self, name: str) -> CommandLineAction | None:
        key = _fold(name, self.settings.case_sensitive)
        for action in self.actions:
            if any(_fold(x, self.settings.case_sensitive) == key for x in action.names):
                return action
        return None

    def find_argument(self, name: str, action: Optional[CommandLineAction] = None) -> CommandLineArgument | None:
        """Exact (case-folded unless case sensitive) lookup by name or shortcut."""
        key = _fold(name, self.settings.case_sensitive)
        for argument in self.scope(action):
            if any(_fold(x, self.settings.case_sensitive) == key for x in argument.names):
                return argument
        return None

    def scope(self, action: Optional[CommandLineAction] = None) -> tuple[CommandLineArgument, ...]:
        """Arguments bindable when ``action`` is selected."""
        return self.arguments + (action.arguments if action is not None else ())


#############
# Discovery #
#############
def check_reviver_shape(func: Callable, where: str) -> None:
    try:
        params = signature_parameters(func)
    except (TypeError, ValueError) as e:
        raise DefinitionError(f"Reviver for {where} has no inspectable signature.") from e
    positional = [p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    if len(params) != 2 or len(positional) != 2:
        raise DefinitionError(
            f"Reviver {getattr(func, '__qualname__', func)!r} for {where} must accept exactly (argument_name, raw)."
        )


def _unwrap_function(obj: Any) -> Callable | None:
    if isinstance(obj, staticmethod | classmethod):
        return obj.__func__
    if inspect.isfunction(obj):
        return obj
    return None


def _reviver_target(func: Callable, owner: type) -> Any:
    try:
        hints = get_type_hints(func, include_extras=True)
    except NameError:
        hints = {}
    target = hints.get("return", inspect.signature(func).return_annotation)
    if target is inspect.Signature.empty or target is None:
        raise DefinitionError(f"Reviver {func.__qualname__!r} must declare its target type as the return annotation.")
    if isinstance(target, str):
        if target == owner.__name__:
            return owner
        raise DefinitionError(f"Cannot resolve reviver {func.__qualname__!r} return annotation {target!r}.")
    return target


def register_revivers(cls: type, registry: ReviverRegistry) -> None:
    """Register every ``@reviver`` function declared on ``cls`` (and its bases)."""
    for klass in reversed(cls.__mro__):
        if klass is object or is_builtin(klass):
            continue
        for attr_value in vars(klass).values():
            func = _unwrap_function(attr_value)
            if func is None or not getattr(func, REVIVER_ATTRIBUTE, False):
                continue
            if isinstance(attr_value, classmethod):
                bound = getattr(cls, func.__name__)
            elif isinstance(attr_value, staticmethod):
                bound = func
            else:
                raise DefinitionError(f"Reviver {func.__qualname__!r} must be a staticmethod or classmethod.")
            check_reviver_shape(bound, f"class {klass.__qualname__}")
            registry.register(_reviver_target(func, klass), bound)


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except NameError as e:
        raise DefinitionError(f"Unable to resolve annotations of {cls.__qualname__}: {e}") from e


def field_defaults(cls: type) -> dict[str, tuple[Any, Callable[[], Any] | None]]:
    """``{attribute: (default, default_factory)}`` for dataclass and attrs classes."""
    out = {}
    if is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if f.default_factory is not dataclasses.MISSING:
                out[f.name] = (UNSET, f.default_factory)
            elif f.default is not dataclasses.MISSING:
                out[f.name] = (f.default, None)
            else:
                out[f.name] = (UNSET, None)
    elif is_attrs(cls):
        for a in attrs.fields(cls):
            if isinstance(a.default, attrs.Factory):  # pyright: ignore[reportArgumentType]
                if a.default.takes_self:  # pyright: ignore
                    out[a.name] = (UNSET, None)
                else:
                    out[a.name] = (UNSET, a.default.factory)  # pyright: ignore
            elif a.default is attrs.NOTHING:
                out[a.name] = (UNSET, None)
            else:
                out[a.name] = (a.default, None)
    return out


def _docstring_descriptions(cls: type) -> dict[str, str]:
    doc = inspect.getdoc(cls)
    if not doc:
        return {}
    parsed = docstring_parser.parse(doc)
    return {p.arg_name: p.description for p in parsed.params if p.description}


def _short_description(obj: Any) -> str | None:
    doc = inspect.getdoc(obj)
    if not doc:
        return None
    return docstring_parser.parse(doc).short_description


def _make_argument(
    attribute: str,
    hint: Any,
    default: Any,
    default_factory: Callable[[], Any] | None,
    settings: Scaffold,
    description: str | None,
    owner: type,
) -> CommandLineArgument | None:
    type_, metadata = split_annotated(hint)
    args = get_args_metadata(metadata)
    if is_parse_disabled(args):
        return None
    arg = Arg.combine(*args)

    has_default = default is not UNSET or default_factory is not None
    if type_ is bool and not has_default and arg.required is None:
        default, has_default = False, True

    required = arg.required if arg.required is not None else not has_default
    if arg.required and has_default:
        warnings.warn(
            f'{owner.__qualname__}.{attribute} is required; its default value will never be used.',
            stacklevel=4,
        )

    validators: list[Any] = []
    if required:
        validators.append(Required(prompt_if_missing=bool(arg.prompt_if_missing)))
    elif arg.prompt_if_missing:
        raise DefinitionError(f"{owner.__qualname__}.{attribute}: prompt_if_missing requires the argument to be required.")
    validators.extend(arg.validator)

    return CommandLineArgument(
        name=arg.name or settings.name_transform(attribute),
        shortcuts=arg.shortcuts,
        type=type_,
        attribute=attribute,
        position=arg.position,
        required=required,
        default=default,
        default_factory=default_factory,
        validators=validators,
        hooks=arg.hook,
        reviver=arg.reviver,
        help=arg.help if arg.help is not None else description,
        source=hint,
    )


def _collect_arguments(cls: type, settings: Scaffold, registry: ReviverRegistry) -> list[CommandLineArgument]:
    hints = _type_hints(cls)
    defaults = field_defaults(cls)
    descriptions: dict[str, str] = {}
    arguments: dict[str, CommandLineArgument] = {}

    # Base classes first; an attribute redeclared in a subclass replaces the inherited descriptor.
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        descriptions.update(_docstring_descriptions(klass))
        for attribute in inspect.get_annotations(klass):
            if attribute.startswith("_"):
                continue
            hint = hints.get(attribute)
            if hint is None or is_classvar(hint):
                continue

            if attribute in defaults:
                default, default_factory = defaults[attribute]
            else:
                default, default_factory = inspect.getattr_static(cls, attribute, UNSET), None

            argument = _make_argument(
                attribute, hint, default, default_factory, settings, descriptions.get(attribute), cls
            )
            if argument is None:
                arguments.pop(attribute, None)
                continue
            arguments[attribute] = argument

            target = resolve(argument.type)
            if inspect.isclass(target) and not is_builtin(target) and target not in registry:
                register_revivers(target, registry)

    return list(arguments.values())


def _collect_actions(cls: type, settings: Scaffold, registry: ReviverRegistry) -> list[CommandLineAction]:
    actions: dict[str, CommandLineAction] = {}
    for klass in reversed(cls.__mro__):
        for attr_name, attr_value in vars(klass).items():
            func = _unwrap_function(attr_value)
            info: ActionInfo | None = getattr(func, ACTION_ATTRIBUTE, None) if func else None
            if info is None:
                continue
            if not inspect.isfunction(attr_value):
                raise DefinitionError(f"Action {klass.__qualname__}.{attr_name} must be a regular method.")

            params = signature_parameters(attr_value)
            if len(params) != 1 or params[0].kind not in (params[0].POSITIONAL_ONLY, params[0].POSITIONAL_OR_KEYWORD):
                raise DefinitionError(
                    f"Action {klass.__qualname__}.{attr_name} must accept exactly one argument object besides self."
                )
            try:
                hints = get_type_hints(attr_value)
            except NameError as e:
                raise DefinitionError(f"Unable to resolve annotations of action {attr_name}: {e}") from e
            args_type = resolve(hints.get(params[0].name, inspect.Parameter.empty))
            if not inspect.isclass(args_type) or is_builtin(args_type):
                raise DefinitionError(
                    f"Action {klass.__qualname__}.{attr_name} argument must be annotated with a scaffold class, "
                    f"not {get_hint_name(args_type)}."
                )

            action_definition = build_definition(args_type)
            if action_definition.actions:
                raise DefinitionError(f"Action {attr_name} argument class {args_type.__qualname__} cannot declare actions.")
            registry.update(action_definition.revivers)

            actions[attr_name] = CommandLineAction(
                name=info.name or settings.name_transform(attr_name),
                shortcuts=info.shortcuts,
                arguments=action_definition.arguments,
                hooks=(*info.hooks, *action_definition.hooks),
                method=attr_value,
                args_type=args_type,
                help=info.help if info.help is not None else _short_description(attr_value),
            )
    return list(actions.values())


def create_definition(scaffold_type: type) -> CommandLineArgumentsDefinition:
    """Introspect ``scaffold_type`` into a new :class:`CommandLineArgumentsDefinition`.

    Raises
    ------
    DefinitionError
        The class' metadata is malformed.
    """
    if not inspect.isclass(scaffold_type):
        raise DefinitionError(f"Expected a class, got {scaffold_type!r}.")

    settings = resolve_settings(scaffold_type)
    registry = DEFAULT_REVIVERS.child()
    register_revivers(scaffold_type, registry)
    arguments = _collect_arguments(scaffold_type, settings, registry)
    actions = _collect_actions(scaffold_type, settings, registry)

    return CommandLineArgumentsDefinition(
        scaffold_type=scaffold_type,
        arguments=arguments,
        actions=actions,
        hooks=resolve_class_hooks(scaffold_type),
        settings=settings,
        revivers=registry,
        help=_short_description(scaffold_type),
    )


@cache(lambda scaffold_type: (scaffold_type,))
def build_definition(scaffold_type: type) -> CommandLineArgumentsDefinition:
    """Cached :func:`create_definition`; one definition per class for the life of the process."""
    return create_definition(scaffold_type)


def get_definition(
    scaffold: type | CommandLineArgumentsDefinition,
) -> CommandLineArgumentsDefinition:
    if isinstance(scaffold, CommandLineArgumentsDefinition):
        return scaffold
    return build_definition(scaffold)


__all__ = [
    "CommandLineAction",
    "CommandLineArgument",
    "CommandLineArgumentsDefinition",
    "build_definition",
    "create_definition",
    "get_definition",
]
