import inspect
from enum import Enum
from types import UnionType
from typing import Annotated, Any, ClassVar, Literal, Union, get_args, get_origin

import attrs

from argscaffold.utils import is_class_and_subclass

# from types import NoneType is available >=3.10
NoneType = type(None)
AnnotatedType = type(Annotated[int, 0])


def is_nonetype(hint):
    return hint is NoneType


def is_annotated(hint) -> bool:
    return type(hint) is AnnotatedType


def is_union(type_: Any) -> bool:
    """Checks if a type is a union."""
    if type_ is Union or type_ is UnionType:
        return True
    if type_ is str or type_ is int or type_ is float or type_ is bool or is_annotated(type_):
        return False
    origin = get_origin(type_)
    return origin is Union or origin is UnionType


def is_literal(hint) -> bool:
    return get_origin(hint) is Literal


def is_enum(hint) -> bool:
    return is_class_and_subclass(hint, Enum)


def is_classvar(hint) -> bool:
    return hint is ClassVar or get_origin(hint) is ClassVar


def is_dataclass(hint) -> bool:
    return hasattr(hint, "__dataclass_fields__")


def is_attrs(hint) -> bool:
    return attrs.has(hint)


def resolve_optional(type_: Any) -> Any:
    """Only resolves Union's of None + one other type (i.e. Optional)."""
    if not is_union(type_):
        return type_

    non_none_types = [t for t in get_args(type_) if t is not NoneType]
    if not non_none_types:  # pragma: no cover
        raise ValueError("Union type cannot be all NoneType")
    elif len(non_none_types) == 1:
        return non_none_types[0]
    else:
        return Union[tuple(non_none_types)]  # pyright: ignore  # noqa: UP007


def resolve_annotated(type_: Any) -> Any:
    if type(type_) is AnnotatedType:
        type_ = get_args(type_)[0]
    return type_


def resolve_new_type(type_: Any) -> Any:
    try:
        return resolve_new_type(type_.__supertype__)
    except AttributeError:
        return type_


def resolve(type_: Any) -> Any:
    """Perform all simplifying resolutions."""
    if type_ is inspect.Parameter.empty:
        return str

    type_prev = None
    while type_ != type_prev:
        type_prev = type_
        type_ = resolve_annotated(type_)
        type_ = resolve_optional(type_)
    return type_


def split_annotated(hint: Any) -> tuple[Any, list[Any]]:
    """Peel (possibly nested) :obj:`~typing.Annotated` layers.

    Returns
    -------
    hint
        Innermost type with ``Annotated`` and ``Optional`` removed.
    list
        All metadata objects, outermost annotation last.
    """
    metadata: list[Any] = []
    hint = resolve_optional(hint)
    while is_annotated(hint):
        # Python flattens nested Annotated, so this loop rarely iterates twice.
        inner, *extras = get_args(hint)
        metadata[:0] = extras
        hint = resolve_optional(inner)
    return hint, metadata


def get_hint_name(hint) -> str:
    if isinstance(hint, str):
        return hint
    if is_nonetype(hint):
        return "None"
    if hint is Any:
        return "Any"
    if is_union(hint):
        return "|".join(get_hint_name(arg) for arg in get_args(hint))
    if is_literal(hint):
        return "{" + ", ".join(repr(x) for x in get_args(hint)) + "}"
    if origin := get_origin(hint):
        out = get_hint_name(origin)
        if args := get_args(hint):
            out += "[" + ", ".join(get_hint_name(arg) for arg in args) + "]"
        return out
    if hasattr(hint, "__name__"):
        return hint.__name__
    if getattr(hint, "_name", None) is not None:
        return hint._name
    return str(hint)
