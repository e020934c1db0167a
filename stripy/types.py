"""Module to inspect types and type hints."""

import types
import typing

from types import NoneType
from typing import Any


def split_annotated(type_hint: Any) -> tuple[Any, tuple[Any, ...]]:
    """Return a tuple separating the python type and annotations."""
    if not typing.get_origin(type_hint) is typing.Annotated:
        return type_hint, ()
    args = typing.get_args(type_hint)
    return args[0], args[1:]


def strip_annotations(type_hint: Any) -> Any:
    """Return the python type with any annotations removed."""
    return split_annotated(type_hint)[0]


def is_union(type_hint: Any) -> bool:
    """Return if the specified type is a union of types."""
    return typing.get_origin(strip_annotations(type_hint)) in {types.UnionType, typing.Union}


def is_optional(type_hint: Any) -> bool:
    """
    Return if the specified type is optional.

    A type is optional if its type hint matches any of the following:
    • None
    • Optional[...]
    • Union[..., None]
    • ... | None
    """
    python_type = strip_annotations(type_hint)
    if not is_union(python_type):
        return python_type is None or python_type is NoneType
    return any(is_optional(arg) for arg in typing.get_args(python_type))


def is_subclass(cls: Any, class_or_tuple: type | tuple[type, ...]) -> bool:
    """A more forgiving issubclass."""
    try:
        return issubclass(cls, class_or_tuple)
    except TypeError:
        return False


def literal_values(literal_type_hint: Any) -> set[Any]:
    """Return a set of all values in a Literal type."""
    return set(typing.get_args(literal_type_hint))
