from stripy.types import is_optional, is_subclass, is_union, literal_values, strip_annotations
from typing import Annotated, Literal, Optional, Union


def test_optional():
    assert is_optional(None)
    assert is_optional(Optional[int])
    assert is_optional(Union[int, None])
    assert is_optional(int | None)
    assert is_optional(Annotated[str | None, "x"])
    assert not is_optional(int)
    assert not is_optional(int | str)


def test_union():
    assert is_union(int | str)
    assert is_union(Union[int, str])
    assert not is_union(int)


def test_strip_annotations():
    assert strip_annotations(Annotated[int, "x"]) is int
    assert strip_annotations(int) is int


def test_is_subclass_forgiving():
    assert is_subclass(bool, int)
    assert not is_subclass("not a class", object)


def test_literal_values():
    assert literal_values(Literal["a", "b"]) == {"a", "b"}
