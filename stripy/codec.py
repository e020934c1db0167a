"""
Module to support encoding and decoding of values.

Three families of codecs are provided:

  • JSONCodec: decodes JSON response values into Python types, and encodes the reverse
  • StringCodec: encodes scalar values to/from the strings sent in form fields
  • FormCodec: flattens a parameters dataclass into form fields

A codec for a type is obtained through the `get` class method of the codec family, for
example: `JSONCodec.get(Recipient).decode(value)`.
"""

import dataclasses
import enum
import iso8601
import keyword
import typing

from collections.abc import Iterable, Mapping, Set
from contextlib import contextmanager, suppress
from datetime import datetime, timezone
from decimal import Decimal
from stripy.form import INLINE, LOCAL, Form, field_mode, field_name
from stripy.types import is_optional, is_subclass, literal_values, strip_annotations
from types import NoneType, UnionType
from typing import Any, Generic, Literal, TypeVar, Union, get_args, get_origin


JSONType = Any
StringType = str


@contextmanager
def _wrap(exception):
    try:
        yield
    except Exception as e:
        if isinstance(e, exception):
            raise
        raise exception from e


# ----- errors -----


class CodecError(ValueError):
    """
    Error raised in the event that a value cannot be encoded or decoded.

    Attributes:
    • message: description of the error
    • path: list of field names and indexes locating the value that failed
    """

    __slots__ = {"message", "path"}

    def __init__(self, message: str | None = None, path: list[str | int] | None = None):
        self.message = message
        self.path = path

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, {self.path!r})"

    def __str__(self):
        return " ".join(str(s) for s in (self.message, self.path) if s is not None)

    @staticmethod
    @contextmanager
    def path_on_error(path: list[str | int] | str | int):
        """Context manager to add to error path in the event that a CodecError is raised."""
        try:
            yield
        except CodecError as ce:
            if ce.path is None:
                ce.path = []
            match path:
                case str() | int():
                    ce.path.insert(0, path)
                case list():
                    ce.path = path + ce.path
            raise


class EncodeError(CodecError):
    """Error raised if a value cannot be encoded."""


class DecodeError(CodecError):
    """Error raised if a value cannot be decoded."""


# ----- base -----


PT = TypeVar("PT")  # Python type hint
TT = TypeVar("TT")  # target type hint


class Codec(Generic[PT, TT]):
    """
    Base class for all things encode and decode.
    """

    def __init__(self, python_type: Any):
        self.python_type = python_type

    @staticmethod
    def handles(python_type: Any) -> bool:
        """Return True if the codec handles the specified Python type."""
        raise NotImplementedError

    @classmethod
    def get(cls, python_type: Any) -> "Codec[PT, TT]":
        """
        Return a codec that handles the specified Python type.

        Codecs are searched in the order their classes are declared as direct subclasses of
        the codec family. Codecs are cached by type in the family `_cache` mapping.
        """
        if cls is Codec:
            raise NotImplementedError
        with suppress(AttributeError, KeyError, TypeError):
            return cls._cache[python_type]
        for codec_class in cls.__subclasses__():
            if codec_class.handles(python_type):
                codec = codec_class(python_type)
                with suppress(TypeError):
                    cls._cache[python_type] = codec
                return codec
        raise TypeError(f"no codec for {python_type}")

    def encode(self, value: PT) -> TT:
        """Encode value from Python type to target type."""
        raise NotImplementedError

    def decode(self, value: TT) -> PT:
        """Decode value from target type to Python type."""
        raise NotImplementedError


class StringCodec(Codec[PT, StringType]):
    """Encodes Python types to/from the string values of form fields."""

    _cache = {}


class JSONCodec(Codec[PT, JSONType]):
    """Encodes Python types to/from JSON representations."""

    _cache = {}


class FormCodec(Codec[PT, Form]):
    """Encodes Python types into form fields. Form decoding is not supported."""

    _cache = {}


def _handles(python_type: Any, cls: type, exclude: type | tuple[type, ...] = ()) -> bool:
    python_type = strip_annotations(python_type)
    return is_subclass(python_type, cls) and not is_subclass(python_type, exclude)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:  # naive values are taken to be UTC
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _timestamp_to_datetime(value: int | float) -> datetime:
    with _wrap(DecodeError):
        return datetime.fromtimestamp(value, tz=timezone.utc)


def _parse_datetime(value: str) -> datetime:
    if value.isdigit():
        return _timestamp_to_datetime(int(value))
    with _wrap(DecodeError):
        return _to_utc(iso8601.parse_date(value))


# ----- enum -----


class EnumStringCodec(StringCodec[enum.Enum]):
    """String codec for enumerations; encodes the member value."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, enum.Enum)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.enum = strip_annotations(python_type)

    def encode(self, value: enum.Enum) -> StringType:
        if not isinstance(value, self.enum):
            raise EncodeError
        return str(value.value)

    def decode(self, value: StringType) -> enum.Enum:
        for member in self.enum:
            if str(member.value) == value:
                return member
        raise DecodeError(f"unknown {self.enum.__name__} value: {value!r}")


class EnumJSONCodec(JSONCodec[enum.Enum]):
    """JSON codec for enumerations; encodes the member value."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, enum.Enum)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.enum = strip_annotations(python_type)

    def encode(self, value: enum.Enum) -> JSONType:
        if not isinstance(value, self.enum):
            raise EncodeError
        return value.value

    def decode(self, value: JSONType) -> enum.Enum:
        with _wrap(DecodeError):
            return self.enum(value)


# ----- str -----


class StrStringCodec(StringCodec[str]):
    """String codec for Unicode character strings."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, str, enum.Enum)

    def encode(self, value: str) -> StringType:
        if not isinstance(value, str):
            raise EncodeError
        return value

    def decode(self, value: StringType) -> str:
        if not isinstance(value, str):
            raise DecodeError
        return value


class StrJSONCodec(JSONCodec[str]):
    """JSON codec for Unicode character strings."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, str, enum.Enum)

    def encode(self, value: str) -> JSONType:
        if not isinstance(value, str):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> str:
        if not isinstance(value, str):
            raise DecodeError
        return value


# ----- bool -----


class BoolStringCodec(StringCodec[bool]):
    """String codec for boolean values; encodes as "true" or "false"."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, bool)

    def encode(self, value: bool) -> StringType:
        if not isinstance(value, bool):
            raise EncodeError
        return "true" if value else "false"

    def decode(self, value: StringType) -> bool:
        match value:
            case "true":
                return True
            case "false":
                return False
        raise DecodeError


class BoolJSONCodec(JSONCodec[bool]):
    """JSON codec for boolean values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, bool)

    def encode(self, value: bool) -> JSONType:
        if not isinstance(value, bool):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> bool:
        if not isinstance(value, bool):
            raise DecodeError
        return value


# ----- int -----


class IntStringCodec(StringCodec[int]):
    """String codec for integers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, int, (bool, enum.Enum))

    def encode(self, value: int) -> StringType:
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError
        return str(value)

    def decode(self, value: StringType) -> int:
        with _wrap(DecodeError):
            return int(value)


class IntJSONCodec(JSONCodec[int]):
    """JSON codec for integers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, int, (bool, enum.Enum))

    def encode(self, value: int) -> JSONType:
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> int:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int) or isinstance(value, bool):
            raise DecodeError
        return value


# ----- float -----


class FloatStringCodec(StringCodec[float]):
    """String codec for floating point numbers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, float)

    def encode(self, value: float) -> StringType:
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise EncodeError
        return str(value)

    def decode(self, value: StringType) -> float:
        with _wrap(DecodeError):
            return float(value)


class FloatJSONCodec(JSONCodec[float]):
    """JSON codec for floating point numbers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, float)

    def encode(self, value: float) -> JSONType:
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> float:
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise DecodeError
        return float(value)


# ----- Decimal -----


class DecimalStringCodec(StringCodec[Decimal]):
    """String codec for decimal numbers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, Decimal)

    def encode(self, value: Decimal) -> StringType:
        if not isinstance(value, Decimal):
            raise EncodeError
        return str(value)

    def decode(self, value: StringType) -> Decimal:
        with _wrap(DecodeError):
            return Decimal(value)


class DecimalJSONCodec(JSONCodec[Decimal]):
    """JSON codec for decimal numbers; decodes from JSON number or string."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, Decimal)

    def encode(self, value: Decimal) -> JSONType:
        if not isinstance(value, Decimal):
            raise EncodeError
        return str(value)

    def decode(self, value: JSONType) -> Decimal:
        if not isinstance(value, int | float | str) or isinstance(value, bool):
            raise DecodeError
        with _wrap(DecodeError):
            return Decimal(str(value))


# ----- datetime -----


class DatetimeStringCodec(StringCodec[datetime]):
    """
    String codec for datetime values.

    Values are encoded as UNIX timestamps (seconds since epoch). Decoding accepts a UNIX
    timestamp or an ISO 8601 representation. Naive datetime values are taken to be UTC.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, datetime)

    def encode(self, value: datetime) -> StringType:
        if not isinstance(value, datetime):
            raise EncodeError
        return str(int(_to_utc(value).timestamp()))

    def decode(self, value: StringType) -> datetime:
        if not isinstance(value, str):
            raise DecodeError
        return _parse_datetime(value)


class DatetimeJSONCodec(JSONCodec[datetime]):
    """
    JSON codec for datetime values.

    Values are encoded as UNIX timestamps (integer seconds since epoch), which is how the API
    represents them. Decoding also accepts an ISO 8601 string representation.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        return _handles(python_type, datetime)

    def encode(self, value: datetime) -> JSONType:
        if not isinstance(value, datetime):
            raise EncodeError
        return int(_to_utc(value).timestamp())

    def decode(self, value: JSONType) -> datetime:
        if isinstance(value, str):
            return _parse_datetime(value)
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise DecodeError
        return _timestamp_to_datetime(value)


# ----- None -----


class NoneTypeStringCodec(StringCodec[NoneType]):
    """String codec for None; encodes as an empty string, which clears a value."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return strip_annotations(python_type) is NoneType

    def encode(self, value: NoneType) -> StringType:
        if value is not None:
            raise EncodeError
        return ""

    def decode(self, value: StringType) -> NoneType:
        if value != "":
            raise DecodeError
        return None


class NoneTypeJSONCodec(JSONCodec[NoneType]):
    """JSON codec for None."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return strip_annotations(python_type) is NoneType

    def encode(self, value: NoneType) -> JSONType:
        if value is not None:
            raise EncodeError
        return None

    def decode(self, value: JSONType) -> NoneType:
        if value is not None:
            raise DecodeError
        return None


# ----- Mapping -----


class MappingJSONCodec(JSONCodec[PT]):
    """JSON codec for mappings; keys are encoded as strings."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        return is_subclass(origin, Mapping) and not getattr(origin, "__annotations__", None)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        args = get_args(strip_annotations(python_type)) or (Any, Any)
        if len(args) != 2:
            raise TypeError("expecting Mapping[KT, VT]")
        self.key_codec = StringCodec.get(args[0])
        self.value_codec = JSONCodec.get(args[1])

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, Mapping):
            raise EncodeError
        result = {}
        for k, v in value.items():
            key = self.key_codec.encode(k)
            with CodecError.path_on_error(key):
                result[key] = self.value_codec.encode(v)
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, Mapping):
            raise DecodeError
        result = {}
        for k, v in value.items():
            key = self.key_codec.decode(k)
            with CodecError.path_on_error(key):
                result[key] = self.value_codec.decode(v)
        return result


# ----- Iterable -----


class IterableJSONCodec(JSONCodec[PT]):
    """JSON codec for lists, sets and other iterables; encoded as JSON arrays."""

    _AVOID = str | bytes | bytearray | Mapping

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        return is_subclass(origin, Iterable) and not is_subclass(
            origin, IterableJSONCodec._AVOID
        )

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        args = get_args(python_type) or (Any,)
        if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
            args = args[:1]
        if len(args) != 1:
            raise TypeError("expecting Iterable[T]")
        self.decode_type = origin if origin in {list, set, frozenset, tuple} else list
        self.codec = JSONCodec.get(args[0])
        self.is_set = is_subclass(origin, Set)

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, Iterable) or isinstance(value, IterableJSONCodec._AVOID):
            raise EncodeError
        if self.is_set:
            value = sorted(value)
        result = []
        for index, item in enumerate(value):
            with CodecError.path_on_error(index):
                result.append(self.codec.encode(item))
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, list):
            raise DecodeError
        result = []
        for index, item in enumerate(value):
            with CodecError.path_on_error(index):
                result.append(self.codec.decode(item))
        return self.decode_type(result)


# ----- dataclass -----


class DataclassJSONCodec(JSONCodec[PT]):
    """
    JSON codec for dataclasses; encoded as JSON objects.

    When decoding, object members with no corresponding field are ignored, and missing
    members of optional fields with no default value are decoded as None.
    """

    # keywords have _ suffix in dataclass fields (e.g. "in_", "for_", ...)
    _dc_kw = {k + "_": k for k in keyword.kwlist}

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return dataclasses.is_dataclass(python_type) and isinstance(python_type, type)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)
        self.hints = typing.get_type_hints(self.raw_type, include_extras=True)
        self._codecs = None

    @property
    def codecs(self) -> dict[str, JSONCodec[Any]]:
        # resolved on first use, to support self-referencing types
        if self._codecs is None:
            self._codecs = {key: JSONCodec.get(hint) for key, hint in self.hints.items()}
        return self._codecs

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        result = {}
        for field in dataclasses.fields(self.raw_type):
            v = getattr(value, field.name, None)
            if v is not None:
                with CodecError.path_on_error(field.name):
                    result[DataclassJSONCodec._dc_kw.get(field.name, field.name)] = (
                        self.codecs[field.name].encode(v)
                    )
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, Mapping):
            raise DecodeError
        kwargs = {}
        for field in dataclasses.fields(self.raw_type):
            if not field.init:
                continue
            try:
                v = value[DataclassJSONCodec._dc_kw.get(field.name, field.name)]
            except KeyError:
                if (
                    is_optional(self.hints[field.name])
                    and field.default is dataclasses.MISSING
                    and field.default_factory is dataclasses.MISSING
                ):
                    kwargs[field.name] = None
                continue
            with CodecError.path_on_error(field.name):
                kwargs[field.name] = self.codecs[field.name].decode(v)
        with _wrap(DecodeError):
            return self.raw_type(**kwargs)


# ----- UnionType/Union -----


class UnionJSONCodec(JSONCodec[PT]):
    """
    JSON codec for unions. Each member type is tried in declaration order; the first to
    successfully encode or decode the value is used.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        return get_origin(strip_annotations(python_type)) in {UnionType, Union}

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.codecs = tuple(JSONCodec.get(t) for t in get_args(strip_annotations(python_type)))

    def encode(self, value: PT) -> JSONType:
        for codec in self.codecs:
            with suppress(EncodeError):
                return codec.encode(value)
        raise EncodeError

    def decode(self, value: JSONType) -> PT:
        for codec in self.codecs:
            with suppress(DecodeError):
                return codec.decode(value)
        raise DecodeError


class UnionStringCodec(StringCodec[PT]):
    """String codec for unions, with the same member resolution as UnionJSONCodec."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return UnionJSONCodec.handles(python_type)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.codecs = tuple(
            StringCodec.get(t) for t in get_args(strip_annotations(python_type))
        )

    def encode(self, value: PT) -> StringType:
        for codec in self.codecs:
            with suppress(EncodeError):
                return codec.encode(value)
        raise EncodeError

    def decode(self, value: StringType) -> PT:
        for codec in self.codecs:
            with suppress(DecodeError):
                return codec.decode(value)
        raise DecodeError


# ----- Literal -----


class LiteralJSONCodec(JSONCodec[PT]):
    """JSON codec for literal values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return get_origin(strip_annotations(python_type)) is Literal

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.values = literal_values(strip_annotations(python_type))

    def _check(self, value, error):
        if not any(value == v and type(value) is type(v) for v in self.values):
            raise error
        return value

    def encode(self, value: PT) -> JSONType:
        return self._check(value, EncodeError)

    def decode(self, value: JSONType) -> PT:
        return self._check(value, DecodeError)


class LiteralStringCodec(StringCodec[PT]):
    """String codec for literal values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return LiteralJSONCodec.handles(python_type)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.values = literal_values(strip_annotations(python_type))

    def encode(self, value: PT) -> StringType:
        if value not in self.values:
            raise EncodeError
        return StringCodec.get(type(value)).encode(value)

    def decode(self, value: StringType) -> PT:
        for v in self.values:
            with suppress(DecodeError):
                if StringCodec.get(type(v)).decode(value) == v:
                    return v
        raise DecodeError


# ----- Any -----


class AnyStringCodec(StringCodec[Any]):
    """String codec for Any; encodes using the codec of the value's type."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return strip_annotations(python_type) is Any

    def encode(self, value: Any) -> StringType:
        return StringCodec.get(type(value)).encode(value)

    def decode(self, value: StringType) -> Any:
        return value


class AnyJSONCodec(JSONCodec[Any]):
    """JSON codec for Any; decoded values are passed through unmodified."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return strip_annotations(python_type) is Any

    def encode(self, value: Any) -> Any:
        return JSONCodec.get(type(value)).encode(value)

    def decode(self, value: Any) -> Any:
        return value


# ----- form -----


def _is_object(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def _flatten(form: Form, name: str | None, value: Any) -> None:
    """Add a value to form fields, expanding nested values with bracketed field names."""
    if value is None:
        return
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = dataclasses.fields(value)
        inline = {  # inline entries replace fields of the same name
            k
            for f in fields
            if field_mode(f) == INLINE and getattr(value, f.name) is not None
            for k in getattr(value, f.name).keys()
        }
        for field in fields:
            mode = field_mode(field)
            if mode == LOCAL:
                continue
            v = getattr(value, field.name)
            with CodecError.path_on_error(field.name):
                if mode == INLINE:
                    if v is not None:
                        for k, i in v.items():
                            form.add(field_name(name, k), StringCodec.get(type(i)).encode(i))
                    continue
                key = DataclassJSONCodec._dc_kw.get(field.name, field.name)
                if key in inline:
                    continue
                _flatten(form, field_name(name, key), v)
    elif isinstance(value, Mapping):
        for k, v in value.items():
            with CodecError.path_on_error(str(k)):
                _flatten(form, field_name(name, k), v)
    elif isinstance(value, Iterable) and not isinstance(value, str | bytes | bytearray):
        if not name:
            raise EncodeError("cannot encode list as form")
        for index, item in enumerate(value):
            with CodecError.path_on_error(index):
                if _is_object(item):
                    _flatten(form, field_name(name, index), item)
                else:
                    _flatten(form, f"{name}[]", item)
    else:
        if not name:
            raise EncodeError("cannot encode scalar as form")
        try:
            codec = StringCodec.get(type(value))
        except TypeError as te:
            raise EncodeError(f"cannot encode {type(value).__name__} in form") from te
        form.add(name, codec.encode(value))


class DataclassFormCodec(FormCodec[PT]):
    """
    Form codec for parameters dataclasses. Fields with None values are omitted; nested
    dataclasses, mappings and iterables are expanded with bracketed field names.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        return DataclassJSONCodec.handles(python_type)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)

    def encode(self, value: PT) -> Form:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        form = Form()
        _flatten(form, None, value)
        return form


class MappingFormCodec(FormCodec[PT]):
    """Form codec for mappings of field names to values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        return MappingJSONCodec.handles(python_type)

    def encode(self, value: PT) -> Form:
        if not isinstance(value, Mapping):
            raise EncodeError
        form = Form()
        _flatten(form, None, value)
        return form


def encode_form(value: Any) -> Form:
    """Return form fields encoded from a parameters dataclass or mapping."""
    return FormCodec.get(type(value)).encode(value)
