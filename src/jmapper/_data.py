"""
Dynamic JSON values.

JsonData is a tagged union over every JSON kind, used when a document is
read without a static target type. JsonWrapper is the structural
interface the mapper relies on, so callers can plug in their own dynamic
value through a factory.
"""

from collections.abc import Iterator
from collections.abc import Mapping
from enum import Enum
from typing import Any
from typing import Protocol
from typing import runtime_checkable

from ._errors import JsonException
from ._reader import INT32_MAX
from ._reader import INT32_MIN
from ._writer import JsonWriter


class JsonType(Enum):
    """Kind tag of a dynamic JSON value."""

    NONE = "none"
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    INT = "int"
    LONG = "long"
    DOUBLE = "double"
    BOOLEAN = "boolean"


_DEFAULTS: dict[JsonType, Any] = {
    JsonType.NONE: None,
    JsonType.STRING: "",
    JsonType.INT: 0,
    JsonType.LONG: 0,
    JsonType.DOUBLE: 0.0,
    JsonType.BOOLEAN: False,
}


@runtime_checkable
class JsonWrapper(Protocol):
    """Interface of a dynamic value the mapper can fill and serialize."""

    def set_kind(self, kind: JsonType) -> None: ...

    def set_boolean(self, value: bool) -> None: ...

    def set_int(self, value: int) -> None: ...

    def set_long(self, value: int) -> None: ...

    def set_double(self, value: float) -> None: ...

    def set_string(self, value: str) -> None: ...

    def append(self, item: Any) -> None: ...

    def __setitem__(self, key: Any, item: Any) -> None: ...

    def to_json(self, writer: JsonWriter | None = None) -> str | None: ...


class JsonData:
    """
    Type-erased JSON value.

    Holds a kind tag plus a payload: a scalar, a list of elements, or an
    insertion-ordered dict of members. Elements and members are JsonData
    instances or None for JSON null.

        >>> data = JsonData({"a": 1, "b": [1, 2, 3]})
        >>> data.kind, data["b"][2].get_int()
        (<JsonType.OBJECT: 'object'>, 3)
    """

    __slots__ = ("_kind", "_value")

    def __init__(self, value: Any = None) -> None:
        self._kind = JsonType.NONE
        self._value: Any = None
        if isinstance(value, JsonData):
            self._kind = value._kind
            self._value = _copy_payload(value._value)
        elif value is not None:
            self._assign(value)

    def _assign(self, value: Any) -> None:  # noqa: PLR0911
        if isinstance(value, bool):
            self.set_boolean(value)
        elif isinstance(value, int):
            if INT32_MIN <= value <= INT32_MAX:
                self.set_int(value)
            else:
                self.set_long(value)
        elif isinstance(value, float):
            self.set_double(value)
        elif isinstance(value, str):
            self.set_string(value)
        elif isinstance(value, Mapping):
            self.set_kind(JsonType.OBJECT)
            for key, item in value.items():
                self[key] = item
        elif isinstance(value, list | tuple):
            self.set_kind(JsonType.ARRAY)
            for item in value:
                self.append(item)
        else:
            msg = f"Can't wrap a value of type {type(value).__name__}"
            raise TypeError(msg)

    # Kind

    @property
    def kind(self) -> JsonType:
        return self._kind

    def set_kind(self, kind: JsonType) -> None:
        """Forces the kind, resetting the payload when the kind changes."""
        if kind is self._kind:
            return
        self._kind = kind
        if kind is JsonType.OBJECT:
            self._value = {}
        elif kind is JsonType.ARRAY:
            self._value = []
        else:
            self._value = _DEFAULTS[kind]

    @property
    def is_object(self) -> bool:
        return self._kind is JsonType.OBJECT

    @property
    def is_array(self) -> bool:
        return self._kind is JsonType.ARRAY

    @property
    def is_string(self) -> bool:
        return self._kind is JsonType.STRING

    @property
    def is_int(self) -> bool:
        return self._kind is JsonType.INT

    @property
    def is_long(self) -> bool:
        return self._kind is JsonType.LONG

    @property
    def is_double(self) -> bool:
        return self._kind is JsonType.DOUBLE

    @property
    def is_boolean(self) -> bool:
        return self._kind is JsonType.BOOLEAN

    # Typed setters and getters

    def set_boolean(self, value: bool) -> None:
        self._kind = JsonType.BOOLEAN
        self._value = bool(value)

    def set_int(self, value: int) -> None:
        self._kind = JsonType.INT
        self._value = int(value)

    def set_long(self, value: int) -> None:
        self._kind = JsonType.LONG
        self._value = int(value)

    def set_double(self, value: float) -> None:
        self._kind = JsonType.DOUBLE
        self._value = float(value)

    def set_string(self, value: str) -> None:
        self._kind = JsonType.STRING
        self._value = str(value)

    def get_boolean(self) -> bool:
        return self._expect(JsonType.BOOLEAN)

    def get_int(self) -> int:
        return self._expect(JsonType.INT)

    def get_long(self) -> int:
        return self._expect(JsonType.LONG)

    def get_double(self) -> float:
        return self._expect(JsonType.DOUBLE)

    def get_string(self) -> str:
        return self._expect(JsonType.STRING)

    def _expect(self, kind: JsonType) -> Any:
        if self._kind is not kind:
            raise JsonException(
                f"Instance of JsonData is not a {kind.value} "
                f"(it holds {self._kind.value})"
            )
        return self._value

    # Containers

    def _ensure_list(self) -> list["JsonData | None"]:
        if self._kind is JsonType.NONE:
            self.set_kind(JsonType.ARRAY)
        if self._kind is not JsonType.ARRAY:
            raise JsonException("Instance of JsonData is not a list")
        return self._value

    def _ensure_dict(self) -> dict[str, "JsonData | None"]:
        if self._kind is JsonType.NONE:
            self.set_kind(JsonType.OBJECT)
        if self._kind is not JsonType.OBJECT:
            raise JsonException("Instance of JsonData is not a dictionary")
        return self._value

    def append(self, item: Any) -> None:
        self._ensure_list().append(_wrap(item))

    def __getitem__(self, key: int | str) -> "JsonData | None":
        if isinstance(key, str):
            return self._ensure_dict()[key]
        return self._ensure_list()[key]

    def __setitem__(self, key: int | str, item: Any) -> None:
        if isinstance(key, str):
            self._ensure_dict()[key] = _wrap(item)
        else:
            self._ensure_list()[key] = _wrap(item)

    def __delitem__(self, key: int | str) -> None:
        if isinstance(key, str):
            del self._ensure_dict()[key]
        else:
            del self._ensure_list()[key]

    def __contains__(self, key: object) -> bool:
        if self._kind is JsonType.OBJECT:
            return key in self._value
        if self._kind is JsonType.ARRAY:
            return _wrap(key) in self._value
        return False

    def __len__(self) -> int:
        if self._kind in (JsonType.OBJECT, JsonType.ARRAY):
            return len(self._value)
        raise JsonException(
            f"Instance of JsonData of kind {self._kind.value} has no length"
        )

    def __iter__(self) -> Iterator[Any]:
        """Iterates array elements, or object keys."""
        if self._kind in (JsonType.OBJECT, JsonType.ARRAY):
            return iter(self._value)
        raise JsonException(
            f"Instance of JsonData of kind {self._kind.value} is not iterable"
        )

    def keys(self) -> list[str]:
        return list(self._ensure_dict())

    def values(self) -> list["JsonData | None"]:
        return list(self._ensure_dict().values())

    def items(self) -> list[tuple[str, "JsonData | None"]]:
        return list(self._ensure_dict().items())

    def get(self, key: str, default: Any = None) -> Any:
        if self._kind is not JsonType.OBJECT:
            return default
        return self._value.get(key, default)

    # Conversion

    def to_python(self) -> Any:
        """Returns the equivalent tree of plain Python values."""
        if self._kind is JsonType.OBJECT:
            return {
                key: None if item is None else item.to_python()
                for key, item in self._value.items()
            }
        if self._kind is JsonType.ARRAY:
            return [
                None if item is None else item.to_python()
                for item in self._value
            ]
        return self._value

    def to_json(self, writer: JsonWriter | None = None) -> str | None:
        """
        Serializes this value.

        Without a writer the JSON text is returned; with one, the value is
        emitted through it (composing with whatever structure is open).
        """
        if writer is None:
            own = JsonWriter()
            self._write_to(own)
            return own.getvalue()

        self._write_to(writer)
        return None

    def _write_to(self, writer: JsonWriter) -> None:  # noqa: PLR0911
        kind = self._kind
        if kind is JsonType.NONE:
            writer.write_null()
        elif kind is JsonType.BOOLEAN:
            writer.write_bool(self._value)
        elif kind is JsonType.INT:
            writer.write_int(self._value)
        elif kind is JsonType.LONG:
            writer.write_long(self._value)
        elif kind is JsonType.DOUBLE:
            writer.write_double(self._value)
        elif kind is JsonType.STRING:
            writer.write_string(self._value)
        elif kind is JsonType.ARRAY:
            writer.write_array_start()
            for item in self._value:
                if item is None:
                    writer.write_null()
                else:
                    item._write_to(writer)
            writer.write_array_end()
        else:
            writer.write_object_start()
            for key, item in self._value.items():
                writer.write_property_name(key)
                if item is None:
                    writer.write_null()
                else:
                    item._write_to(writer)
            writer.write_object_end()

    # Comparison

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JsonData):
            return NotImplemented
        return self._kind is other._kind and self._value == other._value

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._kind is JsonType.NONE:
            return "JsonData()"
        return f"JsonData({self.to_python()!r})"

    def __str__(self) -> str:
        if self._kind in (JsonType.OBJECT, JsonType.ARRAY):
            return self.to_json() or ""
        return str(self._value)


def _wrap(item: Any) -> JsonData | None:
    if item is None or isinstance(item, JsonData):
        return item
    return JsonData(item)


def _copy_payload(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _wrap_copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_wrap_copy(item) for item in value]
    return value


def _wrap_copy(item: JsonData | None) -> JsonData | None:
    return None if item is None else JsonData(item)
