"""
The mapping engine.

Reads typed or dynamic values from a JsonReader and writes arbitrary
values through a JsonWriter, driven by cached type metadata and the
converter registry. Both directions recurse once per nesting level and
stop with MaxDepthError past the configured bound, which is also what
stops self-referencing object graphs.
"""

import logging
import threading
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import MutableSequence
from collections.abc import Set
from dataclasses import dataclass
from enum import Enum
from typing import IO
from typing import Any
from typing import TypeAlias
from typing import get_args

from ._data import JsonData
from ._data import JsonType
from ._data import JsonWrapper
from ._errors import JSONDecodeError
from ._errors import JsonException
from ._errors import MaxDepthError
from ._errors import UnassignableNullError
from ._errors import UnconvertibleValueError
from ._errors import UnknownPropertyError
from ._errors import UnsupportedArrayError
from ._metadata import ArrayShape
from ._metadata import ObjectShape
from ._metadata import PropertyDescriptor
from ._metadata import TypeMetadataCache
from ._metadata import get_metadata_cache
from ._metadata import is_any
from ._metadata import is_nullable
from ._metadata import is_union
from ._metadata import origin_of
from ._metadata import split_optional
from ._profiling import ProfileContext
from ._reader import INT32_MAX
from ._reader import INT32_MIN
from ._reader import INT64_MIN
from ._reader import SCALAR_TOKENS
from ._reader import UINT64_MAX
from ._reader import JsonReader
from ._reader import JsonToken
from ._registry import ConverterRegistry
from ._registry import Exporter
from ._registry import Importer
from ._writer import JsonWriter

logger = logging.getLogger(__name__)

WrapperFactory: TypeAlias = Callable[[], JsonWrapper]
JsonSource: TypeAlias = str | IO[str] | JsonReader

_PRIMITIVE_WRITERS: dict[type, Callable[[JsonWriter, Any], None]] = {
    str: JsonWriter.write_string,
    float: JsonWriter.write_double,
    int: JsonWriter.write_int,
    bool: JsonWriter.write_bool,
}
_ARRAY_TYPES = (list, tuple, Set, MutableSequence)
_SCALAR_SUPERTYPES = (str, int, float)


@dataclass(frozen=True)
class MapperConfig:
    """
    Configures mapping behavior with immutable settings.

    The nesting bound applies to both reading and writing; the remaining
    options shape the text produced by ``JsonMapper.to_json``.
    """

    max_nesting_depth: int = 100
    pretty_print: bool = False
    indent: int = 4
    ensure_ascii: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.max_nesting_depth, bool) or not isinstance(
            self.max_nesting_depth, int
        ):
            raise TypeError("max_nesting_depth must be an integer")
        if self.max_nesting_depth < 0:
            raise ValueError("max_nesting_depth must be non-negative")
        if not isinstance(self.pretty_print, bool):
            raise TypeError("pretty_print must be a boolean")
        if isinstance(self.indent, bool) or not isinstance(self.indent, int):
            raise TypeError("indent must be an integer")
        if self.indent < 0:
            raise ValueError("indent must be non-negative")
        if not isinstance(self.ensure_ascii, bool):
            raise TypeError("ensure_ascii must be a boolean")


class JsonMapper:
    """
    Converts between JSON and Python values without per-type code.

    Reading is driven by a target annotation (a class, ``list[int]``,
    ``dict[str, Point]``, ``Optional[X]``...) or, with no target, produces
    JsonData. Writing walks the value: scalars, sequences and mappings
    directly, then registered exporters, enums, and finally the public
    members of the value's class.
    """

    def __init__(
        self,
        config: MapperConfig | None = None,
        *,
        registry: ConverterRegistry | None = None,
        metadata: TypeMetadataCache | None = None,
    ) -> None:
        self.config = config if config is not None else MapperConfig()
        self.registry = registry if registry is not None else ConverterRegistry()
        self.metadata = metadata if metadata is not None else get_metadata_cache()
        self._static_writer = self.new_writer()
        self._static_writer_lock = threading.Lock()
        # Wrapper text rendered on its own matches only compact ASCII output
        self._raw_wrappers = self.config.ensure_ascii and not self.config.pretty_print
        logger.debug(f"Created mapper with {self.config}")

    def new_writer(self, sink: IO[str] | None = None) -> JsonWriter:
        """Builds a JsonWriter formatted according to this mapper's config."""
        return JsonWriter(
            sink,
            pretty_print=self.config.pretty_print,
            indent=self.config.indent,
            ensure_ascii=self.config.ensure_ascii,
        )

    # Facade

    def to_json(self, value: Any, writer: JsonWriter | None = None) -> str | None:
        """
        Serializes ``value``.

        Without a writer the text is built in a shared buffer guarded by a
        lock and returned. With a caller-owned writer the value is emitted
        into it and nothing is returned.
        """
        if writer is not None:
            self._write(value, writer, False, 0)
            return None

        with self._static_writer_lock:
            self._static_writer.reset()
            self._write(value, self._static_writer, True, 0)
            return self._static_writer.getvalue()

    def to_object(self, json: JsonSource, target: Any = None) -> Any:
        """
        Deserializes ``json`` into ``target``, or into JsonData without one.

        Text and text streams must hold exactly one JSON value; a
        caller-owned JsonReader is left positioned after the value.
        """
        if target is None:
            return self.to_wrapper(JsonData, json)

        reader, owned = _open_reader(json)
        result = self.read_value(target, reader)
        if owned:
            _expect_end(reader)
        return result

    def to_wrapper(self, factory: WrapperFactory, json: JsonSource) -> Any:
        """Deserializes ``json`` into dynamic values built by ``factory``."""
        reader, owned = _open_reader(json)
        result = self.read_wrapper(factory, reader)
        if owned:
            _expect_end(reader)
        return result

    def register_exporter(self, value_type: type, exporter: Exporter) -> None:
        self.registry.register_exporter(value_type, exporter)

    def register_importer(
        self, json_type: type, value_type: Any, importer: Importer
    ) -> None:
        self.registry.register_importer(json_type, value_type, importer)

    def unregister_exporters(self) -> None:
        self.registry.unregister_exporters()

    def unregister_importers(self) -> None:
        self.registry.unregister_importers()

    # Reading

    def read_value(self, target: Any, reader: JsonReader) -> Any:
        """Reads the next value from ``reader`` as an instance of ``target``."""
        return self._read(target, reader, 0)

    def read_wrapper(self, factory: WrapperFactory, reader: JsonReader) -> Any:
        """Reads the next value from ``reader`` as a dynamic value."""
        return self._read_wrapper(factory, reader, 0)

    def _read(self, target: Any, reader: JsonReader, depth: int) -> Any:  # noqa: PLR0911
        with ProfileContext("read_value"):
            _advance(reader)
            token = reader.token

            if token is JsonToken.ARRAY_END:
                return None
            if depth > self.config.max_nesting_depth:
                raise MaxDepthError("import into", target, depth)

            if token is JsonToken.NULL:
                if not is_nullable(target):
                    raise UnassignableNullError(target)
                return None

            inner = split_optional(target)[0]
            if is_union(inner):
                inner = self._pick_union_member(inner, reader)

            origin = origin_of(inner)
            if _is_wrapper_class(origin):
                return self._wrap_current(origin, reader, depth)

            if token in SCALAR_TOKENS:
                return self._convert_scalar(inner, reader)
            if token is JsonToken.ARRAY_START:
                return self._read_array(inner, reader, depth)
            if token is JsonToken.OBJECT_START:
                return self._read_object(inner, reader, depth)

            raise JsonException(
                f"Unexpected {token.name} token while reading {inner!r}"
            )

    def _convert_scalar(self, target: Any, reader: JsonReader) -> Any:
        """Bridges a scalar token to ``target`` through the importer fallbacks."""
        value = reader.value
        json_type = type(value)

        if _is_assignable(target, value):
            return value

        importer = self.registry.find_importer(json_type, target)
        if importer is not None:
            try:
                return importer(value)
            except JsonException:
                raise
            except (ValueError, TypeError) as e:
                raise UnconvertibleValueError(value, reader.token, target) from e

        origin = origin_of(target)
        if isinstance(origin, type) and issubclass(origin, Enum):
            try:
                return origin(value)
            except ValueError as e:
                raise UnconvertibleValueError(value, reader.token, target) from e

        hook = self.metadata.conversion_hook_of(target, json_type)
        if hook is not None:
            try:
                return hook(value)
            except JsonException:
                raise
            except (ValueError, TypeError) as e:
                raise UnconvertibleValueError(value, reader.token, target) from e

        raise UnconvertibleValueError(value, reader.token, target)

    def _pick_union_member(self, union: Any, reader: JsonReader) -> Any:
        """Chooses the first member of a union that can take the current token."""
        members = get_args(union)
        token = reader.token

        if token in SCALAR_TOKENS:
            value = reader.value
            for member in members:
                if _is_wrapper_class(origin_of(member)) or _is_assignable(
                    member, value
                ):
                    return member
            for member in members:
                origin = origin_of(member)
                if (
                    self.registry.find_importer(type(value), member) is not None
                    or (isinstance(origin, type) and issubclass(origin, Enum))
                    or self.metadata.conversion_hook_of(member, type(value))
                ):
                    return member
        elif token is JsonToken.ARRAY_START:
            for member in members:
                if _is_wrapper_class(origin_of(member)):
                    return member
                shape = self.metadata.array_shape_of(member)
                if shape.is_array or shape.is_list:
                    return member
        elif token is JsonToken.OBJECT_START:
            for member in members:
                if self._accepts_object(member):
                    return member

        return union

    def _accepts_object(self, member: Any) -> bool:
        if is_any(member):
            return True
        origin = origin_of(member)
        if _is_wrapper_class(origin):
            return True
        if not isinstance(origin, type) or issubclass(
            origin, (*_SCALAR_SUPERTYPES, bool, Enum, bytes)
        ):
            return False
        shape = self.metadata.object_shape_of(member)
        if shape.is_dictionary:
            return True
        array = self.metadata.array_shape_of(member)
        return not (array.is_array or array.is_list)

    def _read_array(self, target: Any, reader: JsonReader, depth: int) -> Any:
        shape = self.metadata.array_shape_of(target)
        if not shape.is_array and not shape.is_list:
            raise UnsupportedArrayError(target)

        items: list[Any] = []
        while True:
            item = self._read(shape.element_type_at(len(items)), reader, depth + 1)
            if item is None and reader.token is JsonToken.ARRAY_END:
                break
            items.append(item)

        return _materialize_array(shape, target, items)

    def _read_object(self, target: Any, reader: JsonReader, depth: int) -> Any:
        shape = self.metadata.object_shape_of(target)
        if not isinstance(shape.origin, type):
            raise JsonException(f"Type {target!r} can't act as an object")

        assigned: list[tuple[PropertyDescriptor, Any]] = []
        extras: list[tuple[str, Any]] = []
        while True:
            _advance(reader)
            if reader.token is JsonToken.OBJECT_END:
                break

            name = reader.value
            prop = shape.properties.get(name)
            if prop is not None:
                value = self._read(prop.type, reader, depth + 1)
                # Read-only members still consume their value
                if prop.writable:
                    assigned.append((prop, value))
            elif shape.is_dictionary:
                extras.append(
                    (name, self._read(shape.element_type, reader, depth + 1))
                )
            else:
                raise UnknownPropertyError(target, name)

        return _materialize_object(shape, target, assigned, extras)

    def _read_wrapper(
        self, factory: WrapperFactory, reader: JsonReader, depth: int
    ) -> Any:
        _advance(reader)
        if reader.token is JsonToken.ARRAY_END:
            return None
        return self._wrap_current(factory, reader, depth)

    def _wrap_current(  # noqa: PLR0911
        self, factory: WrapperFactory, reader: JsonReader, depth: int
    ) -> Any:
        """Builds a dynamic value from the token the reader is positioned on."""
        with ProfileContext("read_wrapper"):
            token = reader.token
            if token is JsonToken.NULL:
                return None
            if depth > self.config.max_nesting_depth:
                raise MaxDepthError("import into", factory, depth)

            instance = factory()

            if token is JsonToken.STRING:
                instance.set_string(reader.value)
            elif token is JsonToken.DOUBLE:
                instance.set_double(reader.value)
            elif token is JsonToken.INT:
                instance.set_int(reader.value)
            elif token is JsonToken.LONG:
                instance.set_long(reader.value)
            elif token is JsonToken.BOOLEAN:
                instance.set_boolean(reader.value)
            elif token is JsonToken.ARRAY_START:
                instance.set_kind(JsonType.ARRAY)
                while True:
                    item = self._read_wrapper(factory, reader, depth + 1)
                    if item is None and reader.token is JsonToken.ARRAY_END:
                        break
                    instance.append(item)
            elif token is JsonToken.OBJECT_START:
                instance.set_kind(JsonType.OBJECT)
                while True:
                    _advance(reader)
                    if reader.token is JsonToken.OBJECT_END:
                        break
                    name = reader.value
                    instance[name] = self._read_wrapper(factory, reader, depth + 1)
            else:
                raise JsonException(f"Unexpected {token.name} token")

            return instance

    # Writing

    def write_value(self, value: Any, writer: JsonWriter) -> None:
        """Emits ``value`` into a caller-owned writer."""
        self._write(value, writer, False, 0)

    def _write(  # noqa: PLR0911, PLR0912
        self, obj: Any, writer: JsonWriter, writer_is_private: bool, depth: int
    ) -> None:
        with ProfileContext("write_value"):
            if depth > self.config.max_nesting_depth:
                raise MaxDepthError("export from", type(obj), depth)

            if obj is None:
                writer.write_null()
                return

            obj_type = type(obj)
            primitive = _PRIMITIVE_WRITERS.get(obj_type)
            if primitive is not None:
                primitive(writer, obj)
                return

            if isinstance(obj, JsonWrapper):
                if writer_is_private and self._raw_wrappers:
                    writer.write_raw(obj.to_json())
                else:
                    obj.to_json(writer)
                return

            if isinstance(obj, _ARRAY_TYPES):
                writer.write_array_start()
                for elem in obj:
                    self._write(elem, writer, writer_is_private, depth + 1)
                writer.write_array_end()
                return

            if isinstance(obj, Mapping):
                writer.write_object_start()
                for key, value in obj.items():
                    writer.write_property_name(_property_key(key))
                    self._write(value, writer, writer_is_private, depth + 1)
                writer.write_object_end()
                return

            exporter = self.registry.find_exporter(obj_type)
            if exporter is not None:
                exporter(obj, writer)
                return

            if isinstance(obj, Enum):
                self._write_enum(obj, writer, writer_is_private, depth)
                return

            if isinstance(obj, _SCALAR_SUPERTYPES):
                writer.write(obj)
                return

            self._write_object(obj, writer, writer_is_private, depth)

    def _write_enum(
        self, obj: Enum, writer: JsonWriter, writer_is_private: bool, depth: int
    ) -> None:
        value = obj.value
        if isinstance(value, int) and not isinstance(value, bool):
            value = int(value)
            if INT32_MIN <= value <= INT32_MAX:
                writer.write_int(value)
            elif INT64_MIN <= value <= UINT64_MAX:
                # Wide underlying values are written unsigned (two's complement)
                writer.write_ulong(value & UINT64_MAX)
            else:
                raise JsonException(
                    f"Enum value {obj!r} does not fit in 64 bits"
                )
            return

        self._write(value, writer, writer_is_private, depth)

    def _write_object(
        self, obj: Any, writer: JsonWriter, writer_is_private: bool, depth: int
    ) -> None:
        props = self.metadata.properties_of(type(obj))

        writer.write_object_start()
        for prop in props:
            if not prop.readable:
                continue
            if prop.member is None and not hasattr(obj, prop.name):
                # Declared but never assigned
                continue
            writer.write_property_name(prop.name)
            self._write(
                getattr(obj, prop.name), writer, writer_is_private, depth + 1
            )
        writer.write_object_end()


def _advance(reader: JsonReader) -> None:
    if not reader.read():
        raise JSONDecodeError("Unexpected end of input", reader.text, len(reader.text))


def _expect_end(reader: JsonReader) -> None:
    if reader.read():
        raise JSONDecodeError("Extra data", reader.text, 0)


def _open_reader(json: JsonSource) -> tuple[JsonReader, bool]:
    if isinstance(json, JsonReader):
        return json, False
    if isinstance(json, bytes | bytearray):
        raise TypeError("the JSON object must be str, not bytes")
    if isinstance(json, str) or hasattr(json, "read"):
        return JsonReader(json), True
    raise TypeError(
        f"the JSON object must be str, a text stream or a JsonReader, "
        f"not {type(json).__name__}"
    )


def _is_wrapper_class(origin: Any) -> bool:
    return isinstance(origin, type) and issubclass(origin, JsonWrapper)


def _is_assignable(target: Any, value: Any) -> bool:
    if is_any(target):
        return True
    origin = origin_of(target)
    if not isinstance(origin, type) or get_args(target):
        return False
    if isinstance(value, bool):
        return origin is bool
    return isinstance(value, origin) and not issubclass(origin, Enum)


def _property_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return str.__str__(key)
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, int | float):
        return str(key)
    raise JsonException(f"keys must be strings, not {type(key).__name__}")


def _materialize_array(shape: ArrayShape, target: Any, items: list[Any]) -> Any:
    origin = shape.origin
    try:
        if shape.is_array:
            if origin is tuple:
                return tuple(items)
            if hasattr(origin, "_make"):
                return origin._make(items)
            return origin(items)

        instance = origin()
    except TypeError as e:
        raise JsonException(f"Can't create an instance of type {target!r}: {e}") from e

    for item in items:
        instance.append(item)
    return instance


def _materialize_object(
    shape: ObjectShape,
    target: Any,
    assigned: list[tuple[PropertyDescriptor, Any]],
    extras: list[tuple[str, Any]],
) -> Any:
    """
    Creates the instance and stores the values read for it.

    Dataclasses receive their ``init`` fields as constructor keyword
    arguments, which keeps frozen dataclasses and required fields working;
    everything else is assigned after a no-argument construction.
    """
    kwargs = {
        prop.name: value
        for prop, value in assigned
        if shape.is_dataclass and prop.init
    }
    try:
        instance = shape.origin(**kwargs)
    except TypeError as e:
        raise JsonException(f"Can't create an instance of type {target!r}: {e}") from e

    for prop, value in assigned:
        if not (shape.is_dataclass and prop.init):
            setattr(instance, prop.name, value)
    for key, value in extras:
        instance[key] = value
    return instance
