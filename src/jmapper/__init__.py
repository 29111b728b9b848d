"""
Reflection-driven JSON mapping between Python values and JSON text.

Serializes arbitrary objects by walking their public members, reads JSON
back into annotated classes, containers and enums, and falls back to the
dynamic JsonData value when no target type is given. Conversions the
reflective path can't express are supplied as importers and exporters.

    >>> import jmapper
    >>> jmapper.to_json({"a": 1, "b": [1, 2, 3]})
    '{"a":1,"b":[1,2,3]}'
    >>> jmapper.to_object('{"a": 1}')["a"].get_int()
    1
"""

import threading
from typing import Any

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
from ._mapper import JsonMapper
from ._mapper import JsonSource
from ._mapper import MapperConfig
from ._mapper import WrapperFactory
from ._metadata import ArrayShape
from ._metadata import ObjectShape
from ._metadata import PropertyDescriptor
from ._metadata import TypeMetadataCache
from ._metadata import get_metadata_cache
from ._profiling import HotPathStats
from ._profiling import clear_hot_path_stats
from ._profiling import get_hot_path_stats
from ._reader import JsonReader
from ._reader import JsonToken
from ._registry import ConverterRegistry
from ._registry import Exporter
from ._registry import Importer
from ._writer import JsonWriter

__version__ = "0.1.0"

_default_mapper: JsonMapper | None = None
_default_mapper_lock = threading.Lock()


def get_mapper() -> JsonMapper:
    """Returns the mapper behind the module functions, creating it on first use."""
    global _default_mapper
    if _default_mapper is None:
        with _default_mapper_lock:
            if _default_mapper is None:
                _default_mapper = JsonMapper()
    return _default_mapper


def configure(config: MapperConfig) -> JsonMapper:
    """
    Replaces the default mapper with one built from ``config``.

    Converters registered on the previous default mapper carry over.
    """
    global _default_mapper
    with _default_mapper_lock:
        registry = None if _default_mapper is None else _default_mapper.registry
        _default_mapper = JsonMapper(config, registry=registry)
        return _default_mapper


def to_json(value: Any, writer: JsonWriter | None = None) -> str | None:
    """
    Serializes ``value`` to JSON text.

    With a caller-owned writer the value is emitted into it and None is
    returned.
    """
    return get_mapper().to_json(value, writer)


def to_object(json: JsonSource, target: Any = None) -> Any:
    """
    Deserializes JSON text, a text stream or a JsonReader.

    Without a target the result is a JsonData (or None for null); with one
    it is an instance of the annotated type.
    """
    return get_mapper().to_object(json, target)


def to_wrapper(factory: WrapperFactory, json: JsonSource) -> Any:
    """Deserializes into dynamic values created by ``factory``."""
    return get_mapper().to_wrapper(factory, json)


def register_exporter(value_type: type, exporter: Exporter) -> None:
    get_mapper().register_exporter(value_type, exporter)


def register_importer(json_type: type, value_type: Any, importer: Importer) -> None:
    get_mapper().register_importer(json_type, value_type, importer)


def unregister_exporters() -> None:
    get_mapper().unregister_exporters()


def unregister_importers() -> None:
    get_mapper().unregister_importers()


__all__ = [
    "ArrayShape",
    "ConverterRegistry",
    "Exporter",
    "HotPathStats",
    "Importer",
    "JSONDecodeError",
    "JsonData",
    "JsonException",
    "JsonMapper",
    "JsonReader",
    "JsonSource",
    "JsonToken",
    "JsonType",
    "JsonWrapper",
    "JsonWriter",
    "MapperConfig",
    "MaxDepthError",
    "ObjectShape",
    "PropertyDescriptor",
    "TypeMetadataCache",
    "UnassignableNullError",
    "UnconvertibleValueError",
    "UnknownPropertyError",
    "UnsupportedArrayError",
    "WrapperFactory",
    "clear_hot_path_stats",
    "configure",
    "get_hot_path_stats",
    "get_mapper",
    "get_metadata_cache",
    "register_exporter",
    "register_importer",
    "to_json",
    "to_object",
    "to_wrapper",
    "unregister_exporters",
    "unregister_importers",
]
