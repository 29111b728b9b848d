"""
Reflective type metadata.

Computes, once per type, how a class or typing annotation behaves when it
is read from or written to JSON: as a fixed-size array, as a resizable
list, as a string-keyed mapping, or as an object with named members.
Results live in a process-wide cache that is filled lazily and never torn
down.

Member order is fixed: dataclass fields or class annotations in
declaration order (base classes first), then unannotated ``__slots__``
names, then public properties in declaration order.
"""

import dataclasses
import inspect
import logging
import threading
import types
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import MutableMapping
from collections.abc import MutableSequence
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from datetime import time
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated
from typing import Any
from typing import ClassVar
from typing import TypeVar
from typing import Union
from typing import get_args
from typing import get_origin
from typing import get_type_hints

from ._data import JsonData

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)
_MISSING = object()

# Types whose instances can never be None
_VALUE_TYPES = (bool, int, float, complex, Decimal, datetime, date, time, timedelta)


@dataclass(frozen=True)
class PropertyDescriptor:
    """One public, gettable and/or settable member of a type."""

    name: str
    member: Any
    type: Any
    is_field: bool
    readable: bool = True
    writable: bool = True
    init: bool = False


@dataclass(frozen=True)
class ArrayShape:
    """
    How a type behaves as a JSON array.

    ``element_types`` holds per-position types for heterogeneous tuples and
    named tuples; positions past its end use ``element_type``.
    """

    origin: Any
    element_type: Any = JsonData
    is_array: bool = False
    is_list: bool = False
    element_types: tuple[Any, ...] = ()

    def element_type_at(self, index: int) -> Any:
        if index < len(self.element_types):
            return self.element_types[index]
        return self.element_type


@dataclass(frozen=True)
class ObjectShape:
    """How a type behaves as a JSON object."""

    origin: Any
    is_dictionary: bool = False
    element_type: Any = JsonData
    properties: Mapping[str, PropertyDescriptor] = field(
        default_factory=lambda: types.MappingProxyType({})
    )
    is_dataclass: bool = False


# Annotation helpers


def is_any(tp: Any) -> bool:
    return tp is Any or tp is object


def is_union(tp: Any) -> bool:
    return get_origin(tp) in (Union, types.UnionType)


def strip_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = tp.__origin__
    return tp


def split_optional(tp: Any) -> tuple[Any, bool]:
    """Returns ``(tp without None, whether None was allowed)``."""
    tp = strip_annotated(tp)
    if not is_union(tp):
        return tp, tp is _NONE_TYPE

    args = get_args(tp)
    members = tuple(arg for arg in args if arg is not _NONE_TYPE)
    nullable = len(members) != len(args)
    if len(members) == 1:
        return members[0], nullable
    return Union[members], nullable


def origin_of(tp: Any) -> Any:
    """Returns the runtime class behind an annotation (list for list[int])."""
    tp = strip_annotated(tp)
    return get_origin(tp) or tp


def is_nullable(tp: Any) -> bool:
    """
    Whether a JSON null may be assigned to the annotation.

    Optional and Any accept None; numbers, booleans, decimals, date/time
    values and enums do not; every other (reference-like) class does.
    """
    inner, nullable = split_optional(tp)
    if nullable or is_any(inner):
        return True
    if is_union(inner):
        return any(is_nullable(member) for member in get_args(inner))

    origin = origin_of(inner)
    if not isinstance(origin, type):
        return True
    return not issubclass(origin, (Enum, *_VALUE_TYPES))


def _concrete(tp: Any) -> Any:
    """TypeVars carry no usable type information."""
    return None if isinstance(tp, TypeVar) else tp


def _generic_base_args(origin: type, abc: type) -> tuple[Any, ...]:
    """Finds type arguments given to a generic base, as in ``class Names(list[str])``."""
    for klass in origin.__mro__:
        for base in getattr(klass, "__orig_bases__", ()):
            base_origin = get_origin(base)
            if isinstance(base_origin, type) and issubclass(base_origin, abc):
                return get_args(base)
    return ()


def _indexer_type(origin: type, key_type: type) -> Any:
    """Return annotation of a Python-level ``__getitem__`` accepting ``key_type``."""
    getitem = getattr(origin, "__getitem__", None)
    if not inspect.isfunction(getitem):
        return None

    try:
        hints = get_type_hints(getitem)
    except (NameError, TypeError) as e:
        logger.debug(f"Can't resolve indexer hints of {origin!r}: {e}")
        return None

    params = list(inspect.signature(getitem).parameters.values())[1:]
    if len(params) != 1:
        return None
    key_hint = hints.get(params[0].name)
    if key_hint is not None and not accepts(key_hint, key_type):
        return None

    returned = hints.get("return")
    if returned is None:
        return None
    return split_optional(returned)[0]


def accepts(hint: Any, source_type: type) -> bool:
    """Whether a parameter annotated ``hint`` accepts a ``source_type`` value."""
    hint = strip_annotated(hint)
    if is_any(hint):
        return True
    if is_union(hint):
        return any(accepts(member, source_type) for member in get_args(hint))
    origin = origin_of(hint)
    if isinstance(origin, type):
        return issubclass(source_type, origin)
    return True


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls)
    except (NameError, TypeError) as e:
        logger.debug(f"Falling back to raw annotations for {cls!r}: {e}")

    hints: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        for name, hint in inspect.get_annotations(klass).items():
            hints[name] = Any if isinstance(hint, str) else hint
    return hints


def _is_class_var(hint: Any) -> bool:
    return hint is ClassVar or get_origin(hint) is ClassVar


def _slot_names(cls: type) -> list[str]:
    names = []
    for klass in reversed(cls.__mro__):
        slots = vars(klass).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(slots)
    return names


def _collect_properties(cls: type) -> list[PropertyDescriptor]:
    descriptors: dict[str, PropertyDescriptor] = {}
    hints = _resolve_hints(cls)

    if dataclasses.is_dataclass(cls):
        frozen = cls.__dataclass_params__.frozen  # type: ignore[attr-defined]
        for f in dataclasses.fields(cls):
            if f.name.startswith("_"):
                continue
            declared = hints.get(f.name, f.type)
            descriptors[f.name] = PropertyDescriptor(
                name=f.name,
                member=f,
                type=Any if isinstance(declared, str) else declared,
                is_field=True,
                writable=f.init or not frozen,
                init=f.init,
            )
    else:
        for name, hint in hints.items():
            if name.startswith("_") or _is_class_var(hint):
                continue
            descriptors[name] = PropertyDescriptor(
                name=name, member=None, type=hint, is_field=True
            )

    for name in _slot_names(cls):
        if not name.startswith("_") and name not in descriptors:
            descriptors[name] = PropertyDescriptor(
                name=name, member=None, type=Any, is_field=True
            )

    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if not isinstance(attr, property) or name.startswith("_"):
                continue
            existing = descriptors.get(name)
            if existing is not None and existing.is_field:
                continue
            returned = None
            if attr.fget is not None:
                try:
                    returned = get_type_hints(attr.fget).get("return")
                except (NameError, TypeError):
                    returned = None
            descriptors[name] = PropertyDescriptor(
                name=name,
                member=attr,
                type=Any if returned is None else returned,
                is_field=False,
                readable=attr.fget is not None,
                writable=attr.fset is not None,
            )

    return list(descriptors.values())


# Shape computation


def _compute_array_shape(tp: Any) -> ArrayShape:
    if is_any(tp):
        return ArrayShape(origin=list, element_type=Any, is_list=True)

    origin = origin_of(tp)
    if not isinstance(origin, type):
        return ArrayShape(origin=origin)

    args = get_args(strip_annotated(tp))

    if issubclass(origin, tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            return ArrayShape(origin=origin, element_type=args[0], is_array=True)
        if args:
            return ArrayShape(
                origin=origin,
                element_type=Any,
                is_array=True,
                element_types=args,
            )
        if hasattr(origin, "_fields"):
            hints = _resolve_hints(origin)
            positional = tuple(hints.get(name, Any) for name in origin._fields)
            return ArrayShape(
                origin=origin,
                element_type=Any,
                is_array=True,
                element_types=positional,
            )
        return ArrayShape(origin=origin, is_array=True)

    is_list = issubclass(origin, MutableSequence) or (
        hasattr(origin, "append") and hasattr(origin, "__getitem__")
    )
    if not is_list:
        return ArrayShape(origin=origin)

    element_type = (
        (_concrete(args[0]) if args else None)
        or _concrete(next(iter(_generic_base_args(origin, MutableSequence)), None))
        or _indexer_type(origin, int)
        or JsonData
    )
    return ArrayShape(origin=origin, element_type=element_type, is_list=True)


def _compute_object_shape(tp: Any) -> ObjectShape:
    if is_any(tp):
        return ObjectShape(origin=dict, is_dictionary=True, element_type=Any)

    origin = origin_of(tp)
    if not isinstance(origin, type):
        return ObjectShape(origin=origin)

    is_dictionary = issubclass(origin, MutableMapping) or all(
        hasattr(origin, name) for name in ("keys", "__getitem__", "__setitem__")
    )

    element_type: Any = JsonData
    if is_dictionary:
        args = get_args(strip_annotated(tp))
        base_args = _generic_base_args(origin, Mapping)
        element_type = (
            (_concrete(args[1]) if len(args) == 2 else None)
            or (_concrete(base_args[1]) if len(base_args) == 2 else None)
            or _indexer_type(origin, str)
            or JsonData
        )

    properties = {p.name: p for p in _collect_properties(origin)}
    return ObjectShape(
        origin=origin,
        is_dictionary=is_dictionary,
        element_type=element_type,
        properties=types.MappingProxyType(properties),
        is_dataclass=dataclasses.is_dataclass(origin),
    )


def _compute_properties(tp: Any) -> tuple[PropertyDescriptor, ...]:
    origin = origin_of(tp)
    if not isinstance(origin, type):
        return ()
    return tuple(_collect_properties(origin))


def _compute_conversion_hook(
    target: Any, source_type: type
) -> Callable[[Any], Any] | None:
    hook = getattr(origin_of(target), "__from_json__", None)
    if not callable(hook):
        return None

    try:
        params = list(inspect.signature(hook).parameters.values())
    except (TypeError, ValueError):
        return hook
    if not params:
        return None

    func = getattr(hook, "__func__", hook)
    try:
        hint = get_type_hints(func).get(params[0].name)
    except (NameError, TypeError):
        hint = None
    if hint is not None and not accepts(hint, source_type):
        return None
    return hook


def _compute_conversion_hook_for(key: tuple[Any, type]) -> Any:
    return _compute_conversion_hook(*key)


class TypeMetadataCache:
    """
    Thread-safe, insert-only cache of per-type metadata.

    A miss computes the metadata without holding a lock and then inserts
    it under a short-held lock; when two callers race, the first insert
    wins and the other result is dropped.
    """

    def __init__(self) -> None:
        self._array_shapes: dict[Any, ArrayShape] = {}
        self._array_lock = threading.Lock()
        self._object_shapes: dict[Any, ObjectShape] = {}
        self._object_lock = threading.Lock()
        self._properties: dict[Any, tuple[PropertyDescriptor, ...]] = {}
        self._properties_lock = threading.Lock()
        self._conversion_hooks: dict[tuple[Any, type], Any] = {}
        self._conversion_lock = threading.Lock()

    def array_shape_of(self, tp: Any) -> ArrayShape:
        return self._lookup(
            self._array_shapes, self._array_lock, tp, _compute_array_shape
        )

    def object_shape_of(self, tp: Any) -> ObjectShape:
        return self._lookup(
            self._object_shapes, self._object_lock, tp, _compute_object_shape
        )

    def properties_of(self, tp: Any) -> tuple[PropertyDescriptor, ...]:
        return self._lookup(
            self._properties, self._properties_lock, tp, _compute_properties
        )

    def conversion_hook_of(
        self, target: Any, source_type: type
    ) -> Callable[[Any], Any] | None:
        """Finds the target's ``__from_json__`` hook usable for ``source_type`` values."""
        return self._lookup(
            self._conversion_hooks,
            self._conversion_lock,
            (target, source_type),
            _compute_conversion_hook_for,
        )

    def _lookup(
        self,
        table: dict[Any, Any],
        lock: threading.Lock,
        key: Any,
        compute: Callable[[Any], Any],
    ) -> Any:
        found = table.get(key, _MISSING)
        if found is not _MISSING:
            return found

        computed = compute(key)
        with lock:
            found = table.setdefault(key, computed)
        if found is computed:
            logger.debug(f"Computed {compute.__name__} for {key!r}")
        return found


_metadata_cache: TypeMetadataCache | None = None
_metadata_cache_lock = threading.Lock()


def get_metadata_cache() -> TypeMetadataCache:
    """Returns the process-wide metadata cache, creating it on first use."""
    global _metadata_cache
    if _metadata_cache is None:
        with _metadata_cache_lock:
            if _metadata_cache is None:
                _metadata_cache = TypeMetadataCache()
    return _metadata_cache
