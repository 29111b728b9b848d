"""
Value writing tests.

Validates serialization of scalars, collections, mappings, enums, objects
and dynamic values, the configured formatting, and the nesting bound.
"""

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import IntEnum
from enum import IntFlag

import pytest

from jmapper import JsonData
from jmapper import JsonException
from jmapper import JsonMapper
from jmapper import JsonWriter
from jmapper import MapperConfig
from jmapper import MaxDepthError


class Color(Enum):
    RED = 1
    GREEN = 2


class Shape(Enum):
    CIRCLE = "circle"


class Wide(IntEnum):
    SMALL = 7
    NEGATIVE_SMALL = -7
    BIG = 2**40
    NEGATIVE = -(2**40)
    TOP = 2**64 - 1


class Permission(IntFlag):
    READ = 1
    WRITE = 2


class Tag(str):
    pass


class Count(int):
    pass


@dataclass
class Point:
    x: int = 0
    y: int = 0


@dataclass
class Labeled:
    label: str = ""
    point: Point = field(default_factory=Point)
    extra: JsonData | None = None


class Temperature:
    celsius: float

    def __init__(self, celsius: float) -> None:
        self.celsius = celsius

    @property
    def fahrenheit(self) -> float:
        return self.celsius * 9 / 5 + 32

    @property
    def _kelvin(self) -> float:
        return self.celsius + 273.15


class Partial:
    assigned: int
    missing: int

    def __init__(self) -> None:
        self.assigned = 1


class Slotted:
    __slots__ = ("left", "right")

    def __init__(self) -> None:
        self.left = 1
        self.right = "r"


class Node:
    value: int
    next: "Node | None"

    def __init__(self, value: int) -> None:
        self.value = value
        self.next = None


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (0, "0"),
        (-12, "-12"),
        (2**64, "18446744073709551616"),
        (1.5, "1.5"),
        (2.0, "2.0"),
        ("text", '"text"'),
        ("é\n", '"\\u00e9\\n"'),
        (Tag("t"), '"t"'),
        (Count(3), "3"),
    ],
)
def test_scalars(mapper: JsonMapper, value: object, expected: str) -> None:
    """
    Validates primitives and their subclasses are written directly.
    """
    assert mapper.to_json(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ([1, "a", None], '[1,"a",null]'),
        ((1, 2), "[1,2]"),
        ({3}, "[3]"),
        (frozenset(), "[]"),
        ([[], [[]]], "[[],[[]]]"),
        ({"a": {"b": []}}, '{"a":{"b":[]}}'),
        ({1: "a", 2.5: "b", False: "c"}, '{"1":"a","2.5":"b","false":"c"}'),
        ({Color.RED: 1, Shape.CIRCLE: 2}, '{"1":1,"circle":2}'),
    ],
)
def test_collections(mapper: JsonMapper, value: object, expected: str) -> None:
    """
    Validates sequences, sets and mappings, including key stringification.
    """
    assert mapper.to_json(value) == expected


def test_unsupported_mapping_key(mapper: JsonMapper) -> None:
    """
    Validates keys with no string form are rejected.
    """
    with pytest.raises(JsonException, match="keys must be strings, not tuple"):
        mapper.to_json({(1, 2): "pair"})


@pytest.mark.parametrize(
    "value,expected",
    [
        (Color.GREEN, "2"),
        (Shape.CIRCLE, '"circle"'),
        (Wide.SMALL, "7"),
        (Wide.NEGATIVE_SMALL, "-7"),
        (Wide.BIG, "1099511627776"),
        (Wide.NEGATIVE, "18446742974197923840"),
        (Wide.TOP, "18446744073709551615"),
        (Permission.READ | Permission.WRITE, "3"),
    ],
)
def test_enums(mapper: JsonMapper, value: Enum, expected: str) -> None:
    """
    Validates enums write their value, wide integers as unsigned 64-bit.
    """
    assert mapper.to_json(value) == expected


def test_objects(mapper: JsonMapper) -> None:
    """
    Validates objects write their public readable members in order.
    """
    assert mapper.to_json(Point(1, 2)) == '{"x":1,"y":2}'
    assert mapper.to_json(Temperature(10.0)) == (
        '{"celsius":10.0,"fahrenheit":50.0}'
    )
    assert mapper.to_json(Slotted()) == '{"left":1,"right":"r"}'


def test_unassigned_members_skipped(mapper: JsonMapper) -> None:
    """
    Validates declared but never assigned attributes are left out.
    """
    assert mapper.to_json(Partial()) == '{"assigned":1}'


def test_nested_objects_and_dynamic_values(mapper: JsonMapper) -> None:
    """
    Validates dynamic values embed as JSON inside objects.
    """
    value = Labeled("l", Point(3, 4), JsonData({"k": [True]}))

    assert mapper.to_json(value) == (
        '{"label":"l","point":{"x":3,"y":4},"extra":{"k":[true]}}'
    )


def test_caller_owned_writer(mapper: JsonMapper) -> None:
    """
    Validates values compose into a writer the caller controls.
    """
    writer = JsonWriter()
    writer.write_array_start()
    assert mapper.to_json(Point(1, 2), writer) is None
    mapper.to_json(JsonData([1]), writer)
    mapper.write_value(Color.RED, writer)
    writer.write_array_end()

    assert writer.getvalue() == '[{"x":1,"y":2},[1],1]'


def test_pretty_print() -> None:
    """
    Validates configured indentation applies to mapper output.
    """
    mapper = JsonMapper(MapperConfig(pretty_print=True, indent=2))

    assert mapper.to_json({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}'


def test_pretty_print_dynamic_values() -> None:
    """
    Validates embedded JsonData follows the configured indentation.
    """
    mapper = JsonMapper(MapperConfig(pretty_print=True, indent=2))

    result = mapper.to_json({"x": JsonData({"a": 1})})

    assert result == '{\n  "x": {\n    "a": 1\n  }\n}'
    assert mapper.to_json([JsonData([1])]) == mapper.to_json([[1]])


def test_non_ascii_output() -> None:
    """
    Validates ensure_ascii can be switched off.
    """
    mapper = JsonMapper(MapperConfig(ensure_ascii=False))

    assert mapper.to_json(["café"]) == '["café"]'


def test_non_ascii_dynamic_values() -> None:
    """
    Validates embedded JsonData honors ensure_ascii being switched off.
    """
    mapper = JsonMapper(MapperConfig(ensure_ascii=False))

    assert mapper.to_json([JsonData("é")]) == '["é"]'
    assert mapper.to_json({"k": JsonData({"v": "é"})}) == '{"k":{"v":"é"}}'


def test_non_finite_float(mapper: JsonMapper) -> None:
    """
    Validates NaN is refused rather than written as invalid JSON.
    """
    with pytest.raises(JsonException):
        mapper.to_json([float("nan")])


def test_self_referencing_list(mapper: JsonMapper) -> None:
    """
    Validates a list containing itself stops at the nesting bound.
    """
    loop: list[object] = []
    loop.append(loop)

    with pytest.raises(MaxDepthError, match="export from"):
        mapper.to_json(loop)


def test_self_referencing_object(mapper: JsonMapper) -> None:
    """
    Validates object cycles stop at the nesting bound, and the mapper stays usable.
    """
    node = Node(1)
    node.next = node

    with pytest.raises(MaxDepthError):
        mapper.to_json(node)

    assert mapper.to_json(Node(2)) == '{"value":2,"next":null}'


def test_depth_bound(shallow_mapper: JsonMapper) -> None:
    """
    Validates writing shares the read-side nesting bound.
    """
    assert shallow_mapper.to_json([[[[]]]]) == "[[[[]]]]"
    with pytest.raises(MaxDepthError):
        shallow_mapper.to_json([[[[[]]]]])
    with pytest.raises(MaxDepthError):
        shallow_mapper.to_json([[[[1]]]])


def test_round_trip(mapper: JsonMapper) -> None:
    """
    Validates dynamic documents survive a write and read cycle unchanged.
    """
    documents = [
        '{"a": 1, "b": [1, 2, 3]}',
        '[null, true, false, "s\\u0000", -0.5, 9223372036854775807]',
        '{"nested": {"deeper": [{"deepest": {}}]}}',
    ]
    for doc in documents:
        data = mapper.to_object(doc)
        assert mapper.to_object(mapper.to_json(data)) == data
