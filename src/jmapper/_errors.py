"""Exception hierarchy shared by the reader, writer and mapper."""

from typing import Any
from typing import TypeAlias

Position: TypeAlias = int


class JsonException(ValueError):
    """Base class for every failure raised by jmapper."""


class JSONDecodeError(JsonException):
    """
    Handles JSON parsing failures with precise position and context information.

    Error state containing position, line/column numbers, and surrounding
    context to help users identify and fix JSON syntax issues.
    """

    def __init__(self, msg: str, doc: str = "", pos: Position = 0) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")
        if not isinstance(pos, int) or pos < 0:
            raise ValueError("pos must be a non-negative integer")

        self.msg = msg
        self.doc = doc
        self.pos = pos

        self.lineno = doc.count("\n", 0, pos) + 1 if doc else 1
        self.colno = pos - doc.rfind("\n", 0, pos) if doc else pos + 1

        super().__init__(f"{msg} at line {self.lineno}, column {self.colno}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.msg, self.doc, self.pos)


class UnassignableNullError(JsonException):
    """A JSON null was read into a type that cannot hold None."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(
            f"Can't assign null to an instance of type {_type_name(target)}"
        )


class UnconvertibleValueError(JsonException):
    """No importer bridges a scalar token to the requested type."""

    def __init__(self, value: Any, token: Any, target: Any) -> None:
        self.value = value
        self.token = token
        self.target = target
        super().__init__(
            f"Can't assign value {value!r} (token {token.name}, "
            f"type {type(value).__name__}) to type {_type_name(target)}"
        )


class UnsupportedArrayError(JsonException):
    """An array was read into a type that is neither a tuple nor a list."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(f"Type {_type_name(target)} can't act as an array")


class UnknownPropertyError(JsonException):
    """An object key has no matching member on a non-mapping type."""

    def __init__(self, target: Any, property_name: str) -> None:
        self.target = target
        self.property_name = property_name
        super().__init__(
            f"The type {_type_name(target)} doesn't have the "
            f"property '{property_name}'"
        )


class MaxDepthError(JsonException):
    """The nesting bound was crossed while reading or writing."""

    def __init__(self, action: str, target: Any, depth: int) -> None:
        self.target = target
        self.depth = depth
        super().__init__(
            f"Max allowed object depth reached while trying to {action} "
            f"type {_type_name(target)} (depth {depth})"
        )


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp)
