"""
Event-level JSON writer.

Accepts the same events JsonReader produces and emits JSON text, either
compact or indented, into a private buffer or a caller-owned text stream.
"""

import io
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import IO
from typing import Any

from ._errors import JsonException
from ._reader import INT64_MIN
from ._reader import UINT64_MAX

_ASCII_LIMIT = 127
_SHORT_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def encode_string(s: str, ensure_ascii: bool) -> str:
    """Encode string with proper escape sequences."""
    result = ['"']
    for char in s:
        escaped = _SHORT_ESCAPES.get(char)
        if escaped is not None:
            result.append(escaped)
            continue

        code_point = ord(char)
        if code_point < 0x20:
            result.append(f"\\u{code_point:04x}")
        elif ensure_ascii and code_point > _ASCII_LIMIT:
            if code_point > 0xFFFF:
                # Encode as a UTF-16 surrogate pair
                code_point -= 0x10000
                high = 0xD800 | (code_point >> 10)
                low = 0xDC00 | (code_point & 0x3FF)
                result.append(f"\\u{high:04x}\\u{low:04x}")
            else:
                result.append(f"\\u{code_point:04x}")
        else:
            result.append(char)
    result.append('"')
    return "".join(result)


def encode_double(n: float) -> str:
    """Encode a float with JSON compliance, always keeping a fraction or exponent."""
    if math.isnan(n) or math.isinf(n):
        msg = "Out of range float values are not JSON compliant"
        raise JsonException(msg)
    return repr(float(n))


@dataclass
class _WriterContext:
    """Bookkeeping for one open container (or the document root)."""

    in_array: bool = False
    in_object: bool = False
    count: int = 0
    expecting_value: bool = False


class JsonWriter:
    """
    Streaming JSON text writer with structural validation.

    Writes into an internal buffer unless a text stream is supplied.
    Misplaced events (a value where a property name is expected, a
    mismatched end, a second root value) raise JsonException.
    """

    def __init__(
        self,
        sink: IO[str] | None = None,
        *,
        pretty_print: bool = False,
        indent: int = 4,
        ensure_ascii: bool = True,
    ) -> None:
        if not isinstance(indent, int) or indent < 0:
            raise ValueError("indent must be a non-negative integer")

        self._owns_sink = sink is None
        self._sink: IO[str] = io.StringIO() if sink is None else sink
        self.pretty_print = pretty_print
        self.indent = indent
        self.ensure_ascii = ensure_ascii
        self._contexts: list[_WriterContext] = [_WriterContext()]
        self._has_reached_end = False

    @property
    def text_writer(self) -> IO[str]:
        """Raw text sink, for values that are already serialized."""
        return self._sink

    def reset(self) -> None:
        """Forgets all structural state and clears the private buffer."""
        self._contexts = [_WriterContext()]
        self._has_reached_end = False
        if self._owns_sink:
            self._sink = io.StringIO()

    def getvalue(self) -> str:
        """Returns the text accumulated in the private buffer."""
        if not self._owns_sink:
            raise JsonException(
                "JsonWriter writes to an external stream and keeps no text"
            )
        return self._sink.getvalue()  # type: ignore[attr-defined]

    def __str__(self) -> str:
        return self.getvalue()

    # Structure

    def write_array_start(self) -> None:
        self._begin_value()
        self._sink.write("[")
        self._contexts.append(_WriterContext(in_array=True))

    def write_array_end(self) -> None:
        context = self._contexts[-1]
        if not context.in_array:
            raise JsonException("Can't close an array here")
        self._close(context, "]")

    def write_object_start(self) -> None:
        self._begin_value()
        self._sink.write("{")
        self._contexts.append(_WriterContext(in_object=True))

    def write_object_end(self) -> None:
        context = self._contexts[-1]
        if not context.in_object or context.expecting_value:
            raise JsonException("Can't close an object here")
        self._close(context, "}")

    def write_property_name(self, name: str) -> None:
        """Writes an object key; the next event must be its value."""
        context = self._contexts[-1]
        if not context.in_object or context.expecting_value:
            raise JsonException("Can't write a property name here")
        if not isinstance(name, str):
            raise JsonException(
                f"keys must be strings, not {type(name).__name__}"
            )

        if context.count:
            self._sink.write(",")
        self._newline()
        self._sink.write(encode_string(name, self.ensure_ascii))
        self._sink.write(": " if self.pretty_print else ":")
        context.count += 1
        context.expecting_value = True

    # Scalars

    def write_null(self) -> None:
        self._write_scalar("null")

    def write_bool(self, value: bool) -> None:
        self._write_scalar("true" if value else "false")

    def write_string(self, value: str) -> None:
        self._write_scalar(encode_string(value, self.ensure_ascii))

    def write_double(self, value: float) -> None:
        self._write_scalar(encode_double(value))

    def write_int(self, value: int) -> None:
        self._write_scalar(str(int(value)))

    def write_long(self, value: int) -> None:
        value = int(value)
        if not INT64_MIN <= value <= UINT64_MAX:
            raise JsonException(f"Integer {value} is out of 64-bit range")
        self._write_scalar(str(value))

    def write_ulong(self, value: int) -> None:
        value = int(value)
        if not 0 <= value <= UINT64_MAX:
            raise JsonException(
                f"Integer {value} is out of unsigned 64-bit range"
            )
        self._write_scalar(str(value))

    def write_decimal(self, value: Decimal) -> None:
        if not value.is_finite():
            raise JsonException(
                "Out of range decimal values are not JSON compliant"
            )
        self._write_scalar(str(value))

    def write(self, value: Any) -> None:  # noqa: PLR0911
        """Writes a scalar, dispatching on its Python type."""
        if value is None:
            self.write_null()
        elif isinstance(value, bool):
            self.write_bool(value)
        elif isinstance(value, int):
            self.write_int(value)
        elif isinstance(value, float):
            self.write_double(value)
        elif isinstance(value, Decimal):
            self.write_decimal(value)
        elif isinstance(value, str):
            self.write_string(value)
        else:
            msg = f"Object of type {type(value).__name__} is not a JSON scalar"
            raise JsonException(msg)

    def write_raw(self, text: str) -> None:
        """Writes pre-rendered JSON text as one complete value."""
        self._write_scalar(text)

    # Internals

    def _write_scalar(self, text: str) -> None:
        self._begin_value()
        self._sink.write(text)
        self._end_value()

    def _begin_value(self) -> None:
        context = self._contexts[-1]
        if context.in_array:
            if context.count:
                self._sink.write(",")
            self._newline()
            context.count += 1
        elif context.in_object:
            if not context.expecting_value:
                raise JsonException(
                    "Can't write a value here, expecting a property name"
                )
            context.expecting_value = False
        elif self._has_reached_end:
            raise JsonException("A complete JSON symbol has already been written")

    def _end_value(self) -> None:
        if len(self._contexts) == 1:
            self._has_reached_end = True

    def _close(self, context: _WriterContext, char: str) -> None:
        self._contexts.pop()
        if context.count:
            self._newline()
        self._sink.write(char)
        self._end_value()

    def _newline(self) -> None:
        if not self.pretty_print:
            return
        level = len(self._contexts) - 1
        self._sink.write("\n" + " " * (self.indent * level))
