"""
Event-level JSON reader.

Scans JSON text into lexemes and exposes the document one structural or
scalar event at a time, validating the grammar as it goes. The mapper
consumes these events to rebuild typed or dynamic values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import IO
from typing import Any

from ._errors import JSONDecodeError
from ._errors import Position
from ._profiling import ProfileContext

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
UINT64_MAX = 2**64 - 1

_DIGITS = "0123456789"
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_ESCAPE_MAP = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class JsonToken(Enum):
    """Kinds of events produced by JsonReader."""

    NONE = "none"
    OBJECT_START = "object_start"
    PROPERTY_NAME = "property_name"
    OBJECT_END = "object_end"
    ARRAY_START = "array_start"
    ARRAY_END = "array_end"
    INT = "int"
    LONG = "long"
    DOUBLE = "double"
    STRING = "string"
    BOOLEAN = "boolean"
    NULL = "null"


SCALAR_TOKENS = frozenset(
    {
        JsonToken.INT,
        JsonToken.LONG,
        JsonToken.DOUBLE,
        JsonToken.STRING,
        JsonToken.BOOLEAN,
    }
)


class LexemeType(Enum):
    """Lexical categories recognized by JsonLexer."""

    PUNCTUATION = "punctuation"
    STRING = "string"
    NUMBER = "number"
    LITERAL = "literal"


@dataclass(frozen=True)
class Lexeme:
    """
    Represents a raw lexeme with position information.

    String lexemes keep their surrounding quotes and escapes; decoding
    happens when the reader turns the lexeme into an event.
    """

    type: LexemeType
    value: str
    start: Position
    end: Position


class JsonLexer:
    """
    Tokenizes JSON input for the event reader.

    Character-by-character scanning of whitespace, strings, numbers,
    literals, and structural characters.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.length = len(text)

    def peek(self) -> str:
        """Returns current character without advancing."""
        return self.text[self.pos] if self.pos < self.length else "\0"

    def advance(self) -> str:
        """Returns current character and advances position."""
        char = self.peek()
        if self.pos < self.length:
            self.pos += 1
        return char

    def skip_whitespace(self) -> None:
        """Skips whitespace characters according to JSON spec."""
        while self.pos < self.length and self.text[self.pos] in " \t\n\r":
            self.pos += 1

    def scan_string(self) -> Lexeme:
        """Scans a JSON string lexeme including quotes."""
        start = self.pos
        if self.advance() != '"':
            raise JSONDecodeError("Expected string", self.text, start)

        while self.pos < self.length:
            char = self.advance()
            if char == '"':
                return Lexeme(
                    LexemeType.STRING,
                    self.text[start : self.pos],
                    start,
                    self.pos,
                )
            elif char == "\\":
                # Skip escaped character
                if self.pos < self.length:
                    self.advance()
            elif char < " ":
                raise JSONDecodeError(
                    "Invalid control character in string",
                    self.text,
                    self.pos - 1,
                )

        raise JSONDecodeError(
            "Unterminated string starting at", self.text, start
        )

    def _scan_integer_part(self, start: Position) -> None:
        """Scans the integer part of a JSON number."""
        if self.peek() not in _DIGITS:
            raise JSONDecodeError("Invalid number", self.text, start)

        if self.peek() == "0":
            self.advance()
            if self.peek() in _DIGITS:
                raise JSONDecodeError(
                    "Leading zeros not allowed", self.text, start
                )
        else:
            while self.peek() in _DIGITS:
                self.advance()

    def _scan_decimal_part(self, start: Position) -> None:
        """Scans the decimal part of a JSON number if present."""
        if self.peek() == ".":
            self.advance()
            if self.peek() not in _DIGITS:
                raise JSONDecodeError(
                    "Invalid decimal number", self.text, start
                )
            while self.peek() in _DIGITS:
                self.advance()

    def _scan_exponent_part(self, start: Position) -> None:
        """Scans the exponent part of a JSON number if present."""
        if self.peek() in "eE":
            self.advance()
            if self.peek() in "+-":
                self.advance()
            if self.peek() not in _DIGITS:
                raise JSONDecodeError("Invalid exponent", self.text, start)
            while self.peek() in _DIGITS:
                self.advance()

    def scan_number(self) -> Lexeme:
        """Scans a JSON number lexeme."""
        start = self.pos

        if self.peek() == "-":
            self.advance()

        self._scan_integer_part(start)
        self._scan_decimal_part(start)
        self._scan_exponent_part(start)

        return Lexeme(
            LexemeType.NUMBER, self.text[start : self.pos], start, self.pos
        )

    def scan_literal(self) -> Lexeme:
        """Scans literal lexemes: true, false, null."""
        start = self.pos

        for literal in ("true", "false", "null"):
            if self.text.startswith(literal, self.pos):
                self.pos += len(literal)
                return Lexeme(LexemeType.LITERAL, literal, start, self.pos)

        raise JSONDecodeError("Invalid literal", self.text, start)

    def next_token(self) -> Lexeme | None:
        """Returns the next lexeme or None if at end."""
        self.skip_whitespace()

        if self.pos >= self.length:
            return None

        char = self.peek()
        start = self.pos

        if char in "{}[],:":
            self.advance()
            return Lexeme(LexemeType.PUNCTUATION, char, start, self.pos)
        elif char == '"':
            return self.scan_string()
        elif char in _DIGITS or char == "-":
            return self.scan_number()
        elif char in "tfn":
            return self.scan_literal()
        else:
            raise JSONDecodeError("Expecting value", self.text, self.pos)


def _read_unicode_escape(inner: str, i: int, doc: str, start: int) -> int:
    """Reads the four hex digits of a \\uXXXX escape starting at inner[i]."""
    hex_digits = inner[i + 2 : i + 6]
    if len(hex_digits) != 4:
        raise JSONDecodeError(
            "Incomplete unicode escape sequence", doc, start + 1 + i
        )
    if not all(c in _HEX_DIGITS for c in hex_digits):
        raise JSONDecodeError(
            f"Invalid unicode escape sequence: \\u{hex_digits}",
            doc,
            start + 1 + i,
        )
    return int(hex_digits, 16)


def _process_escape_sequence(
    inner: str, i: int, doc: str, start: int
) -> tuple[str, int]:
    """Process a single escape sequence and return the character and new position."""
    next_char = inner[i + 1]

    if next_char in _ESCAPE_MAP:
        return _ESCAPE_MAP[next_char], i + 2
    elif next_char == "u":
        code_point = _read_unicode_escape(inner, i, doc, start)
        # High surrogate followed by an escaped low surrogate
        if 0xD800 <= code_point <= 0xDBFF and inner.startswith("\\u", i + 6):
            low = _read_unicode_escape(inner, i + 6, doc, start)
            if 0xDC00 <= low <= 0xDFFF:
                combined = 0x10000 + ((code_point - 0xD800) << 10) + (
                    low - 0xDC00
                )
                return chr(combined), i + 12
        return chr(code_point), i + 6
    else:
        raise JSONDecodeError(
            f"Invalid escape sequence: \\{next_char}", doc, start + 1 + i
        )


def decode_string(raw: str, doc: str = "", start: Position = 0) -> str:
    """Decodes a quoted JSON string lexeme, handling escape sequences."""
    with ProfileContext("decode_string"):
        inner = raw[1:-1]
        if "\\" not in inner:
            return inner

        result = []
        i = 0
        while i < len(inner):
            if inner[i] == "\\" and i + 1 < len(inner):
                char, i = _process_escape_sequence(inner, i, doc, start)
                result.append(char)
            else:
                result.append(inner[i])
                i += 1

        return "".join(result)


def decode_number(
    raw: str, doc: str = "", start: Position = 0
) -> tuple[JsonToken, int | float]:
    """
    Decodes a number lexeme into its event kind and value.

    Integers in signed 32-bit range are INT, integers up to the unsigned
    64-bit range are LONG, anything else is a DOUBLE.
    """
    try:
        if "." in raw or "e" in raw or "E" in raw:
            return JsonToken.DOUBLE, float(raw)

        number = int(raw)
        if INT32_MIN <= number <= INT32_MAX:
            return JsonToken.INT, number
        if INT64_MIN <= number <= UINT64_MAX:
            return JsonToken.LONG, number
        return JsonToken.DOUBLE, float(number)
    except (ValueError, OverflowError) as e:
        raise JSONDecodeError("Number too large", doc, start) from e


class _Expect(Enum):
    """What the reader accepts next."""

    VALUE = "value"
    FIRST_VALUE = "first_value"
    KEY = "key"
    FIRST_KEY = "first_key"
    COLON = "colon"
    SEPARATOR = "separator"
    END = "end"


class JsonReader:
    """
    State machine over JSON text producing one event per read().

    After read() returns True, `token` holds the event kind and `value`
    holds the scalar value or property name. Exactly one root value is
    accepted; anything after it is reported as extra data.
    """

    def __init__(self, source: str | IO[str]):
        if hasattr(source, "read"):
            text = source.read()
        else:
            text = source
        if not isinstance(text, str):
            raise TypeError(
                f"the JSON object must be str, not {type(text).__name__}"
            )
        if text.startswith("\ufeff"):
            raise JSONDecodeError(
                "JSON input should not contain BOM (Byte Order Mark)", text, 0
            )

        self.text = text
        self._lexer = JsonLexer(text)
        self._stack: list[str] = []
        self._expect = _Expect.VALUE
        self._comma_pos: Position = 0
        self._token = JsonToken.NONE
        self._value: Any = None
        self._end_of_input = False
        self._key_cache: dict[str, str] = {}

    @property
    def token(self) -> JsonToken:
        """Kind of the current event."""
        return self._token

    @property
    def value(self) -> Any:
        """Scalar value or property name of the current event."""
        return self._value

    @property
    def end_of_input(self) -> bool:
        return self._end_of_input

    @property
    def depth(self) -> int:
        """Number of containers currently open."""
        return len(self._stack)

    def read(self) -> bool:
        """Advances to the next event; returns False once input is exhausted."""
        if self._end_of_input:
            return False

        while True:
            lexeme = self._lexer.next_token()
            if lexeme is None:
                return self._finish()

            expect = self._expect
            if expect is _Expect.END:
                raise JSONDecodeError("Extra data", self.text, lexeme.start)

            if expect is _Expect.COLON:
                if not _is_punctuation(lexeme, ":"):
                    raise JSONDecodeError(
                        "Expecting ':' delimiter", self.text, lexeme.start
                    )
                self._expect = _Expect.VALUE
                continue

            if expect is _Expect.SEPARATOR:
                container = self._stack[-1]
                if _is_punctuation(lexeme, ","):
                    self._comma_pos = lexeme.start
                    self._expect = (
                        _Expect.VALUE if container == "[" else _Expect.KEY
                    )
                    continue
                if _is_punctuation(lexeme, "]") and container == "[":
                    return self._close(JsonToken.ARRAY_END)
                if _is_punctuation(lexeme, "}") and container == "{":
                    return self._close(JsonToken.OBJECT_END)
                raise JSONDecodeError(
                    "Expecting ',' delimiter", self.text, lexeme.start
                )

            if expect in (_Expect.KEY, _Expect.FIRST_KEY):
                return self._read_key(lexeme)

            if _is_punctuation(lexeme, "]"):
                if expect is _Expect.FIRST_VALUE:
                    return self._close(JsonToken.ARRAY_END)
                if self._stack:
                    raise JSONDecodeError(
                        "Illegal trailing comma before end of array",
                        self.text,
                        self._comma_pos,
                    )
            return self._read_value(lexeme)

    def _read_key(self, lexeme: Lexeme) -> bool:
        if lexeme.type is LexemeType.STRING:
            key = self._key_cache.get(lexeme.value)
            if key is None:
                key = decode_string(lexeme.value, self.text, lexeme.start)
                self._key_cache[lexeme.value] = key
            self._set(JsonToken.PROPERTY_NAME, key)
            self._expect = _Expect.COLON
            return True

        if _is_punctuation(lexeme, "}"):
            if self._expect is _Expect.FIRST_KEY:
                return self._close(JsonToken.OBJECT_END)
            raise JSONDecodeError(
                "Illegal trailing comma before end of object",
                self.text,
                self._comma_pos,
            )

        raise JSONDecodeError(
            "Expecting property name enclosed in double quotes",
            self.text,
            lexeme.start,
        )

    def _read_value(self, lexeme: Lexeme) -> bool:
        if lexeme.type is LexemeType.PUNCTUATION:
            if lexeme.value == "[":
                self._stack.append("[")
                self._expect = _Expect.FIRST_VALUE
                self._set(JsonToken.ARRAY_START, None)
                return True
            if lexeme.value == "{":
                self._stack.append("{")
                self._expect = _Expect.FIRST_KEY
                self._set(JsonToken.OBJECT_START, None)
                return True
            raise JSONDecodeError("Expecting value", self.text, lexeme.start)

        if lexeme.type is LexemeType.STRING:
            self._set(
                JsonToken.STRING,
                decode_string(lexeme.value, self.text, lexeme.start),
            )
        elif lexeme.type is LexemeType.NUMBER:
            self._set(*decode_number(lexeme.value, self.text, lexeme.start))
        elif lexeme.value == "null":
            self._set(JsonToken.NULL, None)
        else:
            self._set(JsonToken.BOOLEAN, lexeme.value == "true")

        self._after_value()
        return True

    def _close(self, token: JsonToken) -> bool:
        self._stack.pop()
        self._set(token, None)
        self._after_value()
        return True

    def _after_value(self) -> None:
        self._expect = _Expect.SEPARATOR if self._stack else _Expect.END

    def _finish(self) -> bool:
        if self._expect is not _Expect.END:
            if self._stack:
                kind = "array" if self._stack[-1] == "[" else "object"
                msg = f"Unterminated {kind}"
            else:
                msg = "Expecting value"
            raise JSONDecodeError(msg, self.text, len(self.text))

        self._end_of_input = True
        self._set(JsonToken.NONE, None)
        return False

    def _set(self, token: JsonToken, value: Any) -> None:
        self._token = token
        self._value = value


def _is_punctuation(lexeme: Lexeme, char: str) -> bool:
    return lexeme.type is LexemeType.PUNCTUATION and lexeme.value == char
