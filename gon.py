"""
GON (Glaiel Object Notation) - Parser

A small, zero-dependency parser for GON configuration text. GON reads like
JSON with the ceremony removed: bare tokens instead of quoted strings,
optional outer braces, optional ':' and ',' separators, '#' line comments.
Valid JSON is valid GON.

Usage:
    import gon

    # Load from string
    data = gon.loads('''
    big_factory {
        location "New York City"   # quotes keep the spaces
        whirly_widgets 8346
    }
    weekdays [Monday Tuesday Wednesday]
    ''')
    data["big_factory"]["whirly_widgets"].get(int)   # 8346
    data["weekdays"][2].as_str()                     # 'Wednesday'

    # Load from file
    with open('factories.gon', 'r') as f:
        data = gon.load(f)

Values are kept as the exact decoded strings; interpreting them is left to
`Gon.get()` and `from_gon()`.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, TextIO, Tuple

__all__ = [
    'load', 'loads', 'parse', 'from_gon', 'expect_value', 'expect_array', 'expect_object',
    'Gon', 'GonObject', 'GonArray', 'GonValue',
    'FromGon', 'ListOf', 'ArrayOf', 'MapOf',
    'ErrorKind', 'GonError', 'LexerError', 'ParseError', 'GetError', 'ConversionError',
]

log = logging.getLogger('gon')

WHITESPACE = ' \t\n\r'
STRUCTURAL = '{}[]:,'
COMMENT = '#'
ESCAPES = {
    '"': '"', '\\': '\\', '/': '/',
    'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t',
}
DEPTH_LIMIT_DEFAULT = 200

# ==========================================
# Errors
# ==========================================

class ErrorKind(Enum):
    # Structure
    STRING_EXPECTED = auto()
    QUOTE_EXPECTED = auto()
    CLOSING_BRACE_EXPECTED = auto()
    CLOSING_BRACKET_EXPECTED = auto()
    VALUE_EXPECTED = auto()
    END_OF_FILE_EXPECTED = auto()
    DEPTH_EXCEEDED = auto()
    DUPLICATE_KEY = auto()

    # Characters & escapes
    UNEXPECTED_CHARACTER = auto()
    UNEXPECTED_ESCAPE_CHARACTER = auto()
    ESCAPE_CHARACTER_EXPECTED = auto()
    HEX_ESCAPE_UNSUPPORTED = auto()

    # Tree access
    UNEXPECTED_OBJECT = auto()
    UNEXPECTED_ARRAY = auto()
    UNEXPECTED_VALUE = auto()
    MISSING_KEY = auto()
    INDEX_OUT_OF_BOUNDS = auto()

    # Conversion
    EXPECTED_VALUE = auto()
    EXPECTED_ARRAY = auto()
    EXPECTED_OBJECT = auto()
    PARSE_INT = auto()
    PARSE_FLOAT = auto()
    PARSE_BOOL = auto()
    MISSING = auto()
    INVALID_LENGTH = auto()
    INVALID_VARIANT = auto()

class GonError(Exception):
    """Base class for everything this module raises."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

class LexerError(GonError):
    def __init__(self, kind: ErrorKind, message: str, line: int = 0, col: int = 0,
                 char: Optional[str] = None):
        super().__init__(kind, f"Lexer error at {line}:{col}: {message}")
        self.line = line
        self.col = col
        self.char = char

class ParseError(GonError):
    def __init__(self, kind: ErrorKind, message: str, line: int = 0, col: int = 0,
                 key: Optional[str] = None):
        super().__init__(kind, f"Parse error at {line}:{col}: {message}")
        self.line = line
        self.col = col
        self.key = key

class GetError(GonError):
    """Raised by tree lookups on a node of the wrong shape or a missing key/index."""

class ConversionError(GonError):
    def __init__(self, kind: ErrorKind, message: str, key: Optional[str] = None,
                 expected: Optional[int] = None, found: Optional[int] = None):
        super().__init__(kind, message)
        self.key = key
        self.expected = expected
        self.found = found

# ==========================================
# Tree
# ==========================================

class Gon:
    """A parsed GON node: exactly one of GonObject, GonArray or GonValue.

    Nodes are immutable. Lookups that don't fit the node's shape raise
    GetError with UNEXPECTED_OBJECT, UNEXPECTED_ARRAY or UNEXPECTED_VALUE.
    """

    _kind_name = 'node'
    _unexpected = ErrorKind.UNEXPECTED_VALUE

    def _mismatch(self, action: str) -> GetError:
        return GetError(self._unexpected, f"Tried to {action} GON {self._kind_name}")

    def __getitem__(self, index):
        raise self._mismatch('index into')

    def as_str(self) -> str:
        raise self._mismatch('get as str a')

    def get(self, target: Any = str) -> Any:
        """Convert a value node with `from_gon(target, node)`."""
        raise self._mismatch('get as value a')

    def unwrap(self) -> Any:
        """Return the tree as plain dicts, lists and strings."""
        raise NotImplementedError

@dataclass(frozen=True)
class GonObject(Gon):
    entries: Mapping[str, Gon]

    _kind_name = 'object'
    _unexpected = ErrorKind.UNEXPECTED_OBJECT

    def __post_init__(self):
        object.__setattr__(self, 'entries', MappingProxyType(dict(self.entries)))

    def __hash__(self) -> int:
        return hash(frozenset(self.entries.items()))

    def __getitem__(self, key: str) -> Gon:
        if not isinstance(key, str):
            raise self._mismatch('int-index into')
        try:
            return self.entries[key]
        except KeyError:
            raise GetError(ErrorKind.MISSING_KEY, f"Key '{key}' not found in GON object") from None

    def __contains__(self, key) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def keys(self):
        return self.entries.keys()

    def values(self):
        return self.entries.values()

    def items(self):
        return self.entries.items()

    def field(self, name: str, target: Any = Gon) -> Any:
        """Convert the entry `name`, raising ConversionError(MISSING) if it is absent."""
        if name not in self.entries:
            raise ConversionError(ErrorKind.MISSING, f"Missing field '{name}'", key=name)
        return from_gon(target, self.entries[name])

    def unwrap(self) -> Dict[str, Any]:
        return {key: value.unwrap() for key, value in self.entries.items()}

@dataclass(frozen=True)
class GonArray(Gon):
    items: Tuple[Gon, ...]

    _kind_name = 'array'
    _unexpected = ErrorKind.UNEXPECTED_ARRAY

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))

    def __getitem__(self, index: int) -> Gon:
        if isinstance(index, str):
            raise self._mismatch('string-index into')
        if not isinstance(index, int) or isinstance(index, bool):
            raise self._mismatch(f'{type(index).__name__}-index into')
        if not 0 <= index < len(self.items):
            raise GetError(ErrorKind.INDEX_OUT_OF_BOUNDS,
                           f"Index {index} out of bounds for GON array of length {len(self.items)}")
        return self.items[index]

    def __iter__(self) -> Iterator[Gon]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def unpack(self, *targets: Any) -> Tuple[Any, ...]:
        """Convert each element with the matching target; the lengths must agree."""
        if len(self.items) != len(targets):
            raise ConversionError(ErrorKind.INVALID_LENGTH,
                                  f"Expected array of length {len(targets)}, found {len(self.items)}",
                                  expected=len(targets), found=len(self.items))
        return tuple(from_gon(target, item) for target, item in zip(targets, self.items))

    def unwrap(self) -> list:
        return [item.unwrap() for item in self.items]

@dataclass(frozen=True)
class GonValue(Gon):
    text: str

    _kind_name = 'value'
    _unexpected = ErrorKind.UNEXPECTED_VALUE

    def as_str(self) -> str:
        return self.text

    def get(self, target: Any = str) -> Any:
        return from_gon(target, self)

    def unwrap(self) -> str:
        return self.text

# ==========================================
# Cursor
# ==========================================

class _Cursor:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.length = len(source)

    def peek(self) -> Optional[str]:
        if self.pos >= self.length:
            return None
        return self.source[self.pos]

    def advance(self) -> Optional[str]:
        if self.pos >= self.length:
            return None
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

# ==========================================
# Parser
# ==========================================

class _GonParser:
    def __init__(self, source: str, max_depth: int = DEPTH_LIMIT_DEFAULT):
        if source.startswith('\ufeff'):
            source = source[1:]
        self.source = source
        self.max_depth = max_depth
        self.reset()

    def reset(self):
        self.cursor = _Cursor(self.source)
        self.depth = 0

    def parse_error(self, kind: ErrorKind, message: str, key: Optional[str] = None,
                    at: Optional[Tuple[int, int]] = None):
        line, col = at or (self.cursor.line, self.cursor.col)
        raise ParseError(kind, message, line, col, key=key)

    def lex_error(self, kind: ErrorKind, message: str, char: Optional[str] = None):
        raise LexerError(kind, message, self.cursor.line, self.cursor.col, char=char)

    def unexpected(self, ch: str):
        self.lex_error(ErrorKind.UNEXPECTED_CHARACTER, f"Unexpected character: {ch!r}", char=ch)

    def enter(self):
        self.depth += 1
        if self.depth > self.max_depth:
            self.parse_error(ErrorKind.DEPTH_EXCEEDED, f"Nesting deeper than {self.max_depth} levels")

    def leave(self):
        self.depth -= 1

    # --- whitespace & comments ---

    def skip_line_comment(self):
        while True:
            ch = self.cursor.advance()
            if ch is None or ch == '\n':
                return

    def skip_whitespace(self):
        while True:
            ch = self.cursor.peek()
            if ch is None:
                return
            if ch in WHITESPACE:
                self.cursor.advance()
            elif ch == COMMENT:
                self.skip_line_comment()
            else:
                return

    def skip_whitespace_and_token(self, token: str) -> bool:
        """Skip whitespace around one optional `token`; return whether it was there."""
        self.skip_whitespace()
        skipped = self.cursor.peek() == token
        if skipped:
            self.cursor.advance()
        self.skip_whitespace()
        return skipped

    # --- strings ---

    def read_escape(self) -> str:
        ch = self.cursor.advance()
        if ch is None: self.lex_error(ErrorKind.ESCAPE_CHARACTER_EXPECTED, "Incomplete escape sequence")
        if ch in ESCAPES: return ESCAPES[ch]
        if ch == 'u': self.lex_error(ErrorKind.HEX_ESCAPE_UNSUPPORTED, "Unicode escapes (\\u) are not supported")
        self.lex_error(ErrorKind.UNEXPECTED_ESCAPE_CHARACTER, f"Invalid escape sequence: \\{ch}", char=ch)

    def read_string(self) -> str:
        ch = self.cursor.peek()
        if ch is None:
            self.parse_error(ErrorKind.STRING_EXPECTED, "String expected")
        if ch == '"':
            return self.read_quoted_string()
        return self.read_bare_string()

    def read_quoted_string(self) -> str:
        start = (self.cursor.line, self.cursor.col)
        self.cursor.advance()
        content = []
        while True:
            ch = self.cursor.advance()
            if ch is None:
                self.parse_error(ErrorKind.QUOTE_EXPECTED,
                                 f"Unterminated string (started at {start[0]}:{start[1]})")
            if ch == '"':
                break
            content.append(self.read_escape() if ch == '\\' else ch)
        return ''.join(content)

    def read_bare_string(self) -> str:
        # '#' is only a comment at a token boundary, so here it is plain text
        content = []
        while True:
            ch = self.cursor.peek()
            if ch is None or ch in WHITESPACE or ch in STRUCTURAL:
                break
            self.cursor.advance()
            content.append(self.read_escape() if ch == '\\' else ch)
        return ''.join(content)

    # --- values ---

    def parse_value(self) -> Gon:
        ch = self.cursor.peek()
        if ch is None:
            self.parse_error(ErrorKind.VALUE_EXPECTED, "Value expected")
        if ch == '{':
            return self.parse_braced_object()
        if ch == '[':
            return self.parse_array()
        return GonValue(self.read_string())

    def parse_braced_object(self) -> GonObject:
        start = (self.cursor.line, self.cursor.col)
        self.cursor.advance()
        self.enter()
        self.skip_whitespace()
        obj = self.parse_object_body()
        if self.cursor.advance() != '}':
            self.parse_error(ErrorKind.CLOSING_BRACE_EXPECTED,
                             f"Unclosed object (opened at {start[0]}:{start[1]})")
        self.leave()
        return obj

    def parse_object_body(self) -> GonObject:
        """Parse entries up to (not including) a '}' or the end of input."""
        entries = {}
        while self.cursor.peek() not in ('}', None):
            at = (self.cursor.line, self.cursor.col)
            key = self.read_string()
            self.skip_whitespace_and_token(':')
            value = self.parse_value()
            if key in entries:
                self.parse_error(ErrorKind.DUPLICATE_KEY, f"Duplicate key '{key}'", key=key, at=at)
            entries[key] = value
            self.skip_whitespace_and_token(',')
        return GonObject(entries)

    def parse_array(self) -> GonArray:
        start = (self.cursor.line, self.cursor.col)
        self.cursor.advance()
        self.enter()
        self.skip_whitespace()
        items = []
        while True:
            ch = self.cursor.peek()
            if ch == ']':
                self.cursor.advance()
                break
            if ch is None:
                self.parse_error(ErrorKind.CLOSING_BRACKET_EXPECTED,
                                 f"Unclosed array (opened at {start[0]}:{start[1]})")
            # neither the empty token nor the optional ',' would consume these
            if ch in '}:':
                self.unexpected(ch)
            items.append(self.parse_value())
            self.skip_whitespace_and_token(',')
        self.leave()
        return GonArray(tuple(items))

    # --- document ---

    def parse(self) -> Gon:
        self.skip_whitespace()

        if self.cursor.peek() in ('{', '['):
            root = self.parse_value()
        else:
            # Outer braces are optional, so "key value ..." is an object. A lone
            # scalar only shows up as a key with no value after it.
            try:
                root = self.parse_object_body()
            except ParseError as exc:
                if exc.kind is not ErrorKind.VALUE_EXPECTED:
                    raise
                log.debug("Falling back to parsing a single value: %r", self.source)
                self.reset()
                self.skip_whitespace()
                root = self.parse_value()

        self.skip_whitespace()
        if self.cursor.peek() is not None:
            self.parse_error(ErrorKind.END_OF_FILE_EXPECTED, "End of file expected")
        return root

# ==========================================
# Conversion
# ==========================================

class FromGon:
    """Interface for types that build themselves from a GON node.

    Implement `from_gon` as a classmethod and read fields explicitly:

        class Example(FromGon):
            @classmethod
            def from_gon(cls, gon):
                obj = expect_object(gon)
                return cls(a=obj.field('a', int), b=obj.field('b', Kind))
    """

    @classmethod
    def from_gon(cls, gon: Gon):
        raise NotImplementedError

def expect_value(gon: Gon) -> str:
    if not isinstance(gon, GonValue):
        raise ConversionError(ErrorKind.EXPECTED_VALUE, f"Expected GON value, got {gon._kind_name}")
    return gon.text

def expect_array(gon: Gon) -> GonArray:
    if not isinstance(gon, GonArray):
        raise ConversionError(ErrorKind.EXPECTED_ARRAY, f"Expected GON array, got {gon._kind_name}")
    return gon

def expect_object(gon: Gon) -> GonObject:
    if not isinstance(gon, GonObject):
        raise ConversionError(ErrorKind.EXPECTED_OBJECT, f"Expected GON object, got {gon._kind_name}")
    return gon

def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise ConversionError(ErrorKind.PARSE_INT, f"Invalid integer: {text!r}") from exc

def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise ConversionError(ErrorKind.PARSE_FLOAT, f"Invalid float: {text!r}") from exc

def _to_bool(text: str) -> bool:
    if text == 'true': return True
    if text == 'false': return False
    raise ConversionError(ErrorKind.PARSE_BOOL, f"Invalid boolean: {text!r}")

_SCALARS = {int: _to_int, float: _to_float, bool: _to_bool, str: str}

@dataclass(frozen=True)
class ListOf:
    """Growable sequence: any GON array, each element converted to `target`."""
    target: Any

    def from_gon(self, gon: Gon) -> list:
        return [from_gon(self.target, item) for item in expect_array(gon)]

@dataclass(frozen=True)
class ArrayOf:
    """Fixed-size sequence: a GON array of exactly `length` elements."""
    target: Any
    length: int

    def from_gon(self, gon: Gon) -> tuple:
        return expect_array(gon).unpack(*([self.target] * self.length))

@dataclass(frozen=True)
class MapOf:
    """String-keyed mapping: any GON object, each value converted to `target`."""
    target: Any

    def from_gon(self, gon: Gon) -> dict:
        return {key: from_gon(self.target, value) for key, value in expect_object(gon).items()}

def _variant(enum_type, gon: Gon):
    text = expect_value(gon)
    try:
        return enum_type[text]
    except KeyError:
        raise ConversionError(ErrorKind.INVALID_VARIANT,
                              f"{text!r} is not a variant of {enum_type.__name__}") from None

def from_gon(target: Any, gon: Gon) -> Any:
    """Convert `gon` into `target`.

    `target` is one of: `Gon` (returned as is), `int`, `float`, `bool`, `str`,
    an `Enum` subclass (matched by member name), `ListOf`/`ArrayOf`/`MapOf`,
    or anything with a `from_gon` method such as a `FromGon` subclass.
    """
    if target is Gon:
        return gon
    convert = getattr(target, 'from_gon', None)
    if convert is not None:
        return convert(gon)
    if isinstance(target, type) and issubclass(target, Enum):
        return _variant(target, gon)
    if target in _SCALARS:
        return _SCALARS[target](expect_value(gon))
    raise TypeError(f"No GON conversion for {target!r}")

# ==========================================
# Public API
# ==========================================

def loads(source: str, *, max_depth: int = DEPTH_LIMIT_DEFAULT) -> Gon:
    """Parse GON source string."""
    return _GonParser(source, max_depth).parse()

def load(fp: TextIO, *, max_depth: int = DEPTH_LIMIT_DEFAULT) -> Gon:
    """Parse GON from a file-like object."""
    return loads(fp.read(), max_depth=max_depth)

parse = loads
