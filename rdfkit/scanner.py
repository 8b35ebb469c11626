"""Character scanner and lexical helpers shared by the text syntaxes."""

from __future__ import annotations

from typing import Iterable, NoReturn

from .errors import LexicalError, ParseError, RdfSyntaxError
from .iri import IRI_FORBIDDEN, validate_iri


class Scanner:
    """Stateful character scanner with line and column tracking."""
    def __init__(self, text: str, source: str):
        """Initialize scanner state for the provided source text."""
        self.text = text
        self.source = source
        self.i = 0
        self.line = 1
        self.col = 1

    def eof(self) -> bool:
        """Return `True` when the scanner reached the end of input."""
        return self.i >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        """Return the character at the current position plus an optional offset."""
        idx = self.i + offset
        if idx >= len(self.text):
            return ""
        return self.text[idx]

    def startswith(self, token: str) -> bool:
        """Return `True` if the remaining input starts with `token`."""
        return self.text.startswith(token, self.i)

    def advance(self) -> str:
        """Consume and return one character while updating line/column counters."""
        if self.eof():
            self.error("unexpected end of input")
        ch = self.text[self.i]
        self.i += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def consume(self, token: str) -> bool:
        """Consume `token` if present and return whether it matched."""
        if not self.startswith(token):
            return False
        for _ in token:
            self.advance()
        return True

    def expect(self, token: str, message: str | None = None) -> None:
        """Consume `token` or raise a parse error with a helpful message."""
        if not self.consume(token):
            self.error(message or f"expected '{token}'")

    def error(self, message: str, kind: type[ParseError] = RdfSyntaxError) -> NoReturn:
        """Raise a parse error of the given kind at the current scanner position."""
        raise kind(self.source, self.line, self.col, message)

    def lexical_error(self, message: str) -> NoReturn:
        """Raise `LexicalError` at the current scanner position."""
        self.error(message, LexicalError)


def is_space(ch: str) -> bool:
    """Return whether a character is RDF whitespace."""
    return ch != "" and ch in " \t\r\n"


def skip_ws_comments(scanner: Scanner) -> None:
    """Skip whitespace and `#` comments in the current scanner."""
    while not scanner.eof():
        ch = scanner.peek()
        if is_space(ch):
            scanner.advance()
            continue
        if ch == "#":
            while not scanner.eof() and scanner.peek() not in "\r\n":
                scanner.advance()
            continue
        break


def _in_ranges(cp: int, ranges: Iterable[tuple[int, int]]) -> bool:
    for lo, hi in ranges:
        if lo <= cp <= hi:
            return True
    return False


PN_BASE_RANGES = (
    (0x00C0, 0x00D6),
    (0x00D8, 0x00F6),
    (0x00F8, 0x02FF),
    (0x0370, 0x037D),
    (0x037F, 0x1FFF),
    (0x200C, 0x200D),
    (0x2070, 0x218F),
    (0x2C00, 0x2FEF),
    (0x3001, 0xD7FF),
    (0xF900, 0xFDCF),
    (0xFDF0, 0xFFFD),
    (0x10000, 0xEFFFF),
)


def is_pn_chars_base(ch: str) -> bool:
    """Return whether a character is a valid `PN_CHARS_BASE` code point."""
    if len(ch) != 1:
        return False
    if "A" <= ch <= "Z" or "a" <= ch <= "z":
        return True
    return _in_ranges(ord(ch), PN_BASE_RANGES)


def is_pn_chars_u(ch: str) -> bool:
    """Return whether a character is a valid `PN_CHARS_U` code point."""
    return ch == "_" or is_pn_chars_base(ch)


def is_pn_chars(ch: str) -> bool:
    """Return whether a character is a valid `PN_CHARS` code point."""
    if len(ch) != 1:
        return False
    if is_pn_chars_u(ch) or ch in "-0123456789":
        return True
    cp = ord(ch)
    return cp == 0x00B7 or 0x0300 <= cp <= 0x036F or 0x203F <= cp <= 0x2040


def is_hex(ch: str) -> bool:
    """Return whether a character is a hexadecimal digit."""
    return len(ch) == 1 and ch in "0123456789abcdefABCDEF"


def decode_uchar(scanner: Scanner) -> str:
    """Decode Unicode escapes."""
    def read_hex(count: int, escape: str) -> int:
        digits = []
        for _ in range(count):
            if not is_hex(scanner.peek()):
                scanner.lexical_error(f"invalid {escape} escape")
            digits.append(scanner.advance())
        return int("".join(digits), 16)

    if scanner.consume("\\u"):
        codepoint = read_hex(4, "\\u")
        if 0xD800 <= codepoint <= 0xDBFF:
            # Surrogate pair is allowed only when followed by another \\u low surrogate.
            if not scanner.consume("\\u"):
                scanner.lexical_error("high surrogate must be followed by low surrogate")
            low = read_hex(4, "\\u")
            if not (0xDC00 <= low <= 0xDFFF):
                scanner.lexical_error("invalid low surrogate in pair")
            return chr(0x10000 + ((codepoint - 0xD800) << 10) + (low - 0xDC00))
        if 0xDC00 <= codepoint <= 0xDFFF:
            scanner.lexical_error("lone low surrogate is not allowed")
        return chr(codepoint)
    if scanner.consume("\\U"):
        codepoint = read_hex(8, "\\U")
        if codepoint > 0x10FFFF:
            scanner.lexical_error("code point out of range")
        if 0xD800 <= codepoint <= 0xDFFF:
            scanner.lexical_error("surrogate code points are not allowed")
        return chr(codepoint)
    scanner.lexical_error("expected unicode escape")


ECHAR_MAP = {
    "t": "\t",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "f": "\f",
    '"': '"',
    "'": "'",
    "\\": "\\",
}


def decode_echar(scanner: Scanner) -> str:
    """Decode ECHAR escapes."""
    scanner.expect("\\", "expected escape")
    ch = scanner.peek()
    if ch == "" or ch not in ECHAR_MAP:
        scanner.lexical_error("invalid escape sequence")
    scanner.advance()
    return ECHAR_MAP[ch]


def decode_escape(scanner: Scanner) -> str:
    """Decode either a UCHAR or an ECHAR escape at the current position."""
    if scanner.startswith("\\u") or scanner.startswith("\\U"):
        return decode_uchar(scanner)
    return decode_echar(scanner)


def parse_iri_ref(scanner: Scanner, require_absolute: bool) -> str:
    """Parse IRI reference from the current input and return the result."""
    scanner.expect("<")
    chars: list[str] = []
    while True:
        if scanner.eof():
            scanner.lexical_error("unterminated IRI")
        ch = scanner.peek()
        if ch == ">":
            scanner.advance()
            iri = "".join(chars)
            try:
                validate_iri(iri, require_absolute=require_absolute, allow_empty=True)
            except ValueError as exc:
                scanner.lexical_error(str(exc))
            return iri
        if ch == "\\":
            uch = decode_uchar(scanner)
            if uch in IRI_FORBIDDEN or ord(uch) <= 0x20:
                scanner.lexical_error("invalid escaped character in IRI")
            chars.append(uch)
            continue
        if ch in IRI_FORBIDDEN:
            scanner.lexical_error("invalid character in IRI")
        if ord(ch) <= 0x20:
            scanner.lexical_error("invalid whitespace/control in IRI")
        chars.append(scanner.advance())


def parse_short_string(scanner: Scanner, quote: str) -> str:
    """Parse short string from the current input and return the result."""
    scanner.expect(quote)
    out: list[str] = []
    while True:
        if scanner.eof():
            scanner.lexical_error("unterminated string")
        ch = scanner.peek()
        if ch == quote:
            scanner.advance()
            return "".join(out)
        if ch in "\n\r":
            scanner.lexical_error("newline in short string literal")
        if ch == "\\":
            out.append(decode_escape(scanner))
            continue
        out.append(scanner.advance())


def parse_long_string(scanner: Scanner, quote: str) -> str:
    """Parse long string from the current input and return the result."""
    delim = quote * 3
    scanner.expect(delim)
    out: list[str] = []
    while True:
        if scanner.eof():
            scanner.lexical_error("unterminated long string")
        if scanner.startswith(delim):
            scanner.consume(delim)
            return "".join(out)
        if scanner.peek() == "\\":
            out.append(decode_escape(scanner))
            continue
        out.append(scanner.advance())


def parse_lang_tag(scanner: Scanner) -> str:
    """Parse a `@lang` suffix and return the lower-cased language tag."""
    scanner.expect("@")
    primary = []
    while scanner.peek().isascii() and scanner.peek().isalpha():
        primary.append(scanner.advance())
    if not primary:
        scanner.lexical_error("invalid language tag")
    if len(primary) > 8:
        scanner.lexical_error("language subtag too long")
    subtags: list[str] = []
    while scanner.peek() == "-":
        scanner.advance()
        segment = []
        while scanner.peek().isascii() and scanner.peek().isalnum():
            segment.append(scanner.advance())
        if not segment:
            scanner.lexical_error("empty language subtag")
        if len(segment) > 8:
            scanner.lexical_error("language subtag too long")
        subtags.append("".join(segment))
    return "-".join(["".join(primary), *subtags]).lower()


def parse_blank_node_label(scanner: Scanner) -> str:
    """Parse a `_:label` token and return the bare label."""
    scanner.expect("_:")
    if not (is_pn_chars_u(scanner.peek()) or "0" <= scanner.peek() <= "9"):
        scanner.lexical_error("invalid blank node label")
    chars = [scanner.advance()]
    while True:
        ch = scanner.peek()
        if is_pn_chars(ch):
            chars.append(scanner.advance())
            continue
        if ch == ".":
            nxt = scanner.peek(1)
            if nxt and (nxt == "." or is_pn_chars(nxt)):
                chars.append(scanner.advance())
                continue
        break
    return "".join(chars)


def is_blank_node_label(label: str) -> bool:
    """Return whether `label` can be written after ``_:`` in Turtle and N-Triples."""
    if not label or label[-1] == ".":
        return False
    if not (is_pn_chars_u(label[0]) or "0" <= label[0] <= "9"):
        return False
    return all(ch == "." or is_pn_chars(ch) for ch in label[1:])


def escape_string_value(value: str, ascii_only: bool = False) -> str:
    """Escape string value."""
    out: list[str] = []
    for ch in value:
        cp = ord(ch)
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\b":
            out.append("\\b")
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\f":
            out.append("\\f")
        elif cp < 0x20 or cp in (0x7F, 0xFFFE, 0xFFFF):
            out.append(f"\\u{cp:04X}")
        elif ascii_only and cp > 0x7E:
            if cp <= 0xFFFF:
                out.append(f"\\u{cp:04X}")
            else:
                out.append(f"\\U{cp:08X}")
        else:
            out.append(ch)
    return "".join(out)


def is_name_boundary(ch: str) -> bool:
    """Return whether a character terminates a Turtle/N-Triples keyword token."""
    if not ch:
        return True
    return is_space(ch) or ch in ";,.()[]{}<>\"'|#"


def is_keyword(scanner: Scanner, kw: str) -> bool:
    """Return whether the scanner is positioned at the exact keyword."""
    if not scanner.startswith(kw):
        return False
    return is_name_boundary(scanner.peek(len(kw)))


def is_keyword_ci(scanner: Scanner, kw: str, extra: str = "") -> bool:
    """Case-insensitive keyword match allowing additional boundary characters."""
    end = scanner.i + len(kw)
    if end > len(scanner.text):
        return False
    if scanner.text[scanner.i : end].lower() != kw.lower():
        return False
    nxt = scanner.peek(len(kw))
    return is_name_boundary(nxt) or (nxt != "" and nxt in extra)


def is_keyword_with_extra_boundary(scanner: Scanner, kw: str, extra: str) -> bool:
    """Return whether keyword matches and is followed by a standard or extra boundary."""
    if not scanner.startswith(kw):
        return False
    nxt = scanner.peek(len(kw))
    return is_name_boundary(nxt) or (nxt != "" and nxt in extra)
