"""Error types raised while building terms, parsing and serializing RDF."""

from __future__ import annotations


class RdfError(ValueError):
    """Base class of every error raised by rdfkit."""


class StructuralError(RdfError):
    """Raised when a term, triple or quad would not be well-formed."""


class ParseError(RdfError):
    """Raised on deterministic syntax/semantic parse errors."""

    def __init__(
        self,
        source: str,
        line: int | None,
        column: int | None,
        message: str,
    ):
        """Initialize a parse error with source location details."""
        if line is None:
            super().__init__(f"{source}: {message}")
        else:
            super().__init__(f"{source}:{line}:{column}: {message}")
        self.source = source
        self.line = line
        self.column = column
        self.message = message


class LexicalError(ParseError):
    """Malformed token or escape sequence."""


class RdfSyntaxError(ParseError):
    """Grammar violation, such as an unclosed collection."""


class ResolutionError(ParseError):
    """IRI reference resolution failure or unresolved prefix."""


class RdfIoError(RdfError):
    """Failure of the underlying stream; the original error is the cause."""

    def __init__(self, source: str, error: OSError):
        super().__init__(f"{source}: {error}")
        self.source = source
        self.error = error
