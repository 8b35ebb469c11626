"""N-Triples and N-Quads: parsers, the shared text parser base, and line serializers."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Iterator, TextIO

from .bnodes import BlankNodeScope
from .errors import StructuralError
from .iri import encode_iri_ref
from .scanner import (
    Scanner,
    is_space,
    parse_blank_node_label,
    parse_iri_ref,
    parse_lang_tag,
    parse_short_string,
    skip_ws_comments,
)
from .stream import Source
from .terms import BlankNode, GraphName, Iri, Literal, Node, Subject, format_node_nt
from .triples import Quad, Triple

logger = logging.getLogger(__name__)


class BaseParser:
    """Shared parser utilities used by the N-Triples and Turtle parsers.

    Subclasses implement :meth:`parse_next`, which consumes one statement or
    directive. Statements are parsed lazily as items are pulled; the items a
    statement emits are queued and handed out once the statement is complete.
    """

    emits_quads = False

    def __init__(self, text: str, source: str = "<string>", scope: BlankNodeScope | None = None):
        """Initialize the `BaseParser` instance."""
        self.scanner = Scanner(text, source)
        self.scope = scope if scope is not None else BlankNodeScope()
        self._pending: deque[Triple | Quad] = deque()
        self._current_graph: GraphName | None = None

    def new_bnode(self) -> BlankNode:
        """Create a fresh anonymous blank node in the document scope."""
        return self.scope.fresh()

    def emit(self, subject: Subject, predicate: Iri, obj: Node) -> None:
        """Queue one triple (or quad, for dataset syntaxes) for output."""
        if self.emits_quads:
            self._pending.append(Quad(subject, predicate, obj, self._current_graph))
        else:
            self._pending.append(Triple(subject, predicate, obj))

    def parse_next(self) -> bool:
        """Parse one statement or directive; return False at end of input."""
        raise NotImplementedError

    def __iter__(self) -> Iterator[Triple | Quad]:
        logger.debug("parsing %s with %s", self.scanner.source, type(self).__name__)
        produced = 0
        while True:
            while self._pending:
                produced += 1
                yield self._pending.popleft()
            if not self.parse_next():
                break
        while self._pending:
            produced += 1
            yield self._pending.popleft()
        logger.debug("parsed %d statements from %s", produced, self.scanner.source)

    def source(self) -> Source:
        """Return a streaming source over the parsed items."""
        return Source(iter(self), name=self.scanner.source)

    def parse(self) -> list[Triple | Quad]:
        """Parse the whole document and return the parsed items."""
        return list(self)

    def parse_blank_node(self) -> BlankNode:
        """Parse a `_:label` blank node and map it through the document scope."""
        return self.scope.fresh_or_lookup(parse_blank_node_label(self.scanner))

    def make_literal(self, value: str, datatype: str | None = None, language: str | None = None) -> Literal:
        """Build a literal, reporting structural problems at the current position."""
        try:
            return Literal(value, datatype, language)
        except StructuralError as exc:
            raise StructuralError(
                f"{self.scanner.source}:{self.scanner.line}:{self.scanner.col}: {exc}"
            ) from exc


class NTriplesParser(BaseParser):
    """Parser for N-Triples: absolute IRIs, no prefixes, one statement per line."""

    def parse_next(self) -> bool:
        skip_ws_comments(self.scanner)
        if self.scanner.eof():
            return False
        self.parse_statement()
        return True

    def parse_statement(self) -> None:
        """Parse statement from the current input and return the result."""
        subject = self.parse_subject()
        self.skip_inline_space()
        predicate = self.parse_predicate()
        self.skip_inline_space()
        obj = self.parse_object()
        self.skip_inline_space()
        graph = self.parse_graph_name_if_present()
        self.skip_inline_space()
        self.scanner.expect(".", "expected '.' to end statement")
        self.expect_end_of_line()

        previous_graph = self._current_graph
        self._current_graph = graph
        try:
            self.emit(subject, predicate, obj)
        finally:
            self._current_graph = previous_graph

    def parse_graph_name_if_present(self) -> GraphName | None:
        if self.scanner.peek() in ("<", "_"):
            self.scanner.error("N-Triples statements cannot have a graph label")
        return None

    def skip_inline_space(self) -> None:
        while self.scanner.peek() in (" ", "\t"):
            self.scanner.advance()

    def expect_end_of_line(self) -> None:
        """Allow only blanks and a comment between the final '.' and the end of line."""
        self.skip_inline_space()
        if self.scanner.peek() == "#":
            while not self.scanner.eof() and self.scanner.peek() not in "\r\n":
                self.scanner.advance()
        if not self.scanner.eof() and self.scanner.peek() not in "\r\n":
            self.scanner.error("expected end of line after statement")

    def parse_subject(self) -> Subject:
        """Parse subject from the current input and return the result."""
        if self.scanner.peek() == "<":
            return Iri(parse_iri_ref(self.scanner, require_absolute=True))
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()
        self.scanner.error("subject must be IRI or blank node")

    def parse_predicate(self) -> Iri:
        """Parse predicate from the current input and return the result."""
        if self.scanner.peek() != "<":
            self.scanner.error("predicate must be IRI")
        return Iri(parse_iri_ref(self.scanner, require_absolute=True))

    def parse_object(self) -> Node:
        """Parse object from the current input and return the result."""
        ch = self.scanner.peek()
        if ch == "<":
            return Iri(parse_iri_ref(self.scanner, require_absolute=True))
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()
        if ch == '"':
            return self.parse_literal()
        self.scanner.error("invalid object")

    def parse_literal(self) -> Literal:
        """Parse literal from the current input and return the result."""
        value = parse_short_string(self.scanner, '"')
        language = None
        datatype = None
        while is_space(self.scanner.peek()) and self.scanner.peek() not in "\r\n":
            self.scanner.advance()
        if self.scanner.consume("^^"):
            self.skip_inline_space()
            datatype = parse_iri_ref(self.scanner, require_absolute=True)
        elif self.scanner.peek() == "@":
            language = parse_lang_tag(self.scanner)
        return self.make_literal(value, datatype, language)


class NQuadsParser(NTriplesParser):
    """Parser for N-Quads: N-Triples plus an optional graph label."""

    emits_quads = True

    def parse_graph_name_if_present(self) -> GraphName | None:
        if self.scanner.peek() == "<":
            return Iri(parse_iri_ref(self.scanner, require_absolute=True))
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()
        return None


def parse_ntriples(
    text: str, source: str = "<string>", scope: BlankNodeScope | None = None
) -> Source[Triple]:
    """Parse N-Triples text into a streaming source of triples."""
    return NTriplesParser(text, source=source, scope=scope).source()


def parse_nquads(
    text: str, source: str = "<string>", scope: BlankNodeScope | None = None
) -> Source[Quad]:
    """Parse N-Quads text into a streaming source of quads."""
    return NQuadsParser(text, source=source, scope=scope).source()


def format_graph_label_nt(graph_label: GraphName, ascii_only: bool = False) -> str:
    """Format an RDF graph label using N-Quads syntax."""
    if isinstance(graph_label, Iri):
        return encode_iri_ref(graph_label.value, ascii_only)
    if isinstance(graph_label, BlankNode):
        return f"_:{graph_label.label}"
    raise TypeError(f"invalid graph label type for N-Quads: {type(graph_label)!r}")


def format_statement_nt(item: Triple | Quad, ascii_only: bool = False) -> str:
    """Format the triple part of a statement as one N-Triples line (without newline)."""
    s = format_node_nt(item.subject, ascii_only)
    p = format_node_nt(item.predicate, ascii_only)
    o = format_node_nt(item.object, ascii_only)
    return f"{s} {p} {o} ."


def iter_ntriples_lines(items: Iterable[Triple | Quad], ascii_only: bool = False) -> Iterator[str]:
    """Yield one N-Triples line per triple; quads must be in the default graph."""
    for item in items:
        if isinstance(item, Quad) and item.graph is not None:
            raise StructuralError(
                "cannot serialize named graphs to N-Triples; dataset contains non-default graph statements"
            )
        yield format_statement_nt(item, ascii_only) + "\n"


def iter_nquads_lines(items: Iterable[Triple | Quad], ascii_only: bool = False) -> Iterator[str]:
    """Yield one N-Quads line per statement; triples go to the default graph."""
    for item in items:
        line = format_statement_nt(item, ascii_only)
        if isinstance(item, Quad) and item.graph is not None:
            line = f"{line[:-2]} {format_graph_label_nt(item.graph, ascii_only)} ."
        yield line + "\n"


def write_lines(lines: Iterable[str], out: TextIO) -> int:
    """Write lines as they are produced and return how many were written."""
    written = 0
    for line in lines:
        out.write(line)
        written += 1
    return written


def serialize_ntriples(items: Iterable[Triple | Quad], ascii_only: bool = False) -> str:
    """Serialize triples to deterministic N-Triples text."""
    return "".join(iter_ntriples_lines(items, ascii_only))


def serialize_nquads(items: Iterable[Triple | Quad], ascii_only: bool = False) -> str:
    """Serialize quads to deterministic N-Quads text."""
    return "".join(iter_nquads_lines(items, ascii_only))
