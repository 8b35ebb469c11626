"""Turtle and TriG parsers."""

from __future__ import annotations

import re

from .bnodes import BlankNodeScope
from .errors import ResolutionError
from .iri import IriResolver, has_scheme
from .ntriples import BaseParser
from .scanner import (
    is_hex,
    is_keyword,
    is_keyword_ci,
    is_keyword_with_extra_boundary,
    is_name_boundary,
    is_pn_chars,
    is_pn_chars_base,
    is_pn_chars_u,
    parse_iri_ref,
    parse_lang_tag,
    parse_long_string,
    parse_short_string,
    skip_ws_comments,
)
from .stream import Source
from .terms import BlankNode, GraphName, Iri, Literal, Node, Subject
from .triples import Quad, Triple
from .vocab import (
    RDF_FIRST_IRI,
    RDF_NIL_IRI,
    RDF_REST_IRI,
    RDF_TYPE_IRI,
    XSD_BOOLEAN_IRI,
    XSD_DECIMAL_IRI,
    XSD_DOUBLE_IRI,
    XSD_INTEGER_IRI,
)

NUMERIC_PATTERNS = (
    (re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)[eE][+-]?[0-9]+"), XSD_DOUBLE_IRI),
    (re.compile(r"[+-]?[0-9]*\.[0-9]+"), XSD_DECIMAL_IRI),
    (re.compile(r"[+-]?[0-9]+"), XSD_INTEGER_IRI),
)

PN_LOCAL_ESCAPABLE = "_~.-!$&'()*+,;=/?#@%"


class TurtleParser(BaseParser):
    """Parser for Turtle documents.

    Prefixed names are expanded where they are used and relative IRIs are
    resolved against the current base, which ``@base``/``BASE`` directives
    move. Without any base, relative IRI references are kept as they are.
    """

    def __init__(
        self,
        text: str,
        source: str = "<string>",
        base_iri: str | None = None,
        scope: BlankNodeScope | None = None,
    ):
        """Initialize the `TurtleParser` instance."""
        super().__init__(text, source, scope)
        self.resolver: IriResolver | None = None
        if base_iri is not None:
            try:
                self.resolver = IriResolver(base_iri)
            except ResolutionError as exc:
                raise ResolutionError(source, None, None, exc.message) from exc
        self.prefixes: dict[str, str] = {}

    @property
    def base_iri(self) -> str | None:
        return None if self.resolver is None else self.resolver.base_iri

    def parse_next(self) -> bool:
        skip_ws_comments(self.scanner)
        if self.scanner.eof():
            return False
        if self.parse_directive_if_present():
            return True
        self.parse_triples_statement(terminators=(".",))
        skip_ws_comments(self.scanner)
        self.scanner.expect(".", "expected '.' to end Turtle triple statement")
        return True

    def parse_directive_if_present(self) -> bool:
        """Parse directive if present from the current input and return the result."""
        if is_keyword_with_extra_boundary(self.scanner, "@prefix", ":"):
            self.scanner.expect("@prefix")
            self.parse_prefix_binding()
            skip_ws_comments(self.scanner)
            self.scanner.expect(".", "expected '.' after @prefix")
            return True
        if is_keyword_with_extra_boundary(self.scanner, "@base", "<"):
            self.scanner.expect("@base")
            self.parse_base_binding()
            skip_ws_comments(self.scanner)
            self.scanner.expect(".", "expected '.' after @base")
            return True
        if is_keyword_ci(self.scanner, "PREFIX"):
            for _ in "PREFIX":
                self.scanner.advance()
            self.parse_prefix_binding()
            return True
        if is_keyword_ci(self.scanner, "BASE", "<"):
            for _ in "BASE":
                self.scanner.advance()
            self.parse_base_binding()
            return True
        return False

    def parse_prefix_binding(self) -> None:
        skip_ws_comments(self.scanner)
        prefix = self.parse_pname_ns()
        skip_ws_comments(self.scanner)
        self.prefixes[prefix] = self.parse_iri_ref_turtle()

    def parse_base_binding(self) -> None:
        skip_ws_comments(self.scanner)
        iri = parse_iri_ref(self.scanner, require_absolute=False)
        if self.resolver is None:
            if not has_scheme(iri):
                self.scanner.error(f"relative base IRI <{iri}> without an enclosing base", ResolutionError)
            self.resolver = self.make_resolver(iri)
        else:
            self.resolver = self.make_resolver(self.resolve(iri))

    def make_resolver(self, iri: str) -> IriResolver:
        try:
            return IriResolver(iri)
        except ResolutionError as exc:
            self.scanner.error(exc.message, ResolutionError)

    def resolve(self, iri: str) -> str:
        """Resolve an IRI reference against the current base, if there is one."""
        if self.resolver is None or has_scheme(iri):
            return iri
        try:
            return self.resolver.resolve(iri)
        except ResolutionError as exc:
            self.scanner.error(exc.message, ResolutionError)

    def parse_triples_statement(self, terminators: tuple[str, ...]) -> None:
        """Parse one `subject predicateObjectList` (or `[ ... ]` alone) statement."""
        skip_ws_comments(self.scanner)
        if self.scanner.peek() == "[":
            emitted_before = len(self._pending)
            subject = self.parse_blank_node_property_list()
            skip_ws_comments(self.scanner)
            if self.can_start_verb():
                self.parse_predicate_object_list(subject, terminators)
            elif len(self._pending) == emitted_before:
                self.scanner.error("expected predicate after '[]'")
            return

        subject = self.parse_subject()
        skip_ws_comments(self.scanner)
        self.parse_predicate_object_list(subject, terminators)

    def parse_predicate_object_list(self, subject: Subject, terminators: tuple[str, ...]) -> None:
        """Parse `verb objectList (';' verb objectList)*`, emitting triples as they complete."""
        predicate = self.parse_verb()
        skip_ws_comments(self.scanner)
        self.parse_object_list(subject, predicate)

        while True:
            skip_ws_comments(self.scanner)
            if any(self.scanner.startswith(tok) for tok in terminators):
                break
            if not self.scanner.consume(";"):
                break
            skip_ws_comments(self.scanner)
            while self.scanner.consume(";"):
                skip_ws_comments(self.scanner)
            if any(self.scanner.startswith(tok) for tok in terminators):
                break
            if not self.can_start_verb():
                self.scanner.error("expected predicate after ';'")
            predicate = self.parse_verb()
            skip_ws_comments(self.scanner)
            self.parse_object_list(subject, predicate)

    def parse_object_list(self, subject: Subject, predicate: Iri) -> None:
        """Parse object list from the current input and emit one triple per object."""
        while True:
            obj = self.parse_object()
            self.emit(subject, predicate, obj)
            skip_ws_comments(self.scanner)
            if not self.scanner.consume(","):
                break
            skip_ws_comments(self.scanner)

    def parse_subject(self) -> Subject:
        """Parse subject from the current input and return the result."""
        ch = self.scanner.peek()
        if ch == "(":
            return self.parse_collection()
        if ch == "[":
            return self.parse_blank_node_property_list()
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()
        if ch and (ch in "\"'+-" or ch.isdigit()):
            self.scanner.error("subject must be IRI or blank node")
        if is_keyword(self.scanner, "true") or is_keyword(self.scanner, "false"):
            self.scanner.error("subject must be IRI or blank node")
        return self.parse_iri()

    def parse_verb(self) -> Iri:
        """Parse verb from the current input and return the result."""
        if is_keyword(self.scanner, "a"):
            self.scanner.expect("a")
            return Iri(RDF_TYPE_IRI)
        ch = self.scanner.peek()
        if self.scanner.startswith("_:") or (ch and ch in "[(\"'"):
            self.scanner.error("predicate must be IRI")
        return self.parse_iri()

    def parse_object(self) -> Node:
        """Parse object from the current input and return the result."""
        if self.scanner.peek() == "[":
            return self.parse_blank_node_property_list()
        if self.scanner.peek() == "(":
            return self.parse_collection()
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()

        ch = self.scanner.peek()
        if ch == '"':
            return self.parse_rdf_literal('"')
        if ch == "'":
            return self.parse_rdf_literal("'")
        if is_keyword(self.scanner, "true"):
            self.scanner.expect("true")
            return Literal("true", XSD_BOOLEAN_IRI)
        if is_keyword(self.scanner, "false"):
            self.scanner.expect("false")
            return Literal("false", XSD_BOOLEAN_IRI)
        if ch != "" and (ch in "+-." or ch.isdigit()):
            numeric = self.try_parse_numeric_literal()
            if numeric is not None:
                return numeric
        return self.parse_iri()

    def try_parse_numeric_literal(self) -> Literal | None:
        """Try to parse a numeric shorthand literal; the lexical form is kept as written."""
        text = self.scanner.text
        for regex, datatype in NUMERIC_PATTERNS:
            match = regex.match(text, self.scanner.i)
            if not match:
                continue
            token = match.group(0)
            nxt = text[match.end() : match.end() + 1]
            if nxt and not (is_name_boundary(nxt) or nxt in ")]};,"):
                continue
            self.scanner.consume(token)
            return Literal(token, datatype)
        return None

    def parse_rdf_literal(self, quote: str) -> Literal:
        """Parse RDF literal from the current input and return the result."""
        if self.scanner.startswith(quote * 3):
            value = parse_long_string(self.scanner, quote)
        else:
            value = parse_short_string(self.scanner, quote)

        language = None
        datatype = None
        if self.scanner.peek() == "@":
            language = parse_lang_tag(self.scanner)
        elif self.scanner.consume("^^"):
            datatype = self.parse_iri().value
        return self.make_literal(value, datatype, language)

    def parse_collection(self) -> Iri | BlankNode:
        """Parse a `( ... )` collection into an rdf:first/rdf:rest chain and return its head."""
        self.scanner.expect("(")
        skip_ws_comments(self.scanner)
        items: list[Node] = []
        while not self.scanner.consume(")"):
            if self.scanner.eof():
                self.scanner.error("unterminated collection")
            items.append(self.parse_object())
            skip_ws_comments(self.scanner)
        if not items:
            return Iri(RDF_NIL_IRI)

        head = self.new_bnode()
        current = head
        for idx, item in enumerate(items):
            self.emit(current, Iri(RDF_FIRST_IRI), item)
            if idx == len(items) - 1:
                self.emit(current, Iri(RDF_REST_IRI), Iri(RDF_NIL_IRI))
            else:
                nxt = self.new_bnode()
                self.emit(current, Iri(RDF_REST_IRI), nxt)
                current = nxt
        return head

    def parse_blank_node_property_list(self) -> BlankNode:
        """Parse blank-node property list from the current input and return the result."""
        self.scanner.expect("[")
        skip_ws_comments(self.scanner)
        subject = self.new_bnode()
        if self.scanner.consume("]"):
            return subject
        self.parse_predicate_object_list(subject, terminators=("]",))
        skip_ws_comments(self.scanner)
        self.scanner.expect("]", "expected ']' to close blank node property list")
        return subject

    def parse_iri(self) -> Iri:
        """Parse an IRI reference or a prefixed name."""
        if self.scanner.peek() == "<":
            return Iri(self.parse_iri_ref_turtle())
        return Iri(self.parse_prefixed_name())

    def parse_iri_ref_turtle(self) -> str:
        """Parse Turtle IRI reference from the current input and return the result."""
        return self.resolve(parse_iri_ref(self.scanner, require_absolute=False))

    def parse_prefixed_name(self) -> str:
        """Parse prefixed name from the current input and return the result."""
        line, col = self.scanner.line, self.scanner.col
        prefix = self.parse_pname_ns()
        local = ""
        if not is_name_boundary(self.scanner.peek()):
            local = self.parse_pn_local()
        if prefix not in self.prefixes:
            raise ResolutionError(self.scanner.source, line, col, f"undeclared prefix '{prefix}'")
        return self.prefixes[prefix] + local

    def parse_pname_ns(self) -> str:
        """Parse PName namespace prefix from the current input and return the result."""
        if self.scanner.consume(":"):
            return ""
        if not is_pn_chars_base(self.scanner.peek()):
            self.scanner.error("invalid prefix name")
        chars = [self.scanner.advance()]
        while True:
            ch = self.scanner.peek()
            if not ch:
                self.scanner.error("unterminated prefix name")
            if ch == ":":
                self.scanner.advance()
                if chars[-1] == ".":
                    self.scanner.error("prefix cannot end with '.'")
                return "".join(chars)
            if is_pn_chars(ch) or ch == ".":
                chars.append(self.scanner.advance())
                continue
            self.scanner.error("invalid character in prefix")

    def parse_pn_local(self) -> str:
        """Parse PN_LOCAL text from the current input and return the result."""
        parts: list[str] = []

        first = self.scanner.peek()
        if first == "%":
            parts.append(self.parse_percent())
        elif first == "\\":
            parts.append(self.parse_pn_local_escape())
        elif first == ":" or first.isdigit() or is_pn_chars_u(first):
            parts.append(self.scanner.advance())
        else:
            self.scanner.lexical_error("invalid local name")

        while True:
            ch = self.scanner.peek()
            if ch == "%":
                parts.append(self.parse_percent())
                continue
            if ch == "\\":
                parts.append(self.parse_pn_local_escape())
                continue
            if ch == ":" or is_pn_chars(ch):
                parts.append(self.scanner.advance())
                continue
            if ch == ".":
                # A trailing '.' ends the statement rather than the name.
                nxt = self.scanner.peek(1)
                if nxt and (nxt in ".%\\:" or is_pn_chars(nxt)):
                    parts.append(self.scanner.advance())
                    continue
            break

        return "".join(parts)

    def parse_percent(self) -> str:
        """Parse percent from the current input and return the result."""
        self.scanner.expect("%")
        a = self.scanner.peek()
        if not is_hex(a):
            self.scanner.lexical_error("invalid percent escape")
        self.scanner.advance()
        b = self.scanner.peek()
        if not is_hex(b):
            self.scanner.lexical_error("invalid percent escape")
        self.scanner.advance()
        return f"%{a}{b}"

    def parse_pn_local_escape(self) -> str:
        """Parse PN_LOCAL escape sequence from the current input and return the result."""
        self.scanner.expect("\\")
        ch = self.scanner.peek()
        if ch == "" or ch not in PN_LOCAL_ESCAPABLE:
            self.scanner.lexical_error("invalid PN_LOCAL escape")
        self.scanner.advance()
        return ch

    def can_start_verb(self) -> bool:
        """Return whether the next token can start a Turtle verb."""
        if is_keyword(self.scanner, "a"):
            return True
        ch = self.scanner.peek()
        if ch == "<" or ch == ":":
            return True
        return is_pn_chars_base(ch)


class TriGParser(TurtleParser):
    """Parser for TriG: Turtle statements plus `{ ... }` graph blocks.

    A graph block is streamed statement by statement like the top level.
    """

    emits_quads = True

    def __init__(
        self,
        text: str,
        source: str = "<string>",
        base_iri: str | None = None,
        scope: BlankNodeScope | None = None,
    ):
        """Initialize the `TriGParser` instance."""
        super().__init__(text, source=source, base_iri=base_iri, scope=scope)
        self._in_block = False

    def parse_next(self) -> bool:
        skip_ws_comments(self.scanner)
        if self._in_block:
            self.parse_block_step()
            return True
        if self.scanner.eof():
            return False
        if self.parse_directive_if_present():
            return True
        self.parse_trig_block()
        return True

    def parse_trig_block(self) -> None:
        """Parse one top-level TriG block or triples statement."""
        if is_keyword_ci(self.scanner, "GRAPH", "<["):
            for _ in "GRAPH":
                self.scanner.advance()
            skip_ws_comments(self.scanner)
            graph_label = self.parse_graph_label()
            skip_ws_comments(self.scanner)
            self.open_block(graph_label)
            return

        if self.scanner.peek() == "{":
            self.open_block(None)
            return

        if self.scanner.peek() == "(":
            self.parse_triples_statement(terminators=(".",))
            self.expect_statement_end()
            return

        if self.scanner.peek() == "[":
            emitted_before = len(self._pending)
            subject = self.parse_blank_node_property_list()
            emitted_in_subject = len(self._pending) != emitted_before
            skip_ws_comments(self.scanner)
            if self.scanner.peek() == "{":
                if emitted_in_subject:
                    self.scanner.error("TriG graph labels cannot be blank node property lists")
                self.open_block(subject)
                return
            if self.can_start_verb():
                self.parse_predicate_object_list(subject, terminators=(".",))
            elif not emitted_in_subject or not self.scanner.startswith("."):
                self.scanner.error("expected '{' or predicate after TriG subject")
            self.expect_statement_end()
            return

        subject = self.parse_label_or_subject()
        skip_ws_comments(self.scanner)
        if self.scanner.peek() == "{":
            self.open_block(subject)
            return

        self.parse_predicate_object_list(subject, terminators=(".",))
        self.expect_statement_end()

    def expect_statement_end(self) -> None:
        skip_ws_comments(self.scanner)
        self.scanner.expect(".", "expected '.' to end TriG triple statement")

    def open_block(self, graph_label: GraphName | None) -> None:
        """Enter a `{ ... }` block whose statements go to `graph_label`."""
        self.scanner.expect("{", "expected '{' to open graph block")
        self._current_graph = graph_label
        self._in_block = True

    def close_block(self) -> None:
        self._current_graph = None
        self._in_block = False

    def parse_block_step(self) -> None:
        """Parse the next statement of the open graph block, or its closing brace."""
        if self.scanner.consume("}"):
            self.close_block()
            return
        if self.scanner.eof():
            self.scanner.error("unterminated graph block, expected '}'")
        self.parse_triples_statement(terminators=(".", "}"))
        skip_ws_comments(self.scanner)
        if self.scanner.consume("."):
            return
        self.scanner.expect("}", "expected '}' or '.' after TriG triples in graph block")
        self.close_block()

    def parse_label_or_subject(self) -> Iri | BlankNode:
        """Parse a TriG labelOrSubject in non-bracket form."""
        if self.scanner.startswith("_:"):
            return self.parse_blank_node()
        return self.parse_iri()

    def parse_graph_label(self) -> GraphName:
        """Parse a TriG graph label (`iri`, `_:` label, or `[]`)."""
        if self.scanner.peek() == "[":
            self.scanner.expect("[")
            skip_ws_comments(self.scanner)
            if not self.scanner.consume("]"):
                self.scanner.error("TriG graph label blank node must be [] or _:label")
            return self.new_bnode()
        return self.parse_label_or_subject()


def parse_turtle(
    text: str,
    source: str = "<string>",
    base_iri: str | None = None,
    scope: BlankNodeScope | None = None,
) -> Source[Triple]:
    """Parse Turtle text into a streaming source of triples."""
    return TurtleParser(text, source=source, base_iri=base_iri, scope=scope).source()


def parse_trig(
    text: str,
    source: str = "<string>",
    base_iri: str | None = None,
    scope: BlankNodeScope | None = None,
) -> Source[Quad]:
    """Parse TriG text into a streaming source of quads."""
    return TriGParser(text, source=source, base_iri=base_iri, scope=scope).source()
