"""RDF/XML parser.

The document is fed to :class:`xml.etree.ElementTree.XMLPullParser` in chunks
and the resulting ``start``/``end``/``start-ns`` events drive a walk over
alternating node and property elements (the "striped" syntax). Triples are
handed out after each chunk, so a large document is never parsed ahead of
consumption by more than one chunk.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterator
from xml.sax.saxutils import escape

from .bnodes import BlankNodeScope
from .errors import RdfSyntaxError, ResolutionError
from .iri import IriResolver, has_scheme
from .stream import Source
from .terms import LANGUAGE_TAG, BlankNode, Iri, Literal, Node, Subject
from .triples import Triple
from .vocab import (
    RDF_FIRST_IRI,
    RDF_NIL_IRI,
    RDF_NS,
    RDF_OBJECT_IRI,
    RDF_PREDICATE_IRI,
    RDF_REST_IRI,
    RDF_STATEMENT_IRI,
    RDF_SUBJECT_IRI,
    RDF_TYPE_IRI,
    RDF_XML_LITERAL_IRI,
    XML_NS,
)

logger = logging.getLogger(__name__)

NCNAME = re.compile(r"[^\W\d][\w.\-]*")

XML_LANG = f"{{{XML_NS}}}lang"
XML_BASE = f"{{{XML_NS}}}base"

CORE_SYNTAX_TERMS = {"RDF", "ID", "about", "parseType", "resource", "nodeID", "datatype"}
OLD_TERMS = {"aboutEach", "aboutEachPrefix", "bagID"}
FORBIDDEN_NODE_NAMES = CORE_SYNTAX_TERMS | OLD_TERMS | {"li"}
FORBIDDEN_PROPERTY_NAMES = CORE_SYNTAX_TERMS | OLD_TERMS | {"Description"}
FORBIDDEN_PROPERTY_ATTRIBUTES = CORE_SYNTAX_TERMS | OLD_TERMS | {"Description", "li"}

DEFAULT_CHUNK_SIZE = 64 * 1024


def split_name(name: str) -> tuple[str, str]:
    """Split an ElementTree `{namespace}local` name; unqualified names get an empty namespace."""
    if name.startswith("{"):
        namespace, _, local = name[1:].partition("}")
        return namespace, local
    return "", name


def is_whitespace(text: str | None) -> bool:
    return text is None or text.strip(" \t\r\n") == ""


@dataclass
class _NodeFrame:
    """An open node element (or a parseType="Resource" property standing in for one)."""

    subject: Subject
    lang: str | None
    resolver: IriResolver | None
    li_counter: int = 0


@dataclass
class _PropertyFrame:
    """An open property element of `subject`."""

    subject: Subject
    predicate: Iri
    lang: str | None
    resolver: IriResolver | None
    reifier: Iri | None = None
    datatype: str | None = None
    fixed_object: Node | None = None
    node_object: Node | None = None
    collection: list[Node] | None = None
    literal: bool = False
    attributes: list[tuple[Iri, str]] = field(default_factory=list)


@dataclass
class _RootFrame:
    """The optional `rdf:RDF` wrapper."""

    lang: str | None
    resolver: IriResolver | None


class RdfXmlParser:
    """Streaming parser for RDF/XML documents."""

    def __init__(
        self,
        data: str | bytes,
        source: str = "<string>",
        base_iri: str | None = None,
        scope: BlankNodeScope | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.data = data
        self.source_name = source
        self.scope = scope if scope is not None else BlankNodeScope()
        self.chunk_size = chunk_size
        self.resolver: IriResolver | None = None
        if base_iri is not None:
            try:
                self.resolver = IriResolver(base_iri)
            except ResolutionError as exc:
                raise ResolutionError(source, None, None, exc.message) from exc
        self._frames: list[_NodeFrame | _PropertyFrame | _RootFrame] = []
        self._pending: list[Triple] = []
        self._ns_stack: list[dict[str, str]] = [{}]
        self._pending_ns: list[tuple[str, str]] = []
        self._literal_depth = 0
        self._literal_scopes: dict[ET.Element, dict[str, str]] = {}
        self._used_ids: set[str] = set()

    def __iter__(self) -> Iterator[Triple]:
        logger.debug("parsing %s as RDF/XML", self.source_name)
        parser = ET.XMLPullParser(events=("start-ns", "start", "end"))
        produced = 0
        for offset in range(0, len(self.data), self.chunk_size):
            self._feed(parser, self.data[offset : offset + self.chunk_size])
            produced += len(self._pending)
            yield from self._drain()
        self._feed(parser, None)
        produced += len(self._pending)
        yield from self._drain()
        logger.debug("parsed %d triples from %s", produced, self.source_name)

    def source(self) -> Source[Triple]:
        """Return a streaming source over the parsed triples."""
        return Source(iter(self), name=self.source_name)

    def parse(self) -> list[Triple]:
        """Parse the whole document and return the parsed triples."""
        return list(self)

    def _drain(self) -> Iterator[Triple]:
        pending, self._pending = self._pending, []
        yield from pending

    def _feed(self, parser: ET.XMLPullParser, chunk: str | bytes | None) -> None:
        """Feed one chunk (None closes the parser) and dispatch the events it produced."""
        try:
            if chunk is None:
                parser.close()
            else:
                parser.feed(chunk)
            for event, payload in parser.read_events():
                if event == "start-ns":
                    self._pending_ns.append(payload)
                elif event == "start":
                    self._start(payload)
                else:
                    self._end(payload)
        except ET.ParseError as exc:
            line, column = exc.position
            raise RdfSyntaxError(self.source_name, line, column + 1, f"malformed XML: {exc}") from exc

    def error(self, message: str) -> RdfSyntaxError:
        return RdfSyntaxError(self.source_name, None, None, message)

    def emit(self, subject: Subject, predicate: Iri, obj: Node, reifier: Iri | None = None) -> None:
        self._pending.append(Triple(subject, predicate, obj))
        if reifier is not None:
            self._pending.append(Triple(reifier, Iri(RDF_TYPE_IRI), Iri(RDF_STATEMENT_IRI)))
            self._pending.append(Triple(reifier, Iri(RDF_SUBJECT_IRI), subject))
            self._pending.append(Triple(reifier, Iri(RDF_PREDICATE_IRI), predicate))
            self._pending.append(Triple(reifier, Iri(RDF_OBJECT_IRI), obj))

    # scoping

    def _scoped(self, elem: ET.Element, lang: str | None, resolver: IriResolver | None):
        """Apply the `xml:lang` and `xml:base` attributes of `elem` to the inherited values."""
        if XML_LANG in elem.attrib:
            value = elem.attrib[XML_LANG]
            if value == "":
                lang = None
            elif LANGUAGE_TAG.fullmatch(value):
                lang = value.lower()
            else:
                raise self.error(f"invalid xml:lang value {value!r}")
        if XML_BASE in elem.attrib:
            base = self._resolve(elem.attrib[XML_BASE], resolver)
            if not has_scheme(base):
                raise self.error(f"xml:base <{base}> is not absolute")
            try:
                resolver = IriResolver(base)
            except ResolutionError as exc:
                raise self.error(exc.message) from exc
        return lang, resolver

    def _resolve(self, reference: str, resolver: IriResolver | None) -> str:
        if resolver is None or has_scheme(reference):
            return reference
        try:
            return resolver.resolve(reference)
        except ResolutionError as exc:
            raise self.error(exc.message) from exc

    def _id_iri(self, value: str, resolver: IriResolver | None) -> Iri:
        """Resolve an `rdf:ID` value to `#value` and reject duplicates."""
        if not NCNAME.fullmatch(value):
            raise self.error(f"rdf:ID value {value!r} is not an XML name")
        iri = self._resolve(f"#{value}", resolver)
        if iri in self._used_ids:
            raise self.error(f"duplicate rdf:ID {value!r}")
        self._used_ids.add(iri)
        return Iri(iri)

    def _node_id(self, value: str) -> BlankNode:
        if not NCNAME.fullmatch(value):
            raise self.error(f"rdf:nodeID value {value!r} is not an XML name")
        return self.scope.fresh_or_lookup(value)

    # events

    def _start(self, elem: ET.Element) -> None:
        scope = self._ns_stack[-1]
        if self._pending_ns:
            scope = dict(scope)
            scope.update(self._pending_ns)
            self._pending_ns.clear()
        self._ns_stack.append(scope)

        if self._literal_depth:
            self._literal_depth += 1
            self._literal_scopes[elem] = scope
            return

        parent = self._frames[-1] if self._frames else None
        if parent is None:
            if elem.tag == f"{{{RDF_NS}}}RDF":
                lang, resolver = self._scoped(elem, None, self.resolver)
                self._frames.append(_RootFrame(lang, resolver))
                return
            self._node_start(elem, None, None, self.resolver)
        elif isinstance(parent, _NodeFrame):
            self._property_start(elem, parent)
        else:
            self._node_start(elem, parent, parent.lang, parent.resolver)

    def _end(self, elem: ET.Element) -> None:
        self._ns_stack.pop()
        if self._literal_depth > 1:
            self._literal_depth -= 1
            return
        self._literal_depth = 0

        frame = self._frames.pop()
        if isinstance(frame, _PropertyFrame):
            self._property_end(elem, frame)
        else:
            if not is_whitespace(elem.text) or any(not is_whitespace(child.tail) for child in elem):
                raise self.error(f"text is not allowed inside node element <{elem.tag}>")
        del elem[:]

    def _node_start(
        self,
        elem: ET.Element,
        parent: _PropertyFrame | _RootFrame | None,
        lang: str | None,
        resolver: IriResolver | None,
    ) -> None:
        namespace, local = split_name(elem.tag)
        if not namespace:
            raise self.error(f"node element <{local}> has no namespace")
        if namespace == RDF_NS and local in FORBIDDEN_NODE_NAMES:
            raise self.error(f"rdf:{local} is not allowed as a node element")
        if isinstance(parent, _PropertyFrame):
            if parent.fixed_object is not None or parent.attributes:
                raise self.error(
                    f"property element <{parent.predicate.value}> with rdf:resource, rdf:nodeID "
                    "or property attributes cannot have content"
                )
            if parent.collection is None and parent.node_object is not None:
                raise self.error(f"property element <{parent.predicate.value}> has more than one node element")
            if parent.literal or parent.datatype is not None:
                raise self.error(f"property element <{parent.predicate.value}> cannot contain a node element")
        lang, resolver = self._scoped(elem, lang, resolver)

        identifiers = [
            name for name in ("about", "ID", "nodeID") if f"{{{RDF_NS}}}{name}" in elem.attrib
        ]
        if len(identifiers) > 1:
            raise self.error(f"conflicting identifier attributes on node element: rdf:{', rdf:'.join(identifiers)}")
        subject: Subject
        if identifiers == ["about"]:
            subject = Iri(self._resolve(elem.attrib[f"{{{RDF_NS}}}about"], resolver))
        elif identifiers == ["ID"]:
            subject = self._id_iri(elem.attrib[f"{{{RDF_NS}}}ID"], resolver)
        elif identifiers == ["nodeID"]:
            subject = self._node_id(elem.attrib[f"{{{RDF_NS}}}nodeID"])
        else:
            subject = self.scope.fresh()

        if isinstance(parent, _PropertyFrame):
            if parent.collection is not None:
                parent.collection.append(subject)
            else:
                parent.node_object = subject

        if elem.tag != f"{{{RDF_NS}}}Description":
            self.emit(subject, Iri(RDF_TYPE_IRI), Iri(namespace + local))

        for name, value in sorted(elem.attrib.items()):
            attr_ns, attr_local = split_name(name)
            if attr_ns == RDF_NS and attr_local in ("about", "ID", "nodeID"):
                continue
            predicate = self._property_attribute(attr_ns, attr_local)
            if predicate is None:
                continue
            if predicate.value == RDF_TYPE_IRI:
                self.emit(subject, predicate, Iri(self._resolve(value, resolver)))
            else:
                self.emit(subject, predicate, Literal(value, language=lang))

        self._frames.append(_NodeFrame(subject, lang, resolver))

    def _property_attribute(self, namespace: str, local: str) -> Iri | None:
        """Map an attribute to the predicate it abbreviates, or None for ignored XML attributes."""
        if namespace == XML_NS or (not namespace and local.lower().startswith("xml")):
            return None
        if not namespace:
            raise self.error(f"unqualified attribute {local!r} is not allowed")
        if namespace == RDF_NS and local in FORBIDDEN_PROPERTY_ATTRIBUTES:
            raise self.error(f"rdf:{local} is not allowed as a property attribute")
        return Iri(namespace + local)

    def _property_start(self, elem: ET.Element, node: _NodeFrame) -> None:
        namespace, local = split_name(elem.tag)
        if not namespace:
            raise self.error(f"property element <{local}> has no namespace")
        if namespace == RDF_NS and local in FORBIDDEN_PROPERTY_NAMES:
            raise self.error(f"rdf:{local} is not allowed as a property element")
        if namespace == RDF_NS and local == "li":
            node.li_counter += 1
            predicate = Iri(f"{RDF_NS}_{node.li_counter}")
        else:
            predicate = Iri(namespace + local)
        lang, resolver = self._scoped(elem, node.lang, node.resolver)

        frame = _PropertyFrame(node.subject, predicate, lang, resolver)
        attrib = elem.attrib
        if f"{{{RDF_NS}}}ID" in attrib:
            frame.reifier = self._id_iri(attrib[f"{{{RDF_NS}}}ID"], resolver)
        resource = attrib.get(f"{{{RDF_NS}}}resource")
        node_id = attrib.get(f"{{{RDF_NS}}}nodeID")
        datatype = attrib.get(f"{{{RDF_NS}}}datatype")
        parse_type = attrib.get(f"{{{RDF_NS}}}parseType")
        if resource is not None and node_id is not None:
            raise self.error("property element cannot have both rdf:resource and rdf:nodeID")
        if parse_type is not None and (resource is not None or node_id is not None or datatype is not None):
            raise self.error("rdf:parseType cannot be combined with rdf:resource, rdf:nodeID or rdf:datatype")

        for name, value in sorted(attrib.items()):
            attr_ns, attr_local = split_name(name)
            if attr_ns == RDF_NS and attr_local in ("ID", "resource", "nodeID", "datatype", "parseType"):
                continue
            attr_predicate = self._property_attribute(attr_ns, attr_local)
            if attr_predicate is not None:
                frame.attributes.append((attr_predicate, value))
        if frame.attributes and (datatype is not None or parse_type is not None):
            raise self.error("property attributes cannot be combined with rdf:datatype or rdf:parseType")

        if parse_type == "Resource":
            obj = self.scope.fresh()
            self.emit(node.subject, predicate, obj, frame.reifier)
            self._frames.append(_NodeFrame(obj, lang, resolver))
            return
        if parse_type == "Collection":
            frame.collection = []
        elif parse_type is not None:
            frame.literal = True
            self._literal_depth = 1
        elif resource is not None:
            frame.fixed_object = Iri(self._resolve(resource, resolver))
        elif node_id is not None:
            frame.fixed_object = self._node_id(node_id)
        if datatype is not None:
            frame.datatype = self._resolve(datatype, resolver)
        self._frames.append(frame)

    def _property_end(self, elem: ET.Element, frame: _PropertyFrame) -> None:
        if frame.literal:
            obj: Node = Literal(self._literal_xml(elem), RDF_XML_LITERAL_IRI)
            self._literal_scopes.clear()
            self.emit(frame.subject, frame.predicate, obj, frame.reifier)
            return

        has_children = len(elem) > 0
        mixed = not is_whitespace(elem.text) or any(not is_whitespace(child.tail) for child in elem)
        if frame.collection is not None:
            if mixed:
                raise self.error(f"text is not allowed inside collection <{frame.predicate.value}>")
            self.emit(frame.subject, frame.predicate, self._build_collection(frame.collection), frame.reifier)
            return
        if frame.node_object is not None:
            if mixed:
                raise self.error(f"mixed text and node content in <{frame.predicate.value}>")
            self.emit(frame.subject, frame.predicate, frame.node_object, frame.reifier)
            return
        if frame.fixed_object is not None or frame.attributes:
            if has_children or not is_whitespace(elem.text):
                raise self.error(
                    f"property element <{frame.predicate.value}> with rdf:resource, rdf:nodeID "
                    "or property attributes cannot have content"
                )
            obj = frame.fixed_object if frame.fixed_object is not None else self.scope.fresh()
            for predicate, value in frame.attributes:
                if predicate.value == RDF_TYPE_IRI:
                    self.emit(obj, predicate, Iri(self._resolve(value, frame.resolver)))
                else:
                    self.emit(obj, predicate, Literal(value, language=frame.lang))
            self.emit(frame.subject, frame.predicate, obj, frame.reifier)
            return

        text = elem.text or ""
        if frame.datatype is not None:
            obj = Literal(text, frame.datatype)
        else:
            obj = Literal(text, language=frame.lang)
        self.emit(frame.subject, frame.predicate, obj, frame.reifier)

    def _build_collection(self, items: list[Node]) -> Node:
        """Emit the rdf:first/rdf:rest chain of a parseType="Collection" and return its head."""
        if not items:
            return Iri(RDF_NIL_IRI)
        cells = [self.scope.fresh() for _ in items]
        for idx, (cell, item) in enumerate(zip(cells, items)):
            self.emit(cell, Iri(RDF_FIRST_IRI), item)
            rest = cells[idx + 1] if idx + 1 < len(cells) else Iri(RDF_NIL_IRI)
            self.emit(cell, Iri(RDF_REST_IRI), rest)
        return cells[0]

    # XML literals

    def _literal_xml(self, elem: ET.Element) -> str:
        """Serialize the content of a parseType="Literal" property element."""
        parts = [escape(elem.text or "")]
        for child in elem:
            parts.append(self._element_xml(child, {}))
            parts.append(escape(child.tail or ""))
        return "".join(parts)

    def _element_xml(self, elem: ET.Element, declared: dict[str, str]) -> str:
        """Serialize one element, declaring each namespace where it is first used."""
        scope = self._literal_scopes.get(elem, {})
        declared = dict(declared)
        declarations: list[tuple[str, str]] = []

        def qualify(name: str, is_attribute: bool) -> str:
            namespace, local = split_name(name)
            if not namespace:
                return local
            if namespace == XML_NS:
                return f"xml:{local}"
            prefix = _prefix_for(namespace, scope, declared, is_attribute)
            if declared.get(prefix) != namespace:
                declared[prefix] = namespace
                declarations.append((prefix, namespace))
            return f"{prefix}:{local}" if prefix else local

        tag = qualify(elem.tag, False)
        attributes = sorted((qualify(name, True), value) for name, value in elem.attrib.items())
        head = [tag]
        for prefix, namespace in declarations:
            name = f"xmlns:{prefix}" if prefix else "xmlns"
            head.append(f'{name}="{escape(namespace, {chr(34): "&quot;"})}"')
        for name, value in attributes:
            head.append(f'{name}="{escape(value, {chr(34): "&quot;"})}"')

        parts = [f"<{' '.join(head)}>", escape(elem.text or "")]
        for child in elem:
            parts.append(self._element_xml(child, declared))
            parts.append(escape(child.tail or ""))
        parts.append(f"</{tag}>")
        return "".join(parts)


def _prefix_for(namespace: str, scope: dict[str, str], declared: dict[str, str], is_attribute: bool) -> str:
    """Pick the document's prefix for `namespace`, inventing one if it has none."""
    for prefix, uri in scope.items():
        if uri == namespace and (prefix or not is_attribute):
            return prefix
    for prefix, uri in declared.items():
        if uri == namespace and prefix:
            return prefix
    serial = 0
    while f"ns{serial}" in scope or f"ns{serial}" in declared:
        serial += 1
    return f"ns{serial}"


def parse_rdfxml(
    data: str | bytes,
    source: str = "<string>",
    base_iri: str | None = None,
    scope: BlankNodeScope | None = None,
) -> Source[Triple]:
    """Parse RDF/XML into a streaming source of triples."""
    return RdfXmlParser(data, source=source, base_iri=base_iri, scope=scope).source()
