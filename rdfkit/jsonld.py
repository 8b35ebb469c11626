"""JSON-LD serializer.

Statements are grouped by graph and then by subject into node objects. The
output is deterministic: node objects are sorted by ``@id``, their keys by the
IRI they stand for and their values by term order.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, TextIO

from .terms import BlankNode, GraphName, Iri, Literal, Node, Subject
from .triples import Quad, Triple
from .vocab import RDF_TYPE_IRI, XSD_STRING_IRI

logger = logging.getLogger(__name__)

PREFIX_DELIMITERS = ":/?#[]@"


@dataclass(frozen=True)
class JsonLdSerializationOptions:
    """Options controlling JSON-LD output.

    `context` is either a mapping of terms to IRIs or a JSON-LD document with a
    top-level ``@context``; it is embedded in the output and used for compaction.
    """

    context: Mapping[str, Any] | None = None
    indent: int | None = 2
    ascii_only: bool = False

    def __post_init__(self) -> None:
        context = self.context
        if context is not None and "@context" in context:
            context = context["@context"]
        if context is not None and not isinstance(context, Mapping):
            raise ValueError("only an inline JSON-LD context object is supported")
        object.__setattr__(self, "context", context)


class Compactor:
    """Shorten IRIs with the terms of a JSON-LD context."""

    def __init__(self, context: Mapping[str, Any] | None):
        self.terms: dict[str, str] = {}
        if context:
            raw: dict[str, str] = {}
            for term, definition in context.items():
                if term.startswith("@"):
                    continue
                if isinstance(definition, str):
                    raw[term] = definition
                elif isinstance(definition, Mapping) and isinstance(definition.get("@id"), str):
                    raw[term] = definition["@id"]
            for term, iri in raw.items():
                self.terms[term] = self._expand(iri, raw)
        self._exact: dict[str, str] = {}
        for term, iri in sorted(self.terms.items(), key=lambda item: (len(item[0]), item[0])):
            self._exact.setdefault(iri, term)
        self._prefixes = sorted(
            ((iri, term) for term, iri in self.terms.items() if iri and iri[-1] in PREFIX_DELIMITERS),
            key=lambda item: (-len(item[0]), item[1]),
        )

    @staticmethod
    def _expand(iri: str, raw: Mapping[str, str]) -> str:
        """Expand a compact IRI used inside the context itself."""
        prefix, sep, suffix = iri.partition(":")
        if sep and not suffix.startswith("//") and prefix in raw and raw[prefix] != iri:
            return raw[prefix] + suffix
        return iri

    def prefixed(self, iri: str) -> str:
        """Compact with the longest matching prefix term, else return the IRI unchanged."""
        for namespace, term in self._prefixes:
            if iri.startswith(namespace) and len(iri) > len(namespace):
                return f"{term}:{iri[len(namespace):]}"
        return iri

    def vocab(self, iri: str) -> str:
        """Compact a key or type IRI: an exact term first, then a prefix term."""
        term = self._exact.get(iri)
        if term is not None:
            return term
        return self.prefixed(iri)


def node_id(node: Subject, compactor: Compactor) -> str:
    if isinstance(node, BlankNode):
        return f"_:{node.label}"
    return compactor.prefixed(node.value)


def _id_sort_key(node: Subject) -> tuple:
    if isinstance(node, BlankNode):
        return (1, node.label)
    return (0, node.value)


def object_value(node: Node, compactor: Compactor) -> dict[str, str]:
    """Build the JSON-LD value object for one triple object."""
    if isinstance(node, Literal):
        if node.language is not None:
            return {"@value": node.value, "@language": node.language}
        if node.datatype.value == XSD_STRING_IRI:
            return {"@value": node.value}
        return {"@value": node.value, "@type": compactor.vocab(node.datatype.value)}
    return {"@id": node_id(node, compactor)}


def node_objects(triples: Iterable[Triple], compactor: Compactor) -> list[dict[str, Any]]:
    """Group triples by subject into sorted node objects."""
    subjects: dict[Subject, dict[Iri, set[Node]]] = {}
    for subject, predicate, obj in triples:
        subjects.setdefault(subject, {}).setdefault(predicate, set()).add(obj)

    out: list[dict[str, Any]] = []
    for subject in sorted(subjects, key=_id_sort_key):
        entry: dict[str, Any] = {"@id": node_id(subject, compactor)}
        predicates = subjects[subject]
        types = predicates.get(Iri(RDF_TYPE_IRI), set())
        type_values = sorted(obj for obj in types if not isinstance(obj, Literal))
        if type_values:
            entry["@type"] = [
                compactor.vocab(obj.value) if isinstance(obj, Iri) else f"_:{obj.label}"
                for obj in type_values
            ]
        for predicate in sorted(predicates, key=lambda iri: iri.value):
            objects = predicates[predicate]
            if predicate.value == RDF_TYPE_IRI:
                objects = {obj for obj in objects if isinstance(obj, Literal)}
                if not objects:
                    continue
            entry[compactor.vocab(predicate.value)] = [
                object_value(obj, compactor) for obj in sorted(objects)
            ]
        out.append(entry)
    return out


def build_jsonld(
    items: Iterable[Triple | Quad],
    options: JsonLdSerializationOptions | None = None,
) -> dict[str, Any] | list[dict[str, Any]]:
    """Build the JSON-LD document for the given triples or quads."""
    opts = options or JsonLdSerializationOptions()
    compactor = Compactor(opts.context)

    graphs: dict[GraphName | None, list[Triple]] = {}
    for item in items:
        if isinstance(item, Quad):
            graphs.setdefault(item.graph, []).append(item.to_triple())
        else:
            graphs.setdefault(None, []).append(item)
    logger.debug("grouped statements into %d graphs", len(graphs))

    named = sorted((name for name in graphs if name is not None), key=_id_sort_key)
    if not named:
        nodes = node_objects(graphs.get(None, []), compactor)
        if opts.context is None:
            return nodes
        return {"@context": dict(opts.context), "@graph": nodes}

    entries: list[dict[str, Any]] = []
    if graphs.get(None):
        entries.append({"@graph": node_objects(graphs[None], compactor)})
    for name in named:
        entries.append({"@id": node_id(name, compactor), "@graph": node_objects(graphs[name], compactor)})
    document: dict[str, Any] = {}
    if opts.context is not None:
        document["@context"] = dict(opts.context)
    document["@graph"] = entries
    return document


def serialize_jsonld(
    items: Iterable[Triple | Quad],
    options: JsonLdSerializationOptions | None = None,
) -> str:
    """Serialize triples or quads to JSON-LD text."""
    opts = options or JsonLdSerializationOptions()
    document = build_jsonld(items, opts)
    return json.dumps(document, indent=opts.indent, ensure_ascii=opts.ascii_only) + "\n"


def write_jsonld(
    items: Iterable[Triple | Quad],
    out: TextIO,
    options: JsonLdSerializationOptions | None = None,
) -> None:
    """Write JSON-LD to `out` once the whole input has been read."""
    out.write(serialize_jsonld(items, options))
