"""Triples and quads over RDF terms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .errors import StructuralError
from .terms import BlankNode, GraphName, Iri, Literal, Node, Subject, Term, format_node_nt


def _check_subject(subject: object) -> None:
    if not isinstance(subject, (Iri, BlankNode)):
        raise StructuralError(f"subject must be an IRI or blank node, not {subject!r}")


def _check_predicate(predicate: object) -> None:
    if not isinstance(predicate, Iri):
        raise StructuralError(f"predicate must be an IRI, not {predicate!r}")


def _check_object(obj: object) -> None:
    if not isinstance(obj, (Iri, BlankNode, Literal)):
        raise StructuralError(f"object must be an IRI, blank node or literal, not {obj!r}")


def _check_graph(graph: object) -> None:
    if graph is not None and not isinstance(graph, (Iri, BlankNode)):
        raise StructuralError(f"graph name must be an IRI, blank node or None, not {graph!r}")


@dataclass(frozen=True)
class Triple:
    """An RDF triple.

    A triple can be destructured like a tuple:

    >>> s, p, o = Triple(Iri("http://example.com"), Iri("http://example.com/p"), Literal("1"))
    """

    subject: Subject
    predicate: Iri
    object: Node

    def __post_init__(self) -> None:
        _check_subject(self.subject)
        _check_predicate(self.predicate)
        _check_object(self.object)

    def __iter__(self) -> Iterator[Term]:
        yield self.subject
        yield self.predicate
        yield self.object

    def to_quad(self, graph: GraphName | None = None) -> Quad:
        """Place this triple in `graph`, or in the default graph when `graph` is None."""
        return Quad(self.subject, self.predicate, self.object, graph)

    def __str__(self) -> str:
        return f"{format_node_nt(self.subject)} {format_node_nt(self.predicate)} {format_node_nt(self.object)}"


@dataclass(frozen=True)
class Quad:
    """An RDF quad: a triple and the name of the graph holding it (None for the default graph)."""

    subject: Subject
    predicate: Iri
    object: Node
    graph: GraphName | None = None

    def __post_init__(self) -> None:
        _check_subject(self.subject)
        _check_predicate(self.predicate)
        _check_object(self.object)
        _check_graph(self.graph)

    def __iter__(self) -> Iterator[Term | None]:
        yield self.subject
        yield self.predicate
        yield self.object
        yield self.graph

    @property
    def in_default_graph(self) -> bool:
        return self.graph is None

    def to_triple(self) -> Triple:
        """Drop the graph name."""
        return Triple(self.subject, self.predicate, self.object)

    def __str__(self) -> str:
        text = f"{format_node_nt(self.subject)} {format_node_nt(self.predicate)} {format_node_nt(self.object)}"
        if self.graph is None:
            return text
        return f"{text} {format_node_nt(self.graph)}"
