"""Represent, parse and serialize RDF graphs and datasets."""

from .bnodes import BlankNodeScope
from .errors import (
    LexicalError,
    ParseError,
    RdfError,
    RdfIoError,
    RdfSyntaxError,
    ResolutionError,
    StructuralError,
)
from .graph import ANY, Dataset, Graph, HashDataset, HashGraph, IndexedGraph, ListGraph, TermMatcher
from .io import guess_format, parse, serialize
from .iri import IriResolver, resolve_iri_reference
from .jsonld import JsonLdSerializationOptions
from .ns import OWL, RDF, RDFS, XML, XSD, Namespace
from .serializer import TurtleSerializationOptions
from .stream import Outcome, Source
from .terms import BlankNode, Iri, Literal, Term, Variable
from .triples import Quad, Triple

__version__ = "0.1.0"

__all__ = [
    "ANY",
    "BlankNode",
    "BlankNodeScope",
    "Dataset",
    "Graph",
    "HashDataset",
    "HashGraph",
    "IndexedGraph",
    "Iri",
    "IriResolver",
    "JsonLdSerializationOptions",
    "LexicalError",
    "ListGraph",
    "Literal",
    "Namespace",
    "OWL",
    "Outcome",
    "ParseError",
    "Quad",
    "RDF",
    "RDFS",
    "RdfError",
    "RdfIoError",
    "RdfSyntaxError",
    "ResolutionError",
    "Source",
    "StructuralError",
    "Term",
    "TermMatcher",
    "Triple",
    "TurtleSerializationOptions",
    "Variable",
    "XML",
    "XSD",
    "guess_format",
    "parse",
    "resolve_iri_reference",
    "serialize",
]
