"""Standard and custom namespaces.

>>> schema = Namespace("http://schema.org/")
>>> schema.name
<Iri value=http://schema.org/name>
>>> RDF.type == Iri("http://www.w3.org/1999/02/22-rdf-syntax-ns#type")
True
"""

from __future__ import annotations

from .errors import StructuralError
from .iri import validate_iri
from .terms import Iri
from .vocab import OWL_NS, RDF_NS, RDFS_NS, XML_NS, XSD_NS


class Namespace:
    """A namespace IRI from which terms are built by appending a suffix."""

    __slots__ = ("iri",)

    def __init__(self, iri: str):
        try:
            validate_iri(iri, require_absolute=True, allow_empty=False)
        except ValueError as exc:
            raise StructuralError(f"invalid namespace <{iri}>: {exc}") from exc
        self.iri = iri

    def term(self, suffix: str) -> Iri:
        """Build an IRI term by appending `suffix` to this namespace."""
        return Iri(self.iri, suffix)

    def __getitem__(self, suffix: str) -> Iri:
        return self.term(suffix)

    def __getattr__(self, suffix: str) -> Iri:
        if suffix.startswith("__") or suffix == "iri":
            raise AttributeError(suffix)
        return self.term(suffix)

    def __contains__(self, term: object) -> bool:
        return isinstance(term, Iri) and term.value.startswith(self.iri)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Namespace):
            return NotImplemented
        return self.iri == other.iri

    def __hash__(self) -> int:
        return hash(self.iri)

    def __str__(self) -> str:
        return self.iri

    def __repr__(self) -> str:
        return f"Namespace({self.iri!r})"


RDF = Namespace(RDF_NS)
RDFS = Namespace(RDFS_NS)
XSD = Namespace(XSD_NS)
OWL = Namespace(OWL_NS)
# The XML namespace has no trailing separator; its terms are XML_NS + "#" + name.
XML = Namespace(f"{XML_NS}#")
