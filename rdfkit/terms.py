"""RDF terms: IRIs, blank nodes, literals and variables.

Every term type derives from :class:`Term`, which defines equality, hashing and
ordering once, on a canonical key computed from the normalized content of the
term. Text fields may be supplied as ``str`` or as UTF-8 ``bytes``-like
slices, and IRIs may be stored split in a namespace and a suffix: two terms
with the same normalized content are equal and hash alike whatever storage
they were built from, so they can be mixed freely as set members or keys.

>>> Iri("http://example.com/a") == Iri("http://example.com/", "a")
True
>>> Iri(b"http://example.com/a") == Iri("http://example.com/a")
True
>>> str(Literal("chat", language="FR"))
'"chat"@fr'
"""

from __future__ import annotations

import functools
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar, Union

from .errors import StructuralError
from .iri import IRI_FORBIDDEN, encode_iri_ref, has_scheme
from .scanner import escape_string_value, is_blank_node_label
from .vocab import (
    RDF_LANG_STRING_IRI,
    XSD_BOOLEAN_IRI,
    XSD_DECIMAL_IRI,
    XSD_DOUBLE_IRI,
    XSD_INTEGER_IRI,
    XSD_STRING_IRI,
)

TextLike = Union[str, bytes, bytearray, memoryview]

LANGUAGE_TAG = re.compile(r"[a-zA-Z]{1,8}(?:-[a-zA-Z0-9]{1,8})*")


def as_text(data: TextLike, what: str) -> str:
    """Normalize a text field given as `str` or UTF-8 bytes-like data to `str`."""
    if isinstance(data, str):
        return data
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StructuralError(f"{what} is not valid UTF-8") from exc
    raise TypeError(f"{what} must be str or bytes, not {type(data).__name__}")


@functools.total_ordering
class Term:
    """Base class of all RDF terms.

    Subclasses implement :meth:`canonical`; everything else derives from it.
    The ordering is IRI < blank node < literal < variable, then the
    normalized text.
    """

    __slots__ = ()

    rank: ClassVar[int] = -1

    def canonical(self) -> tuple[str, ...]:
        """Return the normalized text fields that identify this term."""
        raise NotImplementedError

    def sort_key(self) -> tuple:
        """Return the key used for equality, hashing and ordering."""
        return (self.rank, *self.canonical())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())


@dataclass(frozen=True, eq=False, repr=False)
class Iri(Term):
    """An IRI, optionally stored as a namespace plus a suffix.

    :param ns: the IRI, or its namespace part when `suffix` is given.
    :param suffix: the local part appended to `ns`.
    :raises StructuralError: if the IRI contains whitespace, control
        characters or characters forbidden in IRI references.
    """

    ns: TextLike
    suffix: TextLike | None = None
    _text: str = field(init=False, compare=False)

    rank: ClassVar[int] = 0

    def __post_init__(self) -> None:
        ns = as_text(self.ns, "IRI")
        suffix = None if self.suffix is None else as_text(self.suffix, "IRI suffix")
        text = ns + (suffix or "")
        for ch in text:
            if ord(ch) <= 0x20 or ch in IRI_FORBIDDEN:
                raise StructuralError(f"invalid character {ch!r} in IRI {text!r}")
        object.__setattr__(self, "ns", ns)
        object.__setattr__(self, "suffix", suffix)
        object.__setattr__(self, "_text", text)

    @property
    def value(self) -> str:
        """The full IRI text."""
        return self._text

    @property
    def is_absolute(self) -> bool:
        return has_scheme(self._text)

    def split(self) -> tuple[str, str] | None:
        """Return `(namespace, suffix)` when the IRI was built from a namespace."""
        if self.suffix is None:
            return None
        return self.ns, self.suffix

    def canonical(self) -> tuple[str, ...]:
        return (self._text,)

    def __str__(self) -> str:
        return encode_iri_ref(self._text)

    def __repr__(self) -> str:
        return f"<Iri value={self._text}>"


@dataclass(frozen=True, eq=False, repr=False)
class BlankNode(Term):
    """A blank node, identified by a label that is only meaningful within one scope."""

    label: TextLike

    rank: ClassVar[int] = 1

    def __post_init__(self) -> None:
        label = as_text(self.label, "blank node label")
        if label.startswith("_:"):
            label = label[2:]
        if not label:
            raise StructuralError("blank node label must not be empty")
        if not is_blank_node_label(label):
            raise StructuralError(f"invalid blank node label {label!r}")
        object.__setattr__(self, "label", label)

    def canonical(self) -> tuple[str, ...]:
        return (self.label,)

    def __str__(self) -> str:
        return f"_:{self.label}"

    def __repr__(self) -> str:
        return f"<BlankNode label={self.label}>"


@dataclass(frozen=True, eq=False, repr=False)
class Literal(Term):
    """An RDF literal.

    The datatype is never missing: it defaults to ``xsd:string``, or to
    ``rdf:langString`` when a language tag is given. Language tags are
    lower-cased.

    :raises StructuralError: if a language tag is combined with another
        datatype, if ``rdf:langString`` has no language tag, or if the
        language tag is malformed.
    """

    value: TextLike
    datatype: Iri | TextLike | None = None
    language: str | None = None

    rank: ClassVar[int] = 2

    def __post_init__(self) -> None:
        value = as_text(self.value, "literal value")
        datatype = self.datatype
        if datatype is not None and not isinstance(datatype, Iri):
            datatype = Iri(datatype)
        language = self.language
        if language is not None:
            if not LANGUAGE_TAG.fullmatch(language):
                raise StructuralError(f"invalid language tag {language!r}")
            language = language.lower()
            if datatype is not None and datatype.value != RDF_LANG_STRING_IRI:
                raise StructuralError(
                    f"literal with language tag cannot have datatype <{datatype.value}>"
                )
            datatype = Iri(RDF_LANG_STRING_IRI)
        elif datatype is None:
            datatype = Iri(XSD_STRING_IRI)
        elif datatype.value == RDF_LANG_STRING_IRI:
            raise StructuralError("rdf:langString literal requires a language tag")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "datatype", datatype)
        object.__setattr__(self, "language", language)

    @classmethod
    def of(cls, value: bool | int | float | Decimal | str) -> Literal:
        """Build a literal from a Python value, choosing the matching xsd datatype.

        >>> str(Literal.of(True))
        '"true"^^<http://www.w3.org/2001/XMLSchema#boolean>'
        """
        if isinstance(value, bool):
            return cls("true" if value else "false", XSD_BOOLEAN_IRI)
        if isinstance(value, int):
            return cls(str(value), XSD_INTEGER_IRI)
        if isinstance(value, float):
            if math.isnan(value):
                return cls("NaN", XSD_DOUBLE_IRI)
            if math.isinf(value):
                return cls("INF" if value > 0 else "-INF", XSD_DOUBLE_IRI)
            return cls(repr(value), XSD_DOUBLE_IRI)
        if isinstance(value, Decimal):
            return cls(str(value), XSD_DECIMAL_IRI)
        if isinstance(value, str):
            return cls(value)
        raise TypeError(f"no literal mapping for {type(value).__name__}")

    def canonical(self) -> tuple[str, ...]:
        return (self.value, self.datatype.value, self.language or "")

    def to_ntriples(self, ascii_only: bool = False) -> str:
        """Format the literal using N-Triples syntax."""
        base = f'"{escape_string_value(self.value, ascii_only)}"'
        if self.language is not None:
            return f"{base}@{self.language}"
        if self.datatype.value == XSD_STRING_IRI:
            return base
        return f"{base}^^{encode_iri_ref(self.datatype.value, ascii_only)}"

    def __str__(self) -> str:
        return self.to_ntriples()

    def __repr__(self) -> str:
        if self.language is not None:
            return f"<Literal value={self.value} language={self.language}>"
        return f"<Literal value={self.value} datatype={self.datatype.value}>"


@dataclass(frozen=True, eq=False, repr=False)
class Variable(Term):
    """A query variable; only valid in triple patterns."""

    name: TextLike

    rank: ClassVar[int] = 3

    def __post_init__(self) -> None:
        name = as_text(self.name, "variable name")
        if name[:1] in ("?", "$"):
            name = name[1:]
        if not name:
            raise StructuralError("variable name must not be empty")
        object.__setattr__(self, "name", name)

    def canonical(self) -> tuple[str, ...]:
        return (self.name,)

    def __str__(self) -> str:
        return f"?{self.name}"

    def __repr__(self) -> str:
        return f"<Variable name={self.name}>"


Subject = Iri | BlankNode
GraphName = Iri | BlankNode
Node = Iri | BlankNode | Literal


def format_node_nt(node: Term, ascii_only: bool = False) -> str:
    """Format an RDF node using N-Triples syntax."""
    if isinstance(node, Iri):
        return encode_iri_ref(node.value, ascii_only)
    if isinstance(node, Literal):
        return node.to_ntriples(ascii_only)
    if isinstance(node, (BlankNode, Variable)):
        return str(node)
    raise TypeError(f"unsupported node type: {type(node)!r}")
