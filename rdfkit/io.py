"""Format registry and the `parse` / `serialize` entry points."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import IO, Iterable, TextIO

from .bnodes import BlankNodeScope
from .errors import LexicalError, RdfIoError
from .jsonld import JsonLdSerializationOptions, write_jsonld
from .ntriples import NQuadsParser, NTriplesParser, iter_nquads_lines, iter_ntriples_lines, write_lines
from .rdfxml import RdfXmlParser
from .serializer import TurtleSerializationOptions, write_trig, write_turtle
from .stream import Source, as_source
from .triples import Quad, Triple
from .turtle import TriGParser, TurtleParser

logger = logging.getLogger(__name__)

FORMAT_ALIASES = {
    "nt": "nt",
    "ntriples": "nt",
    "n-triples": "nt",
    "nq": "nq",
    "nquads": "nq",
    "n-quads": "nq",
    "ttl": "turtle",
    "turtle": "turtle",
    "trig": "trig",
    "rdfxml": "rdfxml",
    "rdf/xml": "rdfxml",
    "rdf": "rdfxml",
    "xml": "rdfxml",
    "jsonld": "jsonld",
    "json-ld": "jsonld",
}

EXTENSION_FORMATS = {
    ".nt": "nt",
    ".nq": "nq",
    ".nquads": "nq",
    ".ttl": "turtle",
    ".turtle": "turtle",
    ".trig": "trig",
    ".rdf": "rdfxml",
    ".owl": "rdfxml",
    ".xml": "rdfxml",
    ".jsonld": "jsonld",
}

PARSE_FORMATS = ("turtle", "nt", "nq", "trig", "rdfxml")
SERIALIZE_FORMATS = ("turtle", "nt", "nq", "trig", "jsonld")
DATASET_FORMATS = ("nq", "trig")


def normalize_format(value: str) -> str:
    """Normalize a format name or alias to the internal format key."""
    fmt = FORMAT_ALIASES.get(value.strip().lower())
    if fmt is None:
        raise ValueError(f"unsupported format: {value}")
    return fmt


def guess_format(path: str | Path) -> str | None:
    """Infer the RDF format from a file extension."""
    if str(path) == "-":
        return None
    return EXTENSION_FORMATS.get(Path(path).suffix.lower())


def read_data(data: str | bytes | IO, source: str) -> str | bytes:
    """Return the document held by `data`, reading file objects to the end."""
    if isinstance(data, (str, bytes)):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    try:
        return data.read()
    except OSError as exc:
        raise RdfIoError(source, exc) from exc


def decode_text(data: str | bytes, source: str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise LexicalError(source, None, None, f"input is not valid UTF-8: {exc}") from exc


def parse(
    data: str | bytes | IO,
    base_iri: str | None = None,
    format: str = "turtle",
    scope: BlankNodeScope | None = None,
    source: str | None = None,
) -> Source:
    """Parse a document into a streaming source.

    Triple formats (``turtle``, ``nt``, ``rdfxml``) yield :class:`Triple`;
    dataset formats (``nq``, ``trig``) yield :class:`Quad`. Blank node labels
    are mapped through `scope`, a fresh one per call when omitted.
    """
    fmt = normalize_format(format)
    if fmt not in PARSE_FORMATS:
        raise ValueError(f"parsing {fmt} is not supported")
    if source is None:
        source = getattr(data, "name", None) or "<string>"
    document = read_data(data, source)
    logger.debug("parsing %s as %s", source, fmt)

    if fmt == "rdfxml":
        return RdfXmlParser(document, source=source, base_iri=base_iri, scope=scope).source()
    text = decode_text(document, source)
    if fmt == "nt":
        return NTriplesParser(text, source=source, scope=scope).source()
    if fmt == "nq":
        return NQuadsParser(text, source=source, scope=scope).source()
    if fmt == "trig":
        return TriGParser(text, source=source, base_iri=base_iri, scope=scope).source()
    return TurtleParser(text, source=source, base_iri=base_iri, scope=scope).source()


def _write(items: Iterable[Triple | Quad], fmt: str, options, out: TextIO) -> None:
    ascii_only = bool(getattr(options, "ascii_only", False))
    if fmt == "nt":
        write_lines(iter_ntriples_lines(items, ascii_only), out)
    elif fmt == "nq":
        write_lines(iter_nquads_lines(items, ascii_only), out)
    elif fmt == "jsonld":
        if options is not None and not isinstance(options, JsonLdSerializationOptions):
            options = JsonLdSerializationOptions(ascii_only=ascii_only)
        write_jsonld(items, out, options)
    else:
        if options is not None and not isinstance(options, TurtleSerializationOptions):
            options = TurtleSerializationOptions(ascii_only=ascii_only)
        if fmt == "trig":
            write_trig(items, out, options)
        else:
            write_turtle(items, out, options)


def serialize(
    source,
    format: str = "turtle",
    options: TurtleSerializationOptions | JsonLdSerializationOptions | None = None,
    out: TextIO | None = None,
) -> str | None:
    """Serialize a source, graph, dataset or iterable of triples/quads.

    With `out` the output is written there (line modes write as items are
    pulled) and None is returned; otherwise the text is returned.
    """
    fmt = normalize_format(format)
    if fmt not in SERIALIZE_FORMATS:
        raise ValueError(f"serializing {fmt} is not supported")
    items = as_source(source)
    if out is None:
        buffer = io.StringIO()
        _write(items, fmt, options, buffer)
        return buffer.getvalue()
    try:
        _write(items, fmt, options, out)
    except OSError as exc:
        raise RdfIoError(getattr(out, "name", "<output>"), exc) from exc
    return None
