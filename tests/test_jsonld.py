from __future__ import annotations

import io
import json

import pytest

from rdfkit.jsonld import Compactor, JsonLdSerializationOptions, build_jsonld, serialize_jsonld, write_jsonld
from rdfkit.ns import RDF, XSD, Namespace
from rdfkit.terms import BlankNode, Literal
from rdfkit.triples import Quad, Triple

EX = Namespace("http://example.com/")


def test_flat_document_without_context() -> None:
    triples = [
        Triple(EX.s, EX.name, Literal("Alice", language="en")),
        Triple(EX.s, RDF.type, EX.Person),
        Triple(EX.s, EX.age, Literal("42", XSD.integer)),
        Triple(BlankNode("b"), EX.note, Literal("plain")),
        Triple(EX.s, EX.knows, BlankNode("b")),
    ]
    assert build_jsonld(triples) == [
        {
            "@id": "http://example.com/s",
            "@type": ["http://example.com/Person"],
            "http://example.com/age": [
                {"@value": "42", "@type": "http://www.w3.org/2001/XMLSchema#integer"}
            ],
            "http://example.com/knows": [{"@id": "_:b"}],
            "http://example.com/name": [{"@value": "Alice", "@language": "en"}],
        },
        {"@id": "_:b", "http://example.com/note": [{"@value": "plain"}]},
    ]


def test_values_are_sorted_and_deduplicated() -> None:
    triples = [
        Triple(EX.s, EX.p, Literal("b")),
        Triple(EX.s, EX.p, EX.o),
        Triple(EX.s, EX.p, Literal("a")),
        Triple(EX.s, EX.p, Literal("a")),
    ]
    values = build_jsonld(triples)[0]["http://example.com/p"]
    assert values == [{"@id": "http://example.com/o"}, {"@value": "a"}, {"@value": "b"}]


def test_one_graph_entry_per_non_empty_graph() -> None:
    quads = [
        Quad(EX.s, EX.p, EX.o),
        Quad(EX.s, EX.p, EX.o, EX.g2),
        Quad(EX.t, EX.p, EX.o, EX.g1),
        Quad(EX.u, EX.p, EX.o, EX.g1),
    ]
    document = build_jsonld(quads)
    entries = document["@graph"]
    assert len(entries) == 3
    assert entries[0] == {"@graph": [{"@id": "http://example.com/s", "http://example.com/p": [{"@id": "http://example.com/o"}]}]}
    assert [entry.get("@id") for entry in entries] == [None, "http://example.com/g1", "http://example.com/g2"]
    assert len(entries[1]["@graph"]) == 2


def test_named_graphs_without_default_graph() -> None:
    document = build_jsonld([Quad(EX.s, EX.p, EX.o, BlankNode("g"))])
    assert document == {
        "@graph": [
            {
                "@id": "_:g",
                "@graph": [{"@id": "http://example.com/s", "http://example.com/p": [{"@id": "http://example.com/o"}]}],
            }
        ]
    }


def test_context_compacts_keys_ids_and_types() -> None:
    context = {
        "ex": "http://example.com/",
        "xsd": "http://www.w3.org/2001/XMLSchema#",
        "name": "http://example.com/name",
        "knows": {"@id": "ex:knows", "@type": "@id"},
    }
    triples = [
        Triple(EX.s, EX.name, Literal("Alice")),
        Triple(EX.s, EX.knows, EX.bob),
        Triple(EX.s, EX.age, Literal("42", XSD.integer)),
        Triple(EX.s, RDF.type, EX.Person),
    ]
    document = build_jsonld(triples, JsonLdSerializationOptions(context=context))
    assert document["@context"] == context
    assert document["@graph"] == [
        {
            "@id": "ex:s",
            "@type": ["ex:Person"],
            "ex:age": [{"@value": "42", "@type": "xsd:integer"}],
            "knows": [{"@id": "ex:bob"}],
            "name": [{"@value": "Alice"}],
        }
    ]


def test_context_document_is_unwrapped() -> None:
    options = JsonLdSerializationOptions(context={"@context": {"ex": "http://example.com/"}})
    assert options.context == {"ex": "http://example.com/"}
    with pytest.raises(ValueError):
        JsonLdSerializationOptions(context={"@context": "http://example.com/context.jsonld"})


def test_compactor_prefers_longest_prefix() -> None:
    compactor = Compactor({"ex": "http://example.com/", "sub": "http://example.com/sub/"})
    assert compactor.prefixed("http://example.com/sub/x") == "sub:x"
    assert compactor.prefixed("http://example.com/x") == "ex:x"
    assert compactor.prefixed("http://example.com/") == "http://example.com/"
    assert compactor.prefixed("http://other.org/x") == "http://other.org/x"


def test_serialize_is_valid_json() -> None:
    text = serialize_jsonld([Triple(EX.s, EX.p, Literal("é"))])
    assert text.endswith("\n")
    assert "é" in text
    assert json.loads(text) == [{"@id": "http://example.com/s", "http://example.com/p": [{"@value": "é"}]}]
    ascii_text = serialize_jsonld(
        [Triple(EX.s, EX.p, Literal("é"))], JsonLdSerializationOptions(ascii_only=True)
    )
    assert "\\u00e9" in ascii_text


def test_write_jsonld() -> None:
    out = io.StringIO()
    write_jsonld(iter([Triple(EX.s, EX.p, EX.o)]), out, JsonLdSerializationOptions(indent=None))
    assert out.getvalue() == (
        '[{"@id": "http://example.com/s", "http://example.com/p": [{"@id": "http://example.com/o"}]}]\n'
    )
