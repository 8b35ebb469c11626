from __future__ import annotations

import io

import pytest

from rdfkit.bnodes import BlankNodeScope
from rdfkit.errors import StructuralError
from rdfkit.ns import RDF, XSD, Namespace
from rdfkit.serializer import (
    TurtleSerializationOptions,
    choose_turtle_prefixes,
    collect_list_compaction,
    escape_pn_local,
    is_valid_prefix_label,
    serialize_trig,
    serialize_trig_with_meta,
    serialize_turtle,
    serialize_turtle_with_meta,
    split_iri_for_prefix,
    write_trig,
    write_turtle,
)
from rdfkit.terms import BlankNode, Literal
from rdfkit.triples import Quad, Triple
from rdfkit.turtle import parse_trig, parse_turtle

EX = Namespace("http://example.com/")

PRETTY = TurtleSerializationOptions(pretty=True)


def test_line_mode_writes_one_statement_per_line() -> None:
    triples = [Triple(EX.s, EX.p, Literal("o")), Triple(EX.s, EX.p, BlankNode("b"))]
    assert serialize_turtle(triples) == (
        '<http://example.com/s> <http://example.com/p> "o" .\n'
        "<http://example.com/s> <http://example.com/p> _:b .\n"
    )


def test_line_mode_with_output_base() -> None:
    options = TurtleSerializationOptions(output_base="http://example.com/")
    text, meta = serialize_turtle_with_meta([Triple(EX.s, EX.p, EX.o)], options)
    assert text.splitlines()[0] == "@base <http://example.com/> ."
    assert meta["triples_serialized"] == 1


def test_pretty_groups_by_subject_and_declares_prefixes() -> None:
    triples = [
        Triple(EX.s, EX.p, EX.o1),
        Triple(EX.s, EX.p, EX.o2),
        Triple(EX.s, EX.q, Literal("x")),
        Triple(EX.s, EX.p, EX.o1),
    ]
    text, meta = serialize_turtle_with_meta(triples, PRETTY)
    assert text == (
        "@prefix ns1: <http://example.com/> .\n"
        "\n"
        "ns1:s ns1:p ns1:o1, ns1:o2\n"
        '    ; ns1:q "x" .\n'
    )
    assert meta == {"prefixes_emitted": 1, "lists_compacted": 0, "triples_serialized": 3}


def test_pretty_uses_well_known_prefixes_and_a() -> None:
    triples = [
        Triple(EX.s, RDF.type, EX.Thing),
        Triple(EX.s, EX.p, Literal("1", XSD.integer)),
    ]
    text = serialize_turtle(triples, PRETTY)
    assert "@prefix xsd: <http://www.w3.org/2001/XMLSchema#> ." in text
    assert "ns1:s a ns1:Thing" in text
    assert '"1"^^xsd:integer' in text
    assert "rdf:" not in text


def test_pretty_compacts_lists() -> None:
    source = parse_turtle('@prefix ex: <http://example.com/> .\nex:s ex:p ( "a" "b" ) .\n')
    text, meta = serialize_turtle_with_meta(source, PRETTY)
    assert text == '@prefix ns1: <http://example.com/> .\n\nns1:s ns1:p ("a" "b") .\n'
    assert meta["lists_compacted"] == 1
    assert meta["triples_serialized"] == 1


def test_lists_off_keeps_list_triples() -> None:
    source = parse_turtle('@prefix ex: <http://example.com/> .\nex:s ex:p ( "a" ) .\n')
    text = serialize_turtle(source, TurtleSerializationOptions(pretty=True, lists="off"))
    assert "rdf:first" in text
    assert "rdf:nil" in text


def test_shared_list_nodes_are_not_compacted() -> None:
    head = BlankNode("l")
    triples = [
        Triple(head, RDF.first, Literal("a")),
        Triple(head, RDF.rest, RDF.nil),
        Triple(EX.s, EX.p, head),
        Triple(EX.t, EX.p, head),
    ]
    heads, removed = collect_list_compaction(triples)
    assert heads == {}
    assert removed == set()


def test_lists_referenced_only_from_their_own_chain_are_kept() -> None:
    own = BlankNode("l")
    a, b = BlankNode("a"), BlankNode("b")
    for triples in (
        [Triple(own, RDF.first, own), Triple(own, RDF.rest, RDF.nil)],
        [
            Triple(a, RDF.first, b),
            Triple(a, RDF.rest, RDF.nil),
            Triple(b, RDF.first, a),
            Triple(b, RDF.rest, RDF.nil),
        ],
    ):
        assert collect_list_compaction(triples) == ({}, set())
        text = serialize_turtle(triples, PRETTY)
        reparsed = parse_turtle(text, scope=BlankNodeScope(preserve_labels=True)).to_list()
        assert set(reparsed) == set(triples)


def test_nested_list_inside_a_compacted_list() -> None:
    source = parse_turtle('@prefix ex: <http://example.com/> .\nex:s ex:p ( ( "a" ) "b" ) .\n')
    text, meta = serialize_turtle_with_meta(source, PRETTY)
    assert text.endswith('ns1:s ns1:p (("a") "b") .\n')
    assert meta["lists_compacted"] == 2


def test_manual_prefixes_win() -> None:
    options = TurtleSerializationOptions(pretty=True, prefixes={"ex": "http://example.com/"})
    text = serialize_turtle([Triple(EX.s, EX.p, EX.o)], options)
    assert text == "@prefix ex: <http://example.com/> .\n\nex:s ex:p ex:o .\n"


def test_auto_prefixes_off() -> None:
    options = TurtleSerializationOptions(pretty=True, auto_prefixes=False)
    text = serialize_turtle([Triple(EX.s, EX.p, EX.o)], options)
    assert text == "<http://example.com/s> <http://example.com/p> <http://example.com/o> .\n"


def test_pretty_output_parses_back_to_the_same_graph() -> None:
    original = parse_turtle(
        "@prefix ex: <http://example.com/> .\n"
        "ex:s ex:p _:b ;\n"
        '    ex:q "a.b"@en , ex:local.name , "say \\"hi\\"" .\n'
        '_:b ex:r "x" .\n',
        scope=BlankNodeScope(preserve_labels=True),
    ).to_list()
    text = serialize_turtle(original, PRETTY)
    reparsed = parse_turtle(text, scope=BlankNodeScope(preserve_labels=True)).to_list()
    assert set(reparsed) == set(original)


def test_compacted_lists_parse_back_to_list_triples() -> None:
    text = serialize_turtle(
        parse_turtle('@prefix ex: <http://example.com/> .\nex:s ex:p ( 1 2 ) .\n'), PRETTY
    )
    reparsed = parse_turtle(text).to_list()
    firsts = [t.object for t in reparsed if t.predicate == RDF.first]
    assert firsts == [Literal("1", XSD.integer), Literal("2", XSD.integer)]
    assert len(reparsed) == 5


def test_named_graphs_cannot_be_written_as_turtle() -> None:
    with pytest.raises(StructuralError):
        serialize_turtle([Quad(EX.s, EX.p, EX.o, EX.g)])
    assert serialize_turtle([Quad(EX.s, EX.p, EX.o)]).startswith("<http://example.com/s>")


def test_trig_line_mode_groups_consecutive_graph_statements() -> None:
    quads = [
        Quad(EX.s, EX.p, EX.o),
        Quad(EX.s, EX.p, EX.o1, EX.g),
        Quad(EX.s, EX.p, EX.o2, EX.g),
        Quad(EX.s, EX.p, EX.o3, BlankNode("h")),
    ]
    assert serialize_trig(quads) == (
        "<http://example.com/s> <http://example.com/p> <http://example.com/o> .\n"
        "<http://example.com/g> {\n"
        "    <http://example.com/s> <http://example.com/p> <http://example.com/o1> .\n"
        "    <http://example.com/s> <http://example.com/p> <http://example.com/o2> .\n"
        "}\n"
        "_:h {\n"
        "    <http://example.com/s> <http://example.com/p> <http://example.com/o3> .\n"
        "}\n"
    )


def test_trig_pretty() -> None:
    quads = [
        Quad(EX.s, EX.p, EX.o),
        Quad(EX.s, EX.p, EX.o1, EX.g),
    ]
    text, meta = serialize_trig_with_meta(quads, PRETTY)
    assert text == (
        "@prefix ns1: <http://example.com/> .\n"
        "\n"
        "ns1:s ns1:p ns1:o .\n"
        "ns1:g {\n"
        "    ns1:s ns1:p ns1:o1 .\n"
        "}\n"
    )
    assert meta["graphs_serialized"] == 2


def test_trig_output_parses_back() -> None:
    quads = [
        Quad(EX.s, EX.p, EX.o),
        Quad(EX.s, EX.p, Literal("x", language="en"), EX.g),
        Quad(EX.t, EX.p, EX.o, EX.h),
    ]
    for options in (None, PRETTY):
        assert set(parse_trig(serialize_trig(quads, options))) == set(quads)


def test_streaming_writers() -> None:
    out = io.StringIO()
    write_turtle(iter([Triple(EX.s, EX.p, EX.o)]), out)
    assert out.getvalue().endswith(" .\n")
    out = io.StringIO()
    write_trig([Quad(EX.s, EX.p, EX.o, EX.g)], out, PRETTY)
    assert out.getvalue().endswith("}\n")


def test_escape_pn_local() -> None:
    assert escape_pn_local("name") == "name"
    assert escape_pn_local("a.") == "a\\."
    assert escape_pn_local("a.b") == "a.b"
    assert escape_pn_local("a~b") == "a\\~b"
    assert escape_pn_local("a%20b") == "a%20b"
    assert escape_pn_local("1abc") == "1abc"
    assert escape_pn_local("a b") is None
    assert escape_pn_local("é") == "é"
    assert escape_pn_local("é", ascii_only=True) is None


def test_split_iri_for_prefix() -> None:
    assert split_iri_for_prefix("http://example.com/a/b") == ("http://example.com/a/", "b")
    assert split_iri_for_prefix("http://example.com/o#frag") == ("http://example.com/o#", "frag")
    assert split_iri_for_prefix("urn:isbn:123") == ("urn:isbn:", "123")
    assert split_iri_for_prefix("relative") is None


def test_prefix_threshold() -> None:
    other = Namespace("http://other.org/")
    triples = [Triple(EX.s, RDF.type, other.a), Triple(EX.t, RDF.type, other.b)]
    assert choose_turtle_prefixes(triples, {}, threshold=3) == {}
    chosen = choose_turtle_prefixes(triples, {}, threshold=2)
    assert set(chosen.values()) == {"http://example.com/", "http://other.org/"}


def test_prefix_labels() -> None:
    assert is_valid_prefix_label("")
    assert is_valid_prefix_label("ex.2")
    assert not is_valid_prefix_label("2ex")
    assert not is_valid_prefix_label("ex.")
    assert not is_valid_prefix_label("e:x")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"lists": "sometimes"},
        {"prefixes": {"bad:": "http://example.com/"}},
        {"prefix_threshold": 0},
        {"output_base": "relative/"},
    ],
)
def test_invalid_options(kwargs) -> None:
    with pytest.raises(ValueError):
        TurtleSerializationOptions(**kwargs)
