from __future__ import annotations

import pytest

from rdfkit.bnodes import BlankNodeScope
from rdfkit.errors import LexicalError, RdfSyntaxError, ResolutionError, StructuralError
from rdfkit.ns import RDF, XSD, Namespace
from rdfkit.ntriples import parse_ntriples
from rdfkit.terms import BlankNode, Iri, Literal
from rdfkit.triples import Quad, Triple
from rdfkit.turtle import TurtleParser, parse_trig, parse_turtle

EX = Namespace("http://example.com/")


def turtle(text: str, **kwargs) -> list[Triple]:
    return parse_turtle(text, **kwargs).to_list()


def test_prefixes_and_predicate_object_lists() -> None:
    triples = turtle(
        """
        @prefix ex: <http://example.com/> .
        ex:s a ex:Thing ;
            ex:name "Thing"@en , 'other' ;
            ex:link ex:o ;
            .
        """
    )
    assert triples == [
        Triple(EX.s, RDF.type, EX.Thing),
        Triple(EX.s, EX.name, Literal("Thing", language="en")),
        Triple(EX.s, EX.name, Literal("other")),
        Triple(EX.s, EX.link, EX.o),
    ]


def test_sparql_style_directives() -> None:
    triples = turtle(
        """
        PREFIX ex: <http://example.com/>
        base <http://example.com/dir/>
        ex:s ex:p <rel> .
        """
    )
    assert triples == [Triple(EX.s, EX.p, Iri("http://example.com/dir/rel"))]


def test_empty_prefix_and_local_name_escapes() -> None:
    triples = turtle(
        "@prefix : <http://example.com/> .\n"
        ":s :p :a.b , :c\\-d , :e%20f , :g: .\n"
    )
    assert [t.object for t in triples] == [
        EX["a.b"],
        EX["c-d"],
        EX["e%20f"],
        EX["g:"],
    ]


def test_collection_expands_to_list_triples() -> None:
    triples = turtle('@prefix ex: <http://example.com/> .\nex:s ex:p ( "a" "b" ) .\n')
    list_triples = [t for t in triples if t.predicate in (RDF.first, RDF.rest)]
    assert len(list_triples) == 4

    link = [t for t in triples if t.predicate == EX.p]
    assert len(link) == 1
    head = link[0].object
    assert isinstance(head, BlankNode)

    firsts = {t.subject: t.object for t in list_triples if t.predicate == RDF.first}
    rests = {t.subject: t.object for t in list_triples if t.predicate == RDF.rest}
    assert firsts[head] == Literal("a")
    second = rests[head]
    assert firsts[second] == Literal("b")
    assert rests[second] == RDF.nil


def test_empty_collection_is_nil() -> None:
    triples = turtle("<http://example.com/s> <http://example.com/p> () .")
    assert triples == [Triple(EX.s, EX.p, RDF.nil)]


def test_blank_node_property_lists() -> None:
    triples = turtle(
        "@prefix ex: <http://example.com/> .\n"
        "ex:s ex:p [ ex:q 1 ] .\n"
        "[ ex:r ex:o ] .\n"
        "[] ex:t ex:o .\n"
    )
    assert len(triples) == 4
    inner, outer = triples[0], triples[1]
    assert outer.subject == EX.s and outer.object == inner.subject
    assert isinstance(inner.subject, BlankNode)
    assert triples[2].predicate == EX.r
    assert isinstance(triples[3].subject, BlankNode)
    assert triples[3].subject not in (inner.subject, triples[2].subject)


def test_numeric_and_boolean_shorthand_keep_lexical_form() -> None:
    triples = turtle(
        "@prefix ex: <http://example.com/> .\n"
        "ex:s ex:p +01, -2.50, 1e3, .5, true, false, 7.\n"
    )
    assert [t.object for t in triples] == [
        Literal("+01", XSD.integer),
        Literal("-2.50", XSD.decimal),
        Literal("1e3", XSD.double),
        Literal(".5", XSD.decimal),
        Literal("true", XSD.boolean),
        Literal("false", XSD.boolean),
        Literal("7", XSD.integer),
    ]


def test_long_strings_and_typed_literals() -> None:
    triples = turtle(
        '@prefix ex: <http://example.com/> .\n'
        '@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .\n'
        'ex:s ex:p """two\nlines""" , "5"^^xsd:integer , \'\'\'it\'s\'\'\' .\n'
    )
    assert [t.object for t in triples] == [
        Literal("two\nlines"),
        Literal("5", XSD.integer),
        Literal("it's"),
    ]


def test_relative_iris_resolve_against_base() -> None:
    triples = turtle("<a> <p> <../c> .", base_iri="http://example.com/x/y/")
    assert triples == [
        Triple(
            Iri("http://example.com/x/y/a"),
            Iri("http://example.com/x/y/p"),
            Iri("http://example.com/x/c"),
        )
    ]


def test_base_directives_chain() -> None:
    triples = turtle("@base <http://example.com/a/> .\n@base <b/> .\n<c> <d> <e> .")
    assert triples[0].subject == Iri("http://example.com/a/b/c")


def test_relative_base_without_enclosing_base_fails() -> None:
    with pytest.raises(ResolutionError):
        turtle("@base <b/> .\n<c> <d> <e> .")


def test_relative_iris_without_base_are_kept() -> None:
    parser = TurtleParser("<a> <b> <c> .")
    assert parser.base_iri is None
    assert parser.parse() == [Triple(Iri("a"), Iri("b"), Iri("c"))]


def test_undeclared_prefix_reports_position() -> None:
    with pytest.raises(ResolutionError) as excinfo:
        turtle("<http://example.com/s> <http://example.com/p>\n  ex:o .", source="doc.ttl")
    assert excinfo.value.line == 2
    assert excinfo.value.column == 3
    assert excinfo.value.source == "doc.ttl"


@pytest.mark.parametrize(
    "text, error",
    [
        ('<http://e/s> <http://e/p> "unterminated .', LexicalError),
        ("<http://e/s> <http://e/p> ( <http://e/o> .", RdfSyntaxError),
        ("<http://e/s> <http://e/p> <http://e/o>", RdfSyntaxError),
        ('"lit" <http://e/p> <http://e/o> .', RdfSyntaxError),
        ("<http://e/s> [] <http://e/o> .", RdfSyntaxError),
        ("[] .", RdfSyntaxError),
        ("[ ] .", RdfSyntaxError),
        ('<http://e/s> <http://e/p> "x"@en^^<http://e/t> .', RdfSyntaxError),
        ('<http://e/s> <http://e/p> "x"^^<http://www.w3.org/1999/02/22-rdf-syntax-ns#langString> .', StructuralError),
    ],
)
def test_syntax_errors(text: str, error: type[Exception]) -> None:
    with pytest.raises(error):
        turtle(text)


def test_statement_items_are_not_yielded_on_error() -> None:
    source = parse_turtle(
        "@prefix ex: <http://example.com/> .\n"
        "ex:a ex:p ex:b .\n"
        'ex:c ex:p ex:d , "unterminated .\n'
    )
    outcomes = list(source.results())
    assert [o.ok for o in outcomes] == [True, False]
    assert outcomes[0].value == Triple(EX.a, EX.p, EX.b)
    assert isinstance(outcomes[1].error, LexicalError)


def test_turtle_matches_its_ntriples_expansion() -> None:
    ttl = (
        "@prefix ex: <http://example.com/> .\n"
        "ex:s ex:p ex:o , _:b ;\n"
        '    ex:q "v"@en .\n'
        "_:b ex:r 42 .\n"
    )
    nt = (
        "<http://example.com/s> <http://example.com/p> <http://example.com/o> .\n"
        "<http://example.com/s> <http://example.com/p> _:b .\n"
        '<http://example.com/s> <http://example.com/q> "v"@en .\n'
        '_:b <http://example.com/r> "42"^^<http://www.w3.org/2001/XMLSchema#integer> .\n'
    )
    from_turtle = set(turtle(ttl, scope=BlankNodeScope(preserve_labels=True)))
    from_ntriples = set(parse_ntriples(nt, scope=BlankNodeScope(preserve_labels=True)))
    assert from_turtle == from_ntriples


def test_shared_scope_joins_blank_nodes_across_documents() -> None:
    scope = BlankNodeScope()
    first = turtle("_:x <http://e/p> <http://e/o> .", scope=scope)
    second = turtle("_:x <http://e/q> <http://e/o> .", scope=scope)
    assert first[0].subject == second[0].subject
    third = turtle("_:x <http://e/q> <http://e/o> .")
    assert third[0].subject != first[0].subject


def test_parsing_is_lazy() -> None:
    source = parse_turtle("<http://e/s> <http://e/p> <http://e/o> .\n<http://e/s> <http://e/p> oops:x .")
    assert next(source) == Triple(Iri("http://e/s"), Iri("http://e/p"), Iri("http://e/o"))
    with pytest.raises(ResolutionError):
        next(source)


TRIG = """
@prefix ex: <http://example.com/> .
ex:a ex:p ex:b .
ex:g { ex:c ex:p ex:d . ex:e ex:p ex:f }
GRAPH ex:h { ex:x ex:p "1" }
{ ex:y ex:p ex:z . }
_:bg { ex:u ex:p ex:v }
"""


def test_parse_trig_blocks() -> None:
    quads = parse_trig(TRIG, scope=BlankNodeScope(preserve_labels=True)).to_list()
    assert quads == [
        Quad(EX.a, EX.p, EX.b),
        Quad(EX.c, EX.p, EX.d, EX.g),
        Quad(EX.e, EX.p, EX.f, EX.g),
        Quad(EX.x, EX.p, Literal("1"), EX.h),
        Quad(EX.y, EX.p, EX.z),
        Quad(EX.u, EX.p, EX.v, BlankNode("bg")),
    ]


def test_trig_graph_keyword_does_not_clash_with_prefix() -> None:
    quads = parse_trig("@prefix graph: <http://example.com/> .\ngraph:a graph:p graph:b .").to_list()
    assert quads == [Quad(EX.a, EX.p, EX.b)]


def test_trig_collection_inside_named_graph() -> None:
    quads = parse_trig("@prefix ex: <http://example.com/> .\nex:g { ex:s ex:p ( 1 ) }").to_list()
    assert len(quads) == 3
    assert {q.graph for q in quads} == {EX.g}


def test_trig_unterminated_block() -> None:
    with pytest.raises(RdfSyntaxError):
        parse_trig("@prefix ex: <http://example.com/> .\nex:g { ex:a ex:p ex:b .").to_list()


def test_anonymous_subject_needs_properties() -> None:
    assert len(turtle("[ <http://e/p> <http://e/o> ] .")) == 1
    assert len(parse_trig("[ <http://e/p> <http://e/o> ] .").to_list()) == 1
    with pytest.raises(RdfSyntaxError):
        parse_trig("[] .").to_list()
    with pytest.raises(RdfSyntaxError):
        parse_trig("<http://e/g> { [] . }").to_list()


def test_trig_graph_block_streams_statements() -> None:
    source = parse_trig(
        "@prefix ex: <http://example.com/> .\nex:g { ex:a ex:p ex:b . ex:c ex:p \"oops }"
    )
    assert next(source) == Quad(EX.a, EX.p, EX.b, EX.g)
    with pytest.raises(LexicalError):
        next(source)
