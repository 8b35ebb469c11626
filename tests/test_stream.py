from __future__ import annotations

import pytest

from rdfkit.errors import RdfSyntaxError, StructuralError
from rdfkit.graph import HashDataset, HashGraph
from rdfkit.stream import Source, as_source
from rdfkit.terms import Iri, Literal
from rdfkit.triples import Quad, Triple

P = Iri("http://example.com/p")


def triple(n: int) -> Triple:
    return Triple(Iri(f"http://example.com/s{n}"), P, Literal(str(n)))


def test_source_is_single_pass() -> None:
    source = Source([triple(1), triple(2)])
    assert list(source) == [triple(1), triple(2)]
    assert list(source) == []
    assert source.exhausted
    assert source.count == 2


def test_failing_source_keeps_inserted_items() -> None:
    error = RdfSyntaxError("<test>", 3, 1, "broken")
    source = Source.failing([triple(1), triple(2), triple(3)], error)
    graph = HashGraph()

    with pytest.raises(RdfSyntaxError) as excinfo:
        source.collect_into(graph)

    assert excinfo.value is error
    assert len(graph) == 3
    assert source.error is error
    assert list(source) == []


def test_results_report_the_terminal_error() -> None:
    error = StructuralError("boom")
    outcomes = list(Source.failing([triple(1)], error).results())
    assert [o.ok for o in outcomes] == [True, False]
    assert outcomes[0].unwrap() == triple(1)
    assert outcomes[1].error is error
    with pytest.raises(StructuralError):
        outcomes[1].unwrap()


def test_map_and_filter_are_lazy() -> None:
    seen: list[Triple] = []

    def record(item: Triple) -> Triple:
        seen.append(item)
        return item

    source = Source([triple(n) for n in range(5)]).map_items(record)
    evens = source.filter_items(lambda t: int(t.object.value) % 2 == 0)
    assert seen == []
    assert next(evens) == triple(0)
    assert seen == [triple(0)]
    assert list(evens) == [triple(2), triple(4)]


def test_for_each_counts_and_stops_at_error() -> None:
    collected: list[Triple] = []
    assert Source([triple(1), triple(2)]).for_each(collected.append) == 2

    collected.clear()
    failing = Source.failing([triple(1)], StructuralError("boom"))
    with pytest.raises(StructuralError):
        failing.for_each(collected.append)
    assert collected == [triple(1)]


def test_collect_into_reports_new_items_only() -> None:
    graph = HashGraph([triple(1)])
    assert Source([triple(1), triple(2), triple(2)]).collect_into(graph) == 1
    assert len(graph) == 2


def test_collect_triples_into_dataset_default_graph() -> None:
    dataset = HashDataset()
    Source([triple(1)]).collect_into(dataset)
    assert Quad(*triple(1), None) in dataset


def test_named_quads_cannot_go_into_a_graph() -> None:
    quad = triple(1).to_quad(Iri("http://example.com/g"))
    with pytest.raises(StructuralError):
        Source([quad]).collect_into(HashGraph())
    graph = HashGraph()
    Source([triple(2).to_quad()]).collect_into(graph)
    assert triple(2) in graph


def test_remove_from() -> None:
    graph = HashGraph([triple(1), triple(2)])
    assert Source([triple(1), triple(3)]).remove_from(graph) == 1
    assert list(graph) == [triple(2)]


def test_as_source_wraps_graphs_and_iterables() -> None:
    graph = HashGraph([triple(1)])
    assert as_source(graph).to_list() == [triple(1)]
    source = Source([])
    assert as_source(source) is source
    assert as_source(iter([triple(2)])).to_list() == [triple(2)]
