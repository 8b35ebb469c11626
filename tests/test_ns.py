from __future__ import annotations

import pytest

from rdfkit.errors import StructuralError
from rdfkit.ns import RDF, XML, XSD, Namespace
from rdfkit.terms import Iri


def test_namespace_builds_split_iris() -> None:
    ex = Namespace("http://example.com/")
    term = ex.name
    assert term == Iri("http://example.com/name")
    assert term.split() == ("http://example.com/", "name")
    assert ex["has-dash"] == Iri("http://example.com/has-dash")
    assert ex.term("x") == ex.x


def test_standard_namespaces() -> None:
    assert RDF.type == Iri("http://www.w3.org/1999/02/22-rdf-syntax-ns#type")
    assert XSD.integer.value == "http://www.w3.org/2001/XMLSchema#integer"
    assert XML.lang.value == "http://www.w3.org/XML/1998/namespace#lang"


def test_namespace_membership() -> None:
    ex = Namespace("http://example.com/")
    assert ex.a in ex
    assert Iri("http://other.org/a") not in ex
    assert "http://example.com/a" not in ex


def test_namespace_must_be_absolute() -> None:
    with pytest.raises(StructuralError):
        Namespace("relative/")


def test_namespace_equality() -> None:
    assert Namespace("http://example.com/") == Namespace("http://example.com/")
    assert len({Namespace("http://example.com/"), Namespace("http://example.com/")}) == 1
    assert str(Namespace("http://example.com/")) == "http://example.com/"
