from __future__ import annotations

import pytest

from rdfkit.errors import ResolutionError
from rdfkit.iri import IriResolver, encode_iri_ref, has_scheme, resolve_iri_reference, validate_iri

BASE = "http://a/b/c/d;p?q"


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("g", "http://a/b/c/g"),
        ("./g", "http://a/b/c/g"),
        ("g/", "http://a/b/c/g/"),
        ("/g", "http://a/g"),
        ("?y", "http://a/b/c/d;p?y"),
        ("g?y", "http://a/b/c/g?y"),
        ("#s", "http://a/b/c/d;p?q#s"),
        ("g#s", "http://a/b/c/g#s"),
        ("..", "http://a/b/"),
        ("../g", "http://a/b/g"),
        ("../..", "http://a/"),
        ("../../g", "http://a/g"),
        ("../../../g", "http://a/g"),
        ("/./g", "http://a/g"),
        ("g.", "http://a/b/c/g."),
        ("g;x=1/../y", "http://a/b/c/y"),
        ("", "http://a/b/c/d;p?q"),
    ],
)
def test_rfc3986_reference_resolution(reference: str, expected: str) -> None:
    assert resolve_iri_reference(BASE, reference) == expected


def test_parent_segment_and_empty_reference() -> None:
    assert resolve_iri_reference("http://a/b/", "../c") == "http://a/c"
    assert resolve_iri_reference("http://a/b#frag", "") == "http://a/b"


def test_absolute_reference_is_normalized() -> None:
    assert resolve_iri_reference(BASE, "http://x/y/../z") == "http://x/z"
    assert resolve_iri_reference(BASE, "urn:isbn:123") == "urn:isbn:123"


def test_double_slashes_are_kept() -> None:
    assert resolve_iri_reference("http://a/b//c", "d") == "http://a/b//d"


def test_explicit_empty_query_and_fragment_survive() -> None:
    assert resolve_iri_reference("http://a/b", "c?") == "http://a/c?"
    assert resolve_iri_reference("http://a/b", "c#") == "http://a/c#"


def test_empty_authority_is_kept() -> None:
    assert resolve_iri_reference("foo:///a/b", "y") == "foo:///a/y"
    assert resolve_iri_reference("file:///a/b", "../c") == "file:///c"
    assert resolve_iri_reference(BASE, "file:///x/./y") == "file:///x/y"
    assert resolve_iri_reference("foo:a/b", "c") == "foo:a/c"


def test_resolver_requires_absolute_base() -> None:
    with pytest.raises(ResolutionError):
        IriResolver("relative/base")


def test_resolver_resolves_and_rebases() -> None:
    resolver = IriResolver("http://example.com/dir/doc")
    assert resolver.resolve("other") == "http://example.com/dir/other"
    assert resolver.resolve("http://elsewhere.org/x") == "http://elsewhere.org/x"
    nested = resolver.rebase("sub/")
    assert nested.base_iri == "http://example.com/dir/sub/"
    assert nested.resolve("x") == "http://example.com/dir/sub/x"


def test_resolver_rejects_invalid_references() -> None:
    with pytest.raises(ResolutionError):
        IriResolver("http://example.com/").resolve("a b")


def test_scheme_detection() -> None:
    assert has_scheme("http://x")
    assert has_scheme("urn:x")
    assert not has_scheme("x/y:z")
    assert not has_scheme("1http://x")


def test_validate_iri() -> None:
    validate_iri("", require_absolute=False, allow_empty=True)
    with pytest.raises(ValueError):
        validate_iri("", require_absolute=False, allow_empty=False)
    with pytest.raises(ValueError):
        validate_iri("rel", require_absolute=True, allow_empty=False)


def test_encode_iri_ref() -> None:
    assert encode_iri_ref("http://x/a b") == "<http://x/a\\u0020b>"
    assert encode_iri_ref("http://x/é") == "<http://x/é>"
    assert encode_iri_ref("http://x/é", ascii_only=True) == "<http://x/\\u00E9>"
    assert encode_iri_ref("http://x/\U0001F600", ascii_only=True) == "<http://x/\\U0001F600>"
