from __future__ import annotations

import pytest

from sieve.config import Entry
from sieve.engine.template import expand, parse_declaration, render, validate_declaration
from sieve.errors import ParseError, ValidationError


def test_parse_declaration_accepts_json_yaml_and_objects() -> None:
    assert parse_declaration('{"url": "http://example.com"}') == {"url": "http://example.com"}
    assert parse_declaration(b'[{"url": "http://example.com"}]') == [{"url": "http://example.com"}]
    assert parse_declaration("url: http://example.com\n") == {"url": "http://example.com"}
    payload = {"url": "http://example.com"}
    assert parse_declaration(payload) is payload


def test_parse_declaration_rejects_malformed_text() -> None:
    with pytest.raises(ParseError):
        parse_declaration("{not json")
    with pytest.raises(ParseError):
        parse_declaration("just a sentence")


def test_validate_declaration_lists_offending_fields() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_declaration({"method": "GET"})
    assert excinfo.value.fields == ["url"]

    with pytest.raises(ValidationError) as excinfo:
        validate_declaration([{"url": "http://a"}, {"url": "http://b", "bogus": 1}])
    assert excinfo.value.fields == ["[1].bogus"]


def test_validate_declaration_rejects_non_mappings() -> None:
    with pytest.raises(ValidationError):
        validate_declaration("http://example.com")
    with pytest.raises(ValidationError):
        validate_declaration([])


def test_render_fills_placeholders() -> None:
    data = {"id": 7, "user": {"name": "ada"}}
    assert render("http://x/{{ id }}/{{user.name}}", data) == "http://x/7/ada"
    assert render("http://x/{{missing}}", data) == "http://x/"


def test_expand_singular_entry_without_data() -> None:
    entry = Entry(url="http://example.com")
    assert expand(entry) is entry


def test_expand_scalar_data_stays_singular() -> None:
    entry = Entry(url="http://example.com/{{id}}", data={"id": 3}, headers={"X-Id": "{{id}}"})
    expanded = expand(entry)
    assert isinstance(expanded, Entry)
    assert expanded.url == "http://example.com/3"
    assert expanded.headers == {"X-Id": "3"}
    assert expanded.data is None


def test_expand_lists_fan_out_in_declaration_order() -> None:
    entry = Entry(
        url="http://example.com/{{section}}/{{page}}",
        data={"section": ["a", "b"], "page": [1, 2]},
        selection="{{section}}",
    )
    batch = expand(entry)
    assert [item.url for item in batch] == [
        "http://example.com/a/1",
        "http://example.com/a/2",
        "http://example.com/b/1",
        "http://example.com/b/2",
    ]
    assert [item.selection for item in batch] == ["a", "a", "b", "b"]


def test_expand_list_declaration_flattens() -> None:
    declaration = validate_declaration(
        [
            {"url": "http://example.com/one"},
            {"url": "http://example.com/{{n}}", "data": {"n": ["two", "three"]}},
        ]
    )
    batch = expand(declaration)
    assert [item.url for item in batch] == [
        "http://example.com/one",
        "http://example.com/two",
        "http://example.com/three",
    ]


def test_expand_empty_list_yields_empty_batch() -> None:
    assert expand(Entry(url="http://example.com/{{id}}", data={"id": []})) == []
