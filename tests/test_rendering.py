"""Tests for zettel_tags/engine/rendering.py - tag names and output formats."""

import json
from dataclasses import replace

import pytest

from zettel_tags.common.config_loader import FieldToggles
from zettel_tags.engine.rendering import (
    compact_line,
    encoded_tag_name,
    format_tag_line,
    format_xref_line,
    percent_encode,
    render_tags,
    summary_line,
)
from zettel_tags.engine.types import Tag


def _tag(name, kind, **kwargs):
    kwargs.setdefault("source", "note.md")
    return Tag(name=name, kind=kind, **kwargs)


class TestPercentEncode:
    """Tests for percent_encode."""

    def test_spaces_and_percent(self):
        """Spaces and percent signs are encoded."""
        assert percent_encode("a b%") == "a%20b%25"

    def test_non_ascii_utf8(self):
        """Non-ASCII characters are encoded byte by byte in lowercase hex."""
        assert percent_encode("é") == "%c3%a9"

    def test_printable_ascii_unchanged(self):
        """Printable ASCII other than % passes through."""
        assert percent_encode("Z-01_a.b") == "Z-01_a.b"

    def test_force(self):
        """force=True encodes every byte."""
        assert percent_encode("=", force=True) == "%3d"


class TestEncodedTagName:
    """Tests for encoded_tag_name."""

    def test_title_encoded(self, settings):
        """Titles are percent-encoded."""
        assert encoded_tag_name(_tag("My Note", "title"), settings) == "My%20Note"

    def test_own_prefix_kept(self, settings):
        """A tag's own prefix is kept verbatim."""
        settings = replace(settings, title_prefix="= ")
        assert encoded_tag_name(_tag("= My Note", "title"), settings) == "= My%20Note"

    def test_other_prefix_escaped(self, settings):
        """A keyword that looks like a prefixed title has its first character encoded."""
        settings = replace(settings, title_prefix="=", keyword_prefix="#")
        assert encoded_tag_name(_tag("=foo", "keyword"), settings) == "%3dfoo"

    def test_leading_bang(self, settings):
        """A leading ! is encoded."""
        assert encoded_tag_name(_tag("!bang", "keyword"), settings) == "%21bang"

    def test_reference_title_encoded(self, settings):
        """Reference titles are encoded like titles."""
        assert encoded_tag_name(_tag("A Book", "reftitle"), settings) == "A%20Book"

    def test_identifiers_unchanged(self, settings):
        """Identifiers and citation keys pass through."""
        assert encoded_tag_name(_tag("Z001", "id"), settings) == "Z001"
        assert encoded_tag_name(_tag("@smith2020", "citekey"), settings) == "@smith2020"

    def test_body_tags_unchanged(self, settings):
        """Body tags are never encoded."""
        tag = _tag("a b", "wikilink", origin="body")
        assert encoded_tag_name(tag, settings) == "a b"


class TestSummaryLine:
    """Tests for summary_line."""

    def test_metadata_default_format(self, settings):
        """The default format joins identifier and title."""
        tag = _tag("alpha", "keyword", fields={"identifier": "Z1", "title": "T"})
        assert summary_line(tag, settings) == "Z1:T"

    def test_missing_fields_render_empty(self, settings):
        """Unset fields render as empty strings."""
        assert summary_line(_tag("alpha", "keyword"), settings) == ":"

    def test_custom_format(self, settings):
        """Custom formats may use name, kind and line."""
        settings = replace(settings, summary_format="{kind} {name} @{line}")
        assert summary_line(_tag("alpha", "keyword", line=4), settings) == "keyword alpha @4"

    def test_body_tag_uses_source_line(self, settings):
        """Body tags summarize to their compacted source line."""
        tag = _tag("a", "wikilink", origin="body", source_text="  see   [[a]]\t now ")
        assert summary_line(tag, settings) == "see [[a]] now"

    def test_compact_line(self):
        """Whitespace runs collapse to one space."""
        assert compact_line(" a \t b\n") == "a b"
        assert compact_line(None) == ""


class TestOutputFormats:
    """Tests for tag line, xref and JSON output."""

    def test_tag_line(self, settings):
        """Tag lines list name, file, address, kind, line and fields."""
        tag = _tag("Z001", "id", line=2, fields={"identifier": "Z001", "title": "My Note"})
        assert format_tag_line(tag, settings) == (
            'Z001\tnote.md\t2;"\tkind:id\tline:2\tidentifier:Z001\ttitle:My Note'
        )

    def test_tag_line_role_extras_and_escaping(self, settings):
        """Roles and extras are listed and tabs are escaped."""
        settings = replace(settings, fields=FieldToggles(encoded_tag_name=True, identifier=False, title=False))
        tag = _tag("a\tb", "wikilink", role="identifier", line=7, origin="body", extras={"folgezettel"})
        assert format_tag_line(tag, settings) == (
            'a\\tb\tnote.md\t7;"\tkind:wikilink\troles:identifier\tline:7'
            "\textras:folgezettel\tencodedTagName:a\\tb"
        )

    def test_xref_line(self, settings):
        """xref lines start with the role and end with the summary."""
        tag = _tag("My Note", "title", line=3, fields={"identifier": "Z1", "title": "My Note"})
        line = format_xref_line(tag, settings)
        assert line.startswith("def My%20Note")
        assert line.endswith("Z1:My Note")
        assert "   3 note.md" in line

    def test_json(self, settings):
        """JSON output lists tags with their enabled fields."""
        tags = [_tag("Z1", "id", fields={"identifier": "Z1", "title": "T"})]
        settings = replace(settings, fields=FieldToggles(identifier=True, title=False))
        payload = json.loads("\n".join(render_tags(tags, settings, "json")))
        assert payload[0]["name"] == "Z1"
        assert payload[0]["fields"] == {"identifier": "Z1"}

    def test_render_tags_lines(self, settings):
        """The tags format yields one line per tag."""
        tags = [_tag("a", "id"), _tag("b", "id")]
        assert len(list(render_tags(tags, settings))) == 2

    def test_unknown_format(self, settings):
        """Unknown output formats are rejected."""
        with pytest.raises(ValueError, match="Unknown output format"):
            list(render_tags([], settings, "csv"))
