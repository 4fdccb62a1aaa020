"""Render tags as text: encoded tag names, summary lines and output records.

Encoded tag names make titles and keywords safe for whitespace separated tag
files. Every byte outside the printable ASCII range, and ``%`` itself, is
percent-encoded. A configured title or keyword prefix is kept verbatim on
tags of its own kind; on tags of the other kind, a matching leading prefix
has its first character force-encoded so that the two kinds can never
collide. A leading ``!`` is encoded as well, because it sorts with the
pseudo-tags of a tags file. Identifiers and citation keys pass through
unchanged.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Iterator

from ..common.config_loader import ExtractorSettings
from .constants import (
    FIELD_ENCODED_TAG_NAME,
    FIELD_IDENTIFIER,
    FIELD_SUMMARY_LINE,
    FIELD_TITLE,
)
from .types import FieldKind, FormatFields, Tag

logger = logging.getLogger(__name__)

_HEX = "0123456789abcdef"

OUTPUT_FORMATS = ("tags", "xref", "json")


def percent_encode(text: str, *, force: bool = False) -> str:
    """Percent-encode the UTF-8 bytes of ``text`` outside 0x21-0x7E, plus ``%``."""
    out: list[str] = []
    for byte in text.encode("utf-8"):
        if force or byte < 0x21 or byte > 0x7E or byte == 0x25:
            out.append("%" + _HEX[byte >> 4] + _HEX[byte & 0x0F])
        else:
            out.append(chr(byte))
    return "".join(out)


def _prefix(settings: ExtractorSettings, field_kind: FieldKind) -> str:
    policy = settings.schema.policy(field_kind)
    configured = settings.title_prefix if field_kind is FieldKind.TITLE else settings.keyword_prefix
    return configured or (policy.prefix if policy is not None else "")


def _encoding_prefixes(tag: Tag, settings: ExtractorSettings) -> tuple[str, str] | None:
    """(own prefix, other prefix) for tags whose names are encoded, else None."""
    if tag.origin != "metadata":
        return None
    policies = settings.schema.policies
    title_prefix = _prefix(settings, FieldKind.TITLE)
    keyword_prefix = _prefix(settings, FieldKind.KEYWORD)

    if FieldKind.TITLE in policies and tag.kind == policies[FieldKind.TITLE].kind:
        return title_prefix, keyword_prefix
    if FieldKind.KEYWORD in policies and tag.kind == policies[FieldKind.KEYWORD].kind:
        return keyword_prefix, title_prefix
    if FieldKind.REFERENCE_TITLE in policies and tag.kind == policies[FieldKind.REFERENCE_TITLE].kind:
        return "", ""
    return None


def _check_plain_name(name: str) -> None:
    if name.startswith("!"):
        bad = "!"
    else:
        bad = next((ch for ch in name if not ("\x20" < ch < "\x7f")), None)
    if bad is not None:
        logger.debug("Unexpected character %#04x in tag %s", ord(bad), name)


def encoded_tag_name(tag: Tag, settings: ExtractorSettings) -> str:
    prefixes = _encoding_prefixes(tag, settings)
    if prefixes is None:
        _check_plain_name(tag.name)
        return tag.name

    own, other = prefixes
    name = tag.name
    head = ""
    if own and name.startswith(own):
        head, name = own, name[len(own):]
    elif other and name.startswith(other):
        head, name = percent_encode(name[0], force=True), name[1:]

    if not head and name.startswith("!"):
        head, name = percent_encode("!", force=True), name[1:]
    return head + percent_encode(name)


def compact_line(text: str) -> str:
    """Collapse runs of whitespace to one space and strip the ends."""
    return re.sub(r"\s+", " ", text or "").strip()


def summary_line(tag: Tag, settings: ExtractorSettings) -> str:
    """Metadata tags: ``summary_format`` filled from the tag; body tags: their source line."""
    if tag.origin == "body":
        return compact_line(tag.source_text)
    values = FormatFields(
        identifier=tag.fields.get(FIELD_IDENTIFIER, ""),
        title=tag.fields.get(FIELD_TITLE, ""),
        name=tag.name,
        kind=tag.kind,
        role=tag.role or "",
        line=tag.line,
    )
    return settings.summary_format.format_map(values)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\t", "\\t").replace("\n", "\\n").replace("\r", "\\r")


def tag_fields(tag: Tag, settings: ExtractorSettings) -> dict[str, str]:
    """The enabled tag fields, in output order."""
    toggles = settings.fields
    fields: dict[str, str] = {}
    if toggles.encoded_tag_name:
        fields[FIELD_ENCODED_TAG_NAME] = encoded_tag_name(tag, settings)
    if toggles.summary_line:
        fields[FIELD_SUMMARY_LINE] = summary_line(tag, settings)
    if toggles.identifier and FIELD_IDENTIFIER in tag.fields:
        fields[FIELD_IDENTIFIER] = tag.fields[FIELD_IDENTIFIER]
    if toggles.title and FIELD_TITLE in tag.fields:
        fields[FIELD_TITLE] = tag.fields[FIELD_TITLE]
    return fields


def format_tag_line(tag: Tag, settings: ExtractorSettings) -> str:
    """One line of an extended-format tags file (tab separated)."""
    parts = [_escape(tag.name), tag.source, f'{tag.line};"', f"kind:{tag.kind}"]
    if tag.role:
        parts.append(f"roles:{tag.role}")
    parts.append(f"line:{tag.line}")
    if tag.extras:
        parts.append("extras:" + ",".join(sorted(tag.extras)))
    for name, value in tag_fields(tag, settings).items():
        parts.append(f"{name}:{_escape(value)}")
    return "\t".join(parts)


def format_xref_line(tag: Tag, settings: ExtractorSettings) -> str:
    """One line of a cross-reference listing: role, encoded name, kind, line, file, summary."""
    role = tag.role or "def"
    name = encoded_tag_name(tag, settings)
    return f"{role} {name:<16} {tag.kind:<10} {tag.line:>4} {tag.source:<16} {summary_line(tag, settings)}"


def render_tags(tags: Iterable[Tag], settings: ExtractorSettings, output_format: str = "tags") -> Iterator[str]:
    """Yield output lines for ``tags`` in the requested format."""
    if output_format == "tags":
        for tag in tags:
            yield format_tag_line(tag, settings)
    elif output_format == "xref":
        for tag in tags:
            yield format_xref_line(tag, settings)
    elif output_format == "json":
        payload = []
        for tag in tags:
            record = tag.to_dict()
            record["fields"] = tag_fields(tag, settings)
            payload.append(record)
        yield json.dumps(payload, ensure_ascii=False, indent=2)
    else:
        raise ValueError(f"Unknown output format {output_format!r}. Choose one of: {', '.join(OUTPUT_FORMATS)}")
