"""Line-oriented scanner for Zettelkasten Markdown notes.

Finds, in the note body:
- wiki links ``[[202001011200]]`` (kind ``wikilink``, role ``identifier``)
- Folgezettel links ``next:[[202001011201]]`` (a wiki link, plus an extra
  tag flagged ``folgezettel`` when enabled)
- Pandoc citations ``@smith2020`` (kind ``citekey``, role ``bibliography``)

and hands YAML metadata blocks (``---`` ... ``---`` or ``...``) back to the
caller as ``MetadataBlock`` events with their line position.

Verbatim (indented) blocks, fenced code (``~~~``), backtick code blocks,
inline code, HTML comments, numbered examples ``(@label)``, e-mail
addresses and backslash escapes never produce tags.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from ..common.config_loader import ExtractorSettings
from ..engine.constants import (
    EXTRA_FOLGEZETTEL,
    KIND_CITEKEY,
    KIND_WIKILINK,
    ROLE_BIBLIOGRAPHY,
    ROLE_IDENTIFIER,
)

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    MAIN = "main"
    METADATA = "metadata"
    VERBATIM = "verbatim"
    FENCED_CODE = "fencedcode"
    BACKTICK_CODE = "backtickcode"
    COMMENT = "comment"


@dataclass(frozen=True)
class BodyTag:
    """A reference found in the note body."""

    name: str
    kind: str
    role: str
    line: int  # 1-based
    source_text: str
    extras: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class MetadataBlock:
    """The text between a pair of metadata block delimiters."""

    text: str
    start_line: int  # 0-based index of the first content line
    end_line: int    # 0-based index of the closing delimiter


_METADATA_OPEN_RE = re.compile(r"^---(?:[ \t].*)?$")
_METADATA_CLOSE_RE = re.compile(r"^(?:---|\.\.\.)(?:[ \t].*)?$")
_TILDE_FENCE_OPEN_RE = re.compile(r"^[ \t]*~{3,}[^~]*$")
_TILDE_FENCE_CLOSE_RE = re.compile(r"^[ \t]*~{3,}[ \t]*$")
_BACKTICK_FENCE_OPEN_RE = re.compile(r"^[ \t]*`{3,}[^`]*$")
_BACKTICK_FENCE_CLOSE_RE = re.compile(r"^[ \t]*`{3,}[ \t]*$")
_VERBATIM_RE = re.compile(r"^(?: {4}|\t)")

_INLINE_RE = re.compile(
    r"(?P<ticks>`+)(?P<code>.+?)(?P=ticks)"
    r"|(?P<comment><!--)"
    r"|\\."
    r"|<[^@>\s]+@[^>\s]*>"
    r"|mailto:\S+"
    r"|\(@[\w-]*\)"
    r"|next:\[\[(?P<next>[^\]\s]+)\]\]"
    r"|\[\[(?P<wikilink>[^\]\s]+)\]\]"
    r"|(?<![\w@])@(?P<citekey>[A-Za-z0-9_][\w:.#$%&\-+?<>~/]*)"
)

# Pandoc allows these characters inside a citation key but not at its end.
_CITEKEY_TRAILING_PUNCT = ":.#$%&-+?<>~/"


def _is_blank(line: str) -> bool:
    return not line.strip()


class MarkdownBodyScanner:
    """Scan a note line by line, yielding ``BodyTag`` and ``MetadataBlock`` events."""

    def __init__(self, settings: ExtractorSettings):
        self._settings = settings

    def _role_enabled(self, role: str) -> bool:
        return role not in self._settings.disabled_roles

    def scan(self, text: str) -> Iterator[BodyTag | MetadataBlock]:
        lines = text.splitlines()
        state = ScanState.MAIN
        block_start = 0

        for i, line in enumerate(lines):
            prev_blank = i == 0 or _is_blank(lines[i - 1])

            if state is ScanState.METADATA:
                if _METADATA_CLOSE_RE.match(line):
                    yield MetadataBlock(
                        text="\n".join(lines[block_start:i]) + "\n",
                        start_line=block_start,
                        end_line=i,
                    )
                    state = ScanState.MAIN
                continue

            if state is ScanState.FENCED_CODE:
                if _TILDE_FENCE_CLOSE_RE.match(line):
                    state = ScanState.MAIN
                continue

            if state is ScanState.BACKTICK_CODE:
                if _BACKTICK_FENCE_CLOSE_RE.match(line):
                    state = ScanState.MAIN
                continue

            if state is ScanState.VERBATIM:
                if _is_blank(line) or _VERBATIM_RE.match(line):
                    continue
                state = ScanState.MAIN

            pos = 0
            if state is ScanState.COMMENT:
                end = line.find("-->")
                if end < 0:
                    continue
                state = ScanState.MAIN
                pos = end + 3
            else:
                next_blank = i + 1 >= len(lines) or _is_blank(lines[i + 1])
                if _METADATA_OPEN_RE.match(line) and prev_blank and not next_blank:
                    state = ScanState.METADATA
                    block_start = i + 1
                    continue
                if _TILDE_FENCE_OPEN_RE.match(line):
                    state = ScanState.FENCED_CODE
                    continue
                if _BACKTICK_FENCE_OPEN_RE.match(line):
                    state = ScanState.BACKTICK_CODE
                    continue
                if _VERBATIM_RE.match(line) and prev_blank and not _is_blank(line):
                    state = ScanState.VERBATIM
                    continue

            tags, state = self._scan_inline(line, pos, i + 1)
            yield from tags

        if state is ScanState.METADATA:
            logger.warning("Unterminated metadata block starting at line %d ignored", block_start)

    def _scan_inline(self, line: str, pos: int, line_number: int) -> tuple[list[BodyTag], ScanState]:
        tags: list[BodyTag] = []
        while True:
            m = _INLINE_RE.search(line, pos)
            if m is None:
                return tags, ScanState.MAIN
            pos = m.end()

            if m.group("comment"):
                end = line.find("-->", pos)
                if end < 0:
                    return tags, ScanState.COMMENT
                pos = end + 3
            elif m.group("next"):
                target = m.group("next")
                if self._settings.folgezettel and self._role_enabled(ROLE_IDENTIFIER):
                    tags.append(
                        BodyTag(
                            name=target,
                            kind=KIND_WIKILINK,
                            role=ROLE_IDENTIFIER,
                            line=line_number,
                            source_text=line,
                            extras=frozenset({EXTRA_FOLGEZETTEL}),
                        )
                    )
                tags.extend(self._wikilink(target, line_number, line))
            elif m.group("wikilink"):
                tags.extend(self._wikilink(m.group("wikilink"), line_number, line))
            elif m.group("citekey"):
                key = m.group("citekey").rstrip(_CITEKEY_TRAILING_PUNCT)
                if key and self._role_enabled(ROLE_BIBLIOGRAPHY):
                    tags.append(
                        BodyTag(
                            name="@" + key,
                            kind=KIND_CITEKEY,
                            role=ROLE_BIBLIOGRAPHY,
                            line=line_number,
                            source_text=line,
                        )
                    )
            # Inline code, escapes, e-mail addresses and numbered examples are skipped.

    def _wikilink(self, target: str, line_number: int, line: str) -> list[BodyTag]:
        if not self._role_enabled(ROLE_IDENTIFIER):
            return []
        return [
            BodyTag(
                name=target,
                kind=KIND_WIKILINK,
                role=ROLE_IDENTIFIER,
                line=line_number,
                source_text=line,
            )
        ]
