from __future__ import annotations

import logging
import re

from ..common.config_loader import ExtractorSettings, FieldPolicy
from .constants import CITEKEY_START_CHARS
from .tag_index import TagSink
from .types import DeferredState, FieldKind

logger = logging.getLogger(__name__)


def split_citations(value: str, delimiters: str) -> list[str]:
    """Split a citation list on any run of delimiter characters; empty pieces are dropped."""
    if not delimiters:
        return [value] if value else []
    pattern = "[" + re.escape(delimiters) + "]+"
    return [piece for piece in re.split(pattern, value) if piece]


def normalize_citekey(token: str, sigil: str) -> str | None:
    """Return ``token`` with exactly one leading sigil added when missing.

    Tokens that already start with the sigil are kept as-is (a doubled sigil
    is not collapsed). Tokens that neither start with the sigil nor with a
    citation key character are not citation keys and yield None.
    """
    if not token:
        return None
    if token.startswith(sigil):
        return token
    if token[0] in CITEKEY_START_CHARS:
        return sigil + token
    return None


class TagBuilder:
    """Create tags for recognized metadata values according to the field policy table."""

    def __init__(self, settings: ExtractorSettings, sink: TagSink):
        self._settings = settings
        self._sink = sink

    def is_enabled(self, policy: FieldPolicy) -> bool:
        return policy.enabled and (policy.role is None or policy.role not in self._settings.disabled_roles)

    def prefix_for(self, field_kind: FieldKind, policy: FieldPolicy) -> str:
        if field_kind is FieldKind.TITLE and self._settings.title_prefix:
            return self._settings.title_prefix
        if field_kind is FieldKind.KEYWORD and self._settings.keyword_prefix:
            return self._settings.keyword_prefix
        return policy.prefix

    def tag_names(self, field_kind: FieldKind, policy: FieldPolicy, value: str) -> list[str]:
        schema = self._settings.schema
        if policy.split:
            pieces = split_citations(value, schema.delimiters)
        else:
            pieces = [value]

        if not policy.sigil:
            prefix = self.prefix_for(field_kind, policy)
            return [prefix + piece for piece in pieces]

        names = []
        for piece in pieces:
            name = normalize_citekey(piece, schema.sigil)
            if name is None:
                logger.debug("Dropping %r: not a citation key", piece)
                continue
            names.append(name)
        return names

    def build_tags(self, field_kind: FieldKind, text: str | None, line: int, state: DeferredState) -> list[int]:
        """Build the tags for one value scalar and return their handles.

        Identifier/title values are stored in ``state`` first (last write
        wins), even when the tag kind itself is disabled.
        """
        policy = self._settings.schema.policy(field_kind)
        if policy is None:
            return []

        value = "" if text is None else str(text)
        if policy.accumulator == "identifier":
            state.identifier = value
        elif policy.accumulator == "title":
            state.title = value

        if not self.is_enabled(policy):
            return []

        return [
            self._sink.create_tag(name, policy.kind, policy.role, line=line)
            for name in self.tag_names(field_kind, policy, value)
        ]
