"""Tag extraction from a YAML metadata block.

``MetadataTagExtractor`` is driven one token at a time through ``notify``.
It never builds a YAML value tree: it only looks at token types and at the
mapping/sequence depth of each token.

Tags are created as soon as a recognized value is read, in document order,
but each tag also carries the identifier and title of its record, and those
may only appear later (``keywords`` before ``title``). Handles of new tags
therefore wait in a cork queue that is drained when the record closes:

    MappingStart  KEY "keywords"  "alpha"        -> tag alpha (pending)
                  KEY "id"        "Z001"         -> tag Z001  (pending)
                  KEY "title"     "My Note"      -> tag My Note (pending)
    MappingEnd  StreamEnd                        -> all three get
                                                    identifier=Z001, title=My Note

Entries of a ``references`` list have their own id/title pair and their own
queue, drained when the entry mapping closes, so reference tags never
receive the outer record's fields and vice versa.

Usage:
    from zettel_tags.engine.metadata_tags import MetadataTagExtractor
    from zettel_tags.engine.tag_index import TagIndex

    index = TagIndex(source="note.md")
    MetadataTagExtractor.from_yaml(text, settings, index)
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..common.config_loader import ExtractorSettings
from ..ingestion.yaml_tokens import iter_yaml_tokens
from .cork_queue import CorkQueue
from .depth_tracker import DepthTracker
from .key_classifier import KeyClassifier, KeySlot
from .tag_builder import TagBuilder
from .tag_index import TagSink
from .types import ContainerKind, DeferredState, FieldKind, Token, TokenType

logger = logging.getLogger(__name__)

_RECORD_BOUNDARIES = frozenset({TokenType.STREAM_END, TokenType.DOCUMENT_START, TokenType.DOCUMENT_END})
_CONTAINER_STARTS = frozenset({TokenType.MAPPING_START, TokenType.SEQUENCE_START})
_CONTAINER_ENDS = frozenset({TokenType.MAPPING_END, TokenType.SEQUENCE_END, TokenType.BLOCK_END})


class MetadataTagExtractor:
    """Single-pass, push-driven tag extraction state machine.

    One instance per metadata block; not reentrant.

    Args:
        settings: Frozen extraction settings (schema, field toggles, prefixes).
        sink: Receives ``create_tag`` and ``attach_field`` calls.
        line_offset: Line of the block's first line in the note (0-based);
            tag lines are reported 1-based relative to the note.
    """

    def __init__(self, settings: ExtractorSettings, sink: TagSink, *, line_offset: int = 0):
        self._settings = settings
        self._sink = sink
        self.line_offset = line_offset

        self._depth = DepthTracker()
        self._classifier = KeyClassifier(settings.schema)
        self._builder = TagBuilder(settings, sink)

        self._outer = CorkQueue("outer")
        self._reference = CorkQueue("reference")
        self._outer_state = DeferredState()
        self._reference_state = DeferredState()

    # -- introspection -----------------------------------------------------

    @property
    def mapping_depth(self) -> int:
        return self._depth.mapping_depth

    @property
    def sequence_depth(self) -> int:
        return self._depth.sequence_depth

    @property
    def reference_mode(self) -> bool:
        return self._classifier.reference_mode

    @property
    def expected_field(self) -> FieldKind:
        return self._classifier.expected_field

    @property
    def outer_state(self) -> DeferredState:
        return self._outer_state

    @property
    def reference_state(self) -> DeferredState:
        return self._reference_state

    @property
    def pending(self) -> tuple[int, ...]:
        return self._outer.pending

    @property
    def pending_references(self) -> tuple[int, ...]:
        return self._reference.pending

    # -- driving -----------------------------------------------------------

    @classmethod
    def from_yaml(
        cls,
        text: str,
        settings: ExtractorSettings,
        sink: TagSink,
        *,
        line_offset: int = 0,
    ) -> MetadataTagExtractor:
        """Run a new extractor over the PyYAML tokens of ``text``.

        Raises:
            MetadataBlockError: If the YAML scanner rejects the text.
        """
        return cls(settings, sink, line_offset=line_offset).feed(iter_yaml_tokens(text))

    def feed(self, tokens: Iterable[Token]) -> MetadataTagExtractor:
        for token in tokens:
            self.notify(token)
        return self

    def notify(self, token: Token) -> None:
        """Process one token completely before the next one is delivered."""
        token_type = token.type

        if token_type is TokenType.STREAM_START:
            self.reset()
        elif token_type in _RECORD_BOUNDARIES:
            self._close_record()
        elif token_type in _CONTAINER_STARTS:
            self._depth.on_token(token)
            self._classifier.on_container_start()
        elif token_type in _CONTAINER_ENDS:
            popped = self._depth.on_token(token)
            self._classifier.on_container_end()
            self._on_container_end(popped)
        elif token_type is TokenType.KEY:
            slot = self._classifier.on_key(self.mapping_depth, self.sequence_depth)
            if slot is KeySlot.TOP_LEVEL and self._classifier.reference_mode:
                self._exit_reference_mode()
        elif token_type is TokenType.SCALAR:
            self._on_scalar(token)

    def reset(self) -> None:
        """Return to the initial state; pending tags are patched first."""
        self._close_record()
        self._depth.reset()
        self._classifier.reset()

    # -- internals ---------------------------------------------------------

    def _on_scalar(self, token: Token) -> None:
        text = token.text or ""
        field_kind = self._classifier.on_scalar(text, self.mapping_depth)
        if field_kind is None:
            return

        if self._classifier.reference_mode:
            state, queue = self._reference_state, self._reference
        else:
            state, queue = self._outer_state, self._outer

        line = self.line_offset + token.line + 1
        queue.extend(self._builder.build_tags(field_kind, text, line, state))

    def _on_container_end(self, popped: ContainerKind | None) -> None:
        if not self._classifier.reference_mode:
            return
        if popped is ContainerKind.MAPPING and self.mapping_depth == 1:
            # A reference entry closed.
            self._drain_reference()
        elif self.mapping_depth < 2 and self.sequence_depth < 2:
            # The container holding the reference entries closed.
            self._exit_reference_mode()

    def _drain_reference(self) -> None:
        self._reference.drain(
            self._sink,
            self._reference_state.identifier,
            self._reference_state.title,
            self._settings.fields,
        )
        self._reference_state.clear()

    def _exit_reference_mode(self) -> None:
        self._drain_reference()
        self._classifier.exit_reference_mode()
        logger.debug("Left reference mode at mapping depth %d", self.mapping_depth)

    def _close_record(self) -> None:
        if self._classifier.reference_mode:
            self._exit_reference_mode()
        else:
            self._drain_reference()

        self._outer.drain(
            self._sink,
            self._outer_state.identifier,
            self._outer_state.title,
            self._settings.fields,
        )
        self._outer_state.clear()
        self._classifier.reset()
