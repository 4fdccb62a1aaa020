"""Tests for zettel_tags/engine/depth_tracker.py - container depth bookkeeping."""

import pytest

from zettel_tags.engine.depth_tracker import DepthTracker
from zettel_tags.engine.types import ContainerKind, Token, TokenStreamError, TokenType

MAP_START = Token(TokenType.MAPPING_START)
SEQ_START = Token(TokenType.SEQUENCE_START)
BLOCK_END = Token(TokenType.BLOCK_END)


class TestDepthTracker:
    """Tests for DepthTracker.on_token."""

    def test_starts_at_zero(self):
        """A new tracker has no open containers."""
        tracker = DepthTracker()
        assert (tracker.mapping_depth, tracker.sequence_depth) == (0, 0)

    def test_nested_starts_increment_their_own_counter(self):
        """Mapping and sequence starts increment separate depths."""
        tracker = DepthTracker()
        for token in (MAP_START, SEQ_START, MAP_START):
            tracker.on_token(token)
        assert tracker.mapping_depth == 2
        assert tracker.sequence_depth == 1

    def test_block_end_pops_innermost_container(self):
        """BLOCK_END closes whatever kind of container was opened last."""
        tracker = DepthTracker()
        tracker.on_token(MAP_START)
        tracker.on_token(SEQ_START)

        assert tracker.on_token(BLOCK_END) is ContainerKind.SEQUENCE
        assert (tracker.mapping_depth, tracker.sequence_depth) == (1, 0)
        assert tracker.on_token(BLOCK_END) is ContainerKind.MAPPING
        assert (tracker.mapping_depth, tracker.sequence_depth) == (0, 0)

    def test_flow_end_tokens_pop(self):
        """Flow end tokens close containers like BLOCK_END."""
        tracker = DepthTracker()
        tracker.on_token(SEQ_START)
        assert tracker.on_token(Token(TokenType.SEQUENCE_END)) is ContainerKind.SEQUENCE
        assert tracker.sequence_depth == 0

    def test_other_tokens_do_not_change_depth(self):
        """Keys and scalars leave depths alone."""
        tracker = DepthTracker()
        tracker.on_token(MAP_START)
        assert tracker.on_token(Token(TokenType.KEY)) is None
        assert tracker.on_token(Token(TokenType.SCALAR, "x")) is None
        assert tracker.mapping_depth == 1

    def test_underflow_raises(self):
        """Closing a container that was never opened is an error."""
        tracker = DepthTracker()
        with pytest.raises(TokenStreamError, match="never opened"):
            tracker.on_token(Token(TokenType.MAPPING_END, line=3))

    def test_reset_clears_stack(self):
        """reset() returns both depths to zero."""
        tracker = DepthTracker()
        tracker.on_token(MAP_START)
        tracker.on_token(SEQ_START)
        tracker.reset()
        assert (tracker.mapping_depth, tracker.sequence_depth) == (0, 0)
