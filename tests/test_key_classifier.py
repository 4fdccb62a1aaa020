"""Tests for zettel_tags/engine/key_classifier.py - key matching and value gating."""

import pytest

from zettel_tags.common.config_loader import build_schema
from zettel_tags.engine.key_classifier import KeyClassifier, KeySlot
from zettel_tags.engine.types import FieldKind


@pytest.fixture
def classifier():
    return KeyClassifier(build_schema("zettel", {}))


class TestKeySlots:
    """Tests for on_key slot selection."""

    def test_top_level_key(self, classifier):
        """Keys at mapping depth 1 outside sequences are top-level."""
        assert classifier.on_key(1, 0) is KeySlot.TOP_LEVEL

    def test_key_inside_sequence_is_nested(self, classifier):
        """A mapping inside a top-level sequence holds nested keys."""
        assert classifier.on_key(1, 1) is KeySlot.NESTED
        assert classifier.on_key(2, 1) is KeySlot.NESTED

    def test_reference_key_only_in_reference_mode(self, classifier):
        """Depth-2 keys are reference keys only after a references key."""
        classifier.on_key(1, 0)
        classifier.on_scalar("references", 1)
        assert classifier.reference_mode is True
        assert classifier.on_key(2, 1) is KeySlot.REFERENCE
        assert classifier.on_key(2, 0) is KeySlot.REFERENCE
        assert classifier.on_key(3, 2) is KeySlot.NESTED


class TestScalarClassification:
    """Tests for on_scalar."""

    def test_recognized_key_sets_expected_field(self, classifier):
        """A matched key scalar sets the expected field and yields nothing."""
        classifier.on_key(1, 0)
        assert classifier.on_scalar("title", 1) is None
        assert classifier.expected_field is FieldKind.TITLE
        assert classifier.on_scalar("My Note", 1) is FieldKind.TITLE

    def test_unknown_key_clears_expected_field(self, classifier):
        """An unrecognized top-level key makes following values ignored."""
        classifier.on_key(1, 0)
        classifier.on_scalar("title", 1)
        classifier.on_key(1, 0)
        classifier.on_scalar("mood", 1)
        assert classifier.expected_field is FieldKind.NONE
        assert classifier.on_scalar("happy", 1) is None

    def test_keys_are_case_sensitive(self, classifier):
        """'Title' does not match 'title'."""
        classifier.on_key(1, 0)
        classifier.on_scalar("Title", 1)
        assert classifier.expected_field is FieldKind.NONE

    def test_value_at_wrong_depth_is_ignored(self, classifier):
        """Values nested below the record mapping are not tags."""
        classifier.on_key(1, 0)
        classifier.on_scalar("title", 1)
        assert classifier.on_scalar("deep", 2) is None
        assert classifier.expected_field is FieldKind.TITLE

    def test_nested_key_keeps_expected_field(self, classifier):
        """A nested key scalar is skipped without touching the expected field."""
        classifier.on_key(1, 0)
        classifier.on_scalar("keywords", 1)
        classifier.on_key(2, 1)
        assert classifier.on_scalar("x", 2) is None
        assert classifier.expected_field is FieldKind.KEYWORD

    def test_container_in_key_position_is_skipped(self, classifier):
        """A complex key names no field; its scalars and its value are ignored."""
        classifier.on_key(1, 0)
        classifier.on_scalar("keywords", 1)
        classifier.on_key(1, 0)
        classifier.on_container_start()
        assert classifier.slot is KeySlot.NONE
        assert classifier.on_scalar("id", 1) is None
        assert classifier.on_scalar("x", 1) is None
        classifier.on_container_end()
        assert classifier.expected_field is FieldKind.NONE
        assert classifier.on_scalar("y", 1) is None

    def test_nested_pair_value_is_skipped(self, classifier):
        """The value of a key inside a field's sequence is not a field value."""
        classifier.on_key(1, 0)
        classifier.on_scalar("keywords", 1)
        assert classifier.on_scalar("a", 1) is FieldKind.KEYWORD
        classifier.on_key(1, 1)
        assert classifier.on_scalar("x", 1) is None
        assert classifier.on_scalar("y", 1) is None
        assert classifier.on_scalar("b", 1) is FieldKind.KEYWORD

    def test_nested_container_value_is_skipped(self, classifier):
        """All scalars of a container-valued nested key are ignored."""
        classifier.on_key(1, 0)
        classifier.on_scalar("keywords", 1)
        classifier.on_key(1, 1)
        classifier.on_scalar("x", 1)
        classifier.on_container_start()
        assert classifier.on_scalar("p", 1) is None
        assert classifier.on_scalar("q", 1) is None
        classifier.on_container_end()
        assert classifier.on_scalar("b", 1) is FieldKind.KEYWORD

    def test_container_end_clears_pending_nested_value(self, classifier):
        """A nested key without a value does not swallow the next value."""
        classifier.on_key(1, 0)
        classifier.on_scalar("keywords", 1)
        classifier.on_container_start()
        classifier.on_key(2, 1)
        classifier.on_scalar("x", 2)
        classifier.on_container_end()
        assert classifier.on_scalar("b", 1) is FieldKind.KEYWORD

    def test_references_value_is_never_a_tag(self, classifier):
        """The references key itself produces no value tags."""
        classifier.on_key(1, 0)
        classifier.on_scalar("references", 1)
        assert classifier.on_scalar("oops", 1) is None

    def test_reference_keys_resolve_at_depth_two(self, classifier):
        """Reference id/title are matched in the reference key table."""
        classifier.on_key(1, 0)
        classifier.on_scalar("references", 1)
        classifier.on_key(2, 1)
        classifier.on_scalar("id", 2)
        assert classifier.expected_field is FieldKind.REFERENCE_ID
        assert classifier.on_scalar("smith2020", 2) is FieldKind.REFERENCE_ID
        assert classifier.on_scalar("smith2020", 1) is None

    def test_exit_reference_mode(self, classifier):
        """Leaving reference mode drops a pending reference field."""
        classifier.on_key(1, 0)
        classifier.on_scalar("references", 1)
        classifier.on_key(2, 1)
        classifier.on_scalar("title", 2)
        classifier.exit_reference_mode()
        assert classifier.reference_mode is False
        assert classifier.expected_field is FieldKind.NONE

    def test_reset(self, classifier):
        """reset() returns to the initial state."""
        classifier.on_key(1, 0)
        classifier.on_scalar("references", 1)
        classifier.reset()
        assert classifier.reference_mode is False
        assert classifier.expected_field is FieldKind.NONE
        assert classifier.slot is KeySlot.NONE
