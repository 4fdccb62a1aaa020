from __future__ import annotations

import logging
from enum import Enum

from ..common.config_loader import MetadataSchema
from .types import REFERENCE_FIELDS, FieldKind

logger = logging.getLogger(__name__)


class KeySlot(str, Enum):
    """What the scalar following a KEY token names."""

    NONE = "none"            # next scalar is a value
    TOP_LEVEL = "top_level"  # key of the record mapping
    REFERENCE = "reference"  # key of a reference entry
    NESTED = "nested"        # key of some other nested mapping (ignored)


class KeyClassifier:
    """Map key scalars to field kinds and decide which value scalars become tags.

    Keys are compared exactly (case-sensitive, no normalization). Top-level
    keys live at mapping depth 1 outside any sequence; while in reference mode
    keys at mapping depth 2 are matched against the reference key table.

    The value of any other key is never a tag value, even at a depth where
    the field's values live: ``keywords: [a, x: y]`` reaches ``y`` at mapping
    depth 1 because the scanner reports the single pair ``x: y`` without a
    mapping start.
    """

    def __init__(self, schema: MetadataSchema):
        self._schema = schema
        self._slot = KeySlot.NONE
        self.expected_field = FieldKind.NONE
        self.reference_mode = False
        # Value of a nested key still to come; skipped when it arrives.
        self._skip_value = False
        # Open containers whose scalars are all skipped (complex keys, nested values).
        self._skip_containers = 0
        self._skip_value_after_containers = False

    @property
    def slot(self) -> KeySlot:
        return self._slot

    def reset(self) -> None:
        self._slot = KeySlot.NONE
        self.expected_field = FieldKind.NONE
        self.reference_mode = False
        self._skip_value = False
        self._skip_containers = 0
        self._skip_value_after_containers = False

    def on_key(self, mapping_depth: int, sequence_depth: int) -> KeySlot:
        if mapping_depth == 1 and sequence_depth == 0:
            self._slot = KeySlot.TOP_LEVEL
        elif self.reference_mode and mapping_depth == 2 and sequence_depth <= 1:
            self._slot = KeySlot.REFERENCE
        else:
            self._slot = KeySlot.NESTED
        if not self._skip_containers:
            self._skip_value = self._slot is KeySlot.NESTED
        return self._slot

    def on_container_start(self) -> None:
        if self._skip_containers:
            self._skip_containers += 1
            return

        if self._slot is not KeySlot.NONE:
            # A container in key position is a complex key; it names no field
            # and its value is skipped as well.
            if self._slot is not KeySlot.NESTED:
                self.expected_field = FieldKind.NONE
            self._slot = KeySlot.NONE
            self._skip_containers = 1
            self._skip_value_after_containers = True
            return

        if self._skip_value:
            self._skip_value = False
            self._skip_containers = 1

    def on_container_end(self) -> None:
        if self._skip_containers:
            self._skip_containers -= 1
            if not self._skip_containers and self._skip_value_after_containers:
                self._skip_value_after_containers = False
                self._skip_value = True
            return
        # A nested key's value never outlives the container holding the key.
        self._skip_value = False

    def on_scalar(self, text: str, mapping_depth: int) -> FieldKind | None:
        """Classify a scalar; return the field kind when it is a value to build tags from."""
        slot, self._slot = self._slot, KeySlot.NONE

        if self._skip_containers:
            return None

        if slot is KeySlot.TOP_LEVEL:
            self._match_top_level(text)
            return None
        if slot is KeySlot.REFERENCE:
            self._match_reference(text)
            return None
        if slot is KeySlot.NESTED:
            return None
        if self._skip_value:
            self._skip_value = False
            return None

        if self.expected_field in (FieldKind.NONE, FieldKind.REFERENCES):
            return None
        expected_depth = 2 if self.expected_field in REFERENCE_FIELDS else 1
        if mapping_depth != expected_depth:
            return None
        return self.expected_field

    def exit_reference_mode(self) -> None:
        self.reference_mode = False
        if self.expected_field in REFERENCE_FIELDS:
            self.expected_field = FieldKind.NONE

    def _match_top_level(self, text: str) -> None:
        field_kind = self._schema.keys.get(text, FieldKind.NONE)
        if field_kind is FieldKind.REFERENCES:
            self.reference_mode = True
            self.expected_field = FieldKind.NONE
            return
        if field_kind is FieldKind.NONE:
            logger.debug("Ignoring unrecognized metadata key %r", text)
        self.expected_field = field_kind

    def _match_reference(self, text: str) -> None:
        self.expected_field = self._schema.reference_keys.get(text, FieldKind.NONE)
