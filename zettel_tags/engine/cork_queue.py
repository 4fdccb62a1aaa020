from __future__ import annotations

import logging

from ..common.config_loader import FieldToggles
from .constants import FIELD_IDENTIFIER, FIELD_TITLE
from .tag_index import TagSink

logger = logging.getLogger(__name__)


class CorkQueue:
    """Handles of tags whose identifier/title fields are attached later.

    A record's tags are created as soon as their values are read, but the
    record's id and title may appear after them. The handles wait here until
    the record (or reference entry) closes and are then patched in one pass.
    """

    def __init__(self, name: str = "outer"):
        self.name = name
        self._handles: list[int] = []

    def extend(self, handles: list[int]) -> None:
        self._handles.extend(handles)

    @property
    def pending(self) -> tuple[int, ...]:
        return tuple(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    def drain(
        self,
        sink: TagSink,
        identifier: str | None,
        title: str | None,
        fields: FieldToggles,
    ) -> int:
        """Attach identifier/title to every pending handle, newest first, and clear the queue.

        A value is attached only when it is set and its field, or the summary
        line that is rendered from it, is enabled.

        Returns:
            Number of handles drained.
        """
        attach_identifier = identifier is not None and (fields.identifier or fields.summary_line)
        attach_title = title is not None and (fields.title or fields.summary_line)

        count = len(self._handles)
        while self._handles:
            handle = self._handles.pop()
            if attach_identifier:
                sink.attach_field(handle, FIELD_IDENTIFIER, identifier)
            if attach_title:
                sink.attach_field(handle, FIELD_TITLE, title)

        if count:
            logger.debug(
                "Drained %d %s tag(s) with identifier=%r title=%r", count, self.name, identifier, title
            )
        return count
