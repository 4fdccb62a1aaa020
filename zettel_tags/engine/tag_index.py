"""In-memory tag index.

The metadata state machine only needs two operations from its output sink:
create a tag and get a handle back, and attach a field to a handle later.
``TagIndex`` implements both and keeps the tags in creation order, so the
index doubles as the result of an extraction run.

Usage:
    from zettel_tags.engine.tag_index import TagIndex

    index = TagIndex(source="notes/202001011200.md")
    handle = index.create_tag("Z001", "id", line=2)
    index.attach_field(handle, "title", "My Note")
"""

from __future__ import annotations

from typing import Iterable, Iterator, Protocol

from .types import Tag


class TagSink(Protocol):
    """Output sink used by the metadata state machine."""

    def create_tag(self, name: str, kind: str, role: str | None = None, *, line: int = 0) -> int:
        ...

    def attach_field(self, handle: int, field_name: str, value: str) -> None:
        ...


class TagIndex:
    """Ordered collection of tags addressed by integer handles."""

    def __init__(self, source: str = ""):
        self.source = source
        self._tags: list[Tag] = []

    def create_tag(
        self,
        name: str,
        kind: str,
        role: str | None = None,
        *,
        line: int = 0,
        origin: str = "metadata",
        source_text: str = "",
        extras: Iterable[str] = (),
    ) -> int:
        self._tags.append(
            Tag(
                name=name,
                kind=kind,
                role=role,
                line=line,
                source=self.source,
                origin=origin,
                source_text=source_text,
                extras=set(extras),
            )
        )
        return len(self._tags) - 1

    def attach_field(self, handle: int, field_name: str, value: str) -> None:
        self[handle].fields[field_name] = value

    def __getitem__(self, handle: int) -> Tag:
        if handle < 0 or handle >= len(self._tags):
            raise KeyError(f"Unknown tag handle {handle}")
        return self._tags[handle]

    def __len__(self) -> int:
        return len(self._tags)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._tags)

    def names(self) -> list[str]:
        return [t.name for t in self._tags]
