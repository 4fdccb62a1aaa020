"""Extract all tags of a Zettelkasten note.

The body scanner finds wiki links and citations line by line; each YAML
metadata block it reports is tokenized with PyYAML and run through a fresh
``MetadataTagExtractor``. All tags land in one ``TagIndex`` in document order.

A metadata block the YAML scanner rejects is logged and skipped: tags already
created for it stay in the index without deferred fields, and the rest of
the note is still extracted.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..common.config_loader import ExtractorSettings, load_settings
from ..engine.metadata_tags import MetadataTagExtractor
from ..engine.tag_index import TagIndex
from ..engine.types import MetadataBlockError
from .markdown_body import BodyTag, MarkdownBodyScanner, MetadataBlock

logger = logging.getLogger(__name__)


def extract_metadata(
    yaml_text: str,
    settings: ExtractorSettings | None = None,
    *,
    index: TagIndex | None = None,
    line_offset: int = 0,
) -> TagIndex:
    """Run the metadata state machine over one YAML text.

    Raises:
        MetadataBlockError: If the YAML scanner rejects the text.
        TokenStreamError: If the token stream is internally inconsistent.
    """
    settings = settings or load_settings()
    index = index if index is not None else TagIndex()
    MetadataTagExtractor.from_yaml(yaml_text, settings, index, line_offset=line_offset)
    return index


def extract_note(
    text: str,
    settings: ExtractorSettings | None = None,
    *,
    source: str = "",
    index: TagIndex | None = None,
) -> TagIndex:
    """Extract body and metadata tags from the Markdown text of one note."""
    settings = settings or load_settings()
    index = index if index is not None else TagIndex(source=source)
    scanner = MarkdownBodyScanner(settings)

    for event in scanner.scan(text):
        if isinstance(event, BodyTag):
            index.create_tag(
                event.name,
                event.kind,
                event.role,
                line=event.line,
                origin="body",
                source_text=event.source_text,
                extras=event.extras,
            )
        elif isinstance(event, MetadataBlock):
            try:
                extract_metadata(event.text, settings, index=index, line_offset=event.start_line)
            except MetadataBlockError as err:
                line = event.start_line + 1 + (err.line or 0)
                logger.warning("%s: skipping metadata block at line %d: %s", source or "<note>", line, err)

    return index


def extract_file(path: str | Path, settings: ExtractorSettings | None = None) -> TagIndex:
    """Read a note from disk and extract its tags.

    Raises:
        OSError: If the file cannot be read.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    logger.debug("Extracting tags from %s", path)
    return extract_note(text, settings, source=str(path))
