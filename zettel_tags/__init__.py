# zettel_tags/__init__.py
"""
Tag extraction for Zettelkasten Markdown notes.

- ingestion/markdown_body.py scans the note body (wiki links, citations)
- engine/metadata_tags.py turns YAML metadata blocks into tags
- engine/rendering.py writes tags files and cross-reference listings

Usage:
    zettel-tags notes/*.md
    python -m zettel_tags.main --format xref notes/*.md
"""
# Lazy imports to keep `import zettel_tags` free of the YAML/pydantic stack
__all__ = [
    "MetadataTagExtractor",
    "TagIndex",
    "extract_file",
    "extract_note",
    "load_settings",
]


def __getattr__(name: str):
    if name == "MetadataTagExtractor":
        from .engine.metadata_tags import MetadataTagExtractor
        return MetadataTagExtractor
    if name == "TagIndex":
        from .engine.tag_index import TagIndex
        return TagIndex
    if name == "extract_file":
        from .ingestion.note_extractor import extract_file
        return extract_file
    if name == "extract_note":
        from .ingestion.note_extractor import extract_note
        return extract_note
    if name == "load_settings":
        from .common.config_loader import load_settings
        return load_settings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
