from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TokenType(str, Enum):
    STREAM_START = "STREAM_START"
    STREAM_END = "STREAM_END"
    DOCUMENT_START = "DOCUMENT_START"
    DOCUMENT_END = "DOCUMENT_END"
    MAPPING_START = "MAPPING_START"
    MAPPING_END = "MAPPING_END"
    SEQUENCE_START = "SEQUENCE_START"
    SEQUENCE_END = "SEQUENCE_END"
    # End of an indentation block; the container stack tells which kind closed.
    BLOCK_END = "BLOCK_END"
    KEY = "KEY"
    SCALAR = "SCALAR"


class ContainerStyle(str, Enum):
    FLOW = "flow"
    BLOCK = "block"


class ContainerKind(str, Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"


class FieldKind(str, Enum):
    NONE = "none"
    IDENTIFIER = "identifier"
    TITLE = "title"
    KEYWORD = "keyword"
    CITATION = "citation"
    NEXT_LINK = "next_link"
    REFERENCES = "references"
    REFERENCE_ID = "reference_id"
    REFERENCE_TITLE = "reference_title"


# Fields whose values are read inside a reference entry (mapping depth 2).
REFERENCE_FIELDS = frozenset({FieldKind.REFERENCE_ID, FieldKind.REFERENCE_TITLE})


@dataclass(frozen=True)
class Token:
    """One structural or scalar event from the YAML tokenizer."""

    type: TokenType
    text: str | None = None
    line: int = 0  # 0-based line inside the metadata block
    style: ContainerStyle | None = None


@dataclass
class Tag:
    """A tag record held by the tag index."""

    name: str
    kind: str
    role: str | None = None
    line: int = 0
    source: str = ""
    origin: str = "metadata"  # "metadata" | "body"
    source_text: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    extras: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "role": self.role,
            "line": self.line,
            "source": self.source,
            "origin": self.origin,
            "fields": dict(self.fields),
            "extras": sorted(self.extras),
        }


@dataclass
class DeferredState:
    """Last-seen identifier/title of the record currently being read."""

    identifier: str | None = None
    title: str | None = None

    def clear(self) -> None:
        self.identifier = None
        self.title = None


class ZettelTagsError(RuntimeError):
    """Base class for tag extraction errors."""


class TokenStreamError(ZettelTagsError):
    """Raised when the token stream is internally inconsistent (e.g. stack underflow)."""


class MetadataBlockError(ZettelTagsError):
    """Raised when the YAML tokenizer rejects a metadata block."""

    def __init__(self, message: str, *, line: int | None = None):
        super().__init__(message)
        self.line = line


class ConfigError(ZettelTagsError):
    """Raised when settings or a metadata schema are invalid."""


class FormatFields(dict):
    """Mapping for ``str.format_map`` that renders unknown or unset fields as ``""``."""

    def __missing__(self, key: str) -> str:
        return ""
