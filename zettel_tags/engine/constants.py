"""Built-in metadata schema and rendering defaults.

These tables are used when no schema file is configured. The shipped
``config/schemas/*.yaml`` files restate them so that a schema variant can be
selected or edited without touching code.
"""

from .types import FieldKind

# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------
_TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}

# ---------------------------------------------------------------------------
# Recognized metadata keys (exact, case-sensitive)
# ---------------------------------------------------------------------------

DEFAULT_SCHEMA_NAME = "zettel"

# Keys of the top-level metadata mapping.
DEFAULT_KEYS: dict[str, FieldKind] = {
    "id": FieldKind.IDENTIFIER,
    "title": FieldKind.TITLE,
    "keywords": FieldKind.KEYWORD,
    "nocite": FieldKind.CITATION,
    "next": FieldKind.NEXT_LINK,
    "references": FieldKind.REFERENCES,
}

# Keys inside one entry of the ``references`` list.
DEFAULT_REFERENCE_KEYS: dict[str, FieldKind] = {
    "id": FieldKind.REFERENCE_ID,
    "title": FieldKind.REFERENCE_TITLE,
}

# ---------------------------------------------------------------------------
# Per-field tag policy: kind name, role, split/sigil handling, accumulator
# ---------------------------------------------------------------------------

ROLE_INDEX = "index"
ROLE_BIBLIOGRAPHY = "bibliography"
ROLE_IDENTIFIER = "identifier"

KIND_ID = "id"
KIND_TITLE = "title"
KIND_KEYWORD = "keyword"
KIND_CITEKEY = "citekey"
KIND_WIKILINK = "wikilink"
KIND_REFTITLE = "reftitle"

DEFAULT_POLICIES: dict[FieldKind, dict] = {
    FieldKind.IDENTIFIER: {"kind": KIND_ID, "accumulator": "identifier"},
    FieldKind.TITLE: {"kind": KIND_TITLE, "accumulator": "title"},
    FieldKind.KEYWORD: {"kind": KIND_KEYWORD, "role": ROLE_INDEX},
    FieldKind.CITATION: {"kind": KIND_CITEKEY, "role": ROLE_BIBLIOGRAPHY, "split": True, "sigil": True},
    FieldKind.NEXT_LINK: {"kind": KIND_WIKILINK, "role": ROLE_IDENTIFIER},
    FieldKind.REFERENCE_ID: {
        "kind": KIND_CITEKEY,
        "role": ROLE_BIBLIOGRAPHY,
        "sigil": True,
        "accumulator": "identifier",
    },
    FieldKind.REFERENCE_TITLE: {"kind": KIND_REFTITLE, "role": ROLE_BIBLIOGRAPHY, "accumulator": "title"},
}

# ---------------------------------------------------------------------------
# Citation keys
# ---------------------------------------------------------------------------

DEFAULT_CITATION_SIGIL = "@"
DEFAULT_CITATION_DELIMITERS = " \t\r\n,;"

# First character of a citation key written without its sigil.
CITEKEY_START_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")

# ---------------------------------------------------------------------------
# Tag fields
# ---------------------------------------------------------------------------

FIELD_ENCODED_TAG_NAME = "encodedTagName"
FIELD_SUMMARY_LINE = "summaryLine"
FIELD_IDENTIFIER = "identifier"
FIELD_TITLE = "title"

DEFAULT_SUMMARY_FORMAT = "{identifier}:{title}"

EXTRA_FOLGEZETTEL = "folgezettel"
