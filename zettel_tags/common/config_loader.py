"""
Unified configuration loader for tag extraction.

This module is the single source of truth for all configuration:
- Settings dataclasses (ExtractorSettings, MetadataSchema, FieldPolicy, FieldToggles)
- Loading settings from config/settings.yaml with env var overrides
- Metadata schema variants from config/schemas/
- Pydantic schema validation for production-ready error reporting

All code should import configuration from this module, not from settings.yaml directly.
"""

from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from ..engine.constants import (
    DEFAULT_CITATION_DELIMITERS,
    DEFAULT_CITATION_SIGIL,
    DEFAULT_KEYS,
    DEFAULT_POLICIES,
    DEFAULT_REFERENCE_KEYS,
    DEFAULT_SCHEMA_NAME,
    DEFAULT_SUMMARY_FORMAT,
    FIELD_ENCODED_TAG_NAME,
    FIELD_IDENTIFIER,
    FIELD_SUMMARY_LINE,
    FIELD_TITLE,
    _TRUTHY_ENV_VALUES,
)
from ..engine.types import REFERENCE_FIELDS, ConfigError, FieldKind, FormatFields

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


# ─────────────────────────────────────────────────────────────────────────────
# Core Settings Dataclasses
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FieldPolicy:
    """How tags are built for one recognized metadata field."""
    kind: str
    role: str | None = None
    enabled: bool = True
    prefix: str = ""
    split: bool = False         # Split the value on citation delimiters
    sigil: bool = False         # Prepend the citation sigil when missing
    accumulator: str | None = None  # "identifier" | "title"


@dataclass(frozen=True)
class FieldToggles:
    """Which tag fields are produced (mirrors the encodedTagName/summaryLine/identifier/title fields)."""
    encoded_tag_name: bool = False
    summary_line: bool = False
    identifier: bool = True
    title: bool = True


@dataclass(frozen=True)
class MetadataSchema:
    """Recognized-key tables and field policies for one metadata schema variant."""
    name: str
    keys: dict[str, FieldKind]
    reference_keys: dict[str, FieldKind]
    policies: dict[FieldKind, FieldPolicy]
    references_enabled: bool = True
    sigil: str = DEFAULT_CITATION_SIGIL
    delimiters: str = DEFAULT_CITATION_DELIMITERS

    def policy(self, field_kind: FieldKind) -> FieldPolicy | None:
        return self.policies.get(field_kind)


def _default_schema() -> MetadataSchema:
    return build_schema(DEFAULT_SCHEMA_NAME, {})


@dataclass(frozen=True)
class ExtractorSettings:
    """Extraction settings - loaded once from config/settings.yaml.

    This is a frozen dataclass; the state machine receives it by reference and
    never mutates it. Use dataclasses.replace() to derive variants.
    """
    schema: MetadataSchema = field(default_factory=_default_schema)
    fields: FieldToggles = FieldToggles()

    # Rendering
    summary_format: str = DEFAULT_SUMMARY_FORMAT
    title_prefix: str = ""
    keyword_prefix: str = ""

    # Tags with these roles are not created
    disabled_roles: frozenset[str] = frozenset()

    # Emit extra tags for next:[[id]] links in the note body
    folgezettel: bool = False


# ─────────────────────────────────────────────────────────────────────────────
# Pydantic Schema for Metadata Schema Files
# ─────────────────────────────────────────────────────────────────────────────


class KindPolicySchema(BaseModel):
    """Schema for the policy overrides of one field."""

    kind: str | None = None
    role: str | None = None
    enabled: bool = True
    prefix: str = ""
    split: bool = False
    sigil: bool = False

    @field_validator("kind")
    @classmethod
    def non_empty_kind(cls, v: str | None) -> str:
        if not v:
            raise ValueError("kind must be a non-empty name")
        return v

    @field_validator("prefix", mode="before")
    @classmethod
    def ensure_str(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)


class CitationSchema(BaseModel):
    """Schema for citation key handling."""

    sigil: str = DEFAULT_CITATION_SIGIL
    delimiters: str = DEFAULT_CITATION_DELIMITERS

    @field_validator("sigil")
    @classmethod
    def non_empty_sigil(cls, v: str) -> str:
        if not v:
            raise ValueError("citation sigil must not be empty")
        return v


class ReferencesSchema(BaseModel):
    """Schema for the nested references block."""

    enabled: bool = True


class MetadataSchemaConfig(BaseModel):
    """Schema for a metadata schema file (config/schemas/<name>.yaml)."""

    keys: dict[str, FieldKind] | None = None
    reference_keys: dict[str, FieldKind] | None = None
    references: ReferencesSchema = ReferencesSchema()
    kinds: dict[FieldKind, KindPolicySchema] = {}
    citation: CitationSchema = CitationSchema()

    @field_validator("keys")
    @classmethod
    def no_reference_fields_at_top_level(cls, v: dict[str, FieldKind] | None) -> dict[str, FieldKind] | None:
        for key, kind in (v or {}).items():
            if kind in REFERENCE_FIELDS:
                raise ValueError(f"top-level key {key!r} cannot map to {kind.value!r}")
        return v

    @field_validator("reference_keys")
    @classmethod
    def only_reference_fields(cls, v: dict[str, FieldKind] | None) -> dict[str, FieldKind] | None:
        for key, kind in (v or {}).items():
            if kind not in REFERENCE_FIELDS:
                raise ValueError(f"reference key {key!r} must map to a reference field, got {kind.value!r}")
        return v

    @field_validator("kinds", mode="before")
    @classmethod
    def ensure_kinds_dict(cls, v: Any) -> dict[str, Any]:
        if v is None:
            return {}
        return dict(v)


def validate_schema_config(config: dict[str, Any], schema_name: str) -> MetadataSchemaConfig | None:
    """Validate a schema config against the pydantic model.

    Returns the validated config or None if validation fails.
    Logs detailed error messages for malformed configs.
    """
    try:
        return MetadataSchemaConfig.model_validate(config)
    except ValidationError as e:
        logger.warning(
            "Invalid metadata schema '%s': %s",
            schema_name,
            e.errors(),
        )
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Schema Loading
# ─────────────────────────────────────────────────────────────────────────────


def _get_schemas_dir() -> Path:
    """Get schemas directory. Can be overridden via ZETTEL_SCHEMAS_DIR env var for testing."""
    override = os.getenv("ZETTEL_SCHEMAS_DIR")
    if override:
        return Path(override)
    return _CONFIG_DIR / "schemas"


def available_schemas() -> list[str]:
    """Names of the schema files in the schemas directory."""
    schemas_dir = _get_schemas_dir()
    if not schemas_dir.is_dir():
        return [DEFAULT_SCHEMA_NAME]
    names = {p.stem for p in schemas_dir.glob("*.yaml") if not p.stem.startswith("_")}
    names.add(DEFAULT_SCHEMA_NAME)
    return sorted(names)


def build_schema(name: str, config: Mapping[str, Any]) -> MetadataSchema:
    """Build a MetadataSchema from a raw schema dict layered over the built-in tables.

    Raises:
        ConfigError: If the schema does not validate.
    """
    validated = validate_schema_config(dict(config or {}), name)
    if validated is None:
        raise ConfigError(f"Invalid metadata schema '{name}'")

    keys = dict(DEFAULT_KEYS if validated.keys is None else validated.keys)
    reference_keys = dict(DEFAULT_REFERENCE_KEYS if validated.reference_keys is None else validated.reference_keys)

    references_enabled = validated.references.enabled
    if not references_enabled:
        # The references key becomes an unrecognized key.
        keys = {k: v for k, v in keys.items() if v is not FieldKind.REFERENCES}
        reference_keys = {}

    policies: dict[FieldKind, FieldPolicy] = {}
    for field_kind, defaults in DEFAULT_POLICIES.items():
        payload = dict(defaults)
        override = validated.kinds.get(field_kind)
        if override is not None:
            payload.update(override.model_dump(exclude_unset=True))
        policies[field_kind] = FieldPolicy(**payload)

    return MetadataSchema(
        name=name,
        keys=keys,
        reference_keys=reference_keys,
        policies=policies,
        references_enabled=references_enabled,
        sigil=validated.citation.sigil,
        delimiters=validated.citation.delimiters,
    )


@functools.lru_cache(maxsize=16)
def load_schema_config(schema_name: str) -> dict[str, Any]:
    """Load the raw schema dict for ``schema_name``; empty dict if the file is missing."""
    # Skip template files
    if schema_name.startswith("_"):
        return {}

    config_path = _get_schemas_dir() / f"{schema_name}.yaml"
    if not config_path.exists():
        if schema_name != DEFAULT_SCHEMA_NAME:
            raise ConfigError(
                f"Unknown metadata schema '{schema_name}'. Available: {', '.join(available_schemas())}"
            )
        return {}

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Schema file '{config_path}' must contain a mapping")
    return raw_config


def load_schema(schema_name: str) -> MetadataSchema:
    """Load and validate a metadata schema by name."""
    try:
        return build_schema(schema_name, load_schema_config(schema_name))
    except ConfigError:
        logger.error(
            "Schema validation failed for '%s'. "
            "See config/schemas/_template.yaml for correct structure.",
            schema_name,
        )
        raise


# ─────────────────────────────────────────────────────────────────────────────
# Settings Loading Helpers
# ─────────────────────────────────────────────────────────────────────────────


_FIELD_TOGGLE_NAMES = {
    FIELD_ENCODED_TAG_NAME: "encoded_tag_name",
    FIELD_SUMMARY_LINE: "summary_line",
    FIELD_IDENTIFIER: "identifier",
    FIELD_TITLE: "title",
}


def parse_field_list(value: str) -> FieldToggles:
    """Parse a comma separated list of enabled fields (e.g. ``"identifier,summaryLine"``)."""
    enabled = {part.strip() for part in (value or "").split(",") if part.strip()}
    unknown = enabled - set(_FIELD_TOGGLE_NAMES)
    if unknown:
        raise ConfigError(
            f"Unknown field(s) {', '.join(sorted(unknown))}. Valid fields: {', '.join(_FIELD_TOGGLE_NAMES)}"
        )
    return FieldToggles(**{attr: name in enabled for name, attr in _FIELD_TOGGLE_NAMES.items()})


def _field_toggles(fields_cfg: Mapping[str, Any]) -> FieldToggles:
    defaults = FieldToggles()
    values: dict[str, bool] = {}
    for name, attr in _FIELD_TOGGLE_NAMES.items():
        raw = fields_cfg.get(name)
        values[attr] = getattr(defaults, attr) if raw is None else bool(raw)
    return FieldToggles(**values)


def _validate_settings(settings: ExtractorSettings) -> None:
    """Validate settings values."""
    try:
        settings.summary_format.format_map(FormatFields())
    except (ValueError, IndexError, AttributeError) as err:
        raise ConfigError(f"extractor.summary_format is not a valid format string: {err}") from err

    if settings.title_prefix and settings.title_prefix == settings.keyword_prefix:
        raise ConfigError(
            f"extractor.title_prefix and extractor.keyword_prefix must differ (both {settings.title_prefix!r})"
        )


def _settings_path() -> Path:
    override = os.getenv("ZETTEL_SETTINGS_PATH")
    if override and override.strip():
        return Path(override)
    return _CONFIG_DIR / "settings.yaml"


def _load_settings_yaml() -> dict[str, Any]:
    """Load raw settings from config/settings.yaml."""
    settings_path = _settings_path()
    if not settings_path.exists():
        return {}
    with open(settings_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def build_settings(config: Mapping[str, Any], *, schema: MetadataSchema | None = None) -> ExtractorSettings:
    """Build ExtractorSettings from a raw settings dict (no env lookups)."""
    extractor_cfg = config.get("extractor", {}) or {}
    fields_cfg = config.get("fields", {}) or {}

    if schema is None:
        schema = load_schema(str(extractor_cfg.get("schema") or DEFAULT_SCHEMA_NAME))

    settings = ExtractorSettings(
        schema=schema,
        fields=_field_toggles(fields_cfg),
        summary_format=str(extractor_cfg.get("summary_format") or DEFAULT_SUMMARY_FORMAT),
        title_prefix=str(extractor_cfg.get("title_prefix") or ""),
        keyword_prefix=str(extractor_cfg.get("keyword_prefix") or ""),
        disabled_roles=frozenset(str(r) for r in (extractor_cfg.get("disabled_roles") or [])),
        folgezettel=bool(extractor_cfg.get("folgezettel", False)),
    )
    _validate_settings(settings)
    return settings


@functools.lru_cache(maxsize=1)
def load_settings() -> ExtractorSettings:
    """Load and validate extraction settings from config/settings.yaml.

    Environment variables override YAML values:
    - ZETTEL_SETTINGS_PATH (alternative settings file)
    - ZETTEL_SCHEMA, ZETTEL_SCHEMAS_DIR
    - ZETTEL_TITLE_PREFIX, ZETTEL_KEYWORD_PREFIX
    - ZETTEL_SUMMARY_FORMAT
    - ZETTEL_ENABLED_FIELDS (comma separated, replaces the fields section)
    - ZETTEL_FOLGEZETTEL

    Returns:
        ExtractorSettings: Validated, frozen settings object
    """
    load_dotenv()

    config = _load_settings_yaml()
    extractor_cfg = dict(config.get("extractor", {}) or {})

    def _env_str(key: str) -> str | None:
        val = os.getenv(key)
        return val if val is not None and val.strip() != "" else None

    def _env_bool(key: str, default: bool) -> bool:
        val = os.getenv(key)
        if val is None:
            return default
        return val.strip().lower() in _TRUTHY_ENV_VALUES

    schema_name = _env_str("ZETTEL_SCHEMA") or extractor_cfg.get("schema") or DEFAULT_SCHEMA_NAME
    extractor_cfg["schema"] = schema_name
    for env_key, cfg_key in (
        ("ZETTEL_TITLE_PREFIX", "title_prefix"),
        ("ZETTEL_KEYWORD_PREFIX", "keyword_prefix"),
        ("ZETTEL_SUMMARY_FORMAT", "summary_format"),
    ):
        value = _env_str(env_key)
        if value is not None:
            extractor_cfg[cfg_key] = value
    extractor_cfg["folgezettel"] = _env_bool("ZETTEL_FOLGEZETTEL", bool(extractor_cfg.get("folgezettel", False)))

    settings = build_settings({**config, "extractor": extractor_cfg})

    enabled_fields = _env_str("ZETTEL_ENABLED_FIELDS")
    if enabled_fields is not None:
        settings = replace(settings, fields=parse_field_list(enabled_fields))

    logger.debug("Loaded settings with schema '%s'", settings.schema.name)
    return settings


def get_settings_yaml() -> dict[str, Any]:
    """Get raw settings dict from YAML."""
    return _load_settings_yaml()


def clear_config_cache() -> None:
    """Clear all cached configurations (useful for testing)."""
    load_settings.cache_clear()
    load_schema_config.cache_clear()


def with_overrides(settings: ExtractorSettings, **overrides: Any) -> ExtractorSettings:
    """Return a validated copy of ``settings`` with the given fields replaced."""
    if not overrides:
        return settings
    updated = replace(settings, **overrides)
    _validate_settings(updated)
    return updated
