"""Canonical Pydantic models shared across better_airtable.

The models fall into two groups:

**Configuration models** -- the client settings and the JSON files kept in
the user's config directory:
    :class:`ClientConfig`, :class:`OutputConfig`, :class:`CacheConfig`,
    :class:`GlobalConfig` and :class:`Profile`.

**Data models** -- typed views over the raw JSON returned by the API:
    :class:`Attachment` and :class:`Record`. The client itself returns and
    caches plain decoded JSON; these models are used where code needs to
    recognise or render that JSON.

Data models use ``extra="allow"`` so that fields the API adds later are
preserved in ``model_extra``.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_BASE_URL = "https://api.airtable.com/v0"
DEFAULT_TIMEOUT = 30

_REQUIRED_LABELS = {"api_key": "API key", "base_id": "Base ID", "table_name": "Table name"}


# --- Client config ---


class ClientConfig(BaseModel):
    """Settings for one :class:`~better_airtable.client.AirtableClient`.

    ``api_key``, ``base_id`` and ``table_name`` are required and must be
    non-empty. Leaving ``cache_dir`` or ``file_cache_dir`` unset disables the
    response cache or the attachment cache respectively.
    """

    api_key: str
    base_id: str
    table_name: str
    cache_dir: Optional[str] = Field(
        default=None, description="Response cache directory; None disables caching"
    )
    file_cache_dir: Optional[str] = Field(
        default=None, description="Attachment cache directory; None disables it"
    )
    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        description="Seconds allowed for each phase (connect, read, write, pool) of a request",
    )
    force_ipv4: bool = Field(
        default=True, description="Bind outgoing connections to an IPv4 address"
    )
    cached_mime_prefixes: tuple[str, ...] = Field(
        default=("image/",),
        description="MIME type prefixes whose attachments are downloaded",
    )

    @field_validator("api_key", "base_id", "table_name")
    @classmethod
    def _not_empty(cls, value: str, info: ValidationInfo) -> str:
        if not value or not value.strip():
            raise ValueError(f"{_REQUIRED_LABELS[info.field_name]} cannot be empty")
        return value


# --- On-disk config ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Output format used when no format flag is given"
    )


class CacheConfig(BaseModel):
    """Cache defaults applied to profiles that do not set their own directories."""

    enabled: bool = Field(default=True, description="Enable the response cache")
    attachments: bool = Field(default=True, description="Enable the attachment cache")


class GlobalConfig(BaseModel):
    """Top-level user configuration persisted as ``config.json``.

    Loaded and saved by :func:`~better_airtable.config.load_global_config`
    and :func:`~better_airtable.config.save_global_config`.
    """

    default_profile: Optional[str] = None
    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


class Profile(BaseModel):
    """A named connection to one Airtable table.

    Stored as ``profiles/<name>.json``. The API key is never stored
    directly; ``api_key_source`` names where to read it from (see
    :func:`~better_airtable.config.resolve_credential`).

    Example::

        Profile(
            name="projects",
            base_id="appXXXXXXXXXXXXXX",
            table_name="Projects",
            api_key_source="env:AIRTABLE_API_KEY",
        )
    """

    name: str
    base_id: str
    table_name: str
    api_key_source: str = Field(
        default="env:AIRTABLE_API_KEY",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    cache_dir: Optional[str] = None
    file_cache_dir: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    base_url: str = DEFAULT_BASE_URL


# --- Data models ---


class Attachment(BaseModel):
    """A file reference embedded in an attachment-type field.

    ``cached_url`` is only present once the file has been downloaded into
    the attachment cache.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    url: str
    type: Optional[str] = None
    filename: Optional[str] = None
    size: Optional[int] = None
    cached_url: Optional[str] = None

    @staticmethod
    def is_attachment_list(value: Any) -> bool:
        """Return ``True`` when *value* looks like an attachment field value.

        Only the first element is inspected: a non-empty list whose first
        item is an object carrying both ``id`` and ``url``.
        """
        if not isinstance(value, list) or not value:
            return False
        first = value[0]
        return isinstance(first, dict) and "id" in first and "url" in first


class Record(BaseModel):
    """One row of the table as returned by the API."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: Optional[str] = Field(default=None, alias="createdTime")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Record:
        """Build a :class:`Record` from a decoded API record object."""
        return cls.model_validate(data)

    def attachments(self, field_name: str) -> list[Attachment]:
        """Return the attachments held in *field_name*, or an empty list."""
        value = self.fields.get(field_name)
        if not Attachment.is_attachment_list(value):
            return []
        return [Attachment.model_validate(item) for item in value]
