"""Canonical Pydantic models shared across all acclink modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Linking models** -- the values exchanged with the linking agent and written
into the plugin configuration:
    :class:`LinkingStep`, :class:`CredentialBundle`,
    :class:`PluginConfigRecord`, :class:`PluginTarget`,
    :class:`SessionState`, and :class:`SaveResult`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ServerConfig`, :class:`OutputConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2. Models that mirror plugin-owned JSON use
``extra="allow"`` so that keys acclink does not know about survive a
load/save round trip unchanged.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel


# --- Linking Models ---


class LinkingStep(str, enum.Enum):
    """The single field the linking agent currently expects.

    The wire value of each member is the event name used on the channel in
    both directions. ``NONE`` means no step is pending (idle or finished).
    """

    NONE = ""
    USERNAME = "username"
    PASSWORD = "password"
    TOTP = "totp"


class CredentialBundle(RootModel[dict[str, Any]]):
    """Opaque successful-login artifact produced by the linking agent.

    Stored verbatim into :attr:`PluginConfigRecord.google_auth`: the mapping
    the agent sends is kept as received, keys and value types included. Only
    ``issueToken`` and ``cookies`` are inspected, to decide whether the
    account counts as linked. Anything that is not a JSON object is rejected.

    Example::

        bundle = CredentialBundle.model_validate({"issueToken": "T", "cookies": ["SID=1"]})
        assert bundle.is_complete
    """

    @property
    def issue_token(self) -> Any:
        return self.root.get("issueToken")

    @property
    def cookies(self) -> Any:
        return self.root.get("cookies")

    @property
    def is_complete(self) -> bool:
        """``True`` when both ``issueToken`` and ``cookies`` are non-empty."""
        return bool(self.issue_token and self.cookies)

    def to_payload(self) -> dict[str, Any]:
        """Return the bundle exactly as the agent sent it."""
        return dict(self.root)


class PluginConfigRecord(BaseModel):
    """The one configuration object managed for a plugin instance.

    ``platform`` is the discriminator the host uses to route the record to
    the plugin and is always the plugin's alias. Any other plugin settings
    (camera options, feature flags) ride along as extra fields.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    platform: str
    google_auth: Optional[CredentialBundle] = Field(default=None, alias="googleAuth")

    @property
    def is_linked(self) -> bool:
        """Whether the record holds a complete credential bundle."""
        return self.google_auth is not None and self.google_auth.is_complete

    def to_config(self) -> dict[str, Any]:
        """Serialise to the JSON shape the plugin reads.

        The ``googleAuth`` key is omitted entirely when no bundle is set.
        """
        data = self.model_dump(by_alias=True, exclude={"google_auth"})
        if self.google_auth is not None:
            data["googleAuth"] = self.google_auth.to_payload()
        return data


class PluginTarget(BaseModel):
    """Identifies the plugin whose configuration a session manages.

    Attributes:
        name: Plugin package name. Used as the persistence key and as the
            last segment of the channel namespace.
        alias: Platform alias written into ``PluginConfigRecord.platform``.
    """

    name: str
    alias: str


class SessionState(BaseModel):
    """Immutable snapshot of one linking session.

    Each state-machine transition in :mod:`acclink.linking.machine` returns
    a new instance built with ``model_copy(update=...)``; nothing mutates a
    state in place.
    """

    model_config = ConfigDict(frozen=True)

    step: LinkingStep = LinkingStep.NONE
    field_error_message: str = ""
    waiting: bool = False
    waiting_message: str = ""
    account_linking_error: bool = False
    account_linking_error_message: str = ""
    doing_account_linking: bool = False
    already_configured: bool = False


class SaveResult(BaseModel):
    """Outcome of a single configuration write.

    Stores never raise for transport or filesystem failures; they return
    ``SaveResult(ok=False, error=...)`` so callers can report without
    unwinding the session.
    """

    ok: bool
    error: Optional[str] = None


# --- Configuration Models ---


class ServerConfig(BaseModel):
    """Where the linking agent and the config-editor endpoint live."""

    url: str = Field(
        default="http://localhost:8581", description="Base URL of the host server"
    )
    namespace_prefix: str = Field(
        default="plugins/custom-plugins",
        description="Channel path prefix; the plugin name is appended",
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    token_source: Optional[str] = Field(
        default=None,
        description="Bearer token source: env:VAR, file:/path, prompt",
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/acclink/config.json``.

    Loaded and saved by :func:`~acclink.config.load_global_config` and
    :func:`~acclink.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~acclink.config.resolve_config`
    for the full precedence chain.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    store: str = Field(
        default="file", description="Where plugin config is saved: file, http"
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
