"""Where acclink keeps its files and how it decides which host to talk to.

Two kinds of files live on disk:

* ``config.json`` in the config directory -- the user's
  :class:`~acclink.models.GlobalConfig` (host URL, token source, store
  backend, output defaults).
* ``plugin-config/<plugin>.json`` in the data directory -- the plugin's
  configuration list when the ``file`` store is active. These files hold
  the linked account's issue token and cookies, so they are written with
  :func:`atomic_write` and mode ``0o600``.

On Linux and the BSDs both directories follow XDG
(``~/.config/acclink``, ``~/.local/share/acclink``); elsewhere they sit under
``~/.acclink``.

:func:`resolve_config` layers, lowest first: defaults, the user file,
``./acclink.json`` (keys ``server_url`` and ``store``), the
``ACCLINK_SERVER_URL`` / ``ACCLINK_STORE`` environment variables, and the
root CLI flags.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from acclink.exceptions import ConfigError
from acclink.models import GlobalConfig

_APP_NAME = "acclink"
_PROJECT_CONFIG_FILENAME = "acclink.json"
_STORES = ("file", "http")


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: Path, fallback: Path) -> Path:
    if _is_xdg_platform():
        path = Path(os.environ.get(xdg_var) or xdg_default) / _APP_NAME
    else:
        path = fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``. Created on first use."""
    home = Path.home()
    return _app_dir("XDG_CONFIG_HOME", home / ".config", home / f".{_APP_NAME}")


def get_data_dir() -> Path:
    """Directory for stored plugin configs and crash logs. Created on first use."""
    home = Path.home()
    return _app_dir(
        "XDG_DATA_HOME", home / ".local" / "share", home / f".{_APP_NAME}" / "data"
    )


def get_plugin_config_dir() -> Path:
    path = get_data_dir() / "plugin-config"
    path.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The temp file is created beside *path* and gets *mode* before any
    content is written, so a credential file is never briefly readable by
    others. On any failure the temp file is removed and *path* is left as
    it was.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            if mode is not None:
                os.chmod(tmp.name, mode)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def _global_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_global_config() -> GlobalConfig:
    """Read the user's config file; defaults when it does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or does not validate.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    atomic_write(_global_config_path(), text)


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./acclink.json`` if present, e.g. ``{"server_url": "http://pi:8581"}``."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


def resolve_config(
    cli_server_url: Optional[str] = None,
    cli_store: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Build the effective configuration for one CLI run.

    Raises:
        ConfigError: If a config file is invalid or the store backend named
            by any layer is unknown.
    """
    config = load_global_config()
    project = load_project_config() or {}
    layers = [
        (project.get("server_url"), project.get("store")),
        (os.environ.get("ACCLINK_SERVER_URL"), os.environ.get("ACCLINK_STORE")),
        (cli_server_url, cli_store),
    ]
    for url, store in layers:
        if url:
            config.server.url = url
        if store:
            config.store = store
    if cli_format is not None:
        config.output.format = cli_format

    if config.store not in _STORES:
        raise ConfigError(f"Unknown store backend '{config.store}': must be 'file' or 'http'")
    return config


def resolve_credential(source: str) -> str:
    """Read the host API token from ``env:NAME``, ``file:PATH`` or ``prompt``.

    Raises:
        ConfigError: If the variable is unset, the file is missing or
            unreadable, stdin is not a TTY for ``prompt``, or the source
            format is unknown.
    """
    kind, _, ref = source.partition(":")
    if kind == "env" and ref:
        value = os.environ.get(ref)
        if value is None:
            raise ConfigError(f"Environment variable '{ref}' is not set (source: {source})")
        return value

    if kind == "file" and ref:
        path = Path(ref).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for the API token: stdin is not a TTY")
        return getpass.getpass("Homebridge API token: ")

    raise ConfigError(f"Unknown credential source format: {source}")
