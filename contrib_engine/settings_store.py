"""
Settings persistence for contribforms.

Settings live in ``settings.json`` under the data root. Missing or unreadable
files fall back to defaults so the forms always start; environment variables
override persisted values.

Environment
-----------
- ``CONTRIBFORMS_DATA_ROOT``: data root directory.
- ``CONTRIBFORMS_RPC_URL``: JSON-RPC endpoint.
- ``CONTRIBFORMS_ACCOUNT_ID``: viewer account.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from contrib_engine.errors import SettingsError
from contrib_engine.remote.near_rpc import DEFAULT_RPC_URL

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.json"


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Runtime settings.

    Attributes
    ----------
    rpc_url:
        NEAR JSON-RPC endpoint.
    contract_id:
        Marketplace contract account.
    social_id:
        Social-graph contract account.
    account_id:
        Signed-in viewer; empty when unknown.
    timeout_seconds:
        HTTP timeout for remote reads.
    """

    rpc_url: str = DEFAULT_RPC_URL
    contract_id: str = "contribut3.near"
    social_id: str = "social.near"
    account_id: str = ""
    timeout_seconds: float = 10.0

    @staticmethod
    def defaults() -> "Settings":
        return Settings()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "contract_id": self.contract_id,
            "social_id": self.social_id,
            "account_id": self.account_id,
            "timeout_seconds": self.timeout_seconds,
        }


def default_data_root() -> Path:
    """
    Resolve the default data root.

    Preference order:
    1) ``CONTRIBFORMS_DATA_ROOT`` if set
    2) ``%LOCALAPPDATA%`` / ``%APPDATA%`` on Windows
    3) ``$XDG_CONFIG_HOME`` or ``~/.config`` elsewhere
    """
    override = os.environ.get("CONTRIBFORMS_DATA_ROOT")
    if override:
        return Path(override)

    for var in ("LOCALAPPDATA", "APPDATA"):
        value = os.environ.get(var)
        if value:
            return Path(value) / "contribforms"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "contribforms"


def settings_path(data_root: Path | None) -> Path:
    root = default_data_root() if data_root is None else data_root
    return root / SETTINGS_FILE_NAME


def _from_mapping(payload: Mapping[str, Any]) -> Settings:
    base = Settings.defaults()

    def _str(key: str, fallback: str) -> str:
        value = payload.get(key)
        return value.strip() if isinstance(value, str) and value.strip() else fallback

    timeout = payload.get("timeout_seconds", base.timeout_seconds)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        timeout = base.timeout_seconds

    return Settings(
        rpc_url=_str("rpc_url", base.rpc_url),
        contract_id=_str("contract_id", base.contract_id),
        social_id=_str("social_id", base.social_id),
        account_id=_str("account_id", base.account_id),
        timeout_seconds=float(timeout),
    )


def _apply_env(settings: Settings) -> Settings:
    rpc_url = os.environ.get("CONTRIBFORMS_RPC_URL")
    account_id = os.environ.get("CONTRIBFORMS_ACCOUNT_ID")
    if rpc_url:
        settings = replace(settings, rpc_url=rpc_url)
    if account_id:
        settings = replace(settings, account_id=account_id)
    return settings


def load_settings(*, data_root: Path | None) -> Settings:
    """
    Load settings from disk.

    Parameters
    ----------
    data_root:
        Data root. If None, the default is used.

    Returns
    -------
    Settings
        Loaded settings with environment overrides, or defaults if missing/unreadable.
    """
    path = settings_path(data_root)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _apply_env(Settings.defaults())
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return _apply_env(Settings.defaults())

    if not isinstance(payload, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", path)
        return _apply_env(Settings.defaults())
    return _apply_env(_from_mapping(payload))


def save_settings(*, data_root: Path | None, settings: Settings) -> Path:
    """
    Save settings to disk.

    Returns
    -------
    Path
        The written settings file.

    Raises
    ------
    SettingsError
        If the file cannot be written.
    """
    path = settings_path(data_root)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Could not write settings to {path}: {exc}") from exc
    return path
