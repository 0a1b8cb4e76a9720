from __future__ import annotations

import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_CONFIG_PATH = os.path.join(ROOT_DIR, "config.yaml")

SPREADSHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
TOKEN_URI = "https://oauth2.googleapis.com/token"
SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


@dataclass(frozen=True)
class ServiceAccountCredential:
    client_email: str
    private_key_pem: str


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000


@dataclass(frozen=True)
class OAuthConfig:
    token_uri: str = TOKEN_URI
    scope: str = SPREADSHEETS_SCOPE
    lifetime_seconds: int = 3600
    # None keeps requests' default: no timeout at all.
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class SheetsConfig:
    api_base: str = SHEETS_API_BASE
    append_range: str = "Sheet1!A:K"
    probe_range: str = "Sheet1!A1:J1"
    value_input_option: str = "RAW"
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class GoogleConfig:
    service_account_json: str = ""
    service_account_file: str = ""
    sheet_id: str = ""


@dataclass(frozen=True)
class CollectorConfig:
    enabled: bool = True
    endpoint: str = "/api/track"


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    sheets: SheetsConfig = field(default_factory=SheetsConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    debug_enabled: bool = False
    log_level: str = "INFO"


def load_config(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _timeout(v: Any) -> Optional[float]:
    if v in (None, ""):
        return None
    try:
        t = float(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"http.timeout_seconds must be a number, got {v!r}") from e
    return t if t > 0 else None


def _endpoint(v: Any) -> str:
    ep = str(v or "/api/track").strip()
    if not ep.startswith("/"):
        raise ConfigError(f"collector.endpoint must be a path starting with /, got {v!r}")
    return ep


def build_settings(raw: Dict[str, Any], *, env: Optional[Dict[str, str]] = None, cfg_dir: str = ROOT_DIR) -> AppConfig:
    """
    Turn the YAML mapping into an AppConfig.

    GOOGLE_SERVICE_ACCOUNT_JSON and GOOGLE_SHEET_ID in the environment take
    precedence over the file, so secrets never have to live in config.yaml.
    """
    env = os.environ if env is None else env
    server = raw.get("server") or {}
    google = raw.get("google") or {}
    http = raw.get("http") or {}
    collector = raw.get("collector") or {}

    sa_file = str(google.get("service_account_file") or "").strip()
    if sa_file and not os.path.isabs(sa_file):
        # Relative paths are resolved against the config file location.
        sa_file = os.path.abspath(os.path.join(cfg_dir, sa_file))

    try:
        port = int(server.get("port") or env.get("PORT") or 5000)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"server.port must be an integer, got {server.get('port')!r}") from e

    timeout = _timeout(http.get("timeout_seconds"))
    return AppConfig(
        server=ServerConfig(host=str(server.get("host") or "127.0.0.1"), port=port),
        google=GoogleConfig(
            service_account_json=str(env.get("GOOGLE_SERVICE_ACCOUNT_JSON") or google.get("service_account_json") or ""),
            service_account_file=sa_file,
            sheet_id=str(env.get("GOOGLE_SHEET_ID") or google.get("sheet_id") or "").strip(),
        ),
        oauth=OAuthConfig(timeout_seconds=timeout),
        sheets=SheetsConfig(
            append_range=str(google.get("append_range") or "Sheet1!A:K"),
            probe_range=str(google.get("probe_range") or "Sheet1!A1:J1"),
            value_input_option=str(google.get("value_input_option") or "RAW"),
            timeout_seconds=timeout,
        ),
        collector=CollectorConfig(
            enabled=bool(collector.get("enabled", True)),
            endpoint=_endpoint(collector.get("endpoint")),
        ),
        debug_enabled=bool((raw.get("debug") or {}).get("enabled", False)),
        log_level=str((raw.get("logging") or {}).get("level") or "INFO").upper(),
    )


def load_settings(path: Optional[str] = None) -> AppConfig:
    cfg_path = path or os.environ.get("VISITOR_SHEETS_CONFIG", DEFAULT_CONFIG_PATH)
    return build_settings(load_config(cfg_path), cfg_dir=os.path.dirname(os.path.abspath(cfg_path)))


def _decode_descriptor(value: str) -> Dict[str, Any]:
    s = value.strip()
    if not s.startswith("{"):
        # Base64-wrapped JSON, padding optional; `base64` wraps its output at 76 columns.
        s = "".join(s.split())
        try:
            missing = len(s) % 4
            if missing:
                s += "=" * (4 - missing)
            s = base64.b64decode(s, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigError("Service account descriptor is neither JSON nor base64 JSON") from e
    try:
        info = json.loads(s)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid service account JSON: {e}") from e
    if not isinstance(info, dict):
        raise ConfigError("Service account JSON must be an object")
    return info


def load_credential(raw: Optional[str]) -> ServiceAccountCredential:
    if raw is None or not raw.strip():
        raise ConfigError("GOOGLE_SERVICE_ACCOUNT_JSON not configured")
    info = _decode_descriptor(raw)
    email = info.get("client_email")
    key = info.get("private_key")
    if not isinstance(email, str) or not email.strip():
        raise ConfigError("Service account JSON has no client_email")
    if not isinstance(key, str) or not key.strip():
        raise ConfigError("Service account JSON has no private_key")
    return ServiceAccountCredential(client_email=email.strip(), private_key_pem=key)


def credential_from_settings(google: GoogleConfig) -> ServiceAccountCredential:
    """Inline JSON wins over the key file; neither present is a ConfigError."""
    if google.service_account_json.strip():
        return load_credential(google.service_account_json)
    if google.service_account_file:
        try:
            with open(google.service_account_file, "r", encoding="utf-8") as f:
                return load_credential(f.read())
        except OSError as e:
            raise ConfigError(f"Cannot read service account file {google.service_account_file}: {e}") from e
    return load_credential(None)


def require_sheet_id(google: GoogleConfig) -> str:
    if not google.sheet_id:
        raise ConfigError("GOOGLE_SHEET_ID not configured")
    return google.sheet_id
