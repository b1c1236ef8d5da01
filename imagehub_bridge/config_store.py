from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_BRANCH,
    DEFAULT_CONTENT_HOST,
    DEFAULT_DIRECTORY,
    DEFAULT_MAX_UPLOAD_BYTES,
    ROOT_DIR,
)

logger = logging.getLogger(__name__)

# Load project-root .env defaults once; process env still takes precedence.
load_dotenv(dotenv_path=ROOT_DIR.parent / ".env", override=False)

SUPPORTED_MODES = {"github"}

DEFAULT_CONFIG: dict[str, Any] = {
    "mode": "github",
    "github": {
        "token": "",
        "owner": "",
        "repo": "",
        "branch": DEFAULT_BRANCH,
        "directory": DEFAULT_DIRECTORY,
        "api_base_url": DEFAULT_API_BASE_URL,
        "content_host": DEFAULT_CONTENT_HOST,
        "timeout_seconds": "30",
        "probe_before_write": "true",
    },
    "limits": {
        "max_upload_bytes": str(DEFAULT_MAX_UPLOAD_BYTES),
    },
}

_SECRET_FIELDS = {
    ("github", "token"),
}

_ENV_VARS = {
    "github": {
        "token": "IMAGEHUB_GITHUB_TOKEN",
        "owner": "IMAGEHUB_GITHUB_OWNER",
        "repo": "IMAGEHUB_GITHUB_REPO",
        "branch": "IMAGEHUB_GITHUB_BRANCH",
        "directory": "IMAGEHUB_GITHUB_DIRECTORY",
        "api_base_url": "IMAGEHUB_GITHUB_API_BASE_URL",
        "content_host": "IMAGEHUB_GITHUB_CONTENT_HOST",
        "timeout_seconds": "IMAGEHUB_GITHUB_TIMEOUT_SECONDS",
        "probe_before_write": "IMAGEHUB_GITHUB_PROBE_BEFORE_WRITE",
    },
    "limits": {
        "max_upload_bytes": "IMAGEHUB_MAX_UPLOAD_BYTES",
    },
}


def config_path() -> Path:
    override = os.getenv("IMAGEHUB_CONFIG_PATH", "").strip()
    if override:
        return Path(override).expanduser()
    return ROOT_DIR / "config.json"


def _read_file_config() -> dict[str, Any]:
    path = config_path()
    if not path.exists():
        return {}
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as error:
        logger.warning("Ignoring unreadable config file %s: %s", path, error)
        return {}
    if isinstance(loaded, dict):
        return loaded
    return {}


def _normalize_mode(value: Any) -> str:
    return str(value or "github").strip().lower() or "github"


def _normalize_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value if value is not None else "").strip()


def _normalize_section(value: Any, defaults: dict[str, Any]) -> dict[str, str]:
    src = value if isinstance(value, dict) else {}
    out: dict[str, str] = {}
    for key, default in defaults.items():
        normalized = _normalize_string(src.get(key, default))
        out[key] = normalized or _normalize_string(default)
    return out


def parse_bool(value: Any) -> bool:
    raw = _normalize_string(value).lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Expected a boolean value, got {value!r}")


def parse_positive_number(value: Any, *, name: str, integer: bool = False) -> float:
    try:
        number = int(_normalize_string(value)) if integer else float(_normalize_string(value))
    except ValueError as error:
        raise ValueError(f"{name} must be a number") from error
    if number <= 0:
        raise ValueError(f"{name} must be positive")
    return number


def normalize_config(config: dict[str, Any]) -> dict[str, Any]:
    normalized = {
        "mode": _normalize_mode(config.get("mode", DEFAULT_CONFIG["mode"])),
        "github": _normalize_section(config.get("github"), DEFAULT_CONFIG["github"]),
        "limits": _normalize_section(config.get("limits"), DEFAULT_CONFIG["limits"]),
    }
    normalized["github"]["directory"] = normalized["github"]["directory"].strip("/")
    return normalized


def _env_config() -> dict[str, Any]:
    sections = {
        section: {key: os.getenv(env_name, "") for key, env_name in fields.items()}
        for section, fields in _ENV_VARS.items()
    }
    return normalize_config(
        {
            "mode": os.getenv("IMAGEHUB_MODE", DEFAULT_CONFIG["mode"]),
            **sections,
        }
    )


def load_effective_config() -> dict[str, Any]:
    loaded = _read_file_config()
    if loaded:
        # Config file exists: use config only.
        return normalize_config(loaded)

    # No config file: fall back to environment.
    return _env_config()


def redact_config(config: dict[str, Any]) -> dict[str, Any]:
    redacted = json.loads(json.dumps(config))
    for section, field in _SECRET_FIELDS:
        section_obj = redacted.get(section)
        if isinstance(section_obj, dict) and section_obj.get(field):
            section_obj[field] = "***"
    return redacted


def validate_config(config: dict[str, Any]) -> None:
    mode = _normalize_mode(config.get("mode", "github"))
    if mode not in SUPPORTED_MODES:
        raise ValueError(f"mode must be one of: {', '.join(sorted(SUPPORTED_MODES))}")

    github = config.get("github", {})
    limits = config.get("limits", {})
    parse_positive_number(github.get("timeout_seconds"), name="github.timeout_seconds")
    parse_bool(github.get("probe_before_write"))
    parse_positive_number(limits.get("max_upload_bytes"), name="limits.max_upload_bytes", integer=True)
    if not str(github.get("directory", "")).strip("/"):
        raise ValueError("github.directory must not be empty")


def save_file_config(config: dict[str, Any]) -> dict[str, Any]:
    # Merge incoming with FILE config only (never env fallback values).
    file_current_raw = _read_file_config()
    file_current = normalize_config(file_current_raw) if file_current_raw else normalize_config(DEFAULT_CONFIG)

    merged = {
        "mode": config.get("mode", file_current["mode"]),
        "github": {
            **file_current["github"],
            **(config.get("github") if isinstance(config.get("github"), dict) else {}),
        },
        "limits": {
            **file_current["limits"],
            **(config.get("limits") if isinstance(config.get("limits"), dict) else {}),
        },
    }

    normalized = normalize_config(merged)
    validate_config(normalized)

    config_path().write_text(json.dumps(normalized, indent=2, sort_keys=True), encoding="utf-8")
    return normalized
