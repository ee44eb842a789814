"""Runtime settings for ticket generation.

Built once at startup by ``load_settings()`` and passed by reference into the
service. Precedence (lowest first): dataclass defaults, environment variables,
YAML config file, runtime overrides.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


def _int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def _float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e


def _str(env: Mapping[str, str], key: str) -> Optional[str]:
    raw = env.get(key)
    return raw if raw else None


def _bool(env: Mapping[str, str], key: str) -> Optional[bool]:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _default_claude_cli() -> str:
    return shutil.which("claude") or "claude"


@dataclass(frozen=True)
class Settings:
    # AI text generation (Claude CLI)
    ai_enabled: bool = True
    claude_cli_path: str = field(default_factory=_default_claude_cli)
    ai_model: str = ""
    ai_max_tokens: int = 2048
    ai_temperature: float = 0.3
    ai_timeout_seconds: float = 120.0
    ai_max_retries: int = 0

    # Cascade
    tier_timeout_seconds: float = 150.0

    # Cache
    cache_ttl_seconds: int = 7200
    degraded_cache_ttl_seconds: int = 300
    memory_cache_capacity: int = 500
    analysis_cache_capacity: int = 128
    redis_url: Optional[str] = None

    # Design analysis
    max_node_depth: int = 64

    # Figma REST API
    figma_token: Optional[str] = None
    figma_timeout_seconds: float = 60.0

    # Request defaults
    default_platform: str = "jira"
    default_document_type: str = "component"
    default_tech_stack: str = "React TypeScript"

    # Template search path; packaged templates when unset
    template_dir: Optional[str] = None

    # HTTP / logging
    log_dir: str = "logs"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    def __post_init__(self) -> None:
        for name in (
            "ai_timeout_seconds", "tier_timeout_seconds", "figma_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in (
            "ai_max_tokens", "cache_ttl_seconds", "degraded_cache_ttl_seconds",
            "memory_cache_capacity", "analysis_cache_capacity", "max_node_depth",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.ai_max_retries < 0:
            raise ConfigError("ai_max_retries must be >= 0")
        if not 0.0 <= self.ai_temperature <= 1.0:
            raise ConfigError("ai_temperature must be within [0, 1]")


# Environment variable -> (field, reader)
_ENV_FIELDS = {
    "AI_ENABLED": ("ai_enabled", _bool),
    "CLAUDE_CLI_PATH": ("claude_cli_path", _str),
    "AI_MODEL": ("ai_model", _str),
    "AI_MAX_TOKENS": ("ai_max_tokens", _int),
    "AI_TEMPERATURE": ("ai_temperature", _float),
    "AI_TIMEOUT_SECONDS": ("ai_timeout_seconds", _float),
    "AI_MAX_RETRIES": ("ai_max_retries", _int),
    "TIER_TIMEOUT_SECONDS": ("tier_timeout_seconds", _float),
    "CACHE_TTL_SECONDS": ("cache_ttl_seconds", _int),
    "DEGRADED_CACHE_TTL_SECONDS": ("degraded_cache_ttl_seconds", _int),
    "MEMORY_CACHE_CAPACITY": ("memory_cache_capacity", _int),
    "ANALYSIS_CACHE_CAPACITY": ("analysis_cache_capacity", _int),
    "MAX_NODE_DEPTH": ("max_node_depth", _int),
    "REDIS_URL": ("redis_url", _str),
    "FIGMA_TOKEN": ("figma_token", _str),
    "FIGMA_TIMEOUT_SECONDS": ("figma_timeout_seconds", _float),
    "DEFAULT_PLATFORM": ("default_platform", _str),
    "DEFAULT_DOCUMENT_TYPE": ("default_document_type", _str),
    "DEFAULT_TECH_STACK": ("default_tech_stack", _str),
    "TEMPLATE_DIR": ("template_dir", _str),
    "LOG_DIR": ("log_dir", _str),
    "CORS_ORIGINS": ("cors_origins", _str),
}

_FIELD_TYPES = {f.name: f.type for f in dataclasses.fields(Settings)}


def _coerce(name: str, value: Any) -> Any:
    """Coerce a file/override value to the declared field type."""
    declared = _FIELD_TYPES[name]
    if value is None:
        if "Optional" in declared:
            return None
        raise ConfigError(f"{name} cannot be null")
    try:
        if declared == "bool":
            if isinstance(value, str):
                return value.strip().lower() in ("true", "1", "yes", "on")
            return bool(value)
        if declared == "int":
            if isinstance(value, bool):
                raise ValueError("boolean given")
            return int(value)
        if declared == "float":
            return float(value)
        if declared == "List[str]":
            if isinstance(value, str):
                return [v.strip() for v in value.split(",") if v.strip()]
            return [str(v) for v in value]
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value for {name}: {value!r}") from e


def _from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, (name, reader) in _ENV_FIELDS.items():
        value = reader(environ, key)
        if value is not None:
            values[name] = _coerce(name, value)
    return values


def _from_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = str(key).replace("-", "_")
        if name not in _FIELD_TYPES:
            logger.warning("Ignoring unknown config key %r in %s", key, path)
            continue
        values[name] = _coerce(name, value)
    return values


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings: defaults < environment < YAML file < overrides.

    ``config_path`` falls back to the TICKETGEN_CONFIG environment variable.
    """
    env = os.environ if environ is None else environ
    values = _from_env(env)

    path = config_path or env.get("TICKETGEN_CONFIG")
    if path:
        values.update(_from_file(Path(path)))

    for name, value in (overrides or {}).items():
        if name not in _FIELD_TYPES:
            raise ConfigError(f"unknown setting: {name}")
        values[name] = _coerce(name, value)

    settings = Settings(**values)
    logger.debug(
        "Settings loaded: ai_enabled=%s redis=%s figma=%s",
        settings.ai_enabled, bool(settings.redis_url), bool(settings.figma_token),
    )
    return settings
