"""Configuration management for autogit."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

CONFIG_DIR_NAME = ".autogit"
CONFIG_FILE_NAME = "config.json"

DEFAULT_DELAY_MS = 3000
DEFAULT_MAX_COMMIT_LENGTH = 72
DEFAULT_REQUEST_TIMEOUT = 10.0

DEFAULT_MODELS = {
    "openai": {
        "model": "gpt-4.1-mini",
        "endpoint": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "anthropic": {
        "model": "claude-3-5-haiku-latest",
        "endpoint": "https://api.anthropic.com",
        "api_key_env": "ANTHROPIC_API_KEY",
    },
    "xai": {
        "model": "grok-code-fast",
        "endpoint": "https://api.x.ai/v1",
        "api_key_env": "XAI_API_KEY",
    },
    "github": {
        "model": "openai/gpt-4.1-mini",
        "endpoint": "https://models.github.ai/inference",
        "api_key_env": "GITHUB_TOKEN",
    },
}

# Disables AI message generation; the deterministic summary is always used.
NO_PROVIDER = "none"

_FUZZY_ENV_HINTS = {
    "openai": ["OPENAI", "OPENAI_API", "OA_KEY"],
    "anthropic": ["ANTHROPIC", "CLAUDE"],
    "xai": ["XAI", "GROK"],
    "github": ["GITHUB_TOKEN", "GH_TOKEN", "GH_MODELS"],
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class Config:
    """Runtime configuration for autogit."""

    enabled: bool = False
    delay_ms: int = DEFAULT_DELAY_MS
    exclude_patterns: List[str] = field(default_factory=list)
    include_untracked: bool = True
    max_commit_length: int = DEFAULT_MAX_COMMIT_LENGTH
    auto_push: bool = True
    remote: str = "origin"
    git_repo_path: str = "."
    provider: str = NO_PROVIDER
    model: str = ""
    llm_endpoint: str = ""
    api_key_env: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = 0.0

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def ai_enabled(self) -> bool:
        return self.provider in DEFAULT_MODELS

    def resolve_api_key(self) -> Optional[str]:
        """Return the API key from the configured environment variable."""
        if not self.api_key_env:
            return None
        return os.environ.get(self.api_key_env)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration to a dict for persistence."""
        return asdict(self)


_CONFIG_STATE: Dict[str, Optional[Config]] = {"active": None}


def _ensure_path(path_like: Optional[Path]) -> Path:
    if path_like is None:
        return Path.cwd().resolve(strict=False)
    return Path(path_like).expanduser().resolve(strict=False)


def _config_dir(repo_root: Optional[Path] = None) -> Path:
    return _ensure_path(repo_root) / CONFIG_DIR_NAME


def config_file_path(repo_root: Optional[Path] = None) -> Path:
    return _config_dir(repo_root) / CONFIG_FILE_NAME


def _resolve_repo_path(raw: str, base_root: Path) -> str:
    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return str(candidate.resolve(strict=False))
    return str((base_root / candidate).resolve(strict=False))


def parse_bool(value: Any, name: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _parse_int(value: Any, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid integer for {name}: {value!r}") from exc
    if parsed < 0:
        raise ConfigError(f"{name} must not be negative: {parsed}")
    return parsed


def _parse_float(value: Any, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid number for {name}: {value!r}") from exc
    if parsed < 0:
        raise ConfigError(f"{name} must not be negative: {parsed}")
    return parsed


def _parse_patterns(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return list(value)


def save_config(config: Config, repo_root: Optional[Path] = None) -> Path:
    """Persist configuration JSON within the repository."""
    cfg_path = config_file_path(repo_root)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    data["git_repo_path"] = _resolve_repo_path(
        data.get("git_repo_path") or ".", _ensure_path(repo_root)
    )
    config.git_repo_path = data["git_repo_path"]
    cfg_path.write_text(json.dumps(data, indent=2))
    return cfg_path


def load_persisted_config(
    repo_root: Optional[Path] = None,
) -> Optional[Dict[str, Any]]:
    """Return the raw persisted settings, or None when nothing is saved."""
    cfg_path = config_file_path(repo_root)
    if not cfg_path.exists():
        return None
    try:
        data = json.loads(cfg_path.read_text())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unreadable config file {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {cfg_path} must contain a JSON object")
    known = {f.name for f in fields(Config)}
    return {k: v for k, v in data.items() if k in known}


def detect_available_providers(
    env: Optional[Dict[str, str]] = None,
) -> Dict[str, List[str]]:
    """Return mapping of provider -> matching env vars found."""
    env_dict: Dict[str, str] = dict(os.environ if env is None else env)
    detected: Dict[str, List[str]] = {p: [] for p in DEFAULT_MODELS}
    for provider, defaults in DEFAULT_MODELS.items():
        key_name = defaults["api_key_env"]
        if env_dict.get(key_name):
            detected[provider].append(key_name)
        hints = _FUZZY_ENV_HINTS.get(provider, [])
        for env_key, env_val in env_dict.items():
            if not env_val or env_key in detected[provider]:
                continue
            for hint in hints:
                if hint.lower() in env_key.lower():
                    detected[provider].append(env_key)
                    break
    return detected


def _auto_select_provider(
    detected: Optional[Dict[str, List[str]]] = None,
) -> str:
    if detected is None:
        detected = detect_available_providers()
    for provider in ("openai", "anthropic", "xai", "github"):
        if detected.get(provider):
            return provider
    return NO_PROVIDER


def _select_env_var_for_provider(provider: str) -> str:
    default_key = DEFAULT_MODELS[provider]["api_key_env"]
    env_matches = detect_available_providers().get(provider, [])
    if default_key in env_matches:
        return default_key
    return env_matches[0] if env_matches else default_key


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    return value if value not in (None, "") else None


def _pick(key: str, overrides: Dict[str, Any], persisted: Dict[str, Any], env_name: str) -> Any:
    if overrides.get(key) is not None:
        return overrides[key]
    if key in persisted and persisted[key] is not None:
        return persisted[key]
    return _env(env_name)


def load_config(
    *,
    repo_root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Config:
    """Build configuration from overrides, the config file and environment.

    Precedence: ``overrides`` > persisted ``.autogit/config.json`` >
    ``AUTOGIT_*`` environment variables > defaults.
    """

    overrides = dict(overrides or {})
    repo_root = _ensure_path(repo_root)
    persisted = load_persisted_config(repo_root) or {}

    provider = _pick("provider", overrides, persisted, "AUTOGIT_PROVIDER")
    if provider is None:
        provider = _auto_select_provider()
    provider = str(provider).strip().lower()
    if provider not in DEFAULT_MODELS:
        provider = NO_PROVIDER

    defaults = DEFAULT_MODELS.get(provider, {})
    # Provider-specific settings are only reused for the same provider.
    same_provider = persisted.get("provider") == provider
    provider_persisted = persisted if same_provider else {}
    model = (
        overrides.get("model")
        or provider_persisted.get("model")
        or _env("AUTOGIT_LLM_MODEL")
        or defaults.get("model", "")
    )
    endpoint = (
        overrides.get("llm_endpoint")
        or provider_persisted.get("llm_endpoint")
        or _env("AUTOGIT_LLM_ENDPOINT")
        or defaults.get("endpoint", "")
    )
    api_key_env = overrides.get("api_key_env") or provider_persisted.get("api_key_env")
    if not api_key_env and provider in DEFAULT_MODELS:
        api_key_env = _select_env_var_for_provider(provider)

    repo_raw = _pick("git_repo_path", overrides, persisted, "AUTOGIT_REPO_PATH")
    git_repo_path = _resolve_repo_path(str(repo_raw or "."), repo_root)

    enabled = _pick("enabled", overrides, persisted, "AUTOGIT_ENABLED")
    delay_ms = _pick("delay_ms", overrides, persisted, "AUTOGIT_DELAY_MS")
    patterns = _pick("exclude_patterns", overrides, persisted, "AUTOGIT_EXCLUDE")
    untracked = _pick(
        "include_untracked", overrides, persisted, "AUTOGIT_INCLUDE_UNTRACKED"
    )
    max_len = _pick(
        "max_commit_length", overrides, persisted, "AUTOGIT_MAX_COMMIT_LENGTH"
    )
    auto_push = _pick("auto_push", overrides, persisted, "AUTOGIT_AUTO_PUSH")
    remote = _pick("remote", overrides, persisted, "AUTOGIT_REMOTE")
    timeout = _pick(
        "request_timeout", overrides, persisted, "AUTOGIT_LLM_REQUEST_TIMEOUT"
    )
    poll = _pick("poll_interval", overrides, persisted, "AUTOGIT_POLL_INTERVAL")

    max_commit_length = (
        _parse_int(max_len, "max_commit_length")
        if max_len is not None
        else DEFAULT_MAX_COMMIT_LENGTH
    )
    if max_commit_length < 4:
        raise ConfigError("max_commit_length must be at least 4")

    config = Config(
        enabled=parse_bool(enabled, "enabled") if enabled is not None else False,
        delay_ms=(
            _parse_int(delay_ms, "delay_ms") if delay_ms is not None else DEFAULT_DELAY_MS
        ),
        exclude_patterns=_parse_patterns(patterns),
        include_untracked=(
            parse_bool(untracked, "include_untracked") if untracked is not None else True
        ),
        max_commit_length=max_commit_length,
        auto_push=parse_bool(auto_push, "auto_push") if auto_push is not None else True,
        remote=str(remote or "origin"),
        git_repo_path=git_repo_path,
        provider=provider,
        model=str(model),
        llm_endpoint=str(endpoint),
        api_key_env=str(api_key_env or ""),
        request_timeout=(
            _parse_float(timeout, "request_timeout")
            if timeout is not None
            else DEFAULT_REQUEST_TIMEOUT
        ),
        poll_interval=_parse_float(poll, "poll_interval") if poll is not None else 0.0,
    )

    set_active_config(config)
    return config


def set_active_config(config: Config) -> None:
    _CONFIG_STATE["active"] = config


def get_active_config() -> Config:
    active = _CONFIG_STATE.get("active")
    if active is None:
        return load_config()
    return active


def clear_active_config() -> None:
    _CONFIG_STATE["active"] = None


def describe_provider(provider: str) -> str:
    meta = DEFAULT_MODELS.get(provider)
    if not meta:
        return "none (deterministic messages only)"
    return f"{provider} (default model: {meta['model']})"
