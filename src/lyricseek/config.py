"""Configuration settings for LyricSeek."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from .exceptions import ConfigError

# Directories
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "lyricseek"
CACHE_FILENAME = "lyrics_cache.json"

# Search timing (can be overridden via environment variables)
SEARCH_DEADLINE = float(os.getenv("LYRICSEEK_SEARCH_DEADLINE", "35"))
SEQUENTIAL_STEP_DELAY = 0.3  # Pause between providers in sequential mode

# Cache TTL in days
CACHE_TTL_DAYS = int(os.getenv("LYRICSEEK_CACHE_TTL_DAYS", "7"))
CACHE_TTL_RANGE = (1, 30)

# Rate limit fallback
RATE_LIMIT_RETRY_DELAY = 0.4

# Credentials, keyed by provider id
CREDENTIAL_ENV_VARS = {
    "perplexity": "PERPLEXITY_API_KEY",
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "tavily": "TAVILY_API_KEY",
}

# Optional model overrides, keyed by provider id: (primary env, fallback env)
MODEL_ENV_VARS = {
    "perplexity": ("PERPLEXITY_MODEL", "PERPLEXITY_MODEL_FALLBACK"),
    "openai": ("OPENAI_MODEL", "OPENAI_MODEL_FALLBACK"),
    "claude": ("ANTHROPIC_MODEL", "ANTHROPIC_MODEL_FALLBACK"),
    "gemini": ("GEMINI_MODEL", "GEMINI_MODEL_FALLBACK"),
}


class SearchMode(str, Enum):
    """How the engine walks its providers."""

    FANOUT = "fanout"          # query everything, pick the best
    SEQUENTIAL = "sequential"  # one source at a time, stop on success


def validate_config() -> None:
    """Validate configuration values."""
    if SEARCH_DEADLINE <= 0:
        raise ConfigError("Search deadline must be positive")

    if not (CACHE_TTL_RANGE[0] <= CACHE_TTL_DAYS <= CACHE_TTL_RANGE[1]):
        raise ConfigError(
            f"Cache TTL must be between {CACHE_TTL_RANGE[0]} and {CACHE_TTL_RANGE[1]} days"
        )

def get_cache_dir() -> Path:
    """Get cache directory from environment or default."""
    cache_dir = os.getenv("LYRICSEEK_CACHE_DIR")
    if cache_dir:
        return Path(cache_dir)
    return DEFAULT_CACHE_DIR

# Validate config on import
validate_config()


def parse_search_mode(value: str) -> SearchMode:
    """
    Parse a search mode name.

    Raises:
        ConfigError: If the mode is unknown
    """
    try:
        return SearchMode(value.strip().lower())
    except ValueError:
        raise ConfigError(
            f"Invalid search mode: {value}. "
            f"Use one of: {', '.join(m.value for m in SearchMode)}"
        )


def _parse_disabled(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(p.strip().lower() for p in value.split(",") if p.strip())


@dataclass
class EngineConfig:
    """Runtime settings for a LyricsEngine instance."""

    search_deadline: float = SEARCH_DEADLINE
    cache_ttl_days: int = CACHE_TTL_DAYS
    mode: SearchMode = SearchMode.FANOUT
    cache_dir: Path = field(default_factory=get_cache_dir)
    credentials: Dict[str, str] = field(default_factory=dict)
    models: Dict[str, tuple] = field(default_factory=dict)
    disabled_providers: FrozenSet[str] = frozenset()
    sequential_step_delay: float = SEQUENTIAL_STEP_DELAY
    rate_limit_retry_delay: float = RATE_LIMIT_RETRY_DELAY
    min_cache_confidence: float = 0.5
    merge_partial: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.search_deadline <= 0:
            raise ConfigError("Search deadline must be positive")
        low, high = CACHE_TTL_RANGE
        if not low <= self.cache_ttl_days <= high:
            raise ConfigError(f"Cache TTL must be between {low} and {high} days")
        if not 0.0 <= self.min_cache_confidence <= 1.0:
            raise ConfigError("min_cache_confidence must be within [0, 1]")

    def credential(self, provider_id: str) -> Optional[str]:
        """Return the credential for a provider, or None when unset or blank."""
        value = self.credentials.get(provider_id)
        return value.strip() if value and value.strip() else None

    def is_disabled(self, provider_id: str) -> bool:
        return provider_id.lower() in self.disabled_providers

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "EngineConfig":
        """Build a config from environment variables."""
        env = os.environ if environ is None else environ

        try:
            deadline = float(env.get("LYRICSEEK_SEARCH_DEADLINE", SEARCH_DEADLINE))
            ttl_days = int(env.get("LYRICSEEK_CACHE_TTL_DAYS", CACHE_TTL_DAYS))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}")

        credentials = {
            provider_id: env[var]
            for provider_id, var in CREDENTIAL_ENV_VARS.items()
            if env.get(var)
        }
        models = {}
        for provider_id, (primary_var, fallback_var) in MODEL_ENV_VARS.items():
            primary, fallback = env.get(primary_var), env.get(fallback_var)
            if primary or fallback:
                models[provider_id] = (primary, fallback)

        cache_dir = env.get("LYRICSEEK_CACHE_DIR")
        return cls(
            search_deadline=deadline,
            cache_ttl_days=ttl_days,
            mode=parse_search_mode(env.get("LYRICSEEK_SEARCH_MODE", SearchMode.FANOUT.value)),
            cache_dir=Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR,
            credentials=credentials,
            models=models,
            disabled_providers=_parse_disabled(env.get("LYRICSEEK_DISABLED_PROVIDERS")),
        )
