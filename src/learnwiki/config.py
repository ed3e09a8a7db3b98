"""Configuration system for the learnwiki service.

This module handles loading settings from environment variables and an INI
file, providing sensible defaults, and computing derived paths under the
data directory.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "jobs": {
        "poll_interval_seconds": (float, 1.0, 0.01, 60.0, "Delay between job status polls"),
        "poll_timeout_seconds": (float, 300.0, 0.1, 3600.0, "Hard limit on total polling time"),
        "poll_max_retries": (int, 3, 0, 20, "Consecutive transient poll errors tolerated"),
        "generation_timeout_seconds": (
            float,
            300.0,
            0.1,
            3600.0,
            "Abort a single generation call after this long",
        ),
    },
    "cache": {
        "max_entries": (int, 50, 0, 10_000, "Generation cache capacity"),
        "ttl_seconds": (float, 300.0, 0.0, 86_400.0, "Generation cache entry lifetime"),
    },
    "storage": {
        "max_open_stores": (int, 16, 1, 1024, "Library handles kept open at once"),
        "breadcrumb_limit": (int, 10, 1, 100, "Breadcrumbs kept per session"),
    },
    "llm": {
        "max_tokens": (int, 8000, 256, 32768, "Max response tokens"),
        "default_temperature": (float, 0.7, 0.0, 2.0, "Default LLM temperature"),
        "json_temperature": (float, 0.7, 0.0, 2.0, "Temperature for page generation"),
    },
}


@dataclass(frozen=True)
class JobsConfig:
    """Job dispatch and polling configuration."""

    poll_interval_seconds: float
    poll_timeout_seconds: float
    poll_max_retries: int
    generation_timeout_seconds: float


@dataclass(frozen=True)
class CacheConfig:
    """Generation cache configuration."""

    max_entries: int
    ttl_seconds: float


@dataclass(frozen=True)
class StorageConfig:
    """Library store configuration."""

    max_open_stores: int
    breadcrumb_limit: int


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float
    json_temperature: float


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _defaults(section: str) -> dict[str, Any]:
    return {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated and default core settings.

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    return Config(
        jobs=JobsConfig(**_load_section(parser, "jobs", CONFIG_SCHEMA["jobs"])),
        cache=CacheConfig(**_load_section(parser, "cache", CONFIG_SCHEMA["cache"])),
        storage=StorageConfig(**_load_section(parser, "storage", CONFIG_SCHEMA["storage"])),
        llm=LLMConfig(**_load_section(parser, "llm", CONFIG_SCHEMA["llm"])),
    )


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path = None  # type: ignore[assignment]  # Set in __post_init__ if None
    active_provider: str = "ollama"
    active_model: str = "llama2"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    openai_api_base: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"

    jobs: JobsConfig = None  # type: ignore[assignment]
    cache: CacheConfig = None  # type: ignore[assignment]
    storage: StorageConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # frozen=True, so object.__setattr__ is required
        if self.data_dir is None:
            object.__setattr__(self, "data_dir", Path.home() / ".learnwiki")
        if self.jobs is None:
            object.__setattr__(self, "jobs", JobsConfig(**_defaults("jobs")))
        if self.cache is None:
            object.__setattr__(self, "cache", CacheConfig(**_defaults("cache")))
        if self.storage is None:
            object.__setattr__(self, "storage", StorageConfig(**_defaults("storage")))
        if self.llm is None:
            object.__setattr__(self, "llm", LLMConfig(**_defaults("llm")))

    @property
    def libraries_dir(self) -> Path:
        """Directory holding one SQLite file per library."""
        return self.data_dir / "libraries"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    @property
    def llm_log_path(self) -> Path:
        """Path to the JSONL log of LLM queries."""
        return self.logs_dir / "llm-queries.jsonl"

    @property
    def llm_provider(self) -> str:
        return self.active_provider

    @property
    def llm_model(self) -> str:
        return self.active_model

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the active LLM provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }
        return provider_keys.get(self.active_provider)

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Custom endpoint for the active provider, if any."""
        if self.active_provider == "ollama":
            return self.ollama_endpoint
        if self.active_provider == "openai":
            return self.openai_api_base
        return None


def _detect_provider_from_keys() -> tuple[str, str]:
    """Auto-detect provider from available API keys.

    Returns:
        Tuple of (provider, model) based on available keys.
        Falls back to ollama if no keys are found.
    """
    if os.getenv("OPENAI_API_KEY"):
        return ("openai", "gpt-4o")
    if os.getenv("ANTHROPIC_API_KEY"):
        return ("anthropic", "claude-3-5-sonnet-20241022")
    if os.getenv("GOOGLE_API_KEY"):
        return ("google", "gemini-1.5-pro")
    return ("ollama", "llama2")


PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-1.5-pro",
    "ollama": "llama2",
}


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If the config file contains invalid values.
    """
    data_dir_str = os.getenv("LEARNWIKI_DATA_DIR")
    data_dir = Path(data_dir_str) if data_dir_str else Path.home() / ".learnwiki"

    config_path_str = os.getenv("LEARNWIKI_CONFIG")
    config_file = Path(config_path_str) if config_path_str else data_dir / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    active_provider = os.getenv("ACTIVE_PROVIDER")
    active_model = os.getenv("ACTIVE_MODEL")

    if not active_provider:
        detected_provider, detected_model = _detect_provider_from_keys()
        active_provider = detected_provider
        if not active_model:
            active_model = detected_model
    elif not active_model:
        active_model = PROVIDER_DEFAULT_MODELS.get(active_provider, "llama2")

    return Config(
        data_dir=data_dir,
        active_provider=active_provider,
        active_model=active_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        openai_api_base=os.getenv("OPENAI_API_BASE_URL"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        jobs=base_config.jobs,
        cache=base_config.cache,
        storage=base_config.storage,
        llm=base_config.llm,
    )


Settings = Config
