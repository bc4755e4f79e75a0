"""Unified configuration: YAML file, .env files and environment overlay."""

import os
import sys
import yaml
import logging
from pathlib import Path
from functools import lru_cache
from typing import Optional, Dict, Any, Tuple
from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BASE_URL
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Configuration file paths
CONFIG_DIR = Path.home() / ".ideogram"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
GLOBAL_DOTENV = CONFIG_DIR / ".env"
LOCAL_DOTENV = Path(".env")

DEFAULT_OUTPUT_DIR = "datasets/ideogram"

API_KEY_HELP = "\n".join(
    [
        "IDEOGRAM_API_KEY not found. Please provide your API key via one of these methods:",
        "",
        '  1. CLI flag:           ideogram --api-key YOUR_KEY generate --prompt "..."',
        "  2. Environment var:    export IDEOGRAM_API_KEY=YOUR_KEY",
        "  3. Local .env file:    Create .env in current directory with IDEOGRAM_API_KEY=YOUR_KEY",
        "  4. Global config:      Create ~/.ideogram/.env with IDEOGRAM_API_KEY=YOUR_KEY",
        "",
        "Get your API key at https://ideogram.ai/api",
    ]
)

# Map legacy flat variables to the nested structure
LEGACY_MAPPINGS = {
    "IDEOGRAM_API_KEY": ("api", "api_key"),
    "IDEOGRAM_BASE_URL": ("api", "base_url"),
    "IDEOGRAM_OUTPUT_DIR": ("output", "directory"),
    "IDEOGRAM_LOG_LEVEL": ("logging", "level"),
    "IDEOGRAM_HARDENED": ("security", "hardened"),
    "IDEOGRAM_ENV": ("security", "hardened"),  # Note: "production" means hardened
}


class ApiConfig(BaseModel):
    """Ideogram API connection settings."""

    api_key: Optional[str] = Field(None, description="Ideogram API key")
    base_url: str = Field(BASE_URL, description="Ideogram API base URL")
    timeout: float = Field(120.0, description="API request timeout in seconds", gt=0)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("Base URL must use HTTPS protocol for security")
        return v.rstrip("/")


class OutputConfig(BaseModel):
    """Where generated images and metadata are written."""

    directory: str = Field(DEFAULT_OUTPUT_DIR, description="Base output directory")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Logging level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() == "WARN":
            return "WARNING"
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class SecurityConfig(BaseModel):
    """Limits and disclosure policy for outbound requests."""

    hardened: bool = Field(
        False, description="Suppress upstream error detail in user-facing messages"
    )
    max_image_mb: int = Field(50, description="Maximum image size in MB", ge=1, le=50)
    download_timeout: float = Field(
        60.0, description="Image download timeout in seconds", gt=0
    )
    max_redirects: int = Field(5, description="Maximum redirects per download", ge=0)

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_mb * 1024 * 1024


class Settings(BaseSettings):
    """Unified settings for the Ideogram client and CLI."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = SettingsConfigDict(
        env_prefix="IDEOGRAM__",
        env_nested_delimiter="__",  # Allows IDEOGRAM__API__API_KEY env var
        extra="ignore",
        validate_default=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Customize settings sources to include YAML, .env files and legacy env vars."""
        from pydantic_settings.sources import PydanticBaseSettingsSource

        class _DictSource(PydanticBaseSettingsSource):
            loader = None

            def get_field_value(
                self, field: FieldInfo, field_name: str
            ) -> Tuple[Any, str, bool]:
                data = self()
                if field_name in data:
                    return data[field_name], field_name, True
                return None, field_name, False

            def __call__(self) -> Dict[str, Any]:
                return type(self).loader()

        class LegacyEnvVars(_DictSource):
            """Load legacy flat environment variables."""

            loader = staticmethod(lambda: cls._legacy_env_source(os.environ))

        class DotEnvFiles(_DictSource):
            """Load legacy variables from local and global .env files."""

            loader = staticmethod(lambda: cls._dotenv_source())

        class YamlConfigSource(_DictSource):
            """Load settings from the YAML config file."""

            loader = staticmethod(lambda: cls._yaml_config_source())

        # Precedence (left to right - first source wins):
        # init > nested env > legacy env > .env files > yaml > defaults
        return (
            init_settings,
            env_settings,
            LegacyEnvVars(settings_cls),
            DotEnvFiles(settings_cls),
            YamlConfigSource(settings_cls),
        )

    @classmethod
    def _yaml_config_source(cls) -> Dict[str, Any]:
        """Load configuration from the YAML file."""
        # Under pytest, skip the user's real config unless a file is named explicitly
        if "pytest" in sys.modules and "IDEOGRAM_CONFIG_FILE" not in os.environ:
            return {}

        config_file = Path(os.getenv("IDEOGRAM_CONFIG_FILE", str(CONFIG_FILE)))
        if not config_file.exists():
            return {}

        try:
            with open(config_file) as f:
                config_data = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from {config_file}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load {config_file}: {e}")
            return {}

        if not isinstance(config_data, dict):
            logger.warning(f"Ignoring {config_file}: top level must be a mapping")
            return {}

        # Handle None values from YAML (e.g., "api:" with no content)
        for key in list(config_data.keys()):
            if config_data[key] is None:
                config_data[key] = {}

        return config_data

    @classmethod
    def _dotenv_source(cls) -> Dict[str, Any]:
        """Read legacy variables from ``./.env`` then ``~/.ideogram/.env``.

        The local file wins over the global one.
        """
        if "pytest" in sys.modules and "IDEOGRAM_DOTENV_GLOBAL" not in os.environ:
            global_file = None
        else:
            global_file = Path(os.getenv("IDEOGRAM_DOTENV_GLOBAL", str(GLOBAL_DOTENV)))

        config_data: Dict[str, Any] = {}
        for env_file in (global_file, LOCAL_DOTENV):
            if env_file is None or not env_file.is_file():
                continue
            values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            config_data = _deep_merge(config_data, cls._legacy_env_source(values))
            logger.debug(f"Loaded environment file {env_file}")
        return config_data

    @classmethod
    def _legacy_env_source(cls, environ: Dict[str, str]) -> Dict[str, Any]:
        """Support legacy flat environment variables."""
        config_data: Dict[str, Any] = {}

        for env_key, path in LEGACY_MAPPINGS.items():
            value = environ.get(env_key)
            if value is None:
                continue

            if env_key == "IDEOGRAM_ENV":
                if value.strip().lower() != "production":
                    continue
                value = "true"
            elif env_key == "IDEOGRAM_API_KEY" and not value.strip():
                continue

            current = config_data
            for key in path[:-1]:
                current = current.setdefault(key, {})

            # An explicit IDEOGRAM_HARDENED beats IDEOGRAM_ENV
            if env_key == "IDEOGRAM_ENV" and path[-1] in current:
                continue
            current[path[-1]] = value

        return config_data


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with b taking precedence."""
    result = a.copy()

    for key, value in b.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def resolve_api_key(cli_key: Optional[str] = None) -> str:
    """Pick the API key: CLI flag first, then configured settings.

    Raises:
        ConfigurationError: If no non-blank key is available
    """
    if cli_key and cli_key.strip():
        return cli_key.strip()

    api_key = get_settings().api.api_key
    if not api_key or not api_key.strip():
        raise ConfigurationError(API_KEY_HELP)
    return api_key.strip()


def redact_api_key(api_key: Optional[str]) -> str:
    """Redact an API key for logging, keeping only the last 4 characters."""
    if not api_key or not isinstance(api_key, str) or len(api_key) < 4:
        return "xxx...xxx"
    return f"xxx...{api_key[-4:]}"
