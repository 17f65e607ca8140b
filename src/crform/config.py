"""Configuration file loading and validation."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .consts import DEFAULT_API_BASE_URL, DEFAULT_LOG_FILE, TIMEOUT_HTTP_REQUEST
from .errors import ConfigException

logger = logging.getLogger(__name__)


class ApiConfig(BaseModel):
    """Change-request service connection."""

    base_url: HttpUrl = Field(default=DEFAULT_API_BASE_URL, validate_default=True)
    token: Optional[str] = None
    timeout: int = Field(default=TIMEOUT_HTTP_REQUEST, ge=1)


class FormConfig(BaseModel):
    """Form schema selection."""

    schema_file: Optional[str] = None


class WebConfig(BaseModel):
    """Headless form service configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = Field(default=False)


class Config(BaseSettings):
    """Application configuration."""

    log_file: str = Field(default=DEFAULT_LOG_FILE)

    api: ApiConfig = Field(default_factory=ApiConfig)
    form: FormConfig = Field(default_factory=FormConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    model_config = SettingsConfigDict(
        env_prefix="CRFORM_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def load_from_file(cls, config_path: str | None) -> "Config":
        """Load configuration from specified path.

        Without a path, or when the default file does not exist, settings come
        from ``CRFORM_*`` environment variables and defaults only.
        """
        toml_file = None
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigException(f"Configuration file not found: {config_path}")
            toml_file = str(path)

        class _Config(cls):
            model_config = SettingsConfigDict(
                toml_file=toml_file,
                env_prefix="CRFORM_",
                env_nested_delimiter="__",
            )

        try:
            return _Config()
        except ValidationError as e:
            error_lines = ["Configuration validation failed:"]
            for error in e.errors():
                loc = " -> ".join(str(item) for item in error["loc"])
                error_lines.append(f"  - {loc}: {error['msg']}")
            raise ConfigException("\n".join(error_lines)) from e
        except ValueError as e:
            # tomllib.TOMLDecodeError is a ValueError
            raise ConfigException(f"Invalid TOML syntax: {e}") from e
