"""
Configuration Module - Load and validate application settings.
==============================================================

Loads configuration from:
1. config/settings.yaml (defaults)
2. Environment variables from .env file
3. Environment variables from system

Environment variables override YAML defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# Load .env file early
load_dotenv()


def _find_project_root() -> Path:
    """Find the project root directory by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Nested Configuration Models
# ─────────────────────────────────────────────────────────────────────────────


class SiteConfig(BaseModel):
    """Course site settings."""

    course_url_pattern: str = r"^https://frontendmasters\.com/courses/[^/?#]+/?"


class FetchConfig(BaseModel):
    """Page fetching settings."""

    timeout: int = 30
    max_retries: int = 3
    retry_min_wait: int = 1
    retry_max_wait: int = 10
    user_agent: str = "CourseExporter/0.1.0"


class OrchestrationConfig(BaseModel):
    """Request/retry orchestration settings."""

    request_type: str = "extract-course-data"
    reload_timeout: float = 15.0
    allow_script_injection: bool = True
    auto_attach_listener: bool = False

    @field_validator("reload_timeout")
    @classmethod
    def validate_reload_timeout(cls, v: float) -> float:
        """Reload wait must be bounded by a positive timeout."""
        if v <= 0:
            raise ValueError("reload_timeout must be positive")
        return v


class ExportConfig(BaseModel):
    """Export artifact settings."""

    output_dir: str = "exports"
    downloads_dir: str = "downloads"
    mode: str = "directory"
    indent: int = 2
    task_list_suffix: str = "-v2"

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Only the directory and download writers exist."""
        mode = v.lower()
        if mode not in ("directory", "download"):
            raise ValueError(f"Unknown export mode: {v}")
        return mode


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    rich_console: bool = True
    file: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Main Settings Class
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from:
    1. config/settings.yaml (defaults, passed as init values)
    2. Environment variables, flat (``LOG_LEVEL``) or nested with ``__``
       (``EXPORT__INDENT=4``)

    Environment variables override YAML settings, see
    :meth:`settings_customise_sources`.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
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
        """
        Rank environment variables above the YAML values passed to ``__init__``.

        Sources are deep-merged, so ``ORCHESTRATION__RELOAD_TIMEOUT=30``
        replaces one nested value and keeps the rest of the YAML section.
        """
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # Top-level environment overrides
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")
    export_output_dir: Optional[str] = Field(default=None, validation_alias="EXPORT_OUTPUT_DIR")
    export_mode: Optional[str] = Field(default=None, validation_alias="EXPORT_MODE")
    reload_timeout: Optional[float] = Field(default=None, validation_alias="RELOAD_TIMEOUT")

    # Nested configurations (from YAML)
    site: SiteConfig = Field(default_factory=SiteConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    orchestration: OrchestrationConfig = Field(default_factory=OrchestrationConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    _project_root: Path = PROJECT_ROOT

    @field_validator("export_mode", mode="before")
    @classmethod
    def validate_export_mode(cls, v: Any) -> Optional[str]:
        """Normalize the export mode override."""
        if v is None or v == "":
            return None
        return str(v).lower()

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return self._project_root

    def resolve_path(self, path: str) -> Path:
        """Resolve a configured path relative to the project root."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self._project_root / candidate

    def get_effective_log_level(self) -> str:
        """Get the effective log level (env override or config)."""
        if self.log_level:
            return self.log_level.upper()
        return self.logging.level.upper()

    def get_effective_output_dir(self) -> Path:
        """Get the effective export directory (env override or config)."""
        return self.resolve_path(self.export_output_dir or self.export.output_dir)

    def get_effective_downloads_dir(self) -> Path:
        """Get the directory the download writer offers files into."""
        return self.resolve_path(self.export.downloads_dir)

    def get_effective_export_mode(self) -> str:
        """Get the effective export mode (env override or config)."""
        return self.export_mode or self.export.mode

    def get_effective_reload_timeout(self) -> float:
        """Get the effective reload wait in seconds (env override or config)."""
        if self.reload_timeout is not None and self.reload_timeout > 0:
            return self.reload_timeout
        return self.orchestration.reload_timeout


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def _create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create settings instance by merging YAML defaults with environment."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_config = _load_yaml_config(config_path)

    # YAML values arrive as init kwargs; env still wins by source order
    return Settings(**yaml_config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Returns:
        Settings instance with merged configuration

    Example:
        >>> settings = get_settings()
        >>> print(settings.orchestration.reload_timeout)
        15.0
    """
    return _create_settings()


def reload_settings() -> Settings:
    """
    Force reload of settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
