"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides
- Configuration initialization and display
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from suedit.core.exceptions import ConfigurationError, UsageError
from suedit.core.validation import format_mode, parse_mode, validate_prefix


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("~/.config/suedit/config.yaml").expanduser()
DEFAULT_AUDIT_LOG_PATH = Path("~/.local/state/suedit/audit.log").expanduser()
DEFAULT_STAGING_PREFIX = "suedit-"
DEFAULT_STAGING_MODE = 0o777


class StagingConfig(BaseModel):
    """Where and how staging copies are created."""

    directory: Optional[Path] = None
    prefix: str = DEFAULT_STAGING_PREFIX
    mode: int = DEFAULT_STAGING_MODE
    secure_delete: bool = True

    @field_validator("directory", mode="before")
    @classmethod
    def expand_directory(cls, v: Optional[Union[str, Path]]) -> Optional[Path]:
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        try:
            return validate_prefix(v)
        except UsageError as e:
            raise ValueError(e.message) from e

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v: Union[str, int]) -> int:
        try:
            mode = parse_mode(v)
        except UsageError as e:
            raise ValueError(e.message) from e
        if mode & 0o600 != 0o600:
            raise ValueError("staging mode must keep the file readable and writable by its owner")
        return mode

    @property
    def scratch_dir(self) -> Path:
        """Directory holding staging files."""
        return self.directory or Path(tempfile.gettempdir())


class ElevationConfig(BaseModel):
    """How elevated operations are performed."""

    use_sudo: bool = True
    sudo_command: list[str] = Field(default_factory=lambda: ["sudo"])
    timeout: Optional[int] = 60

    @field_validator("sudo_command")
    @classmethod
    def validate_sudo_command(cls, v: list[str]) -> list[str]:
        if not v or not v[0]:
            raise ValueError("sudo_command must name a program")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        return v


class AuditConfig(BaseModel):
    """Audit log settings."""

    enabled: bool = True
    log_path: Path = DEFAULT_AUDIT_LOG_PATH
    max_size_mb: int = 10
    backup_count: int = 5

    @field_validator("log_path", mode="before")
    @classmethod
    def expand_log_path(cls, v: Union[str, Path]) -> Path:
        return Path(v).expanduser()

    @field_validator("max_size_mb", "backup_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class EditorConfig(BaseModel):
    """Root configuration model.

    Loaded from ~/.config/suedit/config.yaml when present.
    """

    staging: StagingConfig = Field(default_factory=StagingConfig)
    elevation: ElevationConfig = Field(default_factory=ElevationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    # Editor command; falls back to $VISUAL / $EDITOR
    editor: Optional[str] = None

    # Keep a timestamped copy of the original content before committing
    backup: bool = False

    @classmethod
    def load(cls, path: Path) -> "EditorConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Create it with: suedit config init",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
            )

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration in {path}",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "EditorConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        data = self.model_dump(mode="json", exclude_none=True)
        data["staging"]["mode"] = format_mode(self.staging.mode)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


class EnvironmentSettings(BaseSettings):
    """Overrides taken from environment variables."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    scratch_dir: Optional[Path] = Field(None, alias="SUEDIT_SCRATCH_DIR")
    no_sudo: bool = Field(False, alias="SUEDIT_NO_SUDO")
    audit_log: Optional[Path] = Field(None, alias="SUEDIT_AUDIT_LOG")

    # Standard editor variables
    visual: Optional[str] = Field(None, alias="VISUAL")
    editor: Optional[str] = Field(None, alias="EDITOR")


class AppConfig:
    """Application configuration combining config file and environment.

    This is the main interface for accessing configuration throughout the app.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[EditorConfig] = None,
    ) -> None:
        """Initialize application configuration.

        Args:
            config_path: Path to config file (uses default if None)
            config: Pre-loaded config (skips file loading if provided)
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or EditorConfig.load_or_default(self.config_path)
        self._env = EnvironmentSettings()

    @property
    def config(self) -> EditorConfig:
        """Get the file configuration."""
        return self._config

    @property
    def env(self) -> EnvironmentSettings:
        """Get the environment overrides."""
        return self._env

    @property
    def staging(self) -> StagingConfig:
        """Shortcut to staging config."""
        return self._config.staging

    @property
    def elevation(self) -> ElevationConfig:
        """Shortcut to elevation config."""
        return self._config.elevation

    @property
    def audit(self) -> AuditConfig:
        """Shortcut to audit config."""
        return self._config.audit

    @property
    def scratch_dir(self) -> Path:
        """Scratch directory, environment first."""
        if self._env.scratch_dir:
            return self._env.scratch_dir.expanduser()
        return self._config.staging.scratch_dir

    @property
    def use_sudo(self) -> bool:
        """Whether elevated operations go through sudo."""
        return self._config.elevation.use_sudo and not self._env.no_sudo

    @property
    def audit_log_path(self) -> Path:
        """Audit log location, environment first."""
        if self._env.audit_log:
            return self._env.audit_log.expanduser()
        return self._config.audit.log_path

    def resolve_editor(self, override: Optional[str] = None) -> Optional[str]:
        """Pick the editor command: option, config, $VISUAL, $EDITOR."""
        return override or self._config.editor or self._env.visual or self._env.editor


def get_example_config() -> str:
    """Generate example configuration file content."""
    return """# suedit configuration
# Location: ~/.config/suedit/config.yaml (override with --config)

# Staging copies (the files you actually edit)
staging:
  # directory: /tmp        # default: system temp directory
  prefix: suedit-
  mode: "0777"             # must keep owner read/write
  secure_delete: true      # overwrite staging content before unlinking

# Elevated read/write of the target
elevation:
  use_sudo: true           # false when already running as root
  sudo_command: [sudo]     # e.g. [doas]
  timeout: 60              # seconds per elevated call (password prompt included)

# Editor to launch with --editor; falls back to $VISUAL / $EDITOR
# editor: vim

# Keep <file>.bak.<timestamp> with the original content before writing back
backup: false

# JSON audit log of every edit
audit:
  enabled: true
  log_path: ~/.local/state/suedit/audit.log
  max_size_mb: 10
  backup_count: 5

# Environment overrides:
#   SUEDIT_SCRATCH_DIR, SUEDIT_NO_SUDO, SUEDIT_AUDIT_LOG, VISUAL, EDITOR
"""


def init_config(path: Path, force: bool = False) -> None:
    """Initialize a new configuration file.

    Args:
        path: Path to create config file
        force: Overwrite if exists

    Raises:
        ConfigurationError: If file exists and force is False
    """
    if path.exists() and not force:
        raise ConfigurationError(
            f"Configuration file already exists: {path}",
            hint="Use --force to overwrite",
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_example_config())
    os.chmod(path, 0o600)
