"""
Server Configuration Management for the content server.

Handles configuration creation, validation, environment variable overrides
and persistence. Configuration is read once at startup and treated as
immutable afterwards.
"""

import json
import logging
import ntpath
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from ..logging_utils import format_error_log, get_log_extra

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Update from content editor"


@dataclass
class GitTimeoutsConfig:
    """Git operation timeouts (in seconds)."""

    git_command_timeout: int = 60


@dataclass
class UploadConfig:
    """Upload staging configuration."""

    # Staging directory name, created under the content root
    tmp_dir_name: str = "tmp"
    max_upload_size_bytes: int = 50 * 1024 * 1024


@dataclass
class ContentServerConfig:
    """
    Content server configuration data structure.

    repo_path is the root of the git working tree; content_path is the
    subdirectory (relative to repo_path) that scopes every content
    operation.
    """

    repo_path: str = ""
    content_path: str = ""
    default_commit_message: str = DEFAULT_COMMIT_MESSAGE
    default_commit_name: Optional[str] = None
    default_commit_email: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    git_timeouts_config: Optional[GitTimeoutsConfig] = None
    upload_config: Optional[UploadConfig] = None

    def __post_init__(self):
        """Fill derived defaults and nested config objects."""
        if not self.repo_path:
            self.repo_path = os.getcwd()
        if self.git_timeouts_config is None:
            self.git_timeouts_config = GitTimeoutsConfig()
        if self.upload_config is None:
            self.upload_config = UploadConfig()

    @property
    def repo_root(self) -> Path:
        return Path(os.path.normpath(os.path.abspath(self.repo_path)))

    @property
    def content_root(self) -> Path:
        return Path(os.path.normpath(os.path.join(str(self.repo_root), self.content_path)))

    @property
    def tmp_dir(self) -> Path:
        assert self.upload_config is not None  # Guaranteed by __post_init__
        return self.content_root / self.upload_config.tmp_dir_name


class ContentServerConfigManager:
    """
    Manages content server configuration.

    Handles configuration creation, validation, file persistence and
    environment variable overrides.
    """

    def __init__(self, server_dir_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            server_dir_path: Path to server directory (defaults to
                GIT_CONTENT_SERVER_DATA_DIR env var or ~/.git-content-server)
        """
        if server_dir_path:
            self.server_dir = Path(server_dir_path)
        else:
            default_dir = os.environ.get(
                "GIT_CONTENT_SERVER_DATA_DIR", str(Path.home() / ".git-content-server")
            )
            self.server_dir = Path(default_dir)

        self.config_file_path = self.server_dir / "config.json"

    def create_default_config(self) -> ContentServerConfig:
        return ContentServerConfig()

    def save_config(self, config: ContentServerConfig) -> None:
        """
        Save configuration to file.

        Args:
            config: ContentServerConfig object to save
        """
        self.server_dir.mkdir(parents=True, exist_ok=True)

        config_dict = asdict(config)

        with open(self.config_file_path, "w") as f:
            json.dump(config_dict, f, indent=2)

    def load_config(self) -> Optional[ContentServerConfig]:
        """
        Load configuration from file.

        Returns:
            ContentServerConfig if file exists and is valid, None otherwise

        Raises:
            ValueError: If configuration file is malformed
        """
        if not self.config_file_path.exists():
            return None

        try:
            with open(self.config_file_path, "r") as f:
                config_dict = json.load(f)

            if not isinstance(config_dict, dict):
                raise ValueError("Invalid configuration format: expected a JSON object")

            if isinstance(config_dict.get("git_timeouts_config"), dict):
                config_dict["git_timeouts_config"] = GitTimeoutsConfig(
                    **config_dict["git_timeouts_config"]
                )

            if isinstance(config_dict.get("upload_config"), dict):
                config_dict["upload_config"] = UploadConfig(**config_dict["upload_config"])

            return ContentServerConfig(**config_dict)

        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse configuration file: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid configuration format: {e}")

    def apply_env_overrides(self, config: ContentServerConfig) -> ContentServerConfig:
        """
        Apply environment variable overrides to configuration.

        Supported environment variables:
        - GIT_CONTENT_REPO_PATH, GIT_CONTENT_CONTENT_PATH
        - GIT_CONTENT_DEFAULT_COMMIT_MESSAGE
        - GIT_CONTENT_DEFAULT_COMMIT_NAME, GIT_CONTENT_DEFAULT_COMMIT_EMAIL
        - GIT_CONTENT_SERVER_HOST, GIT_CONTENT_SERVER_PORT
        - GIT_CONTENT_LOG_LEVEL
        - GIT_CONTENT_GIT_TIMEOUT

        Args:
            config: Base configuration to apply overrides to

        Returns:
            Updated configuration with environment overrides
        """
        if repo_env := os.environ.get("GIT_CONTENT_REPO_PATH"):
            config.repo_path = repo_env

        if content_env := os.environ.get("GIT_CONTENT_CONTENT_PATH"):
            config.content_path = content_env

        if message_env := os.environ.get("GIT_CONTENT_DEFAULT_COMMIT_MESSAGE"):
            config.default_commit_message = message_env

        if name_env := os.environ.get("GIT_CONTENT_DEFAULT_COMMIT_NAME"):
            config.default_commit_name = name_env

        if email_env := os.environ.get("GIT_CONTENT_DEFAULT_COMMIT_EMAIL"):
            config.default_commit_email = email_env

        if host_env := os.environ.get("GIT_CONTENT_SERVER_HOST"):
            config.host = host_env

        if port_env := os.environ.get("GIT_CONTENT_SERVER_PORT"):
            try:
                config.port = int(port_env)
            except ValueError:
                logger.warning(
                    format_error_log(
                        "CONTENT-CONFIG-001",
                        f"Invalid GIT_CONTENT_SERVER_PORT value '{port_env}'. Using default port {config.port}",
                    ),
                    extra=get_log_extra("CONTENT-CONFIG-001"),
                )

        if log_level_env := os.environ.get("GIT_CONTENT_LOG_LEVEL"):
            config.log_level = log_level_env.upper()

        if timeout_env := os.environ.get("GIT_CONTENT_GIT_TIMEOUT"):
            assert config.git_timeouts_config is not None  # Guaranteed by __post_init__
            try:
                config.git_timeouts_config.git_command_timeout = int(timeout_env)
            except ValueError:
                logger.warning(
                    format_error_log(
                        "CONTENT-CONFIG-001",
                        f"Invalid GIT_CONTENT_GIT_TIMEOUT value '{timeout_env}'. "
                        f"Using default {config.git_timeouts_config.git_command_timeout}s",
                    ),
                    extra=get_log_extra("CONTENT-CONFIG-001"),
                )

        return config

    def validate_config(self, config: ContentServerConfig) -> None:
        """
        Validate configuration settings.

        Args:
            config: Configuration to validate

        Raises:
            ValueError: If any configuration value is invalid
        """
        if not (1 <= config.port <= 65535):
            raise ValueError(f"Port must be between 1 and 65535, got {config.port}")

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if config.log_level.upper() not in valid_log_levels:
            raise ValueError(
                f"Log level must be one of {valid_log_levels}, got {config.log_level}"
            )

        if not config.default_commit_message.strip():
            raise ValueError("default_commit_message must not be empty")

        content_path = config.content_path
        if os.path.isabs(content_path) or ntpath.splitdrive(content_path)[0]:
            raise ValueError(
                f"content_path must be relative to repo_path, got {content_path}"
            )
        repo_root = str(config.repo_root)
        if os.path.commonpath([repo_root, str(config.content_root)]) != repo_root:
            raise ValueError(f"content_path escapes repo_path: {content_path}")

        assert config.git_timeouts_config is not None  # Guaranteed by __post_init__
        if config.git_timeouts_config.git_command_timeout <= 0:
            raise ValueError(
                f"git_command_timeout must be greater than 0, got {config.git_timeouts_config.git_command_timeout}"
            )

        assert config.upload_config is not None  # Guaranteed by __post_init__
        tmp_dir_name = config.upload_config.tmp_dir_name
        if not tmp_dir_name or tmp_dir_name in (".", "..") or any(
            sep in tmp_dir_name for sep in ("/", "\\")
        ):
            raise ValueError(
                f"tmp_dir_name must be a single directory name, got {tmp_dir_name!r}"
            )
        if config.upload_config.max_upload_size_bytes <= 0:
            raise ValueError(
                f"max_upload_size_bytes must be greater than 0, got {config.upload_config.max_upload_size_bytes}"
            )

    def load_or_create(self) -> ContentServerConfig:
        """
        Load config from disk (or defaults), apply env overrides, validate.

        Returns:
            The effective, validated configuration
        """
        config = self.load_config() or self.create_default_config()
        config = self.apply_env_overrides(config)
        self.validate_config(config)
        return config
