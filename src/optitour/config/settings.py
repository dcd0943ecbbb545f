"""OptiTour configuration settings using pydantic-settings."""

from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from optitour.photos.compression import CompressionOptions
    from optitour.sync.policy import RetryPolicy


class Settings(BaseSettings):
    """Configuration settings for the OptiTour field client.

    Settings are loaded from environment variables with the OPTITOUR_ prefix.
    For example, OPTITOUR_API_URL=https://booth.example/api sets api_url.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPTITOUR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend settings
    api_url: str = "http://localhost:3000/api"
    request_timeout: float = 30.0  # seconds

    # File paths
    data_dir: Path = Path("~/.local/share/optitour")

    # Photo compression
    compress_max_dimension: int = 1920  # longest side in pixels
    compress_max_size_mb: float = 1.5
    compress_quality: int = 80  # initial JPEG quality (1-100)

    # Offline queue replay
    replay_max_retries: int = 5
    replay_base_delay: float = 1.0  # seconds, doubled per retry
    replay_max_delay: float = 16.0
    replay_coalesce_gps: bool = False

    # Sync worker
    sync_interval: float = 30.0
    sync_startup_delay: float = 2.0
    sync_online_delay: float = 1.0

    # Logging
    log_level: str = "INFO"

    @field_validator("compress_quality")
    @classmethod
    def validate_compress_quality(cls, v: int) -> int:
        """Ensure JPEG quality is within valid range."""
        if v < 1 or v > 100:
            raise ValueError("compress_quality must be between 1 and 100")
        return v

    @field_validator("compress_max_dimension")
    @classmethod
    def validate_compress_max_dimension(cls, v: int) -> int:
        """Ensure the resize bound is a usable pixel size."""
        if v < 16:
            raise ValueError("compress_max_dimension must be at least 16 pixels")
        return v

    @field_validator("replay_max_retries")
    @classmethod
    def validate_replay_max_retries(cls, v: int) -> int:
        """Ensure at least one replay attempt is allowed."""
        if v < 1:
            raise ValueError("replay_max_retries must be at least 1")
        return v

    @field_validator(
        "compress_max_size_mb",
        "replay_base_delay",
        "replay_max_delay",
        "request_timeout",
        "sync_interval",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Ensure sizes, delays and timeouts are positive."""
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @cached_property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @cached_property
    def storage_path(self) -> Path:
        """Return the path of the local blob storage database."""
        return self.data_path / "storage.db"

    @cached_property
    def log_path(self) -> Path:
        """Return the path of the rotating client log file."""
        return self.data_path / "logs" / "optitour.log"

    def retry_policy(self) -> "RetryPolicy":
        """Build the replay retry policy from settings."""
        from optitour.sync.policy import RetryPolicy

        return RetryPolicy(
            max_retries=self.replay_max_retries,
            base_delay=self.replay_base_delay,
            max_delay=self.replay_max_delay,
        )

    def compression_options(self) -> "CompressionOptions":
        """Build photo compression options from settings."""
        from optitour.photos.compression import CompressionOptions

        return CompressionOptions(
            max_dimension=self.compress_max_dimension,
            max_size_mb=self.compress_max_size_mb,
            quality=self.compress_quality,
        )
