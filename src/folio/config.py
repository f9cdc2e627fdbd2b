"""Configuration loading and validation for Folio."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class DiscordConfig(BaseModel):
    """Discord configuration."""

    guild_id: str | None = None  # Sync commands to one guild instead of globally


class GalleryConfig(BaseModel):
    """Remote gallery host configuration."""

    api_host: str = "gallery.example.net"
    site_host: str = "gallery.example.net"
    thumb_host: str = "t.gallery.example.net"
    image_host: str = "i.gallery.example.net"
    user_agent: str = "Folio/0.1 (Discord bot)"
    metadata_timeout_seconds: float = 10.0
    download_timeout_seconds: float = 30.0
    max_summary_tags: int = 5

    @field_validator("metadata_timeout_seconds")
    @classmethod
    def validate_metadata_timeout(cls, v: float) -> float:
        """Keep the metadata request bounded to 10-15 seconds."""
        if not 10.0 <= v <= 15.0:
            raise ValueError("metadata_timeout_seconds must be between 10 and 15")
        return v

    def metadata_url(self, code: str) -> str:
        """Lookup URL for a gallery code."""
        return f"https://{self.api_host}/api/gallery/{code}"

    def gallery_url(self, code: str) -> str:
        """Public web page for a gallery code."""
        return f"https://{self.site_host}/g/{code}"

    def cover_url(self, media_id: str, ext: str) -> str:
        """Thumbnail-host URL of a gallery cover."""
        return f"https://{self.thumb_host}/galleries/{media_id}/cover.{ext}"

    def page_url(self, media_id: str, page_number: int, ext: str) -> str:
        """Image-host URL of a 1-based page."""
        return f"https://{self.image_host}/galleries/{media_id}/{page_number}.{ext}"


class DownloadsConfig(BaseModel):
    """Asset download configuration."""

    enabled: bool = True
    subdir: str = "downloads"
    max_attempts: int = Field(3, ge=1)
    backoff_base_seconds: float = Field(0.5, ge=0)


class SessionsConfig(BaseModel):
    """Session store configuration."""

    origin_capacity: int = Field(1000, ge=1)


class Config(BaseModel):
    """Root configuration for Folio."""

    data_dir: Path = Path("./data")
    log_level: str = "INFO"
    log_json: bool = True

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    gallery: GalleryConfig = Field(default_factory=GalleryConfig)
    downloads: DownloadsConfig = Field(default_factory=DownloadsConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @property
    def download_dir(self) -> Path:
        """Get the root directory that galleries are downloaded into."""
        return self.data_dir / self.downloads.subdir

    @property
    def discord_token(self) -> str | None:
        """Get Discord token from environment."""
        return os.environ.get("DISCORD_TOKEN")

    @classmethod
    def load(cls, config_path: Path | str = Path("config.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        # Environment variable overrides
        if "FOLIO_DATA_DIR" in os.environ:
            yaml_config["data_dir"] = os.environ["FOLIO_DATA_DIR"]
        if "FOLIO_LOG_LEVEL" in os.environ:
            yaml_config["log_level"] = os.environ["FOLIO_LOG_LEVEL"]
        if "FOLIO_LOG_JSON" in os.environ:
            yaml_config["log_json"] = os.environ["FOLIO_LOG_JSON"].lower() == "true"

        return cls.model_validate(yaml_config)

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            for path in [Path("config.yaml"), Path("config.yml")]:
                if path.exists():
                    return cls.load(path)
            return cls()

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls()
