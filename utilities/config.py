"""
Configuration management using environment variables.
Handles database, poster storage, server and logging settings with validation and defaults.
"""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from pathlib import Path


class CatalogConfig(BaseSettings):
    """
    Configuration class for the library catalog service.
    Uses pydantic BaseSettings for environment variable management.
    """

    # API Settings
    api_title: str = Field(default="Library Catalog API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")

    # Server Settings
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", env="MONGODB_URL")
    mongodb_database: str = Field(default="library_catalog", env="MONGODB_DATABASE")

    # Poster Storage
    upload_path: str = Field(default="uploads/posters", env="UPLOAD_PATH")
    max_poster_size: int = Field(default=5 * 1024 * 1024, env="MAX_POSTER_SIZE")

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default="logs/catalog.log", env="LOG_FILE")

    # Development/Testing
    debug: bool = Field(default=False, env="DEBUG")
    test_mode: bool = Field(default=False, env="TEST_MODE")

    @validator('port')
    def validate_port(cls, v):
        """Ensure port is a usable TCP port."""
        if v < 1 or v > 65535:
            raise ValueError('port must be between 1 and 65535')
        return v

    @validator('max_poster_size')
    def validate_max_poster_size(cls, v):
        """Ensure poster size limit is reasonable."""
        if v < 1024 or v > 50 * 1024 * 1024:
            raise ValueError('max_poster_size must be between 1 KiB and 50 MiB')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_upload_path(self) -> Path:
        """Get poster upload directory as Path object."""
        return Path(self.upload_path)

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and not self.test_mode


# Global configuration instance
config = CatalogConfig()
