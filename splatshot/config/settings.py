"""
Application Settings
===================

Runtime settings for the render job using Pydantic Settings.
Values can be overridden through ``SPLATSHOT_*`` environment variables or a ``.env`` file.
"""

from typing import List, Optional, Union
import json

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Render job settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="splatshot", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Asset Server Configuration
    server_host: str = Field(default="127.0.0.1", description="Asset server bind address")
    default_port: int = Field(default=8765, gt=0, le=65535, description="Default asset server port")

    # Render Configuration
    render_timeout: int = Field(
        default=30, gt=0, description="Seconds to wait for the page to report completion"
    )
    renderer_name: str = Field(default="Spark", description="Renderer name shown in labels")
    three_module_url: str = Field(
        default="https://cdn.jsdelivr.net/npm/three@0.178.0/build/three.module.js",
        description="three.js ES module loaded by the render page",
    )
    spark_module_url: str = Field(
        default="https://cdn.jsdelivr.net/npm/@sparkjsdev/spark@0.1.10/dist/spark.module.js",
        description="Spark splat renderer ES module loaded by the render page",
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    navigation_timeout_ms: int = Field(
        default=60000, gt=0, description="Page navigation timeout in milliseconds"
    )
    browser_launch_timeout_ms: int = Field(
        default=30000, gt=0, description="Browser launch timeout in milliseconds"
    )
    chromium_args: List[str] = Field(
        default=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-web-security",
            "--disable-dev-shm-usage",
            "--use-angle=swiftshader",
            "--enable-unsafe-swiftshader",
        ],
        description="Extra Chromium command line switches",
    )
    browser_channel: Optional[str] = Field(
        default=None, description="Playwright browser channel (e.g. 'chrome')"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("chromium_args", mode="before")
    @classmethod
    def parse_chromium_args(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse Chromium switches from a JSON list or a comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [arg.strip() for arg in v.split(",") if arg.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="SPLATSHOT_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
