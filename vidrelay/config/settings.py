from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class DownloadConfig(BaseModel):
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Number of retries for failed requests")
    info_timeout: float = Field(default=30.0, gt=0, description="Metadata fetch timeout in seconds")
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Bytes per relayed chunk")

class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    js_runtime: Optional[str] = Field(default=None, description="JS runtime (e.g., deno:/usr/local/bin/deno)")
    default_container: str = Field(default="mp4", description="Container requested for downloads")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="vidrelay", description="API title")
    description: str = Field(default="Video info and download relay API", description="API description")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")

class Config(BaseSettings):
    """Main configuration, overridable via VIDRELAY_<SECTION>__<KEY> env vars"""
    model_config = SettingsConfigDict(env_prefix="VIDRELAY_", env_nested_delimiter="__")

    download: DownloadConfig = Field(default_factory=DownloadConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

config = Config()
