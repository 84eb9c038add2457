"""
Configuration management for the retail dashboard.

This module handles environment variables, default settings, and configuration
validation for the API, the CLI and the dashboard.
"""

import os
from pathlib import Path
from typing import Optional, List
from dataclasses import dataclass, field
import logging
from rich.console import Console

from .constants import DEFAULT_DATA_URL, DEFAULT_AI_MODEL, CHAT_HISTORY_MESSAGES, ForecastModel

console = Console()


@dataclass
class APIConfig:
    """API configuration settings."""
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    reload: bool = False
    log_level: str = "info"
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8501"
    ])


@dataclass
class DataConfig:
    """Order feed configuration settings."""
    data_url: str = DEFAULT_DATA_URL
    request_timeout: Optional[float] = None
    load_on_startup: bool = True


@dataclass
class ModelConfig:
    """Forecasting configuration settings."""
    default_model: str = ForecastModel.HOLT_WINTERS.value
    default_horizon: int = 1


@dataclass
class AIConfig:
    """Generative AI configuration settings."""
    api_key: Optional[str] = None
    model: str = DEFAULT_AI_MODEL
    analysis_temperature: float = 0.7
    chat_temperature: float = 0.5
    history_messages: int = CHAT_HISTORY_MESSAGES


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5
    console_output: bool = False
    rich_logging: bool = True


@dataclass
class UIConfig:
    """UI configuration settings."""
    api_base_url: str = "http://localhost:8000"
    page_title: str = "Retail Insights Dashboard"
    page_icon: str = "📈"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


class Config:
    """Main configuration class that combines all configuration sections."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration from environment variables and defaults."""

        # Load environment variables from file if specified
        if env_file and Path(env_file).exists():
            self._load_env_file(env_file)

        self.api = APIConfig()
        self.data = DataConfig()
        self.model = ModelConfig()
        self.ai = AIConfig()
        self.logging = LoggingConfig()
        self.ui = UIConfig()

        self._load_from_env()
        self._validate()

    def _load_env_file(self, env_file: str):
        """Load environment variables from a file."""
        try:
            with open(env_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        os.environ[key.strip()] = value.strip()
        except OSError as e:
            console.print(f"[yellow]Warning: Could not load env file {env_file}: {e}[/yellow]")

    def _load_from_env(self):
        """Load configuration from environment variables."""

        # API configuration
        self.api.host = os.getenv("API_HOST", self.api.host)
        self.api.port = int(os.getenv("API_PORT", self.api.port))
        self.api.workers = int(os.getenv("API_WORKERS", self.api.workers))
        self.api.reload = _env_bool("API_RELOAD", False)
        self.api.log_level = os.getenv("API_LOG_LEVEL", self.api.log_level)
        cors = os.getenv("API_CORS_ORIGINS")
        if cors:
            self.api.cors_origins = [origin.strip() for origin in cors.split(",") if origin.strip()]

        # Data configuration
        self.data.data_url = os.getenv("RDASH_DATA_URL", self.data.data_url)
        timeout = os.getenv("RDASH_REQUEST_TIMEOUT")
        self.data.request_timeout = float(timeout) if timeout else self.data.request_timeout
        self.data.load_on_startup = _env_bool("RDASH_LOAD_ON_STARTUP", self.data.load_on_startup)

        # Model configuration
        self.model.default_model = os.getenv("DEFAULT_MODEL", self.model.default_model)
        self.model.default_horizon = int(os.getenv("DEFAULT_HORIZON", self.model.default_horizon))

        # AI configuration
        self.ai.api_key = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", self.ai.api_key))
        self.ai.model = os.getenv("GEMINI_MODEL", self.ai.model)
        self.ai.analysis_temperature = float(os.getenv("AI_ANALYSIS_TEMPERATURE", self.ai.analysis_temperature))
        self.ai.chat_temperature = float(os.getenv("AI_CHAT_TEMPERATURE", self.ai.chat_temperature))
        self.ai.history_messages = int(os.getenv("AI_HISTORY_MESSAGES", self.ai.history_messages))

        # Logging configuration
        self.logging.level = os.getenv("LOG_LEVEL", self.logging.level)
        self.logging.format = os.getenv("LOG_FORMAT", self.logging.format)
        self.logging.file_path = os.getenv("LOG_FILE_PATH", self.logging.file_path)
        self.logging.max_file_size_mb = int(os.getenv("LOG_MAX_FILE_SIZE_MB", self.logging.max_file_size_mb))
        self.logging.backup_count = int(os.getenv("LOG_BACKUP_COUNT", self.logging.backup_count))
        self.logging.console_output = _env_bool("LOG_CONSOLE_OUTPUT", self.logging.console_output)
        self.logging.rich_logging = _env_bool("LOG_RICH_LOGGING", self.logging.rich_logging)

        # UI configuration
        self.ui.api_base_url = os.getenv("API_BASE_URL", self.ui.api_base_url)
        self.ui.page_title = os.getenv("UI_PAGE_TITLE", self.ui.page_title)

    def _validate(self):
        """Validate configuration settings."""

        if not (1 <= self.api.port <= 65535):
            raise ValueError(f"Invalid API port: {self.api.port}")

        if self.model.default_horizon <= 0:
            raise ValueError(f"Invalid horizon: {self.model.default_horizon}")

        valid_models = [m.value for m in ForecastModel]
        if self.model.default_model not in valid_models:
            raise ValueError(f"Invalid default model: {self.model.default_model}")

        if self.data.request_timeout is not None and self.data.request_timeout <= 0:
            raise ValueError(f"Invalid request timeout: {self.data.request_timeout}")

        if self.ai.history_messages < 0:
            raise ValueError(f"Invalid chat history size: {self.ai.history_messages}")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.logging.level.upper() not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.logging.level}")

def setup_logging(config: LoggingConfig):
    """Setup logging configuration."""

    log_level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Plain console handler
    if config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler
    if config.file_path:
        from logging.handlers import RotatingFileHandler

        file_handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Rich logging for better console output
    if config.rich_logging:
        from rich.logging import RichHandler
        rich_handler = RichHandler(console=console, rich_tracebacks=True)
        rich_handler.setLevel(log_level)
        root_logger.addHandler(rich_handler)


# Global configuration instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config


def reload_config(env_file: Optional[str] = None):
    """Reload configuration from environment variables."""
    global config
    config = Config(env_file)
    return config
