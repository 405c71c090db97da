"""Configuration entrypoint (re-exported from split modules)."""

from .config_loader import get_config, load_config, reset_config, set_config
from .config_models import ChunkingConfig, PollingConfig, RetryConfig
from .config_settings import Config

__all__ = [
    "ChunkingConfig",
    "Config",
    "PollingConfig",
    "RetryConfig",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
]
