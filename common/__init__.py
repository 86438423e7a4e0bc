"""Common utilities for PubChat clients."""
from .config import get_config, configure_logger, prompt_session

__all__ = ['get_config', 'configure_logger', 'prompt_session']
