from captioner.core.config import get_config
from captioner.core.logging import setup_logging

__all__ = ["get_config", "setup_logging"]
