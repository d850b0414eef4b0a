from artlens.core.config import get_config
from artlens.core.logging import setup_logging

__all__ = ["get_config", "setup_logging"]
