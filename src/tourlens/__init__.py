"""tourlens - landmark discovery, history and narration guide."""

__version__ = "0.1.0"

from tourlens.config import Config, load_config

__all__ = ["Config", "load_config", "__version__"]
