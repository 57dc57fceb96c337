"""ColorForge - HTTP facade for image generation, editing, and recoloring."""

__version__ = "0.3.0"

from colorforge.core.config import ColorForgeConfig, config

__all__ = [
    "ColorForgeConfig",
    "config",
]
