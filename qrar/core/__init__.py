"""
Core module initialization.
Exports configuration, logging and security utilities.
"""

from qrar.core.config import get_settings, Settings, EnvironmentMode, RealtimeBackend

__all__ = ["get_settings", "Settings", "EnvironmentMode", "RealtimeBackend"]
