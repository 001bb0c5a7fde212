"""
Configuration management for the food system survey tools.
"""
from .config_manager import ConfigManager, ConfigurationError

__all__ = ['ConfigManager', 'ConfigurationError']
