"""
Configuration module for the Unicorn trading simulator.

Provides the pydantic Config schema and a YAML/JSON loader with
${VAR_NAME} environment variable expansion.
"""

from .config_schema import Config
from .loader import load_config, save_config

__all__ = [
    'Config',
    'load_config',
    'save_config',
]
