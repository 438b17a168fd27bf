"""
Configuration loader for YAML/JSON files.
"""

import json
import logging
import os
from pathlib import Path
from typing import Union

import yaml

from .config_schema import Config

logger = logging.getLogger(__name__)


def _expand_env_vars(config_dict):
    """Recursively expand ${VAR_NAME} references in config values"""
    if isinstance(config_dict, dict):
        return {k: _expand_env_vars(v) for k, v in config_dict.items()}
    elif isinstance(config_dict, list):
        return [_expand_env_vars(item) for item in config_dict]
    elif isinstance(config_dict, str):
        expanded = os.path.expandvars(config_dict)
        # Unset variables stay as "${VAR}"; treat them as missing
        if expanded.startswith("${") and expanded.endswith("}"):
            return None
        return expanded
    else:
        return config_dict


def load_config(config_path: Union[str, Path]) -> Config:
    """Load configuration from YAML or JSON file"""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        if config_path.suffix in ['.yaml', '.yml']:
            config_dict = yaml.safe_load(f) or {}
        elif config_path.suffix == '.json':
            config_dict = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")

    config_dict = _expand_env_vars(config_dict)
    config = Config(**config_dict)

    if not config.quotes.api_key:
        logger.warning("No quote provider API key configured; prices will come from cache/reference only")
    if not config.llm.api_key:
        logger.warning(f"No API key configured for LLM provider '{config.llm.provider}'")

    return config


def save_config(config: Config, config_path: Union[str, Path]):
    """Save configuration to YAML or JSON file"""
    config_path = Path(config_path)

    with open(config_path, 'w') as f:
        if config_path.suffix in ['.yaml', '.yml']:
            yaml.dump(config.model_dump(), f, default_flow_style=False)
        elif config_path.suffix == '.json':
            json.dump(config.model_dump(), f, indent=2)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")
