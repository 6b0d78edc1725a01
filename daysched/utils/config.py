"""Configuration management."""

import copy
import json
import yaml
from pathlib import Path
from typing import Dict, Any


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file, merged over the defaults."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            loaded = yaml.safe_load(f)
        elif path.suffix.lower() == '.json':
            loaded = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

    return merge_config(get_default_config(), loaded or {})


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        'vault': {
            'root': '.',
        },
        'paths': {
            'task_folder': 'TaskChute/Task',
            'project_folder': 'TaskChute/Project',
            'log_folder': 'TaskChute/Log',
            'alias_file': None,  # defaults to <task_folder>/routine-aliases.json
            'state_file': 'TaskChute/Log/day-state.json',
        },
        'ordering': {
            'step': 100,
        },
        'logging': {
            'level': 'INFO',
        },
    }


def alias_file_path(config: Dict[str, Any]) -> str:
    """Vault-relative path of the routine alias document."""
    paths = config.get('paths', {})
    explicit = paths.get('alias_file')
    if explicit:
        return explicit
    return f"{paths.get('task_folder', 'TaskChute/Task')}/routine-aliases.json"
