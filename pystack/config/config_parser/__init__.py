"""Config parser logic."""

import os
from typing import Dict, Any
import logging
import yaml

from ...errors import ConfigurationError
from ..models import DEFAULT_GITHUB_HOST

# Get module logger
logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = '.stack.yaml'

RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

def parse_config(repo_dir: str) -> Config:
    """Parse config from defaults and the repository's .stack.yaml."""
    config: Config = {
        'repo': {
            'github_remote': 'origin',
            'github_host': DEFAULT_GITHUB_HOST,
        },
        'user': {
            'default_editor': 'vi',
            'ssh_key_path': '.ssh/id_rsa',
        },
    }

    path = os.path.join(repo_dir, CONFIG_FILE_NAME)
    try:
        with open(path, 'r') as f:
            logger.debug(f"Found {path}, loading...")
            repo_config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return config  # No .stack.yaml is fine
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}.") from e

    logger.debug(f"Config from {CONFIG_FILE_NAME}: {repo_config}")
    if repo_config:
        if not isinstance(repo_config, dict):
            raise ConfigurationError(f"{path} must contain a mapping.")
        for section in ('repo', 'user'):
            if isinstance(repo_config.get(section), dict):
                config[section].update(repo_config[section])

    return config
