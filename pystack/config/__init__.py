"""Config module."""

from typing import Dict, Any
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import DEFAULT_GITHUB_HOST, RepoConfig, UserConfig, StackConfig, Environment
from .config_parser import parse_config

__all__ = ["Config", "Environment", "RepoConfig", "UserConfig", "StackConfig",
           "default_config", "load_config"]

class Config(StackConfig):
    """Config object holding repository and user config."""
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(
            repo=RepoConfig.model_validate(config.get('repo', {})),
            user=UserConfig.model_validate(config.get('user', {})),
        )

def default_config() -> Config:
    """Get default config without reading any file."""
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_host': DEFAULT_GITHUB_HOST,
        },
        'user': {},
    })

def load_config(repo_dir: str) -> Config:
    """Load config for the repository whose working tree is ``repo_dir``."""
    try:
        return Config(parse_config(repo_dir))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {repo_dir}: {e}") from e
