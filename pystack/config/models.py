"""Pydantic models for config types."""

from typing import Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GITHUB_HOST = "github.com"

class RepoConfig(BaseModel):
    """Repository configuration."""
    github_remote: str = "origin"
    github_host: str = DEFAULT_GITHUB_HOST

    model_config = ConfigDict(extra="allow")

class UserConfig(BaseModel):
    """User configuration."""
    default_editor: str = "vi"
    # Relative to $HOME, used when the SSH agent has no usable key
    ssh_key_path: str = ".ssh/id_rsa"

    model_config = ConfigDict(extra="allow")

class StackConfig(BaseModel):
    """Full pystack configuration."""
    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)

    model_config = ConfigDict(extra="allow")

class Environment(BaseModel):
    """Process environment, read once at startup and passed around explicitly.

    Empty variables are treated the same as unset ones.
    """
    user: Optional[str] = None
    home: Optional[str] = None
    visual: Optional[str] = None
    editor: Optional[str] = None
    github_token: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Environment":
        """Build from an ``os.environ``-like mapping."""
        return cls(
            user=environ.get("USER") or None,
            home=environ.get("HOME") or None,
            visual=environ.get("VISUAL") or None,
            editor=environ.get("EDITOR") or None,
            github_token=environ.get("GITHUB_TOKEN") or None,
        )

    def editor_program(self, default: str) -> str:
        """Editor to run: VISUAL, then EDITOR, then ``default``.

        Whitespace-only values count as unset.
        """
        for program in (self.visual, self.editor):
            if program and program.strip():
                return program
        return default
