"""GitHub interfaces and implementation."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from ..changeset import Changeset, pull_request_url
from ..config.models import DEFAULT_GITHUB_HOST, Environment, StackConfig
from ..errors import MissingToken, PullRequestCreationFailed

# Get module logger
logger = logging.getLogger(__name__)


@dataclass
class PullRequestHandle:
    """A pull request created on the forge."""
    number: int
    url: str
    title: str
    head: str
    base: str

    def __str__(self) -> str:
        return f"PR #{self.number} - {self.title} ({self.url})"


@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        """Get the PR number."""
        ...

    @property
    def title(self) -> str:
        """Get the PR title."""
        ...

    @property
    def html_url(self) -> str:
        """Get the PR web page."""
        ...


@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def create_pull(self, title: str, body: str, base: str, head: str,
                    maintainer_can_modify: bool = True, draft: bool = False) -> GitHubPullRequestProtocol:
        """Create a new pull request."""
        ...


@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        ...


class PullRequestServiceProtocol(Protocol):
    """Creates pull requests, the only forge operation stacking needs."""
    def create(self, title: str, body: str, head: str, base: str) -> PullRequestHandle:
        ...


def find_github_token(environment: Environment, host: str = DEFAULT_GITHUB_HOST) -> Optional[str]:
    """Find GitHub token from env var or gh CLI config."""
    import yaml

    # First try environment variable
    if environment.github_token:
        return environment.github_token

    # Then try gh CLI config at ~/.config/gh/hosts.yml
    if not environment.home:
        return None
    gh_config_path = Path(environment.home) / ".config" / "gh" / "hosts.yml"
    try:
        if gh_config_path.exists():
            with open(gh_config_path, "r") as f:
                gh_config = yaml.safe_load(f)
                if gh_config and host in gh_config:
                    host_config: Dict[str, object] = gh_config[host] or {}
                    token = host_config.get("oauth_token")
                    if isinstance(token, str) and token:
                        return token
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading gh CLI config: {e}")
    return None


def format_body(changeset: Changeset, owner: str, name: str, host: str = DEFAULT_GITHUB_HOST) -> str:
    """Pull request body: the changeset message plus its references."""
    sections: List[str] = []
    if changeset.message:
        sections.append(changeset.message)

    footer: List[str] = []
    if changeset.pull_request is not None:
        footer.append(f"Amends #{changeset.pull_request}")
    if changeset.dependencies:
        footer.append("Depends on: " + ", ".join(f"#{n}" for n in changeset.dependencies))
    if footer:
        sections.append("\n".join(footer))

    body = "\n\n".join(sections)
    logger.debug(f"Formatted body for {owner}/{name} on {host}:\n{body}")
    return body


class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: StackConfig, github_client: PyGithubProtocol, owner: str, name: str):
        """Initialize with config and GitHub client implementation.

        Args:
            config: The configuration
            github_client: GitHub client implementation (real or fake)
            owner: Owner of the repository pull requests are created in
            name: Name of that repository
        """
        self.config = config
        self.client = github_client
        self.owner = owner
        self.name = name
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            self._repo = self.client.get_repo(f"{self.owner}/{self.name}")
        return self._repo

    def create(self, title: str, body: str, head: str, base: str) -> PullRequestHandle:
        """Create pull request from ``head`` into ``base``."""
        from github import GithubException
        from requests.exceptions import RequestException

        logger.info(f"> github create {self.owner}/{self.name} {head} -> {base} : {title}")
        try:
            pr = self.repo.create_pull(title=title, body=body, base=base, head=head)
        except GithubException as e:
            raise PullRequestCreationFailed(head, base, _describe_github_error(e)) from e
        except RequestException as e:
            # Connection errors and timeouts below PyGithub
            raise PullRequestCreationFailed(head, base, f"Could not reach GitHub: {e}") from e

        url = pr.html_url or pull_request_url(self.owner, self.name, pr.number,
                                              self.config.repo.github_host)
        return PullRequestHandle(number=pr.number, url=url, title=pr.title, head=head, base=base)


def _describe_github_error(e: Exception) -> str:
    """Human readable summary of a GithubException."""
    status = getattr(e, "status", None)
    data = getattr(e, "data", None)
    parts: List[str] = []
    if isinstance(data, dict):
        if data.get("message"):
            parts.append(str(data["message"]))
        for error in data.get("errors") or []:
            if isinstance(error, dict) and error.get("message"):
                parts.append(str(error["message"]))
    if not parts:
        parts.append(str(e))
    prefix = f"GitHub responded {status}: " if status else ""
    return prefix + "; ".join(parts)


def create_github_client(environment: Environment, config: StackConfig,
                         owner: str, name: str) -> GitHubClient:
    """Create a PyGithub-backed client for ``owner/name``.

    Raises:
        MissingToken: No token in the environment or gh CLI config.
    """
    from github import Auth, Github
    from .adapters import PyGithubAdapter

    host = config.repo.github_host
    token = find_github_token(environment, host)
    if not token:
        raise MissingToken()

    if host == DEFAULT_GITHUB_HOST:
        real_github = Github(auth=Auth.Token(token))
    else:
        real_github = Github(base_url=f"https://{host}/api/v3", auth=Auth.Token(token))
    return GitHubClient(config, PyGithubAdapter(real_github), owner, name)
