"""Git interfaces and implementation."""

import os
import re
import logging
import subprocess
import configparser
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple
from urllib.parse import urlsplit
import git
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..config.models import DEFAULT_GITHUB_HOST
from ..errors import (
    AuthenticationExhausted, BranchAlreadyExists, NoHead, NoOriginRemote,
    NoRemoteUrl, NotARepository, PushFailed, RepositoryStateError,
    UnrecognizedRemoteUrl,
)
from ..typing import CommitHash
from .credentials import Credential, CredentialType, GitConfigProtocol

# Get module logger
logger = logging.getLogger(__name__)

BRANCH_PREFIX_FORMAT = "{user}-stack-"
BASE_BRANCH_SUFFIX = "-base"
HEAD_BRANCH_SUFFIX = "-pr"

# Substrings of git's stderr that mean the remote did not accept our credentials
AUTH_FAILURE_MARKERS = (
    "Permission denied (publickey",
    "Authentication failed",
    "could not read Username",
    "could not read Password",
    "terminal prompts disabled",
    "HTTP Basic: Access denied",
    "The requested URL returned error: 401",
    "The requested URL returned error: 403",
)

# Called by a push with (url, username from url, allowed methods)
CredentialProvider = Callable[[str, Optional[str], CredentialType], Credential]


@dataclass
class Commit:
    """A commit as far as stacking is concerned."""
    hexsha: CommitHash
    parents: List[CommitHash]
    message: str = ""

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


@dataclass(frozen=True)
class StackBranchPair:
    """Names and targets of the two branches backing one pull request."""
    base_branch_name: str
    base_target: CommitHash
    head_branch_name: str
    head_target: CommitHash


def branch_prefix(user: str) -> str:
    """Prefix shared by every stack branch of ``user``."""
    return BRANCH_PREFIX_FORMAT.format(user=user)


def stack_branch_names(prefix: str, head: CommitHash, parent: CommitHash) -> StackBranchPair:
    """Derive the base/head branch names for the commit ``head``.

    Names only depend on the prefix and ``head``, so running again against
    the same commit yields the same branches.
    """
    return StackBranchPair(
        base_branch_name=f"{prefix}{head}{BASE_BRANCH_SUFFIX}",
        base_target=parent,
        head_branch_name=f"{prefix}{head}{HEAD_BRANCH_SUFFIX}",
        head_target=head,
    )


def parse_remote_url(url: str, host: str = DEFAULT_GITHUB_HOST) -> Tuple[str, str]:
    """Extract (owner, repo) from an SSH remote URL like git@github.com:owner/repo.git."""
    pattern = rf"^git@{re.escape(host)}:(?P<owner>[^/]+)/(?P<repo>.+)\.git$"
    match = re.match(pattern, url)
    if not match:
        raise UnrecognizedRemoteUrl(url, host)
    return match.group("owner"), match.group("repo")


def _is_scp_like(url: str) -> bool:
    # user@host:path or host:path, but not a Windows drive or an URL
    return "://" not in url and re.match(r"^(?:[^@/]+@)?[^/:]{2,}:", url) is not None


def username_from_url(url: str) -> Optional[str]:
    """Username embedded in a remote URL, if any."""
    if _is_scp_like(url):
        user, sep, _ = url.partition("@")
        return user if sep and ":" not in user else None
    return urlsplit(url).username


def allowed_credential_types(url: str) -> CredentialType:
    """Authentication methods git can use for a remote URL."""
    if _is_scp_like(url):
        return CredentialType.SSH_KEY
    scheme = urlsplit(url).scheme
    if scheme in ("ssh", "git+ssh", "ssh+git"):
        return CredentialType.SSH_KEY
    if scheme in ("http", "https"):
        return CredentialType.USER_PASS_PLAINTEXT | CredentialType.DEFAULT
    return CredentialType.DEFAULT


def is_authentication_failure(stderr: str) -> bool:
    """Whether git's error output says the credentials were rejected."""
    return any(marker in stderr for marker in AUTH_FAILURE_MARKERS)


def push_with_credentials(url: str, credentials: CredentialProvider,
                          attempt: Callable[[Credential], bool]) -> Credential:
    """Call ``attempt`` with credentials from ``credentials`` until one is accepted.

    ``attempt`` returns False when the remote rejected the credential and
    raises for any other failure. Returns the accepted credential.

    Raises:
        AuthenticationExhausted: The provider repeated a rejected credential.
    """
    allowed = allowed_credential_types(url)
    username = username_from_url(url)
    tried: List[Credential] = []
    while True:
        credential = credentials(url, username, allowed)
        if tried and credential == tried[-1]:
            raise AuthenticationExhausted(url, [c.kind.value for c in tried])
        tried.append(credential)
        if attempt(credential):
            return credential
        logger.info(f"Authentication with {credential.kind.value} rejected by {url}")


class RemoteProtocol(Protocol):
    """A configured remote of the local repository."""
    @property
    def name(self) -> str:
        ...

    def url(self) -> Optional[str]:
        """Configured URL, None if the remote has none."""
        ...

    def push(self, ref_names: Sequence[str], credentials: CredentialProvider) -> None:
        """Push full ref names to the same names on the remote."""
        ...


class RepositoryProtocol(Protocol):
    """The local repository operations stacking needs."""
    @property
    def working_dir(self) -> str:
        ...

    def find_remote(self, name: str) -> RemoteProtocol:
        ...

    def head(self) -> Commit:
        ...

    def create_branch(self, name: str, target: CommitHash, overwrite: bool = False) -> str:
        """Create a local branch, returning its full ref name."""
        ...

    def config(self) -> GitConfigProtocol:
        ...


class RealGitConfig:
    """Git configuration of a repository, read through the git CLI."""
    def __init__(self, repo: git.Repo):
        self._repo = repo

    def get_urlmatch(self, key: str, url: str) -> Optional[str]:
        try:
            value = self._repo.git.config("--get-urlmatch", key, url)
        except GitCommandError:
            # Exit status 1 means the key is not set
            return None
        return value or None

    def credential_fill(self, url: str, username: Optional[str]) -> Optional[Tuple[str, str]]:
        request = f"url={url}\n"
        if username:
            request += f"username={username}\n"
        logger.info("> git credential fill")
        result = subprocess.run(
            ["git", "credential", "fill"], input=request + "\n",
            capture_output=True, text=True, cwd=self._repo.working_dir,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
        if result.returncode != 0:
            logger.debug(f"git credential fill failed: {result.stderr.strip()}")
            return None
        values = dict(line.split("=", 1) for line in result.stdout.splitlines() if "=" in line)
        if "username" in values and "password" in values:
            return values["username"], values["password"]
        return None


class RealRemote:
    """Remote backed by GitPython."""
    def __init__(self, repo: git.Repo, remote: git.Remote):
        self._repo = repo
        self._remote = remote

    @property
    def name(self) -> str:
        return self._remote.name

    def url(self) -> Optional[str]:
        try:
            return self._remote.config_reader.get("url")
        except (configparser.NoOptionError, configparser.NoSectionError):
            return None

    def push(self, ref_names: Sequence[str], credentials: CredentialProvider) -> None:
        """Push, asking ``credentials`` again each time authentication is rejected.

        Raises:
            AuthenticationExhausted: The provider repeated a rejected credential.
            PushFailed: The push failed for another reason.
        """
        url = self.url()
        if url is None:
            raise NoRemoteUrl(self.name)
        refspecs = [f"{ref}:{ref}" for ref in ref_names]

        def attempt(credential: Credential) -> bool:
            logger.info(f"> git push {self.name} {' '.join(refspecs)}")
            try:
                with self._repo.git.custom_environment(**credential.environment()):
                    self._repo.git.push(self.name, *refspecs)
            except GitCommandError as e:
                stderr = str(e.stderr)
                if is_authentication_failure(stderr):
                    return False
                raise PushFailed(self.name, list(ref_names), stderr.strip()) from e
            return True

        push_with_credentials(url, credentials, attempt)


class RealRepository:
    """Repository backed by GitPython."""
    def __init__(self, repo: git.Repo):
        self._repo = repo

    @classmethod
    def discover(cls, path: str = ".") -> "RealRepository":
        """Open the repository containing ``path``."""
        try:
            repo = git.Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepository(os.path.abspath(path)) from e
        return cls(repo)

    @property
    def working_dir(self) -> str:
        return str(self._repo.working_tree_dir or self._repo.git_dir)

    def find_remote(self, name: str) -> RealRemote:
        try:
            remote = self._repo.remote(name)
        except ValueError as e:
            raise NoOriginRemote(name) from e
        return RealRemote(self._repo, remote)

    def head(self) -> Commit:
        try:
            commit = self._repo.head.commit
        except ValueError as e:
            # Unborn branch, nothing committed yet
            raise NoHead() from e
        message = commit.message
        if isinstance(message, bytes):
            message = message.decode("utf-8", "replace")
        return Commit(
            hexsha=CommitHash(commit.hexsha),
            parents=[CommitHash(p.hexsha) for p in commit.parents],
            message=message,
        )

    def create_branch(self, name: str, target: CommitHash, overwrite: bool = False) -> str:
        if not overwrite and name in self._repo.heads:
            raise BranchAlreadyExists(name)
        logger.info(f"> git branch {'-f ' if overwrite else ''}{name} {target}")
        try:
            head = self._repo.create_head(name, commit=target, force=overwrite)
        except GitCommandError as e:
            raise RepositoryStateError(f"Could not create branch '{name}' at '{target}'.") from e
        return head.path

    def config(self) -> RealGitConfig:
        return RealGitConfig(self._repo)
