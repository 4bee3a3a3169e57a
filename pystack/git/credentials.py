"""Credentials for pushing to the remote.

Git asks for credentials by failing: a push is attempted with some
credential and, when the remote rejects it, attempted again with the next
one. ``CredentialResolver`` decides what the next one is:

1. SSH agent, once per resolver
2. SSH private key file under ``$HOME``
3. username/password from the configured git credential helper
4. no authentication at all

Credentials are handed to git through environment variables, see
``Credential.environment``.
"""

import os
import base64
import enum
import shlex
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Set, Tuple

from ..config.models import Environment
from ..errors import NoAuthenticationAvailable, NoHomeDirectory

logger = logging.getLogger(__name__)

DEFAULT_SSH_USERNAME = "git"


class CredentialType(enum.Flag):
    """Authentication methods a remote accepts."""
    SSH_KEY = enum.auto()
    USER_PASS_PLAINTEXT = enum.auto()
    DEFAULT = enum.auto()


class CredentialKind(enum.Enum):
    """Strategy that produced a credential."""
    SSH_AGENT = "ssh-agent"
    SSH_KEY_FILE = "ssh-key-file"
    USER_PASS = "credential-helper"
    DEFAULT = "default"


@dataclass(frozen=True)
class Credential:
    """A single way of authenticating one push attempt."""
    kind: CredentialKind
    username: Optional[str] = None
    key_path: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def environment(self) -> Dict[str, str]:
        """Environment variables that make git use this credential."""
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if self.kind is CredentialKind.SSH_AGENT:
            env["GIT_SSH_COMMAND"] = " ".join([
                "ssh", "-o", "BatchMode=yes",
                "-l", shlex.quote(self.username or DEFAULT_SSH_USERNAME),
            ])
        elif self.kind is CredentialKind.SSH_KEY_FILE:
            env["GIT_SSH_COMMAND"] = " ".join([
                "ssh", "-o", "BatchMode=yes",
                "-o", "IdentitiesOnly=yes",
                "-o", "IdentityAgent=none",
                "-i", shlex.quote(self.key_path or ""),
                "-l", shlex.quote(self.username or DEFAULT_SSH_USERNAME),
            ])
        elif self.kind is CredentialKind.USER_PASS:
            token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
            env.update({
                "GIT_CONFIG_COUNT": "1",
                "GIT_CONFIG_KEY_0": "http.extraHeader",
                "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
            })
        return env


class GitConfigProtocol(Protocol):
    """The parts of git configuration credential resolution needs."""
    def get_urlmatch(self, key: str, url: str) -> Optional[str]:
        """Value of ``key`` for ``url`` (``git config --get-urlmatch``)."""
        ...

    def credential_fill(self, url: str, username: Optional[str]) -> Optional[Tuple[str, str]]:
        """(username, password) from the credential helper configured for ``url``."""
        ...


class CredentialResolver:
    """Chooses the credential for each authentication attempt of one push.

    A resolver remembers which strategies it already handed out, so use a
    fresh one for every independent push.
    """

    def __init__(self, config: GitConfigProtocol, environment: Environment,
                 ssh_key_path: str = ".ssh/id_rsa"):
        self.config = config
        self.environment = environment
        self.ssh_key_path = ssh_key_path
        self.attempted: Set[CredentialKind] = set()

    def username(self, url: str, username_from_url: Optional[str]) -> str:
        """SSH username: from the URL, the credential config, or ``git``."""
        if username_from_url:
            return username_from_url
        helper_username = self.config.get_urlmatch("credential.username", url)
        return helper_username or DEFAULT_SSH_USERNAME

    def resolve(self, url: str, username_from_url: Optional[str],
                allowed: CredentialType) -> Credential:
        """Credential for the next attempt.

        Raises:
            NoHomeDirectory: The key file fallback is needed but HOME is unset.
            NoAuthenticationAvailable: No allowed method can produce a credential.
        """
        if CredentialType.SSH_KEY in allowed:
            user = self.username(url, username_from_url)
            if CredentialKind.SSH_AGENT not in self.attempted:
                self.attempted.add(CredentialKind.SSH_AGENT)
                logger.debug(f"Trying SSH agent as '{user}' for {url}")
                return Credential(CredentialKind.SSH_AGENT, username=user)

            if not self.environment.home:
                raise NoHomeDirectory()
            key_path = os.path.join(self.environment.home, self.ssh_key_path)
            self.attempted.add(CredentialKind.SSH_KEY_FILE)
            logger.debug(f"Trying SSH key {key_path} as '{user}' for {url}")
            return Credential(CredentialKind.SSH_KEY_FILE, username=user, key_path=key_path)

        if CredentialType.USER_PASS_PLAINTEXT in allowed:
            self.attempted.add(CredentialKind.USER_PASS)
            user_pass = self.config.credential_fill(url, username_from_url)
            if user_pass is None:
                raise NoAuthenticationAvailable(url, "credential helper returned no credentials")
            username, password = user_pass
            logger.debug(f"Trying credential helper login '{username}' for {url}")
            return Credential(CredentialKind.USER_PASS, username=username, password=password)

        if CredentialType.DEFAULT in allowed:
            self.attempted.add(CredentialKind.DEFAULT)
            return Credential(CredentialKind.DEFAULT)

        raise NoAuthenticationAvailable(url)

    __call__ = resolve
