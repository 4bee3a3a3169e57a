"""Unit tests for credential resolution."""

import base64

import pytest

from pystack.config.models import Environment
from pystack.errors import NoAuthenticationAvailable, NoHomeDirectory
from pystack.git.credentials import (
    Credential, CredentialKind, CredentialResolver, CredentialType,
)
from pystack.tests.e2e.fake_repository import FakeGitConfig

SSH_URL = "git@github.com:Coneko/stack.git"
HTTPS_URL = "https://github.com/Coneko/stack.git"


def make_resolver(config: FakeGitConfig = None, home: str = "/home/coneko") -> CredentialResolver:
    return CredentialResolver(config or FakeGitConfig(), Environment(user="coneko", home=home))


class TestSshCredentials:
    """Tests for remotes that take SSH keys."""

    def test_agent_then_key_file(self) -> None:
        resolver = make_resolver()
        first = resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        second = resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        assert first == Credential(CredentialKind.SSH_AGENT, username="git")
        assert second == Credential(CredentialKind.SSH_KEY_FILE, username="git",
                                    key_path="/home/coneko/.ssh/id_rsa")
        assert resolver.attempted == {CredentialKind.SSH_AGENT, CredentialKind.SSH_KEY_FILE}

    def test_key_file_repeats(self) -> None:
        """Test that the key file is offered again once the agent was tried."""
        resolver = make_resolver()
        resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        second = resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        third = resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        assert second == third

    def test_configured_key_path(self) -> None:
        resolver = CredentialResolver(FakeGitConfig(), Environment(home="/home/coneko"),
                                      ssh_key_path=".ssh/id_ed25519")
        resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        second = resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        assert second.key_path == "/home/coneko/.ssh/id_ed25519"

    def test_no_home_directory(self) -> None:
        resolver = CredentialResolver(FakeGitConfig(), Environment(user="coneko"))
        resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)
        with pytest.raises(NoHomeDirectory):
            resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY)

    def test_agent_does_not_need_home(self) -> None:
        resolver = CredentialResolver(FakeGitConfig(), Environment())
        assert resolver.resolve(SSH_URL, "git", CredentialType.SSH_KEY).kind is CredentialKind.SSH_AGENT

    def test_ssh_wins_over_other_methods(self) -> None:
        resolver = make_resolver()
        allowed = CredentialType.SSH_KEY | CredentialType.USER_PASS_PLAINTEXT | CredentialType.DEFAULT
        assert resolver.resolve(SSH_URL, "git", allowed).kind is CredentialKind.SSH_AGENT


class TestUsername:
    """Tests for the SSH username."""

    def test_from_url(self) -> None:
        config = FakeGitConfig(values={"credential.username": "configured"})
        assert make_resolver(config).username(SSH_URL, "fromurl") == "fromurl"

    def test_from_credential_config(self) -> None:
        config = FakeGitConfig(values={"credential.username": "configured"})
        credential = make_resolver(config).resolve(SSH_URL, None, CredentialType.SSH_KEY)
        assert credential.username == "configured"

    def test_fallback(self) -> None:
        assert make_resolver().username(SSH_URL, None) == "git"


class TestOtherCredentials:
    """Tests for non-SSH remotes."""

    def test_credential_helper(self) -> None:
        config = FakeGitConfig(helper_credentials=("coneko", "s3cret"))
        resolver = make_resolver(config)
        credential = resolver.resolve(HTTPS_URL, None, CredentialType.USER_PASS_PLAINTEXT)
        assert credential == Credential(CredentialKind.USER_PASS, username="coneko", password="s3cret")
        assert config.fill_calls == [(HTTPS_URL, None)]
        assert "s3cret" not in repr(credential)

    def test_credential_helper_without_answer(self) -> None:
        resolver = make_resolver(FakeGitConfig())
        with pytest.raises(NoAuthenticationAvailable):
            resolver.resolve(HTTPS_URL, None, CredentialType.USER_PASS_PLAINTEXT)

    def test_default(self) -> None:
        resolver = make_resolver()
        credential = resolver.resolve("file:///srv/stack.git", None, CredentialType.DEFAULT)
        assert credential == Credential(CredentialKind.DEFAULT)

    def test_nothing_allowed(self) -> None:
        with pytest.raises(NoAuthenticationAvailable) as exc_info:
            make_resolver().resolve(SSH_URL, None, CredentialType(0))
        assert "no authentication available" in str(exc_info.value)

    def test_resolver_is_callable(self) -> None:
        resolver = make_resolver()
        assert resolver(SSH_URL, None, CredentialType.SSH_KEY).kind is CredentialKind.SSH_AGENT


class TestCredentialEnvironment:
    """Tests for how credentials are handed to git."""

    def test_agent(self) -> None:
        env = Credential(CredentialKind.SSH_AGENT, username="git").environment()
        assert env["GIT_SSH_COMMAND"] == "ssh -o BatchMode=yes -l git"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_key_file(self) -> None:
        env = Credential(CredentialKind.SSH_KEY_FILE, username="git",
                         key_path="/home/my user/.ssh/id_rsa").environment()
        command = env["GIT_SSH_COMMAND"]
        assert "-o IdentitiesOnly=yes" in command
        assert "-o IdentityAgent=none" in command
        assert "-i '/home/my user/.ssh/id_rsa'" in command

    def test_user_pass(self) -> None:
        env = Credential(CredentialKind.USER_PASS, username="coneko", password="s3cret").environment()
        expected = base64.b64encode(b"coneko:s3cret").decode()
        assert env["GIT_CONFIG_COUNT"] == "1"
        assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
        assert env["GIT_CONFIG_VALUE_0"] == f"Authorization: Basic {expected}"

    def test_default(self) -> None:
        assert Credential(CredentialKind.DEFAULT).environment() == {"GIT_TERMINAL_PROMPT": "0"}
