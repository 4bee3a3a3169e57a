"""Errors raised by pystack.

Every failure of a ``stack up`` run is one of these. They are grouped by
where the problem has to be fixed: the changeset text, the process
environment, the local repository, or the remote side. Context from lower
layers is attached with ``raise ... from ...`` and printed as a chain by the
CLI.
"""

from typing import List, Optional


class StackError(Exception):
    """Base class for all pystack errors."""


def error_chain(err: BaseException) -> List[str]:
    """Messages of an exception and all of its causes, outermost first."""
    messages: List[str] = []
    current: Optional[BaseException] = err
    while current is not None:
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__
    return messages


# Changeset text

class ChangesetError(StackError):
    """The changeset description written by the user is invalid."""


class ParseError(ChangesetError):
    """Text could not be parsed."""


class NoMatch(ParseError):
    """Token is not a pull request number, #number or pull request URL."""

    def __init__(self, token: str, owner: str, repo: str):
        self.token = token
        self.owner = owner
        self.repo = repo
        super().__init__(
            f"Could not extract pull request number from '{token}' "
            f"(expected N, #N or a pull request URL of {owner}/{repo}).")


class NumberOverflow(ParseError):
    """Pull request number does not fit in an unsigned 64-bit integer."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Pull request number is out of range: '{token}'.")


class InvalidField(ParseError):
    """A labeled field holds an unparsable value."""

    def __init__(self, label: str, line: str, text: str):
        self.label = label
        self.line = line
        self.text = text
        super().__init__(
            f"Could not parse pull request number from '{label}' field: '{line}'.\n"
            f"Changeset description:\n{text}")


class DuplicateField(ParseError):
    """A field that may only appear once appeared again."""

    def __init__(self, label: str, line: str, text: str):
        self.label = label
        self.line = line
        self.text = text
        super().__init__(
            f"Multiple '{label}' fields found in changeset description "
            f"(duplicate line: '{line}'):\n{text}")


class MultiplePullRequests(ParseError):
    """The 'Pull request' field lists more than one pull request."""

    def __init__(self, line: str, text: str):
        self.line = line
        self.text = text
        super().__init__(
            f"'Pull request' field must reference exactly one pull request: '{line}'.\n"
            f"Changeset description:\n{text}")


class MissingTitle(ParseError):
    """No title line was found."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Could not parse title from changeset description:\n{text}")


# Process environment

class ConfigurationError(StackError):
    """The process environment is missing something pystack needs."""


class MissingUser(ConfigurationError):
    def __init__(self) -> None:
        super().__init__(
            "No USER environment variable found, cannot get current user's username.")


class MissingToken(ConfigurationError):
    def __init__(self) -> None:
        super().__init__(
            "No GitHub token found. Try one of:\n"
            "1. Set GITHUB_TOKEN env var\n"
            "2. Log in with 'gh auth login'")


class NoHomeDirectory(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("Could not get user home directory: HOME is not set.")


class EditorNotFound(ConfigurationError):
    def __init__(self, editor: str):
        self.editor = editor
        super().__init__(f"Could not run editor '{editor}'.")


class EditorAborted(ConfigurationError):
    """The editor exited unsuccessfully; the file it edited is not used."""

    def __init__(self, editor: str, path: str, exit_code: Optional[int] = None,
                 signal: Optional[int] = None):
        self.editor = editor
        self.path = path
        self.exit_code = exit_code
        self.signal = signal
        if exit_code is not None:
            reason = f"exited with code '{exit_code}'"
        else:
            reason = "terminated by signal"
            if signal is not None:
                reason += f" {signal}"
        super().__init__(
            f"Editor '{editor}' {reason} after opening temporary file '{path}'.")


# Local repository state

class RepositoryStateError(StackError):
    """The local repository is not in a state pystack can work with."""


class NotARepository(RepositoryStateError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Not a git repository (or any of the parent directories): '{path}'.")


class NoOriginRemote(RepositoryStateError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not find remote {name}.")


class NoRemoteUrl(RepositoryStateError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not read remote {name} url.")


class UnrecognizedRemoteUrl(RepositoryStateError):
    def __init__(self, url: str, host: str):
        self.url = url
        super().__init__(
            f"Could not extract GitHub repo from origin url '{url}' "
            f"(expected git@{host}:owner/repo.git).")


class NoHead(RepositoryStateError):
    def __init__(self) -> None:
        super().__init__("Could not get commit referenced by HEAD.")


class NoParent(RepositoryStateError):
    def __init__(self, commit: str):
        self.commit = commit
        super().__init__(f"HEAD commit '{commit}' has no parents.")


class MultipleParents(RepositoryStateError):
    def __init__(self, commit: str, count: int):
        self.commit = commit
        self.count = count
        super().__init__(
            f"HEAD commit '{commit}' has {count} parents, only single-parent "
            f"commits can be stacked.")


class BranchAlreadyExists(RepositoryStateError):
    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"Branch '{branch}' already exists. Delete it with "
            f"'git branch -D {branch}' to stack this commit again.")


# Remote side

class RemoteOperationError(StackError):
    """The remote or the forge rejected an operation."""


class NoAuthenticationAvailable(RemoteOperationError):
    def __init__(self, url: str, reason: str = "no authentication available"):
        self.url = url
        super().__init__(f"Could not authenticate to '{url}': {reason}.")


class AuthenticationExhausted(RemoteOperationError):
    def __init__(self, url: str, attempts: List[str]):
        self.url = url
        self.attempts = attempts
        super().__init__(
            f"Authentication to '{url}' failed after trying: {', '.join(attempts)}.")


class PushFailed(RemoteOperationError):
    def __init__(self, remote: str, ref_names: List[str], detail: str = ""):
        self.remote = remote
        self.ref_names = ref_names
        message = f"Couldn't push {', '.join(ref_names)} to {remote}."
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class PullRequestCreationFailed(RemoteOperationError):
    def __init__(self, head: str, base: str, detail: str = ""):
        self.head = head
        self.base = base
        message = f"Could not create pull request from '{head}' into '{base}'."
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class BranchPushFailed(RemoteOperationError):
    """Pushing a freshly created stack branch failed; the local branch stays."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"Couldn't push branch '{branch}'. The local branch was left in place, "
            f"delete it with 'git branch -D {branch}' before retrying.")
