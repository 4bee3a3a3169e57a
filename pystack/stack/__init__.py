"""Stack push pipeline: turn the HEAD commit into a pull request."""

import logging
from typing import Callable, Optional

from ..changeset import Changeset
from ..changeset.editor import ChangesetSource, EditorLauncher
from ..config import Config, load_config
from ..config.models import Environment, StackConfig
from ..errors import (
    BranchPushFailed, MissingUser, MultipleParents, NoParent, NoRemoteUrl,
    PullRequestCreationFailed, StackError,
)
from ..git import (
    Commit, RemoteProtocol, RepositoryProtocol, StackBranchPair, branch_prefix,
    parse_remote_url, stack_branch_names,
)
from ..git.credentials import CredentialResolver
from ..github import PullRequestHandle, PullRequestServiceProtocol, format_body
from ..typing import CommitHash

logger = logging.getLogger(__name__)

CHANGESET_HELP = """
# Enter the pull request title on the first line and its description below.
# Lines starting with '#' and blank lines are ignored.
#
# Optional fields:
#   Pull request: <pull request this change amends: N, #N or its URL>
#   Depends on: <comma separated pull requests this change depends on>
"""

RepositoryOpener = Callable[[str], RepositoryProtocol]
ServiceFactory = Callable[[StackConfig, str, str], PullRequestServiceProtocol]


class StackPushPipeline:
    """Pushes the HEAD commit as a base/head branch pair and opens a pull request.

    Every step must succeed before the next one starts. Nothing is retried
    or rolled back: branches created or pushed before a failure stay where
    they are.
    """

    def __init__(self, environment: Environment, open_repository: RepositoryOpener,
                 editor_launcher: EditorLauncher, service_factory: ServiceFactory,
                 config: Optional[Config] = None, directory: str = "."):
        """Initialize with collaborators.

        Args:
            environment: Process environment
            open_repository: Opens the repository containing a path
            editor_launcher: Runs the user's editor on the changeset file
            service_factory: Creates the pull request service for (config, owner, repo)
            config: Configuration; read from the repository's .stack.yaml when None
            directory: Where to look for the repository
        """
        self.environment = environment
        self.open_repository = open_repository
        self.editor_launcher = editor_launcher
        self.service_factory = service_factory
        self.config = config
        self.directory = directory

    def branch_prefix(self) -> str:
        if not self.environment.user:
            raise MissingUser()
        return branch_prefix(self.environment.user)

    def run(self) -> PullRequestHandle:
        """Run the whole pipeline, returning the created pull request."""
        prefix = self.branch_prefix()

        repository = self.open_repository(self.directory)
        config = self.config or load_config(repository.working_dir)
        host = config.repo.github_host

        remote = repository.find_remote(config.repo.github_remote)
        url = remote.url()
        if url is None:
            raise NoRemoteUrl(remote.name)
        owner, name = parse_remote_url(url, host)
        logger.info(f"Stacking on {owner}/{name} through remote {remote.name} ({url})")
        service = self.service_factory(config, owner, name)

        head = repository.head()
        parent = self.single_parent(head)

        changeset = self.edit_changeset(config, owner, name, head)
        branches = stack_branch_names(prefix, head.hexsha, parent)
        logger.debug(f"Stack branches: {branches}")

        self.push_branch(repository, remote, config, branches.base_branch_name, branches.base_target)
        self.push_branch(repository, remote, config, branches.head_branch_name, branches.head_target)

        return self.create_pull_request(service, changeset, branches, owner, name, host)

    @staticmethod
    def single_parent(head: Commit) -> CommitHash:
        """The only parent of ``head``; merges and root commits are rejected."""
        if not head.parents:
            raise NoParent(head.hexsha)
        if len(head.parents) > 1:
            raise MultipleParents(head.hexsha, len(head.parents))
        return head.parents[0]

    def edit_changeset(self, config: StackConfig, owner: str, name: str, head: Commit) -> Changeset:
        """Let the user describe the change, starting from the commit message."""
        source = ChangesetSource(self.environment, self.editor_launcher,
                                 config.user.default_editor, config.repo.github_host)
        initial_text = head.message.rstrip("\n") + "\n" + CHANGESET_HELP
        changeset = source.from_editor(owner, name, initial_text)
        if changeset.branch:
            logger.warning(f"Ignoring 'Branch name: {changeset.branch}', "
                           f"stack branches are always named after the commit")
        return changeset

    def push_branch(self, repository: RepositoryProtocol, remote: RemoteProtocol,
                    config: StackConfig, branch: str, target: CommitHash) -> None:
        """Create ``branch`` at ``target`` and push it with fresh credentials."""
        ref_name = repository.create_branch(branch, target, overwrite=False)
        resolver = CredentialResolver(repository.config(), self.environment,
                                      config.user.ssh_key_path)
        try:
            remote.push([ref_name], resolver.resolve)
        except StackError as e:
            raise BranchPushFailed(branch) from e

    def create_pull_request(self, service: PullRequestServiceProtocol, changeset: Changeset,
                            branches: StackBranchPair, owner: str, name: str,
                            host: str) -> PullRequestHandle:
        body = format_body(changeset, owner, name, host)
        try:
            pr = service.create(changeset.title, body,
                                head=branches.head_branch_name,
                                base=branches.base_branch_name)
        except PullRequestCreationFailed:
            logger.error(f"Branches {branches.base_branch_name} and {branches.head_branch_name} "
                         f"were pushed and left in place")
            raise
        logger.info(f"Created {pr}")
        return pr
