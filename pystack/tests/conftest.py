"""Configuration for pytest."""

import logging
from typing import Callable, Optional

import pytest

from pystack.config import Config, default_config
from pystack.config.models import Environment
from pystack.errors import NotARepository
from pystack.github import GitHubClient
from pystack.stack import StackPushPipeline
from pystack.tests.e2e.fake_pygithub import FakeGithub, create_fake_github
from pystack.tests.e2e.fake_repository import (
    FakeEditorLauncher, FakeGitRepository, create_fake_repository,
)

# Configure logging
logger = logging.getLogger(__name__)

@pytest.fixture
def environment(tmp_path) -> Environment:
    """Environment of a user with a home directory and no editor or token set."""
    return Environment(user="coneko", home=str(tmp_path / "home"))

@pytest.fixture
def fake_github() -> FakeGithub:
    return create_fake_github()

@pytest.fixture
def fake_repository() -> FakeGitRepository:
    """Repository with a single-parent HEAD and an origin on github.com."""
    return create_fake_repository()

@pytest.fixture
def editor() -> FakeEditorLauncher:
    """Editor that keeps the prefilled commit message."""
    return FakeEditorLauncher()

@pytest.fixture
def make_pipeline(environment: Environment, fake_github: FakeGithub,
                  fake_repository: FakeGitRepository,
                  editor: FakeEditorLauncher) -> Callable[..., StackPushPipeline]:
    """Factory for pipelines wired to the fakes; keyword arguments override them."""
    def make(environment: Environment = environment,
             repository: Optional[FakeGitRepository] = fake_repository,
             editor_launcher: FakeEditorLauncher = editor,
             config: Config = default_config()) -> StackPushPipeline:
        def open_repository(directory: str) -> FakeGitRepository:
            if repository is None:
                raise NotARepository(directory)
            return repository

        return StackPushPipeline(
            environment,
            open_repository=open_repository,
            editor_launcher=editor_launcher,
            service_factory=lambda cfg, owner, name: GitHubClient(cfg, fake_github, owner, name),
            config=config,
        )
    return make
