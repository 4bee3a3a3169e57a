"""Changeset descriptions: the text a user writes for a pull request.

The format is plain text edited by hand::

    # Lines starting with '#' and blank lines are ignored.
    Title of the pull request
    First line of the description.
    Second line of the description.
    Pull request: #12
    Depends on: #10, https://github.com/owner/repo/pull/11

The first free-text line is the title, the following ones are the body.
``Pull request:`` names an existing pull request this change amends,
``Depends on:`` lists pull requests this change builds on and may repeat.
``Branch name:`` is accepted and reported back but branch names are always
derived from the commit.
"""

import re
import logging
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..config.models import DEFAULT_GITHUB_HOST as DEFAULT_HOST
from ..errors import (
    DuplicateField, InvalidField, MissingTitle, MultiplePullRequests,
    NoMatch, NumberOverflow, ParseError,
)
from ..typing import MAX_PULL_REQUEST_ID, PullRequestId

logger = logging.getLogger(__name__)

BRANCH_FIELD_LABEL = "Branch name:"
PR_FIELD_LABEL = "Pull request:"
DEPENDS_ON_FIELD_LABEL = "Depends on:"


class Changeset(BaseModel):
    """Parsed changeset description."""
    title: str = Field(min_length=1)
    message: Optional[str] = None
    pull_request: Optional[PullRequestId] = None
    dependencies: List[PullRequestId] = Field(default_factory=list)
    branch: Optional[str] = None

    model_config = ConfigDict(frozen=True)


def _pull_request_regex(owner: str, repo: str, host: str) -> "re.Pattern[str]":
    owner, repo, host = re.escape(owner), re.escape(repo), re.escape(host)
    return re.compile(
        rf"(?:https://{host}/{owner}/{repo}/pull/|http://{host}/{owner}/{repo}/pull/|#)?"
        r"(?P<pr_number>[0-9]+)")


def parse_pull_request(token: str, owner: str, repo: str,
                       host: str = DEFAULT_HOST) -> PullRequestId:
    """Parse a single pull request reference into its number.

    Accepts ``N``, ``#N`` and ``http(s)://{host}/{owner}/{repo}/pull/N``.
    The URL must point at ``owner/repo``, compared case-sensitively.

    Raises:
        NoMatch: The token is none of the accepted shapes.
        NumberOverflow: The number does not fit in an unsigned 64-bit integer.
    """
    match = _pull_request_regex(owner, repo, host).fullmatch(token.strip())
    if not match:
        raise NoMatch(token, owner, repo)
    digits = match.group("pr_number").lstrip("0") or "0"
    if len(digits) > len(str(MAX_PULL_REQUEST_ID)):
        raise NumberOverflow(token)
    number = int(digits)
    if number > MAX_PULL_REQUEST_ID:
        raise NumberOverflow(token)
    return PullRequestId(number)


def parse_pull_requests(text: str, owner: str, repo: str,
                        host: str = DEFAULT_HOST) -> List[PullRequestId]:
    """Parse a comma separated list of pull request references.

    Either every reference parses or the first failure is raised.
    """
    return [parse_pull_request(token, owner, repo, host) for token in text.split(",")]


def pull_request_url(owner: str, repo: str, number: int, host: str = DEFAULT_HOST) -> str:
    """Canonical URL of a pull request."""
    return f"https://{host}/{owner}/{repo}/pull/{number}"


def parse_changeset(text: str, owner: str, repo: str,
                    host: str = DEFAULT_HOST) -> Changeset:
    """Parse a changeset description.

    Args:
        text: Full text as written by the user
        owner: Owner of the repository pull request references must point at
        repo: Name of that repository
        host: Forge host used in pull request URLs

    Raises:
        ParseError: See the subclasses in ``pystack.errors``. Messages include
            the offending line and the whole text.
    """
    title: Optional[str] = None
    message: List[str] = []
    branch: Optional[str] = None
    pull_request: Optional[PullRequestId] = None
    dependencies: List[PullRequestId] = []

    for line in text.splitlines():
        if not line.strip():
            continue
        if line.startswith('#'):
            continue

        if line.startswith(BRANCH_FIELD_LABEL):
            if branch is not None:
                raise DuplicateField("Branch name", line, text)
            branch = line[len(BRANCH_FIELD_LABEL):].strip()
        elif line.startswith(PR_FIELD_LABEL):
            if pull_request is not None:
                raise DuplicateField("Pull request", line, text)
            try:
                numbers = parse_pull_requests(line[len(PR_FIELD_LABEL):], owner, repo, host)
            except ParseError as e:
                raise InvalidField("Pull request", line, text) from e
            if len(numbers) != 1:
                raise MultiplePullRequests(line, text)
            pull_request = numbers[0]
        elif line.startswith(DEPENDS_ON_FIELD_LABEL):
            try:
                numbers = parse_pull_requests(line[len(DEPENDS_ON_FIELD_LABEL):], owner, repo, host)
            except ParseError as e:
                raise InvalidField("Depends on", line, text) from e
            dependencies.extend(numbers)
        elif title is None:
            title = line
        else:
            message.append(line)

    if title is None:
        raise MissingTitle(text)

    changeset = Changeset(
        title=title,
        message="\n".join(message) if message else None,
        pull_request=pull_request,
        dependencies=dependencies,
        branch=branch,
    )
    logger.debug(f"Parsed changeset: {changeset!r}")
    return changeset
