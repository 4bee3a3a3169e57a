"""Common types used across the codebase."""

from typing import NewType

# Full 40 character commit hash
CommitHash = NewType('CommitHash', str)

# Number of a pull request on the forge
PullRequestId = NewType('PullRequestId', int)

# Largest pull request number the forge API accepts (unsigned 64-bit)
MAX_PULL_REQUEST_ID = 2 ** 64 - 1
