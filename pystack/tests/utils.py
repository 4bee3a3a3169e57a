"""Shared utilities for pystack tests."""
import shutil
import subprocess
from typing import Optional
import logging
import pytest

logger = logging.getLogger(__name__)

def run_cmd(cmd: str, cwd: Optional[str] = None, check: bool = True) -> str:
    """Run shell command and return output.

    Args:
        cmd: Command to run
        cwd: Working directory
        check: Whether to check return code

    Returns:
        str: Command output
    """
    logger.debug(f"Running command: {cmd}")
    result = subprocess.run(
        cmd, shell=True, check=check, cwd=cwd,
        capture_output=True, text=True
    )
    logger.debug(f"Command output: {result.stdout.strip()}")
    if result.stderr:
        logger.debug(f"Command stderr: {result.stderr.strip()}")
    return result.stdout.strip()

def init_repo(path: str, commits: int = 2) -> Optional[str]:
    """Create a git repository at ``path`` with ``commits`` linear commits.

    Returns:
        Optional[str]: Hash of the HEAD commit, None when nothing was committed
    """
    run_cmd("git init -q -b main", cwd=path)
    run_cmd("git config user.name 'Stack Tester'", cwd=path)
    run_cmd("git config user.email 'stack-tester@example.com'", cwd=path)
    run_cmd("git config commit.gpgsign false", cwd=path)
    for i in range(commits):
        with open(f"{path}/file{i}.txt", "w") as f:
            f.write(f"content {i}\n")
        run_cmd(f"git add file{i}.txt", cwd=path)
        run_cmd(f"git commit -q -m 'Commit {i}' -m 'Body of commit {i}.'", cwd=path)
    if commits == 0:
        return None
    return run_cmd("git rev-parse HEAD", cwd=path)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
