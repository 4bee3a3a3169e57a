"""Getting a changeset description from the user's editor."""

import os
import shlex
import logging
import subprocess
import tempfile
from typing import Protocol

from ..config.models import Environment
from ..errors import EditorAborted, EditorNotFound
from . import DEFAULT_HOST, Changeset, parse_changeset

logger = logging.getLogger(__name__)

SCRATCH_FILE_NAME = "CHANGESET_EDITMSG"


class EditorLauncher(Protocol):
    """Runs an editor program on a file and waits for it to exit."""
    def run(self, program: str, path: str) -> int:
        """Run ``program`` on ``path``.

        Returns the exit status, negative when the editor was killed by a
        signal (the ``subprocess`` convention).
        """
        ...


class SubprocessEditorLauncher:
    """Launch the editor as a child process attached to the terminal."""

    def run(self, program: str, path: str) -> int:
        # VISUAL/EDITOR may carry arguments, e.g. "code --wait"
        try:
            command = shlex.split(program)
        except ValueError as e:
            # Unbalanced quotes
            raise EditorNotFound(program) from e
        if not command:
            raise EditorNotFound(program)
        args = command + [path]
        logger.debug(f"> {' '.join(shlex.quote(a) for a in args)}")
        try:
            return subprocess.run(args).returncode
        except (FileNotFoundError, PermissionError) as e:
            raise EditorNotFound(program) from e


class ChangesetSource:
    """Obtains changeset text from an editor or a string and parses it."""

    def __init__(self, environment: Environment, launcher: EditorLauncher,
                 default_editor: str = "vi", host: str = DEFAULT_HOST):
        self.environment = environment
        self.launcher = launcher
        self.default_editor = default_editor
        self.host = host

    def from_string(self, text: str, owner: str, repo: str) -> Changeset:
        """Parse ``text`` as a changeset description."""
        return parse_changeset(text, owner, repo, self.host)

    def from_editor(self, owner: str, repo: str, initial_text: str = "") -> Changeset:
        """Let the user write the changeset description in an editor.

        The scratch file lives in a temporary directory removed on every exit
        path. If the editor fails nothing written to the file is used.
        """
        editor = self.environment.editor_program(self.default_editor)
        with tempfile.TemporaryDirectory(prefix="pystack-") as tmpdir:
            path = os.path.join(tmpdir, SCRATCH_FILE_NAME)
            with open(path, "w") as f:
                f.write(initial_text)

            logger.info(f"Waiting for editor '{editor}' to close {path}")
            rc = self.launcher.run(editor, path)
            if rc < 0:
                raise EditorAborted(editor, path, signal=-rc)
            if rc != 0:
                raise EditorAborted(editor, path, exit_code=rc)

            with open(path, "r") as f:
                text = f.read()

        return self.from_string(text, owner, repo)
