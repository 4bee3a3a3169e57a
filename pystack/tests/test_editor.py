"""Unit tests for getting changesets from an editor."""

import os

import pytest

from pystack.changeset.editor import ChangesetSource, SubprocessEditorLauncher
from pystack.config.models import Environment
from pystack.errors import EditorAborted, EditorNotFound, MissingTitle
from pystack.tests.e2e.fake_repository import FakeEditorLauncher


def make_source(launcher: FakeEditorLauncher, **env: str) -> ChangesetSource:
    return ChangesetSource(Environment(**env), launcher, default_editor="vi")


class TestEditorSelection:
    """Tests for which editor program is run."""

    def test_visual_wins(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n")
        make_source(launcher, visual="code --wait", editor="nano").from_editor("Coneko", "stack")
        assert launcher.calls[0][0] == "code --wait"

    def test_editor_when_no_visual(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n")
        make_source(launcher, editor="nano").from_editor("Coneko", "stack")
        assert launcher.calls[0][0] == "nano"

    def test_default_when_neither_set(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n")
        make_source(launcher).from_editor("Coneko", "stack")
        assert launcher.calls[0][0] == "vi"

    def test_empty_variables_are_unset(self) -> None:
        environment = Environment.from_environ({"VISUAL": "", "EDITOR": "nano"})
        assert environment.editor_program("vi") == "nano"

    def test_whitespace_variables_are_unset(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n")
        make_source(launcher, visual="  ", editor="\t").from_editor("Coneko", "stack")
        assert launcher.calls[0][0] == "vi"


class TestFromEditor:
    """Tests for ChangesetSource.from_editor."""

    def test_parses_saved_text(self) -> None:
        launcher = FakeEditorLauncher(text="Title\nBody line.\nPull request: #4\n")
        changeset = make_source(launcher).from_editor("Coneko", "stack")
        assert changeset.title == "Title"
        assert changeset.message == "Body line."
        assert changeset.pull_request == 4

    def test_file_is_prefilled(self) -> None:
        launcher = FakeEditorLauncher()
        changeset = make_source(launcher).from_editor("Coneko", "stack", "Prefilled\n# help\n")
        assert launcher.initial_texts == ["Prefilled\n# help\n"]
        assert changeset.title == "Prefilled"

    def test_scratch_file_removed_after_success(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n")
        make_source(launcher).from_editor("Coneko", "stack")
        path = launcher.calls[0][1]
        assert not os.path.exists(path)
        assert not os.path.exists(os.path.dirname(path))

    def test_nonzero_exit_aborts(self) -> None:
        """Test that a failing editor aborts without parsing the file."""
        # The text would not parse, so reaching the parser would raise MissingTitle
        launcher = FakeEditorLauncher(text="# nothing\n", exit_code=1)
        with pytest.raises(EditorAborted) as exc_info:
            make_source(launcher).from_editor("Coneko", "stack")
        assert exc_info.value.exit_code == 1
        assert "exited with code '1'" in str(exc_info.value)
        assert not os.path.exists(launcher.calls[0][1])

    def test_signal_aborts(self) -> None:
        launcher = FakeEditorLauncher(text="Title\n", exit_code=-9)
        with pytest.raises(EditorAborted) as exc_info:
            make_source(launcher).from_editor("Coneko", "stack")
        assert exc_info.value.exit_code is None
        assert exc_info.value.signal == 9
        assert "terminated by signal" in str(exc_info.value)
        assert not os.path.exists(launcher.calls[0][1])

    def test_parse_error_removes_scratch_file(self) -> None:
        launcher = FakeEditorLauncher(text="# only a comment\n")
        with pytest.raises(MissingTitle):
            make_source(launcher).from_editor("Coneko", "stack")
        assert not os.path.exists(launcher.calls[0][1])


def test_from_string() -> None:
    source = make_source(FakeEditorLauncher())
    assert source.from_string("Title\nDepends on: #1\n", "Coneko", "stack").dependencies == [1]


class TestSubprocessEditorLauncher:
    """Tests for running a real editor process."""

    def test_missing_program(self, tmp_path) -> None:
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(EditorNotFound) as exc_info:
            SubprocessEditorLauncher().run("pystack-no-such-editor", str(path))
        assert "pystack-no-such-editor" in str(exc_info.value)

    def test_unbalanced_quote(self, tmp_path) -> None:
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(EditorNotFound) as exc_info:
            SubprocessEditorLauncher().run("vim 'oops", str(path))
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_unbalanced_quote_from_editor(self) -> None:
        """Test that a broken VISUAL fails as an editor error and cleans up."""
        source = ChangesetSource(Environment(visual="vim 'oops"), SubprocessEditorLauncher())
        with pytest.raises(EditorNotFound):
            source.from_editor("Coneko", "stack")

    def test_blank_program(self, tmp_path) -> None:
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(EditorNotFound):
            SubprocessEditorLauncher().run("   ", str(path))

    def test_program_with_arguments(self, tmp_path) -> None:
        """Test that the editor command is split like a shell would."""
        path = tmp_path / "file"
        path.write_text("")
        rc = SubprocessEditorLauncher().run("sh -c 'echo edited > \"$0\"'", str(path))
        assert rc == 0
        assert path.read_text() == "edited\n"

    def test_exit_status_is_returned(self, tmp_path) -> None:
        path = tmp_path / "file"
        path.write_text("")
        assert SubprocessEditorLauncher().run("sh -c 'exit 3'", str(path)) == 3
