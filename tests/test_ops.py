"""Tests for request validation and the sync orchestration."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from send_to_git import ops
from send_to_git.config import SyncOptions
from send_to_git.errors import DestinationError, GitCommandError, ValidationError
from send_to_git.workspace import Workspace

REMOTE = "git@github.com:example/site.git"
REQUIRED = '"source", "destination" and "remote" are required'


@pytest.fixture
def sources(tmp_path: Path) -> Path:
    """Creates a small source tree and returns its directory."""
    src = tmp_path / "build"
    (src / "css").mkdir(parents=True)
    (src / "index.html").write_text("<h1>hi</h1>")
    (src / "css" / "site.css").write_text("body {}")
    return src


@pytest.fixture
def mock_cls(mocker: MagicMock) -> MagicMock:
    """Patches GitRepo so no git process runs."""
    mock_cls = mocker.patch("send_to_git.ops.GitRepo")
    mock_cls.clone.return_value.is_clean.return_value = False
    return mock_cls


@pytest.fixture
def mock_repo(mock_cls: MagicMock) -> MagicMock:
    """The repository returned by the patched `GitRepo.clone`."""
    return mock_cls.clone.return_value


# Validation


@pytest.mark.parametrize(
    ("source", "destination", "remote"),
    [
        (None, None, None),
        ([], None, None),
        ("./some-folder", None, None),
        ("./some-folder", "./some-dest", None),
        (None, "./some-dest", REMOTE),
        ("", "./some-dest", REMOTE),
        ("./some-folder", "./some-dest", ""),
    ],
)
def test_validate_request_requires_all_fields(
    source: str | None, destination: str | None, remote: str | None
) -> None:
    """Verifies that each missing argument fails with the same message."""
    with pytest.raises(ValidationError, match=REQUIRED):
        ops.validate_request(source, destination, remote)


def test_validate_request_accepts_empty_destination() -> None:
    """Verifies that '' is a valid destination meaning the repository root."""
    ops.validate_request("./some-folder", "", REMOTE)
    ops.validate_request("./some-folder", "./foo/bar/../../", REMOTE)


def test_validate_request_rejects_absolute_destination() -> None:
    """Verifies that an absolute destination is named in the error."""
    with pytest.raises(ValidationError) as exc:
        ops.validate_request("./some-folder", "/foo/bar", REMOTE)
    assert str(exc.value) == (
        '"destination" needs to be a relative path, actual value "/foo/bar".'
    )


@pytest.mark.parametrize(
    "destination",
    ["..", "../other", "./a/../../b", ".git", "./.git/hooks", "a/../.git", ".GIT"],
)
def test_validate_request_rejects_escaping_destination(destination: str) -> None:
    """Verifies destinations outside the repository or inside .git are rejected."""
    with pytest.raises(ValidationError, match="must stay inside the repository") as exc:
        ops.validate_request("./some-folder", destination, REMOTE)
    assert f'actual value "{destination}"' in str(exc.value)


@pytest.mark.parametrize("destination", [".github", ".gitignore-docs", "docs/.git-x"])
def test_validate_request_accepts_git_lookalikes(destination: str) -> None:
    """Verifies only the .git directory itself is off limits."""
    ops.validate_request("./some-folder", destination, REMOTE)


def test_send_to_git_git_dir_destination_touches_nothing(
    tmp_path: Path, mock_cls: MagicMock
) -> None:
    """Verifies a .git destination fails before cloning or allocating a workspace."""
    base = tmp_path / "ws"

    with pytest.raises(ValidationError):
        ops.send_to_git("build/**/*", "./.git", REMOTE, workspace_base=base)

    mock_cls.clone.assert_not_called()
    assert not base.exists()


def test_validate_request_checks_required_before_absolute() -> None:
    """Verifies the required-fields check runs first."""
    with pytest.raises(ValidationError, match=REQUIRED):
        ops.validate_request(None, "/foo/bar", REMOTE)


def test_send_to_git_validates_before_side_effects(
    tmp_path: Path, mocker: MagicMock
) -> None:
    """Verifies that an invalid call never allocates a workspace or runs git."""
    mock_cls = mocker.patch("send_to_git.ops.GitRepo")
    mock_workspace = mocker.patch("send_to_git.ops.workspace")

    with pytest.raises(ValidationError):
        ops.send_to_git("./dist", "/abs", REMOTE, workspace_base=tmp_path)

    mock_workspace.assert_not_called()
    mock_cls.clone.assert_not_called()


# Orchestration


def test_send_to_git_commits_and_pushes_changes(
    tmp_path: Path, sources: Path, mock_cls: MagicMock, mock_repo: MagicMock
) -> None:
    """Verifies the full clone -> copy -> commit -> push sequence with defaults."""
    base = tmp_path / "ws"

    result = ops.send_to_git(
        "build/**/*", "./public_html", REMOTE, cwd=tmp_path, workspace_base=base
    )

    assert result.committed is True
    assert sorted(result.files) == [Path("css/site.css"), Path("index.html")]

    clone_args = mock_cls.clone.call_args
    assert clone_args.args[0] == REMOTE
    assert clone_args.args[1].parent == base
    assert clone_args.kwargs["branch"] == "master"
    assert clone_args.kwargs["depth"] == 1

    mock_repo.checkout.assert_called_once_with("master")
    mock_repo.add_all.assert_called_once()
    mock_repo.commit.assert_called_once_with("Files added")
    mock_repo.push.assert_called_once_with("origin", "master")

    # Workspace is gone after the call.
    assert list(base.iterdir()) == []


def test_send_to_git_copies_into_destination(
    tmp_path: Path, sources: Path, mock_cls: MagicMock, mocker: MagicMock
) -> None:
    """Verifies a plain directory source is copied below the destination."""
    spy = mocker.spy(ops.files, "copy")

    result = ops.send_to_git(
        str(sources), "site/public", REMOTE, cwd=tmp_path, workspace_base=tmp_path / "ws"
    )

    clone_root = mock_cls.clone.call_args.args[1]
    dest = spy.call_args.args[1]
    assert dest.relative_to(clone_root) == Path("site/public")
    assert sorted(result.files) == [Path("css/site.css"), Path("index.html")]


def test_send_to_git_skips_commit_on_clean_tree(
    tmp_path: Path, sources: Path, mock_repo: MagicMock
) -> None:
    """Verifies that a clean working tree produces no commit or push."""
    mock_repo.is_clean.return_value = True

    result = ops.send_to_git(
        "build/**/*", "public_html", REMOTE, cwd=tmp_path, workspace_base=tmp_path / "ws"
    )

    assert result.committed is False
    mock_repo.checkout.assert_not_called()
    mock_repo.commit.assert_not_called()
    mock_repo.push.assert_not_called()


def test_send_to_git_uses_custom_options(
    tmp_path: Path, sources: Path, mock_cls: MagicMock, mock_repo: MagicMock
) -> None:
    """Verifies that commit message, branch and timeout are forwarded."""
    options = SyncOptions(
        commit_message="FOOBARFOOBARFOO", branch="gh-pages", timeout=30, depth=5
    )

    ops.send_to_git(
        "build/**/*",
        "public_html",
        REMOTE,
        options,
        cwd=tmp_path,
        workspace_base=tmp_path / "ws",
    )

    assert mock_cls.clone.call_args.kwargs["timeout"] == 30
    assert mock_cls.clone.call_args.kwargs["depth"] == 5
    mock_repo.checkout.assert_called_once_with("gh-pages")
    mock_repo.commit.assert_called_once_with("FOOBARFOOBARFOO")
    mock_repo.push.assert_called_once_with("origin", "gh-pages")


def test_send_to_git_empty_message_falls_back_to_default(
    tmp_path: Path, sources: Path, mock_repo: MagicMock
) -> None:
    """Verifies that an empty commit message uses 'Files added'."""
    ops.send_to_git(
        "build/**/*",
        "public_html",
        REMOTE,
        SyncOptions(commit_message=""),
        cwd=tmp_path,
        workspace_base=tmp_path / "ws",
    )

    mock_repo.commit.assert_called_once_with("Files added")


def test_send_to_git_removes_workspace_on_failure(
    tmp_path: Path, sources: Path, mock_repo: MagicMock
) -> None:
    """Verifies that a failing git step propagates and still cleans up."""
    mock_repo.commit.side_effect = GitCommandError(
        ["commit", "-m", "Files added"], 1, "Author identity unknown"
    )
    base = tmp_path / "ws"

    with pytest.raises(GitCommandError) as exc:
        ops.send_to_git(
            "build/**/*", "public_html", REMOTE, cwd=tmp_path, workspace_base=base
        )

    assert exc.value.subcommand == "commit"
    mock_repo.push.assert_not_called()
    assert list(base.iterdir()) == []


# Destination reset


def test_reset_destination_root_keeps_git_dir(tmp_path: Path) -> None:
    """Verifies a root sync deletes everything but .git."""
    ws = Workspace(tmp_path)
    (tmp_path / ".git" / "objects").mkdir(parents=True)
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/master")
    (tmp_path / "README.md").write_text("readme")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "a.md").write_text("a")
    (tmp_path / ".gitignore").write_text("*.log")

    ops.reset_destination(ws, ws.resolve(""))

    assert sorted(p.name for p in tmp_path.iterdir()) == [".git"]
    assert (tmp_path / ".git" / "HEAD").exists()


def test_reset_destination_subtree_deletes_only_target(tmp_path: Path) -> None:
    """Verifies a subtree sync deletes the destination and nothing else."""
    ws = Workspace(tmp_path)
    (tmp_path / ".git").mkdir()
    (tmp_path / "README.md").write_text("readme")
    (tmp_path / "public_html").mkdir()
    (tmp_path / "public_html" / "index.html").write_text("old")

    ops.reset_destination(ws, ws.resolve("./public_html"))

    assert not (tmp_path / "public_html").exists()
    assert (tmp_path / "README.md").exists()
    assert (tmp_path / ".git").exists()


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    """A directory outside the clone holding a file that must survive."""
    target = tmp_path / "outside"
    (target / "public").mkdir(parents=True)
    (target / "public" / "keep.html").write_text("keep")
    return target


def test_reset_destination_refuses_symlink_escape(tmp_path: Path, outside: Path) -> None:
    """Verifies a committed symlink cannot redirect deletion outside the clone."""
    ws = Workspace(tmp_path / "clone")
    (ws.root / ".git").mkdir(parents=True)
    (ws.root / "site").symlink_to(outside, target_is_directory=True)

    with pytest.raises(DestinationError, match="resolves outside the repository"):
        ops.reset_destination(ws, ws.resolve("site/public"))

    assert (outside / "public" / "keep.html").read_text() == "keep"


def test_reset_destination_allows_symlink_within_clone(tmp_path: Path) -> None:
    """Verifies a symlink that stays inside the clone is followed normally."""
    ws = Workspace(tmp_path / "clone")
    (ws.root / "real" / "public").mkdir(parents=True)
    (ws.root / "real" / "public" / "old.html").write_text("old")
    (ws.root / "site").symlink_to(ws.root / "real", target_is_directory=True)

    ops.reset_destination(ws, ws.resolve("site/public"))

    assert not (ws.root / "real" / "public").exists()


def test_send_to_git_symlink_escape_leaves_target_untouched(
    tmp_path: Path, sources: Path, mock_cls: MagicMock, outside: Path
) -> None:
    """Verifies the sync aborts, writes nothing outside and still cleans up."""
    base = tmp_path / "ws"

    def fake_clone(remote: str, root: Path, **kwargs: object) -> MagicMock:
        (root / ".git").mkdir(parents=True)
        (root / "site").symlink_to(outside, target_is_directory=True)
        return mock_cls.clone.return_value

    mock_cls.clone.side_effect = fake_clone

    with pytest.raises(DestinationError):
        ops.send_to_git(
            "build/**/*", "site/public", REMOTE, cwd=tmp_path, workspace_base=base
        )

    assert sorted(p.name for p in (outside / "public").iterdir()) == ["keep.html"]
    mock_cls.clone.return_value.commit.assert_not_called()
    assert list(base.iterdir()) == []


# Push retries


def test_push_with_retry_raises_without_budget(mocker: MagicMock) -> None:
    """Verifies that a rejected push propagates when retries are disabled."""
    repo = mocker.MagicMock()
    repo.push.side_effect = GitCommandError(["push", "origin", "master"], 1, "rejected")

    with pytest.raises(GitCommandError):
        ops.push_with_retry(repo, SyncOptions(), "master")

    repo.pull_rebase.assert_not_called()


def test_push_with_retry_rebases_then_succeeds(mocker: MagicMock) -> None:
    """Verifies a rejected push is rebased onto the remote and pushed again."""
    repo = mocker.MagicMock()
    repo.push.side_effect = [
        GitCommandError(["push", "origin", "master"], 1, "rejected (fetch first)"),
        None,
    ]

    ops.push_with_retry(repo, SyncOptions(push_retries=2), "master")

    repo.pull_rebase.assert_called_once_with("origin", "master")
    assert repo.push.call_count == 2


def test_push_with_retry_gives_up_after_budget(mocker: MagicMock) -> None:
    """Verifies the retry loop is bounded."""
    repo = mocker.MagicMock()
    repo.push.side_effect = GitCommandError(["push", "origin", "main"], 1, "rejected")

    with pytest.raises(GitCommandError):
        ops.push_with_retry(repo, SyncOptions(push_retries=2), "main")

    assert repo.push.call_count == 3
    assert repo.pull_rebase.call_count == 2
