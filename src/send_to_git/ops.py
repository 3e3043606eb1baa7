import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from . import files
from .config import SyncOptions
from .constants import APP_NAME, DEFAULT_BRANCH, DEFAULT_COMMIT_MESSAGE, GIT_DIR
from .errors import DestinationError, GitCommandError, ValidationError
from .git_wrapper import GitRepo
from .workspace import Workspace, workspace

logger = logging.getLogger(APP_NAME)


@dataclass
class SyncResult:
    """Outcome of a successful sync.

    Attributes:
        committed (bool): True if a commit was created and pushed, False if the
            destination already matched the sources.
        files (list[Path]): Files copied into the destination, relative to it.
    """

    committed: bool
    files: list[Path] = field(default_factory=list)


def validate_request(
    source: str | Sequence[str] | None,
    destination: str | None,
    remote: str | None,
) -> None:
    """Checks the arguments of a sync before anything touches disk or network.

    An empty destination is valid and designates the repository root.

    Args:
        source (str | Sequence[str] | None): Glob or globs to read.
        destination (str | None): Path inside the repository.
        remote (str | None): Repository URL or path.

    Raises:
        ValidationError: On a missing argument, an absolute destination, or a
            destination that leads outside the repository or into `.git`.
    """
    if not source or destination is None or not remote:
        raise ValidationError('"source", "destination" and "remote" are required')

    if os.path.isabs(destination):
        raise ValidationError(
            f'"destination" needs to be a relative path, actual value "{destination}".'
        )

    normalized = os.path.normpath(destination) if destination else os.curdir
    first = normalized.split(os.sep)[0]
    if first == os.pardir or first.casefold() == GIT_DIR:
        raise ValidationError(
            f'"destination" must stay inside the repository and out of '
            f'"{GIT_DIR}", actual value "{destination}".'
        )


def reset_destination(ws: Workspace, to: Path) -> None:
    """Empties the destination before the fresh copy.

    A repository root sync keeps the `.git` metadata; any other destination is
    deleted as a whole.

    Raises:
        DestinationError: If a symlink committed in the repository redirects
            the destination outside the clone.
    """
    real_root = ws.root.resolve()
    if not to.resolve().is_relative_to(real_root):
        raise DestinationError(
            f'"destination" resolves outside the repository through a symlink, '
            f'actual target "{to.resolve()}".'
        )

    if ws.is_root(to):
        logger.info("Resetting repository root (keeping .git)")
        files.remove(to, keep=[GIT_DIR])
    else:
        logger.info(f"Resetting {to.relative_to(ws.root)}")
        files.remove(to)


def push_with_retry(repo: GitRepo, options: SyncOptions, branch: str) -> None:
    """Pushes `branch`, rebasing onto the remote and retrying on rejection.

    Args:
        repo (GitRepo): The scratch clone.
        options (SyncOptions): Supplies the remote name and retry budget.
        branch (str): The branch to push.

    Raises:
        GitCommandError: If the last allowed attempt still fails.
    """
    attempt = 0
    while True:
        try:
            repo.push(options.remote_name, branch)
            return
        except GitCommandError as e:
            if attempt >= options.push_retries:
                raise
            attempt += 1
            logger.warning(
                f"Push rejected ({e.stderr or e}); rebasing and retrying "
                f"({attempt}/{options.push_retries})"
            )
            repo.pull_rebase(options.remote_name, branch)


def send_to_git(
    source: str | Sequence[str],
    destination: str,
    remote: str,
    options: SyncOptions | None = None,
    *,
    cwd: Path | None = None,
    workspace_base: Path | None = None,
) -> SyncResult:
    """Keeps a folder of a git repository in sync with a set of local files.

    Clones `remote` into a scratch workspace, replaces `destination` with the
    files matched by `source` and, if anything changed, commits and pushes.
    The workspace is deleted whether or not the sync succeeds.

    Args:
        source (str | Sequence[str]): Glob or globs to read, relative to `cwd`.
            Entries starting with `!` exclude matches.
        destination (str): Relative path inside the repository; '' is the root.
        remote (str): Any repository URL or path accepted by `git clone`.
        options (SyncOptions | None, optional): Commit message, branch, timeout
            and retry settings. Defaults to `SyncOptions()`.
        cwd (Path | None, optional): Directory sources are resolved against.
            Defaults to the current working directory.
        workspace_base (Path | None, optional): Parent directory for the scratch
            clone. Defaults to the system temp directory.

    Returns:
        SyncResult: Whether a commit was pushed and which files were copied.

    Raises:
        ValidationError: If the arguments are invalid (nothing is touched).
        DestinationError: If a committed symlink redirects the destination
            outside the clone.
        GitCommandError: If a git step fails or times out.
        OSError: If deleting or copying files fails.
    """
    validate_request(source, destination, remote)

    options = options or SyncOptions()
    commit_message = options.commit_message or DEFAULT_COMMIT_MESSAGE
    branch = options.branch or DEFAULT_BRANCH
    cwd = Path(cwd) if cwd else Path.cwd()

    with workspace(workspace_base) as ws:
        to = ws.resolve(destination)

        logger.info(f"Cloning {remote} ({branch}) into {ws.root}")
        repo = GitRepo.clone(
            remote,
            ws.root,
            branch=branch,
            depth=options.depth,
            timeout=options.timeout,
        )

        reset_destination(ws, to)
        copied = files.copy(source, to, cwd)
        logger.info(f"Copied {len(copied)} file(s) into {to}")

        if repo.is_clean():
            logger.info("Nothing to commit, working tree clean")
            return SyncResult(committed=False, files=copied)

        repo.checkout(branch)
        repo.add_all()
        repo.commit(commit_message)
        push_with_retry(repo, options, branch)
        logger.info(f"Pushed '{commit_message}' to {remote} ({branch})")

    return SyncResult(committed=True, files=copied)
