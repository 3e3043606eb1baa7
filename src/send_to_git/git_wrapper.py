import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME, DEFAULT_CLONE_DEPTH, GIT_DIR
from .errors import GitCommandError, GitTimeoutError

logger = logging.getLogger(APP_NAME)


def run_git(
    args: list[str],
    cwd: Path | None = None,
    timeout: float | None = None,
) -> str:
    """Executes a git command and returns its stripped stdout.

    Args:
        args (list[str]): Arguments passed to the git executable.
        cwd (Path | None, optional): Working directory of the process.
                                     Defaults to the current directory.
        timeout (float | None, optional): Seconds before the process is killed.
                                          Defaults to None (wait forever).

    Returns:
        str: The stripped stdout of the command.

    Raises:
        GitCommandError: If the git command returns a non-zero exit code.
        GitTimeoutError: If the command does not finish within `timeout`.
    """
    logger.debug(f"git {' '.join(args)} (cwd={cwd})")
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr.decode() if isinstance(e.stderr, bytes) else e.stderr
        raise GitTimeoutError(args, timeout or 0, stderr or "") from e
    except subprocess.CalledProcessError as e:
        raise GitCommandError(args, e.returncode, e.stderr or e.stdout or "") from e
    return res.stdout.strip()


class GitRepo:
    """A wrapper around the Git command-line interface for a scratch clone.

    Every method maps to a single git invocation run inside the repository
    root, sharing one per-process timeout.

    Attributes:
        path (Path): The file system path to the repository root.
        timeout (float | None): Seconds allowed per git invocation.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.
            timeout (float | None): Seconds allowed per git invocation.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        self.timeout = timeout
        if not (self.path / GIT_DIR).exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def clone(
        cls,
        remote: str,
        path: Path,
        branch: str | None = None,
        depth: int = DEFAULT_CLONE_DEPTH,
        timeout: float | None = None,
    ) -> "GitRepo":
        """Performs a shallow clone of `remote` into `path`.

        Args:
            remote (str): Any URL or path accepted by `git clone`.
            path (Path): Target directory. Must be absent or empty.
            branch (str | None, optional): Branch to check out. Defaults to the
                                           remote HEAD.
            depth (int, optional): History depth. Defaults to 1.
            timeout (float | None, optional): Seconds allowed per git invocation.

        Returns:
            GitRepo: A wrapper around the new clone.
        """
        cmd = ["clone", "--depth", str(depth)]
        if branch:
            cmd.extend(["--branch", branch])
        cmd.extend([remote, str(path)])
        run_git(cmd, timeout=timeout)
        return cls(path, timeout=timeout)

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context."""
        return run_git(args, cwd=self.path, timeout=self.timeout)

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    def is_clean(self) -> bool:
        """Whether the working tree has nothing to commit."""
        return not self.status_porcelain()

    def checkout(self, branch: str) -> None:
        """Checks out a branch.

        Args:
            branch (str): The target branch name.
        """
        self._run(["checkout", branch])

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        from the repository root.
        """
        self._run(["add", "-A", "."])

    def commit(self, message: str) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
        """
        self._run(["commit", "-m", message])

    def push(self, remote: str, branch: str) -> None:
        """Pushes a branch to a remote.

        Args:
            remote (str): The remote name (e.g., 'origin').
            branch (str): The branch to push.
        """
        self._run(["push", remote, branch])

    def pull_rebase(self, remote: str, branch: str) -> None:
        """Rebases local commits onto the remote's current branch tip.

        Args:
            remote (str): The remote name (e.g., 'origin').
            branch (str): The branch to pull.
        """
        self._run(["pull", "--rebase", remote, branch])
