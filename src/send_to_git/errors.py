"""Exception hierarchy raised by send-to-git."""


class SendToGitError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(SendToGitError, ValueError):
    """A sync request violated a precondition before any side effect ran."""


class GitCommandError(SendToGitError, RuntimeError):
    """A git subprocess exited with a non-zero status.

    Attributes:
        command (list[str]): The git arguments (without the leading ``git``).
        returncode (int | None): The exit status, or None if it never finished.
        stderr (str): Captured standard error of the process.
    """

    def __init__(
        self, command: list[str], returncode: int | None, stderr: str = ""
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip() if stderr else ""
        super().__init__(self._describe())

    @property
    def subcommand(self) -> str:
        """str: The git subcommand that failed (e.g. 'push')."""
        return self.command[0] if self.command else ""

    def _describe(self) -> str:
        return (
            f"Git error ({self.subcommand}, exit {self.returncode}): "
            f"{self.stderr or 'no output'}"
        )


class GitTimeoutError(GitCommandError):
    """A git subprocess did not finish within the configured timeout."""

    def __init__(self, command: list[str], timeout: float, stderr: str = "") -> None:
        self.timeout = timeout
        super().__init__(command, None, stderr)

    def _describe(self) -> str:
        return f"Git timeout ({self.subcommand}): no result after {self.timeout}s"


class DestinationError(SendToGitError, ValueError):
    """The destination resolves outside the scratch clone through a symlink."""
