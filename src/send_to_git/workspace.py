import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from . import files
from .constants import APP_NAME, WORKSPACE_BASE

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class Workspace:
    """A scratch directory owned by a single sync.

    Attributes:
        root (Path): Absolute path of the directory the remote is cloned into.
    """

    root: Path

    @classmethod
    def allocate(cls, base: Path = WORKSPACE_BASE) -> "Workspace":
        """Derives a fresh, collision-free workspace path under `base`.

        The directory itself is not created; `git clone` does that.
        """
        return cls(Path(os.path.abspath(base)) / uuid.uuid4().hex)

    def resolve(self, destination: str) -> Path:
        """Resolves a relative destination against the workspace root."""
        return Path(os.path.normpath(self.root / destination))

    def is_root(self, path: Path) -> bool:
        """Whether `path` designates the repository root itself."""
        return Path(os.path.normpath(path)) == self.root


@contextmanager
def workspace(base: Path | None = None) -> Iterator[Workspace]:
    """Context manager providing a scratch workspace that is always deleted.

    Any leftover directory at the allocated path is removed before yielding.
    Removal on exit runs whether the body succeeded or raised; a failure to
    remove is logged rather than raised so it never replaces the original error.

    Args:
        base (Path | None): Parent directory for the workspace. Defaults to
            `send-to-git` under the system temp directory.

    Yields:
        Workspace: The allocated workspace.
    """
    ws = Workspace.allocate(base or WORKSPACE_BASE)
    files.remove(ws.root)
    ws.root.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Workspace allocated at {ws.root}")
    try:
        yield ws
    finally:
        try:
            files.remove(ws.root)
            logger.debug(f"Workspace removed: {ws.root}")
        except OSError as e:
            logger.warning(f"Could not remove workspace {ws.root}: {e}")
