"""send-to-git: Keep a folder of a git repository in sync with local files.

The package clones a remote into a scratch workspace, replaces a destination
folder with freshly copied files, and commits and pushes only when git sees
a change.
"""

from .config import SyncOptions
from .errors import (
    DestinationError,
    GitCommandError,
    GitTimeoutError,
    SendToGitError,
    ValidationError,
)
from .ops import SyncResult, send_to_git

__all__ = [
    "DestinationError",
    "GitCommandError",
    "GitTimeoutError",
    "SendToGitError",
    "SyncOptions",
    "SyncResult",
    "ValidationError",
    "send_to_git",
]
