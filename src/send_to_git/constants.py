"""Global constants and default values for send-to-git.

This module defines the application identifier, the defaults applied when a
caller omits sync options, and the names of the files searched for
configuration.
"""

import tempfile
from pathlib import Path

# --- Identity ---
APP_NAME = "send-to-git"
"""str: The human-readable application name (also the logger name)."""

# --- Sync Defaults ---
DEFAULT_COMMIT_MESSAGE = "Files added"
"""str: Commit message used when the caller does not supply one."""

DEFAULT_BRANCH = "master"
"""str: Branch that receives the commit when the caller does not supply one."""

DEFAULT_REMOTE_NAME = "origin"
"""str: The remote name git assigns to the cloned repository."""

DEFAULT_CLONE_DEPTH = 1
"""int: History depth of the scratch clone."""

GIT_DIR = ".git"
"""str: Git metadata directory preserved during a repository root sync."""

# --- Paths ---
WORKSPACE_BASE: Path = Path(tempfile.gettempdir()) / APP_NAME
"""Path: Parent directory under which every call allocates its scratch clone."""

# --- Configuration Paths ---
CONFIG_FILE_NAME = "send-to-git.toml"
"""str: Dedicated configuration file looked up in the working directory."""

PYPROJECT_SECTION = "tool.send-to-git"
"""str: Section of pyproject.toml used when no dedicated file exists."""
