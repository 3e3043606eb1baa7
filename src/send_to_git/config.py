import logging
import re
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_BRANCH,
    DEFAULT_CLONE_DEPTH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_REMOTE_NAME,
    PYPROJECT_SECTION,
)

logger = logging.getLogger(APP_NAME)


def parse_time(value: int | float | str | None) -> float | None:
    """Converts human-readable time strings (e.g., '1hr', '30s') to seconds."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, (int, float)):
        if value <= 0:
            raise ValueError(f"Invalid time format '{value}'")
        return float(value)
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)?s?$", str(value).strip().lower()
    )
    if not match or float(match.group(1)) <= 0:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2) or "s"
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return num * multiplier[unit]


def _parse_non_negative(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Expected a non-negative integer, got '{value}'")
    return value


def _parse_positive(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Expected a positive integer, got '{value}'")
    return value


def _parse_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected a non-empty string, got '{value}'")
    return value


_PARSERS = {
    "commit_message": _parse_text,
    "branch": _parse_text,
    "remote_name": _parse_text,
    "timeout": parse_time,
    "depth": _parse_positive,
    "push_retries": _parse_non_negative,
}


@dataclass
class SyncOptions:
    """Settings that shape a single sync.

    Attributes:
        commit_message (str): Message of the commit created when files changed.
        branch (str): Branch that is cloned, committed to and pushed.
        timeout (float | None): Seconds allowed per git subprocess. None waits
            indefinitely.
        depth (int): History depth of the scratch clone.
        remote_name (str): Name of the remote pushed to.
        push_retries (int): Extra push attempts, each preceded by a
            `pull --rebase`, when the remote rejects the push.
    """

    commit_message: str = DEFAULT_COMMIT_MESSAGE
    branch: str = DEFAULT_BRANCH
    timeout: float | None = None
    depth: int = DEFAULT_CLONE_DEPTH
    remote_name: str = DEFAULT_REMOTE_NAME
    push_retries: int = 0

    @classmethod
    def load(cls, directory: Path | None = None) -> "SyncOptions":
        """Loads option defaults from the configuration files of a directory.

        Looks for `send-to-git.toml` first, then the `[tool.send-to-git]`
        section of `pyproject.toml`. Missing files yield the built-in defaults.

        Args:
            directory (Path | None): Directory to search. Defaults to the
                current working directory.

        Returns:
            SyncOptions: The merged options.
        """
        directory = directory or Path.cwd()
        instance = cls()

        local_toml = directory / CONFIG_FILE_NAME
        pyproject = directory / "pyproject.toml"

        if local_toml.exists():
            return instance.merge_file(local_toml)
        if pyproject.exists():
            return instance.merge_file(pyproject, section=PYPROJECT_SECTION)
        return instance

    def merge_file(self, path: Path, section: str | None = None) -> "SyncOptions":
        """Returns a copy of these options updated from a TOML file.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated table path (e.g., 'tool.send-to-git').

        Returns:
            SyncOptions: The updated copy, or an unchanged copy if the file is
            unreadable.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return replace(self)
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return replace(self)

        if section:
            for key in section.split("."):
                data = data.get(key, {}) if isinstance(data, dict) else None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring [{section}] in {path}: expected a table")
            return replace(self)

        if not data:
            return replace(self)
        logger.debug(f"Loaded options from {path}")
        return self.merge(data, source=str(path))

    def merge(self, updates: dict, source: str = "options") -> "SyncOptions":
        """Returns a copy with valid entries of `updates` applied.

        Unknown keys and invalid values are logged and skipped.
        """
        valid_keys = {f.name for f in fields(self)}
        invalid_keys = set(updates) - valid_keys
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in {source}: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        filtered_updates = {}
        for k, v in updates.items():
            if k not in valid_keys:
                continue
            try:
                filtered_updates[k] = _PARSERS[k](v)
            except ValueError as e:
                logger.warning(
                    f"Config error in {source}.{k}: {e}. Falling back to default."
                )

        return replace(self, **filtered_updates)
