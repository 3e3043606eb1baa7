"""Filesystem helpers: recursive delete and glob-based copy.

Globs follow the semantics of `glob.glob(..., recursive=True)`: `**` spans
directories and hidden entries only match when a pattern names them. The
leading non-magic part of each pattern is its *base*; matched files are
copied to the destination at their path relative to that base, so
`site/public/**/*.html` copies `site/public/a/index.html` to `<dest>/a/index.html`.
"""

import glob
import logging
import os
import re
import shutil
import stat
import sys
from collections.abc import Callable, Iterable
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)

_MAGIC = re.compile(r"[*?[]")
EXCLUDE_PREFIX = "!"


def has_magic(part: str) -> bool:
    """Whether a path component contains glob wildcards."""
    return _MAGIC.search(part) is not None


def _force_writable(
    func: Callable[[str], object], path: str, _exc: object
) -> None:
    # Git marks object files read-only; clear the flag and retry once.
    os.chmod(path, stat.S_IWRITE)
    func(path)


def remove(path: Path, keep: Iterable[str] = ()) -> None:
    """Deletes a file or directory tree, ignoring paths that do not exist.

    Args:
        path (Path): The file or directory to delete.
        keep (Iterable[str], optional): Names of direct children of `path` that
            survive. When given, `path` itself is kept and only its other
            entries are deleted.
    """
    if not path.exists() and not path.is_symlink():
        return

    if path.is_symlink() or not path.is_dir():
        path.unlink()
        return

    keep = set(keep)
    if not keep:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=_force_writable)
        else:
            shutil.rmtree(path, onerror=_force_writable)
        return

    for child in path.iterdir():
        if child.name in keep:
            continue
        remove(child)


def split_glob(pattern: str, cwd: Path) -> tuple[Path, str]:
    """Splits a pattern into its base directory and an absolute glob.

    A pattern without wildcards that names a directory expands to every file
    below it.

    Args:
        pattern (str): The glob, absolute or relative to `cwd`.
        cwd (Path): Directory that relative patterns are resolved against.

    Returns:
        tuple[Path, str]: The base directory and the absolute pattern.
    """
    absolute = os.path.normpath(os.path.join(cwd, os.path.expanduser(pattern)))
    parts = Path(absolute).parts

    for i, part in enumerate(parts):
        if has_magic(part):
            return Path(*parts[:i]), absolute

    path = Path(absolute)
    if path.is_dir():
        return path, os.path.join(glob.escape(absolute), "**", "*")
    return path.parent, glob.escape(absolute)


def expand(sources: str | Iterable[str], cwd: Path) -> list[tuple[Path, Path]]:
    """Resolves source globs into `(file, relative destination)` pairs.

    Patterns starting with `!` exclude their matches from the result. Only
    regular files are returned; directories are recreated implicitly.

    Args:
        sources (str | Iterable[str]): One glob or a sequence of globs.
        cwd (Path): Directory that relative patterns are resolved against.

    Returns:
        list[tuple[Path, Path]]: Matched files in order of first match.
    """
    if isinstance(sources, str):
        sources = [sources]

    includes: dict[Path, Path] = {}
    excludes: set[Path] = set()

    for source in sources:
        if source.startswith(EXCLUDE_PREFIX):
            _, pattern = split_glob(source[len(EXCLUDE_PREFIX) :], cwd)
            excludes.update(Path(m) for m in glob.glob(pattern, recursive=True))
            continue

        base, pattern = split_glob(source, cwd)
        for match in sorted(glob.glob(pattern, recursive=True)):
            path = Path(match)
            if path.is_file() and path not in includes:
                includes[path] = path.relative_to(base)

    return [(src, rel) for src, rel in includes.items() if src not in excludes]


def copy(sources: str | Iterable[str], dest: Path, cwd: Path) -> list[Path]:
    """Copies every file matched by `sources` into `dest`.

    Args:
        sources (str | Iterable[str]): One glob or a sequence of globs.
        dest (Path): Destination directory, created if missing.
        cwd (Path): Directory that relative patterns are resolved against.

    Returns:
        list[Path]: The written files, relative to `dest`.
    """
    written = []
    dest.mkdir(parents=True, exist_ok=True)
    for src, rel in expand(sources, cwd):
        target = dest / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, target)
        written.append(rel)

    if not written:
        logger.warning(f"No files matched {sources!r}")
    return written
