from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalkEntry:
    """
    One filesystem entry produced by `walk`.

    Either `error` is set (the entry could not be read or typed), or
    `is_file`/`is_dir` describe it. Only regular files are scan candidates.
    """

    path: Path
    is_file: bool = False
    is_dir: bool = False
    error: OSError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def walk(root: str | os.PathLike[str], *, follow_symlinks: bool = False) -> Iterator[WalkEntry]:
    """
    Lazily yield every entry under `root`, depth first.

    - The root itself is yielded first.
    - Children are visited in name order, so output is stable between runs.
    - Errors (missing root, permission denied, broken entries) are yielded as
      `WalkEntry(error=...)` and the walk carries on with the next entry.
    - Symlinks are neither followed nor treated as files unless
      `follow_symlinks` is set.
    """
    root_path = Path(root)
    # The root is always resolved through symlinks; the user named it explicitly.
    try:
        st = root_path.stat()
    except OSError as e:
        yield WalkEntry(path=root_path, error=e)
        return

    is_dir = stat.S_ISDIR(st.st_mode)
    is_file = stat.S_ISREG(st.st_mode)
    yield WalkEntry(path=root_path, is_file=is_file, is_dir=is_dir)
    if is_dir:
        yield from _walk_dir(root_path, follow_symlinks=follow_symlinks, seen=set())


def _walk_dir(
    directory: Path, *, follow_symlinks: bool, seen: set[tuple[int, int]]
) -> Iterator[WalkEntry]:
    if follow_symlinks:
        # Guard against symlink loops by remembering visited (dev, inode) pairs.
        try:
            st = directory.stat()
        except OSError as e:
            yield WalkEntry(path=directory, error=e)
            return
        key = (st.st_dev, st.st_ino)
        if key in seen:
            logger.debug("Skipping already visited directory %s", directory)
            return
        seen.add(key)

    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        yield WalkEntry(path=directory, error=e)
        return

    for entry in entries:
        path = Path(entry.path)
        try:
            is_dir = entry.is_dir(follow_symlinks=follow_symlinks)
            is_file = not is_dir and entry.is_file(follow_symlinks=follow_symlinks)
        except OSError as e:
            yield WalkEntry(path=path, error=e)
            continue

        # scandir reports a dangling link as neither file nor dir; surface it.
        if follow_symlinks and not (is_dir or is_file) and entry.is_symlink():
            try:
                os.stat(entry.path)
            except OSError as e:
                yield WalkEntry(path=path, error=e)
                continue

        yield WalkEntry(path=path, is_file=is_file, is_dir=is_dir)
        if is_dir:
            yield from _walk_dir(path, follow_symlinks=follow_symlinks, seen=seen)
