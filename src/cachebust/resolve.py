from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable

from .digest import hashed_file_name

log_ = logging.getLogger(__name__)


def destination_dir(out_dir: Path, file: Path) -> Path:
    """Directory under `out_dir` that receives the hashed copy of `file`.

    Relative files keep their subdirectories; absolute files land at the top
    level of `out_dir`.
    """
    if file.is_absolute():
        return out_dir
    return out_dir / file.parent


def resolve_file(
    in_dir: Path,
    out_dir: Path | None,
    file: Path,
    *,
    log: bool = False,
    on_dependency: Callable[[Path], None] | None = None,
) -> Path:
    """Hash a single file and return where the hashed file ended up.

    Unlike `tree.replicate`, copying into `out_dir` is additive: nothing
    already there is removed.
    """
    file = Path(file)
    # Joining an absolute path onto in_dir yields the absolute path unchanged.
    src = Path(in_dir) / file

    if on_dependency is not None:
        on_dependency(src)

    name = hashed_file_name(src)

    if out_dir is not None:
        dest_dir = destination_dir(Path(out_dir), file)
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / name
        if log:
            log_.info("copying %s -> %s", src, dest)
        shutil.copyfile(src, dest)
        return dest

    dest = src.with_name(name)
    if log:
        log_.info("moving %s -> %s", src, dest)
    src.replace(dest)
    return dest
