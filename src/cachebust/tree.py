from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterator, List

from .digest import hashed_file_name

log_ = logging.getLogger(__name__)

OnDependency = Callable[[Path], None]


def _inside(child: Path, parent: Path) -> bool:
    try:
        child.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


def iter_files(in_dir: Path, skip: Path | None = None) -> Iterator[Path]:
    """Yield every regular file under `in_dir`.

    Symlinks are neither followed nor yielded. `skip` prunes one subtree.
    """
    skip_resolved = skip.resolve() if skip is not None else None

    def _onerror(err: OSError) -> None:
        raise err

    for dirpath, dirnames, filenames in os.walk(in_dir, onerror=_onerror, followlinks=False):
        base = Path(dirpath)
        # In-place pruning steers os.walk; sorted for reproducible logs only.
        dirnames[:] = sorted(
            d for d in dirnames if skip_resolved is None or (base / d).resolve() != skip_resolved
        )
        for name in sorted(filenames):
            p = base / name
            if p.is_symlink() or not p.is_file():
                continue
            yield p


def replicate(
    in_dir: Path,
    out_dir: Path | None = None,
    *,
    log: bool = False,
    on_dependency: OnDependency | None = None,
) -> List[Path]:
    """Hash every file under `in_dir`.

    With `out_dir`, the directory is wiped and rebuilt as a mirror of `in_dir`
    holding hashed copies; otherwise files are renamed in place. The first
    OSError aborts the run and whatever was already written stays.
    """
    in_dir = Path(in_dir)
    out_dir = Path(out_dir) if out_dir is not None else None

    if on_dependency is not None:
        on_dependency(in_dir)

    if out_dir is not None and out_dir.is_dir():
        shutil.rmtree(out_dir)

    # Never hash our own output when it lives under the source tree.
    skip = out_dir if out_dir is not None and _inside(out_dir, in_dir) else None

    written: List[Path] = []
    for src in iter_files(in_dir, skip=skip):
        if on_dependency is not None:
            on_dependency(src)

        name = hashed_file_name(src)

        if out_dir is not None:
            dest_dir = out_dir / src.relative_to(in_dir).parent
            dest_dir.mkdir(parents=True, exist_ok=True)
            dest = dest_dir / name
            if log:
                log_.info("copying %s -> %s", src, dest)
            shutil.copyfile(src, dest)
        else:
            dest = src.with_name(name)
            if log:
                log_.info("moving %s -> %s", src, dest)
            src.replace(dest)

        written.append(dest)

    return written
