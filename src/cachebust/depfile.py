"""Rebuild signals for a surrounding build system.

Paths examined by an operation are recorded and can be written out as a
Make-style depfile, which both make and ninja understand:

    hashed_assets: assets assets/hello.txt assets/greetings/hi.txt
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List


def _escape(p: str) -> str:
    return p.replace("\\", "\\\\").replace(" ", "\\ ").replace("#", "\\#").replace("$", "$$")


class DependencyRecorder:
    def __init__(self) -> None:
        # dict keeps first-seen order and dedupes
        self._deps: Dict[str, None] = {}

    def record(self, path: Path) -> None:
        self._deps.setdefault(Path(path).as_posix(), None)

    def extend(self, paths: Iterable[Path]) -> None:
        for p in paths:
            self.record(p)

    @property
    def deps(self) -> List[str]:
        return list(self._deps)

    def render(self, target: str) -> str:
        parts = [_escape(target) + ":"]
        parts.extend(_escape(d) for d in self._deps)
        return " \\\n  ".join(parts) + "\n"

    def write(self, depfile: Path, target: str) -> Path:
        p = Path(depfile)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self.render(target), encoding="utf-8")
        return p
