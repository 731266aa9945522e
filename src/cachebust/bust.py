from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .depfile import DependencyRecorder
from .resolve import resolve_file
from .tree import replicate


@dataclass(frozen=True)
class CacheBust:
    """Validated options bound to the two build-time operations.

    Obtain one through `CacheBustOptions.validate()`.
    """

    in_dir: Path
    out_dir: Path | None
    is_build_script: bool = False
    enable_logging: bool = True
    deps: DependencyRecorder = field(default_factory=DependencyRecorder, compare=False)

    @property
    def in_place(self) -> bool:
        return self.out_dir is None

    def hash_dir(self) -> List[Path]:
        """Hash all files under in_dir, renaming them or rebuilding out_dir."""
        return replicate(
            self.in_dir,
            self.out_dir,
            log=self.enable_logging,
            on_dependency=self.deps.record if self.is_build_script else None,
        )

    def hash_file(self, file: Path) -> Path:
        """Hash one file given relative to in_dir or as an absolute path."""
        return resolve_file(
            self.in_dir,
            self.out_dir,
            Path(file),
            log=self.enable_logging,
            on_dependency=self.deps.record if self.is_build_script else None,
        )
