from __future__ import annotations

from pathlib import Path
from typing import List


class CacheBustError(Exception):
    pass


class ConfigError(CacheBustError):
    """Invalid options, detected before anything on disk is touched."""


class InDirNotSet(ConfigError):
    def __init__(self) -> None:
        super().__init__("in_dir must be set")


class InDirNotADirectory(ConfigError):
    def __init__(self, in_dir: Path) -> None:
        self.in_dir = Path(in_dir)
        super().__init__(f"{str(in_dir)!r} is not a directory")


class OutDirNotSet(ConfigError):
    def __init__(self) -> None:
        super().__init__("out_dir must be specified or in_place set to true")


class OutDirIsAFile(ConfigError):
    def __init__(self, out_dir: Path) -> None:
        self.out_dir = Path(out_dir)
        super().__init__(f"{str(out_dir)!r} is already a file")


class OutDirContainsInDir(ConfigError):
    def __init__(self, in_dir: Path, out_dir: Path) -> None:
        self.in_dir = Path(in_dir)
        self.out_dir = Path(out_dir)
        super().__init__(f"{str(out_dir)!r} contains the source directory {str(in_dir)!r}")


class DepfileNeedsOutDir(ConfigError):
    def __init__(self) -> None:
        super().__init__("a depfile needs an out_dir; in-place renames leave nothing to depend on")


class ProjectDirNotSet(ConfigError):
    def __init__(self, var: str) -> None:
        self.var = var
        super().__init__(f"project directory unknown: pass one explicitly or set {var}")


class ConfigFileError(ConfigError):
    def __init__(self, path: Path, errors: List[str]) -> None:
        self.path = Path(path)
        self.errors = list(errors)
        super().__init__(f"invalid config file {str(path)!r}: " + "; ".join(self.errors))


class ResolutionError(CacheBustError):
    """An asset reference could not be turned into a hashed path."""

    def __init__(self, logical_path: str, reason: str, path: Path | None = None) -> None:
        self.logical_path = logical_path
        self.reason = reason
        self.path = path
        msg = f"cannot resolve asset {logical_path!r}: {reason}"
        if path is not None:
            msg += f" ({path})"
        super().__init__(msg)
