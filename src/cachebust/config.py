"""Options for the build-time operations and the asset rewriter.

Options are collected once (arguments, environment, optional JSON file),
validated, and handed to the operations explicitly. Nothing below the CLI
reads the environment on its own.

Environment:
  - CACHE_BUST_PROJECT_DIR: project root; the source directory defaults to
    <project>/assets and its presence marks a build-script context.
  - CACHE_BUST_ASSETS_DIR: asset root for the rewriter, relative to the
    project root (default: assets).
  - CACHE_BUST_SKIP_HASHING: truthy => rewriter keeps original names.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jsonschema import Draft202012Validator

from .bust import CacheBust
from .errors import (
    ConfigFileError,
    InDirNotADirectory,
    InDirNotSet,
    OutDirIsAFile,
    OutDirContainsInDir,
    OutDirNotSet,
    ProjectDirNotSet,
)

log = logging.getLogger(__name__)

ENV_PROJECT_DIR = "CACHE_BUST_PROJECT_DIR"
ENV_ASSETS_DIR = "CACHE_BUST_ASSETS_DIR"
ENV_SKIP_HASHING = "CACHE_BUST_SKIP_HASHING"

DEFAULT_ASSETS_DIR = "assets"

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config-v1.schema.json"


def _truthy(v: str) -> bool:
    s = v.strip().lower()
    return s in ("1", "true", "yes", "y", "on")


def _contains(parent: Path, child: Path) -> bool:
    p = parent.resolve()
    c = child.resolve()
    return c == p or p in c.parents


def _project_dir(environ: Mapping[str, str]) -> Path | None:
    v = environ.get(ENV_PROJECT_DIR)
    if v is None or not v.strip():
        return None
    return Path(v)


@dataclass
class CacheBustOptions:
    in_dir: Path | None = None
    out_dir: Path | None = None
    in_place: bool = False
    # Record rebuild dependencies for the calling build system.
    is_build_script: bool = False
    enable_logging: bool = True

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "CacheBustOptions":
        env = os.environ if environ is None else environ
        project = _project_dir(env)
        return CacheBustOptions(
            in_dir=project / DEFAULT_ASSETS_DIR if project is not None else None,
            is_build_script=project is not None,
        )

    def validate(self) -> "CacheBust":
        """Check the options and freeze them into a runnable CacheBust.

        Raises a ConfigError subclass; never touches the filesystem beyond
        stat calls.
        """
        if self.in_dir is None:
            raise InDirNotSet()

        in_dir = Path(self.in_dir)
        if not in_dir.is_dir():
            raise InDirNotADirectory(in_dir)

        out_dir: Path | None
        if self.in_place:
            if self.out_dir is not None:
                log.warning("in_place is set to true, ignoring out_dir")
            out_dir = None
        elif self.out_dir is not None:
            out_dir = Path(self.out_dir)
        else:
            raise OutDirNotSet()

        if out_dir is not None and out_dir.is_file():
            raise OutDirIsAFile(out_dir)

        # Copy mode wipes out_dir first; it must not hold the source.
        if out_dir is not None and _contains(out_dir, in_dir):
            raise OutDirContainsInDir(in_dir, out_dir)

        return CacheBust(
            in_dir=in_dir,
            out_dir=out_dir,
            is_build_script=self.is_build_script,
            enable_logging=self.enable_logging,
        )


@dataclass(frozen=True)
class AssetOptions:
    assets_dir: Path
    skip_hashing: bool = False

    @staticmethod
    def from_env(
        project_dir: Path | None = None,
        environ: Mapping[str, str] | None = None,
        *,
        assets_dir: str | None = None,
        skip_hashing: bool | None = None,
    ) -> "AssetOptions":
        """Build rewriter options.

        Explicit arguments win over the environment.
        """
        env = os.environ if environ is None else environ

        root = Path(project_dir) if project_dir is not None else _project_dir(env)
        if root is None:
            raise ProjectDirNotSet(ENV_PROJECT_DIR)

        if assets_dir is None:
            assets_dir = env.get(ENV_ASSETS_DIR) or DEFAULT_ASSETS_DIR

        if skip_hashing is None:
            skip_hashing = _truthy(env.get(ENV_SKIP_HASHING, ""))

        # An absolute assets_dir replaces the project root.
        return AssetOptions(assets_dir=root / assets_dir, skip_hashing=skip_hashing)


def _load_schema() -> Dict[str, Any]:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read and validate a JSON config file.

    Relative paths inside the file are resolved against the file's directory.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigFileError(p, [f"not valid UTF-8: {e}"]) from e
    except OSError as e:
        raise ConfigFileError(p, [f"cannot read: {e.strerror or e}"]) from e

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigFileError(p, [f"not valid JSON: {e}"]) from e

    v = Draft202012Validator(_load_schema())
    errs = sorted(v.iter_errors(obj), key=lambda e: (list(map(str, e.path)), e.message))
    if errs:
        msgs: List[str] = [f"{'/'.join(map(str, e.path)) or '<root>'}: {e.message}" for e in errs[:5]]
        raise ConfigFileError(p, msgs)

    base = p.resolve().parent
    for key in ("source", "out", "assets_dir"):
        if key in obj:
            obj[key] = base / obj[key]
    return obj
