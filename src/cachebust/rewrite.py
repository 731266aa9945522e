"""Asset reference rewriting.

`rewrite` maps a logical asset path such as "images/circle.png" to the name
the build-time operations give the same file on disk:

    images/circle.png  -> images/circle-f04a...4878d.png
    /images/circle.png -> /images/circle-f04a...4878d.png

The code generation pass finds `asset("...")` placeholders in source text and
replaces each one with a plain string literal of the rewritten path. The same
rewrites can also be emitted as a JSON lookup table.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List

from .config import AssetOptions
from .digest import hashed_file_name
from .errors import ResolutionError

ASSET_CALL = re.compile(
    r"\basset\(\s*(?P<quote>[\"'])(?P<path>(?:(?!(?P=quote)).)*)(?P=quote)\s*\)"
)


@dataclass(frozen=True)
class AssetRef:
    logical_path: str
    line: int
    column: int


def _split(logical_path: str) -> tuple[bool, PurePosixPath]:
    is_absolute = logical_path.startswith("/")
    rest = logical_path[1:] if is_absolute else logical_path

    if not rest:
        raise ResolutionError(logical_path, "empty asset path")
    if "\\" in rest or "\0" in rest:
        raise ResolutionError(logical_path, "not a valid asset path")

    local = PurePosixPath(rest)
    if local.is_absolute() or ".." in local.parts or not local.parts:
        raise ResolutionError(logical_path, "path must stay inside the assets directory")
    return is_absolute, local


def rewrite(logical_path: str, options: AssetOptions) -> str:
    """Return `logical_path` with its file name replaced by the hashed name.

    The file is hashed even when options.skip_hashing is set, so a missing
    asset fails either way.
    """
    is_absolute, local = _split(logical_path)
    path = Path(options.assets_dir).joinpath(*local.parts)

    try:
        name = hashed_file_name(path)
    except OSError as e:
        raise ResolutionError(logical_path, e.strerror or str(e), path) from e

    if options.skip_hashing:
        name = local.name

    out = (local.parent / name).as_posix()
    return f"/{out}" if is_absolute else out


def _position(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def find_asset_refs(text: str) -> List[AssetRef]:
    refs: List[AssetRef] = []
    for m in ASSET_CALL.finditer(text):
        line, column = _position(text, m.start())
        refs.append(AssetRef(logical_path=m["path"], line=line, column=column))
    return refs


def expand_source(text: str, options: AssetOptions, *, origin: str = "<string>") -> str:
    """Replace every asset("...") placeholder with its rewritten string literal."""

    def _sub(m: re.Match[str]) -> str:
        try:
            rewritten = rewrite(m["path"], options)
        except ResolutionError as e:
            line, column = _position(text, m.start())
            raise ResolutionError(
                e.logical_path, f"{origin}:{line}:{column}: {e.reason}", e.path
            ) from e
        return f"{m['quote']}{rewritten}{m['quote']}"

    return ASSET_CALL.sub(_sub, text)


def expand_file(src: Path, dst: Path, options: AssetOptions) -> int:
    """Expand placeholders in `src` into `dst`; returns the number rewritten.

    `dst` is only written once every reference has resolved.
    """
    src = Path(src)
    try:
        text = src.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ResolutionError(src.as_posix(), f"source is not valid UTF-8: {e.reason}", src) from e
    expanded = expand_source(text, options, origin=str(src))

    dst = Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    dst.write_text(expanded, encoding="utf-8")
    return len(ASSET_CALL.findall(text))


def lookup_table(logical_paths: Iterable[str], options: AssetOptions) -> Dict[str, str]:
    return {p: rewrite(p, options) for p in logical_paths}


def canonical_json_bytes(obj: object) -> bytes:
    s = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def write_lookup_table(path: Path, table: Dict[str, str]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(canonical_json_bytes(table) + b"\n")
    return p
