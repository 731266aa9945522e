from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from .config import (
    ENV_ASSETS_DIR,
    ENV_PROJECT_DIR,
    ENV_SKIP_HASHING,
    AssetOptions,
    CacheBustOptions,
    load_config_file,
)
from .digest import HashedName, hashed_file_name
from .errors import ConfigError, DepfileNeedsOutDir, ResolutionError
from .rewrite import expand_file, lookup_table, rewrite, write_lookup_table

log = logging.getLogger("cachebust")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

PRINT_CHOICES = ("hash", "file-name", "file-path")


def _log_handler() -> logging.Handler:
    h = logging.StreamHandler(sys.stderr)
    h.setFormatter(logging.Formatter("[cachebust/%(levelname)s] %(message)s"))
    return h


def _config(args: argparse.Namespace) -> Dict[str, Any]:
    if args.config is None:
        return {}
    return load_config_file(Path(args.config))


def _bust_options(args: argparse.Namespace, cfg: Dict[str, Any]) -> CacheBustOptions:
    # flags > environment > config file
    opts = CacheBustOptions.from_env()
    if args.source is not None:
        opts.in_dir = Path(args.source)
    elif opts.in_dir is None and "source" in cfg:
        opts.in_dir = cfg["source"]

    if args.out is not None:
        opts.out_dir = Path(args.out)
        opts.in_place = False
    else:
        opts.out_dir = cfg.get("out")
        opts.in_place = opts.out_dir is None or bool(cfg.get("in_place", False))

    opts.enable_logging = bool(cfg.get("logging", True))
    return opts


def _asset_options(args: argparse.Namespace, cfg: Dict[str, Any]) -> AssetOptions:
    project = Path(args.project_dir) if args.project_dir else None
    if project is None and not os.environ.get(ENV_PROJECT_DIR):
        project = Path.cwd()

    assets_dir = args.assets_dir
    if assets_dir is None and not os.environ.get(ENV_ASSETS_DIR) and "assets_dir" in cfg:
        assets_dir = str(cfg["assets_dir"])

    skip: bool | None = True if args.skip_hashing else None
    if skip is None and ENV_SKIP_HASHING not in os.environ and "skip_hashing" in cfg:
        skip = bool(cfg["skip_hashing"])

    return AssetOptions.from_env(project, assets_dir=assets_dir, skip_hashing=skip)


def cmd_dir(args: argparse.Namespace) -> int:
    opts = _bust_options(args, _config(args))
    if args.depfile:
        opts.is_build_script = True
    cb = opts.validate()
    if args.depfile and cb.out_dir is None:
        raise DepfileNeedsOutDir()

    written = cb.hash_dir()

    if args.depfile:
        cb.deps.write(Path(args.depfile), cb.out_dir.as_posix())

    log.info("All done. (%d file(s))", len(written))
    return EXIT_OK


def cmd_file(args: argparse.Namespace) -> int:
    opts = _bust_options(args, _config(args))
    if args.print is not None:
        opts.enable_logging = False
    cb = opts.validate()

    path = cb.hash_file(Path(args.file))

    if args.print == "file-name":
        print(path.name)
    elif args.print == "file-path":
        print(path.resolve())
    elif args.print == "hash":
        parsed = HashedName.parse(path.name)
        if parsed is None:
            print(f"[cachebust/error] no hash in file name: {path.name}", file=sys.stderr)
            return EXIT_FAILURE
        print(parsed.digest)
    else:
        log.info("All done.")
    return EXIT_OK


def cmd_name(args: argparse.Namespace) -> int:
    p = Path(args.path)
    if not p.is_file():
        print(f"[cachebust/error] no such file: {p}", file=sys.stderr)
        return EXIT_FAILURE
    print(hashed_file_name(p))
    return EXIT_OK


def cmd_asset(args: argparse.Namespace) -> int:
    options = _asset_options(args, _config(args))
    for logical in args.logical_path:
        print(rewrite(logical, options))
    return EXIT_OK


def _relative_to_root(src: Path, root: Path) -> Path:
    try:
        return src.resolve().relative_to(root.resolve())
    except ValueError:
        return Path(src.name)


def cmd_expand(args: argparse.Namespace) -> int:
    options = _asset_options(args, _config(args))
    out_dir = Path(args.out_dir)
    root = Path(args.root) if args.root else Path.cwd()

    total = 0
    for s in args.sources:
        src = Path(s)
        dst = out_dir / _relative_to_root(src, root)
        n = expand_file(src, dst, options)
        log.info("expanded %d asset reference(s): %s -> %s", n, src, dst)
        total += n

    log.info("All done. (%d reference(s))", total)
    return EXIT_OK


def cmd_lookup(args: argparse.Namespace) -> int:
    options = _asset_options(args, _config(args))
    table = lookup_table(args.logical_path, options)
    p = write_lookup_table(Path(args.out), table)
    log.info("wrote lookup table with %d entries: %s", len(table), p)
    return EXIT_OK


def _add_asset_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--project-dir", help="Project root (default: $CACHE_BUST_PROJECT_DIR or cwd).")
    p.add_argument("--assets-dir", help="Asset root relative to the project (default: assets).")
    p.add_argument(
        "--skip-hashing",
        action="store_true",
        help="Check assets exist but keep their original names.",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cachebust", description="Add content hashes to asset file names.")
    p.add_argument("--config", help="JSON config file (validated against the bundled schema).")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_dir = sub.add_parser("dir", help="Hash every file in a directory.")
    p_dir.add_argument("source", nargs="?", help="Directory containing the files to hash.")
    p_dir.add_argument("-o", "--out", help="Directory for hashed copies; omit to rename in place.")
    p_dir.add_argument("--depfile", help="Write a Make-style depfile listing every examined path.")
    p_dir.set_defaults(fn=cmd_dir)

    p_file = sub.add_parser("file", help="Hash a single file.")
    p_file.add_argument("source", nargs="?", help="Directory relative file paths are resolved against.")
    p_file.add_argument("file", help="File to hash, relative to SOURCE or absolute.")
    p_file.add_argument("-o", "--out", help="Directory for the hashed copy; omit to rename in place.")
    p_file.add_argument(
        "-p",
        "--print",
        choices=PRINT_CHOICES,
        help="Print only the hash, the hashed file name, or its full path.",
    )
    p_file.set_defaults(fn=cmd_file)

    p_name = sub.add_parser("name", help="Print the hashed name of a file without touching it.")
    p_name.add_argument("path")
    p_name.set_defaults(fn=cmd_name)

    p_asset = sub.add_parser("asset", help="Rewrite logical asset paths to their hashed form.")
    p_asset.add_argument("logical_path", nargs="+")
    _add_asset_args(p_asset)
    p_asset.set_defaults(fn=cmd_asset)

    p_exp = sub.add_parser("expand", help='Replace asset("...") placeholders in source files.')
    p_exp.add_argument("sources", nargs="+")
    p_exp.add_argument("--out-dir", required=True, help="Directory receiving expanded sources.")
    p_exp.add_argument("--root", help="Source root whose layout is kept under --out-dir (default: cwd).")
    _add_asset_args(p_exp)
    p_exp.set_defaults(fn=cmd_expand)

    p_lk = sub.add_parser("lookup", help="Write a JSON table of logical -> hashed asset paths.")
    p_lk.add_argument("logical_path", nargs="+")
    p_lk.add_argument("--out", required=True, help="Output JSON file.")
    _add_asset_args(p_lk)
    p_lk.set_defaults(fn=cmd_lookup)

    return p


def main(argv: List[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    handler = _log_handler()
    level = log.level
    log.addHandler(handler)
    log.setLevel(logging.WARNING if args.quiet else logging.INFO)

    try:
        return args.fn(args)
    except ConfigError as e:
        print(f"[cachebust/error] {e}", file=sys.stderr)
        return EXIT_CONFIG
    except (ResolutionError, OSError) as e:
        print(f"[cachebust/error] {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        log.removeHandler(handler)
        log.setLevel(level)


if __name__ == "__main__":
    raise SystemExit(main())
