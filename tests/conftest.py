from __future__ import annotations

from pathlib import Path

import pytest

HELLO = "d9014c4624844aa5bac314773d6b689ad467fa4e1d1a50a1b8a99d5a95f72ff5"  # b"Hello, world!\n"
HI = "8b9040011c6f08e749933e75c4bfa98fa4af76cdea22b53f1108d023e55cfa89"  # b"Hi!\n"
EMPTY = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"  # b""
SOME_TEXT = "4c2e9e6da31a64c70623619c449a040968cdbea85945bf384fa30ed2d5d24fa3"  # b"Some text"


def make_assets(root: Path) -> Path:
    """Populate `root` with a small asset tree and return it.

    root/hello.txt, root/greetings/hi.txt, root/empty, root/texts/some_text
    """
    root.mkdir(parents=True, exist_ok=True)
    (root / "hello.txt").write_bytes(b"Hello, world!\n")
    (root / "greetings").mkdir(exist_ok=True)
    (root / "greetings" / "hi.txt").write_bytes(b"Hi!\n")
    (root / "empty").write_bytes(b"")
    (root / "texts").mkdir(exist_ok=True)
    (root / "texts" / "some_text").write_bytes(b"Some text")
    return root


def files_under(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("CACHE_BUST_PROJECT_DIR", "CACHE_BUST_ASSETS_DIR", "CACHE_BUST_SKIP_HASHING"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def assets(tmp_path: Path) -> Path:
    return make_assets(tmp_path / "assets")
