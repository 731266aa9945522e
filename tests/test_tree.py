from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from cachebust.tree import iter_files, replicate

from conftest import EMPTY, HELLO, HI, SOME_TEXT, files_under

EXPECTED = {
    f"hello-{HELLO}.txt",
    f"greetings/hi-{HI}.txt",
    f"empty-{EMPTY}",
    f"texts/some_text-{SOME_TEXT}",
}


def test_copy_mirrors_tree(assets: Path, tmp_path: Path) -> None:
    out = tmp_path / "hashed"
    before = files_under(assets)

    written = replicate(assets, out)

    assert files_under(out) == EXPECTED
    assert len(written) == len(EXPECTED)
    assert (out / "greetings" / f"hi-{HI}.txt").read_bytes() == b"Hi!\n"
    # source untouched
    assert files_under(assets) == before


def test_copy_clears_existing_out_dir(assets: Path, tmp_path: Path) -> None:
    out = tmp_path / "hashed"
    (out / "old").mkdir(parents=True)
    (out / "file_to_delete").write_bytes(b"x")
    (out / "old" / "stale.css").write_bytes(b"x")

    replicate(assets, out)

    assert not (out / "file_to_delete").exists()
    assert not (out / "old").exists()
    assert files_under(out) == EXPECTED


def test_rerun_drops_deleted_sources(assets: Path, tmp_path: Path) -> None:
    out = tmp_path / "hashed"
    replicate(assets, out)
    (assets / "greetings" / "hi.txt").unlink()

    replicate(assets, out)

    assert files_under(out) == EXPECTED - {f"greetings/hi-{HI}.txt"}


def test_rerun_picks_up_changed_content(assets: Path, tmp_path: Path) -> None:
    out = tmp_path / "hashed"
    replicate(assets, out)
    (assets / "texts" / "some_text").write_bytes(b"")

    replicate(assets, out)

    assert f"texts/some_text-{SOME_TEXT}" not in files_under(out)
    assert f"texts/some_text-{EMPTY}" in files_under(out)


def test_in_place(assets: Path) -> None:
    written = replicate(assets, None)

    assert files_under(assets) == EXPECTED
    assert (assets / f"empty-{EMPTY}").read_bytes() == b""
    assert (assets / "texts" / f"some_text-{SOME_TEXT}").read_bytes() == b"Some text"
    assert set(written) == {assets / p for p in EXPECTED}


def test_in_place_and_copy_agree(tmp_path: Path) -> None:
    from conftest import make_assets

    a = make_assets(tmp_path / "a")
    b = make_assets(tmp_path / "b")
    out = tmp_path / "out"

    replicate(a, None)
    replicate(b, out)

    assert files_under(a) == files_under(out)
    for rel in files_under(a):
        assert (a / rel).read_bytes() == (out / rel).read_bytes()


def test_out_dir_inside_source_is_not_hashed(assets: Path) -> None:
    out = assets / "dist"
    replicate(assets, out)
    replicate(assets, out)

    assert files_under(out) == EXPECTED


@pytest.mark.skipif(not hasattr(os, "symlink") or os.name == "nt", reason="needs POSIX symlinks")
def test_symlinks_are_skipped(assets: Path, tmp_path: Path) -> None:
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    (elsewhere / "outside.txt").write_bytes(b"outside")
    (assets / "link.txt").symlink_to(assets / "hello.txt")
    (assets / "linked_dir").symlink_to(elsewhere, target_is_directory=True)

    out = tmp_path / "hashed"
    replicate(assets, out)

    assert files_under(out) == EXPECTED


def test_iter_files_visits_each_file_once(assets: Path) -> None:
    found = [p.relative_to(assets).as_posix() for p in iter_files(assets)]
    assert sorted(found) == sorted(set(found))
    assert set(found) == {"hello.txt", "greetings/hi.txt", "empty", "texts/some_text"}


def test_dependencies_are_reported(assets: Path, tmp_path: Path) -> None:
    seen: list[Path] = []
    replicate(assets, tmp_path / "hashed", on_dependency=seen.append)

    assert seen[0] == assets
    assert set(seen[1:]) == {
        assets / "hello.txt",
        assets / "greetings" / "hi.txt",
        assets / "empty",
        assets / "texts" / "some_text",
    }


def test_logging(assets: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="cachebust")

    replicate(assets, tmp_path / "quiet")
    assert not caplog.records

    replicate(assets, tmp_path / "loud", log=True)
    msgs = [r.getMessage() for r in caplog.records]
    assert len(msgs) == 4
    assert all(m.startswith("copying ") for m in msgs)

    caplog.clear()
    replicate(assets, None, log=True)
    assert all(r.getMessage().startswith("moving ") for r in caplog.records)


def test_missing_source_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        replicate(tmp_path / "missing", tmp_path / "out")


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
@pytest.mark.parametrize("in_place", [False, True])
def test_first_error_aborts_and_keeps_earlier_work(tmp_path: Path, in_place: bool) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.txt").write_bytes(b"Hello, world!\n")
    locked = src / "b.txt"
    locked.write_bytes(b"Hi!\n")
    (src / "c.txt").write_bytes(b"")
    locked.chmod(0)
    out = None if in_place else tmp_path / "out"

    try:
        with pytest.raises(PermissionError):
            replicate(src, out)
    finally:
        locked.chmod(0o644)

    done = (src if out is None else out) / f"a-{HELLO}.txt"
    assert done.read_bytes() == b"Hello, world!\n"
    # nothing after the failing file was touched
    if out is None:
        assert (src / "c.txt").exists()
        assert (src / "b.txt").exists()
    else:
        assert files_under(out) == {f"a-{HELLO}.txt"}
