import base64

import httpx
import pytest
import respx

from tlogtiles.fetcher import FileFetcher
from tlogtiles.layout import entries_path, tile_path
from tlogtiles.mirror_posix import PosixTarget, format_progress, main

BASE_URL = "https://log.example.com/"


def _checkpoint(size):
    return b"example.com/log\n%d\n%s\n" % (size, base64.b64encode(bytes(32)))


def test_checkpoint_round_trip(tmp_path):
    target = PosixTarget(tmp_path)
    target.write_checkpoint(_checkpoint(7))
    assert target.read_checkpoint() == _checkpoint(7)
    assert (tmp_path / "checkpoint").read_bytes() == _checkpoint(7)


def test_read_missing_checkpoint(tmp_path):
    with pytest.raises(FileNotFoundError):
        PosixTarget(tmp_path / "nothing").read_checkpoint()


def test_write_tile_readable_by_file_fetcher(tmp_path):
    target = PosixTarget(tmp_path)
    target.write_tile(0, 1234067, 8, b"tile data")
    assert (tmp_path / "tile/0/x001/x234/067.p/8").read_bytes() == b"tile data"
    assert FileFetcher(tmp_path).read_tile(0, 1234067, 8) == b"tile data"


def test_write_entry_bundle_readable_by_file_fetcher(tmp_path):
    target = PosixTarget(tmp_path)
    target.write_entry_bundle(1234067, 8, b"bundle data")
    assert (tmp_path / "tile/entries/x001/x234/067.p/8").read_bytes() == b"bundle data"
    assert FileFetcher(tmp_path).read_entry_bundle(1234067, 8) == b"bundle data"


def test_overwrite_replaces_content(tmp_path):
    target = PosixTarget(tmp_path)
    target.write_tile(2, 3, 0, b"old")
    target.write_tile(2, 3, 0, b"new")
    assert (tmp_path / tile_path(2, 3, 0)).read_bytes() == b"new"


def test_format_progress_nothing_to_do():
    assert format_progress(0, 0) == "Progress: 0 of 0 resources (100.00%)"


def test_format_progress_partial():
    assert format_progress(4, 1) == "Progress: 1 of 4 resources (25.00%)"


def test_format_progress_complete():
    assert format_progress(12, 12).endswith("(100.00%)")


def _serve(request):
    path = request.url.path.lstrip("/")
    if path == "checkpoint":
        return httpx.Response(200, content=_checkpoint(300))
    if path.startswith("tile/"):
        return httpx.Response(200, content=f"data:{path}".encode())
    return httpx.Response(404)


def test_main_mirrors_log(tmp_path):
    with respx.mock(assert_all_called=False) as router:
        router.get(url__startswith=BASE_URL).mock(side_effect=_serve)
        status = main(
            ["--storage_dir", str(tmp_path), "--source_url", BASE_URL, "--num_workers", "2"]
        )
    assert status == 0

    files = {p.relative_to(tmp_path).as_posix(): p for p in tmp_path.rglob("*") if p.is_file()}
    assert files["checkpoint"].read_bytes() == _checkpoint(300)
    assert tile_path(0, 0, 0) in files
    assert entries_path(0, 0) in files
    for rel, path in files.items():
        if rel != "checkpoint":
            assert path.read_bytes() == f"data:{rel}".encode()


def test_main_fails_without_source_checkpoint(tmp_path):
    with respx.mock(assert_all_called=False) as router:
        router.get(url__startswith=BASE_URL).mock(return_value=httpx.Response(404))
        status = main(["--storage_dir", str(tmp_path), "--source_url", BASE_URL])
    assert status == 1
    assert not (tmp_path / "checkpoint").exists()


def test_main_rejects_zero_workers(tmp_path):
    status = main(
        ["--storage_dir", str(tmp_path), "--source_url", BASE_URL, "--num_workers", "0"]
    )
    assert status == 1