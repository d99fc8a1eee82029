from __future__ import annotations

import bz2
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

import cli.app as app_module
from cli.app import app

PAYLOAD = b"hello world" * 1000

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_global_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_module, "configure_logging", lambda: None)


def _touch(path: Path, data: bytes = PAYLOAD) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def _split_streams(data: bytes) -> list[bytes]:
    parts = []
    while data:
        decompressor = bz2.BZ2Decompressor()
        parts.append(decompressor.decompress(data))
        assert decompressor.eof
        data = decompressor.unused_data
    return parts


def test_compress_in_place(tmp_path: Path) -> None:
    source = _touch(tmp_path / "report.txt")

    result = runner.invoke(app, [str(source)])

    assert result.exit_code == 0
    assert not source.exists()
    assert bz2.decompress((tmp_path / "report.txt.bz2").read_bytes()) == PAYLOAD


def test_decompress_keep(tmp_path: Path) -> None:
    source = _touch(tmp_path / "report.txt")
    assert runner.invoke(app, [str(source)]).exit_code == 0

    result = runner.invoke(app, ["-d", "-k", str(tmp_path / "report.txt.bz2")])

    assert result.exit_code == 0
    assert source.read_bytes() == PAYLOAD
    assert (tmp_path / "report.txt.bz2").exists()


def test_bundled_short_flags(tmp_path: Path) -> None:
    archive = _touch(tmp_path / "report.txt.bz2", bz2.compress(PAYLOAD))

    result = runner.invoke(app, ["-dkv", str(archive)])

    assert result.exit_code == 0
    assert archive.exists()
    assert (tmp_path / "report.txt").read_bytes() == PAYLOAD


def test_test_mode_flags_corrupt_file(tmp_path: Path) -> None:
    archive = _touch(tmp_path / "report.txt.bz2", bz2.compress(PAYLOAD)[:40])

    result = runner.invoke(app, ["-t", str(archive)])

    assert result.exit_code == 1
    assert sorted(p.name for p in tmp_path.iterdir()) == ["report.txt.bz2"]


def test_missing_file_fails_run_but_valid_file_is_compressed(tmp_path: Path) -> None:
    valid = _touch(tmp_path / "valid.txt")

    result = runner.invoke(app, [str(valid), str(tmp_path / "missing.txt")])

    assert result.exit_code == 1
    assert not valid.exists()
    assert bz2.decompress((tmp_path / "valid.txt.bz2").read_bytes()) == PAYLOAD


def test_recursive_with_cores(tmp_path: Path) -> None:
    folder = tmp_path / "tree"
    files = [_touch(folder / f"{i}.txt") for i in range(4)] + [_touch(folder / "sub" / "x.txt")]

    result = runner.invoke(app, ["-r", "-cores", "2", str(folder)])

    assert result.exit_code == 0
    for path in files:
        assert not path.exists()
        assert Path(f"{path}.bz2").exists()


@pytest.mark.parametrize(
    ("flags", "header"),
    [
        ([], b"BZh9"),
        (["-1"], b"BZh1"),
        (["--fast"], b"BZh1"),
        (["-l", "3"], b"BZh3"),
        (["-l", "4", "-2"], b"BZh4"),
        (["-7", "-3"], b"BZh3"),
    ],
)
def test_level_selection(tmp_path: Path, flags: list[str], header: bytes) -> None:
    source = _touch(tmp_path / "report.txt")

    result = runner.invoke(app, [*flags, str(source)])

    assert result.exit_code == 0
    assert (tmp_path / "report.txt.bz2").read_bytes().startswith(header)


@pytest.mark.parametrize(
    "args",
    [
        ["-l", "10"],
        ["-l", "0"],
        ["-cores", "0"],
        ["-cores", "33"],
        ["-c", "-k"],
        ["-c", "-f"],
        ["-c", "-S", "bz"],
        ["-S", ""],
    ],
)
def test_usage_errors_abort_before_any_job(tmp_path: Path, args: list[str]) -> None:
    source = _touch(tmp_path / "report.txt")

    result = runner.invoke(app, [*args, str(source)])

    assert result.exit_code == 1
    assert source.read_bytes() == PAYLOAD
    assert not (tmp_path / "report.txt.bz2").exists()


def test_explicit_stdin_without_stdout_fails_only_that_job(tmp_path: Path) -> None:
    source = _touch(tmp_path / "a.txt")

    result = runner.invoke(app, [str(source), "-"], input=PAYLOAD)

    assert result.exit_code == 1
    assert not source.exists()
    assert bz2.decompress((tmp_path / "a.txt.bz2").read_bytes()) == PAYLOAD
    assert result.stdout_bytes == b""


def test_help_exits_cleanly() -> None:
    result = runner.invoke(app, ["-h"])
    assert result.exit_code == 0
    assert "--decompress" in result.output


def test_stdin_without_arguments_writes_stdout() -> None:
    result = runner.invoke(app, [], input=PAYLOAD)

    assert result.exit_code == 0
    assert bz2.decompress(result.stdout_bytes) == PAYLOAD


def test_decompress_to_stdout_keeps_archive(tmp_path: Path) -> None:
    archive = _touch(tmp_path / "report.txt.bz2", bz2.compress(PAYLOAD))

    result = runner.invoke(app, ["-d", "-c", str(archive)])

    assert result.exit_code == 0
    assert result.stdout_bytes == PAYLOAD
    assert archive.exists()
    assert not (tmp_path / "report.txt").exists()


def test_custom_suffix(tmp_path: Path) -> None:
    source = _touch(tmp_path / "report.txt")

    result = runner.invoke(app, ["-S", "bzip", "-k", str(source)])

    assert result.exit_code == 0
    assert source.exists()
    assert (tmp_path / "report.txt.bzip").exists()


def test_several_files_to_stdout_keep_streams_whole(tmp_path: Path) -> None:
    payloads = [os.urandom(300_000) for _ in range(4)]
    sources = [_touch(tmp_path / f"part{i}.bin", data) for i, data in enumerate(payloads)]

    result = runner.invoke(app, ["-c", "-cores", "4", *[str(p) for p in sources]])

    assert result.exit_code == 0
    assert sorted(_split_streams(result.stdout_bytes)) == sorted(payloads)
    assert all(p.exists() for p in sources)
