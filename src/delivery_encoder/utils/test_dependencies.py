"""Tests for locating FFmpeg tools."""

import sys
from pathlib import Path

import pytest

from delivery_encoder.errors import EnvironmentSetupError, PreconditionError
from delivery_encoder.utils.dependencies import check_tool_version, platform_dirname, resolve_tool


@pytest.mark.parametrize("platform,expected", [
    ("darwin", "macos"),
    ("win32", "windows"),
    ("linux", "linux"),
])
def test_platform_dirname(platform: str, expected: str):
    assert platform_dirname(platform) == expected


def test_unsupported_platform():
    with pytest.raises(EnvironmentSetupError, match="Unsupported operating system"):
        platform_dirname("sunos5")


def test_bundled_binary_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    bundled = tmp_path / "assets" / "bin" / "macos" / "ffmpeg"
    bundled.parent.mkdir(parents=True)
    bundled.write_text("")
    monkeypatch.setattr("delivery_encoder.utils.dependencies.shutil.which", lambda name: "/usr/bin/ffmpeg")

    assert resolve_tool("ffmpeg", tmp_path, platform="darwin") == bundled


def test_windows_binary_has_exe_suffix(tmp_path: Path):
    bundled = tmp_path / "assets" / "bin" / "windows" / "ffprobe.exe"
    bundled.parent.mkdir(parents=True)
    bundled.write_text("")

    assert resolve_tool("ffprobe", tmp_path, platform="win32") == bundled


def test_falls_back_to_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("delivery_encoder.utils.dependencies.shutil.which", lambda name: f"/opt/bin/{name}")
    assert resolve_tool("ffmpeg", tmp_path, platform="linux") == Path("/opt/bin/ffmpeg")


def test_missing_everywhere(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("delivery_encoder.utils.dependencies.shutil.which", lambda name: None)
    with pytest.raises(PreconditionError, match="Required tool not found: ffmpeg"):
        resolve_tool("ffmpeg", tmp_path, platform="linux")


def test_unsupported_platform_without_explicit_path(tmp_path: Path):
    with pytest.raises(EnvironmentSetupError):
        resolve_tool("ffmpeg", tmp_path, platform="aix")


def test_explicit_path_relative_to_project(tmp_path: Path):
    tool = tmp_path / "tools" / "ffmpeg"
    tool.parent.mkdir()
    tool.write_text("")

    assert resolve_tool("ffmpeg", tmp_path, "tools/ffmpeg", platform="aix") == tool


def test_explicit_path_missing(tmp_path: Path):
    with pytest.raises(PreconditionError, match="ffmpeg not found"):
        resolve_tool("ffmpeg", tmp_path, "tools/ffmpeg")


def test_check_tool_version(fake_ffmpeg: Path):
    assert check_tool_version(fake_ffmpeg, "ffmpeg") == "9.9-fake"


def test_check_tool_version_unrecognised_output(fake_ffprobe: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FAKE_FFPROBE_DURATION", "1.0")
    with pytest.raises(PreconditionError, match="Could not parse ffprobe version"):
        check_tool_version(fake_ffprobe, "ffprobe")


def test_check_tool_version_not_runnable(tmp_path: Path):
    with pytest.raises(PreconditionError, match="Could not run ffmpeg"):
        check_tool_version(tmp_path / "missing", "ffmpeg")


@pytest.mark.skipif(sys.platform == "win32", reason="exit codes of shell scripts")
def test_check_tool_version_failing_tool(tmp_path: Path):
    tool = tmp_path / "ffmpeg"
    tool.write_text("#!/bin/sh\nexit 3\n")
    tool.chmod(0o755)
    with pytest.raises(PreconditionError, match="exited with code 3"):
        check_tool_version(tool, "ffmpeg")
