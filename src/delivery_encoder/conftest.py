"""Shared fixtures: fake FFmpeg tools and a ready-made project tree."""

import stat
import sys
from pathlib import Path

import pytest
from PIL import Image

from delivery_encoder.models.job import EncodeJob

# Stands in for ffmpeg: writes FAKE_FFMPEG_FRAMES numbered files whose content
# records "<start offset>:<local number>", and fails when -ss equals
# FAKE_FFMPEG_FAIL_AT.
FAKE_FFMPEG = '''
import os
import sys
import time

args = sys.argv[1:]
if args == ["-version"]:
    print("ffmpeg version 9.9-fake Copyright (c) the test suite")
    sys.exit(0)

start = float(args[args.index("-ss") + 1])
sys.stderr.write("Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'video.mov':\\n")
sys.stderr.flush()

time.sleep(float(os.environ.get("FAKE_FFMPEG_SLEEP", "0")))

fail_at = os.environ.get("FAKE_FFMPEG_FAIL_AT")
if fail_at is not None and abs(start - float(fail_at)) < 1e-6:
    sys.stderr.write("Error while decoding stream #0:0: Invalid data found\\n")
    sys.exit(1)

pattern = next(a for a in args if "%0" in a)
frames = int(os.environ.get("FAKE_FFMPEG_FRAMES", "3"))
for i in range(1, frames + 1):
    with open(pattern % i, "wb") as f:
        f.write(("%s:%d" % (start, i)).encode())
    sys.stderr.write("frame=%d\\n" % i)
    sys.stderr.write("out_time_us=%d\\n" % (i * 40000))
sys.stderr.write("progress=end\\n")
'''

# Stands in for ffprobe: prints the JSON ffmpeg.probe expects.
FAKE_FFPROBE = '''
import json
import os
import sys

if os.environ.get("FAKE_FFPROBE_FAIL"):
    sys.stderr.write("video.mov: Invalid data found when processing input\\n")
    sys.exit(1)

duration = os.environ.get("FAKE_FFPROBE_DURATION", "10.0")
print(json.dumps({"format": {"duration": duration}, "streams": []}))
'''


def _write_script(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Path:
    if sys.platform == "win32":
        pytest.skip("fake engine relies on a shebang script")
    bin_dir = tmp_path / "fakebin"
    bin_dir.mkdir(exist_ok=True)
    return _write_script(bin_dir / "ffmpeg", FAKE_FFMPEG)


@pytest.fixture
def fake_ffprobe(tmp_path: Path) -> Path:
    if sys.platform == "win32":
        pytest.skip("fake probe relies on a shebang script")
    bin_dir = tmp_path / "fakebin"
    bin_dir.mkdir(exist_ok=True)
    return _write_script(bin_dir / "ffprobe", FAKE_FFPROBE)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root holding assets/video.mov and assets/overlay.png."""
    root = tmp_path / "project"
    assets = root / "assets"
    assets.mkdir(parents=True)
    (assets / "video.mov").write_bytes(b"not really a movie")
    Image.new("RGBA", (16, 9), (255, 0, 0, 128)).save(assets / "overlay.png", format="PNG")
    return root


@pytest.fixture
def make_job(project: Path):
    def _make(**overrides) -> EncodeJob:
        settings = dict(
            project_root=project,
            video_path=project / "assets" / "video.mov",
            overlay_path=project / "assets" / "overlay.png",
            output_dir=project / "output",
            ffmpeg_path=Path("/nonexistent/ffmpeg"),
            ffprobe_path=Path("/nonexistent/ffprobe"),
            workers=2,
        )
        settings.update(overrides)
        return EncodeJob(**settings)

    return _make
