"""
FFmpeg video encoder and PNG snapshots.

Pipes raw RGB frames to ffmpeg via stdin, optionally muxing an audio
track. Frames can be pushed one at a time (live recording) or drained
from an iterator (offline renders).
"""

import subprocess
from pathlib import Path
from typing import Callable, Iterator, Optional

import numpy as np
from PIL import Image


# Quality presets: (preset, crf, pix_fmt)
QUALITY_PRESETS = {
    "high": ("slow", "18", "yuv444p"),
    "medium": ("medium", "23", "yuv420p"),
    "fast": ("ultrafast", "28", "yuv420p"),
}


def build_ffmpeg_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int,
    quality: str = "high",
    audio_path: Optional[Path] = None,
    duration: Optional[float] = None,
) -> list:
    preset, crf, pix_fmt = QUALITY_PRESETS.get(quality, QUALITY_PRESETS["high"])

    cmd = [
        "ffmpeg", "-y",
        # Raw video input from pipe
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
    ]
    if audio_path is not None:
        cmd += ["-i", str(audio_path)]
    cmd += [
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", crf,
        "-pix_fmt", pix_fmt,
    ]
    if audio_path is not None:
        cmd += ["-c:a", "aac", "-b:a", "192k", "-shortest"]
    if duration is not None:
        cmd += ["-t", str(duration)]
    cmd.append(str(output_path))
    return cmd


class FrameRecorder:
    """
    Streams (H, W, 3) uint8 frames into an ffmpeg process.

    Use as a context manager or call `close()`; closing waits for ffmpeg
    and raises RuntimeError if it failed.
    """

    def __init__(
        self,
        output_path: Path,
        width: int = 1920,
        height: int = 1080,
        fps: int = 60,
        quality: str = "high",
        audio_path: Optional[Path] = None,
        duration: Optional[float] = None,
    ):
        self.output_path = Path(output_path)
        self.width = width
        self.height = height
        self.cmd = build_ffmpeg_command(
            self.output_path, width, height, fps, quality, audio_path, duration
        )
        self.frame_count = 0
        self.proc: Optional[subprocess.Popen] = None
        self._broken = False

    def start(self) -> "FrameRecorder":
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.proc = subprocess.Popen(
            self.cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
        return self

    def write(self, frame: np.ndarray) -> bool:
        """Send one frame. Returns False once ffmpeg stopped reading."""
        if frame.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Frame shape {frame.shape} does not match {self.height}x{self.width}x3"
            )
        if self.proc is None:
            raise RuntimeError("recorder not started")
        if self._broken:
            return False
        try:
            self.proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
        except BrokenPipeError:
            self._broken = True
            return False
        self.frame_count += 1
        return True

    def close(self) -> Path:
        proc = self.proc
        if proc is None:
            return self.output_path
        self.proc = None
        if proc.stdin:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass
        # Read stderr before waiting so a chatty ffmpeg cannot block on a full pipe
        stderr = proc.stderr.read().decode("utf-8", errors="replace")
        proc.wait()

        if proc.returncode != 0:
            # Filter out common non-error ffmpeg messages
            error_lines = [
                line for line in stderr.split("\n")
                if "error" in line.lower() or "invalid" in line.lower()
            ]
            error_msg = "\n".join(error_lines[-5:]) if error_lines else stderr[-500:]
            raise RuntimeError(
                f"ffmpeg exited with code {proc.returncode}: {error_msg}"
            )
        return self.output_path

    def __enter__(self) -> "FrameRecorder":
        return self.start()

    def __exit__(self, *exc):
        self.close()


def encode_video(
    frame_iterator: Iterator[np.ndarray],
    output_path: Path,
    width: int = 1920,
    height: int = 1080,
    fps: int = 60,
    quality: str = "high",
    audio_path: Optional[Path] = None,
    duration: Optional[float] = None,
    total_frames: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Path:
    """
    Encode frames to MP4, optionally with audio.

    Args:
        frame_iterator: Yields (H, W, 3) uint8 numpy arrays.
        output_path: Output MP4 path.
        width: Frame width.
        height: Frame height.
        fps: Frames per second.
        quality: "high", "medium", or "fast".
        audio_path: Audio file to mux in, if any.
        duration: Output duration limit in seconds.
        total_frames: Total frame count for progress reporting.
        progress_callback: Optional callback(current_frame, total_frames).

    Returns:
        Path to the output file.
    """
    recorder = FrameRecorder(output_path, width, height, fps, quality, audio_path, duration)
    with recorder:
        for frame in frame_iterator:
            if not recorder.write(frame):
                break
            if progress_callback and total_frames:
                progress_callback(recorder.frame_count, total_frames)
    return recorder.output_path


def save_snapshot(frame: np.ndarray, path: Path) -> Path:
    """Write an (H, W, 3) uint8 frame as PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8)).save(path)
    return path


class FrameSequenceWriter:
    """
    Writes frames as numbered PNGs into a directory.

    Same start/write/close interface as FrameRecorder, for frame-by-frame
    export without ffmpeg.
    """

    def __init__(self, output_path: Path, prefix: str = "frame"):
        self.output_path = Path(output_path)
        self.prefix = prefix
        self.frame_count = 0
        self._started = False

    def start(self) -> "FrameSequenceWriter":
        self.output_path.mkdir(parents=True, exist_ok=True)
        self._started = True
        return self

    def frame_path(self, index: int) -> Path:
        return self.output_path / f"{self.prefix}-{index:05d}.png"

    def write(self, frame: np.ndarray) -> bool:
        if not self._started:
            raise RuntimeError("recorder not started")
        save_snapshot(frame, self.frame_path(self.frame_count))
        self.frame_count += 1
        return True

    def close(self) -> Path:
        self._started = False
        return self.output_path

    def __enter__(self) -> "FrameSequenceWriter":
        return self.start()

    def __exit__(self, *exc):
        self.close()
