"""
Offline halo render to MP4.

Plays a MIDI file (or self-running ambient scenes) through the same frame
loop as the live window, with a fixed time step of one frame, and pipes
the frames to ffmpeg.

Usage:
    haloscope-render --midi song.mid -o halos.mp4 [options]
    haloscope-render --ambient --duration 30 -o ambient.mp4
"""

import argparse
import random
import sys
import time
from pathlib import Path
from typing import Callable, Iterator, Optional

import numpy as np
import pygame

from haloscope.config import PROFILES, HaloConfig
from haloscope.core.lifecycle import LifecycleController
from haloscope.core.scene import Scene
from haloscope.driver import AnimationDriver, SceneCycler, ambient_scene
from haloscope.io.encoder import encode_video
from haloscope.io.playback import Schedule, ScheduledTriggers, load_midi_schedule
from haloscope.io.triggers import TriggerInbox
from haloscope.visualizers.stripes import PygameCanvas, StripeRenderer, surface_to_array

# Extra time rendered after the last MIDI event
TAIL_MS = 500.0


class SteppedClock:
    """Simulated millisecond clock advanced explicitly, one frame at a time."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def render_offline(
    config: HaloConfig,
    total_frames: int,
    schedule: Optional[Schedule] = None,
    seed: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Iterator[np.ndarray]:
    """
    Yield (H, W, 3) uint8 frames.

    With a schedule, scheduled triggers drive a single scene; without one,
    ambient scenes are replaced every `scene_timeout_ms`.
    """
    surface = pygame.Surface((config.width, config.height))
    canvas = PygameCanvas(surface)
    renderer = StripeRenderer(config)
    rng = random.Random(seed)
    clock = SteppedClock()
    inbox = TriggerInbox()
    triggers = ScheduledTriggers(schedule) if schedule is not None else None

    def make_driver() -> AnimationDriver:
        if triggers is None:
            return AnimationDriver(ambient_scene(config, rng), renderer, canvas, clock=clock)
        scene = Scene(config=config, rng=rng)
        return AnimationDriver(
            scene, renderer, canvas, clock=clock, inbox=inbox,
            controller=LifecycleController(scene),
        )

    cycler = SceneCycler(make_driver)
    cycler.replace()
    next_cut = config.scene_timeout_ms

    try:
        for i in range(total_frames):
            if triggers is None and clock.now >= next_cut:
                cycler.replace()
                next_cut += config.scene_timeout_ms
            if triggers is not None:
                for event in triggers.due(clock.now):
                    inbox.push(event)

            cycler.frame()
            yield surface_to_array(surface)

            clock.advance(config.frame_ms)
            if progress_callback:
                progress_callback(i + 1, total_frames)
    finally:
        cycler.close()


def main():
    parser = argparse.ArgumentParser(
        prog="haloscope-render",
        description="Render stripe halos to video from a MIDI file or ambient scenes",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--midi", type=Path, help="MIDI file whose notes trigger halos")
    source.add_argument("--ambient", action="store_true", help="Self-running scenes, no MIDI")

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output MP4 path (default: <midi>_halos.mp4 or ambient_halos.mp4)",
    )
    parser.add_argument("--audio", type=Path, default=None, help="Audio file to mux into the video")

    # Resolution & Profile
    parser.add_argument(
        "-p", "--profile", type=str, default="medium",
        choices=list(PROFILES),
        help="Target profile (low: 720p 30fps, medium: 1080p 60fps, high: 4k 60fps)",
    )
    parser.add_argument("--width", type=int, default=None, help="Video width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Video height (overrides profile)")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides profile)")

    # Visual
    parser.add_argument("--attack-ms", type=float, default=150.0, help="Envelope attack (default: 150)")
    parser.add_argument("--decay-ms", type=float, default=2500.0, help="Envelope decay (default: 2500)")
    parser.add_argument("--stripes", type=int, default=300, help="Stripes per halo (default: 300)")
    parser.add_argument(
        "--curve", type=str, default="linear", choices=["linear", "exponential"],
        help="Brightness curve interpolation (default: linear)",
    )
    parser.add_argument("--oscillate", action="store_true", help="Let note-driven halos pulse")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Limits
    parser.add_argument("--duration", type=float, default=None, help="Output length in seconds")

    # Quality
    parser.add_argument(
        "-q", "--quality", type=str, default=None,
        choices=["high", "medium", "fast"],
        help="Encoding quality (defaults to profile quality)",
    )

    args = parser.parse_args()

    if args.midi is not None and not args.midi.exists():
        print(f"Error: MIDI file not found: {args.midi}", file=sys.stderr)
        sys.exit(1)
    if args.audio is not None and not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    p_cfg = PROFILES[args.profile]
    try:
        config = HaloConfig(
            width=args.width or p_cfg["width"],
            height=args.height or p_cfg["height"],
            fps=args.fps or p_cfg["fps"],
            stripe_count=args.stripes,
            curve_mode=args.curve,
            attack_ms=args.attack_ms,
            decay_ms=args.decay_ms,
            oscillate_triggered=args.oscillate,
            scene_fade=args.ambient,
        ).validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    quality = args.quality or p_cfg["quality"]

    schedule = None
    if args.midi is not None:
        schedule = load_midi_schedule(args.midi)
        notes = sum(1 for _, ev in schedule if ev.kind == "on")
        print(f"Loaded MIDI: {args.midi}")
        print(f"  Notes: {notes}")
        default_ms = ScheduledTriggers(schedule).duration_ms + config.decay_ms + TAIL_MS
        output = args.output or args.midi.with_name(f"{args.midi.stem}_halos.mp4")
    else:
        default_ms = config.scene_timeout_ms * 2
        output = args.output or Path("ambient_halos.mp4")

    duration = args.duration if args.duration is not None else default_ms / 1000.0
    total_frames = max(1, int(duration * config.fps))

    print(f"\nRendering {total_frames} frames at {config.width}x{config.height} @ {config.fps}fps")
    t0 = time.time()

    frames = render_offline(config, total_frames, schedule=schedule, seed=args.seed)
    encode_video(
        frame_iterator=frames,
        output_path=output,
        width=config.width,
        height=config.height,
        fps=config.fps,
        quality=quality,
        audio_path=args.audio,
        duration=duration,
        total_frames=total_frames,
        progress_callback=_progress_bar,
    )

    elapsed = time.time() - t0
    file_size_mb = output.stat().st_size / 1024 / 1024

    print(f"\nDone! {file_size_mb:.1f} MB")
    print(f"  Render+encode took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
