"""
Live halo window driven by MIDI notes.

Usage:
    haloscope [options]

Keys: p = PNG snapshot, v = start/stop video recording, f = start/stop PNG
frame sequence, space = new scene, q / Esc = quit.
"""

import argparse
import random
import sys
import time
from pathlib import Path

import pygame

from haloscope.config import PROFILES, HaloConfig
from haloscope.core.lifecycle import LifecycleController
from haloscope.core.scene import Scene
from haloscope.driver import AnimationDriver, SceneCycler, ambient_scene
from haloscope.io.encoder import FrameRecorder, FrameSequenceWriter, save_snapshot
from haloscope.io.triggers import MidiTriggerSource, TriggerInbox, available_inputs
from haloscope.visualizers.stripes import PygameCanvas, StripeRenderer, surface_to_array

SCENE_TIMEOUT_EVENT = pygame.USEREVENT + 1


def _stamp() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def start_recording(recorder):
    """Start a FrameRecorder or FrameSequenceWriter; None if it cannot start."""
    try:
        recorder.start()
    except (OSError, RuntimeError) as e:
        print(f"[REC] Error: could not start {recorder.output_path}: {e}", file=sys.stderr)
        return None
    print(f"[REC] recording to {recorder.output_path}")
    return recorder


def stop_recording(recorder) -> None:
    """Close a recorder, reporting failures instead of raising them."""
    try:
        path = recorder.close()
    except (OSError, RuntimeError) as e:
        print(f"[REC] Error: {e}", file=sys.stderr)
        return None
    print(f"[REC] saved {path} ({recorder.frame_count} frames)")
    return None


def write_frame(recorder, frame):
    """Push one frame; stops and drops the recorder when writing fails."""
    try:
        if recorder.write(frame):
            return recorder
    except OSError as e:
        print(f"[REC] Error: {e}", file=sys.stderr)
    return stop_recording(recorder)


def run_window(
    config: HaloConfig,
    inbox: TriggerInbox,
    ambient: bool = False,
    seed: int | None = None,
    output_dir: Path = Path("."),
    quality: str = "medium",
):
    """Open the display and run until the window is closed or q is pressed."""
    pygame.init()
    screen = pygame.display.set_mode((config.width, config.height))
    pygame.display.set_caption("haloscope")
    canvas = PygameCanvas(screen)
    renderer = StripeRenderer(config)
    rng = random.Random(seed)

    def make_driver() -> AnimationDriver:
        if ambient:
            return AnimationDriver(ambient_scene(config, rng), renderer, canvas)
        scene = Scene(config=config, rng=rng)
        return AnimationDriver(
            scene, renderer, canvas, inbox=inbox, controller=LifecycleController(scene)
        )

    cycler = SceneCycler(make_driver)
    cycler.replace()
    if ambient:
        pygame.time.set_timer(SCENE_TIMEOUT_EVENT, int(config.scene_timeout_ms))

    clock = pygame.time.Clock()
    recorder = None
    frames = None
    running = True
    try:
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == SCENE_TIMEOUT_EVENT:
                    cycler.replace()
                    print(f"[SCENE] #{cycler.generation}")
                elif event.type == pygame.KEYDOWN:
                    if event.key in (pygame.K_q, pygame.K_ESCAPE):
                        running = False
                    elif event.key == pygame.K_SPACE:
                        cycler.replace()
                        print(f"[SCENE] #{cycler.generation}")
                    elif event.key == pygame.K_p:
                        try:
                            path = save_snapshot(
                                surface_to_array(screen),
                                output_dir / f"haloscope-{_stamp()}.png",
                            )
                        except OSError as e:
                            print(f"[SNAPSHOT] Error: {e}", file=sys.stderr)
                        else:
                            print(f"[SNAPSHOT] {path}")
                    elif event.key == pygame.K_v:
                        if recorder is None:
                            recorder = start_recording(FrameRecorder(
                                output_dir / f"haloscope-{_stamp()}.mp4",
                                config.width,
                                config.height,
                                config.fps,
                                quality,
                            ))
                        else:
                            recorder = stop_recording(recorder)
                    elif event.key == pygame.K_f:
                        if frames is None:
                            frames = start_recording(
                                FrameSequenceWriter(output_dir / f"haloscope-{_stamp()}-frames")
                            )
                        else:
                            frames = stop_recording(frames)

            if not running:
                break

            cycler.frame()
            pygame.display.flip()
            if recorder is not None or frames is not None:
                frame = surface_to_array(screen)
                if recorder is not None:
                    recorder = write_frame(recorder, frame)
                if frames is not None:
                    frames = write_frame(frames, frame)
            clock.tick(config.fps)
    finally:
        try:
            pygame.time.set_timer(SCENE_TIMEOUT_EVENT, 0)
            cycler.close()
            for active in (recorder, frames):
                if active is not None:
                    stop_recording(active)
        finally:
            pygame.quit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="haloscope",
        description="Live stripe halos driven by MIDI notes",
    )

    # Resolution & Profile
    parser.add_argument(
        "-p", "--profile", type=str, default="low",
        choices=list(PROFILES),
        help="Target profile (low: 720p 30fps, medium: 1080p 60fps, high: 4k 60fps)",
    )
    parser.add_argument("--width", type=int, default=None, help="Window width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Window height (overrides profile)")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides profile)")

    # Input
    parser.add_argument(
        "--port", type=str, default="Haloscope MIDI In",
        help="MIDI input port name (default: Haloscope MIDI In)",
    )
    parser.add_argument(
        "--existing-port", action="store_true",
        help="Open an existing input port instead of creating a virtual one",
    )
    parser.add_argument("--list-ports", action="store_true", help="List MIDI inputs and exit")
    parser.add_argument(
        "--ambient", action="store_true",
        help="Ignore MIDI and cycle self-running scenes",
    )

    # Visual
    parser.add_argument("--attack-ms", type=float, default=150.0, help="Envelope attack (default: 150)")
    parser.add_argument("--decay-ms", type=float, default=2500.0, help="Envelope decay (default: 2500)")
    parser.add_argument("--stripes", type=int, default=300, help="Stripes per halo (default: 300)")
    parser.add_argument(
        "--curve", type=str, default="linear", choices=["linear", "exponential"],
        help="Brightness curve interpolation (default: linear)",
    )
    parser.add_argument(
        "--oscillate", action="store_true",
        help="Let note-driven halos pulse instead of holding steady",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Output
    parser.add_argument(
        "-o", "--output-dir", type=Path, default=Path("."),
        help="Directory for snapshots and recordings (default: .)",
    )
    return parser


def config_from_args(args: argparse.Namespace, ambient: bool) -> HaloConfig:
    p_cfg = PROFILES[args.profile]
    return HaloConfig(
        width=args.width or p_cfg["width"],
        height=args.height or p_cfg["height"],
        fps=args.fps or p_cfg["fps"],
        stripe_count=args.stripes,
        curve_mode=args.curve,
        attack_ms=args.attack_ms,
        decay_ms=args.decay_ms,
        oscillate_triggered=args.oscillate,
        scene_fade=ambient,
    ).validate()


def main():
    args = build_parser().parse_args()

    if args.list_ports:
        for name in available_inputs():
            print(name)
        return

    try:
        config = config_from_args(args, ambient=args.ambient)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    inbox = TriggerInbox()
    source = None
    if not args.ambient:
        source = MidiTriggerSource(args.port, inbox, virtual=not args.existing_port)
        try:
            source.open()
        except (OSError, IOError) as e:
            print(f"Error: could not open MIDI input {args.port!r}: {e}", file=sys.stderr)
            print(f"Available inputs: {', '.join(available_inputs()) or '(none)'}", file=sys.stderr)
            sys.exit(1)
        print(f"[MIDI] Listening on '{args.port}'")

    print(f"[WINDOW] {config.width}x{config.height} @ {config.fps}fps")
    print("[KEYS] p=snapshot | v=record | f=png frames | space=new scene | q=quit")
    try:
        run_window(
            config,
            inbox,
            ambient=args.ambient,
            seed=args.seed,
            output_dir=args.output_dir,
            quality=PROFILES[args.profile]["quality"],
        )
    finally:
        if source is not None:
            source.close()


if __name__ == "__main__":
    main()
