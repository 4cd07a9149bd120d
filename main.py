#!/usr/bin/env python3
"""
rigik - Headless IK Runner

Plays the demo (or a given) animation on the Mixamo humanoid, solves the
configured constraints every frame and optionally dumps the solved local
transforms as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

from rigik.core import (
    Config, FrameClock, SkeletonFrame, build_humanoid_skeleton, get_logger, setup_logging
)
from rigik.ik import IKRig, constraints_from_config
from rigik.motion import AnimationPlayer, build_demo_clips, load_clip


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Solve priority IK constraints over an animated humanoid"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--frames", "-n",
        type=int,
        help="Number of frames to simulate (overrides config)"
    )
    parser.add_argument(
        "--fps",
        type=float,
        help="Simulated frame rate (overrides config)"
    )
    parser.add_argument(
        "--clip",
        type=str,
        help="Animation clip file (.json/.yaml) instead of the demo clips"
    )
    parser.add_argument(
        "--slide-root",
        action="store_true",
        help="Let the solver translate the root bone"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Write solved frames to this JSON file"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.is_absolute() and not config_path.exists():
        config_path = Path(__file__).parent / config_path

    try:
        config = Config(str(config_path))
    except FileNotFoundError:
        print(f"Error: Config file not found: {config_path}")
        return 1

    log_level = "DEBUG" if args.debug else config.get("app.log_level", "INFO")
    setup_logging(level=log_level, log_file=config.get("app.log_file"))
    logger = get_logger("main")

    logger.info("=" * 50)
    logger.info(f"rigik IK runner v{config.get('app.version', '0.1.0')}")
    logger.info("=" * 50)

    if args.slide_root:
        config.set("skeleton.slide_root", True)
    if args.debug:
        config.set("app.debug", True)

    try:
        return run_headless(config, args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1


def run_headless(config: Config, args: argparse.Namespace) -> int:
    """Simulate frames with a fixed time step."""
    logger = get_logger("main")

    frames = args.frames if args.frames is not None else int(config.get("runner.frames", 120))
    fps = args.fps if args.fps is not None else float(config.get("runner.fps", 30.0))
    if frames < 0:
        raise ValueError(f"frame count must not be negative, got {frames}")
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    report_every = max(int(config.get("runner.report_every", 30)), 1)

    bones = build_humanoid_skeleton(scale=float(config.get("skeleton.scale", 1.0)))
    constraints = constraints_from_config(config.constraints, bones)

    player = AnimationPlayer(bones, config)
    clips = [load_clip(args.clip)] if args.clip else build_demo_clips(bones)
    for clip in clips:
        player.add_clip(clip)

    rig = IKRig(bones, constraints, player=player, config=config)

    clock = FrameClock(fixed_delta=1.0 / fps)
    clock.start()

    solved_frames = []
    for _ in range(frames):
        frame = clock.tick()
        residual = rig.update(frame.delta)

        if args.output:
            solved_frames.append(
                SkeletonFrame.from_bones(frame.frame_number, frame.timestamp, bones).to_dict()
            )

        if frame.frame_number % report_every == 0:
            logger.info(f"Frame {frame.frame_number:4d} t={frame.timestamp:6.2f}s "
                        f"residual={residual:.4f}")
            for status in rig.status():
                if status.enabled:
                    logger.info(f"    {status.name:<24} error={status.error:.4f}")

    logger.info(f"Simulated {clock.frame_count} frames ({clock.elapsed_time:.2f}s)")
    logger.info(f"Solve time: average {rig.solver.average_solve_time * 1000:.2f} ms, "
                f"max {rig.solver.max_solve_time * 1000:.2f} ms")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump({"fps": fps, "frame_count": len(solved_frames),
                       "frames": solved_frames}, f)
        logger.info(f"Wrote {len(solved_frames)} frames to {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
