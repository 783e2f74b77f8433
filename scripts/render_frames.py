#!/usr/bin/env python3
"""Offline frame driver for the LED wall renderer.

Advances the animation clock by a fixed step per frame (the display loop's
0.016 s tick by default), renders each frame, and writes PNGs plus metadata.
With --video, frames are decoded with OpenCV and fed to the `video` source,
looping at end of file.

Usage:
    # 30 frames of the chase pattern at the config defaults
    python scripts/render_frames.py --pattern chase --frames 30 --output_dir outputs/chase

    # Bright panel seen from far away, fixed noise seed
    python scripts/render_frames.py --pattern static --brightness 4000 --distance 14 --seed 7

    # Video source at a coarse pitch
    python scripts/render_frames.py --video clip.mp4 --pitch 15.6 --frames 120

Outputs:
    - <prefix>_NNNN.png: rendered frames (RGB)
    - <prefix>_optics.png: brightness response curves with the chosen nits marked
    - <prefix>_metadata.yaml: grid, scale, advisory, optical params, timings
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

import cv2
import matplotlib.pyplot as plt
import numpy as np

from src.led_wall_simulator import (
    LEDWallRenderer,
    PatternName,
    RenderContext,
    compute_brightness_params,
    compute_emissive_intensity,
)
from src.utils import fs, logging_config, validators
from src.utils.profiler import TimerAccumulator

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render LED wall frames to PNG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config',
        type=str,
        default='configs/led_wall.v1.yaml',
        help='LED wall config, default: configs/led_wall.v1.yaml'
    )

    # Frame inputs (None = config driver defaults)
    parser.add_argument(
        '--pattern',
        type=str,
        default=None,
        choices=[p.value for p in PatternName],
        help='Animation source'
    )
    parser.add_argument('--pitch', type=float, default=None, help='Pixel pitch (mm)')
    parser.add_argument('--distance', type=float, default=None, help='Camera distance')
    parser.add_argument('--brightness', type=float, default=None, help='Brightness (nits)')
    parser.add_argument('--seed', type=int, default=None, help='Seed for pattern noise')
    parser.add_argument('--video', type=str, default=None, help='Video file for the video source')

    # Clock
    parser.add_argument('--frames', type=int, default=1, help='Number of frames, default: 1')
    parser.add_argument('--start_time', type=float, default=0.0, help='Clock at frame 0 (s)')
    parser.add_argument('--time_step', type=float, default=None, help='Clock step per frame (s)')

    # Output settings
    parser.add_argument(
        '--output_dir',
        type=str,
        default='outputs/frames',
        help='Output directory, default: outputs/frames'
    )
    parser.add_argument(
        '--prefix',
        type=str,
        default='frame',
        help='Output filename prefix, default: frame'
    )
    parser.add_argument(
        '--no_plot',
        action='store_true',
        help='Skip the brightness response plot'
    )

    # Logging
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--log_file', type=str, default=None, help='Also log to this file')
    parser.add_argument('--json_logs', action='store_true', help='JSON lines in the log file')

    return parser.parse_args(argv)


class VideoSource:
    """Looping RGB frame reader over cv2.VideoCapture."""

    def __init__(self, path: str):
        self.path = path
        self.capture = cv2.VideoCapture(path)
        if not self.capture.isOpened():
            raise IOError(f"Cannot open video: {path}")
        self.frames_read = 0
        self.fps = self.capture.get(cv2.CAP_PROP_FPS) or 0.0

    def read(self) -> Optional[np.ndarray]:
        """Next frame as RGB uint8, rewinding at end of file; None if unreadable."""
        ok, bgr = self.capture.read()
        if not ok:
            self.capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ok, bgr = self.capture.read()
            if not ok:
                return None
        self.frames_read += 1
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)

    def close(self) -> None:
        self.capture.release()


def plot_optics_response(
    cfg: validators.OpticsConfig,
    brightness_nits: float,
    output_path: Path
) -> None:
    """Plot gamma, bleed alpha and blur radius against brightness."""
    nits = np.linspace(0.0, cfg.max_nits, 400)
    params = [compute_brightness_params(n, cfg) for n in nits]
    current = compute_brightness_params(brightness_nits, cfg)

    fig, axes = plt.subplots(1, 3, figsize=(15, 4))
    series = [
        ('gamma', [p.gamma for p in params], current.gamma),
        ('bleed_alpha', [p.bleed_alpha for p in params], current.bleed_alpha),
        ('blur_radius_px', [p.blur_radius_px for p in params], current.blur_radius_px),
    ]
    for ax, (label, values, marker) in zip(axes, series):
        ax.plot(nits, values)
        ax.axvline(cfg.baseline_nits, color='gray', linestyle='--', linewidth=0.8)
        ax.scatter([brightness_nits], [marker], color='red', zorder=3)
        ax.set_xlabel('brightness (nits)')
        ax.set_title(label)

    plt.tight_layout()
    plt.savefig(output_path, dpi=120)
    plt.close(fig)


def convert_to_native(obj):
    """Convert numpy scalars/arrays and tuples to YAML-safe Python types."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {k: convert_to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_to_native(item) for item in obj]
    return obj


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    logging_config.setup_logging(
        log_level=log_level,
        log_file=args.log_file,
        json=args.json_logs,
        quiet_libs=['PIL', 'matplotlib'],
        context={'app': 'render'}
    )
    logging_config.install_excepthook()

    config_path = Path(args.config)
    if config_path.exists():
        cfg = validators.load_led_wall_config(config_path)
        logger.info(f"Loaded config: {config_path}")
    else:
        logger.warning(f"Config not found: {config_path}; using built-in defaults")
        cfg = validators.LEDWallV1()

    if args.seed is not None:
        cfg.randomness.seed = args.seed

    driver = cfg.driver
    pattern = args.pattern or driver.pattern
    if args.video and args.pattern is None:
        pattern = PatternName.VIDEO.value
    camera_distance = driver.camera_distance if args.distance is None else args.distance
    brightness = driver.brightness_nits if args.brightness is None else args.brightness
    time_step = driver.time_step_s if args.time_step is None else args.time_step

    video: Optional[VideoSource] = None
    if args.video:
        try:
            video = VideoSource(args.video)
        except IOError as e:
            logger.error(str(e))
            return 1
        logger.info(f"Video source: {args.video} ({video.fps:.2f} fps)")

    output_dir = fs.ensure_dir(args.output_dir)
    logger.info(f"Output directory: {output_dir}")

    renderer = LEDWallRenderer(cfg)
    decode_timer = TimerAccumulator("video_decode")
    advisory = None
    result = None

    try:
        for i in range(args.frames):
            t = args.start_time + i * time_step
            frame = None
            if video is not None:
                with decode_timer.measure():
                    frame = video.read()

            with logging_config.log_context(frame=i):
                ctx = RenderContext(
                    pixel_pitch_mm=args.pitch,
                    pattern=pattern,
                    time=t,
                    camera_distance=camera_distance,
                    brightness_nits=brightness,
                    video_frame=frame
                )
                result = renderer.render_frame(ctx)
                if result.advisory and result.advisory != advisory:
                    logger.warning(result.advisory)
                advisory = result.advisory

                frame_path = output_dir / f'{args.prefix}_{i:04d}.png'
                fs.atomic_save_image(result.image, frame_path, {'compress_level': 1})
                logger.debug(f"Saved {frame_path}")
    finally:
        if video is not None:
            video.close()

    logger.info(
        f"Rendered {args.frames} frame(s): mean {renderer.frame_timer.mean() * 1000:.1f} ms "
        f"({renderer.frame_timer.fps():.1f} fps)"
    )

    if not args.no_plot:
        plot_path = output_dir / f'{args.prefix}_optics.png'
        plot_optics_response(cfg.optics, brightness, plot_path)
        logger.info(f"Saved optics response: {plot_path}")

    metadata: Dict = {
        'pattern': pattern,
        'frames': args.frames,
        'start_time_s': args.start_time,
        'time_step_s': time_step,
        'camera_distance': camera_distance,
        'brightness_nits': brightness,
        'emissive_intensity': compute_emissive_intensity(brightness, cfg.optics),
        'seed': cfg.randomness.seed,
        'video': args.video,
        'mean_frame_time_s': renderer.frame_timer.mean(),
        'mean_decode_time_s': decode_timer.mean() if video is not None else None,
    }
    if result is not None:
        grid = result.grid
        metadata.update({
            'grid': {
                'pixels_x': grid.pixels_x,
                'pixels_y': grid.pixels_y,
                'pixel_pitch_mm': grid.pixel_pitch_mm,
                'scale': grid.scale,
                'led_size_px': grid.led_size_px,
                'raster_px': (grid.height_px, grid.width_px),
            },
            'advisory': result.advisory,
            'optics': result.params._asdict(),
            'pixel_blur_px': result.pixel_blur_px,
        })

    metadata_path = output_dir / f'{args.prefix}_metadata.yaml'
    fs.atomic_yaml_dump(convert_to_native(metadata), metadata_path)
    logger.info(f"Saved metadata: {metadata_path}")

    logging_config.shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())
