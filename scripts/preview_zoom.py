"""Smart zoom preview — renders one camera cycle for an artwork file as a GIF.

Runs the same steps the display does (analysis, transform solving,
choreography) and renders the result with the Pillow frame renderer.
Timings are compressed so the preview is short.

Usage:
    python scripts/preview_zoom.py path/to/cover.jpg [output.gif]
"""

import os
import sys
from dataclasses import replace

from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.camera.geometry import Viewport, fit_art_rect
from src.camera.transform import point_to_transform, target_scale
from src.choreography.builder import build, timing_for
from src.config.settings import load_settings
from src.player.renderer import FrameRenderer
from src.region_analyzer.analyzer import RegionAnalyzer
from src.region_analyzer.face_detector import load_face_detector

PREVIEW_VIEWPORT = Viewport(width=480, height=270)
PREVIEW_FPS = 12
# Preview seconds per real second
TIME_SCALE = 0.1


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    image_path = sys.argv[1]
    output_path = sys.argv[2] if len(sys.argv) > 2 else "zoom_preview.gif"
    if not os.path.exists(image_path):
        print(f"  ERROR: image not found: {image_path}")
        return 1

    settings = load_settings()
    settings = replace(
        settings,
        move_duration=settings.move_duration * TIME_SCALE,
        hold_face=settings.hold_face * TIME_SCALE,
        hold_edge=settings.hold_edge * TIME_SCALE,
    )

    image = Image.open(image_path)
    analyzer = RegionAnalyzer(load_face_detector(settings), settings)
    focal_set = analyzer.analyze(image)
    if not focal_set:
        print(f"  No focal regions ({focal_set.reason}); the display would stay static.")
        return 0

    for point in focal_set:
        print(f"  {point.kind.value}: ({point.x_pct:.1f}%, {point.y_pct:.1f}%)")

    rect = fit_art_rect(PREVIEW_VIEWPORT)
    scale = target_scale(PREVIEW_VIEWPORT, rect, settings.zoom_depth, settings.cover_margin)
    poses = [
        point_to_transform(p, rect, PREVIEW_VIEWPORT, scale, scale * settings.centering_zoom_cap)
        for p in focal_set
    ]
    timeline = build(poses, timing_for(focal_set.kind, settings))
    print(f"  Timeline: {len(timeline)} keyframes, {timeline.duration:.1f}s")

    renderer = FrameRenderer(image, PREVIEW_VIEWPORT, rect)
    frame_iter, total_frames = renderer.frames(timeline, fps=PREVIEW_FPS)
    frames = list(frame_iter)
    frames[0].save(
        output_path,
        save_all=True,
        append_images=frames[1:],
        duration=int(1000 / PREVIEW_FPS),
        loop=0,
    )
    print(f"  Wrote {total_frames} frames to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
