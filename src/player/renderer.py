"""Frame renderer — a Pillow compositor sink for previews and exports.

Draws the artwork element centred in a black viewport with a camera
transform applied, the same framing the on-screen display uses. Frames are
produced lazily from a generator (no disk writes).
"""

from PIL import Image

from src.camera.transform import IDENTITY
from src.player.sinks import CompositorSink

BACKGROUND = (0, 0, 0)
FRAME_RATE = 30


class FrameRenderer(CompositorSink):
    """Renders artwork under camera transforms into viewport-sized RGB frames."""

    def __init__(self, image, viewport, rect):
        self.image = image.convert("RGB")
        self.viewport = viewport
        self.rect = rect
        self.timeline = None
        self.transform = IDENTITY

    def play(self, timeline):
        self.timeline = timeline
        self.transform = timeline.keyframes[0].transform

    def reset(self):
        self.timeline = None
        self.transform = IDENTITY

    def render(self, transform=None):
        """Render one frame.

        Args:
            transform: CameraTransform; defaults to the sink's current pose.

        Returns:
            PIL Image (RGB) at viewport size.
        """
        transform = transform or self.transform
        vw, vh = int(round(self.viewport.width)), int(round(self.viewport.height))
        scale = transform.scale
        # Top-left of the scaled element in viewport pixels
        left = vw / 2.0 + transform.translate_x - self.rect.width * scale / 2.0
        top = vh / 2.0 + transform.translate_y - self.rect.height * scale / 2.0

        # Map each output pixel back into source image pixels
        sx = self.image.width / (self.rect.width * scale)
        sy = self.image.height / (self.rect.height * scale)
        coeffs = (sx, 0.0, -left * sx, 0.0, sy, -top * sy)

        canvas = Image.new("RGB", (vw, vh), BACKGROUND)
        frame = self.image.transform((vw, vh), Image.AFFINE, coeffs, resample=Image.BILINEAR)
        mask = Image.new("L", self.image.size, 255).transform(
            (vw, vh), Image.AFFINE, coeffs, resample=Image.NEAREST
        )
        canvas.paste(frame, (0, 0), mask)
        return canvas

    def frames(self, timeline=None, fps=FRAME_RATE):
        """Yield one rendered frame per tick of a timeline.

        Returns:
            (frame_iter, total_frames)
        """
        timeline = timeline or self.timeline
        if timeline is None:
            raise ValueError("No timeline to render")
        total_frames = max(int(timeline.duration * fps), 1) + 1

        def _frame_generator():
            for frame_num in range(total_frames):
                t = frame_num / fps
                yield self.render(timeline.sample(t))

        return _frame_generator(), total_frames
