import logging
import math
import os
from collections import namedtuple
from functools import lru_cache
from io import BytesIO

from dotenv import load_dotenv
from PIL import Image, ImageDraw, ImageFont

from entries import PALETTE

load_dotenv()

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi
LABEL_RADIUS = 0.75
FALLBACK_FRAME_MS = 50


def frame_ms_from_env():
    """Frame interval from WHEEL_FRAME_MS, falling back to 50ms when unset or not positive"""
    value = os.getenv('WHEEL_FRAME_MS', str(FALLBACK_FRAME_MS))
    try:
        frame_ms = int(value)
    except ValueError:
        frame_ms = 0
    if frame_ms <= 0:
        logger.warning(f"Invalid WHEEL_FRAME_MS {value!r}, using {FALLBACK_FRAME_MS}ms")
        return FALLBACK_FRAME_MS
    return frame_ms


DEFAULT_SIZE = int(os.getenv('WHEEL_SIZE', 480))
DEFAULT_FRAME_MS = frame_ms_from_env()
FINAL_FRAME_MS = 4000

BACKGROUND = (24, 24, 27)
LABEL_COLOR = (255, 255, 255)
POINTER_COLOR = (250, 204, 21)

# Angles are in image coordinates (y grows downwards), the same frame Pillow's
# pieslice uses, so 3pi/2 is the top of the wheel.
WheelSlice = namedtuple("WheelSlice", [
    "index", "name", "color",
    "start_angle", "end_angle",
    "label_angle", "label_x", "label_y",
])


def render_slices(entries, rotation, radius=1.0):
    """Geometry of every slice once the wheel is turned by rotation radians.

    Slice i covers [i*arc, (i+1)*arc) on the unrotated wheel. Label points are
    relative to the wheel centre.
    """
    count = len(entries)
    if count == 0:
        return []

    arc = TWO_PI / count
    slices = []
    for i, entry in enumerate(entries):
        start = i * arc + rotation
        mid = start + arc / 2
        slices.append(WheelSlice(
            index=i,
            name=entry.name,
            color=PALETTE[entry.color_index % len(PALETTE)],
            start_angle=start,
            end_angle=start + arc,
            label_angle=mid,
            label_x=math.cos(mid) * radius * LABEL_RADIUS,
            label_y=math.sin(mid) * radius * LABEL_RADIUS,
        ))
    return slices


@lru_cache(maxsize=8)
def _load_font(size):
    for name in ("arialbd.ttf", "arial.ttf", "DejaVuSans-Bold.ttf"):
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default()


def _draw_label(image, text, font, center, slice_):
    """Paste text along the slice's radius, right-aligned at the label point"""
    probe = ImageDraw.Draw(image)
    bbox = probe.textbbox((0, 0), text, font=font)
    text_w = bbox[2] - bbox[0]
    text_h = bbox[3] - bbox[1]

    label = Image.new('RGBA', (text_w + 4, text_h + 4), (0, 0, 0, 0))
    ImageDraw.Draw(label).text((2 - bbox[0], 2 - bbox[1]), text, fill=LABEL_COLOR, font=font)
    rotated = label.rotate(-math.degrees(slice_.label_angle), expand=True, resample=Image.Resampling.BICUBIC)

    # Shift the label's centre inwards by half its width so its end meets the label point
    label_radius = math.hypot(slice_.label_x, slice_.label_y) - label.width / 2
    x = center + math.cos(slice_.label_angle) * label_radius - rotated.width / 2
    y = center + math.sin(slice_.label_angle) * label_radius - rotated.height / 2
    image.paste(rotated, (int(round(x)), int(round(y))), rotated)


def draw_wheel(entries, rotation, size=None, highlight=None):
    """Draw the wheel as a Pillow image. An empty wheel gives a blank canvas."""
    size = size or DEFAULT_SIZE
    image = Image.new('RGB', (size, size), color=BACKGROUND)
    if not entries:
        return image

    draw = ImageDraw.Draw(image)
    center = size / 2
    radius = size / 2 - 10
    box = [center - radius, center - radius, center + radius, center + radius]
    font = _load_font(max(10, size // 34))

    slices = render_slices(entries, rotation, radius)
    for slice_ in slices:
        start = math.degrees(slice_.start_angle) % 360
        end = start + math.degrees(slice_.end_angle - slice_.start_angle)
        draw.pieslice(box, start, end, fill=slice_.color, outline=(255, 255, 255), width=1)

    for slice_ in slices:
        _draw_label(image, slice_.name, font, center, slice_)

    if highlight is not None and 0 <= highlight < len(slices):
        slice_ = slices[highlight]
        start = math.degrees(slice_.start_angle) % 360
        end = start + math.degrees(slice_.end_angle - slice_.start_angle)
        draw.pieslice(box, start, end, outline=POINTER_COLOR, width=max(3, size // 80))

    # Hub and the fixed pointer at the top
    hub = max(8, size // 20)
    draw.ellipse([center - hub, center - hub, center + hub, center + hub], fill=(255, 255, 255))
    pointer_w = max(10, size // 30)
    draw.polygon(
        [(center - pointer_w, 0), (center + pointer_w, 0), (center, pointer_w * 2 + 4)],
        fill=POINTER_COLOR, outline=(0, 0, 0),
    )
    return image


def image_to_bytes(image, format='PNG'):
    """Convert PIL Image to BytesIO for telegram upload."""
    bio = BytesIO()
    image.save(bio, format=format)
    bio.seek(0)
    return bio


def save_spin_gif(entries, rotations, size=None, frame_ms=None, highlight=None):
    """Render one frame per rotation into an animated GIF that holds on the last frame"""
    if not rotations:
        raise ValueError("At least one frame is needed to build an animation")
    frame_ms = frame_ms or DEFAULT_FRAME_MS

    frames = [draw_wheel(entries, rotation, size) for rotation in rotations[:-1]]
    frames.append(draw_wheel(entries, rotations[-1], size, highlight=highlight))
    durations = [frame_ms] * (len(frames) - 1) + [FINAL_FRAME_MS]

    bio = BytesIO()
    frames[0].save(
        bio,
        format='GIF',
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        loop=0,
    )
    bio.seek(0)
    logger.info(f"Spin animation rendered: {len(frames)} frames, {bio.getbuffer().nbytes} bytes")
    return bio
