import base64
from dataclasses import dataclass
from io import BytesIO
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import DecodeError, EncodeError

SUPPORTED_FORMATS = {"JPEG", "PNG", "WEBP"}


@dataclass(frozen=True)
class SourceImage:
    """Decoded RGB pixels of one upload. Never mutated after decode."""
    pixels: Image.Image
    width: int
    height: int
    format: str


def projected_base64_size(n: int) -> int:
    # Exact size once base64 encoded with padding: ceil(n / 3) * 4
    return ((n + 2) // 3) * 4


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def format_file_size(n: int) -> str:
    if n == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    size = float(n)
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{round(size, 2):g} {units[i]}"


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    """Composite transparent images onto white, return RGB."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def decode_image(raw: bytes) -> SourceImage:
    """
    Decode JPEG/PNG/WebP bytes into a SourceImage.
    Any failure (empty, corrupt, unsupported format, zero size, bomb) raises DecodeError.
    The bomb threshold is Pillow's global Image.MAX_IMAGE_PIXELS; this module
    leaves it alone, the service raises it from settings in main.py.
    """
    if not raw:
        raise DecodeError("Empty image data.")
    try:
        img = Image.open(BytesIO(raw))
        fmt = (img.format or "").upper()
        if fmt not in SUPPORTED_FORMATS:
            raise DecodeError(f"Unsupported image format: {fmt or 'unknown'}")
        img.load()
        img = ImageOps.exif_transpose(img)
    except DecodeError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Invalid image file: {e}") from e
    except (OSError, SyntaxError, ValueError) as e:
        # truncated or corrupt streams
        raise DecodeError(f"Invalid image file: {e}") from e

    w, h = img.size
    if w <= 0 or h <= 0:
        raise DecodeError(f"Degenerate image dimensions {w}x{h}")
    return SourceImage(pixels=flatten_to_rgb(img), width=w, height=h, format=fmt)


def fit_within(width: int, height: int, long_edge: int) -> Tuple[int, int]:
    """Scale (width, height) so the longer side equals long_edge. Never upscales."""
    longest = max(width, height)
    if long_edge >= longest:
        return width, height
    scale = long_edge / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def resample(src: SourceImage, size: Tuple[int, int]) -> Image.Image:
    if size == (src.width, src.height):
        return src.pixels
    try:
        return src.pixels.resize(size, Image.Resampling.LANCZOS)
    except (OSError, ValueError) as e:
        raise EncodeError(f"Resample to {size[0]}x{size[1]} failed: {e}") from e


def encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = BytesIO()
    try:
        img.save(buf, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as e:
        raise EncodeError(f"JPEG encoder failed at quality {quality}: {e}") from e
    return buf.getvalue()
