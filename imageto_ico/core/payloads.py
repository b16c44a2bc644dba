"""
Per-size payload rendering.

Turns a loaded RGBA source into the encoded bitmap stored for one ICO
directory entry: the source scaled to fit a square canvas, centred, with
the remaining area fully transparent.
"""
import io
import logging
import struct

import numpy as np
import cv2
from PIL import Image

from .errors import InvalidSize, RasterizeError
from .ico_encoder import ImagePayload, is_valid_size, MIN_ICON_SIZE, MAX_ICON_SIZE


logger = logging.getLogger(__name__)

PAYLOAD_FORMATS = ('png', 'bmp')

RESAMPLE_METHODS = {
    'area': cv2.INTER_AREA,
    'lanczos': cv2.INTER_LANCZOS4,
    'cubic': cv2.INTER_CUBIC,
    'linear': cv2.INTER_LINEAR,
    'nearest': cv2.INTER_NEAREST,
}

DIB_HEADER_FORMAT = '<IiiHHIIiiII'
DIB_HEADER_SIZE = struct.calcsize(DIB_HEADER_FORMAT)


def get_interpolation(resample, scale):
    """
    Resolve a resample name to an OpenCV interpolation flag.

    'auto' picks area averaging when shrinking and Lanczos when enlarging.
    """
    if resample == 'auto':
        return cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LANCZOS4
    try:
        return RESAMPLE_METHODS[resample]
    except KeyError:
        raise ValueError(f"Unknown resample method: {resample!r}") from None


def premultiply(rgba):
    """Convert uint8 RGBA to float32 premultiplied alpha."""
    result = rgba.astype(np.float32)
    alpha = result[:, :, 3:4] / 255.0
    result[:, :, :3] *= alpha
    return result


def unpremultiply(premultiplied):
    """Convert float32 premultiplied RGBA back to straight uint8 RGBA."""
    result = np.clip(premultiplied, 0.0, 255.0)
    alpha = result[:, :, 3:4]
    # Resampling ringing can leave colour above its alpha
    rgb = np.minimum(result[:, :, :3], alpha)
    rgb = np.divide(rgb * 255.0, alpha, out=np.zeros_like(rgb), where=alpha > 0)
    result[:, :, :3] = rgb
    return np.rint(result).astype(np.uint8)


def fit_to_square(rgba, size, resample='auto'):
    """
    Scale an image to fit inside a square canvas, preserving aspect ratio.

    Args:
        rgba: Source image (numpy uint8, HxWx4)
        size: Canvas edge length in pixels
        resample: Resample method name (see RESAMPLE_METHODS) or 'auto'

    Returns:
        size x size x 4 uint8 array, content centred, padding transparent
    """
    h, w = rgba.shape[:2]
    scale = min(size / w, size / h)
    new_w = min(size, max(1, round(w * scale)))
    new_h = min(size, max(1, round(h * scale)))

    interpolation = get_interpolation(resample, scale)

    # Resample in premultiplied space so transparent pixels don't bleed colour
    premultiplied = premultiply(rgba)
    if (new_w, new_h) != (w, h):
        premultiplied = cv2.resize(premultiplied, (new_w, new_h), interpolation=interpolation)
    scaled = unpremultiply(premultiplied)

    canvas = np.zeros((size, size, 4), dtype=np.uint8)
    x = (size - new_w) // 2
    y = (size - new_h) // 2
    canvas[y:y + new_h, x:x + new_w] = scaled

    return canvas


def encode_png(canvas, compress_level=6):
    """Encode an RGBA array as a PNG stream."""
    buffer = io.BytesIO()
    Image.fromarray(canvas).save(buffer, format='PNG', compress_level=compress_level)
    return buffer.getvalue()


def encode_dib(canvas):
    """
    Encode an RGBA array as an ICO-style 32-bit DIB.

    Layout: BITMAPINFOHEADER with doubled height (colour + mask), bottom-up
    BGRA rows, then a 1-bpp AND mask with rows padded to 32 bits. Mask bits
    are set where the pixel is fully transparent.
    """
    height, width = canvas.shape[:2]

    bottom_up = canvas[::-1]
    xor_bitmap = np.ascontiguousarray(bottom_up[:, :, [2, 1, 0, 3]]).tobytes()

    mask_row_bytes = ((width + 31) // 32) * 4
    packed = np.packbits(bottom_up[:, :, 3] == 0, axis=1)
    and_mask = np.zeros((height, mask_row_bytes), dtype=np.uint8)
    and_mask[:, :packed.shape[1]] = packed
    and_mask = and_mask.tobytes()

    header = struct.pack(
        DIB_HEADER_FORMAT,
        DIB_HEADER_SIZE,
        width,
        height * 2,
        1,                                  # planes
        32,                                 # bits per pixel
        0,                                  # BI_RGB
        len(xor_bitmap) + len(and_mask),
        0, 0,                               # pixels per metre
        0, 0,                               # colours used / important
    )

    return header + xor_bitmap + and_mask


def render_payload(image, size, payload_format='png', resample='auto', compress_level=6):
    """
    Render one ICO payload.

    Args:
        image: Source PIL image (any mode, converted to RGBA)
        size: Square edge length in pixels (1-256)
        payload_format: 'png' (default) or 'bmp' for an uncompressed DIB
        resample: Resample method name or 'auto'
        compress_level: zlib level for PNG payloads (0-9)

    Returns:
        ImagePayload(size, bytes)
    """
    if not is_valid_size(size):
        raise InvalidSize(
            f"Icon size {size!r} is outside {MIN_ICON_SIZE}-{MAX_ICON_SIZE}"
        )
    size = int(size)
    if payload_format not in PAYLOAD_FORMATS:
        raise ValueError(f"Unknown payload format: {payload_format!r}")
    if resample != 'auto' and resample not in RESAMPLE_METHODS:
        raise ValueError(f"Unknown resample method: {resample!r}")

    try:
        rgba = np.asarray(image.convert('RGBA'))
        canvas = fit_to_square(rgba, size, resample)
        if payload_format == 'png':
            data = encode_png(canvas, compress_level)
        else:
            data = encode_dib(canvas)
    except (cv2.error, OSError, ValueError, MemoryError) as e:
        raise RasterizeError(f"Failed to render {size}x{size} icon: {e}") from e

    logger.debug("Rendered %dx%d %s payload (%d bytes)", size, size, payload_format, len(data))
    return ImagePayload(size, data)
