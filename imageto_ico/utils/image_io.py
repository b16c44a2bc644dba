"""
Source image loading and path helpers.
"""
import io
import os

from PIL import Image, UnidentifiedImageError

from ..core.errors import InputNotFound, UnsupportedFormat, DecodeError


# Vector sources are rendered at this width before resampling
SVG_RENDER_SIZE = 1024

SUPPORTED_FORMATS = ('jpg', 'jpeg', 'png', 'webp', 'gif', 'svg', 'tiff', 'tif', 'bmp', 'ico')


class ImageMetadata:
    """Container for source image metadata."""

    def __init__(self):
        self.width = 0
        self.height = 0
        self.format = None
        self.mode = None
        self.frames = 1
        self.filepath = None

    @property
    def size_str(self):
        return f"{self.width}x{self.height}"


def get_extension(filepath):
    """Lower-case extension without the dot ('' if none)."""
    return os.path.splitext(filepath)[1].lower().lstrip('.')


def supported_formats():
    """Return list of supported input extensions."""
    return list(SUPPORTED_FORMATS)


def is_supported(filepath):
    """Check a path's extension against the supported formats."""
    return get_extension(filepath) in SUPPORTED_FORMATS


def _open_svg(filepath):
    # cairosvg needs the native cairo library at import time
    import cairosvg

    try:
        png_data = cairosvg.svg2png(url=filepath, output_width=SVG_RENDER_SIZE)
    except Exception as e:
        raise DecodeError(f"Failed to render SVG {filepath}: {e}") from e
    return Image.open(io.BytesIO(png_data)), 'SVG'


def load_image(filepath):
    """
    Load a source image as RGBA.

    Multi-frame sources (GIF, TIFF, ICO) use their first frame. SVG sources
    are rasterized first.

    Args:
        filepath: Path to image file

    Returns:
        Tuple of (PIL RGBA image, ImageMetadata)
    """
    if not os.path.isfile(filepath):
        raise InputNotFound(f"Image not found: {filepath}")

    metadata = ImageMetadata()
    metadata.filepath = filepath

    try:
        if get_extension(filepath) == 'svg':
            pil_img, source_format = _open_svg(filepath)
        else:
            pil_img = Image.open(filepath)
            source_format = pil_img.format

        with pil_img:
            metadata.width, metadata.height = pil_img.size
            metadata.format = source_format
            metadata.mode = pil_img.mode
            metadata.frames = getattr(pil_img, 'n_frames', 1)

            image = pil_img.convert('RGBA')
    except UnidentifiedImageError as e:
        raise UnsupportedFormat(f"Unrecognized image format: {filepath}") from e
    except PermissionError as e:
        raise InputNotFound(f"Image not readable: {filepath}") from e
    except (OSError, EOFError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to load image {filepath}: {e}") from e

    return image, metadata


def get_output_path(input_path, output_dir=None, suffix='', extension='.ico'):
    """
    Generate the ICO path for a source image.

    Args:
        input_path: Source file path
        output_dir: Target directory (None for the source's directory)
        suffix: Suffix to add before extension

    Returns:
        New file path
    """
    directory = output_dir if output_dir is not None else os.path.dirname(input_path)
    name = os.path.splitext(os.path.basename(input_path))[0]
    return os.path.join(directory, f"{name}{suffix}{extension}")


def format_size(size_bytes):
    """Human-readable byte count."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def get_file_info(filepath):
    """
    Get basic file information.

    Args:
        filepath: Path to file

    Returns:
        Dict with file info, or None if the file does not exist
    """
    if not os.path.exists(filepath):
        return None

    size_bytes = os.stat(filepath).st_size

    return {
        'path': filepath,
        'name': os.path.basename(filepath),
        'size_bytes': size_bytes,
        'size_str': format_size(size_bytes),
        'extension': get_extension(filepath),
    }
