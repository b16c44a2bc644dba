"""
Image to ICO conversion.
Loads a source image, renders one payload per icon size and writes the
encoded ICO container. Batch conversion isolates failures per input file.
"""
import os
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .errors import (
    IcoError, EncodeInvariantViolation, InputNotFound,
    InvalidSize, UnsupportedFormat, WriteFailure,
)
from .ico_encoder import encode, is_valid_size, MIN_ICON_SIZE, MAX_ICON_SIZE
from .payloads import render_payload, PAYLOAD_FORMATS, RESAMPLE_METHODS
from ..utils.config import DEFAULT_SETTINGS, DEFAULT_SIZES
from ..utils import image_io


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion job."""

    success: bool
    input_path: str
    output_path: str
    sizes: tuple = ()
    file_size: int = 0
    original_format: str = None
    original_size: str = None
    error: str = None
    error_kind: str = None


def validate_sizes(sizes):
    """
    Check a size list before any rasterization.

    Returns:
        The sizes as a tuple, in the order given
    """
    sizes = tuple(sizes)
    if not sizes:
        raise InvalidSize("No icon sizes requested")

    invalid = [size for size in sizes if not is_valid_size(size)]
    if invalid:
        raise InvalidSize(
            f"Icon sizes must be between {MIN_ICON_SIZE} and {MAX_ICON_SIZE}, "
            f"got {', '.join(str(s) for s in invalid)}"
        )
    return sizes


class IcoConverter:
    """
    Converts source images to multi-size ICO files.
    """

    def __init__(self, producer=None):
        # producer(image, size, payload_format=, resample=, compress_level=) -> ImagePayload
        self.producer = producer or render_payload

        self.sizes = DEFAULT_SIZES
        self.payload_format = DEFAULT_SETTINGS['payload_format']
        self.resample = DEFAULT_SETTINGS['resample']
        self.compress_level = DEFAULT_SETTINGS['compress_level']
        self.workers = DEFAULT_SETTINGS['workers']

    @property
    def default_sizes(self):
        return DEFAULT_SIZES

    def set_parameters(self, **kwargs):
        """Update conversion parameters."""
        for key, value in kwargs.items():
            if key == 'sizes':
                value = tuple(value)
            elif key == 'payload_format' and value not in PAYLOAD_FORMATS:
                raise ValueError(f"Unknown payload format: {value!r}")
            elif key == 'resample' and value != 'auto' and value not in RESAMPLE_METHODS:
                raise ValueError(f"Unknown resample method: {value!r}")
            if hasattr(self, key):
                setattr(self, key, value)

    def supported_formats(self):
        """Supported input extensions."""
        return image_io.supported_formats()

    def is_supported(self, filepath):
        """Extension-based check before attempting a conversion."""
        return image_io.is_supported(filepath)

    def render_payloads(self, image, sizes):
        """
        Render one payload per size, in the order given.

        The first failing size aborts the remaining ones.
        """
        payloads = []
        for size in sizes:
            payload = self.producer(
                image, size,
                payload_format=self.payload_format,
                resample=self.resample,
                compress_level=self.compress_level,
            )
            payloads.append(payload)
        return payloads

    def _write(self, output_path, data):
        try:
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)
            with open(output_path, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise WriteFailure(f"Could not write {output_path}: {e}") from e

    def convert(self, input_path, output_path, sizes=None):
        """
        Convert one image to an ICO file.

        Args:
            input_path: Source image path
            output_path: Destination .ico path (parent directories are created)
            sizes: Icon edge lengths in output order (None for the defaults)

        Returns:
            ConversionResult; failures are reported, not raised
        """
        input_path = os.path.abspath(input_path)
        output_path = os.path.abspath(output_path)
        icon_sizes = tuple(sizes) if sizes is not None else tuple(self.sizes)
        metadata = None

        try:
            if not os.path.isfile(input_path):
                raise InputNotFound(f"Image not found: {input_path}")
            if not self.is_supported(input_path):
                raise UnsupportedFormat(
                    f"Unsupported file format: .{image_io.get_extension(input_path)} "
                    f"(supported: {', '.join(self.supported_formats())})"
                )
            icon_sizes = validate_sizes(icon_sizes)

            image, metadata = image_io.load_image(input_path)
            payloads = self.render_payloads(image, icon_sizes)
            ico_data = encode(payloads)
            self._write(output_path, ico_data)
        except EncodeInvariantViolation:
            raise
        except IcoError as e:
            logger.warning("Conversion failed for %s: %s", input_path, e)
            return ConversionResult(
                success=False,
                input_path=input_path,
                output_path=output_path,
                sizes=icon_sizes,
                original_format=metadata.format if metadata else None,
                original_size=metadata.size_str if metadata else None,
                error=str(e),
                error_kind=type(e).__name__,
            )

        logger.info("Wrote %s (%d bytes, sizes %s)", output_path, len(ico_data),
                    ', '.join(str(s) for s in icon_sizes))
        return ConversionResult(
            success=True,
            input_path=input_path,
            output_path=output_path,
            sizes=icon_sizes,
            file_size=len(ico_data),
            original_format=metadata.format,
            original_size=metadata.size_str,
        )

    def assign_output_paths(self, input_paths, output_dir):
        """
        Map each input to <output_dir>/<stem>.ico.

        Inputs sharing a stem get _2, _3, ... suffixes so no two jobs write
        the same file.
        """
        used = set()
        output_paths = []
        for input_path in input_paths:
            candidate = image_io.get_output_path(input_path, output_dir)
            n = 2
            while os.path.normcase(candidate) in used:
                candidate = image_io.get_output_path(input_path, output_dir, suffix=f'_{n}')
                n += 1
            used.add(os.path.normcase(candidate))
            output_paths.append(candidate)
        return output_paths

    def _convert_job(self, input_path, output_path, sizes):
        # A defect in one job must not lose the results of the others
        try:
            return self.convert(input_path, output_path, sizes)
        except EncodeInvariantViolation as e:
            logger.exception("Internal error converting %s", input_path)
            return ConversionResult(
                success=False,
                input_path=os.path.abspath(input_path),
                output_path=output_path,
                sizes=tuple(sizes) if sizes is not None else tuple(self.sizes),
                error=str(e),
                error_kind=type(e).__name__,
            )

    def batch_convert(self, input_paths, output_dir, sizes=None):
        """
        Convert several images into one output directory.

        Args:
            input_paths: Source image paths
            output_dir: Directory for the .ico files
            sizes: Icon edge lengths (None for the defaults)

        Returns:
            One ConversionResult per input, in input order
        """
        input_paths = list(input_paths)
        output_dir = os.path.abspath(output_dir)
        jobs = list(zip(input_paths, self.assign_output_paths(input_paths, output_dir)))

        if self.workers <= 1 or len(jobs) <= 1:
            results = [self._convert_job(src, dst, sizes) for src, dst in jobs]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                results = list(executor.map(lambda job: self._convert_job(job[0], job[1], sizes), jobs))

        failed = sum(1 for r in results if not r.success)
        logger.info("Batch complete: %d succeeded, %d failed", len(results) - failed, failed)
        return results


def convert(input_path, output_path, sizes=None):
    """Convert one image with default settings."""
    return IcoConverter().convert(input_path, output_path, sizes)


def batch_convert(input_paths, output_dir, sizes=None):
    """Convert several images with default settings."""
    return IcoConverter().batch_convert(input_paths, output_dir, sizes)


def supported_formats():
    return image_io.supported_formats()


def is_supported(filepath):
    return image_io.is_supported(filepath)
