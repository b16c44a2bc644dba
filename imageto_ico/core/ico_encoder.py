"""
ICO container encoder.

Lays out the 6-byte ICONDIR header, one 16-byte ICONDIRENTRY per image and
the concatenated image payloads. Payloads are written verbatim (PNG or
DIB), in the order they are given.
"""
import numbers
import struct
from collections import namedtuple

from .errors import EncodeInvariantViolation, IcoFormatError


HEADER_FORMAT = '<HHH'      # reserved, type, count
ENTRY_FORMAT = '<BBBBHHII'  # width, height, colors, reserved, planes, bpp, length, offset
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
ENTRY_SIZE = struct.calcsize(ENTRY_FORMAT)

ICO_TYPE = 1
COLOR_PLANES = 1
BITS_PER_PIXEL = 32
MIN_ICON_SIZE = 1
MAX_ICON_SIZE = 256
MAX_UINT32 = 0xFFFFFFFF


ImagePayload = namedtuple('ImagePayload', ['size', 'data'])

IconDirEntry = namedtuple('IconDirEntry', [
    'width', 'height', 'color_count', 'reserved',
    'planes', 'bit_count', 'size', 'offset',
])


def is_valid_size(size):
    """Check whether an edge length fits a directory entry."""
    return (
        isinstance(size, numbers.Integral)
        and not isinstance(size, bool)
        and MIN_ICON_SIZE <= size <= MAX_ICON_SIZE
    )


def encode_dimension(size):
    """
    Map an edge length to its one-byte directory field.

    256 does not fit in a byte and is stored as 0; every other valid size
    is stored as-is.
    """
    if not is_valid_size(size):
        raise EncodeInvariantViolation(
            f"Icon size {size!r} is outside {MIN_ICON_SIZE}-{MAX_ICON_SIZE}"
        )
    return 0 if size == MAX_ICON_SIZE else int(size)


def decode_dimension(value):
    """Inverse of encode_dimension for a raw directory byte."""
    return MAX_ICON_SIZE if value == 0 else value


class IcoWriter:
    """
    Cursor-based writer for one ICO container.

    The header and directory region is allocated up front; each added image
    writes its entry at the cursor and advances the running payload offset.
    """

    def __init__(self, count):
        if count < 1:
            raise EncodeInvariantViolation("ICO container needs at least one image")
        if count > 0xFFFF:
            raise EncodeInvariantViolation(f"Too many images for one ICO: {count}")

        self.count = count
        self._directory = bytearray(HEADER_SIZE + ENTRY_SIZE * count)
        self._cursor = 0
        self._payloads = []
        self._next_offset = HEADER_SIZE + ENTRY_SIZE * count

        self._write(HEADER_FORMAT, 0, ICO_TYPE, count)

    def _write(self, fmt, *values):
        struct.pack_into(fmt, self._directory, self._cursor, *values)
        self._cursor += struct.calcsize(fmt)

    @property
    def data_offset(self):
        """Absolute offset the next payload will start at."""
        return self._next_offset

    def add_image(self, size, data):
        """
        Append one image.

        Args:
            size: Square edge length in pixels (1-256)
            data: Encoded payload bytes (PNG stream or DIB)

        Returns:
            The IconDirEntry written for this image
        """
        if len(self._payloads) >= self.count:
            raise EncodeInvariantViolation(
                f"ICO directory already holds {self.count} images"
            )
        if not data:
            raise EncodeInvariantViolation(f"Empty payload for size {size!r}")

        dimension = encode_dimension(size)
        length = len(data)
        offset = self._next_offset
        if offset + length > MAX_UINT32:
            raise EncodeInvariantViolation("ICO payloads exceed 4 GiB")

        entry = IconDirEntry(
            dimension, dimension, 0, 0,
            COLOR_PLANES, BITS_PER_PIXEL, length, offset,
        )
        self._write(ENTRY_FORMAT, *entry)
        self._payloads.append(bytes(data))
        self._next_offset += length
        return entry

    def getvalue(self):
        """Return the finished container."""
        if len(self._payloads) != self.count:
            raise EncodeInvariantViolation(
                f"Expected {self.count} images, got {len(self._payloads)}"
            )
        return bytes(self._directory) + b''.join(self._payloads)


def encode(payloads):
    """
    Build an ICO file from an ordered sequence of (size, bytes) pairs.

    Directory entries and payloads keep the input order. Raises
    EncodeInvariantViolation for an empty sequence, an empty payload or a
    size outside 1-256.
    """
    payloads = list(payloads)
    if not payloads:
        raise EncodeInvariantViolation("Cannot encode an ICO with no images")

    writer = IcoWriter(len(payloads))
    for size, data in payloads:
        writer.add_image(size, data)
    return writer.getvalue()


def encoded_length(payload_lengths):
    """Total container length for the given payload lengths."""
    payload_lengths = list(payload_lengths)
    return HEADER_SIZE + ENTRY_SIZE * len(payload_lengths) + sum(payload_lengths)


def parse_ico(data):
    """
    Read the directory of an ICO container.

    Args:
        data: Complete file contents

    Returns:
        List of IconDirEntry with width/height mapped back to pixels
    """
    if len(data) < HEADER_SIZE:
        raise IcoFormatError(f"File too short for an ICO header ({len(data)} bytes)")

    reserved, image_type, count = struct.unpack_from(HEADER_FORMAT, data, 0)
    if reserved != 0 or image_type != ICO_TYPE:
        raise IcoFormatError(
            f"Not an ICO header (reserved={reserved}, type={image_type})"
        )
    if count == 0:
        raise IcoFormatError("ICO directory is empty")

    data_start = HEADER_SIZE + ENTRY_SIZE * count
    if len(data) < data_start:
        raise IcoFormatError(f"Directory of {count} entries is truncated")

    entries = []
    for index in range(count):
        raw = IconDirEntry(*struct.unpack_from(
            ENTRY_FORMAT, data, HEADER_SIZE + ENTRY_SIZE * index
        ))
        if raw.offset < data_start or raw.offset + raw.size > len(data):
            raise IcoFormatError(
                f"Entry {index} points outside the file "
                f"(offset={raw.offset}, size={raw.size})"
            )
        entries.append(raw._replace(
            width=decode_dimension(raw.width),
            height=decode_dimension(raw.height),
        ))

    return entries


def extract_payloads(data):
    """Return (IconDirEntry, payload bytes) pairs in directory order."""
    return [
        (entry, bytes(data[entry.offset:entry.offset + entry.size]))
        for entry in parse_ico(data)
    ]
