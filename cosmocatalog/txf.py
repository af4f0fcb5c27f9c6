"""
Glyph atlas fonts in the GLUT TXF format.

Layout (all multi-byte values in the byte order given by the endianness tag):

    magic           4 bytes   b'\\xfftxf'
    endianness      u32       0x12345678 read big-endian means big-endian data
    format          u32       must be 0
    width, height   u32       atlas size in pixels, each in [1, 4096]
    max ascent      u32       (ignored, recomputed from the glyphs)
    max descent     u32       (ignored, recomputed from the glyphs)
    glyph count     u32
    glyphs          12 bytes each
    pixels          width * height bytes of 8-bit alpha
"""
import logging
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Tuple

import numpy as np

from .constants import MAX_ATLAS_SIZE
from .errors import CatalogIOError, TruncatedFontData, UnsupportedFontFormat

logger = logging.getLogger(__name__)

TXF_MAGIC = b'\xfftxf'
BIG_ENDIAN_TAG = 0x12345678
LITTLE_ENDIAN_TAG = 0x78563412

HEADER_FIELDS = ['format', 'width', 'height', 'max_ascent', 'max_descent', 'glyph_count']


def _header_dtype(byte_order: str) -> np.dtype:
    return np.dtype([(name, byte_order + 'u4') for name in HEADER_FIELDS])


def _glyph_dtype(byte_order: str) -> np.dtype:
    return np.dtype([
        ('char_id', byte_order + 'u2'),
        ('width', 'u1'),
        ('height', 'u1'),
        ('x_offset', 'i1'),
        ('y_offset', 'i1'),
        ('advance', 'i1'),
        ('padding', 'i1'),
        ('x', byte_order + 'u2'),
        ('y', byte_order + 'u2'),
    ])


class Glyph(NamedTuple):
    """A single character in the atlas."""
    char_id: int
    size: Tuple[int, int]  # pixels
    offset: Tuple[int, int]  # bearing from the pen position, pixels
    advance: int  # pixels
    texture_coords: np.ndarray  # (4, 2): lower left, lower right, upper right, upper left


class TextureFont:
    """A bitmap font whose glyphs are packed into a single alpha texture."""

    def __init__(self, glyphs: Dict[int, Glyph], pixels: np.ndarray):
        self.glyphs = glyphs
        self.pixels = pixels
        self.max_ascent = max((g.size[1] + g.offset[1] for g in glyphs.values()), default=0)
        self.max_descent = max((-g.offset[1] for g in glyphs.values()), default=0)

    @property
    def atlas_size(self) -> Tuple[int, int]:
        """(width, height) of the glyph texture."""
        height, width = self.pixels.shape
        return width, height

    def lookup_glyph(self, ch: str) -> Optional[Glyph]:
        return self.glyphs.get(ord(ch))

    def text_width(self, text: str) -> int:
        """Width of ``text`` in pixels; characters without a glyph are skipped."""
        width = 0
        for ch in text:
            glyph = self.lookup_glyph(ch)
            if glyph is not None:
                width += glyph.advance
        return width

    @classmethod
    def load_txf(cls, data: bytes) -> 'TextureFont':
        """
        Decode a TXF font.

        Raises:
            UnsupportedFontFormat: bad magic, endianness tag, format or atlas size
            TruncatedFontData: the data ends before the header, a glyph record
                or the pixel payload is complete
        """
        if len(data) < 8:
            raise TruncatedFontData("Incomplete header in texture font")
        if data[:4] != TXF_MAGIC:
            raise UnsupportedFontFormat("Bad header in texture font file")

        tag = int.from_bytes(data[4:8], 'big')
        if tag == BIG_ENDIAN_TAG:
            byte_order = '>'
        elif tag == LITTLE_ENDIAN_TAG:
            byte_order = '<'
        else:
            raise UnsupportedFontFormat(f"Bad endianness tag 0x{tag:08x} in texture font header")

        offset = 8
        header_dtype = _header_dtype(byte_order)
        if len(data) < offset + header_dtype.itemsize:
            raise TruncatedFontData("Error reading texture font header values")
        header = np.frombuffer(data, dtype=header_dtype, count=1, offset=offset)[0]
        offset += header_dtype.itemsize

        if header['format'] != 0:
            raise UnsupportedFontFormat(f"Unsupported texture font format {header['format']}")

        width = int(header['width'])
        height = int(header['height'])
        if not (1 <= width <= MAX_ATLAS_SIZE and 1 <= height <= MAX_ATLAS_SIZE):
            raise UnsupportedFontFormat(f"Bad glyph texture size in font ({width}x{height})")

        glyph_count = int(header['glyph_count'])
        glyph_dtype = _glyph_dtype(byte_order)
        glyph_bytes = glyph_count * glyph_dtype.itemsize
        if len(data) < offset + glyph_bytes:
            complete = (len(data) - offset) // glyph_dtype.itemsize
            raise TruncatedFontData(f"Error reading glyph {complete + 1} in texture font")
        records = np.frombuffer(data, dtype=glyph_dtype, count=glyph_count, offset=offset)
        offset += glyph_bytes

        pixel_count = width * height
        if len(data) < offset + pixel_count:
            raise TruncatedFontData("Error reading pixel data in texture font")
        pixels = np.frombuffer(data, dtype=np.uint8, count=pixel_count, offset=offset)
        pixels = pixels.reshape(height, width).copy()

        texel_scale = np.array([1.0 / width, 1.0 / height])
        half_texel = 0.5 * texel_scale

        glyphs = {}
        for record in records:
            size = np.array([record['width'], record['height']], dtype=float) * texel_scale
            origin = np.array([record['x'], record['y']], dtype=float) * texel_scale + half_texel
            texture_coords = np.array([
                origin,
                origin + [size[0], 0.0],
                origin + size,
                origin + [0.0, size[1]],
            ])
            glyph = Glyph(
                char_id=int(record['char_id']),
                size=(int(record['width']), int(record['height'])),
                offset=(int(record['x_offset']), int(record['y_offset'])),
                advance=int(record['advance']),
                texture_coords=texture_coords,
            )
            glyphs[glyph.char_id] = glyph

        return cls(glyphs, pixels)


def load_font(path: str | Path) -> TextureFont:
    """Read a TXF font file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CatalogIOError(f"Unable to read font file {path}: {exc}") from exc
    font = TextureFont.load_txf(data)
    logger.debug("Loaded font %s with %d glyphs", path, len(font.glyphs))
    return font
