"""An in-memory monochrome display surface with a page-organised pixel buffer."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, NamedTuple, Optional, Sequence


class Color(IntEnum):
    BLACK = 0
    WHITE = 1
    INVERSE = 2


class TextAlignment(IntEnum):
    LEFT = 0
    RIGHT = 1
    CENTER = 2
    CENTER_BOTH = 3


class Geometry(IntEnum):
    G128_64 = 0
    G128_32 = 1
    G64_48 = 2
    G64_32 = 3
    RAWMODE = 4


class HwI2c(IntEnum):
    ONE = 0
    TWO = 1


class DisplayCommand(IntEnum):
    """Controller command bytes."""

    SETLOWCOLUMN = 0x00
    EXTERNALVCC = 0x01
    SWITCHCAPVCC = 0x02
    SETHIGHCOLUMN = 0x10
    MEMORYMODE = 0x20
    COLUMNADDR = 0x21
    PAGEADDR = 0x22
    SETSTARTLINE = 0x40
    SETCONTRAST = 0x81
    CHARGEPUMP = 0x8D
    SEGREMAP = 0xA0
    SETSEGMENTREMAP = 0xA1
    DISPLAYALLON_RESUME = 0xA4
    DISPLAYALLON = 0xA5
    NORMALDISPLAY = 0xA6
    INVERTDISPLAY = 0xA7
    SETMULTIPLEX = 0xA8
    DISPLAYOFF = 0xAE
    DISPLAYON = 0xAF
    COMSCANINC = 0xC0
    COMSCANDEC = 0xC8
    SETDISPLAYOFFSET = 0xD3
    SETDISPLAYCLOCKDIV = 0xD5
    SETPRECHARGE = 0xD9
    SETCOMPINS = 0xDA
    SETVCOMDETECT = 0xDB


_SIZES = {
    Geometry.G128_64: (128, 64),
    Geometry.G128_32: (128, 32),
    Geometry.G64_48: (64, 48),
    Geometry.G64_32: (64, 32),
}


class DirtyRegion(NamedTuple):
    """Columns and pages that changed since the previous refresh."""

    min_x: int
    max_x: int
    min_page: int
    max_page: int


class DisplaySurface:
    """A display held in memory; each byte covers eight vertical pixels of one page."""

    def __init__(self, geometry: Geometry = Geometry.G128_64, width: int = 0, height: int = 0) -> None:
        self.geometry = Geometry(geometry)
        if self.geometry == Geometry.RAWMODE:
            if width <= 0 or height <= 0:
                raise ValueError("raw mode needs a width and a height")
            self.width, self.height = width, height
        else:
            self.width, self.height = _SIZES[self.geometry]
        pages = (self.height + 7) // 8
        self.buffer = bytearray(self.width * pages)
        self.buffer_back = bytearray(len(self.buffer))
        self.color = Color.WHITE
        self.text_alignment = TextAlignment.LEFT
        self.font: Any = None
        self.operations: list[tuple] = []
        self.refreshes = 0

    def pixel(self, x: int, y: int) -> bool:
        """Whether the pixel at (x, y) is lit in the drawing buffer."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) is outside the display")
        return bool(self.buffer[x + (y >> 3) * self.width] & (1 << (y & 7)))

    def _plot(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        index = x + (y >> 3) * self.width
        mask = 1 << (y & 7)
        if self.color == Color.WHITE:
            self.buffer[index] |= mask
        elif self.color == Color.BLACK:
            self.buffer[index] &= ~mask & 0xFF
        else:
            self.buffer[index] ^= mask

    def clear(self) -> None:
        """Blank the drawing buffer and forget recorded operations."""
        self.buffer[:] = bytes(len(self.buffer))
        self.operations.clear()

    def display(self) -> Optional[DirtyRegion]:
        """Push the drawing buffer out; return the changed region, or None if nothing changed."""
        self.refreshes += 1
        region: Optional[DirtyRegion] = None
        for index, (new, old) in enumerate(zip(self.buffer, self.buffer_back)):
            if new == old:
                continue
            x, page = index % self.width, index // self.width
            if region is None:
                region = DirtyRegion(x, x, page, page)
            else:
                region = DirtyRegion(
                    min(region.min_x, x), max(region.max_x, x),
                    min(region.min_page, page), max(region.max_page, page),
                )
        self.buffer_back[:] = self.buffer
        return region

    def set_font(self, font: Any) -> None:
        """Choose the font used for later text."""
        self.font = font

    def set_text_alignment(self, alignment: TextAlignment) -> None:
        """Set the anchor that text is drawn relative to."""
        self.text_alignment = TextAlignment(alignment)

    def draw_fast_image(self, x: int, y: int, width: int, height: int, image: Sequence[int]) -> None:
        """Draw an image stored column by column, one byte per eight rows, low bit on top."""
        if width <= 0 or height <= 0:
            return
        raster = 1 + ((height - 1) >> 3)
        needed = width * raster
        if len(image) < needed:
            raise ValueError(f"image needs {needed} bytes, got {len(image)}")
        for i in range(needed):
            byte = image[i]
            column = x + i // raster
            row = (i % raster) * 8
            for bit in range(8):
                if byte >> bit & 1 and row + bit < height:
                    self._plot(column, y + row + bit)
        self.operations.append(("image", x, y, width, height))

    def draw_string(self, x: int, y: int, text: str) -> int:
        """Record text at (x, y) with the current alignment; return the characters written."""
        self.operations.append(("string", x, y, text, self.text_alignment))
        return len(text)

    def draw_progress_bar(self, x: int, y: int, width: int, height: int, progress: int) -> None:
        """Record a progress bar whose progress is a percentage from 0 to 100."""
        if not 0 <= progress <= 100:
            raise ValueError(f"progress must be between 0 and 100, got {progress}")
        self.operations.append(("progress_bar", x, y, width, height, progress))