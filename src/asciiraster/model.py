from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np

from asciiraster.errors import ConfigError

# ITU-R 601-2 luma, the same weights Pillow uses for "L" conversion
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


@dataclass(frozen=True, eq=False)
class Frame:
    pixels: np.ndarray  # (height, width, 4) uint8 RGBA, read-only
    sequence_index: int = 0
    delay: int | None = None  # milliseconds

    @classmethod
    def from_array(cls, pixels: np.ndarray, sequence_index: int = 0, delay: int | None = None) -> Frame:
        arr = np.array(pixels, dtype=np.uint8, copy=True)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) RGBA array, got shape {arr.shape}")
        arr.flags.writeable = False
        return cls(pixels=arr, sequence_index=sequence_index, delay=delay)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class Grid:
    """Sampled cells of one frame as row-major numpy arrays.

    The cell at (row, col) is ``luminance[row, col]``, ``colours[row, col]`` and
    ``chars[row][col]``.

    ``chars`` holds one string per row and stays None until the charset mapper
    has selected a character for every cell.
    """

    luminance: np.ndarray  # (rows, cols) float64 in [0, 1]
    colours: np.ndarray  # (rows, cols, 3) uint8
    chars: list[str] | None = field(default=None)

    def __post_init__(self):
        if self.luminance.shape != self.colours.shape[:2]:
            raise ValueError("luminance and colours disagree on grid shape")
        if self.chars is not None:
            if len(self.chars) != self.rows or any(len(row) != self.cols for row in self.chars):
                raise ValueError(f"chars must be {self.rows} rows of {self.cols} characters")

    @property
    def rows(self) -> int:
        return self.luminance.shape[0]

    @property
    def cols(self) -> int:
        return self.luminance.shape[1]

    @property
    def complete(self) -> bool:
        return self.chars is not None

    def with_chars(self, chars: list[str]) -> Grid:
        return replace(self, chars=list(chars))

    def colour_at(self, row: int, col: int) -> tuple[int, int, int]:
        r, g, b = self.colours[row, col]
        return int(r), int(g), int(b)


@dataclass(frozen=True)
class Charset:
    """Characters ordered from most transparent to most opaque."""

    glyphs: tuple[str, ...]

    def __post_init__(self):
        if not self.glyphs:
            raise ConfigError("A charset needs at least one character")
        for glyph in self.glyphs:
            if len(glyph) != 1:
                raise ConfigError(f"Charset entries must be single characters, got {glyph!r}")

    def __len__(self) -> int:
        return len(self.glyphs)


def luminance_of(colours: np.ndarray) -> np.ndarray:
    """Luma in [0, 1] for an array of RGB triples (last axis)."""
    return (np.asarray(colours, dtype=np.float64) @ LUMA_WEIGHTS) / 255.0
