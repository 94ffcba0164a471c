"""Writes rasterized cells straight into their final place on a shared canvas.

Cell blocks are all the same size and each cell owns the rectangle
``[col*cw, (col+1)*cw) x [row*ch, (row+1)*ch)``. Those rectangles never overlap,
which is the only thing that makes concurrent writers on one canvas safe.
Variable-size blocks would need locking.
"""

import numpy as np

from asciiraster.glyphs import GlyphRasterizer
from asciiraster.model import Grid


def new_canvas(rows: int, cols: int, cell_width: int, cell_height: int) -> np.ndarray:
    """Fully transparent (rows*cell_height, cols*cell_width, 4) RGBA canvas."""
    return np.zeros((rows * cell_height, cols * cell_width, 4), dtype=np.uint8)


def cell_rect(row: int, col: int, cell_width: int, cell_height: int) -> tuple[slice, slice]:
    return (
        slice(row * cell_height, (row + 1) * cell_height),
        slice(col * cell_width, (col + 1) * cell_width),
    )


def check_canvas(grid: Grid, canvas: np.ndarray, rasterizer: GlyphRasterizer) -> None:
    expected = (grid.rows * rasterizer.cell_height, grid.cols * rasterizer.cell_width, 4)
    if canvas.shape != expected:
        raise ValueError(f"Canvas is {canvas.shape}, grid needs {expected}")


def compose_rows(grid: Grid, canvas: np.ndarray, rasterizer: GlyphRasterizer, rows: range) -> None:
    """Rasterize the given rows of a completed grid and copy each block into its rectangle."""
    if not grid.complete:
        raise ValueError("Grid has no characters assigned")
    check_canvas(grid, canvas, rasterizer)
    cw, ch = rasterizer.cell_width, rasterizer.cell_height
    for row in rows:
        for col, char in enumerate(grid.chars[row]):
            ys, xs = cell_rect(row, col, cw, ch)
            canvas[ys, xs] = rasterizer.rasterize(char, grid.colour_at(row, col))
