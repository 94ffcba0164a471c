import numpy as np

from asciiraster.model import Charset, Grid


def glyph_indices(luminance: np.ndarray, charset_length: int, invert: bool = False) -> np.ndarray:
    """Map luminance values in [0, 1] to charset indices, rounding half up.

    Invert flips the resulting index; it never touches the charset itself.
    """
    last = charset_length - 1
    indices = np.clip(np.floor(np.asarray(luminance, dtype=np.float64) * last + 0.5), 0, last).astype(np.intp)
    if invert:
        indices = last - indices
    return indices


def row_characters(
    grid: Grid,
    row: int,
    charset: Charset,
    invert: bool = False,
    override: str | None = None,
) -> str:
    """Characters for one grid row.

    With an override string the characters are taken from it in order, cycling
    across rows in row-major order, and luminance is ignored.
    """
    if override is not None:
        start = row * grid.cols
        return "".join(override[(start + col) % len(override)] for col in range(grid.cols))
    indices = glyph_indices(grid.luminance[row], len(charset), invert)
    return "".join(charset.glyphs[i] for i in indices)
