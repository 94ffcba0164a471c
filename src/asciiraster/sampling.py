import numpy as np

from asciiraster.errors import ConfigError
from asciiraster.model import Frame, Grid, luminance_of
from asciiraster.options import DEFAULT_WIDTH


def grid_size(
    frame_width: int,
    frame_height: int,
    cell_width: int,
    cell_height: int,
    width: int | None = None,
    height: int | None = None,
) -> tuple[int, int]:
    """Work out (cols, rows) for a frame.

    A missing dimension is derived from the other so the rendered output keeps the
    frame's aspect ratio. Character cells are taller than wide, so the row count is
    scaled by cell_width / cell_height. Both given means both are used as-is.
    """
    if frame_width <= 0 or frame_height <= 0:
        raise ConfigError(f"Frame has no area ({frame_width}x{frame_height})")
    aspect_correction = cell_width / cell_height
    if width is None and height is None:
        width = DEFAULT_WIDTH
    if height is None:
        height = max(1, round(width * frame_height / frame_width * aspect_correction))
    elif width is None:
        width = max(1, round(height * frame_width / frame_height / aspect_correction))
    if width <= 0 or height <= 0:
        raise ConfigError(f"Grid must have at least one cell, got {width}x{height}")
    return width, height


def _region_bounds(size: int, count: int) -> tuple[np.ndarray, np.ndarray]:
    """Proportional [start, stop) source ranges for `count` cells over `size` pixels."""
    starts = np.arange(count) * size // count
    stops = np.arange(1, count + 1) * size // count
    # Upsampling leaves some ranges empty; give each at least one pixel
    stops = np.maximum(stops, starts + 1)
    return starts, stops


def _region_sums(channel: np.ndarray, ys: tuple, xs: tuple) -> np.ndarray:
    """Sum a 2D channel over every (row range, col range) pair using a summed-area table."""
    table = np.zeros((channel.shape[0] + 1, channel.shape[1] + 1))
    table[1:, 1:] = channel.cumsum(axis=0).cumsum(axis=1)
    y0, y1 = ys
    x0, x1 = xs
    return table[y1][:, x1] - table[y0][:, x1] - table[y1][:, x0] + table[y0][:, x0]


def sample_cells(frame: Frame, cols: int, rows: int) -> Grid:
    """Average each cell's source region into a colour and a luminance.

    Colours are alpha-weighted so fully transparent pixels don't tint a cell, and
    luminance is scaled by the region's mean alpha so transparent regions select
    the emptiest glyph.

    Returns a Grid with colours and luminance set and no characters yet.
    """
    if frame.width == 0 or frame.height == 0:
        raise ConfigError(f"Frame {frame.sequence_index} has no area")
    if cols <= 0 or rows <= 0:
        raise ConfigError(f"Grid must have at least one cell, got {cols}x{rows}")

    arr = frame.pixels.astype(np.float64)
    ys = _region_bounds(frame.height, rows)
    xs = _region_bounds(frame.width, cols)
    counts = (ys[1] - ys[0])[:, None] * (xs[1] - xs[0])[None, :]  # (rows, cols)

    alpha = arr[:, :, 3]
    alpha_sum = _region_sums(alpha, ys, xs)
    opaque = alpha_sum > 0

    colour = np.empty((rows, cols, 3))
    for ch in range(3):
        channel = arr[:, :, ch]
        weighted = _region_sums(channel * alpha, ys, xs)
        plain = _region_sums(channel, ys, xs)
        # Fully transparent regions fall back to the unweighted mean
        colour[:, :, ch] = np.where(opaque, weighted / np.where(opaque, alpha_sum, 1.0), plain / counts)

    coverage = alpha_sum / (counts * 255.0)
    luminance = np.clip(luminance_of(colour) * coverage, 0.0, 1.0)
    colours = np.clip(np.rint(colour), 0, 255).astype(np.uint8)
    return Grid(luminance=luminance, colours=colours)


def sample_frame(
    frame: Frame,
    cell_width: int,
    cell_height: int,
    width: int | None = None,
    height: int | None = None,
) -> Grid:
    cols, rows = grid_size(frame.width, frame.height, cell_width, cell_height, width, height)
    return sample_cells(frame, cols, rows)
