import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, wait

import numpy as np

from asciiraster.compositor import compose_rows, new_canvas
from asciiraster.glyphs import GlyphRasterizer
from asciiraster.mapping import row_characters
from asciiraster.model import Charset, Grid

log = logging.getLogger(__name__)


def partition_rows(rows: int, workers: int) -> list[range]:
    """Split [0, rows) into at most `workers` contiguous ranges whose sizes differ by at most one."""
    if rows <= 0:
        return []
    count = max(1, min(workers, rows))
    base, extra = divmod(rows, count)
    ranges = []
    start = 0
    for i in range(count):
        stop = start + base + (1 if i < extra else 0)
        ranges.append(range(start, stop))
        start = stop
    return ranges


class Scheduler:
    """Fixed-size thread pool that maps, rasterizes and composites one grid at a time."""

    def __init__(self, workers: int | None = None):
        self.workers = workers or os.cpu_count() or 1
        self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="asciiraster")

    def __enter__(self) -> "Scheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def render(
        self,
        grid: Grid,
        rasterizer: GlyphRasterizer,
        charset: Charset,
        invert: bool = False,
        override: str | None = None,
    ) -> tuple[Grid, np.ndarray]:
        """Render a grid onto a new canvas, blocking until every worker is done.

        Workers first pick characters for their rows, then, once the grid is
        complete, rasterize those rows into their own canvas rectangles. Grids
        that already carry characters (parsed ANSI text) skip the first step.
        Returns the completed grid and the canvas; the first worker exception,
        if any, is re-raised after all workers have finished.
        """
        ranges = partition_rows(grid.rows, self.workers)
        log.debug("Rendering %dx%d grid in %d row ranges", grid.cols, grid.rows, len(ranges))

        if not grid.complete:

            def map_rows(rows: range) -> list[str]:
                return [row_characters(grid, row, charset, invert, override) for row in rows]

            parts = self._join([self._pool.submit(map_rows, rows) for rows in ranges])
            grid = grid.with_chars([line for part in parts for line in part])

        canvas = new_canvas(grid.rows, grid.cols, rasterizer.cell_width, rasterizer.cell_height)
        self._join([self._pool.submit(compose_rows, grid, canvas, rasterizer, rows) for rows in ranges])
        return grid, canvas

    @staticmethod
    def _join(futures: list[Future]) -> list:
        wait(futures)
        return [future.result() for future in futures]
