"""Parse truecolour ANSI text (e.g. ``jp2a --color`` output) into a ready-made grid.

Every coloured character is written as ``ESC[38;2;R;G;Bm`` followed by the
character, optionally with other SGR sequences (background colour, reset) in
between. One line of text is one row of cells.
"""

import re
from pathlib import Path

import numpy as np

from asciiraster.errors import DecodeError
from asciiraster.model import Grid, luminance_of

TEXT_SUFFIXES = {".txt", ".ans", ".ansi"}

_COLOURED_CHAR = re.compile(r"\x1b\[38;2;(\d+);(\d+);(\d+)m(?:\x1b\[[0-9;]*m)*([^\x1b\r\n])")

BLANK = (" ", (0, 0, 0))


def is_ansi_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() in TEXT_SUFFIXES


def parse_line(line: str) -> list[tuple[str, tuple[int, int, int]]]:
    cells = []
    for match in _COLOURED_CHAR.finditer(line):
        r, g, b = (int(v) for v in match.group(1, 2, 3))
        if max(r, g, b) > 255:
            raise ValueError(f"Colour channel out of range in {match.group(0)!r}")
        cells.append((match.group(4), (r, g, b)))
    return cells


def parse_ansi(text: str, source: str | Path = "<text>") -> Grid:
    """Build a character-assigned Grid from ANSI text, padding short rows with blank cells."""
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    try:
        rows = [parse_line(line) for line in lines]
    except ValueError as e:
        raise DecodeError(source, str(e)) from e
    cols = max((len(row) for row in rows), default=0)
    if cols == 0:
        raise DecodeError(source, "no truecolour characters found")

    chars = []
    colours = np.zeros((len(rows), cols, 3), dtype=np.uint8)
    for r, row in enumerate(rows):
        row = row + [BLANK] * (cols - len(row))
        chars.append("".join(char for char, _ in row))
        colours[r] = [colour for _, colour in row]
    return Grid(luminance=luminance_of(colours), colours=colours, chars=chars)


def read_ansi(path: str | Path) -> Grid:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DecodeError(path, str(e)) from e
    return parse_ansi(text, source=path)
