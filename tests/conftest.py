import os
import threading
from collections import Counter

import numpy as np
import pytest
from PIL import Image

from asciiraster.glyphs import find_monospace_font
from asciiraster.options import cell_size

_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu-sans-mono-fonts/DejaVuSansMono.ttf",
]


def _find_font():
    for path in _FONT_CANDIDATES:
        if os.path.exists(path):
            return path
    return find_monospace_font()


FONT_PATH = _find_font()
needs_font = pytest.mark.skipif(FONT_PATH is None, reason="No monospace font found on system")


class FakeRenderer:
    """Deterministic stand-in for a font: a diagonal hatch whose phase depends on the character."""

    def __init__(self):
        self.calls = Counter()
        self._lock = threading.Lock()

    def render_glyph(self, char, size):
        with self._lock:
            self.calls[(char, size)] += 1
        cw, ch = cell_size(size)
        if char.isspace():
            return np.zeros((ch, cw), dtype=np.uint8)
        ys, xs = np.mgrid[0:ch, 0:cw]
        return np.where((xs + ys + ord(char)) % 3 == 0, 255, 0).astype(np.uint8)


class SolidRenderer:
    """Every non-space character covers its whole cell."""

    def render_glyph(self, char, size):
        cw, ch = cell_size(size)
        value = 0 if char.isspace() else 255
        return np.full((ch, cw), value, dtype=np.uint8)


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def solid_renderer():
    return SolidRenderer()


@pytest.fixture
def write_image(tmp_path):
    """Save a solid or array image under tmp_path and return its path."""

    def _write(name, size=(40, 20), colour=(200, 100, 50), array=None):
        path = tmp_path / name
        img = Image.fromarray(array) if array is not None else Image.new("RGB", size, colour)
        img.save(path)
        return path

    return _write


@pytest.fixture
def write_gif(tmp_path):
    def _write(name, colours, durations, size=(24, 12)):
        path = tmp_path / name
        frames = [Image.new("RGB", size, colour) for colour in colours]
        frames[0].save(path, save_all=True, append_images=frames[1:], duration=durations, loop=0)
        return path

    return _write
