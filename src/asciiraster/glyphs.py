import logging
import shutil
import subprocess
import threading

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from asciiraster.errors import FontError
from asciiraster.options import cell_size

log = logging.getLogger(__name__)

Colour = tuple[int, int, int]
GlyphKey = tuple[str, Colour, int, bool]


def find_monospace_font() -> str | None:
    """Ask fontconfig for the system's default monospace font."""
    if shutil.which("fc-match") is None:
        return None
    result = subprocess.run(["fc-match", "-f", "%{file}", "monospace"], capture_output=True, text=True)
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    return None


class FontRenderer:
    """Renders single characters to coverage bitmaps the size of one cell.

    Uses the given TrueType font, or Pillow's built-in scalable font when there is
    none. FreeType faces aren't safe to share between threads, so every call into
    the font goes through one lock.
    """

    def __init__(self, font_path: str | None = None):
        self.font_path = font_path
        self._fonts: dict[int, ImageFont.FreeTypeFont] = {}
        self._lock = threading.Lock()

    def _font(self, size: int) -> ImageFont.FreeTypeFont:
        font = self._fonts.get(size)
        if font is None:
            try:
                if self.font_path is not None:
                    font = ImageFont.truetype(self.font_path, size)
                else:
                    font = ImageFont.load_default(size)
            except OSError as e:
                raise FontError(f"Could not load font {self.font_path or '<default>'} at size {size}: {e}") from e
            self._fonts[size] = font
        return font

    def render_glyph(self, char: str, size: int) -> np.ndarray:
        """Return a (cell_height, cell_width) uint8 coverage bitmap for one character."""
        cell_width, cell_height = cell_size(size)
        if char.isspace():
            return np.zeros((cell_height, cell_width), dtype=np.uint8)
        with self._lock:
            font = self._font(size)
            img = Image.new("L", (cell_width, cell_height), 0)
            try:
                ImageDraw.Draw(img).text((0, 0), char, fill=255, font=font)
            except (OSError, ValueError) as e:
                raise FontError(f"Could not render {char!r} at size {size}: {e}", character=char) from e
        return np.array(img, dtype=np.uint8)


def tint(coverage: np.ndarray, colour: Colour, background: bool = False) -> np.ndarray:
    """Colour a coverage bitmap into an RGBA block.

    Without a background the glyph keeps its anti-aliased coverage as alpha. With
    one, the glyph is blended over solid black and the block is fully opaque.
    """
    h, w = coverage.shape
    block = np.empty((h, w, 4), dtype=np.uint8)
    if background:
        weights = coverage.astype(np.uint32)[:, :, None]
        block[:, :, :3] = (weights * np.array(colour, dtype=np.uint32) + 127) // 255
        block[:, :, 3] = 255
    else:
        block[:, :, :3] = colour
        block[:, :, 3] = coverage
    return block


class GlyphCache:
    """Rendered glyph blocks keyed by (character, colour, font size, background).

    Entries are never evicted or replaced. Two threads missing on the same key
    render identical bytes, so the first stored block wins and no lock is needed.
    """

    def __init__(self):
        self._blocks: dict[GlyphKey, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, key: GlyphKey) -> bool:
        return key in self._blocks

    def get(self, key: GlyphKey) -> np.ndarray | None:
        return self._blocks.get(key)

    def put(self, key: GlyphKey, block: np.ndarray) -> np.ndarray:
        return self._blocks.setdefault(key, block)


class GlyphRasterizer:
    def __init__(
        self,
        renderer: FontRenderer,
        font_size: int,
        background: bool = False,
        cache: GlyphCache | None = None,
    ):
        self.renderer = renderer
        self.font_size = font_size
        self.background = background
        self.cache = cache if cache is not None else GlyphCache()
        self.cell_width, self.cell_height = cell_size(font_size)

    def rasterize(self, char: str, colour: Colour) -> np.ndarray:
        """Return the read-only (cell_height, cell_width, 4) block for a tinted character."""
        key = (char, colour, self.font_size, self.background)
        block = self.cache.get(key)
        if block is not None:
            return block
        coverage = self.renderer.render_glyph(char, self.font_size)
        if coverage.shape != (self.cell_height, self.cell_width):
            raise FontError(
                f"Glyph {char!r} rendered as {coverage.shape}, expected {(self.cell_height, self.cell_width)}",
                character=char,
            )
        block = tint(coverage, colour, self.background)
        block.flags.writeable = False
        log.debug("Rendered glyph %r in %s", char, colour)
        return self.cache.put(key, block)
