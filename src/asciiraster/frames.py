import logging
import struct
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image, ImageSequence

from asciiraster.errors import ConfigError, DecodeError
from asciiraster.model import Frame

log = logging.getLogger(__name__)

INDEX_PLACEHOLDER = "%d"

# What Pillow raises for unreadable, truncated or oversized files. Its plugins
# let low-level parsing errors escape while seeking through frames.
DECODE_FAILURES = (
    OSError,
    ValueError,
    EOFError,
    SyntaxError,
    IndexError,
    struct.error,
    Image.DecompressionBombError,
)


def expand_pattern(pattern: str, index: int) -> str:
    """Substitute every %d in a filename pattern with the index."""
    return pattern.replace(INDEX_PLACEHOLDER, str(index))


def is_pattern(path: str) -> bool:
    return INDEX_PLACEHOLDER in path


class FrameSource:
    """Lazily decoded frames of one image file, in order.

    The file is opened straight away so unreadable inputs fail here. Frames are
    decoded as they are iterated and can only be iterated once.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        try:
            self._image = Image.open(self.path)
        except DECODE_FAILURES as e:
            raise DecodeError(self.path, str(e)) from e
        try:
            # Counting GIF frames seeks through the whole file
            self.n_frames = getattr(self._image, "n_frames", 1)
        except DECODE_FAILURES as e:
            self._image.close()
            raise DecodeError(self.path, str(e)) from e
        self._frames = self._decode()

    def __iter__(self) -> Iterator[Frame]:
        return self._frames

    @property
    def animated(self) -> bool:
        return self.n_frames > 1

    def close(self) -> None:
        self._frames.close()
        self._image.close()

    def _decode(self) -> Iterator[Frame]:
        with self._image as image:
            try:
                for index, frame in enumerate(ImageSequence.Iterator(image)):
                    rgba = frame.convert("RGBA")
                    duration = frame.info.get("duration")
                    delay = int(duration) if duration else None
                    yield Frame.from_array(np.asarray(rgba), sequence_index=index, delay=delay)
            except DECODE_FAILURES as e:
                raise DecodeError(self.path, str(e)) from e


def open_frames(path: str | Path) -> FrameSource:
    return FrameSource(path)


def read_frames(path: str | Path) -> list[Frame]:
    """Decode every frame of an image file at once."""
    source = open_frames(path)
    try:
        return list(source)
    finally:
        source.close()


@dataclass
class BatchItem:
    index: int
    path: Path
    frames: list = field(default_factory=list)
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_batch(
    pattern: str,
    final_index: int,
    load: Callable[[Path], list] = read_frames,
) -> Iterator[BatchItem]:
    """Decode files pattern%1 .. pattern%final_index in order.

    A file that can't be decoded yields an item carrying its DecodeError and the
    batch carries on with the next index.
    """
    if final_index < 1:
        raise ConfigError(f"Final index must be at least 1, got {final_index}")
    if not is_pattern(pattern):
        raise ConfigError(f"Batch input {pattern!r} has no {INDEX_PLACEHOLDER} placeholder")
    for index in range(1, final_index + 1):
        path = Path(expand_pattern(pattern, index))
        try:
            frames = load(path)
        except DecodeError as e:
            log.warning("Skipping %s: %s", path, e.reason)
            yield BatchItem(index=index, path=path, error=e)
            continue
        yield BatchItem(index=index, path=path, frames=frames)
