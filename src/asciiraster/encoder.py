import logging
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from PIL import Image

from asciiraster.errors import ConfigError, EncodeError

log = logging.getLogger(__name__)

STILL_FORMATS = {".png": "PNG"}
ANIMATED_FORMATS = {".gif": "GIF", ".webp": "WEBP"}


def output_format(path: str | Path) -> str:
    """Pillow format name for an output path, chosen by extension."""
    suffix = Path(path).suffix.lower()
    fmt = STILL_FORMATS.get(suffix) or ANIMATED_FORMATS.get(suffix)
    if fmt is None:
        supported = ", ".join(sorted(STILL_FORMATS | ANIMATED_FORMATS))
        raise ConfigError(f"Unsupported output extension {suffix!r} for {path}, expected one of: {supported}")
    return fmt


def is_animated_format(path: str | Path) -> bool:
    return Path(path).suffix.lower() in ANIMATED_FORMATS


def _to_image(canvas: np.ndarray) -> Image.Image:
    # (h, w, 4) uint8 is picked up as RGBA
    return Image.fromarray(np.ascontiguousarray(canvas))


def save_still(canvas: np.ndarray, path: str | Path) -> Path:
    path = Path(path)
    fmt = output_format(path)
    try:
        _to_image(canvas).save(path, format=fmt)
    except (OSError, ValueError) as e:
        raise EncodeError(path, str(e)) from e
    log.info("Saved %s", path)
    return path


def save_animation(
    frames: Sequence[tuple[np.ndarray, int | None]],
    path: str | Path,
    default_delay: int,
) -> Path:
    """Write (canvas, delay) pairs in order as one looping animation.

    Frames without a delay use `default_delay` milliseconds.
    """
    path = Path(path)
    fmt = output_format(path)
    if not frames:
        raise EncodeError(path, "no frames to write")
    if fmt not in ANIMATED_FORMATS.values():
        if len(frames) > 1:
            raise ConfigError(f"{path} can't hold {len(frames)} frames")
        return save_still(frames[0][0], path)

    images = [_to_image(canvas) for canvas, _ in frames]
    durations = [delay if delay else default_delay for _, delay in frames]
    options = {}
    if fmt == "GIF":
        options["disposal"] = 2
    try:
        images[0].save(
            path,
            format=fmt,
            save_all=True,
            append_images=images[1:],
            duration=durations,
            loop=0,
            **options,
        )
    except (OSError, ValueError) as e:
        raise EncodeError(path, str(e)) from e
    log.info("Saved %s (%d frames)", path, len(images))
    return path
