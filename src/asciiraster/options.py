from dataclasses import dataclass, field

from asciiraster.charsets import MINIMAL, charset_from_string
from asciiraster.errors import ConfigError
from asciiraster.model import Charset

DEFAULT_FONT_SIZE = 16
DEFAULT_WIDTH = 128
DEFAULT_DELAY = 100  # ms, for animation frames that carry no delay of their own


def cell_size(font_size: int) -> tuple[int, int]:
    """Pixel (width, height) of one character cell. Cells are half as wide as they are tall."""
    return font_size // 2, font_size


@dataclass(frozen=True)
class RenderOptions:
    width: int | None = None
    height: int | None = None
    font_size: int = DEFAULT_FONT_SIZE
    invert: bool = False
    background: bool = False
    charset: Charset = field(default_factory=lambda: charset_from_string(MINIMAL))
    override: str | None = None
    font_path: str | None = None
    workers: int | None = None
    default_delay: int = DEFAULT_DELAY

    def validate(self) -> "RenderOptions":
        for name in ("width", "height", "workers"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")
        if self.font_size < 2:
            raise ConfigError(f"font size must be at least 2, got {self.font_size}")
        if self.default_delay <= 0:
            raise ConfigError(f"default delay must be positive, got {self.default_delay}")
        if self.override is not None:
            if not self.override:
                raise ConfigError("character override must not be empty")
            if self.invert:
                raise ConfigError("invert has no meaning together with a character override")
        return self
