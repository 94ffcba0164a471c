from asciiraster.errors import ConfigError
from asciiraster.model import Charset

# All ramps run from transparent to opaque

MINIMAL = " .:-=+*#%@"

DEFAULT = " .,-~:;=!*#$@"

# Paul Bourke's 70 level greyscale ramp, reversed
SLIGHT = " .'`^\",:;Il!i><~+_-?][}{1)(|\\/tfjrxnuvczXYUJCLQ0OZmwqpdbkhao*#MW&8%B@$"

# Shade block elements
BLOCK = " ░▒▓█"

# Braille patterns filling up one dot at a time (U+2800 blank to U+28FF full)
BRAILLE = " ⠁⠃⠇⠏⠟⠿⡿⣿"

CYRILLIC = " кгтсзурапнвоедбжшщфЖШЩФ"

CHARSETS = {
    "minimal": MINIMAL,
    "default": DEFAULT,
    "slight": SLIGHT,
    "block": BLOCK,
    "braille": BRAILLE,
    "cyrillic": CYRILLIC,
}


def charset_from_string(characters: str) -> Charset:
    return Charset(tuple(characters))


def resolve_charset(name: str) -> Charset:
    """Look up a built-in charset by name."""
    try:
        return charset_from_string(CHARSETS[name])
    except KeyError:
        raise ConfigError(f"Unknown charset {name!r}, expected one of: {', '.join(sorted(CHARSETS))}") from None
