import argparse
import logging
import sys

from asciiraster.charsets import CHARSETS, charset_from_string, resolve_charset
from asciiraster.errors import PipelineError
from asciiraster.glyphs import find_monospace_font
from asciiraster.options import DEFAULT_DELAY, DEFAULT_FONT_SIZE, RenderOptions
from asciiraster.pipeline import run

log = logging.getLogger("asciiraster")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render an image as an image made of coloured characters")
    parser.add_argument(
        "input", help="Input image, animation or ANSI text file. With FINAL_INDEX, a pattern like frame%%d.png"
    )
    parser.add_argument(
        "output",
        help="Output .png, .gif or .webp. A %%d pattern writes one numbered still per frame or batch index",
    )
    parser.add_argument(
        "final_index", type=int, nargs="?", default=None, help="Convert inputs 1..FINAL_INDEX of a numbered batch"
    )
    parser.add_argument("-w", "--width", type=int, default=None, help="Output width in characters (default: 128)")
    parser.add_argument(
        "-H", "--height", type=int, default=None, help="Output height in characters (default: keep aspect ratio)"
    )
    parser.add_argument(
        "-f", "--font-size", type=int, default=DEFAULT_FONT_SIZE, help=f"Font size in pixels (default: {DEFAULT_FONT_SIZE})"
    )
    parser.add_argument("-i", "--invert", action="store_true", help="Invert character weights, for light backgrounds")
    parser.add_argument("-b", "--background", action="store_true", help="Draw on a black background")
    parser.add_argument(
        "-C",
        "--charset",
        default="minimal",
        help=f"Built-in charset ({', '.join(sorted(CHARSETS))}) or a literal string of characters from "
        "transparent to opaque prefixed with '=' (default: minimal)",
    )
    parser.add_argument("-o", "--override", default=None, help="Repeat this text across the image instead of a charset")
    parser.add_argument("--font", default=None, help="TrueType font file (default: system monospace font)")
    parser.add_argument("-j", "--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument(
        "--delay", type=int, default=DEFAULT_DELAY, help=f"Frame delay in ms when the input has none (default: {DEFAULT_DELAY})"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    return parser


def options_from_args(args: argparse.Namespace) -> RenderOptions:
    if args.charset.startswith("="):
        charset = charset_from_string(args.charset[1:])
    else:
        charset = resolve_charset(args.charset)
    return RenderOptions(
        width=args.width,
        height=args.height,
        font_size=args.font_size,
        invert=args.invert,
        background=args.background,
        charset=charset,
        override=args.override,
        font_path=args.font or find_monospace_font(),
        workers=args.workers,
        default_delay=args.delay,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        options = options_from_args(args)
        report = run(args.input, args.output, options, final_index=args.final_index)
    except PipelineError as e:
        log.error("%s", e)
        return EXIT_FAILED

    for failure in report.failures:
        log.error("Index %s (%s) failed: %s", failure.index, failure.path, failure.error)
    if report.ok:
        return EXIT_OK
    return EXIT_PARTIAL if report.partial else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
