import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from asciiraster.ansi import is_ansi_path, read_ansi
from asciiraster.encoder import is_animated_format, output_format, save_animation, save_still
from asciiraster.errors import ConfigError, PipelineError
from asciiraster.frames import expand_pattern, is_pattern, iter_batch, open_frames, read_frames
from asciiraster.glyphs import FontRenderer, GlyphCache, GlyphRasterizer
from asciiraster.model import Frame, Grid
from asciiraster.options import RenderOptions
from asciiraster.sampling import sample_frame
from asciiraster.scheduler import Scheduler

log = logging.getLogger(__name__)

# A decoded image frame, or a grid parsed from ANSI text that already has its characters
Renderable = Frame | Grid


@dataclass
class ItemFailure:
    index: int | None
    path: Path
    error: PipelineError


@dataclass
class RunReport:
    written: list[Path] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def partial(self) -> bool:
        return bool(self.written) and bool(self.failures)


class Job:
    """Everything needed to turn frames into output files for one run."""

    def __init__(self, options: RenderOptions, scheduler: Scheduler, rasterizer: GlyphRasterizer):
        self.options = options
        self.scheduler = scheduler
        self.rasterizer = rasterizer

    def render(self, item: Renderable) -> np.ndarray:
        if isinstance(item, Frame):
            grid = sample_frame(
                item,
                self.rasterizer.cell_width,
                self.rasterizer.cell_height,
                self.options.width,
                self.options.height,
            )
        else:
            grid = item
        _, canvas = self.scheduler.render(
            grid,
            self.rasterizer,
            self.options.charset,
            invert=self.options.invert,
            override=self.options.override,
        )
        return canvas

    def write(self, items: Iterable[Renderable], output: str) -> list[Path]:
        """Render items into `output`.

        A %d pattern gets one still per item, numbered from 1. Otherwise items are
        accumulated into one animation, or written as a single still.
        """
        if is_pattern(output):
            return [
                save_still(self.render(item), expand_pattern(output, position))
                for position, item in enumerate(items, start=1)
            ]
        rendered = [(self.render(item), item.delay if isinstance(item, Frame) else None) for item in items]
        if is_animated_format(output):
            return [save_animation(rendered, output, self.options.default_delay)]
        if len(rendered) != 1:
            raise ConfigError(f"{output} can only hold one frame, got {len(rendered)}")
        return [save_still(rendered[0][0], output)]


def load(path: str | Path) -> list[Renderable]:
    if is_ansi_path(path):
        return [read_ansi(path)]
    return read_frames(path)


def _check_specs(input_spec: str, output_spec: str, final_index: int | None) -> None:
    output_format(output_spec)
    if final_index is None:
        return
    if final_index < 1:
        raise ConfigError(f"Final index must be at least 1, got {final_index}")
    if not is_pattern(input_spec):
        raise ConfigError(f"Batch input {input_spec!r} needs a %d placeholder")
    if not is_pattern(output_spec) and not is_animated_format(output_spec):
        raise ConfigError(f"Batch output {output_spec!r} needs a %d placeholder or an animated format")


def _run_single(job: Job, input_spec: str, output_spec: str, report: RunReport) -> None:
    if is_ansi_path(input_spec):
        report.written.extend(job.write([read_ansi(input_spec)], output_spec))
        return
    source = open_frames(input_spec)
    try:
        if source.animated and not is_pattern(output_spec) and not is_animated_format(output_spec):
            raise ConfigError(
                f"{input_spec} has {source.n_frames} frames; use an animated output or a %d pattern for {output_spec}"
            )
        report.written.extend(job.write(source, output_spec))
    finally:
        source.close()


def _run_batch(job: Job, input_spec: str, output_spec: str, final_index: int, report: RunReport) -> None:
    for item in iter_batch(input_spec, final_index, load=load):
        if not item.ok:
            report.failures.append(ItemFailure(item.index, item.path, item.error))
            continue
        output = expand_pattern(output_spec, item.index)
        try:
            report.written.extend(job.write(item.frames, output))
        except PipelineError as e:
            log.error("Failed to render %s: %s", item.path, e)
            report.failures.append(ItemFailure(item.index, item.path, e))


def _run_batch_animation(job: Job, input_spec: str, output_spec: str, final_index: int, report: RunReport) -> None:
    frames: list[Renderable] = []
    for item in iter_batch(input_spec, final_index, load=load):
        if item.ok:
            frames.extend(item.frames)
        else:
            report.failures.append(ItemFailure(item.index, item.path, item.error))
    if not frames:
        log.error("No frames could be decoded from %s", input_spec)
        return
    report.written.extend(job.write(frames, output_spec))


def run(
    input_spec: str | Path,
    output_spec: str | Path,
    options: RenderOptions | None = None,
    final_index: int | None = None,
    cache: GlyphCache | None = None,
    font_renderer: FontRenderer | None = None,
) -> RunReport:
    """Convert an image, animation, ANSI text file or numbered batch into rendered character art.

    Invalid options raise ConfigError before anything is decoded. For a single input,
    decode, font and encode failures are raised. For a batch (`final_index` given) they
    are recorded per index in the returned report and the batch carries on.
    """
    input_spec, output_spec = str(input_spec), str(output_spec)
    options = (options or RenderOptions()).validate()
    _check_specs(input_spec, output_spec, final_index)

    cache = cache if cache is not None else GlyphCache()
    font_renderer = font_renderer or FontRenderer(options.font_path)
    rasterizer = GlyphRasterizer(font_renderer, options.font_size, options.background, cache)
    report = RunReport()
    started = time.perf_counter()
    with Scheduler(options.workers) as scheduler:
        job = Job(options, scheduler, rasterizer)
        if final_index is None:
            _run_single(job, input_spec, output_spec, report)
        elif is_pattern(output_spec):
            _run_batch(job, input_spec, output_spec, final_index, report)
        else:
            _run_batch_animation(job, input_spec, output_spec, final_index, report)
    log.info(
        "Wrote %d file(s), %d failure(s) in %.2fs (%d glyphs cached)",
        len(report.written),
        len(report.failures),
        time.perf_counter() - started,
        len(cache),
    )
    return report
