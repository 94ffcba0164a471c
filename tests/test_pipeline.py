import numpy as np
import pytest
from PIL import Image

from asciiraster.errors import ConfigError, DecodeError, EncodeError, FontError
from asciiraster.glyphs import GlyphCache
from asciiraster.options import RenderOptions
from asciiraster.pipeline import run


def opts(**kwargs):
    kwargs.setdefault("width", 4)
    return RenderOptions(**kwargs)


def test_single_image_to_png(write_image, tmp_path, fake_renderer):
    src = write_image("in.png", size=(40, 20))
    report = run(src, tmp_path / "out.png", opts(), font_renderer=fake_renderer)
    assert report.ok
    assert report.written == [tmp_path / "out.png"]
    with Image.open(tmp_path / "out.png") as img:
        # 4 cols; rows = round(4 * 20 / 40 * 0.5) = 1; 8x16 cells
        assert img.size == (32, 16)


def test_explicit_grid_and_font_size(write_image, tmp_path, fake_renderer):
    src = write_image("in.png", size=(40, 20))
    run(src, tmp_path / "out.png", opts(width=5, height=3, font_size=10), font_renderer=fake_renderer)
    with Image.open(tmp_path / "out.png") as img:
        assert img.size == (25, 30)


def test_background_fills_every_pixel(write_image, tmp_path, fake_renderer):
    src = write_image("in.png", size=(40, 40), colour=(0, 0, 0))
    run(src, tmp_path / "out.png", opts(background=True), font_renderer=fake_renderer)
    with Image.open(tmp_path / "out.png") as img:
        assert np.asarray(img)[:, :, 3].min() == 255


def test_batch_isolation(write_image, tmp_path, fake_renderer):
    write_image("img1.png")
    (tmp_path / "img2.png").write_bytes(b"not a png")
    write_image("img3.png")
    report = run(
        str(tmp_path / "img%d.png"),
        str(tmp_path / "out%d.png"),
        opts(),
        final_index=3,
        font_renderer=fake_renderer,
    )
    assert (tmp_path / "out1.png").exists()
    assert not (tmp_path / "out2.png").exists()
    assert (tmp_path / "out3.png").exists()
    assert report.written == [tmp_path / "out1.png", tmp_path / "out3.png"]
    assert len(report.failures) == 1
    assert report.failures[0].index == 2
    assert isinstance(report.failures[0].error, DecodeError)
    assert report.partial
    assert not report.ok


def test_batch_continues_after_font_error(write_image, tmp_path, fake_renderer):
    class NoAtSign:
        def render_glyph(self, char, size):
            if char == "@":
                raise FontError("font has no @", character=char)
            return fake_renderer.render_glyph(char, size)

    # black maps to " ", white to "@"
    write_image("img1.png", colour=(0, 0, 0))
    write_image("img2.png", colour=(255, 255, 255))
    write_image("img3.png", colour=(0, 0, 0))
    report = run(
        str(tmp_path / "img%d.png"),
        str(tmp_path / "out%d.png"),
        opts(),
        final_index=3,
        font_renderer=NoAtSign(),
    )
    assert report.written == [tmp_path / "out1.png", tmp_path / "out3.png"]
    assert not (tmp_path / "out2.png").exists()
    assert len(report.failures) == 1
    assert report.failures[0].index == 2
    assert isinstance(report.failures[0].error, FontError)
    assert report.partial


def test_batch_continues_after_encode_error(write_image, tmp_path, fake_renderer):
    for index in (1, 2, 3):
        write_image(f"img{index}.png")
    # a directory where out2.png should go makes that one write fail
    (tmp_path / "out2.png").mkdir()
    report = run(
        str(tmp_path / "img%d.png"),
        str(tmp_path / "out%d.png"),
        opts(),
        final_index=3,
        font_renderer=fake_renderer,
    )
    assert report.written == [tmp_path / "out1.png", tmp_path / "out3.png"]
    assert len(report.failures) == 1
    assert report.failures[0].index == 2
    assert isinstance(report.failures[0].error, EncodeError)
    with Image.open(tmp_path / "out1.png") as img:
        assert img.size == (32, 16)


def test_batch_survives_truncated_animation(write_gif, tmp_path, fake_renderer):
    colours = [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
    for index in (1, 2, 3):
        write_gif(f"img{index}.gif", colours, [50, 50, 50])
    broken = tmp_path / "img2.gif"
    broken.write_bytes(broken.read_bytes()[:108])
    report = run(
        str(tmp_path / "img%d.gif"),
        str(tmp_path / "out%d.gif"),
        opts(),
        final_index=3,
        font_renderer=fake_renderer,
    )
    assert (tmp_path / "out1.gif").exists()
    assert (tmp_path / "out3.gif").exists()
    assert all(failure.index == 2 for failure in report.failures)
    assert all(isinstance(failure.error, DecodeError) for failure in report.failures)


def test_batch_to_animation(write_image, tmp_path, fake_renderer):
    write_image("f1.png", colour=(255, 0, 0))
    write_image("f2.png", colour=(0, 255, 0))
    report = run(
        str(tmp_path / "f%d.png"),
        str(tmp_path / "anim.gif"),
        opts(background=True),
        final_index=2,
        font_renderer=fake_renderer,
    )
    assert report.ok
    with Image.open(tmp_path / "anim.gif") as img:
        assert img.n_frames == 2


def test_batch_with_still_output_needs_pattern(tmp_path, fake_renderer):
    with pytest.raises(ConfigError, match="placeholder"):
        run(str(tmp_path / "f%d.png"), str(tmp_path / "out.png"), opts(), final_index=2, font_renderer=fake_renderer)


def test_batch_input_needs_pattern(tmp_path, fake_renderer):
    with pytest.raises(ConfigError):
        run(str(tmp_path / "f.png"), str(tmp_path / "out%d.png"), opts(), final_index=2, font_renderer=fake_renderer)


def test_animated_input_keeps_frames_and_delays(write_gif, tmp_path, fake_renderer):
    src = write_gif("in.gif", [(255, 0, 0), (0, 255, 0), (0, 0, 255)], [60, 70, 80])
    report = run(src, tmp_path / "out.gif", opts(background=True), font_renderer=fake_renderer)
    assert report.ok
    with Image.open(tmp_path / "out.gif") as img:
        assert img.n_frames == 3
        durations = []
        for i in range(3):
            img.seek(i)
            durations.append(img.info["duration"])
    assert durations == [60, 70, 80]


def test_animated_input_to_numbered_stills(write_gif, tmp_path, fake_renderer):
    src = write_gif("in.gif", [(255, 0, 0), (0, 0, 255)], [50, 50])
    report = run(src, str(tmp_path / "frame%d.png"), opts(), font_renderer=fake_renderer)
    assert report.written == [tmp_path / "frame1.png", tmp_path / "frame2.png"]


def test_animated_input_to_single_still_rejected(write_gif, tmp_path, fake_renderer):
    src = write_gif("in.gif", [(255, 0, 0), (0, 0, 255)], [50, 50])
    with pytest.raises(ConfigError, match="frames"):
        run(src, tmp_path / "out.png", opts(), font_renderer=fake_renderer)
    assert not (tmp_path / "out.png").exists()


def test_invert_with_override_rejected_before_decoding(tmp_path, fake_renderer):
    with pytest.raises(ConfigError, match="invert"):
        run(tmp_path / "missing.png", tmp_path / "out.png", opts(invert=True, override="ab"), font_renderer=fake_renderer)


def test_bad_output_extension_rejected(write_image, tmp_path, fake_renderer):
    src = write_image("in.png")
    with pytest.raises(ConfigError):
        run(src, tmp_path / "out.jpg", opts(), font_renderer=fake_renderer)


def test_single_missing_input_raises_decode_error(tmp_path, fake_renderer):
    with pytest.raises(DecodeError):
        run(tmp_path / "missing.png", tmp_path / "out.png", opts(), font_renderer=fake_renderer)


def test_single_unwritable_output_raises_encode_error(write_image, tmp_path, fake_renderer):
    src = write_image("in.png")
    with pytest.raises(EncodeError):
        run(src, tmp_path / "nowhere" / "out.png", opts(), font_renderer=fake_renderer)


def test_ansi_input(tmp_path, fake_renderer):
    src = tmp_path / "art.txt"
    src.write_text("\033[38;2;255;0;0m#\033[38;2;0;255;0m@\n\033[38;2;0;0;255m%\n", encoding="utf-8")
    report = run(src, tmp_path / "out.png", opts(), font_renderer=fake_renderer)
    assert report.ok
    with Image.open(tmp_path / "out.png") as img:
        # grid comes from the text itself: 2 cols x 2 rows of 8x16 cells
        assert img.size == (16, 32)


def test_same_input_renders_identically_with_any_worker_count(write_image, tmp_path, fake_renderer):
    rng = np.random.default_rng(11)
    src = write_image("noise.png", array=rng.integers(0, 256, (60, 90, 3), dtype=np.uint8))
    outputs = []
    for workers in (1, 4):
        out = tmp_path / f"out{workers}.png"
        run(src, out, opts(width=20, workers=workers), font_renderer=fake_renderer)
        with Image.open(out) as img:
            outputs.append(np.asarray(img).tobytes())
    assert outputs[0] == outputs[1]


def test_shared_cache_is_reused(write_image, tmp_path, fake_renderer):
    src = write_image("in.png", colour=(10, 10, 10))
    cache = GlyphCache()
    run(src, tmp_path / "a.png", opts(), cache=cache, font_renderer=fake_renderer)
    cached = len(cache)
    calls = sum(fake_renderer.calls.values())
    run(src, tmp_path / "b.png", opts(), cache=cache, font_renderer=fake_renderer)
    assert len(cache) == cached
    assert sum(fake_renderer.calls.values()) == calls
