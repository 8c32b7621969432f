"""Static lookup tables: output formats, backgrounds, animations, anchors."""

from dataclasses import dataclass

from signalforge.models import Anchor, FormatSpec, Placement

DEFAULT_FORMAT = "1080i50"
DEFAULT_BACKGROUND = "blue"

_DECKLINK = ("-f", "decklink")
_RAW = ("-raw_format", "uyvy422")


def _output(size: str, rate: str, code: str, *extra: str) -> tuple[str, ...]:
    return ("-pix_fmt", "uyvy422", "-s", size, "-r", rate, *extra,
            *_DECKLINK, "-format_code", code, *_RAW)


FORMATS: dict[str, FormatSpec] = {
    "1080i50": FormatSpec("1080i50", 1920, 1080, 50, True,
                          _output("1920x1080", "25", "Hi50", "-field_order", "tt")),
    "1080i60": FormatSpec("1080i60", 1920, 1080, 60, True,
                          _output("1920x1080", "30", "Hi60", "-field_order", "tt")),
    "1080p25": FormatSpec("1080p25", 1920, 1080, 25, False,
                          _output("1920x1080", "25", "Hp25")),
    "1080p30": FormatSpec("1080p30", 1920, 1080, 30, False,
                          _output("1920x1080", "30", "Hp30")),
    "720p50": FormatSpec("720p50", 1280, 720, 50, False,
                         _output("1280x720", "50", "Hp50")),
    "720p60": FormatSpec("720p60", 1280, 720, 60, False,
                         _output("1280x720", "60", "Hp60")),
    "576i50": FormatSpec("576i50", 720, 576, 50, True,
                         _output("720x576", "25", "pal",
                                 "-field_order", "tt", "-flags", "+ilme+ildct")),
}

FORMAT_LABELS = {
    "1080i50": "1080i50 (1920x1080 interlaced)",
    "1080i60": "1080i60 (1920x1080 interlaced)",
    "1080p25": "1080p25 (1920x1080 progressive)",
    "1080p30": "1080p30 (1920x1080 progressive)",
    "720p50": "720p50 (1280x720 progressive)",
    "720p60": "720p60 (1280x720 progressive)",
    "576i50": "576i50 (720x576 interlaced PAL)",
}


def get_format(format_id) -> FormatSpec:
    """Return the format for *format_id*, 1080i50 for anything unknown."""
    if not isinstance(format_id, str):
        return FORMATS[DEFAULT_FORMAT]
    return FORMATS.get(format_id, FORMATS[DEFAULT_FORMAT])


@dataclass(frozen=True)
class Background:
    """A selectable primary video source.

    ``source`` is a lavfi source template (``{size}``/``{fps}`` placeholders);
    ``image`` names a still picture in the pictures directory.  ``native`` is
    true when the source is generated at the output size.
    """

    id: str
    name: str
    type: str
    source: str | None = None
    image: str | None = None
    native: bool = True


def _gen(id: str, name: str, type: str, extra: str = "") -> Background:
    template = f"{id}=size={{size}}:rate={{fps}}{extra}"
    return Background(id, name, type, source=template)


BACKGROUNDS: dict[str, Background] = {b.id: b for b in [
    Background("blue", "Blue Background", "color", source="color=c=blue:size={size}:rate={fps}"),
    Background("black", "Black Background", "color", source="color=c=black:size={size}:rate={fps}"),
    Background("white", "White Background", "color", source="color=c=white:size={size}:rate={fps}"),
    Background("bars", "Color Bars", "image", image="bars.png", native=False),
    Background("resolution_test", "Resolution Test Chart", "image",
               image="resolution_test.png", native=False),
    Background("custom", "Custom Background", "upload", native=False),
    _gen("allrgb", "All RGB Colors", "source"),
    _gen("allyuv", "All YUV Colors", "source"),
    _gen("cellauto", "Cellular Automaton", "animation"),
    Background("color", "Solid Color", "source", source="color=c=blue:size={size}:rate={fps}"),
    _gen("coreimagesrc", "CoreImage Generators", "source", extra=":list_generators=1"),
    _gen("frei0r_src", "Frei0r Video Sources", "source"),
    _gen("gradients", "Gradient Animation", "animation"),
    Background("haldclutsrc", "Hald CLUT Identity", "source",
               source="haldclutsrc=level=6", native=False),
    _gen("life", "Game of Life", "animation"),
    _gen("mandelbrot", "Mandelbrot Fractal", "animation"),
    _gen("mptestsrc", "Multi-Pattern Test", "test"),
    _gen("nullsrc", "Empty/Black Source", "source"),
    _gen("openclsrc", "OpenCL Generators", "source"),
    _gen("pal75bars", "PAL 75% Bars", "test"),
    _gen("pal100bars", "PAL 100% Bars", "test"),
    _gen("rgbtestsrc", "RGB Test Pattern", "test"),
    _gen("sierpinski", "Sierpinski Fractal", "animation"),
    _gen("smptebars", "SMPTE SD Bars", "test"),
    _gen("smptehdbars", "SMPTE HD Bars", "test"),
    _gen("testsrc", "Classic Test Pattern", "test"),
    _gen("testsrc2", "Modern Test Pattern", "test"),
    _gen("yuvtestsrc", "YUV Test Pattern", "test"),
]}


def get_background(background_id) -> Background:
    if not isinstance(background_id, str):
        return BACKGROUNDS[DEFAULT_BACKGROUND]
    return BACKGROUNDS.get(background_id, BACKGROUNDS[DEFAULT_BACKGROUND])


ANIMATIONS: dict[str | None, str] = {
    None: "None",
    "square": "Moving Square",
    "staircase_pulse": "Staircase + Pulse (R&S)",
}

POSITION_LABELS = {
    Anchor.TOP_LEFT: "↖ Top Left",
    Anchor.TOP_CENTER: "↑ Top Center",
    Anchor.TOP_RIGHT: "↗ Top Right",
    Anchor.CENTER_LEFT: "← Center Left",
    Anchor.CENTER: "⊙ Center",
    Anchor.CENTER_RIGHT: "→ Center Right",
    Anchor.BOTTOM_LEFT: "↙ Bottom Left",
    Anchor.BOTTOM_CENTER: "↓ Bottom Center",
    Anchor.BOTTOM_RIGHT: "↘ Bottom Right",
}


def _anchor_table(left: str, hcenter: str, right: str,
                  top: str, vcenter: str, bottom: str) -> dict[Anchor, Placement]:
    xs = {"left": left, "center": hcenter, "right": right}
    ys = {"top": top, "center": vcenter, "bottom": bottom}
    return {a: Placement(xs[a.column], ys[a.row]) for a in Anchor}


TEXT_POSITIONS = _anchor_table("50", "(w-text_w)/2", "w-text_w-50",
                               "50", "(h-text_h)/2", "h-text_h-50")
CLOCK_POSITIONS = _anchor_table("10", "(w-text_w)/2", "w-text_w-10",
                                "10", "(h-text_h)/2", "h-text_h-10")
LOGO_POSITIONS = _anchor_table("10", "(main_w-overlay_w)/2", "main_w-overlay_w-10",
                               "10", "(main_h-overlay_h)/2", "main_h-overlay_h-10")


# --- UI lookup tables ------------------------------------------------------

def available_backgrounds() -> list[dict]:
    return [{"id": b.id, "name": b.name, "type": b.type} for b in BACKGROUNDS.values()]


def available_animations() -> list[dict]:
    return [{"id": k, "name": v} for k, v in ANIMATIONS.items()]


def available_positions() -> list[dict]:
    return [{"id": a.value, "name": label} for a, label in POSITION_LABELS.items()]


def available_formats() -> list[dict]:
    return [{"id": k, "name": v} for k, v in FORMAT_LABELS.items()]
