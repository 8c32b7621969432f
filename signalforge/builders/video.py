"""Filter graph builder: the visual processing chain for one broadcast."""

from dataclasses import dataclass

from signalforge.builders.audio import AudioPlan
from signalforge.builders.clock import ClockSnapshot, clock_filters, compute_clock_timing
from signalforge.builders.overlays import flash_filters, status_filters, status_lines, text_filters
from signalforge.config import BroadcastConfig, as_number, round_half_up
from signalforge.filtergraph import Filter, FilterGraphProgram, Quoted, Stage
from signalforge.formats import LOGO_POSITIONS, Background
from signalforge.models import Anchor, FormatSpec
from signalforge.resolvers.fonts import FontResolver

OUTPUT_PAD = "v"
PREROLL_S = 0.3
STAIRCASE_STEPS = 6
DEFAULT_FONT_SIZE = 80


@dataclass
class GraphInputs:
    """Input pads wired by the command assembler."""

    base: str = "0:v"
    animation: str | None = None
    logo: str | None = None


def block_size(fmt: FormatSpec) -> int:
    """Edge length of the moving square."""
    return max(40, round_half_up(min(fmt.width, fmt.height) * 0.09))


class _Chain:
    """Appends stages, numbering pads by a running stage index."""

    def __init__(self, source: str):
        self.program = FilterGraphProgram()
        self.current = source
        self.index = 0

    def side(self, prefix: str, inputs: list[str], filters: list[Filter]) -> str:
        label = f"{prefix}{self.index}"
        self.program.add(Stage(inputs, filters, label))
        self.index += 1
        return label

    def push(self, prefix: str, filters: list[Filter], extra: tuple[str, ...] = ()) -> str:
        self.current = self.side(prefix, [self.current, *extra], filters)
        return self.current


def _square(chain: _Chain, fmt: FormatSpec, pad: str) -> None:
    size = block_size(fmt)
    max_x = max(0, fmt.width - size)
    max_y = max(0, fmt.height - size)
    rate = max(1, fmt.fps)
    elapsed = f"(n/{rate})"

    def bounce(limit: int, speed_factor: int) -> str:
        if limit <= 0:
            return "0"
        speed = f"{speed_factor * rate:.2f}"
        return f"abs(mod({elapsed}*{speed},{limit * 2:.2f})-{limit})"

    chain.push("anim", [Filter("overlay", params={
        "x": Quoted(bounce(max_x, 8)),
        "y": Quoted(bounce(max_y, 6)),
    })], extra=(pad,))


def _staircase_pulse(chain: _Chain, fmt: FormatSpec, pad: str) -> None:
    w, h = fmt.width, fmt.height
    step = f"floor(mod(((Y/{h})*{STAIRCASE_STEPS})+(T*0.35),{STAIRCASE_STEPS}))"
    step_scale = round_half_up(180 / max(1, STAIRCASE_STEPS - 1))
    luma = Quoted(f"60 + {step_scale}*{step}")

    stairs = chain.side("anim", [pad], [
        Filter("format", args=("rgba",)),
        Filter("geq", params={
            "r": luma, "g": luma, "b": luma,
            "a": Quoted(f"if(gt({step},0),200,120)"),
        }),
    ])

    pulse_width = max(4, round_half_up(w * 0.012))
    pulse = chain.side("anim", [stairs], [Filter("drawbox", params={
        "x": Quoted(f"mod((n/{fmt.fps})*{0.45 * w:.2f},{w})"),
        "y": 0,
        "w": pulse_width,
        "h": h,
        "color": "white@0.75",
        "t": "fill",
    })])

    chain.push("anim", [Filter("overlay", args=(0, 0), params={"shortest": 1})], extra=(pulse,))


def _terminate(chain: _Chain, fmt: FormatSpec) -> None:
    if fmt.interlaced:
        chain.program.add(Stage([chain.current], [
            Filter("fps", args=(fmt.fps,)),
            Filter("setsar", args=("1/1",)),
            Filter("tinterlace", params={"mode": "interleave_top"}),
            Filter("setfield", args=("tff",)),
        ], OUTPUT_PAD))
    elif len(chain.program):
        chain.program.rename_last_output(OUTPUT_PAD)
    else:
        chain.program.add(Stage([chain.current], [Filter("copy")], OUTPUT_PAD))
    chain.current = OUTPUT_PAD


def build_filter_graph(
    config: BroadcastConfig,
    fmt: FormatSpec,
    background: Background,
    inputs: GraphInputs,
    audio: AudioPlan,
    clock: ClockSnapshot,
    fonts: FontResolver,
) -> FilterGraphProgram:
    """Assemble the ordered filter stages ending in the ``[v]`` pad.

    Stages whose input pad was not wired are skipped; this never raises.
    """
    chain = _Chain(inputs.base)

    # Rate normalization is always the first stage.
    chain.push("fps", [Filter("fps", args=(fmt.fps,))])

    if not background.native:
        chain.push("base", [Filter("scale", args=(fmt.width, fmt.height))])

    if config.text:
        text_font = fonts.resolve(config.font_family)
        font_size = as_number(config.font_size) or DEFAULT_FONT_SIZE
        for f in text_filters(config.text, text_font, font_size, config.text_color,
                              config.text_weight, config.text_background,
                              Anchor.parse(config.text_position, Anchor.CENTER)):
            chain.push("txt", [f])

    if config.animation == "square" and inputs.animation:
        _square(chain, fmt, inputs.animation)
    elif config.animation == "staircase_pulse" and inputs.animation:
        _staircase_pulse(chain, fmt, inputs.animation)

    if config.show_logo and inputs.logo:
        pos = LOGO_POSITIONS[Anchor.parse(config.logo_position, Anchor.TOP_RIGHT)]
        chain.push("logo", [Filter("overlay", args=(pos.x, pos.y))], extra=(inputs.logo,))

    if config.show_clock:
        timing = compute_clock_timing(clock, fmt.fps, config.clock_latency_ms)
        anchor = Anchor.parse(config.clock_position, Anchor.BOTTOM_RIGHT)
        for f in clock_filters(timing, fmt, anchor, fonts.default()):
            chain.push("clock", [f])

    if config.show_config_overlay:
        lines = status_lines(fmt.id, audio, config.audio_level_db)
        anchor = Anchor.parse(config.config_overlay_position, Anchor.TOP_LEFT)
        for f in status_filters(lines, fmt, config.config_overlay_font_size, anchor, fonts.default()):
            chain.push("overlay", [f])

    if audio.any_flash:
        for f in flash_filters(fmt, config.flash_overlay_offset, fonts.default()):
            chain.push("flash", [f])

    # Preroll shift ahead of the terminal stage.
    chain.push("preroll", [Filter("setpts", args=(f"PTS+{PREROLL_S}/TB",))])

    _terminate(chain, fmt)
    return chain.program
