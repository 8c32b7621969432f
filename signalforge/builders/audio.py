"""Audio tone synthesizer: builds the aevalsrc expressions for all channels."""

from dataclasses import dataclass

from signalforge.config import (
    CHANNEL_SLOTS,
    MAX_FREQ_HZ,
    MAX_LEVEL_DB,
    MIN_FREQ_HZ,
    MIN_LEVEL_DB,
    as_number,
    clamp,
    normalize_channel_flags,
    normalize_channel_map,
    round_half_up,
)
from signalforge.filtergraph import format_number

SAMPLE_RATE = 48000
DEFAULT_FREQ_HZ = 1000
FORCED_FREQ_HZ = 400
FLASH_LEAD_FREQ_HZ = 1000
FLASH_TAIL_FREQ_HZ = 400
FLASH_BOOST_DB = 12
FLASH_PERIOD_S = 2

# Inactive slots carry a near-zero constant.
SILENCE_EXPR = "(0.000001)"

_LAYOUTS = {1: "mono", 2: "stereo", 3: "3.0", 4: "4.0", 5: "5.0", 6: "5.1", 7: "6.1", 8: "7.1"}


def channel_layout(channels: int) -> str:
    return _LAYOUTS.get(channels, f"{channels}c")


def clamp_frequency(freq) -> float:
    number = as_number(freq)
    if number is None:
        number = DEFAULT_FREQ_HZ
    return clamp(number, MIN_FREQ_HZ, MAX_FREQ_HZ)


def resolve_gain(level_db) -> str | None:
    """Return the ``volume=`` gain for *level_db*, or None for unity.

    Boost is capped at +12 dB while cuts go down to -120 dB.
    """
    number = as_number(level_db)
    if number is None:
        return None
    rounded = round(clamp(number, MIN_LEVEL_DB, MAX_LEVEL_DB), 3)
    if rounded == 0:
        return None
    return f"{format_number(rounded)}dB"


def cycle_envelope() -> str:
    """Full gain for the first half of every second, -20 dB for the rest."""
    return "if(lt(mod(t\\,1)\\,0.5)\\,1\\,0.1)"


def samples_per_frame(fps: float) -> int:
    return max(1, round_half_up(SAMPLE_RATE / max(1, fps)))


def flash_gates(fps: float) -> tuple[str, str]:
    """Sample-accurate gates for the flash tones, one video frame long.

    The lead gate opens at the start of every two-second period, the tail
    gate one second later.  Both carry the +12 dB flash boost.
    """
    spf = samples_per_frame(fps)
    period = SAMPLE_RATE * FLASH_PERIOD_S
    gain = f"{10 ** (FLASH_BOOST_DB / 20):.6f}"
    sample_index = f"mod(floor(t*{SAMPLE_RATE})\\,{period})"

    def gate(start: int) -> str:
        end = start + spf - 1
        return f"if(between({sample_index}\\,{start}\\,{end})\\,{gain}\\,0)"

    return gate(0), gate(SAMPLE_RATE)


def tone(freq: float) -> str:
    return f"sin(2*PI*{format_number(freq)}*t)"


def channel_expression(active: bool, freq: float, cycle: bool, flash: bool,
                       force400: bool, fps: float) -> str:
    if not active:
        return SILENCE_EXPR

    expr = tone(FORCED_FREQ_HZ if force400 else freq)
    if cycle:
        expr = f"({expr}*{cycle_envelope()})"

    if flash:
        lead, tail = flash_gates(fps)
        flash_expr = "+".join([
            f"({tone(FLASH_LEAD_FREQ_HZ)}*{lead})",
            f"({tone(FLASH_TAIL_FREQ_HZ)}*{tail})",
        ])
        # Without the cycle envelope the flash pair replaces the base tone.
        expr = f"({expr})+{flash_expr}" if cycle else flash_expr

    return expr


@dataclass
class AudioPlan:
    expressions: list[str]
    channels: int
    layout: str
    frequency: float
    channel_map: list[bool]
    id_cycle: list[bool]
    flash: list[bool]
    force400: list[bool]

    def source(self) -> str:
        """The lavfi source string for the audio input."""
        exprs = "|".join(self.expressions)
        return f"aevalsrc=exprs={exprs}:sample_rate={SAMPLE_RATE}:channel_layout={self.layout}"

    @property
    def any_flash(self) -> bool:
        return any(self.flash)


def synthesize(channel_map, id_cycle, flash, force400, freq, fps: float) -> AudioPlan:
    """Build one expression per channel slot.

    All eight slots are always emitted; inactive slots carry the silence
    constant.  The output switches from stereo to eight channels as soon as
    a channel beyond the first pair is active.
    """
    channel_map = normalize_channel_map(channel_map)
    id_cycle = normalize_channel_flags(id_cycle)
    flash = normalize_channel_flags(flash)
    force400 = normalize_channel_flags(force400)
    frequency = clamp_frequency(freq)

    extended = any(active and i >= 2 for i, active in enumerate(channel_map))
    channels = CHANNEL_SLOTS if extended else 2

    expressions = [
        channel_expression(channel_map[i], frequency, id_cycle[i], flash[i], force400[i], fps)
        for i in range(CHANNEL_SLOTS)
    ]

    return AudioPlan(
        expressions=expressions,
        channels=channels,
        layout=channel_layout(channels),
        frequency=frequency,
        channel_map=channel_map,
        id_cycle=id_cycle,
        flash=flash,
        force400=force400,
    )
