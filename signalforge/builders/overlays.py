"""Drawtext/drawbox overlays: user text, flash cues and the status block."""

import re

from signalforge.builders.audio import AudioPlan
from signalforge.config import MAX_OVERLAY_FONT, MIN_OVERLAY_FONT, as_number, clamp, round_half_up
from signalforge.filtergraph import Filter, Literal, Quoted, format_number
from signalforge.formats import TEXT_POSITIONS
from signalforge.models import Anchor, FormatSpec
from signalforge.resolvers.fonts import FontChoice

LINE_SPACING = 1.2
OVERLAY_MARGIN = 50

_BOX_STYLES = {
    "black_solid": "black@1",
    "black_soft": "black@0.6",
    "white_soft": "white@0.6",
    "yellow_soft": "yellow@0.6",
    "blue_soft": "blue@0.5",
}

_BORDER_WIDTHS = {"semi": 2, "heavy": 4}


def split_lines(text: str) -> list[str]:
    """Split overlay text on real or literal (``\\n``) line breaks."""
    return str(text).replace("\\n", "\n").split("\n")


def border_params(weight: str, color: str) -> dict:
    width = _BORDER_WIDTHS.get(weight)
    if width is None:
        return {"borderw": 0}
    return {"borderw": width, "bordercolor": color}


def box_params(style: str, font_size: float) -> dict:
    color = _BOX_STYLES.get(style)
    if color is None:
        return {}
    return {"box": 1, "boxcolor": color, "boxborderw": max(4, round_half_up(font_size * 0.15))}


def text_line_y(base_y: str, anchor: Anchor, index: int, count: int, font_size: float) -> str:
    if count <= 1:
        return base_y
    spacing = font_size * LINE_SPACING
    if anchor.row == "center":
        half = (count - 1) * spacing / 2
        return f"((h-text_h)/2-{format_number(half)})+{format_number(index * spacing)}"
    return f"({base_y})+{format_number(index * spacing)}"


def text_filters(text: str, font: FontChoice, font_size: float, color: str,
                 weight: str, background: str, anchor: Anchor) -> list[Filter]:
    """One drawtext filter per non-blank line of *text*.

    Blank lines produce no filter but still take up a line of spacing.
    """
    lines = split_lines(text)
    pos = TEXT_POSITIONS[anchor]
    filters = []
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        filters.append(Filter("drawtext", params={
            "text": Literal(line),
            **font.as_params(),
            "fontsize": font_size,
            "fontcolor": color,
            **border_params(weight, color),
            **box_params(background, font_size),
            "x": pos.x,
            "y": text_line_y(pos.y, anchor, i, len(lines), font_size),
        }))
    return filters


# --- Flash cue ---------------------------------------------------------------

FLASH_BOX_W = "iw*0.15"
FLASH_BOX_H = "ih*0.15"


def flash_box_y(offset_percent, box_height: str = FLASH_BOX_H) -> str:
    """Vertical position of the flash box, shifted by a percentage of centre."""
    number = as_number(offset_percent)
    offset = clamp(number, -100, 100) if number is not None else 0
    base = f"(ih-({box_height}))/2"
    if offset == 0:
        return base
    return f"({base})+({offset / 100:.4f}*({base}))"


def _to_text_space(expr: str) -> str:
    return re.sub(r"\biw\b", "w", re.sub(r"\bih\b", "h", expr))


def flash_text_y(box_y: str, box_height: str = FLASH_BOX_H) -> str:
    return f"({_to_text_space(box_y)})+((({_to_text_space(box_height)})/2)-(text_h/2))"


def flash_filters(fmt: FormatSpec, offset_percent, font: FontChoice) -> list[Filter]:
    """Box and label pairs shown for exactly one frame per cue.

    The two-second cycle matches the audio flash gates: the 1 kHz cue on
    frame 0, the 400 Hz cue one second later.
    """
    frames_per_cycle = max(1, round_half_up(fmt.fps * 2))
    cues = [
        (f"eq(mod(n,{frames_per_cycle}),0)", "white@0.9", "1KHz", "black"),
        (f"eq(mod(n,{frames_per_cycle}),{fmt.fps})", "black@0.9", "400Hz", "white"),
    ]
    text_size = max(32, round_half_up(fmt.height * 0.08))
    box_y = flash_box_y(offset_percent)

    filters = []
    for enable, box_color, label, text_color in cues:
        filters.append(Filter("drawbox", params={
            "x": f"(iw-{FLASH_BOX_W})/2",
            "y": Quoted(box_y),
            "w": FLASH_BOX_W,
            "h": FLASH_BOX_H,
            "color": box_color,
            "t": "fill",
            "enable": Quoted(enable),
        }))
        filters.append(Filter("drawtext", params={
            "text": Literal(label),
            **font.as_params(),
            "fontsize": text_size,
            "fontcolor": text_color,
            "x": "(w-text_w)/2",
            "y": Quoted(flash_text_y(box_y)),
            "enable": Quoted(enable),
        }))
    return filters


# --- Status overlay ----------------------------------------------------------

def format_db_label(value) -> str | None:
    """``-6`` -> ``"-6 dBFS"``, ``3.25`` -> ``"+3.25 dBFS"``."""
    if isinstance(value, str):
        m = re.search(r"-?\d+(?:\.\d+)?", value)
        value = m.group(0) if m else None
    number = as_number(value)
    if number is None:
        return None

    rounded = round_half_up(number * 1000) / 1000
    if rounded.is_integer():
        formatted = str(int(rounded))
    else:
        formatted = f"{rounded:.2f}".rstrip("0").rstrip(".")
    prefix = "+" if rounded > 0 else ""
    return f"{prefix}{formatted} dBFS"


def overlay_font_size(size, frame_height: int) -> int:
    number = as_number(size)
    if number is not None and MIN_OVERLAY_FONT <= number <= MAX_OVERLAY_FONT:
        return round_half_up(number)
    baseline = max(24, round_half_up(frame_height * 0.035))
    return int(clamp(baseline, MIN_OVERLAY_FONT, MAX_OVERLAY_FONT))


def overlay_x(anchor: Anchor) -> str:
    if anchor.column == "right":
        return "w-text_w-50"
    if anchor.column == "center":
        return "(w-text_w)/2"
    return "50"


def overlay_start_y(anchor: Anchor, frame_height: int, total_height: int) -> int:
    if anchor.row == "top":
        return OVERLAY_MARGIN
    if anchor.row == "bottom":
        return max(OVERLAY_MARGIN, frame_height - total_height - OVERLAY_MARGIN)
    return max(OVERLAY_MARGIN, round_half_up((frame_height - total_height) / 2))


def status_lines(format_id: str, audio: AudioPlan, level_db) -> list[str]:
    """Human-readable summary of the format and channel roles."""
    base, flash, cycle, forced = [], [], [], []
    for i in range(min(audio.channels, len(audio.channel_map))):
        if not audio.channel_map[i]:
            continue
        label = f"Ch{i + 1}"
        if audio.flash[i]:
            flash.append(label)
        if audio.id_cycle[i]:
            cycle.append(label)
        if audio.force400[i]:
            forced.append(label)
        if not audio.flash[i] and not audio.force400[i]:
            base.append(label)

    lines = []
    if format_id:
        lines.append(f"Format: {format_id}")

    descriptor = f"{round_half_up(audio.frequency)} Hz"
    db_label = format_db_label(level_db)
    if db_label:
        descriptor = f"{descriptor} {db_label}"
    if base:
        descriptor = f"{descriptor}: {', '.join(base)}"
    lines.append(f"▌ {descriptor}")

    lines.append(f"▌ 400Hz: {', '.join(forced) or '--'}")
    lines.append(f"▌ Cycle ID: {', '.join(cycle) or '--'}")
    lines.append(f"▌ 1-frame Flash: {', '.join(flash) or '--'}")
    return [ln.strip() for ln in lines if ln.strip()]


def status_filters(lines: list[str], fmt: FormatSpec, font_size, anchor: Anchor,
                   font: FontChoice) -> list[Filter]:
    if not lines:
        return []

    size = overlay_font_size(font_size, fmt.height)
    spacing = max(6, round_half_up(size * 0.3))
    border = max(4, round_half_up(size * 0.25))
    stride = size + spacing
    total_height = size * len(lines) + spacing * (len(lines) - 1)
    start_y = overlay_start_y(anchor, fmt.height, total_height)
    x = overlay_x(anchor)

    return [
        Filter("drawtext", params={
            "text": Literal(line),
            **font.as_params(),
            "fontsize": size,
            "fontcolor": "white",
            "box": 1,
            "boxcolor": "black@0.55",
            "boxborderw": border,
            "x": x,
            "y": start_y + i * stride,
        })
        for i, line in enumerate(lines)
    ]
