"""Command assembler: compiles a BroadcastConfig into an ffmpeg command."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from signalforge.builders import audio as tones
from signalforge.builders.clock import ClockAnchor
from signalforge.builders.video import GraphInputs, block_size, build_filter_graph
from signalforge.config import BroadcastConfig, EngineSettings
from signalforge.formats import BACKGROUNDS, DEFAULT_BACKGROUND, Background, get_background, get_format
from signalforge.models import CommandPlan, FormatSpec
from signalforge.resolvers.devices import DeviceSinkCache
from signalforge.resolvers.fonts import FontResolver

logger = logging.getLogger(__name__)

AUDIO_PREROLL_MS = 300
SQUARE_COLOR = "0xff2020"


def _background_input(background: Background, config: BroadcastConfig,
                      fmt: FormatSpec, settings: EngineSettings) -> list[str]:
    if background.id == "custom":
        return ["-loop", "1", "-i", str(settings.backgrounds_dir / Path(str(config.custom_background)).name)]
    if background.image:
        return ["-loop", "1", "-i", str(settings.pictures_dir / background.image)]
    source = background.source.format(size=fmt.resolution, fps=fmt.fps)
    return ["-f", "lavfi", "-i", source]


def effective_background(config: BroadcastConfig) -> Background:
    """The background actually used; a custom one without a file falls back to blue."""
    background = get_background(config.background)
    if background.id == "custom" and not config.custom_background:
        return BACKGROUNDS[DEFAULT_BACKGROUND]
    return background


def compile_command(
    config: BroadcastConfig | dict,
    settings: EngineSettings,
    anchor: ClockAnchor,
    devices: DeviceSinkCache,
    fonts: FontResolver | None = None,
) -> CommandPlan:
    """Build the complete engine argument list for *config*.

    Args:
        config: Broadcast configuration; a dict is sanitized first.
        settings: Host paths and executable locations.
        anchor: Clock anchor, read once through a snapshot.
        devices: DeckLink sink cache used to resolve the output device.
        fonts: Font resolver; defaults to one built from *settings*.
    """
    if not isinstance(config, BroadcastConfig):
        config = BroadcastConfig.from_dict(config)
    fonts = fonts or FontResolver(settings.font_path)
    clock = anchor.snapshot()

    fmt = get_format(config.video_format)
    background = effective_background(config)

    args = [settings.ffmpeg_path]
    args += _background_input(background, config, fmt, settings)
    inputs = GraphInputs(base="0:v")
    next_input = 1

    if config.animation == "square":
        size = block_size(fmt)
        args += ["-f", "lavfi", "-i",
                 f"color=c={SQUARE_COLOR}:size={size}x{size}:rate={fmt.fps}"]
        inputs.animation = f"{next_input}:v"
        next_input += 1
    elif config.animation == "staircase_pulse":
        args += ["-f", "lavfi", "-i", f"color=c=black@0:size={fmt.resolution}:rate={fmt.fps}"]
        inputs.animation = f"{next_input}:v"
        next_input += 1

    if config.show_logo:
        logo = settings.uploads_dir / Path(str(config.logo_file)).name if config.logo_file else settings.logo_path
        args += ["-i", str(logo)]
        inputs.logo = f"{next_input}:v"
        next_input += 1

    audio = tones.synthesize(
        config.audio_channel_map,
        config.audio_channel_id_cycle,
        config.audio_channel_flash,
        config.audio_channel_force400,
        config.audio_freq,
        fmt.fps,
    )
    audio_index = next_input
    args += ["-f", "lavfi", "-i", audio.source()]

    graph = build_filter_graph(config, fmt, background, inputs, audio, clock, fonts)
    args += ["-filter_complex", graph.render()]

    args += ["-map", "[v]", "-map", f"{audio_index}:a"]

    audio_filters = [f"adelay={AUDIO_PREROLL_MS}:all=1", "aresample=async=1"]
    gain = tones.resolve_gain(config.audio_level_db)
    if gain:
        audio_filters.append(f"volume={gain}")
    args += ["-af", ",".join(audio_filters)]

    channels = str(audio.channels)
    args += ["-c:a", "pcm_s16le", "-ar", str(tones.SAMPLE_RATE),
             "-ac", channels, "-channel_layout", audio.layout]

    device = devices.resolve(config.decklink_device)
    args += ["-vsync", "1", *fmt.output_args,
             "-audio_depth", "16", "-channels", channels, device]

    logger.debug("Compiled command: %s", " ".join(args))
    return CommandPlan(
        args=args,
        filter_graph=graph,
        audio_channels=audio.channels,
        channel_layout=audio.layout,
        device=device,
        audio_input_index=audio_index,
    )


@dataclass
class Compiler:
    """Bundles the shared state a compile needs (settings, clock, devices, fonts)."""

    settings: EngineSettings = field(default_factory=EngineSettings.from_env)
    anchor: ClockAnchor | None = None
    devices: DeviceSinkCache | None = None
    fonts: FontResolver | None = None

    def __post_init__(self):
        if self.anchor is None:
            self.anchor = ClockAnchor()
        if self.devices is None:
            self.devices = DeviceSinkCache(self.settings.ffmpeg_path, self.settings.default_device)
        if self.fonts is None:
            self.fonts = FontResolver(self.settings.font_path)

    def compile(self, config: BroadcastConfig | dict) -> CommandPlan:
        return compile_command(config, self.settings, self.anchor, self.devices, self.fonts)
