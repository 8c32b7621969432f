"""Shared data types used across SignalForge."""

from dataclasses import dataclass
from enum import Enum

from signalforge.filtergraph import FilterGraphProgram


class Anchor(str, Enum):
    """One of the nine named screen positions."""

    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def row(self) -> str:
        return self.value.split("-")[0]

    @property
    def column(self) -> str:
        if self is Anchor.CENTER:
            return "center"
        return self.value.split("-")[1]

    @classmethod
    def parse(cls, value, default: "Anchor") -> "Anchor":
        try:
            return cls(value)
        except ValueError:
            return default


@dataclass(frozen=True)
class FormatSpec:
    """Static description of one output format."""

    id: str
    width: int
    height: int
    fps: int
    interlaced: bool
    output_args: tuple[str, ...]

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Placement:
    """x/y expressions for an anchored element."""

    x: str
    y: str


@dataclass
class CommandPlan:
    """Everything the engine needs to start a broadcast."""

    args: list[str]
    filter_graph: FilterGraphProgram
    audio_channels: int
    channel_layout: str
    device: str
    audio_input_index: int

    def command_line(self) -> str:
        return " ".join(self.args)
