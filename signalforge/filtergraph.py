"""Typed filter-graph model and its rendering to ffmpeg's filtergraph syntax.

Stages are built as data (filter name, parameters, input/output pads) and only
turned into text by :meth:`FilterGraphProgram.render`.  All quoting and
escaping for the drawtext/expression language happens in this module.
"""

from dataclasses import dataclass, field

STAGE_SEPARATOR = ";"


class Literal(str):
    """User text shown by drawtext; escaped and single-quoted on render."""


class Template(str):
    """Drawtext text whose `%{...}` expansions are evaluated by the engine."""


class Quoted(str):
    """An expression or path that must be single-quoted on render."""


def escape_drawtext_text(text: str, expand: bool = False) -> str:
    """Escape text for a single-quoted drawtext ``text=`` value.

    A literal two-character ``\\n`` is treated as a line break.  Unless
    *expand* is set, ``%`` is doubled so drawtext prints it verbatim.
    """
    normalized = str(text).replace("\\n", "\n")
    escaped = (
        normalized
        .replace("\\", "\\\\")
        .replace("\n", "\\\\n")
        .replace("'", "\\'")
        .replace(":", "\\:")
    )
    return escaped if expand else escaped.replace("%", "%%")


def quote(value: str) -> str:
    return "'" + str(value).replace("'", "\\'") + "'"


def format_number(value: float | int) -> str:
    """Render a number the shortest way that keeps its value (``96.0`` -> ``96``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def render_value(value) -> str:
    if isinstance(value, Literal):
        return f"'{escape_drawtext_text(value)}'"
    if isinstance(value, Template):
        return f"'{escape_drawtext_text(value, expand=True)}'"
    if isinstance(value, Quoted):
        return quote(value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


@dataclass
class Filter:
    """A single ffmpeg filter with positional and named options."""

    name: str
    args: tuple = ()
    params: dict = field(default_factory=dict)

    def to_string(self) -> str:
        options = [render_value(a) for a in self.args]
        options += [f"{k}={render_value(v)}" for k, v in self.params.items()]
        if not options:
            return self.name
        return f"{self.name}={':'.join(options)}"


@dataclass
class Stage:
    """A linear chain of filters between labelled input and output pads."""

    inputs: list[str]
    filters: list[Filter]
    output: str | None = None

    def to_string(self) -> str:
        pads_in = "".join(f"[{p}]" for p in self.inputs)
        chain = ",".join(f.to_string() for f in self.filters)
        pad_out = f"[{self.output}]" if self.output else ""
        return f"{pads_in}{chain}{pad_out}"


@dataclass
class FilterGraphProgram:
    """Ordered stages; each stage normally consumes the previous stage's pad."""

    stages: list[Stage] = field(default_factory=list)

    def add(self, stage: Stage) -> Stage:
        self.stages.append(stage)
        return stage

    @property
    def last_output(self) -> str | None:
        return self.stages[-1].output if self.stages else None

    def rename_last_output(self, pad: str) -> None:
        if not self.stages:
            raise ValueError("cannot rename the output of an empty filter graph")
        self.stages[-1].output = pad

    def outputs(self) -> list[str]:
        return [s.output for s in self.stages if s.output]

    def render(self) -> str:
        return STAGE_SEPARATOR.join(s.to_string() for s in self.stages)

    def __len__(self) -> int:
        return len(self.stages)
