"""Font resolver: maps a logical font family to a drawtext font option."""

import logging
import os
from dataclasses import dataclass

from signalforge.filtergraph import Quoted

logger = logging.getLogger(__name__)

DEFAULT_FAMILY = "sf_mono"


@dataclass(frozen=True)
class FontOption:
    candidates: tuple[str, ...] = ()
    fallback_name: str | None = None


@dataclass(frozen=True)
class FontChoice:
    """Either a font file (``fontfile=``) or a fontconfig name (``font=``)."""

    path: str | None = None
    name: str | None = None

    def as_params(self) -> dict:
        if self.path is not None:
            return {"fontfile": Quoted(self.path)}
        return {"font": self.name}


def _family_table(default_font_path: str) -> dict[str, FontOption]:
    def macos(file_name: str) -> tuple[str, ...]:
        return (
            f"/Library/Fonts/{file_name}",
            f"/System/Library/Fonts/Supplemental/{file_name}",
            f"/System/Library/Fonts/{file_name}",
        )

    return {
        "sf_mono": FontOption((default_font_path,)),
        "arial_bold": FontOption(macos("Arial Bold.ttf"), "Arial-BoldMT"),
        "arial_black": FontOption(macos("Arial Black.ttf"), "Arial-Black"),
        "impact": FontOption(macos("Impact.ttf"), "Impact"),
    }


@dataclass
class FontResolver:
    """Resolve font families against the local filesystem.

    Candidates are tried in order; the first existing file wins.  With no
    existing file the family's fallback name is used, and failing that the
    default font path is returned unchecked.
    """

    default_font_path: str
    families: dict[str, FontOption] | None = None

    def __post_init__(self):
        if self.families is None:
            self.families = _family_table(self.default_font_path)

    def resolve(self, family: str | None = None) -> FontChoice:
        option = (self.families.get(family) if isinstance(family, str) else None) \
            or self.families.get(DEFAULT_FAMILY) or FontOption()

        for candidate in option.candidates:
            if self._exists(candidate):
                return FontChoice(path=candidate)

        if option.fallback_name:
            return FontChoice(name=option.fallback_name)

        return FontChoice(path=self.default_font_path)

    def default(self) -> FontChoice:
        """The monospace font used for clock and technical overlays."""
        return FontChoice(path=self.default_font_path)

    @staticmethod
    def _exists(path: str) -> bool:
        try:
            return os.path.exists(path)
        except (OSError, ValueError) as e:
            logger.warning("Font path check failed for %s: %s", path, e)
            return False
