"""Tests for the font resolver."""

from unittest.mock import patch

from signalforge.filtergraph import Quoted
from signalforge.resolvers.fonts import FontChoice, FontOption, FontResolver

DEFAULT = "/fonts/mono.ttf"


class TestFontResolver:
    @patch.object(FontResolver, "_exists",
                  side_effect=lambda p: p == "/System/Library/Fonts/Supplemental/Impact.ttf")
    def test_first_existing_candidate(self, mock_exists):
        choice = FontResolver(DEFAULT).resolve("impact")
        assert choice == FontChoice(path="/System/Library/Fonts/Supplemental/Impact.ttf")
        assert mock_exists.call_count == 2

    @patch.object(FontResolver, "_exists", return_value=False)
    def test_named_fallback(self, mock_exists):
        choice = FontResolver(DEFAULT).resolve("arial_black")
        assert choice == FontChoice(name="Arial-Black")
        assert choice.as_params() == {"font": "Arial-Black"}

    @patch.object(FontResolver, "_exists", return_value=False)
    def test_default_path_unchecked(self, mock_exists):
        assert FontResolver(DEFAULT).resolve("sf_mono") == FontChoice(path=DEFAULT)

    @patch.object(FontResolver, "_exists", return_value=False)
    def test_unknown_family_uses_default(self, mock_exists):
        resolver = FontResolver(DEFAULT)
        assert resolver.resolve("wingdings") == FontChoice(path=DEFAULT)
        assert resolver.resolve(["impact"]) == FontChoice(path=DEFAULT)
        assert resolver.resolve(None) == FontChoice(path=DEFAULT)

    @patch("signalforge.resolvers.fonts.os.path.exists", side_effect=OSError("denied"))
    def test_filesystem_error_is_absorbed(self, mock_exists, caplog):
        choice = FontResolver(DEFAULT).resolve("arial_bold")
        assert choice == FontChoice(name="Arial-BoldMT")
        assert "Font path check failed" in caplog.text

    def test_custom_family_table(self):
        resolver = FontResolver(DEFAULT, families={"sf_mono": FontOption((), "Menlo")})
        assert resolver.resolve("sf_mono") == FontChoice(name="Menlo")

    def test_default_and_params(self):
        choice = FontResolver(DEFAULT).default()
        params = choice.as_params()
        assert params == {"fontfile": DEFAULT}
        assert isinstance(params["fontfile"], Quoted)
