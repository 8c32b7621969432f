"""Tests for the aevalsrc tone synthesizer."""

from signalforge.builders.audio import (
    SILENCE_EXPR,
    channel_expression,
    channel_layout,
    cycle_envelope,
    flash_gates,
    resolve_gain,
    samples_per_frame,
    synthesize,
    tone,
)

OFF = [False] * 8


def _map(*active: int) -> list[bool]:
    return [i in active for i in range(8)]


class TestChannelExpression:
    def test_inactive_is_silence_regardless_of_flags(self):
        assert channel_expression(False, 1000, True, True, True, 50) == SILENCE_EXPR

    def test_plain_tone(self):
        assert channel_expression(True, 1000.0, False, False, False, 50) == "sin(2*PI*1000*t)"

    def test_force400_overrides_frequency(self):
        assert channel_expression(True, 1000, False, False, True, 50) == tone(400)

    def test_force400_with_flash_is_gated_pair_only(self):
        lead, tail = flash_gates(50)
        expr = channel_expression(True, 1000, False, True, True, 50)
        assert expr == f"({tone(1000)}*{lead})+({tone(400)}*{tail})"

    def test_cycle_only_multiplies_envelope(self):
        expr = channel_expression(True, 1000, True, False, False, 50)
        assert expr == f"({tone(1000)}*{cycle_envelope()})"
        assert "between" not in expr

    def test_cycle_with_flash_keeps_base_tone(self):
        expr = channel_expression(True, 440, True, True, False, 50)
        assert expr.startswith(f"(({tone(440)}*{cycle_envelope()}))+")
        assert "between" in expr


class TestFlashGates:
    def test_one_frame_of_samples(self):
        lead, tail = flash_gates(50)
        assert lead == "if(between(mod(floor(t*48000)\\,96000)\\,0\\,959)\\,3.981072\\,0)"
        assert tail == "if(between(mod(floor(t*48000)\\,96000)\\,48000\\,48959)\\,3.981072\\,0)"

    def test_samples_per_frame(self):
        assert samples_per_frame(25) == 1920
        assert samples_per_frame(30) == 1600
        assert samples_per_frame(60) == 800


class TestGain:
    def test_unity_is_omitted(self):
        assert resolve_gain(0) is None
        assert resolve_gain("loud") is None

    def test_cut(self):
        assert resolve_gain(-6) == "-6dB"
        assert resolve_gain(-3.5) == "-3.5dB"

    def test_asymmetric_clamp(self):
        assert resolve_gain(20) == "12dB"
        assert resolve_gain(-200) == "-120dB"


class TestLayouts:
    def test_named_layouts(self):
        assert channel_layout(2) == "stereo"
        assert channel_layout(3) == "3.0"
        assert channel_layout(6) == "5.1"
        assert channel_layout(8) == "7.1"

    def test_unnamed(self):
        assert channel_layout(12) == "12c"


class TestSynthesize:
    def test_stereo_still_emits_eight_expressions(self):
        plan = synthesize(_map(0, 1), OFF, OFF, OFF, 1000, 50)
        assert plan.channels == 2
        assert plan.layout == "stereo"
        assert len(plan.expressions) == 8
        assert plan.expressions[2:] == [SILENCE_EXPR] * 6

    def test_channel_beyond_first_pair_switches_to_eight(self):
        plan = synthesize(_map(0, 3), OFF, OFF, OFF, 1000, 50)
        assert plan.channels == 8
        assert plan.layout == "7.1"

    def test_silent_map_activates_first_pair(self):
        plan = synthesize(OFF, OFF, OFF, OFF, 1000, 50)
        assert plan.channel_map[:2] == [True, True]
        assert plan.expressions[0] == tone(1000)
        assert plan.expressions[1] == tone(1000)

    def test_frequency_clamped(self):
        assert synthesize(_map(0), OFF, OFF, OFF, 5, 50).frequency == 20
        assert synthesize(_map(0), OFF, OFF, OFF, None, 50).frequency == 1000

    def test_short_flag_lists_are_padded(self):
        plan = synthesize([True], [True], None, "x", 1000, 50)
        assert plan.id_cycle == [True] + [False] * 7
        assert plan.flash == OFF
        assert not plan.any_flash

    def test_source_directive(self):
        plan = synthesize(_map(0), OFF, OFF, OFF, 1000, 50)
        source = plan.source()
        assert source.startswith("aevalsrc=exprs=sin(2*PI*1000*t)|(0.000001)|")
        assert source.endswith(":sample_rate=48000:channel_layout=stereo")
        assert source.count("|") == 7
