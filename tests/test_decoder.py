"""
Unit tests for ProTrackerDecoder and DecoderRegistry.
"""
import pytest
from moddupe.core.decoder import ProTrackerDecoder, DecoderRegistry, period_to_note
from moddupe.core.interfaces import Decoder, DecodeError
from moddupe.core.models import Command
from conftest import build_mod, C1, D1, E1, G1


class TestPeriodToNote:
    @pytest.mark.parametrize("period, note", [
        (0, 0),
        (1712, 25),
        (856, 37),
        (428, 49),
        (57, 84),
    ])
    def test_table_periods(self, period, note):
        assert period_to_note(period) == note

    def test_detuned_period_maps_to_closest_note(self):
        assert period_to_note(850) == period_to_note(856)
        assert period_to_note(765) == period_to_note(762)


class TestProTrackerDecoder:
    """Parsing of 31-sample modules."""

    def test_basic_module(self):
        data = build_mod([{(0, 0): (C1, 0, 0), (3, 2): (E1, 0xC, 0x40)}],
                         samples=[("ahhvox", b"\x01\x02" * 10)], title="my song")

        module = ProTrackerDecoder().decode(data)

        assert module.format == "mod"
        assert module.title == "my song"
        assert module.channels == 4
        assert module.subsong_count == 1
        assert module.subsongs[0].orders == (0,)
        assert module.subsongs[0].start_order == 0
        assert module.num_rows(0) == 64
        assert module.command(0, 0, 0).note == 37
        assert module.command(0, 3, 2) == Command(note=41, effect=0xC, param=0x40)
        assert module.command(0, 1, 1) == Command()

    def test_samples(self):
        data = build_mod([{}], samples=[("ahhvox", b"\x01\x02" * 10), ("", b""), ("kick", b"\x05\x06")])

        module = ProTrackerDecoder().decode(data)

        assert len(module.samples) == 31
        assert module.samples[0].name == "ahhvox"
        assert module.samples[0].data == b"\x01\x02" * 10
        assert module.samples[0].length_bytes == 20
        assert module.samples[1].length_bytes == 0
        assert module.samples[2].data == b"\x05\x06"
        assert module.sample_names[:3] == ("ahhvox", "", "kick")

    def test_order_list_and_pattern_count(self):
        data = build_mod([{(0, 0): (C1, 0, 0)}, {(0, 0): (G1, 0, 0)}], orders=(1, 0, 1))

        module = ProTrackerDecoder().decode(data)

        assert module.subsongs[0].orders == (1, 0, 1)
        assert set(module.patterns) == {0, 1}
        assert module.command(1, 0, 0).note == period_to_note(G1)

    @pytest.mark.parametrize("channels, tag", [
        (4, b"M.K."),
        (4, b"FLT4"),
        (6, b"6CHN"),
        (8, b"8CHN"),
        (8, b"OCTA"),
        (12, b"12CH"),
    ])
    def test_channel_tags(self, channels, tag):
        data = build_mod([{(0, channels - 1): (D1, 0, 0)}], channels=channels, tag=tag)

        module = ProTrackerDecoder().decode(data)

        assert module.channels == channels
        assert module.command(0, 0, channels - 1).note == period_to_note(D1)

    def test_unknown_tag_raises(self):
        data = build_mod([{}], tag=b"ABCD")

        with pytest.raises(DecodeError, match="Unknown module tag"):
            ProTrackerDecoder().decode(data)

    @pytest.mark.parametrize("tag", [b"0CHN", b"00CH"])
    def test_zero_channel_tag_raises(self, tag):
        """A module without channels would hash to the empty note stream."""
        data = build_mod([{}], tag=tag)

        with pytest.raises(DecodeError, match="Unknown module tag"):
            ProTrackerDecoder().decode(data)

    def test_too_small_raises(self):
        with pytest.raises(DecodeError, match="too small"):
            ProTrackerDecoder().decode(b"not a module")

    def test_zero_song_length_raises(self):
        data = bytearray(build_mod([{}]))
        data[950] = 0

        with pytest.raises(DecodeError, match="song length"):
            ProTrackerDecoder().decode(bytes(data))

    def test_truncated_patterns_raise(self):
        data = build_mod([{}])

        with pytest.raises(DecodeError, match="truncated"):
            ProTrackerDecoder().decode(data[:2000])

    def test_truncated_sample_is_clipped(self):
        data = build_mod([{}], samples=[("long", b"\x07" * 100)])

        module = ProTrackerDecoder().decode(data[:-40])

        assert module.samples[0].length_bytes == 60

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            ProTrackerDecoder().decode(b"")


class TestDecoderRegistry:
    def test_first_successful_decoder_wins(self):
        data = build_mod([{(0, 0): (C1, 0, 0)}])

        module = DecoderRegistry().decode(data)

        assert module.format == "mod"

    def test_errors_are_aggregated(self):
        class Failing(Decoder):
            def decode(self, data):
                raise DecodeError("nope")

        registry = DecoderRegistry([Failing(), ProTrackerDecoder()])

        with pytest.raises(DecodeError) as exc_info:
            registry.decode(b"garbage")

        assert "Failing: nope" in str(exc_info.value)
        assert "ProTrackerDecoder" in str(exc_info.value)

    def test_fallback_to_next_decoder(self):
        class Failing(Decoder):
            def decode(self, data):
                raise DecodeError("nope")

        registry = DecoderRegistry([Failing(), ProTrackerDecoder()])

        assert registry.decode(build_mod([{}])).channels == 4
