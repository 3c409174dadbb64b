import numpy as np
import pytest

from nofi.config import ModemConfig, SAMPLE_RATE
from nofi.demodulator import CommitReason, Demodulator
from nofi.framing import make_frame, parse_frame
from nofi.modulator import build_schedule, render_schedule
from nofi.simulation import schedule_samples
from nofi.spectrum import SpectrumAnalyzer
from nofi.tones import AUDIBLE, STEALTH, MatchedMode, char_for, match_marker

FRAMES = [
    "AB12|HI",
    "X9ZZ|Hello, World!",
    "Q1Q1|aaa bbb ccc",
    "ZZ00|~{|}` !@#$%^&*()",
    "0000|a|b|c",
]


def decode(schedule, config=None, trailing=2.0):
    """Plays a schedule into a fresh demodulator and returns its commits."""
    config = config or ModemConfig()
    demod = Demodulator(config=config, clock=lambda: 0.0)
    commits = []
    for t, freq, amplitude in schedule_samples(schedule, config=config, trailing=trailing):
        commit = demod.process(freq, amplitude, t)
        if commit is not None:
            commits.append(commit)
    return commits


class TestEndToEndTransmission:
    """Integration tests for frame -> tones -> samples -> frame."""

    @pytest.mark.parametrize("mode", [AUDIBLE, STEALTH], ids=lambda m: m.name)
    @pytest.mark.parametrize("frame", FRAMES)
    def test_round_trip(self, frame, mode):
        """Test that a frame survives modulation and demodulation."""
        commits = decode(build_schedule(frame, mode))
        assert len(commits) == 1
        assert commits[0].raw == frame
        assert commits[0].mode is mode
        assert commits[0].reason is CommitReason.SILENCE

    def test_hi_frame_to_message(self):
        """Test the full path for the AB12|HI example."""
        commits = decode(build_schedule(make_frame("AB12", "HI"), AUDIBLE))
        assert parse_frame(commits[0].raw) == ("AB12", "HI")

    def test_back_to_back_frames(self):
        """Test two frames separated by a long pause commit separately."""
        config = ModemConfig()
        demod = Demodulator(config=config, clock=lambda: 0.0)
        commits = []
        start = 0.0
        for frame in ["AAAA|one", "BBBB|two"]:
            schedule = build_schedule(frame, AUDIBLE, config)
            for t, freq, amplitude in schedule_samples(schedule, start=start, config=config, trailing=2.0):
                commit = demod.process(freq, amplitude, t)
                if commit is not None:
                    commits.append(commit)
            start = t
        assert [c.raw for c in commits] == ["AAAA|one", "BBBB|two"]

    def test_faint_transmission_not_received(self):
        """Test that a transmission below the noise gate is never decoded."""
        config = ModemConfig()
        demod = Demodulator(config=config, clock=lambda: 0.0)
        schedule = build_schedule("AB12|HI", AUDIBLE, config)
        for t, freq, amplitude in schedule_samples(schedule, config=config, loudness=20.0, trailing=2.0):
            assert demod.process(freq, amplitude, t) is None
        assert demod.buffer == ''

    def test_slower_tick_rate(self):
        """Test decoding with a 30 Hz spectral tick and a lower debounce."""
        config = ModemConfig(marker_debounce=2, char_debounce=2)
        demod = Demodulator(config=config, clock=lambda: 0.0)
        commits = []
        schedule = build_schedule("SLOW|tick", STEALTH, config)
        for t, freq, amplitude in schedule_samples(schedule, dt=1 / 30, config=config, trailing=2.0):
            commit = demod.process(freq, amplitude, t)
            if commit is not None:
                commits.append(commit)
        assert [c.raw for c in commits] == ["SLOW|tick"]


class TestRenderedAudio:
    """Integration tests running rendered PCM through the spectral front end."""

    @pytest.mark.parametrize("mode", [AUDIBLE, STEALTH], ids=lambda m: m.name)
    def test_tones_recovered_from_pcm(self, mode):
        """Test that every tone of a rendered frame is identified by the analyser."""
        frame = "AB12|Hi!"
        schedule = build_schedule(frame, mode)
        wave = render_schedule(schedule)
        analyzer = SpectrumAnalyzer()

        decoded = []
        for event in schedule:
            first = int(round(event.start * SAMPLE_RATE))
            segment = wave[first:first + analyzer.fft_size]
            analyzer.reset()
            reading = analyzer.analyze(segment)
            if event.is_marker:
                assert match_marker(reading.frequency) == MatchedMode(mode)
            else:
                decoded.append(chr(char_for(mode, reading.frequency)))

        assert ''.join(decoded) == frame

    def test_rendered_audio_properties(self):
        """Test that rendered audio is finite and not silent."""
        wave = render_schedule(build_schedule("Audio Test", AUDIBLE))
        assert np.isfinite(wave).all()
        assert not np.all(wave == 0)
