import numpy as np
import pytest

from nofi.config import SAMPLE_RATE, FFT_SIZE, THRESHOLD
from nofi.spectrum import SILENT, SpectrumAnalyzer


def sine(freq, amplitude=0.5, n=FFT_SIZE):
    t = np.arange(n) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class TestSpectrumAnalyzer:
    """Test cases for the dominant-frequency front end."""

    def test_bin_width(self):
        """Test the analyser resolution."""
        assert SpectrumAnalyzer().bin_width == pytest.approx(SAMPLE_RATE / FFT_SIZE)

    @pytest.mark.parametrize("freq", [1200.0, 3000.0, 4100.0, 16500.0, 18625.0])
    def test_pure_tone_peak(self, freq):
        """Test that a pure tone is reported within one bin of its frequency."""
        analyzer = SpectrumAnalyzer()
        reading = analyzer.analyze(sine(freq))
        assert abs(reading.frequency - freq) <= analyzer.bin_width
        assert reading.amplitude > THRESHOLD
        assert reading.signal_strength > 0

    def test_silence(self):
        """Test that digital silence yields the SILENT reading."""
        assert SpectrumAnalyzer().analyze(np.zeros(FFT_SIZE)) == SILENT

    def test_faint_tone_below_threshold(self):
        """Test that a very quiet tone falls below the decoder threshold."""
        reading = SpectrumAnalyzer().analyze(sine(3000.0, amplitude=1e-4))
        assert reading.amplitude < THRESHOLD

    def test_short_chunk_is_padded(self):
        """Test that fewer samples than the window still analyse."""
        analyzer = SpectrumAnalyzer()
        reading = analyzer.analyze(sine(3000.0, n=FFT_SIZE * 3 // 4))
        assert abs(reading.frequency - 3000.0) <= 2 * analyzer.bin_width

    def test_long_chunk_uses_latest_window(self):
        """Test that only the most recent window is analysed."""
        analyzer = SpectrumAnalyzer(smoothing=0.0)
        chunk = np.concatenate([sine(1200.0), sine(5000.0)])
        reading = analyzer.analyze(chunk)
        assert abs(reading.frequency - 5000.0) <= analyzer.bin_width

    def test_smoothing_carries_over(self):
        """Test that the previous window bleeds into the next one."""
        analyzer = SpectrumAnalyzer(smoothing=0.2)
        first = analyzer.magnitudes(sine(3000.0)).copy()
        second = analyzer.magnitudes(np.zeros(FFT_SIZE))
        assert np.allclose(second, 0.2 * first)
        analyzer.reset()
        assert not analyzer.magnitudes(np.zeros(FFT_SIZE)).any()

    def test_to_bytes_scale(self):
        """Test the decibel to 0..255 mapping at its edges."""
        scaled = SpectrumAnalyzer.to_bytes(np.array([1e-6, 10 ** (-65 / 20), 1e-1]))
        assert scaled[0] == 0
        assert scaled[1] == pytest.approx(127.5)
        assert scaled[2] == 255
