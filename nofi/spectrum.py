# spectrum.py
#
# Spectral front end. Each analysis window is reduced to the single
# loudest frequency bin and its level on a 0..255 scale, which is all the
# demodulator needs. The scaling follows the usual analyser convention:
# Blackman window, magnitude smoothed across windows, then decibels between
# MIN_DECIBELS and MAX_DECIBELS mapped linearly onto 0..255.

from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_CONFIG, MIN_DECIBELS, MAX_DECIBELS


@dataclass(frozen=True)
class SpectrumReading:
    frequency: float        # centre of the loudest bin, Hz
    amplitude: float        # level of that bin, 0..255
    signal_strength: int    # loudest bin as a percentage
    audio_level: int        # average level as a percentage


SILENT = SpectrumReading(0.0, 0.0, 0, 0)


class SpectrumAnalyzer:
    def __init__(self, sample_rate=DEFAULT_CONFIG.sample_rate, fft_size=DEFAULT_CONFIG.fft_size,
                 smoothing=DEFAULT_CONFIG.smoothing):
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.window = np.blackman(fft_size)
        self._previous = np.zeros(fft_size // 2)

    @property
    def bin_width(self):
        return self.sample_rate / self.fft_size

    def reset(self):
        self._previous = np.zeros(self.fft_size // 2)

    def magnitudes(self, chunk):
        """Returns the smoothed magnitude spectrum of the most recent window of samples."""
        chunk = np.asarray(chunk, dtype=np.float64).ravel()
        if len(chunk) >= self.fft_size:
            chunk = chunk[-self.fft_size:]
        else:
            chunk = np.pad(chunk, (self.fft_size - len(chunk), 0))

        magnitudes = np.abs(np.fft.rfft(chunk * self.window))[:self.fft_size // 2] / self.fft_size
        smoothed = self.smoothing * self._previous + (1 - self.smoothing) * magnitudes
        self._previous = smoothed
        return smoothed

    @staticmethod
    def to_bytes(magnitudes):
        decibels = 20 * np.log10(np.maximum(magnitudes, 1e-12))
        scaled = 255 * (decibels - MIN_DECIBELS) / (MAX_DECIBELS - MIN_DECIBELS)
        return np.clip(scaled, 0, 255)

    def analyze(self, chunk):
        magnitudes = self.magnitudes(chunk)
        spectrum = self.to_bytes(magnitudes)
        # pick the peak before clipping, loud tones saturate several bins at 255
        peak = int(np.argmax(magnitudes))
        amplitude = float(spectrum[peak])
        if amplitude <= 0:
            return SILENT
        return SpectrumReading(
            frequency=peak * self.bin_width,
            amplitude=amplitude,
            signal_strength=int(min(100, amplitude / 255 * 100)),
            audio_level=int(min(100, float(np.mean(spectrum)) / 50 * 100)),
        )
