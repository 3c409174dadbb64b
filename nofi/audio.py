# audio.py
#
# Speaker and microphone adapters built on sounddevice.
#
# SoundDeviceOutput plays a tone schedule on a worker thread and reports
# completion through a callback. SoundDeviceInput records in small blocks,
# hands them to a processing thread through a queue, and turns each block
# into a SpectrumReading for the station.

import queue
import threading

import numpy as np
import sounddevice as sd

from .config import DEFAULT_CONFIG, SAMPLE_INTERVAL
from .errors import DeviceError, TransmissionInterrupted
from .modulator import render_schedule
from .spectrum import SpectrumAnalyzer


class SoundDeviceOutput:
    def __init__(self, sample_rate=DEFAULT_CONFIG.sample_rate, device=None):
        self.sample_rate = sample_rate
        self.device = device
        self._interrupted = threading.Event()
        self._thread = None

    def check(self):
        try:
            sd.check_output_settings(device=self.device, channels=1, samplerate=self.sample_rate)
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceError(f"Speaker unavailable: {e}") from e

    def play(self, schedule, on_complete):
        """Starts playing a schedule. on_complete(error) fires when it ends."""
        self.check()
        wave = render_schedule(schedule, self.sample_rate)
        self._interrupted.clear()
        self._thread = threading.Thread(target=self._play, args=(wave, on_complete),
                                        name="tone-output", daemon=True)
        self._thread.start()

    def _play(self, wave, on_complete):
        try:
            sd.play(wave, self.sample_rate, device=self.device)
            sd.wait()
        except sd.PortAudioError as e:
            on_complete(DeviceError(f"Playback failed: {e}"))
            return
        if self._interrupted.is_set():
            on_complete(TransmissionInterrupted("Transmission stopped"))
        else:
            on_complete(None)

    def stop(self):
        self._interrupted.set()
        sd.stop()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None


class SoundDeviceInput:
    """Microphone feed producing one SpectrumReading per block."""

    def __init__(self, on_reading, analyzer=None, sample_rate=DEFAULT_CONFIG.sample_rate,
                 block_duration=SAMPLE_INTERVAL, device=None):
        self.on_reading = on_reading
        self.analyzer = analyzer or SpectrumAnalyzer(sample_rate=sample_rate)
        self.sample_rate = sample_rate
        self.blocksize = max(1, int(sample_rate * block_duration))
        self.device = device
        self._window = np.zeros(self.analyzer.fft_size, dtype=np.float32)
        self._queue = queue.Queue()
        self._stop = threading.Event()
        self._stream = None
        self._thread = None

    def _audio_callback(self, indata, frames, time, status):
        self._queue.put(indata[:, 0].copy())

    def start(self):
        try:
            self._stream = sd.InputStream(samplerate=self.sample_rate, channels=1, device=self.device,
                                          blocksize=self.blocksize, callback=self._audio_callback)
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            raise DeviceError(f"Microphone unavailable: {e}") from e

        self._stop.clear()
        self._thread = threading.Thread(target=self._process_loop, name="spectrum-input", daemon=True)
        self._thread.start()

    def _process_loop(self):
        while not self._stop.is_set():
            try:
                block = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            self.feed(block)

    def feed(self, block):
        """Slides a block of samples into the analysis window and reports the reading."""
        n = min(len(block), len(self._window))
        self._window = np.roll(self._window, -n)
        self._window[-n:] = block[-n:]
        self.on_reading(self.analyzer.analyze(self._window))

    def stop(self):
        self._stop.set()
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
