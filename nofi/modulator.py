# modulator.py
#
# Turns a frame string into a schedule of tones. Every character becomes a
# marker tone followed by a data tone, each held for TONE_DURATION and
# followed by GAP_DURATION of silence. The tone envelope jumps straight to
# its level and fades linearly to zero over RAMP_DURATION, inside the gap,
# so consecutive symbols do not click or smear into each other.
#
# The schedule itself is plain data; render_schedule() synthesizes it into
# PCM samples for a real output device.

from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_CONFIG, MIN_CHAR_CODE, MAX_CHAR_CODE
from .tones import Mode, frequency_for


@dataclass(frozen=True)
class ToneEvent:
    frequency: float
    start: float        # seconds from the start of the schedule
    duration: float     # time the tone is held at full level
    amplitude: float
    ramp: float         # linear fade-out after the hold
    is_marker: bool = False

    @property
    def end(self):
        return self.start + self.duration

    def level_at(self, t):
        """Envelope level at time t (seconds from schedule start)."""
        if t < self.start:
            return 0.0
        if t < self.end:
            return self.amplitude
        if self.ramp > 0 and t < self.end + self.ramp:
            return self.amplitude * (1.0 - (t - self.end) / self.ramp)
        return 0.0


@dataclass(frozen=True)
class ToneSchedule:
    frame: str
    mode: Mode
    events: tuple
    duration: float

    def __len__(self):
        return len(self.events)

    def __iter__(self):
        return iter(self.events)


def is_transmittable(char):
    return MIN_CHAR_CODE <= ord(char) <= MAX_CHAR_CODE


def sanitize(text):
    """Strips every character that cannot be sent as a tone."""
    return ''.join(c for c in text if is_transmittable(c))


def schedule_duration(frame_length, config=DEFAULT_CONFIG):
    return (config.head_padding
            + frame_length * 2 * config.symbol_duration
            + config.tail_padding)


def build_schedule(frame, mode, config=DEFAULT_CONFIG):
    """Builds the marker/data tone schedule for a frame."""
    bad = [c for c in frame if not is_transmittable(c)]
    if bad:
        raise ValueError(f"Frame contains characters that cannot be transmitted: {bad!r}")

    events = []
    start = config.head_padding
    for char in frame:
        events.append(ToneEvent(mode.marker_freq, start, config.tone_duration,
                                config.tone_level, config.ramp_duration, is_marker=True))
        start += config.symbol_duration

        events.append(ToneEvent(frequency_for(mode, ord(char)), start, config.tone_duration,
                                config.tone_level, config.ramp_duration))
        start += config.symbol_duration

    return ToneSchedule(frame=frame, mode=mode, events=tuple(events),
                        duration=schedule_duration(len(frame), config))


def render_schedule(schedule, sample_rate=DEFAULT_CONFIG.sample_rate):
    """Synthesizes a tone schedule into mono float32 samples."""
    n_total = int(round(schedule.duration * sample_rate))
    wave = np.zeros(n_total, dtype=np.float64)

    for event in schedule.events:
        first = int(round(event.start * sample_rate))
        n_hold = int(round(event.duration * sample_rate))
        n_ramp = int(round(event.ramp * sample_rate))
        n = min(n_hold + n_ramp, n_total - first)
        if n <= 0:
            continue

        t = np.arange(n) / sample_rate
        envelope = np.full(n, event.amplitude)
        if n > n_hold:
            envelope[n_hold:] = event.amplitude * np.linspace(1.0, 0.0, n_ramp, endpoint=False)[:n - n_hold]
        wave[first:first + n] += envelope * np.sin(2 * np.pi * event.frequency * t)

    return wave.astype(np.float32)
