# simulation.py
#
# An in-process acoustic medium for running several stations together
# without speakers or microphones. Stations "play" tone schedules into the
# medium; on every tick each station is handed the loudest tone it can hear,
# quantized to the analyser's bin width, exactly as a real spectral front
# end would report it. A shared simulated clock drives all timeouts, so a
# minute of radio traffic runs in well under a second.
#
# By default every station hears every other one. connect() switches to an
# explicit range map, which is how relay propagation across stations that
# cannot hear each other is exercised.

from dataclasses import dataclass

from .config import DEFAULT_CONFIG, SAMPLE_INTERVAL
from .errors import TransmissionInterrupted
from .station import Station
from .tones import AUDIBLE


class SimulatedClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, dt):
        self.now += dt
        return self.now


@dataclass
class Emission:
    source: object
    schedule: object
    start: float
    on_complete: object

    @property
    def end(self):
        return self.start + self.schedule.duration

    def level_at(self, now):
        t = now - self.start
        for event in self.schedule.events:
            level = event.level_at(t)
            if level > 0:
                return event.frequency, level / event.amplitude
        return None


def quantize(freq, bin_width):
    """Snaps a frequency to the centre of the analyser bin it falls in."""
    return round(freq / bin_width) * bin_width


def schedule_samples(schedule, start=0.0, dt=SAMPLE_INTERVAL, config=DEFAULT_CONFIG, loudness=200.0, trailing=0.0):
    """Yields (time, frequency, amplitude) for each spectral tick of a schedule played alone."""
    emission = Emission(None, schedule, 0.0, None)
    n_ticks = int((schedule.duration + trailing) / dt)
    for i in range(n_ticks + 1):
        t = i * dt
        heard = emission.level_at(t)
        if heard is None:
            yield start + t, 0.0, 0.0
        else:
            freq, level = heard
            yield start + t, quantize(freq, config.bin_width), loudness * level


class LoopbackOutput:
    """Output device that plays into an AcousticMedium instead of a speaker."""

    def __init__(self, medium):
        self.medium = medium
        self.played = []

    def play(self, schedule, on_complete):
        self.played.append(schedule)
        self.medium.emit(self, schedule, on_complete)

    def stop(self):
        self.medium.cancel(self)


class AcousticMedium:
    def __init__(self, clock=None, config=DEFAULT_CONFIG, loudness=200.0):
        self.clock = clock or SimulatedClock()
        self.config = config
        self.loudness = loudness
        self.stations = []
        self._outputs = {}
        self._emissions = []
        self._links = None
        self._next_relay_tick = self.clock() + config.relay_tick

    def add_station(self, name, mode=AUDIBLE, **kwargs):
        output = LoopbackOutput(self)
        station = Station(output, mode=mode, config=self.config, name=name, clock=self.clock, **kwargs)
        self._outputs[output] = station
        self.stations.append(station)
        return station

    def connect(self, a, b):
        """Puts two stations in earshot of each other (and only those linked)."""
        if self._links is None:
            self._links = set()
        self._links.add(frozenset((a.name, b.name)))

    def hears(self, listener, source):
        if listener is source:
            return False
        if self._links is None:
            return True
        return frozenset((listener.name, source.name)) in self._links

    # --- Output side ---

    def emit(self, output, schedule, on_complete):
        self._emissions.append(Emission(self._outputs[output], schedule, self.clock(), on_complete))

    def cancel(self, output):
        source = self._outputs[output]
        for emission in [e for e in self._emissions if e.source is source]:
            self._emissions.remove(emission)
            emission.on_complete(TransmissionInterrupted("Transmission stopped"))

    @property
    def on_air(self):
        return list(self._emissions)

    # --- Input side ---

    def sample_for(self, listener, now=None):
        """The dominant (frequency, amplitude) a station hears right now."""
        now = self.clock() if now is None else now
        best = (0.0, 0.0)
        for emission in self._emissions:
            if not self.hears(listener, emission.source):
                continue
            heard = emission.level_at(now)
            if heard is None:
                continue
            freq, level = heard
            amplitude = self.loudness * level
            if amplitude > best[1]:
                best = (self._quantize(freq), amplitude)
        return best

    def _quantize(self, freq):
        return quantize(freq, self.config.bin_width)

    # --- Driving ---

    def step(self, dt=SAMPLE_INTERVAL):
        now = self.clock.advance(dt)

        for emission in [e for e in self._emissions if e.end <= now]:
            self._emissions.remove(emission)
            emission.on_complete(None)

        for station in self.stations:
            freq, amplitude = self.sample_for(station, now)
            station.on_sample(freq, amplitude, now)

        if now >= self._next_relay_tick:
            self._next_relay_tick += self.config.relay_tick
            for station in self.stations:
                station.tick(now)

    def run(self, duration, dt=SAMPLE_INTERVAL):
        end = self.clock() + duration
        while self.clock() < end:
            self.step(dt)

    def run_until_quiet(self, timeout=120.0, dt=SAMPLE_INTERVAL):
        """Runs until nothing is on the air and no relays are pending, or timeout passes."""
        end = self.clock() + timeout
        while self.clock() < end:
            self.step(dt)
            idle = not self._emissions and all(
                s.pending_relays == 0 and not s.demodulator.buffer and not s.scheduler.in_flight
                for s in self.stations)
            if idle:
                return True
        return False
