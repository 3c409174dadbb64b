# station.py
#
# One NoFi device: ties the tone schedule, the demodulator, the framing and
# dedup layer and the relay scheduler to a speaker and a spectral feed.
#
#   send(text)          -> frame, modulate, play          (outbound)
#   on_sample(f, a)     -> demodulate, dedup, queue relay (inbound)
#   tick() / start()    -> relay queued messages when the channel is free
#
# The display layer plugs in through three callbacks: on_message for every
# new chat message, on_partial for the characters decoded so far, and
# on_log for status events.

import collections
import random
import threading
import time

from .channel import HalfDuplexChannel
from .config import DEFAULT_CONFIG, LOG_HISTORY
from .demodulator import Demodulator
from .errors import DeviceError
from .framing import Direction, Message, SeenIds, generate_id, make_frame, parse_frame
from .logs import LogEvent, LogKind, discard
from .modulator import build_schedule, sanitize
from .relay import RelayQueue, RelayScheduler
from .tones import AUDIBLE, MODES

SYSTEM_ID = "SYS1"
WELCOME = "NoFi Chat initialized. Received messages will display on left and be stored in relay queue."


class Station:
    def __init__(self, output, mode=AUDIBLE, config=DEFAULT_CONFIG, modes=MODES, name="nofi",
                 on_message=None, on_partial=None, on_log=None, clock=time.monotonic, rng=None):
        self.name = name
        self.output = output
        self.mode = mode
        self.config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self._on_message = on_message or (lambda message: None)
        self._on_partial = on_partial or (lambda text: None)
        self._on_log = on_log or discard
        self._lock = threading.Lock()
        self._input = None

        self.messages = []
        self.logs = collections.deque(maxlen=LOG_HISTORY)
        self.partial = ''
        self.signal_strength = 0
        self.audio_level = 0

        self.seen_ids = SeenIds([SYSTEM_ID])
        self.channel = HalfDuplexChannel(settle_guard=config.settle_guard, clock=clock)
        self.demodulator = Demodulator(config=config, modes=modes, on_partial=self._set_partial,
                                       on_log=self._log_event, clock=clock)
        self.relay_queue = RelayQueue(config=config, rng=self._rng, clock=clock)
        self.scheduler = RelayScheduler(self.relay_queue, self.channel, self._transmit,
                                        is_receiving=lambda: self.demodulator.receiving,
                                        on_log=self._log_event, interval=config.relay_tick, clock=clock)

        self._record(Message(SYSTEM_ID, WELCOME, Direction.SYSTEM))

    def __repr__(self):
        return f"Station({self.name!r}, mode={self.mode.name})"

    # --- Display plumbing ---

    def log(self, message, kind=LogKind.INFO):
        self._log_event(LogEvent(message, kind))

    def _log_event(self, event):
        self.logs.append(event)
        self._on_log(event)

    def _set_partial(self, text):
        self.partial = text
        self._on_partial(text)

    def _record(self, message):
        with self._lock:
            self.messages.append(message)
        self._on_message(message)

    # --- Sending ---

    def _fresh_id(self):
        msg_id = generate_id(self._rng)
        while msg_id in self.seen_ids:
            msg_id = generate_id(self._rng)
        return msg_id

    def _transmit(self, frame, on_done):
        self.output.play(build_schedule(frame, self.mode, self.config), on_done)

    def send(self, text, now=None):
        """Sends a chat message. Returns the outbound Message, or None if nothing was sent."""
        now = self._clock() if now is None else now
        text = sanitize(text).strip()
        if not text:
            return None
        if self.demodulator.receiving or not self.channel.try_acquire(now):
            self.log("Channel busy - try again shortly", LogKind.ERROR)
            return None

        msg_id = self._fresh_id()
        self.seen_ids.add(msg_id)
        message = Message(msg_id, text, Direction.OUTBOUND)
        self._record(message)
        self.log(f"TX: #{msg_id}")
        try:
            self._transmit(make_frame(msg_id, text), self._send_done)
        except DeviceError as e:
            self._send_done(e)
            raise
        return message

    def _send_done(self, error):
        self.channel.release(self._clock())
        if error is None:
            self.log("Transmission complete", LogKind.SUCCESS)
        else:
            self.log(f"Transmission failed: {error}", LogKind.ERROR)

    # --- Receiving ---

    def on_reading(self, reading):
        self.signal_strength = reading.signal_strength
        self.audio_level = reading.audio_level
        return self.on_sample(reading.frequency, reading.amplitude)

    def on_sample(self, freq, amplitude, now=None):
        """Feeds one spectral sample. Returns a new inbound Message when one completes."""
        now = self._clock() if now is None else now
        if self.channel.is_busy(now):
            # our own tone is on the air
            self.demodulator.hold()
            return None
        commit = self.demodulator.process(freq, amplitude, now)
        if commit is None:
            return None
        return self.receive_frame(commit.raw, now)

    def receive_frame(self, raw, now=None):
        """Frames, dedups and queues a committed frame."""
        now = self._clock() if now is None else now
        msg_id, text = parse_frame(raw, new_id=self._fresh_id)
        if not self.seen_ids.add(msg_id):
            self.log(f"Ignored duplicate #{msg_id}")
            return None

        message = Message(msg_id, text, Direction.INBOUND)
        self._record(message)
        entry = self.relay_queue.enqueue(msg_id, text, now)
        self.log(f"RX: #{msg_id} (relay in {round(entry.relay_after)}s)", LogKind.SUCCESS)
        return message

    # --- Relaying ---

    def tick(self, now=None):
        return self.scheduler.tick(now)

    def relay_now(self, msg_id, now=None):
        return self.scheduler.relay_now(msg_id, now)

    def clear_relay_queue(self):
        self.relay_queue.clear()
        self.log("Relay queue cleared")

    @property
    def pending_relays(self):
        return len(self.relay_queue.pending())

    # --- Lifecycle ---

    def listen(self, input_device):
        """Starts a spectral input feed that calls back into on_reading."""
        input_device.start()
        self._input = input_device
        self.log("Microphone access granted", LogKind.SUCCESS)

    def start(self):
        self.scheduler.start()

    def stop(self):
        if self._input is not None:
            self._input.stop()
            self._input = None
        self.scheduler.stop()
        stop_output = getattr(self.output, "stop", None)
        if stop_output is not None:
            stop_output()
        self.demodulator.reset()
