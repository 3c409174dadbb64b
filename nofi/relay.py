# relay.py
#
# Store-and-forward relaying. Every message a station receives is queued
# and sent again after a random 10-20 s delay, so devices out of range of
# the original sender can still hear it. The random delay keeps several
# relaying stations from all answering at the same moment.
#
# The scheduler checks the queue once a second. It never waits for the
# channel: if the channel is busy it simply tries again on the next tick,
# and a pending entry is never dropped.

import random
import threading
import time
from dataclasses import dataclass
from enum import Enum

from .config import DEFAULT_CONFIG
from .errors import DeviceError
from .framing import make_frame, normalize_id
from .logs import LogKind, discard, emit


class RelayStatus(str, Enum):
    PENDING = "pending"
    RELAYED = "relayed"


@dataclass
class RelayEntry:
    id: str
    text: str
    received_at: float
    relay_after: float
    status: RelayStatus = RelayStatus.PENDING

    @property
    def frame(self):
        return make_frame(self.id, self.text)

    def is_ready(self, now):
        return self.status is RelayStatus.PENDING and now - self.received_at >= self.relay_after


class RelayQueue:
    """Received messages waiting to be relayed, in arrival order."""

    def __init__(self, config=DEFAULT_CONFIG, rng=None, clock=time.monotonic):
        self.config = config
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries = []

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def enqueue(self, msg_id, text, now=None):
        now = self._clock() if now is None else now
        delay = self._rng.uniform(self.config.relay_delay_min, self.config.relay_delay_max)
        entry = RelayEntry(id=msg_id, text=text, received_at=now, relay_after=delay)
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self):
        with self._lock:
            return list(self._entries)

    def pending(self):
        return [e for e in self.entries() if e.status is RelayStatus.PENDING]

    def get(self, msg_id):
        key = normalize_id(msg_id)
        for entry in self.entries():
            if entry.id == key:
                return entry
        return None

    def next_ready(self, now):
        for entry in self.entries():
            if entry.is_ready(now):
                return entry
        return None

    def clear(self):
        with self._lock:
            self._entries.clear()


class RelayScheduler:
    """Periodically re-transmits queued messages over the shared channel.

    transmit(frame, on_done) must start playback and later call
    on_done(error), with error None on success.
    """

    def __init__(self, queue, channel, transmit, is_receiving=None, on_log=None,
                 interval=DEFAULT_CONFIG.relay_tick, clock=time.monotonic):
        self.queue = queue
        self.channel = channel
        self.interval = interval
        self._transmit = transmit
        self._is_receiving = is_receiving or (lambda: False)
        self._log = on_log or discard
        self._clock = clock
        self._in_flight = None
        self._stop = threading.Event()
        self._thread = None

    @property
    def in_flight(self):
        return self._in_flight

    def busy(self, now):
        return self._in_flight is not None or self.channel.is_busy(now) or self._is_receiving()

    def tick(self, now=None):
        """Relays the oldest ready entry if the channel is free. Returns it, or None."""
        now = self._clock() if now is None else now
        if self.busy(now):
            return None
        entry = self.queue.next_ready(now)
        if entry is None:
            return None
        if not self._start(entry, now, "Auto-relay"):
            return None
        return entry

    def relay_now(self, msg_id, now=None):
        """Relays one entry immediately, skipping its delay. Returns False if it could not start."""
        now = self._clock() if now is None else now
        entry = self.queue.get(msg_id)
        if entry is None or entry.status is RelayStatus.RELAYED:
            return False
        if self.busy(now):
            emit(self._log, f"Channel busy - #{entry.id} stays queued")
            return False
        return self._start(entry, now, "Relay")

    def _start(self, entry, now, label):
        if not self.channel.try_acquire(now):
            return False
        self._in_flight = entry
        emit(self._log, f"{label}ing: #{entry.id}")
        try:
            self._transmit(entry.frame, lambda error: self._finish(entry, error, label))
        except DeviceError as e:
            self._finish(entry, e, label)
            raise
        return True

    def _finish(self, entry, error, label):
        if error is None:
            if entry.status is RelayStatus.PENDING:
                entry.status = RelayStatus.RELAYED
            emit(self._log, f"{label}ed: #{entry.id}", LogKind.SUCCESS)
        else:
            emit(self._log, f"{label} of #{entry.id} failed: {error}", LogKind.ERROR)
        if self._in_flight is entry:
            self._in_flight = None
        self.channel.release(self._clock())

    # --- Background loop ---

    def start(self):
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="relay-scheduler", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except DeviceError:
                # already logged by _finish; the entry stays pending for the next tick
                continue
