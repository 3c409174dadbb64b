# channel.py
#
# The single half-duplex audio channel. Sends, automatic relays and manual
# relays all claim it through try_acquire(); nobody waits for it. After a
# transmission ends the channel stays busy for a short settle window so the
# tail of our own tone is not mistaken for an incoming signal.

import threading
import time

from .config import DEFAULT_CONFIG


class HalfDuplexChannel:
    def __init__(self, settle_guard=DEFAULT_CONFIG.settle_guard, clock=time.monotonic):
        self.settle_guard = settle_guard
        self._clock = clock
        self._lock = threading.Lock()
        self._transmitting = False
        self._quiet_until = float('-inf')

    def _now(self, now):
        return self._clock() if now is None else now

    def try_acquire(self, now=None):
        """Claims the channel for a transmission. Returns False if it is busy."""
        now = self._now(now)
        with self._lock:
            if self._transmitting or now < self._quiet_until:
                return False
            self._transmitting = True
            return True

    def release(self, now=None):
        now = self._now(now)
        with self._lock:
            self._transmitting = False
            self._quiet_until = now + self.settle_guard

    @property
    def transmitting(self):
        return self._transmitting

    def is_busy(self, now=None):
        """True while transmitting or inside the settle window."""
        now = self._now(now)
        with self._lock:
            return self._transmitting or now < self._quiet_until
