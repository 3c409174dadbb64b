# demodulator.py
#
# The receive state machine. It is fed one (dominant frequency, amplitude)
# pair per spectral tick and rebuilds the transmitted frame one character
# at a time:
#
#   IDLE / WAIT_MARKER  -- listen for any mode's marker tone
#   READ_CHAR           -- marker confirmed, read the next data tone
#
# Detections must hold for several consecutive ticks (debounce) before they
# count. A message ends when the buffer stops growing: either the channel
# goes quiet for SILENCE_TIMEOUT or no new character arrives for
# NO_PROGRESS_TIMEOUT. Nothing in here blocks; every timeout is checked by
# comparing timestamps on the next tick.

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import DEFAULT_CONFIG
from .logs import discard, emit
from .tones import MODES, Mode, char_for, is_marker, match_marker


class Phase(str, Enum):
    IDLE = "idle"
    WAIT_MARKER = "wait_marker"
    READ_CHAR = "read_char"


class CommitReason(str, Enum):
    SILENCE = "silence"
    STUCK = "stuck"


@dataclass(frozen=True)
class Commit:
    """A finished frame, trimmed, ready for the framing layer."""
    raw: str
    reason: CommitReason
    mode: Optional[Mode] = None


@dataclass
class DecoderState:
    phase: Phase = Phase.IDLE
    buffer: str = ''
    last_char: Optional[str] = None
    active_mode: Optional[Mode] = None
    debounce: int = 0
    candidate: object = None      # mode or char code currently being confirmed
    last_valid_read: float = 0.0
    last_char_decoded: float = 0.0
    silence_since: Optional[float] = None
    receiving: bool = False

    @classmethod
    def fresh(cls, now):
        return cls(last_valid_read=now, last_char_decoded=now)


class Demodulator:
    """Frequency-sample decoder. One instance per receiving station."""

    def __init__(self, config=DEFAULT_CONFIG, modes=MODES, on_partial=None, on_log=None, clock=time.monotonic):
        self.config = config
        self.modes = tuple(modes)
        self._on_partial = on_partial or (lambda text: None)
        self._log = on_log or discard
        self._clock = clock
        self.state = DecoderState.fresh(clock())

    @property
    def phase(self):
        return self.state.phase

    @property
    def buffer(self):
        return self.state.buffer

    @property
    def receiving(self):
        return self.state.receiving

    def reset(self, now=None):
        now = self._clock() if now is None else now
        had_data = bool(self.state.buffer) or self.state.receiving
        self.state = DecoderState.fresh(now)
        if had_data:
            self._on_partial('')

    def hold(self):
        """Called instead of process() while this station is transmitting."""
        self.state.debounce = 0
        self.state.candidate = None

    def process(self, freq, amplitude, now=None):
        """Consumes one spectral sample. Returns a Commit when a frame completes."""
        now = self._clock() if now is None else now
        s = self.state
        cfg = self.config

        if s.buffer and now - s.last_char_decoded > cfg.no_progress_timeout:
            emit(self._log, f"No new char for {cfg.no_progress_timeout:g}s - committing")
            return self._commit(now, CommitReason.STUCK)

        if s.buffer and s.silence_since is not None and now - s.silence_since > cfg.silence_timeout:
            return self._commit(now, CommitReason.SILENCE)

        if s.phase is not Phase.IDLE and not s.buffer and now - s.last_valid_read > cfg.idle_timeout:
            self.reset(now)
            emit(self._log, "Signal lost (timeout)")
            return None

        if amplitude < cfg.threshold:
            s.debounce = 0
            s.candidate = None
            if s.buffer and s.silence_since is None:
                s.silence_since = now
            return None

        s.silence_since = None

        if s.phase is Phase.READ_CHAR:
            self._read_char(freq, now)
        else:
            self._wait_marker(freq, now)
        return None

    # --- Transitions ---

    def _wait_marker(self, freq, now):
        s = self.state
        # Once part of a message is in, only the locked mode may continue it.
        modes = (s.active_mode,) if s.buffer and s.active_mode else self.modes
        match = match_marker(freq, modes, self.config.marker_tolerance)
        if not match:
            s.debounce = 0
            s.candidate = None
            return

        if s.candidate != match.mode:
            s.candidate = match.mode
            s.debounce = 0
        s.debounce += 1
        if s.debounce < self.config.marker_debounce:
            return

        if not s.receiving:
            emit(self._log, f"Receiving ({match.mode.name})")
        s.active_mode = match.mode
        s.phase = Phase.READ_CHAR
        s.debounce = 0
        s.candidate = None
        s.last_char = None
        s.receiving = True
        s.last_valid_read = now
        if s.buffer:
            s.silence_since = now

    def _read_char(self, freq, now):
        s = self.state
        mode = s.active_mode
        if is_marker(mode, freq, self.config.marker_tolerance):
            s.debounce = 0
            s.candidate = None
            return

        code = char_for(mode, freq)
        if code is None:
            s.debounce = 0
            s.candidate = None
            return

        if s.candidate != code:
            s.candidate = code
            s.debounce = 0
        s.debounce += 1
        if s.debounce < self.config.char_debounce:
            return

        char = chr(code)
        if char == s.last_char:
            return

        s.buffer += char
        s.last_char = char
        s.last_char_decoded = now
        s.last_valid_read = now
        s.silence_since = now
        s.phase = Phase.WAIT_MARKER
        s.debounce = 0
        s.candidate = None
        self._on_partial(s.buffer)

    def _commit(self, now, reason):
        raw = self.state.buffer.strip()
        mode = self.state.active_mode
        self.reset(now)
        if not raw:
            return None
        return Commit(raw, reason, mode)
