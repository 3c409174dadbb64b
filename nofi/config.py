# config.py
#
# Tunable parameters for the NoFi acoustic modem. The module-level constants
# are the defaults; ModemConfig bundles them so several stations (or tests)
# can run side by side with different settings.
#
# Earlier revisions of the protocol disagreed on several of these values
# (silence timeout 1.0 / 1.5 / 2.0 s, debounce 2 or 3 frames), so they are
# all overridable rather than fixed.

from dataclasses import dataclass

# --- Audio ---
SAMPLE_RATE = 44100      # Samples per second
FFT_SIZE = 2048          # Analysis window, bin width = SAMPLE_RATE / FFT_SIZE (~21.5 Hz)
SMOOTHING = 0.2          # Spectral smoothing between consecutive windows
MIN_DECIBELS = -100.0    # Bottom of the 0..255 amplitude scale
MAX_DECIBELS = -30.0     # Top of the 0..255 amplitude scale

# --- Tone timing ---
TONE_DURATION = 0.08     # Duration of each marker/data tone (80ms)
GAP_DURATION = 0.02      # Silence after each tone (20ms)
RAMP_DURATION = 0.005    # Linear fade-out at the end of each tone (5ms)
HEAD_PADDING = 0.1       # Silence before the first tone
TAIL_PADDING = 0.5       # Silence after the last tone
TONE_LEVEL = 0.5         # Envelope level while a tone is held

# --- Decoder ---
THRESHOLD = 30                 # Minimum amplitude (0..255) counted as signal
MARKER_TOLERANCE = 50.0        # +/- Hz window around a marker frequency
MARKER_DEBOUNCE = 3            # Consecutive samples needed to confirm a marker
CHAR_DEBOUNCE = 3              # Consecutive samples needed to confirm a character
SILENCE_TIMEOUT = 1.5          # Seconds of silence that end a message
NO_PROGRESS_TIMEOUT = 3.0      # Seconds without a new character that end a message
IDLE_TIMEOUT = 3.0             # Seconds without a valid read before giving up on a marker
SAMPLE_INTERVAL = 1 / 60       # Nominal spectral tick (one animation frame)

# --- Framing ---
SEPARATOR = '|'
ID_LENGTH = 4
ID_ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'
MIN_CHAR_CODE = 32
MAX_CHAR_CODE = 126

# --- Relay ---
RELAY_DELAY_MIN = 10.0   # Seconds
RELAY_DELAY_MAX = 20.0   # Seconds
RELAY_TICK = 1.0         # Scheduler check interval
SETTLE_GUARD = 0.5       # Quiet period after a transmission before listening again
LOG_HISTORY = 5          # Log events kept for display


@dataclass
class ModemConfig:
    """Runtime settings for one station."""

    sample_rate: int = SAMPLE_RATE
    fft_size: int = FFT_SIZE
    smoothing: float = SMOOTHING

    tone_duration: float = TONE_DURATION
    gap_duration: float = GAP_DURATION
    ramp_duration: float = RAMP_DURATION
    head_padding: float = HEAD_PADDING
    tail_padding: float = TAIL_PADDING
    tone_level: float = TONE_LEVEL

    threshold: float = THRESHOLD
    marker_tolerance: float = MARKER_TOLERANCE
    marker_debounce: int = MARKER_DEBOUNCE
    char_debounce: int = CHAR_DEBOUNCE
    silence_timeout: float = SILENCE_TIMEOUT
    no_progress_timeout: float = NO_PROGRESS_TIMEOUT
    idle_timeout: float = IDLE_TIMEOUT

    relay_delay_min: float = RELAY_DELAY_MIN
    relay_delay_max: float = RELAY_DELAY_MAX
    relay_tick: float = RELAY_TICK
    settle_guard: float = SETTLE_GUARD

    def __post_init__(self):
        if self.marker_debounce < 1 or self.char_debounce < 1:
            raise ValueError("Debounce thresholds must be at least 1 sample.")
        if self.relay_delay_min > self.relay_delay_max:
            raise ValueError("relay_delay_min must not exceed relay_delay_max.")
        if self.ramp_duration > self.gap_duration:
            raise ValueError("ramp_duration must fit inside gap_duration.")

    @property
    def bin_width(self):
        return self.sample_rate / self.fft_size

    @property
    def symbol_duration(self):
        """Time taken by one tone plus its gap."""
        return self.tone_duration + self.gap_duration


DEFAULT_CONFIG = ModemConfig()
