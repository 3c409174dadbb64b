# tones.py
#
# Tone table: maps a transmission mode to its marker / base / step
# frequencies and converts between character codes and tone frequencies.
#
# Each character is sent as base_freq + code * step_freq. Modes occupy
# disjoint parts of the spectrum so an idle receiver can listen for every
# mode's marker at once and lock onto whichever one it hears.

from dataclasses import dataclass

from .config import MARKER_TOLERANCE, MIN_CHAR_CODE, MAX_CHAR_CODE


@dataclass(frozen=True)
class Mode:
    name: str
    marker_freq: float
    base_freq: float
    step_freq: float

    @property
    def char_band(self):
        """Lowest and highest frequency any printable character can occupy."""
        half = self.step_freq / 2
        return (frequency_for(self, MIN_CHAR_CODE) - half,
                frequency_for(self, MAX_CHAR_CODE) + half)


AUDIBLE = Mode('audible', marker_freq=1200.0, base_freq=1500.0, step_freq=40.0)
STEALTH = Mode('stealth', marker_freq=16500.0, base_freq=17000.0, step_freq=25.0)

MODES = (AUDIBLE, STEALTH)


def get_mode(name):
    for mode in MODES:
        if mode.name == name.lower():
            return mode
    raise ValueError(f"Unknown mode '{name}': choose from {[m.name for m in MODES]}")


def frequency_for(mode, char_code):
    return mode.base_freq + char_code * mode.step_freq


def char_for(mode, freq):
    """Returns the character code a frequency encodes in this mode, or None.

    The frequency must lie within half a step of the exact center for the
    code, and the code must be printable ASCII.
    """
    code = round((freq - mode.base_freq) / mode.step_freq)
    if not MIN_CHAR_CODE <= code <= MAX_CHAR_CODE:
        return None
    if abs(freq - frequency_for(mode, code)) > mode.step_freq / 2:
        return None
    return code


# --- Marker matching ---

class NoMatch:
    """No mode's marker is present in the sample."""

    def __bool__(self):
        return False

    def __eq__(self, other):
        return isinstance(other, NoMatch)

    def __hash__(self):
        return hash(NoMatch)

    def __repr__(self):
        return 'NoMatch()'


@dataclass(frozen=True)
class MatchedMode:
    mode: Mode


NO_MATCH = NoMatch()


def is_marker(mode, freq, tolerance=MARKER_TOLERANCE):
    return abs(freq - mode.marker_freq) < tolerance


def match_marker(freq, modes=MODES, tolerance=MARKER_TOLERANCE):
    """Tests a frequency against each mode's marker. Returns MatchedMode or NO_MATCH."""
    for mode in modes:
        if is_marker(mode, freq, tolerance):
            return MatchedMode(mode)
    return NO_MATCH


def validate_modes(modes=MODES, tolerance=MARKER_TOLERANCE):
    """Raises ValueError if any two frequency ranges in the mode set overlap."""
    ranges = []
    for mode in modes:
        ranges.append((mode.marker_freq - tolerance, mode.marker_freq + tolerance, f"{mode.name} marker"))
        low, high = mode.char_band
        ranges.append((low, high, f"{mode.name} characters"))
    ranges.sort()
    for (_, high, name), (next_low, _, next_name) in zip(ranges, ranges[1:]):
        if next_low < high:
            raise ValueError(f"Frequency ranges overlap: {name} and {next_name}")


validate_modes()
