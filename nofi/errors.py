# errors.py
#
# The only failure the modem reports upward is losing the audio device.
# Noise, duplicates, malformed frames and timeouts are all handled inside
# the receive pipeline and never raise.


class DeviceError(Exception):
    """The microphone or speaker could not be opened or failed mid-use."""


class TransmissionInterrupted(DeviceError):
    """Playback was stopped before the schedule finished."""
