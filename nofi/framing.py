# framing.py
#
# Wire format and deduplication. A frame is "ID|text": a short random id,
# the separator, then the message text. The id lets a station recognise a
# message it has already heard, so a direct transmission and its relay echo
# are only shown once.

import random
import time
from dataclasses import dataclass, field
from enum import Enum

from .config import SEPARATOR, ID_LENGTH, ID_ALPHABET


class Direction(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    direction: Direction
    timestamp: float = field(default_factory=time.time)


def generate_id(rng=random):
    return ''.join(rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def normalize_id(msg_id):
    return msg_id.strip().upper()


def is_valid_id(msg_id):
    return bool(msg_id) and SEPARATOR not in msg_id and not any(c.isspace() for c in msg_id)


def make_frame(msg_id, text):
    if not is_valid_id(msg_id):
        raise ValueError(f"Invalid message id: {msg_id!r}")
    return f"{msg_id}{SEPARATOR}{text}"


def parse_frame(raw, new_id=generate_id):
    """Splits a received frame into (id, text).

    The text may itself contain the separator, so only the first one counts.
    Frames without a usable id get a freshly generated one.
    """
    if SEPARATOR in raw:
        msg_id, text = raw.split(SEPARATOR, 1)
        msg_id = normalize_id(msg_id)
        if is_valid_id(msg_id):
            return msg_id, text
    return new_id(), raw


class SeenIds:
    """Every message id this station has sent or received. Never pruned."""

    def __init__(self, initial=()):
        self._ids = {normalize_id(i) for i in initial}

    def __contains__(self, msg_id):
        return normalize_id(msg_id) in self._ids

    def __len__(self):
        return len(self._ids)

    def add(self, msg_id):
        """Records an id. Returns False if it was already known."""
        key = normalize_id(msg_id)
        if key in self._ids:
            return False
        self._ids.add(key)
        return True
