# logs.py
#
# Log events handed to the display layer. The modem core never prints;
# it reports through an on_log callback and the front end decides where
# the events go.

import time
from dataclasses import dataclass, field
from enum import Enum


class LogKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class LogEvent:
    message: str
    kind: LogKind = LogKind.INFO
    timestamp: float = field(default_factory=time.time)

    def __str__(self):
        return f"[{time.strftime('%H:%M:%S', time.localtime(self.timestamp))}] {self.message}"


def discard(event):
    pass


def console(event):
    print(event)


def emit(sink, message, kind=LogKind.INFO):
    sink(LogEvent(message, kind))
