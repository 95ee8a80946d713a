from __future__ import annotations

from enum import Enum


class EventType(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
