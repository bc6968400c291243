"""L1 entity: realtime session connection state."""

from __future__ import annotations

import enum


class SessionState(enum.Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
