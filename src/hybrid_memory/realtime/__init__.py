"""
Realtime — voice sessions proxied to the upstream realtime API.

- :class:`RealtimeClient` — ephemeral session tokens, SDP offer/answer
  exchange and upstream WebSocket connections.
- :class:`RealtimeRelay` — browser ⇄ upstream WebSocket forwarding.
"""

from hybrid_memory.realtime.client import RealtimeClient
from hybrid_memory.realtime.relay import RealtimeRelay, RelayState

__all__ = ["RealtimeClient", "RealtimeRelay", "RelayState"]
