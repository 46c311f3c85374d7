"""
Serving — FastAPI application for the hybrid-memory chat service.

Exposes the streaming chat endpoint, realtime voice session endpoints and
the WebSocket relay.  Handlers delegate to :class:`ChatOrchestrator` and
:class:`RealtimeClient` held in a :class:`ServiceContainer`.
"""
