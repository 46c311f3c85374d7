"""
hybrid_memory — chat service with per-user document and conversation memory.

Uploaded PDFs are chunked, embedded and stored per user; a tool-calling
agent answers questions using past conversations and document search,
streaming its reply over server-sent events.  A realtime voice path relays
browser sessions to the upstream realtime API.
"""

__version__ = "1.0.0"
