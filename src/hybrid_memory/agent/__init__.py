"""
Agent — the tool-calling chat agent built with LangGraph.

The agent itself (model + tool-selection policy) is treated as an
external collaborator; this package only wires it to the service's
adapters and streams its output.

Public API
----------
- :func:`build_graph` — compile the agent workflow.
- :class:`ChatAgent` — stream one turn of a thread.
- :func:`build_tools` — tools bound to the store adapters.
- :class:`RuntimeRequestContext` — per-turn values visible to tools.
"""

from hybrid_memory.agent.context import RuntimeRequestContext
from hybrid_memory.agent.graph import ChatAgent, build_graph
from hybrid_memory.agent.tools import build_tools

__all__ = [
    "ChatAgent",
    "RuntimeRequestContext",
    "build_graph",
    "build_tools",
]
