"""Per-turn request context handed to every tool invocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONTEXT_KEY = "request_context"


@dataclass(frozen=True)
class RuntimeRequestContext:
    """Ephemeral values scoped to a single chat turn.

    Attributes
    ----------
    user_id:
        Owner of the documents and history the tools may read.
    exclude_session_id:
        The session in progress; history lookups skip it because its
        messages are already in the agent's thread memory.
    query:
        The raw user message of this turn.
    """

    user_id: str
    exclude_session_id: str | None
    query: str


def thread_id_for(user_id: str, session_id: str) -> str:
    """Checkpointer thread key; scoping by user keeps sessions from leaking across users."""
    return f"{user_id}:{session_id}"


def build_run_config(context: RuntimeRequestContext, *, session_id: str) -> dict[str, Any]:
    """Return the LangGraph ``RunnableConfig`` binding a turn to its thread."""
    return {
        "configurable": {
            "thread_id": thread_id_for(context.user_id, session_id),
            "resource_id": context.user_id,
            CONTEXT_KEY: context,
        }
    }


def context_from_config(config: Any) -> RuntimeRequestContext | None:
    """Extract the :class:`RuntimeRequestContext` from a run config, if present."""
    if not config:
        return None
    value = (config.get("configurable") or {}).get(CONTEXT_KEY)
    return value if isinstance(value, RuntimeRequestContext) else None
