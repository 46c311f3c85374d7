"""Graph nodes for the tool-calling chat agent.

Node contract
-------------
* Accepts the full :class:`ChatState` dict.
* Returns a *partial* dict with only the keys that changed.
* Holds no hidden global state, so every node is independently testable.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, trim_messages
from langchain_core.runnables import Runnable, RunnableConfig
from langgraph.graph import END

from hybrid_memory.agent.state import ChatState

logger = logging.getLogger(__name__)

AGENT_NODE = "agent"
TOOLS_NODE = "tools"


# ── 1. CALL MODEL ─────────────────────────────────────────────────────


def make_agent_node(
    model: BaseChatModel | Runnable,
    *,
    instructions: str,
    last_messages: int = 10,
) -> Callable[[ChatState, RunnableConfig], Awaitable[dict[str, Any]]]:
    """Return the ``agent`` node bound to *model*.

    Only the last *last_messages* messages of the thread are sent to the
    model, behind the system instructions.
    """

    async def call_model(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
        window = memory_window(state["messages"], last_messages)
        response = await model.ainvoke([SystemMessage(content=instructions), *window], config)
        tool_calls = getattr(response, "tool_calls", None) or []
        if tool_calls:
            logger.info("Agent requested tool(s): %s", [tc["name"] for tc in tool_calls])
        return {"messages": [response]}

    return call_model


# ── 2. ROUTING (conditional edge) ─────────────────────────────────────


def should_continue(state: ChatState) -> str:
    """Conditional edge after ``agent``.

    Returns
    -------
    str
        ``"tools"`` when the last model message requested tool calls,
        ``END`` otherwise.
    """
    messages = state.get("messages", [])
    if not messages:
        return END
    last = messages[-1]
    if isinstance(last, AIMessage) and last.tool_calls:
        return TOOLS_NODE
    return END


# ── Internal helpers ───────────────────────────────────────────────────


def memory_window(messages: list[BaseMessage], last_messages: int) -> list[BaseMessage]:
    """Keep the last *last_messages* messages, starting on a human turn.

    The current turn (last human message onwards) is always kept whole so
    that tool calls are never separated from their results.
    """
    if not messages:
        return []
    window = trim_messages(
        messages,
        max_tokens=last_messages,
        token_counter=len,
        strategy="last",
        start_on="human",
        allow_partial=False,
    )

    last_human = max(
        (i for i, m in enumerate(messages) if isinstance(m, HumanMessage)),
        default=None,
    )
    if last_human is None:
        return list(window)
    current_turn = messages[last_human:]
    if len(window) < len(current_turn):
        return list(current_turn)
    return list(window)
