"""Agent state definition — shared across all graph nodes."""

from __future__ import annotations

from typing import Annotated, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.graph.message import add_messages


class ChatState(TypedDict):
    """Typed state that flows through the chat agent graph.

    Attributes
    ----------
    messages:
        Thread history managed by LangGraph's ``add_messages`` reducer and
        persisted by the checkpointer between turns of the same thread.
    """

    messages: Annotated[list[BaseMessage], add_messages]
