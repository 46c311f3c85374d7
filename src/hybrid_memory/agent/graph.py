"""LangGraph graph definition — the tool-calling chat agent.

The agent loops between the model and its tools until the model answers
without requesting a tool:

        ┌─────────┐
        │  START  │
        └────┬────┘
             ▼
       ┌───────────┐   tool calls   ┌───────────┐
       │   agent   ├───────────────►│   tools   │
       └─────┬─────┘◄───────────────┴───────────┘
             │ final answer
             ▼
          [ END ]

The graph is compiled with a checkpointer, so every thread
(``user_id:session_id``) keeps its own message history across turns.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage
from langchain_core.tools import BaseTool
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph
from langgraph.prebuilt import ToolNode

from hybrid_memory.agent.context import RuntimeRequestContext, build_run_config
from hybrid_memory.agent.nodes import AGENT_NODE, TOOLS_NODE, make_agent_node, should_continue
from hybrid_memory.agent.prompts import CHAT_AGENT_INSTRUCTIONS
from hybrid_memory.agent.state import ChatState
from hybrid_memory.agent.tools import message_text

logger = logging.getLogger(__name__)


def build_graph(
    llm: BaseChatModel,
    tools: Sequence[BaseTool],
    *,
    instructions: str = CHAT_AGENT_INSTRUCTIONS,
    last_messages: int = 10,
    checkpointer: BaseCheckpointSaver | None = None,
) -> Any:
    """Construct and return the compiled LangGraph agent.

    Parameters
    ----------
    llm:
        Chat model; tools are bound to it here.
    tools:
        Tools the model may call.
    instructions:
        System prompt prepended on every model call.
    last_messages:
        Size of the thread-memory window sent to the model.
    checkpointer:
        Thread persistence (see :func:`~hybrid_memory.agent.checkpoint.open_checkpointer`);
        defaults to an in-process ``MemorySaver``.

    Returns
    -------
    CompiledGraph
        A compiled LangGraph workflow ready for ``.astream()``.
    """
    model = llm.bind_tools(list(tools)) if tools else llm

    workflow = StateGraph(ChatState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node(
        AGENT_NODE,
        make_agent_node(model, instructions=instructions, last_messages=last_messages),
    )
    workflow.add_node(TOOLS_NODE, ToolNode(list(tools)))

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point(AGENT_NODE)
    workflow.add_conditional_edges(
        AGENT_NODE,
        should_continue,
        {TOOLS_NODE: TOOLS_NODE, END: END},
    )
    workflow.add_edge(TOOLS_NODE, AGENT_NODE)

    return workflow.compile(checkpointer=checkpointer or MemorySaver())


class ChatAgent:
    """Streams the agent's answer for one turn of a thread.

    Parameters
    ----------
    graph:
        A graph compiled by :func:`build_graph`.
    """

    def __init__(self, graph: Any) -> None:
        self._graph = graph

    async def stream(
        self,
        message: str,
        context: RuntimeRequestContext,
        *,
        session_id: str,
    ) -> AsyncIterator[str]:
        """Yield answer tokens as the model produces them.

        Only text from the ``agent`` node is yielded; tool traffic and
        empty tool-call messages are skipped.
        """
        config = build_run_config(context, session_id=session_id)
        inputs = {"messages": [HumanMessage(content=message)]}
        logger.info("Agent turn started (thread=%s)", config["configurable"]["thread_id"])

        async for chunk, metadata in self._graph.astream(inputs, config, stream_mode="messages"):
            if metadata.get("langgraph_node") != AGENT_NODE:
                continue
            if not isinstance(chunk, AIMessage):
                continue
            text = message_text(chunk.content)
            if text:
                yield text
