"""LangChain tool definitions exposed to the chat agent.

Each tool reads the per-turn :class:`RuntimeRequestContext` from the run
config, so one compiled graph serves every user.  Tools never raise into
the graph: failures come back as explanatory strings the model can relay.

Dependency-injection note
-------------------------
:func:`build_tools` closes over explicitly constructed adapters (stores,
retriever, rewrite model).  Tests pass fakes instead.
"""

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool, tool

from hybrid_memory.agent.context import context_from_config
from hybrid_memory.agent.prompts import build_rewrite_prompt
from hybrid_memory.errors import HistoryUnavailableError, HybridMemoryError
from hybrid_memory.retrieval.conversation_store import ConversationStore, format_history
from hybrid_memory.retrieval.retriever import SemanticRetriever, format_results

logger = logging.getLogger(__name__)

NO_USER_MESSAGE = "Error: Unable to identify user for conversation history lookup."


def build_tools(
    *,
    conversations: ConversationStore,
    retriever: SemanticRetriever,
    rewrite_llm: BaseChatModel,
    history_limit: int = 20,
    search_top_k: int = 5,
) -> list[BaseTool]:
    """Create the agent's tools bound to the given adapters."""

    @tool
    def retrieve_recent_conversation(config: RunnableConfig, limit: int = history_limit) -> str:
        """REQUIRED when the user asks about previous conversations or past sessions.

        Retrieves the current user's messages from earlier sessions (the
        current session is excluded) grouped by session.  Use it when the
        user says "what did we talk about", "last time", "before",
        "yesterday", or otherwise references past interactions.

        Args:
            limit: Maximum number of messages to retrieve. Use 10-20 for quick
                context, 30-50 for detailed history.
        """
        context = context_from_config(config)
        if context is None or not context.user_id:
            logger.error("retrieve_recent_conversation called without a user in context")
            return NO_USER_MESSAGE

        try:
            turns = conversations.recent(context.user_id, context.exclude_session_id, limit)
        except HistoryUnavailableError as exc:
            logger.warning("History lookup failed for user=%s: %s", context.user_id, exc)
            return f"Unable to retrieve conversation history: {exc}"
        return format_history(context.user_id, turns)

    @tool
    def rewrite_query(query: str) -> str:
        """Rewrite a user query to improve semantic search results in documents.

        Always call this before search_docs.

        Args:
            query: The original user query that needs to be rewritten.
        """
        try:
            response = rewrite_llm.invoke(build_rewrite_prompt(query))
        except Exception as exc:
            logger.warning("Query rewrite failed, using original query: %s", exc)
            return query
        rewritten = message_text(response.content).strip()
        logger.info("Rewrote query %r -> %r", query, rewritten or query)
        return rewritten or query

    @tool
    def search_docs(query: str, config: RunnableConfig, top_k: int = search_top_k) -> str:
        """Semantic search over the documents this user has uploaded.

        Args:
            query: The search query, ideally the output of rewrite_query.
            top_k: Number of passages to return.
        """
        context = context_from_config(config)
        if context is None or not context.user_id:
            logger.error("search_docs called without a user in context")
            return "Error: Unable to identify user for document search."

        try:
            results = retriever.search(context.user_id, query, k=top_k)
        except HybridMemoryError as exc:
            logger.warning("Document search failed for user=%s: %s", context.user_id, exc)
            return f"Unable to search documents: {exc}"
        return format_results(results)

    return [retrieve_recent_conversation, rewrite_query, search_docs]


def message_text(content: Any) -> str:
    """Flatten a message ``content`` (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
