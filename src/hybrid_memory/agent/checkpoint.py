"""Checkpointer factory for agent thread memory."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.checkpoint.sqlite.aio import AsyncSqliteSaver

from hybrid_memory.config import Settings

logger = logging.getLogger(__name__)


async def open_checkpointer(config: Settings, stack: AsyncExitStack) -> BaseCheckpointSaver:
    """Open the checkpointer selected by ``config.checkpointer``.

    The sqlite saver's connection is registered on *stack* and closed with it.
    """
    if config.checkpointer == "memory":
        logger.warning("Agent thread memory is in-process only and will not survive a restart")
        return MemorySaver()

    saver = await stack.enter_async_context(AsyncSqliteSaver.from_conn_string(config.checkpoint_path))
    await saver.setup()
    logger.info("Agent thread memory persisted to %s", config.checkpoint_path)
    return saver
