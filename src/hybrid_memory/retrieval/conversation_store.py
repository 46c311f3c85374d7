"""Conversation-turn persistence on SQLAlchemy.

Turns are append-only.  Reads return the most recent turns of a user,
excluding the session currently in progress, in chronological order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import DateTime, Engine, Index, Integer, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from hybrid_memory.errors import HistoryUnavailableError, StoreWriteError

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")
NO_HISTORY_MESSAGE = "No previous conversation history found for this user."


class Base(DeclarativeBase):
    pass


class ConversationTurn(Base):
    """One persisted message of a chat session."""

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_conversations_user_created", "user_id", "created_at"),
        Index("ix_conversations_session", "session_id"),
    )

    def __repr__(self) -> str:
        return f"ConversationTurn(session_id={self.session_id!r}, role={self.role!r})"


class ConversationStore:
    """Append / query interface over the ``conversations`` table.

    Parameters
    ----------
    engine:
        SQLAlchemy engine.  The store is safe to share across requests;
        every call opens its own short-lived session.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> ConversationStore:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        engine = create_engine(database_url, future=True, connect_args=connect_args)
        return cls(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)
        logger.info("Conversation tables ensured")

    def append(self, session_id: str, user_id: str, role: str, content: str) -> None:
        """Insert one turn.

        Raises
        ------
        ValueError
            If *role* is not ``"user"`` or ``"assistant"``.
        StoreWriteError
            If the insert fails.
        """
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {role!r}")
        turn = ConversationTurn(session_id=session_id, user_id=user_id, role=role, content=content)
        try:
            with self._sessions.begin() as db:
                db.add(turn)
        except Exception as exc:
            raise StoreWriteError(f"Error saving {role} message: {exc}") from exc

    def recent(
        self,
        user_id: str,
        exclude_session_id: str | None,
        limit: int = 20,
    ) -> list[ConversationTurn]:
        """Return up to *limit* of the newest turns, oldest first.

        Raises
        ------
        HistoryUnavailableError
            If the query fails.
        """
        stmt = select(ConversationTurn).where(ConversationTurn.user_id == user_id)
        if exclude_session_id is not None:
            stmt = stmt.where(ConversationTurn.session_id != exclude_session_id)
        stmt = stmt.order_by(ConversationTurn.created_at.desc(), ConversationTurn.id.desc()).limit(limit)

        try:
            with self._sessions() as db:
                rows = list(db.scalars(stmt).all())
        except Exception as exc:
            raise HistoryUnavailableError(str(exc)) from exc

        logger.info("History query for user=%s returned %d row(s)", user_id, len(rows))
        rows.reverse()
        return rows


def format_history(user_id: str, turns: list[ConversationTurn]) -> str:
    """Render *turns* (oldest first) for the language model, grouped by session."""
    if not turns:
        return NO_HISTORY_MESSAGE

    lines = [f"Previous conversations for {user_id} ({len(turns)} messages):", ""]
    current_session: str | None = None
    for turn in turns:
        if turn.session_id != current_session:
            current_session = turn.session_id
            lines.append("")
            lines.append(f"[Session: {turn.session_id[:8]}...]")
        lines.append(f"{turn.role}: {turn.content}")
    return "\n".join(lines) + "\n"
