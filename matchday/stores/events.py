"""Event Store: append-only persistence of ingested match events."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from matchday.errors import PersistenceFailure
from matchday.models import MatchEvent

logger = logging.getLogger(__name__)


class EventStore:
    """Appends MatchEvent rows and reads them back. No update or delete."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def append(
        self,
        match_id: int,
        event_type: str,
        minute_mark: int,
        description: str,
    ) -> MatchEvent:
        event = MatchEvent(
            match_id=match_id,
            event_type=event_type,
            minute_mark=minute_mark,
            description=description,
        )
        try:
            async with self._session_factory() as session:
                session.add(event)
                await session.commit()
                await session.refresh(event)
        except SQLAlchemyError as e:
            logger.error(f"[EVENTS] Failed to append event for match_id={match_id}: {e}")
            raise PersistenceFailure(f"Could not store event for match {match_id}") from e

        logger.debug(f"[EVENTS] Stored event id={event.id} match_id={match_id} type={event_type}")
        return event

    async def list_for_match(self, match_id: int) -> list[MatchEvent]:
        """Events of one match, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MatchEvent)
                    .where(MatchEvent.match_id == match_id)
                    .order_by(MatchEvent.received_at, MatchEvent.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read events for match {match_id}") from e

    async def count(self, match_id: int | None = None) -> int:
        stmt = select(func.count(MatchEvent.id))
        if match_id is not None:
            stmt = stmt.where(MatchEvent.match_id == match_id)
        try:
            async with self._session_factory() as session:
                return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not count events") from e
