"""Article Store: persisted output of the content pipeline plus dedup lookups."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from matchday.errors import PersistenceFailure
from matchday.models import GeneratedArticle

logger = logging.getLogger(__name__)


class ArticleStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def create(self, article: GeneratedArticle) -> Optional[GeneratedArticle]:
        """
        Insert an article.

        Returns None when another writer already inserted an article with the
        same dedup_key (the unique constraint turns the race into a skip).
        """
        try:
            async with self._session_factory() as session:
                session.add(article)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.info(
                        f"[NEWS] dedup_key={article.dedup_key} already taken by a concurrent writer, skipping"
                    )
                    return None
                await session.refresh(article)
                return article
        except SQLAlchemyError as e:
            logger.error(f"[NEWS] Failed to store article '{article.title}': {e}")
            raise PersistenceFailure("Could not store generated article") from e

    async def exists_for_source(
        self,
        source_kind: str,
        source_match_id: int,
        since: Optional[datetime] = None,
    ) -> bool:
        """True if an article of source_kind already covers the match (optionally only since)."""
        stmt = select(GeneratedArticle.id).where(
            GeneratedArticle.source_kind == source_kind,
            GeneratedArticle.source_match_id == source_match_id,
        )
        if since is not None:
            stmt = stmt.where(GeneratedArticle.created_at >= since)
        return await self._exists(stmt)

    async def exists_kind_since(self, source_kind: str, since: datetime) -> bool:
        stmt = select(GeneratedArticle.id).where(
            GeneratedArticle.source_kind == source_kind,
            GeneratedArticle.created_at >= since,
        )
        return await self._exists(stmt)

    async def _exists(self, stmt) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt.limit(1))
                return result.first() is not None
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not query existing articles") from e

    async def list_recent(self, limit: int = 25) -> list[GeneratedArticle]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(GeneratedArticle)
                    .order_by(GeneratedArticle.published_at.desc(), GeneratedArticle.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not list articles") from e

    async def count(self, source_kind: Optional[str] = None) -> int:
        stmt = select(func.count(GeneratedArticle.id))
        if source_kind is not None:
            stmt = stmt.where(GeneratedArticle.source_kind == source_kind)
        try:
            async with self._session_factory() as session:
                return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not count articles") from e
