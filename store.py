"""Single-table key-value store on top of SQLAlchemy.

Items are flat dicts of string keys to str/int/float/bool values. Each item
carries its partition key under ``PK``, its sort key under ``SK`` and an
entity discriminator under ``type``.
"""
import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from database import init_db, make_engine, make_sessionmaker
from errors import StoreError
from models import Item

logger = logging.getLogger(__name__)

PK = "PK"
SK = "SK"
TYPE = "type"


class ItemStore:
    def __init__(self, engine):
        self.engine = engine
        self.session_factory = make_sessionmaker(engine)

    @classmethod
    def from_url(cls, url: str = None) -> "ItemStore":
        return cls(make_engine(url))

    async def create_all(self):
        await init_db(self.engine)

    async def dispose(self):
        await self.engine.dispose()

    async def get(self, pk: str, sk: str) -> Optional[dict]:
        try:
            async with self.session_factory() as session:
                row = await session.get(Item, (pk, sk))
                return dict(row.data) if row else None
        except SQLAlchemyError as e:
            logger.error("get %s/%s failed: %s", pk, sk, e)
            raise StoreError(f"Store read failed: {e}") from e

    async def put(self, item: dict) -> None:
        """Write ``item``, replacing whatever was stored under the same key."""
        try:
            async with self.session_factory() as session:
                await session.merge(
                    Item(pk=item[PK], sk=item[SK], entity_type=item.get(TYPE), data=dict(item))
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("put %s/%s failed: %s", item.get(PK), item.get(SK), e)
            raise StoreError(f"Store write failed: {e}") from e

    async def delete(self, pk: str, sk: str) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(delete(Item).where(Item.pk == pk, Item.sk == sk))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("delete %s/%s failed: %s", pk, sk, e)
            raise StoreError(f"Store delete failed: {e}") from e

    async def query(self, pk: str, sk_prefix: str = "") -> list[dict]:
        """All items under one partition whose sort key starts with ``sk_prefix``."""
        stmt = select(Item).where(Item.pk == pk)
        if sk_prefix:
            stmt = stmt.where(Item.sk.startswith(sk_prefix, autoescape=True))
        return await self._fetch(stmt.order_by(Item.sk))

    async def scan(self, **equals) -> list[dict]:
        """Full table scan keeping items whose fields equal every keyword given.

        ``type`` is matched on the indexed column, the other fields in memory.
        """
        stmt = select(Item)
        if TYPE in equals:
            stmt = stmt.where(Item.entity_type == equals.pop(TYPE))
        items = await self._fetch(stmt)
        if not equals:
            return items
        return [item for item in items if all(item.get(k) == v for k, v in equals.items())]

    async def _fetch(self, stmt) -> list[dict]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [dict(row.data) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("read failed: %s", e)
            raise StoreError(f"Store read failed: {e}") from e
