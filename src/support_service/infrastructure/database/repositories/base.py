# src/support_service/infrastructure/database/repositories/base.py
import logging
import operator
from typing import Any, Callable, Generic, Literal, NamedTuple, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from support_service.interfaces import IRepository

T = TypeVar("T", bound=SQLModel)

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gte": operator.ge,
    "lte": operator.le,
    "in": lambda column, value: column.in_(value),
}


class PaginatedResult(NamedTuple):
    items: Sequence[Any]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class BaseRepository(IRepository[T], Generic[T]):
    """
    Tenant-agnostic data access for one SQLModel table.

    Repositories flush but never commit; the request dependency or the
    worker's ``DatabaseManager.session()`` owns the transaction.

    Example:
        class ContactRepository(BaseRepository[Contact]):
            def __init__(self, session: AsyncSession):
                super().__init__(Contact, session)

            async def get_by_phone(self, phone: str, tenant_id: str) -> Contact | None:
                return await self.first(
                    select(Contact).where(Contact.phone_number == phone, Contact.tenant_id == tenant_id)
                )
    """

    def __init__(self, model: type[T], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, id: UUID) -> T | None:
        return await self.session.get(self.model, id)

    async def first(self, query: Select) -> T | None:
        return (await self.session.execute(query.limit(1))).scalars().first()

    async def all(self, query: Select) -> Sequence[T]:
        return (await self.session.execute(query)).scalars().all()

    async def get_many(self, skip: int = 0, limit: int = 100, **filters: Any) -> Sequence[T]:
        """Rows matching ``field=value`` filters, in insertion order of the table."""
        query = self.apply_filters(select(self.model), filters)
        return await self.all(query.offset(skip).limit(limit))

    async def create(self, entity: T) -> T:
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def save(self, entity: T) -> T:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def delete(self, id: UUID) -> bool:
        entity = await self.get(id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.flush()
        return True

    def apply_filters(self, query: Select, filters: dict[str, Any]) -> Select:
        """
        Add ``WHERE`` clauses from ``field`` or ``field__op`` keys.

        Ops: eq (default), ne, gte, lte, in. ``None`` values are skipped so
        optional query parameters pass straight through; unknown fields are
        ignored.
        """
        for key, value in filters.items():
            if value is None:
                continue
            field_name, _, op = key.partition("__")
            column = getattr(self.model, field_name, None)
            if column is None:
                continue
            query = query.where(_OPERATORS[op or "eq"](column, value))
        return query

    def apply_sorting(self, query: Select, sort_by: str = "created_at", order: Literal["asc", "desc"] = "desc") -> Select:
        column = getattr(self.model, sort_by, None)
        if column is None:
            column = self.model.created_at
        return query.order_by(asc(column) if order == "asc" else desc(column))

    async def paginate(self, query: Select, page: int = 1, page_size: int = 20) -> PaginatedResult:
        page = max(1, page)
        page_size = max(1, page_size)

        total = (
            await self.session.execute(select(func.count()).select_from(query.order_by(None).subquery()))
        ).scalar_one()
        total_pages = -(-total // page_size)

        logger.debug(
            "Paginating query",
            extra={"table": self.model.__tablename__, "page": page, "page_size": page_size, "total": total},
        )
        items = await self.all(query.offset((page - 1) * page_size).limit(page_size))
        return PaginatedResult(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
