# src/support_service/infrastructure/database/repositories/issue.py
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.infrastructure.database.models import Attachment, Contact, EventLog, Issue, IssueLink
from support_service.infrastructure.database.repositories.base import BaseRepository


class IssueRepository(BaseRepository[Issue]):
    def __init__(self, session: AsyncSession):
        super().__init__(Issue, session)

    async def reference_numbers_with_prefix(self, prefix: str) -> Sequence[str]:
        query = select(Issue.reference_number).where(Issue.reference_number.startswith(prefix))
        result = await self.session.execute(query)
        return result.scalars().all()

    async def reference_exists(self, reference_number: str) -> bool:
        query = select(Issue.id).where(Issue.reference_number == reference_number).limit(1)
        result = await self.session.execute(query)
        return result.first() is not None


class ContactRepository(BaseRepository[Contact]):
    def __init__(self, session: AsyncSession):
        super().__init__(Contact, session)

    async def get_by_phone(self, phone_number: str, tenant_id: str) -> Contact | None:
        query = select(Contact).where(
            Contact.phone_number == phone_number,
            Contact.tenant_id == tenant_id,
        )
        return await self.first(query)


class IssueLinkRepository(BaseRepository[IssueLink]):
    def __init__(self, session: AsyncSession):
        super().__init__(IssueLink, session)

    async def exists_between(self, first_id: UUID, second_id: UUID) -> bool:
        """True when the two issues are linked in either direction."""
        query = select(IssueLink.id).where(
            or_(
                and_(IssueLink.parent_issue_id == first_id, IssueLink.child_issue_id == second_id),
                and_(IssueLink.parent_issue_id == second_id, IssueLink.child_issue_id == first_id),
            )
        )
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def would_create_cycle(self, parent_id: UUID, child_id: UUID) -> bool:
        """True when ``parent_id`` is already reachable from ``child_id`` through child links."""
        seen = {child_id}
        frontier = [child_id]
        while frontier:
            query = select(IssueLink.child_issue_id).where(IssueLink.parent_issue_id.in_(frontier))
            reached = set((await self.session.execute(query)).scalars().all())
            if parent_id in reached:
                return True
            frontier = list(reached - seen)
            seen.update(reached)
        return False

    async def list_for_issue(self, issue_id: UUID) -> Sequence[IssueLink]:
        query = select(IssueLink).where(
            or_(IssueLink.parent_issue_id == issue_id, IssueLink.child_issue_id == issue_id)
        )
        return await self.all(query)


class EventLogRepository(BaseRepository[EventLog]):
    def __init__(self, session: AsyncSession):
        super().__init__(EventLog, session)

    async def list_for_issue(self, issue_id: UUID) -> Sequence[EventLog]:
        query = select(EventLog).where(EventLog.issue_id == issue_id).order_by(EventLog.created_at)
        return await self.all(query)


class AttachmentRepository(BaseRepository[Attachment]):
    def __init__(self, session: AsyncSession):
        super().__init__(Attachment, session)

    async def list_for_issue(self, issue_id: UUID) -> Sequence[Attachment]:
        return await self.all(select(Attachment).where(Attachment.issue_id == issue_id))
