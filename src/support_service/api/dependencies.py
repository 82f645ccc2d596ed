# src/support_service/api/dependencies.py
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.auth.dependencies import get_current_user, get_optional_user
from support_service.auth.schemas import UserInfo
from support_service.config.settings import Settings, get_settings
from support_service.domain.exceptions import ServiceUnavailable
from support_service.infrastructure.cache import TaggedCache, get_tagged_cache
from support_service.infrastructure.database import db
from support_service.infrastructure.realtime import connection_manager
from support_service.interfaces import INotifier
from support_service.services.agents import AgentService
from support_service.services.auto_assignment import AutoAssignmentService
from support_service.services.conversation_queries import ConversationQueryService
from support_service.services.conversations import ConversationService
from support_service.services.issues import IssueService
from support_service.services.whatsapp import WhatsAppService


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Committed after the route returns, rolled back when it raises. Services
    only flush.
    """
    if not db.is_connected:
        raise ServiceUnavailable("Database not configured")
    async with db.session() as session:
        yield session


def get_notifier() -> INotifier:
    return connection_manager


# Type aliases for clean injection
AppSettings = Annotated[Settings, Depends(get_settings)]
DbSession = Annotated[AsyncSession, Depends(get_session)]
Cache = Annotated[TaggedCache, Depends(get_tagged_cache)]
Notifier = Annotated[INotifier, Depends(get_notifier)]
CurrentUser = Annotated[UserInfo, Depends(get_current_user)]
OptionalUser = Annotated[Optional[UserInfo], Depends(get_optional_user)]


def get_conversation_service(
    session: DbSession,
    cache: Cache,
    notifier: Notifier,
    settings: AppSettings,
) -> ConversationService:
    return ConversationService(session, cache, notifier=notifier, settings=settings)


def get_conversation_query_service(session: DbSession, cache: Cache) -> ConversationQueryService:
    return ConversationQueryService(session, cache)


def get_agent_service(session: DbSession, cache: Cache, notifier: Notifier) -> AgentService:
    return AgentService(session, cache, notifier=notifier)


ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]


def get_auto_assignment_service(
    session: DbSession,
    cache: Cache,
    conversations: ConversationServiceDep,
    settings: AppSettings,
) -> AutoAssignmentService:
    return AutoAssignmentService(session, cache, assign=conversations.assign_agent, settings=settings)


def get_issue_service(session: DbSession, cache: Cache, settings: AppSettings) -> IssueService:
    return IssueService(session, cache, settings=settings)


def get_whatsapp_service(
    session: DbSession,
    cache: Cache,
    notifier: Notifier,
    settings: AppSettings,
) -> WhatsAppService:
    return WhatsAppService(session, cache, notifier=notifier, settings=settings)


ConversationQueriesDep = Annotated[ConversationQueryService, Depends(get_conversation_query_service)]
AgentServiceDep = Annotated[AgentService, Depends(get_agent_service)]
AutoAssignmentDep = Annotated[AutoAssignmentService, Depends(get_auto_assignment_service)]
IssueServiceDep = Annotated[IssueService, Depends(get_issue_service)]
WhatsAppServiceDep = Annotated[WhatsAppService, Depends(get_whatsapp_service)]
