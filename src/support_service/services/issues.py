"""
Issue intake, updates and issue-to-issue links.

Every change is mirrored into the issue's EventLog: domain events returned
by the Issue methods are stored under their name without the ``Event``
suffix (``IssueCreated``, ``IssueStatusChanged``...), links and unlinks are
logged on both issues involved. Status changes and resolutions are also
sent to the reporter over WhatsApp.

The statistics (dashboard, performance, recent activity) are cached under
the issues tag.
"""

import json
import logging
from collections import Counter
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Callable, Iterable, Optional, Sequence
from uuid import UUID, uuid4

from pydantic_core import to_jsonable_python
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.analytics import ActivityItem, GroupPerformance
from support_service.api.schemas.errors import ErrorCode
from support_service.api.schemas.issues import (
    AttachmentDto,
    EventLogDto,
    IssueDashboardMetricsDto,
    IssueDetailsDto,
    IssueDto,
    IssueIntakeRequest,
    IssueLinkDto,
    IssuePerformanceStatsDto,
    IssueUpdateRequest,
    LinkIssuesRequest,
    UnlinkIssuesRequest,
)
from support_service.api.schemas.pagination import PaginatedResponse, PaginationMeta
from support_service.auth.schemas import UserInfo
from support_service.config.settings import Settings, get_settings
from support_service.domain import error_messages as msg
from support_service.domain.enums import IssueCategory, IssuePriority, IssueStatus, parse_enum
from support_service.domain.events import DomainEvent
from support_service.domain.result import Result
from support_service.infrastructure.cache import CacheKeys, CacheTags, TaggedCache
from support_service.infrastructure.clients import WhatsAppApiClient
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import Attachment, Contact, EventLog, Issue, IssueLink
from support_service.infrastructure.database.repositories import (
    AttachmentRepository,
    ContactRepository,
    EventLogRepository,
    IssueLinkRepository,
    IssueRepository,
)
from support_service.services.analytics import (
    daily_series,
    hourly_series,
    hours_between,
    mean,
    percentile,
    stats_window,
)
from support_service.services.issue_notifications import ReporterNotifier
from support_service.services.reference_numbers import generate_reference_number

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 3
INTAKE_STATE = "Intake Complete"
ISSUE_DETAILS_TTL = 120

DASHBOARD_PERIOD_DAYS = 30
ISSUE_DASHBOARD_TTL = 300
PERFORMANCE_TTL = 600
RECENT_ACTIVITY_TTL = 120

RESOLVED_STATUSES = (IssueStatus.RESOLVED, IssueStatus.CLOSED)
SLA_HOURS = {IssuePriority.CRITICAL: 24}
DEFAULT_SLA_HOURS = 72
ACTIVITY_EVENT_TYPES = ("IssueStatusChanged", "IssueUpdated", "IssueAssigned")

_SEARCH_COLUMNS = (Issue.reference_number, Issue.title, Issue.description, Issue.reporter_name, Issue.reporter_phone)


class ReferenceNumberUnavailable(Exception):
    """No free reference number was found within the allowed attempts."""


def event_type(event: DomainEvent) -> str:
    return event.name.removesuffix("Event")


def event_payload(event: DomainEvent) -> dict[str, Any]:
    payload = to_jsonable_python(asdict(event))
    payload.pop("issue_id", None)
    return payload


def intake_metadata(request: IssueIntakeRequest) -> str:
    """JSON blob stored on the issue describing how it came in."""
    return json.dumps(
        {
            "Channel": request.channel,
            "Product": request.product,
            "Severity": request.severity,
            "ConversationState": INTAKE_STATE,
            "ProcessedAt": utcnow().isoformat(),
        }
    )


class IssueService:
    def __init__(
        self,
        session: AsyncSession,
        cache: TaggedCache,
        settings: Optional[Settings] = None,
        whatsapp: Optional[WhatsAppApiClient] = None,
    ):
        self.session = session
        self.cache = cache
        self.settings = settings or get_settings()
        self._whatsapp = whatsapp
        self.issues = IssueRepository(session)
        self.contacts = ContactRepository(session)
        self.links = IssueLinkRepository(session)
        self.event_logs = EventLogRepository(session)
        self.attachments = AttachmentRepository(session)

    @property
    def reporter_notifier(self) -> ReporterNotifier:
        if self._whatsapp is None:
            self._whatsapp = WhatsAppApiClient(self.settings)
        return ReporterNotifier(self._whatsapp)

    # ========================================
    # Helpers
    # ========================================

    async def _log(
        self,
        issue: Issue,
        type_: str,
        payload: dict[str, Any],
        created_by: Optional[str] = None,
    ) -> EventLog:
        return await self.event_logs.create(
            EventLog(
                issue_id=issue.id,
                type=type_,
                payload=payload,
                created_by=created_by,
                tenant_id=issue.tenant_id,
            )
        )

    async def _log_events(self, issue: Issue, events: Iterable[DomainEvent], created_by: Optional[str] = None) -> None:
        for event in events:
            await self._log(issue, event_type(event), event_payload(event), created_by)

    async def _find_or_create_contact(
        self,
        phone: str,
        name: Optional[str],
        tenant_id: str,
        contact_id: Optional[UUID] = None,
    ) -> Contact:
        contact = None
        if contact_id is not None:
            contact = await self.contacts.get(contact_id)
        if contact is None:
            contact = await self.contacts.get_by_phone(phone, tenant_id)

        if contact is not None:
            if name and name.strip() and contact.name != name:
                contact.name = name
                contact.updated_at = utcnow()
                await self.contacts.save(contact)
            return contact

        return await self.contacts.create(
            Contact(
                phone_number=phone,
                name=name,
                description=msg.CONTACT_AUTO_CREATED,
                tenant_id=tenant_id,
            )
        )

    async def _unique_reference_number(self) -> str:
        for attempt in range(REFERENCE_ATTEMPTS):
            reference = await generate_reference_number(self.session)
            if not await self.issues.reference_exists(reference):
                return reference
            logger.warning("Reference number collision", extra={"reference": reference, "attempt": attempt + 1})
        raise ReferenceNumberUnavailable()

    # ========================================
    # Commands
    # ========================================

    async def intake(
        self,
        request: IssueIntakeRequest,
        user: Optional[UserInfo] = None,
    ) -> Result[UUID]:
        """
        Create an issue reported through a messaging channel.

        The reporter's contact is looked up by phone (and created when
        unknown). Intake vocabulary without a stored counterpart falls back
        to General / Medium: "Policy" becomes General, "Urgent" becomes
        Medium.
        """
        tenant_id = user.tenant_id if user else self.settings.default_tenant_id
        try:
            contact = await self._find_or_create_contact(
                request.reporter_phone,
                request.reporter_name,
                tenant_id,
                contact_id=request.contact_id,
            )
            reference_number = await self._unique_reference_number()

            issue, created = Issue.create(
                reference_number=reference_number,
                title=request.summary,
                description=request.description,
                category=parse_enum(IssueCategory, request.category, IssueCategory.GENERAL),
                priority=parse_enum(IssuePriority, request.priority, IssuePriority.MEDIUM),
                reporter_contact_id=contact.id,
                tenant_id=contact.tenant_id,
                source_message_ids=list(request.source_message_ids),
                whatsapp_metadata=intake_metadata(request),
                consent_flag=request.consent_flag,
                conversation_id=request.conversation_id,
                reporter_phone=request.reporter_phone,
                reporter_name=request.reporter_name,
                channel=request.channel,
                summary=request.summary,
                product=request.product,
                severity=request.severity,
            )
            await self.issues.create(issue)

            for data in request.attachments:
                await self.attachments.create(
                    Attachment(
                        issue_id=issue.id,
                        url=data.url,
                        content_type=data.content_type,
                        size_bytes=data.size,
                        scan_status="Pending",
                        tenant_id=issue.tenant_id,
                    )
                )

            await self._log_events(issue, [created], created_by=str(user.id) if user else None)
        except (ReferenceNumberUnavailable, IntegrityError):
            logger.warning("Issue reference number unavailable", extra={"reporter_phone": request.reporter_phone})
            return Result.failure(msg.ISSUE_REFERENCE_UNAVAILABLE, code=ErrorCode.CONFLICT)
        except Exception:
            error_reference = uuid4()
            logger.exception("Issue intake failed", extra={"error_reference": str(error_reference)})
            return Result.failure(
                msg.ISSUE_CREATION_FAILED_TEMPLATE.format(reference=error_reference),
                code=ErrorCode.INTERNAL_ERROR,
            )

        self.cache.invalidate_on_commit(self.session, CacheTags.ISSUES)
        logger.info(
            "Issue created from intake",
            extra={"issue_id": str(issue.id), "reference_number": reference_number, "channel": request.channel},
        )
        return Result.success(issue.id)

    async def update_issue(
        self,
        issue_id: UUID,
        request: IssueUpdateRequest,
        user: Optional[UserInfo] = None,
    ) -> Result[IssueDto]:
        issue = await self.issues.get(issue_id)
        if issue is None:
            return Result.failure(
                msg.ISSUE_NOT_FOUND_TEMPLATE.format(issue_id=issue_id),
                code=ErrorCode.ISSUE_NOT_FOUND,
            )

        changes = request.model_dump(exclude_unset=True)
        created_by = str(user.id) if user else None
        try:
            changed_fields = []
            for field in ("title", "description", "priority", "category"):
                if field in changes and changes[field] is not None and getattr(issue, field) != changes[field]:
                    setattr(issue, field, changes[field])
                    changed_fields.append(field)

            events: list[DomainEvent] = []
            if changes.get("resolution_notes") is not None:
                issue.resolution_notes = changes["resolution_notes"]
            if "assigned_user_id" in changes:
                events.extend(issue.assign_to(changes["assigned_user_id"]))
            if changes.get("status") is not None:
                events.extend(issue.change_status(changes["status"]))

            if changed_fields or events:
                issue.updated_at = utcnow()
                await self.issues.save(issue)
            if changed_fields:
                payload: dict[str, Any] = {"changed_fields": changed_fields}
                if "priority" in changed_fields:
                    payload["priority"] = issue.priority.value
                await self._log(issue, "IssueUpdated", payload, created_by)
            await self._log_events(issue, events, created_by)
        except SQLAlchemyError as e:
            logger.exception("Failed to update issue", extra={"issue_id": str(issue_id)})
            return Result.failure(msg.UPDATE_ISSUE_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.ISSUES)
        await self.reporter_notifier.notify(issue, events)
        return Result.success(IssueDto.model_validate(issue))

    async def link_issues(self, request: LinkIssuesRequest, user: Optional[UserInfo] = None) -> Result[UUID]:
        try:
            parent = await self.issues.get(request.parent_issue_id)
            if parent is None:
                return Result.failure(msg.PARENT_ISSUE_NOT_FOUND, code=ErrorCode.ISSUE_NOT_FOUND)

            child = await self.issues.get(request.child_issue_id)
            if child is None:
                return Result.failure(msg.CHILD_ISSUE_NOT_FOUND, code=ErrorCode.ISSUE_NOT_FOUND)

            if parent.tenant_id != child.tenant_id:
                return Result.failure(msg.ISSUES_DIFFERENT_TENANTS)

            if await self.links.exists_between(parent.id, child.id):
                return Result.failure(msg.ISSUE_LINK_EXISTS, code=ErrorCode.CONFLICT)

            if await self.links.would_create_cycle(parent.id, child.id):
                return Result.failure(msg.ISSUE_LINK_CIRCULAR, code=ErrorCode.CONFLICT)

            if request.created_by_system:
                link = IssueLink.create_system_link(
                    parent.id,
                    child.id,
                    request.link_type,
                    request.confidence_score or 0.0,
                    parent.tenant_id,
                    request.metadata,
                )
            else:
                link = IssueLink.create_manual_link(
                    parent.id,
                    child.id,
                    request.link_type,
                    parent.tenant_id,
                    request.metadata,
                )
            await self.links.create(link)

            metadata = {
                "link_type": request.link_type.value,
                "confidence_score": request.confidence_score,
                "created_by_system": request.created_by_system,
                "reason": request.reason,
                "user_id": str(user.id) if user else None,
            }
            created_by = metadata["user_id"]
            await self._log(
                parent,
                "IssueLinked",
                {
                    "action": "Linked",
                    "description": f"Linked to issue {child.reference_number} as {request.link_type.value}",
                    "metadata": metadata,
                },
                created_by,
            )
            await self._log(
                child,
                "IssueLinked",
                {
                    "action": "Linked",
                    "description": f"Linked to issue {parent.reference_number} as child of {request.link_type.value}",
                    "metadata": metadata,
                },
                created_by,
            )
        except Exception as e:
            logger.exception(
                "Error linking issues",
                extra={"parent_issue_id": str(request.parent_issue_id), "child_issue_id": str(request.child_issue_id)},
            )
            return Result.failure(msg.LINK_ISSUES_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.ISSUES)
        logger.info(
            "Issues linked",
            extra={"parent_issue_id": str(parent.id), "child_issue_id": str(child.id), "link_type": request.link_type.value},
        )
        return Result.success(link.id)

    async def unlink_issues(
        self,
        link_id: UUID,
        request: Optional[UnlinkIssuesRequest] = None,
        user: Optional[UserInfo] = None,
    ) -> Result[bool]:
        reason = request.reason if request else None
        try:
            link = await self.links.get(link_id)
            if link is None:
                return Result.failure(msg.ISSUE_LINK_NOT_FOUND, code=ErrorCode.NOT_FOUND)

            parent = await self.issues.get(link.parent_issue_id)
            child = await self.issues.get(link.child_issue_id)
            link_type = link.link_type.value

            await self.links.delete(link.id)

            metadata = {
                "link_type": link_type,
                "removed_link_id": str(link_id),
                "reason": reason,
                "user_id": str(user.id) if user else None,
                "unlinked_at": utcnow().isoformat(),
            }
            pairs = ((parent, child), (child, parent))
            for issue, other in pairs:
                if issue is None:
                    continue
                other_reference = other.reference_number if other else "unknown"
                await self._log(
                    issue,
                    "IssueUnlinked",
                    {
                        "action": "Unlinked",
                        "description": f"Unlinked from issue {other_reference} ({link_type})",
                        "metadata": metadata,
                    },
                    metadata["user_id"],
                )
        except Exception as e:
            logger.exception("Error unlinking issues", extra={"link_id": str(link_id)})
            return Result.failure(msg.UNLINK_ISSUES_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        self.cache.invalidate_on_commit(self.session, CacheTags.ISSUES)
        logger.info("Issues unlinked", extra={"link_id": str(link_id)})
        return Result.success(True)

    # ========================================
    # Queries
    # ========================================

    async def get_issue(self, issue_id: UUID) -> Result[IssueDetailsDto]:
        """Issue with its attachments, links and audit trail (oldest event first)."""

        async def load() -> Optional[dict]:
            issue = await self.issues.get(issue_id)
            if issue is None:
                return None
            details = IssueDetailsDto(
                issue=IssueDto.model_validate(issue),
                attachments=[AttachmentDto.model_validate(a) for a in await self.attachments.list_for_issue(issue_id)],
                links=[IssueLinkDto.model_validate(link) for link in await self.links.list_for_issue(issue_id)],
                events=[EventLogDto.model_validate(e) for e in await self.event_logs.list_for_issue(issue_id)],
            )
            return details.model_dump(mode="json")

        cached = await self.cache.get_or_set(
            CacheKeys.issue_details(str(issue_id)),
            load,
            tags=[CacheTags.ISSUES],
            ttl=ISSUE_DETAILS_TTL,
        )
        if cached is None:
            return Result.failure(
                msg.ISSUE_NOT_FOUND_TEMPLATE.format(issue_id=issue_id),
                code=ErrorCode.ISSUE_NOT_FOUND,
            )
        return Result.success(IssueDetailsDto.model_validate(cached))

    async def list_issues(
        self,
        status: Optional[IssueStatus] = None,
        priority: Optional[IssuePriority] = None,
        category: Optional[IssueCategory] = None,
        search: Optional[str] = None,
        tenant_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
        sort_by: str = "created_at",
        sort_desc: bool = True,
    ) -> Result[PaginatedResponse[IssueDto]]:
        try:
            query = self.issues.apply_filters(
                select(Issue),
                {
                    "status": status,
                    "priority": priority,
                    "category": category,
                    "tenant_id": tenant_id,
                },
            )
            if search:
                pattern = f"%{search}%"
                query = query.where(or_(*(column.ilike(pattern) for column in _SEARCH_COLUMNS)))
            query = self.issues.apply_sorting(query, sort_by, "desc" if sort_desc else "asc")

            result = await self.issues.paginate(query, page=page, page_size=page_size)
        except SQLAlchemyError as e:
            logger.exception("Error retrieving issues")
            return Result.failure(msg.ISSUES_FAILED_TEMPLATE.format(error=e), code=ErrorCode.INTERNAL_ERROR)

        return Result.success(
            PaginatedResponse[IssueDto](
                items=[IssueDto.model_validate(issue) for issue in result.items],
                pagination=PaginationMeta.from_result(result),
            )
        )

    # ========================================
    # Statistics
    # ========================================

    async def dashboard_metrics(self) -> IssueDashboardMetricsDto:
        data = await self.cache.get_or_set(
            CacheKeys.ISSUE_DASHBOARD_METRICS,
            self._compute_dashboard,
            tags=[CacheTags.ISSUES],
            ttl=ISSUE_DASHBOARD_TTL,
        )
        return IssueDashboardMetricsDto.model_validate(data)

    async def _compute_dashboard(self) -> dict:
        now = utcnow()
        last_24_hours = now - timedelta(hours=24)
        last_7_days = now - timedelta(days=7)
        period_start = now - timedelta(days=DASHBOARD_PERIOD_DAYS)
        previous_start = period_start - timedelta(days=DASHBOARD_PERIOD_DAYS)

        issues = await self.issues.all(select(Issue).where(Issue.created_at >= period_start))
        open_issues = [i for i in issues if i.status not in RESOLVED_STATUSES]
        resolved = [i for i in issues if i.status in RESOLVED_STATUSES]
        recent = [i for i in issues if i.created_at >= last_7_days]

        compliant = sum(
            1 for i in resolved if _resolution_hours(i) <= SLA_HOURS.get(i.priority, DEFAULT_SLA_HOURS)
        )

        previous_total = await self.session.scalar(
            select(func.count())
            .select_from(Issue)
            .where(Issue.created_at >= previous_start, Issue.created_at < period_start)
        ) or 0
        trend = (len(issues) - previous_total) / previous_total * 100 if previous_total > 0 else 0.0

        metrics = IssueDashboardMetricsDto(
            total_open_issues=len(open_issues),
            critical_issues=sum(1 for i in open_issues if i.priority == IssuePriority.CRITICAL),
            new_issues_last_24_hours=sum(1 for i in issues if i.created_at >= last_24_hours),
            resolved_last_24_hours=sum(1 for i in resolved if i.updated_at >= last_24_hours),
            average_resolution_time_hours=mean([_resolution_hours(i) for i in resolved]),
            sla_compliance_percentage=compliant / len(resolved) * 100 if resolved else 100.0,
            trend_percentage=trend,
            trend_direction="up" if trend > 0 else "down" if trend < 0 else "stable",
            status_distribution=dict(Counter(i.status.value for i in issues)),
            priority_distribution=dict(Counter(i.priority.value for i in open_issues)),
            category_distribution=dict(Counter(i.category.value for i in recent)),
            channel_distribution=dict(Counter(i.channel for i in recent if i.channel)),
            last_updated=now,
            data_period_days=DASHBOARD_PERIOD_DAYS,
        )
        return metrics.model_dump(mode="json")

    async def performance_stats(self, days: int = 30) -> IssuePerformanceStatsDto:
        """
        Daily and hourly intake, resolution time percentiles and per category,
        priority and channel breakdowns for the last ``days`` days (today included).
        """

        async def load() -> dict:
            now = utcnow()
            start, end = stats_window(now, days)
            issues = await self.issues.all(
                select(Issue).where(Issue.created_at >= start, Issue.created_at < end)
            )
            resolved = [i for i in issues if i.status in RESOLVED_STATUSES]
            hours = sorted(_resolution_hours(i) for i in resolved)

            stats = IssuePerformanceStatsDto(
                daily_volume=daily_series(issues, start, end, created=lambda i: i.created_at),
                hourly_distribution=hourly_series(issues, created=lambda i: i.created_at),
                median_resolution_time_hours=percentile(hours, 50),
                p90_resolution_time_hours=percentile(hours, 90),
                p95_resolution_time_hours=percentile(hours, 95),
                total_resolved_issues=len(resolved),
                category_performance=_performance_by(issues, lambda i: i.category.value),
                priority_performance=_performance_by(issues, lambda i: i.priority.value),
                channel_performance=_performance_by([i for i in issues if i.channel], lambda i: i.channel),
                period_days=days,
                generated_at=now,
            )
            return stats.model_dump(mode="json")

        data = await self.cache.get_or_set(
            CacheKeys.issue_performance(days),
            load,
            tags=[CacheTags.ISSUES],
            ttl=PERFORMANCE_TTL,
        )
        return IssuePerformanceStatsDto.model_validate(data)

    async def recent_activity(self, count: int = 20) -> list[ActivityItem]:
        """Newest issues and status, priority and assignment changes, newest first."""

        async def load() -> list[dict]:
            items: list[ActivityItem] = []
            for issue in await self.issues.all(select(Issue).order_by(Issue.created_at.desc()).limit(count)):
                items.append(
                    ActivityItem(
                        type="issue_created",
                        issue_id=str(issue.id),
                        reference_number=issue.reference_number,
                        description=f"New {issue.priority.value} priority {issue.category.value} issue created",
                        timestamp=issue.created_at,
                    )
                )

            rows = (
                await self.session.execute(
                    select(EventLog, Issue.reference_number)
                    .join(Issue, Issue.id == EventLog.issue_id)
                    .where(EventLog.type.in_(ACTIVITY_EVENT_TYPES))
                    .order_by(EventLog.created_at.desc())
                    .limit(count * 2)
                )
            ).all()
            for event, reference_number in rows:
                activity = _activity_for(event)
                if activity is None:
                    continue
                type_, description = activity
                items.append(
                    ActivityItem(
                        type=type_,
                        issue_id=str(event.issue_id),
                        reference_number=reference_number,
                        description=description,
                        timestamp=event.created_at,
                    )
                )

            items.sort(key=lambda item: item.timestamp, reverse=True)
            return [item.model_dump(mode="json") for item in items[:count]]

        data = await self.cache.get_or_set(
            CacheKeys.issue_recent_activity(count),
            load,
            tags=[CacheTags.ISSUES],
            ttl=RECENT_ACTIVITY_TTL,
        )
        return [ActivityItem.model_validate(item) for item in data]


def _resolution_hours(issue: Issue) -> float:
    """Hours from creation to the last change of a resolved or closed issue."""
    return hours_between(issue.created_at, issue.updated_at) or 0.0


def _performance_by(issues: Sequence[Issue], key: Callable[[Issue], str]) -> list[GroupPerformance]:
    groups: dict[str, list[Issue]] = {}
    for issue in issues:
        groups.setdefault(key(issue), []).append(issue)

    performance = []
    for name, members in groups.items():
        resolved = [i for i in members if i.status in RESOLVED_STATUSES]
        performance.append(
            GroupPerformance(
                name=name,
                total=len(members),
                resolved=len(resolved),
                average_resolution_hours=mean([_resolution_hours(i) for i in resolved]),
            )
        )
    return performance


def _activity_for(event: EventLog) -> Optional[tuple[str, str]]:
    payload = event.payload or {}
    if event.type == "IssueStatusChanged":
        return "status_changed", f"Status changed to {payload.get('new_status')}"
    if event.type == "IssueAssigned" and payload.get("new_assignee_id"):
        return "assigned", "Issue assigned to team member"
    if event.type == "IssueUpdated" and "priority" in payload:
        return "priority_changed", f"Priority changed to {payload['priority']}"
    return None
