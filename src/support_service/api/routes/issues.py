# src/support_service/api/routes/issues.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from support_service.api.dependencies import IssueServiceDep
from support_service.api.middleware.rate_limit import limiter, write_limit
from support_service.api.schemas.analytics import ActivityItem
from support_service.api.schemas.base import IdResponse, StatusResponse
from support_service.api.schemas.issues import (
    IssueDashboardMetricsDto,
    IssueDetailsDto,
    IssueDto,
    IssueIntakeRequest,
    IssuePerformanceStatsDto,
    IssueUpdateRequest,
    LinkIssuesRequest,
    UnlinkIssuesRequest,
)
from support_service.api.schemas.pagination import PaginatedResponse
from support_service.auth.rbac.decorators import require_permission
from support_service.auth.rbac.permissions import Permission
from support_service.auth.schemas import UserInfo
from support_service.domain.enums import IssueCategory, IssuePriority, IssueStatus
from support_service.domain.result import raise_for_result

router = APIRouter()


@router.get("", response_model=PaginatedResponse[IssueDto])
async def list_issues(
    service: IssueServiceDep,
    user: UserInfo = Depends(require_permission(Permission.ISSUES_READ)),
    status_filter: Optional[IssueStatus] = Query(None, alias="status"),
    priority: Optional[IssuePriority] = None,
    category: Optional[IssueCategory] = None,
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_desc: bool = True,
):
    """Issues of the caller's tenant."""
    return raise_for_result(
        await service.list_issues(
            status=status_filter,
            priority=priority,
            category=category,
            search=search,
            tenant_id=user.tenant_id,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_desc=sort_desc,
        )
    )


@router.post("/intake", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
async def intake_issue(
    request: Request,
    body: IssueIntakeRequest,
    service: IssueServiceDep,
    user: UserInfo = Depends(require_permission(Permission.ISSUES_WRITE)),
):
    """
    Create an issue collected by the bot.

    The reporter's contact is found by phone number or created.
    """
    return IdResponse(id=raise_for_result(await service.intake(body, user)))


@router.post(
    "/links",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(write_limit)
async def link_issues(
    request: Request,
    body: LinkIssuesRequest,
    service: IssueServiceDep,
    user: UserInfo = Depends(require_permission(Permission.ISSUES_LINK)),
):
    return IdResponse(id=raise_for_result(await service.link_issues(body, user)))


@router.delete("/links/{link_id}", response_model=StatusResponse)
@limiter.limit(write_limit)
async def unlink_issues(
    request: Request,
    link_id: UUID,
    service: IssueServiceDep,
    body: Optional[UnlinkIssuesRequest] = None,
    user: UserInfo = Depends(require_permission(Permission.ISSUES_LINK)),
):
    raise_for_result(await service.unlink_issues(link_id, body, user))
    return StatusResponse(message="Issues unlinked")


# ============================================================================
# Statistics
# ============================================================================


@router.get(
    "/dashboard",
    response_model=IssueDashboardMetricsDto,
    dependencies=[Depends(require_permission(Permission.ISSUES_READ))],
)
async def issue_dashboard(service: IssueServiceDep):
    """Open, critical and resolved counts, SLA compliance and distributions over the last 30 days."""
    return await service.dashboard_metrics()


@router.get(
    "/performance",
    response_model=IssuePerformanceStatsDto,
    dependencies=[Depends(require_permission(Permission.ISSUES_READ))],
)
async def issue_performance(service: IssueServiceDep, days: int = Query(30, ge=1, le=365)):
    return await service.performance_stats(days)


@router.get(
    "/recent-activity",
    response_model=list[ActivityItem],
    dependencies=[Depends(require_permission(Permission.ISSUES_READ))],
)
async def issue_recent_activity(service: IssueServiceDep, count: int = Query(20, ge=1, le=100)):
    return await service.recent_activity(count)


@router.get(
    "/{issue_id}",
    response_model=IssueDetailsDto,
    dependencies=[Depends(require_permission(Permission.ISSUES_READ))],
)
async def get_issue(issue_id: UUID, service: IssueServiceDep):
    """Issue with its attachments, links and audit trail."""
    return raise_for_result(await service.get_issue(issue_id))


@router.patch("/{issue_id}", response_model=IssueDto)
@limiter.limit(write_limit)
async def update_issue(
    request: Request,
    issue_id: UUID,
    body: IssueUpdateRequest,
    service: IssueServiceDep,
    user: UserInfo = Depends(require_permission(Permission.ISSUES_WRITE)),
):
    return raise_for_result(await service.update_issue(issue_id, body, user))
