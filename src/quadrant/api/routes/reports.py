"""Quarterly report endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query
from fastapi.responses import Response

from quadrant.api.dependencies import Capabilities, DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    ErrorResponse,
    QuarterlyReportMetaUpdate,
    QuarterlyReportUpsert,
    QuarterlyReportViewResponse,
    ok,
)
from quadrant.services.quarterly_report_service import QuarterlyReportService
from quadrant.services.risk_case_service import RiskCaseService
from quadrant.services.workspace_service import WorkspaceService

router = APIRouter(prefix="/reports", tags=["reports"])

CSV_EXPORT_ROLES = ("owner", "admin")


def _service(db, capabilities) -> QuarterlyReportService:
    return QuarterlyReportService(
        db,
        capabilities=capabilities,
        risk_cases=RiskCaseService(db, capabilities=capabilities),
    )


@router.get("/quarterly")
async def get_quarterly_report(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    quarter: Annotated[int | None, Query(ge=1, le=4)] = None,
) -> dict:
    """Report for the requested quarter, the current one by default."""
    view = await _service(db, capabilities).get_or_create(workspace_id, year, quarter)
    await db.commit()
    return ok(report=QuarterlyReportViewResponse.model_validate(view))


@router.put("/quarterly")
async def upsert_quarterly_report(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    capabilities: Capabilities,
    payload: QuarterlyReportUpsert,
) -> dict:
    view = await _service(db, capabilities).create_or_update(
        workspace_id,
        payload.year,
        payload.quarter,
        title=payload.title,
        notes=payload.notes,
        lock=payload.lock,
        user_id=user_id,
    )
    await db.commit()
    return ok(report=QuarterlyReportViewResponse.model_validate(view))


@router.patch("/quarterly/{report_id}", responses={404: {"model": ErrorResponse}})
async def update_quarterly_report(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    report_id: Annotated[str, Path()],
    payload: QuarterlyReportMetaUpdate,
) -> dict:
    view = await _service(db, capabilities).update_metadata(
        workspace_id,
        report_id,
        title=payload.title,
        notes=payload.notes,
        is_locked=payload.is_locked,
    )
    await db.commit()
    return ok(report=QuarterlyReportViewResponse.model_validate(view))


@router.get(
    "/quarterly/decisions-csv",
    response_class=Response,
    responses={403: {"model": ErrorResponse}},
)
async def export_decisions_csv(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    capabilities: Capabilities,
    year: Annotated[int, Query(ge=2000, le=2100)],
    quarter: Annotated[int, Query(ge=1, le=4)],
) -> Response:
    """Decisions created in the quarter as CSV, for owners and admins."""
    await WorkspaceService(db).require_member(workspace_id, user_id, roles=CSV_EXPORT_ROLES)
    body = await _service(db, capabilities).export_decisions_csv(workspace_id, year, quarter)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename=quarterly-decisions-{year}-Q{quarter}.csv",
        },
    )
