"""Skill map and skill gap endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from quadrant.api.dependencies import Capabilities, DbSession, WorkspaceId
from quadrant.api.schemas import (
    ErrorResponse,
    RoleAssignmentCreate,
    RoleAssignmentResponse,
    RoleProfileResponse,
    RoleProfileUpsert,
    SkillRatingResponse,
    SkillRatingsUpsert,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.skill_gap_service import RatingInput, RequirementInput, SkillGapService
from quadrant.services.skill_map_service import SkillMapService

router = APIRouter(prefix="/skills", tags=["skills"])
gaps_router = APIRouter(prefix="/skill-gaps", tags=["skill-gaps"])


# ============================================================================
# Skill map
# ============================================================================


@router.get("/map")
async def get_skill_map(db: DbSession, workspace_id: WorkspaceId, capabilities: Capabilities) -> dict:
    """Coverage, bus factor and risk of every skill in the workspace."""
    skill_map = await SkillMapService(db, capabilities).get_workspace_skill_map(workspace_id)
    return ok(map=skill_map)


@router.get("/teams")
async def get_team_profiles(db: DbSession, workspace_id: WorkspaceId, capabilities: Capabilities) -> dict:
    teams = await SkillMapService(db, capabilities).get_team_profiles(workspace_id)
    return ok(teams=teams)


# ============================================================================
# Role profiles
# ============================================================================


@gaps_router.get("/roles")
async def list_role_profiles(db: DbSession, workspace_id: WorkspaceId) -> dict:
    roles = await SkillGapService(db).list_role_profiles(workspace_id)
    return ok(roles=[RoleProfileResponse.model_validate(role) for role in roles])


@gaps_router.put("/roles", responses={400: {"model": ErrorResponse}})
async def upsert_role_profile(db: DbSession, workspace_id: WorkspaceId, payload: RoleProfileUpsert) -> dict:
    """Create or replace a role profile and its requirements."""
    role = await SkillGapService(db).upsert_role_profile(
        workspace_id,
        name=payload.name,
        requirements=[
            RequirementInput(skill_code=req.skill_code, level_required=req.level_required, weight=req.weight)
            for req in payload.requirements
        ],
        role_id=payload.id,
        description=payload.description,
        is_default=payload.is_default,
    )
    await db.commit()
    return ok(role=RoleProfileResponse.model_validate(role))


@gaps_router.post(
    "/assignments",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def assign_role(db: DbSession, workspace_id: WorkspaceId, payload: RoleAssignmentCreate) -> dict:
    assignment = await SkillGapService(db).assign_role_to_employee(
        workspace_id,
        employee_id=payload.employee_id,
        role_profile_id=payload.role_profile_id,
        is_primary=payload.is_primary,
    )
    await db.commit()
    return ok(assignment=RoleAssignmentResponse.model_validate(assignment))


@gaps_router.put("/employees/{employee_id}/ratings")
async def upsert_ratings(
    db: DbSession,
    workspace_id: WorkspaceId,
    employee_id: Annotated[str, Path()],
    payload: SkillRatingsUpsert,
) -> dict:
    ratings = await SkillGapService(db).upsert_skill_ratings(
        workspace_id,
        employee_id,
        source=payload.source,
        ratings=[
            RatingInput(skill_code=r.skill_code, level=r.level, rated_at=r.rated_at) for r in payload.ratings
        ],
    )
    await db.commit()
    return ok(ratings=[SkillRatingResponse.model_validate(r) for r in ratings])


# ============================================================================
# Gaps
# ============================================================================


@gaps_router.get("/employees/{employee_id}")
async def get_employee_gap(
    db: DbSession,
    workspace_id: WorkspaceId,
    employee_id: Annotated[str, Path()],
) -> dict:
    """Gaps against the employee's primary role."""
    result = await SkillGapService(db).get_skill_gap_for_employee(workspace_id, employee_id)
    role = result.primary_role
    return ok(
        primary_role={"id": role.id, "name": role.name} if role else None,
        skills=result.skills,
    )


@gaps_router.get("/employees/{employee_id}/profile")
async def get_employee_profile(
    db: DbSession,
    workspace_id: WorkspaceId,
    employee_id: Annotated[str, Path()],
) -> dict:
    profile = await SkillGapService(db).compute_skill_profile_for_employee(workspace_id, employee_id)
    return ok(profile=profile)


@gaps_router.get("/roles/{role_id}", responses={404: {"model": ErrorResponse}})
async def get_role_gaps(
    db: DbSession,
    workspace_id: WorkspaceId,
    role_id: Annotated[str, Path()],
    employee_ids: Annotated[list[str] | None, Query()] = None,
) -> dict:
    service = SkillGapService(db)
    if await service.get_role_profile(workspace_id, role_id) is None:
        raise ServiceError(ErrorCode.ROLE_PROFILE_NOT_FOUND)
    return ok(gaps=await service.compute_gaps_for_role(workspace_id, role_id, employee_ids))


@gaps_router.get("/roles/{role_id}/top", responses={404: {"model": ErrorResponse}})
async def get_top_role_gaps(
    db: DbSession,
    workspace_id: WorkspaceId,
    role_id: Annotated[str, Path()],
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
) -> dict:
    service = SkillGapService(db)
    if await service.get_role_profile(workspace_id, role_id) is None:
        raise ServiceError(ErrorCode.ROLE_PROFILE_NOT_FOUND)
    return ok(skills=await service.compute_top_gaps_for_role(workspace_id, role_id, limit=limit))
