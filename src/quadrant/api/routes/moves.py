"""Job role and move scenario endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from quadrant.api.dependencies import AppSettings, Capabilities, DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    ErrorResponse,
    JobRoleCreate,
    JobRoleResponse,
    JobRoleUpdate,
    ScenarioActionIn,
    ScenarioCreate,
    ScenarioResponse,
    ScenarioSuggestRequest,
    StatusUpdate,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.moves_service import ActionSpec, MovesService, RequirementSpec
from quadrant.services.skill_map_service import SkillMapService
from quadrant.services.state_machine import ScenarioStateMachine

router = APIRouter(prefix="/moves", tags=["moves"])


def _service(db, settings, capabilities) -> MovesService:
    return MovesService(db, heuristics=settings.moves, skill_map=SkillMapService(db, capabilities))


def _action_spec(action: ScenarioActionIn) -> ActionSpec:
    return ActionSpec(**action.model_dump())


# ============================================================================
# Job roles
# ============================================================================


@router.get("/roles")
async def list_job_roles(db: DbSession, workspace_id: WorkspaceId, settings: AppSettings, capabilities: Capabilities) -> dict:
    roles = await _service(db, settings, capabilities).list_job_roles(workspace_id)
    return ok(roles=[JobRoleResponse.model_validate(role) for role in roles])


@router.post("/roles", status_code=status.HTTP_201_CREATED)
async def create_job_role(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    payload: JobRoleCreate,
) -> dict:
    role = await _service(db, settings, capabilities).create_job_role(
        workspace_id,
        name=payload.name,
        requirements=[RequirementSpec(**req.model_dump()) for req in payload.requirements],
        description=payload.description,
        level_band=payload.level_band,
        is_leadership=payload.is_leadership,
    )
    await db.commit()
    return ok(role=JobRoleResponse.model_validate(role))


@router.get("/roles/{role_id}", responses={404: {"model": ErrorResponse}})
async def get_job_role(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    role_id: Annotated[str, Path()],
) -> dict:
    role = await _service(db, settings, capabilities).get_job_role(workspace_id, role_id)
    if role is None:
        raise ServiceError(ErrorCode.ROLE_NOT_FOUND)
    return ok(role=JobRoleResponse.model_validate(role))


@router.patch("/roles/{role_id}", responses={404: {"model": ErrorResponse}})
async def update_job_role(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    role_id: Annotated[str, Path()],
    payload: JobRoleUpdate,
) -> dict:
    requirements = (
        [RequirementSpec(**req.model_dump()) for req in payload.requirements]
        if payload.requirements is not None
        else None
    )
    role = await _service(db, settings, capabilities).update_job_role(
        workspace_id,
        role_id,
        name=payload.name,
        description=payload.description,
        level_band=payload.level_band,
        is_leadership=payload.is_leadership,
        requirements=requirements,
    )
    await db.commit()
    return ok(role=JobRoleResponse.model_validate(role))


@router.get("/roles/{role_id}/employees/{employee_id}", responses={404: {"model": ErrorResponse}})
async def get_employee_role_gap(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    role_id: Annotated[str, Path()],
    employee_id: Annotated[str, Path()],
    cycle_id: Annotated[str | None, Query()] = None,
) -> dict:
    """Gap of one employee against a job role."""
    gap = await _service(db, settings, capabilities).compute_employee_role_gap(
        workspace_id, employee_id, role_id, cycle_id=cycle_id
    )
    return ok(gap=gap)


# ============================================================================
# Team needs
# ============================================================================


@router.get("/teams/{team_id}/summary", responses={404: {"model": ErrorResponse}})
async def get_team_summary(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    team_id: Annotated[str, Path()],
    cycle_id: Annotated[str | None, Query()] = None,
) -> dict:
    summary = await _service(db, settings, capabilities).compute_team_needs_summary(
        workspace_id, team_id, cycle_id=cycle_id
    )
    if summary is None:
        raise ServiceError(ErrorCode.TEAM_NOT_FOUND)
    return ok(summary=summary)


# ============================================================================
# Scenarios
# ============================================================================


@router.get("/scenarios")
async def list_scenarios(db: DbSession, workspace_id: WorkspaceId, settings: AppSettings, capabilities: Capabilities) -> dict:
    scenarios = await _service(db, settings, capabilities).list_scenarios(workspace_id)
    return ok(scenarios=[ScenarioResponse.model_validate(s) for s in scenarios])


@router.post("/scenarios", status_code=status.HTTP_201_CREATED)
async def create_scenario(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    payload: ScenarioCreate,
) -> dict:
    scenario = await _service(db, settings, capabilities).save_scenario(
        workspace_id,
        created_by_user_id=user_id,
        title=payload.title,
        actions=[_action_spec(action) for action in payload.actions],
        description=payload.description,
    )
    await db.commit()
    return ok(scenario=ScenarioResponse.model_validate(scenario))


@router.post(
    "/scenarios/suggest",
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def suggest_scenario(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    payload: ScenarioSuggestRequest,
) -> dict:
    """Draft a scenario from the current team risks."""
    scenario = await _service(db, settings, capabilities).suggest_from_risks(
        workspace_id,
        created_by_user_id=user_id,
        team_id=payload.team_id,
        cycle_id=payload.cycle_id,
    )
    await db.commit()
    return ok(scenario=ScenarioResponse.model_validate(scenario))


@router.get("/scenarios/{scenario_id}", responses={404: {"model": ErrorResponse}})
async def get_scenario(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    scenario_id: Annotated[str, Path()],
) -> dict:
    scenario = await _service(db, settings, capabilities).get_scenario(workspace_id, scenario_id)
    if scenario is None:
        raise ServiceError(ErrorCode.SCENARIO_NOT_FOUND)
    return ok(scenario=ScenarioResponse.model_validate(scenario))


@router.patch(
    "/scenarios/{scenario_id}/status",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_scenario_status(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    scenario_id: Annotated[str, Path()],
    payload: StatusUpdate,
) -> dict:
    service = _service(db, settings, capabilities)
    scenario = await service.get_scenario(workspace_id, scenario_id)
    if scenario is None:
        raise ServiceError(ErrorCode.SCENARIO_NOT_FOUND)
    ScenarioStateMachine.validate_transition(scenario.status, payload.status)
    scenario = await service.update_scenario_status(workspace_id, scenario_id, payload.status)
    await db.commit()
    return ok(scenario=ScenarioResponse.model_validate(scenario))


@router.post("/scenarios/{scenario_id}/actions", responses={404: {"model": ErrorResponse}})
async def add_scenario_action(
    db: DbSession,
    workspace_id: WorkspaceId,
    settings: AppSettings,
    capabilities: Capabilities,
    scenario_id: Annotated[str, Path()],
    payload: ScenarioActionIn,
) -> dict:
    scenario = await _service(db, settings, capabilities).add_action(
        workspace_id, scenario_id, _action_spec(payload)
    )
    await db.commit()
    return ok(scenario=ScenarioResponse.model_validate(scenario))
