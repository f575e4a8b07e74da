"""Quest endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from quadrant.api.dependencies import Capabilities, DbSession, WorkspaceId
from quadrant.api.schemas import (
    AssignmentViewResponse,
    ErrorResponse,
    QuestAssignRequest,
    QuestCreate,
    QuestProgressUpdate,
    QuestStepProgressResponse,
    QuestViewResponse,
    StatusUpdate,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.quest_service import QuestService, StepInput
from quadrant.services.skill_map_service import SkillMapService
from quadrant.services.state_machine import QuestStateMachine

router = APIRouter(prefix="/quests", tags=["quests"])


@router.get("")
async def list_quests(
    db: DbSession,
    workspace_id: WorkspaceId,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    team_id: Annotated[str | None, Query()] = None,
    goal_type: Annotated[str | None, Query()] = None,
) -> dict:
    quests = await QuestService(db).list_quests(
        workspace_id, status=status_filter, team_id=team_id, goal_type=goal_type
    )
    return ok(quests=[QuestViewResponse.model_validate(view) for view in quests])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quest(db: DbSession, workspace_id: WorkspaceId, payload: QuestCreate) -> dict:
    view = await QuestService(db).create_quest(
        workspace_id,
        title=payload.title,
        steps=[StepInput(**step.model_dump()) for step in payload.steps],
        description=payload.description,
        owner_employee_id=payload.owner_employee_id,
        related_team_id=payload.related_team_id,
        goal_type=payload.goal_type,
        priority=payload.priority,
        status=payload.status,
    )
    await db.commit()
    return ok(quest=QuestViewResponse.model_validate(view))


@router.get("/suggestions")
async def suggest_quests(db: DbSession, workspace_id: WorkspaceId, capabilities: Capabilities) -> dict:
    """Unsaved quest drafts for the riskiest team skills."""
    service = QuestService(db, skill_map=SkillMapService(db, capabilities))
    return ok(drafts=await service.suggest_from_risks(workspace_id))


@router.get("/{quest_id}", responses={404: {"model": ErrorResponse}})
async def get_quest(db: DbSession, workspace_id: WorkspaceId, quest_id: Annotated[str, Path()]) -> dict:
    view = await QuestService(db).get_quest(workspace_id, quest_id)
    if view is None:
        raise ServiceError(ErrorCode.QUEST_NOT_FOUND)
    return ok(quest=QuestViewResponse.model_validate(view))


@router.patch(
    "/{quest_id}/status",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_quest_status(
    db: DbSession,
    workspace_id: WorkspaceId,
    quest_id: Annotated[str, Path()],
    payload: StatusUpdate,
) -> dict:
    service = QuestService(db)
    current = await service.get_quest(workspace_id, quest_id)
    if current is None:
        raise ServiceError(ErrorCode.QUEST_NOT_FOUND)
    QuestStateMachine.validate_transition(current.quest.status, payload.status)
    view = await service.update_status(workspace_id, quest_id, payload.status)
    await db.commit()
    return ok(quest=QuestViewResponse.model_validate(view))


# ============================================================================
# Assignments
# ============================================================================


@router.post(
    "/{quest_id}/assignments",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def assign_quest(
    db: DbSession,
    workspace_id: WorkspaceId,
    quest_id: Annotated[str, Path()],
    payload: QuestAssignRequest,
) -> dict:
    assignments = await QuestService(db).assign_to_employees(
        workspace_id, quest_id, payload.employee_ids, mentor_employee_id=payload.mentor_employee_id
    )
    await db.commit()
    return ok(assignments=[AssignmentViewResponse.model_validate(a) for a in assignments])


@router.get("/{quest_id}/assignments")
async def list_quest_assignments(
    db: DbSession,
    workspace_id: WorkspaceId,
    quest_id: Annotated[str, Path()],
) -> dict:
    assignments = await QuestService(db).list_assignments_for_quest(workspace_id, quest_id)
    return ok(assignments=[AssignmentViewResponse.model_validate(a) for a in assignments])


@router.get("/employees/{employee_id}/assignments")
async def list_employee_assignments(
    db: DbSession,
    workspace_id: WorkspaceId,
    employee_id: Annotated[str, Path()],
) -> dict:
    assignments = await QuestService(db).list_assignments_for_employee(workspace_id, employee_id)
    return ok(assignments=[AssignmentViewResponse.model_validate(a) for a in assignments])


@router.patch(
    "/assignments/{assignment_id}/steps/{step_id}",
    responses={404: {"model": ErrorResponse}},
)
async def update_step_progress(
    db: DbSession,
    workspace_id: WorkspaceId,
    assignment_id: Annotated[str, Path()],
    step_id: Annotated[str, Path()],
    payload: QuestProgressUpdate,
) -> dict:
    progress = await QuestService(db).update_step_progress(
        workspace_id, assignment_id, step_id, payload.status, notes=payload.notes
    )
    await db.commit()
    return ok(progress=QuestStepProgressResponse.model_validate(progress))
