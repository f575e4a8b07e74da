"""Development quests: ordered steps assigned to employees with progress."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Quest, QuestAssignment, QuestStep, QuestStepProgress
from quadrant.services.skill_map_service import SEVERITY_WEIGHT, SkillMapService
from quadrant.services.types import NamedRef
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)

MAX_SUGGESTED_QUESTS = 5


@dataclass
class StepInput:
    title: str
    description: str = ""
    order: int | None = None
    required: bool = True
    related_skill_id: str | None = None
    suggested_artifacts_count: int | None = None


@dataclass
class QuestView:
    quest: Quest
    steps: list[QuestStep] = field(default_factory=list)


@dataclass
class AssignmentView:
    assignment: QuestAssignment
    progress: list[QuestStepProgress] = field(default_factory=list)
    quest: QuestView | None = None


@dataclass
class SuggestedQuestDraft:
    """An unsaved quest proposed from a team skill risk."""

    title: str
    description: str
    skills: list[NamedRef]
    team_id: str | None
    team_name: str
    affected_employees: list[NamedRef]


class QuestService:
    def __init__(self, session: AsyncSession, skill_map: SkillMapService | None = None):
        self.session = session
        self.skill_map = skill_map or SkillMapService(session)

    async def _steps_by_quest(self, quest_ids: list[str]) -> dict[str, list[QuestStep]]:
        if not quest_ids:
            return {}
        result = await self.session.execute(
            select(QuestStep).where(QuestStep.quest_id.in_(quest_ids)).order_by(QuestStep.order)
        )
        grouped: dict[str, list[QuestStep]] = {}
        for step in result.scalars():
            grouped.setdefault(step.quest_id, []).append(step)
        return grouped

    async def list_quests(
        self,
        workspace_id: str,
        status: str | None = None,
        team_id: str | None = None,
        goal_type: str | None = None,
    ) -> list[QuestView]:
        query = select(Quest).where(Quest.workspace_id == workspace_id)
        if status:
            query = query.where(Quest.status == status)
        if team_id:
            query = query.where(Quest.related_team_id == team_id)
        if goal_type:
            query = query.where(Quest.goal_type == goal_type)
        result = await self.session.execute(query.order_by(Quest.created_at.desc()))
        quests = list(result.scalars())
        steps = await self._steps_by_quest([quest.id for quest in quests])
        return [QuestView(quest=quest, steps=steps.get(quest.id, [])) for quest in quests]

    async def get_quest(self, workspace_id: str, quest_id: str) -> QuestView | None:
        quest = await self.session.scalar(
            select(Quest).where(Quest.id == quest_id, Quest.workspace_id == workspace_id)
        )
        if quest is None:
            return None
        steps = await self._steps_by_quest([quest.id])
        return QuestView(quest=quest, steps=steps.get(quest.id, []))

    async def _require_quest(self, workspace_id: str, quest_id: str) -> QuestView:
        view = await self.get_quest(workspace_id, quest_id)
        if view is None:
            raise ServiceError(ErrorCode.QUEST_NOT_FOUND)
        return view

    async def create_quest(
        self,
        workspace_id: str,
        title: str,
        steps: list[StepInput],
        description: str = "",
        owner_employee_id: str | None = None,
        related_team_id: str | None = None,
        goal_type: str = "upskill",
        priority: str = "medium",
        status: str | None = None,
    ) -> QuestView:
        quest = Quest(
            workspace_id=workspace_id,
            title=title,
            description=description,
            status=status or "draft",
            owner_employee_id=owner_employee_id,
            related_team_id=related_team_id,
            goal_type=goal_type,
            priority=priority,
        )
        self.session.add(quest)
        await self.session.flush()
        for index, step in enumerate(steps):
            self.session.add(
                QuestStep(
                    quest_id=quest.id,
                    title=step.title,
                    description=step.description,
                    order=step.order if step.order is not None else index + 1,
                    required=step.required,
                    related_skill_id=step.related_skill_id,
                    suggested_artifacts_count=step.suggested_artifacts_count,
                )
            )
        await self.session.flush()
        return await self._require_quest(workspace_id, quest.id)

    async def update_status(self, workspace_id: str, quest_id: str, status: str) -> QuestView:
        view = await self._require_quest(workspace_id, quest_id)
        view.quest.status = status
        view.quest.updated_at = now_iso()
        await self.session.flush()
        return view

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def assign_to_employees(
        self,
        workspace_id: str,
        quest_id: str,
        employee_ids: list[str],
        mentor_employee_id: str | None = None,
    ) -> list[AssignmentView]:
        """Invite employees; each gets a not_started progress row per step."""
        view = await self._require_quest(workspace_id, quest_id)
        assignments = []
        for employee_id in dict.fromkeys(employee_ids):
            assignment = QuestAssignment(
                quest_id=quest_id,
                employee_id=employee_id,
                mentor_employee_id=mentor_employee_id,
                status="invited",
            )
            self.session.add(assignment)
            await self.session.flush()
            progress = [
                QuestStepProgress(quest_assignment_id=assignment.id, step_id=step.id, status="not_started")
                for step in view.steps
            ]
            self.session.add_all(progress)
            assignments.append(AssignmentView(assignment=assignment, progress=progress, quest=view))
        await self.session.flush()
        return assignments

    async def _hydrate(self, assignments: list[QuestAssignment], quests: dict[str, QuestView]) -> list[AssignmentView]:
        if not assignments:
            return []
        result = await self.session.execute(
            select(QuestStepProgress).where(
                QuestStepProgress.quest_assignment_id.in_([a.id for a in assignments])
            )
        )
        progress: dict[str, list[QuestStepProgress]] = {}
        for row in result.scalars():
            progress.setdefault(row.quest_assignment_id, []).append(row)
        return [
            AssignmentView(
                assignment=assignment,
                progress=progress.get(assignment.id, []),
                quest=quests.get(assignment.quest_id),
            )
            for assignment in assignments
        ]

    async def list_assignments_for_quest(self, workspace_id: str, quest_id: str) -> list[AssignmentView]:
        view = await self.get_quest(workspace_id, quest_id)
        if view is None:
            return []
        result = await self.session.execute(
            select(QuestAssignment).where(QuestAssignment.quest_id == quest_id).order_by(QuestAssignment.assigned_at)
        )
        return await self._hydrate(list(result.scalars()), {quest_id: view})

    async def list_assignments_for_employee(self, workspace_id: str, employee_id: str) -> list[AssignmentView]:
        quests = {view.quest.id: view for view in await self.list_quests(workspace_id)}
        if not quests:
            return []
        result = await self.session.execute(
            select(QuestAssignment)
            .where(QuestAssignment.employee_id == employee_id, QuestAssignment.quest_id.in_(list(quests)))
            .order_by(QuestAssignment.assigned_at)
        )
        return await self._hydrate(list(result.scalars()), quests)

    async def update_step_progress(
        self,
        workspace_id: str,
        assignment_id: str,
        step_id: str,
        status: str,
        notes: str | None = None,
    ) -> QuestStepProgress:
        """Record step progress and roll the assignment status forward.

        Once any step has moved the assignment is ``in_progress``; when every
        required step is ``done`` it is ``completed``.
        """
        result = await self.session.execute(
            select(QuestAssignment)
            .join(Quest, QuestAssignment.quest_id == Quest.id)
            .where(QuestAssignment.id == assignment_id, Quest.workspace_id == workspace_id)
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise ServiceError(ErrorCode.QUEST_ASSIGNMENT_NOT_FOUND)

        result = await self.session.execute(
            select(QuestStepProgress).where(QuestStepProgress.quest_assignment_id == assignment_id)
        )
        rows = list(result.scalars())
        current = next((row for row in rows if row.step_id == step_id), None)
        if current is None:
            raise ServiceError(ErrorCode.QUEST_STEP_NOT_FOUND)

        now = now_iso()
        current.status = status
        current.notes = notes
        current.updated_at = now

        result = await self.session.execute(
            select(QuestStep.id, QuestStep.required).where(QuestStep.id.in_([row.step_id for row in rows]))
        )
        required = {step: bool(flag) for step, flag in result.all()}
        started = any(row.status != "not_started" for row in rows)
        all_required_done = all(not required.get(row.step_id) or row.status == "done" for row in rows)
        if started:
            assignment.status = "completed" if all_required_done else "in_progress"
            assignment.started_at = assignment.started_at or now
            assignment.completed_at = now if all_required_done else None
        await self.session.flush()
        return current

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def suggest_from_risks(self, workspace_id: str) -> list[SuggestedQuestDraft]:
        """Quest drafts for the most severe team skill risks."""
        skill_map = await self.skill_map.get_workspace_skill_map(workspace_id)
        skill_names = {skill.skill_id: skill.name for skill in skill_map.skills}
        risks = [(team, risk) for team in skill_map.teams for risk in team.risks]
        risks.sort(key=lambda pair: SEVERITY_WEIGHT.get(pair[1].severity, 0), reverse=True)

        drafts = []
        for team, risk in risks[:MAX_SUGGESTED_QUESTS]:
            skills = [NamedRef(id=skill_id, name=skill_names.get(skill_id, "Skill")) for skill_id in risk.affected_skills]
            drafts.append(
                SuggestedQuestDraft(
                    title=f"Quest: reduce risk for {skills[0].name if skills else 'skill'}",
                    description=risk.description,
                    skills=skills,
                    team_id=team.team_id,
                    team_name=team.team_name,
                    affected_employees=[
                        NamedRef(id=employee.employee_id, name=employee.name)
                        for employee in risk.affected_employees
                    ],
                )
            )
        return drafts
