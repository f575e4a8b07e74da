"""Skill gap engine.

Compares the latest skill ratings of employees with the requirements of their
role profiles. Nothing is cached; every call recomputes from live rows.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import (
    Employee,
    EmployeeRoleAssignment,
    EmployeeSkillRating,
    RoleProfile,
    RoleProfileSkillRequirement,
    Skill,
)
from quadrant.services.types import (
    EmployeeSkillLevel,
    NamedRef,
    RoleGaps,
    SkillGap,
    SkillProfile,
    TopSkillGap,
)
from quadrant.timeutil import now_iso

# Average gap reported for a skill nobody has been rated on
UNRATED_AVG_GAP = -999


@dataclass
class RequirementInput:
    skill_code: str
    level_required: int
    weight: float | None = None


@dataclass
class RatingInput:
    skill_code: str
    level: int
    rated_at: str | None = None


@dataclass
class EmployeeSkillGap:
    primary_role: RoleProfile | None
    skills: list[SkillGap]


def compute_gap(current_level: int | None, required_level: int) -> int | None:
    """current - required, or None when there is no rating."""
    if current_level is None:
        return None
    return current_level - required_level


class SkillGapService:
    """Role profiles, skill ratings and gap computation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Role profiles
    # ------------------------------------------------------------------

    async def list_role_profiles(self, workspace_id: str) -> list[RoleProfile]:
        result = await self.session.execute(
            select(RoleProfile)
            .where(RoleProfile.workspace_id == workspace_id)
            .options(selectinload(RoleProfile.requirements))
            .order_by(RoleProfile.created_at)
        )
        return list(result.scalars())

    async def get_role_profile(self, workspace_id: str, role_id: str) -> RoleProfile | None:
        result = await self.session.execute(
            select(RoleProfile)
            .where(RoleProfile.id == role_id, RoleProfile.workspace_id == workspace_id)
            .options(selectinload(RoleProfile.requirements))
        )
        return result.scalar_one_or_none()

    async def upsert_role_profile(
        self,
        workspace_id: str,
        name: str,
        requirements: list[RequirementInput],
        role_id: str | None = None,
        description: str | None = None,
        is_default: bool = False,
    ) -> RoleProfile:
        """Create or update a role profile, replacing its requirements.

        Marking a profile as default clears the flag on every other profile
        in the workspace.
        """
        profile = await self.get_role_profile(workspace_id, role_id) if role_id else None
        if profile is None:
            profile = RoleProfile(workspace_id=workspace_id, name=name)
            if role_id:
                profile.id = role_id
            profile.requirements = []
            self.session.add(profile)
        profile.name = name
        profile.description = description
        profile.is_default = bool(is_default)
        profile.updated_at = now_iso()

        profile.requirements.clear()
        for req in requirements:
            profile.requirements.append(
                RoleProfileSkillRequirement(
                    skill_code=req.skill_code,
                    level_required=req.level_required,
                    weight=req.weight if req.weight is not None else 1,
                )
            )
        await self.session.flush()

        if is_default:
            await self.session.execute(
                update(RoleProfile)
                .where(RoleProfile.workspace_id == workspace_id, RoleProfile.id != profile.id)
                .values(is_default=False, updated_at=now_iso())
            )
        return profile

    async def assign_role_to_employee(
        self,
        workspace_id: str,
        employee_id: str,
        role_profile_id: str,
        is_primary: bool = True,
    ) -> EmployeeRoleAssignment:
        """Assign a role profile; a primary assignment demotes the others.

        Raises:
            ServiceError: EMPLOYEE_NOT_FOUND or ROLE_PROFILE_NOT_FOUND.
        """
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.EMPLOYEE_NOT_FOUND)
        role = await self.get_role_profile(workspace_id, role_profile_id)
        if role is None:
            raise ServiceError(ErrorCode.ROLE_PROFILE_NOT_FOUND)

        timestamp = now_iso()
        if is_primary:
            await self.session.execute(
                update(EmployeeRoleAssignment)
                .where(
                    EmployeeRoleAssignment.workspace_id == workspace_id,
                    EmployeeRoleAssignment.employee_id == employee_id,
                )
                .values(is_primary=False)
                .execution_options(synchronize_session="fetch")
            )

        result = await self.session.execute(
            select(EmployeeRoleAssignment).where(
                EmployeeRoleAssignment.workspace_id == workspace_id,
                EmployeeRoleAssignment.employee_id == employee_id,
                EmployeeRoleAssignment.role_profile_id == role_profile_id,
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            assignment = EmployeeRoleAssignment(
                workspace_id=workspace_id,
                employee_id=employee_id,
                role_profile_id=role_profile_id,
            )
            self.session.add(assignment)
        assignment.is_primary = is_primary
        assignment.assigned_at = timestamp
        await self.session.flush()
        return assignment

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    async def upsert_skill_ratings(
        self,
        workspace_id: str,
        employee_id: str,
        source: str,
        ratings: list[RatingInput],
    ) -> list[EmployeeSkillRating]:
        """Store ratings, one row per (employee, skill code, source)."""
        timestamp = now_iso()
        saved: list[EmployeeSkillRating] = []
        for rating in ratings:
            result = await self.session.execute(
                select(EmployeeSkillRating).where(
                    EmployeeSkillRating.workspace_id == workspace_id,
                    EmployeeSkillRating.employee_id == employee_id,
                    EmployeeSkillRating.skill_code == rating.skill_code,
                    EmployeeSkillRating.source == source,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = EmployeeSkillRating(
                    workspace_id=workspace_id,
                    employee_id=employee_id,
                    skill_code=rating.skill_code,
                    source=source,
                )
                self.session.add(row)
            row.level = rating.level
            row.rated_at = rating.rated_at or timestamp
            saved.append(row)
        await self.session.flush()
        return saved

    async def get_employee_skill_levels(
        self,
        workspace_id: str,
        employee_ids: list[str],
    ) -> list[EmployeeSkillLevel]:
        """Latest rating per (employee, skill code) across all sources."""
        if not employee_ids:
            return []
        result = await self.session.execute(
            select(EmployeeSkillRating)
            .where(
                EmployeeSkillRating.workspace_id == workspace_id,
                EmployeeSkillRating.employee_id.in_(employee_ids),
            )
            .order_by(EmployeeSkillRating.rated_at.desc())
        )
        latest: dict[tuple[str, str], EmployeeSkillLevel] = {}
        for row in result.scalars():
            key = (row.employee_id, row.skill_code)
            if key not in latest:
                latest[key] = EmployeeSkillLevel(
                    employee_id=row.employee_id,
                    skill_code=row.skill_code,
                    level=row.level,
                    source=row.source,
                    rated_at=row.rated_at,
                )
        return list(latest.values())

    # ------------------------------------------------------------------
    # Gaps
    # ------------------------------------------------------------------

    async def _requirements(self, workspace_id: str, role_id: str) -> list[RoleProfileSkillRequirement]:
        result = await self.session.execute(
            select(RoleProfileSkillRequirement)
            .join(RoleProfile, RoleProfileSkillRequirement.role_profile_id == RoleProfile.id)
            .where(
                RoleProfileSkillRequirement.role_profile_id == role_id,
                RoleProfile.workspace_id == workspace_id,
            )
            .order_by(RoleProfileSkillRequirement.created_at, RoleProfileSkillRequirement.id)
        )
        return list(result.scalars())

    async def _skill_name_map(self, workspace_id: str) -> dict[str, str]:
        """Resolve a skill code that is either a skill id or a skill name."""
        result = await self.session.execute(
            select(Skill.id, Skill.name).where(Skill.workspace_id == workspace_id)
        )
        names: dict[str, str] = {}
        for skill_id, name in result.all():
            label = name or skill_id
            names[skill_id] = label
            names[label] = label
        return names

    async def _primary_assignment(
        self,
        workspace_id: str,
        employee_id: str,
    ) -> EmployeeRoleAssignment | None:
        result = await self.session.execute(
            select(EmployeeRoleAssignment)
            .where(
                EmployeeRoleAssignment.workspace_id == workspace_id,
                EmployeeRoleAssignment.employee_id == employee_id,
            )
            .order_by(EmployeeRoleAssignment.assigned_at.desc())
        )
        assignments = list(result.scalars())
        for assignment in assignments:
            if assignment.is_primary:
                return assignment
        return assignments[0] if assignments else None

    def _gaps_for_employee(
        self,
        employee_id: str,
        requirements: list[RoleProfileSkillRequirement],
        levels: dict[tuple[str, str], EmployeeSkillLevel],
        names: dict[str, str],
        employee_name: str | None = None,
    ) -> list[SkillGap]:
        gaps = []
        for req in requirements:
            rating = levels.get((employee_id, req.skill_code))
            current = rating.level if rating else None
            gaps.append(
                SkillGap(
                    employee_id=employee_id,
                    employee_name=employee_name,
                    role_id=req.role_profile_id,
                    skill_code=req.skill_code,
                    skill_name=names.get(req.skill_code, req.skill_code),
                    required_level=req.level_required,
                    current_level=current,
                    gap=compute_gap(current, req.level_required),
                    importance=req.weight if req.weight is not None else 1,
                )
            )
        return gaps

    async def _levels_by_key(
        self,
        workspace_id: str,
        employee_ids: list[str],
    ) -> dict[tuple[str, str], EmployeeSkillLevel]:
        levels = await self.get_employee_skill_levels(workspace_id, employee_ids)
        return {(level.employee_id, level.skill_code): level for level in levels}

    async def get_skill_gap_for_employee(
        self,
        workspace_id: str,
        employee_id: str,
    ) -> EmployeeSkillGap:
        """Gaps against the employee's primary role (or newest assignment)."""
        assignment = await self._primary_assignment(workspace_id, employee_id)
        if assignment is None:
            return EmployeeSkillGap(primary_role=None, skills=[])
        role = await self.get_role_profile(workspace_id, assignment.role_profile_id)
        if role is None:
            return EmployeeSkillGap(primary_role=None, skills=[])
        requirements = await self._requirements(workspace_id, role.id)
        if not requirements:
            return EmployeeSkillGap(primary_role=role, skills=[])

        levels = await self._levels_by_key(workspace_id, [employee_id])
        names = await self._skill_name_map(workspace_id)
        return EmployeeSkillGap(
            primary_role=role,
            skills=self._gaps_for_employee(employee_id, requirements, levels, names),
        )

    async def compute_gaps_for_role(
        self,
        workspace_id: str,
        role_id: str,
        employee_ids: list[str] | None = None,
    ) -> RoleGaps:
        """Gaps of every employee assigned to a role (or the given employees)."""
        requirements = await self._requirements(workspace_id, role_id)
        if not requirements:
            return RoleGaps(role_id=role_id)

        names = await self._skill_name_map(workspace_id)
        if not employee_ids:
            result = await self.session.execute(
                select(EmployeeRoleAssignment.employee_id).where(
                    EmployeeRoleAssignment.workspace_id == workspace_id,
                    EmployeeRoleAssignment.role_profile_id == role_id,
                )
            )
            employee_ids = list(dict.fromkeys(result.scalars()))

        levels = await self._levels_by_key(workspace_id, employee_ids)
        employees: list[NamedRef] = []
        if employee_ids:
            result = await self.session.execute(
                select(Employee.id, Employee.name).where(
                    Employee.workspace_id == workspace_id,
                    Employee.id.in_(employee_ids),
                )
            )
            employees = [NamedRef(id=emp_id, name=name) for emp_id, name in result.all()]
        employee_names = {emp.id: emp.name for emp in employees}

        gaps: list[SkillGap] = []
        for req in requirements:
            for employee_id in employee_ids:
                gaps.extend(
                    self._gaps_for_employee(
                        employee_id,
                        [req],
                        levels,
                        names,
                        employee_name=employee_names.get(employee_id),
                    )
                )

        skill_codes = list(dict.fromkeys(req.skill_code for req in requirements))
        return RoleGaps(
            role_id=role_id,
            gaps=gaps,
            skills=[NamedRef(id=code, name=names.get(code, code)) for code in skill_codes],
            employees=employees,
        )

    async def compute_top_gaps_for_role(
        self,
        workspace_id: str,
        role_id: str,
        limit: int = 5,
    ) -> list[TopSkillGap]:
        """Skills with the biggest gaps for a role.

        Ordered by importance desc, then average gap asc, then affected
        employees desc. Unrated employees count as affected; a skill nobody
        is rated on reports an average gap of -999.
        """
        role_gaps = await self.compute_gaps_for_role(workspace_id, role_id)

        grouped: dict[str, dict] = {}
        for gap in role_gaps.gaps:
            entry = grouped.setdefault(
                gap.skill_code,
                {"total": 0, "count": 0, "affected": 0, "importance": gap.importance, "name": gap.skill_name},
            )
            if gap.gap is not None:
                entry["total"] += gap.gap
                entry["count"] += 1
                if gap.gap < 0:
                    entry["affected"] += 1
            else:
                entry["affected"] += 1
            entry["importance"] = gap.importance

        top = [
            TopSkillGap(
                skill_code=code,
                skill_name=entry["name"] or code,
                avg_gap=entry["total"] / entry["count"] if entry["count"] else UNRATED_AVG_GAP,
                importance=entry["importance"],
                affected_employees=entry["affected"],
            )
            for code, entry in grouped.items()
        ]
        top.sort(key=lambda g: (-g.importance, g.avg_gap, -g.affected_employees))
        return top[:limit]

    async def compute_skill_profile_for_employee(
        self,
        workspace_id: str,
        employee_id: str,
    ) -> SkillProfile:
        assignment = await self._primary_assignment(workspace_id, employee_id)
        if assignment is None:
            return SkillProfile(role_id=None, role_name=None)
        role = await self.get_role_profile(workspace_id, assignment.role_profile_id)
        requirements = await self._requirements(workspace_id, assignment.role_profile_id)
        levels = await self._levels_by_key(workspace_id, [employee_id])
        names = await self._skill_name_map(workspace_id)
        return SkillProfile(
            role_id=assignment.role_profile_id,
            role_name=role.name if role else None,
            skills=self._gaps_for_employee(employee_id, requirements, levels, names),
        )
