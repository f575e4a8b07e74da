"""Manager to team resolution."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.models import Employee, Track


@dataclass
class ManagerTeam:
    """Tracks managed by a user and the employees on them."""

    manager_user_id: str
    tracks: list[Track] = field(default_factory=list)
    employees: list[Employee] = field(default_factory=list)

    @property
    def team_ids(self) -> list[str]:
        return [track.id for track in self.tracks]

    @property
    def team_id(self) -> str | None:
        return self.tracks[0].id if self.tracks else None

    @property
    def team_name(self) -> str | None:
        if not self.tracks:
            return None
        return ", ".join(track.name for track in self.tracks)

    @property
    def employee_ids(self) -> list[str]:
        return [employee.id for employee in self.employees]


async def resolve_manager_team(
    session: AsyncSession,
    workspace_id: str,
    manager_user_id: str,
) -> ManagerTeam:
    """Every track whose ``manager_user_id`` is the user, with its members.

    A user who manages no track gets an empty team.
    """
    result = await session.execute(
        select(Track)
        .where(Track.workspace_id == workspace_id, Track.manager_user_id == manager_user_id)
        .order_by(Track.created_at, Track.id)
    )
    tracks = list(result.scalars())
    if not tracks:
        return ManagerTeam(manager_user_id=manager_user_id)

    result = await session.execute(
        select(Employee)
        .where(
            Employee.workspace_id == workspace_id,
            Employee.primary_track_id.in_([track.id for track in tracks]),
        )
        .order_by(Employee.name, Employee.id)
    )
    return ManagerTeam(
        manager_user_id=manager_user_id,
        tracks=tracks,
        employees=list(result.scalars()),
    )
