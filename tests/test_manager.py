"""Tests for the manager agenda, command center and home page."""

from datetime import datetime, timezone

import pytest

from quadrant.config import AgendaPolicy
from quadrant.models import OneOnOne, PilotRun, PilotRunParticipant, PilotRunStep, TalentDecision
from quadrant.services.agenda_service import AgendaService
from quadrant.services.command_center_service import CommandCenterService
from quadrant.services.manager_home_service import ManagerHomeService
from quadrant.services.manager_team import resolve_manager_team
from quadrant.services.risk_case_service import RiskCaseService

NOW = datetime(2024, 6, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
async def pilot(session, seed):
    """Manager-owned pilot with one overdue and one upcoming step."""
    run = PilotRun(workspace_id=seed.workspace.id, name="Bench", status="active", owner_user_id=seed.manager.id)
    session.add(run)
    await session.flush()
    session.add_all(
        [
            PilotRunStep(
                pilot_run_id=run.id, key="define_scope", title="Scope", order_index=0,
                status="in_progress", due_date="2024-06-03T09:00:00.000Z",
            ),
            PilotRunStep(
                pilot_run_id=run.id, key="import_people", title="Import", order_index=1,
                status="not_started", due_date="2024-06-05T09:00:00.000Z",
            ),
        ]
    )
    await session.flush()
    return run


class TestManagerTeam:
    async def test_resolves_managed_tracks(self, session, seed):
        team = await resolve_manager_team(session, seed.workspace.id, seed.manager.id)

        assert team.team_id == seed.team.id
        assert team.team_name == "Platform"
        assert [e.name for e in team.employees] == ["Alice", "Bob", "Carol"]

    async def test_user_without_tracks(self, session, seed):
        team = await resolve_manager_team(session, seed.workspace.id, seed.owner.id)

        assert team.tracks == []
        assert team.team_id is None
        assert team.employee_ids == []


class TestAgenda:
    async def test_every_day_present(self, session, seed, pilot):
        days = await AgendaService(session, policy=AgendaPolicy()).get_manager_agenda(
            seed.workspace.id,
            seed.manager.id,
            datetime(2024, 6, 3, tzinfo=timezone.utc),
            datetime(2024, 6, 6, tzinfo=timezone.utc),
            now=NOW,
        )

        assert [day.date for day in days] == ["2024-06-03", "2024-06-04", "2024-06-05", "2024-06-06"]
        overdue = days[0].items
        assert [(item.kind, item.priority) for item in overdue] == [("pilot_review", "high")]
        assert overdue[0].title == "Pilot Bench: Scope"
        assert [item.priority for item in days[2].items] == ["medium"]
        assert days[3].items == []

    async def test_open_decisions_land_on_their_day(self, session, seed):
        session.add(
            TalentDecision(
                workspace_id=seed.workspace.id,
                employee_id=seed.employees[0].id,
                type="promote",
                status="approved",
                priority="high",
                title="Promote Alice",
                created_by_user_id=seed.owner.id,
                created_at="2024-06-04T08:00:00.000Z",
                updated_at="2024-06-04T08:00:00.000Z",
            )
        )
        await session.flush()

        days = await AgendaService(session, policy=AgendaPolicy()).get_manager_agenda(
            seed.workspace.id,
            seed.manager.id,
            datetime(2024, 6, 4, tzinfo=timezone.utc),
            datetime(2024, 6, 4, tzinfo=timezone.utc),
            now=NOW,
        )

        [day] = days
        [item] = day.items
        assert item.kind == "decision_deadline"
        assert item.priority == "high"
        assert item.employee_name == "Alice"


class TestAgendaPolicy:
    @pytest.mark.parametrize(
        ("days_left", "expected"),
        [(-2, "high"), (0, "high"), (3, "high"), (3.01, "medium"), (14, "medium"), (14.5, "low"), (40, "low")],
    )
    def test_priority_for_days(self, days_left, expected):
        assert AgendaPolicy().priority_for_days(days_left) == expected


class TestAgendaItems:
    async def test_prioritized_list(self, session, seed, pilot):
        session.add(
            OneOnOne(
                workspace_id=seed.workspace.id,
                manager_user_id=seed.manager.id,
                employee_id=seed.employees[1].id,
                scheduled_at="2024-06-05T09:00:00.000Z",
            )
        )
        await session.flush()

        items = await AgendaService(session, policy=AgendaPolicy()).build_agenda_for_manager(
            seed.workspace.id,
            seed.manager.id,
            datetime(2024, 6, 3, tzinfo=timezone.utc),
            datetime(2024, 6, 6, tzinfo=timezone.utc),
            now=NOW,
        )

        assert [(item.kind, item.priority) for item in items] == [
            ("one_on_one", "high"),
            ("pilot_review", "medium"),
        ]
        assert items[1].title == "Add participants to pilot Bench"
        assert items[1].date == "2024-06-03T00:00:00.000Z"

    async def test_participants_item_dropped_once_staffed(self, session, seed, pilot):
        session.add(
            PilotRunParticipant(workspace_id=seed.workspace.id, pilot_run_id=pilot.id, employee_id=seed.employees[0].id)
        )
        await session.flush()

        items = await AgendaService(session, policy=AgendaPolicy()).build_agenda_for_manager(
            seed.workspace.id,
            seed.manager.id,
            datetime(2024, 6, 3, tzinfo=timezone.utc),
            datetime(2024, 6, 6, tzinfo=timezone.utc),
            now=NOW,
        )

        assert items == []


class TestCommandCenter:
    async def test_snapshot(self, session, seed, pilot):
        await RiskCaseService(session).create_case(
            seed.workspace.id,
            seed.employees[0].id,
            "high",
            "manual",
            "Single GoLang owner",
            owner_user_id=seed.manager.id,
        )

        snapshot = await CommandCenterService(session, policy=AgendaPolicy()).get_snapshot(
            seed.workspace.id, seed.manager.id, lookahead_days=3, now=NOW
        )

        assert snapshot.summary.employees_total == 3
        assert snapshot.summary.employees_at_risk == 1
        assert snapshot.summary.pilots_active == 1
        assert snapshot.summary.pilot_steps_overdue == 1
        assert [risk.employee_name for risk in snapshot.risks] == ["Alice"]
        assert [p.progress_percent for p in snapshot.pilots] == [0]
        assert [item.kind for item in snapshot.upcoming] == ["pilot_step"]
        assert [n.type for n in snapshot.notifications] == ["risk_employee"]


class TestManagerHome:
    async def test_manager_without_tracks(self, session, seed):
        home = await ManagerHomeService(session, policy=AgendaPolicy()).get_home(
            seed.workspace.id, seed.owner.id, now=NOW
        )

        assert home.summary.team_id is None
        assert home.summary.manager_name == "Olga Owner"
        assert home.summary.headcount == 0
        assert home.employees == []
        assert home.actions == []

    async def test_team_cards(self, session, seed):
        session.add(
            TalentDecision(
                workspace_id=seed.workspace.id,
                employee_id=seed.employees[1].id,
                type="monitor_risk",
                status="proposed",
                title="Bob is overloaded",
                created_by_user_id=seed.manager.id,
            )
        )
        await session.flush()

        home = await ManagerHomeService(session, policy=AgendaPolicy()).get_home(
            seed.workspace.id, seed.manager.id, now=NOW
        )

        assert home.summary.team_name == "Platform"
        assert home.summary.headcount == 3
        assert home.summary.employees_at_risk == 1
        assert home.summary.open_decisions == 1
        cards = {card.employee_name: card for card in home.employees}
        assert cards["Bob"].is_at_risk is True
        assert cards["Bob"].open_decisions_count == 1
        assert cards["Alice"].is_at_risk is False

    async def test_cards_count_own_active_pilots(self, session, seed):
        alice, bob, _ = seed.employees
        runs = [
            PilotRun(workspace_id=seed.workspace.id, name="Bench", status="active", owner_user_id=seed.manager.id),
            PilotRun(workspace_id=seed.workspace.id, name="Mentoring", status="planned", owner_user_id=seed.manager.id),
            PilotRun(workspace_id=seed.workspace.id, name="Archive", status="completed", owner_user_id=seed.manager.id),
        ]
        session.add_all(runs)
        await session.flush()
        session.add_all(
            [
                PilotRunParticipant(workspace_id=seed.workspace.id, pilot_run_id=run.id, employee_id=alice.id)
                for run in runs
            ]
            + [PilotRunParticipant(workspace_id=seed.workspace.id, pilot_run_id=runs[0].id, employee_id=bob.id)]
        )
        await session.flush()

        home = await ManagerHomeService(session, policy=AgendaPolicy()).get_home(
            seed.workspace.id, seed.manager.id, now=NOW
        )

        counts = {card.employee_name: card.in_active_pilots_count for card in home.employees}
        assert counts == {"Alice": 2, "Bob": 1, "Carol": 0}
