"""Tests for talent decisions."""

import pytest
from sqlalchemy import select

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Notification, PilotRun, TalentDecision
from quadrant.services.notification_service import NotificationService
from quadrant.services.talent_decision_service import DecisionFilters, TalentDecisionService


async def _notifications(session, user_id):
    result = await session.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars())


class TestCreateDecision:
    async def test_monitor_risk_notifies_creator_once(self, session, seed):
        service = TalentDecisionService(session)
        bob = seed.employees[1]

        view = await service.create_decision(
            seed.workspace.id,
            created_by_user_id=seed.manager.id,
            employee_id=bob.id,
            type="monitor_risk",
            title="Bob is overloaded",
        )

        assert view.decision.status == "proposed"
        assert view.decision.priority == "medium"
        assert view.employee_name == "Bob"
        assert view.team_name == "Platform"
        notifications = await _notifications(session, seed.manager.id)
        assert len(notifications) == 1
        assert notifications[0].type == "risk_employee"
        assert notifications[0].title == "Employee at risk: Bob"
        assert notifications[0].entity_id == bob.id

    async def test_other_types_do_not_notify(self, session, seed):
        await TalentDecisionService(session).create_decision(
            seed.workspace.id,
            created_by_user_id=seed.manager.id,
            employee_id=seed.employees[0].id,
            type="promote",
            title="Promote Alice",
        )

        assert await _notifications(session, seed.manager.id) == []

    async def test_failed_notification_insert_keeps_the_decision(self, session, seed):
        class RejectingNotifications(NotificationService):
            async def create(self, **kwargs):
                self.session.add(Notification(workspace_id=kwargs["workspace_id"], user_id=kwargs["user_id"], type="x"))
                await self.session.flush()

        service = TalentDecisionService(session, notifications=RejectingNotifications(session))
        view = await service.create_decision(
            seed.workspace.id, seed.manager.id, seed.employees[1].id, "monitor_risk", "Bob is overloaded"
        )
        await session.commit()

        stored = await session.scalar(select(TalentDecision).where(TalentDecision.id == view.decision.id))
        assert stored is not None
        assert await _notifications(session, seed.manager.id) == []

    async def test_unknown_employee(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await TalentDecisionService(session).create_decision(
                seed.workspace.id, seed.owner.id, "missing", "promote", "x"
            )
        assert exc_info.value.code == ErrorCode.EMPLOYEE_NOT_FOUND

    async def test_pilot_source_label(self, session, seed):
        pilot = PilotRun(workspace_id=seed.workspace.id, name="GoLang backup", owner_user_id=seed.owner.id)
        session.add(pilot)
        await session.flush()

        view = await TalentDecisionService(session).create_decision(
            seed.workspace.id,
            seed.owner.id,
            seed.employees[1].id,
            "develop",
            "Pair with Alice",
            source_type="pilot",
            source_id=pilot.id,
        )

        assert view.source_label == "GoLang backup"


class TestListAndStatus:
    @pytest.fixture
    async def decisions(self, session, seed):
        service = TalentDecisionService(session)
        alice, bob, carol = seed.employees
        promote = await service.create_decision(seed.workspace.id, seed.owner.id, alice.id, "promote", "Lead")
        develop = await service.create_decision(seed.workspace.id, seed.owner.id, bob.id, "develop", "Kafka course")
        rejected = await service.create_decision(
            seed.workspace.id, seed.owner.id, carol.id, "lateral_move", "Backend", status="rejected"
        )
        return promote, develop, rejected

    async def test_only_open(self, session, seed, decisions):
        promote, develop, _ = decisions
        views = await TalentDecisionService(session).list_decisions(
            seed.workspace.id, DecisionFilters(only_open=True)
        )

        assert {view.decision.id for view in views} == {promote.decision.id, develop.decision.id}

    async def test_explicit_status_wins_over_only_open(self, session, seed, decisions):
        _, _, rejected = decisions
        views = await TalentDecisionService(session).list_decisions(
            seed.workspace.id, DecisionFilters(statuses=["rejected"], only_open=True)
        )

        assert [view.decision.id for view in views] == [rejected.decision.id]

    async def test_filter_by_type_and_employee(self, session, seed, decisions):
        service = TalentDecisionService(session)

        by_type = await service.list_decisions(seed.workspace.id, DecisionFilters(types=["develop"]))
        by_employee = await service.list_decisions(
            seed.workspace.id, DecisionFilters(employee_id=seed.employees[0].id)
        )
        by_team = await service.list_decisions(seed.workspace.id, DecisionFilters(team_id=seed.team.id))

        assert [view.employee_name for view in by_type] == ["Bob"]
        assert [view.decision.type for view in by_employee] == ["promote"]
        assert len(by_team) == 3

    async def test_update_status(self, session, seed, decisions):
        promote, _, _ = decisions
        service = TalentDecisionService(session)

        updated = await service.update_status(seed.workspace.id, promote.decision.id, "implemented")

        assert updated.decision.status == "implemented"

    async def test_update_missing(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await TalentDecisionService(session).update_status(seed.workspace.id, "missing", "approved")
        assert exc_info.value.code == ErrorCode.TALENT_DECISION_NOT_FOUND

    async def test_get_missing_returns_none(self, session, seed):
        assert await TalentDecisionService(session).get_decision(seed.workspace.id, "missing") is None
