"""Tests for the risk case store and notifications."""

import pytest
from sqlalchemy import func, select

from quadrant.capabilities import SchemaCapabilities
from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Notification, PilotRun, RiskCase
from quadrant.services.notification_service import NotificationService
from quadrant.services.risk_case_service import RiskCaseService


async def _notifications(session, user_id: str) -> list[Notification]:
    result = await session.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars())


async def _case_count(session, workspace_id: str) -> int:
    return await session.scalar(
        select(func.count()).select_from(RiskCase).where(RiskCase.workspace_id == workspace_id)
    )


class TestEnsureCase:
    async def test_idempotent_for_same_level(self, session, seed):
        service = RiskCaseService(session)
        alice = seed.employees[0]

        first = await service.ensure_case(seed.workspace.id, alice.id, "medium", "manual", "Burnout signs")
        second = await service.ensure_case(seed.workspace.id, alice.id, "medium", "manual", "Burnout signs")

        assert first.id == second.id
        assert await _case_count(session, seed.workspace.id) == 1

    async def test_higher_level_upgrades_in_place(self, session, seed):
        service = RiskCaseService(session)
        alice = seed.employees[0]

        low = await service.ensure_case(seed.workspace.id, alice.id, "low", "manual", "Watch")
        high = await service.ensure_case(
            seed.workspace.id, alice.id, "high", "report", "Watch", reason="Offer from a competitor"
        )

        assert high.id == low.id
        assert high.level == "high"
        assert high.source == "report"
        assert high.reason == "Offer from a competitor"
        assert await _case_count(session, seed.workspace.id) == 1

    async def test_lower_level_returns_existing(self, session, seed):
        service = RiskCaseService(session)
        alice = seed.employees[0]

        high = await service.ensure_case(seed.workspace.id, alice.id, "high", "manual", "Flight risk")
        medium = await service.ensure_case(seed.workspace.id, alice.id, "medium", "manual", "Other")

        assert medium.id == high.id
        assert medium.level == "high"
        assert medium.title == "Flight risk"

    async def test_resolved_case_is_not_reused(self, session, seed):
        service = RiskCaseService(session)
        alice = seed.employees[0]

        first = await service.ensure_case(seed.workspace.id, alice.id, "medium", "manual", "Watch")
        await service.update_status(seed.workspace.id, first.id, "resolved")
        second = await service.ensure_case(seed.workspace.id, alice.id, "medium", "manual", "Watch")

        assert second.id != first.id


class TestCreateCase:
    async def test_high_case_notifies_workspace_owner_once(self, session, seed):
        service = RiskCaseService(session)

        case = await service.create_case(
            seed.workspace.id, seed.employees[0].id, "high", "manual", "Single GoLang expert"
        )

        notifications = await _notifications(session, seed.owner.id)
        assert case.owner_user_id == seed.owner.id
        assert len(notifications) == 1
        assert notifications[0].type == "risk_employee"
        assert notifications[0].title == "High-risk: Alice"

    async def test_high_case_notifies_explicit_owner(self, session, seed):
        await RiskCaseService(session).create_case(
            seed.workspace.id,
            seed.employees[0].id,
            "high",
            "manual",
            "Single GoLang expert",
            owner_user_id=seed.manager.id,
        )

        assert len(await _notifications(session, seed.manager.id)) == 1
        assert await _notifications(session, seed.owner.id) == []

    async def test_medium_case_does_not_notify(self, session, seed):
        await RiskCaseService(session).create_case(seed.workspace.id, seed.employees[0].id, "medium", "manual", "x")

        assert await _notifications(session, seed.owner.id) == []

    async def test_unknown_employee(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await RiskCaseService(session).create_case(seed.workspace.id, "missing", "high", "manual", "x")
        assert exc_info.value.code == ErrorCode.EMPLOYEE_NOT_FOUND

    async def test_failed_notification_insert_keeps_the_case(self, session, seed):
        class RejectingNotifications(NotificationService):
            async def create(self, **kwargs):
                self.session.add(
                    Notification(
                        workspace_id=kwargs["workspace_id"],
                        user_id=kwargs["user_id"],
                        type=kwargs["type"],
                        title=None,
                    )
                )
                await self.session.flush()

        service = RiskCaseService(session, notifications=RejectingNotifications(session))
        case = await service.create_case(seed.workspace.id, seed.employees[0].id, "high", "manual", "x")
        await session.commit()

        assert case.status == "open"
        assert await _case_count(session, seed.workspace.id) == 1
        assert await _notifications(session, seed.owner.id) == []


class TestStatusAndPilots:
    async def test_resolve_stamps_and_notifies(self, session, seed):
        service = RiskCaseService(session)
        case = await service.create_case(seed.workspace.id, seed.employees[1].id, "medium", "manual", "Workload")

        resolved = await service.update_status(seed.workspace.id, case.id, "resolved", resolution_note="Rebalanced")

        assert resolved.status == "resolved"
        assert resolved.resolved_at is not None
        assert resolved.resolution_note == "Rebalanced"
        types = [n.type for n in await _notifications(session, seed.owner.id)]
        assert types == ["risk_case_resolved"]

        reopened = await service.update_status(seed.workspace.id, case.id, "monitoring")
        assert reopened.resolved_at is None

    async def test_attach_pilot(self, session, seed):
        service = RiskCaseService(session)
        case = await service.create_case(seed.workspace.id, seed.employees[1].id, "low", "manual", "x")
        pilot = PilotRun(workspace_id=seed.workspace.id, name="Pilot", status="draft", owner_user_id=seed.owner.id)
        session.add(pilot)
        await session.flush()

        attached = await service.attach_pilot(seed.workspace.id, case.id, pilot.id)

        assert attached.pilot_id == pilot.id
        with pytest.raises(ServiceError) as exc_info:
            await service.attach_pilot(seed.workspace.id, case.id, "missing")
        assert exc_info.value.code == ErrorCode.PILOT_NOT_FOUND

    async def test_update_missing_case(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await RiskCaseService(session).update_status(seed.workspace.id, "missing", "resolved")
        assert exc_info.value.code == ErrorCode.RISK_CASE_NOT_FOUND


class TestListing:
    async def test_list_filters_and_counts(self, session, seed):
        service = RiskCaseService(session)
        alice, bob, carol = seed.employees
        await service.create_case(seed.workspace.id, alice.id, "high", "manual", "GoLang bus factor")
        await service.create_case(seed.workspace.id, bob.id, "medium", "manual", "Workload")
        resolved = await service.create_case(seed.workspace.id, carol.id, "low", "manual", "Onboarding")
        await service.update_status(seed.workspace.id, resolved.id, "resolved")

        page = await service.list_cases(seed.workspace.id)
        assert page.total == 2
        assert page.open_count == 2
        assert page.high_count == 1

        high_only = await service.list_cases(seed.workspace.id, levels=["high"])
        assert [item.employee_name for item in high_only.items] == ["Alice"]

        searched = await service.list_cases(seed.workspace.id, search="WORKLOAD")
        assert [item.employee_name for item in searched.items] == ["Bob"]

        closed = await service.list_cases(seed.workspace.id, statuses=["resolved"])
        assert [item.id for item in closed.items] == [resolved.id]

    async def test_cases_for_employee(self, session, seed):
        service = RiskCaseService(session)
        alice = seed.employees[0]
        case = await service.create_case(seed.workspace.id, alice.id, "low", "manual", "x")
        await service.update_status(seed.workspace.id, case.id, "resolved")

        assert len(await service.get_cases_for_employee(seed.workspace.id, alice.id)) == 1
        assert await service.get_cases_for_employee(seed.workspace.id, alice.id, only_open=True) == []


class TestUnavailable:
    @pytest.fixture
    def disabled(self):
        return SchemaCapabilities(
            tables=SchemaCapabilities.all_enabled().tables,
            disabled_features=frozenset({"risk_center"}),
        )

    async def test_reads_degrade_to_empty(self, session, seed, disabled):
        service = RiskCaseService(session, capabilities=disabled)

        page = await service.list_cases(seed.workspace.id)
        assert page.items == []
        assert page.total == 0
        assert await service.find_active_case(seed.workspace.id, seed.employees[0].id) is None
        assert await service.get_cases_for_employee(seed.workspace.id, seed.employees[0].id) == []

    async def test_writes_raise(self, session, seed, disabled):
        service = RiskCaseService(session, capabilities=disabled)

        with pytest.raises(ServiceError) as exc_info:
            await service.ensure_case(seed.workspace.id, seed.employees[0].id, "high", "manual", "x")
        assert exc_info.value.code == ErrorCode.RISK_CASES_NOT_AVAILABLE
        assert exc_info.value.http_status == 503


class TestNotifications:
    async def test_listing_order_and_counts(self, session, seed):
        service = NotificationService(session)
        ws, user = seed.workspace.id, seed.manager.id
        low = await service.create(ws, user, "info", "Low", priority=1)
        high = await service.create(ws, user, "info", "High", priority=3)
        await service.create(ws, user, "info", "Expired", expires_at="2000-01-01T00:00:00.000Z")

        page = await service.list_for_user(ws, user)
        assert [n.id for n in page.items] == [high.id, low.id]
        assert page.total == 2
        assert page.unread_count == 2

        await service.mark_read(ws, user, high.id)
        # expired rows still count as unread but are never listed
        assert await service.count_unread(ws, user) == 2
        unread = await service.list_for_user(ws, user, only_unread=True)
        assert [n.id for n in unread.items] == [low.id]

        await service.archive(ws, user, low.id)
        page = await service.list_for_user(ws, user)
        assert [n.id for n in page.items] == [high.id]

    async def test_mark_all_read(self, session, seed):
        service = NotificationService(session)
        ws, user = seed.workspace.id, seed.manager.id
        await service.create(ws, user, "info", "One")
        await service.create(ws, user, "info", "Two")

        await service.mark_all_read(ws, user)

        assert await service.count_unread(ws, user) == 0

    async def test_create_if_absent(self, session, seed):
        service = NotificationService(session)
        ws, user = seed.workspace.id, seed.manager.id

        first = await service.create_if_absent(ws, user, "feedback_due", "Survey", entity_id="s1")
        duplicate = await service.create_if_absent(ws, user, "feedback_due", "Survey", entity_id="s1")

        assert first is not None
        assert duplicate is None

    async def test_mark_read_missing(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await NotificationService(session).mark_read(seed.workspace.id, seed.manager.id, "missing")
        assert exc_info.value.code == ErrorCode.NOTIFICATION_NOT_FOUND
