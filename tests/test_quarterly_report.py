"""Tests for quarterly reports, metrics and the decisions CSV."""

import csv
import io
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import RiskCase, TalentDecision
from quadrant.services.quarterly_report_service import (
    CSV_HEADER,
    QuarterlyMetrics,
    QuarterlyReportService,
    decisions_csv,
    recommended_next_steps,
)
from quadrant.timeutil import QuarterlyPeriod, derive_quarter, quarter_date_range


def _decision(seed, employee, type, status, title, created_at, updated_at=None):
    return TalentDecision(
        workspace_id=seed.workspace.id,
        employee_id=employee.id,
        type=type,
        status=status,
        title=title,
        created_by_user_id=seed.owner.id,
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


@pytest.fixture
async def q2_decisions(session, seed):
    """Decisions spread around Q2 2024."""
    alice, bob, carol = seed.employees
    rows = [
        _decision(
            seed, alice, "promote", "implemented", 'Promote "Ace" to lead',
            "2024-04-02T09:00:00.000Z", "2024-05-01T09:00:00.000Z",
        ),
        _decision(seed, bob, "monitor_risk", "proposed", "Bob may leave", "2024-06-01T12:00:00.000Z"),
        _decision(seed, carol, "lateral_move", "rejected", "Move Carol to backend", "2024-05-05T08:30:00.000Z"),
        _decision(seed, carol, "develop", "approved", "Old plan", "2024-01-10T10:00:00.000Z"),
    ]
    session.add_all(rows)
    await session.flush()
    return rows


class TestPeriods:
    def test_derive_quarter(self):
        assert derive_quarter(datetime(2024, 11, 5, tzinfo=timezone.utc)) == QuarterlyPeriod(2024, 4)
        assert derive_quarter(datetime(2024, 1, 1, tzinfo=timezone.utc)).label == "Q1 2024"

    def test_quarter_date_range(self):
        start, end = quarter_date_range(2024, 1)
        assert start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_invalid_quarter(self):
        with pytest.raises(ValueError):
            quarter_date_range(2024, 5)


class TestDecisionsCsv:
    async def test_empty_quarter_is_header_only(self, session, seed):
        exported = await QuarterlyReportService(session).export_decisions_csv(seed.workspace.id, 2023, 3)

        assert exported == CSV_HEADER

    async def test_rows_are_quoted_in_creation_order(self, session, seed, q2_decisions):
        exported = await QuarterlyReportService(session).export_decisions_csv(seed.workspace.id, 2024, 2)

        lines = exported.split("\n")
        assert lines[0] == "employeeName,teamName,type,status,title,createdAt,updatedAt"
        assert len(lines) == 4
        assert lines[1] == (
            '"Alice","Platform","promote","implemented","Promote \'Ace\' to lead",'
            '"2024-04-02T09:00:00.000Z","2024-05-01T09:00:00.000Z"'
        )
        assert lines[2].startswith('"Carol","Platform","lateral_move"')
        assert lines[3].startswith('"Bob","Platform","monitor_risk"')
        assert not exported.endswith("\n")

    def test_quotes_in_names_are_escaped(self):
        decision = TalentDecision(
            type="promote",
            status="approved",
            title='Lead "core"',
            created_at="2024-04-02T09:00:00.000Z",
            updated_at="2024-04-03T09:00:00.000Z",
        )

        rendered = decisions_csv([(decision, 'Ann "AJ" Smith', 'The "A" team')])

        header, row = list(csv.reader(io.StringIO(rendered)))
        assert header == CSV_HEADER.split(",")
        assert row[:5] == ['Ann "AJ" Smith', 'The "A" team', "promote", "approved", "Lead 'core'"]
        assert rendered.split("\n")[1].startswith('"Ann ""AJ"" Smith",')


class TestMetrics:
    async def test_quarter_metrics(self, session, seed, q2_decisions):
        metrics = await QuarterlyReportService(session).compute_metrics(seed.workspace.id, 2024, 2)

        assert metrics.decisions_total == 3
        assert metrics.decisions_proposed == 1
        assert metrics.decisions_rejected == 1
        assert metrics.decisions_approved == 0
        assert metrics.decisions_implemented == 1
        assert metrics.promotions_count == 1
        assert metrics.lateral_moves_count == 0
        assert metrics.employees_touched == 3
        assert metrics.employees_at_risk == 1
        assert metrics.pilots_total == 0

    def test_next_steps_fallback(self):
        steps = recommended_next_steps(QuarterlyMetrics(period=QuarterlyPeriod(2024, 2)))
        assert steps == ["Keep monitoring skills and decisions regularly."]

    def test_next_steps_for_open_work(self):
        metrics = QuarterlyMetrics(
            period=QuarterlyPeriod(2024, 2),
            decisions_total=4,
            decisions_implemented=1,
            pilots_in_progress=2,
            employees_at_risk=1,
        )
        steps = recommended_next_steps(metrics)
        assert len(steps) == 3
        assert "3 open people decisions" in steps[0]


class TestReports:
    async def test_get_or_create_is_stable(self, session, seed):
        service = QuarterlyReportService(session)

        first = await service.get_or_create(seed.workspace.id, 2024, 2)
        second = await service.get_or_create(seed.workspace.id, 2024, 2)

        assert first.report.id == second.report.id
        assert first.report.title.startswith("Q2 2024")
        assert first.report.is_locked is False

    async def test_view_lists_risks_and_wins(self, session, seed, q2_decisions):
        view = await QuarterlyReportService(session).get_or_create(seed.workspace.id, 2024, 2)

        assert [(risk.employee_name, risk.team_name) for risk in view.top_risks] == [("Bob", "Platform")]
        assert [win.description for win in view.top_wins] == ["Alice · promote"]

    async def test_top_risks_open_high_risk_cases(self, session, seed, q2_decisions):
        service = QuarterlyReportService(session)
        await service.get_or_create(seed.workspace.id, 2024, 2)
        await service.get_or_create(seed.workspace.id, 2024, 2)

        result = await session.execute(select(RiskCase).where(RiskCase.workspace_id == seed.workspace.id))
        cases = list(result.scalars())
        assert len(cases) == 1
        assert cases[0].employee_id == seed.employees[1].id
        assert cases[0].level == "high"
        assert cases[0].source == "report"

    async def test_create_or_update(self, session, seed):
        service = QuarterlyReportService(session)

        created = await service.create_or_update(seed.workspace.id, 2024, 1, notes="Draft", user_id=seed.owner.id)
        updated = await service.create_or_update(seed.workspace.id, 2024, 1, title="Board pack", lock=True)

        assert updated.report.id == created.report.id
        assert updated.report.title == "Board pack"
        assert updated.report.notes == "Draft"
        assert updated.report.is_locked is True
        assert updated.report.generated_by_user_id == seed.owner.id

    async def test_update_metadata_missing(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await QuarterlyReportService(session).update_metadata(seed.workspace.id, "missing", title="x")
        assert exc_info.value.code == ErrorCode.REPORT_NOT_FOUND
