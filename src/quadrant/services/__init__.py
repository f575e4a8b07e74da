"""Quadrant services."""

from quadrant.services.agenda_service import AgendaService
from quadrant.services.assessment_service import AssessmentService
from quadrant.services.command_center_service import CommandCenterService
from quadrant.services.manager_home_service import ManagerHomeService
from quadrant.services.moves_service import MovesService
from quadrant.services.notification_service import NotificationService
from quadrant.services.pilot_service import PilotService
from quadrant.services.quarterly_report_service import QuarterlyReportService
from quadrant.services.quest_service import QuestService
from quadrant.services.risk_case_service import RiskCaseService
from quadrant.services.skill_gap_service import SkillGapService
from quadrant.services.skill_map_service import SkillMapService
from quadrant.services.state_machine import (
    CycleStateMachine,
    InvalidTransitionError,
    PilotRunStateMachine,
    QuestStateMachine,
    ScenarioStateMachine,
)
from quadrant.services.talent_decision_service import TalentDecisionService
from quadrant.services.workspace_service import WorkspaceService

__all__ = [
    "AgendaService",
    "AssessmentService",
    "CommandCenterService",
    "ManagerHomeService",
    "MovesService",
    "NotificationService",
    "PilotService",
    "QuarterlyReportService",
    "QuestService",
    "RiskCaseService",
    "SkillGapService",
    "SkillMapService",
    "TalentDecisionService",
    "WorkspaceService",
    "CycleStateMachine",
    "InvalidTransitionError",
    "PilotRunStateMachine",
    "QuestStateMachine",
    "ScenarioStateMachine",
]
