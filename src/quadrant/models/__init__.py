"""ORM models."""

from quadrant.models.assessment import (
    AssessmentCycle,
    AssessmentCycleParticipant,
    AssessmentCycleTeam,
    SkillAssessment,
)
from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, new_id
from quadrant.models.decisions import Notification, TalentDecision
from quadrant.models.manager import (
    DevelopmentGoal,
    DevelopmentGoalCheckin,
    FeedbackResponse,
    FeedbackSurvey,
    MeetingAgenda,
    MeetingAgendaItem,
    OneOnOne,
    QuarterlyReport,
)
from quadrant.models.moves import MoveScenario, MoveScenarioAction
from quadrant.models.people import (
    Artifact,
    ArtifactAssignee,
    ArtifactSkill,
    Employee,
    EmployeeSkill,
    Skill,
    Track,
    TrackLevel,
)
from quadrant.models.pilot import (
    PilotRun,
    PilotRunNote,
    PilotRunParticipant,
    PilotRunStep,
    PilotRunTeam,
)
from quadrant.models.quest import Quest, QuestAssignment, QuestStep, QuestStepProgress
from quadrant.models.risk import RiskCase
from quadrant.models.roles import (
    EmployeeRoleAssignment,
    EmployeeSkillRating,
    JobRole,
    JobRoleSkillRequirement,
    RoleProfile,
    RoleProfileSkillRequirement,
)
from quadrant.models.workspace import User, Workspace, WorkspaceMember

__all__ = [
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "new_id",
    # Workspace
    "User",
    "Workspace",
    "WorkspaceMember",
    # People and skills
    "Artifact",
    "ArtifactAssignee",
    "ArtifactSkill",
    "Employee",
    "EmployeeSkill",
    "Skill",
    "Track",
    "TrackLevel",
    # Roles
    "EmployeeRoleAssignment",
    "EmployeeSkillRating",
    "JobRole",
    "JobRoleSkillRequirement",
    "RoleProfile",
    "RoleProfileSkillRequirement",
    # Assessments
    "AssessmentCycle",
    "AssessmentCycleParticipant",
    "AssessmentCycleTeam",
    "SkillAssessment",
    # Pilots
    "PilotRun",
    "PilotRunNote",
    "PilotRunParticipant",
    "PilotRunStep",
    "PilotRunTeam",
    # Risk, moves, decisions
    "RiskCase",
    "MoveScenario",
    "MoveScenarioAction",
    "TalentDecision",
    "Notification",
    # Quests
    "Quest",
    "QuestAssignment",
    "QuestStep",
    "QuestStepProgress",
    # Manager workflows
    "DevelopmentGoal",
    "DevelopmentGoalCheckin",
    "FeedbackResponse",
    "FeedbackSurvey",
    "MeetingAgenda",
    "MeetingAgendaItem",
    "OneOnOne",
    "QuarterlyReport",
]
