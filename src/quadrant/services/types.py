"""Result types produced by the analytics services."""

from __future__ import annotations

from dataclasses import dataclass, field

# Skill map


@dataclass
class SkillAssignmentRow:
    """One employee-skill assignment joined with employee and skill data."""

    employee_id: str
    employee_name: str
    employee_position: str | None
    employee_level: str
    employee_track_id: str | None
    skill_id: str
    skill_name: str
    skill_type: str
    skill_level: int


@dataclass
class KeyHolder:
    employee_id: str
    name: str
    position: str | None
    level: str
    skill_level: int


@dataclass
class SkillSummary:
    skill_id: str
    name: str
    type: str
    average_level: float
    people_count: int
    coverage: float
    bus_factor: int
    risk_level: str
    risk_score: int
    artifact_count: int
    key_holders: list[KeyHolder] = field(default_factory=list)


@dataclass
class AffectedEmployee:
    employee_id: str
    name: str
    position: str | None = None


@dataclass
class RiskItem:
    """A team or workspace level skill risk."""

    id: str
    kind: str
    severity: str
    title: str
    description: str
    metric_value: float
    metric_label: str
    team_id: str | None = None
    affected_skills: list[str] = field(default_factory=list)
    affected_employees: list[AffectedEmployee] = field(default_factory=list)


@dataclass
class DominantSkill:
    skill_id: str
    name: str
    coverage: float
    average_level: float


@dataclass
class TeamSkillProfile:
    team_id: str | None
    team_name: str
    headcount: int
    dominant_skills: list[DominantSkill] = field(default_factory=list)
    risks: list[RiskItem] = field(default_factory=list)


@dataclass
class WorkspaceSkillMap:
    workspace_id: str
    total_employees: int
    total_skills: int
    skills: list[SkillSummary]
    teams: list[TeamSkillProfile]
    generated_at: str


# Skill gaps


@dataclass
class EmployeeSkillLevel:
    """Latest rating of one skill code for one employee."""

    employee_id: str
    skill_code: str
    level: int
    source: str | None
    rated_at: str | None


@dataclass
class SkillGap:
    """Gap for one requirement; ``gap`` is None when the skill is unrated."""

    employee_id: str
    role_id: str
    skill_code: str
    skill_name: str
    required_level: int
    current_level: int | None
    gap: int | None
    importance: float
    employee_name: str | None = None


@dataclass
class NamedRef:
    id: str
    name: str


@dataclass
class RoleGaps:
    role_id: str
    gaps: list[SkillGap] = field(default_factory=list)
    skills: list[NamedRef] = field(default_factory=list)
    employees: list[NamedRef] = field(default_factory=list)


@dataclass
class TopSkillGap:
    skill_code: str
    skill_name: str
    avg_gap: float
    importance: float
    affected_employees: int


@dataclass
class SkillProfile:
    """Required vs. current levels for an employee's primary role."""

    role_id: str | None
    role_name: str | None
    skills: list[SkillGap] = field(default_factory=list)


# Moves


@dataclass
class SkillLevelGap:
    skill_id: str
    required_level: int
    current_level: int
    gap: int


@dataclass
class GapForRole:
    """Distance of one employee from a job role.

    ``aggregated_gap_score`` sums the positive gaps of must-have skills.
    """

    employee_id: str
    job_role_id: str
    skills: list[SkillLevelGap]
    aggregated_gap_score: int


@dataclass
class KeySkill:
    skill_id: str
    skill_name: str
    risk_score: int
    bus_factor: int
    owners: list[NamedRef]
    is_single_point_of_failure: bool


@dataclass
class RoleNeed:
    job_role_id: str
    job_role_name: str
    is_leadership: bool
    internal_candidates_count: int
    min_gap_score_among_candidates: int | None
    hire_required: bool
    primary_skills_for_role: list[str]


@dataclass
class TeamSummaryMetrics:
    total_risk_skills_count: int
    single_point_of_failure_count: int
    roles_without_internal_candidates_count: int
    suggested_hire_count: int
    suggested_develop_count: int


@dataclass
class TeamRiskHiringSummary:
    team_id: str
    team_name: str
    key_skills: list[KeySkill]
    roles: list[RoleNeed]
    summary_metrics: TeamSummaryMetrics


# Agenda


@dataclass
class AgendaItem:
    """One row of the manager agenda.

    ``priority`` is ``high``, ``medium`` or ``low``; ``date`` is an ISO string.
    """

    id: str
    kind: str
    title: str
    date: str
    priority: str
    source: str = "system"
    description: str | None = None
    employee_id: str | None = None
    employee_name: str | None = None
    entity_id: str | None = None
    url: str | None = None


@dataclass
class AgendaDay:
    date: str
    items: list[AgendaItem] = field(default_factory=list)


@dataclass
class TeamCounters:
    team_size: int
    employees_without_recent_one_on_one: int
    employees_without_goals: int


@dataclass
class UpcomingOneOnOne:
    id: str
    employee_id: str
    employee_name: str
    scheduled_at: str
    status: str


@dataclass
class OverdueOneOnOne:
    id: str
    employee_id: str
    employee_name: str
    scheduled_at: str
    days_overdue: int


@dataclass
class GoalSummary:
    id: str
    employee_id: str
    employee_name: str
    title: str
    target_date: str | None
    status: str


@dataclass
class CompletedGoal:
    id: str
    employee_id: str
    employee_name: str
    title: str
    completed_at: str


@dataclass
class CriticalSkill:
    skill_code: str
    skill_name: str
    avg_gap: float
    affected_employees: int


@dataclass
class EmployeeGapHighlight:
    employee_id: str
    employee_name: str
    top_skill_name: str
    gap: int


@dataclass
class SurveyProgress:
    survey_id: str
    title: str
    due_date: str | None
    response_rate: float | None


@dataclass
class AgendaSnapshot:
    """Denormalized view of a manager's week; rebuilt on every request."""

    manager_user_id: str
    workspace_id: str
    period_start: str
    period_end: str
    team: TeamCounters
    upcoming_one_on_ones: list[UpcomingOneOnOne] = field(default_factory=list)
    overdue_one_on_ones: list[OverdueOneOnOne] = field(default_factory=list)
    active_goals: list[GoalSummary] = field(default_factory=list)
    completed_goals: list[CompletedGoal] = field(default_factory=list)
    critical_skills: list[CriticalSkill] = field(default_factory=list)
    employees_with_high_gap: list[EmployeeGapHighlight] = field(default_factory=list)
    active_surveys: list[SurveyProgress] = field(default_factory=list)


# Command center


@dataclass
class CommandCenterCounters:
    employees_total: int
    employees_at_risk: int
    pilots_active: int
    pilots_from_templates: int
    pilot_steps_overdue: int


@dataclass
class UpcomingItem:
    id: str
    kind: str
    title: str
    due_date: str
    employee_id: str | None = None
    employee_name: str | None = None
    url: str | None = None


@dataclass
class RiskHighlight:
    case_id: str
    employee_id: str
    employee_name: str
    level: str
    status: str
    title: str
    detected_at: str
    url: str


@dataclass
class PilotHighlight:
    pilot_id: str
    title: str
    status: str
    progress_percent: int | None
    is_from_template: bool
    url: str
    end_date: str | None = None


@dataclass
class NotificationPreview:
    id: str
    type: str
    title: str
    created_at: str
    is_read: bool
    url: str | None = None


@dataclass
class CommandCenterSnapshot:
    summary: CommandCenterCounters
    upcoming: list[UpcomingItem] = field(default_factory=list)
    risks: list[RiskHighlight] = field(default_factory=list)
    pilots: list[PilotHighlight] = field(default_factory=list)
    notifications: list[NotificationPreview] = field(default_factory=list)


# Manager home


@dataclass
class HomeSummary:
    manager_user_id: str
    manager_name: str
    team_id: str | None
    team_name: str | None
    headcount: int = 0
    pilots_total: int = 0
    pilots_active: int = 0
    pilots_completed: int = 0
    employees_at_risk: int = 0
    open_decisions: int = 0
    upcoming_meetings_count: int = 0


@dataclass
class EmployeeCard:
    employee_id: str
    employee_name: str
    role_title: str | None
    team_name: str | None
    is_at_risk: bool
    is_high_potential: bool
    in_active_pilots_count: int
    open_decisions_count: int


@dataclass
class HomeMeeting:
    meeting_id: str
    title: str
    date: str
    type: str


@dataclass
class ActionItem:
    """A prioritized to-do shown on the manager home page."""

    id: str
    kind: str
    priority: str
    label: str
    description: str | None = None
    employee_id: str | None = None
    entity_id: str | None = None
    url: str | None = None


@dataclass
class ManagerHome:
    summary: HomeSummary
    employees: list[EmployeeCard] = field(default_factory=list)
    upcoming_meetings: list[HomeMeeting] = field(default_factory=list)
    actions: list[ActionItem] = field(default_factory=list)
