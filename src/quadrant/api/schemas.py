"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["low", "medium", "high"]
RiskStatus = Literal["open", "monitoring", "resolved"]
Priority = Literal["low", "medium", "high"]
DecisionType = Literal["promote", "lateral_move", "role_change", "develop", "monitor_risk", "no_action"]
DecisionStatus = Literal["proposed", "approved", "implemented", "rejected"]
DecisionSource = Literal["pilot", "report", "meeting", "manual"]
StepStatus = Literal["not_started", "in_progress", "done"]
MemberRole = Literal["owner", "admin", "manager", "member"]


def ok(**data: Any) -> dict[str, Any]:
    """Success envelope."""
    return {"ok": True, **data}


class ORMModel(BaseModel):
    """Base for response models read from ORM rows and service views."""

    model_config = ConfigDict(from_attributes=True)


class NamedRefResponse(ORMModel):
    id: str
    name: str


# ============================================================================
# Error envelope
# ============================================================================


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    ok: Literal[False] = False
    error: ErrorBody


# ============================================================================
# Skill gaps
# ============================================================================


class RoleRequirementIn(BaseModel):
    skill_code: str = Field(min_length=1)
    level_required: int = Field(ge=0, le=5)
    weight: float | None = Field(default=None, ge=0)


class RoleProfileUpsert(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    is_default: bool = False
    requirements: list[RoleRequirementIn] = Field(default_factory=list)


class RoleRequirementResponse(ORMModel):
    skill_code: str
    level_required: int
    weight: float


class RoleProfileResponse(ORMModel):
    id: str
    name: str
    description: str | None = None
    is_default: bool
    requirements: list[RoleRequirementResponse] = Field(default_factory=list)
    updated_at: str


class RoleAssignmentCreate(BaseModel):
    employee_id: str
    role_profile_id: str
    is_primary: bool = True


class RoleAssignmentResponse(ORMModel):
    id: str
    employee_id: str
    role_profile_id: str
    is_primary: bool
    assigned_at: str


class SkillRatingIn(BaseModel):
    skill_code: str = Field(min_length=1)
    level: int = Field(ge=0, le=5)
    rated_at: str | None = None


class SkillRatingsUpsert(BaseModel):
    source: str = "manager"
    ratings: list[SkillRatingIn] = Field(min_length=1)


class SkillRatingResponse(ORMModel):
    id: str
    employee_id: str
    skill_code: str
    level: int
    source: str
    rated_at: str


# ============================================================================
# Risk cases
# ============================================================================


class RiskCaseResponse(ORMModel):
    id: str
    employee_id: str
    employee_name: str
    employee_role: str | None = None
    level: str
    status: str
    source: str
    title: str
    reason: str | None = None
    recommendation: str | None = None
    pilot_id: str | None = None
    owner_user_id: str | None = None
    detected_at: str
    updated_at: str
    resolved_at: str | None = None
    resolution_note: str | None = None


class RiskCaseCreate(BaseModel):
    employee_id: str
    level: RiskLevel
    source: str = "manual"
    title: str = Field(min_length=1)
    reason: str | None = None
    recommendation: str | None = None
    owner_user_id: str | None = None


class RiskCaseStatusUpdate(BaseModel):
    status: RiskStatus
    resolution_note: str | None = None


class AttachPilotRequest(BaseModel):
    pilot_id: str


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(ORMModel):
    id: str
    type: str
    title: str
    body: str
    entity_type: str | None = None
    entity_id: str | None = None
    url: str | None = None
    is_read: bool
    is_archived: bool
    priority: int
    created_at: str
    read_at: str | None = None
    expires_at: str | None = None


# ============================================================================
# Moves
# ============================================================================


class JobRoleRequirementIn(BaseModel):
    skill_id: str
    required_level: int = Field(ge=0, le=5)
    importance: Literal["must_have", "nice_to_have"] = "must_have"


class JobRoleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    level_band: str | None = None
    is_leadership: bool = False
    requirements: list[JobRoleRequirementIn] = Field(default_factory=list)


class JobRoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    level_band: str | None = None
    is_leadership: bool | None = None
    requirements: list[JobRoleRequirementIn] | None = None


class JobRoleRequirementResponse(ORMModel):
    skill_id: str
    required_level: int
    importance: str


class JobRoleResponse(ORMModel):
    id: str
    name: str
    description: str | None = None
    level_band: str | None = None
    is_leadership: bool
    requirements: list[JobRoleRequirementResponse] = Field(default_factory=list)


class ScenarioActionIn(BaseModel):
    type: Literal["hire", "develop", "promote", "reassign"] = "develop"
    team_id: str | None = None
    from_employee_id: str | None = None
    to_employee_id: str | None = None
    job_role_id: str | None = None
    skill_id: str | None = None
    priority: Priority = "medium"
    estimated_time_months: int | None = Field(default=None, ge=0)
    estimated_cost_hire: float | None = Field(default=None, ge=0)
    estimated_cost_develop: float | None = Field(default=None, ge=0)
    impact_on_risk: str | None = None


class ScenarioCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    actions: list[ScenarioActionIn] = Field(default_factory=list)


class ScenarioSuggestRequest(BaseModel):
    team_id: str | None = None
    cycle_id: str | None = None


class StatusUpdate(BaseModel):
    status: str


class ScenarioActionResponse(ORMModel):
    id: str
    type: str
    team_id: str | None = None
    from_employee_id: str | None = None
    to_employee_id: str | None = None
    job_role_id: str | None = None
    skill_id: str | None = None
    priority: str
    estimated_time_months: int | None = None
    estimated_cost_hire: float | None = None
    estimated_cost_develop: float | None = None
    impact_on_risk: str | None = None
    position: int


class ScenarioResponse(ORMModel):
    id: str
    title: str
    description: str | None = None
    status: str
    created_by_user_id: str | None = None
    actions: list[ScenarioActionResponse] = Field(default_factory=list)
    created_at: str
    updated_at: str


# ============================================================================
# Pilots
# ============================================================================


class PilotCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    team_ids: list[str] = Field(default_factory=list)
    origin: Literal["manual", "template"] = "manual"
    start_date: str | None = None
    end_date: str | None = None


class PilotUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: str | None = None
    target_cycle_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class PilotStepUpdate(BaseModel):
    status: StepStatus
    due_date: str | None = None


class PilotParticipantCreate(BaseModel):
    employee_id: str
    role: str | None = None


class PilotNoteCreate(BaseModel):
    title: str = Field(min_length=1)
    body: str = ""
    type: Literal["insight", "risk", "decision", "other"] = "insight"
    related_team_id: str | None = None
    related_scenario_id: str | None = None


class PilotRunResponse(ORMModel):
    id: str
    name: str
    description: str | None = None
    status: str
    owner_user_id: str
    origin: str
    target_cycle_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    created_at: str
    updated_at: str


class PilotStepResponse(ORMModel):
    id: str
    key: str
    title: str
    description: str | None = None
    order_index: int
    status: str
    due_date: str | None = None
    completed_at: str | None = None


class PilotProgressResponse(ORMModel):
    total_steps: int
    completed_steps: int
    percent: int
    late_steps_count: int


class PilotRunViewResponse(ORMModel):
    run: PilotRunResponse
    teams: list[NamedRefResponse]
    steps: list[PilotStepResponse]
    progress: PilotProgressResponse | None = None


class PilotParticipantResponse(BaseModel):
    id: str
    employee_id: str
    employee_name: str
    role: str | None = None


class PilotNoteResponse(ORMModel):
    id: str
    author_user_id: str
    type: str
    title: str
    body: str
    related_team_id: str | None = None
    related_scenario_id: str | None = None
    created_at: str


# ============================================================================
# Quests
# ============================================================================


class QuestStepIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    order: int | None = None
    required: bool = True
    related_skill_id: str | None = None
    suggested_artifacts_count: int | None = Field(default=None, ge=0)


class QuestCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    owner_employee_id: str | None = None
    related_team_id: str | None = None
    goal_type: str = "upskill"
    priority: Priority = "medium"
    status: Literal["draft", "active"] | None = None
    steps: list[QuestStepIn] = Field(default_factory=list)


class QuestAssignRequest(BaseModel):
    employee_ids: list[str]
    mentor_employee_id: str | None = None


class QuestProgressUpdate(BaseModel):
    status: StepStatus
    notes: str | None = None


class QuestResponse(ORMModel):
    id: str
    title: str
    description: str
    status: str
    owner_employee_id: str | None = None
    related_team_id: str | None = None
    goal_type: str
    priority: str
    created_at: str
    updated_at: str


class QuestStepResponse(ORMModel):
    id: str
    title: str
    description: str | None = None
    order: int
    required: bool
    related_skill_id: str | None = None
    suggested_artifacts_count: int | None = None


class QuestViewResponse(ORMModel):
    quest: QuestResponse
    steps: list[QuestStepResponse]


class QuestAssignmentResponse(ORMModel):
    id: str
    quest_id: str
    employee_id: str
    mentor_employee_id: str | None = None
    status: str
    assigned_at: str
    started_at: str | None = None
    completed_at: str | None = None


class QuestStepProgressResponse(ORMModel):
    id: str
    step_id: str
    status: str
    notes: str | None = None
    updated_at: str


class AssignmentViewResponse(ORMModel):
    assignment: QuestAssignmentResponse
    progress: list[QuestStepProgressResponse]
    quest: QuestViewResponse | None = None


# ============================================================================
# Assessments
# ============================================================================


class CycleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    team_ids: list[str] = Field(default_factory=list)


class CycleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    team_ids: list[str] | None = None


class SelfAssessmentUpdate(BaseModel):
    self_level: int = Field(ge=0, le=5)
    self_comment: str | None = None
    submit: bool = False


class ManagerAssessmentUpdate(BaseModel):
    manager_level: int = Field(ge=0, le=5)
    manager_comment: str | None = None
    finalize: bool = False


class CycleResponse(ORMModel):
    id: str
    name: str
    description: str | None = None
    status: str
    starts_at: str | None = None
    ends_at: str | None = None
    created_by_user_id: str | None = None
    created_at: str
    updated_at: str


class CycleViewResponse(ORMModel):
    cycle: CycleResponse
    team_ids: list[str]


class SkillAssessmentResponse(ORMModel):
    id: str
    employee_id: str
    skill_id: str
    self_level: int | None = None
    manager_level: int | None = None
    final_level: int | None = None
    self_comment: str | None = None
    manager_comment: str | None = None
    status: str
    updated_at: str


class ParticipantResponse(ORMModel):
    id: str
    employee_id: str
    manager_user_id: str | None = None
    self_status: str
    manager_status: str
    final_status: str


class EmployeeAssessmentsResponse(ORMModel):
    cycle: CycleViewResponse
    assessments: list[SkillAssessmentResponse]
    progress: int


class ParticipantAssessmentsResponse(ORMModel):
    participant: ParticipantResponse
    employee_name: str
    skills: list[SkillAssessmentResponse]


# ============================================================================
# Decisions
# ============================================================================


class DecisionCreate(BaseModel):
    employee_id: str
    type: DecisionType
    title: str = Field(min_length=1)
    rationale: str = ""
    source_type: DecisionSource = "manual"
    source_id: str | None = None
    status: DecisionStatus | None = None
    priority: Priority | None = None
    risks: str | None = None
    timeframe: str | None = None


class DecisionStatusUpdate(BaseModel):
    status: DecisionStatus


class DecisionResponse(ORMModel):
    id: str
    employee_id: str
    type: str
    status: str
    priority: str
    source_type: str
    source_id: str | None = None
    title: str
    rationale: str
    risks: str | None = None
    timeframe: str | None = None
    created_by_user_id: str
    created_at: str
    updated_at: str


class DecisionViewResponse(ORMModel):
    decision: DecisionResponse
    employee_name: str
    employee_role: str | None = None
    team_id: str | None = None
    team_name: str | None = None
    source_label: str | None = None


# ============================================================================
# Reports
# ============================================================================


class QuarterlyReportUpsert(BaseModel):
    year: int = Field(ge=2000, le=2100)
    quarter: int = Field(ge=1, le=4)
    title: str | None = None
    notes: str | None = None
    lock: bool | None = None


class QuarterlyReportMetaUpdate(BaseModel):
    title: str | None = None
    notes: str | None = None
    is_locked: bool | None = None


class PeriodResponse(ORMModel):
    year: int
    quarter: int
    label: str


class QuarterlyMetricsResponse(ORMModel):
    period: PeriodResponse
    pilots_total: int
    pilots_completed: int
    pilots_in_progress: int
    employees_touched: int
    employees_at_risk: int
    promotions_count: int
    lateral_moves_count: int
    decisions_total: int
    decisions_proposed: int
    decisions_approved: int
    decisions_implemented: int
    decisions_rejected: int


class QuarterlyReportResponse(ORMModel):
    id: str
    year: int
    quarter: int
    title: str
    notes: str | None = None
    is_locked: bool
    generated_at: str | None = None


class ReportRiskResponse(ORMModel):
    employee_id: str
    employee_name: str
    team_name: str | None = None
    reason: str


class ReportWinResponse(ORMModel):
    employee_id: str
    label: str
    description: str


class QuarterlyReportViewResponse(ORMModel):
    report: QuarterlyReportResponse
    period: PeriodResponse
    metrics: QuarterlyMetricsResponse
    top_risks: list[ReportRiskResponse]
    top_wins: list[ReportWinResponse]
    recommended_next_steps: list[str]


# ============================================================================
# Workspace members
# ============================================================================


class MemberCreate(BaseModel):
    user_id: str
    role: MemberRole = "member"


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class MemberResponse(BaseModel):
    user_id: str
    email: str | None = None
    name: str | None = None
    role: str
