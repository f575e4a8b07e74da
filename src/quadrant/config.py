"""Configuration management for Quadrant."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class MoveHeuristics:
    """Cost and time heuristics used by the move scenario generator.

    The defaults are illustrative planning figures, not validated business
    data. Every field can be overridden from the environment.

    Attributes:
        base_hire_cost: Cost of one external hire before multipliers.
        leadership_multiplier: Applied to the hire cost for leadership roles.
        high_priority_multiplier: Applied to the hire cost when the hire is
            urgent (leadership role or the team has a single point of failure).
        training_cost_per_month: Development cost per month of upskilling.
        internal_candidate_gap_threshold: Highest aggregated must-have gap
            score at which a team member still counts as an internal candidate.
        short_gap_max: Gap scores up to this value are closed in
            ``short_gap_months``.
        short_gap_months: Development time for a short gap.
        long_gap_max: Gap scores up to this value are closed in
            ``long_gap_months``; larger gaps are not estimable.
        long_gap_months: Development time for a long gap.
        key_skill_max_owners: A skill held by at most this many team members
            is a key risk skill.
        single_owner_risk_score: Risk score of a skill with one owner.
        dual_owner_risk_score: Risk score of a skill with more owners (up to
            ``key_skill_max_owners``).
        max_candidates_per_role: Internal candidates turned into develop or
            promote actions per role.
        max_teams_per_scenario: Teams considered when no team is given.
    """

    base_hire_cost: float = 50000
    leadership_multiplier: float = 1.5
    high_priority_multiplier: float = 1.2
    training_cost_per_month: float = 3000
    internal_candidate_gap_threshold: int = 6
    short_gap_max: int = 3
    short_gap_months: int = 6
    long_gap_max: int = 7
    long_gap_months: int = 12
    key_skill_max_owners: int = 2
    single_owner_risk_score: int = 90
    dual_owner_risk_score: int = 65
    max_candidates_per_role: int = 2
    max_teams_per_scenario: int = 5

    def __post_init__(self) -> None:
        if self.base_hire_cost < 0:
            raise ValueError("base_hire_cost must be non-negative")
        if self.leadership_multiplier <= 0 or self.high_priority_multiplier <= 0:
            raise ValueError("cost multipliers must be positive")
        if self.training_cost_per_month < 0:
            raise ValueError("training_cost_per_month must be non-negative")
        if self.internal_candidate_gap_threshold < 0:
            raise ValueError("internal_candidate_gap_threshold must be non-negative")
        if self.short_gap_max > self.long_gap_max:
            raise ValueError("short_gap_max cannot exceed long_gap_max")
        if self.short_gap_months <= 0 or self.long_gap_months <= 0:
            raise ValueError("gap month estimates must be positive")
        if self.key_skill_max_owners < 1:
            raise ValueError("key_skill_max_owners must be at least 1")
        if self.max_candidates_per_role < 1 or self.max_teams_per_scenario < 1:
            raise ValueError("scenario limits must be at least 1")

    def hire_cost(self, is_leadership: bool, high_priority: bool) -> int:
        """Estimated cost of an external hire, rounded to a whole amount."""
        cost = self.base_hire_cost
        if is_leadership:
            cost *= self.leadership_multiplier
        if high_priority:
            cost *= self.high_priority_multiplier
        return round(cost)

    def development_months(self, gap_score: float) -> int | None:
        """Months needed to close a gap score, or None if too large."""
        if gap_score <= self.short_gap_max:
            return self.short_gap_months
        if gap_score <= self.long_gap_max:
            return self.long_gap_months
        return None

    def development_cost(self, months: int) -> float:
        """Training cost for a development period."""
        return months * self.training_cost_per_month

    @classmethod
    def from_env(cls) -> MoveHeuristics:
        """Load heuristics, letting MOVES_* variables override defaults."""
        defaults = cls()
        return cls(
            base_hire_cost=float(os.getenv("MOVES_BASE_HIRE_COST", defaults.base_hire_cost)),
            leadership_multiplier=float(
                os.getenv("MOVES_LEADERSHIP_MULTIPLIER", defaults.leadership_multiplier)
            ),
            high_priority_multiplier=float(
                os.getenv("MOVES_HIGH_PRIORITY_MULTIPLIER", defaults.high_priority_multiplier)
            ),
            training_cost_per_month=float(
                os.getenv("MOVES_TRAINING_COST_PER_MONTH", defaults.training_cost_per_month)
            ),
            internal_candidate_gap_threshold=int(
                os.getenv(
                    "MOVES_INTERNAL_CANDIDATE_GAP_THRESHOLD",
                    defaults.internal_candidate_gap_threshold,
                )
            ),
        )


@dataclass(frozen=True)
class AgendaPolicy:
    """Windows and limits used by the manager agenda and home builders.

    Attributes:
        high_priority_days: Items due within this many days are high priority.
        medium_priority_days: Items due within this many days are medium.
        max_gap_employees: Employees inspected for skill gaps per snapshot.
        recent_one_on_one_days: A 1:1 within this window counts as recent.
        completed_goal_days: Completed goals reported for this many days.
        stale_goal_days: Goals without a check-in for this long are stale.
        pilot_review_after_days: Active pilots older than this need a review.
        pilot_ending_soon_days: Pilots ending within this window need a review.
        pilot_ending_urgent_days: Ending within this window makes it urgent.
        quarter_report_lead_days: Prepare the quarterly report this close to
            the quarter end.
        pilot_completed_window_days: Completed pilots counted in summaries.
        meeting_window_days: Upcoming meetings shown on the manager home.
        meeting_notify_days: Meetings this close trigger a notification.
        default_lookahead_days: Command center lookahead when none is given.
    """

    high_priority_days: int = 3
    medium_priority_days: int = 14
    max_gap_employees: int = 20
    recent_one_on_one_days: int = 30
    completed_goal_days: int = 30
    stale_goal_days: int = 30
    pilot_review_after_days: int = 28
    pilot_ending_soon_days: int = 7
    pilot_ending_urgent_days: int = 3
    quarter_report_lead_days: int = 14
    pilot_completed_window_days: int = 84
    meeting_window_days: int = 14
    meeting_notify_days: int = 2
    default_lookahead_days: int = 7

    def __post_init__(self) -> None:
        if self.high_priority_days > self.medium_priority_days:
            raise ValueError("high_priority_days cannot exceed medium_priority_days")
        if self.pilot_ending_urgent_days > self.pilot_ending_soon_days:
            raise ValueError("pilot_ending_urgent_days cannot exceed pilot_ending_soon_days")
        if self.max_gap_employees < 0:
            raise ValueError("max_gap_employees must be non-negative")

    def priority_for_days(self, days_left: float) -> str:
        """Map days until a due date to a priority label."""
        if days_left <= self.high_priority_days:
            return "high"
        if days_left <= self.medium_priority_days:
            return "medium"
        return "low"


def _parse_features(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    app_version: str
    host: str
    port: int
    debug: bool
    log_level: str = "INFO"
    disabled_features: frozenset[str] = frozenset()
    moves: MoveHeuristics = field(default_factory=MoveHeuristics)
    agenda: AgendaPolicy = field(default_factory=AgendaPolicy)

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    def feature_enabled(self, feature: str) -> bool:
        """Whether a feature flag is switched on."""
        return feature not in self.disabled_features

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./quadrant.db"),
            app_version=os.getenv("APP_VERSION", "0.1.0"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            disabled_features=_parse_features(os.getenv("QUADRANT_DISABLED_FEATURES")),
            moves=MoveHeuristics.from_env(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
