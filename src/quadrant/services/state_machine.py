"""Status state machines for pilots, quests, assessment cycles and scenarios.

Services accept any status value; the API layer validates requested
transitions with these tables before calling a service.
"""

from __future__ import annotations

from enum import Enum


class PilotRunStatus(str, Enum):
    DRAFT = "draft"
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class QuestStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class CycleStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class ScenarioStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    ARCHIVED = "archived"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StateMachine:
    """Transition table lookup shared by the concrete machines."""

    # {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def statuses(cls) -> list[str]:
        return list(cls.VALID_TRANSITIONS)

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid.

        Setting the current status again is accepted as a no-op.
        """
        if to_status not in cls.VALID_TRANSITIONS:
            raise InvalidTransitionError(from_status, to_status, "unknown status")
        if from_status == to_status:
            return
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


class PilotRunStateMachine(StateMachine):
    """Pilot run lifecycle.

    - draft → planned | active | cancelled
    - planned → active | draft | cancelled
    - active → completed | cancelled
    - completed → draft, cancelled → draft (restart)
    - any non-archived status → archived
    """

    VALID_TRANSITIONS = {
        PilotRunStatus.DRAFT: [
            PilotRunStatus.PLANNED,
            PilotRunStatus.ACTIVE,
            PilotRunStatus.CANCELLED,
            PilotRunStatus.ARCHIVED,
        ],
        PilotRunStatus.PLANNED: [
            PilotRunStatus.ACTIVE,
            PilotRunStatus.DRAFT,
            PilotRunStatus.CANCELLED,
            PilotRunStatus.ARCHIVED,
        ],
        PilotRunStatus.ACTIVE: [
            PilotRunStatus.COMPLETED,
            PilotRunStatus.CANCELLED,
            PilotRunStatus.ARCHIVED,
        ],
        PilotRunStatus.COMPLETED: [PilotRunStatus.DRAFT, PilotRunStatus.ARCHIVED],
        PilotRunStatus.CANCELLED: [PilotRunStatus.DRAFT, PilotRunStatus.ARCHIVED],
        PilotRunStatus.ARCHIVED: [],  # Terminal state
    }


class QuestStateMachine(StateMachine):
    VALID_TRANSITIONS = {
        QuestStatus.DRAFT: [QuestStatus.ACTIVE, QuestStatus.ARCHIVED],
        QuestStatus.ACTIVE: [QuestStatus.COMPLETED, QuestStatus.ARCHIVED, QuestStatus.DRAFT],
        QuestStatus.COMPLETED: [QuestStatus.ARCHIVED],
        QuestStatus.ARCHIVED: [QuestStatus.DRAFT],
    }


class CycleStateMachine(StateMachine):
    """Assessment cycle lifecycle: draft → active → closed.

    Entering ``active`` initializes participants and assessment rows.
    """

    VALID_TRANSITIONS = {
        CycleStatus.DRAFT: [CycleStatus.ACTIVE],
        CycleStatus.ACTIVE: [CycleStatus.CLOSED],
        CycleStatus.CLOSED: [],
    }

    @classmethod
    def is_activation(cls, from_status: str, to_status: str) -> bool:
        return from_status != CycleStatus.ACTIVE and to_status == CycleStatus.ACTIVE


class ScenarioStateMachine(StateMachine):
    VALID_TRANSITIONS = {
        ScenarioStatus.DRAFT: [ScenarioStatus.REVIEW, ScenarioStatus.ARCHIVED],
        ScenarioStatus.REVIEW: [
            ScenarioStatus.APPROVED,
            ScenarioStatus.DRAFT,
            ScenarioStatus.ARCHIVED,
        ],
        ScenarioStatus.APPROVED: [ScenarioStatus.ARCHIVED],
        ScenarioStatus.ARCHIVED: [],
    }
