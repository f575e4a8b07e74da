"""Tests for status state machines."""

import pytest

from quadrant.services.state_machine import (
    CycleStateMachine,
    InvalidTransitionError,
    PilotRunStateMachine,
    QuestStateMachine,
    ScenarioStateMachine,
)


class TestPilotRunStateMachine:
    """Test pilot run transitions."""

    def test_valid_transitions(self):
        assert PilotRunStateMachine.can_transition("draft", "planned") is True
        assert PilotRunStateMachine.can_transition("draft", "active") is True
        assert PilotRunStateMachine.can_transition("planned", "draft") is True
        assert PilotRunStateMachine.can_transition("active", "completed") is True

        # Restart
        assert PilotRunStateMachine.can_transition("completed", "draft") is True
        assert PilotRunStateMachine.can_transition("cancelled", "draft") is True

    def test_any_live_status_can_be_archived(self):
        for status in ("draft", "planned", "active", "completed", "cancelled"):
            assert PilotRunStateMachine.can_transition(status, "archived") is True

    def test_invalid_transitions(self):
        assert PilotRunStateMachine.can_transition("draft", "completed") is False
        assert PilotRunStateMachine.can_transition("active", "draft") is False

        # Archived is terminal
        assert PilotRunStateMachine.can_transition("archived", "draft") is False

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            PilotRunStateMachine.validate_transition("draft", "completed")

        assert exc_info.value.from_status == "draft"
        assert exc_info.value.to_status == "completed"

    def test_same_status_is_noop(self):
        PilotRunStateMachine.validate_transition("active", "active")

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidTransitionError, match="unknown status"):
            PilotRunStateMachine.validate_transition("draft", "launched")


class TestQuestStateMachine:
    def test_transitions(self):
        assert QuestStateMachine.can_transition("draft", "active") is True
        assert QuestStateMachine.can_transition("active", "completed") is True
        assert QuestStateMachine.can_transition("active", "draft") is True
        assert QuestStateMachine.can_transition("archived", "draft") is True
        assert QuestStateMachine.can_transition("completed", "active") is False
        assert QuestStateMachine.can_transition("draft", "completed") is False


class TestCycleStateMachine:
    def test_forward_only(self):
        assert CycleStateMachine.can_transition("draft", "active") is True
        assert CycleStateMachine.can_transition("active", "closed") is True
        assert CycleStateMachine.can_transition("closed", "active") is False
        assert CycleStateMachine.can_transition("draft", "closed") is False

    def test_is_activation(self):
        assert CycleStateMachine.is_activation("draft", "active") is True
        assert CycleStateMachine.is_activation("active", "active") is False
        assert CycleStateMachine.is_activation("active", "closed") is False

    def test_next_statuses(self):
        assert CycleStateMachine.get_next_statuses("draft") == ["active"]
        assert CycleStateMachine.get_next_statuses("closed") == []


class TestScenarioStateMachine:
    def test_review_flow(self):
        assert ScenarioStateMachine.can_transition("draft", "review") is True
        assert ScenarioStateMachine.can_transition("review", "approved") is True
        assert ScenarioStateMachine.can_transition("review", "draft") is True
        assert ScenarioStateMachine.can_transition("approved", "draft") is False
        assert ScenarioStateMachine.can_transition("archived", "draft") is False
