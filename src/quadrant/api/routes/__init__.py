"""API routes."""

from quadrant.api.routes.assessments import router as assessments_router
from quadrant.api.routes.decisions import router as decisions_router
from quadrant.api.routes.health import router as health_router
from quadrant.api.routes.manager import router as manager_router
from quadrant.api.routes.members import router as members_router
from quadrant.api.routes.moves import router as moves_router
from quadrant.api.routes.pilots import router as pilots_router
from quadrant.api.routes.quests import router as quests_router
from quadrant.api.routes.reports import router as reports_router
from quadrant.api.routes.risk_cases import notifications_router
from quadrant.api.routes.risk_cases import router as risk_cases_router
from quadrant.api.routes.skills import gaps_router as skill_gaps_router
from quadrant.api.routes.skills import router as skills_router

__all__ = [
    "assessments_router",
    "decisions_router",
    "health_router",
    "manager_router",
    "members_router",
    "moves_router",
    "notifications_router",
    "pilots_router",
    "quests_router",
    "reports_router",
    "risk_cases_router",
    "skill_gaps_router",
    "skills_router",
]
