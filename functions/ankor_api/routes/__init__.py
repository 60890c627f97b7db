"""
HTTP routes, one router per resource.
"""

from fastapi import APIRouter

from ankor_api.routes import (
    athletes,
    auth,
    health,
    join_codes,
    organizations,
    positions,
    scorecards,
    skills,
    teams,
)

router = APIRouter()
router.include_router(health.router)
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
router.include_router(positions.router, prefix="/positions", tags=["positions"])
router.include_router(teams.router, prefix="/teams", tags=["teams"])
router.include_router(join_codes.router, prefix="/join-codes", tags=["join-codes"])
router.include_router(skills.router, prefix="/skills", tags=["skills"])
router.include_router(athletes.router, prefix="/athletes", tags=["athletes"])
router.include_router(scorecards.router, prefix="/scorecard", tags=["scorecard"])

__all__ = ["router"]
