from fastapi import APIRouter, FastAPI

from .challenges import router as challenges_router, scaffold_router as challenges_scaffold_router
from .friends import router as friends_router, scaffold_router as friends_scaffold_router
from .leaderboard import router as leaderboard_router, scaffold_router as leaderboard_scaffold_router
from .match import router as match_router, scaffold_router as match_scaffold_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(match_router, tags=["matches"])
    app.include_router(friends_router, tags=["friends"])
    app.include_router(challenges_router, tags=["challenges"])
    app.include_router(leaderboard_router, tags=["leaderboards"])

    app.include_router(match_scaffold_router, prefix="/_scaffold/match", tags=["scaffold-match"])
    app.include_router(friends_scaffold_router, prefix="/_scaffold/friends", tags=["scaffold-friends"])
    app.include_router(challenges_scaffold_router, prefix="/_scaffold/challenges", tags=["scaffold-challenges"])
    app.include_router(leaderboard_scaffold_router, prefix="/_scaffold/leaderboard", tags=["scaffold-leaderboard"])


__all__ = ["include_modular_routers", "APIRouter"]
