"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from budgetgamer.api.v1 import articles, cron, free_games, health, submissions, subscription_games

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(free_games.router, prefix="/free-games", tags=["free-games"])
api_v1_router.include_router(subscription_games.router, prefix="/subscription-games", tags=["subscription-games"])
api_v1_router.include_router(articles.router, prefix="/articles", tags=["articles"])
api_v1_router.include_router(submissions.router, prefix="/submissions", tags=["submissions"])
api_v1_router.include_router(cron.router, prefix="/cron", tags=["cron"])
