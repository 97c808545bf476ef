"""API v1 router - aggregates all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import (
    animators, clips, collections, glossary, home, moderation, rankings, search, user,
)

api_router = APIRouter()

api_router.include_router(home.router, prefix="/home", tags=["home"])
api_router.include_router(clips.router, prefix="/clips", tags=["clips"])
api_router.include_router(animators.router, prefix="/animators", tags=["animators"])
api_router.include_router(animators.featured_router, prefix="/featured-animator", tags=["animators"])
api_router.include_router(moderation.router, prefix="/moderation", tags=["moderation"])
api_router.include_router(rankings.router, prefix="/rankings", tags=["rankings"])
api_router.include_router(collections.router, prefix="/collections", tags=["collections"])
api_router.include_router(user.router, prefix="/user", tags=["user"])
api_router.include_router(glossary.router, prefix="/glossary", tags=["glossary"])
api_router.include_router(search.router, prefix="/search", tags=["search"])
