"""Glossary endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.pagination import offset_meta, success
from app.db.database import get_db
from app.services import glossary_service

router = APIRouter()


@router.get("")
async def list_terms(
    q: str | None = Query(default=None, max_length=200),
    letter: str | None = Query(default=None, min_length=1, max_length=1),
    limit: int = Query(default=100, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    grouped: Literal["true", "false"] = Query(default="false"),
    db: AsyncSession = Depends(get_db),
):
    """Glossary terms, or the full index grouped by first letter with ``grouped=true``."""
    if grouped == "true":
        return success(await glossary_service.get_glossary_index(db))

    terms, total = await glossary_service.get_glossary_terms(
        db, q=q, letter=letter, limit=limit, offset=offset
    )
    return success(terms, pagination=offset_meta(total, limit, offset))


@router.get("/suggest")
async def suggest_terms(
    q: str = Query(min_length=1, max_length=100),
    limit: int = Query(default=10, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
):
    """Autocomplete."""
    return success(await glossary_service.search_glossary_terms(db, q, limit=limit))


@router.get("/{slug}")
async def get_term(slug: str, db: AsyncSession = Depends(get_db)):
    term = await glossary_service.get_glossary_term_by_slug(db, slug)
    if term is None:
        raise NotFoundError("Glossary term", details={"slug": slug})
    return success(term)
