"""Animation terminology glossary."""

import logging

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService, get_cache
from app.db import schemas
from app.db.filters import contains_pattern, prefix_pattern
from app.db.models import Clip, GlossaryTerm

logger = logging.getLogger(__name__)


def term_item(term: GlossaryTerm) -> schemas.GlossaryTermItem:
    return schemas.GlossaryTermItem(
        id=term.id,
        slug=term.slug,
        term=term.term,
        definition=term.definition,
        exampleClipId=term.example_clip_id,
        relatedTerms=list(term.related_terms or []),
    )


def group_by_letter(terms) -> dict[str, list[schemas.GlossaryTermItem]]:
    """Group terms under their upper-cased first letter, keeping input order."""
    grouped: dict[str, list[schemas.GlossaryTermItem]] = {}
    for term in terms:
        if not term.term:
            continue
        grouped.setdefault(term.term[0].upper(), []).append(term_item(term))
    return grouped


def _search_conditions(q: str | None, letter: str | None) -> list:
    conditions = []
    if q:
        pattern = contains_pattern(q.strip())
        conditions.append(or_(GlossaryTerm.term.ilike(pattern), GlossaryTerm.definition.ilike(pattern)))
    if letter:
        conditions.append(GlossaryTerm.term.ilike(prefix_pattern(letter)))
    return conditions


async def get_glossary_terms(
    db: AsyncSession,
    q: str | None = None,
    letter: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[schemas.GlossaryTermItem], int]:
    conditions = _search_conditions(q, letter)
    result = await db.execute(
        select(GlossaryTerm)
        .where(*conditions)
        .order_by(GlossaryTerm.term)
        .offset(offset)
        .limit(limit)
    )
    terms = [term_item(t) for t in result.scalars().all()]
    total = (await db.execute(select(func.count(GlossaryTerm.id)).where(*conditions))).scalar() or 0
    return terms, total


async def get_glossary_index(db: AsyncSession) -> dict:
    """All terms grouped by first letter. Cached in Redis."""
    cache = get_cache()
    cache_key = CacheService.glossary_index_key()

    cached = await cache.get(cache_key)
    if cached:
        return cached

    result = await db.execute(select(GlossaryTerm).order_by(GlossaryTerm.term))
    grouped = {
        letter: [item.model_dump(mode="json") for item in items]
        for letter, items in group_by_letter(result.scalars().all()).items()
    }

    await cache.set(cache_key, grouped)
    return grouped


async def get_glossary_term_by_slug(db: AsyncSession, slug: str) -> schemas.GlossaryTermDetail | None:
    """Term with its example clip and related terms."""
    result = await db.execute(select(GlossaryTerm).where(GlossaryTerm.slug == slug))
    term = result.scalar_one_or_none()
    if term is None:
        return None

    example = None
    if term.example_clip_id:
        clip = await db.get(Clip, term.example_clip_id)
        if clip is not None:
            example = schemas.ExampleClip(
                id=clip.id,
                slug=clip.slug,
                title=clip.title,
                thumbnailUrl=clip.thumbnail_url,
                duration=clip.duration,
            )

    related = []
    if term.related_terms:
        related_result = await db.execute(
            select(GlossaryTerm)
            .where(GlossaryTerm.slug.in_(term.related_terms))
            .order_by(GlossaryTerm.term)
        )
        related = [term_item(t) for t in related_result.scalars().all()]

    return schemas.GlossaryTermDetail(
        **term_item(term).model_dump(),
        exampleClip=example,
        related=related,
    )


async def search_glossary_terms(
    db: AsyncSession, query: str, limit: int = 10
) -> list[schemas.GlossarySuggestion]:
    """Autocomplete suggestions."""
    result = await db.execute(
        select(GlossaryTerm.slug, GlossaryTerm.term)
        .where(*_search_conditions(query, None))
        .order_by(GlossaryTerm.term)
        .limit(limit)
    )
    return [schemas.GlossarySuggestion(slug=slug, term=term) for slug, term in result.all()]
