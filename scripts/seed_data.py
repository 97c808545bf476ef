#!/usr/bin/env python
"""Seed a development database with a small sakuga catalogue.

Creates studios, anime, animators, mentor relations, approved clips with
attributions, glossary terms, one ranking list and a moderator account.
Existing rows (matched by slug / email) are left alone, so the script can be
run repeatedly.

Usage:
    python scripts/seed_data.py
"""

import asyncio
import logging
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

# Add app to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.auth import create_session
from app.db.database import init_db, async_session_maker
from app.db.models import (
    Anime, Animator, AnimatorRelation, Attribution, Clip, ClipTag, GlossaryTerm,
    RankingItem, RankingList, Studio, StudioHistory, Tag, User,
    AnimationRole, RankingCategory, RankingType, RelationType, SubmissionStatus,
    UserRole, VerificationStatus,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

STUDIOS = [
    ("studio-ghibli", "Studio Ghibli", "スタジオジブリ", 1985),
    ("bones", "Bones", "ボンズ", 1998),
    ("gainax", "Gainax", "ガイナックス", 1984),
    ("madhouse", "Madhouse", "マッドハウス", 1972),
    ("trigger", "Studio Trigger", "トリガー", 2011),
]

# slug, title, year, studio slug
ANIME = [
    ("akira", "Akira", 1988, None),
    ("spirited-away", "Spirited Away", 2001, "studio-ghibli"),
    ("fullmetal-alchemist-brotherhood", "Fullmetal Alchemist: Brotherhood", 2009, "bones"),
    ("mob-psycho-100", "Mob Psycho 100", 2016, "bones"),
    ("flcl", "FLCL", 2000, "gainax"),
    ("one-punch-man", "One Punch Man", 2015, "madhouse"),
]

# slug, name, native name, birth date
ANIMATORS = [
    ("yoshinori-kanada", "Yoshinori Kanada", "金田伊功", date(1952, 2, 5)),
    ("yutaka-nakamura", "Yutaka Nakamura", "中村豊", date(1969, 1, 1)),
    ("norio-matsumoto", "Norio Matsumoto", "松本憲生", date(1967, 1, 1)),
    ("mitsuo-iso", "Mitsuo Iso", "磯光雄", date(1966, 3, 1)),
    ("hiroyuki-imaishi", "Hiroyuki Imaishi", "今石洋之", date(1971, 10, 4)),
]

# mentor slug, student slug, relation type
RELATIONS = [
    ("yoshinori-kanada", "hiroyuki-imaishi", RelationType.INFLUENCED_BY.value),
    ("yoshinori-kanada", "yutaka-nakamura", RelationType.INFLUENCED_BY.value),
    ("mitsuo-iso", "norio-matsumoto", RelationType.COLLEAGUE.value),
]

# slug, title, anime slug, animator slug, duration, days old, views, favorites
CLIPS = [
    ("fmab-fight-scene", "Mustang vs Lust", "fullmetal-alchemist-brotherhood",
     "yutaka-nakamura", 32, 3, 1200, 45),
    ("mob-100-percent", "Mob 100%", "mob-psycho-100", "yutaka-nakamura", 28, 10, 800, 30),
    ("opm-boros", "Saitama vs Boros", "one-punch-man", "yutaka-nakamura", 40, 20, 5000, 120),
    ("flcl-guitar", "Haruko's Guitar Swing", "flcl", "hiroyuki-imaishi", 18, 5, 300, 12),
    ("spirited-away-river", "The River Spirit", "spirited-away", "norio-matsumoto", 25, 60, 2000, 80),
]

TAGS = [
    ("effects", "Effects", "technique"),
    ("smears", "Smears", "technique"),
    ("kanada-style", "Kanada Style", "style"),
]

GLOSSARY = [
    ("sakuga", "Sakuga", "Moments in animation where the quality noticeably rises.", ["genga"]),
    ("genga", "Genga", "Key animation: the key drawings that define a movement.", ["sakuga", "douga"]),
    ("douga", "Douga", "In-between animation drawn from the key frames.", ["genga"]),
    ("smear", "Smear", "A stretched, blurred drawing used to convey fast motion.", []),
]


async def _by_slug(db, model, slug):
    result = await db.execute(select(model).where(model.slug == slug))
    return result.scalar_one_or_none()


async def seed():
    await init_db()
    now = datetime.now(timezone.utc)

    async with async_session_maker() as db:
        studios = {}
        for slug, name, native, founded in STUDIOS:
            studio = await _by_slug(db, Studio, slug)
            if studio is None:
                studio = Studio(slug=slug, name=name, native_name=native, founded=founded)
                db.add(studio)
            studios[slug] = studio
        await db.flush()
        logger.info(f"Studios: {len(studios)}")

        anime = {}
        for slug, title, year, studio_slug in ANIME:
            row = await _by_slug(db, Anime, slug)
            if row is None:
                row = Anime(
                    slug=slug,
                    title=title,
                    year=year,
                    studio_id=studios[studio_slug].id if studio_slug else None,
                )
                db.add(row)
            anime[slug] = row
        await db.flush()
        logger.info(f"Anime: {len(anime)}")

        animators = {}
        for slug, name, native, birth in ANIMATORS:
            row = await _by_slug(db, Animator, slug)
            if row is None:
                row = Animator(
                    slug=slug,
                    name=name,
                    native_name=native,
                    birth_date=birth,
                    photo_url=f"https://images.example.com/animators/{slug}.jpg",
                )
                db.add(row)
            animators[slug] = row
        await db.flush()
        logger.info(f"Animators: {len(animators)}")

        imaishi, trigger = animators["hiroyuki-imaishi"], studios["trigger"]
        result = await db.execute(
            select(StudioHistory.id).where(
                StudioHistory.animator_id == imaishi.id,
                StudioHistory.studio_id == trigger.id,
            )
        )
        if result.scalar_one_or_none() is None:
            db.add(StudioHistory(
                animator_id=imaishi.id,
                studio_id=trigger.id,
                start_year=2011,
                position="Director",
            ))

        for mentor, student, relation_type in RELATIONS:
            key = (animators[mentor].id, animators[student].id)
            if await db.get(AnimatorRelation, key) is None:
                db.add(AnimatorRelation(
                    mentor_id=key[0], student_id=key[1], relation_type=relation_type
                ))

        tags = {}
        for slug, name, category in TAGS:
            tag = await _by_slug(db, Tag, slug)
            if tag is None:
                tag = Tag(slug=slug, name=name, category=category)
                db.add(tag)
            tags[slug] = tag
        await db.flush()

        clips = {}
        for slug, title, anime_slug, animator_slug, duration, days_old, views, favs in CLIPS:
            clip = await _by_slug(db, Clip, slug)
            if clip is None:
                clip = Clip(
                    slug=slug,
                    title=title,
                    video_url=f"https://videos.example.com/{slug}.mp4",
                    thumbnail_url=f"https://images.example.com/clips/{slug}.jpg",
                    duration=duration,
                    anime_id=anime[anime_slug].id,
                    studio_id=anime[anime_slug].studio_id,
                    technique_description="Seed clip used for local development of the catalogue.",
                    view_count=views,
                    favorite_count=favs,
                    submission_status=SubmissionStatus.APPROVED.value,
                    created_at=now - timedelta(days=days_old),
                )
                clip.attributions.append(Attribution(
                    animator_id=animators[animator_slug].id,
                    role=AnimationRole.KEY_ANIMATION.value,
                    verification_status=VerificationStatus.VERIFIED.value,
                ))
                clip.tags.append(ClipTag(tag_id=tags["effects"].id))
                db.add(clip)
            clips[slug] = clip
        await db.flush()
        logger.info(f"Clips: {len(clips)}")

        for slug, term, definition, related in GLOSSARY:
            if await _by_slug(db, GlossaryTerm, slug) is None:
                db.add(GlossaryTerm(
                    slug=slug,
                    term=term,
                    definition=definition,
                    related_terms=related,
                    example_clip_id=clips["opm-boros"].id if slug == "sakuga" else None,
                ))

        if await _by_slug(db, RankingList, "greatest-key-animators") is None:
            ranking = RankingList(
                slug="greatest-key-animators",
                title="Greatest Key Animators",
                type=RankingType.COMMUNITY.value,
                category=RankingCategory.ANIMATOR.value,
            )
            for rank, animator_slug in enumerate(
                ["yutaka-nakamura", "yoshinori-kanada", "mitsuo-iso"], start=1
            ):
                ranking.items.append(RankingItem(rank=rank, animator_id=animators[animator_slug].id))
            db.add(ranking)

        result = await db.execute(select(User).where(User.email == "moderator@example.com"))
        moderator = result.scalar_one_or_none()
        if moderator is None:
            moderator = User(
                email="moderator@example.com",
                name="Seed Moderator",
                role=UserRole.MODERATOR.value,
            )
            db.add(moderator)

        await db.commit()

        token = await create_session(db, moderator.id)
        logger.info("Seed complete")
        print(f"\nModerator bearer token (valid for the configured session lifetime):\n{token}\n")


if __name__ == "__main__":
    asyncio.run(seed())
