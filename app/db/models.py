"""
SQLAlchemy ORM models for the Sakuga Legends catalogue.

============================================================================
ENGAGEMENT COUNTERS ARE DENORMALIZED
============================================================================
Clip.favorite_count and RankingItem.vote_count mirror the cardinality of
their join tables (ClipFavorite, Vote). Never change one without the other:
go through clip_service.toggle_favorite / ranking_service.toggle_vote, which
write the join row and the counter in the same transaction.

Clip.view_count is the exception: it is an approximate engagement signal and
is incremented fire-and-forget (see clip_service.schedule_view_increment).

The trending score is NOT a column. It is recomputed per request from
view_count, favorite_count, comment count and created_at.
============================================================================
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, Text, Date, DateTime,
    ForeignKey, JSON, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============ Enumerations ============

class UserRole(str, enum.Enum):
    USER = "USER"
    CONTRIBUTOR = "CONTRIBUTOR"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class SubmissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationStatus(str, enum.Enum):
    VERIFIED = "VERIFIED"
    SPECULATIVE = "SPECULATIVE"
    DISPUTED = "DISPUTED"


# Lower rank = stronger attribution. Used to pick a clip's "best" attribution.
VERIFICATION_RANK = {
    VerificationStatus.VERIFIED.value: 0,
    VerificationStatus.SPECULATIVE.value: 1,
    VerificationStatus.DISPUTED.value: 2,
}


class AnimationRole(str, enum.Enum):
    KEY_ANIMATION = "KEY_ANIMATION"
    SECOND_KEY_ANIMATION = "SECOND_KEY_ANIMATION"
    ANIMATION_DIRECTOR = "ANIMATION_DIRECTOR"
    CHIEF_ANIMATION_DIRECTOR = "CHIEF_ANIMATION_DIRECTOR"
    CHARACTER_DESIGN = "CHARACTER_DESIGN"
    MECHANICAL_ANIMATION = "MECHANICAL_ANIMATION"
    EFFECTS_ANIMATION = "EFFECTS_ANIMATION"


class RelationType(str, enum.Enum):
    MENTOR = "mentor"
    COLLEAGUE = "colleague"
    INFLUENCED_BY = "influenced_by"


class RankingType(str, enum.Enum):
    EDITORIAL = "EDITORIAL"
    COMMUNITY = "COMMUNITY"


class RankingCategory(str, enum.Enum):
    ANIMATOR = "ANIMATOR"
    CLIP = "CLIP"
    STUDIO = "STUDIO"
    ANIME = "ANIME"


# ============ Users ============

class User(Base):
    """Registered community member."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    email = Column(String(320), unique=True)
    name = Column(String(200))
    image = Column(String(500))
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    trust_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")


class UserSession(Base):
    """Bearer session token. Only the SHA-256 digest of the token is stored."""

    __tablename__ = "user_sessions"

    token_hash = Column(String(64), primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("idx_user_sessions_user", "user_id"),
    )


# ============ Catalogue ============

class Studio(Base):
    """Animation studio."""

    __tablename__ = "studios"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    native_name = Column(String(200))
    logo_url = Column(String(500))
    founded = Column(Integer)
    dissolved = Column(Integer)


class Anime(Base):
    """Anime title a clip is excerpted from."""

    __tablename__ = "anime"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    title = Column(String(300), nullable=False)
    native_title = Column(String(300))
    year = Column(Integer, nullable=False)
    season = Column(String(10))  # winter, spring, summer, fall
    cover_url = Column(String(500))
    studio_id = Column(String(32), ForeignKey("studios.id", ondelete="SET NULL"))

    studio = relationship("Studio")

    __table_args__ = (
        Index("idx_anime_year", "year"),
        Index("idx_anime_title", "title"),
    )


class Animator(Base):
    """Animator profile."""

    __tablename__ = "animators"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    native_name = Column(String(200))
    bio = Column(Text)
    photo_url = Column(String(500))
    birth_date = Column(Date)
    death_date = Column(Date)
    twitter_handle = Column(String(50))
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    attributions = relationship("Attribution", back_populates="animator")
    studio_history = relationship(
        "StudioHistory", back_populates="animator", order_by="StudioHistory.start_year"
    )
    outgoing_relations = relationship(
        "AnimatorRelation", foreign_keys="AnimatorRelation.mentor_id", back_populates="mentor"
    )
    incoming_relations = relationship(
        "AnimatorRelation", foreign_keys="AnimatorRelation.student_id", back_populates="student"
    )

    __table_args__ = (
        Index("idx_animators_name", "name"),
    )


class AnimatorRelation(Base):
    """Directed relation between two animators (mentor -> student).

    Colleague relations are stored once; readers treat them as undirected.
    """

    __tablename__ = "animator_relations"

    mentor_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"), primary_key=True)
    relation_type = Column(String(20), nullable=False, default=RelationType.MENTOR.value)
    start_year = Column(Integer)
    end_year = Column(Integer)

    mentor = relationship("Animator", foreign_keys=[mentor_id], back_populates="outgoing_relations")
    student = relationship("Animator", foreign_keys=[student_id], back_populates="incoming_relations")

    __table_args__ = (
        Index("idx_animator_relations_student", "student_id"),
    )


class StudioHistory(Base):
    """An animator's tenure at a studio."""

    __tablename__ = "studio_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    animator_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"), nullable=False)
    studio_id = Column(String(32), ForeignKey("studios.id", ondelete="CASCADE"), nullable=False)
    start_year = Column(Integer, nullable=False)
    end_year = Column(Integer)
    position = Column(String(100))

    animator = relationship("Animator", back_populates="studio_history")
    studio = relationship("Studio")


class Clip(Base):
    """A short animation excerpt (<= 45 seconds by policy)."""

    __tablename__ = "clips"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    title = Column(String(300), nullable=False)
    video_url = Column(String(500), nullable=False, default="")
    thumbnail_url = Column(String(500))
    duration = Column(Integer, nullable=False)  # seconds
    anime_id = Column(String(32), ForeignKey("anime.id", ondelete="CASCADE"), nullable=False)
    studio_id = Column(String(32), ForeignKey("studios.id", ondelete="SET NULL"))
    episode_number = Column(Integer)
    timestamp_start = Column(String(10))  # MM:SS
    technique_description = Column(Text)
    view_count = Column(Integer, nullable=False, default=0)
    favorite_count = Column(Integer, nullable=False, default=0)
    submission_status = Column(String(20), nullable=False, default=SubmissionStatus.PENDING.value)
    submitted_by = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"))
    moderated_by = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"))
    moderated_at = Column(DateTime(timezone=True))
    rejection_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    anime = relationship("Anime")
    studio = relationship("Studio")
    attributions = relationship("Attribution", back_populates="clip", cascade="all, delete-orphan")
    tags = relationship("ClipTag", back_populates="clip", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_clips_status_created", "submission_status", "created_at"),
        Index("idx_clips_anime", "anime_id"),
        Index("idx_clips_favorites", favorite_count.desc()),
    )


class Attribution(Base):
    """Credits an animator with a role on a clip."""

    __tablename__ = "attributions"

    id = Column(String(32), primary_key=True, default=_new_id)
    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"), nullable=False)
    animator_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(40), nullable=False)
    verification_status = Column(
        String(20), nullable=False, default=VerificationStatus.SPECULATIVE.value
    )
    source_url = Column(String(500))
    source_note = Column(String(500))

    clip = relationship("Clip", back_populates="attributions")
    animator = relationship("Animator", back_populates="attributions")

    __table_args__ = (
        UniqueConstraint("clip_id", "animator_id", "role", name="uq_attribution_clip_animator_role"),
        Index("idx_attributions_animator", "animator_id"),
        Index("idx_attributions_clip", "clip_id"),
    )


class Tag(Base):
    """Technique / style / content tag."""

    __tablename__ = "tags"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(100), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    category = Column(String(20))  # technique, style, content


class ClipTag(Base):
    """Many-to-many relationship between clips and tags."""

    __tablename__ = "clip_tags"

    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(String(32), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    clip = relationship("Clip", back_populates="tags")
    tag = relationship("Tag")

    __table_args__ = (
        Index("idx_clip_tags_tag", "tag_id"),
    )


class Comment(Base):
    """Comment on a clip. Only counted by the trending calculation."""

    __tablename__ = "comments"

    id = Column(String(32), primary_key=True, default=_new_id)
    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_comments_clip", "clip_id"),
    )


# ============ Engagement ============

class ClipFavorite(Base):
    """A user's favorite clip. The primary key enforces one row per (user, clip)."""

    __tablename__ = "clip_favorites"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    clip = relationship("Clip")

    __table_args__ = (
        Index("idx_clip_favorites_clip", "clip_id"),
    )


class AnimatorFavorite(Base):
    """A user's favorite animator."""

    __tablename__ = "animator_favorites"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    animator_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    animator = relationship("Animator")

    __table_args__ = (
        Index("idx_animator_favorites_animator", "animator_id"),
    )


class Collection(Base):
    """User-curated, ordered list of clips."""

    __tablename__ = "collections"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(80), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    is_public = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User")
    clips = relationship(
        "CollectionClip",
        back_populates="collection",
        order_by="CollectionClip.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_collections_user", "user_id"),
    )


class CollectionClip(Base):
    """Clip membership in a collection with its display position."""

    __tablename__ = "collection_clips"

    collection_id = Column(String(32), ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True)
    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime(timezone=True), default=_utcnow)

    collection = relationship("Collection", back_populates="clips")
    clip = relationship("Clip")


# ============ Rankings ============

class RankingList(Base):
    """Editorial or community ranking of animators, clips, studios or anime."""

    __tablename__ = "ranking_lists"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text)
    type = Column(String(20), nullable=False, default=RankingType.EDITORIAL.value)
    category = Column(String(20), nullable=False)
    cover_url = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    items = relationship(
        "RankingItem", back_populates="ranking_list", order_by="RankingItem.rank",
        cascade="all, delete-orphan",
    )


class RankingItem(Base):
    """One ranked entry. Exactly one of the entity references is set."""

    __tablename__ = "ranking_items"

    id = Column(String(32), primary_key=True, default=_new_id)
    list_id = Column(String(32), ForeignKey("ranking_lists.id", ondelete="CASCADE"), nullable=False)
    rank = Column(Integer, nullable=False)
    vote_count = Column(Integer, nullable=False, default=0)
    animator_id = Column(String(32), ForeignKey("animators.id", ondelete="CASCADE"))
    clip_id = Column(String(32), ForeignKey("clips.id", ondelete="CASCADE"))
    studio_id = Column(String(32), ForeignKey("studios.id", ondelete="CASCADE"))
    anime_id = Column(String(32), ForeignKey("anime.id", ondelete="CASCADE"))

    ranking_list = relationship("RankingList", back_populates="items")
    animator = relationship("Animator")
    clip = relationship("Clip")
    studio = relationship("Studio")
    anime = relationship("Anime")

    __table_args__ = (
        Index("idx_ranking_items_list_rank", "list_id", "rank"),
    )


class Vote(Base):
    """A user's vote on a ranking item. The primary key enforces one vote per item."""

    __tablename__ = "votes"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    item_id = Column(String(32), ForeignKey("ranking_items.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_votes_item", "item_id"),
    )


# ============ Glossary ============

class GlossaryTerm(Base):
    """Animation terminology entry."""

    __tablename__ = "glossary_terms"

    id = Column(String(32), primary_key=True, default=_new_id)
    slug = Column(String(200), unique=True, nullable=False)
    term = Column(String(200), nullable=False)
    definition = Column(Text, nullable=False)
    example_clip_id = Column(String(32), ForeignKey("clips.id", ondelete="SET NULL"))
    related_terms = Column(JSON, default=list)  # list of glossary slugs
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_glossary_terms_term", "term"),
    )
