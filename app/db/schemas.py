"""Pydantic schemas for API request/response validation.

Field names are camelCase because they are the wire format consumed by the
frontend.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============ Shared References ============

class AnimeRef(BaseModel):
    """Minimal anime reference embedded in clip cards."""
    title: str
    slug: str


class AnimatorRef(BaseModel):
    """Minimal animator reference embedded in clip cards."""
    name: str
    slug: str


class AnimatorSummary(BaseModel):
    id: str
    slug: str
    name: str
    nativeName: str | None = None
    photoUrl: str | None = None


class StudioRef(BaseModel):
    id: str
    slug: str
    name: str
    nativeName: str | None = None
    logoUrl: str | None = None


class UserRef(BaseModel):
    id: str
    name: str | None = None
    image: str | None = None


# ============ Clip Schemas ============

VerificationStatusLiteral = Literal["VERIFIED", "SPECULATIVE", "DISPUTED"]


class ClipCard(BaseModel):
    """Clip as shown in grids and lists."""
    id: str
    slug: str
    title: str
    thumbnailUrl: str | None = None
    duration: int
    viewCount: int
    favoriteCount: int
    createdAt: datetime | None = None
    anime: AnimeRef | None = None
    primaryAnimator: AnimatorRef | None = None
    verificationStatus: VerificationStatusLiteral = "SPECULATIVE"


class TrendingClip(ClipCard):
    """Clip card with its computed trending score."""
    commentCount: int = 0
    trendingScore: float


class AttributionDetail(BaseModel):
    id: str
    role: str
    verificationStatus: VerificationStatusLiteral
    sourceUrl: str | None = None
    sourceNote: str | None = None
    animator: AnimatorSummary


class TagItem(BaseModel):
    id: str
    slug: str
    name: str
    category: str | None = None


class AnimeDetail(BaseModel):
    id: str
    slug: str
    title: str
    nativeTitle: str | None = None
    year: int
    season: str | None = None
    coverUrl: str | None = None


class ClipDetail(BaseModel):
    """Full clip page payload."""
    id: str
    slug: str
    title: str
    videoUrl: str
    thumbnailUrl: str | None = None
    duration: int
    episodeNumber: int | None = None
    timestampStart: str | None = None
    techniqueDescription: str | None = None
    viewCount: int
    favoriteCount: int
    submissionStatus: str
    verificationStatus: VerificationStatusLiteral
    createdAt: datetime | None = None
    anime: AnimeDetail | None = None
    studio: StudioRef | None = None
    attributions: list[AttributionDetail] = []
    tags: list[TagItem] = []


class AttributionInput(BaseModel):
    animatorId: str = Field(min_length=1)
    role: Literal[
        "KEY_ANIMATION",
        "SECOND_KEY_ANIMATION",
        "ANIMATION_DIRECTOR",
        "CHIEF_ANIMATION_DIRECTOR",
        "CHARACTER_DESIGN",
        "MECHANICAL_ANIMATION",
        "EFFECTS_ANIMATION",
    ]
    sourceUrl: str | None = Field(default=None, max_length=500)
    sourceNote: str | None = Field(default=None, max_length=500)


class ClipCreateRequest(BaseModel):
    """Clip submission. Duration and description limits are checked by the service."""
    title: str = Field(min_length=1, max_length=300)
    animeId: str = Field(min_length=1)
    videoUrl: str = Field(min_length=1, max_length=500)
    thumbnailUrl: str | None = Field(default=None, max_length=500)
    episodeNumber: int | None = Field(default=None, gt=0)
    timestampStart: str | None = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    duration: int = Field(gt=0)
    techniqueDescription: str = Field(max_length=5000)
    attributions: list[AttributionInput] = Field(min_length=1)
    tagIds: list[str] = []


class ClipSubmissionResult(BaseModel):
    id: str
    slug: str
    submissionStatus: str


class FavoriteState(BaseModel):
    favorited: bool


class FavoriteClip(ClipCard):
    favoritedAt: datetime | None = None


# ============ Animator Schemas ============

class AnimatorListItem(AnimatorSummary):
    clipCount: int = 0


class StudioHistoryItem(BaseModel):
    studio: StudioRef
    startYear: int
    endYear: int | None = None
    position: str | None = None


class RelatedAnimator(AnimatorSummary):
    relationType: str


class AnimatorDetail(AnimatorSummary):
    bio: str | None = None
    birthDate: str | None = None
    deathDate: str | None = None
    clipCount: int = 0
    favoriteCount: int = 0
    studioHistory: list[StudioHistoryItem] = []
    mentors: list[RelatedAnimator] = []
    students: list[RelatedAnimator] = []


class TimelineWork(BaseModel):
    animeTitle: str
    animeSlug: str
    role: str
    clipCount: int


class TimelineYear(BaseModel):
    year: int
    works: list[TimelineWork]


class LatestClip(BaseModel):
    id: str
    slug: str
    title: str
    thumbnailUrl: str | None = None
    viewCount: int
    favoriteCount: int
    anime: AnimeRef | None = None


class RisingAnimator(AnimatorSummary):
    recentClipCount: int
    latestClip: LatestClip | None = None


class SignatureClip(BaseModel):
    id: str
    slug: str
    title: str
    videoUrl: str
    thumbnailUrl: str | None = None
    anime: AnimeRef | None = None


class FeaturedAnimator(AnimatorSummary):
    bio: str | None = None
    clipCount: int
    favoriteCount: int = 0
    signatureClip: SignatureClip | None = None


class FavoriteAnimator(AnimatorSummary):
    clipCount: int
    activeYears: str
    favoritedAt: datetime | None = None


# ============ Influence Graph ============

class GraphNode(AnimatorSummary):
    isCurrent: bool = False


class GraphLink(BaseModel):
    source: str
    target: str
    type: Literal["mentored_by", "mentor_to", "colleague", "influenced_by"]


class GraphData(BaseModel):
    nodes: list[GraphNode]
    links: list[GraphLink]


class RelationListItem(AnimatorSummary):
    relationType: str
    sharedWorksCount: int


class RelationsGrouped(BaseModel):
    mentors: list[RelationListItem]
    students: list[RelationListItem]
    colleagues: list[RelationListItem]


class RelationStats(BaseModel):
    mentorCount: int
    studentCount: int
    colleagueCount: int
    totalConnections: int


# ============ Moderation ============

class ModerateClipRequest(BaseModel):
    action: Literal["approve", "reject"]
    reason: str | None = Field(default=None, max_length=1000)


class Submitter(UserRef):
    trustScore: int = 0
    trustLevel: str = "New User"


class QueueAttribution(BaseModel):
    animator: AnimatorRef
    role: str


class ModerationQueueItem(BaseModel):
    id: str
    slug: str
    title: str
    thumbnailUrl: str | None = None
    duration: int
    techniqueDescription: str | None = None
    submittedAt: datetime | None = None
    anime: AnimeRef | None = None
    submittedBy: Submitter | None = None
    attributions: list[QueueAttribution] = []


class ModerationResult(BaseModel):
    id: str
    slug: str
    submissionStatus: str
    moderatedBy: str
    moderatedAt: datetime
    submitterTrustScore: int | None = None


class ModerationStats(BaseModel):
    pending: int
    approvedToday: int
    rejectedToday: int
    totalReviewed: int


# ============ Collections ============

class CollectionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    isPublic: bool


class CollectionUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    isPublic: bool | None = None


class CollectionAddClipRequest(BaseModel):
    clipId: str = Field(min_length=1)


class CollectionReorderRequest(BaseModel):
    clipIds: list[str] = Field(min_length=1)


class CollectionOrder(BaseModel):
    clipIds: list[str]


class CollectionSummary(BaseModel):
    id: str
    slug: str
    name: str
    description: str | None = None
    isPublic: bool
    clipCount: int
    thumbnails: list[str | None] = []
    createdAt: datetime | None = None


class CollectionClipItem(ClipCard):
    position: int


class CollectionDetail(CollectionSummary):
    user: UserRef | None = None
    clips: list[CollectionClipItem] = []


# ============ Rankings ============

class RankingListSummary(BaseModel):
    id: str
    slug: str
    title: str
    description: str | None = None
    type: str
    category: str
    coverUrl: str | None = None
    itemCount: int
    createdAt: datetime | None = None


class RankingClipRef(BaseModel):
    id: str
    slug: str
    title: str
    thumbnailUrl: str | None = None
    anime: AnimeRef | None = None


class RankingItemDetail(BaseModel):
    id: str
    rank: int
    voteCount: int
    animator: AnimatorSummary | None = None
    clip: RankingClipRef | None = None
    studio: StudioRef | None = None
    anime: AnimeDetail | None = None


class RankingListDetail(RankingListSummary):
    items: list[RankingItemDetail] = []
    userVotes: list[str] = []


class VoteRequest(BaseModel):
    itemId: str = Field(min_length=1)


class VoteResult(BaseModel):
    voted: bool
    newVoteCount: int


# ============ Glossary ============

class GlossaryTermItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    term: str
    definition: str
    exampleClipId: str | None = None
    relatedTerms: list[str] = []


class ExampleClip(BaseModel):
    id: str
    slug: str
    title: str
    thumbnailUrl: str | None = None
    duration: int


class GlossaryTermDetail(GlossaryTermItem):
    exampleClip: ExampleClip | None = None
    related: list[GlossaryTermItem] = []


class GlossarySuggestion(BaseModel):
    slug: str
    term: str


# ============ Search ============

SearchIndex = Literal["ANIMATORS", "CLIPS", "ANIME", "TAGS"]


class SearchResponse(BaseModel):
    hits: list[dict]
    query: str
    processingTimeMs: int
    estimatedTotalHits: int
