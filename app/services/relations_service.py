"""Animator influence network: bounded graph traversal, grouped lists, stats."""

import logging
from collections import deque
from typing import Any, Awaitable, Callable, Iterable

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.db import schemas
from app.db.models import Animator, AnimatorRelation, Attribution, Clip, RelationType

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 2
DEFAULT_MAX_NODES = 30

# Relation types that read as mentor -> student in the list view
LINEAGE_TYPES = (RelationType.MENTOR.value, RelationType.INFLUENCED_BY.value)

AnimatorLoader = Callable[[str], Awaitable[Any]]
# Returns (other animator id, relation type) pairs
RelationLoader = Callable[[str], Awaitable[Iterable[tuple[str, str]]]]


class InfluenceGraphBuilder:
    """
    Breadth-first traversal over mentor/student relations.

    Storage is reached only through the three loaders, so the traversal can
    run against the database or against in-memory fixtures:

        load_animator(id)  -> object with id/slug/name/native_name/photo_url, or None
        load_outgoing(id)  -> [(student_id, relation_type), ...]
        load_incoming(id)  -> [(mentor_id, relation_type), ...]

    Guarantees:
      - each animator id is fetched at most once (visited set keyed by id)
      - the node list never exceeds max_nodes; a node is only enqueued while
        emitted + queued nodes are below the cap, so queued nodes are always
        emitted
      - links are deduplicated and only connect emitted nodes
    """

    def __init__(
        self,
        load_animator: AnimatorLoader,
        load_outgoing: RelationLoader,
        load_incoming: RelationLoader,
    ):
        self.load_animator = load_animator
        self.load_outgoing = load_outgoing
        self.load_incoming = load_incoming

    async def build(
        self,
        root_id: str,
        depth: int = DEFAULT_DEPTH,
        max_nodes: int = DEFAULT_MAX_NODES,
    ) -> schemas.GraphData:
        nodes: list[schemas.GraphNode] = []
        links: list[schemas.GraphLink] = []
        seen_links: set[tuple[str, str, str]] = set()

        visited = {root_id}
        queue: deque[tuple[str, int]] = deque([(root_id, 0)])

        def enqueue(animator_id: str, level: int) -> None:
            if animator_id in visited:
                return
            if len(nodes) + len(queue) >= max_nodes:
                return
            visited.add(animator_id)
            queue.append((animator_id, level))

        def link(source: str, target: str, link_type: str) -> None:
            key = (source, target, link_type)
            if key not in seen_links:
                seen_links.add(key)
                links.append(schemas.GraphLink(source=source, target=target, type=link_type))

        while queue and len(nodes) < max_nodes:
            current_id, level = queue.popleft()

            animator = await self.load_animator(current_id)
            if animator is None:
                continue

            nodes.append(schemas.GraphNode(
                id=animator.id,
                slug=animator.slug,
                name=animator.name,
                nativeName=animator.native_name,
                photoUrl=animator.photo_url,
                isCurrent=current_id == root_id,
            ))

            if level >= depth:
                continue

            for student_id, _ in await self.load_outgoing(current_id):
                enqueue(student_id, level + 1)
                link(current_id, student_id, "mentor_to")

            for mentor_id, _ in await self.load_incoming(current_id):
                enqueue(mentor_id, level + 1)
                link(current_id, mentor_id, "mentored_by")

        emitted = {n.id for n in nodes}
        links = [l for l in links if l.source in emitted and l.target in emitted]
        return schemas.GraphData(nodes=nodes, links=links)


def graph_builder_for(db: AsyncSession) -> InfluenceGraphBuilder:
    """InfluenceGraphBuilder wired to the animator tables."""

    async def load_animator(animator_id: str):
        return await db.get(Animator, animator_id)

    async def load_outgoing(animator_id: str):
        result = await db.execute(
            select(AnimatorRelation.student_id, AnimatorRelation.relation_type)
            .where(
            AnimatorRelation.mentor_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
            .order_by(AnimatorRelation.student_id)
        )
        return result.all()

    async def load_incoming(animator_id: str):
        result = await db.execute(
            select(AnimatorRelation.mentor_id, AnimatorRelation.relation_type)
            .where(
            AnimatorRelation.student_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
            .order_by(AnimatorRelation.mentor_id)
        )
        return result.all()

    return InfluenceGraphBuilder(load_animator, load_outgoing, load_incoming)


async def get_influence_graph(
    db: AsyncSession,
    animator_id: str,
    depth: int = DEFAULT_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> schemas.GraphData:
    graph = await graph_builder_for(db).build(animator_id, depth=depth, max_nodes=max_nodes)
    logger.debug(
        f"Influence graph for {animator_id}: {len(graph.nodes)} nodes, "
        f"{len(graph.links)} links (depth={depth}, max_nodes={max_nodes})"
    )
    return graph


async def count_shared_works(db: AsyncSession, animator_id: str, other_id: str) -> int:
    """Clips credited to both animators."""
    result = await db.execute(
        select(func.count(Clip.id)).where(
            Clip.attributions.any(Attribution.animator_id == animator_id),
            Clip.attributions.any(Attribution.animator_id == other_id),
        )
    )
    return result.scalar() or 0


async def _relation_item(
    db: AsyncSession, animator_id: str, other: Animator, relation_type: str
) -> schemas.RelationListItem:
    return schemas.RelationListItem(
        id=other.id,
        slug=other.slug,
        name=other.name,
        nativeName=other.native_name,
        photoUrl=other.photo_url,
        relationType=relation_type,
        sharedWorksCount=await count_shared_works(db, animator_id, other.id),
    )


async def get_relations_grouped(db: AsyncSession, animator_id: str) -> schemas.RelationsGrouped:
    """Direct relations split into mentors, students and colleagues."""
    mentor_rows = await db.execute(
        select(AnimatorRelation)
        .options(joinedload(AnimatorRelation.mentor))
        .where(
            AnimatorRelation.student_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
    )
    student_rows = await db.execute(
        select(AnimatorRelation)
        .options(joinedload(AnimatorRelation.student))
        .where(
            AnimatorRelation.mentor_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
    )
    colleague_rows = await db.execute(
        select(AnimatorRelation)
        .options(joinedload(AnimatorRelation.mentor), joinedload(AnimatorRelation.student))
        .where(
            AnimatorRelation.relation_type == RelationType.COLLEAGUE.value,
            or_(
                AnimatorRelation.mentor_id == animator_id,
                AnimatorRelation.student_id == animator_id,
            ),
        )
    )

    mentors = [
        await _relation_item(db, animator_id, rel.mentor, rel.relation_type)
        for rel in mentor_rows.scalars().all()
    ]
    students = [
        await _relation_item(db, animator_id, rel.student, rel.relation_type)
        for rel in student_rows.scalars().all()
    ]
    colleagues = []
    for rel in colleague_rows.scalars().all():
        # Colleague edges are stored once; the other end is the colleague
        other = rel.student if rel.mentor_id == animator_id else rel.mentor
        colleagues.append(
            await _relation_item(db, animator_id, other, RelationType.COLLEAGUE.value)
        )

    return schemas.RelationsGrouped(mentors=mentors, students=students, colleagues=colleagues)


async def get_relation_stats(db: AsyncSession, animator_id: str) -> schemas.RelationStats:
    """Counts matching the grouped lists; colleague edges are not counted as lineage."""
    mentor_count = (await db.execute(
        select(func.count()).select_from(AnimatorRelation)
        .where(
            AnimatorRelation.student_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
    )).scalar() or 0
    student_count = (await db.execute(
        select(func.count()).select_from(AnimatorRelation)
        .where(
            AnimatorRelation.mentor_id == animator_id,
            AnimatorRelation.relation_type.in_(LINEAGE_TYPES),
        )
    )).scalar() or 0
    colleague_count = (await db.execute(
        select(func.count()).select_from(AnimatorRelation)
        .where(and_(
            AnimatorRelation.relation_type == RelationType.COLLEAGUE.value,
            or_(
                AnimatorRelation.mentor_id == animator_id,
                AnimatorRelation.student_id == animator_id,
            ),
        ))
    )).scalar() or 0

    return schemas.RelationStats(
        mentorCount=mentor_count,
        studentCount=student_count,
        colleagueCount=colleague_count,
        totalConnections=mentor_count + student_count + colleague_count,
    )
