"""Database state inspection utilities.

Answers "is there anything in this database?" before you go seeding it:

1. Does the catalogue have data? (clip_count > 0)
2. How big is the moderation backlog? (pending_count)
3. Are the supporting tables populated? (table_counts)

If clip_count > 0 the catalogue EXISTS: an empty page is more likely a
filter bug or unapproved clips than missing data.
"""

import logging

from sqlalchemy import select, func

from app.db.database import async_session_maker
from app.db.models import (
    Anime, Animator, AnimatorRelation, Clip, GlossaryTerm, RankingList, Studio,
    Tag, User, SubmissionStatus,
)

logger = logging.getLogger(__name__)

# Tables a seeded catalogue should have rows in
CATALOGUE_TABLES = [
    ("studios", Studio),
    ("anime", Anime),
    ("animators", Animator),
    ("animator_relations", AnimatorRelation),
    ("clips", Clip),
    ("tags", Tag),
    ("glossary_terms", GlossaryTerm),
    ("ranking_lists", RankingList),
    ("users", User),
]


async def get_database_status() -> dict:
    """Get catalogue status.

    Returns:
        dict with keys:
        - has_data: bool - True if at least one approved clip exists
        - clip_count: int - Approved clips
        - pending_count: int - Clips waiting for moderation
        - needs_seed: bool - True if the catalogue is empty
        - table_counts: dict - Row counts for key tables
    """
    try:
        async with async_session_maker() as session:
            result = {}

            approved = await session.execute(
                select(func.count(Clip.id))
                .where(Clip.submission_status == SubmissionStatus.APPROVED.value)
            )
            clip_count = approved.scalar_one_or_none() or 0
            result["clip_count"] = clip_count
            result["has_data"] = clip_count > 0
            result["needs_seed"] = clip_count == 0

            pending = await session.execute(
                select(func.count(Clip.id))
                .where(Clip.submission_status == SubmissionStatus.PENDING.value)
            )
            result["pending_count"] = pending.scalar_one_or_none() or 0

            table_counts = {}
            for table_name, model in CATALOGUE_TABLES:
                count_result = await session.execute(select(func.count()).select_from(model))
                table_counts[table_name] = count_result.scalar_one_or_none() or 0
            result["table_counts"] = table_counts

            return result

    except Exception as e:
        logger.error(f"Failed to get database status: {e}")
        return {
            "has_data": False,
            "clip_count": 0,
            "pending_count": 0,
            "needs_seed": True,
            "table_counts": {},
            "error": str(e),
        }


def format_status_report(status: dict) -> str:
    """Render a status dict as a console report."""
    lines = ["=" * 60, "DATABASE STATUS REPORT", "=" * 60, ""]

    if status.get("error"):
        lines.append(f"ERROR: {status['error']}")
        return "\n".join(lines)

    lines.append(f"Has Data:       {'Yes' if status['has_data'] else 'NO - EMPTY'}")
    lines.append(f"Approved Clips: {status['clip_count']:,}")
    lines.append(f"Pending Clips:  {status['pending_count']:,}")
    lines.append("")

    if status.get("table_counts"):
        lines.append("Table Counts:")
        for table, count in status["table_counts"].items():
            lines.append(f"  {table:20} {count:>10,}")

    lines += ["", "=" * 60]
    if status["needs_seed"]:
        lines.append("ACTION NEEDED: Catalogue is empty. Run: python scripts/seed_data.py")
    else:
        lines.append("STATUS: Catalogue is populated and ready.")
    lines.append("=" * 60)
    return "\n".join(lines)


def print_status_report(status: dict) -> None:
    """Print a formatted status report to console."""
    print(format_status_report(status))
