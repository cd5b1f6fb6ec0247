"""
CSV export of profiles with their derived rating figures.
"""

import csv
import io
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.stats_store import profiles_with_summaries
from portal.core.targets import ProfileKind

_COLUMNS = {
    ProfileKind.AGENT: [
        ("ID", "id"),
        ("Name", "name"),
        ("Email", "email"),
        ("Phone", "phone"),
        ("Location", "location"),
        ("Branch", "branch"),
        ("Latitude", "latitude"),
        ("Longitude", "longitude"),
        ("Online Status", "is_online"),
    ],
    ProfileKind.EMPLOYEE: [
        ("ID", "id"),
        ("Name", "name"),
        ("Email", "email"),
        ("Phone", "phone"),
        ("Department", "department"),
        ("Position", "position"),
        ("Branch", "branch"),
    ],
}


def _cell(profile, attribute: str):
    value = getattr(profile, attribute)
    if attribute == "is_online":
        return "Online" if value else "Offline"
    return "" if value is None else value


async def export_profiles_csv(kind: ProfileKind, db: AsyncSession) -> str:
    """Header row plus one row per profile, ordered by name."""
    columns = _COLUMNS[ProfileKind(kind)]
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in columns] + ["Total Ratings", "Average Rating", "Created Date"])

    for profile, summary in await profiles_with_summaries(kind, db, order_by_name=True):
        writer.writerow(
            [_cell(profile, attribute) for _, attribute in columns]
            + [
                summary.count,
                "" if summary.average is None else f"{summary.average:.2f}",
                profile.created_at.date().isoformat() if profile.created_at else "",
            ]
        )
    return buffer.getvalue()


def export_filename(kind: ProfileKind) -> str:
    return f"{ProfileKind(kind).value}s-export-{date.today().isoformat()}.csv"
