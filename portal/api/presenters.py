"""
Conversions from ORM rows to the public response schemas.
"""

from portal.core.stats_store import RatingSummary
from portal.core.targets import ProfileKind
from portal.models.schemas import ProfileSummary


def profile_summary(
    kind: ProfileKind,
    profile,
    summary: RatingSummary | None = None,
    distance_km: float | None = None,
) -> ProfileSummary:
    kind = ProfileKind(kind)
    fields = {
        "kind": kind.value,
        "id": profile.id,
        "name": profile.name,
        "email": profile.email,
        "phone": profile.phone,
        "branch": profile.branch,
        "average_rating": summary.average if summary else None,
        "total_ratings": summary.count if summary else 0,
        "distance_km": round(distance_km, 2) if distance_km is not None else None,
    }
    if kind is ProfileKind.AGENT:
        fields.update(
            location=profile.location,
            latitude=profile.latitude,
            longitude=profile.longitude,
            is_online=profile.is_online,
        )
    else:
        fields.update(department=profile.department, position=profile.position)
    return ProfileSummary(**fields)


def page_response(result, schema) -> dict:
    """``PageResult`` -> ``{items, total, page, total_pages}`` with validated items."""
    return result.as_dict([schema.model_validate(item) for item in result.items])
