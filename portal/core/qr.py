"""
QR codes for rateable profiles.

Two values are involved and they are deliberately separate:

- ``qr_code`` on the profile row is an opaque UUID issued at creation. It is
  an identifier for auditing and can be rotated by an admin.
- The image itself encodes a plain deep link ``{base}/rate/{kind}/{id}``.
  Rotating ``qr_code`` therefore never changes what an already printed image
  resolves to.
"""

import logging
import re
import uuid
from io import BytesIO
from urllib.parse import urlsplit

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from portal.core.config import settings
from portal.core.targets import MAX_ID, ProfileKind, Target

logger = logging.getLogger(__name__)

# Positive base-10 id, ASCII digits only, no leading zeros.
_RATE_PATH = re.compile(r"/rate/(agent|employee)/([1-9][0-9]*)")


def issue_qr_token() -> str:
    return str(uuid.uuid4())


def rate_path(kind: ProfileKind, profile_id: int) -> str:
    return f"/rate/{ProfileKind(kind).value}/{int(profile_id)}"


def build_rate_url(kind: ProfileKind, profile_id: int, base_url: str | None = None) -> str:
    """The deep link encoded into a profile's QR image."""
    base = settings.PUBLIC_BASE_URL if base_url is None else base_url.rstrip("/")
    return f"{base}{rate_path(kind, profile_id)}"


def parse_rate_url(payload: str) -> Target | None:
    """Resolve a scanned payload back to its target, or None if it is not ours.

    Accepts a full URL or a bare path. Query strings, fragments and any
    extra path segments make the payload invalid.
    """
    if not payload or not payload.strip():
        return None
    try:
        parts = urlsplit(payload.strip())
    except ValueError:
        return None
    if parts.query or parts.fragment:
        return None
    if parts.scheme and parts.scheme not in ("http", "https"):
        return None

    match = _RATE_PATH.fullmatch(parts.path)
    if match is None:
        return None
    kind, raw_id = match.groups()
    profile_id = int(raw_id)
    if profile_id > MAX_ID:
        logger.debug("Scanned %s id out of range: %s", kind, raw_id)
        return None
    return Target(ProfileKind(kind), profile_id)


def render_qr_png(payload: str) -> bytes:
    """Encode ``payload`` as a PNG image.

    Colours, box size and border come from settings; only the payload is
    significant for scanners.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color=settings.QR_FILL_COLOR, back_color=settings.QR_BACK_COLOR)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def download_filename(profile_name: str) -> str:
    """``{name}-qr-code.png`` made safe for a Content-Disposition header."""
    safe = "".join(
        ch for ch in profile_name if ch.isascii() and ch.isprintable() and ch not in '"\\;'
    ).strip()
    return f"{safe or 'profile'}-qr-code.png"
