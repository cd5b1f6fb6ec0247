"""
Path and query parameter types shared by the endpoints.

Record ids are bounded to the 32-bit integer columns they are looked up in,
so an oversized id is a 400 validation error instead of a database error.
"""

from typing import Annotated, Optional

from fastapi import Path, Query

from portal.core.targets import MAX_ID

IdPath = Annotated[int, Path(ge=1, le=MAX_ID)]
IdQuery = Annotated[Optional[int], Query(ge=1, le=MAX_ID)]
