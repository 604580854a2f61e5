from typing import Literal, Optional

from fastapi import Header

ApiVersion = Literal["v1", "v2"]
DEFAULT_VERSION: ApiVersion = "v1"


def normalize_version(raw: Optional[str]) -> ApiVersion:
    """'2', 'v2', 'V2 ' -> 'v2'; anything unrecognized -> 'v1'."""
    value = (raw or "").strip().lower().lstrip("v")
    return "v2" if value == "2" else DEFAULT_VERSION


async def resolve_version(x_api_version: Optional[str] = Header(default=None)) -> ApiVersion:
    # cache keys are namespaced by version, so v1 and v2 payloads never mix
    return normalize_version(x_api_version)
