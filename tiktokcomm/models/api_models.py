"""tiktokcomm — API Response Schemas.

Typed views of the ``data`` object each research endpoint returns. All fields
are optional: the API omits whatever was not requested via ``fields``.
Unknown keys are kept (``extra="allow"``) so a one-level unnest still sees them.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from tiktokcomm.core.errors import ResponseSchemaError

EntityId = Union[int, str]


class APIModel(BaseModel):
    """Lenient base for every response record."""

    model_config = ConfigDict(extra="allow")


# ─────────────────────────────────────────────
# ADS — /ad/query/ and /ad/detail/
# ─────────────────────────────────────────────


class AdReach(APIModel):
    unique_users_seen: Optional[Any] = None
    unique_users_seen_by_country: Optional[Dict[str, Any]] = None


class AdInfo(APIModel):
    id: Optional[EntityId] = None
    first_shown_date: Optional[str] = None
    last_shown_date: Optional[str] = None
    status: Optional[str] = None
    status_statement: Optional[str] = None
    videos: Optional[List[Any]] = None
    image_urls: Optional[List[str]] = None
    reach: Optional[AdReach] = None
    rejection_info: Optional[Any] = None


class TikTokAccount(APIModel):
    avatar_url: Optional[str] = None
    follower_count: Optional[int] = None
    profile_url: Optional[str] = None


class AdvertiserInfo(APIModel):
    business_id: Optional[EntityId] = None
    business_name: Optional[str] = None
    paid_for_by: Optional[str] = None
    tiktok_account: Optional[TikTokAccount] = None


class AdRecord(APIModel):
    """One element of ``data.ads``."""

    ad: AdInfo = Field(default_factory=AdInfo)
    advertiser: Optional[AdvertiserInfo] = None


class AdQueryData(APIModel):
    ads: Optional[List[AdRecord]] = None
    has_more: Optional[bool] = None
    search_id: Optional[str] = None


class AdGroup(APIModel):
    targeting_info: Optional[Dict[str, Any]] = None


class AdDetailData(APIModel):
    ad: AdInfo = Field(default_factory=AdInfo)
    advertiser: Optional[AdvertiserInfo] = None
    ad_group: Optional[AdGroup] = None


# ─────────────────────────────────────────────
# ADVERTISERS — /advertiser/query/
# ─────────────────────────────────────────────


class AdvertiserRecord(APIModel):
    business_id: Optional[EntityId] = None
    business_name: Optional[str] = None
    country_code: Optional[str] = None


class AdvertiserQueryData(APIModel):
    advertisers: Optional[List[AdvertiserRecord]] = None


# ─────────────────────────────────────────────
# COMMERCIAL CONTENT — /commercial_content/query/
# ─────────────────────────────────────────────


class Creator(APIModel):
    username: Optional[str] = None


class CommercialContentRecord(APIModel):
    id: Optional[EntityId] = None
    create_timestamp: Optional[int] = None
    create_date: Optional[str] = None
    label: Optional[str] = None
    brand_names: Optional[List[str]] = None
    creator: Optional[Creator] = None
    videos: Optional[List[Any]] = None


class CommercialContentQueryData(APIModel):
    commercial_contents: Optional[List[CommercialContentRecord]] = None
    has_more: Optional[bool] = None
    search_id: Optional[str] = None


# ─────────────────────────────────────────────
# AD REPORT — /ad/report/
# ─────────────────────────────────────────────


class ReportPoint(APIModel):
    date: Optional[str] = None
    count: Optional[int] = None


class AdReportData(APIModel):
    count_time_series_by_country: Optional[Dict[str, List[ReportPoint]]] = None


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_data(model: Type[ModelT], data: Any, endpoint: str = "") -> ModelT:
    """Validate a raw ``data`` payload, raising ResponseSchemaError on mismatch."""
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        raise ResponseSchemaError(
            f"Unexpected response shape from {endpoint or model.__name__}: {e}"
        ) from e
