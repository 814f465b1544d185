"""tiktokcomm — TikTok Response → Table Transformer.

Flattens validated response records into one row per entity and builds
``pandas.DataFrame`` tables from them. Nested lists (image URLs, videos,
per-country reach) stay embedded in their cell, with two exceptions for
commercial content: ``brand_names`` becomes one row per brand and ``videos``
is spread into sibling columns.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from tiktokcomm.core.logging import get_logger
from tiktokcomm.models.api_models import (
    AdDetailData,
    AdRecord,
    AdReportData,
    AdvertiserRecord,
    CommercialContentRecord,
)

logger = get_logger("tiktok.transformer")

AD_COLUMNS = [
    "id",
    "first_shown_date",
    "last_shown_date",
    "status",
    "image_urls",
    "videos",
    "reach",
    "advertiser_business_id",
    "advertiser_business_name",
    "advertiser_paid_for_by",
]

AD_DETAIL_COLUMNS = [
    "id",
    "first_shown_date",
    "last_shown_date",
    "status",
    "status_statement",
    "image_urls",
    "videos",
    "rejection_info",
    "business_id",
    "business_name",
    "paid_for_by",
    "avatar_url",
    "follower_count",
    "profile_url",
]

ADVERTISER_COLUMNS = ["business_id", "business_name", "country_code"]

COMMERCIAL_CONTENT_COLUMNS = [
    "id",
    "create_timestamp",
    "create_date",
    "label",
    "brand_names",
    "creator_username",
    "videos",
]

AD_REPORT_COLUMNS = ["country", "date", "count"]


def parse_api_date(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYYMMDD`` or ``YYYY-MM-DD``; anything else becomes None."""
    if not value:
        return None
    text = str(value).strip()
    try:
        if len(text) == 8 and text.isdigit():
            return datetime.strptime(text, "%Y%m%d").date()
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.warning(f"Unparseable date value: {value!r}")
        return None


def parse_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Epoch seconds → timezone-aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def unnest_wider(prefix: str, value: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Spread one level of a mapping into ``<prefix>_<key>`` columns."""
    if not value:
        return {}
    return {f"{prefix}_{key}": item for key, item in value.items()}


# ── Row Flatteners ──


def flatten_ad(record: AdRecord) -> Dict[str, Any]:
    """One ad search result → one row."""
    ad = record.ad
    advertiser = record.advertiser
    return {
        "id": ad.id,
        "first_shown_date": parse_api_date(ad.first_shown_date),
        "last_shown_date": parse_api_date(ad.last_shown_date),
        "status": ad.status,
        "image_urls": ad.image_urls,
        "videos": ad.videos,
        "reach": ad.reach.unique_users_seen if ad.reach else None,
        "advertiser_business_id": advertiser.business_id if advertiser else None,
        "advertiser_business_name": advertiser.business_name if advertiser else None,
        "advertiser_paid_for_by": advertiser.paid_for_by if advertiser else None,
    }


def flatten_ad_detail(data: AdDetailData) -> Dict[str, Any]:
    """Ad detail response → one row, with reach and targeting spread wide."""
    ad = data.ad
    advertiser = data.advertiser
    account = advertiser.tiktok_account if advertiser else None
    row = {
        "id": ad.id,
        "first_shown_date": parse_api_date(ad.first_shown_date),
        "last_shown_date": parse_api_date(ad.last_shown_date),
        "status": ad.status,
        "status_statement": ad.status_statement,
        "image_urls": ad.image_urls,
        "videos": ad.videos,
        "rejection_info": ad.rejection_info,
        "business_id": advertiser.business_id if advertiser else None,
        "business_name": advertiser.business_name if advertiser else None,
        "paid_for_by": advertiser.paid_for_by if advertiser else None,
        "avatar_url": account.avatar_url if account else None,
        "follower_count": account.follower_count if account else None,
        "profile_url": account.profile_url if account else None,
    }
    if ad.reach is not None:
        row.update(unnest_wider("reach", ad.reach.model_dump(exclude_unset=True)))
    if data.ad_group is not None:
        row.update(unnest_wider("targeting_info", data.ad_group.targeting_info))
    return row


def flatten_advertiser(record: AdvertiserRecord) -> Dict[str, Any]:
    return {
        "business_id": record.business_id,
        "business_name": record.business_name,
        "country_code": record.country_code,
    }


def flatten_commercial_content(record: CommercialContentRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "create_timestamp": parse_timestamp(record.create_timestamp),
        "create_date": parse_api_date(record.create_date),
        "label": record.label,
        "brand_names": record.brand_names,
        "creator_username": record.creator.username if record.creator else None,
        "videos": record.videos,
    }


# ── Tables ──


def rows_to_frame(rows: Iterable[Dict[str, Any]], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Build a table in row order; ``columns`` fixes the schema when known."""
    rows = list(rows)
    if columns is None:
        return pd.DataFrame(rows)
    return pd.DataFrame(rows, columns=list(columns))


def concat_pages(frames: List[pd.DataFrame], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Append page tables in server order. No deduplication."""
    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame(columns=list(columns) if columns else None)
    return pd.concat(frames, ignore_index=True)


def _spread_videos(videos: Any) -> Dict[str, Any]:
    """``[{url, cover_image_url}, ...]`` → ``videos_1_url``, ``videos_1_cover_image_url``, ..."""
    if not isinstance(videos, list):
        return {}
    wide: Dict[str, Any] = {}
    for n, video in enumerate(videos, start=1):
        if isinstance(video, dict):
            for key, value in video.items():
                wide[f"videos_{n}_{key}"] = value
        else:
            wide[f"videos_{n}"] = video
    return wide


def expand_commercial_content(frame: pd.DataFrame) -> pd.DataFrame:
    """One row per brand name, videos spread into sibling columns.

    An item with N brand names yields N rows that differ only in
    ``brand_names``. An item with no brand names (empty or missing) yields no
    rows.
    """
    if "brand_names" in frame.columns:
        frame = frame.explode("brand_names", ignore_index=True)
        frame = frame[frame["brand_names"].notna()].reset_index(drop=True)
    if "videos" not in frame.columns:
        return frame
    wide = pd.DataFrame([_spread_videos(v) for v in frame["videos"]], index=frame.index)
    return frame.drop(columns="videos").join(wide)


def left_join_details(base: pd.DataFrame, details: pd.DataFrame) -> pd.DataFrame:
    """Attach ad detail columns to ad rows by ``id``.

    Columns the base table already has are never taken from ``details``.
    """
    if details.empty or "id" not in details.columns or "id" not in base.columns:
        return base
    overlap = [c for c in details.columns if c in base.columns and c != "id"]
    details = details.drop(columns=overlap).drop_duplicates(subset="id")
    return base.merge(details, on="id", how="left")


def flatten_ad_report(data: AdReportData) -> pd.DataFrame:
    """Per-country time series → one row per (country, date)."""
    series = data.count_time_series_by_country or {}
    rows: List[Dict[str, Any]] = []
    for country, points in series.items():
        for point in points:
            row = {"country": country}
            row.update(point.model_dump(exclude_unset=True))
            row["date"] = parse_api_date(point.date)
            rows.append(row)
    if not rows:
        logger.info("Ad report is empty.")
        return pd.DataFrame(columns=AD_REPORT_COLUMNS)
    return rows_to_frame(rows)
