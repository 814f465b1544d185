"""tiktokcomm — TikTok Research API Endpoints.

One query function per ad library resource. Each validates its parameters
before any I/O, then delegates to the client's paginator and the transformer.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from tiktokcomm.connectors.tiktok.client import TikTokClient
from tiktokcomm.connectors.tiktok import transformer
from tiktokcomm.core.logging import get_logger
from tiktokcomm.core.validation import (
    DateLike,
    as_string_list,
    to_wire_date,
    validate_ad_id,
    validate_date_range,
    validate_max_count,
    validate_search_term,
    validate_search_type,
    validate_users_size,
)
from tiktokcomm.models.api_models import (
    AdDetailData,
    AdQueryData,
    AdReportData,
    AdvertiserQueryData,
    CommercialContentQueryData,
    parse_data,
)

logger = get_logger("tiktok.endpoints")

AD_QUERY_PATH = "ad/query"
AD_DETAIL_PATH = "ad/detail"
AD_REPORT_PATH = "ad/report"
ADVERTISER_QUERY_PATH = "advertiser/query"
COMMERCIAL_CONTENT_QUERY_PATH = "commercial_content/query"

# Default fields requested from TikTok
AD_FIELDS = (
    "ad.id",
    "ad.first_shown_date",
    "ad.last_shown_date",
    "ad.status",
    "ad.status_statement",
    "ad.videos",
    "ad.image_urls",
    "ad.reach",
    "advertiser.business_id",
    "advertiser.business_name",
    "advertiser.paid_for_by",
)
AD_DETAIL_FIELDS = AD_FIELDS + (
    "advertiser.follower_count",
    "advertiser.avatar_url",
    "advertiser.profile_url",
    "ad_group.targeting_info",
    "ad.rejection_info",
)
ADVERTISER_FIELDS = ("business_id", "business_name", "country_code")
COMMERCIAL_CONTENT_FIELDS = (
    "id",
    "create_timestamp",
    "create_date",
    "label",
    "brand_names",
    "creator",
    "videos",
)
AD_REPORT_FIELDS = ("count_time_series_by_country",)


class TikTokEndpoints:
    """Query the ad library and return flattened tables."""

    def __init__(self, client: TikTokClient):
        self.client = client

    # ── Ads ──

    def query_ads(
        self,
        fields: Sequence[str] = AD_FIELDS,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        country_code: Optional[str] = None,
        advertiser_ids: Optional[Union[str, int, Iterable[Any]]] = None,
        min_users: Optional[str] = None,
        max_users: Optional[str] = None,
        search_term: Optional[str] = None,
        search_type: str = "exact_phrase",
        max_count: int = 10,
        max_pages: Optional[float] = None,
        include_details: bool = False,
        tolerant: bool = False,
    ) -> pd.DataFrame:
        """Search ads, following the cursor until results or ``max_pages`` run out.

        Args:
            start_date, end_date: publication range, ``YYYY-MM-DD``. The start
                may not precede 2022-10-01.
            min_users, max_users: unique-viewer bounds with K/M/B suffix
                (``"10K"``). Missing bound defaults to ``0K`` / ``1B``.
            max_count: results per page (1-50).
            max_pages: page ceiling; None uses the configured default and
                ``math.inf`` follows the cursor until the server stops.
            include_details: look up every ad's detail record and left-join
                the columns the search result does not already have.
            tolerant: on a failed request, stop and return what was
                fetched so far instead of raising.
        """
        start, end = validate_date_range(start_date, end_date, required=False)
        search_term = validate_search_term(search_term)
        validate_search_type(search_type)
        validate_max_count(max_count)
        min_users = validate_users_size(min_users, "min_users")
        max_users = validate_users_size(max_users, "max_users")

        filters: Dict[str, Any] = {}
        if start is not None or end is not None:
            date_range: Dict[str, str] = {}
            if start is not None:
                date_range["min"] = to_wire_date(start)
            if end is not None:
                date_range["max"] = to_wire_date(end)
            filters["ad_published_date_range"] = date_range
        if country_code is not None:
            filters["country_code"] = country_code
        ids = as_string_list(advertiser_ids, "advertiser_ids")
        if ids is not None:
            filters["advertiser_business_ids"] = ids
        if min_users is not None or max_users is not None:
            filters["unique_users_seen_size_range"] = {
                "min": min_users or "0K",
                "max": max_users or "1B",
            }

        body: Dict[str, Any] = {
            "filters": filters,
            "search_type": search_type,
            "max_count": max_count,
        }
        if search_term is not None:
            body["search_term"] = search_term

        frames: List[pd.DataFrame] = []
        pages = self.client.paginate(
            AD_QUERY_PATH, fields, body, "ads", max_pages=max_pages, tolerant=tolerant
        )
        for data in pages:
            page = parse_data(AdQueryData, data, AD_QUERY_PATH)
            frame = transformer.rows_to_frame(
                (transformer.flatten_ad(record) for record in page.ads or []),
                transformer.AD_COLUMNS,
            )
            if include_details:
                frame = self._attach_details(frame)
            frames.append(frame)

        ads = transformer.concat_pages(frames, transformer.AD_COLUMNS)
        logger.info(f"Total ads retrieved: {len(ads)}", extra={"endpoint": AD_QUERY_PATH})
        return ads

    def _attach_details(self, frame: pd.DataFrame) -> pd.DataFrame:
        details = [
            self.get_ad_details(ad_id)
            for ad_id in frame["id"].dropna().unique().tolist()
        ]
        if not details:
            return frame
        return transformer.left_join_details(frame, pd.concat(details, ignore_index=True))

    def get_ad_details(
        self,
        ad_id: Union[int, str],
        fields: Sequence[str] = AD_DETAIL_FIELDS,
    ) -> pd.DataFrame:
        """Fetch one ad's full record as a single-row table."""
        ad_id = validate_ad_id(ad_id)
        logger.info(f"Retrieving ad details for ad ID: {ad_id}", extra={"endpoint": AD_DETAIL_PATH})
        content = self.client.request(AD_DETAIL_PATH, fields, {"ad_id": ad_id})
        data = parse_data(AdDetailData, content.get("data"), AD_DETAIL_PATH)
        return transformer.rows_to_frame([transformer.flatten_ad_detail(data)])

    def get_ad_report(
        self,
        start_date: DateLike,
        end_date: DateLike,
        country_code: str = "ALL",
        advertiser_ids: Optional[Union[str, int, Iterable[Any]]] = None,
        fields: Sequence[str] = AD_REPORT_FIELDS,
    ) -> pd.DataFrame:
        """Daily ad-publishing counts per country (``country, date, count``)."""
        start, end = validate_date_range(start_date, end_date)
        filters: Dict[str, Any] = {
            "ad_published_date_range": {"min": to_wire_date(start), "max": to_wire_date(end)},
            "country_code": country_code,
        }
        ids = as_string_list(advertiser_ids, "advertiser_ids")
        if ids is not None:
            filters["advertiser_business_ids"] = ids

        logger.info("Retrieving ad report...", extra={"endpoint": AD_REPORT_PATH})
        content = self.client.request(AD_REPORT_PATH, fields, {"filters": filters})
        data = parse_data(AdReportData, content.get("data"), AD_REPORT_PATH)
        return transformer.flatten_ad_report(data)

    # ── Advertisers ──

    def query_advertisers(
        self,
        search_term: str,
        fields: Sequence[str] = ADVERTISER_FIELDS,
        max_count: int = 10,
    ) -> pd.DataFrame:
        """Search advertisers by name. Single request, no pagination."""
        search_term = validate_search_term(search_term, required=True)
        validate_max_count(max_count)

        logger.info("Querying advertisers...", extra={"endpoint": ADVERTISER_QUERY_PATH})
        content = self.client.request(
            ADVERTISER_QUERY_PATH,
            fields,
            {"search_term": search_term, "max_count": max_count},
        )
        data = parse_data(AdvertiserQueryData, content.get("data"), ADVERTISER_QUERY_PATH)
        advertisers = transformer.rows_to_frame(
            (transformer.flatten_advertiser(a) for a in data.advertisers or []),
            transformer.ADVERTISER_COLUMNS,
        )
        logger.info(
            f"Total advertisers retrieved: {len(advertisers)}",
            extra={"endpoint": ADVERTISER_QUERY_PATH},
        )
        return advertisers

    # ── Commercial Content ──

    def query_commercial_content(
        self,
        start_date: DateLike,
        end_date: DateLike,
        creator_country_code: str = "ALL",
        creator_usernames: Optional[Union[str, Iterable[str]]] = None,
        fields: Sequence[str] = COMMERCIAL_CONTENT_FIELDS,
        max_count: int = 10,
        max_pages: Optional[float] = None,
    ) -> pd.DataFrame:
        """Search commercial content by publication date and creator.

        The result has one row per (item, brand name) and the videos of each
        item spread into ``videos_<n>_<key>`` columns.
        """
        start, end = validate_date_range(start_date, end_date)
        validate_max_count(max_count)

        filters: Dict[str, Any] = {
            "content_published_date_range": {"min": to_wire_date(start), "max": to_wire_date(end)},
            "creator_country_code": creator_country_code,
        }
        usernames = as_string_list(creator_usernames, "creator_usernames")
        if usernames is not None:
            filters["creator_usernames"] = usernames

        body = {"filters": filters, "max_count": max_count}

        frames: List[pd.DataFrame] = []
        pages = self.client.paginate(
            COMMERCIAL_CONTENT_QUERY_PATH, fields, body, "commercial_contents", max_pages=max_pages
        )
        for data in pages:
            page = parse_data(CommercialContentQueryData, data, COMMERCIAL_CONTENT_QUERY_PATH)
            frames.append(
                transformer.rows_to_frame(
                    (transformer.flatten_commercial_content(c) for c in page.commercial_contents or []),
                    transformer.COMMERCIAL_CONTENT_COLUMNS,
                )
            )

        content = transformer.expand_commercial_content(
            transformer.concat_pages(frames, transformer.COMMERCIAL_CONTENT_COLUMNS)
        )
        logger.info(
            f"Total commercial content rows retrieved: {len(content)}",
            extra={"endpoint": COMMERCIAL_CONTENT_QUERY_PATH},
        )
        return content
