"""End-to-end tests for the query functions against a mocked TikTok API."""

import json
from datetime import date

import httpx
import pytest

from tiktokcomm import adlib
from tiktokcomm.auth.store import ENV_TOKEN
from tiktokcomm.core.errors import AuthRequiredError, HttpError, ValidationError

from conftest import ADLIB_URL, OAUTH_URL, make_ad, ok

AD_QUERY_URL = f"{ADLIB_URL}/ad/query/"
AD_DETAIL_URL = f"{ADLIB_URL}/ad/detail/"
AD_REPORT_URL = f"{ADLIB_URL}/ad/report/"
ADVERTISER_URL = f"{ADLIB_URL}/advertiser/query/"
CONTENT_URL = f"{ADLIB_URL}/commercial_content/query/"

AD_TABLE_COLUMNS = {
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
}


def detail_response(request):
    ad_id = json.loads(request.content)["ad_id"]
    return httpx.Response(
        200,
        json=ok(
            {
                "ad": {
                    "id": ad_id,
                    "status": "DETAIL_STATUS",
                    "status_statement": f"statement {ad_id}",
                    "first_shown_date": "20000101",
                    "reach": {"unique_users_seen": "1M-10M"},
                },
                "advertiser": {
                    "business_id": 1,
                    "tiktok_account": {"follower_count": ad_id * 10},
                },
                "ad_group": {"targeting_info": {"country": ["DE"]}},
            }
        ),
    )


class TestQueryAds:
    def test_single_page_scenario(self, api_mock, endpoints):
        route = api_mock.post(AD_QUERY_URL).mock(
            return_value=httpx.Response(
                200,
                json=ok({"ads": [make_ad(i) for i in range(1, 6)], "has_more": False, "search_id": "s-1"}),
            )
        )

        ads = endpoints.query_ads(
            start_date="2024-01-01",
            end_date="2024-03-31",
            country_code="DE",
            search_term="example",
            max_count=5,
            max_pages=1,
        )

        assert len(ads) == 5
        assert set(ads.columns) == AD_TABLE_COLUMNS
        assert route.call_count == 1
        body = json.loads(route.calls.last.request.content)
        assert body == {
            "filters": {
                "ad_published_date_range": {"min": "20240101", "max": "20240331"},
                "country_code": "DE",
            },
            "search_term": "example",
            "search_type": "exact_phrase",
            "max_count": 5,
        }
        fields = route.calls.last.request.url.params["fields"].split(",")
        assert "ad.id" in fields and "advertiser.paid_for_by" in fields

    def test_user_range_and_advertiser_filters(self, api_mock, endpoints):
        route = api_mock.post(AD_QUERY_URL).mock(
            return_value=httpx.Response(200, json=ok({"ads": [], "has_more": False}))
        )

        ads = endpoints.query_ads(advertiser_ids=[7057157514558702338], min_users="10K")

        assert ads.empty
        filters = json.loads(route.calls.last.request.content)["filters"]
        assert filters == {
            "advertiser_business_ids": ["7057157514558702338"],
            "unique_users_seen_size_range": {"min": "10K", "max": "1B"},
        }

    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({"start_date": "2024-01-01"}, {"min": "20240101"}),
            ({"end_date": "2024-03-31"}, {"max": "20240331"}),
        ],
    )
    def test_open_ended_date_range_omits_missing_bound(self, api_mock, endpoints, kwargs, expected):
        route = api_mock.post(AD_QUERY_URL).mock(
            return_value=httpx.Response(200, json=ok({"ads": [], "has_more": False}))
        )

        endpoints.query_ads(**kwargs)

        filters = json.loads(route.calls.last.request.content)["filters"]
        assert filters["ad_published_date_range"] == expected

    def test_rows_accumulate_across_pages(self, api_mock, endpoints):
        api_mock.post(AD_QUERY_URL).mock(
            side_effect=[
                httpx.Response(200, json=ok({"ads": [make_ad(1), make_ad(2)], "has_more": True, "search_id": "a"})),
                httpx.Response(200, json=ok({"ads": [make_ad(3)], "has_more": True, "search_id": "b"})),
                httpx.Response(200, json=ok({"ads": [make_ad(2)], "has_more": False, "search_id": "c"})),
            ]
        )

        ads = endpoints.query_ads(max_count=2)

        # server order, duplicates kept
        assert ads["id"].tolist() == [1, 2, 3, 2]
        assert ads["first_shown_date"].tolist()[0] == date(2024, 1, 5)

    def test_include_details_left_joins_without_overwriting(self, api_mock, endpoints):
        api_mock.post(AD_QUERY_URL).mock(
            return_value=httpx.Response(
                200,
                json=ok({"ads": [make_ad(1, "active"), make_ad(2, "inactive")], "has_more": False}),
            )
        )
        detail = api_mock.post(AD_DETAIL_URL).mock(side_effect=detail_response)

        ads = endpoints.query_ads(include_details=True)

        assert detail.call_count == 2
        assert ads["status"].tolist() == ["active", "inactive"]
        assert ads["first_shown_date"].tolist() == [date(2024, 1, 5), date(2024, 1, 5)]
        assert ads["status_statement"].tolist() == ["statement 1", "statement 2"]
        assert ads["follower_count"].tolist() == [10, 20]
        assert ads["reach"].tolist() == ["10K-100K", "10K-100K"]
        assert ads["reach_unique_users_seen"].tolist() == ["1M-10M", "1M-10M"]
        assert ads["targeting_info_country"].tolist() == [["DE"], ["DE"]]

    def test_tolerant_returns_partial_table(self, api_mock, endpoints):
        api_mock.post(AD_QUERY_URL).mock(
            side_effect=[
                httpx.Response(200, json=ok({"ads": [make_ad(1)], "has_more": True, "search_id": "a"})),
                httpx.Response(500, json={"error": {"message": "internal"}}),
            ]
        )

        ads = endpoints.query_ads(tolerant=True)

        assert ads["id"].tolist() == [1]

    def test_failure_is_fatal_by_default(self, api_mock, endpoints):
        api_mock.post(AD_QUERY_URL).mock(
            return_value=httpx.Response(500, json={"error": {"message": "internal"}})
        )

        with pytest.raises(HttpError) as exc_info:
            endpoints.query_ads()

        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start_date": "2022-09-30", "end_date": "2023-01-01"},
            {"start_date": "2024-03-01", "end_date": "2024-01-01"},
            {"search_term": "x" * 51},
            {"max_count": 51},
            {"max_pages": 0},
            {"min_users": "lots"},
            {"search_type": "anything"},
        ],
    )
    def test_validation_before_any_request(self, api_mock, endpoints, kwargs):
        route = api_mock.post(AD_QUERY_URL)

        with pytest.raises(ValidationError):
            endpoints.query_ads(**kwargs)

        assert not route.called


class TestAdDetails:
    def test_single_row(self, api_mock, endpoints):
        route = api_mock.post(AD_DETAIL_URL).mock(side_effect=detail_response)

        details = endpoints.get_ad_details("104836593772645")

        assert len(details) == 1
        assert details.loc[0, "id"] == 104836593772645
        assert json.loads(route.calls.last.request.content) == {"ad_id": 104836593772645}
        assert "ad_group.targeting_info" in route.calls.last.request.url.params["fields"]

    def test_non_numeric_id_rejected(self, api_mock, endpoints):
        route = api_mock.post(AD_DETAIL_URL)

        with pytest.raises(ValidationError):
            endpoints.get_ad_details("not-an-id")

        assert not route.called

    def test_http_error_is_fatal(self, api_mock, endpoints):
        api_mock.post(AD_DETAIL_URL).mock(
            return_value=httpx.Response(404, json={"error": {"message": "ad not found"}})
        )

        with pytest.raises(HttpError, match="ad not found"):
            endpoints.get_ad_details(1)


class TestQueryAdvertisers:
    def test_scenario(self, api_mock, endpoints):
        advertisers = [
            {"business_id": 1000 + i, "business_name": f"Awesome {i}", "country_code": "DE"}
            for i in range(25)
        ]
        route = api_mock.post(ADVERTISER_URL).mock(
            return_value=httpx.Response(200, json=ok({"advertisers": advertisers}))
        )

        table = endpoints.query_advertisers(search_term="awesome", max_count=25)

        assert len(table) == 25
        assert set(table.columns) == {"business_id", "business_name", "country_code"}
        assert json.loads(route.calls.last.request.content) == {"search_term": "awesome", "max_count": 25}
        assert route.call_count == 1

    @pytest.mark.parametrize("term", ["", None, "y" * 51])
    def test_search_term_required(self, api_mock, endpoints, term):
        route = api_mock.post(ADVERTISER_URL)

        with pytest.raises(ValidationError):
            endpoints.query_advertisers(search_term=term)

        assert not route.called


class TestCommercialContent:
    def test_pages_brands_and_videos(self, api_mock, endpoints):
        item = {
            "id": "cc-1",
            "create_timestamp": 1704067200,
            "create_date": "20240101",
            "label": "Paid partnership",
            "brand_names": ["Brand A", "Brand B"],
            "creator": {"username": "creator_one"},
            "videos": [{"url": "https://v/1.mp4", "cover_image_url": "https://c/1.jpg"}],
        }
        second = dict(item, id="cc-2", brand_names=["Brand C"])
        route = api_mock.post(CONTENT_URL).mock(
            side_effect=[
                httpx.Response(200, json=ok({"commercial_contents": [item], "has_more": True, "search_id": "x"})),
                httpx.Response(200, json=ok({"commercial_contents": [second], "has_more": False})),
            ]
        )

        table = endpoints.query_commercial_content(
            "2024-01-01", "2024-01-09", creator_country_code="FR", creator_usernames=["creator_one"]
        )

        assert table["id"].tolist() == ["cc-1", "cc-1", "cc-2"]
        assert table["brand_names"].tolist() == ["Brand A", "Brand B", "Brand C"]
        assert table["videos_1_url"].tolist() == ["https://v/1.mp4"] * 3
        assert "videos" not in table.columns
        first_body = json.loads(route.calls[0].request.content)
        assert first_body["filters"] == {
            "content_published_date_range": {"min": "20240101", "max": "20240109"},
            "creator_country_code": "FR",
            "creator_usernames": ["creator_one"],
        }
        assert json.loads(route.calls[1].request.content)["search_id"] == "x"

    def test_date_rule(self, api_mock, endpoints):
        route = api_mock.post(CONTENT_URL)

        with pytest.raises(ValidationError):
            endpoints.query_commercial_content("2022-01-01", "2022-12-01")

        assert not route.called


class TestAdReport:
    def test_report_table(self, api_mock, endpoints):
        route = api_mock.post(AD_REPORT_URL).mock(
            return_value=httpx.Response(
                200,
                json=ok({"count_time_series_by_country": {"DE": [{"date": "20230102", "count": 12}]}}),
            )
        )

        report = endpoints.get_ad_report("2023-01-02", "2023-01-09", country_code="DE", advertiser_ids="7057157514558702338")

        assert report.to_dict("records") == [{"country": "DE", "date": date(2023, 1, 2), "count": 12}]
        assert json.loads(route.calls.last.request.content)["filters"]["advertiser_business_ids"] == [
            "7057157514558702338"
        ]


class TestModuleLevelApi:
    @pytest.fixture(autouse=True)
    def fresh_client(self):
        adlib.reset_client()
        yield
        adlib.reset_client()

    def test_query_requires_authentication(self, api_mock):
        route = api_mock.post(ADVERTISER_URL)

        with pytest.raises(AuthRequiredError):
            adlib.query_advertisers("awesome")

        assert not route.called

    def test_authenticate_then_query(self, api_mock, tmp_path):
        api_mock.post(OAUTH_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "shared", "expires_in": 7200, "token_type": "Bearer"})
        )
        route = api_mock.post(ADVERTISER_URL).mock(
            return_value=httpx.Response(200, json=ok({"advertisers": [{"business_id": 1}]}))
        )
        env_file = tmp_path / ".env"

        adlib.authenticate("key", "secret", env_file=str(env_file))
        table = adlib.query_advertisers("awesome")

        assert len(table) == 1
        assert route.calls.last.request.headers["authorization"] == "Bearer shared"
        assert "shared" in env_file.read_text()
        assert adlib.get_token().access_token == "shared"

    def test_token_from_environment(self, api_mock, monkeypatch, valid_token):
        monkeypatch.setenv(ENV_TOKEN, valid_token.model_dump_json())
        route = api_mock.post(ADVERTISER_URL).mock(
            return_value=httpx.Response(200, json=ok({"advertisers": []}))
        )

        assert adlib.query_advertisers("awesome").empty
        assert route.calls.last.request.headers["authorization"] == "Bearer valid_access_token"
