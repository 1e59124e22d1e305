"""
Unit tests for normalizers and enrichment
"""

import hashlib
import json
import pytest
import httpx
from datetime import date, datetime, timezone
from core.exceptions import NormalizationError
from ingestion.transformers.geo import IpCountryResolver
from ingestion.transformers.insights import normalize_meta_insight, normalize_tiktok_insight
from ingestion.transformers.normalizer import cost_per_click, cost_per_mille, parse_day, to_float, to_int
from ingestion.transformers.orders import normalize_stripe_session
from ingestion.transformers.sales import aggregate_sales, normalize_sale_line
from ingestion.transformers.subscribers import enrich_countries, normalize_membership, normalize_subscriber


class TestCoercion:

    def test_numeric_strings(self):
        assert to_float("12.5") == 12.5
        assert to_int("10.0") == 10
        assert to_int(None) == 0
        assert to_float("n/a") == 0.0

    def test_derived_metrics(self):
        assert cost_per_click(100.0, 10) == 10.0
        assert cost_per_mille(100.0, 2000) == 50.0

    def test_derived_metrics_without_denominator(self):
        assert cost_per_click(100.0, 0) is None
        assert cost_per_mille(5.0, 0) is None

    def test_parse_day_formats(self):
        assert parse_day("2024/01/31") == date(2024, 1, 31)
        assert parse_day("2024-01-31 00:00:00") == date(2024, 1, 31)
        assert parse_day("") is None


class TestStripeNormalizer:

    def test_session_mapping(self, stripe_sessions):
        record = normalize_stripe_session(stripe_sessions(7))

        assert record.id == "cs_test_0007"
        assert record.checkout_session_id == "cs_test_0007"
        assert record.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert record.amount == 1007
        assert record.currency == "eur"
        assert record.status == "paid"
        assert record.customer_email_hash == hashlib.sha256(b"buyer7@example.com").hexdigest()
        assert record.product_id == "prod_1"
        assert record.price_id == "price_1"
        assert record.fbp == "fb.1.123"
        assert record.fbc is None
        assert record.ttclid == "tt-1"
        assert record.country == "FR"
        assert record.checkout_metadata == {"fbp": "fb.1.123", "ttclid": "tt-1"}

    def test_defaults_for_sparse_session(self):
        record = normalize_stripe_session({"id": "cs_1", "created": 1704067200})

        assert record.amount == 0
        assert record.currency == "eur"
        assert record.status == "unknown"
        assert record.customer_email_hash is None
        assert record.product_id is None
        assert record.checkout_metadata == {}

    def test_expanded_product(self):
        session = {
            "id": "cs_2",
            "created": 1704067200,
            "line_items": {"data": [{"price": {"id": "price_9", "product": {"id": "prod_9", "name": "Game"}}}]},
        }

        assert normalize_stripe_session(session).product_id == "prod_9"

    def test_missing_id_rejected(self):
        with pytest.raises(NormalizationError):
            normalize_stripe_session({"created": 1704067200})


class TestInsightNormalizers:

    def test_meta_row(self):
        row = {
            "date_start": "2024-01-02",
            "date_stop": "2024-01-02",
            "campaign_id": "c1",
            "ad_id": "a1",
            "impressions": "2000",
            "clicks": "10",
            "spend": "100",
            "actions": [
                {"action_type": "link_click", "value": "9"},
                {"action_type": "purchase", "value": "3"},
            ],
            "action_values": [{"action_type": "purchase", "value": "150.5"}],
            "purchase_roas": [{"action_type": "omni_purchase", "value": "1.505"}],
        }

        record = normalize_meta_insight(row, "act_1234")

        assert record.key() == (date(2024, 1, 2), "1234", "a1")
        assert record.adset_id is None
        assert record.cpc == 10.0
        assert record.cpm == 50.0
        assert record.purchases == 3.0
        assert record.purchase_value == 150.5
        assert record.roas == 1.505
        assert record.raw == row

    def test_meta_row_without_activity(self):
        record = normalize_meta_insight({"date_start": "2024-01-02"}, "1234")

        assert record.ad_id == ""
        assert record.impressions == 0
        assert record.cpc is None
        assert record.cpm is None
        assert record.roas is None
        assert record.purchases == 0.0

    def test_tiktok_nested_row(self):
        row = {
            "dimensions": {"stat_time_day": "2024-01-02 00:00:00", "ad_id": "t1"},
            "metrics": {"spend": "50", "impressions": "1000", "clicks": "5", "conversion": "2", "conversions_value": "75"},
        }

        record = normalize_tiktok_insight(row, "adv_1")

        assert record.key() == (date(2024, 1, 2), "adv_1", "t1")
        assert record.spend == 50.0
        assert record.cpc == 10.0
        assert record.cpm == 50.0
        assert record.conversions == 2.0
        assert record.roas == 1.5

    def test_tiktok_roas_with_zero_spend(self):
        row = {"stat_time_day": "2024-01-02", "ad_id": "t1", "spend": "0", "conversions_value": "30"}

        record = normalize_tiktok_insight(row, "adv_1")

        assert record.roas == 30.0
        assert record.cpc is None

    def test_tiktok_roas_without_value(self):
        record = normalize_tiktok_insight({"stat_time_day": "2024-01-02", "spend": "10"}, "adv_1")

        assert record.roas is None


class TestSubscriberNormalizer:

    def test_subscriber_mapping(self):
        record = normalize_subscriber({
            "id": 42,
            "email": "Fan@Example.com",
            "status": "active",
            "subscribed_at": "2024-01-18 10:00:00",
            "fields": {"country": "FR"},
        })

        assert record.subscriber_id == "42"
        assert record.email_hash == hashlib.sha256(b"fan@example.com").hexdigest()
        assert record.created_at == datetime(2024, 1, 18, 10, 0, tzinfo=timezone.utc)
        assert record.country == "FR"

    def test_membership(self):
        membership = normalize_membership({"id": "7", "subscribed_at": "2024-01-01 00:00:00"}, "g1")

        assert membership.key() == ("7", "g1")
        assert membership.added_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestCountryEnrichment:

    @pytest.mark.asyncio
    async def test_missing_countries_filled_from_ip(self, mock_http):
        def handler(request):
            ips = json.loads(request.content)
            return httpx.Response(200, json=[
                {"status": "success", "countryCode": "DE", "query": ip} if ip == "1.2.3.4"
                else {"status": "fail", "query": ip}
                for ip in ips
            ])

        client = mock_http(handler)
        records = [
            normalize_subscriber({"id": "1", "fields": {"country": "FR"}, "ip_address": "9.9.9.9"}),
            normalize_subscriber({"id": "2", "ip_address": "1.2.3.4"}),
            normalize_subscriber({"id": "3", "optin_ip": "5.6.7.8"}),
            normalize_subscriber({"id": "4"}),
        ]

        enriched = await enrich_countries(records, IpCountryResolver(client, "http://geo.test/batch"))

        assert [r.country for r in enriched] == ["FR", "DE", None, None]
        assert len(client.requests) == 1
        assert sorted(json.loads(client.requests[0].content)) == ["1.2.3.4", "5.6.7.8"]

    @pytest.mark.asyncio
    async def test_lookup_batches_capped(self, mock_http):
        client = mock_http(lambda request: httpx.Response(200, json=[]))
        resolver = IpCountryResolver(client, "http://geo.test/batch", batch_size=100)

        await resolver.resolve(f"10.0.{i // 256}.{i % 256}" for i in range(250))

        sizes = [len(json.loads(r.content)) for r in client.requests]
        assert sizes == [100, 100, 50]

    @pytest.mark.asyncio
    async def test_lookup_failure_degrades_to_none(self, mock_http):
        client = mock_http(lambda request: httpx.Response(503, text="busy"))
        resolver = IpCountryResolver(client, "http://geo.test/batch")
        records = [normalize_subscriber({"id": "2", "ip_address": "1.2.3.4"})]

        enriched = await enrich_countries(records, resolver)

        assert enriched[0].country is None
        assert resolver.failed_batches == 1


class TestSteamNormalizer:

    def test_lines_sharing_a_key_are_summed(self):
        lines = [
            {"date": "2024/01/02", "primary_appid": 480, "packageid": 1, "country_code": "FR", "currency": "EUR",
             "gross_units_sold": 2, "gross_sales_usd": "19.98", "net_units_sold": 2, "net_sales_usd": "17.00"},
            {"date": "2024/01/02", "primary_appid": 480, "packageid": 2, "country_code": "FR", "currency": "EUR",
             "gross_units_sold": 1, "gross_sales_usd": "9.99", "net_units_sold": 0, "net_sales_usd": "0",
             "gross_units_returned": 1},
            {"date": "2024/01/02", "primary_appid": 480, "country_code": "US", "currency": "USD",
             "gross_units_sold": 4, "gross_sales_usd": "39.96", "net_units_sold": 4, "net_sales_usd": "34.00"},
        ]

        aggregated = aggregate_sales([normalize_sale_line(line) for line in lines])

        assert len(aggregated) == 2
        fr = next(r for r in aggregated if r.country == "FR")
        assert fr.key() == (date(2024, 1, 2), "480", "FR", "EUR")
        assert fr.units == 3
        assert fr.refunds == 1
        assert fr.net_units == 2
        assert fr.gross_revenue == pytest.approx(29.97)
        assert len(fr.raw["lines"]) == 2

    def test_missing_country_is_empty_key_part(self):
        record = normalize_sale_line({"date": "2024/01/02", "appid": 10})

        assert record.country == ""
        assert record.currency == ""
        assert record.source == "api"

    def test_line_without_app_rejected(self):
        with pytest.raises(NormalizationError):
            normalize_sale_line({"date": "2024/01/02"})
