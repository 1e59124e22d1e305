"""
Ad platform insight rows -> meta_insights / tiktok_insights
"""

from typing import Any, Dict, List, Optional
from ingestion.transformers.normalizer import (
    cost_per_click,
    cost_per_mille,
    key_part,
    parse_day,
    to_float,
    to_int,
    to_str,
)
from schemas.records import MetaInsightRecord, TikTokInsightRecord
from core.exceptions import NormalizationError


def _action_value(actions: Optional[List[Dict[str, Any]]], action_type: str) -> float:
    for action in actions or []:
        if action.get("action_type") == action_type:
            return to_float(action.get("value"))
    return 0.0


def _purchase_roas(row: Dict[str, Any]) -> Optional[float]:
    roas = row.get("purchase_roas")
    if isinstance(roas, list) and roas:
        value = roas[0].get("value")
        return to_float(value) if value not in (None, "") else None
    return None


def plain_account_id(account_id: str) -> str:
    """Strip the "act_" prefix Graph API account ids carry"""
    account_id = str(account_id)
    return account_id[4:] if account_id.startswith("act_") else account_id


def normalize_meta_insight(row: Dict[str, Any], account_id: str) -> MetaInsightRecord:
    """
    Field defaults:
    - impressions, clicks, spend: 0 when absent
    - purchases / purchase_value: value of the "purchase" action, 0 when absent
    - cpm, cpc: derived, None when the denominator is 0
    - roas: purchase_roas[0].value, None when absent
    - campaign_id, adset_id: None when absent; ad_id: "" when absent (key column)
    """
    day = parse_day(row.get("date_start"))
    if day is None:
        raise NormalizationError(
            "Insight row without date_start",
            context={"source": "meta", "record_id": row.get("ad_id")}
        )

    impressions = to_int(row.get("impressions"))
    clicks = to_int(row.get("clicks"))
    spend = to_float(row.get("spend"))

    return MetaInsightRecord(
        date=day,
        account_id=plain_account_id(account_id),
        ad_id=key_part(row.get("ad_id")),
        campaign_id=to_str(row.get("campaign_id")),
        adset_id=to_str(row.get("adset_id")),
        impressions=impressions,
        clicks=clicks,
        spend=spend,
        purchases=_action_value(row.get("actions"), "purchase"),
        purchase_value=_action_value(row.get("action_values"), "purchase"),
        cpm=cost_per_mille(spend, impressions),
        cpc=cost_per_click(spend, clicks),
        roas=_purchase_roas(row),
        raw=row,
    )


def flatten_tiktok_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Report rows nest values under "dimensions" and "metrics"; merge them flat"""
    flat = {k: v for k, v in row.items() if k not in ("dimensions", "metrics")}
    flat.update(row.get("dimensions") or {})
    flat.update(row.get("metrics") or {})
    return flat


def normalize_tiktok_insight(row: Dict[str, Any], advertiser_id: str) -> TikTokInsightRecord:
    """
    Field defaults:
    - impressions, clicks, spend, conversions, conversion_value: 0 when absent
    - cpm, cpc: derived, None when the denominator is 0
    - roas: conversion_value / spend (spend 0 counts as 1), None when there is no conversion value
    - campaign_id, adgroup_id: None when absent; ad_id: "" when absent (key column)
    """
    flat = flatten_tiktok_row(row)
    day = parse_day(flat.get("stat_time_day"))
    if day is None:
        raise NormalizationError(
            "Report row without stat_time_day",
            context={"source": "tiktok", "record_id": flat.get("ad_id")}
        )

    impressions = to_int(flat.get("impressions"))
    clicks = to_int(flat.get("clicks"))
    spend = to_float(flat.get("spend"))
    conversion_value = to_float(flat.get("conversions_value"))

    return TikTokInsightRecord(
        date=day,
        advertiser_id=str(advertiser_id),
        ad_id=key_part(flat.get("ad_id")),
        campaign_id=to_str(flat.get("campaign_id")),
        adgroup_id=to_str(flat.get("adgroup_id")),
        impressions=impressions,
        clicks=clicks,
        spend=spend,
        conversions=to_float(flat.get("conversion")),
        conversion_value=conversion_value,
        cpm=cost_per_mille(spend, impressions),
        cpc=cost_per_click(spend, clicks),
        roas=conversion_value / (spend or 1) if conversion_value > 0 else None,
        raw=row,
    )
