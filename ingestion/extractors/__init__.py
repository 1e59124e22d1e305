"""
Provider pipelines, one per source.

Each subclass of SourcePipeline owns one pagination shape:
    StripeSource: opaque cursor (has_more + starting_after)
    MetaSource: page-link (paging.next), capped
    TikTokSource: page number (page_info.total_page)
    MailerLiteSource: page number with early exit; memberships via links.next
    SteamSource: changed dates, then highwater-paged detailed sales
"""

from ingestion.extractors.stripe_extractor import StripeSource
from ingestion.extractors.meta_extractor import MetaSource
from ingestion.extractors.tiktok_extractor import TikTokSource
from ingestion.extractors.mailerlite_extractor import MailerLiteSource
from ingestion.extractors.steam_extractor import SteamSource

__all__ = ["StripeSource", "MetaSource", "TikTokSource", "MailerLiteSource", "SteamSource"]
