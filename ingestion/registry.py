"""
Static registry of source pipelines
"""

from typing import Dict, Iterable, List, Optional, Type
import httpx
import logging

from core.config import Settings
from ingestion.archive import RawArchive
from ingestion.base import SourcePipeline
from ingestion.extractors import MailerLiteSource, MetaSource, SteamSource, StripeSource, TikTokSource
from models.base import SourceId

logger = logging.getLogger(__name__)

PIPELINES: Dict[SourceId, Type[SourcePipeline]] = {
    SourceId.STRIPE: StripeSource,
    SourceId.META: MetaSource,
    SourceId.TIKTOK: TikTokSource,
    SourceId.MAILERLITE: MailerLiteSource,
    SourceId.STEAM: SteamSource,
}

ALL_SOURCES: List[SourceId] = list(PIPELINES)


def parse_sources(names: Optional[Iterable[str]]) -> List[SourceId]:
    """
    Map requested names to known source ids, keeping order.

    None means every source. Unknown names are dropped with a warning.
    """
    if names is None:
        return list(ALL_SOURCES)

    selected: List[SourceId] = []
    for name in names:
        try:
            source = SourceId(str(name).strip().lower())
        except ValueError:
            logger.warning(f"Ignoring unknown source: {name}")
            continue
        if source not in selected:
            selected.append(source)
    return selected


def build_pipeline(
    source: SourceId,
    settings: Settings,
    http_client: httpx.AsyncClient,
    archive: Optional[RawArchive] = None
) -> SourcePipeline:
    return PIPELINES[source](settings, http_client, archive=archive)
