"""
Best-effort IP -> country enrichment against an ip-api compatible batch endpoint
"""

from typing import Dict, Iterable, List, Optional
import httpx
import logging

logger = logging.getLogger(__name__)


class IpCountryResolver:
    """
    Resolve IP addresses to ISO country codes in provider-capped batches.

    Any failure (transport, status, malformed body) leaves the affected IPs
    unresolved; callers treat a missing entry as a null country.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, batch_size: int = 100):
        self.client = client
        self.url = url
        self.batch_size = max(1, batch_size)
        self.failed_batches = 0

    async def resolve(self, ips: Iterable[Optional[str]]) -> Dict[str, str]:
        unique: List[str] = list(dict.fromkeys(ip for ip in ips if ip))
        resolved: Dict[str, str] = {}

        for i in range(0, len(unique), self.batch_size):
            chunk = unique[i:i + self.batch_size]
            try:
                response = await self.client.post(
                    self.url,
                    params={"fields": "status,countryCode,query"},
                    json=chunk,
                )
                response.raise_for_status()
                entries = response.json()
            except (httpx.HTTPError, ValueError) as e:
                self.failed_batches += 1
                logger.warning(f"IP lookup failed for batch of {len(chunk)}: {e}")
                continue

            if not isinstance(entries, list):
                self.failed_batches += 1
                logger.warning("IP lookup returned an unexpected payload")
                continue

            for entry in entries:
                if isinstance(entry, dict) and entry.get("status") == "success" and entry.get("countryCode"):
                    resolved[str(entry.get("query"))] = entry["countryCode"]

        return resolved
