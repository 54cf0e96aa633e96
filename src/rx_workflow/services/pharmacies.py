"""Pharmacy directory client (read-only)."""

import logging
from typing import Optional

from rx_workflow.config import settings
from rx_workflow.schemas.pharmacy import PharmacySummary
from rx_workflow.services.api_client import ApiClient, parse_payload
from rx_workflow.services.cache import cached_pharmacy_search

logger = logging.getLogger(__name__)


class PharmacyDirectory:
    """Keyword search over pharmacy names and addresses."""

    def __init__(self, api: ApiClient, page_size: Optional[int] = None):
        self.api = api
        self.page_size = page_size or settings.pharmacy_search_size

    @property
    def cache_scope(self) -> str:
        return f"{self.api.base_url}|{self.page_size}"

    @cached_pharmacy_search
    async def search(self, keyword: str) -> tuple[PharmacySummary, ...]:
        """Return at most `page_size` candidates in server order."""
        payload = await self.api.request(
            "GET", "/pharmacies", params={"keyword": keyword, "size": self.page_size}
        )
        results = parse_payload(list[PharmacySummary], payload)
        logger.debug("Pharmacy search '%s' returned %s results", keyword, len(results))
        return tuple(results[: self.page_size])
