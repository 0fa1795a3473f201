"""Solr search backend with bounded retries on transport failures."""

from typing import Any, Dict, List, Optional
import httpx
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..config.settings import settings
from ..core.exceptions import SearchError
from ..core.models import SavedQuery
from .base import ResultPage, SearchClient
from .records import SolrRecord
from ..utils.logging import get_logger

logger = get_logger(__name__)


class SolrSearchClient(SearchClient):
    """Query a Solr core's ``/select`` handler.

    Only transport-level failures (connection errors, timeouts) are retried;
    an HTTP error status means the query itself is bad or the core is down,
    and is reported immediately.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or settings.solr_url).rstrip("/")
        self.max_retries = max_retries or settings.solr_max_retries
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.solr_timeout,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    def _build_params(self, query: SavedQuery, sort: str, limit: int) -> List[tuple]:
        params: List[tuple] = [
            ("q", query.query),
            ("sort", sort),
            ("rows", limit),
            ("wt", "json"),
        ]
        params.extend(("fq", fq) for fq in query.all_filters())
        return params

    async def _fetch(self, params: List[tuple]) -> Dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                logger.debug("Querying Solr", extra={"url": self.base_url, "params": params})
                response = await self.client.get(f"{self.base_url}/select", params=params)
                response.raise_for_status()
                return response.json()
        raise SearchError("Solr query was not attempted")  # pragma: no cover

    async def execute_query(self, query: SavedQuery, sort: str, limit: int) -> ResultPage:
        params = self._build_params(query, sort, limit)
        try:
            payload = await self._fetch(params)
        except httpx.HTTPStatusError as e:
            raise SearchError(f"Solr returned HTTP {e.response.status_code}: {e}") from e
        except httpx.HTTPError as e:
            raise SearchError(f"Solr request failed: {e}") from e
        except ValueError as e:
            raise SearchError(f"Solr returned invalid JSON: {e}") from e
        try:
            docs = payload["response"]["docs"]
        except (KeyError, TypeError) as e:
            raise SearchError("Solr response has no response.docs") from e
        if not isinstance(docs, list):
            raise SearchError("Solr response.docs is not a list")
        logger.info(f"Solr returned {len(docs)} records")
        return [SolrRecord(doc) for doc in docs]

    async def close(self) -> None:
        await self.client.aclose()
