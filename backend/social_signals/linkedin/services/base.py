"""
Base service for Apify actor runs.

Provides the HTTP client setup, run submission, status polling and dataset
retrieval shared by every actor-specific service.
"""
import asyncio
import httpx
from typing import Any, Dict, List, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError as PydanticValidationError

from social_signals.core.config import settings
from social_signals.core.errors import ProviderError

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)


class ApifyActorClient:
    """
    Base class for Apify actor services.

    One call to run_actor performs a full submit -> poll -> fetch cycle. There
    are no retries; any failure surfaces as ProviderError.
    """

    ACTOR_ID: Optional[str] = None
    PENDING_STATUSES = {"READY", "RUNNING"}
    SUCCEEDED_STATUS = "SUCCEEDED"

    def __init__(
        self,
        api_token: str,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client with the user's Apify API token.

        Args:
            api_token: Apify API token
            base_url: API root (defaults to APIFY_BASE_URL)
            poll_interval: Seconds between run status checks
            max_wait: Seconds to wait for a run before giving up
            timeout: Per-request HTTP timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        if not api_token:
            raise ValueError("Apify API token is required")

        self.api_token = api_token
        self.base_url = (base_url or settings.APIFY_BASE_URL).rstrip("/")
        self.poll_interval = settings.APIFY_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_wait = settings.APIFY_MAX_WAIT_SECONDS if max_wait is None else max_wait
        self.timeout = timeout or settings.APIFY_REQUEST_TIMEOUT_SECONDS
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        path: str,
        method: str = "GET",
        **kwargs
    ) -> Any:
        """
        Make HTTP request to the Apify API with error handling.

        Args:
            path: Path relative to the API root
            method: HTTP method (GET, POST, etc.)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            Decoded JSON response

        Raises:
            ProviderError: If the request fails or times out
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"[APIFY] {method} {url}")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(method=method, url=url, headers=self.headers, **kwargs)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"[APIFY] HTTP error: {e.response.status_code} - {e.response.text[:200]}")
                raise ProviderError(f"Apify request failed with status {e.response.status_code}") from e
            except httpx.TimeoutException as e:
                logger.error(f"[APIFY] Request timed out after {self.timeout}s: {path}")
                raise ProviderError(f"Apify request timed out: {path}") from e
            except httpx.HTTPError as e:
                logger.error(f"[APIFY] Request failed: {str(e)}")
                raise ProviderError(f"Apify request failed: {str(e)}") from e
            except ValueError as e:
                raise ProviderError(f"Apify returned invalid JSON for {path}") from e

    async def start_run(self, actor_id: str, run_input: Dict[str, Any]) -> Dict[str, Any]:
        """Submit a run; returns the run object (id, status, defaultDatasetId)."""
        data = await self._make_request(f"/acts/{actor_id}/runs", method="POST", json=run_input)
        run = data.get("data") if isinstance(data, dict) else None
        if not run or not run.get("id"):
            raise ProviderError(f"Apify did not return a run for actor {actor_id}")
        logger.info(f"[APIFY] Started run {run['id']} for {actor_id}")
        return run

    async def wait_for_run(self, run_id: str) -> Dict[str, Any]:
        """
        Poll a run until it leaves READY/RUNNING.

        Raises:
            ProviderError: If the run does not succeed or exceeds max_wait
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_wait

        while True:
            data = await self._make_request(f"/actor-runs/{run_id}")
            run = data.get("data") or {}
            run_status = run.get("status")

            if run_status not in self.PENDING_STATUSES:
                break

            if loop.time() >= deadline:
                raise ProviderError(
                    f"Apify run {run_id} did not finish within {self.max_wait:.0f}s",
                    run_id=run_id,
                    status=run_status,
                )
            await asyncio.sleep(self.poll_interval)

        if run_status != self.SUCCEEDED_STATUS:
            raise ProviderError(f"Apify run {run_id} ended with status {run_status}", run_id=run_id, status=run_status)

        return run

    async def get_dataset_items(self, dataset_id: str) -> List[Dict[str, Any]]:
        data = await self._make_request(
            f"/datasets/{dataset_id}/items",
            params={"format": "json", "clean": "true"},
        )
        if not isinstance(data, list):
            raise ProviderError(f"Apify dataset {dataset_id} did not return a list")
        return data

    async def run_actor(self, run_input: Dict[str, Any], actor_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run an actor to completion and return its raw dataset items.

        Args:
            run_input: Actor input
            actor_id: Actor to run (defaults to the service's ACTOR_ID)

        Returns:
            Raw dataset items

        Raises:
            ProviderError: On rejected submission, failed run, timeout or fetch failure
        """
        actor_id = actor_id or self.ACTOR_ID
        if not actor_id:
            raise ValueError("No actor id configured")

        run = await self.start_run(actor_id, run_input)
        finished = await self.wait_for_run(run["id"])

        dataset_id = finished.get("defaultDatasetId") or run.get("defaultDatasetId")
        if not dataset_id:
            raise ProviderError(f"Apify run {run['id']} has no dataset", run_id=run["id"])

        items = await self.get_dataset_items(dataset_id)
        logger.info(f"[APIFY] Run {run['id']} returned {len(items)} items")
        return items

    def _parse_items(self, model: Type[ItemT], items: List[Dict[str, Any]]) -> List[ItemT]:
        """Validate raw items into model instances, dropping invalid rows."""
        parsed: List[ItemT] = []
        for item in items:
            try:
                parsed.append(model.model_validate(item))
            except PydanticValidationError as e:
                logger.warning(f"[APIFY] Skipping invalid {model.__name__}: {e.errors()[:1]}")
        return parsed
