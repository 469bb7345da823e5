"""HTTP status fetcher for GenerationPoller."""

import logging

import httpx

from mealplanner.errors import AuthRequired, InvalidRequest, StoreUnavailable
from mealplanner.models import JobRecord

logger = logging.getLogger(__name__)

JOBS_PATH = "/api/meal-generation/jobs"


class HttpStatusFetcher:
    """
    Fetch a job through GET /api/meal-generation/jobs?jobId=...

    Maps responses onto what the poller understands:
    5xx -> StoreUnavailable (retry), 404 -> None (retry),
    401 -> AuthRequired (stop), other 4xx -> InvalidRequest (stop).
    Network errors propagate as httpx.HTTPError (retry).
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.headers = headers

    async def __call__(self, job_id: str) -> JobRecord | None:
        response = await self.client.get(JOBS_PATH, params={"jobId": job_id}, headers=self.headers)

        if response.status_code == 401:
            raise AuthRequired()
        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise StoreUnavailable(f"Status endpoint returned {response.status_code}")
        if response.status_code >= 400:
            raise InvalidRequest(f"Status endpoint rejected the request ({response.status_code})")

        jobs = response.json().get("jobs") or []
        if not jobs:
            return None
        return JobRecord.model_validate(jobs[0])

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpStatusFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
