"""Client for the record API that owns onboarding trackers.

The dashboard never owns tracker data; it reads snapshots and PATCHes
sections through this client.  Upstream failures are translated into the
dashboard's error taxonomy:

    401 / 403          → StepNotReachedError   (driver hasn't reached the step)
    404                → ResourceNotFoundError
    other / transport  → RecordAPIError        (retryable)

Successful responses wrapped as ``{"data": ...}`` are unwrapped.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from drivedock.config import settings
from drivedock.middleware.exceptions import (
    RecordAPIError,
    ResourceNotFoundError,
    StepNotReachedError,
)
from drivedock.schemas.tracker import Section, Tracker
from drivedock.utils.cache import close_redis

logger = logging.getLogger(__name__)

SECTION_PATHS: dict[Section, str] = {
    Section.PREQUALIFICATION: "prequalifications",
    Section.PERSONAL_DETAILS: "application-form/personal-details",
    Section.EMPLOYMENT_HISTORY: "application-form/employment-history",
    Section.ACCIDENT_CRIMINAL: "application-form/accident-criminal",
    Section.IDENTIFICATIONS: "application-form/identifications",
    Section.EXTRAS: "application-form/extras",
    Section.QUIZ_RESULT: "quiz-results",
    Section.POLICIES_CONSENTS: "policies-consents",
    Section.DRIVE_TEST: "appraisal/drive-test",
    Section.CARRIERS_EDGE_TRAINING: "safety-processing/carriers-edge",
    Section.DRUG_TEST: "safety-processing/drug-test",
    Section.FLATBED_TRAINING: "appraisal/flatbed-training",
}


class RecordAPIClient:

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def fetch_tracker(self, tracker_id: str) -> Tracker:
        data = await self._request("GET", f"/{tracker_id}", resource="Tracker", ident=tracker_id)
        return Tracker.model_validate(data)

    async def fetch_section(self, tracker_id: str, section: Section) -> dict:
        return await self._request(
            "GET",
            f"/{tracker_id}/{SECTION_PATHS[section]}",
            resource=f"Section {section.value}",
            ident=tracker_id,
        )

    async def patch_section(self, tracker_id: str, section: Section, payload: dict) -> dict:
        return await self._request(
            "PATCH",
            f"/{tracker_id}/{SECTION_PATHS[section]}",
            json=payload,
            resource=f"Section {section.value}",
            ident=tracker_id,
        )

    async def change_company(self, tracker_id: str, company_id: str) -> Tracker:
        data = await self._request(
            "PATCH",
            f"/{tracker_id}/change-company",
            json={"companyId": company_id},
            resource="Tracker",
            ident=tracker_id,
        )
        return Tracker.model_validate(data)

    async def ping(self) -> bool:
        """Reachability probe for readiness checks."""
        try:
            await self.http.head("/")
        except httpx.HTTPError:
            return False
        return True

    async def _request(
        self,
        method: str,
        path: str,
        resource: str,
        ident: str,
        json: dict | None = None,
    ) -> dict:
        try:
            resp = await self.http.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"Record API {method} {path} failed: {e}")
            raise RecordAPIError(f"Record API unreachable: {e.__class__.__name__}") from e

        if resp.status_code in (401, 403):
            raise StepNotReachedError(_upstream_message(resp) or "Driver hasn't completed this step yet")
        if resp.status_code == 404:
            raise ResourceNotFoundError(resource, ident)
        if resp.is_error:
            logger.error(
                f"Record API {method} {path} returned {resp.status_code}",
                extra={"upstream_status": resp.status_code},
            )
            raise RecordAPIError(
                _upstream_message(resp) or f"Record API error ({resp.status_code})",
                upstream_status=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise RecordAPIError("Record API returned a non-JSON body") from e
        if isinstance(body, dict) and "data" in body:
            body = body["data"]
        return body or {}


def _upstream_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None


# ── Shared client lifecycle ──────────────────────────────────

_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            base_url=settings.record_api_url,
            timeout=settings.record_api_timeout_seconds,
            headers={"Accept": "application/json"},
        )
    return _http_client


async def get_record_api() -> RecordAPIClient:
    """FastAPI dependency."""
    return RecordAPIClient(get_http_client())


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Record API at {settings.record_api_url}")
    yield
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
    await close_redis()
