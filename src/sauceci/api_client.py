# api_client.py
from __future__ import annotations

import asyncio
import base64
import http.client
import json
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urljoin

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import settings
from .errors import RemoteInfrastructureError

# job_id reported by the grid while a test is still queued
JOB_NOT_READY = "job not ready"


# -------------------- Schemas --------------------

class StartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    test_ids: List[str] = Field(default_factory=list, alias="js tests")


class JobStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    job_id: Optional[str] = JOB_NOT_READY
    url: Optional[str] = None
    platform: Any = None
    result: Any = None
    completed: bool = False

    @property
    def started(self) -> bool:
        return bool(self.job_id) and self.job_id != JOB_NOT_READY


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed: bool = False
    tests: List[JobStatus] = Field(default_factory=list, alias="js tests")


# -------------------- Client --------------------

class SauceClient:
    """HTTP client for the remote grid's JS unit test REST API."""

    def __init__(
        self,
        username: str,
        key: str,
        base_url: Optional[str] = None,
        max_retries: int = 0,
        timeout: Optional[float] = None,
    ):
        """
        Initialize API client.

        Args:
            username: Account name, also part of every REST path
            key: Access key
            base_url: Base URL of the API (defaults to settings.SAUCE_API_URL)
            max_retries: Extra attempts for a request that failed at the transport level
            timeout: Socket timeout in seconds for a single request
        """
        self.username = username
        self.key = key
        self.base_url = (base_url or settings.SAUCE_API_URL).rstrip("/")
        self.max_retries = max(0, int(max_retries))
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    def _auth_header(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.key}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    def _request(self, method: str, path: str, data: Optional[dict] = None) -> Any:
        """
        Make a blocking HTTP request and return the decoded JSON body.

        Raises:
            RemoteInfrastructureError: If the request fails or the body is not UTF-8 JSON
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))

        req_headers = {
            "Content-Type": "application/json",
            "Authorization": self._auth_header(),
        }
        req_data = None
        if data is not None:
            req_data = json.dumps(data).encode("utf-8")

        req = urllib.request.Request(url, data=req_data, headers=req_headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
                return json.loads(body) if body else {}
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise RemoteInfrastructureError(
                f"Remote grid request failed: {e.code} {e.reason}",
                status=e.code,
                details={"url": url, "body": error_body[:500]} if error_body else {"url": url},
            )
        except urllib.error.URLError as e:
            raise RemoteInfrastructureError(f"Network error: {e.reason}", details={"url": url})
        except (OSError, http.client.HTTPException) as e:
            # read timeouts and dropped connections surface here, not as URLError
            raise RemoteInfrastructureError(f"Network error: {e!r}", details={"url": url})
        except UnicodeDecodeError as e:
            raise RemoteInfrastructureError(f"Invalid response encoding: {e}", details={"url": url})
        except json.JSONDecodeError as e:
            raise RemoteInfrastructureError(f"Invalid JSON response: {e}", details={"url": url})

    async def _call(self, method: str, path: str, data: Optional[dict] = None) -> Any:
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(self._request, method, path, data)
            except RemoteInfrastructureError as e:
                # client errors will not get better by retrying
                if attempt >= self.max_retries or (e.status is not None and 400 <= e.status < 500):
                    raise
                attempt += 1

    def _path(self, suffix: str) -> str:
        return f"/rest/v1/{quote(self.username, safe='')}/{suffix}"

    async def start_js_tests(self, body: Dict[str, Any]) -> List[str]:
        """Submit one test page for a list of platforms; returns one test id per accepted platform."""
        payload = await self._call("POST", self._path("js-tests"), body)
        try:
            return StartResponse.model_validate(payload).test_ids
        except ValidationError as e:
            raise RemoteInfrastructureError("Malformed js-tests response", details={"error": str(e)})

    async def get_status(self, test_id: str) -> JobStatus:
        """Fetch the status of a single submitted test."""
        payload = await self._call("POST", self._path("js-tests/status"), {"js tests": [test_id]})
        try:
            status = StatusResponse.model_validate(payload)
        except ValidationError as e:
            raise RemoteInfrastructureError("Malformed js-tests/status response", details={"error": str(e)})

        for test in status.tests:
            if test.id == test_id:
                # the envelope flag is authoritative for a single-id query
                return test.model_copy(update={"completed": status.completed})

        raise RemoteInfrastructureError(
            "Status response did not mention the requested test",
            details={"test_id": test_id},
        )
