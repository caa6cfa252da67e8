"""
HTTP Fonts API Adapter.

Implements FontsApiPort over the admin REST API with httpx.AsyncClient.
HTTP status codes and network errors are mapped onto the port's tagged
result variants; nothing here raises for a failed request.

Routes (relative to the configured admin API root):
- GET    fonts/status
- GET    fonts?filter=&source=
- POST   fonts/upload          raw body, X-Filename header (URL-encoded)
- DELETE fonts/{filename}
- POST   fonts/apply
- GET    fonts/apply/status?jobId=
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.core.entities import (
    ApplyJob,
    FontsStatus,
    JobHandle,
    Origin,
    PendingAddition,
    Resource,
    UploadedFont,
)
from src.core.ports.fonts_api import (
    ApplyChangesResult,
    Conflict,
    DeleteResult,
    Failure,
    Forbidden,
    JobStatusResult,
    ListResult,
    NotFound,
    Ok,
    StatusResult,
    TransportFailure,
    Unauthorized,
    UploadResult,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def _body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _message(body: dict[str, Any], default: str) -> str:
    return str(body.get("message") or body.get("error") or body.get("detail") or default)


def _common_failure(
    response: httpx.Response,
    *,
    default: str,
    forbidden: str = "Only admin can manage fonts",
) -> Unauthorized | Forbidden | Failure:
    """Map the status codes every route shares."""
    body = _body(response)
    if response.status_code == 401:
        return Unauthorized(_message(body, "Unauthorized"))
    if response.status_code == 403:
        return Forbidden(str(body.get("error") or body.get("detail") or forbidden))
    return Failure(_message(body, default), status_code=response.status_code)


class HttpFontsApi:
    """
    Fonts API client.

    The session is assumed to be authenticated already; an optional bearer
    token is forwarded as-is.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpFontsApi:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response | TransportFailure:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return TransportFailure()
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    # --- Read side ---

    async def get_status(self) -> StatusResult:
        response = await self._send("GET", "fonts/status")
        if isinstance(response, TransportFailure):
            return response
        if not response.is_success:
            return _common_failure(response, default="Failed to check fonts status")
        try:
            return Ok(FontsStatus.model_validate(_body(response)))
        except ValidationError as e:
            return Failure(f"Malformed fonts status: {e.error_count()} error(s)")

    async def list_fonts(
        self,
        name_filter: str = "",
        origin: Origin | None = None,
    ) -> ListResult:
        params: dict[str, str] = {}
        if name_filter:
            params["filter"] = name_filter
        if origin is not None:
            params["source"] = origin.to_wire()

        response = await self._send("GET", "fonts", params=params)
        if isinstance(response, TransportFailure):
            return response
        if not response.is_success:
            return _common_failure(response, default="Failed to get fonts list")
        try:
            fonts = [Resource.from_wire(item) for item in _body(response).get("fonts", [])]
        except ValidationError as e:
            return Failure(f"Malformed fonts list: {e.error_count()} error(s)")
        return Ok(fonts)

    # --- Write side ---

    async def upload(self, addition: PendingAddition) -> UploadResult:
        response = await self._send(
            "POST",
            "fonts/upload",
            content=addition.data,
            headers={
                "Content-Type": "application/octet-stream",
                "X-Filename": quote(addition.name, safe=""),
            },
        )
        if isinstance(response, TransportFailure):
            return response
        if response.status_code in (400, 413):
            body = _body(response)
            return ValidationFailure(_message(body, "Invalid font file"))
        if not response.is_success:
            return _common_failure(
                response,
                default="Upload failed",
                forbidden="Only admin can upload fonts",
            )
        try:
            return Ok(UploadedFont.model_validate(_body(response)))
        except ValidationError:
            return Ok(UploadedFont(filename=addition.name, size=addition.size))

    async def delete(self, file_id: str) -> DeleteResult:
        response = await self._send("DELETE", f"fonts/{quote(file_id, safe='')}")
        if isinstance(response, TransportFailure):
            return response
        if response.status_code == 404:
            return NotFound("Font file not found")
        if not response.is_success:
            return _common_failure(
                response,
                default="Failed to delete font",
                forbidden="Only admin can delete fonts",
            )
        return Ok(None)

    async def apply_changes(self) -> ApplyChangesResult:
        response = await self._send("POST", "fonts/apply")
        if isinstance(response, TransportFailure):
            return response

        body = _body(response)
        if response.status_code == 409:
            return await self._conflict(body)
        if response.status_code == 400:
            return ValidationFailure(_message(body, "Failed to start font generation"))
        if not response.is_success:
            return _common_failure(
                response,
                default="Failed to start font generation",
                forbidden="Only admin can apply font changes",
            )

        job_id = body.get("jobId")
        if not job_id:
            return Failure("Font generation started without a job id", status_code=response.status_code)
        return Ok(JobHandle(job_id=str(job_id)))

    async def _conflict(self, body: dict[str, Any]) -> Conflict | Failure:
        """Resolve the running job's id, asking the status route if needed."""
        message = _message(body, "Generation already in progress")
        job_id = body.get("jobId")
        if not job_id:
            status = await self.get_status()
            if isinstance(status, Ok) and status.value.current_job is not None:
                job_id = status.value.current_job.job_id
        if not job_id:
            return Failure(message, status_code=409)
        return Conflict(existing_job_id=str(job_id), message=message)

    async def get_job_status(self, job_id: str) -> JobStatusResult:
        response = await self._send("GET", "fonts/apply/status", params={"jobId": job_id})
        if isinstance(response, TransportFailure):
            return response
        if response.status_code == 404:
            return NotFound("Job not found")
        if not response.is_success:
            return _common_failure(response, default="Failed to get generation status")

        body = _body(response)
        # An idle generator, or one reporting another job, no longer knows ours
        if body.get("status") == "idle" or (body.get("jobId") and body.get("jobId") != job_id):
            return NotFound("Job not found")
        try:
            return Ok(ApplyJob.model_validate({**body, "jobId": job_id}))
        except ValidationError as e:
            return Failure(f"Malformed job status: {e.error_count()} error(s)")


def create_http_fonts_api(
    base_url: str,
    *,
    token: str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> HttpFontsApi:
    """Create the HTTP adapter."""
    return HttpFontsApi(base_url, token=token, timeout=timeout)
