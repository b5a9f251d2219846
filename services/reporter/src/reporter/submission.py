"""Validation and multipart upload of a composed report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional

import httpx

from address_matcher import AddressTaxonomy, default_taxonomy
from geocoder import format_address

from reporter.draft import HazardType, ReportDraft
from reporter.settings import Settings

logger = logging.getLogger(__name__)

ErrorCategory = Literal[
    "validation",
    "auth",
    "access",
    "payload_too_large",
    "rate_limited",
    "server",
    "timeout",
    "network",
]


class ReportValidationError(ValueError):
    """Draft rejected locally; no request was sent."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class SubmissionError(Exception):
    """Upload failed after the request left the client.

    Attributes:
        category: One of `ErrorCategory`.
        message: User-facing message.
        status_code: HTTP status when the server answered, else None.
        details: Server-side validation messages, if any.
    """

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.category = category
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def retry_safe(self) -> bool:
        return self.category in ("timeout", "network")


@dataclass(frozen=True)
class DailyLimit:
    """Per-account report quota as returned by ``GET /reports/daily-limit``."""

    max_reports: int
    used_today: int
    remaining: int
    can_submit: bool
    resets_at: Optional[str] = None

    @property
    def message(self) -> str:
        if self.can_submit:
            plural = "" if self.remaining == 1 else "s"
            return f"{self.remaining} report{plural} remaining today"
        return f"You have reached your daily limit of {self.max_reports} reports. Please try again tomorrow."

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> Optional["DailyLimit"]:
        raw = body.get("dailyLimit")
        if not body.get("success", True) or not isinstance(raw, dict):
            return None
        try:
            max_reports = int(raw["maxReports"])
            used_today = int(raw.get("usedToday", 0))
            remaining = int(raw.get("remaining", max(0, max_reports - used_today)))
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring malformed daily limit body: %r", raw)
            return None
        return cls(
            max_reports=max_reports,
            used_today=used_today,
            remaining=remaining,
            can_submit=bool(raw.get("canSubmit", used_today < max_reports)),
            resets_at=raw.get("resetsAt"),
        )


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    daily_limit: Optional[DailyLimit] = None


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def error_from_response(response: httpx.Response) -> SubmissionError:
    """Map a non-2xx upload response to a categorized SubmissionError."""

    status = response.status_code
    body = _json_body(response)
    server_msg = body.get("error") or body.get("message")

    if status == 413:
        return SubmissionError(
            "payload_too_large",
            "File is too large. Please select a smaller image (max 5MB).",
            status_code=status,
        )
    if status == 429:
        return SubmissionError(
            "rate_limited",
            server_msg or "Daily report limit reached. Please try again tomorrow.",
            status_code=status,
        )
    if status == 400:
        raw_details = body.get("details")
        details: tuple[str, ...] = ()
        if isinstance(raw_details, list):
            details = tuple(
                str(d.get("msg") or d.get("message") or "")
                for d in raw_details
                if isinstance(d, dict)
            )
        if details:
            message = "Validation Error:\n" + "\n".join(f"• {d}" for d in details)
        else:
            message = f"Validation Error: {server_msg or 'Invalid form data'}"
        return SubmissionError("validation", message, status_code=status, details=details)
    if status == 401:
        return SubmissionError(
            "auth", "Authentication failed. Please log in again.", status_code=status
        )
    if status == 403:
        if body.get("frozen"):
            message = "Your account has been frozen. You cannot submit reports."
        else:
            message = server_msg or "You are not authorized to perform this action."
        return SubmissionError("access", message, status_code=status)
    if status >= 500:
        return SubmissionError("server", "Server error. Please try again later.", status_code=status)
    if status >= 400:
        return SubmissionError(
            "validation", server_msg or "Report submission failed.", status_code=status
        )
    return SubmissionError(
        "server", server_msg or "Report submission failed.", status_code=status
    )


class ReportSubmission:
    """Validates a ReportDraft and posts it to the report API.

    Args:
        settings: Upload endpoint, token, timeout and size limits.
        client: Shared async HTTP client; a short-lived one is created per
            submit when omitted.
        taxonomy: Address taxonomy used for code checks and labels.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        taxonomy: Optional[AddressTaxonomy] = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.taxonomy = taxonomy or default_taxonomy()

    @property
    def url(self) -> str:
        return self.settings.api_base_url.rstrip("/") + "/reports/user"

    @property
    def daily_limit_url(self) -> str:
        return self.settings.api_base_url.rstrip("/") + "/reports/daily-limit"

    def validate(self, draft: ReportDraft) -> None:
        """Raise ReportValidationError for the first problem found in `draft`."""

        if not draft.type:
            raise ReportValidationError("type", "Please select a report type.")
        try:
            HazardType(draft.type)
        except ValueError:
            raise ReportValidationError("type", f"Unknown report type: {draft.type}") from None

        if draft.location is None:
            raise ReportValidationError(
                "location",
                'Location is required. Please turn on "Auto-Detect Location" or take a photo with GPS enabled.',
            )
        if draft.image is None:
            raise ReportValidationError("image", "An image is required for this report.")
        if draft.image.size_bytes > self.settings.max_upload_bytes:
            raise ReportValidationError(
                "image",
                f"Image file is too large. Please select a file smaller than {self.settings.max_upload_mb}MB.",
            )
        if not draft.image.content_type.lower().startswith("image/"):
            raise ReportValidationError("image", "Please select a valid image file.")

        description = draft.description.strip()
        if description:
            if len(description) < self.settings.description_min_chars:
                raise ReportValidationError(
                    "description",
                    f"Description must be at least {self.settings.description_min_chars} characters",
                )
            if len(description) > self.settings.description_max_chars:
                raise ReportValidationError(
                    "description",
                    f"Description must be less than {self.settings.description_max_chars} characters",
                )

        if not self.taxonomy.is_consistent(draft.province, draft.city, draft.barangay):
            raise ReportValidationError(
                "address", "Please select a valid province, city and barangay."
            )

    def address_label(self, draft: ReportDraft) -> str:
        label = format_address(
            province=self.taxonomy.province_label(draft.province),
            city=self.taxonomy.city_label(draft.province, draft.city),
            barangay=self.taxonomy.barangay_label(draft.city, draft.barangay),
        )
        return label or draft.location_address

    def build_form(
        self, draft: ReportDraft
    ) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
        """Validate `draft` and build its multipart fields and files."""

        self.validate(draft)
        data = {
            "type": HazardType(draft.type).value,
            "province": draft.province,
            "city": draft.city,
            "barangay": draft.barangay,
            "description": draft.description.strip(),
            "location[address]": self.address_label(draft),
            "location[coordinates][latitude]": str(draft.location.latitude),
            "location[coordinates][longitude]": str(draft.location.longitude),
        }
        files = {
            "images": (draft.image.filename, draft.image.data, draft.image.content_type),
        }
        return data, files

    def _headers(self) -> dict[str, str]:
        if self.settings.api_token:
            return {"Authorization": f"Bearer {self.settings.api_token}"}
        return {}

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await client.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.settings.upload_timeout_s,
                **kwargs,
            )
        except httpx.TimeoutException as exc:
            raise SubmissionError("timeout", "Request timeout. Please try again.") from exc
        except httpx.TransportError as exc:
            raise SubmissionError(
                "network", "Cannot connect to server. Please check your internet connection."
            ) from exc

        if resp.status_code >= 400:
            raise error_from_response(resp)
        return resp

    async def _post_once(
        self, client: httpx.AsyncClient, data: dict[str, str], files: dict[str, Any]
    ) -> SubmissionResult:
        resp = await self._send(client, "POST", self.url, data=data, files=files)
        body = _json_body(resp)
        return SubmissionResult(
            success=bool(body.get("success", True)), status_code=resp.status_code, body=body
        )

    async def _fetch_daily_limit(self, client: httpx.AsyncClient) -> Optional[DailyLimit]:
        if not self.settings.api_token:
            return None
        resp = await self._send(client, "GET", self.daily_limit_url)
        return DailyLimit.from_body(_json_body(resp))

    async def _daily_limit_or_none(self, client: httpx.AsyncClient) -> Optional[DailyLimit]:
        try:
            return await self._fetch_daily_limit(client)
        except SubmissionError as exc:
            logger.warning("Daily limit check failed (%s, status=%s)", exc.category, exc.status_code)
            return None

    async def check_daily_limit(self) -> Optional[DailyLimit]:
        """Fetch today's report quota for the configured account.

        Returns:
            The quota, or None when no token is configured or the server
            response carries no quota.

        Raises:
            SubmissionError: Mapped the same way as upload failures.
        """

        client = self.client or httpx.AsyncClient()
        try:
            return await self._fetch_daily_limit(client)
        finally:
            if self.client is None:
                await client.aclose()

    async def submit(self, draft: ReportDraft) -> SubmissionResult:
        """Validate, upload and reset `draft` on success.

        The daily quota is checked first; a failed check does not block the
        upload. The returned result carries the quota as refreshed after it.

        Raises:
            ReportValidationError: Before any request when the draft is invalid.
            SubmissionError: When the quota is used up or the upload fails;
                timeouts and connection errors are retried
                `settings.upload_retries` extra times first.
        """

        data, files = self.build_form(draft)

        attempts = 1 + max(0, self.settings.upload_retries)
        client = self.client or httpx.AsyncClient()
        try:
            limit = await self._daily_limit_or_none(client)
            if limit is not None and not limit.can_submit:
                logger.warning("Daily report limit reached (%d/%d)", limit.used_today, limit.max_reports)
                raise SubmissionError("rate_limited", limit.message)

            for attempt in range(1, attempts + 1):
                try:
                    result = await self._post_once(client, data, files)
                    break
                except SubmissionError as exc:
                    if not exc.retry_safe or attempt == attempts:
                        logger.warning(
                            "Report upload failed (%s, status=%s)", exc.category, exc.status_code
                        )
                        raise
                    logger.warning("Report upload attempt %d failed (%s), retrying", attempt, exc.category)

            refreshed = await self._daily_limit_or_none(client)
        finally:
            if self.client is None:
                await client.aclose()

        logger.info("Report submitted (status %d)", result.status_code)
        draft.reset()
        return replace(result, daily_limit=refreshed)
