import asyncio

import httpx
import pytest

from geocoder import Coordinate
from reporter.draft import HazardType, ImageAsset, ReportDraft
from reporter.submission import (
    DailyLimit,
    ReportSubmission,
    ReportValidationError,
    SubmissionError,
    error_from_response,
)


def _draft(fakes, **overrides) -> ReportDraft:
    draft = ReportDraft(
        type=HazardType.POTHOLE.value,
        province="negros-occidental",
        city="kabankalan",
        barangay="tagoc",
        description="Deep pothole near the bridge",
        image=ImageAsset(
            data=fakes.jpeg_bytes(),
            content_type="image/jpeg",
            filename="road-alert-1700000000000.jpg",
            width=64,
            height=48,
        ),
        location=Coordinate(latitude=9.9906, longitude=122.8114),
        location_address="Tagoc, Kabankalan, Negros Occidental, Philippines",
    )
    for key, value in overrides.items():
        setattr(draft, key, value)
    return draft


OPEN_QUOTA = (200, {"success": True, "dailyLimit": {"maxReports": 5, "usedToday": 1, "remaining": 4, "canSubmit": True}})


class Recorder:
    """MockTransport handler returning scripted upload responses or raising errors.

    Quota lookups (GET) are answered with `limit` and kept apart from uploads.
    """

    def __init__(self, *outcomes, limit=OPEN_QUOTA):
        self.outcomes = list(outcomes)
        self.limit = limit
        self.requests: list[httpx.Request] = []
        self.limit_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        if request.method == "GET":
            self.limit_requests.append(request)
            outcome = self.limit
        else:
            self.requests.append(request)
            outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, json=body)


def _submit(settings, handler: Recorder, draft: ReportDraft):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await ReportSubmission(settings, client=client).submit(draft)

    return asyncio.run(run())


def test_successful_submit_posts_multipart_and_resets_draft(settings, fakes) -> None:
    handler = Recorder((201, {"success": True, "report": {"id": "r1"}}))
    draft = _draft(fakes)

    result = _submit(settings, handler, draft)

    assert result.success
    assert result.status_code == 201
    assert result.body["report"]["id"] == "r1"
    assert draft.type == "" and draft.image is None and draft.location is None

    (request,) = handler.requests
    assert str(request.url) == "http://reports.test/api/reports/user"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="type"\r\n\r\npothole' in body
    assert b'name="location[address]"\r\n\r\nTagoc, Kabankalan City, Negros Occidental' in body
    assert b'name="location[coordinates][latitude]"\r\n\r\n9.9906' in body
    assert b'name="images"; filename="road-alert-1700000000000.jpg"' in body


def test_build_form_falls_back_to_geocoder_address(settings, fakes) -> None:
    draft = _draft(fakes, province="", city="", barangay="")
    data, files = ReportSubmission(settings).build_form(draft)

    assert data["location[address]"] == "Tagoc, Kabankalan, Negros Occidental, Philippines"
    assert data["province"] == ""
    assert files["images"][2] == "image/jpeg"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"type": ""}, "type"),
        ({"type": "meteor"}, "type"),
        ({"location": None}, "location"),
        ({"image": None}, "image"),
        ({"description": "  ab  "}, "description"),
        ({"description": "x" * 501}, "description"),
        ({"city": "dumaguete"}, "address"),
        ({"province": "", "city": "kabankalan", "barangay": ""}, "address"),
        ({"barangay": "poblacion"}, "address"),
    ],
)
def test_validation_fails_before_any_request(settings, fakes, overrides, field) -> None:
    handler = Recorder((201, {"success": True}))
    draft = _draft(fakes, **overrides)

    with pytest.raises(ReportValidationError) as excinfo:
        _submit(settings, handler, draft)

    assert excinfo.value.field == field
    assert handler.requests == []
    assert handler.limit_requests == []


def test_empty_description_is_allowed(settings, fakes) -> None:
    ReportSubmission(settings).validate(_draft(fakes, description="   "))


def test_image_ceiling_and_type_checked(make_settings, fakes) -> None:
    tiny = make_settings(max_upload_mb=0)
    with pytest.raises(ReportValidationError, match="too large"):
        ReportSubmission(tiny).validate(_draft(fakes))

    draft = _draft(fakes)
    draft.image = ImageAsset(data=b"%PDF", content_type="application/pdf", filename="a.pdf", width=0, height=0)
    with pytest.raises(ReportValidationError, match="valid image"):
        ReportSubmission(make_settings()).validate(draft)


@pytest.mark.parametrize(
    "status, body, category, message",
    [
        (
            400,
            {"details": [{"msg": "Type is required"}, {"message": "Bad city"}]},
            "validation",
            "Validation Error:\n• Type is required\n• Bad city",
        ),
        (400, {"error": "Missing field"}, "validation", "Validation Error: Missing field"),
        (401, {}, "auth", "Authentication failed. Please log in again."),
        (403, {"frozen": True}, "access", "Your account has been frozen. You cannot submit reports."),
        (403, {"error": "Not a reporter"}, "access", "Not a reporter"),
        (413, {}, "payload_too_large", "File is too large. Please select a smaller image (max 5MB)."),
        (429, {}, "rate_limited", "Daily report limit reached. Please try again tomorrow."),
        (404, {"error": "Route not found"}, "validation", "Route not found"),
        (409, {"error": "Duplicate report"}, "validation", "Duplicate report"),
        (422, {"error": "bad field"}, "validation", "bad field"),
        (422, {}, "validation", "Report submission failed."),
        (500, {}, "server", "Server error. Please try again later."),
        (503, {"error": "down"}, "server", "Server error. Please try again later."),
    ],
)
def test_http_status_maps_to_category(settings, fakes, status, body, category, message) -> None:
    handler = Recorder((status, body))
    draft = _draft(fakes)

    with pytest.raises(SubmissionError) as excinfo:
        _submit(settings, handler, draft)

    err = excinfo.value
    assert err.category == category
    assert err.message == message
    assert err.status_code == status
    assert not err.retry_safe
    assert draft.type == HazardType.POTHOLE.value
    assert len(handler.requests) == 1


def test_timeout_is_retry_safe(settings, fakes) -> None:
    handler = Recorder(httpx.ReadTimeout("slow"))

    with pytest.raises(SubmissionError) as excinfo:
        _submit(settings, handler, _draft(fakes))

    assert excinfo.value.category == "timeout"
    assert excinfo.value.message == "Request timeout. Please try again."
    assert excinfo.value.retry_safe
    assert excinfo.value.status_code is None


def test_network_errors_are_retried_up_to_limit(make_settings, fakes) -> None:
    handler = Recorder(httpx.ConnectError("refused"))

    with pytest.raises(SubmissionError) as excinfo:
        _submit(make_settings(upload_retries=2), handler, _draft(fakes))

    assert excinfo.value.category == "network"
    assert excinfo.value.message == "Cannot connect to server. Please check your internet connection."
    assert len(handler.requests) == 3


def test_retry_then_success(make_settings, fakes) -> None:
    handler = Recorder(httpx.ConnectError("refused"), (201, {"success": True}))
    draft = _draft(fakes)

    result = _submit(make_settings(upload_retries=1), handler, draft)

    assert result.success
    assert len(handler.requests) == 2
    assert draft.image is None


def test_server_errors_are_not_retried(make_settings, fakes) -> None:
    handler = Recorder((500, {}))

    with pytest.raises(SubmissionError):
        _submit(make_settings(upload_retries=3), handler, _draft(fakes))

    assert len(handler.requests) == 1


def test_no_token_sends_no_authorization(make_settings, fakes) -> None:
    handler = Recorder((201, {"success": True}))
    _submit(make_settings(api_token=None), handler, _draft(fakes))
    assert "Authorization" not in handler.requests[0].headers


def _check_limit(settings, handler: Recorder):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await ReportSubmission(settings, client=client).check_daily_limit()

    return asyncio.run(run())


def test_check_daily_limit_parses_quota(settings) -> None:
    handler = Recorder(
        limit=(
            200,
            {
                "success": True,
                "dailyLimit": {
                    "maxReports": 5,
                    "usedToday": 4,
                    "remaining": 1,
                    "canSubmit": True,
                    "resetsAt": "2024-06-11T23:59:59.999Z",
                },
            },
        )
    )

    limit = _check_limit(settings, handler)

    assert limit == DailyLimit(
        max_reports=5, used_today=4, remaining=1, can_submit=True, resets_at="2024-06-11T23:59:59.999Z"
    )
    assert limit.message == "1 report remaining today"
    (request,) = handler.limit_requests
    assert str(request.url) == "http://reports.test/api/reports/daily-limit"
    assert request.headers["Authorization"] == "Bearer secret-token"


def test_check_daily_limit_maps_errors(settings) -> None:
    with pytest.raises(SubmissionError) as excinfo:
        _check_limit(settings, Recorder(limit=(401, {})))
    assert excinfo.value.category == "auth"

    with pytest.raises(SubmissionError) as excinfo:
        _check_limit(settings, Recorder(limit=httpx.ConnectError("refused")))
    assert excinfo.value.category == "network"


def test_check_daily_limit_needs_a_token(make_settings) -> None:
    handler = Recorder()
    assert _check_limit(make_settings(api_token=None), handler) is None
    assert handler.limit_requests == []


def test_malformed_quota_is_ignored() -> None:
    assert DailyLimit.from_body({"success": True, "dailyLimit": {"usedToday": 2}}) is None
    assert DailyLimit.from_body({"success": False, "error": "Server error while fetching daily limit"}) is None


def test_exhausted_quota_blocks_upload(settings, fakes) -> None:
    exhausted = (200, {"success": True, "dailyLimit": {"maxReports": 5, "usedToday": 5, "remaining": 0, "canSubmit": False}})
    handler = Recorder((201, {"success": True}), limit=exhausted)
    draft = _draft(fakes)

    with pytest.raises(SubmissionError) as excinfo:
        _submit(settings, handler, draft)

    assert excinfo.value.category == "rate_limited"
    assert excinfo.value.message == "You have reached your daily limit of 5 reports. Please try again tomorrow."
    assert handler.requests == []
    assert draft.image is not None


def test_failed_quota_check_does_not_block_upload(settings, fakes) -> None:
    handler = Recorder((201, {"success": True}), limit=(500, {"success": False}))

    result = _submit(settings, handler, _draft(fakes))

    assert result.success
    assert result.daily_limit is None
    assert len(handler.requests) == 1


def test_quota_is_refreshed_after_upload(settings, fakes) -> None:
    handler = Recorder((201, {"success": True}))

    result = _submit(settings, handler, _draft(fakes))

    assert len(handler.limit_requests) == 2
    assert result.daily_limit.remaining == 4


def test_other_client_errors_are_validation_errors() -> None:
    err = error_from_response(httpx.Response(422, json={"error": "bad field"}))
    assert (err.category, err.message, err.status_code) == ("validation", "bad field", 422)


def test_build_form_rejects_incomplete_draft(settings, fakes) -> None:
    with pytest.raises(ReportValidationError) as excinfo:
        ReportSubmission(settings).build_form(_draft(fakes, image=None))
    assert excinfo.value.field == "image"
