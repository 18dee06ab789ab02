"""aiohttp routes for the submission and reward-claim API."""

from __future__ import annotations

import logging

from aiohttp import web

from proofdrop.api.service import SubmissionService
from proofdrop.errors import (
    ClaimPendingError,
    CollaboratorError,
    ConfigurationError,
    ConflictError,
    NotApprovedError,
    NotFoundError,
    RewardError,
    UnauthorizedError,
    ValidationError,
)

log = logging.getLogger(__name__)

MODERATOR_KEY_HEADER = "X-Moderator-Key"
DEFAULT_ACTIVITY_LIMIT = 20
MAX_ACTIVITY_LIMIT = 200

# Most specific classes first
ERROR_STATUS: list[tuple[type[RewardError], int]] = [
    (ClaimPendingError, 202),
    (CollaboratorError, 500),
    (ValidationError, 400),
    (NotFoundError, 404),
    (NotApprovedError, 404),
    (ConflictError, 400),
    (UnauthorizedError, 401),
    (ConfigurationError, 500),
]


def status_for(exc: RewardError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def _error_body(exc: RewardError) -> dict:
    body: dict = {"message": exc.message}
    if isinstance(exc, CollaboratorError):
        body["success"] = False
        body["retryable"] = exc.retryable
        if exc.detail:
            body["error"] = exc.detail
        if isinstance(exc, ClaimPendingError):
            body["pending"] = True
    return body


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map the error taxonomy onto HTTP status codes."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except RewardError as exc:
        status = status_for(exc)
        if status >= 500:
            log.error("%s %s failed: %s", request.method, request.path, exc.message)
        else:
            log.info("%s %s -> %d: %s", request.method, request.path, status, exc.message)
        return web.json_response(_error_body(exc), status=status)
    except Exception:
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response({"message": "Internal server error"}, status=500)


async def _json_body(request: web.Request) -> dict:
    if not request.body_exists:
        return {}
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


class SubmissionRoutes:
    """Request handlers; all business logic lives in SubmissionService."""

    def __init__(self, service: SubmissionService) -> None:
        self._service = service

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy"})

    async def stats(self, request: web.Request) -> web.Response:
        s = await self._service.summary()
        return web.json_response({
            "total": s.total,
            "pending": s.pending,
            "approved": s.approved,
            "rejected": s.rejected,
            "claimed": s.claimed,
        })

    async def activity(self, request: web.Request) -> web.Response:
        raw = request.query.get("limit", str(DEFAULT_ACTIVITY_LIMIT))
        try:
            limit = int(raw)
        except ValueError:
            raise ValidationError(f"Invalid limit: {raw}") from None
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        entries = await self._service.recent_activity(min(limit, MAX_ACTIVITY_LIMIT))
        return web.json_response([e.to_json() for e in entries])

    async def create_submission(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        record = await self._service.submit(
            body.get("walletAddress"), body.get("name"), body.get("proofLink"),
        )
        return web.json_response(
            {
                "message": "Submission received successfully",
                "walletAddress": record.wallet_address,
            },
            status=201,
        )

    async def get_submission(self, request: web.Request) -> web.Response:
        snapshot = await self._service.get_status(request.match_info["wallet"])
        return web.json_response(snapshot.to_json())

    async def list_submissions(self, request: web.Request) -> web.Response:
        snapshots = await self._service.list_submissions(request.query.get("status"))
        return web.json_response([s.to_json() for s in snapshots])

    async def list_approved(self, request: web.Request) -> web.Response:
        entries = await self._service.list_approved()
        return web.json_response([e.to_json() for e in entries])

    async def set_approval(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        snapshot = await self._service.set_approval(
            request.match_info["wallet"],
            body.get("approved"),
            body.get("moderatorNotes"),
            request.headers.get(MODERATOR_KEY_HEADER),
        )
        return web.json_response({
            "message": "Submission updated successfully",
            "approved": snapshot.approved,
            "submission": snapshot.to_json(),
        })

    async def claim(self, request: web.Request) -> web.Response:
        result = await self._service.claim(request.match_info["wallet"])
        return web.json_response({
            "message": "Reward successfully claimed! Tokens have been distributed.",
            "txId": result.tx_hash,
            "claimedAt": result.claimed_at,
            "success": True,
        })


def create_app(service: SubmissionService) -> web.Application:
    """Build the aiohttp application around a wired SubmissionService."""
    app = web.Application(middlewares=[error_middleware])
    routes = SubmissionRoutes(service)

    app.router.add_get("/", routes.health)
    app.router.add_get("/api/stats", routes.stats)
    app.router.add_get("/api/activity", routes.activity)
    app.router.add_post("/api/submissions", routes.create_submission)
    app.router.add_get("/api/submissions", routes.list_submissions)
    # Static path must be registered before the {wallet} route
    app.router.add_get("/api/submissions/approved", routes.list_approved)
    app.router.add_get("/api/submissions/{wallet}", routes.get_submission)
    app.router.add_put("/api/submissions/{wallet}/approve", routes.set_approval)
    app.router.add_post("/api/submissions/{wallet}/claim", routes.claim)
    return app
