"""HTTP surface (Starlette).

Routes:
- ``POST /vmalert/replay``: JSON body (rule path) or multipart (rule upload)
- ``GET /health``: liveness, never touches vmalert
- any other ``GET``: pre-built frontend bundle with SPA fallback to index.html
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import aiofiles.os
from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, Response
from starlette.routing import Route

from vmalert_replay_server.core.config import ReplayConfig, ensure_upload_dir, resolve_replay_config
from vmalert_replay_server.core.errors import ValidationError
from vmalert_replay_server.core.intake import parse_replay_request
from vmalert_replay_server.core.models import ErrorBody, HealthStatus, NormalizedResult
from vmalert_replay_server.core.normalizer import normalize_rejection, normalize_unexpected
from vmalert_replay_server.core.replay_service import replay, replay_upload

logger = logging.getLogger(__name__)

MAX_FORM_FIELDS = 20


def _safe_resolve(base: Path, path: str) -> Path | None:
    """Resolve ``path`` under ``base``; None if it escapes."""
    p = (base / path).resolve()
    if base not in p.parents and p != base:
        return None
    return p


async def _dispatch_replay(request: Request, cfg: ReplayConfig) -> NormalizedResult:
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data"):
        try:
            form = await request.form(max_files=1, max_fields=MAX_FORM_FIELDS)
        except HTTPException as e:
            # Malformed multipart (no boundary, too many parts) is a client error.
            return normalize_rejection(ValidationError(f"Invalid multipart request: {e.detail}"))
        try:
            part = form.get("ruleFile")
            upload = part if isinstance(part, UploadFile) else None
            fields = {k: v for k, v in form.items() if isinstance(v, str) and k != "ruleFile"}
            return await replay_upload(fields, upload, config=cfg)
        finally:
            await form.close()

    if content_type and "json" not in content_type:
        return normalize_rejection(ValidationError(f"Unsupported content type: {content_type}"))

    try:
        body = await request.json()
    except ValueError:
        return normalize_rejection(ValidationError("Request body must be valid JSON"))

    try:
        replay_request = parse_replay_request(body)
    except ValidationError as e:
        return normalize_rejection(e)
    return await replay(replay_request, config=cfg)


def create_app(config: ReplayConfig | None = None) -> Starlette:
    """Build the ASGI app. The upload directory is created here."""
    cfg = config if config is not None else resolve_replay_config()
    ensure_upload_dir(cfg)
    static_root = Path(cfg.static_dir).resolve()

    async def replay_endpoint(request: Request) -> Response:
        try:
            result = await _dispatch_replay(request, cfg)
        except Exception as e:
            logger.exception("Unexpected error executing vmalert replay")
            result = normalize_unexpected(e)
        return JSONResponse(result.payload, status_code=result.status_code)

    async def health_endpoint(request: Request) -> Response:
        return JSONResponse(HealthStatus(timestamp=datetime.now(UTC)).model_dump(mode="json"))

    async def frontend_endpoint(request: Request) -> Response:
        candidate = _safe_resolve(static_root, request.path_params.get("path", ""))
        if candidate is not None and await aiofiles.os.path.isfile(candidate):
            return FileResponse(candidate)
        index = static_root / "index.html"
        if await aiofiles.os.path.isfile(index):
            return FileResponse(index)
        return JSONResponse(ErrorBody(error="Not found").model_dump(), status_code=404)

    app = Starlette(
        routes=[
            Route("/health", health_endpoint, methods=["GET"]),
            Route("/vmalert/replay", replay_endpoint, methods=["POST"]),
            Route("/{path:path}", frontend_endpoint, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
            )
        ],
    )
    app.state.config = cfg
    return app
