
"""
Defines API routes for the FastAPI app.
`router` is included by main.py so that routes and middlewares are centralized.
"""

import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docrelay.config import Settings, get_settings
from docrelay.errors import error_response
from docrelay.services import relay

router = APIRouter()

CHAT_PATH = "/api/chat"
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class AskBody(BaseModel):
    # Scalars are stringified by the relay; lists and objects are rejected
    question: Optional[Union[str, int, float]] = None


class AskResponse(BaseModel):
    answer: str
    sources: List[str] = []
    hint: Optional[str] = None
    request_id: str


@router.get("/healthz")
def healthz():
    return {"status": "ok"}


@router.get("/readyz")
def readyz(settings: Settings = Depends(get_settings)):
    missing = settings.missing()
    if missing:
        return JSONResponse(status_code=503, content={"status": "not_ready", "missing": missing})
    return {"status": "ready", "missing": []}


@router.post(CHAT_PATH, response_model=AskResponse, response_model_exclude_none=True)
def chat(
    request: Request,
    body: Optional[AskBody] = None,
    settings: Settings = Depends(get_settings),
):
    question = body.question if body else None
    result = relay.handle_question(question, settings)
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return AskResponse(
        answer=result.answer,
        sources=result.sources,
        hint=result.hint,
        request_id=request_id,
    )


@router.options(CHAT_PATH)
def chat_preflight():
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)


@router.api_route(CHAT_PATH, methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def chat_wrong_method():
    return error_response(405, "Use POST", headers={"Allow": "POST, OPTIONS"})
