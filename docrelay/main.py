from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from prometheus_fastapi_instrumentator import Instrumentator
import uuid
import logging

from docrelay.api import PREFLIGHT_HEADERS
from docrelay.config import get_settings
from docrelay.errors import register_exception_handlers

# Startup-time settings only; request handlers load their own copy
settings = get_settings()

# -----------------------------------------------------------------------------
# Logging setup
# -----------------------------------------------------------------------------
logging.basicConfig(level=settings.LOG_LEVEL.upper())
log = logging.getLogger("doc-relay")

# -----------------------------------------------------------------------------
# Create FastAPI app
# -----------------------------------------------------------------------------
app = FastAPI(title="Document Q&A Relay", version="1.0.0")
register_exception_handlers(app)

# -----------------------------------------------------------------------------
# Middleware
# -----------------------------------------------------------------------------
class PreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose preflight answers are always 200.

    A disallowed origin or method gets the plain preflight headers without
    Access-Control-Allow-Origin, so the browser still blocks the call.
    """

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code == 400:
            return Response(status_code=200, headers=PREFLIGHT_HEADERS)
        return response


app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)


@app.middleware("http")
async def add_request_id_logging(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:
        log.exception("unhandled_error request_id=%s path=%s", request_id, request.url.path)
        return JSONResponse(status_code=500, content={"error": "internal_error", "request_id": request_id})
    response.headers["x-request-id"] = request_id
    log.info("%s %s -> %s request_id=%s", request.method, request.url.path, response.status_code, request_id)
    return response

# -----------------------------------------------------------------------------
# Routes from api.py
# -----------------------------------------------------------------------------
from docrelay.api import router as api_router  # noqa: E402
app.include_router(api_router)

@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs", status_code=301)

# -----------------------------------------------------------------------------
# Prometheus /metrics endpoint
# -----------------------------------------------------------------------------
Instrumentator().instrument(app).expose(app)

# -----------------------------------------------------------------------------
# Entry point for Uvicorn / Gunicorn
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("docrelay.main:app", host="0.0.0.0", port=8000, reload=True)
