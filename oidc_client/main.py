"""
OIDC Test Client (relying party).
GET /, /login, /logout and GET|POST /auth/callback. Provider discovered once at startup.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from oidc_client.config import (
    LOG_LEVEL,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_TTL_SECONDS,
    ClientConfig,
)
from oidc_client.discovery import ProviderMetadata, discover_provider
from oidc_client.errors import BadRequest, CallbackError
from oidc_client.flow import FlowController
from oidc_client.flow_store import PendingAuthorizations
from oidc_client.presentation import render_error, render_index
from oidc_client.session_store import SessionStore

logger = logging.getLogger(__name__)
router = APIRouter()

# How often a running callback checks whether the browser went away
DISCONNECT_POLL_SECONDS = 0.1

# nginx convention for "client closed request"; nobody is left to read it
CLIENT_CLOSED_REQUEST = 499


def get_flow(request: Request) -> FlowController:
    flow = request.app.state.flow
    if flow is None:
        raise HTTPException(status_code=503, detail="Provider not discovered")
    return flow


def _error_response(e: CallbackError) -> HTMLResponse:
    title = "Token exchange failed" if e.status_code == 502 else "Error"
    return HTMLResponse(render_error(title, e.message), status_code=e.status_code)


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "oidc_client"}


@router.get("/", response_class=HTMLResponse)
def index(request: Request, flow: FlowController = Depends(get_flow)):
    """Configuration, provider metadata and the current session's tokens."""
    session = flow.current_session(request.cookies.get(SESSION_COOKIE_NAME))
    return HTMLResponse(render_index(flow.config, flow.provider, session))


@router.get("/login")
def login(request: Request, flow: FlowController = Depends(get_flow)):
    """
    Ensure a session cookie, register state + nonce for it, redirect to the provider /authorize.
    """
    session_id, created = flow.sessions.get_or_create(request.cookies.get(SESSION_COOKIE_NAME))
    response = RedirectResponse(url=flow.begin_login(session_id), status_code=302)
    if created:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            session_id,
            expires=datetime.now(timezone.utc) + timedelta(seconds=SESSION_COOKIE_TTL_SECONDS),
            path="/",
            httponly=True,
        )
    return response


async def run_until_disconnect(request: Request, coro) -> tuple[bool, object]:
    """
    Await `coro` as a task, cancelling it as soon as the client disconnects.
    Returns (True, result) on completion and (False, None) when cancelled.
    Exceptions raised by `coro` propagate.
    """
    task = asyncio.create_task(coro)
    try:
        while not task.done():
            if await request.is_disconnected() and not task.done():
                task.cancel()
                await asyncio.wait({task})
                return False, None
            await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        return True, task.result()
    finally:
        if not task.done():
            task.cancel()


async def _handle_callback(
    request: Request,
    flow: FlowController,
    state: str | None,
    code: str | None,
    error: str | None,
    error_description: str | None,
):
    try:
        if error:
            flow.abandon_login(state, error)
            raise BadRequest(f"Login failed at provider: {error_description or error}")
        completed, _ = await run_until_disconnect(request, flow.complete_login(state, code))
    except CallbackError as e:
        return _error_response(e)
    if not completed:
        logger.info("Client disconnected during callback; login abandoned (state %s...)", (state or "")[:6])
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return RedirectResponse(url="/", status_code=302)


@router.get("/auth/callback")
async def callback_get(
    request: Request,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    flow: FlowController = Depends(get_flow),
):
    """Provider redirect (?code=...&state=... or ?error=...&state=...)."""
    return await _handle_callback(request, flow, state, code, error, error_description)


@router.post("/auth/callback")
async def callback_post(
    request: Request,
    state: str | None = Form(None),
    code: str | None = Form(None),
    error: str | None = Form(None),
    error_description: str | None = Form(None),
    flow: FlowController = Depends(get_flow),
):
    """form_post delivery; form fields win over query parameters."""
    q = request.query_params
    return await _handle_callback(
        request,
        flow,
        state or q.get("state"),
        code or q.get("code"),
        error or q.get("error"),
        error_description or q.get("error_description"),
    )


@router.get("/logout")
def logout(request: Request, flow: FlowController = Depends(get_flow)):
    """Drop the local session (if any) and clear the cookie. Always redirects home."""
    response = RedirectResponse(url="/", status_code=302)
    if SESSION_COOKIE_NAME in request.cookies:
        flow.logout(request.cookies[SESSION_COOKIE_NAME])
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Discover the provider unless one was passed to create_app. Failure aborts startup."""
    if app.state.flow is None:
        config = app.state.config
        provider = discover_provider(config.issuer)
        app.state.flow = FlowController(config, provider, app.state.sessions, app.state.pending)
    yield


def create_app(config: ClientConfig | None = None, provider: ProviderMetadata | None = None) -> FastAPI:
    config = config or ClientConfig()
    app = FastAPI(title="OIDC Test Client", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.sessions = SessionStore()
    app.state.pending = PendingAuthorizations()
    app.state.flow = None
    if provider is not None:
        app.state.flow = FlowController(config, provider, app.state.sessions, app.state.pending)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host, port = app.state.config.bind
    logger.info("OIDC client listening on %s:%s", host, port)
    uvicorn.run("oidc_client.main:app", host=host, port=port)
