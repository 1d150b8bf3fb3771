"""
FastAPI app for the Wells Fargo processing dashboard.

GET  /                -> dashboard (deposit queue + receivables queue)
POST /                -> one action, then 303 back to GET / with the outcome
GET  /health          -> liveness
GET  /oauth/callback  -> one-time authorization code exchange
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from actions import handle_post
from auth.token_exchange import exchange_auth_code_for_tokens, oauth_settings
from config import Settings, configure_logging, get_settings
from dashboard import render_dashboard
from netsuite_client import NetSuiteClient

logger = logging.getLogger(__name__)

APP_NAME = "wf-processing"
APP_VERSION = "0.1.0"


@lru_cache()
def get_client() -> NetSuiteClient:
    """One client (and token) shared by all requests."""
    settings = get_settings()
    return NetSuiteClient(
        account_id=settings.account_id,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        refresh_token=settings.refresh_token,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings())
    logger.info("%s %s started", APP_NAME, APP_VERSION)
    yield


app = FastAPI(title="Wells Fargo Processing", version=APP_VERSION, lifespan=lifespan)


@app.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    client: NetSuiteClient = Depends(get_client),
    settings: Settings = Depends(get_settings),
):
    return HTMLResponse(render_dashboard(client, settings, dict(request.query_params)))


@app.post("/")
async def perform_action(
    request: Request,
    client: NetSuiteClient = Depends(get_client),
    settings: Settings = Depends(get_settings),
):
    form = await request.form()
    params = {k: v for k, v in form.items() if isinstance(v, str)}

    # NetSuite and SMTP calls block, keep them off the event loop
    result = await run_in_threadpool(handle_post, client, settings, params)
    return RedirectResponse(url=f"/?{urlencode(result)}", status_code=303)


@app.get("/health")
def health():
    return {"ok": True, "name": APP_NAME, "version": APP_VERSION}


@app.get("/oauth/callback")
def oauth_callback(request: Request, settings: Settings = Depends(oauth_settings)):
    code = request.query_params.get("code")
    error = request.query_params.get("error")
    state = request.query_params.get("state")

    if error:
        return {"ok": False, "error": error, "state": state, "query": dict(request.query_params)}

    if not code:
        return {"ok": False, "error": "missing_code", "state": state, "query": dict(request.query_params)}

    try:
        body = exchange_auth_code_for_tokens(code, settings)
    except RuntimeError as e:
        return {"ok": False, "error": str(e), "state": state}

    return {"ok": True, "state": state, "token_response": body}
