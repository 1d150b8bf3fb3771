"""
token_exchange.py

Purpose:
- Exchange a NetSuite OAuth authorization code
- For access token + refresh token
- The refresh token goes into .env as NETSUITE_REFRESH_TOKEN
"""

import base64
import logging
import os
from typing import Optional

import requests

from config import Settings, require_env

logger = logging.getLogger(__name__)


def basic_auth_header(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    encoded = base64.b64encode(raw).decode("utf-8")
    return f"Basic {encoded}"


def token_url(account_id: str) -> str:
    # NetSuite host format: 3392496_SB2 -> 3392496-sb2
    host = account_id.lower().replace("_", "-")
    return f"https://{host}.suitetalk.api.netsuite.com/services/rest/auth/oauth2/v1/token"


def build_token_request_body(auth_code: str, redirect_uri: str) -> dict:
    """
    Build the form-encoded body for NetSuite OAuth token exchange
    """
    return {
        "grant_type": "authorization_code",
        "code": auth_code,
        "redirect_uri": redirect_uri,
    }


def oauth_settings() -> Settings:
    """
    Settings for the code exchange. The refresh token may not exist yet,
    so only the client credentials and redirect URI are required.
    """
    return Settings(
        account_id=require_env("NETSUITE_ACCOUNT_ID"),
        client_id=require_env("NETSUITE_CLIENT_ID"),
        client_secret=require_env("NETSUITE_CLIENT_SECRET"),
        refresh_token=os.getenv("NETSUITE_REFRESH_TOKEN", ""),
        redirect_uri=require_env("NETSUITE_REDIRECT_URI"),
    )


def exchange_auth_code_for_tokens(
    auth_code: str,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> dict:
    """
    Sends the token exchange request to NetSuite and returns the JSON response.
    """
    headers = {
        "Authorization": basic_auth_header(settings.client_id, settings.client_secret),
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }
    body = build_token_request_body(auth_code, settings.redirect_uri)

    http = session or requests.Session()
    resp = http.post(token_url(settings.account_id), data=body, headers=headers, timeout=30)

    # Readable message on failure, but never log the returned tokens
    if not resp.ok:
        logger.error("Token exchange failed: HTTP %s", resp.status_code)
        raise RuntimeError(
            f"Token exchange failed: HTTP {resp.status_code} - {resp.text}"
        )

    logger.info("Token exchange succeeded (expires_in=%s)", resp.json().get("expires_in"))
    return resp.json()


if __name__ == "__main__":
    result = exchange_auth_code_for_tokens(require_env("NETSUITE_AUTH_CODE"), oauth_settings())
    # Print only SAFE fields (do NOT print access_token / refresh_token)
    safe = {k: result.get(k) for k in ["token_type", "expires_in", "scope"]}
    print("Token exchange success (safe fields):", safe)
