"""HTTP helpers shared by the TikTok clients and the API routes."""

from __future__ import annotations

from typing import Any, Dict

import httpx

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


def bearer_headers(access_token: str, *, json_body: bool = True) -> Dict[str, str]:
    """Authorization headers for an Open API call."""
    headers = {"Authorization": f"Bearer {access_token}"}
    if json_body:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return headers


def response_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body, falling back to raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text


def error_details(exc: BaseException) -> Any:
    """Best available description of a failure to relay back to the caller.

    Prefers the platform's response body when the exception carries one.
    """
    payload = getattr(exc, "payload", None)
    if payload is not None:
        return payload
    if isinstance(exc, httpx.HTTPStatusError):
        return response_body(exc.response)
    return str(exc) or exc.__class__.__name__


__all__ = ["JSON_CONTENT_TYPE", "bearer_headers", "error_details", "response_body"]
