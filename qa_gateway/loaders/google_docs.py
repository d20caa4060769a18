from __future__ import annotations

"""Google Docs loader flattening document JSON into plain text."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

DOCS_API_URL = "https://docs.googleapis.com/v1/documents"
DOCS_READONLY_SCOPE = "https://www.googleapis.com/auth/documents.readonly"

_STATUS_HINTS = {
    "PERMISSION_DENIED": "Share the document with the service account or the account that owns the access token.",
    "NOT_FOUND": "Check that GOOGLE_DOCS_ID points to an existing document.",
}


class GoogleDocsLoaderError(RuntimeError):
    """Raised when a Google Doc cannot be fetched or is empty."""
    pass


def _paragraph_text(paragraph: dict[str, Any]) -> str:
    parts: list[str] = []
    for element in paragraph.get("elements") or []:
        content = (element.get("textRun") or {}).get("content")
        if content:
            parts.append(content)
    return "".join(parts)


def extract_document_text(document: dict[str, Any]) -> str:
    """Concatenate paragraph and table text from a Docs API document.

    Paragraph text runs already end with newlines. Table cells within a row
    are concatenated and a newline is appended after every row.
    """
    content = (document.get("body") or {}).get("content")
    if not content:
        raise GoogleDocsLoaderError("Document body is empty or not accessible")
    text = ""
    for item in content:
        paragraph = item.get("paragraph")
        table = item.get("table")
        if paragraph:
            text += _paragraph_text(paragraph)
        elif table:
            for row in table.get("tableRows") or []:
                for cell in row.get("tableCells") or []:
                    for cell_item in cell.get("content") or []:
                        if cell_item.get("paragraph"):
                            text += _paragraph_text(cell_item["paragraph"])
                text += "\n"
    return text


def _describe_error(response: httpx.Response) -> str:
    try:
        error = response.json().get("error") or {}
    except ValueError:
        error = {}
    message = f"Google API error - [{response.status_code}] {error.get('message', response.reason_phrase)}"
    hint = _STATUS_HINTS.get(str(error.get("status", "")))
    if hint:
        message = f"{message}. {hint}"
    return message


async def fetch_google_doc_text(
    document_id: str,
    access_token: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 15.0,
) -> str:
    """Fetch a document through the Docs API and return its flattened text."""
    if not document_id:
        raise GoogleDocsLoaderError("GOOGLE_DOCS_ID is not set")
    if not access_token:
        raise GoogleDocsLoaderError("No Google access token: set GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_DOCS_ACCESS_TOKEN")
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(
            f"{DOCS_API_URL}/{document_id}",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.is_error:
            raise GoogleDocsLoaderError(_describe_error(response))
        document = response.json()
    except httpx.HTTPError as exc:
        raise GoogleDocsLoaderError(f"Failed to load Google Doc: {type(exc).__name__}") from exc
    except ValueError as exc:
        raise GoogleDocsLoaderError("Google Docs API returned invalid JSON") from exc
    finally:
        if owns_client and client is not None:
            await client.aclose()
    text = extract_document_text(document)
    logger.info("google_doc_loaded", extra={"document_id": document_id, "chars": len(text)})
    return text


def load_service_account_credentials(path: str | Path) -> service_account.Credentials:
    """Load a service-account key with read-only Docs scope."""
    try:
        return service_account.Credentials.from_service_account_file(
            str(path), scopes=[DOCS_READONLY_SCOPE]
        )
    except (OSError, ValueError) as exc:
        raise GoogleDocsLoaderError(
            f"Unable to read service account key {path}: {type(exc).__name__}"
        ) from exc


async def fetch_access_token(credentials: Any) -> str:
    """Refresh service-account credentials and return a bearer token."""
    try:
        await asyncio.to_thread(credentials.refresh, GoogleAuthRequest())
    except GoogleAuthError as exc:
        raise GoogleDocsLoaderError(f"Google token refresh failed: {type(exc).__name__}") from exc
    token = getattr(credentials, "token", None)
    if not token:
        raise GoogleDocsLoaderError("Google token refresh returned no access token")
    logger.info(
        "google_access_token_refreshed",
        extra={"service_account": getattr(credentials, "service_account_email", None)},
    )
    return token
