"""
SurrealPilot backend client

Talks to the AI backend (local desktop server or SaaS) over HTTP:
- GET  /api/health   connection test
- POST /api/context  upload blueprint / build-error context
- POST /api/chat     chat request, answered with server-sent events

Patches come back inside the chat reply; extract_patch() pulls the patch
JSON out so it can be handed to the PatchEngine.
"""
import json
import logging
from typing import Dict, Any, List, Optional

import requests

from core.config import PilotSettings, load_settings

logger = logging.getLogger(__name__)

USER_AGENT = "SurrealPilot-UE-Plugin/1.0"

HTTP_ERROR_MESSAGES = {
    401: "Authentication failed. Please check your API key.",
    402: "Insufficient credits. Please purchase more credits to continue.",
    403: "Access denied. You don't have permission to use this feature.",
    429: "Rate limit exceeded. Please wait before making another request.",
    500: "Server error. Please try again later.",
    503: "Service unavailable. The AI provider may be temporarily down.",
}


class PilotClientError(Exception):
    """Backend request failed"""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def describe_http_error(status_code: int, body: str) -> str:
    return HTTP_ERROR_MESSAGES.get(status_code, f"HTTP Error {status_code}: {body}")


def parse_sse_data(response_data: str) -> List[str]:
    """
    Extract event payloads from a server-sent events body

    Only 'data: ' lines are kept; empty payloads and the '[DONE]' marker are
    dropped.
    """
    chunks = []
    for line in response_data.splitlines():
        if line.startswith("data: "):
            data = line[6:]
            if data and data != "[DONE]":
                chunks.append(data)
    return chunks


def extract_patch(chunks: List[str]) -> Optional[str]:
    """
    Find the patch JSON in a chat reply

    Chunks may be raw text or JSON envelopes ({"content": "..."}). The first
    JSON object in the joined reply that has 'type' or 'operations' is the
    patch.

    Returns:
        Patch JSON text, or None if the reply carries no patch
    """
    parts = []
    for chunk in chunks:
        try:
            envelope = json.loads(chunk)
        except json.JSONDecodeError:
            parts.append(chunk)
            continue
        if isinstance(envelope, dict) and isinstance(envelope.get("content"), str):
            parts.append(envelope["content"])
        else:
            parts.append(chunk)

    text = "".join(parts)
    decoder = json.JSONDecoder()
    position = text.find("{")
    while position != -1:
        try:
            candidate, end = decoder.raw_decode(text, position)
        except json.JSONDecodeError:
            position = text.find("{", position + 1)
            continue
        if isinstance(candidate, dict) and ("operations" in candidate or "type" in candidate):
            return text[position:end]
        position = text.find("{", end)
    return None


class PilotClient:
    """
    HTTP client for the SurrealPilot backend

    Usage:
        client = PilotClient()  # settings from ~/.surrealpilot/config.json
        if client.health_check():
            chunks = client.chat([{"role": "user", "content": "Rename Health"}], context=ctx)
            patch = extract_patch(chunks)
    """

    def __init__(self, settings: Optional[PilotSettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or load_settings()
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    def _headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "text/event-stream, application/json",
        }
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(
                method, url, json=payload, headers=self._headers(), timeout=self.settings.timeout_s
            )
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise PilotClientError(f"Request failed: {e}") from e

        if response.status_code != 200:
            message = describe_http_error(response.status_code, response.text)
            logger.error(message)
            raise PilotClientError(message, status_code=response.status_code)

        return response

    def health_check(self) -> bool:
        """True if the backend answers /api/health"""
        try:
            self._request("GET", "/api/health")
            return True
        except PilotClientError as e:
            logger.warning(f"Connection test failed: {e.message}")
            return False

    def send_context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upload editor context (blueprint export, build errors, selection)

        Returns:
            Decoded JSON response (empty dict for an empty body)
        """
        response = self._request("POST", "/api/context", {"context": context})
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise PilotClientError(f"Invalid JSON response: {e}") from e

    def chat(self, messages: List[Dict[str, str]], provider: Optional[str] = None,
             context: Optional[Dict[str, Any]] = None) -> List[str]:
        """
        Send a chat request

        Args:
            messages: Conversation as [{"role": ..., "content": ...}]
            provider: AI provider name (None = backend default)
            context: Optional editor context to attach

        Returns:
            Streamed reply chunks
        """
        payload: Dict[str, Any] = {"messages": messages, "stream": True}
        if provider:
            payload["provider"] = provider
        if context is not None:
            payload["context"] = context

        response = self._request("POST", "/api/chat", payload)
        chunks = parse_sse_data(response.text)
        logger.info(f"Received {len(chunks)} chunk(s) from /api/chat")
        return chunks
