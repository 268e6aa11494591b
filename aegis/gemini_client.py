"""
Gemini generateContent client.

Thin wrapper over the REST endpoint: one call per credential, JSON mime type,
caller-supplied responseSchema. No retries here; a failed call raises
RemoteCallError and the request executor decides what happens next.
"""

import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Optional

logger = logging.getLogger(__name__)


class RemoteCallError(Exception):
    """
    Raw failure from the Gemini endpoint.

    status is the HTTP status code, or None when the request never got an
    HTTP response (DNS, connection refused, timeout).
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"[{self.status}] {self.message}"


class GeminiClient:
    """
    Usage:
        client = GeminiClient(model="gemini-3-pro-preview")
        text = client.generate_content(api_key, prompt, response_schema=schema)
    """

    def __init__(self, model: str, base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout: float = 180.0, temperature: float = 0.2):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings) -> "GeminiClient":
        return cls(
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
            temperature=settings.GEMINI_TEMPERATURE,
        )

    def build_payload(self, prompt: str, system_instruction: Optional[str] = None,
                      response_schema: Optional[dict] = None) -> dict:
        generation_config = {
            "temperature": self.temperature,
            "responseMimeType": "application/json",
        }
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    def generate_content(self, api_key: str, prompt: str,
                         system_instruction: Optional[str] = None,
                         response_schema: Optional[dict] = None) -> Optional[str]:
        """
        Call Gemini once with the given key.

        Returns the response text, or None when the response carries no text
        (no candidates, blocked prompt, empty parts). Raises RemoteCallError on
        HTTP or network failure.
        """
        url = "%s/models/%s:generateContent?key=%s" % (self.base_url, self.model, api_key)
        data = json.dumps(
            self.build_payload(prompt, system_instruction, response_schema)
        ).encode("utf-8")

        req = urllib.request.Request(
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                result = json.loads(response.read())
        except urllib.error.HTTPError as e:
            raise RemoteCallError(_error_message(e), status=e.code) from e
        except urllib.error.URLError as e:
            raise RemoteCallError(f"Gemini unreachable: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise RemoteCallError(f"Gemini call timed out after {self.timeout}s") from e
        except json.JSONDecodeError as e:
            raise RemoteCallError(f"Gemini returned a non-JSON envelope: {e}") from e

        if not isinstance(result, dict):
            raise RemoteCallError("Gemini returned an unexpected envelope")
        return extract_text(result)


def extract_text(result: dict) -> Optional[str]:
    """Pull candidates[0].content.parts[*].text out of a generateContent response."""
    candidates = result.get("candidates") or []
    if not candidates:
        feedback = result.get("promptFeedback")
        if feedback:
            logger.warning("Gemini returned no candidates: %s", feedback)
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    return text or None


def _error_message(error: urllib.error.HTTPError) -> str:
    """Best-effort message from a Gemini error body ({"error": {"message", "status"}})."""
    try:
        body = error.read().decode("utf-8", errors="replace")
    except Exception:
        return str(error.reason)
    try:
        detail = json.loads(body).get("error", {})
    except (json.JSONDecodeError, AttributeError):
        return body or str(error.reason)
    parts = [p for p in (detail.get("status"), detail.get("message")) if p]
    return ": ".join(parts) if parts else body
