"""
Relay client used by the voice widget.

Sends one chat turn to the relay backend. `ask()` never raises: provider text
comes back on success and an apology string on any failure, so the session
can always display and speak something.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from voice_relay.config import DEFAULT_SYSTEM_PROMPT
from voice_relay.core.exceptions import NetworkError, RelayError

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I couldn't process that request."
APOLOGY_PREFIX = "Sorry, I'm having trouble connecting to the AI service. Error: "

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}


def normalize_endpoint(endpoint: str) -> str:
    """
    Force a secure scheme onto the relay endpoint.

    A bare host gets https://. Plain http:// is upgraded unless the host is
    loopback, where a local relay is usually served without TLS.
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise ValueError("Relay endpoint must not be empty")

    if endpoint.startswith("http://"):
        host = urlsplit(endpoint).hostname or ""
        if host not in LOOPBACK_HOSTS:
            endpoint = "https://" + endpoint[len("http://"):]
    elif not endpoint.startswith("https://"):
        endpoint = "https://" + endpoint

    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid relay endpoint {endpoint!r}: {e}") from e
    if not url.host:
        raise ValueError(f"Invalid relay endpoint {endpoint!r}: missing host")
    return endpoint


def apology(error: str) -> str:
    return APOLOGY_PREFIX + error


class RelayClient:
    def __init__(
        self,
        endpoint: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint = normalize_endpoint(endpoint)
        self.system_prompt = system_prompt
        self._client = client
        self._owns_client = client is None

    async def ask(self, message: str, system_prompt: Optional[str] = None) -> str:
        if not message or not message.strip():
            return ""

        try:
            return await self._post(message, system_prompt or self.system_prompt)
        except RelayError as e:
            logger.error(f"Relay error: {e.message} ({e.details.get('error')})")
            return apology(e.message)
        except NetworkError as e:
            logger.error(f"Relay unreachable: {e.message}")
            return apology(e.message)

    async def _post(self, message: str, system_prompt: str) -> str:
        if self._client is None:
            self._client = httpx.AsyncClient()

        logger.debug(f"Calling relay endpoint: {self.endpoint}")
        try:
            response = await self._client.post(
                self.endpoint,
                json={"message": message, "systemPrompt": system_prompt},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(str(e) or type(e).__name__) from e

        if response.is_error:
            raise RelayError(response.status_code, _error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError("Relay returned an invalid response body") from e

        reply = data.get("response") if isinstance(data, dict) else None
        return reply or FALLBACK_REPLY

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None
