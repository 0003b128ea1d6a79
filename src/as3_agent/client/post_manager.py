"""HTTP client for the BIG-IP AS3 management API.

Posts declarations and classifies each reply into a ResponseEvent the
dispatcher can act on. Never raises from ``post_config``; failures become
outcomes.
"""
import json
import logging
import ssl
from typing import Any, Optional

import httpx

from ..dispatch.errors import StartupError
from ..dispatch.schema import PostOutcome, ResponseEvent
from ..utils.connection import with_retry
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)

DECLARE_PATH = "/mgmt/shared/appsvcs/declare"
INFO_PATH = "/mgmt/shared/appsvcs/info"

# HTTP status -> event for non-2xx replies; anything else is transient
STATUS_EVENTS = {
    400: ResponseEvent.VALIDATION_FAILED,
    404: ResponseEvent.NOT_FOUND,
    422: ResponseEvent.UNPROCESSABLE_ENTITY,
    429: ResponseEvent.SERVICE_UNAVAILABLE,
    503: ResponseEvent.SERVICE_UNAVAILABLE,
}


def classify_status(status_code: int) -> ResponseEvent:
    """Map an HTTP status code to a ResponseEvent."""
    if 200 <= status_code < 300:
        return ResponseEvent.OK
    return STATUS_EVENTS.get(status_code, ResponseEvent.TRANSIENT_ERROR)


def _error_summary(body: Any) -> str:
    """Pull the human-readable part out of an AS3 error body."""
    if not isinstance(body, dict):
        return ""
    parts = []
    if body.get("message"):
        parts.append(str(body["message"]))
    errors = body.get("errors")
    if isinstance(errors, list):
        parts.extend(str(e) for e in errors)
    # Per-tenant results on partial failures
    for result in body.get("results", []) or []:
        code = result.get("code", 200) if isinstance(result, dict) else 200
        if isinstance(code, int) and code >= 300:
            parts.append(f"{result.get('tenant', '?')}: {result.get('message', '')}")
    return "; ".join(parts)


class PostManager:
    """
    Talks to the AS3 extension on one BIG-IP.

    Usage:
        pm = PostManager("https://10.0.0.1", "admin", "secret")
        outcome = await pm.post_config(document, tenant="")
        await pm.aclose()
    """

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        trusted_certs: Optional[str] = None,
        ssl_insecure: bool = False,
        timeout: float = 60,
        log_response: bool = False,
        user_agent: str = "as3-agent",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            url: BIG-IP management URL, e.g. https://10.0.0.1
            username: BIG-IP user
            password: BIG-IP password
            trusted_certs: CA bundle path used to verify BIG-IP
            ssl_insecure: Skip TLS verification entirely
            timeout: Request timeout in seconds
            log_response: Log full response bodies at debug level
            user_agent: Base User-Agent; the AS3 release is appended once known
            transport: Custom httpx transport (tests)
        """
        self.url = url.rstrip("/")
        self.log_response = log_response
        self.user_agent = user_agent
        self.as3_release: Optional[str] = None

        if ssl_insecure:
            verify: Any = False
        elif trusted_certs:
            verify = ssl.create_default_context(cafile=trusted_certs)
        else:
            verify = True

        self._http = httpx.AsyncClient(
            auth=httpx.BasicAuth(username, password),
            verify=verify,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        agent = self.user_agent
        if self.as3_release:
            agent = f"{agent} AS3/{self.as3_release}"
        return {"Content-Type": "application/json", "User-Agent": agent}

    @timed("post_declaration")
    async def post_config(self, document: str, tenant: str = "") -> PostOutcome:
        """
        POST a declaration to the AS3 declare endpoint.

        Args:
            document: Serialized declaration
            tenant: Tenant scope appended to the URL; empty for all tenants

        Returns:
            PostOutcome classifying the reply
        """
        target = f"{self.url}{DECLARE_PATH}/{tenant}" if tenant else f"{self.url}{DECLARE_PATH}"
        logger.debug(f"Posting AS3 declaration to {target}")

        try:
            resp = await self._http.post(target, content=document, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Error posting AS3 declaration to {target}: {e}")
            return PostOutcome.failed(ResponseEvent.TRANSIENT_ERROR, message=str(e))

        if self.log_response:
            logger.debug(f"AS3 response ({resp.status_code}): {resp.text}")

        event = classify_status(resp.status_code)
        if event == ResponseEvent.OK:
            logger.info(f"AS3 declaration accepted ({resp.status_code})")
            return PostOutcome.ok(resp.status_code)

        try:
            body = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        summary = _error_summary(body) or resp.reason_phrase
        logger.error(f"AS3 declaration rejected ({resp.status_code} {event.value}): {summary}")
        return PostOutcome.failed(event, status_code=resp.status_code, message=summary)

    @with_retry(max_attempts=3, min_wait=1, max_wait=10)
    async def get_as3_version(self) -> tuple[str, str]:
        """
        Ask BIG-IP which AS3 extension version it runs.

        Returns:
            Tuple of (version, build)

        Raises:
            StartupError: If AS3 is not installed or the reply is unusable
        """
        resp = await self._http.get(f"{self.url}{INFO_PATH}", headers=self._headers())
        if resp.status_code == 404:
            raise StartupError("AS3 extension is not installed on BIG-IP")
        if resp.status_code != 200:
            raise StartupError(
                f"Unable to read AS3 version from BIG-IP ({resp.status_code})"
            )

        try:
            info = resp.json()
        except json.JSONDecodeError as e:
            raise StartupError(f"Unparseable AS3 info response: {e}")

        version = info.get("version") if isinstance(info, dict) else None
        if not version:
            raise StartupError("AS3 info response has no version")
        build = str(info.get("release", ""))
        return str(version), build

    async def aclose(self) -> None:
        await self._http.aclose()
