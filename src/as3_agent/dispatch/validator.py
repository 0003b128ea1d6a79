"""AS3 schema validation gate.

Declarations failing validation are dropped before any BIG-IP communication.
Schema loading and validation run off the event loop so producers and the
dispatcher keep moving while a large schema is fetched or checked.
"""
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

import httpx
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from ..utils.connection import with_retry
from .equality import parse_json
from .schema import ValidationResult

logger = logging.getLogger(__name__)

# Cap the number of individual errors kept per result
MAX_REPORTED_ERRORS = 20

# Seconds a failed schema load is remembered before trying again
SCHEMA_RELOAD_AFTER = 30.0


def _read_schema_file(reference: str) -> dict[str, Any]:
    path = reference[len("file://"):] if reference.startswith("file://") else reference
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return json.load(f)


@with_retry(max_attempts=3, min_wait=1, max_wait=10)
async def fetch_schema(
    reference: str,
    timeout: float = 30,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[str, Any]:
    """Load a JSON schema from an http(s) URL or a local path."""
    if reference.startswith(("http://", "https://")):
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        ) as client:
            resp = await client.get(reference)
            resp.raise_for_status()
            return resp.json()

    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, _read_schema_file, reference)


def _collect_errors(validator: Any, instance: Any) -> list[str]:
    errors: list[str] = []
    for error in validator.iter_errors(instance):
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
        if len(errors) >= MAX_REPORTED_ERRORS:
            break
    return errors


class SchemaValidator:
    """Validate declarations against the AS3 schema.

    The schema is loaded on first use and cached. Changing ``reference``
    drops the cached copy. A failed load is remembered for
    ``reload_after`` seconds so a burst of declarations does not refetch
    an unreachable schema each time.
    """

    def __init__(
        self,
        reference: Optional[str] = None,
        reload_after: float = SCHEMA_RELOAD_AFTER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._reference = reference
        self._validator: Any = None
        self._load_error: Optional[Exception] = None
        self._failed_at = 0.0
        self._lock = asyncio.Lock()
        self.reload_after = reload_after
        self.transport = transport

    @property
    def reference(self) -> Optional[str]:
        return self._reference

    @reference.setter
    def reference(self, value: Optional[str]) -> None:
        if value != self._reference:
            self._reference = value
            self._validator = None
            self._load_error = None

    async def _load(self) -> Any:
        async with self._lock:
            if self._validator is not None:
                return self._validator
            if not self._reference:
                raise ValueError("No AS3 schema configured")
            if self._load_error is not None:
                if time.monotonic() - self._failed_at < self.reload_after:
                    raise self._load_error
                self._load_error = None

            try:
                schema = await fetch_schema(self._reference, transport=self.transport)
                cls = validator_for(schema)
                cls.check_schema(schema)
            except (OSError, ValueError, httpx.HTTPError, SchemaError) as e:
                self._load_error = e
                self._failed_at = time.monotonic()
                raise

            self._validator = cls(schema)
            logger.debug(f"Loaded AS3 schema from {self._reference}")
            return self._validator

    async def validate(self, document: str) -> ValidationResult:
        """
        Validate a serialized declaration.

        Malformed JSON or an unloadable schema yields an invalid result;
        nothing is raised.

        Args:
            document: Serialized declaration

        Returns:
            ValidationResult with valid flag and error descriptions
        """
        try:
            validator = await self._load()
        except (OSError, ValueError, httpx.HTTPError, SchemaError) as e:
            logger.error(f"Unable to load AS3 schema {self._reference}: {e}")
            return ValidationResult(valid=False, errors=[f"Schema unavailable: {e}"])

        try:
            instance = parse_json(document)
        except ValueError as e:
            logger.error(f"Declaration is not valid JSON: {e}")
            return ValidationResult(valid=False, errors=[f"Malformed declaration: {e}"])

        loop = asyncio.get_event_loop()
        errors = await loop.run_in_executor(None, _collect_errors, validator, instance)

        if errors:
            logger.error("Declaration is not valid, see errors")
            for desc in errors:
                logger.error(f"- {desc}")

        return ValidationResult(valid=not errors, errors=errors)

    async def is_valid(self, document: str) -> bool:
        return (await self.validate(document)).valid
