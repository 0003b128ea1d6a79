"""Data types flowing through the dispatch loop."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ResponseEvent(str, Enum):
    """Classification of a post attempt."""
    OK = "ok"
    UNCHANGED = "unchanged"                        # equal to active config, not posted
    VALIDATION_FAILED = "validation-failed"
    UNPROCESSABLE_ENTITY = "unprocessable-entity"
    NOT_FOUND = "not-found"                        # AS3 extension missing or moved
    SERVICE_UNAVAILABLE = "service-unavailable"    # 503 / 429
    TRANSIENT_ERROR = "transient-error"            # network, 5xx, anything else


@dataclass(frozen=True)
class Declaration:
    """A serialized AS3 declaration plus the metadata needed to post it."""
    body: str = ""
    tenant: str = ""
    schema_version: str = ""

    @property
    def is_empty(self) -> bool:
        return self.body == ""

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        tenant: str = "",
    ) -> "Declaration":
        """Serialize a declaration dict, picking up the ADC schemaVersion."""
        return cls(
            body=json.dumps(data, sort_keys=True),
            tenant=tenant,
            schema_version=_schema_version_of(data),
        )

    @classmethod
    def from_file(cls, path: str | Path, tenant: str = "") -> "Declaration":
        """Load a declaration from a JSON file.

        The file text is kept as-is; it is only parsed to read the schema
        version, and an unparseable file still yields a Declaration so the
        validation gate can reject it.
        """
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        return cls(body=text, tenant=tenant, schema_version=_schema_version_of(data))


def _schema_version_of(data: Any) -> str:
    """Read schemaVersion from an AS3 or bare ADC declaration."""
    if not isinstance(data, dict):
        return ""
    adc = data.get("declaration", data)
    if not isinstance(adc, dict):
        return ""
    return str(adc.get("schemaVersion", ""))


@dataclass(frozen=True)
class PostOutcome:
    """Result of one post attempt."""
    accepted: bool
    event: ResponseEvent
    status_code: Optional[int] = None
    message: str = ""

    @classmethod
    def ok(cls, status_code: Optional[int] = None) -> "PostOutcome":
        return cls(accepted=True, event=ResponseEvent.OK, status_code=status_code)

    @classmethod
    def failed(
        cls,
        event: ResponseEvent,
        status_code: Optional[int] = None,
        message: str = "",
    ) -> "PostOutcome":
        return cls(accepted=False, event=event, status_code=status_code, message=message)


@dataclass
class DeployResult:
    """Published to the notification sink once a declaration is settled.

    ``event`` is ok or unchanged when BIG-IP holds the declaration, and
    validation-failed when it was dropped before posting.
    """
    declaration: Declaration
    event: ResponseEvent
    message: str = ""
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.event in (ResponseEvent.OK, ResponseEvent.UNCHANGED)

    def to_dict(self) -> dict:
        return {
            "tenant": self.declaration.tenant,
            "schema_version": self.declaration.schema_version,
            "event": self.event.value,
            "message": self.message,
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass
class ValidationResult:
    """Result of schema validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class VersionInfo:
    """AS3 extension version resolved at startup."""
    version: str
    build: str
    numeric: float

    @property
    def release(self) -> str:
        return f"{self.version}-{self.build}" if self.build else self.version
