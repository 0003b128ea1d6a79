"""Config dispatch - latest-wins posting of AS3 declarations.

The dispatcher keeps exactly one declaration in flight:
- Producers submit desired state, newer submissions replace pending ones
- Unchanged declarations are not re-posted
- Invalid declarations are dropped before reaching BIG-IP
- Failed posts are retried with an event-specific timeout until a newer
  declaration arrives or the post succeeds

Usage:
    from as3_agent.dispatch import ConfigDispatcher, LatestWinsQueue

    queue = LatestWinsQueue()
    dispatcher = ConfigDispatcher(queue, post_manager, post_delay=5)
    task = asyncio.create_task(dispatcher.run())
    queue.submit(Declaration.from_dict(decl))
"""

from .dispatcher import ConfigDispatcher, DispatcherState
from .equality import canonicalize, deep_equal_json
from .errors import (
    AgentError,
    StartupError,
    VersionParseError,
    IncompatibleVersionError,
    QueueClosedError,
)
from .notify import ResponseSink
from .queue import LatestWinsQueue
from .retry import RetryTimeouts, DEFAULT_TIMEOUTS, timeout_for_event
from .schema import (
    Declaration,
    ResponseEvent,
    PostOutcome,
    DeployResult,
    ValidationResult,
    VersionInfo,
)
from .validator import SchemaValidator, fetch_schema
from .version import AS3_SUPPORTED_VERSION, check_version, parse_version, schema_url_for

__all__ = [
    # Loop
    "ConfigDispatcher",
    "DispatcherState",
    "LatestWinsQueue",
    "ResponseSink",
    # Gates
    "canonicalize",
    "deep_equal_json",
    "SchemaValidator",
    "fetch_schema",
    "AS3_SUPPORTED_VERSION",
    "check_version",
    "parse_version",
    "schema_url_for",
    # Retry policy
    "RetryTimeouts",
    "DEFAULT_TIMEOUTS",
    "timeout_for_event",
    # Types
    "Declaration",
    "ResponseEvent",
    "PostOutcome",
    "DeployResult",
    "ValidationResult",
    "VersionInfo",
    # Errors
    "AgentError",
    "StartupError",
    "VersionParseError",
    "IncompatibleVersionError",
    "QueueClosedError",
]
