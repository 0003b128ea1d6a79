"""AS3 agent - host-facing entry point for pushing declarations.

Wires the post manager, validator, queue and dispatcher together:
1. ``init()`` starts the dispatcher and verifies the AS3 version
2. ``submit()`` hands over the latest desired declaration
3. ``shutdown()`` closes the queue and the response sink

Usage:
    from as3_agent.agent import AS3Agent

    async with AS3Agent(load_settings()) as agent:
        agent.submit(Declaration.from_file("decl.json"))
        result = await agent.sink.get()
"""
import asyncio
import logging
from typing import Any, Optional

from .client.post_manager import PostManager
from .config.settings import AgentParams
from .dispatch.dispatcher import ConfigDispatcher
from .dispatch.errors import AgentError, QueueClosedError
from .dispatch.notify import ResponseSink
from .dispatch.queue import LatestWinsQueue
from .dispatch.schema import Declaration, VersionInfo
from .dispatch.validator import SchemaValidator
from .dispatch.version import check_version, schema_url_for

logger = logging.getLogger(__name__)


class AS3Agent:
    """Owns one dispatcher and its collaborators."""

    def __init__(
        self,
        params: AgentParams,
        post_manager: Any = None,
        validator: Any = None,
        sink: Optional[ResponseSink] = None,
    ):
        """
        Initialize the agent. Nothing touches the network until ``init()``.

        Args:
            params: Agent settings
            post_manager: Replaces the default httpx PostManager
            validator: Replaces the default SchemaValidator
            sink: Replaces the default ResponseSink
        """
        self.params = params
        self.post_manager = post_manager or PostManager(
            url=params.bigip_url,
            username=params.username,
            password=params.get_password(),
            trusted_certs=params.trusted_certs,
            ssl_insecure=params.ssl_insecure,
            timeout=params.timeout,
            log_response=params.log_response,
            user_agent=params.user_agent,
        )
        self.validator = validator or SchemaValidator(params.schema)
        self.sink = sink or ResponseSink()
        self.queue: LatestWinsQueue[Declaration] = LatestWinsQueue()
        self.dispatcher = ConfigDispatcher(
            queue=self.queue,
            post_manager=self.post_manager,
            validator=self.validator,
            sink=self.sink,
            post_delay=params.post_delay,
            timeouts=params.retry_timeouts,
            as3_validation=params.as3_validation,
        )
        self.version_info: Optional[VersionInfo] = None
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shut_down = False

    async def init(self) -> VersionInfo:
        """
        Start the dispatcher and check the AS3 version on BIG-IP.

        Returns:
            The resolved VersionInfo

        Raises:
            StartupError: If AS3 is missing or too old; the agent is torn
                down before the error propagates
        """
        logger.info("Initializing AS3 agent")
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self.dispatcher.run(), name="as3-config-dispatcher")

        try:
            version, build = await self.post_manager.get_as3_version()
            info = check_version(version, build)
        except Exception as e:
            logger.error(f"AS3 agent startup failed: {e}")
            await self.shutdown()
            raise

        self.version_info = info
        if hasattr(self.post_manager, "as3_release"):
            self.post_manager.as3_release = info.release
        if isinstance(self.validator, SchemaValidator) and not self.validator.reference:
            self.validator.reference = schema_url_for(info.version, info.release)

        logger.info(f"AS3 agent ready, BIG-IP runs AS3 {info.release}")
        return info

    def submit(self, declaration: Declaration) -> None:
        """
        Hand over the latest desired declaration; never waits.

        Must be called from the agent's event loop; see ``submit_threadsafe``.

        Raises:
            QueueClosedError: After shutdown
        """
        self.queue.submit(declaration)

    def submit_threadsafe(self, declaration: Declaration) -> None:
        """Submit from a thread other than the one running the event loop.

        Raises:
            AgentError: Before ``init()``
            QueueClosedError: After shutdown
        """
        if self._loop is None:
            raise AgentError("AS3 agent is not initialized")
        # Checked here because an error raised inside the loop callback
        # never reaches the calling thread
        if self._shut_down or self.queue.closed:
            raise QueueClosedError("AS3 agent is shut down")
        self._loop.call_soon_threadsafe(self.queue.submit, declaration)

    async def shutdown(self) -> None:
        """
        Close the queue and the response sink and wait for the dispatcher.

        Raises:
            AgentError: If called twice
        """
        if self._shut_down:
            raise AgentError("AS3 agent already shut down")
        self._shut_down = True
        logger.info("Shutting down AS3 agent")

        self.queue.close()
        if self._task is not None:
            await self._task
        self.sink.close()
        if hasattr(self.post_manager, "aclose"):
            await self.post_manager.aclose()

    async def __aenter__(self) -> "AS3Agent":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if not self._shut_down:
            await self.shutdown()
        return False
