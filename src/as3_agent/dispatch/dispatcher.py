"""Config dispatcher - the single loop that posts declarations to BIG-IP.

Flow per request:
1. Wait for a declaration on the latest-wins queue
2. Delay (every post except the first) to throttle pushes
3. Pick up an even newer declaration if one arrived meanwhile
4. Skip if unchanged, drop if invalid, otherwise post
5. On failure, wait an event-specific timeout; a newer declaration cuts
   the wait short, otherwise the active declaration is re-posted
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from .equality import deep_equal_json
from .errors import QueueClosedError
from .notify import ResponseSink
from .queue import LatestWinsQueue
from .retry import DEFAULT_TIMEOUTS, RetryTimeouts, timeout_for_event
from .schema import Declaration, DeployResult, PostOutcome, ResponseEvent

logger = logging.getLogger(__name__)


class DispatcherState(str, Enum):
    """Where the dispatch loop currently is."""
    WAITING_FOR_REQUEST = "waiting_for_request"
    DELAY_BEFORE_POST = "delay_before_post"
    REFRESH_LATEST = "refresh_latest"
    POSTING = "posting"
    RETRY_WAIT = "retry_wait"
    CLOSED = "closed"


class ConfigDispatcher:
    """
    Owns the active declaration and the retry state machine.

    Only the task running ``run()`` touches ``active_config`` and
    ``unprocessable_entity_status``; producers interact through the queue.

    Usage:
        dispatcher = ConfigDispatcher(queue, post_manager, post_delay=5)
        task = asyncio.create_task(dispatcher.run())
        queue.submit(Declaration(body=...))
    """

    def __init__(
        self,
        queue: LatestWinsQueue[Declaration],
        post_manager: Any,
        validator: Any = None,
        sink: Optional[ResponseSink] = None,
        post_delay: float = 0,
        timeouts: RetryTimeouts = DEFAULT_TIMEOUTS,
        as3_validation: bool = False,
    ):
        """
        Args:
            queue: Latest-wins queue fed by producers
            post_manager: Object with ``async post_config(document, tenant)``
                returning a PostOutcome
            validator: Object with ``async validate(document)`` returning a
                ValidationResult; used when ``as3_validation`` is set
            sink: Receives a DeployResult whenever a declaration is
                settled, including one dropped by validation
            post_delay: Seconds to wait before every post but the first
            timeouts: Retry wait tiers
            as3_validation: Validate declarations before posting
        """
        self.queue = queue
        self.post_manager = post_manager
        self.validator = validator
        self.sink = sink
        self.post_delay = post_delay
        self.timeouts = timeouts
        self.as3_validation = as3_validation

        self.active_config = Declaration()
        self.unprocessable_entity_status = False
        self.state = DispatcherState.WAITING_FOR_REQUEST
        self.posts_attempted = 0

    async def run(self) -> None:
        """Drain the queue until it is closed."""
        logger.info("Running config dispatcher")
        # The very first post after startup is not delayed
        first_post = True
        self.unprocessable_entity_status = False

        try:
            while True:
                self.state = DispatcherState.WAITING_FOR_REQUEST
                declaration = await self.queue.get()
                logger.info("Received new declaration")

                if not first_post and self.post_delay > 0:
                    self.state = DispatcherState.DELAY_BEFORE_POST
                    logger.debug(f"Delaying post to BIG-IP for {self.post_delay} seconds")
                    await asyncio.sleep(self.post_delay)

                self.state = DispatcherState.REFRESH_LATEST
                newer = self.queue.poll()
                if newer is not None:
                    logger.debug("Newer declaration arrived during post delay, using it")
                    declaration = newer

                outcome = await self._post_declaration(declaration)
                while not outcome.accepted:
                    self.unprocessable_entity_status = True
                    timeout = timeout_for_event(outcome.event, self.timeouts)
                    logger.warning(
                        f"Post failed with {outcome.event.value}, "
                        f"retrying in {timeout}s unless a newer declaration arrives"
                    )
                    declaration, outcome = await self._post_on_event_or_timeout(timeout)

                first_post = False
                self._complete(declaration, outcome)
        except QueueClosedError:
            logger.info("Dispatch queue closed, stopping config dispatcher")
        finally:
            self.state = DispatcherState.CLOSED

    async def _post_declaration(self, declaration: Declaration) -> PostOutcome:
        """Apply the gates, then post."""
        self.state = DispatcherState.POSTING

        if deep_equal_json(self.active_config.body, declaration.body):
            if not self.unprocessable_entity_status:
                logger.info("Declaration unchanged, skipping post")
                return PostOutcome(accepted=True, event=ResponseEvent.UNCHANGED)
            # Last attempt of this very declaration was rejected; post it anyway
            logger.debug("Declaration unchanged but previous post failed, re-posting")

        if self.as3_validation and self.validator is not None:
            result = await self.validator.validate(declaration.body)
            if not result.valid:
                logger.error(
                    f"Dropping declaration that failed AS3 schema validation "
                    f"({len(result.errors)} errors)"
                )
                return PostOutcome(
                    accepted=True,
                    event=ResponseEvent.VALIDATION_FAILED,
                    message="; ".join(result.errors[:3]),
                )

        self.active_config = declaration
        return await self._post(declaration)

    async def _post(self, declaration: Declaration) -> PostOutcome:
        self.state = DispatcherState.POSTING
        self.posts_attempted += 1
        logger.debug("Posting AS3 declaration")
        try:
            return await self.post_manager.post_config(declaration.body, declaration.tenant)
        except Exception as e:
            logger.error(f"Unexpected error posting declaration: {e}")
            return PostOutcome.failed(ResponseEvent.TRANSIENT_ERROR, message=str(e))

    async def _post_on_event_or_timeout(
        self,
        timeout: float,
    ) -> tuple[Declaration, PostOutcome]:
        """Race a newer declaration against the retry timeout.

        Raises:
            QueueClosedError: If the queue closes while waiting
        """
        self.state = DispatcherState.RETRY_WAIT
        try:
            declaration = await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            logger.debug("Retry timeout expired, re-posting active declaration")
            declaration = self.active_config
            return declaration, await self._post(declaration)

        logger.info("Newer declaration replaces pending retry")
        return declaration, await self._post_declaration(declaration)

    def _complete(self, declaration: Declaration, outcome: PostOutcome) -> None:
        if outcome.event == ResponseEvent.VALIDATION_FAILED:
            logger.warning("Declaration dropped; submit a corrected one")
        elif outcome.event == ResponseEvent.OK:
            self.unprocessable_entity_status = False
            logger.info("Declaration posted successfully")

        if self.sink is not None:
            logger.debug("Sending response message to response handler")
            self.sink.publish(DeployResult(
                declaration=declaration, event=outcome.event, message=outcome.message
            ))
