#!/usr/bin/env python3
"""Command line entry point for the AS3 agent.

Usage:
    as3-agent [--config CONFIG] [--tenant TENANT] [--watch SECONDS] DECLARATION

Environment variables:
    AS3_AGENT_CONFIG       Config file path (default: search ./configs, ~/.config, /etc)
    BIGIP_PASSWORD         BIG-IP password when not set in the config file
    AS3_AGENT_LOG_LEVEL    Console log level
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .agent import AS3Agent
from .config.settings import SettingsError, load_settings
from .dispatch.errors import StartupError
from .dispatch.notify import ResponseSink
from .dispatch.schema import Declaration, DeployResult
from .utils.logging_config import setup_logging

logger = logging.getLogger("as3_agent.cli")


def log_result(result: DeployResult) -> None:
    if result.succeeded:
        logger.info(f"Deploy finished: {result.event.value}")
    else:
        logger.error(f"Declaration dropped ({result.event.value}): {result.message}")


async def report_results(sink: ResponseSink) -> int:
    """Log every settled declaration until the sink closes.

    Returns:
        Number of results consumed
    """
    count = 0
    async for result in sink:
        count += 1
        log_result(result)
    return count


async def deploy_once(agent: AS3Agent, path: Path, tenant: str, timeout: Optional[float]) -> bool:
    """Submit one declaration and wait until it is applied or dropped."""
    agent.submit(Declaration.from_file(path, tenant=tenant))
    try:
        result = await asyncio.wait_for(agent.sink.get(), timeout)
    except asyncio.TimeoutError:
        logger.error(f"Declaration not applied within {timeout}s")
        return False
    if result is None:
        return False
    log_result(result)
    return result.succeeded


async def watch(agent: AS3Agent, path: Path, tenant: str, interval: float) -> None:
    """Re-submit the declaration whenever the file changes."""
    reporter = asyncio.create_task(report_results(agent.sink), name="as3-deploy-reporter")
    last_mtime: Optional[float] = None
    try:
        while True:
            try:
                mtime = path.stat().st_mtime
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
            else:
                if mtime != last_mtime:
                    last_mtime = mtime
                    logger.info(f"Submitting {path}")
                    agent.submit(Declaration.from_file(path, tenant=tenant))
            await asyncio.sleep(interval)
    finally:
        reporter.cancel()


async def run(args: argparse.Namespace) -> int:
    params = load_settings(str(args.config) if args.config else None)
    if args.no_validation:
        params.as3_validation = False

    async with AS3Agent(params) as agent:
        if args.watch:
            try:
                await watch(agent, args.declaration, args.tenant, args.watch)
            except asyncio.CancelledError:
                pass
            return 0
        ok = await deploy_once(agent, args.declaration, args.tenant, args.timeout)
        return 0 if ok else 1


def main() -> int:
    """Main entry point for the as3-agent CLI."""
    parser = argparse.ArgumentParser(
        description="Push an AS3 declaration to BIG-IP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Post once and wait for the result
    as3-agent declaration.json

    # Keep running and re-post whenever the file changes
    as3-agent --watch 5 declaration.json
""",
    )
    parser.add_argument("declaration", type=Path, help="AS3 declaration JSON file")
    parser.add_argument("--config", type=Path, help="Agent config YAML")
    parser.add_argument("--tenant", default="", help="Restrict the post to one tenant")
    parser.add_argument(
        "--watch",
        type=float,
        metavar="SECONDS",
        help="Poll the declaration file and re-submit on change",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up waiting for a one-shot deploy after this many seconds",
    )
    parser.add_argument("--no-validation", action="store_true", help="Skip AS3 schema validation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on console")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else None)

    if not args.declaration.exists():
        logger.error(f"Declaration file not found: {args.declaration}")
        return 1

    try:
        return asyncio.run(run(args))
    except (SettingsError, StartupError) as e:
        logger.error(str(e))
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
