"""Launch of the dependent server process after persistence."""

import asyncio

import structlog

logger = structlog.get_logger(__name__)


async def launch_downstream(command: list[str]) -> int | None:
    """Start the downstream process, wait for it, and log its exit code.

    Args:
        command: argv of the process to start (e.g. ["node", "server.js"])

    Returns:
        The process exit code, or None if the command was empty or failed to start
    """
    if not command:
        logger.info("No downstream command configured, skipping")
        return None

    logger.info("Starting downstream process", command=command)
    try:
        process = await asyncio.create_subprocess_exec(*command)
    except OSError as e:
        logger.error("Error starting downstream process", command=command, error=str(e))
        return None

    code = await process.wait()
    logger.info("Downstream process exited", command=command, exit_code=code)
    return code
