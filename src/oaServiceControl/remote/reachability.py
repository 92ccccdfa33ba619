"""Host reachability probing."""

import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 1.0


async def is_host_reachable(address: str, port: int, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """
    Check whether a TCP connection to ``address:port`` can be opened.

    A non-positive timeout falls back to the default probe timeout.
    """
    if timeout <= 0:
        timeout = DEFAULT_PROBE_TIMEOUT

    try:
        async with asyncio.timeout(timeout):
            _, writer = await asyncio.open_connection(address, port)
    except (OSError, TimeoutError) as exc:
        logger.debug(f"Host {address}:{port} unreachable: {exc}")
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class TCPReachabilityChecker:
    """ReachabilityChecker backed by a plain TCP connect."""

    async def is_reachable(self, address: str, port: int, timeout: float) -> bool:
        return await is_host_reachable(address, port, timeout)
