"""Connectivity precondition shared by both trust line pipelines."""

import logging

from ripplerest.errors import NotConnectedError
from ripplerest.remote.base import Remote

logger = logging.getLogger(__name__)


async def ensure_connected(remote: Remote) -> None:
    """Fail fast unless the remote is connected.

    Never retries or waits for a reconnection.

    Raises:
        NotConnectedError: If the status check errors or reports disconnected
    """
    try:
        connected = await remote.is_connected()
    except Exception as e:
        logger.warning(f"Remote status check failed: {e}")
        raise NotConnectedError() from e

    if not connected:
        logger.warning("Remote is not connected")
        raise NotConnectedError()
