"""Factory for the shared ledger remote.

One remote instance is shared by all requests. In dry-run mode it is a
SimulatedRemote; otherwise a RippledRemote pointed at the configured URL.
"""

import logging
from typing import Optional

from ripplerest.config import get_settings
from ripplerest.remote.base import Remote

logger = logging.getLogger(__name__)

# Cached remote instance
_remote: Optional[Remote] = None


def get_remote() -> Remote:
    """Get the shared remote, creating it on first use."""
    global _remote

    if _remote is not None:
        return _remote

    settings = get_settings()

    if settings.dry_run:
        from ripplerest.remote.simulated import SimulatedRemote

        logger.info("Dry-run mode: using simulated remote")
        _remote = SimulatedRemote()
    else:
        from ripplerest.remote.rippled import RippledRemote

        logger.info(f"Using rippled remote at {settings.rippled_url}")
        _remote = RippledRemote(
            settings.rippled_url,
            timeout=settings.remote_timeout,
            poll_interval=settings.validation_poll_interval,
            poll_limit=settings.validation_poll_limit,
            fee=settings.transaction_fee,
            ledger_offset=settings.ledger_offset,
        )

    return _remote


async def close_remote() -> None:
    """Close the shared remote if one was created."""
    global _remote

    if _remote is not None:
        await _remote.close()
        _remote = None


def reset_remote_cache() -> None:
    """Forget the cached remote (useful for testing)."""
    global _remote
    _remote = None
