"""
Timeouts for control-plane calls.

Every request the replicator sends to Azure carries a connection and a read
timeout so a stalled call cannot hang a run indefinitely.

Environment Variables:
    - REPLICATOR_TIMEOUT_CONNECT: TCP connect timeout (default: 30s)
    - REPLICATOR_TIMEOUT_READ: Response read timeout (default: 60s)
"""

import logging
import os
from typing import Dict, Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is None:
        return default
    try:
        timeout = int(value)
    except ValueError:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be integer. Using default: {default}s"
        )
        return default
    if timeout <= 0:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be positive. Using default: {default}s"
        )
        return default
    return timeout


class Timeouts:
    """Timeout constants, in seconds, read once at import."""

    CONNECT: Final[int] = _get_timeout("REPLICATOR_TIMEOUT_CONNECT", 30)
    READ: Final[int] = _get_timeout("REPLICATOR_TIMEOUT_READ", 60)

    @classmethod
    def request_kwargs(cls) -> Dict[str, int]:
        """Per-operation keyword arguments understood by the azure-core transport."""
        return {"connection_timeout": cls.CONNECT, "read_timeout": cls.READ}
