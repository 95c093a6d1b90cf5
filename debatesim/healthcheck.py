"""Provider health check: ping the configured API before starting a debate."""

import asyncio
import logging

from debatesim.gateway import ProviderGateway
from debatesim.models import HistoryEntry, ProviderRequest, Role

logger = logging.getLogger(__name__)

_PING_REQUEST = ProviderRequest(
    system_prompt="You are a connectivity check.",
    history=(HistoryEntry(role=Role.USER, content="Reply with the word OK only."),),
)
_TIMEOUT_SEC = 15.0


async def check_gateway(gateway: ProviderGateway) -> tuple[bool, str]:
    """Ping the gateway's provider. Returns (ok, error_message)."""
    try:
        await asyncio.wait_for(gateway.generate(_PING_REQUEST), timeout=_TIMEOUT_SEC)
        return True, ""
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", gateway.provider_id, exc)
        return False, str(exc) or type(exc).__name__
