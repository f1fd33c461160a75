"""Shop domain -> Admin API access token lookup."""
import logging
from typing import Dict, Optional

from clickcollect.config import Settings

logger = logging.getLogger(__name__)


class SessionStore:
    """
    In-memory credential store seeded from SHOP_ACCESS_TOKENS.

    Tokens are installed out of band (OAuth install flow, secrets manager);
    this service only reads them.
    """

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self._tokens: Dict[str, str] = dict(tokens or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionStore":
        store = cls(settings.SHOP_ACCESS_TOKENS)
        logger.info(f"Session store loaded with {len(store._tokens)} shop(s)")
        return store

    async def get_access_token(self, shop: str) -> Optional[str]:
        return self._tokens.get(shop)
