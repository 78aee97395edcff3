"""
HTTP message moderator adapter - Implements MessageModerator protocol.

Posts the message to the moderation service and maps its JSON answer
(`{"success": bool, "isAppropriate": bool, "reason": str}`) to a verdict.
Any failure to obtain a verdict is raised as ModerationUnavailable; the
fail-open decision belongs to the domain.
"""

import logging

import httpx

from src.domain.exceptions import ModerationUnavailable
from src.domain.models import ModerationVerdict

logger = logging.getLogger(__name__)


class HttpMessageModerator:
    """
    Implements MessageModerator protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        """
        Args:
            client: Shared async HTTP client (timeouts configured by the caller)
            url: Moderation endpoint, e.g. http://localhost:3001/api/validate-message
        """
        self._client = client
        self._url = url

    async def classify(self, text: str) -> ModerationVerdict:
        if not text.strip():
            return ModerationVerdict(appropriate=True)

        try:
            response = await self._client.post(self._url, json={"message": text})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ModerationUnavailable(f"moderation request failed: {e}") from e

        if not payload.get("success"):
            raise ModerationUnavailable(f"moderation service error: {payload.get('error', 'unknown')}")

        verdict = ModerationVerdict(
            appropriate=bool(payload.get("isAppropriate", True)),
            reason=payload.get("reason") or "",
        )
        if not verdict.appropriate:
            logger.info("Message flagged by moderator: %s", verdict.reason)
        return verdict
