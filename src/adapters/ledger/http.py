"""
HTTP donation ledger adapter - Implements DonationRecorder protocol.

Sends each completed donation to the dashboard backend so the streamer can
see it. Callers treat this as best-effort.
"""

import logging

import httpx

from src.domain.models import DonationRequest, TransferResult

logger = logging.getLogger(__name__)


class HttpDonationLedger:
    """
    Implements DonationRecorder protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, donor_name: str = "Anonymous Donor") -> None:
        self._client = client
        self._url = url
        self._donor_name = donor_name

    async def record(
        self, request: DonationRequest, result: TransferResult, wallet_address: str
    ) -> None:
        """
        POST the donation record.

        Raises:
            httpx.HTTPError: If the backend is unreachable or rejects the record
        """
        payload = build_record(request, result, wallet_address, self._donor_name)
        response = await self._client.post(self._url, json=payload)
        response.raise_for_status()
        logger.info("Recorded donation %s for %s", result.transaction_id, request.identity.name)


def build_record(
    request: DonationRequest, result: TransferResult, wallet_address: str, donor_name: str
) -> dict[str, object]:
    """Shape a donation as the dashboard backend expects it."""
    return {
        "streamerName": request.identity.name,
        "streamerPlatform": request.identity.platform,
        "donorName": donor_name,
        "amount": float(request.amount),
        "message": request.message,
        "timestamp": request.initiated_at.isoformat(),
        "txHash": result.transaction_id or "",
        "walletAddress": wallet_address,
        "contentUrl": request.content_url,
    }
