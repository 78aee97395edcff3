"""
API v1 routes.

Defines REST endpoints over the donation session: wallet custody, identity
tracking, registry verification and donation submission.
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_session
from src.api.models import (
    CheckResponse,
    DonationBody,
    DonationResponse,
    ErrorDetail,
    ErrorResponse,
    IdentityRequest,
    ImportWalletRequest,
    MessageResponse,
    VerificationResponse,
    WalletResponse,
    WalletStatusResponse,
)
from src.domain.exceptions import DonationError, ErrorKind
from src.domain.models import Identity
from src.domain.session import DonationSession

router = APIRouter(tags=["v1"])

_STATUS_BY_KIND = {
    ErrorKind.INVALID_KEY_FORMAT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_REQUEST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.MESSAGE_FLAGGED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CONFIRMATION_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NO_CREDENTIAL: status.HTTP_412_PRECONDITION_FAILED,
    ErrorKind.NOT_VERIFIED: status.HTTP_409_CONFLICT,
    ErrorKind.TRANSFER_IN_PROGRESS: status.HTTP_409_CONFLICT,
    ErrorKind.APPROVAL_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_FUNDS: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.CHAIN_REJECTED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CHAIN_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.MODERATION_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_http(error: DonationError) -> NoReturn:
    """Translate a classified domain error into an HTTP error response."""
    detail = ErrorDetail(message=str(error), kind=error.kind, retryable=error.retryable)
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail=detail.model_dump(mode="json"),
    ) from error


def _verification(session: DonationSession) -> VerificationResponse:
    identity = session.identity
    return VerificationResponse(
        name=identity.name if identity else None,
        platform=identity.platform if identity else None,
        state=session.verification,
        polling=session.poller.active,
    )


@router.post(
    "/wallet",
    response_model=WalletResponse,
    summary="Connect wallet",
    description="Load the persisted wallet, or create and persist a new one.",
)
async def connect_wallet(session: DonationSession = Depends(get_session)) -> WalletResponse:
    try:
        credential = await session.connect()
    except DonationError as e:
        raise_http(e)
    return WalletResponse(address=credential.address)


@router.post(
    "/wallet/import",
    response_model=WalletResponse,
    responses={422: {"model": ErrorResponse, "description": "Malformed private key"}},
    summary="Import wallet",
    description="Replace the wallet with an existing private key.",
)
async def import_wallet(
    request_data: ImportWalletRequest,
    session: DonationSession = Depends(get_session),
) -> WalletResponse:
    try:
        credential = await session.import_wallet(request_data.private_key)
    except DonationError as e:
        raise_http(e)
    return WalletResponse(address=credential.address)


@router.get(
    "/wallet",
    response_model=WalletStatusResponse,
    responses={
        412: {"model": ErrorResponse, "description": "No wallet connected"},
        503: {"model": ErrorResponse, "description": "Ledger endpoint unavailable"},
    },
    summary="Wallet status",
    description="Token balance and the allowance granted to the donation contract.",
)
async def wallet_status(session: DonationSession = Depends(get_session)) -> WalletStatusResponse:
    try:
        wallet = await session.wallet_status()
    except DonationError as e:
        raise_http(e)
    return WalletStatusResponse(
        address=wallet.address, balance=wallet.balance, allowance=wallet.allowance
    )


@router.delete(
    "/wallet",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Confirmation missing"}},
    summary="Disconnect wallet",
    description="Erase the stored private key. Irreversible; requires confirm=true.",
)
async def logout(
    confirm: bool = Query(False, description="Explicit confirmation"),
    session: DonationSession = Depends(get_session),
) -> MessageResponse:
    try:
        await session.logout(confirmed=confirm)
    except DonationError as e:
        raise_http(e)
    return MessageResponse(message="Wallet cleared")


@router.put(
    "/identity",
    response_model=VerificationResponse,
    summary="Set detected identity",
    description="Track a streaming identity and start verifying it against the registry.",
)
async def set_identity(
    request_data: IdentityRequest,
    session: DonationSession = Depends(get_session),
) -> VerificationResponse:
    await session.set_identity(Identity(name=request_data.name, platform=request_data.platform))
    return _verification(session)


@router.delete(
    "/identity",
    response_model=VerificationResponse,
    summary="Clear detected identity",
)
async def clear_identity(session: DonationSession = Depends(get_session)) -> VerificationResponse:
    await session.set_identity(None)
    return _verification(session)


@router.get("/verification", response_model=VerificationResponse, summary="Verification state")
async def get_verification(session: DonationSession = Depends(get_session)) -> VerificationResponse:
    return _verification(session)


@router.post(
    "/verification/check",
    response_model=CheckResponse,
    responses={
        422: {"model": ErrorResponse, "description": "No identity detected"},
        503: {"model": ErrorResponse, "description": "Ledger endpoint unavailable"},
    },
    summary="Verify now",
    description="Run one registry check for the current identity immediately.",
)
async def check_verification(session: DonationSession = Depends(get_session)) -> CheckResponse:
    try:
        found = await session.verify_now()
    except DonationError as e:
        raise_http(e)
    return CheckResponse(found=found, **_verification(session).model_dump())


@router.post(
    "/donations",
    response_model=DonationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"model": ErrorResponse, "description": "Insufficient token balance"},
        409: {"model": ErrorResponse, "description": "Not verified, or transfer in progress"},
        412: {"model": ErrorResponse, "description": "No wallet connected"},
        422: {"model": ErrorResponse, "description": "Invalid request or flagged message"},
        502: {"model": ErrorResponse, "description": "Transaction rejected"},
        503: {"model": ErrorResponse, "description": "Ledger endpoint unavailable (retryable)"},
    },
    summary="Donate",
    description="Send a token donation to the current, verified identity.",
)
async def donate(
    request_data: DonationBody,
    session: DonationSession = Depends(get_session),
) -> DonationResponse:
    result = await session.donate(
        request_data.amount,
        request_data.message,
        content_url=request_data.content_url,
        force=request_data.force,
    )
    if not result.success:
        raise_http(result.error)
    return DonationResponse(message="Donation sent", transaction_id=result.transaction_id)
