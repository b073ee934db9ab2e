"""
Reward Root Verifier API - Root Endpoints

- POST /roots/verify: Rebuild a root's tree and check every published proof
"""

from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from reward_verifier.core.config import settings
from reward_verifier.services.aggregator import VerificationError
from reward_verifier.services.report import format_amount
from reward_verifier.services.sources import HostedProofStore
from reward_verifier.services.verifier import RootVerifier

logger = structlog.get_logger(__name__)
router = APIRouter()


# Request/Response Models
class RootVerifyRequest(BaseModel):
    """Request to verify a root."""

    root: str = Field(
        ...,
        description="Root to verify (64 hex characters, 0x prefix optional)",
        pattern=r"^(0x|0X)?[a-fA-F0-9]{64}$",
    )


class ProofNotFoundResponse(BaseModel):
    account: str
    amount: str
    at_url: str
    reason: str


class AmountMismatchResponse(BaseModel):
    account: str
    amount: str
    at_url: str
    amount_at_url: str


class ProofInvalidResponse(BaseModel):
    account: str
    amount: str
    at_url: str
    proof: list[str]


class RootVerifyResponse(BaseModel):
    """Verification result."""

    root: str
    computed_root: str
    valid: bool
    leaf_sum: str = Field(description="Sum of all leaf amounts in the token's smallest unit")
    leaf_count: int
    total_claimable: str
    not_found: list[ProofNotFoundResponse] = Field(default_factory=list)
    amount_mismatch: list[AmountMismatchResponse] = Field(default_factory=list)
    proof_invalid: list[ProofInvalidResponse] = Field(default_factory=list)


async def get_proof_store() -> AsyncGenerator[HostedProofStore, None]:
    """Provide a proof store for the duration of one request."""
    async with HostedProofStore() as store:
        yield store


@router.post(
    "/verify",
    response_model=RootVerifyResponse,
    summary="Verify a root",
    description="Rebuild the tree from the published leaves and replay every published proof.",
    responses={
        200: {"description": "Verification result, valid or not"},
        502: {"description": "Leaf set for the root could not be retrieved"},
    },
)
async def verify_root(
    request: RootVerifyRequest,
    store: HostedProofStore = Depends(get_proof_store),
) -> RootVerifyResponse:
    """
    Verify a root.

    An invalid root is a normal 200 response with valid=false; only a
    leaf set that cannot be used is reported as an error.
    """
    root = request.root.lower()
    if not root.startswith("0x"):
        root = f"0x{root}"

    verifier = RootVerifier(store, store)
    response = await verifier.verify_root(root)

    if isinstance(response, VerificationError):
        logger.error("Root verification failed", root=root, error=response.msg)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=response.to_dict(),
        )

    data = response.to_dict()
    return RootVerifyResponse(
        **data,
        total_claimable=format_amount(response.leaf_sum, settings.TOKEN_DECIMALS, settings.TOKEN_SYMBOL),
    )
