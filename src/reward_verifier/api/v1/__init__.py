"""
Reward Root Verifier API v1

Endpoints:
- POST /roots/verify - Verify a root against its published leaves and proofs
"""

from fastapi import APIRouter

from reward_verifier.api.v1.endpoints import roots

router = APIRouter()
router.include_router(roots.router, prefix="/roots", tags=["Roots"])
