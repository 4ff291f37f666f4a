"""Batch access probe.

Batches aren't modelled yet; this route only answers whether the caller
would be let into a batch, which runs the batch guard end to end.
"""

from fastapi import APIRouter, Depends

from learnercircle.auth.dependencies import authorize
from learnercircle.auth.guards import require_batch_access
from learnercircle.auth.identity import AuthenticatedIdentity

router = APIRouter(prefix="/batches")


@router.get("/{batch_id}/access")
async def batch_access(
    batch_id: str,
    identity: AuthenticatedIdentity = Depends(authorize(require_batch_access())),
):
    return {"batch_id": batch_id, "granted": True, "role": identity.role.value}
