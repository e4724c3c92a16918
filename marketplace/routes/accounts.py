"""
Self-service account routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace import accounts
from marketplace.auth import AuthClient
from marketplace.dependencies import (
    CurrentUser,
    get_auth_client,
    get_current_user,
    get_storage_client,
    get_store,
    rate_limit,
)
from marketplace.schemas import DeleteAccountRequest, DeletionResponse
from marketplace.storage import StorageClient
from marketplace.store import Store

router = APIRouter(tags=["accounts"])


@router.post(
    "/delete-account",
    response_model=DeletionResponse,
    dependencies=[Depends(rate_limit("delete-account", 5))],
)
def delete_account(
    payload: DeleteAccountRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
    auth: AuthClient = Depends(get_auth_client),
    storage: StorageClient = Depends(get_storage_client),
):
    warnings = accounts.delete_account(store, auth, storage, user, payload.password)
    return DeletionResponse(
        success=True, message="Account successfully deleted", warnings=warnings
    )
