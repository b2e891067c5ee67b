# backend/app/api/v1/endpoints/credentials.py
from typing import List

from fastapi import APIRouter, Depends, status

from backend.app.api import deps
from backend.app.models.user import User
from backend.app.schemas.credential import (
    CredentialActiveResponse,
    CredentialActiveUpdate,
    CredentialCreate,
    CredentialFromQR,
    CredentialResponse,
    CredentialSummary,
    CredentialUpdate,
    Drive115CookieFields,
)
from backend.app.schemas.user import MessageResponse
from backend.app.services.credentials import CredentialManager
from backend.app.services.qr_login import QRLoginBroker

router = APIRouter()

COOKIE_FIELDS = {"uid", "cid", "seid", "kid"}


# 1. ADD
@router.post("", response_model=CredentialSummary, status_code=status.HTTP_201_CREATED)
async def add_credentials(
        item_in: CredentialCreate,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    cookies = Drive115CookieFields(**item_in.model_dump(include=COOKIE_FIELDS))
    credential = await manager.add(
        current_user.id, item_in.name, cookies, activate=item_in.activate
    )
    return CredentialSummary(
        id=credential.id,
        name=credential.name,
        is_active=credential.is_active,
        message="Credentials added successfully",
    )


# 2. LIST (all / active only)
@router.get("", response_model=List[CredentialResponse])
async def list_credentials(
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    return await manager.list(current_user.id)


@router.get("/active", response_model=List[CredentialResponse])
async def list_active_credentials(
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    return await manager.list_active(current_user.id)


# 3. CREATE FROM A CONFIRMED QR LOGIN
@router.post("/qr", response_model=CredentialSummary, status_code=status.HTTP_201_CREATED)
async def add_credentials_from_qr(
        item_in: CredentialFromQR,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
        broker: QRLoginBroker = Depends(deps.get_qr_broker),
):
    cookies = await broker.complete(item_in.uid, item_in.sign, item_in.time, item_in.app)
    credential = await manager.add(current_user.id, item_in.name, cookies, activate=item_in.activate)
    return CredentialSummary(
        id=credential.id,
        name=credential.name,
        is_active=credential.is_active,
        message="Credentials added from QR code login",
    )


# 4. READ ONE
@router.get("/{credential_id}", response_model=CredentialResponse)
async def get_credentials(
        credential_id: int,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    return await manager.get(current_user.id, credential_id)


# 5. UPDATE
@router.put("/{credential_id}", response_model=CredentialSummary)
async def update_credentials(
        credential_id: int,
        item_in: CredentialUpdate,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    cookies = Drive115CookieFields(**item_in.model_dump(include=COOKIE_FIELDS))
    credential = await manager.update(current_user.id, credential_id, item_in.name, cookies)
    return CredentialSummary(
        id=credential.id,
        name=credential.name,
        is_active=credential.is_active,
        message="Credentials updated successfully",
    )


# 6. ACTIVATE / DEACTIVATE
@router.put("/{credential_id}/active", response_model=CredentialActiveResponse)
async def set_credentials_active(
        credential_id: int,
        item_in: CredentialActiveUpdate,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    credential = await manager.set_active(current_user.id, credential_id, item_in.is_active)
    return {
        "message": "Credentials status updated successfully",
        "is_active": credential.is_active,
    }


# 7. DELETE
@router.delete("/{credential_id}", response_model=MessageResponse)
async def delete_credentials(
        credential_id: int,
        current_user: User = Depends(deps.get_current_user),
        manager: CredentialManager = Depends(deps.get_credential_manager),
):
    await manager.delete(current_user.id, credential_id)
    return {"message": "Credentials deleted successfully"}
