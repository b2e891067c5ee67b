# backend/app/api/v1/endpoints/drive.py
"""
Proxied 115 drive operations.

Every route depends on ``deps.get_active_drive_client``: the caller must be
logged in and have an active credential that passes the 115 login check.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, Query

from backend.app.api import deps
from backend.app.schemas.drive import (
    OfflineTaskAddRequest,
    OfflineTaskAddResponse,
    OfflineTaskClearRequest,
    OfflineTaskDeleteRequest,
    OfflineTaskDeleteResponse,
)
from backend.app.schemas.user import MessageResponse
from backend.app.services.drive115 import DEFAULT_PAGE_SIZE, Drive115Client

router = APIRouter()


@router.get("/user")
async def get_drive_user(client: Drive115Client = Depends(deps.get_active_drive_client)) -> Dict[str, Any]:
    return await client.get_user()


# --- offline tasks --------------------------------------------------------

@router.get("/tasks")
async def list_offline_tasks(
        page: int = Query(1, ge=1, le=1000),
        client: Drive115Client = Depends(deps.get_active_drive_client),
) -> Dict[str, Any]:
    return await client.list_offline_tasks(page)


@router.post("/tasks", response_model=OfflineTaskAddResponse)
async def add_offline_tasks(
        request: OfflineTaskAddRequest,
        client: Drive115Client = Depends(deps.get_active_drive_client),
):
    hashes = await client.add_offline_task_urls(request.urls, request.save_dir_id)
    return {
        "message": "Offline download tasks added successfully",
        "hashes": hashes,
        "count": len(hashes),
    }


@router.post("/tasks/delete", response_model=OfflineTaskDeleteResponse)
async def delete_offline_tasks(
        request: OfflineTaskDeleteRequest,
        client: Drive115Client = Depends(deps.get_active_drive_client),
):
    await client.delete_offline_tasks(request.hashes, request.delete_files)
    return {
        "message": "Offline tasks deleted successfully",
        "deleted_count": len(request.hashes),
        "files_deleted": request.delete_files,
    }


@router.post("/tasks/clear", response_model=MessageResponse)
async def clear_offline_tasks(
        request: OfflineTaskClearRequest,
        client: Drive115Client = Depends(deps.get_active_drive_client),
):
    await client.clear_offline_tasks(request.clear_flag)
    return {"message": "Offline tasks cleared successfully"}


# --- files ----------------------------------------------------------------

@router.get("/files")
async def list_files(
        dir_id: int = Query(0, ge=0),
        offset: int = Query(0, ge=0),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
        client: Drive115Client = Depends(deps.get_active_drive_client),
) -> Dict[str, Any]:
    return await client.list_files(dir_id, offset, limit)


@router.get("/files/{file_id}")
async def get_file_info(
        file_id: int = Path(..., gt=0),
        client: Drive115Client = Depends(deps.get_active_drive_client),
) -> Dict[str, Any]:
    return await client.get_file_info(file_id)


@router.post("/files/{file_id}/download")
async def get_download_info(
        file_id: int = Path(..., gt=0),
        client: Drive115Client = Depends(deps.get_active_drive_client),
) -> Dict[str, Any]:
    download_info = await client.get_download_info(file_id)
    return {
        "message": "Download info retrieved successfully",
        "download_info": download_info,
    }
