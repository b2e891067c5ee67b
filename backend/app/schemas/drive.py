# backend/app/schemas/drive.py
"""Request bodies for the proxied 115 drive operations."""
from typing import List

from pydantic import BaseModel, Field, field_validator

OFFLINE_URL_PREFIXES = ("http://", "https://", "magnet:")


class OfflineTaskAddRequest(BaseModel):
    urls: List[str] = Field(..., min_length=1, max_length=50)
    # "0" is the drive root
    save_dir_id: str = Field("0", pattern=r"^\d+$")

    @field_validator("urls")
    @classmethod
    def check_url_schemes(cls, urls: List[str]) -> List[str]:
        for url in urls:
            if not url.startswith(OFFLINE_URL_PREFIXES):
                raise ValueError("urls must contain valid URLs (http/https/magnet)")
        return urls


class OfflineTaskDeleteRequest(BaseModel):
    hashes: List[str] = Field(..., min_length=1, max_length=100)
    delete_files: bool = False

    @field_validator("hashes")
    @classmethod
    def check_hashes(cls, hashes: List[str]) -> List[str]:
        if any(not h.strip() for h in hashes):
            raise ValueError("hashes must not contain empty values")
        return hashes


class OfflineTaskClearRequest(BaseModel):
    # 0 finished, 1 all, 2 failed, 3 running, 4 finished + files, 5 all + files
    clear_flag: int = Field(0, ge=0, le=5)


class OfflineTaskAddResponse(BaseModel):
    message: str
    hashes: List[str]
    count: int


class OfflineTaskDeleteResponse(BaseModel):
    message: str
    deleted_count: int
    files_deleted: bool
