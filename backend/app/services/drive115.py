# backend/app/services/drive115.py
"""
Credential-scoped client for the 115 cloud drive, and the factory that
builds one from a stored credential.

Every client is validated eagerly: ``UpstreamClientFactory.client_for`` runs
the SSO login check before handing the client out, so stale cookies surface
as ``UpstreamAuthError`` immediately instead of halfway through an
operation. Nothing here retries; callers decide.
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from backend.app.core.config import Settings
from backend.app.core.errors import (
    NoActiveCredentialError,
    NotFoundError,
    UpstreamAuthError,
    UpstreamError,
)
from backend.app.models.credential import Drive115Credential

logger = logging.getLogger(__name__)

API_LOGIN_CHECK = "https://passportapi.115.com/app/1.0/web/1.0/check/sso"
API_USER_INFO = "https://my.115.com/"
API_FILE_LIST = "https://webapi.115.com/files"
API_FILE_INFO = "https://webapi.115.com/files/get_info"
API_FILE_DOWNLOAD = "https://webapi.115.com/files/download"
API_OFFLINE_SIGN = "https://115.com/"
API_OFFLINE_TASKS = "https://lixian.115.com/lixian/"
API_OFFLINE_WEB = "https://115.com/web/lixian/"

DEFAULT_PAGE_SIZE = 56


def cookie_header(cookies: Mapping[str, str]) -> str:
    return "UID={uid}; CID={cid}; SEID={seid}; KID={kid}".format(**cookies)


def _error_message(payload: Dict[str, Any]) -> str:
    for key in ("error", "message", "msg", "error_msg"):
        value = payload.get(key)
        if value:
            return f"115 drive error: {value}"
    return "115 drive returned an error"


class Drive115Client:
    """Thin async wrapper over the 115 web API for one set of cookies."""

    def __init__(
        self,
        cookies: Mapping[str, str],
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            headers={
                "User-Agent": settings.UPSTREAM_USER_AGENT,
                "Cookie": cookie_header(cookies),
            },
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
            transport=transport,
            follow_redirects=True,
        )
        # Numeric account id, known after login_check
        self.user_id: Optional[str] = None

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "Drive115Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _call(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise UpstreamError("115 drive request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"115 drive responded with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"115 drive is unreachable ({type(exc).__name__})") from exc
        except ValueError as exc:
            raise UpstreamError("115 drive returned a malformed response") from exc

        if not isinstance(payload, dict) or not payload.get("state"):
            raise UpstreamError(_error_message(payload if isinstance(payload, dict) else {}))
        return payload

    async def login_check(self) -> Dict[str, Any]:
        payload = await self._call("GET", API_LOGIN_CHECK)
        data = payload.get("data") or {}
        user_id = data.get("user_id")
        if user_id is not None:
            self.user_id = str(user_id)
        return data

    async def get_user(self) -> Dict[str, Any]:
        payload = await self._call("GET", API_USER_INFO, params={"ct": "ajax", "ac": "nav"})
        return payload.get("data") or {}

    # --- offline download tasks ----------------------------------------

    async def _offline_sign(self) -> Dict[str, Any]:
        payload = await self._call("GET", API_OFFLINE_SIGN, params={"ct": "offline", "ac": "space"})
        return {"sign": payload.get("sign"), "time": payload.get("time")}

    async def _offline_form(self) -> Dict[str, Any]:
        if self.user_id is None:
            await self.login_check()
        form = await self._offline_sign()
        form["uid"] = self.user_id
        return form

    async def list_offline_tasks(self, page: int = 1) -> Dict[str, Any]:
        form = await self._offline_form()
        form["page"] = page
        payload = await self._call(
            "POST", API_OFFLINE_TASKS, params={"ct": "lixian", "ac": "task_lists"}, data=form
        )
        return {
            "page": payload.get("page", page),
            "page_count": payload.get("page_count", 0),
            "count": payload.get("count", 0),
            "tasks": payload.get("tasks") or [],
        }

    async def add_offline_task_urls(self, urls: List[str], save_dir_id: str = "0") -> List[str]:
        form = await self._offline_form()
        form["wp_path_id"] = save_dir_id or "0"
        for index, url in enumerate(urls):
            form[f"url[{index}]"] = url

        payload = await self._call(
            "POST", API_OFFLINE_WEB, params={"ct": "lixian", "ac": "add_task_urls"}, data=form
        )

        hashes = []
        failures = 0
        for entry in payload.get("result") or []:
            if entry.get("state") and entry.get("info_hash"):
                hashes.append(entry["info_hash"])
            else:
                failures += 1
        if failures:
            logger.warning("115 rejected %d of %d offline task urls", failures, len(urls))
        if not hashes:
            raise UpstreamError("115 drive rejected every offline task url")
        return hashes

    async def delete_offline_tasks(self, hashes: List[str], delete_files: bool = False) -> None:
        form = await self._offline_form()
        form["flag"] = "1" if delete_files else "0"
        for index, info_hash in enumerate(hashes):
            form[f"hash[{index}]"] = info_hash
        await self._call(
            "POST", API_OFFLINE_TASKS, params={"ct": "lixian", "ac": "task_del"}, data=form
        )

    async def clear_offline_tasks(self, clear_flag: int = 0) -> None:
        await self._call(
            "POST",
            API_OFFLINE_WEB,
            params={"ct": "lixian", "ac": "task_clear"},
            data={"flag": str(clear_flag)},
        )

    # --- files -----------------------------------------------------------

    async def list_files(self, dir_id: int = 0, offset: int = 0, limit: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
        params = {
            "aid": 1,
            "cid": dir_id,
            "o": "user_ptime",
            "asc": 0,
            "offset": offset,
            "show_dir": 1,
            "limit": limit,
            "snap": 0,
            "natsort": 1,
            "record_open_time": 1,
            "format": "json",
            "fc_mix": 0,
        }
        payload = await self._call("GET", API_FILE_LIST, params=params)
        return {
            "dir_id": dir_id,
            "count": payload.get("count", 0),
            "offset": offset,
            "limit": limit,
            "files": payload.get("data") or [],
        }

    async def get_file_info(self, file_id: int) -> Dict[str, Any]:
        payload = await self._call("GET", API_FILE_INFO, params={"file_id": file_id})
        data = payload.get("data") or []
        if isinstance(data, list):
            if not data:
                raise NotFoundError("File not found")
            return data[0]
        return data

    async def get_download_info(self, file_id: int) -> Dict[str, Any]:
        info = await self.get_file_info(file_id)
        pick_code = info.get("pick_code") or info.get("pc")
        if not pick_code:
            raise UpstreamError("115 drive did not return a pick code for this file")

        payload = await self._call("GET", API_FILE_DOWNLOAD, params={"pickcode": pick_code})
        return {
            "file_id": file_id,
            "pick_code": pick_code,
            "file_name": payload.get("file_name") or info.get("n"),
            "file_size": payload.get("file_size") or info.get("s"),
            "url": payload.get("file_url"),
        }


class UpstreamClientFactory:
    """Builds validated ``Drive115Client`` instances for stored credentials."""

    def __init__(
        self,
        settings: Settings,
        credential_manager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._credentials = credential_manager
        self._transport = transport

    async def client_for(self, credential: Drive115Credential) -> Drive115Client:
        client = Drive115Client(credential.cookie_fields(), self._settings, transport=self._transport)
        try:
            await asyncio.wait_for(
                client.login_check(), timeout=self._settings.UPSTREAM_TIMEOUT_SECONDS
            )
        except (UpstreamError, asyncio.TimeoutError) as exc:
            await client.aclose()
            logger.warning(
                "115 login check failed for credentials id=%s (%s)",
                credential.id, type(exc).__name__,
            )
            raise UpstreamAuthError() from exc
        except BaseException:
            await client.aclose()
            raise
        return client

    async def resolve_active_client(self, user_id: int) -> Drive115Client:
        active = await self._credentials.list_active(user_id)
        if not active:
            raise NoActiveCredentialError()
        return await self.client_for(active[0])
