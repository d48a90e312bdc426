"""
Client for the BRD form service (read a BRD, apply an ordered partial update).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from errors import ExternalCollaboratorError
from schemas import ApiResponse
from settings import settings

log = logging.getLogger("legacybrd.brd_client")


class BrdClient(ABC):
    @abstractmethod
    async def get_brd_by_id(self, brd_id: str) -> Optional[ApiResponse]: ...

    @abstractmethod
    async def update_brd_partially_with_ordered_operations(
        self, brd_id: str, fields: Dict[str, Any]
    ) -> Optional[ApiResponse]: ...


class HttpBrdClient(BrdClient):
    def __init__(self, base_url: str = settings.BRD_SERVICE_URL, timeout: float = settings.HTTP_TIMEOUT_SECONDS,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Optional[ApiResponse]:
        url = f"{self.base_url}{path}"
        log.info("Calling BRD service %s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as e:
            raise ExternalCollaboratorError("BRD service", f"{method} {path} failed", e) from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            error_detail = response.text or f"HTTP {response.status_code}"
            try:
                error_json = response.json()
                if isinstance(error_json, dict):
                    error_detail = error_json.get("message", error_json.get("detail", str(error_json)))
                elif error_json is not None:
                    error_detail = str(error_json)
            except ValueError:
                pass
            raise ExternalCollaboratorError(
                "BRD service", f"{method} {path} returned {response.status_code}: {error_detail}"
            )

        if not response.content:
            return None
        try:
            return ApiResponse.model_validate(response.json())
        except ValueError as e:
            raise ExternalCollaboratorError("BRD service", f"invalid response for {method} {path}", e) from e

    async def get_brd_by_id(self, brd_id: str) -> Optional[ApiResponse]:
        return await asyncio.to_thread(self._call, "GET", f"/brds/{brd_id}")

    async def update_brd_partially_with_ordered_operations(
        self, brd_id: str, fields: Dict[str, Any]
    ) -> Optional[ApiResponse]:
        return await asyncio.to_thread(self._call, "PATCH", f"/brds/{brd_id}/ordered", fields)
