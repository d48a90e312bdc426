"""
Blob storage access for legacy rule exports, the guidance catalog and
supporting documents. Local directory storage with HTTP(S) fetch for URLs.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

from errors import ExternalCollaboratorError
from settings import settings

log = logging.getLogger("legacybrd.blob")


class BlobStorage(ABC):
    @abstractmethod
    async def fetch_file(self, name: str) -> bytes: ...

    @abstractmethod
    async def fetch_file_from_url(self, url: str) -> bytes: ...

    @abstractmethod
    async def update_file(self, name: str, content: str) -> None: ...


class LocalBlobStorage(BlobStorage):
    """Blobs live under a root directory; http(s) URLs are fetched with requests."""

    def __init__(self, root_dir: str | Path = settings.BLOB_ROOT_DIR, timeout: float = settings.HTTP_TIMEOUT_SECONDS):
        self.root = Path(root_dir)
        self.timeout = timeout

    def _within_root(self, path: Path, label: str) -> Path:
        path = path.resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"blob name escapes storage root: {label}")
        return path

    def _path_for(self, name: str) -> Path:
        if not name or not name.strip():
            raise ValueError("blob name must not be empty")
        return self._within_root(self.root / name, name)

    def _read(self, path: Path) -> bytes:
        return path.read_bytes()

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def _download(self, url: str) -> bytes:
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    async def fetch_file(self, name: str) -> bytes:
        path = self._path_for(name)
        try:
            data = await asyncio.to_thread(self._read, path)
        except OSError as e:
            log.error("Error fetching blob %s: %s", name, e)
            raise ExternalCollaboratorError("blob storage", f"cannot read {name}", e) from e
        log.info("Fetched blob %s, size: %d bytes", name, len(data))
        return data

    async def fetch_file_from_url(self, url: str) -> bytes:
        if not url or not url.strip():
            raise ValueError("file URL must not be empty")
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            try:
                data = await asyncio.to_thread(self._download, url)
            except requests.RequestException as e:
                log.error("Error downloading %s: %s", url, e)
                raise ExternalCollaboratorError("blob storage", f"cannot download {url}", e) from e
            log.info("Downloaded %s, size: %d bytes", url, len(data))
            return data
        if parsed.scheme == "file":
            # file URLs are only honoured inside the storage root
            path = self._within_root(Path(unquote(parsed.path)), url)
            try:
                return await asyncio.to_thread(self._read, path)
            except OSError as e:
                raise ExternalCollaboratorError("blob storage", f"cannot read {url}", e) from e
        # bare names are resolved inside the storage root
        return await self.fetch_file(url)

    async def update_file(self, name: str, content: str) -> None:
        path = self._path_for(name)
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            log.error("Error updating blob %s: %s", name, e)
            raise ExternalCollaboratorError("blob storage", f"cannot write {name}", e) from e
        log.info("Updated blob %s (%d chars)", name, len(content))
