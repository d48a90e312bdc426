import asyncio
import io
import logging
from typing import Dict, List

import pdfplumber

from blob_storage import BlobStorage
from errors import ExternalCollaboratorError
from settings import settings

log = logging.getLogger("legacybrd.documents")

PAGE_BREAK = "\f"  # keep page boundaries in the text


def ingest_bytes_to_text(data: bytes, filename: str | None = None) -> str:
    """
    PDF bytes → text with form-feed page breaks (pdfplumber); any other file
    is decoded as UTF-8.
    """
    if data[:5] == b"%PDF-" or (filename or "").lower().endswith(".pdf"):
        pages = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                text = page.extract_text() or ""  # avoid None
                pages.append(text.strip())
        return PAGE_BREAK.join(pages)
    return data.decode("utf-8", errors="replace")


class DocumentStore:
    """Supporting documents uploaded for a BRD, read from blob storage by name."""

    def __init__(self, storage: BlobStorage, prefix: str = settings.DOCUMENTS_PREFIX):
        self.storage = storage
        self.prefix = prefix.strip("/")

    async def get_text(self, document_name: str) -> str:
        name = f"{self.prefix}/{document_name}" if self.prefix else document_name
        data = await self.storage.fetch_file(name)
        try:
            return await asyncio.to_thread(ingest_bytes_to_text, data, document_name)
        except Exception as e:
            raise ExternalCollaboratorError("document store", f"cannot read text of {document_name}", e) from e

    async def get_texts(self, document_names: List[str]) -> Dict[str, str]:
        texts: Dict[str, str] = {}
        for name in document_names:
            texts[name] = await self.get_text(name)
        log.info("Loaded %d supporting document(s)", len(texts))
        return texts
