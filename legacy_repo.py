# legacy_repo.py
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models_legacy import LegacyBrdRecord, SiteRecord
from schemas import LegacyBrd, LegacyEntityInfo, Site

log = logging.getLogger("legacybrd.repo")


def _to_legacy(r: LegacyBrdRecord) -> LegacyBrd:
    return LegacyBrd(
        brd_id=r.brd_id,
        main=LegacyEntityInfo.model_validate(r.main_json) if r.main_json else None,
        sites=[LegacyEntityInfo.model_validate(x) for x in (r.sites_json or [])],
    )

def _to_site(r: SiteRecord) -> Site:
    return Site(
        id=r.id,
        brd_id=r.brd_id,
        site_id=r.site_id,
        site_name=r.site_name,
        identifier_code=r.identifier_code,
        description=r.description,
        brd_form=dict(r.brd_form or {}),
        created_at=r.created_at,
        updated_at=r.updated_at,
    )

# --- Legacy BRD records ---
def get_legacy_brd(db: Session, brd_id: str) -> Optional[LegacyBrd]:
    rec = db.get(LegacyBrdRecord, brd_id)
    return _to_legacy(rec) if rec else None

def save_legacy_brd(db: Session, legacy: LegacyBrd) -> LegacyBrd:
    """Upsert by brd_id; the site descriptor list is replaced as a whole."""
    rec = db.get(LegacyBrdRecord, legacy.brd_id)
    if rec is None:
        rec = LegacyBrdRecord(brd_id=legacy.brd_id)
        db.add(rec)
    rec.main_json = legacy.main.model_dump() if legacy.main else None
    rec.sites_json = [s.model_dump() for s in legacy.sites]
    db.commit()
    db.refresh(rec)
    return _to_legacy(rec)

# --- Sites ---
def find_site(db: Session, brd_id: str, site_id: str) -> Optional[Site]:
    q = select(SiteRecord).where(SiteRecord.brd_id == brd_id, SiteRecord.site_id == site_id)
    rec = db.execute(q).scalars().first()
    return _to_site(rec) if rec else None

def save_site(db: Session, site: Site) -> Site:
    """
    Upsert a site. Rows are matched by id first, then by the natural key
    (brd_id, site_id), so a repeated prefill never creates a duplicate.
    """
    rec = db.get(SiteRecord, site.id) if site.id else None
    if rec is None:
        q = select(SiteRecord).where(SiteRecord.brd_id == site.brd_id, SiteRecord.site_id == site.site_id)
        rec = db.execute(q).scalars().first()
    if rec is None:
        rec = SiteRecord(brd_id=site.brd_id, site_id=site.site_id)
        if site.id:
            rec.id = site.id
        db.add(rec)

    rec.site_name = site.site_name
    rec.identifier_code = site.identifier_code
    rec.description = site.description
    rec.brd_form = dict(site.brd_form or {})
    rec.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(rec)
    return _to_site(rec)


class LegacyBrdStore:
    """Async facade over the legacy record table; sessions run in a worker thread."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _find(self, brd_id: str) -> Optional[LegacyBrd]:
        with self._session_factory() as db:
            return get_legacy_brd(db, brd_id)

    def _save(self, legacy: LegacyBrd) -> LegacyBrd:
        with self._session_factory() as db:
            return save_legacy_brd(db, legacy)

    async def find_by_brd_id(self, brd_id: str) -> Optional[LegacyBrd]:
        return await asyncio.to_thread(self._find, brd_id)

    async def save(self, legacy: LegacyBrd) -> LegacyBrd:
        saved = await asyncio.to_thread(self._save, legacy)
        log.info("Saved legacy BRD %s with %d site(s)", saved.brd_id, len(saved.sites))
        return saved


class SiteStore:
    """Async facade over the sites table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _find(self, brd_id: str, site_id: str) -> Optional[Site]:
        with self._session_factory() as db:
            return find_site(db, brd_id, site_id)

    def _save(self, site: Site) -> Site:
        with self._session_factory() as db:
            return save_site(db, site)

    async def find_by_brd_id_and_site_id(self, brd_id: str, site_id: str) -> Optional[Site]:
        return await asyncio.to_thread(self._find, brd_id, site_id)

    async def save(self, site: Site) -> Site:
        return await asyncio.to_thread(self._save, site)
