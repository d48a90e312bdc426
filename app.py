# app.py
from __future__ import annotations
from functools import lru_cache
import logging
import time

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from db import SessionLocal, init_db
from blob_storage import LocalBlobStorage
from brd_client import HttpBrdClient
from document_store import DocumentStore
from errors import LegacyBrdError, RulesValidationError
from legacy_repo import LegacyBrdStore, SiteStore
from legacy_service import LegacyBrdService
from llm_factory import load_provider
from prefill_generator import LlmPrefillGenerator
from prefill_orchestrator import PrefillOrchestrator
from schemas import ApiResponse, LegacyBrdRequest, LegacyPrefillRequest
from semantic_matcher import LlmSemanticMatcher, load_field_catalog
from settings import settings

log = logging.getLogger("legacybrd.api")

STATUS_SUCCESS = "SUCCESS"
STATUS_ERROR = "ERROR"
STANDARD_DATA_SUCCESS_MESSAGE = "Standard data retrieved successfully"
USER_RULES_SUCCESS_MESSAGE = "User rules retrieved successfully"
PREFILL_SUCCESS_MESSAGE = "BRD prefill operation completed successfully"
PREFILL_ERROR_MESSAGE = "BRD prefill operation failed - BRD not found or conversion issues"
PREFILL_FAILED_MESSAGE = "Failed to prefill BRD"

app = FastAPI(title="Legacy BRD Reconciliation & Prefill API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Wiring ---------
@lru_cache(maxsize=1)
def get_legacy_service() -> LegacyBrdService:
    storage = LocalBlobStorage()
    provider = load_provider()
    legacy_store = LegacyBrdStore(SessionLocal)
    orchestrator = PrefillOrchestrator(
        brd_client=HttpBrdClient(),
        generator=LlmPrefillGenerator(provider, DocumentStore(storage)),
        legacy_store=legacy_store,
        site_store=SiteStore(SessionLocal),
    )
    return LegacyBrdService(
        storage=storage,
        matcher=LlmSemanticMatcher(provider, load_field_catalog()),
        legacy_store=legacy_store,
        orchestrator=orchestrator,
    )


def _timed(label: str, started: float) -> None:
    if settings.API_ENABLE_TIMING_LOGS:
        log.info("%s took %.1f ms", label, (time.perf_counter() - started) * 1000)


# --------- Endpoints ---------

@app.on_event("startup")
def _startup():
    # Make sure tables exist
    init_db()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


@app.get("/legacy/standard-data", response_model=ApiResponse, response_model_exclude_none=True)
async def get_standard_data(
    file_url: str = Query(..., alias="fileUrl"),
    service: LegacyBrdService = Depends(get_legacy_service),
):
    try:
        data = await service.get_standard_data(file_url)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except LegacyBrdError as e:
        raise HTTPException(500, str(e))
    return ApiResponse(
        status=STATUS_SUCCESS,
        message=STANDARD_DATA_SUCCESS_MESSAGE,
        data=[g.model_dump(by_alias=True) for g in data],
    )


@app.get("/legacy/user-rules", response_model=ApiResponse, response_model_exclude_none=True)
async def get_user_rules(
    file_url: str = Query(..., alias="fileUrl"),
    service: LegacyBrdService = Depends(get_legacy_service),
):
    try:
        data = await service.get_user_rules(file_url)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except LegacyBrdError as e:
        raise HTTPException(500, str(e))
    return ApiResponse(
        status=STATUS_SUCCESS,
        message=USER_RULES_SUCCESS_MESSAGE,
        data=[r.model_dump(by_alias=True) for r in data],
    )


@app.post("/legacy/rules-with-data")
async def get_rules_with_data(
    request: LegacyBrdRequest,
    service: LegacyBrdService = Depends(get_legacy_service),
):
    """Combined rules + guidance mapping as a downloadable JSON file."""
    started = time.perf_counter()
    try:
        artifact = await service.get_rules_with_data(request)
    except (RulesValidationError, ValueError) as e:
        raise HTTPException(400, str(e))
    except LegacyBrdError as e:
        log.error("rules-with-data failed for %s: %s", request.brd_id, e)
        raise HTTPException(500, str(e))
    _timed("rules-with-data", started)
    return Response(
        content=artifact,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{settings.COMBINED_RULES_FILE_NAME}"'},
    )


@app.post("/legacy/prefill", response_model=ApiResponse, response_model_exclude_none=True)
async def prefill_legacy_brd(
    request: LegacyPrefillRequest,
    service: LegacyBrdService = Depends(get_legacy_service),
):
    started = time.perf_counter()
    try:
        ok = await service.prefill_legacy_brd(request)
    except Exception as e:
        log.error("prefill failed for %s: %s", request.brd_id, e)
        return ApiResponse(status=STATUS_ERROR, message=PREFILL_FAILED_MESSAGE, errors={"error": str(e)})
    finally:
        _timed("prefill", started)

    if ok:
        return ApiResponse(status=STATUS_SUCCESS, message=PREFILL_SUCCESS_MESSAGE, data=True)
    return ApiResponse(
        status=STATUS_ERROR,
        message=PREFILL_ERROR_MESSAGE,
        data=False,
        errors={"error": f"Unable to locate or process BRD with ID: {request.brd_id}"},
    )


if __name__ == "__main__":
    import uvicorn
    from telemetry import go_quiet

    go_quiet()
    uvicorn.run(app, host="0.0.0.0", port=8000)
