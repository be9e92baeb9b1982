from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from langsmith import traceable

from db.database import get_session_factory
from interfaces.analysisModels import IngredientInsightResponse
from interfaces.productModels import ScanResponse
from logger_manager import log_error, log_info
from services.scanner_service import ScannerService, get_scanner_service, persist_analysis

router = APIRouter()


@router.get("/barcode/{barcode}", response_model=ScanResponse)
@traceable
async def scan_barcode(
    barcode: str,
    background_tasks: BackgroundTasks,
    user_id: Optional[str] = None,
    skip_enhancement: bool = False,
    scanner: ScannerService = Depends(get_scanner_service),
    session_factory=Depends(get_session_factory),
):
    log_info(f"scan_barcode called for {barcode} (user={user_id}, skip_enhancement={skip_enhancement})")
    try:
        result = await scanner.resolve_and_evaluate(barcode.strip(), user_id, skip_enhancement)
        if not result.found:
            log_info(f"Barcode {barcode} not found in cache or any source")
            return result

        # the write happens after the response is sent, its failure is only logged
        if result.should_cache:
            background_tasks.add_task(persist_analysis, session_factory, result.product.barcode, result.analysis)
        return result
    except HTTPException:
        raise
    except Exception as e:
        log_error(f"Error scanning barcode {barcode}: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/ingredient_insight", response_model=IngredientInsightResponse)
async def ingredient_insight(
    name: str = Query(..., min_length=1),
    user_id: Optional[str] = None,
    scanner: ScannerService = Depends(get_scanner_service),
):
    log_info(f"ingredient_insight called for {name}")
    try:
        return await scanner.ingredient_insight(name, user_id)
    except Exception as e:
        log_error(f"Error getting insight for {name}: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
