from fastapi import APIRouter, Depends, HTTPException
from langsmith import traceable

from interfaces.analysisModels import EvaluateRequest, Evaluation
from logger_manager import log_error, log_info
from services.scanner_service import ScannerService, get_scanner_service

router = APIRouter()


# evaluate a raw ingredient list, nothing is cached
@router.post("/evaluate", response_model=Evaluation)
@traceable
async def evaluate_endpoint(request: EvaluateRequest, scanner: ScannerService = Depends(get_scanner_service)):
    log_info(f"evaluate_endpoint called for {len(request.ingredients)} ingredients")
    if not request.ingredients:
        raise HTTPException(status_code=400, detail="No ingredients provided")
    try:
        return await scanner.evaluate_ingredients(
            request.ingredients,
            product_name=request.product_name,
            user_id=request.user_id,
            skip_enhancement=request.skip_enhancement,
        )
    except Exception as e:
        log_error(f"Error evaluating ingredients: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
