from fastapi import APIRouter, Depends, HTTPException, status

from interfaces.productModels import ClearAnalysisResponse, ManualProductCreate, ProductRecord
from logger_manager import log_error, log_info
from services.scanner_service import ScannerService, get_scanner_service

router = APIRouter()


@router.post("/manual", response_model=ProductRecord)
def create_manual_product(product: ManualProductCreate, scanner: ScannerService = Depends(get_scanner_service)):
    log_info(f"create_manual_product called for {product.barcode}")
    try:
        return scanner.create_or_overwrite_product(product)
    except Exception as e:
        log_error(f"Error saving manual product {product.barcode}: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.delete("/analysis", response_model=ClearAnalysisResponse)
def clear_all_analyses(scanner: ScannerService = Depends(get_scanner_service)):
    log_info("clear_all_analyses called")
    try:
        cleared = scanner.clear_analysis()
        log_info(f"Cleared {cleared} cached analyses")
        return ClearAnalysisResponse(cleared=cleared)
    except Exception as e:
        log_error(f"Error clearing cached analyses: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/{barcode}", response_model=ProductRecord)
async def get_product(barcode: str, scanner: ScannerService = Depends(get_scanner_service)):
    log_info(f"get_product called for {barcode}")
    try:
        product = await scanner.lookup_product(barcode.strip())
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product
    except HTTPException:
        raise
    except Exception as e:
        log_error(f"Error getting product {barcode}: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.delete("/{barcode}/analysis", response_model=ClearAnalysisResponse)
def clear_product_analysis(barcode: str, scanner: ScannerService = Depends(get_scanner_service)):
    log_info(f"clear_product_analysis called for {barcode}")
    try:
        cleared = scanner.clear_analysis(barcode.strip())
        return ClearAnalysisResponse(cleared=cleared, barcode=barcode)
    except Exception as e:
        log_error(f"Error clearing analysis for {barcode}: {e}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
