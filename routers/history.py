from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from db.database import get_db
from interfaces.productModels import ScanHistoryResponse
from logger_manager import log_error, log_info
from services.scan_history import get_scan_history

router = APIRouter()


@router.get("/scan/{user_id}", response_model=List[ScanHistoryResponse])
def read_scan_history(user_id: str, limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    log_info("Read scan history endpoint called")
    try:
        scan_history = get_scan_history(db, user_id, limit)
        log_info(f"Scan history retrieved successfully ({len(scan_history)} entries)")
        return scan_history
    except Exception as e:
        log_error(f"Error in read_scan_history endpoint: {str(e)}", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
