from typing import List, Optional

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from db.models import ScanHistory
from datetime import datetime
from logger_manager import log_info, log_error

def record_scan(db: Session, user_id: Optional[str], barcode: str) -> Optional[ScanHistory]:
    """Best-effort scan log, a failed write never fails the scan itself."""
    if not user_id:
        return None
    try:
        scan_entry = ScanHistory(
            user_id=user_id,
            barcode=barcode,
            scan_date=datetime.now(tz=pytz.utc),
        )
        db.add(scan_entry)
        db.commit()
        db.refresh(scan_entry)
        log_info(f"Scan of {barcode} recorded for user {user_id}")
        return scan_entry
    except SQLAlchemyError as e:
        db.rollback()
        log_error(f"Error recording scan: {str(e)}", e)
        return None

def get_scan_history(db: Session, user_id: str, limit: int = 50) -> List[ScanHistory]:
    log_info(f"Getting scan history for user {user_id}")
    return db.query(ScanHistory)\
        .filter(ScanHistory.user_id == user_id)\
        .order_by(ScanHistory.scan_date.desc())\
        .limit(limit)\
        .all()
