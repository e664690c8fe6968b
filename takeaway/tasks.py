"""
Background tasks: menu spreadsheet export and worker housekeeping.
"""

import logging
import time
from datetime import datetime

from takeaway.celery_worker import celery_app
from takeaway.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=5, retry_backoff=True)
def export_menu_to_excel(self, rows: list[dict]) -> dict:
    """
    Write a menu snapshot (one row per on-sale dish) to the workbook.

    The rows are built by the API at request time, so the worker never
    touches the database. A failed write (lock timeout, disk error) is
    retried with backoff.
    """
    started = time.perf_counter()
    result = ExcelManager.export_menu(rows)

    result["task_id"] = self.request.id
    result["processing_time_seconds"] = round(time.perf_counter() - started, 3)

    if not result["success"]:
        logger.warning(f"Menu export {self.request.id} failed ({result['message']}), retrying")
        raise self.retry(exc=RuntimeError(result["message"]))

    logger.info(
        f"Menu export {self.request.id}: {result['rows']} dishes "
        f"in {result['processing_time_seconds']}s"
    )
    return result


@celery_app.task
def health_check() -> dict:
    """Round-trip probe for the worker."""
    return {"status": "healthy", "checked_at": datetime.now().isoformat()}


@celery_app.task
def clear_menu_export() -> dict:
    """Remove the exported workbook."""
    removed = ExcelManager.clear_all()
    return {
        "success": removed,
        "message": "Menu export removed" if removed else "Could not remove menu export",
    }
