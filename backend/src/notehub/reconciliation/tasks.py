"""Celery task for the nightly storage/database reconciliation sweep.

Scheduled by workers/celery_app.py (03:00 UTC). Report-only unless
RECONCILE_PURGE_ORPHANS is enabled.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from ..config import get_settings
from ..database import SessionLocal
from ..dependencies import get_storage
from .service import FileManager

logger = logging.getLogger(__name__)


@shared_task(name="reconciliation.sweep", bind=True)
def reconciliation_sweep_task(self, purge_orphans: bool = None) -> Dict[str, Any]:
    """Run one reconciliation sweep and return its report.

    Idempotent: a second run right after the first finds the same dangling
    rows and no orphans that were already purged.
    """
    if purge_orphans is None:
        purge_orphans = get_settings().RECONCILE_PURGE_ORPHANS

    logger.info(f"Reconciliation sweep started (purge_orphans={purge_orphans})")

    db = SessionLocal()
    try:
        manager = FileManager(db, get_storage())
        report = asyncio.run(manager.sweep(purge_orphans=purge_orphans))
        return {"status": "completed", **report.to_dict()}
    finally:
        db.close()
