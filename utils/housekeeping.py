from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from identity_store import IdentityStore, utc_now


logger = logging.getLogger(__name__)


def purge_stale_guests(store: IdentityStore, *, retention_hours: int, now: Optional[datetime] = None) -> int:
    """Delete guests never verified whose last OTP is older than the retention window."""
    cutoff = (now or utc_now()) - timedelta(hours=retention_hours)
    deleted = store.purge_stale_guests(cutoff)
    if deleted:
        logger.info("Purged %d stale guest records (older than %s)", deleted, cutoff.isoformat())
    return deleted
