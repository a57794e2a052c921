import os
import sys

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import Settings  # noqa: E402
from database import create_store_engine, init_db, make_session_factory  # noqa: E402
from identity_store import IdentityStore  # noqa: E402
from utils.housekeeping import purge_stale_guests  # noqa: E402


def run() -> int:
    """
    One-off run of the scheduled purge.

    Removes guest records that never completed OTP verification and had no
    OTP issued within GUEST_RETENTION_HOURS.
    """
    settings = Settings.from_env()
    engine = create_store_engine(settings)
    init_db(engine)
    store = IdentityStore(make_session_factory(engine))

    deleted = purge_stale_guests(store, retention_hours=settings.guest_retention_hours)
    engine.dispose()
    print(f"Purged {deleted} stale guest records.")
    return deleted


if __name__ == "__main__":
    run()
