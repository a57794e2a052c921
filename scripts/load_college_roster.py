import argparse
import os
import sys

import yaml

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import Settings  # noqa: E402
from database import create_store_engine, init_db, make_session_factory  # noqa: E402
from identity_store import IdentityStore  # noqa: E402
from utils.identity_service import IdentityService  # noqa: E402
from utils.password_hasher import CredentialHasher  # noqa: E402
from utils.results import ErrorKind  # noqa: E402


def load_roster(path: str, settings: Settings) -> int:
    """
    Register college users listed in a YAML roster.

    Expected shape:
      users:
        - srNo: "2021CS001"
          password: "..."
          name: "..."
          email: "..."
          department: "..."
    Existing srNo entries are skipped.
    """
    engine = create_store_engine(settings)
    init_db(engine)
    service = IdentityService(
        IdentityStore(make_session_factory(engine)),
        CredentialHasher(settings.credential_hash_cost),
        settings=settings,
    )

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    added = 0
    for entry in (data.get("users", []) or []):
        entry = dict(entry or {})
        sr_no = str(entry.get("srNo") or "").strip()
        outcome = service.register_college(
            sr_no,
            entry.get("password"),
            name=entry.get("name"),
            email=entry.get("email"),
            department=entry.get("department"),
        )
        if outcome.ok:
            print(f"Added college user {sr_no}.")
            added += 1
        elif outcome.error is ErrorKind.DUPLICATE_IDENTITY:
            print(f"College user {sr_no} already exists. Skipping.")
        else:
            print(f"Skipping {sr_no or '<missing srNo>'}: {outcome.error.value}")

    engine.dispose()
    print(f"Roster loaded: {added} added.")
    return added


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Register college users from a YAML roster")
    parser.add_argument(
        "path",
        nargs="?",
        default=os.path.join(os.path.dirname(__file__), "college_roster.yml"),
    )
    args = parser.parse_args()
    load_roster(args.path, Settings.from_env())
