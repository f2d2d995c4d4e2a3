from __future__ import annotations

import argparse
from uuid import UUID


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Re-credit completed workout sessions and recompute progression profiles (with dry-run)."
    )
    parser.add_argument("--user-id", type=str, default=None, help="Only recompute this user (default: everyone)")
    parser.add_argument("--dry-run", action="store_true", help="Compute and print the result, then roll back")
    args = parser.parse_args()

    user_filter = None
    if args.user_id:
        try:
            user_filter = UUID(args.user_id)
        except ValueError:
            raise SystemExit(f"--user-id is not a UUID: {args.user_id}")

    # NOTE: This script is intended to be run inside the API container/runtime where
    # the app modules (`core`, `models`, `services`) are available on PYTHONPATH.
    from core.database import get_db_sync
    from models import User
    from services.progression_engine import sync_progression

    db = get_db_sync()
    try:
        q = db.query(User.id).order_by(User.created_at.asc())
        if user_filter is not None:
            q = q.filter(User.id == user_filter)
        user_ids = [user_id for (user_id,) in q.all()]

        print("Progression profile recompute")
        print(f"- users: {len(user_ids)}")

        total_credits = 0
        for user_id in user_ids:
            result = sync_progression(db, user_id)
            total_credits += result["new_credits"]
            print(
                f"  - {user_id} sessions={result['sessions_scanned']} "
                f"new_credits={result['new_credits']} repaired={result['repaired_counts']} "
                f"total_xp={result['total_xp']}"
            )

        if args.dry_run:
            db.rollback()
            print(f"Dry run: {total_credits} credit(s) computed, nothing written.")
            return 0

        db.commit()
        print(f"Committed {total_credits} new credit(s).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
