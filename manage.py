import argparse

from iiitm_portal.app import create_app
from iiitm_portal.app.services.auth_service import get_auth_provider
from iiitm_portal.app.services.db_service import init_db
from iiitm_portal.app.services.file_service import sweep_orphaned_objects


def cmd_init_db(app, args) -> int:
    init_db(app.config["DATABASE"])
    print(f"Database ready at {app.config['DATABASE']}")
    return 0


def cmd_sweep_accounts(app, args) -> int:
    max_age = args.max_age if args.max_age is not None else app.config["PENDING_ACCOUNT_MAX_AGE_MINUTES"]
    with app.test_request_context():
        removed = get_auth_provider().sweep_pending_accounts(max_age)
    print(f"Removed {removed} pending account(s) older than {max_age} minutes")
    return 0


def cmd_sweep_orphans(app, args) -> int:
    with app.test_request_context():
        removed = sweep_orphaned_objects(min_age_seconds=args.min_age)
    print(f"Removed {removed} orphaned object(s)")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Portal maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database schema").set_defaults(func=cmd_init_db)

    accounts = sub.add_parser("sweep-accounts", help="Delete sign-ups that never got a profile")
    accounts.add_argument("--max-age", type=int, default=None, help="Age threshold in minutes")
    accounts.set_defaults(func=cmd_sweep_accounts)

    orphans = sub.add_parser("sweep-orphans", help="Delete stored objects with no metadata row")
    orphans.add_argument("--min-age", type=int, default=300, help="Skip objects newer than this many seconds")
    orphans.set_defaults(func=cmd_sweep_orphans)

    args = parser.parse_args()
    app = create_app()
    return args.func(app, args)


if __name__ == "__main__":
    raise SystemExit(main())
