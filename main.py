#!/usr/bin/env python3
"""
Taskflow admin CLI -- operate on the user and task tables without a token.

Meant for the operator of the deployment: creating the schema, recovering an
account whose role was changed by mistake, or removing a user when no Admin
can sign in. Commands go through the same services as the HTTP API and act
with Admin authority.

Usage:
  python main.py init-db
  python main.py list-users
  python main.py list-users --role Candidate
  python main.py set-role <subject-id> Employee
  python main.py delete-user <subject-id>
  python main.py --db-url sqlite:///other.db list-users

Environment variables:
  DATABASE_URL  Overrides the default SQLite file (see core/config.py).
"""

import argparse
import sys
from typing import Optional

from auth.models import Role
from auth.store import UserStore
from core.config import get_settings
from core.db import create_db_engine
from core.errors import TaskflowError
from services import users as user_service
from tasks.store import TaskStore

# Actor id recorded for CLI-initiated deletions. Never a real subject id, so
# the self-deletion guard cannot trigger.
_CLI_ACTOR = "cli"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskflow",
        description="Taskflow admin CLI.",
    )
    parser.add_argument("--db-url", help="Database URL (default: DATABASE_URL setting).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the users and tasks tables if missing.")

    list_cmd = sub.add_parser("list-users", help="Print users ordered by display name.")
    list_cmd.add_argument("--role", choices=[r.value for r in Role], help="Only users with this role.")

    role_cmd = sub.add_parser("set-role", help="Change a user's role.")
    role_cmd.add_argument("subject_id")
    role_cmd.add_argument("role")

    delete_cmd = sub.add_parser("delete-user", help="Delete a user and all of their tasks.")
    delete_cmd.add_argument("subject_id")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    engine = create_db_engine(
        args.db_url or settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )
    try:
        user_store = UserStore(engine)
        task_store = TaskStore(engine)

        if args.command == "init-db":
            print(f"  Schema ready at {engine.url.render_as_string(hide_password=True)}")
        elif args.command == "list-users":
            roles = [Role.parse(args.role)] if args.role else None
            users = user_store.list_users(roles=roles)
            if not users:
                print("  No users.")
            for u in users:
                count = task_store.count_tasks(u.subject_id)
                print(f"  {u.subject_id:<40} {u.role.value:<10} {count:>4} task(s)  {u.display_name} <{u.email}>")
        elif args.command == "set-role":
            user = user_service.update_role(user_store, Role.ADMIN, args.subject_id, args.role)
            print(f"  {user.subject_id} is now {user.role.value}")
        elif args.command == "delete-user":
            removed = user_service.delete_user(user_store, task_store, _CLI_ACTOR, Role.ADMIN, args.subject_id)
            print(f"  Deleted {args.subject_id} and {removed} task(s)")
        return 0
    except TaskflowError as exc:
        print(f"  [!] {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
