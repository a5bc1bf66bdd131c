"""
Create an account (e.g. a support or test user). Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL FULL_NAME PASSWORD [--verified]
Example:
  python -m app.scripts.create_user alice alice@example.com "Alice Smith" s3cure-pass --verified
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from pydantic import ValidationError as SchemaValidationError

from app.core.database import check_db_connected, session_scope
from app.core.exceptions import AccountError
from app.schemas.user import UserCreate
from app.services.users import register_user

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a storefront user account.")
    parser.add_argument("username", help="Username (stored lowercased)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("full_name", help="Full name")
    parser.add_argument("password", help="Password (8-72 bytes)")
    parser.add_argument(
        "--verified",
        action="store_true",
        help="Mark the account verified (skips the passcode step)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        data = UserCreate(
            username=args.username,
            email=args.email,
            full_name=args.full_name,
            password=args.password,
        )
    except SchemaValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            print(f"Invalid {field}: {err['msg']}", file=sys.stderr)
        return 1

    with session_scope() as db:
        if not check_db_connected(db):
            print("Database is not reachable; check DATABASE_URL.", file=sys.stderr)
            return 1
        try:
            register_user(db, data, verified=args.verified)
        except AccountError as e:
            logger.error("User creation failed: %s", e.message)
            print(e.message, file=sys.stderr)
            return 1

    print(f"Created user '{data.username}' <{data.email}>.")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    sys.exit(main())
