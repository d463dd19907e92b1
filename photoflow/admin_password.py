"""
Admin password hash utility.

Generates the bcrypt ADMIN_PASSWORD_HASH for the .env file, or checks a
password against an existing hash.

    photoflow-admin-password --generate
    photoflow-admin-password --check '$2b$12$...'
"""
import argparse
import getpass
import sys
from typing import List, Optional

from photoflow.utils.auth import hash_password, verify_password


def _prompt_new_password() -> Optional[str]:
    password = getpass.getpass("Enter admin password: ")
    if not password:
        print("Error: Password cannot be empty")
        return None
    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match")
        return None
    return password


def generate() -> int:
    password = _prompt_new_password()
    if password is None:
        return 1

    print("\nGenerating hash (this may take a moment)...")
    hashed = hash_password(password)
    print("\nCopy this line to your .env file:\n")
    print(f"ADMIN_PASSWORD_HASH={hashed}")
    print("\nKeep this hash secret and never commit it to version control!")
    return 0


def check(hash_value: str) -> int:
    print(f"Testing against hash: {hash_value[:30]}...")
    password = getpass.getpass("Enter password to test: ")
    if verify_password(password, hash_value):
        print("Password matches!")
        return 0

    print("Password does not match.")
    print("If you've forgotten the password, generate a new hash with --generate")
    print("and update ADMIN_PASSWORD_HASH in your .env file.")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="PhotoFlow admin password hash utility")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--generate", action="store_true", help="generate a new ADMIN_PASSWORD_HASH")
    group.add_argument("--check", metavar="HASH", help="test a password against an existing hash")
    args = parser.parse_args(argv)

    if args.generate:
        return generate()
    return check(args.check)


if __name__ == "__main__":
    sys.exit(main())
