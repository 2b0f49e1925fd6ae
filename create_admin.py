#!/usr/bin/env python3
"""
Create the first administrator account.

Usage:
    python create_admin.py --username admin --email admin@example.com [--password secret]
"""

from __future__ import annotations

import argparse
import getpass
import sys

from dotenv import load_dotenv

from englishapp.db import init_db
from englishapp.errors import AppError
from englishapp.services.auth import register_user


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an administrator account.")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    return parser.parse_args()


def main() -> int:
    load_dotenv()
    args = parse_args()
    password = args.password or getpass.getpass("Password: ")

    try:
        init_db()
        admin = register_user(args.username, args.email, password, is_admin=True)
    except AppError as exc:
        print(f"❌ Could not create administrator: {exc.message}")
        return 1

    print(f"✅ Administrator {admin['email']} created (id {admin['id']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
