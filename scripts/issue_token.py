#!/usr/bin/env python3
"""Mint a development access token for an existing user.

Usage:
    python scripts/issue_token.py --email host@vendibook.test
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from app.core.security import create_access_token
from app.database import close_db, get_db_context
from app.models.user import User


async def issue_token(email: str) -> str | None:
    async with get_db_context() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if not user:
            return None
        return create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})


def main():
    parser = argparse.ArgumentParser(description="Issue a development JWT")
    parser.add_argument("--email", required=True, help="User email")
    args = parser.parse_args()

    token = asyncio.run(_run(args.email))
    if token is None:
        print(f"ERROR: no user with email {args.email}")
        sys.exit(1)
    print(token)


async def _run(email: str) -> str | None:
    try:
        return await issue_token(email)
    finally:
        await close_db()


if __name__ == "__main__":
    main()
