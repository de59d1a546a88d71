#!/usr/bin/env python3
"""
Seed the token store with an initial SpareBank 1 refresh token.

Usage: python scripts/set_refresh_token.py "your-refresh-token"
"""
import asyncio
import sys

from banksync.config import get_settings
from banksync.database import Base, SessionLocal, engine
from banksync.app.token_store import create_token_store


async def set_refresh_token(refresh_token: str):
    settings = get_settings()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        store = create_token_store(settings, db)
        await store.set_refresh_token(refresh_token)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2 or not sys.argv[1].strip():
        print("Please provide a refresh token as an argument")
        print('Usage: python scripts/set_refresh_token.py "your-refresh-token"')
        sys.exit(1)

    asyncio.run(set_refresh_token(sys.argv[1].strip()))
    print("Successfully set refresh token")
