"""
Pre-register a family member so their first sign-in links automatically.

Usage:
    ENV_FILE=.env.prod python scripts/users/register_member.py mia@example.com "Mia Parker"
    ENV_FILE=.env.dev python scripts/users/register_member.py alex@example.com "Alex Parker" --admin
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path to import libs
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from dotenv import load_dotenv

# Load env file selected for the run (defaults to .env.dev when ENV_FILE not set)
# MUST be done before importing libs that use get_settings()
project_root = Path(__file__).resolve().parents[2]
env_file = os.environ.get("ENV_FILE", ".env.dev")
load_dotenv(project_root / env_file, override=True)

from pydantic import ValidationError

from libs.common.config import get_settings
from libs.common.logging import configure_logging
from libs.db.factory import build_data_store
from libs.db.store import DataStore, StoreError
from services.members_service.schemas import MemberCreate
from services.members_service.services.member_service import (
    MemberAlreadyRegisteredError,
    register_member,
)

settings = get_settings()


async def _store() -> DataStore:
    if settings.DATA_STORE_BACKEND == "supabase":
        # Row level security only lets the service role insert members
        from libs.common.supabase_client import create_service_client
        from libs.db.supabase_store import SupabaseStore

        return SupabaseStore(await create_service_client(settings))
    return await build_data_store(settings)


async def main(email: str, name: str, is_admin: bool) -> int:
    print(f"🚀 Registering family member {email} ({env_file})")

    try:
        data = MemberCreate(email=email, name=name, is_admin=is_admin)
    except ValidationError as e:
        print(f"❌ Invalid member details:\n{e}")
        return 1

    store = await _store()
    try:
        member = await register_member(store, data)
    except MemberAlreadyRegisteredError:
        print(f"⚠️ {email} is already registered. Nothing to do.")
        return 0
    except StoreError as e:
        print(f"❌ Could not register {email}: {e}")
        return 1

    role = "admin" if member.is_admin else "member"
    print(f"✅ Registered {member.name} as {role} (id {member.id})")
    print("   They will be linked on their first sign-in with this email.")
    return 0


if __name__ == "__main__":
    configure_logging()

    parser = argparse.ArgumentParser(description="Pre-register a family member by email")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--admin", action="store_true", help="Grant admin privileges")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.email, args.name, args.admin)))
