#!/usr/bin/env python3
"""
Catalog Management Utility

This script provides maintenance commands for lookup data and accounts:
- List and add writers
- List and add users (prints the new user's API token)
- Show collection statistics
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from pymongo.errors import DuplicateKeyError

from api.auth import generate_api_token
from catalog.database import CatalogDatabase
from catalog.models import Role, User
from catalog.user_service import UserService
from catalog.writer_service import WriterService
from utilities.config import config
from utilities.logger import setup_logging


async def list_writers(db_manager: CatalogDatabase):
    """List all writers."""
    writers = await WriterService(db_manager).get_writer_list()
    if not writers:
        print("❌ No writers found in database")
        return

    print(f"✅ Found {len(writers)} writers:")
    for writer in writers:
        print(f"{writer.id:5d}. {writer.name}")


async def add_writer(db_manager: CatalogDatabase, name: str):
    """Add a writer."""
    try:
        writer = await WriterService(db_manager).add_writer(name)
    except ValueError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
    print(f"✅ Writer added: {writer.id} {writer.name}")


async def list_users(db_manager: CatalogDatabase):
    """List all users with their roles."""
    users = await UserService(db_manager).get_user_list()
    if not users:
        print("❌ No users found in database")
        return

    print(f"✅ Found {len(users)} users:")
    for user in users:
        roles = ", ".join(sorted(role.value for role in user.roles))
        print(f"{user.id:5d}. {user.username} [{roles}]")


async def add_user(db_manager: CatalogDatabase, username: str, admin: bool):
    """Add a user and print its API token."""
    roles = {Role.USER, Role.ADMIN} if admin else {Role.USER}
    user = User(username=username, roles=roles, api_token=generate_api_token())
    try:
        user = await db_manager.save_user(user)
    except DuplicateKeyError:
        print(f"❌ Error: username '{username}' is already taken")
        sys.exit(1)

    print(f"✅ User added: {user.id} {user.username}")
    print(f"🔑 API token: {user.api_token}")


async def show_statistics(db_manager: CatalogDatabase):
    """Show collection counts."""
    stats = await db_manager.get_stats()
    print("📊 CATALOG STATISTICS")
    print("=" * 40)
    for name, count in stats.items():
        print(f"  {name:10s} {count}")


def print_usage():
    print("Usage: python manage_catalog.py <command> [args]")
    print()
    print("Commands:")
    print("  writers                    - List writers")
    print("  add-writer <name>          - Add a writer")
    print("  users                      - List users")
    print("  add-user <username> [admin] - Add a user, optionally with the ADMIN role")
    print("  stats                      - Show collection statistics")
    print()
    print("Examples:")
    print("  python manage_catalog.py add-writer 'Leo Tolstoy'")
    print("  python manage_catalog.py add-user alice admin")


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1].lower()
    if command in ("add-writer", "add-user") and len(sys.argv) < 3:
        print(f"❌ Error: argument required for {command}")
        print_usage()
        sys.exit(1)
    if command not in ("writers", "add-writer", "users", "add-user", "stats"):
        print(f"❌ Unknown command: {command}")
        print("Available commands: writers, add-writer, users, add-user, stats")
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    db_manager = CatalogDatabase(config.mongodb_url, config.mongodb_database)
    await db_manager.connect()
    try:
        if command == "writers":
            await list_writers(db_manager)
        elif command == "add-writer":
            await add_writer(db_manager, sys.argv[2])
        elif command == "users":
            await list_users(db_manager)
        elif command == "add-user":
            is_admin = len(sys.argv) > 3 and sys.argv[3].lower() == "admin"
            await add_user(db_manager, sys.argv[2], is_admin)
        elif command == "stats":
            await show_statistics(db_manager)
    finally:
        await db_manager.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
