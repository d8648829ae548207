"""Utility script to recreate the district manager roster schema.

Usage:
    python scripts/reset_local_db.py

Environment:
    Ensure DATABASE_URL (and other required settings) are available in
    the current shell before running this script. All manager assignments
    are deleted.
"""

from __future__ import annotations

from land_workflow_bot.config import get_settings
from land_workflow_bot.db import Database


def reset_database() -> None:
    database = Database(get_settings().database_url)
    database.drop_schema()
    database.create_schema()
    print("Local database reset.")


if __name__ == "__main__":
    reset_database()
