"""
Create the orderdesk tables.

Creates the jobs and order_cache tables (and their indexes) on the database
configured by DATABASE_URL or INSTANCE_CONNECTION_NAME/DB_NAME/DB_USER.
Existing tables are left untouched.
"""

import os
import sys

from dotenv import load_dotenv

from orderdesk.db import DatabaseConnection
from orderdesk.db.tables import metadata

# Load environment variables
load_dotenv()


def main():
    """Main function."""
    print("🚀 Orderdesk Schema Tool")
    print("=" * 50)

    target = os.getenv("DATABASE_URL") or os.getenv("INSTANCE_CONNECTION_NAME")
    if not target:
        print("❌ DATABASE_URL or INSTANCE_CONNECTION_NAME must be set")
        sys.exit(1)

    print(f"\nTables: {', '.join(metadata.tables)}")
    print("\n⚠️  This will create missing tables on:")
    print(f"   Target: {target.split('@')[-1]}")

    response = input("\nProceed? (yes/no): ").strip().lower()
    if response not in ["yes", "y"]:
        print("❌ Cancelled")
        sys.exit(0)

    print("\n🔌 Connecting...")
    try:
        DatabaseConnection.initialize()
        DatabaseConnection.create_tables()
    except Exception as e:
        print(f"❌ Failed to create tables: {e}")
        sys.exit(1)
    finally:
        DatabaseConnection.close()

    print("\n" + "=" * 50)
    print("✅ Tables created successfully!")


if __name__ == "__main__":
    main()
