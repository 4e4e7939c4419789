"""
Migration: Create the story_registrations table.

Registration cache mapping content hashes to on-chain identifiers:
1. cid (primary key) - pinned metadata document
2. cid_hash (indexed) - keccak-256 of cid, what RemixHub events carry
3. ip_id / tx_hash / anchor_tx_hash - ledger registration result
4. parent_cid / parent_ip_id - derivative lineage

Re-running is safe: existing tables and columns are left alone.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/remixhub"
)


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def column_exists(conn, table_name: str, column_name: str) -> bool:
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.columns
            WHERE table_name = :table_name AND column_name = :column_name
        )
    """), {"table_name": table_name, "column_name": column_name})
    return result.fetchone()[0]


def run_migration():
    """Create story_registrations and add lineage columns to older tables."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        if table_exists(conn, "story_registrations"):
            print("story_registrations table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE story_registrations (
                    cid VARCHAR(128) PRIMARY KEY,
                    cid_hash VARCHAR(66),
                    ip_id VARCHAR(128),
                    tx_hash VARCHAR(66),
                    title VARCHAR(255),
                    anchor_tx_hash VARCHAR(66),
                    anchor_confirmed_at TIMESTAMP WITH TIME ZONE,
                    parent_cid VARCHAR(128),
                    parent_ip_id VARCHAR(128),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP WITH TIME ZONE
                )
            """))
            print("Created story_registrations table")

        # Tables created before lineage tracking lack these columns
        for column, ddl in (
            ("parent_cid", "VARCHAR(128)"),
            ("parent_ip_id", "VARCHAR(128)"),
            ("updated_at", "TIMESTAMP WITH TIME ZONE"),
        ):
            if not column_exists(conn, "story_registrations", column):
                conn.execute(text(f"ALTER TABLE story_registrations ADD COLUMN {column} {ddl}"))
                print(f"Added column story_registrations.{column}")

        conn.execute(text("""
            CREATE INDEX IF NOT EXISTS ix_story_registrations_cid_hash
            ON story_registrations (cid_hash)
        """))
        conn.execute(text("""
            CREATE INDEX IF NOT EXISTS ix_story_registrations_parent_cid
            ON story_registrations (parent_cid)
        """))

        conn.commit()
        print("Migration complete")


if __name__ == "__main__":
    run_migration()
