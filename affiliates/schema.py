"""
Table definitions for the affiliate registry.

Two tables: the affiliate records themselves, unique on national ID and
member number, and the append-only audit log of admin changes.
"""

NATIONAL_ID_CONSTRAINT = "affiliates_national_id_key"
MEMBER_NUMBER_CONSTRAINT = "affiliates_member_number_key"

SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS affiliates (
        id SERIAL PRIMARY KEY,
        national_id TEXT NOT NULL,
        member_number TEXT NOT NULL,
        full_name TEXT NOT NULL,
        category TEXT,
        employer TEXT,
        admission_date DATE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT {NATIONAL_ID_CONSTRAINT} UNIQUE (national_id),
        CONSTRAINT {MEMBER_NUMBER_CONSTRAINT} UNIQUE (member_number),
        CONSTRAINT affiliates_national_id_digits CHECK (national_id ~ '^[0-9]+$'),
        CONSTRAINT affiliates_member_number_digits CHECK (member_number ~ '^[0-9]+$')
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id BIGSERIAL PRIMARY KEY,
        action TEXT NOT NULL CHECK (action IN ('Add', 'Edit', 'Delete')),
        national_id TEXT NOT NULL,
        full_name TEXT NOT NULL,
        member_number TEXT NOT NULL,
        timestamp_utc TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_audit_log_timestamp
        ON audit_log (timestamp_utc DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_affiliates_full_name_lower
        ON affiliates (lower(full_name))
    """,
)
