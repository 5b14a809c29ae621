"""
Table definitions created at startup.

Statements are hardcoded, never built from configuration. Every statement
is create-if-absent, and no table references another, so each table can be
created independently and any number of times.
"""

from typing import Final, NamedTuple


class TableDefinition(NamedTuple):
    """A table and the statements that create it and its indexes."""

    name: str
    statements: tuple[str, ...]


BRANCHES: Final = TableDefinition(
    "branches",
    (
        """
        CREATE TABLE IF NOT EXISTS branches (
            id VARCHAR(36) PRIMARY KEY,
            branch_code VARCHAR(50) NOT NULL UNIQUE,
            branch_name VARCHAR(255) NOT NULL,
            branch_city VARCHAR(100),
            branch_address TEXT,
            region VARCHAR(100),
            contact_phone VARCHAR(50),
            contact_email VARCHAR(255),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_branches_city ON branches (branch_city)",
    ),
)

DEVICES: Final = TableDefinition(
    "devices",
    (
        """
        CREATE TABLE IF NOT EXISTS devices (
            id VARCHAR(36) PRIMARY KEY,
            device_name VARCHAR(255) NOT NULL,
            device_mac VARCHAR(50) UNIQUE,
            ip_address VARCHAR(45),
            device_type VARCHAR(50) NOT NULL DEFAULT 'recorder',
            device_status VARCHAR(20) NOT NULL DEFAULT 'inactive',
            branch_id VARCHAR(36),
            notes TEXT,
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_devices_branch ON devices (branch_id)",
    ),
)

RECORDINGS: Final = TableDefinition(
    "recordings",
    (
        """
        CREATE TABLE IF NOT EXISTS recordings (
            id VARCHAR(36) PRIMARY KEY,
            file_name VARCHAR(255) NOT NULL,
            device_name VARCHAR(255),
            device_mac VARCHAR(50),
            ip_address VARCHAR(45),
            branch_id VARCHAR(36),
            cnic VARCHAR(20),
            start_time TIMESTAMPTZ,
            end_time TIMESTAMPTZ,
            duration_seconds INTEGER,
            status VARCHAR(20) NOT NULL DEFAULT 'completed',
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_recordings_branch ON recordings (branch_id)",
        "CREATE INDEX IF NOT EXISTS idx_recordings_created ON recordings (created_on)",
    ),
)

HEARTBEAT: Final = TableDefinition(
    "heartbeat",
    (
        """
        CREATE TABLE IF NOT EXISTS heartbeat (
            uuid VARCHAR(36) PRIMARY KEY,
            ip_address VARCHAR(45) NOT NULL,
            mac_address VARCHAR(50),
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_heartbeat_mac ON heartbeat (mac_address, created_on)",
    ),
)

USERS: Final = TableDefinition(
    "users",
    (
        """
        CREATE TABLE IF NOT EXISTS users (
            uuid VARCHAR(36) PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            full_name VARCHAR(255),
            role VARCHAR(20) NOT NULL DEFAULT 'user',
            branch_id VARCHAR(36),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
)

DEPLOYMENTS: Final = TableDefinition(
    "deployments",
    (
        """
        CREATE TABLE IF NOT EXISTS deployments (
            uuid VARCHAR(36) PRIMARY KEY,
            device_id VARCHAR(36) NOT NULL,
            branch_id VARCHAR(36) NOT NULL,
            user_id VARCHAR(36),
            deployment_role VARCHAR(50),
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_on TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_deployments_branch ON deployments (branch_id)",
    ),
)

COMPLAINTS: Final = TableDefinition(
    "complaints",
    (
        """
        CREATE TABLE IF NOT EXISTS complaints (
            complaint_id VARCHAR(36) PRIMARY KEY,
            branch_id VARCHAR(36),
            customer_name VARCHAR(255),
            customer_cnic VARCHAR(20),
            complaint_text TEXT NOT NULL,
            category VARCHAR(50),
            priority VARCHAR(20) NOT NULL DEFAULT 'medium',
            status VARCHAR(20) NOT NULL DEFAULT 'open',
            created_by VARCHAR(36),
            created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            resolved_on TIMESTAMPTZ
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_complaints_status ON complaints (status)",
    ),
)

# Owned by the password reset flow
PASSWORD_RESET_TOKENS: Final = TableDefinition(
    "password_reset_tokens",
    (
        """
        CREATE TABLE IF NOT EXISTS password_reset_tokens (
            id BIGSERIAL PRIMARY KEY,
            user_uuid VARCHAR(36) NOT NULL,
            token VARCHAR(255) NOT NULL UNIQUE,
            expires_at TIMESTAMPTZ NOT NULL,
            used BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_password_reset_user ON password_reset_tokens (user_uuid)",
    ),
)

# Creation order
TABLES: Final[tuple[TableDefinition, ...]] = (
    BRANCHES,
    DEVICES,
    RECORDINGS,
    HEARTBEAT,
    USERS,
    DEPLOYMENTS,
    COMPLAINTS,
    PASSWORD_RESET_TOKENS,
)

TABLES_BY_NAME: Final[dict[str, TableDefinition]] = {table.name: table for table in TABLES}
