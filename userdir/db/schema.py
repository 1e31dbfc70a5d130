"""Database schema definitions"""

# Users table: identity columns only, attributes live in attribute_values
USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,                     -- canonical UUID string
    username TEXT UNIQUE NOT NULL,           -- trimmed, case-sensitive
    password_hash TEXT NOT NULL DEFAULT '',  -- '' means login disabled
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,                -- UTC ISO-8601
    updated_at TEXT NOT NULL
)
"""

# Attribute types: name <-> identifier bijection
ATTRIBUTE_TYPES_TABLE = """
CREATE TABLE IF NOT EXISTS attribute_types (
    id TEXT PRIMARY KEY,
    name TEXT UNIQUE NOT NULL
)
"""

# Attribute values: one row per (user, attribute type, value), rowid keeps insertion order
ATTRIBUTE_VALUES_TABLE = """
CREATE TABLE IF NOT EXISTS attribute_values (
    user_id TEXT NOT NULL,
    attribute_type_id TEXT NOT NULL,
    value TEXT NOT NULL DEFAULT '',
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (attribute_type_id) REFERENCES attribute_types(id)
)
"""

# Schema version table for migrations
SCHEMA_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
)
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_attribute_values_user_type ON attribute_values(user_id, attribute_type_id)",
    "CREATE INDEX IF NOT EXISTS idx_users_active ON users(active)",
]

# All tables in order of creation
ALL_TABLES = [
    USERS_TABLE,
    ATTRIBUTE_TYPES_TABLE,
    ATTRIBUTE_VALUES_TABLE,
]
