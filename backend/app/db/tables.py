"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). Directory tables (users, roles,
projects, ...) are owned by the business modules; notification tables by this service.
"""
# Directory tables read by the candidate resolver (written by the business modules).
DIRECTORY_TABLE_NAMES = (
    "users",
    "roles",
    "permissions",
    "user_roles",
    "role_permissions",
    "projects",
    "project_members",
)

# Notification engine tables. Order matters for FK when truncating (children first).
NOTIFICATION_TABLE_NAMES = (
    "notification_deliveries",
    "notification_recipients",
    "notification_dedupe_keys",
    "notifications",
    "notification_preferences",
)

# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = DIRECTORY_TABLE_NAMES + NOTIFICATION_TABLE_NAMES
