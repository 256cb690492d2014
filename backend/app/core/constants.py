"""
Notification engine constants: priorities, dedupe window, retry/backoff, digest clamps.
"""

# Priority: low < normal < high < critical
PRIORITY_WEIGHTS = {"low": 1, "normal": 2, "high": 3, "critical": 4}
DEFAULT_PRIORITY = "normal"

FREQUENCIES = ("immediate", "digest", "off")
DEFAULT_FREQUENCY = "immediate"

WILDCARD = "*"

# Used when a user has no matching preference row
DEFAULT_PREFERENCE = {
    "channel_in_app": True,
    "channel_email": False,
    "frequency": DEFAULT_FREQUENCY,
    "min_priority": DEFAULT_PRIORITY,
    "is_enabled": True,
}

# Same tenant + dedupe_key within this window reuses the notification
DEDUPE_WINDOW_MINUTES = 10

# Delivery channels and statuses
CHANNEL_EMAIL = "email"
DELIVERY_PENDING = "pending"
DELIVERY_DIGEST_PENDING = "digest_pending"
DELIVERY_SENDING = "sending"  # claimed by a processor, send in flight
DELIVERY_SENT = "sent"
DELIVERY_FAILED = "failed"

DELIVERY_MAX_ATTEMPTS = 5
DELIVERY_BACKOFF_CAP_MINUTES = 60
DELIVERY_BATCH_MIN = 1
DELIVERY_BATCH_MAX = 200
DELIVERY_DEFAULT_BATCH = 100
# A 'sending' claim older than this is considered abandoned (worker died) and re-queued
DELIVERY_CLAIM_LEASE_MINUTES = 15

# Digest preview clamps
DIGEST_WINDOW_MIN_MINUTES = 5
DIGEST_WINDOW_MAX_MINUTES = 60 * 24 * 30
DIGEST_DEFAULT_WINDOW_MINUTES = 1440
DIGEST_LIMIT_GROUPS_MIN = 1
DIGEST_LIMIT_GROUPS_MAX = 200
DIGEST_DEFAULT_LIMIT_GROUPS = 25
DIGEST_MAX_ROWS = 2000
DIGEST_SAMPLE_TITLES = 3

# Listing
LIST_DEFAULT_LIMIT = 50
LIST_MAX_LIMIT = 200

# Directory: roles/permissions that see every project
PRIVILEGED_ROLE_NAMES = ("ADMIN", "SUPER_ADMIN")
GENERAL_PROJECT_PERMISSIONS = ("projects_general.view", "projects_general.edit")
USER_STATUS_ACTIVE = "ACTIVE"

# Category gates for in-app listing: (event types, categories, required permission codes)
WORKFORCE_EVENT_TYPES = (
    "LABOR_CONTRACT_CREATED",
    "LABOR_CONTRACT_STATUS_CHANGED",
    "LABOR_PAYMENT_RECORDED",
)
SUPPLIES_EVENT_TYPES = (
    "EXPENSE_PAID",
    "EXPENSE_DELIVERED",
    "MATERIAL_ON_SITE_CONFIRMED",
)
CATEGORY_GATES = (
    (WORKFORCE_EVENT_TYPES, ("WORKFORCE",), ("workforce.view", "workforce.edit")),
    (SUPPLIES_EVENT_TYPES, ("SUPPLIES", "FINANCIAL"), ("supplies.view", "supplies.edit")),
    ((), ("PLANNING",), ("planning.view", "planning.edit")),
)
