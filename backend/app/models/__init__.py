from app.models.notification import Notification
from app.models.notification_dedupe_key import NotificationDedupeKey
from app.models.notification_delivery import NotificationDelivery
from app.models.notification_preference import NotificationPreference
from app.models.notification_recipient import NotificationRecipient
from app.models.project import Project, ProjectMember
from app.models.user import Permission, Role, RolePermission, User, UserRole

__all__ = [
    "Notification",
    "NotificationDedupeKey",
    "NotificationDelivery",
    "NotificationPreference",
    "NotificationRecipient",
    "Permission",
    "Project",
    "ProjectMember",
    "Role",
    "RolePermission",
    "User",
    "UserRole",
]
