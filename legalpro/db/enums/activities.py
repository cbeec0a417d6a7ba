"""Case activity log enums."""

from enum import Enum


class ActivityType(str, Enum):
    """Types of activities logged in case history."""

    CASE_CREATED = "case_created"
    CASE_UPDATED = "case_updated"
    STATUS_CHANGED = "status_changed"
    ADVOCATE_ASSIGNED = "advocate_assigned"
    ADVOCATE_REMOVED = "advocate_removed"
    CLIENT_ADDED = "client_added"
    CLIENT_REMOVED = "client_removed"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DOWNLOADED = "document_downloaded"
    DOCUMENT_DELETED = "document_deleted"
    NOTE_ADDED = "note_added"
    NOTE_UPDATED = "note_updated"
    NOTE_DELETED = "note_deleted"
    COURT_DATE_SET = "court_date_set"
    COURT_DATE_UPDATED = "court_date_updated"
    BILLING_UPDATED = "billing_updated"
    PAYMENT_RECEIVED = "payment_received"
    DEADLINE_SET = "deadline_set"
    DEADLINE_MISSED = "deadline_missed"
    CASE_ARCHIVED = "case_archived"
    CASE_RESTORED = "case_restored"
    PERMISSION_CHANGED = "permission_changed"
    SYSTEM_ACTION = "system_action"
    EMAIL_SENT = "email_sent"
    SMS_SENT = "sms_sent"
    LOGIN_ACCESS = "login_access"
    EXPORT_DATA = "export_data"
    PRINT_DOCUMENT = "print_document"
    OTHER = "other"


class ActivityPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"  # Never hidden by retention


class ActivityCategory(str, Enum):
    CASE_MANAGEMENT = "case_management"
    DOCUMENT_MANAGEMENT = "document_management"
    USER_MANAGEMENT = "user_management"
    BILLING = "billing"
    COMMUNICATION = "communication"
    SYSTEM = "system"
    SECURITY = "security"


class ActivitySource(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"
    SYSTEM = "system"
    IMPORT = "import"


class NotificationMethod(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in_app"


class NotificationDeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
