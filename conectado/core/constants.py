"""Application-wide constants.

This module centralizes magic numbers and fixed strings that are used
across multiple modules. For environment-specific configuration, see
config.py.
"""

# =============================================================================
# Pagination Defaults
# =============================================================================

# Default page size for list endpoints
DEFAULT_PAGE_SIZE: int = 20

# Default page size for conversation messages
CONVERSATION_MESSAGES_PAGE_SIZE: int = 50

# Maximum page size to prevent abuse
MAX_PAGE_SIZE: int = 100

# =============================================================================
# Messaging
# =============================================================================

# Content stored in place of a soft-deleted message
DELETED_MESSAGE_PLACEHOLDER: str = "[Mensaje eliminado]"

# Message content limits
MESSAGE_CONTENT_MAX_LENGTH: int = 2000

# Storage folder for message attachments
MESSAGE_ATTACHMENT_FOLDER: str = "messages"

# Attachment MIME allow-list (images plus common documents)
MESSAGE_ATTACHMENT_ALLOWED_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

# Conversation preview length in listings
MESSAGE_PREVIEW_MAX_LENGTH: int = 100

# =============================================================================
# Presence
# =============================================================================

NEVER_CONNECTED_TEXT: str = "Nunca conectado"
ONLINE_TEXT: str = "En línea"

# =============================================================================
# Caching
# =============================================================================

UNREAD_DM_CACHE_KEY: str = "dm:unread:{user_id}"
