class NotificationError(Exception):
    """Raised when a notification cannot be delivered."""
