from .notification import Notification
from .setting import NotificationSetting

__all__ = ["Notification", "NotificationSetting"]
