from .user_settings import UserSettingsRow
from .send_record import BounceRecordRow, SendRecordRow

__all__ = [
    "UserSettingsRow",
    "SendRecordRow",
    "BounceRecordRow",
]
