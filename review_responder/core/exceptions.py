"""Domain exceptions raised by the service layer"""
from typing import Optional


class GoogleAPIError(Exception):
    """A Google API call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GoogleAuthExpiredError(GoogleAPIError):
    """
    The user's Google credential can't be used or refreshed.

    Not transient: the user has to reconnect their Google account.
    """

    def __init__(self, message: str = "Google authentication expired. Please sign in again."):
        super().__init__(message, status_code=401)


class GooglePermissionError(GoogleAPIError):
    """The Google account lacks access to the requested resource"""

    def __init__(self, message: str):
        super().__init__(message, status_code=403)


class NotFoundError(ValueError):
    """The requested resource doesn't exist"""


class AccessDeniedError(Exception):
    """The resource exists but belongs to another user"""
