from app.core.utils import StringEnum


class UserAction(StringEnum):
    """Actions recorded in the user_activity table."""

    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
