from app.core.utils import StringEnum


class ChangeOperation(StringEnum):
    """Kind of row mutation described by a change record."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
