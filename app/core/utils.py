from enum import StrEnum

from fastapi import Request


class StringEnum(StrEnum):
    """StrEnum that renders as its bare value in repr, str and format.

    Keeps enum members readable inside log lines and JSON payloads.
    """

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    def __format__(self, format_spec: str) -> str:
        return self.value.__format__(format_spec)


def get_client_ip(request: Request) -> str:
    """Client address, honouring proxy headers first."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "127.0.0.1"
