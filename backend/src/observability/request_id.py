"""Request correlation IDs.

Held in a ContextVar so the ID follows a request across awaits and lands in
every log record written while serving it.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

NO_REQUEST_ID = "no-request-id"

# Inbound IDs are echoed into logs and headers, so only short tokens are kept
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def resolve_request_id(inbound: Optional[str]) -> str:
    """Reuse the caller's X-Request-ID when it is a plain token, else mint one."""
    if inbound and _ACCEPTED_ID.fullmatch(inbound):
        return inbound
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
