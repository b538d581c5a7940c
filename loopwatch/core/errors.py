"""
Errors raised inside the polling layer
"""
from typing import Optional


GENERIC_FETCH_ERROR = "request failed"


class FetchError(Exception):
    """
    A poll that did not produce a usable payload.

    status_code is None for transport failures (timeouts, refused
    connections, undecodable bodies).
    """

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        self.message = message or GENERIC_FETCH_ERROR
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
