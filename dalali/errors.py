# dalali/errors.py
from __future__ import annotations
from typing import Optional


class DalaliError(Exception):
    """Base class for errors surfaced to the caller as a short message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(DalaliError):
    status_code = 401


class ValidationError(DalaliError, ValueError):
    status_code = 400


class NotFoundError(DalaliError):
    status_code = 404


class StoreError(DalaliError):
    """
    A write against the data store failed.

    `step` names the write that failed (e.g. "create_order_items") so the
    user knows where it stopped.
    """

    status_code = 503

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step
