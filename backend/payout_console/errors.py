# Overview: Error taxonomy shared by services, routes and the CLI.

"""
Console errors

Every operation raises one of these when it cannot complete. Routes turn
them into JSON with the class's status code; nothing here is fatal to the
process and no operation retries on its own. `retryable` tells the caller
whether invoking the same action again can succeed without changing input.
"""

from __future__ import annotations

from flask import jsonify


class ConsoleError(Exception):
    """Base class for expected, user-visible failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(ConsoleError):
    """Missing or malformed input, rejected before any write."""
    status_code = 400


class NotFoundError(ConsoleError):
    """Scanned or entered id is not in the catalog."""
    status_code = 404


class ConflictError(ConsoleError):
    """409-level business rule conflict (e.g., duplicate brand name)."""
    status_code = 409


class NoPendingSalesError(ConsoleError):
    """Settlement requested for a brand with nothing pending."""
    status_code = 409


class PersistenceError(ConsoleError):
    """Underlying store read/write failed."""
    status_code = 503


class DeliveryError(ConsoleError):
    """Email provider rejected or never answered the send."""
    status_code = 502


def error_response(exc: ConsoleError):
    return jsonify(exc.to_dict()), exc.status_code
