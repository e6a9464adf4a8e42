"""Base classes for errors raised by the service layer.

Routes translate them to ``HTTPException`` using ``status_code``.
"""


class ServiceError(Exception):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


__all__ = ["ServiceError", "NotFoundError", "ConflictError"]
