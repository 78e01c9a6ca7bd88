# Overview: Base exception types shared by services and translated by routes.


class ServiceError(Exception):
    """State-precondition failure. Raised before any mutation is applied."""
    status_code = 400


class NotFoundError(ServiceError):
    """Referenced entity does not exist."""
    status_code = 404


class ForbiddenError(ServiceError):
    """Actor may not touch this record (e.g. another customer's order)."""
    status_code = 403
