"""
Domain Exceptions

Raised by the service layer and translated to HTTP responses by the
exception handlers registered in ``takeaway.main``.
"""

from typing import Optional


class BusinessError(Exception):
    """
    A request that is well-formed but violates a business rule.

    Examples: deleting a category that still has dishes, deleting a
    set meal that is on sale. Rendered as HTTP 400.
    """

    status_code = 400

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFoundError(BusinessError):
    """The requested entity does not exist (or was logically deleted)."""

    status_code = 404

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} #{entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id
