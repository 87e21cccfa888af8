"""
Domain errors raised by the access layer.
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced row (playlist, user or track) does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} is not found")
        self.entity = entity
        self.entity_id = entity_id
