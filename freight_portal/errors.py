from __future__ import annotations


class ReferentialInconsistencyError(ValueError):
    """An assignment points at a destination or carton configuration that cannot be resolved."""


class QuoteTotalsMismatchError(ValueError):
    pass


class SerializationError(RuntimeError):
    def __init__(self, entity_type: str, message: str) -> None:
        super().__init__(f'Collection {entity_type!r} is unreadable: {message}')
        self.entity_type = entity_type
