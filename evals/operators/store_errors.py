class FixtureStoreError(Exception):
    """Base exception for fixture store operations."""
    pass


class EntityNotFoundError(FixtureStoreError):
    """Raised when an operation that must act on a record cannot find it."""
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InvalidOperationError(FixtureStoreError):
    """Raised when an operation would break a store invariant."""
    pass
