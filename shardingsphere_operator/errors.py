"""
Error kinds raised by the builder and the object repository
"""
from typing import Optional


class OperatorError(Exception):
    """Base class for errors raised by this operator"""


class ConstructionError(OperatorError):
    """A record spec is malformed and no derived object can be built from it"""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field else reason
        super().__init__(message)


class TransientRepositoryError(OperatorError):
    """
    The object store could not serve a get/create/update call.

    Covers API server unavailability, optimistic-concurrency conflicts and
    already-exists races. Always retried after the fixed backoff.
    """

    def __init__(self, verb: str, kind: str, namespace: str, name: str,
                 reason: str, status: Optional[int] = None):
        self.verb = verb
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.reason = reason
        self.status = status
        super().__init__(
            f"{verb} {kind} {namespace}/{name} failed"
            f"{f' ({status})' if status else ''}: {reason}"
        )
