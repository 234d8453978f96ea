"""
Append-only ORM records.

Rows of models registered here may be inserted but never updated or deleted
through the ORM unit of work.
"""
from sqlalchemy import event


class ImmutableRecordError(RuntimeError):
    pass


def _reject_update(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} #{getattr(target, 'id', '?')} is immutable")


def _reject_delete(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} #{getattr(target, 'id', '?')} cannot be deleted")


def append_only(cls):
    event.listen(cls, "before_update", _reject_update)
    event.listen(cls, "before_delete", _reject_delete)
    return cls
