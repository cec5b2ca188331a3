"""Audit trail for claim decisions."""
from .dynamodb_sink import DynamoDBAuditSink
from .memory_sink import InMemoryAuditSink
from .dispatcher import BackgroundAuditDispatcher

__all__ = ['DynamoDBAuditSink', 'InMemoryAuditSink', 'BackgroundAuditDispatcher']
