"""
Workflows module - Portal orchestration over content, search and webhooks.
"""
from workflows.portal import KnowledgePortal, SEARCHABLE_KINDS

__all__ = [
    "KnowledgePortal",
    "SEARCHABLE_KINDS",
]
