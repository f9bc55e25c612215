"""
Services — Collaborators around the reasoning core

- Console: registry of generic console services declared by knowledge
- Watcher: background knowledge reload
"""

from .console import ConsoleRegistry, ConsoleService
from .watcher import KnowledgeWatcher, DEFAULT_RELOAD_INTERVAL

__all__ = [
    'ConsoleRegistry', 'ConsoleService',
    'KnowledgeWatcher', 'DEFAULT_RELOAD_INTERVAL',
]
