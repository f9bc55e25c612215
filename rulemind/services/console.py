"""
Console registry — Generic console services declared by knowledge documents

A knowledge document may declare data services:

    {"console": {"wiki": {"url": "https://...?q=$query$", "data": "items", "parser": "json"}}}

Only JSON services are registered. Calling them is left to the service
layer that owns the registry.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsoleService:
    """A registered generic console: where to fetch and which field holds the rows."""
    name: str
    url: str
    data: str


class ConsoleRegistry:
    """Thread-safe name → ConsoleService registry. Re-registration replaces."""

    def __init__(self):
        self._services: Dict[str, ConsoleService] = {}
        self._lock = threading.Lock()

    def add_generic_console(self, name: str, url: str, data: str) -> ConsoleService:
        service = ConsoleService(name=name, url=url, data=data)
        with self._lock:
            self._services[name] = service
        logger.debug("Registered console service %s -> %s", name, url)
        return service

    def get(self, name: str) -> Optional[ConsoleService]:
        return self._services.get(name)

    def names(self) -> List[str]:
        return sorted(self._services)

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, name: str) -> bool:
        return name in self._services
