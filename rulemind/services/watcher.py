"""
KnowledgeWatcher — Background reload of knowledge files

Reloading reads files and reparses documents, so it never runs inside a
reaction. The watcher polls KnowledgeBase.observe() on its own daemon
thread; observe() only reparses files whose modification time moved.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

DEFAULT_RELOAD_INTERVAL = 10.0


class KnowledgeWatcher:
    """Polls a knowledge base for new or modified files."""

    def __init__(self, knowledge: 'KnowledgeBase', interval: float = DEFAULT_RELOAD_INTERVAL):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.knowledge = knowledge
        self.interval = interval

        self._thread: Optional[threading.Thread] = None
        self._shutdown = threading.Event()
        self._lock = threading.Lock()
        self.polls = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the watcher thread (no-op if already running)."""
        with self._lock:
            if self._thread is not None:
                return
            self._shutdown.clear()
            self._thread = threading.Thread(
                target=self._watch_loop,
                name="rulemind-knowledge-watcher",
                daemon=True
            )
            self._thread.start()
        logger.info("Watching knowledge every %.1fs", self.interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the watcher thread."""
        self._shutdown.set()
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=timeout)
            logger.info("Knowledge watcher stopped")

    def poll_once(self) -> List[Path]:
        """Run one reload pass. Returns files learned."""
        learned = self.knowledge.observe()
        self.polls += 1
        if learned:
            logger.info("Reloaded %d knowledge file(s)", len(learned))
        return learned

    def _watch_loop(self) -> None:
        while not self._shutdown.wait(self.interval):
            try:
                self.poll_once()
            except Exception as e:
                logger.error("Knowledge reload failed: %s", e)

    def __enter__(self) -> 'KnowledgeWatcher':
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
