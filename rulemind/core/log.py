"""
Interaction Log — Append-only per-client conversation history

Layout (when a directory is given):
    <log_dir>/<client>.jsonl    one interaction per line, oldest first

Client keys are percent-encoded into file names ("host_a/b" becomes
"host_a%2Fb.jsonl"), so every client has its own file.

Reads return the newest interactions first, at most `depth` of them;
that is all the context a reaction replays. Files are loaded lazily
the first time a client is seen. Malformed lines are skipped.
"""

import logging
import threading
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Union
from urllib.parse import quote, unquote

import orjson

from .interaction import Interaction

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 3


class InteractionLog:
    """
    Thread Safety:
    - All public methods are thread-safe (single lock)
    """

    def __init__(self, log_dir: Optional[Union[str, Path]] = None, depth: int = DEFAULT_DEPTH):
        if depth < 1:
            raise ValueError("depth must be >= 1")
        self.log_dir = Path(log_dir) if log_dir is not None else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.depth = depth

        self._recent: Dict[str, Deque[Interaction]] = {}
        self._lock = threading.Lock()

    def get_interactions(self, client: str) -> List[Interaction]:
        """Latest interactions of a client, newest first."""
        with self._lock:
            recent = self._ensure_loaded(client)
            return list(reversed(recent))

    def add_interaction(self, client: str, interaction: Interaction):
        """Append an interaction to the client's log."""
        with self._lock:
            recent = self._ensure_loaded(client)
            recent.append(interaction)
            if self.log_dir is not None:
                with open(self._path(client), 'ab') as f:
                    f.write(orjson.dumps(interaction.to_dict()) + b'\n')

    def clients(self) -> List[str]:
        with self._lock:
            known = set(self._recent)
        if self.log_dir is not None:
            known.update(unquote(p.stem) for p in self.log_dir.glob("*.jsonl"))
        return sorted(known)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _path(self, client: str) -> Path:
        """Percent-encoded file name; distinct clients never share a file."""
        return self.log_dir / f"{quote(client, safe='')}.jsonl"

    def _ensure_loaded(self, client: str) -> Deque[Interaction]:
        """Get the in-memory window for a client (caller holds the lock)."""
        recent = self._recent.get(client)
        if recent is not None:
            return recent

        recent = deque(maxlen=self.depth)
        if self.log_dir is not None:
            path = self._path(client)
            if path.exists():
                with open(path, 'rb') as f:
                    for line in f:
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            recent.append(Interaction.from_dict(orjson.loads(line)))
                        except (orjson.JSONDecodeError, KeyError, TypeError):
                            logger.debug("Skipping malformed log line in %s", path)
                            continue
        self._recent[client] = recent
        return recent
