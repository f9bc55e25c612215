"""
Mind — The assembled reasoning system

Wires the knowledge base, ranker, reaction engine, interaction log and
reload watcher from one MindConfig:

    mind = Mind(MindConfig(init_path="conf/rulemind", watch_path="data/rulemind"))
    mind.reply("hello there")
    mind.interaction("hello there", 3, ClientIdentity("host", "example.org"))

Construction runs one observe() pass; later reloads happen through
watch() (background thread) or explicit observe() calls.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import MindConfig
from .core.argument import Argument
from .core.identity import ClientIdentity, DEFAULT_IDENTITY
from .core.interaction import Interaction
from .core.knowledge import KnowledgeBase, KnowledgeDocument
from .core.log import InteractionLog
from .core.ranker import Idea, IdeaRanker
from .core.reaction import ReactionEngine
from .services.watcher import KnowledgeWatcher

logger = logging.getLogger(__name__)


class Mind:
    """Facade over the knowledge, ranking and reaction components."""

    def __init__(self, config: Optional[MindConfig] = None):
        self.config = config or MindConfig()
        self.config.validate()

        self.knowledge = KnowledgeBase(
            self.config.init_path,
            self.config.watch_path,
            extensions=self.config.extensions,
        )
        self.log = InteractionLog(self.config.log_path, depth=self.config.log_depth)
        self.ranker = IdeaRanker(self.knowledge)
        self.engine = ReactionEngine(
            self.ranker,
            self.log,
            candidate_pool=self.config.candidate_pool,
            default_client=self.config.default_client,
        )
        self._watcher: Optional[KnowledgeWatcher] = None

        learned = self.knowledge.observe()
        logger.debug("Initial observe learned %d file(s)", len(learned))

    # =========================================================================
    # Knowledge
    # =========================================================================

    def observe(self) -> List[Path]:
        return self.knowledge.observe()

    def learn(self, document: Union[KnowledgeDocument, Dict[str, Any]]) -> 'Mind':
        self.knowledge.learn(document)
        return self

    def watch(self) -> KnowledgeWatcher:
        """Start background reloading (idempotent)."""
        if self._watcher is None:
            self._watcher = KnowledgeWatcher(self.knowledge, self.config.reload_interval)
        self._watcher.start()
        return self._watcher

    def close(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    # =========================================================================
    # Reasoning
    # =========================================================================

    def creativity(self, query: str, argument: Optional[Argument] = None, maxcount: int = 1) -> List[Idea]:
        return self.ranker.creativity(query, argument, maxcount)

    def react(self, query: str, maxcount: int = 1, client: Optional[str] = None) -> List[Argument]:
        return self.engine.react(query, maxcount, client)

    def reply(self, query: str) -> str:
        return self.engine.reply(query)

    def interaction(
        self,
        query: str,
        maxcount: int = 1,
        identity: ClientIdentity = DEFAULT_IDENTITY
    ) -> Interaction:
        return self.engine.interaction(query, maxcount, identity)

    def stats(self) -> Dict[str, Any]:
        stats = self.knowledge.stats()
        stats["reader"] = self.knowledge.reader.stats()
        stats["clients"] = len(self.log.clients())
        return stats

    def __enter__(self) -> 'Mind':
        return self

    def __exit__(self, *exc) -> None:
        self.close()
