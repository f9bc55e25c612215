"""
rulemind — Rule-based conversational reasoning

Learns trigger-indexed rules from knowledge files, finds and ranks the
rules that apply to a query, and answers in the context of the
conversation so far.

Pipeline:
- Knowledge: inverted index over normalized trigger keys, hot reload
- Ranker: score + encounter-order ranking, syntactic validation
- Reaction: context replay, contextual consideration, interaction log

Usage:
    from rulemind import Mind, MindConfig

    mind = Mind(MindConfig(init_path="conf/rulemind", watch_path="data/rulemind"))
    print(mind.reply("hello there"))
"""

__version__ = "0.1.0"

# Core layer
from .core.reader import Reader, Token, CATCHALL_KEY
from .core.argument import Argument, Thought
from .core.rule import Rule, Phrase, Action
from .core.knowledge import KnowledgeBase, KnowledgeDocument, KnowledgeError, DocumentResult, parse_document
from .core.ranker import IdeaRanker, Idea
from .core.identity import ClientIdentity
from .core.interaction import Interaction
from .core.log import InteractionLog
from .core.reaction import ReactionEngine, NoReactionError

# Services layer
from .services.console import ConsoleRegistry, ConsoleService
from .services.watcher import KnowledgeWatcher

# Config and facade
from .config import MindConfig, ConfigManager, get_config
from .mind import Mind

__all__ = [
    # Core
    'Reader', 'Token', 'CATCHALL_KEY',
    'Argument', 'Thought',
    'Rule', 'Phrase', 'Action',
    'KnowledgeBase', 'KnowledgeDocument', 'KnowledgeError', 'DocumentResult', 'parse_document',
    'IdeaRanker', 'Idea',
    'ClientIdentity', 'Interaction', 'InteractionLog',
    'ReactionEngine', 'NoReactionError',
    # Services
    'ConsoleRegistry', 'ConsoleService', 'KnowledgeWatcher',
    # Config
    'MindConfig', 'ConfigManager', 'get_config',
    'Mind',
]
