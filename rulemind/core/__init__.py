"""
Core — Knowledge, ranking and reaction

Contains the reasoning pipeline:
- Reader: term/sentence tokenization with learned categories
- Rule: trigger-indexed knowledge units (matcher + consideration)
- Argument: conversational context threaded across turns
- Knowledge: inverted index with hot reload
- Ranker: idea retrieval and ordering ("creativity")
- Reaction: context replay and consideration
- Log: per-client interaction history
"""

from .reader import Reader, Token, CATCHALL_KEY
from .argument import Argument, Thought
from .rule import Rule, Phrase, Action, normalize_query
from .knowledge import (
    KnowledgeBase, KnowledgeDocument, KnowledgeError, ConsoleDescriptor,
    DocumentResult, parse_document, load_document
)
from .ranker import IdeaRanker, Idea
from .identity import ClientIdentity, DEFAULT_IDENTITY, DEFAULT_CLIENT
from .interaction import Interaction
from .log import InteractionLog
from .reaction import ReactionEngine, NoReactionError

__all__ = [
    # Reader
    "Reader", "Token", "CATCHALL_KEY",
    # Argument
    "Argument", "Thought",
    # Rule
    "Rule", "Phrase", "Action", "normalize_query",
    # Knowledge
    "KnowledgeBase", "KnowledgeDocument", "KnowledgeError", "ConsoleDescriptor",
    "DocumentResult", "parse_document", "load_document",
    # Ranker
    "IdeaRanker", "Idea",
    # Identity
    "ClientIdentity", "DEFAULT_IDENTITY", "DEFAULT_CLIENT",
    # Interaction / Log
    "Interaction", "InteractionLog",
    # Reaction
    "ReactionEngine", "NoReactionError",
]
