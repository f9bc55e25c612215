"""
Ranker — Finding ideas for a query ("creativity")

An idea is a rule paired with the token that retrieved it. Ranking:

    1. Tokenize the query
    2. Per token: rules under the categorized form, plus the original form
       when it differs (union by rule ID)
    3. Always add the catch-all rules, without a token
    4. Order by (-score, sequence); sequence is encounter order
    5. Skip malformed rules, keep those whose matcher accepts the query,
       stop at maxcount

Ties at equal score keep encounter order: earlier tokens first, catch-all
last. An empty result is a normal outcome.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, TYPE_CHECKING

from .argument import Argument
from .reader import Token
from .rule import Rule

if TYPE_CHECKING:
    from .knowledge import KnowledgeBase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idea:
    """A candidate rule and the token that retrieved it (None for catch-all)."""
    rule: Rule
    token: Optional[Token] = None

    @property
    def intent(self) -> Optional[Token]:
        return self.token


class IdeaRanker:
    """Retrieves, orders and syntactically validates ideas from a knowledge base."""

    def __init__(self, knowledge: 'KnowledgeBase'):
        self.knowledge = knowledge

    def creativity(
        self,
        query: str,
        argument: Optional[Argument] = None,
        maxcount: int = 1
    ) -> List[Idea]:
        """
        Find at most `maxcount` ideas whose rules match the query.

        The argument (prior context) is accepted but does not influence
        retrieval; it is only used later, during consideration.

        Returns:
            Accepted ideas, best first
        """
        if maxcount < 1:
            raise ValueError("maxcount must be >= 1")

        ranked = self.rank(query)

        accepted: List[Idea] = []
        for idea in ranked:
            if not _well_formed(idea.rule):
                continue
            if not idea.rule.matcher(query):
                continue
            accepted.append(idea)
            if len(accepted) >= maxcount:
                break

        logger.debug("creativity(%r): %d candidates, %d accepted", query, len(ranked), len(accepted))
        return accepted

    def collect(self, query: str) -> List[Idea]:
        """All ideas for a query in encounter order (tokens, then catch-all)."""
        knowledge = self.knowledge
        ideas: List[Idea] = []

        for token in knowledge.reader.tokenize_sentence(query):
            rules: Dict[int, Rule] = dict(knowledge.bucket(token.categorized))
            if token.original != token.categorized:
                rules.update(knowledge.bucket(token.original))
            ideas.extend(Idea(rule, token) for rule in rules.values())

        ideas.extend(Idea(rule) for rule in knowledge.catchall().values())
        return ideas

    def rank(self, query: str) -> List[Idea]:
        """All ideas ordered by (-score, encounter sequence)."""
        sequence = itertools.count()
        keyed = [((-idea.rule.score, next(sequence)), idea) for idea in self.collect(query)]
        keyed.sort(key=lambda pair: pair[0])
        return [idea for _, idea in keyed]


def _well_formed(rule: Rule) -> bool:
    """A rule must have a first action with a non-empty first phrase."""
    if not rule.actions:
        return False
    phrases = rule.actions[0].phrases
    if not phrases:
        return False
    return len(phrases[0]) > 0
