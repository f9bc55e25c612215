"""
Reaction — From a query to considered answers

Per call:
    1. Replay the client's recent interactions, oldest first, into a
       fresh Argument
    2. Ask the ranker for a generous pool of ideas
    3. Let each idea's rule consider the query in that context, in rank
       order, until enough answers are collected

A rule that matched syntactically may still decline during consideration;
that is an ordinary miss, not an error.
"""

import logging
from typing import List, Optional

from .argument import Argument
from .identity import ClientIdentity, DEFAULT_CLIENT
from .interaction import Interaction
from .log import InteractionLog
from .ranker import IdeaRanker

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_POOL = 100


class NoReactionError(RuntimeError):
    """Raised by reply() when no rule produced an answer."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No answer for query: {query!r}")


class ReactionEngine:
    """Threads conversation context through ranking and consideration."""

    def __init__(
        self,
        ranker: IdeaRanker,
        log: Optional[InteractionLog] = None,
        candidate_pool: int = DEFAULT_CANDIDATE_POOL,
        default_client: str = DEFAULT_CLIENT
    ):
        if candidate_pool < 1:
            raise ValueError("candidate_pool must be >= 1")
        self.ranker = ranker
        self.log = log if log is not None else InteractionLog()
        self.candidate_pool = candidate_pool
        self.default_client = default_client

    def context(self, client: str) -> Argument:
        """Rebuild the conversation context of a client, oldest turn first."""
        argument = Argument()
        for interaction in reversed(self.log.get_interactions(client)):
            argument.think(interaction.recall_dispute())
        return argument

    def react(self, query: str, maxcount: int = 1, client: Optional[str] = None) -> List[Argument]:
        """
        Produce up to `maxcount` answers, best first.

        Returns:
            Considered arguments; empty if nothing applies
        """
        if maxcount < 1:
            raise ValueError("maxcount must be >= 1")

        client = client or self.default_client
        latest = self.context(client)
        ideas = self.ranker.creativity(query, latest, max(self.candidate_pool, maxcount * 10))

        answers: List[Argument] = []
        for idea in ideas:
            argument = idea.rule.consideration(query, latest, idea.intent)
            if argument is not None:
                answers.append(argument)
                if len(answers) >= maxcount:
                    break

        logger.debug("react(%r, client=%s): %d ideas, %d answers", query, client, len(ideas), len(answers))
        return answers

    def reply(self, query: str) -> str:
        """
        The single best answer for the default client, as text.

        Raises:
            NoReactionError: if no rule produced an answer
        """
        answers = self.react(query, 1, self.default_client)
        if not answers:
            raise NoReactionError(query)
        best = answers[0]
        return best.actions[0].apply(best).expression

    def interaction(self, query: str, maxcount: int, identity: ClientIdentity) -> Interaction:
        """React on behalf of a client and append the result to its log."""
        client = identity.client
        interaction = Interaction.from_answers(query, client, self.react(query, maxcount, client))
        self.log.add_interaction(client, interaction)
        return interaction
