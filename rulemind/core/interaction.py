"""
Interaction — One completed query/response record for a client

Only the query, the answer expressions and the timestamp are persisted.
The answer arguments are kept in memory for the caller that produced them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .argument import Argument, Thought


@dataclass
class Interaction:
    query: str
    client: str
    expressions: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    answers: List[Argument] = field(default_factory=list, compare=False, repr=False)

    @classmethod
    def from_answers(cls, query: str, client: str, answers: List[Argument]) -> 'Interaction':
        """Record answers, rendering the first action of each one."""
        expressions = []
        for answer in answers:
            if answer.actions:
                expressions.append(answer.actions[0].apply(answer).expression or "")
        return cls(query=query, client=client, expressions=expressions, answers=list(answers))

    @property
    def answer(self) -> Optional[str]:
        """The best answer expression, if any."""
        return self.expressions[0] if self.expressions else None

    def recall_dispute(self) -> Thought:
        """The context this turn contributes to later turns."""
        variables = {"query": self.query}
        if self.answer is not None:
            variables["answer"] = self.answer
        return Thought(variables)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "client": self.client,
            "expressions": list(self.expressions),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Interaction':
        return cls(
            query=data["query"],
            client=data["client"],
            expressions=list(data.get("expressions", [])),
            timestamp=data.get("timestamp", ""),
        )
