"""
Argument — Conversational context threaded across turns

A Thought is one step of reasoning: a small table of variables
(the query, wildcard captures, the answer given).

An Argument is the ordered chain of thoughts plus the actions produced
for it. Variables are recalled newest first, so later turns shadow
earlier ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .rule import Action


@dataclass
class Thought:
    """A set of named variables produced by one reasoning step."""
    variables: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        return self.variables.get(name)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.variables)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Thought':
        return cls(variables={str(k): str(v) for k, v in (data or {}).items()})


@dataclass
class Argument:
    """
    Accumulated context and produced actions.

    Built fresh per reaction by merging prior interactions oldest first.
    """
    thoughts: List[Thought] = field(default_factory=list)
    actions: List['Action'] = field(default_factory=list)

    def think(self, thought: Thought) -> 'Argument':
        """Merge a thought into the context (appended as newest)."""
        if thought is not None and thought.variables:
            self.thoughts.append(thought)
        return self

    def recall(self, name: str) -> Optional[str]:
        """Newest value of a variable, or None if no thought carries it."""
        for thought in reversed(self.thoughts):
            value = thought.get(name)
            if value is not None:
                return value
        return None

    def copy(self) -> 'Argument':
        return Argument(
            thoughts=[Thought(dict(t.variables)) for t in self.thoughts],
            actions=list(self.actions),
        )
