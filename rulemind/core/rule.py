"""
Rule — Trigger-indexed unit of knowledge

A rule maps input phrases to candidate actions:

    {
        "keys": ["hello"],                     # optional, derived from phrases
        "score": 10,                           # optional, derived from phrases
        "phrases": ["hello *", {"type": "regex", "expression": "hi( there)?"}],
        "actions": [{"type": "answer", "phrases": ["Hello $1$!"]}]
    }

Two validation stages, used by the ranker and the reaction engine:
- matcher(): syntactic test of the query against the phrases
- consideration(): contextual evaluation producing an Argument, or None
  when the first action cannot be instantiated from the context

Placeholders in answers ($1$, $query$, $answer$, ...) are resolved
through Argument.recall(), newest thought first.
"""

import random
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional

import xxhash

from .argument import Argument, Thought
from .reader import CATCHALL_KEY, Token


PLACEHOLDER = re.compile(r"\$(\w+)\$")
WILDCARD = "*"

PHRASE_TYPES = ("pattern", "regex")
SELECT_MODES = ("first", "random")


def normalize_query(text: str) -> str:
    """Collapse whitespace and drop trailing sentence punctuation."""
    collapsed = " ".join(text.split())
    return collapsed.rstrip(".!? ").strip()


# =============================================================================
# Phrases
# =============================================================================

@dataclass
class Phrase:
    """An input pattern. `pattern` uses * wildcards; `regex` is used as-is."""
    expression: str
    type: str = "pattern"
    pattern: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        if self.type not in PHRASE_TYPES:
            raise ValueError(f"Unknown phrase type '{self.type}'. Valid: {', '.join(PHRASE_TYPES)}")
        if not self.expression.strip():
            raise ValueError("Empty phrase expression")

        source = self.expression if self.type == "regex" else _compile_pattern(self.expression)
        try:
            self.pattern = re.compile(source, re.IGNORECASE | re.UNICODE)
        except re.error as e:
            raise ValueError(f"Invalid phrase '{self.expression}': {e}") from e

    @property
    def literal_words(self) -> List[str]:
        """Words of a pattern phrase that are not wildcards."""
        if self.type != "pattern":
            return []
        words = []
        for part in self.expression.split():
            word = part.replace(WILDCARD, "").strip(".,;:!?").lower()
            if word:
                words.append(word)
        return words

    def match(self, text: str) -> Optional[re.Match]:
        return self.pattern.fullmatch(text)

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "expression": self.expression}

    @classmethod
    def from_dict(cls, data: Any) -> 'Phrase':
        if isinstance(data, str):
            return cls(expression=data)
        if not isinstance(data, dict) or not isinstance(data.get("expression"), str):
            raise ValueError(f"Phrase needs an 'expression' string: {data!r}")
        return cls(expression=data["expression"], type=data.get("type", "pattern"))


def _compile_pattern(expression: str) -> str:
    """
    Translate a wildcard pattern into a regex source.

    Literal words are separated by required whitespace; whitespace next to
    a wildcard is optional so "* hello *" also accepts a bare "hello".
    """
    parts = expression.split()
    pieces = []
    previous_wild = None
    for part in parts:
        is_wild = part == WILDCARD
        if previous_wild is not None:
            pieces.append(r"\s*" if is_wild or previous_wild else r"\s+")
        if is_wild:
            pieces.append(r"(.*?)")
        else:
            pieces.append(r"(.*?)".join(re.escape(p) for p in part.split(WILDCARD)))
        previous_wild = is_wild
    return "".join(pieces)


# =============================================================================
# Actions
# =============================================================================

@dataclass
class Action:
    """A candidate response. `expression` is set once applied to an argument."""
    phrases: List[str] = field(default_factory=list)
    type: str = "answer"
    select: str = "first"
    expression: Optional[str] = None

    def __post_init__(self):
        if self.select not in SELECT_MODES:
            raise ValueError(f"Unknown select mode '{self.select}'. Valid: {', '.join(SELECT_MODES)}")

    def candidates(self) -> List[str]:
        """Phrases that apply() may pick."""
        if self.select == "random":
            return list(self.phrases)
        return self.phrases[:1]

    def instantiable(self, argument: Argument) -> bool:
        """True if every placeholder of every candidate phrase resolves."""
        candidates = self.candidates()
        if not candidates:
            return False
        for phrase in candidates:
            for name in PLACEHOLDER.findall(phrase):
                if argument.recall(name) is None:
                    return False
        return True

    def apply(self, argument: Argument) -> 'Action':
        """Instantiate this action against an argument."""
        candidates = self.candidates()
        if not candidates:
            return replace(self, expression="")
        phrase = random.choice(candidates) if self.select == "random" else candidates[0]

        def substitute(m: re.Match) -> str:
            value = argument.recall(m.group(1))
            return value if value is not None else m.group(0)

        return replace(self, expression=PLACEHOLDER.sub(substitute, phrase))

    def to_dict(self) -> Dict[str, Any]:
        result = {"type": self.type, "select": self.select, "phrases": list(self.phrases)}
        if self.expression is not None:
            result["expression"] = self.expression
        return result

    @classmethod
    def from_dict(cls, data: Any) -> 'Action':
        if isinstance(data, str):
            return cls(phrases=[data])
        if not isinstance(data, dict):
            raise ValueError(f"Action must be an object or string: {data!r}")
        phrases = data.get("phrases", [])
        if not isinstance(phrases, list) or not all(isinstance(p, str) for p in phrases):
            raise ValueError(f"Action phrases must be a list of strings: {phrases!r}")
        return cls(
            phrases=phrases,
            type=str(data.get("type", "answer")),
            select=data.get("select", "first"),
        )


# =============================================================================
# Rules
# =============================================================================

@dataclass(eq=False)
class Rule:
    """
    A knowledge rule.

    The ID is stable across reloads: either given explicitly or hashed from
    the phrase expressions, so a re-learned rule replaces its older self.
    """
    id: int
    keys: FrozenSet[str]
    score: int
    phrases: List[Phrase]
    actions: List[Action]

    # =========================================================================
    # Validation stages
    # =========================================================================

    def matcher(self, text: str) -> List[re.Match]:
        """All phrase matches covering the whole (normalized) text."""
        normalized = normalize_query(text)
        matches = []
        for phrase in self.phrases:
            m = phrase.match(normalized)
            if m is not None:
                matches.append(m)
        return matches

    def consideration(
        self,
        query: str,
        argument: Optional[Argument],
        token: Optional[Token] = None
    ) -> Optional[Argument]:
        """
        Evaluate this rule in context.

        Returns a new argument (context + this turn's thought + the rule's
        actions), or None if the rule does not apply here. The given
        argument is never modified.
        """
        matches = self.matcher(query)
        if not matches:
            return None

        variables = {"query": normalize_query(query)}
        match = matches[0]
        for i, group in enumerate(match.groups(), start=1):
            variables[str(i)] = (group or "").strip()
        for name, group in match.groupdict().items():
            if group is not None:
                variables[name] = group.strip()
        if token is not None:
            variables["intent"] = token.original

        candidate = argument.copy() if argument is not None else Argument()
        candidate.think(Thought(variables))

        if not self.actions or not self.actions[0].instantiable(candidate):
            return None

        candidate.actions = list(self.actions)
        return candidate

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "keys": sorted(self.keys),
            "score": self.score,
            "phrases": [p.to_dict() for p in self.phrases],
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rule':
        """
        Build a rule from its knowledge-document form.

        Raises:
            ValueError: if the rule is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Rule must be an object: {data!r}")

        raw_phrases = data.get("phrases")
        if not isinstance(raw_phrases, list) or not raw_phrases:
            raise ValueError("Rule needs a non-empty 'phrases' list")
        phrases = [Phrase.from_dict(p) for p in raw_phrases]

        raw_actions = data.get("actions", [])
        if not isinstance(raw_actions, list):
            raise ValueError("Rule 'actions' must be a list")
        actions = [Action.from_dict(a) for a in raw_actions]

        keys = data.get("keys")
        if keys is None:
            keys = derive_keys(phrases)
        elif not isinstance(keys, list) or not all(isinstance(k, str) and k.strip() for k in keys):
            raise ValueError(f"Rule 'keys' must be a list of non-empty strings: {keys!r}")

        score = data.get("score")
        if score is None:
            score = derive_score(phrases)
        elif isinstance(score, bool) or not isinstance(score, int):
            raise ValueError(f"Rule 'score' must be an integer: {score!r}")

        rule_id = data.get("id")
        if rule_id is None:
            rule_id = rule_hash(phrases)
        elif isinstance(rule_id, bool) or not isinstance(rule_id, (int, str)):
            raise ValueError(f"Rule 'id' must be an integer or string: {rule_id!r}")
        elif isinstance(rule_id, str):
            rule_id = xxhash.xxh64(rule_id.encode()).intdigest()

        return cls(
            id=rule_id,
            keys=frozenset(k.strip() for k in keys),
            score=score,
            phrases=phrases,
            actions=actions,
        )


def derive_keys(phrases: List[Phrase]) -> List[str]:
    """First literal word of each pattern; the catch-all key for pure wildcards."""
    keys = []
    for phrase in phrases:
        if phrase.type != "pattern":
            continue
        words = phrase.literal_words
        key = words[0] if words else CATCHALL_KEY
        if key not in keys:
            keys.append(key)
    return keys or [CATCHALL_KEY]


def derive_score(phrases: List[Phrase]) -> int:
    """Literal word count of the most specific phrase."""
    return max(len(p.literal_words) for p in phrases)


def rule_hash(phrases: List[Phrase]) -> int:
    """Stable 64-bit ID from the phrase expressions (xxhash)."""
    canonical = "\n".join(f"{p.type}:{p.expression}" for p in phrases)
    return xxhash.xxh64(canonical.encode()).intdigest()
