"""
Knowledge — Trigger-indexed rule base with hot reload

Knowledge documents (JSON files) are learned into an inverted index:

    trigger key (categorized) → {rule id → rule}

Reload strategy:
    1. Scan the init path, then every watch path (not recursive)
    2. Reparse a file only if unseen or modified since last observed
    3. A bad file is logged and skipped; the pass continues

Concurrency:
    - One writer at a time (learn, observe) via a reentrant lock
    - Buckets are copy-on-write: built aside, published by one assignment
    - Readers take no lock and see either the old or the new bucket
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import orjson

from .reader import CATCHALL_KEY, Reader
from .rule import Rule
from ..services.console import ConsoleRegistry

logger = logging.getLogger(__name__)

KNOWLEDGE_EXTENSIONS = (".json",)

_EMPTY_BUCKET: Mapping[int, Rule] = MappingProxyType({})


class KnowledgeError(ValueError):
    """Raised when an explicitly learned document is invalid."""


# =============================================================================
# Documents
# =============================================================================

@dataclass(frozen=True)
class ConsoleDescriptor:
    """A console service declaration. All fields are optional in documents."""
    url: Optional[str] = None
    data: Optional[str] = None
    parser: Optional[str] = None

    @property
    def registrable(self) -> bool:
        return bool(self.url and self.data and self.parser == "json")


@dataclass
class KnowledgeDocument:
    """A decoded knowledge document. Missing sections are empty."""
    console: Dict[str, ConsoleDescriptor] = field(default_factory=dict)
    categories: Dict[str, List[str]] = field(default_factory=dict)
    rules: List[Rule] = field(default_factory=list)
    source: Optional[Path] = None


@dataclass
class DocumentResult:
    """Result of decoding a document: a document or an error, never both."""
    document: Optional[KnowledgeDocument] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.document is not None


def parse_document(data: Any, source: Optional[Path] = None) -> DocumentResult:
    """
    Decode a raw knowledge document.

    Every rule is built before anything is returned, so a document with one
    bad rule is rejected as a whole and never half-learned.
    """
    if not isinstance(data, dict):
        return DocumentResult(error=f"Document must be an object, got {type(data).__name__}")

    console_data = _section(data, "console", {})
    if not isinstance(console_data, dict):
        return DocumentResult(error="'console' must be an object")
    console = {}
    for name, spec in console_data.items():
        if not isinstance(spec, dict):
            return DocumentResult(error=f"Console '{name}' must be an object")
        console[name] = ConsoleDescriptor(
            url=_optional_str(spec.get("url")),
            data=_optional_str(spec.get("data")),
            parser=_optional_str(spec.get("parser")),
        )

    categories_data = _section(data, "categories", {})
    if not isinstance(categories_data, dict):
        return DocumentResult(error="'categories' must be an object")
    categories = {}
    for name, words in categories_data.items():
        if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
            return DocumentResult(error=f"Category '{name}' must be a list of strings")
        categories[name] = words

    rules_data = _section(data, "rules", [])
    if not isinstance(rules_data, list):
        return DocumentResult(error="'rules' must be a list")
    rules = []
    for i, rule_data in enumerate(rules_data):
        try:
            rules.append(Rule.from_dict(rule_data))
        except ValueError as e:
            return DocumentResult(error=f"Rule #{i}: {e}")

    return DocumentResult(document=KnowledgeDocument(
        console=console,
        categories=categories,
        rules=rules,
        source=source,
    ))


def load_document(path: Path) -> DocumentResult:
    """Read and decode a knowledge file. Never raises."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        return DocumentResult(error=f"Cannot read {path}: {e}")
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        return DocumentResult(error=f"Invalid JSON in {path}: {e}")
    return parse_document(data, source=path)


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _section(data: Dict[str, Any], name: str, default: Any) -> Any:
    """A top-level section; absent or null means empty, anything else is kept as is."""
    value = data.get(name)
    return default if value is None else value


# =============================================================================
# Knowledge Base
# =============================================================================

class KnowledgeBase:
    """
    The inverted rule index and the files it was learned from.

    Thread Safety:
    - Reads (bucket, catchall, keys) are lock-free
    - learn() and observe() are serialized through one writer lock
    """

    def __init__(
        self,
        init_path: Union[str, Path],
        watch_path: Union[str, Path],
        reader: Optional[Reader] = None,
        consoles: Optional[ConsoleRegistry] = None,
        extensions: Iterable[str] = KNOWLEDGE_EXTENSIONS
    ):
        self.init_path = Path(init_path)
        self.init_path.mkdir(parents=True, exist_ok=True)
        self._watch_paths: List[Path] = []
        self.add_watch_path(watch_path)

        self.reader = reader if reader is not None else Reader()
        self.consoles = consoles if consoles is not None else ConsoleRegistry()
        self.extensions = tuple(e.lower() for e in extensions)

        self._index: Dict[str, Mapping[int, Rule]] = {}
        self._observations: Dict[Path, int] = {}
        self._write_lock = threading.RLock()

    @property
    def watch_path(self) -> Path:
        """The primary watch path (logs live below it)."""
        return self._watch_paths[0]

    @property
    def watch_paths(self) -> List[Path]:
        return list(self._watch_paths)

    def add_watch_path(self, path: Union[str, Path]) -> Path:
        """Append a directory to the dynamic watch set."""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        if path not in self._watch_paths:
            self._watch_paths = self._watch_paths + [path]
        return path

    # =========================================================================
    # Observation (reload)
    # =========================================================================

    def observe(self) -> List[Path]:
        """
        Scan init and watch paths, learning new or modified files.

        Returns:
            Files learned in this pass
        """
        learned = self.observe_path(self.init_path)
        for path in self._watch_paths:
            learned.extend(self.observe_path(path))
        return learned

    def observe_path(self, root: Path) -> List[Path]:
        """Scan one directory (not recursive). Bad files are logged and skipped."""
        root = Path(root)
        learned: List[Path] = []
        if not root.is_dir():
            return learned

        with self._write_lock:
            for path in sorted(root.iterdir()):
                if not self._is_knowledge_file(path):
                    continue
                try:
                    mtime = path.stat().st_mtime_ns
                except OSError as e:
                    logger.warning("Cannot stat knowledge file %s: %s", path, e)
                    continue

                seen = self._observations.get(path)
                if seen is not None and mtime <= seen:
                    continue
                self._observations[path] = mtime

                result = load_document(path)
                if not result.ok:
                    logger.warning("Bad knowledge file %s: %s", path, result.error)
                    continue
                try:
                    self.learn(result.document)
                except Exception as e:
                    logger.warning("Failed to learn %s: %s", path, e)
                    continue
                learned.append(path)
                logger.debug("Learned %d rules from %s", len(result.document.rules), path)

        return learned

    def _is_knowledge_file(self, path: Path) -> bool:
        return path.is_file() and path.suffix.lower() in self.extensions

    def observed(self) -> Dict[Path, int]:
        """Snapshot of file → modification time (ns) at last read."""
        return dict(self._observations)

    # =========================================================================
    # Learning
    # =========================================================================

    def learn(self, document: Union[KnowledgeDocument, Dict[str, Any]]) -> 'KnowledgeBase':
        """
        Learn a document: categories, console services, then rules.

        Raises:
            KnowledgeError: if a raw document cannot be decoded
        """
        if not isinstance(document, KnowledgeDocument):
            result = parse_document(document)
            if not result.ok:
                raise KnowledgeError(result.error)
            document = result.document

        with self._write_lock:
            # Categories first: rule keys normalize through them
            self.reader.learn(document.categories)

            for name, descriptor in document.console.items():
                if descriptor.registrable:
                    self.consoles.add_generic_console(name, descriptor.url, descriptor.data)

            for rule in document.rules:
                self._index_rule(rule)

        return self

    def learn_file(self, path: Union[str, Path]) -> 'KnowledgeBase':
        """Learn a single file, raising KnowledgeError if it is invalid."""
        result = load_document(Path(path))
        if not result.ok:
            raise KnowledgeError(result.error)
        return self.learn(result.document)

    def _index_rule(self, rule: Rule):
        """Publish the rule under every key (caller holds the write lock)."""
        for key in rule.keys:
            index_key = self.reader.tokenize_term(key).categorized
            if not index_key:
                continue
            updated = dict(self._index.get(index_key, _EMPTY_BUCKET))
            updated[rule.id] = rule
            self._index[index_key] = MappingProxyType(updated)

    # =========================================================================
    # Index reads
    # =========================================================================

    def bucket(self, key: str) -> Mapping[int, Rule]:
        """Read-only rules for an already-normalized key (empty if none)."""
        return self._index.get(key, _EMPTY_BUCKET)

    def catchall(self) -> Mapping[int, Rule]:
        return self.bucket(CATCHALL_KEY)

    def keys(self) -> List[str]:
        return list(self._index.keys())

    def rules(self) -> List[Rule]:
        """All distinct rules (by ID) currently indexed."""
        seen: Dict[int, Rule] = {}
        for bucket in list(self._index.values()):
            for rule_id, rule in bucket.items():
                seen.setdefault(rule_id, rule)
        return list(seen.values())

    def size(self) -> int:
        return len(self.rules())

    def stats(self) -> Dict[str, Any]:
        return {
            "keys": len(self._index),
            "rules": self.size(),
            "catchall": len(self.catchall()),
            "files": len(self._observations),
            "consoles": len(self.consoles),
            "watch_paths": [str(p) for p in self._watch_paths],
        }
