"""
Tests for the knowledge base

- Documents decode to typed records or an error, never an exception
- Rules are indexed once per categorized trigger key, deduplicated by ID
- observe() reparses only new or modified files; bad files never abort a pass
- Readers never see a partially built bucket
"""

import logging
import threading

import pytest

from rulemind.core.knowledge import (
    KnowledgeBase, KnowledgeDocument, KnowledgeError, parse_document, load_document
)
from rulemind.core.reader import CATCHALL_KEY, Reader
from rulemind.services.console import ConsoleRegistry
from tests.factories import HELLO_RULE, CATCHALL_RULE


# =============================================================================
# Document decoding
# =============================================================================

class TestParseDocument:

    def test_empty_document(self):
        result = parse_document({})
        assert result.ok
        assert result.document.rules == []
        assert result.document.console == {}
        assert result.document.categories == {}

    def test_full_document(self):
        result = parse_document({
            "console": {"wiki": {"url": "http://x", "data": "items", "parser": "json"}},
            "categories": {"greeting": ["hello"]},
            "rules": [HELLO_RULE],
        })
        assert result.ok
        assert result.document.console["wiki"].registrable
        assert result.document.rules[0].id == 1

    @pytest.mark.parametrize("data", [
        [],
        {"rules": {}},
        {"console": []},
        {"categories": []},
        {"rules": ""},
        {"console": {"wiki": "http://x"}},
        {"categories": {"greeting": "hello"}},
        {"rules": [HELLO_RULE, {"phrases": []}]},
    ])
    def test_malformed_documents(self, data):
        result = parse_document(data)
        assert not result.ok
        assert result.error

    def test_null_sections_are_empty(self):
        result = parse_document({"console": None, "categories": None, "rules": None})
        assert result.ok
        assert result.document.rules == []

    def test_load_invalid_json(self, mind_factory):
        path = mind_factory.write_raw("bad.json", "{not json")
        result = load_document(path)
        assert not result.ok
        assert "Invalid JSON" in result.error

    def test_load_missing_file(self, tmp_path):
        result = load_document(tmp_path / "missing.json")
        assert not result.ok


# =============================================================================
# Learning and indexing
# =============================================================================

class TestLearn:

    def test_index_under_every_key(self, mind_factory):
        kb = mind_factory.create_knowledge()
        kb.learn({"rules": [mind_factory.rule("* hello *", "Hi", keys=["hello", "hi"], rule_id=7)]})

        assert 7 in kb.bucket("hello")
        assert 7 in kb.bucket("hi")
        assert kb.size() == 1

    def test_learn_twice_is_idempotent(self, mind_factory):
        kb = mind_factory.create_knowledge()
        document = {"rules": [HELLO_RULE, CATCHALL_RULE]}

        kb.learn(document)
        kb.learn(document)

        assert len(kb.bucket("hello")) == 1
        assert len(kb.catchall()) == 1
        assert kb.size() == 2

    def test_relearn_replaces_in_place(self, mind_factory):
        kb = mind_factory.create_knowledge()
        kb.learn({"rules": [mind_factory.rule("hello", "Old", keys=["hello"], rule_id=5)]})
        kb.learn({"rules": [mind_factory.rule("hello", "New", keys=["hello"], rule_id=5)]})

        bucket = kb.bucket("hello")
        assert list(bucket) == [5]
        assert bucket[5].actions[0].phrases == ["New"]

    def test_keys_use_categorized_form(self, mind_factory):
        kb = mind_factory.create_knowledge()
        kb.learn({
            "categories": {"greeting": ["hello", "hi"]},
            "rules": [mind_factory.rule("hello", "Hi", keys=["Hello"], rule_id=3)],
        })

        assert 3 in kb.bucket("greeting")
        assert kb.bucket("hello") == {}

    def test_catchall_key(self, mind_factory):
        kb = mind_factory.create_knowledge()
        kb.learn({"rules": [CATCHALL_RULE]})
        assert list(kb.catchall()) == [2]
        assert CATCHALL_KEY in kb.keys()

    def test_invalid_raw_document_raises(self, mind_factory):
        kb = mind_factory.create_knowledge()
        with pytest.raises(KnowledgeError):
            kb.learn({"rules": "nope"})

    def test_learn_file_invalid_raises(self, mind_factory):
        kb = mind_factory.create_knowledge()
        path = mind_factory.write_raw("bad.json", "[1, 2")
        with pytest.raises(KnowledgeError):
            kb.learn_file(path)

    def test_learn_typed_document(self, mind_factory):
        kb = mind_factory.create_knowledge()
        document = parse_document({"rules": [HELLO_RULE]}).document
        assert isinstance(document, KnowledgeDocument)
        kb.learn(document)
        assert 1 in kb.bucket("hello")

    def test_bucket_is_read_only(self, sample_knowledge):
        bucket = sample_knowledge.bucket("hello")
        with pytest.raises(TypeError):
            bucket[99] = None


class TestConsoleRegistration:

    def test_json_console_registered(self, mind_factory):
        consoles = ConsoleRegistry()
        kb = KnowledgeBase(mind_factory.init_path, mind_factory.watch_path, consoles=consoles)

        kb.learn({"console": {
            "wiki": {"url": "http://wiki", "data": "items", "parser": "json"},
            "feed": {"url": "http://feed", "data": "items", "parser": "xml"},
            "partial": {"url": "http://partial", "parser": "json"},
        }})

        assert consoles.names() == ["wiki"]
        assert consoles.get("wiki").url == "http://wiki"

    def test_empty_collaborators_are_kept(self, mind_factory):
        consoles = ConsoleRegistry()
        reader = Reader()
        kb = KnowledgeBase(mind_factory.init_path, mind_factory.watch_path, reader=reader, consoles=consoles)

        assert kb.consoles is consoles
        assert kb.reader is reader


# =============================================================================
# Observation (reload)
# =============================================================================

class TestObserve:

    def test_observe_learns_both_roots(self, mind_factory):
        init_file = mind_factory.write("a.json", [HELLO_RULE])
        watch_file = mind_factory.write("b.json", [CATCHALL_RULE], directory="watch")
        kb = mind_factory.create_knowledge()

        learned = kb.observe()

        assert learned == [init_file, watch_file]
        assert kb.size() == 2

    def test_unchanged_files_skipped(self, mind_factory):
        mind_factory.write("a.json", [HELLO_RULE])
        kb = mind_factory.create_knowledge()

        assert len(kb.observe()) == 1
        assert kb.observe() == []

    def test_modified_file_relearned(self, mind_factory):
        path = mind_factory.write("a.json", [mind_factory.rule("hello", "Old", keys=["hello"], rule_id=1)])
        kb = mind_factory.create_knowledge()
        kb.observe()

        mind_factory.write("a.json", [mind_factory.rule("hello", "New", keys=["hello"], rule_id=1)])
        mind_factory.touch_later(path)

        assert kb.observe() == [path]
        assert kb.bucket("hello")[1].actions[0].phrases == ["New"]
        assert len(kb.bucket("hello")) == 1

    def test_observation_timestamps_monotonic(self, mind_factory):
        path = mind_factory.write("a.json", [HELLO_RULE])
        kb = mind_factory.create_knowledge()
        kb.observe()
        first = kb.observed()[path]

        mind_factory.touch_later(path)
        kb.observe()

        assert kb.observed()[path] > first

    def test_ignores_other_extensions_and_subdirectories(self, mind_factory):
        mind_factory.write_raw("notes.txt", "{}")
        nested = mind_factory.init_path / "nested"
        nested.mkdir()
        (nested / "deep.json").write_text('{"rules": []}')
        kb = mind_factory.create_knowledge()

        assert kb.observe() == []

    def test_bad_file_does_not_abort_pass(self, mind_factory, caplog):
        mind_factory.write_raw("a_bad.json", "{not json")
        good = mind_factory.write("b_good.json", [HELLO_RULE])
        kb = mind_factory.create_knowledge()

        with caplog.at_level(logging.WARNING, logger="rulemind.core.knowledge"):
            learned = kb.observe()

        assert learned == [good]
        assert 1 in kb.bucket("hello")
        assert any("a_bad.json" in r.getMessage() for r in caplog.records)

    def test_bad_rule_rejects_whole_file(self, mind_factory):
        mind_factory.write("a.json", [HELLO_RULE, {"phrases": []}])
        kb = mind_factory.create_knowledge()

        assert kb.observe() == []
        assert kb.size() == 0

    def test_broken_reload_keeps_previous_rules(self, mind_factory):
        """An invalid rewrite leaves the index as it was; other files stay retrievable."""
        broken = mind_factory.write("a.json", [mind_factory.rule("hi", "Hi", keys=["hi"], rule_id=10)])
        mind_factory.write("b.json", [HELLO_RULE])
        kb = mind_factory.create_knowledge()
        kb.observe()

        broken.write_text("{ definitely not json")
        mind_factory.touch_later(broken)

        assert kb.observe() == []
        assert 10 in kb.bucket("hi")
        assert 1 in kb.bucket("hello")

    def test_bad_file_not_retried_until_modified(self, mind_factory, caplog):
        mind_factory.write_raw("bad.json", "{not json")
        kb = mind_factory.create_knowledge()
        kb.observe()
        caplog.clear()

        with caplog.at_level(logging.WARNING, logger="rulemind.core.knowledge"):
            kb.observe()

        assert not caplog.records

    def test_add_watch_path(self, mind_factory, tmp_path):
        extra = tmp_path / "extra"
        kb = mind_factory.create_knowledge()
        kb.add_watch_path(extra)
        (extra / "x.json").write_text('{"rules": [{"id": 3, "phrases": ["yo"], "actions": ["Yo"]}]}')

        kb.observe()

        assert 3 in kb.bucket("yo")
        assert extra in kb.watch_paths

    def test_stats(self, sample_knowledge):
        stats = sample_knowledge.stats()
        assert stats["rules"] == 2
        assert stats["catchall"] == 1
        assert stats["files"] == 1


# =============================================================================
# Concurrency
# =============================================================================

class TestConcurrentReads:

    def test_reads_during_reload(self, mind_factory):
        kb = mind_factory.create_knowledge()
        kb.learn({"rules": [HELLO_RULE]})
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                try:
                    bucket = kb.bucket("hello")
                    for rule_id, rule in bucket.items():
                        assert rule.id == rule_id
                    assert 1 in bucket
                except Exception as e:
                    errors.append(e)
                    return

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()

        for i in range(200):
            kb.learn({"rules": [mind_factory.rule("hello", f"Hi {i}", keys=["hello"], rule_id=100 + i)]})

        done.set()
        for t in threads:
            t.join()

        assert errors == []
        assert len(kb.bucket("hello")) == 201
