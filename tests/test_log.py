"""
Tests for the interaction log

- Newest first, bounded by depth
- Append-only JSONL persistence, lazily reloaded per client
"""

import pytest

from rulemind.core.interaction import Interaction
from rulemind.core.log import InteractionLog


def make(i, client="host_localhost"):
    return Interaction(query=f"q{i}", client=client, expressions=[f"a{i}"], timestamp=f"t{i}")


class TestInMemory:

    def test_newest_first(self):
        log = InteractionLog()
        for i in range(3):
            log.add_interaction("c", make(i, "c"))

        assert [x.query for x in log.get_interactions("c")] == ["q2", "q1", "q0"]

    def test_depth_bounds_history(self):
        log = InteractionLog(depth=2)
        for i in range(5):
            log.add_interaction("c", make(i, "c"))

        assert [x.query for x in log.get_interactions("c")] == ["q4", "q3"]

    def test_unknown_client(self):
        assert InteractionLog().get_interactions("nobody") == []

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            InteractionLog(depth=0)


class TestPersistence:

    def test_survives_new_instance(self, tmp_path):
        log = InteractionLog(tmp_path / "log")
        log.add_interaction("host_localhost", make(1))
        log.add_interaction("host_localhost", make(2))

        reloaded = InteractionLog(tmp_path / "log")

        assert [x.query for x in reloaded.get_interactions("host_localhost")] == ["q2", "q1"]
        assert reloaded.get_interactions("host_localhost")[0].expressions == ["a2"]

    def test_append_only_file(self, tmp_path):
        log = InteractionLog(tmp_path, depth=1)
        for i in range(3):
            log.add_interaction("c", make(i, "c"))

        lines = (tmp_path / "c.jsonl").read_text().splitlines()
        assert len(lines) == 3

    def test_malformed_lines_skipped(self, tmp_path):
        (tmp_path / "c.jsonl").write_text('{"query": "q0", "client": "c"}\nnot json\n[1]\n{"client": "c"}\n')

        interactions = InteractionLog(tmp_path).get_interactions("c")

        assert [x.query for x in interactions] == ["q0"]

    def test_unsafe_client_names(self, tmp_path):
        log = InteractionLog(tmp_path)
        log.add_interaction("host_../etc", make(1, "host_../etc"))

        assert all(p.parent == tmp_path for p in tmp_path.iterdir())
        assert InteractionLog(tmp_path).get_interactions("host_../etc")[0].query == "q1"

    def test_similar_client_names_do_not_share_a_file(self, tmp_path):
        log = InteractionLog(tmp_path)
        log.add_interaction("host_a/b", make(1, "host_a/b"))
        log.add_interaction("host_a_b", make(2, "host_a_b"))

        reloaded = InteractionLog(tmp_path)

        assert [x.query for x in reloaded.get_interactions("host_a/b")] == ["q1"]
        assert [x.query for x in reloaded.get_interactions("host_a_b")] == ["q2"]
        assert reloaded.clients() == ["host_a/b", "host_a_b"]

    def test_clients(self, tmp_path):
        log = InteractionLog(tmp_path)
        log.add_interaction("a", make(1, "a"))
        log.add_interaction("b", make(2, "b"))

        assert InteractionLog(tmp_path).clients() == ["a", "b"]
