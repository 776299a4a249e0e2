import logging

import pytest

from anchorflow.core.ConnectionValidator import RejectionReason
from anchorflow.core.GraphPrimitives import Node, Port
from anchorflow.server.state import GraphEditError, GraphState


def _node(node_id, in_type="data", out_type="data"):
    return Node(
        node_id, "instruction", node_id.upper(),
        inputs=(Port(f"{node_id}.in", "in", in_type),),
        outputs=(Port(f"{node_id}.out", "out", out_type),),
    )


class TestGraphState:

    def setup_method(self):
        self.state = GraphState(history_limit=10)
        self.state.add_node(_node("a"))
        self.state.add_node(_node("b"))

    def test_add_node(self):
        assert [n.id for n in self.state.graph.nodes] == ["a", "b"]
        with pytest.raises(GraphEditError):
            self.state.add_node(_node("a"))

    def test_connect_accepted(self):
        result, conn = self.state.connect("a", "a.out", "b", "b.in")
        assert result.is_valid
        assert conn.endpoints() == ("a", "a.out", "b", "b.in")
        assert self.state.graph.connections == (conn,)

    def test_connect_rejected_leaves_graph(self, caplog):
        self.state.connect("a", "a.out", "b", "b.in")
        before = self.state.graph
        with caplog.at_level(logging.INFO, logger="anchorflow.server.state"):
            result, conn = self.state.connect("a", "a.out", "b", "b.in")
        assert conn is None
        assert result.reason == RejectionReason.DUPLICATE_CONNECTION
        assert self.state.graph is before
        assert any("Rejected connection" in r.message for r in caplog.records)

    def test_connect_unknown_ids(self):
        with pytest.raises(GraphEditError):
            self.state.connect("a", "a.out", "zzz", "b.in")
        with pytest.raises(GraphEditError):
            self.state.connect("a", "a.in", "b", "b.in")

    def test_remove_node_drops_its_connections(self):
        self.state.add_node(_node("c"))
        self.state.connect("a", "a.out", "b", "b.in")
        self.state.connect("b", "b.out", "c", "c.in")
        self.state.remove_node("b")
        assert [n.id for n in self.state.graph.nodes] == ["a", "c"]
        assert self.state.graph.connections == ()

    def test_disconnect(self):
        _, conn = self.state.connect("a", "a.out", "b", "b.in")
        self.state.disconnect(conn.id)
        assert self.state.graph.connections == ()
        with pytest.raises(GraphEditError):
            self.state.disconnect(conn.id)

    def test_undo_redo(self):
        self.state.connect("a", "a.out", "b", "b.in")
        assert len(self.state.undo().connections) == 0
        assert len(self.state.undo().nodes) == 1
        assert len(self.state.redo().nodes) == 2
        assert len(self.state.redo().connections) == 1
        assert not self.state.can_redo()

    def test_edit_after_undo_drops_redo_tail(self):
        self.state.undo()
        self.state.add_node(_node("c"))
        assert not self.state.can_redo()
        assert [n.id for n in self.state.graph.nodes] == ["a", "c"]

    def test_undo_at_start_is_noop(self):
        state = GraphState()
        assert state.undo() is state.graph
        assert not state.can_undo()

    def test_history_capped(self):
        state = GraphState(history_limit=3)
        for i in range(5):
            state.add_node(_node(f"n{i}"))
        assert len(state.history) == 3
        state.undo()
        state.undo()
        assert not state.can_undo()
        assert [n.id for n in state.graph.nodes] == ["n0", "n1", "n2"]

    def test_single_start_node(self):
        start = self.state.add_start_node()
        assert start.kind == "start"
        with pytest.raises(GraphEditError):
            self.state.add_start_node()

    def test_snapshots_are_immutable(self):
        snapshot = self.state.graph
        self.state.add_node(_node("c"))
        assert len(snapshot.nodes) == 2
