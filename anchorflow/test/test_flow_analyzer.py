import logging

from anchorflow.core.FlowAnalyzer import analyze_flow, build_dependencies, detect_cycles, topological_order
from anchorflow.core.GraphPrimitives import Connection, Node, Port


def _chain_node(node_id, kind="instruction"):
    return Node(
        node_id, kind, node_id,
        inputs=(Port(f"{node_id}.in", "in", "data"), Port(f"{node_id}.in2", "in2", "data")),
        outputs=(Port(f"{node_id}.out", "out", "data"),),
    )


def _edge(cid, src, dst, port="in"):
    return Connection(cid, src, f"{src}.out", dst, f"{dst}.{port}")


class TestVaultDeposit:
    """Account node feeding one behavioral node."""

    def setup_method(self):
        self.vault = Node("Vault", "account", "Vault", outputs=(Port("p1", "vault", "account"),))
        self.deposit = Node("Deposit", "instruction", "Deposit", inputs=(Port("p2", "vault", "account"),))
        self.conn = Connection("c1", "Vault", "p1", "Deposit", "p2")

    def test_analysis(self):
        analysis = analyze_flow([self.vault, self.deposit], [self.conn])
        assert analysis.dependencies == {"Vault": [], "Deposit": ["Vault"]}
        assert analysis.execution_order == ["Vault", "Deposit"]
        assert analysis.cycles == []
        assert analysis.isolated_nodes == []

    def test_to_dict_keys(self):
        out = analyze_flow([self.vault, self.deposit], [self.conn]).to_dict()
        assert set(out) == {"dependencies", "executionOrder", "cycles", "isolatedNodes"}


class TestFlowAnalyzer:

    def test_acyclic_order_respects_every_edge(self):
        nodes = [_chain_node(n) for n in ("d", "c", "b", "a", "e")]
        conns = [
            _edge("1", "a", "b"),
            _edge("2", "b", "c"),
            _edge("3", "a", "d"),
            _edge("4", "c", "d", port="in2"),
            _edge("5", "e", "b", port="in2"),
        ]
        order = analyze_flow(nodes, conns).execution_order
        assert sorted(order) == ["a", "b", "c", "d", "e"]
        for conn in conns:
            assert order.index(conn.source_node_id) < order.index(conn.target_node_id)

    def test_roots_taken_in_input_order(self):
        nodes = [_chain_node(n) for n in ("x", "y", "z")]
        assert analyze_flow(nodes, []).execution_order == ["x", "y", "z"]

    def test_two_node_cycle_reported(self):
        nodes = [_chain_node("a"), _chain_node("b")]
        conns = [_edge("1", "a", "b"), _edge("2", "b", "a")]
        analysis = analyze_flow(nodes, conns)
        assert analysis.cycles
        assert set(analysis.cycles[0]) == {"a", "b"}
        # Ordering never fails on a cycle; the first node reached closes it last
        assert analysis.execution_order == ["b", "a"]

    def test_three_node_cycle_path_suffix(self):
        nodes = [_chain_node(n) for n in ("a", "b", "c")]
        conns = [_edge("1", "a", "b"), _edge("2", "b", "c"), _edge("3", "c", "a")]
        cycles = analyze_flow(nodes, conns).cycles
        assert cycles == [["a", "c", "b"]]

    def test_cycle_logged_at_debug(self, caplog):
        nodes = [_chain_node("a"), _chain_node("b")]
        conns = [_edge("1", "a", "b"), _edge("2", "b", "a")]
        with caplog.at_level(logging.DEBUG, logger="anchorflow.core.FlowAnalyzer"):
            analyze_flow(nodes, conns)
        assert any("Cycle detected" in r.message for r in caplog.records)

    def test_isolated_nodes(self):
        nodes = [_chain_node(n) for n in ("A", "B", "C")]
        analysis = analyze_flow(nodes, [_edge("1", "A", "B")])
        assert analysis.isolated_nodes == ["C"]

    def test_isolated_duplicate_id_listed_once(self):
        nodes = [_chain_node("a"), _chain_node("a"), _chain_node("b")]
        analysis = analyze_flow(nodes, [])
        assert analysis.isolated_nodes == ["a", "b"]
        assert list(analysis.dependencies) == analysis.execution_order == ["a", "b"]

    def test_dangling_connections_skipped(self):
        nodes = [_chain_node("a"), _chain_node("b")]
        conns = [
            _edge("1", "a", "ghost"),
            Connection("2", "a", "no-such-port", "b", "b.in"),
            Connection("3", "a", "a.out", "b", "no-such-port"),
        ]
        analysis = analyze_flow(nodes, conns)
        assert analysis.dependencies == {"a": [], "b": []}
        assert analysis.isolated_nodes == ["a", "b"]
        assert analysis.cycles == []

    def test_dependency_sources_deduplicated(self):
        nodes = [_chain_node("a"), _chain_node("b")]
        conns = [_edge("1", "a", "b"), _edge("2", "a", "b", port="in2")]
        assert build_dependencies(nodes, conns)["b"] == ["a"]

    def test_dependencies_in_connection_order(self):
        nodes = [_chain_node(n) for n in ("a", "b", "c")]
        conns = [_edge("1", "b", "c", port="in2"), _edge("2", "a", "c")]
        assert build_dependencies(nodes, conns)["c"] == ["b", "a"]

    def test_long_chain_does_not_recurse(self):
        count = 5000
        ids = [f"n{i}" for i in range(count)]
        deps = {ids[0]: []}
        for prev, cur in zip(ids, ids[1:]):
            deps[cur] = [prev]
        order = topological_order(list(reversed(ids)), deps)
        assert order == ids
        assert detect_cycles(list(reversed(ids)), deps) == []

    def test_empty_graph(self):
        analysis = analyze_flow([], [])
        assert analysis.to_dict() == {
            "dependencies": {},
            "executionOrder": [],
            "cycles": [],
            "isolatedNodes": [],
        }
