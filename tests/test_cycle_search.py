import itertools
import random
import unittest

import networkx as nx

from cld_loops.graph.builder import build_graph
from cld_loops.graph.loops import canonical_key, dedupe_cycles, enumerate_cycles


def complete_digraph(n):
    ids = [f"N{i}" for i in range(n)]
    nodes = [{"id": i} for i in ids]
    edges = [{"source": a, "target": b, "sign": "+"} for a, b in itertools.permutations(ids, 2)]
    return build_graph(nodes, edges)


def random_digraph(rng, n, p):
    ids = [f"v{i:02d}" for i in range(n)]
    edges = [
        {"source": a, "target": b, "sign": "+"}
        for a, b in itertools.permutations(ids, 2)
        if rng.random() < p
    ]
    return build_graph([{"id": i} for i in ids], edges)


class CanonicalKeyTests(unittest.TestCase):
    def test_rotation_invariant(self):
        self.assertEqual(canonical_key(["B", "C", "A"]), "A>B>C")
        self.assertEqual(canonical_key(["C", "A", "B"]), "A>B>C")

    def test_direction_preserving(self):
        self.assertNotEqual(canonical_key(["A", "B", "C"]), canonical_key(["A", "C", "B"]))

    def test_dedupe_keeps_first_rotation(self):
        unique = dedupe_cycles([["B", "C", "A"], ["A", "B", "C"], ["A", "C", "B"], ["C", "A", "B"]])
        self.assertEqual(unique, [["B", "C", "A"], ["A", "C", "B"]])

    def test_empty_cycle(self):
        self.assertEqual(canonical_key([]), "")


class EnumerateCyclesTests(unittest.TestCase):
    def test_triangle(self):
        G = build_graph(
            [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            [{"source": "A", "target": "B"}, {"source": "B", "target": "C"}, {"source": "C", "target": "A"}],
        )
        found = enumerate_cycles(G)
        self.assertEqual(found.cycles, [["A", "B", "C"]])
        self.assertFalse(found.truncated)
        self.assertFalse(found.cancelled)

    def test_two_node_loop_is_found(self):
        G = build_graph([{"id": "A"}, {"id": "B"}], [{"source": "A", "target": "B"}, {"source": "B", "target": "A"}])
        self.assertEqual(enumerate_cycles(G).cycles, [["A", "B"]])
        self.assertEqual(enumerate_cycles(G, min_length=3).cycles, [])

    def test_cycles_start_at_their_smallest_vertex(self):
        found = enumerate_cycles(complete_digraph(4))
        for cycle in found.cycles:
            self.assertEqual(cycle[0], min(cycle))

    def test_complete_graph_counts(self):
        # K4 has 6 two-cycles, 8 three-cycles and 6 four-cycles
        G = complete_digraph(4)
        self.assertEqual(len(enumerate_cycles(G).cycles), 20)
        self.assertEqual(len(enumerate_cycles(G, max_len=3).cycles), 14)
        self.assertEqual(len(enumerate_cycles(G, max_len=2).cycles), 6)

    def test_no_duplicates_from_rooting(self):
        found = enumerate_cycles(complete_digraph(5))
        self.assertEqual(len(dedupe_cycles(found.cycles)), len(found.cycles))

    def test_top_k_truncates(self):
        # K6 has 409 simple cycles
        G = complete_digraph(6)
        found = enumerate_cycles(G, max_len=6, top_k=50)
        self.assertEqual(len(found.cycles), 50)
        self.assertTrue(found.truncated)

        full = enumerate_cycles(G, max_len=6, top_k=1000)
        self.assertEqual(len(full.cycles), 409)
        self.assertFalse(full.truncated)

    def test_cap_reached_exactly_is_not_truncated(self):
        G = build_graph(
            [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            [{"source": "A", "target": "B"}, {"source": "B", "target": "C"}, {"source": "C", "target": "A"}],
        )
        found = enumerate_cycles(G, top_k=1)
        self.assertEqual(len(found.cycles), 1)
        self.assertFalse(found.truncated)

        G.add_edge("B", "A")
        found = enumerate_cycles(G, top_k=1)
        self.assertEqual(len(found.cycles), 1)
        self.assertTrue(found.truncated)

    def test_degenerate_bounds(self):
        G = complete_digraph(3)
        self.assertEqual(enumerate_cycles(G, top_k=0).cycles, [])
        self.assertEqual(enumerate_cycles(G, max_len=1).cycles, [])

    def test_cancellation(self):
        calls = {"n": 0}

        def should_cancel():
            calls["n"] += 1
            return calls["n"] > 25

        found = enumerate_cycles(complete_digraph(6), max_len=6, top_k=1000, should_cancel=should_cancel)
        self.assertTrue(found.cancelled)
        self.assertFalse(found.truncated)
        self.assertLess(len(found.cycles), 409)

    def test_matches_networkx_on_random_graphs(self):
        rng = random.Random(7)
        for _ in range(15):
            G = random_digraph(rng, 8, 0.3)
            max_len = rng.randint(2, 6)
            found = enumerate_cycles(G, max_len=max_len, top_k=100000)
            ours = {canonical_key(c) for c in found.cycles}
            expected = {canonical_key(c) for c in nx.simple_cycles(G) if len(c) <= max_len}
            self.assertEqual(ours, expected)
            self.assertEqual(len(ours), len(found.cycles))
            for cycle in found.cycles:
                self.assertEqual(len(set(cycle)), len(cycle))
                self.assertLessEqual(len(cycle), max_len)


if __name__ == "__main__":
    unittest.main()
