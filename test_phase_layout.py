"""
Tests for phase hierarchy statistics and station layout
"""

import unittest

from process_rule_compiler.exceptions import PhaseCycleError
from process_rule_compiler.models import Calculator, NodeKind, Phase, Process, ProcessAction
from process_rule_compiler.phase_layout import (
    DESTINATION_NODE_ID,
    PhaseHierarchyEngine,
    calculate_statistics,
    max_level,
)
from process_rule_compiler.process_builder import default_process_action


def branching_process(action=None) -> Process:
    """One top-level phase A with two leaf sub-phases B and C."""
    return Process(
        name="Branching",
        phases=[Phase(id="A", name="A", sub_phases=[
            Phase(id="B", name="B"),
            Phase(id="C", name="C"),
        ])],
        action=action,
    )


def calculators(count: int):
    return [Calculator(id=str(i), name=f"Calc {i}") for i in range(count)]


class TestPhaseLayout(unittest.TestCase):
    """Test suite for PhaseHierarchyEngine"""

    def setUp(self):
        self.engine = PhaseHierarchyEngine()

    def test_01_branching_statistics(self):
        """One phase with two sub-phases"""
        stats = calculate_statistics(branching_process())
        self.assertEqual(stats.total_phases, 1)
        self.assertEqual(stats.total_sub_phases, 2)
        self.assertEqual(stats.max_depth, 1)
        self.assertEqual(stats.max_level, 1)
        self.assertEqual(stats.total_calculators, 0)

    def test_02_branching_edges_without_action(self):
        """Only phase-to-sub-phase edges when no terminal action exists"""
        result = self.engine.layout(branching_process())
        self.assertEqual(
            [(e.source, e.target) for e in result.edges],
            [("phase-A", "phase-B"), ("phase-A", "phase-C")],
        )
        self.assertEqual(result.edges[0].id, "edge-phase-A-to-phase-B")
        self.assertEqual(result.edges[0].style, {"stroke": "#111827", "strokeWidth": 3})
        self.assertEqual(result.statistics.total_edges, 2)
        self.assertNotIn(DESTINATION_NODE_ID, [n.id for n in result.nodes])

    def test_03_branching_edges_with_action(self):
        """The terminal action adds a destination fed by the top-level station"""
        result = self.engine.layout(branching_process(), default_process_action())

        destination = result.nodes[-1]
        self.assertEqual(destination.id, DESTINATION_NODE_ID)
        self.assertEqual(destination.kind, NodeKind.ACTION)
        self.assertTrue(destination.data["isDestination"])
        self.assertEqual(destination.data["stationName"], "Final Destination")
        self.assertEqual((destination.position.x, destination.position.y), (450, 100))

        converging = [e for e in result.edges if e.target == DESTINATION_NODE_ID]
        self.assertEqual([e.id for e in converging], ["edge-phase-A-to-destination"])
        self.assertEqual(result.statistics.total_edges, 3)

    def test_04_positions(self):
        """Stations advance along x and branches spread across the track"""
        process = branching_process()
        process.phases.append(Phase(id="D", name="D"))
        nodes = {n.id: n for n in self.engine.layout(process).nodes}

        self.assertEqual((nodes["phase-A"].position.x, nodes["phase-A"].position.y), (50, 100))
        self.assertEqual((nodes["phase-D"].position.x, nodes["phase-D"].position.y), (250, 100))
        self.assertEqual(nodes["phase-B"].position.x, 250)
        self.assertAlmostEqual(nodes["phase-B"].position.y, 100 + 100 / 3)
        self.assertAlmostEqual(nodes["phase-C"].position.y, 100 + 200 / 3)

    def test_05_node_data(self):
        """Station nodes carry their phase, level and track number"""
        nodes = {n.id: n for n in self.engine.layout(branching_process()).nodes}
        station = nodes["phase-A"]
        self.assertEqual(station.type, "phaseNode")
        self.assertEqual(station.data["level"], 0)
        self.assertEqual(station.data["trackNumber"], 1)
        self.assertEqual(station.data["stationName"], "A")
        self.assertTrue(station.data["isJunction"])
        self.assertEqual(len(station.data["subPhases"]), 2)
        self.assertEqual(nodes["phase-C"].data["level"], 1)
        self.assertEqual(nodes["phase-C"].data["trackNumber"], 2)

    def test_06_action_without_event_type(self):
        """An action with no event type adds no destination"""
        result = self.engine.layout(branching_process(ProcessAction(event_type="")))
        self.assertEqual(len(result.nodes), 3)
        self.assertEqual(len(result.edges), 2)

    def test_07_idempotent(self):
        """Laying out the same process twice gives identical output"""
        process = branching_process(default_process_action())
        first = self.engine.layout(process).to_dict()
        second = self.engine.layout(process).to_dict()
        self.assertEqual(first, second)

    def test_08_depth_monotonic(self):
        """Adding a nested sub-phase never decreases the depth"""
        process = branching_process()
        before = calculate_statistics(process).max_depth
        process.phases[0].sub_phases[0].sub_phases.append(Phase(id="E", name="E"))
        after = calculate_statistics(process).max_depth
        self.assertEqual(before, 1)
        self.assertEqual(after, 2)

    def test_09_calculators_extend_level_not_depth(self):
        """Leaf calculators count toward max_level only"""
        process = Process(name="Calc", phases=[Phase(id="A", name="A", calculators=calculators(3))])
        stats = calculate_statistics(process)
        self.assertEqual(stats.max_depth, 0)
        self.assertEqual(stats.max_level, 3)
        self.assertEqual(stats.total_calculators, 3)

        nested = Phase(id="P", name="P", sub_phases=[Phase(id="Q", name="Q", calculators=calculators(2))])
        self.assertEqual(max_level(nested), 3)

    def test_10_empty_process(self):
        """A process without phases lays out to an empty diagram"""
        result = self.engine.layout(Process(name="Empty"))
        self.assertEqual(result.nodes, [])
        self.assertEqual(result.edges, [])
        self.assertEqual(result.statistics.max_depth, 0)
        self.assertEqual(result.statistics.max_level, 0)

    def test_11_cycle_detected(self):
        """A phase nested inside itself raises"""
        phase = Phase(id="A", name="A")
        phase.sub_phases.append(phase)
        with self.assertRaises(PhaseCycleError):
            calculate_statistics(Process(name="Loop", phases=[phase]))

    def test_12_statistics_serialization(self):
        """Statistics serialize with camelCase keys"""
        stats = self.engine.layout(branching_process()).statistics.to_dict()
        self.assertEqual(stats, {
            "totalPhases": 1,
            "totalSubPhases": 2,
            "totalCalculators": 0,
            "totalEdges": 2,
            "maxDepth": 1,
            "maxLevel": 1,
        })

    def test_13_reused_phase_ids_lay_out(self):
        """A tree that reuses a phase id at different depths is not a cycle"""
        process = Process.from_dict({
            "name": "p",
            "phases": [{"id": "1", "name": "A", "subPhases": [{"id": "1", "name": "B"}]}],
        })
        result = self.engine.layout(process)
        self.assertEqual(len(result.nodes), 2)
        self.assertEqual(len(result.edges), 1)
        self.assertEqual([n.id for n in result.nodes], ["phase-1", "phase-1"])
        self.assertEqual(result.statistics.max_depth, 1)
        self.assertEqual(calculate_statistics(process).total_sub_phases, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
