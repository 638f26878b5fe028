"""
Tests for process authoring and the calculator catalog
"""

import unittest

from process_rule_compiler.models import (
    CompletionCriteria,
    CorrelationConditions,
    CrossTaskCondition,
    ProcessAction,
)
from process_rule_compiler.phase_layout import calculate_statistics
from process_rule_compiler.process_builder import CalculatorCatalog, ProcessBuilder


class TestCalculatorCatalog(unittest.TestCase):
    """Test suite for CalculatorCatalog"""

    @classmethod
    def setUpClass(cls):
        cls.catalog = CalculatorCatalog()

    def test_01_builtin_calculators(self):
        """The catalog ships six calculators with lifecycle events"""
        self.assertEqual(len(self.catalog), 6)
        pl = self.catalog.get("P&L Calculator")
        self.assertEqual(pl.application, "Finance")
        self.assertEqual(pl.task_name, "pl-calculator")
        self.assertEqual(pl.events, ["task-started", "task-completed", "task-failed"])

    def test_02_case_insensitive_lookup(self):
        """Exact names match regardless of case"""
        self.assertEqual(self.catalog.get("risk assessment").name, "Risk Assessment")

    def test_03_fuzzy_lookup(self):
        """Misspelled and reordered names still resolve"""
        self.assertEqual(self.catalog.get("sales forcast").name, "Sales Forecast")
        self.assertEqual(self.catalog.get("Metrics Performance").name, "Performance Metrics")

    def test_04_no_match(self):
        """Unrelated names return None"""
        self.assertIsNone(self.catalog.get("xyz"))
        self.assertIsNone(self.catalog.get(""))

    def test_05_lookup_returns_copy(self):
        """Callers cannot modify catalog entries through lookups"""
        found = self.catalog.get("Sales Forecast")
        found.events.append("custom")
        self.assertEqual(len(self.catalog.get("Sales Forecast").events), 3)


class TestProcessBuilder(unittest.TestCase):
    """Test suite for ProcessBuilder"""

    def setUp(self):
        self.builder = ProcessBuilder(name="Month End Close", description="Close the books")

    def test_01_add_phase_defaults(self):
        """New phases are numbered and get default correlation settings"""
        first = self.builder.add_phase()
        second = self.builder.add_phase()

        self.assertEqual(first.name, "Phase 1")
        self.assertEqual(second.name, "Phase 2")
        self.assertNotEqual(first.id, second.id)

        conditions = first.correlation_conditions.to_dict()
        self.assertEqual(conditions["requiredEvents"], ["task-completed"])
        self.assertEqual(conditions["contextConditions"], [
            {"field": "businessDate", "operator": "equals", "value": "${businessDate}"},
            {"field": "region", "operator": "equals", "value": "APAC"},
        ])
        self.assertEqual(conditions["crossTaskConditions"], [])
        self.assertEqual(conditions["completionCriteria"], "all-completed")

        action = first.phase_action
        self.assertEqual(action.event_type, "phase-completed")
        self.assertEqual(action.context_mapping["phaseId"], "${phaseId}")

    def test_02_calculators_deduplicated(self):
        """Adding a calculator twice keeps one copy"""
        phase = self.builder.add_phase()
        self.assertTrue(self.builder.add_calculator(phase.id, "P&L Calculator"))
        self.assertFalse(self.builder.add_calculator(phase.id, "P&L Calculator"))
        self.assertFalse(self.builder.add_calculator(phase.id, "p&l calculator"))
        self.assertEqual(len(phase.calculators), 1)

    def test_03_unknown_calculator(self):
        """Unknown calculator names are not added"""
        phase = self.builder.add_phase()
        with self.assertLogs("process_rule_compiler.process_builder", level="WARNING"):
            self.assertFalse(self.builder.add_calculator(phase.id, "xyz"))
        self.assertEqual(phase.calculators, [])

    def test_04_remove_calculator(self):
        """Calculators are removed by name"""
        phase = self.builder.add_phase()
        self.builder.add_calculator(phase.id, "Sales Forecast")
        self.assertTrue(self.builder.remove_calculator(phase.id, "Sales Forecast"))
        self.assertFalse(self.builder.remove_calculator(phase.id, "Sales Forecast"))
        self.assertEqual(phase.calculators, [])

    def test_05_sub_phases(self):
        """Sub-phases nest under their parent and can be removed"""
        parent = self.builder.add_phase()
        child = self.builder.add_sub_phase(parent.id)
        grandchild = self.builder.add_sub_phase(child.id, name="Deep")

        self.assertEqual(child.name, "Phase 1.1")
        self.assertIs(self.builder.find_phase(grandchild.id), grandchild)
        self.assertEqual(calculate_statistics(self.builder.build()).max_depth, 2)

        self.assertTrue(self.builder.remove_phase(child.id))
        self.assertIsNone(self.builder.find_phase(grandchild.id))
        self.assertEqual(parent.sub_phases, [])

    def test_06_update_phase(self):
        """Phase fields can be edited but ids cannot"""
        phase = self.builder.add_phase()
        self.builder.update_phase(phase.id, name="Reconcile", description="Match ledgers")
        self.assertEqual(phase.name, "Reconcile")
        self.assertEqual(phase.description, "Match ledgers")
        with self.assertRaises(AttributeError):
            self.builder.update_phase(phase.id, id="other")
        with self.assertRaises(KeyError):
            self.builder.update_phase("missing", name="x")

    def test_07_correlation_settings(self):
        """Correlation conditions and phase actions are replaceable"""
        phase = self.builder.add_phase()
        conditions = CorrelationConditions(
            required_events=["task-completed", "task-failed"],
            cross_task_conditions=[CrossTaskCondition(
                source_task="pl-calculator", source_field="total",
                operator="greater_than",
                target_task="risk-assessment", target_field="limit",
            )],
            completion_criteria=CompletionCriteria.ANY_COMPLETED,
        )
        self.builder.set_correlation_conditions(phase.id, conditions)
        self.builder.set_phase_action(phase.id, ProcessAction(event_type="close-done", event_name="Close done"))

        self.assertEqual(phase.correlation_conditions.completion_criteria, CompletionCriteria.ANY_COMPLETED)
        self.assertEqual(phase.correlation_conditions.to_dict()["crossTaskConditions"][0]["operator"], "greater_than")
        self.assertEqual(phase.phase_action.event_type, "close-done")

    def test_08_available_tasks(self):
        """Calculators from every phase are offered for cross-task conditions"""
        first = self.builder.add_phase()
        child = self.builder.add_sub_phase(first.id)
        self.builder.add_calculator(first.id, "P&L Calculator")
        self.builder.add_calculator(child.id, "Risk Assessment")
        self.assertEqual(
            [c.task_name for c in self.builder.available_tasks()],
            ["pl-calculator", "risk-assessment"],
        )

    def test_09_generate_process(self):
        """Generated process carries a correlation config per phase"""
        phase = self.builder.add_phase()
        self.builder.add_calculator(phase.id, "P&L Calculator")
        generated = self.builder.generate_process(process_id="process_1")

        self.assertEqual(generated.process.id, "process_1")
        self.assertEqual(generated.process.name, "Month End Close")

        config = generated.correlation_config
        self.assertEqual(config["processId"], "process_1")
        self.assertEqual(config["businessProcess"], "Month End Close")
        entry = config["phases"][0]
        self.assertEqual(entry["phaseId"], phase.id)
        self.assertEqual(entry["phaseName"], "Phase 1")
        self.assertEqual(entry["calculators"], [{"taskName": "pl-calculator", "name": "P&L Calculator"}])
        self.assertEqual(entry["completionEvent"], "task-completed")
        self.assertEqual(entry["contextMapping"]["processId"], "${processId}")
        self.assertEqual(entry["phaseAction"]["eventType"], "phase-completed")

        data = generated.to_dict()
        self.assertEqual(len(data["calculators"]), 6)
        self.assertIn("correlationConfig", data)

    def test_10_generated_process_is_snapshot(self):
        """Later edits do not leak into an already generated process"""
        phase = self.builder.add_phase()
        generated = self.builder.generate_process(process_id="p")
        self.builder.update_phase(phase.id, name="Renamed")
        self.assertEqual(generated.process.phases[0].name, "Phase 1")

    def test_11_generated_process_id(self):
        """A process id is generated when none is given"""
        generated = self.builder.generate_process()
        self.assertTrue(generated.process.id.startswith("process_"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
