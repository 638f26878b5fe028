"""Authoring state for processes: phases, calculators and correlation settings."""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rapidfuzz import fuzz, process as fuzzy, utils

from .models import (
    Calculator,
    CompletionCriteria,
    ContextCondition,
    CorrelationConditions,
    IdGenerator,
    Operator,
    Phase,
    Process,
    ProcessAction,
)

logger = logging.getLogger(__name__)

CALCULATOR_EVENTS = ("task-started", "task-completed", "task-failed")

# Entry format: (name, application, description, task name)
BUILTIN_CALCULATORS = (
    ("P&L Calculator", "Finance", "Profit and Loss calculations", "pl-calculator"),
    ("Customer Retention", "CRM", "Customer retention analysis", "customer-retention"),
    ("Inventory Reorder", "Inventory", "Automatic reorder calculations", "inventory-reorder"),
    ("Sales Forecast", "Sales", "Sales forecasting model", "sales-forecast"),
    ("Risk Assessment", "Finance", "Risk evaluation calculator", "risk-assessment"),
    ("Performance Metrics", "Analytics", "Performance measurement", "performance-metrics"),
)

FUZZY_THRESHOLD = 70

COMPLETION_EVENT = "task-completed"
PROCESS_CONTEXT_MAPPING = {
    "businessDate": "${businessDate}",
    "region": "${region}",
    "processId": "${processId}",
}


def default_correlation_conditions() -> CorrelationConditions:
    return CorrelationConditions(
        required_events=["task-completed"],
        context_conditions=[
            ContextCondition(field="businessDate", operator=Operator.EQUALS, value="${businessDate}"),
            ContextCondition(field="region", operator=Operator.EQUALS, value="APAC"),
        ],
        cross_task_conditions=[],
        completion_criteria=CompletionCriteria.ALL_COMPLETED,
    )


def default_phase_action() -> ProcessAction:
    return ProcessAction(
        event_type="phase-completed",
        event_name="",
        context_mapping={
            "businessDate": "${businessDate}",
            "region": "${region}",
            "phaseId": "${phaseId}",
        },
    )


def default_process_action() -> ProcessAction:
    """Terminal action used when a process completes."""
    return ProcessAction(
        event_type="business-process-completed",
        event_name="",
        context_mapping=dict(PROCESS_CONTEXT_MAPPING),
    )


class CalculatorCatalog:
    """The built-in calculators, looked up by exact or approximate name."""

    def __init__(self, calculators: Optional[List[Calculator]] = None, threshold: int = FUZZY_THRESHOLD):
        if calculators is None:
            calculators = [
                Calculator(
                    id=task_name,
                    name=name,
                    application=application,
                    task_name=task_name,
                    description=description,
                    events=list(CALCULATOR_EVENTS),
                )
                for name, application, description, task_name in BUILTIN_CALCULATORS
            ]
        self.calculators = calculators
        self.threshold = threshold

    def __len__(self):
        return len(self.calculators)

    def names(self) -> List[str]:
        return [c.name for c in self.calculators]

    def get(self, name: str) -> Optional[Calculator]:
        """
        Find a calculator by name.

        Exact (case-insensitive) matches win; otherwise the closest name by
        token sort ratio is returned when it scores at or above the threshold.

        Args:
            name: Calculator name as typed by a user

        Returns:
            A copy of the catalog entry, or None
        """
        if not name:
            return None

        for calculator in self.calculators:
            if calculator.name.lower() == name.lower():
                return copy.deepcopy(calculator)

        match = fuzzy.extractOne(
            name,
            self.names(),
            scorer=fuzz.token_sort_ratio,
            processor=utils.default_process,
            score_cutoff=self.threshold,
        )
        if match is None:
            logger.debug(f"No calculator matches {name!r}")
            return None

        matched_name, score, index = match
        logger.debug(f"Calculator {name!r} matched {matched_name!r} ({score:.0f})")
        return copy.deepcopy(self.calculators[index])


@dataclass
class GeneratedProcess:
    """A Process together with its event-correlation configuration."""
    process: Process
    correlation_config: Dict[str, Any] = field(default_factory=dict)
    calculators: List[Calculator] = field(default_factory=list)

    def to_dict(self) -> Dict:
        result = self.process.to_dict()
        result["calculators"] = [c.to_dict() for c in self.calculators]
        result["correlationConfig"] = self.correlation_config
        return result


class ProcessBuilder:
    """
    Build a Process phase by phase.

    Phases are addressed by id anywhere in the tree, so sub-phases can be
    edited with the same calls as top-level phases.
    """

    def __init__(self, name: str = "", description: str = "", catalog: Optional[CalculatorCatalog] = None):
        self.name = name
        self.description = description
        self.phases: List[Phase] = []
        self.catalog = catalog or CalculatorCatalog()
        self.ids = IdGenerator()

    def _new_phase_id(self) -> str:
        return str(self.ids.next_id("phase"))

    def _walk(self, phases: Optional[List[Phase]] = None):
        for phase in self.phases if phases is None else phases:
            yield phase
            yield from self._walk(phase.sub_phases)

    def find_phase(self, phase_id: str) -> Optional[Phase]:
        phase_id = str(phase_id)
        return next((p for p in self._walk() if p.id == phase_id), None)

    def _require_phase(self, phase_id: str) -> Phase:
        phase = self.find_phase(phase_id)
        if phase is None:
            raise KeyError(f"Unknown phase: {phase_id}")
        return phase

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def add_phase(self, name: Optional[str] = None, description: str = "") -> Phase:
        """Append a top-level phase with default correlation settings."""
        phase = Phase(
            id=self._new_phase_id(),
            name=name or f"Phase {len(self.phases) + 1}",
            description=description,
            correlation_conditions=default_correlation_conditions(),
            phase_action=default_phase_action(),
        )
        self.phases.append(phase)
        logger.debug(f"Added phase {phase.id} ({phase.name})")
        return phase

    def add_sub_phase(self, parent_id: str, name: Optional[str] = None, description: str = "") -> Phase:
        parent = self._require_phase(parent_id)
        phase = Phase(
            id=self._new_phase_id(),
            name=name or f"{parent.name}.{len(parent.sub_phases) + 1}",
            description=description,
            correlation_conditions=default_correlation_conditions(),
            phase_action=default_phase_action(),
        )
        parent.sub_phases.append(phase)
        return phase

    def update_phase(self, phase_id: str, **changes) -> Phase:
        """Set attributes (name, description, ...) on a phase."""
        phase = self._require_phase(phase_id)
        for key, value in changes.items():
            if key == "id" or not hasattr(phase, key):
                raise AttributeError(f"Phase has no editable field {key!r}")
            setattr(phase, key, value)
        return phase

    def remove_phase(self, phase_id: str) -> bool:
        """Remove a phase, and its sub-phases, wherever it sits in the tree."""
        phase_id = str(phase_id)

        def prune(phases: List[Phase]) -> bool:
            for index, phase in enumerate(phases):
                if phase.id == phase_id:
                    del phases[index]
                    return True
                if prune(phase.sub_phases):
                    return True
            return False

        return prune(self.phases)

    # ------------------------------------------------------------------
    # Calculators
    # ------------------------------------------------------------------

    def add_calculator(self, phase_id: str, calculator) -> bool:
        """
        Add a calculator to a phase.

        Args:
            phase_id: Target phase
            calculator: Calculator instance or a catalog name

        Returns:
            False when the name is unknown or already present in the phase
        """
        phase = self._require_phase(phase_id)

        if isinstance(calculator, str):
            found = self.catalog.get(calculator)
            if found is None:
                logger.warning(f"Unknown calculator: {calculator}")
                return False
            calculator = found

        if any(c.name == calculator.name for c in phase.calculators):
            return False

        phase.calculators.append(calculator)
        return True

    def remove_calculator(self, phase_id: str, calculator_name: str) -> bool:
        phase = self._require_phase(phase_id)
        before = len(phase.calculators)
        phase.calculators = [c for c in phase.calculators if c.name != calculator_name]
        return len(phase.calculators) != before

    def available_tasks(self) -> List[Calculator]:
        """Every calculator used anywhere in the process, in tree order."""
        return [c for phase in self._walk() for c in phase.calculators]

    # ------------------------------------------------------------------
    # Correlation settings
    # ------------------------------------------------------------------

    def set_correlation_conditions(self, phase_id: str, conditions: CorrelationConditions) -> Phase:
        phase = self._require_phase(phase_id)
        phase.correlation_conditions = conditions
        return phase

    def set_phase_action(self, phase_id: str, action: ProcessAction) -> Phase:
        phase = self._require_phase(phase_id)
        phase.phase_action = action
        return phase

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def build(self, action: Optional[ProcessAction] = None) -> Process:
        return Process(
            name=self.name,
            description=self.description,
            phases=copy.deepcopy(self.phases),
            action=action,
        )

    def generate_process(
        self,
        action: Optional[ProcessAction] = None,
        process_id: Optional[str] = None
    ) -> GeneratedProcess:
        """
        Produce the Process and its correlation configuration.

        Args:
            action: Terminal process action, if any
            process_id: Identifier for the correlation config; generated from
                the current time when omitted

        Returns:
            GeneratedProcess
        """
        process = self.build(action)
        process.id = process_id or f"process_{int(time.time() * 1000)}"

        correlation_config = {
            "processId": process.id,
            "businessProcess": self.name,
            "phases": [
                {
                    "phaseId": phase.id,
                    "phaseName": phase.name,
                    "calculators": [
                        {"taskName": c.task_name or c.name, "name": c.name}
                        for c in phase.calculators
                    ],
                    "correlationConditions": (
                        phase.correlation_conditions.to_dict() if phase.correlation_conditions else None
                    ),
                    "phaseAction": phase.phase_action.to_dict() if phase.phase_action else None,
                    "completionEvent": COMPLETION_EVENT,
                    "contextMapping": dict(PROCESS_CONTEXT_MAPPING),
                }
                for phase in process.phases
            ],
        }

        logger.info(f"Generated process {process.id} with {len(process.phases)} phases")
        return GeneratedProcess(
            process=process,
            correlation_config=correlation_config,
            calculators=copy.deepcopy(self.catalog.calculators),
        )
