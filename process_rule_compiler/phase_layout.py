"""Statistics and station/branch layout for phase hierarchies.

Top-level phases are stations on a horizontal main line. Each sub-phase
branches one station to the right of its parent, spread evenly across the
parent's track band. When a terminal action is configured, every main-line
station converges on a single destination node.
"""

import logging
from typing import List, Optional, Set, Tuple

from .exceptions import PhaseCycleError
from .models import (
    GraphEdge,
    GraphNode,
    LayoutResult,
    NodeKind,
    Phase,
    Position,
    Process,
    ProcessAction,
    ProcessStatistics,
)

logger = logging.getLogger(__name__)

STATION_SPACING = 200
TRACK_SPACING = 100
START_X = 50
START_Y = 100

DESTINATION_NODE_ID = "process-action"
EDGE_STYLE = {"stroke": "#111827", "strokeWidth": 3}


def phase_node_id(phase: Phase) -> str:
    return f"phase-{phase.id}"


def _check_cycle(phase: Phase, ancestors: Set[int]):
    # ancestors holds object identities; reused ids in a tree are allowed
    if id(phase) in ancestors:
        raise PhaseCycleError(phase.id)


def calculate_statistics(process: Process) -> ProcessStatistics:
    """
    Aggregate counts over the whole phase tree.

    max_depth is the deepest sub-phase nesting. max_level additionally counts
    the calculators of a leaf phase as extra levels, which is the estimate
    the station diagram uses for its vertical extent.
    """
    stats = ProcessStatistics(total_phases=len(process.phases))

    def visit(phase: Phase, depth: int, ancestors: Set[int]):
        _check_cycle(phase, ancestors)
        stats.max_depth = max(stats.max_depth, depth)
        stats.total_sub_phases += len(phase.sub_phases)
        stats.total_calculators += len(phase.calculators)
        for sub_phase in phase.sub_phases:
            visit(sub_phase, depth + 1, ancestors | {id(phase)})

    for phase in process.phases:
        visit(phase, 0, set())

    stats.max_level = max((max_level(p) for p in process.phases), default=0)
    return stats


def max_level(phase: Phase, current_level: int = 0) -> int:
    """Layout depth of a phase chain, extended by a leaf's calculator count."""
    if phase.sub_phases:
        return max(
            [current_level] + [max_level(sub, current_level + 1) for sub in phase.sub_phases]
        )
    if phase.calculators:
        return current_level + len(phase.calculators)
    return current_level


class PhaseHierarchyEngine:
    """Compute statistics, station nodes and track edges for a Process."""

    def __init__(
        self,
        station_spacing: float = STATION_SPACING,
        track_spacing: float = TRACK_SPACING,
        start_x: float = START_X,
        start_y: float = START_Y
    ):
        self.station_spacing = station_spacing
        self.track_spacing = track_spacing
        self.start_x = start_x
        self.start_y = start_y

    def layout(self, process: Process, action: Optional[ProcessAction] = None) -> LayoutResult:
        """
        Lay out a process as a station diagram.

        Args:
            process: Process document; it is not modified
            action: Terminal action; defaults to process.action

        Returns:
            LayoutResult with statistics, nodes and edges
        """
        stats = calculate_statistics(process)
        nodes: List[GraphNode] = []
        edges: List[GraphEdge] = []

        final_station_ids = [
            self._place_phase(phase, index, 0, None, nodes, edges, set())
            for index, phase in enumerate(process.phases)
        ]

        action = action if action is not None else process.action
        if action is not None and action.event_type:
            nodes.append(self._destination_node(len(process.phases), action))
            for station_id in final_station_ids:
                edges.append(GraphEdge(
                    id=f"edge-{station_id}-to-destination",
                    source=station_id,
                    target=DESTINATION_NODE_ID,
                    style=dict(EDGE_STYLE),
                ))

        stats.total_edges = len(edges)
        logger.debug(
            f"Laid out process {process.name!r}: {len(nodes)} nodes, {len(edges)} edges, "
            f"max depth {stats.max_depth}"
        )
        return LayoutResult(statistics=stats, nodes=nodes, edges=edges)

    def _place_phase(
        self,
        phase: Phase,
        index: int,
        level: int,
        parent: Optional[Tuple[float, float]],
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        ancestors: Set[int]
    ) -> str:
        """Place a phase and its sub-phases; return the phase's own station id."""
        _check_cycle(phase, ancestors)

        if parent is None:
            x = self.start_x + index * self.station_spacing
            y = self.start_y + level * self.track_spacing
        else:
            x, y = parent

        node_id = phase_node_id(phase)
        nodes.append(GraphNode(
            id=node_id,
            kind=NodeKind.PHASE,
            position=Position(x=x, y=y),
            data={
                "phase": phase.to_dict(),
                "calculators": [c.to_dict() for c in phase.calculators],
                "subPhases": [p.to_dict() for p in phase.sub_phases],
                "trackNumber": index + 1,
                "level": level,
                "isJunction": True,
                "stationName": phase.name,
            },
        ))

        if phase.sub_phases:
            branch_spacing = self.track_spacing / (len(phase.sub_phases) + 1)
            for sub_index, sub_phase in enumerate(phase.sub_phases):
                branch = (x + self.station_spacing, y + (sub_index + 1) * branch_spacing)
                sub_id = self._place_phase(
                    sub_phase, sub_index, level + 1, branch, nodes, edges, ancestors | {id(phase)}
                )
                edges.append(GraphEdge(
                    id=f"edge-{node_id}-to-{sub_id}",
                    source=node_id,
                    target=sub_id,
                    style=dict(EDGE_STYLE),
                ))

        return node_id

    def _destination_node(self, phase_count: int, action: ProcessAction) -> GraphNode:
        return GraphNode(
            id=DESTINATION_NODE_ID,
            kind=NodeKind.ACTION,
            position=Position(
                x=self.start_x + (phase_count + 1) * self.station_spacing,
                y=self.start_y + (phase_count // 2) * self.track_spacing,
            ),
            data={
                "action": action.to_dict(),
                "isDestination": True,
                "stationName": "Final Destination",
            },
        )
