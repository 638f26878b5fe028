"""Compile editor graphs into rule configurations and process documents."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from .models import (
    GraphEdge,
    GraphNode,
    IdGenerator,
    NodeKind,
    Phase,
    Position,
    Process,
    ProcessAction,
    Rule,
)
from .phase_layout import DESTINATION_NODE_ID

logger = logging.getLogger(__name__)

# (source kind, target kind) pairs accepted on the rule canvas
RULE_CONNECTIONS: FrozenSet[Tuple[NodeKind, NodeKind]] = frozenset({
    (NodeKind.ENTITY, NodeKind.JOIN),
    (NodeKind.JOIN, NodeKind.ACTION),
})

# Track edges of a laid-out station diagram
PROCESS_CONNECTIONS: FrozenSet[Tuple[NodeKind, NodeKind]] = frozenset({
    (NodeKind.PHASE, NodeKind.PHASE),
    (NodeKind.PHASE, NodeKind.ACTION),
})

GENERATED_RULE_NAME = "Generated Business Rule"
GENERATED_PROCESS_NAME = "Generated Process"

JOIN_NODE_ID = "join"
ACTION_NODE_ID = "action"


@dataclass
class ConfiguredEntity:
    name: str
    type: str
    dataset: Optional[str] = None
    attributes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "type": self.type,
            "dataset": self.dataset,
            "attributes": list(self.attributes),
        }


@dataclass
class RuleConfiguration:
    """Rule document assembled from an entity/join/action graph."""
    entities: List[ConfiguredEntity]
    join_conditions: List[Dict[str, Any]] = field(default_factory=list)
    context_mapping: Dict[str, Any] = field(default_factory=dict)
    custom_attributes: Dict[str, Any] = field(default_factory=dict)
    task: str = ""
    trigger_event: str = ""
    action_context_mapping: Dict[str, Any] = field(default_factory=dict)
    name: str = GENERATED_RULE_NAME

    def to_dict(self) -> Dict:
        return {
            "rule": {
                "name": self.name,
                "entities": [e.to_dict() for e in self.entities],
                "join_conditions": list(self.join_conditions),
                "context_mapping": dict(self.context_mapping),
                "custom_attributes": dict(self.custom_attributes),
                "action": {
                    "task": self.task,
                    "trigger_event": self.trigger_event,
                    "context_mapping": dict(self.action_context_mapping),
                },
            }
        }


@dataclass
class GraphCompilation:
    """Result of GraphCompiler.compile: the document plus the edges it was compiled with."""
    document: Union[RuleConfiguration, Process, None]
    edges: List[GraphEdge] = field(default_factory=list)
    rejected: List[GraphEdge] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.document is not None

    def to_dict(self) -> Dict:
        return {
            "document": self.document.to_dict() if self.document is not None else None,
            "edges": [e.to_dict() for e in self.edges],
            "rejectedEdges": [e.to_dict() for e in self.rejected],
        }


def default_node_data(kind: NodeKind, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Initial data for a node dropped onto the canvas."""
    data = dict(data or {})

    if kind == NodeKind.ENTITY:
        defaults = {
            "label": data.get("name", "Entity"),
            "entityType": data.get("type", ""),
            "attributes": list(data.get("attributes", [])),
            "selectedAttributes": [],
        }
    elif kind == NodeKind.JOIN:
        defaults = {
            "label": "Join Condition",
            "joinConditions": [],
            "contextMapping": {},
            "customAttributes": {},
        }
    elif kind == NodeKind.ACTION:
        defaults = {
            "label": "Action",
            "taskName": "",
            "triggerEvent": "",
            "contextMapping": {},
        }
    elif kind == NodeKind.CONDITION:
        defaults = {
            "label": "Condition",
            "field": "",
            "operator": "equals",
            "value": "",
        }
    elif kind == NodeKind.PHASE:
        defaults = {
            "label": data.get("name", "Phase"),
            "calculators": [],
            "subPhases": [],
        }
    elif kind == NodeKind.CALCULATOR:
        defaults = {
            "label": data.get("name", "Calculator"),
            "application": "",
        }
    else:
        raise ValueError(f"Unhandled node kind: {kind}")

    defaults.update(data)
    return defaults


class GraphCompiler:
    """Validate editor connections and assemble rule or process documents."""

    def __init__(self, allowed_connections: FrozenSet[Tuple[NodeKind, NodeKind]] = RULE_CONNECTIONS):
        self.allowed_connections = allowed_connections
        self.ids = IdGenerator()

    # ------------------------------------------------------------------
    # Structural validation
    # ------------------------------------------------------------------

    def is_allowed(
        self,
        source: GraphNode,
        target: GraphNode,
        allowed: Optional[FrozenSet[Tuple[NodeKind, NodeKind]]] = None
    ) -> bool:
        if allowed is None:
            allowed = self.allowed_connections
        return (source.kind, target.kind) in allowed

    def connect(
        self,
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        source_id: str,
        target_id: str,
        edge_type: str = "smoothstep"
    ) -> List[GraphEdge]:
        """
        Propose a connection between two nodes.

        Disallowed pairs, unknown node ids and duplicates are dropped without
        raising; the caller compares the returned list to detect rejection.

        Returns:
            New edge list, with the edge appended when accepted
        """
        by_id = {n.id: n for n in nodes}
        source = by_id.get(source_id)
        target = by_id.get(target_id)

        if source is None or target is None or not self.is_allowed(source, target):
            logger.debug(f"Rejected connection {source_id} -> {target_id}")
            return list(edges)

        if any(e.source == source_id and e.target == target_id for e in edges):
            return list(edges)

        return list(edges) + [GraphEdge(
            id=f"edge-{source_id}-{target_id}",
            source=source_id,
            target=target_id,
            type=edge_type,
        )]

    def filter_edges(
        self,
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        allowed: Optional[FrozenSet[Tuple[NodeKind, NodeKind]]] = None
    ) -> List[GraphEdge]:
        """Keep only edges whose endpoint kinds form an allowed pair."""
        by_id = {n.id: n for n in nodes}
        accepted = []
        for edge in edges:
            source = by_id.get(edge.source)
            target = by_id.get(edge.target)
            if source is not None and target is not None and self.is_allowed(source, target, allowed):
                accepted.append(edge)
            else:
                logger.debug(f"Dropped edge {edge.id} ({edge.source} -> {edge.target})")
        return accepted

    # ------------------------------------------------------------------
    # Rule graphs
    # ------------------------------------------------------------------

    def can_generate(self, nodes: List[GraphNode]) -> bool:
        """True when the graph has at least one entity, a join and an action."""
        kinds = {n.kind for n in nodes}
        return NodeKind.ENTITY in kinds and NodeKind.JOIN in kinds and NodeKind.ACTION in kinds

    def compile_rule(self, nodes: List[GraphNode]) -> Optional[RuleConfiguration]:
        """
        Assemble the rule configuration for an entity/join/action graph.

        Returns:
            RuleConfiguration, or None while the graph is incomplete
        """
        entity_nodes = [n for n in nodes if n.kind == NodeKind.ENTITY]
        join_node = next((n for n in nodes if n.kind == NodeKind.JOIN), None)
        action_node = next((n for n in nodes if n.kind == NodeKind.ACTION), None)

        if not entity_nodes or join_node is None or action_node is None:
            logger.debug("Graph is not ready: need an entity, a join and an action node")
            return None

        return RuleConfiguration(
            entities=[
                ConfiguredEntity(
                    name=n.data.get("label", ""),
                    type=n.data.get("entityType", ""),
                    dataset=n.data.get("dataset"),
                    attributes=list(n.data.get("selectedAttributes") or []),
                )
                for n in entity_nodes
            ],
            join_conditions=list(join_node.data.get("joinConditions") or []),
            context_mapping=dict(join_node.data.get("contextMapping") or {}),
            custom_attributes=dict(join_node.data.get("customAttributes") or {}),
            task=action_node.data.get("taskName", ""),
            trigger_event=action_node.data.get("triggerEvent", ""),
            action_context_mapping=dict(action_node.data.get("contextMapping") or {}),
        )

    def build_graph(self, rule: Rule) -> Tuple[List[GraphNode], List[GraphEdge]]:
        """Render a normalized Rule as editor nodes and edges."""
        nodes: List[GraphNode] = []
        edges: List[GraphEdge] = []

        for index, entity in enumerate(rule.entities):
            data = {
                "label": entity.name,
                "entityType": entity.type,
                "attributes": list(entity.attributes),
                "selectedAttributes": list(entity.selected_attributes),
            }
            if entity.dataset:
                data["dataset"] = entity.dataset
            nodes.append(GraphNode(
                id=f"entity-{index}",
                kind=NodeKind.ENTITY,
                position=Position(x=100 + index * 200, y=100),
                data=data,
            ))
            edges.append(GraphEdge(
                id=f"edge-entity-{index}",
                source=f"entity-{index}",
                target=JOIN_NODE_ID,
            ))

        nodes.append(GraphNode(
            id=JOIN_NODE_ID,
            kind=NodeKind.JOIN,
            position=Position(x=400, y=200),
            data={
                "label": "Join Condition",
                "joinConditions": [j.to_dict() for j in rule.join_conditions],
                "contextMapping": {},
                "customAttributes": {},
            },
        ))

        first_action = rule.actions[0] if rule.actions else None
        task_name = ""
        trigger_event = ""
        if first_action is not None:
            task_name = first_action.payload or first_action.name
            trigger_event = first_action.type.value
        nodes.append(GraphNode(
            id=ACTION_NODE_ID,
            kind=NodeKind.ACTION,
            position=Position(x=600, y=200),
            data={
                "label": task_name or "Action",
                "taskName": task_name,
                "triggerEvent": trigger_event,
                "contextMapping": {},
            },
        ))
        edges.append(GraphEdge(id="edge-join-action", source=JOIN_NODE_ID, target=ACTION_NODE_ID))

        return nodes, edges

    def create_node(
        self,
        kind: NodeKind,
        position: Position,
        data: Optional[Dict[str, Any]] = None,
        node_id: Optional[str] = None
    ) -> GraphNode:
        """Create a node as dropped from the palette."""
        if node_id is None:
            node_id = f"{kind.value}-{self.ids.next_id(kind.value)}"
        return GraphNode(id=node_id, kind=kind, position=position, data=default_node_data(kind, data))

    def update_node(self, nodes: List[GraphNode], node_id: str, data: Dict[str, Any]) -> List[GraphNode]:
        """Return a new node list with data merged into the matching node."""
        updated = []
        for node in nodes:
            if node.id == node_id:
                node = GraphNode(
                    id=node.id,
                    kind=node.kind,
                    position=node.position,
                    data={**node.data, **data},
                )
            updated.append(node)
        return updated

    # ------------------------------------------------------------------
    # Process graphs
    # ------------------------------------------------------------------

    def collect_phases(self, nodes: List[GraphNode]) -> Dict[str, Phase]:
        """Map each phase node id to the Phase it displays."""
        return {
            n.id: Phase.from_dict(n.data["phase"])
            for n in nodes
            if n.kind == NodeKind.PHASE and n.data.get("phase")
        }

    def compile_process(self, nodes: List[GraphNode], name: str = GENERATED_PROCESS_NAME) -> Process:
        """Rebuild the Process shown by a laid-out station diagram."""
        phases = [
            Phase.from_dict(n.data["phase"])
            for n in nodes
            if n.kind == NodeKind.PHASE and n.data.get("phase") and n.data.get("level", 0) == 0
        ]
        destination = next((n for n in nodes if n.id == DESTINATION_NODE_ID), None)
        action = None
        if destination is not None and destination.data.get("action"):
            action = ProcessAction.from_dict(destination.data["action"])
        return Process(name=name, phases=phases, action=action)

    def compile(self, nodes: List[GraphNode], edges: List[GraphEdge]) -> GraphCompilation:
        """
        Compile whichever document the node vocabulary describes.

        Graphs containing phase nodes compile to a Process and are checked
        against the station connections; all other graphs compile to a
        RuleConfiguration (None while incomplete) and are checked against
        this compiler's allowed connections.

        Returns:
            GraphCompilation with the document and the accepted edges
        """
        if any(n.kind == NodeKind.PHASE for n in nodes):
            document = self.compile_process(nodes)
            accepted = self.filter_edges(nodes, edges, PROCESS_CONNECTIONS)
        else:
            document = self.compile_rule(nodes)
            accepted = self.filter_edges(nodes, edges)

        kept = {id(e) for e in accepted}
        rejected = [e for e in edges if id(e) not in kept]
        if rejected:
            logger.debug(f"Ignored {len(rejected)} disallowed edges")
        return GraphCompilation(document=document, edges=accepted, rejected=rejected)
