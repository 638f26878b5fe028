"""Data models for rule and process documents.

Every document serialises to the camelCase JSON shape consumed by the
render surface and the persistence API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import DocumentError, UnknownNodeTypeError


class Operator(str, Enum):
    """Comparison operators usable in conditions and joins."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_READY = "is_ready"
    NOT_EMPTY = "not_empty"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    @classmethod
    def parse(cls, value: Any) -> "Operator":
        """Accept enum members, their values, and the '=' shorthand."""
        if isinstance(value, cls):
            return value
        if value in (None, "", "="):
            return cls.EQUALS
        try:
            return cls(str(value))
        except ValueError:
            raise DocumentError(f"Unknown operator: {value!r}")


class ActionType(str, Enum):
    """Effects a rule can trigger."""
    TRIGGER_JOB = "trigger_job"
    CREATE_REQUEST = "create_request"
    SEND_NOTIFICATION = "send_notification"
    ESCALATE = "escalate"
    NOTIFICATION = "notification"


class CompletionCriteria(str, Enum):
    """How a phase decides that it is complete."""
    ALL_COMPLETED = "all-completed"
    ANY_COMPLETED = "any-completed"
    SPECIFIC_EVENT = "specific-event"


class NodeKind(str, Enum):
    """Closed set of graph node kinds, valued by their render type string."""
    ENTITY = "entityNode"
    JOIN = "joinNode"
    ACTION = "actionNode"
    CONDITION = "conditionNode"
    PHASE = "phaseNode"
    CALCULATOR = "calculatorNode"

    @classmethod
    def from_type(cls, node_type: str) -> "NodeKind":
        try:
            return cls(node_type)
        except ValueError:
            raise UnknownNodeTypeError(node_type)


def _require(data: Dict, key: str, doc: str) -> Any:
    if not isinstance(data, dict):
        raise DocumentError(f"{doc} must be an object, got {type(data).__name__}")
    if key not in data:
        raise DocumentError(f"{doc} is missing required key '{key}'")
    return data[key]


# ---------------------------------------------------------------------------
# Rule documents
# ---------------------------------------------------------------------------

@dataclass
class Entity:
    """A typed reference to a data source with selectable fields."""
    type: str
    name: str
    icon: str = ""
    attributes: List[str] = field(default_factory=list)
    selected_attributes: List[str] = field(default_factory=list)
    dataset: Optional[str] = None

    def __post_init__(self):
        # attributes are unique and selected_attributes must be a subset
        self.attributes = list(dict.fromkeys(self.attributes))
        self.selected_attributes = [
            a for a in dict.fromkeys(self.selected_attributes)
            if a in self.attributes
        ]

    def to_dict(self) -> Dict:
        result = {
            "type": self.type,
            "name": self.name,
            "icon": self.icon,
            "attributes": list(self.attributes),
            "selectedAttributes": list(self.selected_attributes),
        }
        if self.dataset:
            result["dataset"] = self.dataset
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Entity":
        return cls(
            type=_require(data, "type", "Entity"),
            name=data.get("name", ""),
            icon=data.get("icon", ""),
            attributes=list(data.get("attributes", [])),
            selected_attributes=list(data.get("selectedAttributes", [])),
            dataset=data.get("dataset"),
        )


@dataclass
class Condition:
    """A predicate over one field."""
    field: str
    operator: Operator = Operator.EQUALS
    value: str = ""
    name: str = ""

    def __post_init__(self):
        self.operator = Operator.parse(self.operator)

    def to_dict(self) -> Dict:
        result = {
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
        }
        if self.name:
            result["name"] = self.name
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Condition":
        return cls(
            field=_require(data, "field", "Condition"),
            operator=data.get("operator", Operator.EQUALS),
            value=data.get("value", ""),
            name=data.get("name", ""),
        )


@dataclass
class JoinCondition:
    """Binds two entities on matching fields."""
    left_entity: str
    left_attribute: str
    right_entity: str
    right_attribute: str
    operator: Operator = Operator.EQUALS

    def __post_init__(self):
        self.operator = Operator.parse(self.operator)

    def to_dict(self) -> Dict:
        return {
            "leftEntity": self.left_entity,
            "leftAttribute": self.left_attribute,
            "operator": self.operator.value,
            "rightEntity": self.right_entity,
            "rightAttribute": self.right_attribute,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "JoinCondition":
        return cls(
            left_entity=_require(data, "leftEntity", "JoinCondition"),
            left_attribute=data.get("leftAttribute", ""),
            right_entity=_require(data, "rightEntity", "JoinCondition"),
            right_attribute=data.get("rightAttribute", ""),
            operator=data.get("operator", Operator.EQUALS),
        )


@dataclass
class Action:
    """An effect triggered when a rule's conditions hold."""
    type: ActionType = ActionType.NOTIFICATION
    name: str = ""
    description: str = ""
    job_name: Optional[str] = None
    request_type: Optional[str] = None
    notification_type: Optional[str] = None
    target: Optional[str] = None

    def __post_init__(self):
        self.type = ActionType(self.type)

    @property
    def payload(self) -> Optional[str]:
        """The type-specific payload value, if any."""
        return self.job_name or self.request_type or self.notification_type or self.target

    def to_dict(self) -> Dict:
        result = {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
        }
        if self.job_name is not None:
            result["jobName"] = self.job_name
        if self.request_type is not None:
            result["requestType"] = self.request_type
        if self.notification_type is not None:
            result["notificationType"] = self.notification_type
        if self.target is not None:
            result["target"] = self.target
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Action":
        try:
            action_type = ActionType(data.get("type", ActionType.NOTIFICATION))
        except ValueError:
            raise DocumentError(f"Unknown action type: {data.get('type')!r}")
        return cls(
            type=action_type,
            name=data.get("name", ""),
            description=data.get("description", ""),
            job_name=data.get("jobName"),
            request_type=data.get("requestType"),
            notification_type=data.get("notificationType"),
            target=data.get("target"),
        )


@dataclass
class Rule:
    """Compiled unit of entities, conditions, joins and actions."""
    entities: List[Entity] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    join_conditions: List[JoinCondition] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    logic: str = "AND"
    description: str = ""

    @property
    def entity_types(self) -> List[str]:
        return [e.type for e in self.entities]

    def to_dict(self) -> Dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "conditions": [c.to_dict() for c in self.conditions],
            "joinConditions": [j.to_dict() for j in self.join_conditions],
            "actions": [a.to_dict() for a in self.actions],
            "logic": self.logic,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Rule":
        if not isinstance(data, dict):
            raise DocumentError("Rule must be an object")
        logic = data.get("logic", "AND")
        if logic not in ("AND", "OR"):
            raise DocumentError(f"Rule logic must be AND or OR, got {logic!r}")
        return cls(
            entities=[Entity.from_dict(e) for e in data.get("entities", [])],
            conditions=[Condition.from_dict(c) for c in data.get("conditions", [])],
            join_conditions=[JoinCondition.from_dict(j) for j in data.get("joinConditions", [])],
            actions=[Action.from_dict(a) for a in data.get("actions", [])],
            logic=logic,
            description=data.get("description", ""),
        )


@dataclass
class ExtractionResult:
    """Raw output of the pattern extractor, before defaults are filled."""
    entities: List[Entity] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.entities or self.conditions or self.actions)

    def to_dict(self) -> Dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "conditions": [c.to_dict() for c in self.conditions],
            "actions": [a.to_dict() for a in self.actions],
        }


# ---------------------------------------------------------------------------
# Process documents
# ---------------------------------------------------------------------------

@dataclass
class Calculator:
    """A leaf unit of work inside a phase."""
    id: str
    name: str
    application: str = ""
    task_name: Optional[str] = None
    description: str = ""
    events: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        result = {
            "id": self.id,
            "name": self.name,
            "application": self.application,
        }
        if self.task_name:
            result["taskName"] = self.task_name
        if self.description:
            result["description"] = self.description
        if self.events:
            result["events"] = list(self.events)
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Calculator":
        name = _require(data, "name", "Calculator")
        return cls(
            id=str(data.get("id", name)),
            name=name,
            application=data.get("application", ""),
            task_name=data.get("taskName"),
            description=data.get("description", ""),
            events=list(data.get("events", [])),
        )


@dataclass
class ContextCondition:
    field: str
    operator: Operator = Operator.EQUALS
    value: str = ""

    def __post_init__(self):
        self.operator = Operator.parse(self.operator)

    def to_dict(self) -> Dict:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict) -> "ContextCondition":
        return cls(
            field=data.get("field", ""),
            operator=data.get("operator", Operator.EQUALS),
            value=data.get("value", ""),
        )


@dataclass
class CrossTaskCondition:
    source_task: str = ""
    source_field: str = ""
    operator: Operator = Operator.EQUALS
    target_task: str = ""
    target_field: str = ""

    def __post_init__(self):
        self.operator = Operator.parse(self.operator)

    def to_dict(self) -> Dict:
        return {
            "sourceTask": self.source_task,
            "sourceField": self.source_field,
            "operator": self.operator.value,
            "targetTask": self.target_task,
            "targetField": self.target_field,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "CrossTaskCondition":
        return cls(
            source_task=data.get("sourceTask", ""),
            source_field=data.get("sourceField", ""),
            operator=data.get("operator", Operator.EQUALS),
            target_task=data.get("targetTask", ""),
            target_field=data.get("targetField", ""),
        )


@dataclass
class CorrelationConditions:
    """Event-correlation requirements that close a phase."""
    required_events: List[str] = field(default_factory=list)
    context_conditions: List[ContextCondition] = field(default_factory=list)
    cross_task_conditions: List[CrossTaskCondition] = field(default_factory=list)
    completion_criteria: CompletionCriteria = CompletionCriteria.ALL_COMPLETED

    def __post_init__(self):
        self.completion_criteria = CompletionCriteria(self.completion_criteria)

    def to_dict(self) -> Dict:
        return {
            "requiredEvents": list(self.required_events),
            "contextConditions": [c.to_dict() for c in self.context_conditions],
            "crossTaskConditions": [c.to_dict() for c in self.cross_task_conditions],
            "completionCriteria": self.completion_criteria.value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "CorrelationConditions":
        try:
            criteria = CompletionCriteria(data.get("completionCriteria", "all-completed"))
        except ValueError:
            raise DocumentError(f"Unknown completion criteria: {data.get('completionCriteria')!r}")
        return cls(
            required_events=list(data.get("requiredEvents", [])),
            context_conditions=[ContextCondition.from_dict(c) for c in data.get("contextConditions", [])],
            cross_task_conditions=[CrossTaskCondition.from_dict(c) for c in data.get("crossTaskConditions", [])],
            completion_criteria=criteria,
        )


@dataclass
class ProcessAction:
    """Event emitted when a phase or a whole process completes."""
    event_type: str = ""
    event_name: str = ""
    context_mapping: Dict[str, str] = field(default_factory=dict)
    custom_context: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "eventType": self.event_type,
            "eventName": self.event_name,
            "contextMapping": dict(self.context_mapping),
            "customContext": [dict(c) for c in self.custom_context],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ProcessAction":
        return cls(
            event_type=data.get("eventType", ""),
            event_name=data.get("eventName", ""),
            context_mapping=dict(data.get("contextMapping", {})),
            custom_context=[dict(c) for c in data.get("customContext", [])],
        )


@dataclass
class Phase:
    """A node in the process hierarchy."""
    id: str
    name: str
    description: str = ""
    calculators: List[Calculator] = field(default_factory=list)
    sub_phases: List["Phase"] = field(default_factory=list)
    correlation_conditions: Optional[CorrelationConditions] = None
    phase_action: Optional[ProcessAction] = None

    def to_dict(self) -> Dict:
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "calculators": [c.to_dict() for c in self.calculators],
            "subPhases": [p.to_dict() for p in self.sub_phases],
        }
        if self.correlation_conditions is not None:
            result["correlationConditions"] = self.correlation_conditions.to_dict()
        if self.phase_action is not None:
            result["phaseAction"] = self.phase_action.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Phase":
        phase_id = _require(data, "id", "Phase")
        correlation = data.get("correlationConditions")
        action = data.get("phaseAction")
        return cls(
            id=str(phase_id),
            name=data.get("name", ""),
            description=data.get("description", ""),
            calculators=[Calculator.from_dict(c) for c in data.get("calculators") or []],
            sub_phases=[Phase.from_dict(p) for p in data.get("subPhases") or []],
            correlation_conditions=CorrelationConditions.from_dict(correlation) if correlation else None,
            phase_action=ProcessAction.from_dict(action) if action else None,
        )


@dataclass
class Process:
    """Ordered top-level phases plus an optional terminal action."""
    name: str
    id: str = ""
    description: str = ""
    phases: List[Phase] = field(default_factory=list)
    action: Optional[ProcessAction] = None

    def to_dict(self) -> Dict:
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "phases": [p.to_dict() for p in self.phases],
        }
        if self.action is not None:
            result["action"] = self.action.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "Process":
        if not isinstance(data, dict):
            raise DocumentError("Process must be an object")
        action = data.get("action")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            description=data.get("description", ""),
            phases=[Phase.from_dict(p) for p in data.get("phases") or []],
            action=ProcessAction.from_dict(action) if action else None,
        )


# ---------------------------------------------------------------------------
# Render-surface graph
# ---------------------------------------------------------------------------

@dataclass
class Position:
    x: float = 0
    y: float = 0

    def to_dict(self) -> Dict:
        return {"x": self.x, "y": self.y}


@dataclass
class GraphNode:
    """A node on the render surface."""
    id: str
    kind: NodeKind
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GraphNode":
        position = data.get("position") or {}
        return cls(
            id=str(_require(data, "id", "Node")),
            kind=NodeKind.from_type(_require(data, "type", "Node")),
            position=Position(x=position.get("x", 0), y=position.get("y", 0)),
            data=dict(data.get("data") or {}),
        )


@dataclass
class GraphEdge:
    """A directed connection on the render surface."""
    id: str
    source: str
    target: str
    type: str = "smoothstep"
    style: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict:
        result = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
        }
        if self.style is not None:
            result["style"] = dict(self.style)
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> "GraphEdge":
        source = str(_require(data, "source", "Edge"))
        target = str(_require(data, "target", "Edge"))
        return cls(
            id=str(data.get("id") or f"edge-{source}-{target}"),
            source=source,
            target=target,
            type=data.get("type", "smoothstep"),
            style=data.get("style"),
        )


@dataclass
class ProcessStatistics:
    total_phases: int = 0
    total_sub_phases: int = 0
    total_calculators: int = 0
    total_edges: int = 0
    max_depth: int = 0
    max_level: int = 0

    def to_dict(self) -> Dict:
        return {
            "totalPhases": self.total_phases,
            "totalSubPhases": self.total_sub_phases,
            "totalCalculators": self.total_calculators,
            "totalEdges": self.total_edges,
            "maxDepth": self.max_depth,
            "maxLevel": self.max_level,
        }


@dataclass
class LayoutResult:
    """Statistics plus the derived station diagram for one process."""
    statistics: ProcessStatistics
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "statistics": self.statistics.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


class IdGenerator:
    """Generate sequential IDs starting from 1 for each object type."""

    def __init__(self):
        self.counters: Dict[str, int] = {}

    def next_id(self, id_type: str) -> int:
        """Get next sequential ID for given type."""
        self.counters[id_type] = self.counters.get(id_type, 0) + 1
        return self.counters[id_type]
