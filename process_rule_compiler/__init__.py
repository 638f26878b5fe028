"""Process Rule Compiler - turns rule text and editor graphs into process documents."""

from .models import (
    Action,
    ActionType,
    Calculator,
    CompletionCriteria,
    Condition,
    ContextCondition,
    CorrelationConditions,
    CrossTaskCondition,
    Entity,
    ExtractionResult,
    GraphEdge,
    GraphNode,
    JoinCondition,
    LayoutResult,
    NodeKind,
    Operator,
    Phase,
    Position,
    Process,
    ProcessAction,
    ProcessStatistics,
    Rule,
)
from .exceptions import (
    CompilerError,
    DocumentError,
    PhaseCycleError,
    ProcessServiceError,
    UnknownNodeTypeError,
)
from .pattern_extractor import PatternExtractor
from .rule_normalizer import RuleNormalizer
from .graph_compiler import GraphCompiler, RuleConfiguration
from .phase_layout import PhaseHierarchyEngine, calculate_statistics
from .process_builder import CalculatorCatalog, ProcessBuilder
from .assistant import Assistant, AssistantContext
from .process_service import ProcessService
from .config import Settings
from .compiler import RuleCompiler

__all__ = [
    "Action",
    "ActionType",
    "Calculator",
    "CompletionCriteria",
    "Condition",
    "ContextCondition",
    "CorrelationConditions",
    "CrossTaskCondition",
    "Entity",
    "ExtractionResult",
    "GraphEdge",
    "GraphNode",
    "JoinCondition",
    "LayoutResult",
    "NodeKind",
    "Operator",
    "Phase",
    "Position",
    "Process",
    "ProcessAction",
    "ProcessStatistics",
    "Rule",
    "CompilerError",
    "DocumentError",
    "PhaseCycleError",
    "ProcessServiceError",
    "UnknownNodeTypeError",
    "PatternExtractor",
    "RuleNormalizer",
    "GraphCompiler",
    "RuleConfiguration",
    "PhaseHierarchyEngine",
    "calculate_statistics",
    "CalculatorCatalog",
    "ProcessBuilder",
    "Assistant",
    "AssistantContext",
    "ProcessService",
    "Settings",
    "RuleCompiler",
]
