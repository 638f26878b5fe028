"""Text-to-rule pipeline: extraction, normalization and graph rendering."""

import logging
from typing import Dict, List, Optional, Tuple

from .graph_compiler import GraphCompiler
from .models import GraphEdge, GraphNode, LayoutResult, Process, ProcessAction, Rule
from .pattern_extractor import PatternExtractor
from .phase_layout import PhaseHierarchyEngine
from .rule_normalizer import JOIN_FIRST_PAIR, RuleNormalizer

logger = logging.getLogger(__name__)


class RuleCompiler:
    """Chains the compiler stages the way the editor's generate button does."""

    def __init__(self, join_strategy: str = JOIN_FIRST_PAIR):
        self.extractor = PatternExtractor()
        self.normalizer = RuleNormalizer(join_strategy)
        self.graph_compiler = GraphCompiler()
        self.layout_engine = PhaseHierarchyEngine()

    def compile_text(self, text: str) -> Rule:
        """Parse a natural language rule into a canonical Rule."""
        extracted = self.extractor.extract(text)
        rule = self.normalizer.normalize(extracted, text)
        logger.info(
            f"Compiled rule: {len(rule.entities)} entities, {len(rule.conditions)} conditions, "
            f"{len(rule.actions)} actions, logic {rule.logic}"
        )
        return rule

    def text_to_graph(self, text: str) -> Tuple[List[GraphNode], List[GraphEdge]]:
        return self.graph_compiler.build_graph(self.compile_text(text))

    def text_to_configuration(self, text: str) -> Optional[Dict]:
        nodes, _ = self.text_to_graph(text)
        configuration = self.graph_compiler.compile_rule(nodes)
        return configuration.to_dict() if configuration else None

    def layout_process(self, process: Process, action: Optional[ProcessAction] = None) -> LayoutResult:
        return self.layout_engine.layout(process, action)
