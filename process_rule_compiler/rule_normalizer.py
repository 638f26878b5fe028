"""Fill defaults and derive join predicates to produce a canonical Rule."""

import logging
import re
from typing import List

from .models import (
    Action,
    ActionType,
    Condition,
    Entity,
    ExtractionResult,
    JoinCondition,
    Operator,
    Rule,
)

logger = logging.getLogger(__name__)

JOIN_ATTRIBUTE = "business_date"

JOIN_FIRST_PAIR = "first_pair"
JOIN_ADJACENT = "adjacent"
JOIN_STRATEGIES = (JOIN_FIRST_PAIR, JOIN_ADJACENT)


def default_entity() -> Entity:
    return Entity(
        type="input",
        name="Input Data",
        icon="📥",
        attributes=["data"],
        selected_attributes=["data"],
    )


def default_condition() -> Condition:
    return Condition(
        field="data",
        operator=Operator.NOT_EMPTY,
        value="",
        name="Default Condition",
    )


def default_action() -> Action:
    return Action(
        type=ActionType.NOTIFICATION,
        name="Default Action",
        description="Process completed",
    )


def resolve_logic(text: str) -> str:
    """
    Decide how conditions combine.

    "OR" only when the text uses the word "or" without "and"; "AND" otherwise.
    """
    has_and = re.search(r"\band\b", text or "", re.IGNORECASE) is not None
    has_or = re.search(r"\bor\b", text or "", re.IGNORECASE) is not None
    if has_or and not has_and:
        return "OR"
    return "AND"


class RuleNormalizer:
    """Turn extraction output into a Rule that satisfies the rule invariants."""

    def __init__(self, join_strategy: str = JOIN_FIRST_PAIR):
        if join_strategy not in JOIN_STRATEGIES:
            raise ValueError(
                f"Unknown join strategy {join_strategy!r}; expected one of {JOIN_STRATEGIES}"
            )
        self.join_strategy = join_strategy

    def normalize(self, extracted: ExtractionResult, text: str = "") -> Rule:
        """
        Build the canonical Rule for one text submission.

        Args:
            extracted: Output of PatternExtractor.extract
            text: The source sentence, used for logic and description

        Returns:
            Rule with no empty entity/condition/action list
        """
        entities = list(extracted.entities) or [default_entity()]
        conditions = list(extracted.conditions) or [default_condition()]
        actions = list(extracted.actions) or [default_action()]

        if not extracted.entities:
            logger.debug("No entities extracted, using default input entity")
        if not extracted.conditions:
            logger.debug("No conditions extracted, using default condition")
        if not extracted.actions:
            logger.debug("No actions extracted, using default action")

        return Rule(
            entities=entities,
            conditions=conditions,
            join_conditions=self.build_join_conditions(entities),
            actions=actions,
            logic=resolve_logic(text),
            description=text,
        )

    def build_join_conditions(self, entities: List[Entity]) -> List[JoinCondition]:
        if len(entities) < 2:
            return []

        if self.join_strategy == JOIN_FIRST_PAIR:
            pairs = [(entities[0], entities[1])]
        else:
            pairs = list(zip(entities, entities[1:]))

        return [
            JoinCondition(
                left_entity=left.type,
                left_attribute=JOIN_ATTRIBUTE,
                right_entity=right.type,
                right_attribute=JOIN_ATTRIBUTE,
                operator=Operator.EQUALS,
            )
            for left, right in pairs
        ]
