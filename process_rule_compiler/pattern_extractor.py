"""Extract entities, conditions and actions from natural language rules."""

import logging
import re
from typing import List, Optional, Tuple

from .models import Action, ActionType, Condition, Entity, ExtractionResult, Operator

logger = logging.getLogger(__name__)


# Pattern format: (regex, entity type, display name, icon)
# Table order is also the tie-break order for overlapping mentions.
ENTITY_PATTERNS: Tuple[Tuple[str, str, str, str], ...] = (
    (r"customer\s+data", "customer", "Customer Data", "👥"),
    (r"sales\s+data", "sales", "Sales Data", "💰"),
    (r"inventory", "inventory", "Inventory", "📦"),
    (r"orders", "order", "Orders", "📋"),
    (r"payment", "payment", "Payment", "💳"),
    (r"support\s+ticket", "support", "Support Ticket", "🎫"),
    (r"system", "system", "System", "⚙️"),
)

DEFAULT_ATTRIBUTES = {
    "customer": ("customer_id", "name", "email", "status", "business_date"),
    "sales": ("order_id", "customer_id", "amount", "status", "business_date"),
    "inventory": ("product_id", "quantity", "threshold", "status"),
    "order": ("order_id", "customer_id", "amount", "status"),
    "payment": ("payment_id", "customer_id", "amount", "status"),
    "support": ("ticket_id", "customer_id", "priority", "status"),
    "system": ("metric_name", "value", "timestamp", "threshold"),
    "input": ("data", "timestamp", "source"),
}
FALLBACK_ATTRIBUTES = ("id", "data")

# Clause boundaries, most specific first. A compound clause may end at a
# comma directly after its last word ("... are pending, create ...").
CONDITION_PATTERNS: Tuple[str, ...] = (
    r"\bwhen\s+(.+?)\s+(?:and|or)\s+(.+?)(?:\s+then\b|\s*,)",
    r"\bif\s+(.+?)\s+(?:and|or)\s+(.+?)(?:\s+then\b|\s*,)",
    r"\bwhen\s+(.+?)\s+then\b",
    r"\bif\s+(.+?)\s+then\b",
)

CONJUNCTION_SPLIT = r"\s+(?:and|or)\s+"

# Keyword rules: (substrings, field or None for extracted, operator, value or None for extracted)
CONDITION_KEYWORD_RULES: Tuple[Tuple[Tuple[str, ...], Optional[str], Operator, Optional[str]], ...] = (
    (("ready",), "status", Operator.EQUALS, "ready"),
    (("low",), "quantity", Operator.LESS_THAN, "threshold"),
    (("exceeds", ">"), None, Operator.GREATER_THAN, None),
    (("same date",), "business_date", Operator.EQUALS, "${business_date}"),
    (("payment issue",), "payment_status", Operator.EQUALS, "failed"),
    (("error rate",), "error_rate", Operator.GREATER_THAN, "5%"),
)

FIELD_PATTERNS: Tuple[str, ...] = (
    r"customer\s+data",
    r"sales\s+data",
    r"inventory",
    r"orders",
    r"revenue",
    r"error\s+rate",
    r"payment",
)
DEFAULT_FIELD = "data"

VALUE_PATTERNS: Tuple[str, ...] = (
    r"\d+%",
    r"\d+\s+minutes",
    r"\d+\s+hours",
    r"\d+",
    r"same\s+date",
    r"low",
    r"high",
)

# Pattern format: (regex, action type, payload attribute, name prefix)
ACTION_PATTERNS: Tuple[Tuple[str, ActionType, Optional[str], str], ...] = (
    (r"\btrigger\s+([^,\s]+)", ActionType.TRIGGER_JOB, "job_name", "Trigger"),
    (r"\bcreate\s+([^,\s]+)", ActionType.CREATE_REQUEST, "request_type", "Create"),
    (r"\bsend\s+([^,\s]+)", ActionType.SEND_NOTIFICATION, "notification_type", "Send"),
    (r"\bescalate\s+([^,\s]+)", ActionType.ESCALATE, "target", "Escalate to"),
    (r"\bnotify\s+([^,\s]+)", ActionType.NOTIFICATION, None, ""),
)

# An action payload runs until punctuation or the next chained clause
ACTION_CLAUSE_END = r"[,.;!?]|\s+(?:and|or|then)\s+"


def default_attributes(entity_type: str) -> List[str]:
    """Return the default attribute list for an entity type."""
    return list(DEFAULT_ATTRIBUTES.get(entity_type, FALLBACK_ATTRIBUTES))


class PatternExtractor:
    """Scan free text for entity mentions, condition clauses and action clauses."""

    def __init__(self):
        self.entity_patterns = [
            (re.compile(p, re.IGNORECASE), t, n, i) for p, t, n, i in ENTITY_PATTERNS
        ]
        self.condition_patterns = [re.compile(p, re.IGNORECASE) for p in CONDITION_PATTERNS]
        self.field_patterns = [re.compile(p, re.IGNORECASE) for p in FIELD_PATTERNS]
        self.value_patterns = [re.compile(p) for p in VALUE_PATTERNS]
        self.action_patterns = [
            (re.compile(p, re.IGNORECASE), t, attr, prefix) for p, t, attr, prefix in ACTION_PATTERNS
        ]
        self.conjunction = re.compile(CONJUNCTION_SPLIT, re.IGNORECASE)
        self.clause_end = re.compile(ACTION_CLAUSE_END, re.IGNORECASE)
        self.then_word = re.compile(r"\bthen\b", re.IGNORECASE)

    def extract(self, text: str) -> ExtractionResult:
        """
        Extract rule components from a natural language sentence.

        Args:
            text: Free-text rule description

        Returns:
            ExtractionResult; lists are empty when nothing matched
        """
        if not text or not text.strip():
            return ExtractionResult()

        result = ExtractionResult(
            entities=self.extract_entities(text),
            conditions=self.extract_conditions(text),
            actions=self.extract_actions(text),
        )
        logger.debug(
            f"Extracted {len(result.entities)} entities, {len(result.conditions)} conditions, "
            f"{len(result.actions)} actions from: {text!r}"
        )
        return result

    def extract_entities(self, text: str) -> List[Entity]:
        entities = []
        seen_types = set()

        for pattern, entity_type, name, icon in self.entity_patterns:
            if entity_type in seen_types or not pattern.search(text):
                continue
            seen_types.add(entity_type)
            attributes = default_attributes(entity_type)
            entities.append(Entity(
                type=entity_type,
                name=name,
                icon=icon,
                attributes=attributes,
                selected_attributes=attributes,
            ))

        return entities

    def extract_conditions(self, text: str) -> List[Condition]:
        conditions = []

        for pattern in self.condition_patterns:
            for match in pattern.finditer(text):
                for phrase in self.conjunction.split(match.group(0)):
                    phrase = phrase.strip().rstrip(",").strip()
                    if not phrase or self.then_word.search(phrase):
                        continue
                    conditions.append(self.parse_condition(phrase))

        return conditions

    def parse_condition(self, phrase: str) -> Condition:
        """Classify one condition phrase by the first keyword rule that applies."""
        lowered = phrase.lower()

        for keywords, field_name, operator, value in CONDITION_KEYWORD_RULES:
            if any(kw in lowered for kw in keywords):
                return Condition(
                    field=field_name or self.extract_field(phrase),
                    operator=operator,
                    value=value if value is not None else self.extract_value(phrase),
                    name=phrase,
                )

        return Condition(
            field=self.extract_field(phrase),
            operator=Operator.NOT_EMPTY,
            value="",
            name=phrase,
        )

    def extract_field(self, phrase: str) -> str:
        for pattern in self.field_patterns:
            match = pattern.search(phrase)
            if match:
                return re.sub(r"\s+", "_", match.group(0).lower())
        return DEFAULT_FIELD

    def extract_value(self, phrase: str) -> str:
        for pattern in self.value_patterns:
            match = pattern.search(phrase)
            if match:
                return match.group(0)
        return ""

    def extract_actions(self, text: str) -> List[Action]:
        actions = []

        for pattern, action_type, payload_attr, prefix in self.action_patterns:
            for match in pattern.finditer(text):
                clause = self._action_clause(text, match)
                actions.append(self._build_action(clause, action_type, payload_attr, prefix))

        return actions

    def _action_clause(self, text: str, match: "re.Match") -> Tuple[str, str]:
        """Return (verb text, payload) with the payload running to the end of its clause."""
        start = match.start(1)
        end = self.clause_end.search(text, start)
        payload = text[start:end.start() if end else len(text)].strip()
        verb = text[match.start():start].strip()
        return verb, payload

    def _build_action(
        self,
        clause: Tuple[str, str],
        action_type: ActionType,
        payload_attr: Optional[str],
        prefix: str
    ) -> Action:
        verb, payload = clause
        description = f"{verb} {payload}"

        if payload_attr is None:
            # plain notification, no payload
            return Action(type=action_type, name=description, description=description)

        if action_type == ActionType.ESCALATE:
            payload = re.sub(r"^to\s+", "", payload, flags=re.IGNORECASE)

        action = Action(type=action_type, name=f"{prefix} {payload}", description=description)
        setattr(action, payload_attr, payload)
        return action
