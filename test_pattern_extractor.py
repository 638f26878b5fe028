"""
Tests for natural language rule extraction
"""

import unittest

from process_rule_compiler.models import ActionType, Operator
from process_rule_compiler.pattern_extractor import PatternExtractor, default_attributes


class TestPatternExtractor(unittest.TestCase):
    """Test suite for PatternExtractor"""

    @classmethod
    def setUpClass(cls):
        cls.extractor = PatternExtractor()

    def test_01_empty_input(self):
        """Empty and whitespace text yields nothing"""
        for text in ("", "   ", None):
            result = self.extractor.extract(text)
            self.assertTrue(result.is_empty)

    def test_02_inventory_rule_entities(self):
        """Inventory and orders are detected in table order"""
        result = self.extractor.extract(
            "If inventory is low AND orders are pending, create purchase request"
        )
        self.assertEqual([e.type for e in result.entities], ["inventory", "order"])
        self.assertEqual(result.entities[0].attributes, default_attributes("inventory"))
        self.assertEqual(result.entities[0].selected_attributes, result.entities[0].attributes)

    def test_03_inventory_rule_conditions(self):
        """Compound condition is split and each phrase classified"""
        result = self.extractor.extract(
            "If inventory is low AND orders are pending, create purchase request"
        )
        self.assertEqual(len(result.conditions), 2)

        low = result.conditions[0]
        self.assertEqual(low.field, "quantity")
        self.assertEqual(low.operator, Operator.LESS_THAN)
        self.assertEqual(low.value, "threshold")

        pending = result.conditions[1]
        self.assertEqual(pending.field, "orders")
        self.assertEqual(pending.operator, Operator.NOT_EMPTY)
        self.assertEqual(pending.name, "orders are pending")

    def test_04_inventory_rule_action(self):
        """Create action captures the whole request type"""
        result = self.extractor.extract(
            "If inventory is low AND orders are pending, create purchase request"
        )
        self.assertEqual(len(result.actions), 1)
        action = result.actions[0]
        self.assertEqual(action.type, ActionType.CREATE_REQUEST)
        self.assertEqual(action.request_type, "purchase request")
        self.assertEqual(action.name, "Create purchase request")

    def test_05_same_date_template(self):
        """Readiness clause and trigger action from the P&L template"""
        result = self.extractor.extract(
            "When both customer data and sales data are ready for the same date, trigger P&L calculator"
        )
        self.assertEqual([e.type for e in result.entities], ["customer", "sales"])
        self.assertEqual(len(result.conditions), 2)
        self.assertEqual(result.conditions[0].field, "customer_data")
        self.assertEqual(result.conditions[0].operator, Operator.NOT_EMPTY)
        self.assertEqual(result.conditions[1].field, "status")
        self.assertEqual(result.conditions[1].value, "ready")

        action = result.actions[0]
        self.assertEqual(action.type, ActionType.TRIGGER_JOB)
        self.assertEqual(action.job_name, "P&L calculator")

    def test_06_threshold_and_escalation(self):
        """Numeric comparisons and escalation targets"""
        result = self.extractor.extract(
            "If revenue exceeds 100 and error rate is high, escalate to senior team"
        )
        self.assertEqual(result.entities, [])

        revenue, error_rate = result.conditions
        self.assertEqual(revenue.field, "revenue")
        self.assertEqual(revenue.operator, Operator.GREATER_THAN)
        self.assertEqual(revenue.value, "100")
        self.assertEqual(error_rate.field, "error_rate")
        self.assertEqual(error_rate.operator, Operator.GREATER_THAN)
        self.assertEqual(error_rate.value, "5%")

        action = result.actions[0]
        self.assertEqual(action.type, ActionType.ESCALATE)
        self.assertEqual(action.target, "senior team")
        self.assertEqual(action.name, "Escalate to senior team")

    def test_07_notify_is_plain_notification(self):
        """Notify verbs produce a notification named after the clause"""
        result = self.extractor.extract(
            "When payment fails or support ticket is open, notify manager"
        )
        self.assertEqual([e.type for e in result.entities], ["payment", "support"])
        self.assertEqual(result.conditions[0].field, "payment")
        self.assertEqual(result.conditions[1].field, "data")

        action = result.actions[0]
        self.assertEqual(action.type, ActionType.NOTIFICATION)
        self.assertEqual(action.name, "notify manager")
        self.assertIsNone(action.payload)

    def test_08_send_notification(self):
        """Send verbs set the notification type"""
        result = self.extractor.extract("send email alert to the team")
        action = result.actions[0]
        self.assertEqual(action.type, ActionType.SEND_NOTIFICATION)
        self.assertEqual(action.notification_type, "email alert to the team")

    def test_09_duplicate_entity_types(self):
        """An entity type appears once no matter how often it is mentioned"""
        result = self.extractor.extract("system load and system errors")
        self.assertEqual([e.type for e in result.entities], ["system"])

    def test_10_unknown_text(self):
        """Text without keywords extracts nothing"""
        result = self.extractor.extract("hello world")
        self.assertTrue(result.is_empty)

    def test_11_field_and_value_helpers(self):
        """Field and value extraction fall back to defaults"""
        self.assertEqual(self.extractor.extract_field("Sales Data is late"), "sales_data")
        self.assertEqual(self.extractor.extract_field("nothing here"), "data")
        self.assertEqual(self.extractor.extract_value("within 30 minutes"), "30 minutes")
        self.assertEqual(self.extractor.extract_value("above 5%"), "5%")
        self.assertEqual(self.extractor.extract_value("nothing"), "")

    def test_12_default_attributes(self):
        """Unknown entity types get the generic attribute list"""
        self.assertEqual(default_attributes("unknown"), ["id", "data"])
        self.assertIn("business_date", default_attributes("customer"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
