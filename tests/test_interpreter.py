"""Tests for intent interpretation."""

from unittest.mock import Mock

import pytest

from specwright.errors import InterpretationFailure
from specwright.interpreter import keywords
from specwright.interpreter.interpreter import (
    FallbackInterpreter,
    IntentInterpreter,
    PrimaryInterpreter,
    ensure_section_activation,
    is_section_control,
)
from specwright.models.intent import Intent, OrderedAction


def _llm_client(payload=None, error=None) -> Mock:
    client = Mock()
    if error is not None:
        client.complete_json.side_effect = error
    else:
        client.complete_json.return_value = payload
    return client


LOAD_MORE_PAYLOAD = {
    "context": "pastOrders",
    "actions": [
        {"type": "click", "element": "pastOrdersTab", "description": "Click on Past Orders tab",
         "intent": "Navigate to past orders section", "order": 1},
        {"type": "click", "element": "loadMoreButton", "description": "Click Load More button",
         "intent": "Load additional past orders", "order": 2},
    ],
    "assertions": [
        {"type": "visibility", "element": "additionalPastOrders",
         "description": "More past orders are displayed", "expected": "visible"},
        {"type": "text", "element": "pastOrdersList", "description": "Order count increased",
         "expected": "increased count"},
    ],
}


class TestFallbackInterpreter:
    """Tests for keyword-table interpretation."""

    def test_load_more_in_past_orders(self):
        intent = IntentInterpreter().interpret(
            "When I click Load More in Past Orders then I see more orders"
        )
        assert intent.context == "pastOrders"
        assert [a.element for a in intent.actions] == ["pastOrdersTab", "loadMoreButton"]
        assert intent.actions[0].activation is True
        assert any(a.expected == "increased count" for a in intent.assertions)

    def test_invoice_on_past_order(self):
        intent = IntentInterpreter().interpret("User clicks the invoice icon of a past order")
        assert intent.context == "pastOrders"
        assert [a.element for a in intent.actions] == ["pastOrdersTab", "pastOrderItem", "invoiceIcon"]
        assert [a.element for a in intent.assertions] == ["invoiceModal"]
        assert intent.assertions[0].type == "visibility"

    def test_orders_hub_context(self):
        intent = FallbackInterpreter().interpret("Open the orders hub and check upcoming deliveries")
        assert intent.context == "ordersHub"
        # Reaching the hub is part of the test setup
        assert all(a.element != "ordersHubNavItem" for a in intent.actions)

    def test_add_meal_on_home(self):
        intent = FallbackInterpreter().interpret("From home, add a meal and the cart is updated")
        assert intent.context == "cart"
        assert "addMealButton" in [a.element for a in intent.actions]
        assert any(a.type == "state" for a in intent.assertions)

    def test_generic_visibility_uses_context_landmark(self):
        intent = FallbackInterpreter().interpret("The search results should be visible")
        assert intent.context == "search"
        assert intent.assertions[0].element == keywords.CONTEXT_LANDMARKS["search"]

    def test_unknown_text_defaults_to_home(self):
        intent = FallbackInterpreter().interpret("zzz qqq")
        assert intent.context == keywords.DEFAULT_CONTEXT
        assert intent.actions == []
        assert intent.assertions == []

    @pytest.mark.parametrize("text", ["", "   ", "!!!", "a" * 10000, "ÄÖÜ 日本語"])
    def test_never_raises(self, text):
        intent = IntentInterpreter().interpret(text)
        assert isinstance(intent, Intent)
        assert intent.context in keywords.KNOWN_CONTEXTS

    def test_action_orders_are_sequential(self):
        intent = FallbackInterpreter().interpret("Add a meal then open the cart")
        assert [a.order for a in intent.actions] == list(range(1, len(intent.actions) + 1))


class TestPrimaryInterpreter:
    """Tests for language-model interpretation."""

    def test_parses_model_output(self):
        intent = PrimaryInterpreter(_llm_client(LOAD_MORE_PAYLOAD)).interpret("load more")
        assert intent.source == "llm"
        assert intent.context == "pastOrders"
        assert len(intent.actions) == 2

    def test_model_error_raises_interpretation_failure(self):
        client = _llm_client(error=ValueError("AI returned invalid JSON"))
        with pytest.raises(InterpretationFailure):
            PrimaryInterpreter(client).interpret("anything")

    def test_schema_mismatch_raises_interpretation_failure(self):
        client = _llm_client({"context": "home", "actions": [{"type": "hover", "element": "x"}]})
        with pytest.raises(InterpretationFailure):
            PrimaryInterpreter(client).interpret("anything")

    def test_no_actions_raises_interpretation_failure(self):
        client = _llm_client({"context": "home", "actions": [], "assertions": []})
        with pytest.raises(InterpretationFailure):
            PrimaryInterpreter(client).interpret("anything")


class TestIntentInterpreter:
    """Tests for the decision point between the two interpreters."""

    def test_uses_model_when_available(self):
        intent = IntentInterpreter(_llm_client(LOAD_MORE_PAYLOAD)).interpret("load more")
        assert intent.source == "llm"
        assert intent.actions[0].element == "pastOrdersTab"
        assert intent.actions[0].activation is True

    def test_model_tab_step_under_another_name_is_not_doubled(self):
        payload = {
            "context": "pastOrders",
            "actions": [
                {"type": "click", "element": "pastOrders", "description": "Click on Past Orders tab", "order": 1},
                {"type": "click", "element": "loadMoreButton", "description": "Click Load More button", "order": 2},
            ],
            "assertions": [],
        }
        intent = IntentInterpreter(_llm_client(payload)).interpret("Click Load More in Past Orders")
        assert [a.element for a in intent.actions] == ["pastOrdersTab", "loadMoreButton"]
        assert [a.activation for a in intent.actions] == [True, False]

    def test_falls_back_when_model_fails(self):
        client = _llm_client(error=RuntimeError("service unavailable"))
        intent = IntentInterpreter(client).interpret("User clicks the invoice icon of a past order")
        assert intent.source == "keywords"
        assert intent.context == "pastOrders"

    def test_falls_back_on_malformed_output(self):
        client = _llm_client({"context": "home", "actions": "not a list"})
        intent = IntentInterpreter(client).interpret("Open the cart")
        assert intent.source == "keywords"
        assert intent.actions[0].element == "cartButton"


class TestEnsureSectionActivation:
    """Tests for sub-section activation marking."""

    def test_adds_missing_activation_first(self):
        intent = Intent(context="pastOrders",
                        actions=[OrderedAction(element="loadMoreButton", order=1)])
        ensure_section_activation(intent)
        assert intent.actions[0].element == "pastOrdersTab"
        assert intent.actions[0].activation

    def test_does_not_duplicate_existing_activation(self):
        intent = Intent(context="pastOrders", actions=[
            OrderedAction(element="loadMoreButton", order=1),
            OrderedAction(element="pastOrdersTab", order=2),
        ])
        ensure_section_activation(intent)
        ensure_section_activation(intent)
        tabs = [a for a in intent.actions if a.element == "pastOrdersTab"]
        assert len(tabs) == 1
        assert intent.actions[0].element == "pastOrdersTab"

    def test_repeated_tab_clicks_collapse_to_one(self):
        intent = Intent(context="pastOrders", actions=[
            OrderedAction(element="orderHistoryTab", order=1),
            OrderedAction(element="pastOrdersTab", order=2),
            OrderedAction(element="loadMoreButton", order=3),
        ])
        ensure_section_activation(intent)
        assert [a.element for a in intent.actions] == ["pastOrdersTab", "loadMoreButton"]
        assert sum(a.activation for a in intent.actions) == 1

    @pytest.mark.parametrize("action,expected", [
        (OrderedAction(element="pastOrders"), True),
        (OrderedAction(element="orderHistoryTab"), True),
        (OrderedAction(element="sectionTab", description="Open the Previous Orders tab"), True),
        (OrderedAction(element="pastOrdersList"), False),
        (OrderedAction(element="pastOrderItem"), False),
        (OrderedAction(element="loadMoreButton", description="Click Load More in Past Orders"), False),
        (OrderedAction(type="scroll", element="pastOrders"), False),
    ])
    def test_is_section_control(self, action, expected):
        element, aliases = keywords.SECTION_ALIASES["pastOrders"]
        assert is_section_control(action, element, aliases) is expected

    def test_no_activation_for_top_level_context(self):
        intent = Intent(context="home", actions=[OrderedAction(element="cartButton")])
        ensure_section_activation(intent)
        assert [a.element for a in intent.actions] == ["cartButton"]


class TestKeywordTables:
    """The tables are data and can be enumerated."""

    def test_every_context_rule_targets_known_context(self):
        for _, context in keywords.CONTEXT_RULES:
            assert context in keywords.KNOWN_CONTEXTS

    def test_every_landmark_context_is_known(self):
        assert set(keywords.CONTEXT_LANDMARKS) <= set(keywords.KNOWN_CONTEXTS)

    def test_tables_are_versioned(self):
        assert keywords.TABLES_VERSION
