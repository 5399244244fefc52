"""Keyword tables for the deterministic interpreter.

Tables are plain tuples so tests can enumerate them. Bump ``TABLES_VERSION``
whenever a rule changes meaning.
"""

from __future__ import annotations

TABLES_VERSION = "2"

KNOWN_CONTEXTS = ("home", "ordersHub", "pastOrders", "search", "cart", "menu", "signup")

DEFAULT_CONTEXT = "home"

# Ordered: the first rule whose keywords all occur in the text wins.
CONTEXT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("past order",), "pastOrders"),
    (("load more",), "pastOrders"),
    (("invoice",), "pastOrders"),
    (("orders hub",), "ordersHub"),
    (("order hub",), "ordersHub"),
    (("upcoming order",), "ordersHub"),
    (("sign up",), "signup"),
    (("signup",), "signup"),
    (("register",), "signup"),
    (("search",), "search"),
    (("cart",), "cart"),
    (("menu",), "menu"),
    (("home",), "home"),
)

# Sub-section contexts: context -> (activation element, control text aliases)
SECTION_ALIASES: dict[str, tuple[str, tuple[str, ...]]] = {
    "pastOrders": ("pastOrdersTab", ("past orders", "order history", "previous orders")),
}

# Elements that only get the user to the starting page; the test's setup
# already lands there, so they are not repeated as actions.
CONTEXT_ENTRY_ELEMENTS: dict[str, tuple[str, ...]] = {
    "ordersHub": ("ordersHubNavItem",),
    "pastOrders": ("ordersHubNavItem",),
}

# Action rules, applied in order:
# (keywords that must all occur, action type, element, description, intent)
ACTION_RULES: tuple[tuple[tuple[str, ...], str, str, str, str], ...] = (
    (("invoice",), "click", "pastOrderItem", "Select a past order", "Open the order details"),
    (("invoice",), "click", "invoiceIcon", "Click the invoice icon", "Open the invoice"),
    (("load more",), "click", "loadMoreButton", "Click Load More button", "Load additional past orders"),
    (("add", "meal"), "click", "addMealButton", "Add a meal", "Add a meal to the order"),
    (("add", "item"), "click", "addMealButton", "Add an item", "Add an item to the order"),
    (("cart",), "click", "cartButton", "Open the cart", "Review the cart"),
    (("orders hub",), "click", "ordersHubNavItem", "Go to the orders hub", "Manage orders"),
    (("menu", "meals"), "click", "mealsButton", "Open the meals menu", "Browse meals"),
    (("date", "change"), "click", "dateSelector", "Change the delivery date", "Pick another delivery"),
    (("search",), "fill", "searchInput", "Type in the search box", "Find a meal"),
    (("scroll",), "scroll", "pageBottom", "Scroll down the page", "Reveal more content"),
)

# Assertion rules: (any of these keywords, outcomes as (type, element, description, expected))
ASSERTION_RULES: tuple[tuple[tuple[str, ...], tuple[tuple[str, str, str, str], ...]], ...] = (
    (("invoice",), (
        ("visibility", "invoiceModal", "Invoice modal is displayed", "visible"),
    )),
    (("load more", "more orders"), (
        ("visibility", "additionalPastOrders", "More past orders are displayed", "visible"),
        ("text", "pastOrdersList", "Order count increased", "increased count"),
    )),
    (("empty cart", "cart is empty"), (
        ("visibility", "emptyCartState", "Empty cart state is displayed", "visible"),
    )),
    (("reset", "updated"), (
        ("state", "pageState", "Page state is updated", "updated"),
    )),
)

# Used only when no specific assertion rule fired
GENERIC_VISIBILITY_KEYWORDS = ("visible", "show", "display", "see", "appear")

CONTEXT_LANDMARKS: dict[str, str] = {
    "home": "orderAgainSection",
    "menu": "mealsGrid",
    "search": "searchResults",
    "cart": "partialCartComponent",
    "ordersHub": "upcomingOrdersSection",
    "pastOrders": "pastOrdersList",
    "signup": "signupForm",
}
