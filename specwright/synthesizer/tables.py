"""Data tables used by the synthesizer.

Kept as plain data so tests can enumerate them; bump ``TABLES_VERSION`` when
a rule changes meaning.
"""

from __future__ import annotations

TABLES_VERSION = "5"

# element token -> alternative test-id fragments and method-name tokens
SYNONYMS: dict[str, tuple[str, ...]] = {
    "pastOrdersTab": ("past-orders", "past-orders-tab", "order-history-tab"),
    "pastOrderItem": ("past-order", "past-order-item", "order-card", "order-item", "order-row"),
    "loadMoreButton": ("load-more", "show-more", "see-more", "load-more-btn"),
    "invoiceIcon": ("invoice", "invoice-icon", "receipt", "download-invoice"),
    "invoiceModal": ("invoice-modal", "invoice-dialog", "receipt-modal"),
    "additionalPastOrders": ("past-order", "past-order-item", "order-card"),
    "pastOrdersList": ("past-orders-list", "past-orders"),
    "addMealButton": ("add-meal", "add-meal-btn", "add-to-cart"),
    "ordersHubNavItem": ("orders-hub", "orders-hub-nav", "orders-nav"),
    "cartButton": ("cart", "cart-btn", "cart-button"),
    "searchInput": ("search", "search-input", "search-bar"),
    "emptyCartState": ("empty-cart", "empty-cart-state"),
    "orderAgainSection": ("order-again", "order-again-section"),
    "partialCartComponent": ("partial-cart", "partial-cart-component"),
    "upcomingOrdersSection": ("upcoming-orders", "upcoming-orders-section"),
    "mealsButton": ("meals", "meals-btn", "menu-meals"),
    "dateSelector": ("date-selector", "delivery-date", "date-picker"),
}

# Words in a child element (an icon or link on a record) -> the record token it
# belongs to. The child must come after a step on that record.
CHILD_TOPICS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("invoice",), "pastOrderItem"),
    (("receipt",), "pastOrderItem"),
    (("reorder",), "pastOrderItem"),
    (("rate", "order"), "pastOrderItem"),
    (("order", "details"), "pastOrderItem"),
    (("remove", "meal"), "mealCard"),
    (("meal", "details"), "mealCard"),
)

# Words that make an element the thing a child opens rather than the child itself
CHILD_RESULT_WORDS = ("modal", "dialog", "drawer", "page", "list", "section")

# record token -> word runs that name one record; singular, so "past orders" (the tab) never matches
RECORD_WORDS: dict[str, tuple[tuple[str, ...], ...]] = {
    "pastOrderItem": (("past", "order"), ("order", "row"), ("order", "card"), ("order", "item")),
    "mealCard": (("meal", "card"), ("meal", "item"), ("meal", "tile")),
}

# "load more", "show more", "see more"
LOAD_MORE_VERBS = ("load", "show", "see")

# Expected values that describe a condition rather than literal page text
NON_LITERAL_EXPECTATIONS = ("visible", "increased count", "updated", "present", "enabled", "")

# Expected values asking for more items than before the actions ran
COUNT_EXPECTATIONS = ("increased count", "increased", "more items", "count increased")

# container or group token -> the item token whose matches are counted
COUNTED_ITEMS: dict[str, str] = {
    "pastOrdersList": "pastOrderItem",
    "additionalPastOrders": "pastOrderItem",
    "mealsGrid": "mealCard",
    "searchResults": "searchResultItem",
}

# canonical reusable method -> intent phrases meaning the same action.
# Phrases are compared after normalize_phrase (lowercase, no articles).
INTENT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "clickOnCartButton": (
        "go to cart", "open cart", "view cart", "review cart",
        "go to basket", "open basket", "view basket",
    ),
    "clickOnOrdersHubNavItem": ("go to orders hub", "open orders hub", "manage orders", "view my orders"),
    "clickOnPastOrdersTab": (
        "go to past orders", "open past orders", "view past orders", "navigate to past orders",
    ),
    "clickOnAddMealButton": ("add meal", "add meal to order", "add item to order"),
    "fillSearchInput": ("search for", "find meal", "search menu"),
    "scrollToOrderAgainSection": ("scroll to order again", "go to order again"),
}

FILLER_WORDS = ("a", "an", "the", "my", "your", "some")

# element token -> URL fragment the application shows after following it
NAV_URL_FRAGMENTS: dict[str, str] = {
    "cartButton": "cart",
    "ordersHubNavItem": "orders",
    "checkoutButton": "checkout",
    "mealsButton": "menu",
    "signupLink": "signup",
}

# element token -> what a click on it brings up
RESULT_ELEMENTS: dict[str, str] = {
    "invoiceIcon": "invoiceModal",
    "loadMoreButton": "additionalPastOrders",
    "pastOrdersTab": "pastOrdersList",
    "pastOrderItem": "orderDetails",
    "addMealButton": "partialCartComponent",
    "searchInput": "searchResults",
    "dateSelector": "deliveryDateOptions",
}

# Words dropped from a token when it becomes a URL fragment
NON_URL_WORDS = ("page", "nav", "item", "link", "button", "btn", "tab", "view")

# context -> (page-object class, variable name, how the setup reaches it from homePage)
CONTEXT_NAMESPACES: dict[str, tuple[str, str, str]] = {
    "home": ("HomePage", "homePage", ""),
    "menu": ("HomePage", "homePage", ""),
    "search": ("HomePage", "homePage", ""),
    "cart": ("HomePage", "homePage", ""),
    "ordersHub": ("OrdersHubPage", "ordersHubPage", "homePage.clickOnOrdersHubNavItem()"),
    "pastOrders": ("OrdersHubPage", "ordersHubPage", "homePage.clickOnOrdersHubNavItem()"),
    "signup": ("SignupPage", "signupPage", ""),
}

CONTEXT_TAGS: dict[str, str] = {
    "home": "@home",
    "menu": "@menu",
    "search": "@search",
    "cart": "@cart",
    "ordersHub": "@subscription",
    "pastOrders": "@subscription",
    "signup": "@signup",
}

BASE_TAGS = ("@qa", "@e2e")

USERS_HELPER_METHODS: dict[str, str] = {
    "home": "getActiveUserEmailWithHomeOnboardingViewed",
    "menu": "getActiveUserEmailWithHomeOnboardingViewed",
    "search": "getActiveUserEmailWithHomeOnboardingViewed",
    "cart": "getActiveUserEmailWithEmptyCart",
    "ordersHub": "getActiveUserEmailWithOrdersHubOnboardingViewed",
    "pastOrders": "getActiveUserEmailWithPastOrders",
    "signup": "getNewUserEmail",
}

DEFAULT_USERS_HELPER_METHOD = "getActiveUserEmailWithHomeOnboardingViewed"

# Suffixes that name the widget kind rather than what it is about
GENERIC_SUFFIXES = ("button", "btn", "icon", "tab", "item", "link", "section", "modal", "component", "state")
