"""Tests for the observable state store."""
from maprates.state.models import Country, MapMode
from maprates.state.store import StateStore, WILDCARD, initial_state


def test_initial_state_is_empty():
    store = StateStore()
    state = store.get()

    assert state["home_country"] is None
    assert state["destination_country"] is None
    assert state["destination_countries"] == ()
    assert state["active_overlays"] == ()
    assert state["map_mode"] == MapMode.INTERACTIVE
    assert state["is_premium_user"] is False


def test_get_unknown_key_returns_none():
    store = StateStore()
    assert store.get("does_not_exist") is None


def test_get_returns_copy():
    store = StateStore()
    store.set({"active_indicators": {"sma": {"active": True, "period": 20}}})

    snapshot = store.get("active_indicators")
    snapshot["sma"]["active"] = False

    assert store.get("active_indicators")["sma"]["active"] is True

    full = store.get()
    full["home_country"] = Country("France")
    assert store.get("home_country") is None


def test_set_merges_shallowly():
    store = StateStore()
    store.set({"home_country": Country("France"), "home_currency": "EUR"})
    store.set({"home_currency": "CHF"})

    assert store.get("home_country") == Country("France")
    assert store.get("home_currency") == "CHF"


def test_key_listener_receives_new_and_old_values():
    store = StateStore()
    calls = []
    store.subscribe("home_currency", lambda new, old: calls.append((new, old)))

    store.set({"home_currency": "EUR"})
    store.set({"home_currency": "GBP"})
    store.set({"map_mode": MapMode.LOCKED})

    assert calls == [("EUR", None), ("GBP", "EUR")]


def test_key_listeners_run_before_wildcard_in_subscription_order():
    store = StateStore()
    order = []
    store.subscribe(WILDCARD, lambda new, old: order.append("wildcard"))
    store.subscribe("home_currency", lambda new, old: order.append("first"))
    store.subscribe("home_currency", lambda new, old: order.append("second"))

    store.set({"home_currency": "EUR"})

    assert order == ["first", "second", "wildcard"]


def test_wildcard_listener_receives_full_states():
    store = StateStore()
    received = []
    store.subscribe(WILDCARD, lambda new, old: received.append((new, old)))

    store.set({"home_currency": "EUR"})

    new, old = received[0]
    assert new["home_currency"] == "EUR"
    assert old["home_currency"] is None
    assert set(new) == set(initial_state())


def test_unsubscribe_is_idempotent():
    store = StateStore()
    calls = []
    unsubscribe = store.subscribe("home_currency", lambda new, old: calls.append(new))

    unsubscribe()
    unsubscribe()
    store.set({"home_currency": "EUR"})

    assert calls == []
    assert store.listener_count("home_currency") == 0


def test_unsubscribe_during_notification_uses_snapshot():
    """A callback removed mid-cycle still fires for the cycle already in progress."""
    store = StateStore()
    calls = []
    unsubscribers = {}

    def first(new, old):
        calls.append("first")
        unsubscribers["second"]()

    def second(new, old):
        calls.append("second")

    store.subscribe("home_currency", first)
    unsubscribers["second"] = store.subscribe("home_currency", second)

    store.set({"home_currency": "EUR"})
    assert calls == ["first", "second"]

    calls.clear()
    store.set({"home_currency": "GBP"})
    assert calls == ["first"]


def test_subscribe_during_notification_fires_next_cycle():
    store = StateStore()
    calls = []

    def late(new, old):
        calls.append(("late", new))

    def first(new, old):
        calls.append(("first", new))
        if new == "EUR":
            store.subscribe("home_currency", late)

    store.subscribe("home_currency", first)
    store.set({"home_currency": "EUR"})
    assert calls == [("first", "EUR")]

    store.set({"home_currency": "GBP"})
    assert calls[-2:] == [("first", "GBP"), ("late", "GBP")]


def test_reentrant_set_is_allowed():
    store = StateStore()
    seen = []

    def follow_home(new, old):
        if new == "EUR":
            store.set({"destination_currency": "GBP"})

    store.subscribe("home_currency", follow_home)
    store.subscribe("destination_currency", lambda new, old: seen.append(new))

    store.set({"home_currency": "EUR"})

    assert seen == ["GBP"]
    assert store.get("destination_currency") == "GBP"
    assert store.get("home_currency") == "EUR"


def test_failing_listener_does_not_break_set():
    store = StateStore()
    calls = []

    def broken(new, old):
        raise RuntimeError("boom")

    store.subscribe("home_currency", broken)
    store.subscribe("home_currency", lambda new, old: calls.append(new))

    store.set({"home_currency": "EUR"})

    assert calls == ["EUR"]
    assert store.get("home_currency") == "EUR"


def test_listeners_receive_copies():
    store = StateStore()
    store.subscribe("active_indicators", lambda new, old: new["sma"].update(active=False))
    store.subscribe(WILDCARD, lambda new, old: new["active_indicators"].clear())

    store.set({"active_indicators": {"sma": {"active": True, "period": 20}}})

    assert store.get("active_indicators") == {"sma": {"active": True, "period": 20}}


def test_set_copies_incoming_values():
    store = StateStore()
    indicators = {"sma": {"active": True, "period": 20}}
    store.set({"active_indicators": indicators})

    indicators["sma"]["period"] = 5

    assert store.get("active_indicators")["sma"]["period"] == 20
