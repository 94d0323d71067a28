"""Unit tests for client/observable.py -- Observable and Derived."""

from client.observable import Derived, Observable


def test_observable_notifies_subscribers_until_unsubscribed():
    source = Observable(1)
    seen = []
    unsubscribe = source.subscribe(seen.append)

    source.set(2)
    source.set(3)
    unsubscribe()
    source.set(4)

    assert seen == [2, 3]
    assert source.value == 4


def test_unsubscribe_twice_is_harmless():
    source = Observable("a")
    unsubscribe = source.subscribe(lambda _: None)
    unsubscribe()
    unsubscribe()


def test_derived_recomputes_from_all_sources():
    words = Observable(["Coin", "Stamp", "coin purse"])
    search = Observable("")
    matches = Derived([words, search], lambda items, text: [w for w in items if text.lower() in w.lower()])
    published = []
    matches.subscribe(published.append)

    assert matches.value == ["Coin", "Stamp", "coin purse"]
    search.set("COIN")
    assert matches.value == ["Coin", "coin purse"]
    words.set(["Stamp"])
    assert matches.value == []
    assert published == [["Coin", "coin purse"], []]


def test_derived_has_no_setter_and_can_be_disposed():
    source = Observable(2)
    doubled = Derived(source, lambda n: n * 2)
    assert not hasattr(doubled, "set")

    doubled.dispose()
    source.set(10)
    assert doubled.value == 4
