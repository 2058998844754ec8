"""Unit tests for ObservableValue (progression/gamification/observable.py)"""
from progression.gamification.observable import ObservableValue


def test_value_and_subscription():
    observable = ObservableValue("level", 1)
    received = []

    unsubscribe = observable.subscribe(received.append)
    observable._set(2)
    unsubscribe()
    observable._set(3)

    assert observable.value == 3
    assert received == [2]


def test_unsubscribe_twice_is_safe():
    observable = ObservableValue("level", 1)
    unsubscribe = observable.subscribe(lambda value: None)
    unsubscribe()
    unsubscribe()


def test_failing_subscriber_does_not_block_others():
    observable = ObservableValue("level", 1)
    received = []

    def broken(value):
        raise RuntimeError("boom")

    observable.subscribe(broken)
    observable.subscribe(received.append)
    observable._set(5)

    assert received == [5]
    assert observable.value == 5
