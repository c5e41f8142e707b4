from mvgrabber.events import Event


def test_listeners_called_in_order_with_arguments():
    event = Event()
    calls = []
    event.add_listener(lambda value: calls.append(("first", value)))
    event.add_listener(lambda value: calls.append(("second", value)))
    event("frame")
    assert calls == [("first", "frame"), ("second", "frame")]


def test_iadd_returns_same_event_and_registers():
    event = Event()
    received = []
    result = event.__iadd__(received.append)
    assert result is event
    result(1)
    result(2)
    assert received == [1, 2]


def test_remove_listeners_only_for_owner():
    event = Event()
    owner_a = object()
    owner_b = object()
    calls = []
    event.add_listener(lambda: calls.append("a"), owner_a)
    event.add_listener(lambda: calls.append("b"), owner_b)
    event.add_listener(lambda: calls.append("a2"), owner_a)
    event.remove_listeners(owner_a)
    event()
    assert calls == ["b"]


def test_listener_may_remove_itself_during_notification():
    event = Event()
    owner = object()
    calls = []
    event.add_listener(
        lambda: (calls.append("once"), event.remove_listeners(owner)), owner
    )
    event()
    event()
    assert calls == ["once"]


def test_event_without_listeners_does_nothing():
    event = Event()
    owner = object()
    event.remove_listeners(owner)
    assert event() is None