from __future__ import annotations

import pytest

from live_chat.client.visibility import VisibilityReconciler
from live_chat.domain.value_objects.enums import VisibilityState
from tests.conftest import connect_and_open


@pytest.fixture
def reconciler(client):
    return VisibilityReconciler(client)


def test_visible_while_waiting_to_retry_reconnects_now(client, factory, scheduler, reconciler):
    socket = connect_and_open(client, factory)
    socket.drop(1006)
    scheduler.advance(1000)
    factory.last.drop(1006)
    assert client.reconnect_attempt == 2
    assert scheduler.pending_delays() == [2000]

    reconciler.handle(VisibilityState.HIDDEN)
    assert len(factory.sockets) == 2

    reconciler.handle(VisibilityState.VISIBLE)

    assert len(factory.sockets) == 3
    assert client.reconnect_attempt == 0
    assert scheduler.pending_delays() == []

    factory.last.drop(1006)
    assert scheduler.pending_delays() == [1000]


def test_visible_while_connected_does_nothing(client, factory, reconciler):
    connect_and_open(client, factory)

    reconciler.handle(VisibilityState.VISIBLE)

    assert len(factory.sockets) == 1
    assert reconciler.state is VisibilityState.VISIBLE


def test_visible_while_connecting_does_not_open_second_socket(client, factory, reconciler):
    client.connect()

    reconciler.handle(VisibilityState.VISIBLE)

    assert len(factory.sockets) == 1


def test_hidden_does_nothing(client, factory, reconciler):
    reconciler.handle(VisibilityState.HIDDEN)

    assert factory.sockets == []
    assert reconciler.state is VisibilityState.HIDDEN
