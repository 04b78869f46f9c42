"""Tests for presence tracking."""
from datetime import timedelta

import pytest

from hivley.errors import ValidationError
from hivley.schemas import PresenceOut
from hivley.services.presence import effective_status

from conftest import ALICE, BOB, T0


def test_effective_status():
    online = PresenceOut(profile_id=BOB, status="online", last_seen_at=T0)
    away = PresenceOut(profile_id=BOB, status="away", last_seen_at=T0)

    assert effective_status(None, 300, T0) == "offline"
    assert effective_status(online, 300, T0 + timedelta(seconds=299)) == "online"
    assert effective_status(online, 300, T0 + timedelta(seconds=301)) == "stale"
    assert effective_status(away, 300, T0 + timedelta(hours=2)) == "away"


async def test_heartbeat_keeps_single_row(services):
    first = await services.presence.heartbeat(BOB)
    second = await services.presence.heartbeat(BOB, "away")

    presence = await services.presence.get_presence([BOB])
    assert list(presence) == [BOB]
    assert presence[BOB].status == "away"
    assert second.last_seen_at >= first.last_seen_at
    assert services.presence.effective(presence[BOB]) == "away"


async def test_heartbeat_rejects_unknown_status(services):
    with pytest.raises(ValidationError):
        await services.presence.heartbeat(BOB, "busy")


async def test_heartbeat_fans_out_to_open_conversations(services, direct):
    received = []
    services.notifier.subscribe(direct.id, lambda message: None, on_presence=received.append)

    await services.presence.heartbeat(BOB)

    assert [p.profile_id for p in received] == [BOB]
    assert received[0].status == "online"


async def test_go_offline(services):
    await services.presence.heartbeat(ALICE)
    await services.presence.go_offline(ALICE)

    presence = await services.presence.get_presence([ALICE])
    assert presence[ALICE].status == "offline"


async def test_go_offline_never_raises(services, mocker):
    mocker.patch.object(services.gateway, "upsert_presence", side_effect=RuntimeError("database unavailable"))

    await services.presence.go_offline(ALICE)


async def test_snapshot(services, direct):
    await services.presence.heartbeat(ALICE)
    await services.presence.heartbeat(BOB)

    snapshot = await services.presence.snapshot(direct.id)

    assert sorted(p.profile_id for p in snapshot) == sorted([ALICE, BOB])
    assert await services.presence.snapshot("missing") == []
