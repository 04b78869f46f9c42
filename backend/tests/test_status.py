"""Tests for delivery status and reactions."""
import asyncio

import pytest

from hivley.errors import AuthorizationError, NotFoundError, ValidationError
from hivley.services.status import aggregate_status

from conftest import ALICE, BOB, CAROL, DAVE, make_message, make_status


async def test_one_status_row_per_recipient(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")

    await services.statuses.mark_status(sent.message.id, BOB, "delivered")
    await services.statuses.mark_status(sent.message.id, BOB, "read")

    statuses = await services.gateway.get_statuses(sent.message.id)
    assert [(s.profile_id, s.status) for s in statuses] == [(BOB, "read")]


async def test_status_never_regresses(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")

    await services.statuses.mark_status(sent.message.id, BOB, "read")
    result = await services.statuses.mark_status(sent.message.id, BOB, "delivered")

    assert result.status == "read"
    assert (await services.gateway.get_status(sent.message.id, BOB)).status == "read"


async def test_concurrent_marks_keep_highest_status(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")

    await asyncio.gather(
        services.statuses.mark_status(sent.message.id, BOB, "read"),
        services.statuses.mark_status(sent.message.id, BOB, "delivered"),
    )

    assert (await services.gateway.get_status(sent.message.id, BOB)).status == "read"
    assert len(await services.gateway.get_statuses(sent.message.id)) == 1


async def test_gateway_write_is_guarded_by_rank(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")

    await services.gateway.upsert_status(sent.message.id, BOB, "read")
    stored = await services.gateway.upsert_status(sent.message.id, BOB, "delivered")

    assert stored.status == "read"


async def test_sender_cannot_mark_own_message(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")
    with pytest.raises(ValidationError):
        await services.statuses.mark_status(sent.message.id, ALICE, "read")


async def test_outsider_cannot_mark_status(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")
    with pytest.raises(AuthorizationError):
        await services.statuses.mark_status(sent.message.id, DAVE, "read")
    with pytest.raises(NotFoundError):
        await services.statuses.mark_status("missing", BOB, "read")


async def test_unknown_status_rejected(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")
    with pytest.raises(ValidationError):
        await services.statuses.mark_status(sent.message.id, BOB, "seen")


async def test_aggregate_for_group(services, group):
    sent = await services.messages.send(group.id, ALICE, "agenda")
    message_id = sent.message.id

    assert await services.statuses.aggregate(message_id) == "sending"
    await services.statuses.mark_status(message_id, BOB, "read")
    await services.statuses.mark_status(message_id, CAROL, "delivered")
    assert await services.statuses.aggregate(message_id) == "delivered"
    await services.statuses.mark_status(message_id, CAROL, "read")
    assert await services.statuses.aggregate(message_id) == "read"


def test_aggregate_status():
    assert aggregate_status(make_message()) == "sending"
    assert aggregate_status(make_message(statuses=[make_status(BOB, "sent")])) == "sent"
    assert aggregate_status(make_message(statuses=[
        make_status(BOB, "read"),
        make_status(CAROL, "sent"),
    ])) == "sent"
    assert aggregate_status(make_message(statuses=[
        make_status(BOB, "read"),
        make_status(CAROL, "delivered"),
    ])) == "delivered"
    assert aggregate_status(make_message(statuses=[
        make_status(BOB, "read"),
        make_status(CAROL, "read"),
    ])) == "read"
    # The sender's own row never counts
    assert aggregate_status(make_message(statuses=[make_status(ALICE, "read")])) == "sending"


async def test_mark_conversation_read(services, direct):
    await services.messages.send(direct.id, ALICE, "one")
    await services.messages.send(direct.id, ALICE, "two")
    await services.messages.send(direct.id, BOB, "mine")

    marked = await services.statuses.mark_conversation_read(direct.id, BOB)

    assert marked == 2
    assert await services.statuses.mark_conversation_read(direct.id, BOB) == 0
    participant = await services.gateway.get_participant(direct.id, BOB)
    assert await services.gateway.count_unread(direct.id, BOB, participant.last_read_at) == 0


async def test_reactions(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "great news")
    message_id = sent.message.id

    first = await services.statuses.add_reaction(message_id, BOB, "🎉")
    again = await services.statuses.add_reaction(message_id, BOB, "🎉")
    await services.statuses.add_reaction(message_id, ALICE, "🎉")

    assert first.emoji == again.emoji == "🎉"
    reactions = await services.statuses.reactions_for(message_id)
    assert sorted(r.profile_id for r in reactions) == sorted([ALICE, BOB])

    assert await services.statuses.remove_reaction(message_id, BOB, "🎉")
    assert not await services.statuses.remove_reaction(message_id, BOB, "🎉")
    assert [r.profile_id for r in await services.statuses.reactions_for(message_id)] == [ALICE]


async def test_reaction_validation(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "hi")

    with pytest.raises(ValidationError):
        await services.statuses.add_reaction(sent.message.id, BOB, "  ")
    with pytest.raises(ValidationError):
        await services.statuses.add_reaction(sent.message.id, BOB, "x" * 17)
    with pytest.raises(AuthorizationError):
        await services.statuses.add_reaction(sent.message.id, DAVE, "👍")
