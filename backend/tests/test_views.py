"""Tests for the conversation list view."""
from hivley.views import matches_query

from conftest import ALICE, BOB, CAROL, DAVE


async def test_list_summaries(services, direct, group):
    await services.messages.send(group.id, BOB, "Who has the notes?")
    await services.messages.send(direct.id, ALICE, "Are you free at 5?")

    summaries = await services.views.list_for(ALICE)

    # Most recent activity first
    assert [s.id for s in summaries] == [direct.id, group.id]
    chat, team = summaries
    assert chat.title == "Bob Jones"
    assert chat.preview == "Are you free at 5?"
    assert chat.unread_count == 0
    assert chat.last_message_status == "sending"
    assert chat.presence == "offline"
    assert team.title == "Study Group"
    assert team.unread_count == 1
    assert team.last_message_status is None
    assert team.presence is None


async def test_summary_tracks_status_and_presence(services, direct):
    sent = await services.messages.send(direct.id, ALICE, "ping")
    await services.statuses.mark_status(sent.message.id, BOB, "read")
    await services.presence.heartbeat(BOB)

    summary = (await services.views.list_for(ALICE))[0]

    assert summary.last_message_status == "read"
    assert summary.presence == "online"


async def test_empty_conversation_preview(services, direct):
    summary = (await services.views.list_for(BOB))[0]
    assert summary.preview == "No messages yet"
    assert summary.title == "Alice Smith"


async def test_invalid_conversations_are_hidden(services, direct):
    # Direct chat whose other side has no profile
    await services.conversations.create_or_get_direct_conversation(ALICE, "55555555-5555-5555-5555-555555555555")
    # Group without a title, written below the manager's validation
    await services.gateway.insert_conversation(type="group", created_by=ALICE, participants=[(ALICE, True), (CAROL, False)])

    summaries = await services.views.list_for(ALICE)

    assert [s.id for s in summaries] == [direct.id]


async def test_search(services, direct, group):
    # Matches the direct title and a group member name
    assert {s.id for s in await services.views.list_for(ALICE, "bob")} == {direct.id, group.id}
    assert [s.id for s in await services.views.list_for(ALICE, "STUDY")] == [group.id]
    assert await services.views.list_for(ALICE, "zzz") == []


async def test_thread_marks_own_messages(services, direct):
    mine = await services.messages.send(direct.id, ALICE, "mine")
    await services.messages.send(direct.id, BOB, "theirs")
    await services.statuses.mark_status(mine.message.id, BOB, "delivered")

    page = await services.views.thread_for(direct.id, ALICE)

    statuses = {m.content: m.status for m in page.messages}
    assert statuses == {"mine": "delivered", "theirs": None}


async def test_outsider_sees_nothing(services, direct):
    assert await services.views.list_for(DAVE) == []


def test_matches_query_ignores_blank():
    assert matches_query(None, None)
    assert matches_query(None, "   ")
