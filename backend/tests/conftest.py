"""Common test fixtures for hivley tests."""
import struct
import zlib
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from hivley.config import Settings
from hivley.container import build_services
from hivley.main import create_app
from hivley.schemas import ConversationOut, MessageOut, ParticipantOut, ProfileOut, StatusOut

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
CAROL = "33333333-3333-3333-3333-333333333333"
DAVE = "44444444-4444-4444-4444-444444444444"

PROFILES = [
    ProfileOut(id=ALICE, full_name="Alice Smith", role="client"),
    ProfileOut(id=BOB, full_name="Bob Jones", role="provider"),
    ProfileOut(id=CAROL, full_name="Carol White", role="provider"),
    ProfileOut(id=DAVE, full_name="Dave Brown", role="client"),
]

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """A built SPA bundle."""
    dist = tmp_path / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_text("<!doctype html><title>Hivley</title>")
    (dist / "assets" / "app.js").write_text("console.log('hivley');")
    return dist


@pytest.fixture
def test_settings(tmp_path: Path, static_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        SECRET_KEY="test-secret",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        STATIC_DIR=str(static_dir),
        BAAS_URL="https://baas.example.com",
    )


@pytest.fixture
async def services(test_settings: Settings):
    """Fully wired services over a fresh in-memory database."""
    services = build_services(test_settings)
    await services.database.create_all()
    for profile in PROFILES:
        await services.gateway.upsert_profile(profile)
    yield services
    await services.database.dispose()


@pytest.fixture
async def direct(services) -> ConversationOut:
    """Direct conversation between Alice and Bob."""
    return await services.conversations.create_or_get_direct_conversation(ALICE, BOB)


@pytest.fixture
async def group(services) -> ConversationOut:
    """Group created by Alice with Bob and Carol."""
    return await services.conversations.create_group_conversation(ALICE, [BOB, CAROL], "Study Group")


@pytest.fixture
def client(test_settings: Settings):
    app = create_app(test_settings)
    with TestClient(app) as client:
        services = app.state.services
        for profile in PROFILES:
            client.portal.call(services.gateway.upsert_profile, profile)
        yield client


def auth_headers(client: TestClient, user_id: str) -> dict:
    token = client.app.state.services.identity.issue_token(user_id, f"{user_id[:4]}@psu.edu")
    return {"Authorization": f"Bearer {token}"}


def make_participant(conversation_id: str, profile_id: str, full_name: Optional[str]) -> ParticipantOut:
    return ParticipantOut(
        id=f"p-{profile_id}",
        conversation_id=conversation_id,
        profile_id=profile_id,
        joined_at=T0,
        last_read_at=T0,
        profile=ProfileOut(id=profile_id, full_name=full_name) if full_name is not None else None
    )


def make_conversation(
    participants: List[ParticipantOut],
    type: str = "direct",
    title: Optional[str] = None
) -> ConversationOut:
    return ConversationOut(
        id="c-1",
        type=type,
        title=title,
        created_by=participants[0].profile_id if participants else ALICE,
        created_at=T0,
        updated_at=T0,
        last_message_at=T0,
        participants=participants
    )


def make_message(
    content: str = "hello",
    sender_id: str = ALICE,
    statuses: Optional[List[StatusOut]] = None,
    seq: int = 1
) -> MessageOut:
    return MessageOut(
        id=f"m-{seq}",
        conversation_id="c-1",
        sender_id=sender_id,
        content=content,
        created_at=T0,
        updated_at=T0,
        seq=seq,
        statuses=statuses or []
    )


def make_status(profile_id: str, status: str, message_id: str = "m-1") -> StatusOut:
    return StatusOut(message_id=message_id, profile_id=profile_id, status=status, updated_at=T0)


def oversized_png(width: int = 30000, height: int = 30000) -> bytes:
    """PNG header claiming more pixels than Pillow will decode."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IDAT", zlib.compress(b"")) + chunk(b"IEND", b"")
