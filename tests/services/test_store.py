"""Session store tests."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from scopegate.services.credentials import generate_session_token, hash_passcode
from scopegate.services.store import SessionStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
EMAIL = "admin@example.com"


async def _challenge(store: SessionStore, code: str = "483920", *, created_at: datetime = NOW):
    async with store.transaction():
        challenge = await store.create_passcode_challenge(
            email=EMAIL,
            code_hash=hash_passcode(code),
            code_expires_at=created_at + timedelta(minutes=10),
            created_at=created_at,
        )
    return challenge.id


class TestPasscodeChallenges:
    async def test_latest_challenge_wins(self, session: AsyncSession):
        store = SessionStore(session)
        await _challenge(store, "111111", created_at=NOW)
        latest_id = await _challenge(store, "222222", created_at=NOW + timedelta(minutes=1))

        latest = await store.find_latest_passcode_challenge(EMAIL)

        assert latest is not None
        assert latest.id == latest_id
        assert latest.code_hash == hash_passcode("222222")
        assert latest.token is None

    async def test_no_challenge(self, session: AsyncSession):
        store = SessionStore(session)

        assert await store.find_latest_passcode_challenge(EMAIL) is None

    async def test_sessions_are_not_challenges(self, session: AsyncSession):
        store = SessionStore(session)
        async with store.transaction():
            await store.create_session(
                email=EMAIL,
                token=generate_session_token(),
                created_at=NOW,
                session_ttl_hours=72,
                code_hash=hash_passcode("483920"),
                code_used_at=NOW,
            )

        assert await store.find_latest_passcode_challenge(EMAIL) is None

    async def test_mark_used_succeeds_once(self, session: AsyncSession):
        store = SessionStore(session)
        challenge_id = await _challenge(store)

        async with store.transaction():
            first = await store.mark_passcode_used_if_unset(challenge_id, NOW)
        async with store.transaction():
            second = await store.mark_passcode_used_if_unset(challenge_id, NOW + timedelta(seconds=1))

        assert first is True
        assert second is False

        challenge = await store.find_latest_passcode_challenge(EMAIL)
        assert challenge is not None
        assert challenge.code_used_at is not None
        assert challenge.code_used_at.replace(tzinfo=UTC) == NOW

    async def test_mark_unknown_challenge(self, session: AsyncSession):
        store = SessionStore(session)

        async with store.transaction():
            assert await store.mark_passcode_used_if_unset("missing", NOW) is False


class TestSessions:
    async def test_create_and_find(self, session: AsyncSession):
        store = SessionStore(session)
        token = generate_session_token()
        async with store.transaction():
            await store.create_session(
                email=EMAIL, token=token, created_at=NOW, session_ttl_hours=72
            )

        found = await store.find_active_session_by_token(token, NOW + timedelta(hours=1))

        assert found is not None
        assert found.email == EMAIL
        assert found.revoked is False
        assert found.code_hash == ""

    async def test_expires_after_ttl(self, session: AsyncSession):
        store = SessionStore(session)
        token = generate_session_token()
        async with store.transaction():
            await store.create_session(
                email=EMAIL, token=token, created_at=NOW, session_ttl_hours=72
            )

        assert await store.find_active_session_by_token(token, NOW + timedelta(hours=71)) is not None
        assert await store.find_active_session_by_token(token, NOW + timedelta(hours=72)) is None
        assert await store.find_active_session_by_token(token, NOW + timedelta(hours=73)) is None

        # Still visible to the unfiltered lookup
        assert await store.find_session_by_token(token) is not None

    async def test_revoke(self, session: AsyncSession):
        store = SessionStore(session)
        token = generate_session_token()
        async with store.transaction():
            await store.create_session(
                email=EMAIL, token=token, created_at=NOW, session_ttl_hours=72
            )

        async with store.transaction():
            assert await store.revoke_session(token) is True

        assert await store.find_active_session_by_token(token, NOW) is None
        revoked = await store.find_session_by_token(token)
        assert revoked is not None
        assert revoked.revoked is True

    async def test_revoke_unknown_token(self, session: AsyncSession):
        store = SessionStore(session)

        async with store.transaction():
            assert await store.revoke_session("nope") is False
            assert await store.revoke_session("") is False

    async def test_empty_token_lookup(self, session: AsyncSession):
        store = SessionStore(session)

        assert await store.find_session_by_token("") is None

    async def test_list_sessions_excludes_challenges(self, session: AsyncSession):
        store = SessionStore(session)
        await _challenge(store)
        token = generate_session_token()
        async with store.transaction():
            await store.create_session(
                email=EMAIL, token=token, created_at=NOW, session_ttl_hours=72
            )

        sessions = await store.list_sessions(EMAIL)

        assert [s.token for s in sessions] == [token]

    async def test_transaction_rolls_back_on_error(self, session: AsyncSession):
        store = SessionStore(session)
        token = generate_session_token()

        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.create_session(
                    email=EMAIL, token=token, created_at=NOW, session_ttl_hours=72
                )
                raise RuntimeError("verification failed")

        assert await store.find_session_by_token(token) is None
