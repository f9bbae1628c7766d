"""
Token Issuer Tests

Access token claims, refresh-token rotation and revocation.
"""

import base64
import dataclasses
import json
from datetime import timedelta

import pytest
from jose import jwt
from sqlalchemy import select

from pos_system.models.api import RefreshRequest
from pos_system.models.tokens import RefreshToken, TokenState
from pos_system.time_utils import utcnow
from pos_system.tokens import (
    TokenService,
    decode_access_token,
    generate_refresh_token_string,
)


async def load_token(session, token: str) -> RefreshToken:
    result = await session.execute(
        select(RefreshToken)
        .where(RefreshToken.token == token)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestGenerateTokens:

    @pytest.mark.unit
    @pytest.mark.security
    async def test_generate_tokens_persists_refresh_token(self, token_service, user_factory, async_session):
        user = await user_factory(roles=("Cashier",))

        result = await token_service.generate_tokens(user)

        assert result.access_token
        assert result.refresh_token
        assert result.roles == ["Cashier"]

        stored = await load_token(async_session, result.refresh_token)
        assert stored.user_id == user.id
        assert stored.used is False
        assert stored.revoked is False
        assert stored.state is TokenState.ACTIVE
        assert stored.expiry_date - stored.creation_date == timedelta(days=7)

    @pytest.mark.unit
    @pytest.mark.security
    async def test_access_token_claims(self, token_service, jwt_settings, user_factory):
        user = await user_factory(
            username="tester",
            email="tester@example.com",
            full_name="Test User",
            branch_id="BRANCH_1",
            roles=("Cashier", "StockClerk"),
        )

        result = await token_service.generate_tokens(user)
        claims = jwt.get_unverified_claims(result.access_token)

        assert claims["sub"] == "tester"
        assert claims["nameid"] == user.id
        assert claims["unique_name"] == "Test User"
        assert claims["email"] == "tester@example.com"
        assert claims["branchId"] == "BRANCH_1"
        assert sorted(claims["role"]) == ["Cashier", "StockClerk"]
        assert claims["iss"] == "TestIssuer"
        assert claims["aud"] == "TestAudience"
        assert claims["jti"]
        assert jwt.get_unverified_header(result.access_token)["alg"] == "HS256"

        stored_jti = claims["jti"]
        principal = decode_access_token(result.access_token, jwt_settings)
        assert principal.jwt_id == stored_jti

    @pytest.mark.unit
    async def test_display_name_falls_back_to_username(self, token_service, user_factory, identity_store):
        user = await user_factory(username="plainuser")
        user.full_name = None
        await identity_store.update(user)

        result = await token_service.generate_tokens(user)

        assert jwt.get_unverified_claims(result.access_token)["unique_name"] == "plainuser"

    @pytest.mark.unit
    async def test_each_call_issues_distinct_pair(self, token_service, user_factory):
        user = await user_factory()

        first = await token_service.generate_tokens(user)
        second = await token_service.generate_tokens(user)

        assert first.access_token != second.access_token
        assert first.refresh_token != second.refresh_token

    @pytest.mark.unit
    @pytest.mark.security
    def test_refresh_token_string_is_64_random_bytes(self):
        token = generate_refresh_token_string()

        assert len(base64.b64decode(token)) == 64
        assert token != generate_refresh_token_string()


class TestDecodeAccessToken:

    @pytest.mark.security
    async def test_decode_round_trip(self, token_service, jwt_settings, user_factory):
        user = await user_factory(roles=("Manager",))
        result = await token_service.generate_tokens(user)

        principal = decode_access_token(result.access_token, jwt_settings)

        assert principal is not None
        assert principal.user_id == user.id
        assert principal.username == user.username
        assert principal.roles == ["Manager"]

    @pytest.mark.security
    async def test_expired_token_rejected_unless_lifetime_skipped(self, jwt_settings, token_store, identity_store, user_factory):
        expired_settings = dataclasses.replace(jwt_settings, access_token_expiration_minutes=-5)
        service = TokenService(expired_settings, token_store, users=identity_store, roles=identity_store)
        user = await user_factory()
        result = await service.generate_tokens(user)

        assert decode_access_token(result.access_token, jwt_settings) is None
        assert decode_access_token(result.access_token, jwt_settings, verify_lifetime=False) is not None

    @pytest.mark.security
    @pytest.mark.parametrize(
        "override",
        [
            {"key": "AnotherSecretKeyThatIsLongEnough!!1234"},
            {"issuer": "SomeoneElse"},
            {"audience": "OtherAudience"},
        ],
    )
    async def test_foreign_tokens_rejected(self, override, jwt_settings, token_store, identity_store, user_factory):
        foreign = TokenService(
            dataclasses.replace(jwt_settings, **override), token_store, users=identity_store, roles=identity_store
        )
        user = await user_factory()
        result = await foreign.generate_tokens(user)

        assert decode_access_token(result.access_token, jwt_settings, verify_lifetime=False) is None

    @pytest.mark.security
    def test_other_algorithm_rejected(self, jwt_settings):
        token = jwt.encode(
            {"sub": "x", "nameid": "U1", "jti": "j1", "iss": "TestIssuer", "aud": "TestAudience", "exp": 9999999999},
            jwt_settings.key,
            algorithm="HS512",
        )

        assert decode_access_token(token, jwt_settings) is None

    @pytest.mark.security
    def test_missing_user_id_rejected(self, jwt_settings):
        token = jwt.encode(
            {"sub": "x", "jti": "j1", "iss": "TestIssuer", "aud": "TestAudience", "exp": 9999999999},
            jwt_settings.key,
            algorithm="HS256",
        )

        assert decode_access_token(token, jwt_settings) is None

    @pytest.mark.security
    @pytest.mark.parametrize("verify_lifetime", [True, False])
    def test_missing_expiry_rejected(self, verify_lifetime, jwt_settings):
        token = jwt.encode(
            {"sub": "x", "nameid": "U1", "jti": "j1", "iss": "TestIssuer", "aud": "TestAudience"},
            jwt_settings.key,
            algorithm="HS256",
        )

        assert decode_access_token(token, jwt_settings, verify_lifetime=verify_lifetime) is None

    @pytest.mark.security
    def test_long_expired_token_readable_without_lifetime(self, jwt_settings):
        token = jwt.encode(
            {"sub": "x", "nameid": "U1", "jti": "j1", "iss": "TestIssuer", "aud": "TestAudience", "exp": 1000},
            jwt_settings.key,
            algorithm="HS256",
        )

        assert decode_access_token(token, jwt_settings) is None
        principal = decode_access_token(token, jwt_settings, verify_lifetime=False)
        assert principal.user_id == "U1"
        assert principal.jwt_id == "j1"

    @pytest.mark.security
    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_garbage_rejected(self, garbage, jwt_settings):
        assert decode_access_token(garbage, jwt_settings) is None


class TestRefreshTokens:

    @pytest.mark.security
    async def test_refresh_returns_new_pair_and_consumes_old(self, token_service, user_factory, async_session):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=initial.access_token, refresh_token=initial.refresh_token)
        )

        assert result is not None
        assert result.access_token != initial.access_token
        assert result.refresh_token != initial.refresh_token

        old = await load_token(async_session, initial.refresh_token)
        assert old.used is True
        assert old.revoked is True
        assert old.state is TokenState.CONSUMED

    @pytest.mark.security
    async def test_refresh_succeeds_with_expired_access_token(self, jwt_settings, token_store, identity_store, user_factory):
        service = TokenService(
            dataclasses.replace(jwt_settings, access_token_expiration_minutes=-1),
            token_store, users=identity_store, roles=identity_store,
        )
        user = await user_factory()
        initial = await service.generate_tokens(user)

        result = await service.refresh_tokens(
            RefreshRequest(access_token=initial.access_token, refresh_token=initial.refresh_token)
        )

        assert result is not None

    @pytest.mark.security
    async def test_refresh_token_exchanges_exactly_once(self, token_service, user_factory):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)
        request = RefreshRequest(access_token=initial.access_token, refresh_token=initial.refresh_token)

        first = await token_service.refresh_tokens(request)
        second = await token_service.refresh_tokens(request)

        assert first is not None
        assert second is None

        # The pair issued by the successful exchange remains usable
        third = await token_service.refresh_tokens(
            RefreshRequest(access_token=first.access_token, refresh_token=first.refresh_token)
        )
        assert third is not None

    @pytest.mark.security
    async def test_revoked_token_never_refreshes(self, token_service, user_factory):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)
        request = RefreshRequest(access_token=initial.access_token, refresh_token=initial.refresh_token)

        assert await token_service.revoke_refresh_token(initial.refresh_token) is True

        for _ in range(3):
            assert await token_service.refresh_tokens(request) is None

    @pytest.mark.security
    async def test_mismatched_jti_rejected(self, token_service, user_factory, async_session):
        user = await user_factory()
        first = await token_service.generate_tokens(user)
        second = await token_service.generate_tokens(user)

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=first.access_token, refresh_token=second.refresh_token)
        )

        assert result is None
        untouched = await load_token(async_session, second.refresh_token)
        assert untouched.state is TokenState.ACTIVE

    @pytest.mark.security
    async def test_other_users_refresh_token_rejected(self, token_service, user_factory):
        alice = await user_factory()
        bob = await user_factory()
        alice_pair = await token_service.generate_tokens(alice)
        bob_pair = await token_service.generate_tokens(bob)

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=alice_pair.access_token, refresh_token=bob_pair.refresh_token)
        )

        assert result is None

    @pytest.mark.security
    async def test_expired_refresh_token_rejected(self, token_service, user_factory, async_session):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)
        stored = await load_token(async_session, initial.refresh_token)
        stored.expiry_date = utcnow() - timedelta(minutes=1)
        await async_session.commit()

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=initial.access_token, refresh_token=initial.refresh_token)
        )

        assert result is None

    @pytest.mark.security
    async def test_unknown_refresh_token_rejected(self, token_service, user_factory):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=initial.access_token, refresh_token=generate_refresh_token_string())
        )

        assert result is None

    @pytest.mark.security
    async def test_tampered_access_token_rejected(self, token_service, user_factory):
        user = await user_factory()
        initial = await token_service.generate_tokens(user)
        header, _, signature = initial.access_token.split(".")
        claims = jwt.get_unverified_claims(initial.access_token)
        claims["role"] = ["Admin"]
        forged_payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
        tampered = ".".join([header, forged_payload, signature])

        result = await token_service.refresh_tokens(
            RefreshRequest(access_token=tampered, refresh_token=initial.refresh_token)
        )

        assert result is None


class TestRevocation:

    @pytest.mark.unit
    async def test_revoke_marks_token_revoked(self, token_service, user_factory, async_session):
        user = await user_factory()
        pair = await token_service.generate_tokens(user)

        assert await token_service.revoke_refresh_token(pair.refresh_token) is True

        stored = await load_token(async_session, pair.refresh_token)
        assert stored.revoked is True
        assert stored.used is False
        assert stored.state is TokenState.REVOKED

    @pytest.mark.unit
    async def test_revoke_unknown_token_returns_false(self, token_service):
        assert await token_service.revoke_refresh_token("some-random-token") is False

    @pytest.mark.unit
    async def test_revoke_batch_counts_only_flipped_rows(self, token_service, user_factory):
        user = await user_factory()
        t1 = await token_service.generate_tokens(user)
        t2 = await token_service.generate_tokens(user)
        t3 = await token_service.generate_tokens(user)
        await token_service.revoke_refresh_token(t3.refresh_token)

        count = await token_service.revoke_batch(
            [t1.refresh_token, t2.refresh_token, t3.refresh_token, "missing-token"]
        )

        assert count == 2

    @pytest.mark.unit
    async def test_revoke_batch_empty(self, token_service):
        assert await token_service.revoke_batch([]) == 0


class TestRefreshTokenStore:

    @pytest.mark.unit
    @pytest.mark.security
    async def test_consume_is_single_shot(self, token_service, token_store, user_factory):
        user = await user_factory()
        pair = await token_service.generate_tokens(user)
        stored = await token_store.get(pair.refresh_token)

        assert await token_store.consume(stored, utcnow()) is True
        # A second reader that saw the row while it was still active loses the race
        assert await token_store.consume(stored, utcnow()) is False
        assert stored.state is TokenState.CONSUMED

    @pytest.mark.unit
    async def test_consume_refuses_expired_row(self, token_service, token_store, user_factory):
        user = await user_factory()
        pair = await token_service.generate_tokens(user)
        stored = await token_store.get(pair.refresh_token)

        assert await token_store.consume(stored, stored.expiry_date + timedelta(seconds=1)) is False

    @pytest.mark.unit
    async def test_active_tokens_for_user(self, token_service, token_store, user_factory):
        user = await user_factory()
        other = await user_factory()
        a = await token_service.generate_tokens(user)
        b = await token_service.generate_tokens(user)
        await token_service.generate_tokens(other)
        await token_service.revoke_refresh_token(b.refresh_token)

        assert await token_store.active_tokens_for_user(user.id) == [a.refresh_token]
