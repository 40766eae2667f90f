"""Identity registry: resolve/create, bot referral path, code allocation, onboarding rollback."""

import asyncio

import pytest

pytestmark = pytest.mark.asyncio


async def test_resolve_creates_user_and_wallet(db):
    from rewards_api.models.user import User
    from rewards_api.models.wallet import Wallet
    from rewards_api.services import users as user_service

    user = await user_service.resolve_or_create_user("1001", "alice", "a.png")
    assert user.chat_id == "1001"
    assert user.status == "active"
    assert user.referred_by is None
    assert len(user.referral_code) == 6 and user.referral_code.isdigit()
    assert 100000 <= int(user.referral_code) <= 999999
    assert await User.find(User.chat_id == "1001").count() == 1
    wallet = await Wallet.find_one(Wallet.chat_id == "1001")
    assert wallet is not None
    assert wallet.balance == 0
    assert wallet.currency == "INR"


async def test_resolve_twice_keeps_code_and_merges_profile(db):
    from rewards_api.services import users as user_service

    first = await user_service.resolve_or_create_user("1002", "bob", "b.png")
    second = await user_service.resolve_or_create_user("1002", "bobby", "")
    assert second.referral_code == first.referral_code
    assert second.referred_by is None
    assert second.username == "bobby"
    # empty avatar never overwrites
    assert second.avatar == "b.png"

    third = await user_service.resolve_or_create_user("1002")
    assert third.username == "bobby"
    assert third.referral_code == first.referral_code


async def test_missing_chat_id(db):
    from rewards_api.core.exceptions import MissingParameterError
    from rewards_api.services import users as user_service

    with pytest.raises(MissingParameterError):
        await user_service.resolve_or_create_user("")
    with pytest.raises(MissingParameterError):
        await user_service.create_user_from_referral(None, ref="123456")


async def test_bot_referral_sets_referred_by_only_at_creation(db):
    from rewards_api.models.referral import Referral
    from rewards_api.services import users as user_service

    inviter = await user_service.resolve_or_create_user("2000", "inviter")
    other = await user_service.resolve_or_create_user("2001", "other")

    invitee = await user_service.create_user_from_referral("2002", "newbie", ref=inviter.referral_code)
    assert invitee.referred_by == inviter.referral_code

    # later calls with a different ref, from either path, leave it unchanged
    again = await user_service.create_user_from_referral("2002", "newbie2", ref=other.referral_code)
    assert again.referred_by == inviter.referral_code
    assert again.username == "newbie2"
    again = await user_service.resolve_or_create_user("2002")
    assert again.referred_by == inviter.referral_code

    ref = await Referral.find_one(Referral.chat_id == "2000")
    assert [r.user_id for r in ref.referred_users] == ["2002"]
    assert await Referral.find_one(Referral.chat_id == "2001") is None


async def test_client_path_never_sets_referred_by(db):
    from rewards_api.services import users as user_service

    user = await user_service.resolve_or_create_user("2100", "solo")
    assert user.referred_by is None
    # bot call on an existing user does not retro-link
    user = await user_service.create_user_from_referral("2100", ref="123456")
    assert user.referred_by is None


async def test_unknown_ref_code_stored_but_not_linked(db):
    from rewards_api.models.referral import Referral
    from rewards_api.services import users as user_service

    user = await user_service.create_user_from_referral("2200", "x", ref="999999")
    assert user.referred_by == "999999"
    assert await Referral.find_all().count() == 0


async def test_concurrent_first_requests_create_one_user(db):
    from rewards_api.models.user import User
    from rewards_api.models.wallet import Wallet
    from rewards_api.services import users as user_service

    results = await asyncio.gather(
        *(user_service.resolve_or_create_user("3000", f"name{i}") for i in range(5))
    )
    assert len({u.referral_code for u in results}) == 1
    assert await User.find(User.chat_id == "3000").count() == 1
    assert await Wallet.find(Wallet.chat_id == "3000").count() == 1


async def test_code_collision_retries(db, monkeypatch):
    from rewards_api.services import referral_codes
    from rewards_api.services import users as user_service

    taken = await user_service.resolve_or_create_user("4000")
    codes = iter([taken.referral_code, taken.referral_code, "654321"])
    monkeypatch.setattr(referral_codes, "generate_code", lambda: next(codes))

    user = await user_service.resolve_or_create_user("4001")
    assert user.referral_code == "654321"


async def test_code_space_exhausted(db, monkeypatch):
    from rewards_api.core.exceptions import ConflictError
    from rewards_api.models.user import User
    from rewards_api.services import referral_codes
    from rewards_api.services import users as user_service

    taken = await user_service.resolve_or_create_user("4100")
    monkeypatch.setattr(referral_codes, "generate_code", lambda: taken.referral_code)

    with pytest.raises(ConflictError):
        await user_service.resolve_or_create_user("4101")
    assert await User.find_one(User.chat_id == "4101") is None


async def test_generate_code_range():
    from rewards_api.services.referral_codes import generate_code

    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


async def test_onboarding_rolls_back_user_when_linking_fails(db, monkeypatch):
    from rewards_api.models.user import User
    from rewards_api.services import referrals as referrals_service
    from rewards_api.services import users as user_service

    inviter = await user_service.resolve_or_create_user("5000")

    async def boom(code, invitee):
        raise RuntimeError("storage down")

    monkeypatch.setattr(referrals_service, "link_invitee", boom)
    with pytest.raises(RuntimeError):
        await user_service.create_user_from_referral("5001", ref=inviter.referral_code)
    assert await User.find_one(User.chat_id == "5001") is None

    monkeypatch.undo()
    user = await user_service.create_user_from_referral("5001", ref=inviter.referral_code)
    assert user.referred_by == inviter.referral_code


async def test_lost_race_against_rolled_back_winner_retries(db, monkeypatch):
    from rewards_api.services import users as user_service

    real_onboard = user_service._onboard
    calls = []

    async def lose_first(*args, **kwargs):
        # first attempt: another request won the insert, then rolled back
        calls.append(args)
        if len(calls) == 1:
            return None
        return await real_onboard(*args, **kwargs)

    monkeypatch.setattr(user_service, "_onboard", lose_first)
    user = await user_service.resolve_or_create_user("6000", "x")
    assert user.chat_id == "6000"
    assert user.username == "x"
    assert len(calls) == 2


async def test_repeated_lost_races_raise_conflict(db, monkeypatch):
    from rewards_api.core.exceptions import ConflictError
    from rewards_api.services import users as user_service

    async def always_lose(*args, **kwargs):
        return None

    monkeypatch.setattr(user_service, "_onboard", always_lose)
    with pytest.raises(ConflictError):
        await user_service.resolve_or_create_user("6001", "x")


async def test_audit_failure_after_link_leaves_consistent_state(db, monkeypatch):
    from rewards_api.models.referral import Referral
    from rewards_api.models.user import User
    from rewards_api.services import users as user_service

    inviter = await user_service.resolve_or_create_user("7000")

    async def broken_audit(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(user_service, "log_event", broken_audit)
    with pytest.raises(RuntimeError):
        await user_service.create_user_from_referral("7001", ref=inviter.referral_code)

    # the invitee is kept together with its referral entry; neither is orphaned
    assert await User.find_one(User.chat_id == "7001") is not None
    ref = await Referral.find_one(Referral.chat_id == "7000")
    assert [r.user_id for r in ref.referred_users] == ["7001"]


async def test_referral_link_is_audited(db):
    from rewards_api.models.audit_log import AuditLog
    from rewards_api.services import users as user_service

    inviter = await user_service.resolve_or_create_user("7100")
    await user_service.create_user_from_referral("7101", ref=inviter.referral_code)
    entry = await AuditLog.find_one(AuditLog.event_type == "referral_linked")
    assert entry is not None
    assert entry.chat_id == "7100"
    assert entry.metadata == {"invitee": "7101"}
