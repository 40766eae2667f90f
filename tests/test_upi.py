import pytest

pytestmark = pytest.mark.asyncio


async def test_first_upsert_without_vpa_is_unverified(db):
    from rewards_api.services import upi as upi_service

    link = await upi_service.upsert_upi("u1", bank_name="X Bank")
    assert link.vpa is None
    assert link.is_verified is False
    assert link.linked_at is None
    assert link.bank_name == "X Bank"


async def test_merge_update_keeps_vpa(db):
    from rewards_api.services import upi as upi_service

    first = await upi_service.upsert_upi("u2", vpa="a@b")
    assert first.is_verified is True
    linked_at = (await upi_service.get_upi("u2")).linked_at
    assert linked_at is not None

    second = await upi_service.upsert_upi("u2", bank_name="X Bank")
    assert second.vpa == "a@b"
    assert second.is_verified is True
    assert second.linked_at == linked_at
    assert second.bank_name == "X Bank"


async def test_resupplying_vpa_refreshes_linked_at(db):
    from datetime import datetime

    from rewards_api.models.upi_link import UpiLink
    from rewards_api.services import upi as upi_service

    await UpiLink(chat_id="u3", vpa="a@b", is_verified=True, linked_at=datetime(2020, 1, 1)).insert()
    link = await upi_service.upsert_upi("u3", vpa="a@b")
    assert link.linked_at > datetime(2020, 1, 1)
    assert link.is_verified is True
    stored = await upi_service.get_upi("u3")
    assert stored.linked_at > datetime(2020, 1, 1)


async def test_one_link_per_chat(db):
    from rewards_api.models.upi_link import UpiLink
    from rewards_api.services import upi as upi_service

    await upi_service.upsert_upi("u4", vpa="one@upi")
    await upi_service.upsert_upi("u4", vpa="two@upi")
    assert await UpiLink.find(UpiLink.chat_id == "u4").count() == 1
    assert (await upi_service.get_upi("u4")).vpa == "two@upi"
