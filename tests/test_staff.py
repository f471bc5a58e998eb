"""Test staff account management."""
import pytest

from library.errors import AlreadyExistsError, NotFoundError
from library.models.schemas import StaffCreate, StaffUpdate


def _member(**overrides) -> dict:
    data = {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@library.test",
        "phone": "555-0200",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_add_and_list_staff(staff):
    grace = await staff.add_staff(StaffCreate(**_member()))
    alan = await staff.add_staff(StaffCreate(**_member(first_name="Alan", email="alan@library.test")))
    await staff.add_staff(StaffCreate(**_member(first_name="Root", email="root@library.test", is_admin=True)))

    listed = await staff.list_staff()

    # newest first, admins hidden
    assert [m["staff_id"] for m in listed] == [alan["staff_id"], grace["staff_id"]]
    assert grace["is_admin"] is False


@pytest.mark.asyncio
async def test_add_staff_rejects_duplicate_email(staff):
    await staff.add_staff(StaffCreate(**_member()))
    with pytest.raises(AlreadyExistsError, match="Email already registered"):
        await staff.add_staff(StaffCreate(**_member(first_name="Other")))


@pytest.mark.asyncio
async def test_update_staff(staff):
    grace = await staff.add_staff(StaffCreate(**_member()))

    updated = await staff.update_staff(
        grace["staff_id"], StaffUpdate(**_member(last_name="Murray", phone=None))
    )

    assert updated["last_name"] == "Murray"
    assert updated["email"] == "grace@library.test"
    assert updated["phone"] is None


@pytest.mark.asyncio
async def test_update_staff_email_clash(staff):
    grace = await staff.add_staff(StaffCreate(**_member()))
    await staff.add_staff(StaffCreate(**_member(first_name="Alan", email="alan@library.test")))

    with pytest.raises(AlreadyExistsError, match="another staff member"):
        await staff.update_staff(grace["staff_id"], StaffUpdate(**_member(email="alan@library.test")))


@pytest.mark.asyncio
async def test_missing_staff_is_not_found(staff):
    with pytest.raises(NotFoundError):
        await staff.update_staff(404, StaffUpdate(**_member()))
    with pytest.raises(NotFoundError):
        await staff.delete_staff(404)


@pytest.mark.asyncio
async def test_delete_staff(staff):
    grace = await staff.add_staff(StaffCreate(**_member()))

    deleted = await staff.delete_staff(grace["staff_id"])

    assert deleted["email"] == "grace@library.test"
    assert await staff.list_staff() == []
    with pytest.raises(NotFoundError):
        await staff.delete_staff(grace["staff_id"])
