"""Staff accounts, managed by admins."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import write_session
from library.errors import AlreadyExistsError, NotFoundError
from library.models.schemas import StaffCreate, StaffUpdate
from library.repository import StaffRepository

logger = logging.getLogger(__name__)


class StaffService:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def list_staff(self) -> list[dict]:
        """Non-admin staff members, newest first."""
        async with self._sessions() as session:
            return [s.to_dict() for s in await StaffRepository(session).list_members()]

    async def add_staff(self, data: StaffCreate) -> dict:
        try:
            async with write_session(self._sessions) as session:
                staff = StaffRepository(session)
                if await staff.email_taken(data.email):
                    raise AlreadyExistsError("Email already registered", email=data.email)
                member = await staff.create(data.model_dump())
                result = member.to_dict()
        except IntegrityError as exc:
            raise AlreadyExistsError("Email already registered", email=data.email) from exc

        logger.info("Staff member %s added", result["staff_id"])
        return result

    async def update_staff(self, staff_id: int, data: StaffUpdate) -> dict:
        """Overwrite a staff profile. The email must stay unique across staff."""
        try:
            async with write_session(self._sessions) as session:
                staff = StaffRepository(session)
                member = await staff.get(staff_id, for_update=True)
                if member is None:
                    raise NotFoundError(f"Staff member {staff_id} not found", staff_id=staff_id)
                if await staff.email_taken(data.email, exclude_id=staff_id):
                    raise AlreadyExistsError(
                        "Email already used by another staff member", email=data.email
                    )
                for field, value in data.model_dump().items():
                    setattr(member, field, value)
                await session.flush()
                result = member.to_dict()
        except IntegrityError as exc:
            raise AlreadyExistsError(
                "Email already used by another staff member", email=data.email
            ) from exc

        logger.info("Staff member %s updated", staff_id)
        return result

    async def delete_staff(self, staff_id: int) -> dict:
        async with write_session(self._sessions) as session:
            staff = StaffRepository(session)
            member = await staff.get(staff_id, for_update=True)
            if member is None:
                raise NotFoundError(f"Staff member {staff_id} not found", staff_id=staff_id)
            result = member.to_dict()
            await staff.remove(member)

        logger.info("Staff member %s deleted", staff_id)
        return result
