"""Registered customer accounts (the borrower side of standard loans)."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import write_session
from library.errors import AlreadyExistsError, NotFoundError
from library.models.schemas import CustomerCreate
from library.repository import CustomerRepository

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def register_customer(self, data: CustomerCreate) -> dict:
        try:
            async with write_session(self._sessions) as session:
                customers = CustomerRepository(session)
                if await customers.get_by_email(data.email) is not None:
                    raise AlreadyExistsError("Email already registered", email=data.email)
                customer = await customers.create(data.model_dump())
                result = customer.to_dict()
        except IntegrityError as exc:
            raise AlreadyExistsError("Email already registered", email=data.email) from exc

        logger.info("Customer %s registered", result["customer_id"])
        return result

    async def get_customer(self, customer_id: int) -> dict:
        async with self._sessions() as session:
            customer = await CustomerRepository(session).get(customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)
            return customer.to_dict()
