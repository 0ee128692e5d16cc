"""
Customer Repository
===================
Phone-keyed customer lookup and the "phone verified" side effect.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from ..exceptions import ValidationError
from ..timeutils import utc_now
from .models import Customer


class CustomerRepository(ABC):
    """Abstract customer persistence."""

    @abstractmethod
    async def get(self, customer_id: int) -> Optional[Customer]:
        """Look up a customer by id."""

    @abstractmethod
    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        """Look up a customer by normalized phone number."""

    @abstractmethod
    async def create(self, phone: str, first_name: str = "", last_name: str = "") -> Customer:
        """
        Create an unverified customer.

        Raises:
            ValidationError: If the phone number is already registered
        """

    @abstractmethod
    async def mark_phone_verified(self, phone: str, at: datetime) -> Optional[Customer]:
        """Set ``phone_verified`` for the customer owning ``phone``; None if there is none."""


class InMemoryCustomerRepository(CustomerRepository):
    """Process-local customer repository for development and testing."""

    def __init__(self):
        self._customers: Dict[int, Customer] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def get(self, customer_id: int) -> Optional[Customer]:
        return self._customers.get(customer_id)

    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        for customer in self._customers.values():
            if customer.phone == phone:
                return customer
        return None

    async def create(self, phone: str, first_name: str = "", last_name: str = "") -> Customer:
        async with self._lock:
            if await self.find_by_phone(phone) is not None:
                raise ValidationError("Phone number already registered.")
            customer = Customer(
                id=next(self._ids),
                phone=phone,
                first_name=first_name,
                last_name=last_name,
                created_at=utc_now(),
            )
            self._customers[customer.id] = customer
        return customer

    async def mark_phone_verified(self, phone: str, at: datetime) -> Optional[Customer]:
        async with self._lock:
            customer = await self.find_by_phone(phone)
            if customer is None:
                return None
            updated = replace(customer, phone_verified=True, phone_verified_at=at)
            self._customers[customer.id] = updated
        return updated
