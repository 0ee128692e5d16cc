from .models import Customer
from .repository import CustomerRepository, InMemoryCustomerRepository
from .sql_repository import SqlAlchemyCustomerRepository

__all__ = [
    "Customer",
    "CustomerRepository",
    "InMemoryCustomerRepository",
    "SqlAlchemyCustomerRepository",
]
