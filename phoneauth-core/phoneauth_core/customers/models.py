from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Customer:
    """A phone-identified customer."""
    id: int
    phone: str
    created_at: datetime
    first_name: str = ""
    last_name: str = ""
    phone_verified: bool = False
    phone_verified_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
