"""
Domain: User profiles.

Profiles mirror Supabase auth users and carry the contact details used for
notifications plus the role that gates admin operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Profile:
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None  # "admin" or None
    whatsapp_number: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return self.full_name or "Customer"
