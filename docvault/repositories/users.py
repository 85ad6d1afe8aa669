"""
User Lookup
"""

import uuid
from typing import Optional

from sqlalchemy import select

from docvault.db.models import User, UserRole
from docvault.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        async with self._storage("user.get"):
            result = await self.session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def create(self, email: str, role: UserRole = UserRole.USER) -> User:
        user = User(email=email, role=role)
        async with self._storage("user.create"):
            self.session.add(user)
            await self.session.flush()
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        async with self._storage("user.find_by_email"):
            result = await self.session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def set_role(self, user: User, role: UserRole) -> User:
        async with self._storage("user.set_role"):
            user.role = role
            user.is_active = True
            await self.session.flush()
        return user
