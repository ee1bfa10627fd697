from typing import Optional
from app.repositories.base import BaseRepository
from app.models.user import UserAccount

class UserRepository(BaseRepository[UserAccount]):
    async def get_by_username(self, username: str) -> Optional[UserAccount]:
        return await self.get_by_field("username", username)
