# app/domain/repositories/user_repo.py
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.errors import UpstreamUnavailable


class UserRepo:
    """Existence checks against the storefront 'users' collection."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "users"):
        self.col = db[collection_name]

    async def user_exists(self, user_id: str) -> bool:
        try:
            doc = await self.col.find_one({"user_id": user_id}, {"_id": 0, "user_id": 1})
        except PyMongoError as e:
            raise UpstreamUnavailable("users", e) from e
        return doc is not None
