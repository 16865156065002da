"""
User repository - async access to the `users` collection.

Only the embedded ``verification`` sub-document is ever written here; the
rest of the user document belongs to the account service.
"""

from __future__ import annotations

from typing import Optional

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.base import to_object_id
from schemas.models.user import UserDoc, VerificationRecord
from shared.datetime_utils import Clock, SystemClock
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class UserRepository:
    def __init__(self, db: AsyncDatabase, clock: Optional[Clock] = None) -> None:
        self._col: AsyncCollection = db[USERS_COLLECTION]
        self._clock = clock or SystemClock()

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    async def save_verification(self, user_id: str, record: VerificationRecord) -> bool:
        """Overwrite the user's verification sub-document.

        Plain last-writer-wins ``$set``; concurrent resend and verify for the
        same user are not serialized.
        """
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid},
            {
                "$set": {
                    "verification": record.model_dump(),
                    "updated_at": self._clock.now(),
                }
            },
        )
        if result.matched_count == 0:
            log.warning("verification_save_user_missing", user_id=user_id)
            return False
        return True
