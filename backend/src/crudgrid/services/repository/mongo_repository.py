"""MongoDB repositories built on motor."""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from crudgrid.core.exceptions import DuplicateKeyError
from crudgrid.models.auth_user import AuthUser
from crudgrid.models.user import User, parse_birth_date
from crudgrid.services.repository.base import AuthUserRepository, UserRepository

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
AUTH_USERS_COLLECTION = "authusers"


def _duplicate_field(error: MongoDuplicateKeyError) -> str:
    """Name of the field whose unique index was violated."""
    details = error.details or {}
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return next(iter(key_pattern))
    return "id" if "id_1" in str(error) else "email"


def _user_to_document(user: User) -> Dict[str, Any]:
    born = parse_birth_date(user.birth_date)
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "age": user.age,
        "email": user.email,
        "phone": user.phone,
        "birthDate": datetime(born.year, born.month, born.day),
    }


def _document_to_user(doc: Dict[str, Any]) -> User:
    birth_date = doc["birthDate"]
    if isinstance(birth_date, (datetime, date)):
        birth_date = birth_date.strftime("%Y-%m-%d")
    return User.model_construct(
        id=doc["id"],
        first_name=doc["firstName"],
        last_name=doc["lastName"],
        age=doc["age"],
        email=doc["email"],
        phone=doc["phone"],
        birth_date=birth_date,
    )


class MongoUserRepository(UserRepository):
    """User records in the ``users`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[USERS_COLLECTION]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("id", unique=True)
        await self.collection.create_index("email", unique=True)
        logger.info("Ensured unique indexes on users.id and users.email")

    async def list_users(self) -> List[User]:
        cursor = self.collection.find().sort("createdAt", DESCENDING)
        return [_document_to_user(doc) async for doc in cursor]

    async def get_user(self, user_id: int) -> Optional[User]:
        doc = await self.collection.find_one({"id": user_id})
        return _document_to_user(doc) if doc else None

    async def insert_user(self, user: User) -> User:
        doc = _user_to_document(user)
        now = datetime.utcnow()
        doc["createdAt"] = now
        doc["updatedAt"] = now
        try:
            await self.collection.insert_one(doc)
        except MongoDuplicateKeyError as e:
            field = _duplicate_field(e)
            raise DuplicateKeyError(field, getattr(user, "id" if field == "id" else "email")) from e
        logger.info(f"Inserted user {user.id}")
        return _document_to_user(doc)

    async def replace_user(self, user_id: int, user: User) -> Optional[User]:
        update = _user_to_document(user)
        update["updatedAt"] = datetime.utcnow()
        try:
            doc = await self.collection.find_one_and_update(
                {"id": user_id},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except MongoDuplicateKeyError as e:
            field = _duplicate_field(e)
            raise DuplicateKeyError(field, getattr(user, "id" if field == "id" else "email")) from e
        if doc is None:
            return None
        logger.info(f"Updated user {user_id}")
        return _document_to_user(doc)

    async def delete_user(self, user_id: int) -> bool:
        result = await self.collection.delete_one({"id": user_id})
        return result.deleted_count > 0


def _document_to_account(doc: Dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=str(doc["_id"]),
        name=doc["name"],
        email=doc["email"],
        password_hash=doc["password"],
        created_at=doc.get("createdAt") or datetime.utcnow(),
        updated_at=doc.get("updatedAt") or datetime.utcnow(),
    )


def _object_id(account_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(account_id)
    except (InvalidId, TypeError):
        return None


class MongoAuthUserRepository(AuthUserRepository):
    """Login accounts in the ``authusers`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[AUTH_USERS_COLLECTION]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("email", unique=True)

    async def get_by_email(self, email: str) -> Optional[AuthUser]:
        doc = await self.collection.find_one({"email": email.lower()})
        return _document_to_account(doc) if doc else None

    async def get_by_id(self, account_id: str) -> Optional[AuthUser]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return _document_to_account(doc) if doc else None

    async def insert(self, name: str, email: str, password_hash: str) -> AuthUser:
        now = datetime.utcnow()
        doc = {
            "name": name,
            "email": email.lower(),
            "password": password_hash,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError("email", email, "Email already exists") from e
        doc["_id"] = result.inserted_id
        return _document_to_account(doc)

    async def update_name(self, account_id: str, name: str) -> Optional[AuthUser]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"name": name, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return _document_to_account(doc) if doc else None
