"""User registration, authentication and inbox/outbox queries"""
from typing import List

from sqlalchemy.orm import Session, joinedload

import models_pydantic as schemas
import models_sqlalchemy as models
from app_errors import BadRequestError, NotFoundError, UnauthorizedError
from auth_tokens import check_password, hash_password


class UserAccounts:

    def __init__(self, db: Session, work_factor: int) -> None:
        self._db = db
        self._work_factor = work_factor

    def register(self, data: schemas.UserRegister, is_admin: bool = False) -> models.User:
        existing = self._db.query(models.User).filter(models.User.email == data.email).first()
        if existing:
            raise BadRequestError(f"Duplicate email: {data.email}")
        user = models.User(
            email=data.email,
            password=hash_password(data.password, self._work_factor),
            first_name=data.first_name,
            last_name=data.last_name,
            avatar=data.avatar,
            is_admin=is_admin,
        )
        self._db.add(user)
        self._db.commit()
        self._db.refresh(user)
        return user

    def authenticate(self, email: str, password: str) -> models.User:
        user = self._db.query(models.User).filter(models.User.email == email).first()
        if user and check_password(password, user.password):
            return user
        raise UnauthorizedError("Invalid email/password")

    def get(self, user_id: int) -> models.User:
        user = self._db.get(models.User, user_id)
        if user is None:
            raise NotFoundError(f"No user: {user_id}")
        return user

    def messages_to(self, user_id: int) -> List[schemas.MessageToUser]:
        messages = (
            self._db.query(models.Message)
            .options(joinedload(models.Message.from_user))
            .filter(models.Message.to_id == user_id)
            .order_by(models.Message.sent_at, models.Message.id)
            .all()
        )
        return [
            schemas.MessageToUser(
                id=m.id,
                from_user=schemas.UserSummary.model_validate(m.from_user),
                body=m.body,
                sent_at=m.sent_at,
                read_at=m.read_at,
            )
            for m in messages
        ]

    def messages_from(self, user_id: int) -> List[schemas.MessageFromUser]:
        messages = (
            self._db.query(models.Message)
            .options(joinedload(models.Message.to_user))
            .filter(models.Message.from_id == user_id)
            .order_by(models.Message.sent_at, models.Message.id)
            .all()
        )
        return [
            schemas.MessageFromUser(
                id=m.id,
                to_user=schemas.UserSummary.model_validate(m.to_user),
                body=m.body,
                sent_at=m.sent_at,
                read_at=m.read_at,
            )
            for m in messages
        ]
