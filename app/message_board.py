"""Direct messages between users"""
from datetime import datetime, timezone

from sqlalchemy.orm import Session, joinedload

import models_sqlalchemy as models
from app_errors import NotFoundError


class MessageBoard:

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, from_id: int, to_id: int, body: str) -> models.Message:
        if self._db.get(models.User, to_id) is None:
            raise NotFoundError(f"No user: {to_id}")
        message = models.Message(from_id=from_id, to_id=to_id, body=body)
        self._db.add(message)
        self._db.commit()
        self._db.refresh(message)
        return message

    def get(self, message_id: int) -> models.Message:
        """Message with both sender and recipient loaded"""
        message = (
            self._db.query(models.Message)
            .options(joinedload(models.Message.from_user), joinedload(models.Message.to_user))
            .filter(models.Message.id == message_id)
            .first()
        )
        if message is None:
            raise NotFoundError(f"No such message: {message_id}")
        return message

    def mark_read(self, message_id: int) -> models.Message:
        message = self._db.get(models.Message, message_id)
        if message is None:
            raise NotFoundError(f"No such message: {message_id}")
        message.read_at = datetime.now(timezone.utc).replace(tzinfo=None)
        self._db.commit()
        self._db.refresh(message)
        return message
