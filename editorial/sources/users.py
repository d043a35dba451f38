# editorial/sources/users.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from editorial.app.db import session_scope
from editorial.app.errors import InvalidInput, NotFound
from editorial.app.settings import MAX_USER_NAME
from editorial.sources import repository as repo

log = logging.getLogger(__name__)


@dataclass
class UserRecord:
    id: int
    name: str


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("name", "required")
    name = name.strip()
    if len(name) > MAX_USER_NAME:
        raise InvalidInput("name", f"too long (max {MAX_USER_NAME} characters)")
    return name


class UserDirectory:
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory

    def list_users(self) -> List[UserRecord]:
        with session_scope(self.session_factory) as sess:
            return [UserRecord(u.id, u.name) for u in repo.list_users(sess)]

    def get(self, user_id: int) -> UserRecord:
        with session_scope(self.session_factory) as sess:
            user = repo.get_user(sess, user_id)
            if user is None:
                raise NotFound("user", user_id)
            return UserRecord(user.id, user.name)

    def register(self, name: str) -> UserRecord:
        name = _clean_name(name)
        try:
            with session_scope(self.session_factory) as sess:
                if repo.find_user_by_name(sess, name) is not None:
                    raise InvalidInput("name", "already registered")
                user = repo.insert_user(sess, name)
                rec = UserRecord(user.id, user.name)
        except IntegrityError as e:
            # Race: the same name registered between our lookup and insert.
            raise InvalidInput("name", "already registered") from e
        log.info("registered user id=%s", rec.id)
        return rec

    def rename(self, user_id: int, name: str) -> UserRecord:
        name = _clean_name(name)
        try:
            with session_scope(self.session_factory) as sess:
                user = repo.get_user(sess, user_id)
                if user is None:
                    raise NotFound("user", user_id)
                other = repo.find_user_by_name(sess, name)
                if other is not None and other.id != user.id:
                    raise InvalidInput("name", "already registered")
                user.name = name
                sess.flush()
                rec = UserRecord(user.id, user.name)
        except IntegrityError as e:
            raise InvalidInput("name", "already registered") from e
        log.info("renamed user id=%s", rec.id)
        return rec
