"""Session store: auth token pair, login flag and the cached user snapshot."""

import logging
import threading
from typing import Optional

from sqlalchemy.orm import sessionmaker

import models
import schemas
from database import SessionLocal, init_db
from utils.display import get_user_display_name

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refresh_token"
IS_LOGGED_IN_KEY = "is_logged_in"
USER_FIELDS = ("first_name", "last_name", "email", "phone", "user_type", "user_id")


class SessionStore:
    """
    Owns the token pair and the user snapshot for the whole process.

    Every write replaces its keys inside one database transaction while
    holding the store lock, so concurrent readers see either the old or the
    new record, never a mix. There is no refresh flow: a call rejected with
    401 requires logging in again.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self._lock = threading.RLock()
        init_db(session_factory.kw.get("bind"))

    # ---- writes ----

    def start_session(self, token: str, refresh_token: Optional[str], user: Optional[schemas.User]) -> schemas.Session:
        """Store a fresh login result (login, OTP verify, signup auto-login)."""
        with self._lock:
            values = {
                TOKEN_KEY: token,
                REFRESH_TOKEN_KEY: refresh_token,
                IS_LOGGED_IN_KEY: "true",
            }
            if user is not None:
                values.update(self._user_values(user))
            else:
                values.update(dict.fromkeys(USER_FIELDS))
            self._write(values)
            logger.info(f"Session started for user {user.user_id if user else None}")
            return self.snapshot()

    def save_token(self, token: str, refresh_token: Optional[str] = None):
        """Store the token and mark the session logged in. A missing refresh token keeps the stored one."""
        values = {TOKEN_KEY: token, IS_LOGGED_IN_KEY: "true"}
        if refresh_token is not None:
            values[REFRESH_TOKEN_KEY] = refresh_token
        with self._lock:
            self._write(values)

    def save_user_data(self, user: schemas.User):
        """Overwrite every cached user field; fields absent from `user` become unset."""
        with self._lock:
            self._write(self._user_values(user))

    def logout(self):
        """Clear tokens, login flag and user snapshot in a single commit."""
        with self._lock:
            db = self.session_factory()
            try:
                db.query(models.Preference).delete()
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
        logger.info("Session cleared")

    # ---- reads ----

    def get_auth_token(self) -> Optional[str]:
        return self._read().get(TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        return self._read().get(REFRESH_TOKEN_KEY)

    def is_logged_in(self) -> bool:
        """True only when the login flag is set AND a token is present."""
        values = self._read()
        return values.get(IS_LOGGED_IN_KEY) == "true" and values.get(TOKEN_KEY) is not None

    def get_user_id(self) -> Optional[str]:
        return self._read().get("user_id")

    def get_current_user(self) -> Optional[schemas.User]:
        values = self._read()
        if not any(values.get(field) is not None for field in USER_FIELDS):
            return None
        return schemas.User(**{field: values.get(field) for field in USER_FIELDS})

    def get_current_user_name(self) -> Optional[str]:
        values = self._read()
        return get_user_display_name(values.get("first_name"), values.get("last_name"))

    def snapshot(self) -> schemas.Session:
        """Consistent copy of the whole session record."""
        with self._lock:
            values = self._read()
            user = self.get_current_user()
        token = values.get(TOKEN_KEY)
        return schemas.Session(
            access_token=token,
            refresh_token=values.get(REFRESH_TOKEN_KEY),
            is_authenticated=values.get(IS_LOGGED_IN_KEY) == "true" and token is not None,
            current_user=user,
        )

    # ---- storage ----

    @staticmethod
    def _user_values(user: schemas.User) -> dict:
        return {field: getattr(user, field) for field in USER_FIELDS}

    def _read(self) -> dict:
        with self._lock:
            db = self.session_factory()
            try:
                rows = db.query(models.Preference).all()
                return {row.key: row.value for row in rows if row.value is not None}
            finally:
                db.close()

    def _write(self, values: dict):
        db = self.session_factory()
        try:
            for key, value in values.items():
                if value is None:
                    db.query(models.Preference).filter(models.Preference.key == key).delete()
                else:
                    db.merge(models.Preference(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
