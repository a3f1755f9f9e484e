from sqlalchemy import Column, String

from database import Base


class Preference(Base):
    """One key of the flat session store (token, login flag, user profile fields)."""
    __tablename__ = "preferences"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)
