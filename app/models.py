from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash, never plaintext


class HealthData(Base):
    """One submitted measurement.

    Two record kinds share the table: body measurements fill
    height/weight/systolic/diastolic, oximetry fills spo2. Columns of the
    other kind stay NULL.
    """

    __tablename__ = "health_data"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
    height = Column(Float)
    weight = Column(Float)
    systolic = Column(Float)
    diastolic = Column(Float)
    spo2 = Column(Float)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class UserSession(Base):
    __tablename__ = "sessions"

    session_id = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
