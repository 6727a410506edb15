from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, Float, Index, DateTime, UniqueConstraint,
)
from db.database import Base


class UserProfileRecord(Base):
    __tablename__ = "user_profiles"

    id = Column(Text, primary_key=True)  # opaque id from the identity provider
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    image = Column(Text)
    sex = Column(Text)
    health_history = Column(Text)  # JSON array
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SavedReportRecord(Base):
    __tablename__ = "saved_reports"

    # Breaks ties between reports saved within the same timestamp.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False)
    file_name = Column(Text, nullable=False)
    file_type = Column(Text, nullable=False)  # MIME type or "symptom-check"
    result_json = Column(Text, nullable=False)  # AnalysisResult document

    __table_args__ = (
        Index("ix_saved_reports_user_timestamp", "user_id", "timestamp"),
    )


class DailyLogRecord(Base):
    __tablename__ = "daily_logs"

    # Insertion order backs stable ordering of same-date entries.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # ISO date or datetime string
    mood = Column(Integer, nullable=False)
    stress = Column(Integer, nullable=False)
    sleep_quality = Column(Integer, nullable=False)
    pain = Column(Integer, nullable=False)
    energy = Column(Integer, nullable=False)
    notes = Column(Text)
    steps = Column(Integer)
    heart_rate = Column(Integer)
    sleep_hours = Column(Float)
    calories = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_daily_logs_user", "user_id"),
    )


class EmergencyProfileRecord(Base):
    __tablename__ = "emergency_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    blood_group = Column(Text, nullable=False, default="")
    allergies = Column(Text)  # JSON array
    medications = Column(Text)  # JSON array
    chronic_conditions = Column(Text)  # JSON array
    contacts = Column(Text)  # JSON array of {name, relation, phone}
    doctor_name = Column(Text)
    doctor_phone = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_emergency_profiles_user"),
    )


class ChatMessageRecord(Base):
    __tablename__ = "chat_messages"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    position = Column(Integer, nullable=False)
    message_id = Column(Text, nullable=False)
    role = Column(Text, nullable=False)  # user | assistant
    text = Column(Text, nullable=False)

    __table_args__ = (
        Index("ix_chat_messages_user_position", "user_id", "position"),
    )
