"""
SQLAlchemy ORM models for the Daps offer marketplace.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from daps.database.db import Base


class OfferStatus(str, enum.Enum):
    """Offer status enum. Admins may move an offer between any of these."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class User(Base):
    """Fan accounts with email/password authentication."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)  # Always stored lower-cased
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)  # NULL = unverified
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    offers = relationship("Offer", back_populates="user")
    email_verifications = relationship(
        "EmailVerification", back_populates="user", cascade="all, delete-orphan"
    )
    password_resets = relationship(
        "PasswordReset", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_users_email", "email"),)


class EmailVerification(Base):
    """Single-use email verification tokens."""

    __tablename__ = "email_verifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="email_verifications")

    __table_args__ = (Index("idx_email_verifications_user", "user_id"),)


class PasswordReset(Base):
    """Single-use password reset tokens."""

    __tablename__ = "password_resets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="password_resets")

    __table_args__ = (Index("idx_password_resets_user", "user_id"),)


class Athlete(Base):
    """Athletes fans can make offers to."""

    __tablename__ = "athletes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(200), nullable=False, unique=True)
    name = Column(String, nullable=False)
    team = Column(String, nullable=False)
    league = Column(String(20), nullable=False)
    image_url = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)
    external_id = Column(String, nullable=True)  # Provider player id when imported from the directory
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Games are owned by the athlete; offers only reference it
    games = relationship("Game", back_populates="athlete", cascade="all, delete-orphan")
    offers = relationship("Offer", back_populates="athlete", passive_deletes=True)

    __table_args__ = (
        Index("idx_athletes_name", "name"),
        Index("idx_athletes_team", "team"),
    )


class Game(Base):
    """A scheduled game for an athlete's team."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    athlete_id = Column(Integer, ForeignKey("athletes.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    opponent = Column(String, nullable=False)
    venue = Column(String, nullable=True)
    source = Column(String(50), nullable=True)  # Provider that produced this row
    external_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    athlete = relationship("Athlete", back_populates="games")

    __table_args__ = (
        UniqueConstraint("athlete_id", "date", "opponent", name="uq_games_athlete_date_opponent"),
        Index("idx_games_athlete_date", "athlete_id", "date"),
    )


class Offer(Base):
    """A fan's offer to an athlete for an experience."""

    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    athlete_id = Column(Integer, ForeignKey("athletes.id"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="SET NULL"), nullable=True)

    # Contact snapshot captured at submission time
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)

    exp_desc = Column(Text, nullable=True)
    exp_type = Column(String, nullable=True)
    game_desc = Column(String, nullable=True)

    # Display-only payment descriptor
    offered = Column(Float, default=0.0, nullable=False)
    payment_method = Column(String, nullable=True)
    payment_last4 = Column(String(4), nullable=True)

    status = Column(String(20), default=OfferStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="offers")
    athlete = relationship("Athlete", back_populates="offers")
    game = relationship("Game")
    messages = relationship("Message", back_populates="offer", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_offers_user", "user_id"),
        Index("idx_offers_athlete", "athlete_id"),
        Index("idx_offers_status", "status"),
    )


class Message(Base):
    """A note a fan sends to the ops team about one of their offers."""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False)
    recipient = Column(String, nullable=False)
    subject = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    sent_at = Column(DateTime(timezone=True), server_default=func.now())

    offer = relationship("Offer", back_populates="messages")

    __table_args__ = (Index("idx_messages_offer_sent", "offer_id", "sent_at"),)
