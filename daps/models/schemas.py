"""
Pydantic models for API request/response validation.

Request bodies accept both snake_case and the camelCase names browser
clients send. Required-field checks happen in the service layer so missing
input surfaces as a 400 with a readable message.
"""

from typing import Optional, List, Union
from pydantic import BaseModel, Field, ConfigDict


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Account registration."""

    model_config = ConfigDict(populate_by_name=True)
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")


class EmailRequest(BaseModel):
    """Body carrying only an email (resend verification, request reset)."""

    email: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str


class ResetPasswordRequest(BaseModel):
    """Redeem a password reset token."""

    model_config = ConfigDict(populate_by_name=True)
    token: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")


class MeResponse(BaseModel):
    """The signed-in user, in the shape the web client expects."""

    model_config = ConfigDict(populate_by_name=True)
    id: int
    email: str
    first_name: str = Field(serialization_alias="firstName")
    last_name: str = Field(serialization_alias="lastName")


# ---------------------------------------------------------------------------
# Athletes
# ---------------------------------------------------------------------------

class AthleteCreate(BaseModel):
    """Admin athlete creation."""

    model_config = ConfigDict(populate_by_name=True)
    name: Optional[str] = None
    team: Optional[str] = None
    league: Optional[str] = None
    slug: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    active: bool = True
    featured: bool = False


class AthleteUpdate(BaseModel):
    """Partial athlete update; only fields sent are applied."""

    model_config = ConfigDict(populate_by_name=True)
    name: Optional[str] = None
    team: Optional[str] = None
    league: Optional[str] = None
    slug: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    active: Optional[bool] = None
    featured: Optional[bool] = None


class SyncResultResponse(BaseModel):
    success: bool
    count: int
    message: str
    refreshed: bool


class AthleteResponse(BaseModel):
    id: int
    slug: str
    name: str
    team: str
    league: str
    image_url: str = ""
    active: bool
    featured: bool
    external_id: Optional[str] = None
    created_at: Optional[str] = None
    schedule_sync: Optional[SyncResultResponse] = None


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------

class GameResponse(BaseModel):
    id: int
    athlete_id: int
    date: str
    opponent: str
    venue: Optional[str] = None
    source: Optional[str] = None
    external_id: Optional[str] = None


class GameCreate(BaseModel):
    """Admin single-game creation."""

    model_config = ConfigDict(populate_by_name=True)
    athlete_id: Optional[Union[int, str]] = Field(default=None, alias="athleteId")
    date: Optional[str] = None
    opponent: Optional[str] = None
    venue: Optional[str] = None


class GameRow(BaseModel):
    date: Optional[str] = None
    opponent: Optional[str] = None
    venue: Optional[str] = None


class GameBulkCreate(BaseModel):
    """Admin bulk game creation."""

    model_config = ConfigDict(populate_by_name=True)
    athlete_id: Optional[Union[int, str]] = Field(default=None, alias="athleteId")
    rows: Optional[List[GameRow]] = None


class CountResponse(BaseModel):
    count: int


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------

class OfferCreate(BaseModel):
    """Offer submitted by a signed-in fan."""

    model_config = ConfigDict(populate_by_name=True)
    athlete_id: Optional[Union[int, str]] = Field(default=None, alias="athleteId")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    exp_desc: Optional[str] = Field(default=None, alias="expDesc")
    exp_type: Optional[str] = Field(default=None, alias="expType")
    game_desc: Optional[str] = Field(default=None, alias="gameDesc")
    game_id: Optional[int] = Field(default=None, alias="gameId")
    offered: Optional[Union[float, str]] = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    payment_last4: Optional[str] = Field(default=None, alias="paymentLast4")


class OfferStatusUpdate(BaseModel):
    status: Optional[str] = None


class OfferCustomer(BaseModel):
    name: str
    email: str
    phone: str


class OfferPayment(BaseModel):
    offered: float
    currency: str
    method: str
    last4: str


class OfferExperience(BaseModel):
    desc: str
    type: str


class OfferGame(BaseModel):
    id: Optional[int] = None
    desc: str


class OfferAthlete(BaseModel):
    id: Union[str, int]
    name: str
    team: str
    league: str
    image: str
    active: bool


class AdminOfferResponse(BaseModel):
    """Offer as shown in the admin console."""

    id: int
    status: str
    customer: OfferCustomer
    payment: OfferPayment
    experience: OfferExperience
    game: OfferGame
    athlete: Optional[OfferAthlete] = None
    ts: Optional[str] = None


class UserOfferResponse(BaseModel):
    """Offer as shown to the customer who made it."""

    id: int
    status: str
    offered: float
    exp_desc: Optional[str] = None
    exp_type: str
    game_desc: str
    athlete: Optional[OfferAthlete] = None
    created_at: Optional[str] = None


class MessageCreate(BaseModel):
    subject: Optional[str] = None
    body: Optional[str] = None


class MessageResponse(BaseModel):
    id: int
    offer_id: int
    to: str
    subject: str
    body: str
    sent_at: Optional[str] = None


class MessageOffer(BaseModel):
    id: int
    status: str
    customer_name: str
    customer_email: str
    athlete: Optional[OfferAthlete] = None


class AdminMessageResponse(MessageResponse):
    """A fan message with the offer it is about, for the ops inbox."""

    offer: MessageOffer


# ---------------------------------------------------------------------------
# Player directory and teams
# ---------------------------------------------------------------------------

class PlayerResponse(BaseModel):
    external_id: str
    name: str
    team: str
    league: str
    position: Optional[str] = None
    image_url: Optional[str] = None


class TeamResponse(BaseModel):
    key: str
    name: str
    abbrev: str
    league: str
