"""
Offer state machine.

Offers move freely between pending, approved and declined; the only check is
that the target status is one of those. A status change commits first and
then emails the customer from a background task, so delivery problems never
fail the update.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from daps.database.models import Game, Message, Offer, OfferStatus
from daps.services import email_service
from daps.services.athlete_service import resolve_athlete
from daps.services.auth_service import normalize_email
from daps.services.errors import NotFoundError, ValidationError
from daps.utils.constants import MESSAGE_SUBJECT_MAX_LENGTH, OFFER_CURRENCY, OPS_EMAIL
from daps.utils.datetime_utils import ensure_utc, format_short_date

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "card"
DEFAULT_EXPERIENCE_TYPE = "Other"
GAME_TBD = "Game TBD"

# Strong references to in-flight notification tasks
_pending_notifications: Set[asyncio.Task] = set()


def _parse_offered(value) -> float:
    """Parse the offered amount; anything unparsable counts as 0."""
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if amount == amount else 0.0  # NaN


def _game_label(team: str, game: Game) -> str:
    return f"{team} vs {game.opponent} - {format_short_date(ensure_utc(game.date))}"


def _describe_game(offer: Offer) -> str:
    if offer.game_desc:
        return offer.game_desc
    game = offer.game
    if game is not None and offer.athlete is not None:
        return _game_label(offer.athlete.team, game)
    return GAME_TBD


def _athlete_summary(offer: Offer) -> Optional[Dict]:
    athlete = offer.athlete
    if athlete is None:
        return None
    return {
        "id": athlete.slug or athlete.id,
        "name": athlete.name,
        "team": athlete.team,
        "league": athlete.league,
        "image": athlete.image_url or "",
        "active": athlete.active,
    }


def _customer_email(offer: Offer) -> Optional[str]:
    if offer.customer_email:
        return offer.customer_email
    return offer.user.email if offer.user is not None else None


def _offer_to_admin_dict(offer: Offer) -> Dict:
    """
    Admin projection of an offer.

    Pure function of the stored row and its loaded user/athlete/game.
    """
    user = offer.user
    if offer.customer_name:
        customer_name = offer.customer_name
    elif user is not None:
        customer_name = f"{user.first_name} {user.last_name}".strip()
    else:
        customer_name = ""

    created_at = ensure_utc(offer.created_at)
    return {
        "id": offer.id,
        "status": offer.status,
        "customer": {
            "name": customer_name,
            "email": _customer_email(offer) or "",
            "phone": offer.customer_phone or "",
        },
        "payment": {
            "offered": offer.offered or 0.0,
            "currency": OFFER_CURRENCY,
            "method": offer.payment_method or DEFAULT_PAYMENT_METHOD,
            "last4": offer.payment_last4 or "",
        },
        "experience": {
            "desc": offer.exp_desc or "",
            "type": offer.exp_type or DEFAULT_EXPERIENCE_TYPE,
        },
        "game": {
            "id": offer.game_id,
            "desc": _describe_game(offer),
        },
        "athlete": _athlete_summary(offer),
        "ts": created_at.isoformat() if created_at else None,
    }


def _offer_to_user_dict(offer: Offer) -> Dict:
    """Projection of an offer for the customer who made it."""
    created_at = ensure_utc(offer.created_at)
    return {
        "id": offer.id,
        "status": offer.status,
        "offered": offer.offered or 0.0,
        "exp_desc": offer.exp_desc,
        "exp_type": offer.exp_type or DEFAULT_EXPERIENCE_TYPE,
        "game_desc": _describe_game(offer),
        "athlete": _athlete_summary(offer),
        "created_at": created_at.isoformat() if created_at else None,
    }


def _offer_query():
    return select(Offer).options(
        selectinload(Offer.user),
        selectinload(Offer.athlete),
        selectinload(Offer.game),
    ).execution_options(populate_existing=True)


async def _load_offer(session: AsyncSession, offer_id: int) -> Offer:
    result = await session.execute(_offer_query().where(Offer.id == offer_id))
    offer = result.scalar_one_or_none()
    if offer is None:
        raise NotFoundError(f"Offer {offer_id} not found")
    return offer


async def create_offer(
    session: AsyncSession,
    user_id: int,
    athlete_id: Union[int, str, None],
    customer_name: Optional[str],
    customer_email: Optional[str],
    customer_phone: Optional[str] = None,
    exp_desc: Optional[str] = None,
    exp_type: Optional[str] = None,
    game_desc: Optional[str] = None,
    game_id: Optional[int] = None,
    offered=None,
    payment_method: Optional[str] = None,
    payment_last4: Optional[str] = None,
) -> Dict:
    """
    Submit an offer on behalf of a signed-in user. New offers are always pending.

    Args:
        athlete_id: Athlete id or slug
        offered: Amount; unparsable values are stored as 0
        payment_last4: Display-only; only the last four characters are kept

    Raises:
        ValidationError: Missing athlete/customer name/customer email, or a
            game that does not belong to the athlete
        NotFoundError: Unknown athlete
    """
    customer_name = (customer_name or "").strip()
    customer_email = normalize_email(customer_email)
    if athlete_id is None or str(athlete_id).strip() == "":
        raise ValidationError("Athlete is required")
    if not customer_name or not customer_email:
        raise ValidationError("Customer name and email are required")

    athlete = await resolve_athlete(session, athlete_id)

    game_desc = (game_desc or "").strip() or None
    if game_id is not None:
        game = await session.get(Game, game_id)
        if game is None or game.athlete_id != athlete.id:
            raise ValidationError("Game does not belong to this athlete")
        # Schedule refreshes replace game rows, so keep the label the fan saw
        if game_desc is None:
            game_desc = _game_label(athlete.team, game)

    last4 = (payment_last4 or "").strip()[-4:] or None

    offer = Offer(
        user_id=user_id,
        athlete_id=athlete.id,
        game_id=game_id,
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=(customer_phone or "").strip() or None,
        exp_desc=exp_desc,
        exp_type=exp_type,
        game_desc=game_desc,
        offered=_parse_offered(offered),
        payment_method=payment_method,
        payment_last4=last4,
        status=OfferStatus.PENDING.value,
    )
    session.add(offer)
    await session.commit()
    logger.info(f"Created offer {offer.id} by user {user_id} for athlete {athlete.id}")

    offer = await _load_offer(session, offer.id)
    return _offer_to_admin_dict(offer)


async def _notify_status_change(to_email: Optional[str], snapshot: Dict):
    try:
        sent = await email_service.send_offer_status_email(to_email, snapshot)
        if not sent:
            logger.warning(f"Status email for offer {snapshot.get('id')} was not sent")
    except Exception as e:
        logger.warning(f"Status email for offer {snapshot.get('id')} failed: {e}", exc_info=True)


def _schedule_notification(to_email: Optional[str], snapshot: Dict):
    task = asyncio.create_task(_notify_status_change(to_email, snapshot))
    _pending_notifications.add(task)
    task.add_done_callback(_pending_notifications.discard)


async def drain_notifications():
    """Wait for every outstanding status notification to finish."""
    while _pending_notifications:
        await asyncio.gather(*list(_pending_notifications), return_exceptions=True)


async def update_offer_status(session: AsyncSession, offer_id: int, status: Optional[str]) -> Dict:
    """
    Move an offer to a new status and notify the customer.

    Raises:
        ValidationError: Unrecognized status (stored status unchanged)
        NotFoundError: Unknown offer
    """
    valid = {s.value for s in OfferStatus}
    normalized = (status or "").strip().lower()
    if normalized not in valid:
        raise ValidationError(f"Invalid status {status!r}; expected one of {sorted(valid)}")

    offer = await _load_offer(session, offer_id)
    previous = offer.status
    offer.status = normalized
    await session.commit()
    logger.info(f"Offer {offer_id} status {previous} -> {normalized}")

    offer = await _load_offer(session, offer_id)
    projection = _offer_to_admin_dict(offer)

    snapshot = {
        "id": offer.id,
        "status": offer.status,
        "offered": offer.offered,
        "exp_desc": offer.exp_desc,
        "game_desc": projection["game"]["desc"],
        "athlete": projection["athlete"],
    }
    try:
        _schedule_notification(_customer_email(offer), snapshot)
    except RuntimeError as e:
        logger.warning(f"Could not schedule status email for offer {offer_id}: {e}")
    return projection


async def list_offers_for_admin(session: AsyncSession) -> List[Dict]:
    """Every offer, newest first, in the admin projection."""
    result = await session.execute(_offer_query().order_by(Offer.created_at.desc(), Offer.id.desc()))
    return [_offer_to_admin_dict(offer) for offer in result.scalars().all()]


async def get_offer_for_admin(session: AsyncSession, offer_id: int) -> Dict:
    offer = await _load_offer(session, offer_id)
    return _offer_to_admin_dict(offer)


async def list_offers_for_user(session: AsyncSession, user_id: int) -> List[Dict]:
    """A user's own offers, newest first."""
    result = await session.execute(
        _offer_query().where(Offer.user_id == user_id).order_by(Offer.created_at.desc(), Offer.id.desc())
    )
    return [_offer_to_user_dict(offer) for offer in result.scalars().all()]


async def delete_offer(session: AsyncSession, offer_id: int) -> bool:
    """
    Delete an offer.

    Raises:
        NotFoundError: Unknown offer
    """
    offer = await session.get(Offer, offer_id)
    if offer is None:
        raise NotFoundError(f"Offer {offer_id} not found")
    await session.delete(offer)
    await session.commit()
    logger.info(f"Deleted offer {offer_id}")
    return True


# ============================================================================
# Offer messages
# ============================================================================

def _message_to_dict(message: Message) -> Dict:
    sent_at = ensure_utc(message.sent_at)
    return {
        "id": message.id,
        "offer_id": message.offer_id,
        "to": message.recipient,
        "subject": message.subject,
        "body": message.body,
        "sent_at": sent_at.isoformat() if sent_at else None,
    }


async def _load_own_offer(session: AsyncSession, user_id: int, offer_id: int) -> Offer:
    # Someone else's offer looks exactly like a missing one
    result = await session.execute(select(Offer).where(Offer.id == offer_id, Offer.user_id == user_id))
    offer = result.scalar_one_or_none()
    if offer is None:
        raise NotFoundError("Offer not found")
    return offer


async def post_offer_message(
    session: AsyncSession, user_id: int, offer_id: int, subject: Optional[str], body: Optional[str]
) -> Dict:
    """
    Send a message to ops about one of the user's own offers.

    Raises:
        NotFoundError: The offer does not exist or belongs to another user
        ValidationError: Blank subject or body, or an overlong subject
    """
    offer = await _load_own_offer(session, user_id, offer_id)

    subject = (subject or "").strip()
    body = (body or "").strip()
    if not subject or not body:
        raise ValidationError("Subject and body are required")
    if len(subject) > MESSAGE_SUBJECT_MAX_LENGTH:
        raise ValidationError(f"Subject must be at most {MESSAGE_SUBJECT_MAX_LENGTH} characters")

    message = Message(offer_id=offer.id, recipient=OPS_EMAIL, subject=subject, body=body)
    session.add(message)
    await session.commit()
    await session.refresh(message)
    logger.info(f"User {user_id} sent message {message.id} on offer {offer.id}")
    return _message_to_dict(message)


async def list_offer_messages(session: AsyncSession, user_id: int, offer_id: int) -> List[Dict]:
    """
    Messages on one of the user's own offers, newest first.

    Raises:
        NotFoundError: The offer does not exist or belongs to another user
    """
    offer = await _load_own_offer(session, user_id, offer_id)
    result = await session.execute(
        select(Message).where(Message.offer_id == offer.id).order_by(Message.sent_at.desc(), Message.id.desc())
    )
    return [_message_to_dict(message) for message in result.scalars().all()]


async def list_messages_for_admin(session: AsyncSession) -> List[Dict]:
    """Every message, newest first, with a summary of the offer it is about."""
    result = await session.execute(
        select(Message)
        .options(selectinload(Message.offer).selectinload(Offer.athlete))
        .order_by(Message.sent_at.desc(), Message.id.desc())
    )
    messages = []
    for message in result.scalars().all():
        offer = message.offer
        data = _message_to_dict(message)
        data["offer"] = {
            "id": offer.id,
            "status": offer.status,
            "customer_name": offer.customer_name,
            "customer_email": offer.customer_email,
            "athlete": _athlete_summary(offer),
        }
        messages.append(data)
    return messages
