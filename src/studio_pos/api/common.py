from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, current_app, g, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..cards.model import CardInstance, CardType
from ..checkins.model import CheckInRecord, CheckInResult
from ..common.validators import require_owner_choice
from ..core.enums import OwnerType
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CheckInFailedError,
    DomainError,
    PaymentError,
    UpstreamError,
    ValidationError,
)
from ..owners.model import Owner, OwnerRef
from ..users.context import RequestContext

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (PaymentError, 402),
    (UpstreamError, 502),
    (CheckInFailedError, 409),
)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        for exc_type, status in ERROR_STATUS:
            if isinstance(e, exc_type):
                return jsonify({"error": str(e)}), status
        logger.exception("Unmapped domain error")
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500


def login_required(view):
    """Reload the session user and expose it as ``g.ctx``.

    The account is read on every request so a deactivated user or a changed
    role takes effect without waiting for the session to expire.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            raise AuthenticationError("Please log in to continue")
        auth_service = current_app.extensions["studio_pos.container"].auth_service
        try:
            g.ctx = auth_service.context_for(session["user_id"])
        except AuthenticationError:
            session.clear()
            raise
        return view(*args, **kwargs)

    return wrapper


def current_context() -> RequestContext:
    return g.ctx


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def owner_ref_from_path(owner_type: str, owner_id: int) -> OwnerRef:
    try:
        return OwnerRef(OwnerType(owner_type), int(owner_id))
    except ValueError:
        raise ValidationError("Owner type must be 'user' or 'family_member'")


def owner_ref_from_body(data: dict) -> OwnerRef:
    user_id = data.get("user_id")
    member_id = data.get("family_member_id")
    require_owner_choice(user_id, member_id)
    try:
        return OwnerRef.user(user_id) if user_id else OwnerRef.family_member(member_id)
    except (TypeError, ValueError):
        raise ValidationError("Owner id must be a number")


def int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number")


def owner_json(owner: Owner) -> dict[str, Any]:
    return {
        "owner_type": owner.ref.owner_type.value,
        "owner_id": owner.ref.owner_id,
        "first_name": owner.first_name,
        "last_name": owner.last_name,
        "full_name": owner.full_name,
        "birthday": owner.birthday,
        "email": owner.email,
        "phone": owner.phone,
        "qr_code": owner.qr_code,
        "check_in_code": owner.check_in_code,
        "primary_user_id": owner.primary_user_id,
    }


def card_type_json(t: CardType) -> dict[str, Any]:
    return {
        "card_type_id": t.card_type_id,
        "name": t.name,
        "class_count": t.class_count,
        "expiration_months": t.expiration_months,
        "price": str(t.price),
        "price_per_class": str(t.price_per_class),
        "category": t.category.value,
        "description": t.description,
        "is_subscription": t.is_subscription,
    }


def card_json(c: CardInstance, *, status: Optional[str] = None) -> dict[str, Any]:
    return {
        "card_id": c.card_id,
        "owner_type": c.owner.owner_type.value,
        "owner_id": c.owner.owner_id,
        "card_type_id": c.card_type_id,
        "card_name": c.card_name,
        "total_classes": c.total_classes,
        "classes_remaining": c.classes_remaining,
        "is_subscription": c.is_subscription,
        "purchase_date": c.purchase_date,
        "expiration_date": c.expiration_date,
        "amount_paid": str(c.amount_paid),
        "tip_amount": str(c.tip_amount),
        "status": status or c.status.value,
        "issued_via": c.issued_via.value,
        "payment_reference": c.payment_reference,
    }


def check_in_json(r: CheckInRecord) -> dict[str, Any]:
    return {
        "check_in_id": r.check_in_id,
        "owner_type": r.owner.owner_type.value,
        "owner_id": r.owner.owner_id,
        "card_id": r.card_id,
        "checked_in_at": r.checked_in_at.isoformat(),
        "checked_in_on": r.checked_in_on,
        "performed_by": r.performed_by,
        "is_birthday_check_in": r.is_birthday_check_in,
        "classes_remaining": r.classes_remaining,
        "notes": r.notes,
    }


def check_in_result_json(result: CheckInResult) -> dict[str, Any]:
    return {
        "allowed": result.allowed,
        "message": result.message,
        "reason": result.reason.value if result.reason else None,
        "owner_name": result.owner_name,
        "card_name": result.card_name,
        "classes_remaining": result.classes_remaining,
        "check_in": check_in_json(result.record) if result.record else None,
    }
