from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Flask, jsonify

from ..cards.expiration import effective_status
from ..container import Container
from ..core.exceptions import ValidationError
from .common import (
    card_json,
    card_type_json,
    current_context,
    json_body,
    login_required,
    owner_ref_from_body,
    owner_ref_from_path,
)
from .owners_controller import OWNER_PATH


def _tip_cents(data: dict) -> int:
    try:
        return int(data.get("tip_cents", 0))
    except (TypeError, ValueError):
        raise ValidationError("Tip must be a whole number of cents")


def register(app: Flask, container: Container) -> None:
    def _card_json(card):
        return card_json(card, status=effective_status(card, container.clock.today_iso()).value)

    @app.get("/api/card-types", endpoint="card_types")
    def card_types():
        return jsonify({"card_types": [card_type_json(t) for t in container.catalog_service.list_for_sale()]})

    @app.get(OWNER_PATH + "/cards", endpoint="owner_cards")
    @login_required
    def owner_cards(owner_type: str, owner_id: int):
        ref = owner_ref_from_path(owner_type, owner_id)
        current_context().require_can_act_for(container.owner_service.get(ref))
        current = container.ledger_service.active_card(ref)
        return jsonify(
            {
                "active_card": _card_json(current) if current else None,
                "cards": [_card_json(c) for c in container.ledger_service.cards_for_owner(ref)],
            }
        )

    @app.post("/api/checkout/quote", endpoint="checkout_quote")
    def checkout_quote():
        data = json_body()
        price = container.checkout_service.quote(data.get("card_type_id", 0), tip_cents=_tip_cents(data))
        return jsonify(
            {
                "subtotal_cents": price.subtotal_cents,
                "tax_cents": price.tax_cents,
                "tip_cents": price.tip_cents,
                "total_cents": price.total_cents,
            }
        )

    @app.post("/api/checkout", endpoint="checkout")
    @login_required
    def checkout():
        data = json_body()
        card = container.checkout_service.purchase(
            current_context(),
            owner_ref_from_body(data),
            data.get("card_type_id", 0),
            data.get("source_id", ""),
            tip_cents=_tip_cents(data),
        )
        return jsonify(_card_json(card)), 201

    @app.post("/api/admin/passes", endpoint="admin_pass")
    @login_required
    def admin_pass():
        data = json_body()
        try:
            amount_paid = Decimal(str(data.get("amount_paid", "0")))
        except InvalidOperation:
            raise ValidationError("Amount paid must be a number")

        card = container.ledger_service.issue_admin_pass(
            current_context(),
            owner_ref_from_body(data),
            data.get("class_count"),
            data.get("expiration_date", ""),
            amount_paid=amount_paid,
        )
        return jsonify(_card_json(card)), 201
