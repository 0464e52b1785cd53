from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from .common import (
    check_in_json,
    check_in_result_json,
    current_context,
    int_arg,
    json_body,
    login_required,
    owner_ref_from_body,
    owner_ref_from_path,
)
from .owners_controller import OWNER_PATH


def register(app: Flask, container: Container) -> None:
    @app.post("/api/check-ins", endpoint="check_in")
    @login_required
    def check_in():
        """Accepts either an owner id pair or a scanned/typed ``identifier``."""

        data = json_body()
        ctx = current_context()
        ctx.require_staff()

        identifier = (data.get("identifier") or "").strip()
        if identifier:
            ref = container.owner_service.resolve_one(identifier).ref
        else:
            ref = owner_ref_from_body(data)

        birthday = data.get("birthday")
        if birthday is None:
            birthday = False
        if not isinstance(birthday, bool):
            raise ValidationError("birthday must be true or false")

        result = container.check_in_service.check_in(
            ctx,
            ref,
            birthday=birthday,
            notes=data.get("notes"),
        )
        return jsonify(check_in_result_json(result)), 201 if result.allowed else 200

    @app.get("/api/check-ins/today", endpoint="today_check_ins")
    @login_required
    def today_check_ins():
        records = container.check_in_service.today_check_ins(current_context())
        return jsonify({"check_ins": [check_in_json(r) for r in records]})

    @app.get(OWNER_PATH + "/check-ins", endpoint="owner_check_ins")
    @login_required
    def owner_check_ins(owner_type: str, owner_id: int):
        ref = owner_ref_from_path(owner_type, owner_id)
        current_context().require_can_act_for(container.owner_service.get(ref))
        records = container.check_in_service.history_for_owner(ref, limit=int_arg("limit", DEFAULT_HISTORY_LIMIT))
        return jsonify({"check_ins": [check_in_json(r) for r in records]})

    @app.get(OWNER_PATH + "/birthday-eligible", endpoint="birthday_eligible")
    @login_required
    def birthday_eligible(owner_type: str, owner_id: int):
        ref = owner_ref_from_path(owner_type, owner_id)
        current_context().require_can_act_for(container.owner_service.get(ref))
        return jsonify({"eligible": container.check_in_service.is_birthday_eligible(ref)})
