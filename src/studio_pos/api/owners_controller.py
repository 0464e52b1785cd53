from __future__ import annotations

from flask import Flask, Response, jsonify, request

from ..container import Container
from .common import current_context, int_arg, json_body, login_required, owner_json, owner_ref_from_path

OWNER_PATH = "/api/owners/<owner_type>/<int:owner_id>"

FAMILY_FIELDS = ("first_name", "last_name", "birthday")
PROFILE_FIELDS = FAMILY_FIELDS + ("phone",)


def _profile_fields(data: dict, allowed: tuple) -> dict:
    """Only the keys the client actually sent; missing means unchanged."""
    return {k: data[k] for k in allowed if data.get(k) is not None}


def register(app: Flask, container: Container) -> None:
    @app.get("/api/owners/search", endpoint="search_owners")
    @login_required
    def search_owners():
        current_context().require_staff()
        owners = container.owner_service.resolve(request.args.get("q", ""), limit=int_arg("limit", 20))
        return jsonify({"owners": [owner_json(o) for o in owners]})

    @app.get(OWNER_PATH, endpoint="get_owner")
    @login_required
    def get_owner(owner_type: str, owner_id: int):
        owner = container.owner_service.get(owner_ref_from_path(owner_type, owner_id))
        current_context().require_can_act_for(owner)
        return jsonify(owner_json(owner))

    @app.get(OWNER_PATH + "/qr.png", endpoint="owner_qr")
    @login_required
    def owner_qr(owner_type: str, owner_id: int):
        ref = owner_ref_from_path(owner_type, owner_id)
        current_context().require_can_act_for(container.owner_service.get(ref))
        return Response(container.owner_service.qr_png(ref), mimetype="image/png")

    @app.post(OWNER_PATH + "/identifiers", endpoint="issue_identifiers")
    @login_required
    def issue_identifiers(owner_type: str, owner_id: int):
        current_context().require_staff()
        owner = container.owner_service.issue_identifiers(owner_ref_from_path(owner_type, owner_id))
        return jsonify(owner_json(owner))

    @app.patch(OWNER_PATH, endpoint="update_owner")
    @login_required
    def update_owner(owner_type: str, owner_id: int):
        data = json_body()
        owner = container.customer_service.update_profile(
            current_context(),
            owner_ref_from_path(owner_type, owner_id),
            **_profile_fields(data, PROFILE_FIELDS),
        )
        return jsonify(owner_json(owner))

    @app.get("/api/owners/user/<int:user_id>/family", endpoint="list_family")
    @login_required
    def list_family(user_id: int):
        members = container.customer_service.list_family(current_context(), user_id)
        return jsonify({"family_members": [owner_json(m) for m in members]})

    @app.post("/api/owners/user/<int:user_id>/family", endpoint="add_family_member")
    @login_required
    def add_family_member(user_id: int):
        data = json_body()
        member = container.customer_service.add_family_member(
            current_context(),
            user_id,
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            birthday=data.get("birthday"),
        )
        return jsonify(owner_json(member)), 201

    @app.put("/api/family-members/<int:member_id>", endpoint="update_family_member")
    @login_required
    def update_family_member(member_id: int):
        member = container.customer_service.update_family_member(
            current_context(),
            member_id,
            **_profile_fields(json_body(), FAMILY_FIELDS),
        )
        return jsonify(owner_json(member))

    @app.delete("/api/family-members/<int:member_id>", endpoint="delete_family_member")
    @login_required
    def delete_family_member(member_id: int):
        container.customer_service.delete_family_member(current_context(), member_id)
        return jsonify({"ok": True})

    @app.get("/api/birthdays/today", endpoint="todays_birthdays")
    @login_required
    def todays_birthdays():
        owners = container.customer_service.todays_birthdays(current_context())
        return jsonify({"birthdays": [owner_json(o) for o in owners]})
