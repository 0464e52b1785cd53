from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .common import current_context, json_body, login_required, owner_json


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=7)

    @app.post("/api/auth/login", endpoint="login")
    def login():
        data = json_body()
        ctx = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        session["user_id"] = ctx.user_id
        session["name"] = ctx.full_name
        session["role"] = ctx.role.value
        return jsonify({"user_id": ctx.user_id, "full_name": ctx.full_name, "role": ctx.role.value})

    @app.post("/api/auth/register", endpoint="register")
    def register_customer():
        data = json_body()
        owner = container.customer_service.register(
            email=data.get("email", ""),
            password=data.get("password", ""),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            phone=data.get("phone", ""),
            birthday=data.get("birthday"),
        )

        session.clear()
        session["user_id"] = owner.ref.owner_id
        session["name"] = owner.full_name
        session["role"] = Role.CUSTOMER.value
        return jsonify(owner_json(owner)), 201

    @app.post("/api/auth/logout", endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"ok": True})

    @app.get("/api/auth/me", endpoint="me")
    @login_required
    def me():
        ctx = current_context()
        return jsonify({"user_id": ctx.user_id, "full_name": ctx.full_name, "role": ctx.role.value})

    @app.post("/api/admin/staff", endpoint="create_staff")
    @login_required
    def create_staff():
        data = json_body()
        try:
            role = Role(data.get("role", Role.STAFF.value))
        except ValueError:
            raise ValidationError("Role is not valid")

        user_id = container.user_service.create_account(
            current_context(),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            phone=data.get("phone"),
            role=role,
        )
        return jsonify({"user_id": user_id}), 201

    @app.get("/api/admin/staff", endpoint="list_staff")
    @login_required
    def list_staff():
        staff = container.user_service.list_staff(current_context())
        return jsonify(
            {
                "staff": [
                    {
                        "user_id": u.user_id,
                        "full_name": u.full_name,
                        "email": u.email,
                        "role": u.role.value,
                        "is_active": u.is_active,
                    }
                    for u in staff
                ]
            }
        )

    @app.post("/api/admin/users/<int:user_id>/active", endpoint="set_user_active")
    @login_required
    def set_user_active(user_id: int):
        is_active = json_body().get("is_active")
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be true or false")
        if not container.user_service.set_active(current_context(), user_id, is_active=is_active):
            raise ValidationError("User not found")
        return jsonify({"user_id": user_id, "is_active": is_active})
