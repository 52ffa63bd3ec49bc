from __future__ import annotations

import json

from flask import Flask, jsonify, request

from ..common.responses import error_response, server_error
from ..container import Container
from ..core.exceptions import DomainError, ValidationError
from .location import ReportedLocationProvider
from .model import Permissions, SessionForm


def _json_object(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be a JSON object", {key: "must be an object"})
    return value


def register(app: Flask, container: Container) -> None:
    @app.route("/api/checkin", methods=["POST"], endpoint="api_checkin")
    def api_checkin():
        """Run one check-in attempt: permissions, device position, QR payload and form."""
        data = request.get_json(silent=True) or {}
        try:
            if not isinstance(data, dict):
                raise ValidationError("Request body must be a JSON object")
            teacher_id = str(data.get("teacher_id") or "").strip()
            teacher_name = str(data.get("teacher_name") or "").strip()
            if not teacher_id or not teacher_name:
                raise ValidationError("Teacher identity is required", {"teacher_id": "required"})

            perms = _json_object(data, "permissions")
            raw_token = data.get("qr_payload") or ""
            if isinstance(raw_token, dict):
                raw_token = json.dumps(raw_token)
            session = container.checkin_service.check_in(
                teacher_id=teacher_id,
                teacher_name=teacher_name,
                permissions=Permissions(camera=bool(perms.get("camera")), location=bool(perms.get("location"))),
                location_provider=ReportedLocationProvider(data.get("location")),
                raw_token=raw_token,
                form=SessionForm.from_dict(_json_object(data, "form")),
            )
            return jsonify({"success": True, "session": session.to_dict()}), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while registering the session")
