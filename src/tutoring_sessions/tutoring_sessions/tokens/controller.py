from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.geo import Coordinate
from ..common.responses import error_response, server_error
from ..container import Container
from ..core.exceptions import DomainError, ValidationError
from .issuer import render_qr_png
from .model import ChildRef, ParentProfile
from .parser import token_to_dict


def _parent_from_json(data: dict) -> ParentProfile:
    try:
        home = data["home_location"]
        return ParentProfile(
            parent_id=str(data["parent_id"]),
            parent_name=str(data["parent_name"]),
            family_code=str(data.get("family_code") or ""),
            children=tuple(
                ChildRef(id=str(c["id"]), full_name=str(c["full_name"]), class_name=str(c.get("class_name") or ""))
                for c in data.get("children") or []
            ),
            home_location=Coordinate(latitude=float(home["latitude"]), longitude=float(home["longitude"])),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid parent profile: {e}")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tokens", methods=["POST"], endpoint="api_issue_token")
    def api_issue_token():
        """Issue a check-in token for a parent and return its JSON payload."""
        try:
            token = container.token_issuer.issue(_parent_from_json(request.get_json(silent=True) or {}))
            return jsonify({"success": True, "token": token_to_dict(token)}), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while issuing the token")

    @app.route("/api/tokens/qr", methods=["POST"], endpoint="api_issue_token_qr")
    def api_issue_token_qr():
        """Issue a check-in token and return it as a printable QR image."""
        try:
            token = container.token_issuer.issue(_parent_from_json(request.get_json(silent=True) or {}))
            return send_file(io.BytesIO(render_qr_png(token)), mimetype="image/png")
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while generating the QR code")
