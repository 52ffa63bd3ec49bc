from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.responses import error_response, server_error
from ..container import Container
from ..core.enums import SessionStatus
from ..core.exceptions import DomainError, ValidationError
from .model import SessionFilters


def _filters_from_query(args) -> SessionFilters:
    try:
        statuses = tuple(SessionStatus(s) for s in args.getlist("status") if s)
        flagged_raw = (args.get("flagged") or "").strip().lower()
        flagged = None if not flagged_raw else flagged_raw in {"1", "true", "yes"}
        date_from = parse_iso_date(args["date_from"]) if args.get("date_from") else None
        date_to = parse_iso_date(args["date_to"]) if args.get("date_to") else None
    except ValueError as e:
        raise ValidationError(f"Invalid filter: {e}")

    return SessionFilters(
        statuses=statuses,
        teacher_id=args.get("teacher_id") or None,
        student_id=args.get("student_id") or None,
        parent_id=args.get("parent_id") or None,
        subjects=tuple(s for s in args.getlist("subject") if s),
        flagged=flagged,
        date_from=date_from,
        date_to=date_to,
        search=args.get("q", ""),
    )


def _reviewer(data: dict) -> tuple[str, str]:
    reviewer_id = str(data.get("reviewer_id") or "").strip()
    reviewer_name = str(data.get("reviewer_name") or "").strip()
    if not reviewer_id or not reviewer_name:
        raise ValidationError("Reviewer identity is required", {"reviewer_id": "required"})
    return reviewer_id, reviewer_name


def register(app: Flask, container: Container) -> None:
    svc = container.validation_service

    @app.route("/api/sessions", methods=["GET"], endpoint="api_sessions")
    def api_sessions():
        try:
            rows = svc.list_sessions(_filters_from_query(request.args))
            return jsonify({"success": True, "sessions": [s.to_dict() for s in rows]})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while listing sessions")

    @app.route("/api/sessions/pending", methods=["GET"], endpoint="api_sessions_pending")
    def api_sessions_pending():
        try:
            rows = svc.list_pending(_filters_from_query(request.args))
            return jsonify({"success": True, "sessions": [s.to_dict() for s in rows]})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while listing pending sessions")

    @app.route("/api/sessions/stats", methods=["GET"], endpoint="api_sessions_stats")
    def api_sessions_stats():
        try:
            st = svc.stats()
            return jsonify(
                {
                    "success": True,
                    "stats": {
                        "total": st.total,
                        "pending": st.pending,
                        "validated": st.validated,
                        "rejected": st.rejected,
                        "flagged": st.flagged,
                        "this_week": st.this_week,
                        "this_month": st.this_month,
                        "average_duration": st.average_duration,
                        "total_hours": st.total_hours,
                        "by_subject": st.by_subject,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while computing statistics")

    @app.route("/api/sessions/<session_id>", methods=["GET"], endpoint="api_session_detail")
    def api_session_detail(session_id: str):
        try:
            return jsonify({"success": True, "session": svc.get(session_id).to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while loading the session")

    @app.route("/api/sessions/<session_id>/validate", methods=["POST"], endpoint="api_session_validate")
    def api_session_validate(session_id: str):
        try:
            reviewer_id, reviewer_name = _reviewer(request.get_json(silent=True) or {})
            session = svc.validate(session_id, reviewer_id, reviewer_name)
            return jsonify({"success": True, "session": session.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while validating the session")

    @app.route("/api/sessions/<session_id>/reject", methods=["POST"], endpoint="api_session_reject")
    def api_session_reject(session_id: str):
        try:
            data = request.get_json(silent=True) or {}
            reviewer_id, reviewer_name = _reviewer(data)
            session = svc.reject(session_id, reviewer_id, reviewer_name, data.get("reason"))
            return jsonify({"success": True, "session": session.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Unexpected error while rejecting the session")
