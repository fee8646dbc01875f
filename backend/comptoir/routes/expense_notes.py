# Overview: Flask API routes for the expense-note approval workflow.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import expense_service
from ..services.week_service import current_week
from ..validation import ServiceError, require_object


expense_notes_bp = Blueprint("expense_notes", __name__, url_prefix="/api/expense-notes")


@expense_notes_bp.post("")
@require_auth
def create_note_route():
    try:
        data = require_object(request.get_json(silent=True))
        note = expense_service.create_note(data, employee_id=g.current_user.id)
        return jsonify({"message": "Note de frais créée avec succès.", "expense_note": note.to_dict()}), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create expense note")


@expense_notes_bp.get("/me")
@require_auth
def my_notes_route():
    notes = expense_service.list_my_notes(g.current_user.id)
    return jsonify([note.to_dict() for note in notes]), 200


@expense_notes_bp.get("")
@require_auth
@require_admin
def list_notes_route():
    try:
        notes = expense_service.list_notes(request.args.get("status"))
        return jsonify([note.to_dict() for note in notes]), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list expense notes")


@expense_notes_bp.put("/<int:note_id>/approve")
@require_auth
@require_admin
def approve_note_route(note_id: int):
    try:
        note, expense = expense_service.approve_note(
            note_id, reviewer_id=g.current_user.id, week=current_week()
        )
        return jsonify({
            "message": "Note de frais approuvée et ajoutée aux dépenses.",
            "expense_note": note.to_dict(),
            "expense": expense.to_dict(),
        }), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to approve expense note")


@expense_notes_bp.put("/<int:note_id>/reject")
@require_auth
@require_admin
def reject_note_route(note_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        note = expense_service.reject_note(
            note_id, reviewer_id=g.current_user.id, reason=data.get("rejection_reason")
        )
        return jsonify({"message": "Note de frais rejetée.", "expense_note": note.to_dict()}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to reject expense note")


@expense_notes_bp.delete("/<int:note_id>")
@require_auth
def delete_note_route(note_id: int):
    try:
        expense_service.delete_note(note_id, caller=g.current_user)
        return jsonify({"message": "Note de frais supprimée."}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to delete expense note")
