"""Protein exchange API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import csrf_protected
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.protein_exchange.schemas import ExchangeBulk, ExchangeListParams, ExchangeResponse
from intranet.domains.protein_exchange.services import list_exchanges, save_bulk

protein_exchange_api_bp = Blueprint("protein_exchange_api", __name__)


@protein_exchange_api_bp.get("/exchanges")
@jwt_required()
def exchanges_index():
    principal = current_principal()
    if principal is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    try:
        params = ExchangeListParams.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    rows = list_exchanges(principal.id, start=params.start, end=params.end)
    return jsonify({"ok": True, "exchanges": [ExchangeResponse.model_validate(r).model_dump(mode="json") for r in rows]})


@protein_exchange_api_bp.post("/exchanges/bulk")
@jwt_required()
@csrf_protected
def exchanges_bulk():
    principal = current_principal()
    if principal is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    try:
        data = ExchangeBulk.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    result = save_bulk(principal, data.exchanges)
    return jsonify({"ok": True, **result.model_dump()})
