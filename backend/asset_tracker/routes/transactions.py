# Overview: Flask API route for movement history and short-quantity documents.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, resolve_plant
from ..services import transaction_service

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Query params: plant_code, asset, invoice, from, to, mode (all optional
    except plant_code for admins).
    """
    plant = resolve_plant(request.args.get("plant_code"))
    invoice = request.args.get("invoice")

    transactions = transaction_service.list_movements(
        plant.id,
        asset_code=request.args.get("asset"),
        document_no=invoice,
        start=request.args.get("from"),
        end=request.args.get("to"),
        mode=request.args.get("mode"),
    )
    short_qty = transaction_service.short_quantity_documents(plant.id, document_no=invoice)
    return jsonify({"transactions": transactions, "short_qty": short_qty}), 200
