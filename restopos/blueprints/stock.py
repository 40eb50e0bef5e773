"""Stock blueprint - manual inventory adjustments, history and alerts."""
import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, g

from restopos.database import get_session, unit_of_work
from restopos.models import StockLogType
from restopos.services.stock_ledger import StockLedger, get_low_stock, get_stock_logs
from restopos.middleware import require_login
from restopos.exceptions import ValidationError

logger = logging.getLogger(__name__)

stock_bp = Blueprint('stock', __name__, url_prefix='/api/stock')


def _int_field(data: dict, name: str) -> int:
    value = data.get(name)
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be a number')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a number')


@stock_bp.route('/<int:stock_id>/adjust', methods=['POST'])
@require_login
def adjust_stock(stock_id):
    """Apply an ADD / REMOVE / ADJUST movement."""
    data = request.get_json(silent=True) or {}
    quantity = _int_field(data, 'quantity')

    session = get_session()
    with unit_of_work(session):
        stock = StockLedger(session, g.user_id).adjust(
            stock_id, data.get('type'), quantity, note=data.get('note')
        )
        result = stock.to_dict()

    return jsonify({'status': 'success', 'message': 'Stock adjusted successfully', 'data': result})


@stock_bp.route('/<int:stock_id>/quantity', methods=['PATCH'])
@require_login
def set_stock_quantity(stock_id):
    """Set the absolute on-hand quantity (stock count)."""
    data = request.get_json(silent=True) or {}
    quantity = _int_field(data, 'quantity')

    session = get_session()
    with unit_of_work(session):
        stock = StockLedger(session, g.user_id).set_absolute(stock_id, quantity, note=data.get('note'))
        result = stock.to_dict()

    return jsonify({'status': 'success', 'message': 'Stock quantity updated successfully', 'data': result})


@stock_bp.route('/<int:stock_id>/min-stock', methods=['PATCH'])
@require_login
def update_min_stock(stock_id):
    data = request.get_json(silent=True) or {}
    min_stock = _int_field(data, 'minStock')

    session = get_session()
    with unit_of_work(session):
        stock = StockLedger(session, g.user_id).update_min_stock(stock_id, min_stock)
        result = stock.to_dict()

    return jsonify({'status': 'success', 'message': 'Minimum stock updated successfully', 'data': result})


@stock_bp.route('/logs', methods=['GET'])
@require_login
def list_stock_logs():
    """Stock movement history with optional stock/type/date filters."""
    log_type = request.args.get('type')
    if log_type:
        try:
            log_type = StockLogType(log_type.upper())
        except ValueError:
            raise ValidationError('Type must be ADD, REMOVE, or ADJUST')

    dates = {}
    for arg in ('startDate', 'endDate'):
        value = request.args.get(arg)
        if value:
            try:
                dates[arg] = datetime.fromisoformat(value)
            except ValueError:
                raise ValidationError(f'Invalid {arg}: use ISO format (YYYY-MM-DD)')

    page = max(1, request.args.get('page', 1, type=int))
    per_page = max(1, min(request.args.get('limit', 20, type=int), 100))

    logs, total = get_stock_logs(
        get_session(),
        stock_id=request.args.get('stockId', type=int),
        log_type=log_type,
        start=dates.get('startDate'),
        end=dates.get('endDate'),
        page=page,
        per_page=per_page,
    )
    return jsonify({
        'status': 'success',
        'data': [log.to_dict() for log in logs],
        'pagination': {
            'page': page,
            'limit': per_page,
            'total': total,
            'pages': (total + per_page - 1) // per_page if per_page else 0,
        }
    })


@stock_bp.route('/alerts/low-stock', methods=['GET'])
@require_login
def low_stock_alerts():
    stocks = get_low_stock(get_session())
    return jsonify({'status': 'success', 'data': [s.to_dict() for s in stocks]})
