"""Orders blueprint - JSON API over the order lifecycle service."""
from datetime import datetime

from flask import Blueprint, request, jsonify, g

from restopos.database import get_session
from restopos.models import OrderStatus
from restopos.services import order_service
from restopos.middleware import require_login
from restopos.exceptions import ValidationError

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _result_response(result, message: str, status_code: int = 200):
    """Render an OperationResult; a failure is raised for the PosError handler."""
    order = result.unwrap()
    return jsonify({
        'status': 'success',
        'message': message,
        'data': order.to_dict()
    }), status_code


def _parse_date_arg(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f'Invalid {name}: use ISO format (YYYY-MM-DD)')


@orders_bp.route('/', methods=['GET'])
@require_login
def list_orders():
    """List orders with optional status/table/date filters."""
    status = request.args.get('status')
    if status:
        try:
            status = OrderStatus(status.upper())
        except ValueError:
            raise ValidationError(f'Invalid status: {status}')

    page = max(1, request.args.get('page', 1, type=int))
    per_page = max(1, min(request.args.get('limit', 20, type=int), 100))

    orders, total = order_service.list_orders(
        get_session(),
        status=status,
        table_id=request.args.get('tableId', type=int),
        start=_parse_date_arg('startDate'),
        end=_parse_date_arg('endDate'),
        page=page,
        per_page=per_page,
    )
    return jsonify({
        'status': 'success',
        'data': [o.to_dict() for o in orders],
        'pagination': {
            'page': page,
            'limit': per_page,
            'total': total,
            'pages': (total + per_page - 1) // per_page if per_page else 0,
        }
    })


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def get_order(order_id):
    order = order_service.get_order(get_session(), order_id)
    return jsonify({'status': 'success', 'data': order.to_dict()})


@orders_bp.route('/', methods=['POST'])
@require_login
def create_order():
    data = _json_body()
    result = order_service.create_order(
        get_session(),
        table_id=data.get('tableId'),
        items=data.get('items'),
        user_id=g.user_id,
        customer_note=data.get('customerNote'),
        discount=data.get('discount', 0),
    )
    return _result_response(result, 'Order created successfully', 201)


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@require_login
def update_order(order_id):
    data = _json_body()
    result = order_service.update_order(
        get_session(),
        order_id,
        items=data.get('items'),
        user_id=g.user_id,
        customer_note=data.get('customerNote'),
        discount=data.get('discount', 0),
    )
    return _result_response(result, 'Order updated successfully')


@orders_bp.route('/<int:order_id>/cancel', methods=['PATCH'])
@require_login
def cancel_order(order_id):
    result = order_service.cancel_order(get_session(), order_id, user_id=g.user_id)
    return _result_response(result, 'Order cancelled successfully')


@orders_bp.route('/<int:order_id>/pay', methods=['PATCH'])
@require_login
def pay_order(order_id):
    result = order_service.pay_order(get_session(), order_id, _json_body(), user_id=g.user_id)
    return _result_response(result, 'Payment processed successfully')


@orders_bp.route('/<int:order_id>/table', methods=['PATCH'])
@require_login
def reassign_table(order_id):
    data = _json_body()
    result = order_service.reassign_table(get_session(), order_id, data.get('tableId'), user_id=g.user_id)
    return _result_response(result, 'Order moved to new table')
