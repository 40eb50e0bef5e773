"""Tables blueprint - floor plan status for the POS."""
from flask import Blueprint, request, jsonify

from restopos.database import get_session
from restopos.models import Table
from restopos.services.table_tracker import change_table_status
from restopos.middleware import require_login
from restopos.exceptions import ValidationError

tables_bp = Blueprint('tables', __name__, url_prefix='/api/tables')


@tables_bp.route('/', methods=['GET'])
@require_login
def list_tables():
    """List active tables ordered by number."""
    tables = (
        get_session().query(Table)
        .filter(Table.is_active.is_(True))
        .order_by(Table.number)
        .all()
    )
    return jsonify({'status': 'success', 'data': [t.to_dict() for t in tables]})


@tables_bp.route('/<int:table_id>/status', methods=['PATCH'])
@require_login
def update_table_status(table_id):
    """Manual status change (reservations, maintenance)."""
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if not status:
        raise ValidationError('Status is required')

    table = change_table_status(get_session(), table_id, status)
    return jsonify({
        'status': 'success',
        'message': 'Table status updated successfully',
        'data': table.to_dict()
    })
