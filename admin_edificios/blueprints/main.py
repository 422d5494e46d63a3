"""Main blueprint: health check, CSRF token and dashboard."""
from flask import Blueprint, jsonify
from flask_wtf.csrf import generate_csrf

from admin_edificios.database import check_connection, get_session
from admin_edificios.services import report_service
from admin_edificios.utils.serialization import to_jsonable

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    if check_connection():
        return jsonify({
            'status': 'healthy',
            'database': 'connected',
            'message': 'Database connection successful'
        }), 200
    return jsonify({
        'status': 'unhealthy',
        'database': 'disconnected',
        'message': 'Failed to connect to database'
    }), 500


@main_bp.route('/api/csrf-token')
def csrf_token():
    """Token for the X-CSRFToken header of write requests."""
    return jsonify({'csrf_token': generate_csrf()})


@main_bp.route('/api/dashboard')
def dashboard():
    data = report_service.get_dashboard_data(get_session())
    return jsonify(to_jsonable(data))
