"""Upload blueprint for expense attachments."""
from flask import Blueprint, jsonify, request

from admin_edificios.exceptions import ValidationError
from admin_edificios.services.storage_service import get_storage_service

uploads_bp = Blueprint('uploads', __name__, url_prefix='/api/upload')


@uploads_bp.route('', methods=['POST'])
def upload():
    """Multipart form with a `file` field; returns the public URL."""
    file = request.files.get('file')
    if not file or not file.filename:
        raise ValidationError("No se proporcionó ningún archivo")
    url = get_storage_service().upload_attachment(file)
    return jsonify({'url': url}), 201
