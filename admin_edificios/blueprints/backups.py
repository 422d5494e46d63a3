"""Backups blueprint (respaldos de la base de datos)."""
from flask import Blueprint, jsonify, request

from admin_edificios.services import backup_service
from admin_edificios.utils.serialization import to_jsonable

backups_bp = Blueprint('backups', __name__, url_prefix='/api/backups')


@backups_bp.route('/drive', methods=['GET'])
def drive_status():
    return jsonify(backup_service.get_drive_status())


@backups_bp.route('/drive', methods=['POST'])
def backup_to_drive():
    return jsonify({'status': 'success', **backup_service.backup_to_drive()}), 201


@backups_bp.route('/path', methods=['POST'])
def backup_to_path():
    payload = request.get_json(silent=True) or {}
    return jsonify({'status': 'success', **backup_service.backup_to_path(payload.get('path'))}), 201


@backups_bp.route('/history', methods=['GET'])
def history():
    folder = request.args.get('folder') or backup_service.get_drive_backup_folder()
    return jsonify(to_jsonable(backup_service.list_backups(folder)))


@backups_bp.route('/diagnostics', methods=['GET'])
def diagnostics():
    return jsonify(backup_service.get_diagnostics())
