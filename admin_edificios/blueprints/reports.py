"""Reports blueprint: informe mensual (JSON/CSV/PDF), accumulated report, expense analysis, notices and footer."""
from datetime import datetime

from flask import Blueprint, jsonify, request, send_file, Response

from admin_edificios.database import get_session
from admin_edificios.services import report_service, export_service
from admin_edificios.services.pdf_service import generate_monthly_report_pdf
from admin_edificios.utils.formatters import period_label
from admin_edificios.utils.parsing import parse_int, parse_datetime
from admin_edificios.utils.serialization import to_jsonable

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


def _period():
    """month/year from the query string, current month by default."""
    now = datetime.now()
    month = parse_int(request.args.get('month'), 'mes') or now.month
    year = parse_int(request.args.get('year'), 'año') or now.year
    return month, year


@reports_bp.route('/monthly', methods=['GET'])
def monthly():
    month, year = _period()
    return jsonify(to_jsonable(report_service.get_monthly_report(month, year, get_session())))


@reports_bp.route('/monthly.csv', methods=['GET'])
def monthly_csv():
    month, year = _period()
    label = period_label(month, year)
    report = report_service.get_monthly_report(month, year, get_session())
    content = export_service.generate_monthly_report_csv(report, label)
    return Response(
        content.encode('utf-8'),
        mimetype='text/csv; charset=utf-8',
        headers={'Content-Disposition': f'attachment; filename="{export_service.csv_filename(label)}"'}
    )


@reports_bp.route('/monthly.pdf', methods=['GET'])
def monthly_pdf():
    session = get_session()
    month, year = _period()
    label = period_label(month, year)
    report = report_service.get_monthly_report(month, year, session)
    pdf = generate_monthly_report_pdf(report, label, report_service.get_report_footer(session))
    filename = export_service.csv_filename(label).replace('.csv', '.pdf')
    return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name=filename)


@reports_bp.route('/accumulated', methods=['GET'])
def accumulated():
    start = parse_datetime(request.args.get('start'), 'desde', required=True)
    end = parse_datetime(request.args.get('end'), 'hasta', required=True)
    return jsonify(to_jsonable(report_service.get_accumulated_report(start, end, get_session())))


@reports_bp.route('/analysis', methods=['GET'])
def analysis():
    month, year = _period()
    data = report_service.get_expense_analysis(
        month, year,
        request.args.get('classification'),
        parse_int(request.args.get('service_provider_id'), 'servicio'),
        session=get_session()
    )
    return jsonify(to_jsonable(data))


# ============ AVISOS ============

@reports_bp.route('/notices', methods=['GET'])
def list_notices():
    month, year = _period()
    notices = report_service.list_notices(month, year, get_session())
    return jsonify([report_service.serialize_notice(n) for n in notices])


@reports_bp.route('/notices', methods=['POST'])
def create_notice():
    payload = request.get_json(silent=True) or {}
    now = datetime.now()
    notice = report_service.create_notice(
        payload.get('text'),
        parse_int(payload.get('month'), 'mes') or now.month,
        parse_int(payload.get('year'), 'año') or now.year,
        get_session()
    )
    return jsonify(report_service.serialize_notice(notice)), 201


@reports_bp.route('/notices/reorder', methods=['POST'])
def reorder_notices():
    payload = request.get_json(silent=True) or {}
    report_service.reorder_notices(payload.get('items') or [], get_session())
    return jsonify({'status': 'success'})


@reports_bp.route('/notices/<int:notice_id>', methods=['PUT', 'PATCH'])
def update_notice(notice_id):
    notice = report_service.update_notice(notice_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(report_service.serialize_notice(notice))


@reports_bp.route('/notices/<int:notice_id>', methods=['DELETE'])
def delete_notice(notice_id):
    report_service.delete_notice(notice_id, get_session())
    return jsonify({'status': 'success'})


# ============ PIE DE PÁGINA ============

@reports_bp.route('/footer', methods=['GET'])
def get_footer():
    return jsonify({'footer': report_service.get_report_footer(get_session())})


@reports_bp.route('/footer', methods=['PUT'])
def update_footer():
    payload = request.get_json(silent=True) or {}
    return jsonify({'footer': report_service.update_report_footer(payload.get('footer'), get_session())})
