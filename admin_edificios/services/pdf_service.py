"""PDF documents: monthly report, logbook, service directory, receipts and statements."""
import logging
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from admin_edificios.models import (
    LogEntryStatus, LOG_TYPE_LABELS, LOG_STATUS_LABELS, SERVICE_TYPE_LABELS,
    PAYMENT_METHOD_LABELS, CLASSIFICATION_LABELS
)
from admin_edificios.utils.formatters import format_currency, format_date, date_es

logger = logging.getLogger(__name__)

PRIMARY = colors.HexColor('#2C3E50')
MUTED = colors.HexColor('#7F8C8D')
HEADER_BG = colors.HexColor('#3498DB')
GRID = colors.HexColor('#BDC3C7')
ZEBRA = colors.HexColor('#ECF0F1')
POSITIVE = colors.HexColor('#27AE60')
NEGATIVE = colors.HexColor('#C0392B')

CLASSIFICATION_SHORT = {
    'COMMON_EXPENSES': 'Gasto Común',
    'RESERVE_FUND': 'Fondo de Reserva',
    'SIN_CLASIFICAR': 'Sin clasificar',
}


def _styles() -> Dict[str, ParagraphStyle]:
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'DocTitle',
            parent=styles['Heading1'],
            fontSize=18,
            textColor=PRIMARY,
            spaceAfter=4,
            fontName='Helvetica-Bold'
        ),
        'subtitle': ParagraphStyle(
            'DocSubtitle',
            parent=styles['Normal'],
            fontSize=10,
            textColor=MUTED,
            spaceAfter=6
        ),
        'section': ParagraphStyle(
            'Section',
            parent=styles['Heading2'],
            fontSize=11,
            textColor=PRIMARY,
            spaceBefore=10,
            spaceAfter=6,
            fontName='Helvetica-Bold'
        ),
        'cell': ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10),
        'right': ParagraphStyle('Right', parent=styles['Normal'], fontSize=9, alignment=TA_RIGHT, textColor=MUTED),
        'footer': ParagraphStyle('Footer', parent=styles['Normal'], fontSize=8, textColor=MUTED, alignment=TA_CENTER),
    }


def _document(buffer: BytesIO, pagesize=A4) -> SimpleDocTemplate:
    return SimpleDocTemplate(
        buffer,
        pagesize=pagesize,
        rightMargin=0.6*inch,
        leftMargin=0.6*inch,
        topMargin=0.6*inch,
        bottomMargin=0.7*inch
    )


def _footer_callback(text: str):
    """Footer text and page number on every page."""
    def draw(canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 7)
        canvas.setFillColor(MUTED)
        width = doc.pagesize[0]
        canvas.drawString(doc.leftMargin, 0.4*inch, text or '')
        canvas.drawRightString(width - doc.rightMargin, 0.4*inch, f"Página {doc.page}")
        canvas.restoreState()
    return draw


def _data_table(rows: List[List[Any]], col_widths: List[float], numeric_cols=(), bold_last_row: bool = False) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    style = [
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BG),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, ZEBRA]),
    ]
    for col in numeric_cols:
        style.append(('ALIGN', (col, 0), (col, -1), 'RIGHT'))
    if bold_last_row:
        style.extend([
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
        ])
    table.setStyle(TableStyle(style))
    return table


def _summary_boxes(items: List[tuple], total_width: float) -> Table:
    """Row of label/value boxes (RESUMEN GENERAL style)."""
    labels = [label for label, _ in items]
    values = [value for _, value in items]
    width = total_width / len(items)
    table = Table([labels, values], colWidths=[width] * len(items))
    table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('FONTSIZE', (0, 0), (-1, 0), 7),
        ('TEXTCOLOR', (0, 0), (-1, 0), MUTED),
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 1), (-1, 1), 11),
        ('TEXTCOLOR', (0, 1), (-1, 1), PRIMARY),
        ('BOX', (0, 0), (-1, -1), 0.5, GRID),
        ('INNERGRID', (0, 0), (-1, -1), 0.25, GRID),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#F8F9FA')),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    return table


def _header(elements: list, styles: dict, title: str, subtitle: Optional[str] = None):
    generated = datetime.now().strftime('%d/%m/%Y %H:%M')
    elements.append(Paragraph(f"Generado: {generated}", styles['right']))
    elements.append(Paragraph(escape(title), styles['title']))
    if subtitle:
        elements.append(Paragraph(escape(subtitle), styles['subtitle']))
    elements.append(Spacer(1, 0.15*inch))


def _finish(doc: SimpleDocTemplate, elements: list, buffer: BytesIO, footer: str) -> BytesIO:
    callback = _footer_callback(footer)
    doc.build(elements, onFirstPage=callback, onLaterPages=callback)
    buffer.seek(0)
    return buffer


def generate_monthly_report_pdf(report: Dict[str, Any], period_label: str, footer: str) -> BytesIO:
    """Informe mensual de cuenta corriente."""
    buffer = BytesIO()
    doc = _document(buffer, pagesize=landscape(A4))
    styles = _styles()
    elements = []
    width = doc.width

    _header(elements, styles, "Informe Mensual de Cuenta Corriente", f"Periodo: {period_label}")

    totals = report['totals']
    elements.append(Paragraph("RESUMEN GENERAL", styles['section']))
    elements.append(_summary_boxes([
        ("Saldo Anterior", format_currency(totals['previous_balance'])),
        ("Pagos del Mes", format_currency(totals['month_payments'])),
        ("Gastos Comunes", format_currency(totals['month_common_expenses'])),
        ("Fondo Reserva", format_currency(totals['month_reserve_fund'])),
        ("Saldo Actual", format_currency(totals['current_balance'])),
    ], width))

    bank = report['bank_summary']
    elements.append(Paragraph("RESUMEN BANCARIO", styles['section']))
    elements.append(_summary_boxes([
        ("Ingreso G. Comunes", format_currency(bank['income_common_expenses'])),
        ("Ingreso F. Reserva", format_currency(bank['income_reserve_fund'])),
        ("Egreso G. Comunes", format_currency(bank['expense_common_expenses'])),
        ("Egreso F. Reserva", format_currency(bank['expense_reserve_fund'])),
        ("Saldo Bancario", format_currency(bank['total_bank_balance'])),
    ], width))

    active_notices = [n for n in report.get('notices', []) if n.get('active')]
    if active_notices:
        elements.append(Paragraph("AVISOS", styles['section']))
        for notice in active_notices:
            elements.append(Paragraph(f"• {escape(notice['text'])}", styles['cell']))

    if report.get('expense_detail'):
        elements.append(Paragraph("DETALLE DE EGRESOS", styles['section']))
        rows = [['Fecha', 'Descripción', 'Clasificación', 'Banco', 'Monto']]
        for expense in report['expense_detail']:
            rows.append([
                format_date(expense['date']),
                Paragraph(escape(expense['description']), styles['cell']),
                CLASSIFICATION_SHORT.get(expense['classification'], expense['classification']),
                expense['bank'],
                format_currency(expense['amount']),
            ])
        elements.append(_data_table(rows, [0.12*width, 0.43*width, 0.15*width, 0.15*width, 0.15*width], numeric_cols=(4,)))

    elements.append(Paragraph("DESGLOSE POR APARTAMENTO", styles['section']))
    rows = [['Apto', 'Tipo', 'Saldo Ant.', 'Pagos Mes', 'G. Comunes', 'F. Reserva', 'Saldo Actual']]
    for apartment in report['apartments']:
        rows.append([
            apartment['number'],
            apartment['occupancy_label'],
            format_currency(apartment['previous_balance']),
            format_currency(apartment['month_payments']),
            format_currency(apartment['month_common_expenses']),
            format_currency(apartment['month_reserve_fund']),
            format_currency(apartment['current_balance']),
        ])
    rows.append([
        'TOTALES', '',
        format_currency(totals['previous_balance']),
        format_currency(totals['month_payments']),
        format_currency(totals['month_common_expenses']),
        format_currency(totals['month_reserve_fund']),
        format_currency(totals['current_balance']),
    ])
    col = width / 7
    elements.append(_data_table(rows, [col] * 7, numeric_cols=(2, 3, 4, 5, 6), bold_last_row=True))

    logger.info(f"[PDF] Informe mensual {period_label}")
    return _finish(doc, elements, buffer, footer)


def generate_logbook_pdf(entries: list, footer: str) -> BytesIO:
    """Bitácora de Gestión: status counters plus the list of entries."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()
    elements = []
    width = doc.width

    _header(elements, styles, "Bitácora de Gestión", f"{len(entries)} registros")

    counters = [
        ("Pendientes", LogEntryStatus.PENDING),
        ("En Proceso", LogEntryStatus.IN_PROGRESS),
        ("Realizados", LogEntryStatus.DONE),
        ("Vencidos", LogEntryStatus.EXPIRED),
        ("Cancelados", LogEntryStatus.CANCELLED),
    ]
    elements.append(_summary_boxes(
        [(label.upper(), str(sum(1 for e in entries if e.status == status))) for label, status in counters],
        width
    ))

    elements.append(Paragraph("Registros", styles['section']))
    rows = [['Fecha', 'Tipo', 'Detalle', 'Situación']]
    for entry in entries:
        rows.append([
            format_date(entry.date),
            LOG_TYPE_LABELS.get(entry.type, entry.type.value),
            Paragraph(escape(entry.detail), styles['cell']),
            LOG_STATUS_LABELS.get(entry.status, entry.status.value),
        ])
    elements.append(_data_table(rows, [0.15*width, 0.17*width, 0.53*width, 0.15*width]))

    return _finish(doc, elements, buffer, footer or "Bitácora de Gestión")


def generate_service_directory_pdf(providers: list, footer: str) -> BytesIO:
    """Directorio de Servicios grouped by service type."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()
    elements = []
    width = doc.width

    _header(elements, styles, "Directorio de Servicios", f"{len(providers)} contactos")

    rows = [['Tipo', 'Nombre', 'Celular', 'Email', 'Observaciones']]
    for provider in sorted(providers, key=lambda p: (SERVICE_TYPE_LABELS.get(p.type, ''), p.name.lower())):
        rows.append([
            SERVICE_TYPE_LABELS.get(provider.type, provider.type.value),
            Paragraph(escape(provider.name), styles['cell']),
            provider.phone or '-',
            Paragraph(escape(provider.email or '-'), styles['cell']),
            Paragraph(escape(provider.notes or ''), styles['cell']),
        ])
    elements.append(_data_table(rows, [0.18*width, 0.22*width, 0.15*width, 0.2*width, 0.25*width]))

    return _finish(doc, elements, buffer, footer)


def generate_receipt_pdf(receipt, building_name: str, footer: str) -> BytesIO:
    """Printable payment receipt (recibo de pago)."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()
    elements = []

    _header(elements, styles, f"Recibo de Pago N° {receipt.id}", building_name)

    apartment = receipt.apartment
    info = [
        ['Fecha:', date_es(receipt.date)],
        ['Apartamento:', f"{apartment.number} ({apartment.occupancy_label})" if apartment else 'N/A'],
        ['Concepto:', CLASSIFICATION_LABELS.get(receipt.payment_classification, '-')],
        ['Método de pago:', PAYMENT_METHOD_LABELS.get(receipt.payment_method or '', '-')],
    ]
    if receipt.reference:
        info.append(['Referencia:', receipt.reference])
    if apartment and apartment.contact_full_name:
        info.append(['Recibimos de:', apartment.contact_full_name])

    info_table = Table(info, colWidths=[1.8*inch, 4.5*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    total_table = Table([['TOTAL RECIBIDO:', format_currency(receipt.amount)]], colWidths=[4.3*inch, 2*inch])
    total_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, 0), 'RIGHT'),
        ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 14),
        ('TEXTCOLOR', (0, 0), (-1, -1), POSITIVE),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, 0), (-1, -1), 2, POSITIVE),
    ]))
    elements.append(total_table)

    if receipt.notes:
        elements.append(Spacer(1, 0.3*inch))
        elements.append(Paragraph(f"<b>Notas:</b> {escape(receipt.notes)}", styles['cell']))

    return _finish(doc, elements, buffer, footer)


def generate_account_statement_pdf(statement: Dict[str, Any], footer: str) -> BytesIO:
    """Bank account statement with running balance."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()
    elements = []
    width = doc.width

    account = statement['account']
    subtitle = f"{account['bank']} · {account['account_type']} {account['account_number']}"
    if account.get('holder'):
        subtitle += f" · {account['holder']}"
    _header(elements, styles, "Estado de Cuenta", subtitle)

    summary = statement['summary']
    elements.append(_summary_boxes([
        ("Saldo Inicial", format_currency(summary['opening_balance'])),
        ("Ingresos", format_currency(summary['total_income'])),
        ("Egresos", format_currency(summary['total_expense'])),
        ("Saldo Final", format_currency(summary['final_balance'])),
    ], width))
    elements.append(Spacer(1, 0.2*inch))

    rows = [['Fecha', 'Descripción', 'Ingreso', 'Egreso', 'Saldo']]
    for movement in statement['movements']:
        is_income = movement['type'] == 'INCOME'
        rows.append([
            format_date(movement['date']),
            Paragraph(escape(movement['description']), styles['cell']),
            format_currency(movement['amount']) if is_income else '',
            '' if is_income else format_currency(movement['amount']),
            format_currency(movement['balance']),
        ])
    elements.append(_data_table(rows, [0.14*width, 0.44*width, 0.14*width, 0.14*width, 0.14*width], numeric_cols=(2, 3, 4)))

    return _finish(doc, elements, buffer, footer)


def generate_apartment_statement_pdf(ledger: Dict[str, Any], building_name: str, footer: str) -> BytesIO:
    """Cuenta corriente of one apartment: charges, receipts and balance."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()
    elements = []
    width = doc.width

    _header(
        elements, styles,
        f"Apto {ledger['number']} ({ledger['occupancy_label']})",
        building_name
    )

    balance = ledger['balance']
    balance_label = 'SALDO DEUDOR' if float(balance) > 0 else 'AL DÍA' if float(balance) == 0 else 'SALDO A FAVOR'
    elements.append(_summary_boxes([("ESTADO DE CUENTA", f"{balance_label} {format_currency(abs(float(balance)))}")], width))
    elements.append(Spacer(1, 0.2*inch))

    rows = [['Fecha', 'Descripción', 'Tipo', 'Monto', 'Saldo']]
    for movement in ledger['movements']:
        is_receipt = movement['type'] == 'PAYMENT_RECEIPT'
        rows.append([
            format_date(movement['date']),
            Paragraph(escape(movement['description'] or '-'), styles['cell']),
            'Recibo' if is_receipt else 'Cargo',
            ('+' if is_receipt else '') + format_currency(movement['amount']),
            format_currency(movement['balance']),
        ])
    table = _data_table(rows, [0.14*width, 0.44*width, 0.12*width, 0.15*width, 0.15*width], numeric_cols=(3, 4))
    elements.append(table)

    return _finish(doc, elements, buffer, footer)
