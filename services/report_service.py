from flask import make_response
from markupsafe import escape
from datetime import date
import pandas as pd
import io
import logging

logger = logging.getLogger(__name__)

EXCEL_HTML_MIMETYPE = 'application/vnd.ms-excel'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
CSV_MIMETYPE = 'text/csv'


def humanize_column(name):
    """snake_case column name to Title Case header"""
    return ' '.join(part.capitalize() for part in str(name).replace('_', ' ').split())


def _cell(value):
    return '' if value is None else escape(str(value))


def _attachment(body, filename, mimetype):
    response = make_response(body)
    response.headers['Content-Type'] = mimetype
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _columns_for(rows, columns=None):
    if columns:
        return list(columns)
    if rows:
        return list(rows[0].keys())
    return []


def render_excel_html(rows, title='Report'):
    """
    HTML table that spreadsheet applications open directly.

    Title row first, then headers taken from the first record, then one
    row per record. Every value is HTML-escaped.
    """
    column_count = len(rows[0]) if rows else 1

    parts = ["<table border='1'>"]
    parts.append(f"<tr><th colspan='{column_count}'><h2>{escape(title)}</h2></th></tr>")

    if rows:
        headers = list(rows[0].keys())
        parts.append('<tr>' + ''.join(f'<th>{escape(humanize_column(h))}</th>' for h in headers) + '</tr>')
        for row in rows:
            parts.append('<tr>' + ''.join(f'<td>{_cell(row.get(h))}</td>' for h in headers) + '</tr>')

    parts.append('</table>')
    return ''.join(parts)


def render_csv(rows, columns=None):
    """CSV text with a raw column-name header line followed by one line per record"""
    df = pd.DataFrame(rows, columns=_columns_for(rows, columns))
    return df.to_csv(index=False, lineterminator='\r\n')


def render_xlsx(rows, sheet_name='Report', columns=None):
    df = pd.DataFrame(rows, columns=_columns_for(rows, columns))

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name[:31], index=False)

    output.seek(0)
    return output.getvalue()


def export_to_excel(rows, filename, title='Report'):
    logger.info(f"Exporting {len(rows)} rows to {filename} (excel html)")
    return _attachment(render_excel_html(rows, title), filename, EXCEL_HTML_MIMETYPE)


def export_to_csv(rows, filename, columns=None):
    logger.info(f"Exporting {len(rows)} rows to {filename} (csv)")
    return _attachment(render_csv(rows, columns), filename, CSV_MIMETYPE)


def export_to_xlsx(rows, filename, sheet_name='Report', columns=None):
    logger.info(f"Exporting {len(rows)} rows to {filename} (xlsx)")
    return _attachment(render_xlsx(rows, sheet_name, columns), filename, XLSX_MIMETYPE)


def build_report_filename(report_type, financial_year=None, today=None):
    """Base filename (without extension) for a generated ESI report"""
    today = today or date.today()
    if report_type == 'monthly_summary':
        return f"esi_monthly_summary_{financial_year}"
    if report_type == 'employee_wise':
        return f"esi_employee_wise_{today.strftime('%Y-%m-%d')}"
    return f"esi_contribution_summary_{today.strftime('%Y-%m-%d')}"
