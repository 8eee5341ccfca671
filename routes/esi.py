from flask import Blueprint, request, jsonify, current_app
from models import db
from models.department import Department
from models.payroll_period import PayrollPeriod
from services.esi_service import ESIService
from services.report_service import (
    export_to_excel,
    export_to_csv,
    export_to_xlsx,
    build_report_filename,
)
from routes.auth import token_required, permission_required, csrf_protected, generate_csrf_token
from utils.constants import (
    REPORT_TYPES,
    EXPORT_FORMATS,
    REPORT_COLUMNS,
    RECENT_PERIODS_LIMIT,
)
from utils.date_helpers import get_financial_year
from utils.validators import (
    parse_contribution_filters,
    parse_financial_year,
    validate_report_request,
    parse_amount,
)
import logging

esi_bp = Blueprint("esi", __name__)

logger = logging.getLogger(__name__)


def get_settings_store():
    return current_app.extensions["esi_settings_store"]


def _payload():
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def _validation_error(errors):
    return jsonify({'success': False, 'message': '; '.join(errors), 'errors': errors}), 400


def _recent_periods():
    periods = PayrollPeriod.query.order_by(PayrollPeriod.start_date.desc()).limit(RECENT_PERIODS_LIMIT).all()
    return [period.to_dict() for period in periods]


@esi_bp.route("/", methods=["GET"])
@token_required
@permission_required("payroll")
def esi_summary(current_user):
    """ESI summary for a financial year (current one by default)"""
    try:
        errors = []
        financial_year = parse_financial_year(request.args.get('financial_year'), errors)
        if errors:
            return _validation_error(errors)

        financial_year = financial_year or get_financial_year()

        return jsonify({
            'success': True,
            'data': {
                'current_fy': financial_year,
                'esi_summary': ESIService.get_esi_summary(financial_year),
                'recent_transactions': ESIService.get_recent_esi_transactions()
            }
        })

    except Exception as e:
        logger.exception("Error fetching ESI summary")
        return jsonify({
            'success': False,
            'message': f'Error fetching ESI summary: {str(e)}'
        }), 500


@esi_bp.route("/contributions", methods=["GET"])
@token_required
@permission_required("payroll")
def esi_contributions(current_user):
    """List ESI contributions with optional period/department filters"""
    try:
        filters, errors = parse_contribution_filters(request.args)
        if errors:
            return _validation_error(errors)

        contributions = ESIService.get_esi_contributions(filters)

        departments = Department.query.filter_by(status='active').order_by(Department.name.asc()).all()

        return jsonify({
            'success': True,
            'data': {
                'contributions': contributions,
                'periods': _recent_periods(),
                'departments': [dept.to_dict() for dept in departments],
                'selected_period': filters.period_id,
                'selected_department': filters.department_id
            },
            'count': len(contributions)
        })

    except Exception as e:
        logger.exception("Error fetching ESI contributions")
        return jsonify({
            'success': False,
            'message': f'Error fetching ESI contributions: {str(e)}'
        }), 500


@esi_bp.route("/reports", methods=["GET"])
@token_required
@permission_required("reports")
def esi_report_form(current_user):
    """Options for the report generation form"""
    try:
        financial_years = db.session.query(PayrollPeriod.financial_year).distinct().order_by(
            PayrollPeriod.financial_year.desc()
        ).all()

        return jsonify({
            'success': True,
            'data': {
                'periods': _recent_periods(),
                'financial_years': [row[0] for row in financial_years],
                'report_types': REPORT_TYPES,
                'formats': EXPORT_FORMATS
            }
        })

    except Exception as e:
        logger.exception("Error loading ESI report form")
        return jsonify({
            'success': False,
            'message': f'Error loading report options: {str(e)}'
        }), 500


@esi_bp.route("/reports", methods=["POST"])
@token_required
@permission_required("reports")
def generate_esi_report(current_user):
    """Generate an ESI report as an Excel (HTML), CSV or XLSX download"""
    try:
        params, errors = validate_report_request(_payload())
        if errors:
            return _validation_error(errors)

        report_type = params['report_type']
        period_id = params['period_id']
        financial_year = params['financial_year']

        if report_type == 'contribution_summary':
            report_data = ESIService.get_contribution_summary_report(period_id, financial_year)
        elif report_type == 'employee_wise':
            report_data = ESIService.get_employee_wise_report(period_id, financial_year)
        else:
            report_data = ESIService.get_monthly_summary_report(financial_year)

        filename = build_report_filename(report_type, financial_year)
        columns = REPORT_COLUMNS[report_type]

        logger.info(f"generate_esi_report by {current_user.email}: {report_type} ({len(report_data)} rows)")

        if params['format'] == 'excel':
            return export_to_excel(report_data, filename + '.xls', 'ESI Report')
        if params['format'] == 'xlsx':
            return export_to_xlsx(report_data, filename + '.xlsx', 'ESI Report', columns)
        return export_to_csv(report_data, filename + '.csv', columns)

    except Exception as e:
        logger.exception("Error generating ESI report")
        return jsonify({
            'success': False,
            'message': f'Error generating report: {str(e)}'
        }), 500


@esi_bp.route("/settings", methods=["GET"])
@token_required
@permission_required("settings")
def esi_settings(current_user):
    try:
        return jsonify({
            'success': True,
            'data': {
                'esi_settings': ESIService.get_esi_settings(get_settings_store()),
                'csrf_token': generate_csrf_token(current_user)
            }
        })

    except Exception as e:
        logger.exception("Error loading ESI settings")
        return jsonify({
            'success': False,
            'message': f'Error loading ESI settings: {str(e)}'
        }), 500


@esi_bp.route("/settings", methods=["POST"])
@token_required
@permission_required("settings")
@csrf_protected
def update_esi_settings(current_user):
    """Overwrite the ESI settings document"""
    try:
        result = ESIService.update_esi_settings(get_settings_store(), _payload())

        if not result['success']:
            return jsonify({'success': False, 'message': result['message']}), 400

        logger.info(f"update_esi_settings by {current_user.email}: {result['settings']}")
        return jsonify({
            'success': True,
            'message': 'ESI settings updated successfully',
            'data': result['settings']
        })

    except Exception as e:
        logger.exception("Error updating ESI settings")
        return jsonify({
            'success': False,
            'message': 'Failed to update ESI settings'
        }), 500


@esi_bp.route("/liability/<int:period_id>", methods=["GET"])
@token_required
@permission_required("payroll")
def esi_liability(current_user, period_id):
    try:
        return jsonify({
            'success': True,
            'data': ESIService.calculate_esi_liability(period_id)
        })

    except Exception as e:
        logger.exception("Error calculating ESI liability")
        return jsonify({
            'success': False,
            'message': f'Error calculating ESI liability: {str(e)}'
        }), 500


@esi_bp.route("/challan/<int:period_id>", methods=["GET"])
@token_required
@permission_required("payroll")
def esi_challan(current_user, period_id):
    try:
        challan = ESIService.get_esi_challan_data(period_id)
        if challan is None:
            return jsonify({'success': False, 'message': 'Payroll period not found'}), 404

        return jsonify({
            'success': True,
            'data': challan
        })

    except Exception as e:
        logger.exception("Error preparing ESI challan")
        return jsonify({
            'success': False,
            'message': f'Error preparing ESI challan: {str(e)}'
        }), 500


@esi_bp.route("/calculate", methods=["POST"])
@token_required
@permission_required("payroll")
def calculate_esi(current_user):
    """Eligibility and contribution for a single gross wage"""
    try:
        data = _payload()
        settings = ESIService.get_esi_settings(get_settings_store())

        errors = []
        gross_wage = parse_amount(data.get('gross_wage'), 'gross_wage', errors)
        employee_rate = parse_amount(data.get('employee_rate'), 'employee_rate', errors, required=False)
        employer_rate = parse_amount(data.get('employer_rate'), 'employer_rate', errors, required=False)
        threshold = parse_amount(data.get('threshold'), 'threshold', errors, required=False)
        if errors:
            return _validation_error(errors)

        employee_rate = settings['employee_esi_rate'] if employee_rate is None else employee_rate
        employer_rate = settings['employer_esi_rate'] if employer_rate is None else employer_rate
        threshold = settings['esi_threshold'] if threshold is None else threshold

        contribution = ESIService.calculate_esi_contribution(gross_wage, employee_rate, employer_rate)

        return jsonify({
            'success': True,
            'data': {
                'gross_wage': gross_wage,
                'threshold': threshold,
                'eligible': ESIService.validate_esi_eligibility(gross_wage, threshold),
                'employee_rate': employee_rate,
                'employer_rate': employer_rate,
                **contribution
            }
        })

    except Exception as e:
        logger.exception("Error calculating ESI contribution")
        return jsonify({
            'success': False,
            'message': f'Error calculating ESI contribution: {str(e)}'
        }), 500


@esi_bp.route("/process-batch", methods=["POST"])
@token_required
@permission_required("payroll")
def process_esi_batch(current_user):
    """Compute contributions for one batch sent by the bulk processing client"""
    try:
        employees = _payload().get('employees')

        if not isinstance(employees, list) or not employees:
            return _validation_error(['employees must be a non-empty list'])

        errors = []
        batch = []
        for index, item in enumerate(employees):
            if not isinstance(item, dict) or not item.get('emp_code'):
                errors.append(f'Item {index + 1}: emp_code is required')
                continue
            gross_wage = parse_amount(item.get('gross_wage'), f'Item {index + 1}: gross_wage', errors)
            if gross_wage is not None:
                batch.append({'emp_code': str(item['emp_code']), 'gross_wage': gross_wage})

        if errors:
            return _validation_error(errors)

        settings = ESIService.get_esi_settings(get_settings_store())
        result = ESIService.process_contribution_batch(batch, settings)

        return jsonify({
            'success': True,
            **result
        })

    except Exception as e:
        logger.exception("Error processing ESI batch")
        return jsonify({
            'success': False,
            'message': f'Batch processing failed: {str(e)}'
        }), 500
