import math
import re

from utils.constants import (
    REPORT_TYPES,
    EXPORT_FORMATS,
    DEFAULT_REPORT_TYPE,
    DEFAULT_EXPORT_FORMAT,
)

FINANCIAL_YEAR_PATTERN = re.compile(r'^(\d{4})-(\d{4})$')


class ContributionFilters:
    """Optional filters for contribution queries; None means unconstrained"""

    def __init__(self, period_id=None, department_id=None, financial_year=None):
        self.period_id = period_id
        self.department_id = department_id
        self.financial_year = financial_year

    def to_dict(self):
        return {
            'period_id': self.period_id,
            'department_id': self.department_id,
            'financial_year': self.financial_year
        }

    def __repr__(self):
        return f"<ContributionFilters {self.to_dict()}>"


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def parse_optional_id(value, field, errors):
    """Blank values mean "no filter"; anything else must be a positive integer"""
    if _blank(value):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        errors.append(f'{field} must be a valid integer')
        return None
    if parsed <= 0:
        errors.append(f'{field} must be greater than 0')
        return None
    return parsed


def parse_financial_year(value, errors, field='financial_year'):
    if _blank(value):
        return None
    value = str(value).strip()
    match = FINANCIAL_YEAR_PATTERN.match(value)
    if not match or int(match.group(2)) != int(match.group(1)) + 1:
        errors.append(f'{field} must look like 2024-2025')
        return None
    return value


def parse_contribution_filters(args):
    """Build ContributionFilters from request args.

    Returns (filters, errors); accepts both the long names and the
    short `period` / `department` aliases.
    """
    errors = []
    period_id = parse_optional_id(args.get('period_id', args.get('period')), 'period_id', errors)
    department_id = parse_optional_id(args.get('department_id', args.get('department')), 'department_id', errors)
    financial_year = parse_financial_year(args.get('financial_year'), errors)
    return ContributionFilters(period_id, department_id, financial_year), errors


def validate_report_request(data):
    """Validate report generation input

    Args:
        data: form or JSON payload

    Returns:
        (params, errors) where params has report_type, period_id,
        financial_year and format
    """
    errors = []

    report_type = data.get('report_type')
    report_type = DEFAULT_REPORT_TYPE if _blank(report_type) else str(report_type).strip()
    if report_type not in REPORT_TYPES:
        errors.append('Invalid report type')

    export_format = data.get('format')
    export_format = DEFAULT_EXPORT_FORMAT if _blank(export_format) else str(export_format).strip().lower()
    if export_format not in EXPORT_FORMATS:
        errors.append(f'format must be one of: {", ".join(EXPORT_FORMATS)}')

    period_id = parse_optional_id(data.get('period_id'), 'period_id', errors)
    financial_year = parse_financial_year(data.get('financial_year'), errors)

    if report_type == 'monthly_summary' and not financial_year and not errors:
        errors.append('financial_year is required for the monthly summary report')

    params = {
        'report_type': report_type,
        'period_id': period_id,
        'financial_year': financial_year,
        'format': export_format
    }
    return params, errors


def parse_amount(value, field, errors, required=True):
    """Parse a non-negative money/rate value"""
    if _blank(value):
        if required:
            errors.append(f'{field} is required')
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        errors.append(f'{field} must be a valid number')
        return None
    if not math.isfinite(amount):
        errors.append(f'{field} must be a valid number')
        return None
    if amount < 0:
        errors.append(f'{field} cannot be negative')
        return None
    return amount
