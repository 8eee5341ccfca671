from models import db
from models.employee import Employee
from models.department import Department
from models.payroll_period import PayrollPeriod
from models.salary_component import SalaryComponent
from models.payroll_transaction import PayrollTransaction
from services.settings_store import coerce_settings
from utils.constants import (
    ESI_COMPONENT_CODE,
    EMPLOYER_ESI_MULTIPLIER,
    TOTAL_ESI_MULTIPLIER,
    RECENT_TRANSACTIONS_LIMIT,
)
from utils.date_helpers import challan_due_date
from utils.validators import ContributionFilters
from config import ESI_CHALLAN_PREFIX, ESI_CHALLAN_DUE_DAY, DEFAULT_ESI_SETTINGS
from sqlalchemy import func, select, distinct
from sqlalchemy.orm import aliased
from decimal import Decimal, ROUND_HALF_UP
from datetime import date
import logging

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def _to_decimal(value):
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value):
    """Round half-up to paise and return a float for JSON/export"""
    return float(_to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _employer_share(employee_amount):
    return to_money(_to_decimal(employee_amount) * Decimal(str(EMPLOYER_ESI_MULTIPLIER)))


def _total_share(employee_amount):
    return to_money(_to_decimal(employee_amount) * Decimal(str(TOTAL_ESI_MULTIPLIER)))


def _iso(value):
    return value.isoformat() if value else None


class ESIService:
    """ESI contribution queries and statutory arithmetic"""

    @staticmethod
    def _esi_transactions(*entities):
        """Query selecting `entities` over ESI deduction transactions joined to their period"""
        return db.session.query(*entities).select_from(PayrollTransaction).join(
            SalaryComponent, PayrollTransaction.component_id == SalaryComponent.id
        ).join(
            PayrollPeriod, PayrollTransaction.period_id == PayrollPeriod.id
        ).filter(
            SalaryComponent.code == ESI_COMPONENT_CODE
        )

    @staticmethod
    def get_esi_summary(financial_year):
        """
        Aggregate ESI contributions for a financial year.
        Returns zeros when nothing matches.
        """
        employee_count, employee_total = ESIService._esi_transactions(
            func.count(distinct(PayrollTransaction.employee_id)),
            func.sum(func.abs(PayrollTransaction.amount))
        ).filter(
            PayrollPeriod.financial_year == financial_year
        ).one()

        return {
            'financial_year': financial_year,
            'total_employees': int(employee_count or 0),
            'employee_total': to_money(employee_total),
            'employer_total': _employer_share(employee_total),
            'grand_total': _total_share(employee_total)
        }

    @staticmethod
    def get_recent_esi_transactions(limit=RECENT_TRANSACTIONS_LIMIT):
        rows = ESIService._esi_transactions(
            Employee.emp_code,
            Employee.first_name,
            Employee.last_name,
            PayrollPeriod.period_name,
            func.abs(PayrollTransaction.amount).label('esi_amount'),
            PayrollTransaction.created_at
        ).join(
            Employee, PayrollTransaction.employee_id == Employee.id
        ).order_by(
            PayrollTransaction.created_at.desc(),
            PayrollTransaction.id.desc()
        ).limit(limit).all()

        return [
            {
                'emp_code': row.emp_code,
                'first_name': row.first_name,
                'last_name': row.last_name,
                'period_name': row.period_name,
                'esi_amount': to_money(row.esi_amount),
                'created_at': _iso(row.created_at)
            }
            for row in rows
        ]

    @staticmethod
    def get_esi_contributions(filters):
        """
        Per-employee ESI breakdown, ordered by employee code.

        Args:
            filters: ContributionFilters; None fields are unconstrained

        Returns:
            list of dicts with the wage base, employee share, derived
            employer share and total
        """
        wage_txn = aliased(PayrollTransaction)
        wage_component = aliased(SalaryComponent)

        # Wage base: ESI-applicable earnings of the same employee and period
        esi_wages = select(
            func.sum(wage_txn.amount)
        ).join(
            wage_component, wage_txn.component_id == wage_component.id
        ).where(
            wage_txn.employee_id == Employee.id,
            wage_txn.period_id == PayrollTransaction.period_id,
            wage_component.type == 'earning',
            wage_component.is_esi_applicable.is_(True)
        ).correlate(Employee, PayrollTransaction).scalar_subquery()

        query = ESIService._esi_transactions(
            Employee.emp_code,
            Employee.first_name,
            Employee.last_name,
            Employee.esi_number,
            Department.name.label('department_name'),
            PayrollPeriod.period_name,
            PayrollPeriod.start_date,
            PayrollPeriod.end_date,
            esi_wages.label('esi_wages'),
            func.abs(PayrollTransaction.amount).label('employee_esi')
        ).join(
            Employee, PayrollTransaction.employee_id == Employee.id
        ).outerjoin(
            Department, Employee.department_id == Department.id
        ).filter(
            Employee.status == 'active'
        )

        if filters.period_id is not None:
            query = query.filter(PayrollTransaction.period_id == filters.period_id)
        if filters.department_id is not None:
            query = query.filter(Employee.department_id == filters.department_id)
        if filters.financial_year is not None:
            query = query.filter(PayrollPeriod.financial_year == filters.financial_year)

        rows = query.order_by(
            Employee.emp_code.asc(),
            PayrollPeriod.start_date.asc()
        ).all()

        return [
            {
                'emp_code': row.emp_code,
                'first_name': row.first_name,
                'last_name': row.last_name,
                'esi_number': row.esi_number,
                'department_name': row.department_name,
                'period_name': row.period_name,
                'start_date': _iso(row.start_date),
                'end_date': _iso(row.end_date),
                'esi_wages': to_money(row.esi_wages),
                'employee_esi': to_money(row.employee_esi),
                'employer_esi': _employer_share(row.employee_esi),
                'total_esi': _total_share(row.employee_esi)
            }
            for row in rows
        ]

    @staticmethod
    def get_contribution_summary_report(period_id=None, financial_year=None):
        """Department-wise totals; a period filter wins over the financial year"""
        query = ESIService._esi_transactions(
            Department.name.label('department_name'),
            func.count(distinct(Employee.id)).label('employee_count'),
            func.sum(func.abs(PayrollTransaction.amount)).label('employee_total')
        ).join(
            Employee, PayrollTransaction.employee_id == Employee.id
        ).outerjoin(
            Department, Employee.department_id == Department.id
        )

        if period_id is not None:
            query = query.filter(PayrollTransaction.period_id == period_id)
        elif financial_year:
            query = query.filter(PayrollPeriod.financial_year == financial_year)

        rows = query.group_by(
            Department.id, Department.name
        ).order_by(
            Department.name.asc()
        ).all()

        return [
            {
                'department_name': row.department_name,
                'employee_count': int(row.employee_count or 0),
                'total_employee_esi': to_money(row.employee_total),
                'total_employer_esi': _employer_share(row.employee_total),
                'total_esi_contribution': _total_share(row.employee_total)
            }
            for row in rows
        ]

    @staticmethod
    def get_employee_wise_report(period_id=None, financial_year=None):
        if period_id is not None:
            filters = ContributionFilters(period_id=period_id)
        else:
            filters = ContributionFilters(financial_year=financial_year)
        return ESIService.get_esi_contributions(filters)

    @staticmethod
    def get_monthly_summary_report(financial_year):
        rows = ESIService._esi_transactions(
            PayrollPeriod.period_name,
            PayrollPeriod.start_date,
            PayrollPeriod.end_date,
            func.count(distinct(PayrollTransaction.employee_id)).label('employee_count'),
            func.sum(func.abs(PayrollTransaction.amount)).label('employee_total')
        ).filter(
            PayrollPeriod.financial_year == financial_year
        ).group_by(
            PayrollPeriod.id,
            PayrollPeriod.period_name,
            PayrollPeriod.start_date,
            PayrollPeriod.end_date
        ).order_by(
            PayrollPeriod.start_date.asc()
        ).all()

        return [
            {
                'period_name': row.period_name,
                'start_date': _iso(row.start_date),
                'end_date': _iso(row.end_date),
                'employee_count': int(row.employee_count or 0),
                'employee_contribution': to_money(row.employee_total),
                'employer_contribution': _employer_share(row.employee_total),
                'total_contribution': _total_share(row.employee_total)
            }
            for row in rows
        ]

    @staticmethod
    def calculate_esi_liability(period_id):
        employee_total = ESIService._esi_transactions(
            func.sum(func.abs(PayrollTransaction.amount))
        ).filter(
            PayrollTransaction.period_id == period_id
        ).scalar()

        return {
            'employee_total': to_money(employee_total),
            'employer_total': _employer_share(employee_total),
            'grand_total': _total_share(employee_total)
        }

    @staticmethod
    def get_esi_challan_data(period_id, today=None):
        """
        Payment challan for a period, or None if the period does not exist.
        The reference number embeds today's date, so repeated requests for
        the same period produce different references.
        """
        period = db.session.get(PayrollPeriod, period_id)
        if not period:
            return None

        today = today or date.today()
        return {
            'period': period.to_dict(),
            'liability': ESIService.calculate_esi_liability(period_id),
            'due_date': challan_due_date(period.end_date, ESI_CHALLAN_DUE_DAY).isoformat(),
            'reference_number': f"{ESI_CHALLAN_PREFIX}{period_id}{today.strftime('%Y%m%d')}"
        }

    @staticmethod
    def validate_esi_eligibility(gross_wage, threshold=DEFAULT_ESI_SETTINGS['esi_threshold']):
        """Eligible when gross wage is at or below the threshold"""
        return _to_decimal(gross_wage) <= _to_decimal(threshold)

    @staticmethod
    def calculate_esi_contribution(gross_wage, employee_rate=0.75, employer_rate=3.25):
        """
        Employee and employer shares of ESI on a gross wage.
        Each share is rounded to 2 decimals before they are summed, so the
        total can differ by a paisa from rounding the combined rate.
        """
        wage = _to_decimal(gross_wage)
        employee_esi = (wage * _to_decimal(employee_rate) / 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        employer_esi = (wage * _to_decimal(employer_rate) / 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

        return {
            'employee_esi': float(employee_esi),
            'employer_esi': float(employer_esi),
            'total_esi': float(employee_esi + employer_esi)
        }

    @staticmethod
    def get_esi_settings(store):
        return store.load()

    @staticmethod
    def update_esi_settings(store, data):
        """Overwrite the settings document; fails only when the write fails"""
        settings = coerce_settings(data)
        try:
            store.save(settings)
        except OSError as e:
            logger.error(f"Failed to save ESI settings: {e}")
            return {'success': False, 'message': 'Failed to save ESI settings'}

        return {'success': True, 'settings': settings}

    @staticmethod
    def process_contribution_batch(employees, settings):
        """
        Compute contributions for one batch of {emp_code, gross_wage} items
        using the stored rates. Employees above the threshold contribute zero.
        """
        details = []
        amount = Decimal('0')

        for item in employees:
            gross_wage = item['gross_wage']
            eligible = ESIService.validate_esi_eligibility(gross_wage, settings['esi_threshold'])
            if eligible:
                contribution = ESIService.calculate_esi_contribution(
                    gross_wage, settings['employee_esi_rate'], settings['employer_esi_rate']
                )
            else:
                contribution = {'employee_esi': 0.0, 'employer_esi': 0.0, 'total_esi': 0.0}

            amount += _to_decimal(contribution['total_esi'])
            details.append({
                'emp_code': item['emp_code'],
                'gross_wage': to_money(gross_wage),
                'eligible': eligible,
                **contribution
            })

        return {
            'processed': len(details),
            'amount': to_money(amount),
            'details': details
        }
