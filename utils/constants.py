# ESI component code on payroll transactions
ESI_COMPONENT_CODE = 'ESI'

# Fixed multipliers applied to the employee ESI deduction.
# 3.25 / 0.75 rounded; not derived from the configurable rates.
EMPLOYER_ESI_MULTIPLIER = 4.33
TOTAL_ESI_MULTIPLIER = 5.33

REPORT_TYPES = [
    'contribution_summary',
    'employee_wise',
    'monthly_summary'
]

EXPORT_FORMATS = [
    'excel',
    'csv',
    'xlsx'
]

DEFAULT_REPORT_TYPE = 'contribution_summary'
DEFAULT_EXPORT_FORMAT = 'excel'

RECENT_TRANSACTIONS_LIMIT = 10
RECENT_PERIODS_LIMIT = 12

# Column order of each report, used for headers when a report is empty
REPORT_COLUMNS = {
    'contribution_summary': [
        'department_name', 'employee_count', 'total_employee_esi',
        'total_employer_esi', 'total_esi_contribution'
    ],
    'employee_wise': [
        'emp_code', 'first_name', 'last_name', 'esi_number', 'department_name',
        'period_name', 'start_date', 'end_date', 'esi_wages', 'employee_esi',
        'employer_esi', 'total_esi'
    ],
    'monthly_summary': [
        'period_name', 'start_date', 'end_date', 'employee_count',
        'employee_contribution', 'employer_contribution', 'total_contribution'
    ]
}
