"""
API tests for the ESI blueprint
"""

import csv
import io
from unittest.mock import patch

import pytest

from services.settings_store import SettingsStore
from tests.conftest import auth_headers


class TestAuthorization:

    def test_missing_token(self, client, seed_data):
        response = client.get('/api/esi/')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_invalid_token(self, client, seed_data):
        response = client.get('/api/esi/', headers={'Authorization': 'Bearer not-a-token'})
        assert response.status_code == 401

    def test_missing_permission_performs_no_data_access(self, client, payroll_user, seed_data):
        with patch('routes.esi.ESIService.get_esi_settings') as get_settings:
            response = client.get('/api/esi/settings', headers=auth_headers(payroll_user))

        assert response.status_code == 403
        get_settings.assert_not_called()

    def test_reports_require_reports_permission(self, client, payroll_user, seed_data):
        with patch('routes.esi.ESIService.get_contribution_summary_report') as report:
            response = client.post('/api/esi/reports', data={'format': 'csv'}, headers=auth_headers(payroll_user))

        assert response.status_code == 403
        report.assert_not_called()

    def test_payroll_permission_allows_summary(self, client, payroll_user, seed_data):
        response = client.get('/api/esi/', headers=auth_headers(payroll_user))
        assert response.status_code == 200


class TestSummaryEndpoint:

    def test_summary_for_requested_year(self, client, admin_headers, seed_data):
        response = client.get('/api/esi/?financial_year=2024-2025', headers=admin_headers)
        data = response.get_json()['data']

        assert response.status_code == 200
        assert data['current_fy'] == '2024-2025'
        assert data['esi_summary']['total_employees'] == 3
        assert data['esi_summary']['employee_total'] == 292.5
        assert len(data['recent_transactions']) == 5

    def test_summary_defaults_to_current_year(self, client, admin_headers, seed_data):
        with patch('routes.esi.get_financial_year', return_value='2030-2031'):
            response = client.get('/api/esi/', headers=admin_headers)

        data = response.get_json()['data']
        assert data['current_fy'] == '2030-2031'
        assert data['esi_summary']['grand_total'] == 0.0

    def test_bad_financial_year(self, client, admin_headers, seed_data):
        response = client.get('/api/esi/?financial_year=2024', headers=admin_headers)
        assert response.status_code == 400


class TestContributionsEndpoint:

    def test_blank_filters_are_unconstrained(self, client, admin_headers, seed_data):
        response = client.get('/api/esi/contributions?period_id=&department_id=', headers=admin_headers)
        body = response.get_json()

        assert response.status_code == 200
        assert body['count'] == 4
        assert body['data']['selected_period'] is None
        assert len(body['data']['periods']) == 3
        assert [d['name'] for d in body['data']['departments']] == ['Engineering', 'Operations']

    def test_filters_intersect(self, client, admin_headers, seed_data):
        response = client.get(
            f"/api/esi/contributions?period={seed_data['periods']['april']}"
            f"&department={seed_data['departments']['operations']}",
            headers=admin_headers,
        )
        rows = response.get_json()['data']['contributions']
        assert [r['emp_code'] for r in rows] == ['E002']

    def test_invalid_period(self, client, admin_headers, seed_data):
        response = client.get('/api/esi/contributions?period_id=abc', headers=admin_headers)
        assert response.status_code == 400
        assert 'period_id' in response.get_json()['message']


class TestReportEndpoints:

    def test_report_form(self, client, admin_headers, seed_data):
        data = client.get('/api/esi/reports', headers=admin_headers).get_json()['data']

        assert data['financial_years'] == ['2024-2025', '2023-2024']
        assert 'employee_wise' in data['report_types']
        assert data['periods'][0]['period_name'] == 'May-2024'

    def test_csv_contribution_summary(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', data={
            'report_type': 'contribution_summary',
            'period_id': seed_data['periods']['april'],
            'format': 'csv',
        }, headers=admin_headers)

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment; filename="esi_contribution_summary_' in response.headers['Content-Disposition']
        assert '.csv"' in response.headers['Content-Disposition']

        rows = list(csv.DictReader(io.StringIO(response.get_data(as_text=True))))
        assert [r['department_name'] for r in rows] == ['Engineering', 'Operations']
        assert float(rows[0]['total_employee_esi']) == 157.5

    def test_excel_html_employee_wise(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', json={
            'report_type': 'employee_wise',
            'period_id': str(seed_data['periods']['april']),
        }, headers=admin_headers)

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert response.headers['Content-Type'].startswith('application/vnd.ms-excel')
        assert '<h2>ESI Report</h2>' in body
        assert '<th>Emp Code</th>' in body
        assert body.count('<td>E00') == 2

    def test_monthly_summary_filename_uses_financial_year(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', data={
            'report_type': 'monthly_summary',
            'financial_year': '2024-2025',
            'format': 'xlsx',
        }, headers=admin_headers)

        assert response.status_code == 200
        assert 'esi_monthly_summary_2024-2025.xlsx' in response.headers['Content-Disposition']
        assert response.get_data()[:2] == b'PK'

    def test_empty_csv_report_has_header_only(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', data={
            'report_type': 'monthly_summary',
            'financial_year': '2030-2031',
            'format': 'csv',
        }, headers=admin_headers)

        lines = response.get_data(as_text=True).splitlines()
        assert lines == ['period_name,start_date,end_date,employee_count,'
                         'employee_contribution,employer_contribution,total_contribution']

    def test_unknown_report_type(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', data={'report_type': 'quarterly'}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid report type'

    def test_monthly_summary_requires_financial_year(self, client, admin_headers, seed_data):
        response = client.post('/api/esi/reports', data={'report_type': 'monthly_summary'}, headers=admin_headers)
        assert response.status_code == 400


class FailingSettingsStore(SettingsStore):

    def load(self):
        return {'employee_esi_rate': 0.75, 'employer_esi_rate': 3.25, 'esi_threshold': 21000.0,
                'esi_ceiling': 25000.0, 'medical_benefit_rate': 4.0}

    def save(self, settings):
        raise OSError("disk full")


class TestSettingsEndpoints:

    def _csrf(self, client, headers):
        return client.get('/api/esi/settings', headers=headers).get_json()['data']['csrf_token']

    def test_view_settings(self, client, admin_headers):
        data = client.get('/api/esi/settings', headers=admin_headers).get_json()['data']
        assert data['esi_settings']['employee_esi_rate'] == 0.75
        assert data['esi_settings']['esi_ceiling'] == 25000.0
        assert data['csrf_token']

    def test_update_without_csrf_changes_nothing(self, client, admin_headers, settings_store):
        before = settings_store.load()
        response = client.post('/api/esi/settings', data={'employee_esi_rate': '1.0'}, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid token'
        assert settings_store.load() == before

    def test_auth_token_is_not_a_csrf_token(self, client, admin_user, admin_headers, settings_store):
        bearer = admin_headers['Authorization'][7:]
        response = client.post('/api/esi/settings', data={'csrf_token': bearer}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_overwrites_and_coerces(self, client, admin_headers, settings_store):
        token = self._csrf(client, admin_headers)
        response = client.post('/api/esi/settings', data={
            'csrf_token': token,
            'employee_esi_rate': '1.0',
            'employer_esi_rate': '4',
            'esi_threshold': 'not-a-number',
            'esi_ceiling': '30000',
        }, headers=admin_headers)

        assert response.status_code == 200
        assert settings_store.load() == {
            'employee_esi_rate': 1.0,
            'employer_esi_rate': 4.0,
            'esi_threshold': 0.0,
            'esi_ceiling': 30000.0,
            'medical_benefit_rate': 0.0,
        }

    def test_csrf_token_in_header(self, client, admin_headers, settings_store):
        token = self._csrf(client, admin_headers)
        headers = dict(admin_headers, **{'X-CSRF-Token': token})
        response = client.post('/api/esi/settings', json={'employee_esi_rate': 0.5}, headers=headers)

        assert response.status_code == 200
        assert settings_store.load()['employee_esi_rate'] == 0.5

    def test_csrf_token_of_another_user_is_rejected(self, client, admin_headers, admin_user, app):
        from tests.conftest import _make_user

        other = _make_user('other@company.com', ['settings'])
        token = self._csrf(client, auth_headers(other))
        response = client.post('/api/esi/settings', data={'csrf_token': token}, headers=admin_headers)
        assert response.status_code == 400

    def test_write_failure_is_reported(self, client, admin_headers, app):
        app.extensions['esi_settings_store'] = FailingSettingsStore()
        token = self._csrf(client, admin_headers)
        response = client.post('/api/esi/settings', data={'csrf_token': token}, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json() == {'success': False, 'message': 'Failed to save ESI settings'}


class TestLiabilityAndChallanEndpoints:

    def test_liability(self, client, admin_headers, seed_data):
        response = client.get(f"/api/esi/liability/{seed_data['periods']['april']}", headers=admin_headers)
        assert response.get_json()['data']['grand_total'] == 1159.28

    def test_challan(self, client, admin_headers, seed_data):
        period_id = seed_data['periods']['march']
        response = client.get(f'/api/esi/challan/{period_id}', headers=admin_headers)
        data = response.get_json()['data']

        assert response.status_code == 200
        assert data['due_date'] == '2024-04-21'
        assert data['reference_number'].startswith(f'ESI{period_id}')
        assert len(data['reference_number']) == len(f'ESI{period_id}') + 8

    def test_challan_unknown_period(self, client, admin_headers, seed_data):
        response = client.get('/api/esi/challan/9999', headers=admin_headers)
        assert response.status_code == 404


class TestCalculationEndpoints:

    def test_calculate_with_stored_rates(self, client, admin_headers):
        response = client.post('/api/esi/calculate', json={'gross_wage': 10000}, headers=admin_headers)
        data = response.get_json()['data']

        assert data['eligible'] is True
        assert data['employee_esi'] == 75.0
        assert data['employer_esi'] == 325.0
        assert data['total_esi'] == 400.0

    def test_calculate_threshold_boundary(self, client, admin_headers):
        at = client.post('/api/esi/calculate', json={'gross_wage': 21000}, headers=admin_headers)
        above = client.post('/api/esi/calculate', json={'gross_wage': 21000.5}, headers=admin_headers)

        assert at.get_json()['data']['eligible'] is True
        assert above.get_json()['data']['eligible'] is False

    def test_calculate_requires_wage(self, client, admin_headers):
        response = client.post('/api/esi/calculate', json={}, headers=admin_headers)
        assert response.status_code == 400

    def test_process_batch(self, client, admin_headers):
        response = client.post('/api/esi/process-batch', json={'employees': [
            {'emp_code': 'E001', 'gross_wage': 10000},
            {'emp_code': 'E002', 'gross_wage': 1002},
        ]}, headers=admin_headers)
        body = response.get_json()

        assert body['success'] is True
        assert body['processed'] == 2
        assert body['amount'] == 440.09

    @pytest.mark.parametrize('payload', [
        {},
        {'employees': []},
        {'employees': [{'gross_wage': 100}]},
        {'employees': [{'emp_code': 'E001', 'gross_wage': 'abc'}]},
    ])
    def test_process_batch_validation(self, client, admin_headers, payload):
        response = client.post('/api/esi/process-batch', json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['success'] is False


class TestMalformedInput:

    @pytest.mark.parametrize('wage', ['nan', 'inf', 'Infinity', '-inf'])
    def test_calculate_rejects_non_finite_wage(self, client, admin_headers, wage):
        response = client.post('/api/esi/calculate', json={'gross_wage': wage}, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'gross_wage must be a valid number'

    def test_calculate_rejects_non_finite_rate(self, client, admin_headers):
        response = client.post('/api/esi/calculate', json={'gross_wage': 1000, 'employee_rate': 'nan'},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_batch_rejects_non_finite_wage(self, client, admin_headers):
        response = client.post('/api/esi/process-batch', json={'employees': [
            {'emp_code': 'E001', 'gross_wage': 'Infinity'},
        ]}, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Item 1: gross_wage must be a valid number'

    def test_non_finite_threshold_setting_keeps_calculation_working(self, client, admin_headers):
        token = client.get('/api/esi/settings', headers=admin_headers).get_json()['data']['csrf_token']
        client.post('/api/esi/settings', data={
            'csrf_token': token, 'employee_esi_rate': '0.75', 'employer_esi_rate': '3.25', 'esi_threshold': 'nan',
        }, headers=admin_headers)

        response = client.post('/api/esi/calculate', json={'gross_wage': 1000}, headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['threshold'] == 0.0
        assert response.get_json()['data']['eligible'] is False

    @pytest.mark.parametrize('body', [[1], 'text', 42])
    def test_calculate_with_non_object_body(self, client, admin_headers, body):
        response = client.post('/api/esi/calculate', json=body, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'gross_wage is required'

    def test_batch_with_non_object_body(self, client, admin_headers):
        response = client.post('/api/esi/process-batch', json=[{'emp_code': 'E001', 'gross_wage': 100}],
                               headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'employees must be a non-empty list'

    def test_settings_update_with_non_object_body(self, client, admin_headers, settings_store):
        before = settings_store.load()
        response = client.post('/api/esi/settings', json=[1], headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid token'
        assert settings_store.load() == before

    def test_settings_update_with_header_token_and_non_object_body(self, client, admin_headers, settings_store):
        token = client.get('/api/esi/settings', headers=admin_headers).get_json()['data']['csrf_token']
        headers = dict(admin_headers, **{'X-CSRF-Token': token})

        response = client.post('/api/esi/settings', json=[1], headers=headers)

        assert response.status_code == 200
        assert settings_store.load()['employee_esi_rate'] == 0.0
