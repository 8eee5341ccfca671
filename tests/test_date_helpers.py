"""
Tests for financial year and challan date helpers
"""

from datetime import date

import pytest

from utils.date_helpers import get_financial_year, add_months, challan_due_date


@pytest.mark.parametrize('on_date, expected', [
    (date(2024, 4, 1), '2024-2025'),
    (date(2024, 12, 31), '2024-2025'),
    (date(2025, 1, 1), '2024-2025'),
    (date(2025, 3, 31), '2024-2025'),
])
def test_financial_year_boundaries(on_date, expected):
    assert get_financial_year(on_date) == expected


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


@pytest.mark.parametrize('period_end, expected', [
    (date(2024, 3, 31), date(2024, 4, 21)),
    (date(2024, 1, 31), date(2024, 2, 21)),
    (date(2024, 12, 31), date(2025, 1, 21)),
    (date(2024, 8, 31), date(2024, 9, 21)),
])
def test_challan_due_date(period_end, expected):
    assert challan_due_date(period_end) == expected
