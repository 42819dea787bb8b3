"""
Tests for the shift roster export endpoint (CSV and XLSX downloads).
"""
import csv
import io

import pytest


def _h(token):
    return {'X-Auth-Token': token}


def _csv_rows(res):
    return list(csv.DictReader(io.StringIO(res.text)))


class TestCSVExport:
    def test_operation_gets_every_person(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/October', headers=_h(operation_token))
        assert res.status_code == 200
        assert res.headers['content-type'].startswith('text/csv')
        assert 'Georgia_Dealer_Shift_October.csv' in res.headers['content-disposition']
        rows = _csv_rows(res)
        assert [r['Name Surname'] for r in rows] == ['Nino Beridze', 'Giorgi Kapanadze']

    def test_columns(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/October', headers=_h(operation_token))
        header = res.text.splitlines()[0].split(',')
        assert header[0] == 'Name Surname'
        assert header[1:8] == ['1', '2', '3', '4', '5', '6', '7']
        assert header[8:] == ['Total Shifts', 'Day Shifts', 'Night Shifts', 'By Call']

    def test_shift_codes_and_totals(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/October', headers=_h(operation_token))
        nino = _csv_rows(res)[0]
        assert nino['1'] == '08H'
        assert nino['6'] == '08H!'
        assert nino['Total Shifts'] == '12'
        assert nino['By Call'] == '2'

    def test_month_name_is_normalized(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/october', headers=_h(operation_token))
        assert res.status_code == 200
        assert 'October.csv' in res.headers['content-disposition']

    def test_sm_roster(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/October?staff=sm', headers=_h(operation_token))
        assert res.status_code == 200
        assert 'Georgia_SM_Shift_October.csv' in res.headers['content-disposition']
        assert 'Levan Tsiklauri' in [r['Name Surname'] for r in _csv_rows(res)]


class TestXLSXExport:
    def test_workbook_cells_and_fills(self, sync_client, operation_token):
        openpyxl = pytest.importorskip('openpyxl')
        res = sync_client.get('/api/export/schedule/1/October?format=xlsx', headers=_h(operation_token))
        assert res.status_code == 200
        assert res.headers['content-type'].startswith(
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        assert 'Georgia_Dealer_Shift_October.xlsx' in res.headers['content-disposition']

        ws = openpyxl.load_workbook(io.BytesIO(res.content)).active
        assert ws.title == 'October 2025'
        assert ws['A1'].value == 'Name Surname'
        assert ws['A2'].value == 'Nino Beridze'
        assert ws['B2'].value == '08H'
        assert ws['B2'].fill.fgColor.rgb.endswith('F7CA43')

    def test_weekend_header_highlighted(self, sync_client, operation_token):
        openpyxl = pytest.importorskip('openpyxl')
        res = sync_client.get('/api/export/schedule/1/October?format=xlsx', headers=_h(operation_token))
        ws = openpyxl.load_workbook(io.BytesIO(res.content)).active
        # day 4 is a Saturday, day 6 a Monday
        assert ws['E1'].fill.fgColor.rgb.endswith('475569')
        assert ws['G1'].fill.fgColor.rgb.endswith('1E293B')

    def test_dash_cell_left_unstyled(self, sync_client, operation_token):
        openpyxl = pytest.importorskip('openpyxl')
        res = sync_client.get('/api/export/schedule/1/October?format=xlsx', headers=_h(operation_token))
        ws = openpyxl.load_workbook(io.BytesIO(res.content)).active
        assert ws['A3'].value == 'Giorgi Kapanadze'
        assert ws['H3'].value == '-'
        assert ws['H3'].fill.fill_type is None


class TestExportAccess:
    def test_requires_auth(self, app):
        from starlette.testclient import TestClient
        with TestClient(app, raise_server_exceptions=False) as raw:
            assert raw.get('/api/export/schedule/1/October').status_code == 401

    def test_dealer_gets_own_row(self, sync_client, dealer_token):
        res = sync_client.get('/api/export/schedule/1/October', headers=_h(dealer_token))
        assert res.status_code == 200
        assert [r['Name Surname'] for r in _csv_rows(res)] == ['Nino Beridze']

    def test_sm_cannot_export_dealer_roster(self, sync_client, sm_token):
        res = sync_client.get('/api/export/schedule/1/October?staff=dealer', headers=_h(sm_token))
        assert res.status_code == 403

    def test_foreign_country_forbidden(self, sync_client):
        from conftest import inject_token, remove_token
        tok = inject_token('operation', country_id='2')
        try:
            res = sync_client.get('/api/export/schedule/1/October', headers=_h(tok))
            assert res.status_code == 403
        finally:
            remove_token(tok)


class TestExportErrors:
    def test_missing_month_404(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/March', headers=_h(operation_token))
        assert res.status_code == 404

    def test_unparseable_file_422(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/December', headers=_h(operation_token))
        assert res.status_code == 422

    def test_invalid_month_400(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/Junuary', headers=_h(operation_token))
        assert res.status_code == 400

    def test_unknown_format_422(self, sync_client, operation_token):
        res = sync_client.get('/api/export/schedule/1/October?format=pdf', headers=_h(operation_token))
        assert res.status_code == 422

    def test_rate_limited(self, sync_client, operation_token):
        codes = [
            sync_client.get('/api/export/schedule/1/October', headers=_h(operation_token)).status_code
            for _ in range(11)
        ]
        assert codes[:10] == [200] * 10
        assert codes[10] == 429
