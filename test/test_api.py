"""
JSON API: envelope, dispatch rules and the employee, borrower and voucher
actions end to end
"""
from decimal import Decimal
from portal import db
from portal.models import Borrower, Employee, Voucher


def call(client, action, payload=None, method='POST', **args):
    query = {'action': action}
    query.update(args)
    if method == 'GET':
        response = client.get('/api', query_string=query)
    else:
        response = client.post('/api', query_string=query, json=payload or {})
    assert response.status_code == 200
    return response.get_json()


def add_employee(client, emp_id='E1', name='Asha Perera'):
    body = call(client, 'add_employee', {'id': emp_id, 'name': name})
    assert body['success'] is True, body['message']
    return body['data']


def add_borrower(client, **overrides):
    payload = {
        'empId': 'E1',
        'name': 'Asha Perera',
        'amount': 1000,
        'emi': 200,
        'months': 5,
        'disbursedDate': '15-01-2025',
    }
    payload.update(overrides)
    return call(client, 'add_borrower', payload)


def test_unauthenticated_request_is_refused(client):
    body = call(client, 'get_employees', method='GET')
    assert body == {'success': False, 'message': 'Authentication required', 'data': None}


def test_unknown_action(auth_client):
    body = call(auth_client, 'drop_tables')
    assert body['success'] is False
    assert body['message'] == 'Invalid action'


def test_mutating_action_requires_post(auth_client):
    body = call(auth_client, 'add_employee', method='GET', id='E1', name='Asha')
    assert body['success'] is False
    assert body['message'] == 'Method not allowed'
    assert Employee.query.count() == 0


def test_unexpected_error_is_reported_generically(auth_client, monkeypatch):
    from portal.services import ledger

    def broken():
        raise RuntimeError('boom')

    monkeypatch.setattr(ledger, 'dashboard_stats', broken)
    body = call(auth_client, 'get_dashboard_stats', method='GET')
    assert body['success'] is False
    assert body['message'] == 'Server error occurred'


def test_employee_lifecycle(auth_client):
    data = add_employee(auth_client)
    assert data['id'] == 'E1'
    assert data['status'] == 'active'

    duplicate = call(auth_client, 'add_employee', {'id': 'E1', 'name': 'Someone Else'})
    assert duplicate['success'] is False
    assert duplicate['message'] == 'Employee ID E1 already exists'

    renamed = call(auth_client, 'update_employee', {'id': 'E1', 'name': 'Asha K. Perera'})
    assert renamed['success'] is True
    assert renamed['data']['name'] == 'Asha K. Perera'

    deleted = call(auth_client, 'delete_employee', {'id': 'E1'})
    assert deleted['success'] is True
    assert call(auth_client, 'get_employees', method='GET')['data'] == []

    # The row stays for history
    assert db.session.get(Employee, 'E1').status == 'inactive'
    again = call(auth_client, 'delete_employee', {'id': 'E1'})
    assert again['success'] is False


def test_missing_fields_are_reported(auth_client):
    body = call(auth_client, 'add_employee', {'id': 'E1'})
    assert body['success'] is False
    assert 'Name' in body['message']


def test_form_encoded_payload_is_accepted(auth_client):
    response = auth_client.post('/api?action=add_employee', data={'id': 'E7', 'name': 'Form Poster'})
    body = response.get_json()
    assert body['success'] is True
    assert db.session.get(Employee, 'E7').name == 'Form Poster'


def test_add_borrower_uses_display_dates_and_camel_case(auth_client):
    add_employee(auth_client)

    body = add_borrower(auth_client)

    assert body['success'] is True
    assert body['message'] == 'Borrower added successfully'
    data = body['data']
    assert data['applicationNo'] == 'APP000001'
    assert data['empId'] == 'E1'
    assert data['outstandingAmount'] == 1000.0
    assert data['paidAmount'] == 0.0
    assert data['disbursedDate'] == '15-01-2025'
    assert data['expectedCompletionDate'] == '15-06-2025'
    assert data['status'] == 'active'

    assert db.session.get(Borrower, data['id']).disbursed_date.isoformat() == '2025-01-15'


def test_add_borrower_accepts_storage_dates_and_aliases(auth_client):
    add_employee(auth_client)

    body = call(auth_client, 'add_borrower', {
        'empId': 'E1', 'name': 'Asha Perera', 'advanceAmount': '750.50', 'emi': '150',
        'month': '5', 'disbursedDate': '2025-03-01', 'applicationNo': 'HR-77',
    })

    assert body['success'] is True, body['message']
    assert body['data']['amount'] == 750.5
    assert body['data']['months'] == 5
    assert body['data']['disbursedDate'] == '01-03-2025'
    assert body['data']['applicationNo'] == 'HR-77'


def test_add_borrower_rejects_bad_input(auth_client):
    add_employee(auth_client)

    unknown = add_borrower(auth_client, empId='E404')
    assert unknown['success'] is False
    assert unknown['message'] == 'Employee ID E404 not found'

    bad_date = add_borrower(auth_client, disbursedDate='31-31-2025')
    assert bad_date['success'] is False
    assert 'Disbursed Date' in bad_date['message']

    zero = add_borrower(auth_client, amount=0)
    assert zero['success'] is False

    assert Borrower.query.count() == 0


def test_second_advance_reports_notice(auth_client):
    add_employee(auth_client)
    add_borrower(auth_client)

    body = add_borrower(auth_client, amount=300)

    assert body['success'] is True
    assert body['message'] == ('Borrower added successfully. '
                               'Note: Employee E1 already has 1 other active advance(s)')


def test_voucher_pays_down_advance(auth_client):
    add_employee(auth_client)
    add_borrower(auth_client)

    body = call(auth_client, 'add_voucher', {
        'empId': 'E1', 'empName': 'Asha Perera', 'amount': 300,
        'voucherDate': '28-02-2025', 'applicationNo': 'APP000001',
    })

    assert body['success'] is True
    assert body['message'] == 'Voucher added successfully and APP000001 outstanding updated'
    assert body['data']['voucher']['id'] == 'VCH000001'
    assert body['data']['voucher']['voucherDate'] == '28-02-2025'
    assert body['data']['voucher']['month'] == 'February 2025'
    assert body['data']['borrowerUpdate']['newOutstanding'] == 700.0

    borrowers = call(auth_client, 'get_borrowers', method='GET')['data']
    assert borrowers[0]['outstandingAmount'] == 700.0
    assert borrowers[0]['paidAmount'] == 300.0


def test_full_voucher_reports_completion(auth_client):
    add_employee(auth_client)
    add_borrower(auth_client)

    body = call(auth_client, 'add_voucher', {
        'empId': 'E1', 'empName': 'Asha Perera', 'amount': '1000.00', 'date': '31-01-2025',
    })

    assert body['message'] == ('Voucher added successfully and APP000001 outstanding updated '
                               '(advance completed)')
    assert call(auth_client, 'get_borrowers', method='GET')['data'] == []
    completed = call(auth_client, 'get_borrowers', method='GET', status='completed')['data']
    assert [b['applicationNo'] for b in completed] == ['APP000001']


def test_voucher_with_inactive_application_warns(auth_client):
    add_employee(auth_client)

    body = call(auth_client, 'add_voucher', {
        'empId': 'E1', 'empName': 'Asha Perera', 'amount': 50,
        'voucherDate': '28-02-2025', 'applicationNo': 'APP123456',
    })

    assert body['success'] is True
    assert body['message'] == ('Voucher added successfully. '
                               'Warning: Application number APP123456 not found or not active')
    assert body['data']['borrowerUpdate'] is None
    assert body['data']['warnings'] == ['Application number APP123456 not found or not active']


def test_update_and_delete_voucher(auth_client):
    add_employee(auth_client)
    add_borrower(auth_client)
    added = call(auth_client, 'add_voucher', {
        'id': 'V-100', 'empId': 'E1', 'empName': 'Asha Perera', 'amount': 200,
        'voucherDate': '28-02-2025',
    })
    auto_id = added['data']['voucher']['autoId']
    assert added['data']['voucher']['id'] == 'V-100'

    updated = call(auth_client, 'update_voucher', {
        'autoId': auto_id, 'id': 'V-100', 'empId': 'E1', 'empName': 'Asha Perera',
        'amount': 250, 'voucherDate': '01-03-2025', 'month': 'March',
    })
    assert updated['success'] is True
    assert updated['message'] == ('Voucher updated successfully. '
                                  'Warning: Outstanding balance of APP000001 was not recalculated')
    assert updated['data']['amount'] == 250.0
    assert updated['data']['month'] == 'March'

    deleted = call(auth_client, 'delete_voucher', {'autoId': auto_id})
    assert deleted['success'] is True
    assert deleted['data']['warnings'] == [
        '200.00 paid against APP000001 was not restored to its outstanding balance'
    ]
    assert Voucher.query.count() == 0
    assert db.session.get(Borrower, 1).outstanding_amount == Decimal('800')

    missing = call(auth_client, 'delete_voucher', {'autoId': auto_id})
    assert missing == {'success': False, 'message': 'Voucher not found', 'data': None}


def test_vouchers_can_be_filtered_by_employee(auth_client):
    add_employee(auth_client, 'E1', 'Asha Perera')
    add_employee(auth_client, 'E2', 'Nimal Silva')
    for emp_id, name in (('E1', 'Asha Perera'), ('E2', 'Nimal Silva'), ('E1', 'Asha Perera')):
        call(auth_client, 'add_voucher', {
            'empId': emp_id, 'empName': name, 'amount': 10, 'voucherDate': '01-04-2025',
        })

    assert len(call(auth_client, 'get_vouchers', method='GET')['data']) == 3
    mine = call(auth_client, 'get_vouchers', method='GET', empId='E1')['data']
    assert {v['empId'] for v in mine} == {'E1'}
    assert len(mine) == 2


def test_update_and_cancel_borrower(auth_client):
    add_employee(auth_client)
    borrower_id = add_borrower(auth_client)['data']['id']
    call(auth_client, 'add_voucher', {
        'empId': 'E1', 'empName': 'Asha Perera', 'amount': 600, 'voucherDate': '28-02-2025',
    })

    updated = call(auth_client, 'update_borrower', {
        'id': borrower_id, 'empId': 'E1', 'name': 'Asha Perera', 'amount': 500,
        'emi': 100, 'months': 5, 'disbursedDate': '15-01-2025',
    })
    assert updated['success'] is True, updated['message']
    assert updated['data']['amount'] == 500.0
    assert updated['data']['outstandingAmount'] == 200.0

    cancelled = call(auth_client, 'delete_borrower', {'id': borrower_id})
    assert cancelled['success'] is True
    assert db.session.get(Borrower, borrower_id).status == 'cancelled'

    again = call(auth_client, 'update_borrower', {
        'id': borrower_id, 'empId': 'E1', 'name': 'Asha Perera', 'amount': 900,
        'emi': 100, 'months': 5, 'disbursedDate': '15-01-2025',
    })
    assert again['success'] is False


def test_borrower_history(auth_client):
    add_employee(auth_client)
    add_borrower(auth_client)
    add_borrower(auth_client, amount=400)

    body = call(auth_client, 'get_borrower_history', method='GET', empId='E1')

    assert body['success'] is True
    assert body['data']['summary']['totalBorrowings'] == 2
    assert body['data']['summary']['totalOutstanding'] == 1400.0

    missing = call(auth_client, 'get_borrower_history', method='GET')
    assert missing['success'] is False
    assert missing['message'] == 'Employee ID is required'


def test_dashboard_stats(auth_client):
    add_employee(auth_client, 'E1', 'Asha Perera')
    add_employee(auth_client, 'E2', 'Nimal Silva')
    add_borrower(auth_client)
    call(auth_client, 'add_voucher', {
        'empId': 'E1', 'empName': 'Asha Perera', 'amount': 250, 'voucherDate': '28-02-2025',
    })

    body = call(auth_client, 'get_dashboard_stats', method='GET')

    assert body['data'] == {
        'totalEmployees': 2,
        'activeBorrowers': 1,
        'activeVouchers': 1,
        'outstandingAmount': 750.0,
    }


def test_dashboard_page(auth_client):
    response = auth_client.get('/dashboard')
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['user']['email'] == 'admin@tecumseh.com'
    assert body['data']['stats']['totalEmployees'] == 0
