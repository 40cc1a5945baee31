"""
End-to-end API tests for the payables workflow.

Verifies:
- Settlement, replay and rejection responses
- Payment deletion through the API
- Custody endpoints
- Spreadsheet exports open as real workbooks
"""

from io import BytesIO

from openpyxl import load_workbook

from conftest import give_custody
from payables.models import Payment, Receivable
from payables.services.custody_service import get_balance


def _settle(client, headers, supplier_id, amount, operation_id, method="cash"):
    return client.post(
        f"/api/suppliers/{supplier_id}/settlements",
        json={"amount": amount, "method": method, "operation_id": operation_id},
        headers=headers,
    )


class TestSettlementEndpoint:

    def test_settle_and_replay(self, client, db_session, admin_headers, supplier, two_receivables):
        resp = _settle(client, admin_headers, supplier.id, "350.00", "api-op-1")
        assert resp.status_code == 201
        assert resp.json["amount_cents"] == 35000
        assert [p["amount_cents"] for p in resp.json["payments"]] == [30000, 5000]

        replay = _settle(client, admin_headers, supplier.id, "350.00", "api-op-1")
        assert replay.status_code == 200
        assert replay.json["id"] == resp.json["id"]
        assert db_session.query(Payment).count() == 2

    def test_idempotency_key_header(self, client, db_session, admin_headers, supplier, two_receivables):
        headers = dict(admin_headers, **{"Idempotency-Key": "hdr-1"})
        resp = client.post(f"/api/suppliers/{supplier.id}/settlements", json={"amount_cents": 100}, headers=headers)
        assert resp.status_code == 201
        assert resp.json["operation_id"] == "hdr-1"
        assert resp.json["method"] == "cash"

    def test_employee_over_custody_is_409(self, client, db_session, employee, employee_headers, supplier, two_receivables):
        give_custody(db_session, employee, 10000)

        resp = _settle(client, employee_headers, supplier.id, "150", "api-op-2")
        assert resp.status_code == 409
        assert resp.json["balance_cents"] == 10000
        assert resp.json["amount_cents"] == 15000
        assert get_balance(employee.id) == 10000

    def test_over_outstanding_is_409(self, client, admin_headers, supplier, two_receivables):
        resp = _settle(client, admin_headers, supplier.id, "500.01", "api-op-3")
        assert resp.status_code == 409
        assert resp.json["outstanding_cents"] == 50000

    def test_bad_amount_is_400(self, client, admin_headers, supplier, two_receivables):
        resp = _settle(client, admin_headers, supplier.id, "abc", "api-op-4")
        assert resp.status_code == 400

    def test_unknown_method_is_400(self, client, admin_headers, supplier, two_receivables):
        resp = _settle(client, admin_headers, supplier.id, "10", "api-op-5", method="cheque")
        assert resp.status_code == 400

    def test_unknown_supplier_is_404(self, client, admin_headers):
        resp = _settle(client, admin_headers, 9999, "10", "api-op-6")
        assert resp.status_code == 404

    def test_supplier_detail_has_totals(self, client, admin_headers, supplier, two_receivables):
        _settle(client, admin_headers, supplier.id, "350", "api-op-7")
        resp = client.get(f"/api/suppliers/{supplier.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["totals"]["outstanding_cents"] == 15000
        assert resp.json["totals"]["discrepancy_cents"] == 0

        listing = client.get("/api/suppliers", headers=admin_headers)
        assert listing.json["items"][0]["outstanding_cents"] == 15000
        assert listing.json["total_outstanding_cents"] == 15000


class TestPaymentDeletionEndpoint:

    def test_delete_payment(self, client, db_session, admin_headers, employee, employee_headers, supplier, two_receivables):
        give_custody(db_session, employee, 50000)
        resp = _settle(client, employee_headers, supplier.id, "100", "api-pay-1")
        payment_id = resp.json["payments"][0]["id"]
        assert get_balance(employee.id) == 40000

        deleted = client.delete(
            f"/api/payments/{payment_id}",
            json={"reason": "Entered twice"},
            headers=admin_headers,
        )
        assert deleted.status_code == 200
        assert deleted.json["payment_id"] == payment_id
        assert deleted.json["reason"] == "Entered twice"

        db_session.expire_all()
        assert db_session.get(Receivable, two_receivables[0].id).remaining_cents == 30000
        assert get_balance(employee.id) == 50000

        assert client.get(f"/api/payments/{payment_id}", headers=admin_headers).status_code == 404
        again = client.delete(f"/api/payments/{payment_id}", headers=admin_headers)
        assert again.status_code == 400

        history = client.get(
            f"/api/suppliers/{supplier.id}/payments?include_reversed=true", headers=admin_headers,
        )
        assert [row["is_deleted"] for row in history.json["items"]] == [True]

    def test_missing_payment_is_404(self, client, admin_headers):
        assert client.delete("/api/payments/4242", headers=admin_headers).status_code == 404


class TestReceivableEndpoints:

    def test_create_and_edit(self, client, admin_headers, supplier):
        resp = client.post(
            f"/api/suppliers/{supplier.id}/receivables",
            json={"description": "April invoice", "total": "١٢٠٫٥٠", "due_date": "2024-04-30"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["total_cents"] == 12050
        assert resp.json["remaining_cents"] == 12050
        receivable_id = resp.json["id"]

        edited = client.put(
            f"/api/receivables/{receivable_id}",
            json={"total_cents": 15000, "due_date": None},
            headers=admin_headers,
        )
        assert edited.status_code == 200
        assert edited.json["remaining_cents"] == 15000
        assert edited.json["due_date"] is None

    def test_bad_due_date_is_400(self, client, admin_headers, supplier):
        resp = client.post(
            f"/api/suppliers/{supplier.id}/receivables",
            json={"description": "x", "total": "10", "due_date": "31/04/2024"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_open_filter(self, client, admin_headers, supplier, two_receivables):
        _settle(client, admin_headers, supplier.id, "300", "api-rec-1")
        resp = client.get(f"/api/suppliers/{supplier.id}/receivables?open=true", headers=admin_headers)
        assert [r["id"] for r in resp.json["items"]] == [two_receivables[1].id]

    def test_delete_paid_receivable_is_409(self, client, admin_headers, supplier, two_receivables):
        _settle(client, admin_headers, supplier.id, "1", "api-rec-2")
        resp = client.delete(f"/api/receivables/{two_receivables[0].id}", headers=admin_headers)
        assert resp.status_code == 409


class TestCustodyEndpoints:

    def test_record_and_read(self, client, admin_headers, employee, employee_headers):
        resp = client.post(
            f"/api/custody/{employee.id}/transactions",
            json={"amount": "500", "reason": "Weekly float"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["balance_cents"] == 50000
        assert resp.json["transaction"]["type"] == "credit"

        resp = client.post(
            f"/api/custody/{employee.id}/transactions",
            json={"amount": "-120", "reason": "Returned"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["balance_cents"] == 38000

        mine = client.get("/api/custody/me/transactions", headers=employee_headers)
        assert mine.json["balance_cents"] == 38000
        assert [t["amount_cents"] for t in mine.json["items"]] == [-12000, 50000]

        balances = client.get("/api/custody/balances", headers=admin_headers)
        assert balances.json["total_cents"] == 38000

    def test_type_sign_mismatch_is_400(self, client, admin_headers, employee):
        resp = client.post(
            f"/api/custody/{employee.id}/transactions",
            json={"amount": "-10", "reason": "x", "type": "credit"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_user_is_404(self, client, admin_headers):
        resp = client.post(
            "/api/custody/9999/transactions",
            json={"amount": "10", "reason": "x"},
            headers=admin_headers,
        )
        assert resp.status_code == 404


class TestExports:

    def test_supplier_statement_workbook(self, client, admin_headers, supplier, two_receivables):
        _settle(client, admin_headers, supplier.id, "350", "api-exp-1")

        resp = client.get(f"/api/suppliers/{supplier.id}/export.xlsx", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert f"supplier-{supplier.id}-statement-" in resp.headers["Content-Disposition"]

        workbook = load_workbook(BytesIO(resp.data))
        assert workbook.sheetnames == ["Summary", "Receivables", "Payments"]

        summary = {row[0]: row[1] for row in workbook["Summary"].iter_rows(min_row=2, values_only=True)}
        assert summary["Supplier"] == "Gulf Trading"
        assert summary["Outstanding"] == 150
        assert workbook["Payments"].max_row == 3

    def test_master_report_workbook(self, client, admin_headers, supplier, two_receivables):
        resp = client.get("/api/reports/master.xlsx", headers=admin_headers)
        assert resp.status_code == 200

        workbook = load_workbook(BytesIO(resp.data))
        assert workbook.sheetnames == ["Suppliers", "Receivables", "Payments", "Custody", "Summary"]
        header = [c.value for c in workbook["Suppliers"][1]]
        assert header[:2] == ["Supplier ID", "Name"]

    def test_master_report_json(self, client, admin_headers, supplier, two_receivables):
        resp = client.get("/api/reports/master", headers=admin_headers)
        assert resp.status_code == 200
        summary = resp.json["sheets"][-1]
        rows = {row[0]: row[1] for row in summary["rows"]}
        assert rows["Total outstanding"] == "500.00"
