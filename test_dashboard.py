import pytest

from dashboard import build_dashboard, render_dashboard, status_message
from errors import NetSuiteError
from test_wf_tools import DEPOSIT_ROW


@pytest.fixture
def queues(fake_client):
    fake_client.add_rows("AS wf_auth_id", [DEPOSIT_ROW])
    fake_client.add_rows("foreigntotal AS total", [{"id": "501", "total": "1000"}])
    fake_client.add_rows("AS deposit_total", [{"sales_order_id": "501", "deposit_total": "200"}])
    fake_client.add_rows("AS document_number", [{
        "transaction_id": "601",
        "document_number": "INV601",
        "type_code": "CustInvc",
        "type_name": "Invoice",
        "customer_id": "77",
        "customer_name": "Jane <Doe>",
        "amount_remaining": "500",
        "sales_order_id": "501",
    }])
    return fake_client


@pytest.mark.parametrize(
    "params, title",
    [
        ({"success": "email_sent", "salesOrderNumber": "SO501"}, "Email Sent Successfully"),
        ({"success": "note_created"}, "Note Created Successfully"),
        ({"success": "true", "paymentTranId": "PAY1"}, "Customer Payment Created Successfully"),
    ],
)
def test_status_message_titles(params, title):
    assert status_message(params)["title"] == title


def test_status_message_deposit_lines():
    status = status_message({"success": "true", "depositTranId": "CD9", "wfAuthName": "WF31"})

    assert status["kind"] == "success"
    assert status["lines"] == ["Customer Deposit: CD9", "Wells Fargo Authorization: WF31"]


def test_status_message_payment_defaults_to_na():
    status = status_message({"success": "true", "paymentTranId": "PAY1", "paymentAmount": "5.00"})

    assert status["lines"][1] == "Amount: $5.00"
    assert status["lines"][2] == "Applied to Invoice: N/A"


def test_status_message_error_and_none():
    assert status_message({"error": "bad"})["kind"] == "error"
    assert status_message({}) is None


def test_short_rows_get_email_draft(queues, settings):
    context = build_dashboard(queues, settings, {})

    (row,) = context["deposits"]["rows"]
    assert row["is_short"]
    assert row["email"]["subject"] == "WF Short Auth - Kitchen Works - Jane Doe"


def test_section_error_is_isolated(queues, settings):
    queues.fail["suiteql:AS wf_auth_id"] = NetSuiteError("search unavailable")
    del queues.query_rows["AS wf_auth_id"]

    context = build_dashboard(queues, settings, {})

    assert context["deposits"]["error"] == "search unavailable"
    assert context["deposits"]["rows"] == []
    assert context["receivables"]["error"] is None
    assert len(context["receivables"]["rows"]) == 1


def test_render_dashboard(queues, settings):
    html = render_dashboard(queues, settings, {"success": "note_created"})

    assert "Kitchen Works Materials: Sales Order 50% Deposit Processing" in html
    assert "Open A/R Invoice / Credit Memo Processing" in html
    assert "Note Created Successfully" in html
    assert "SHORT 200.00" in html
    assert "Create Deposit" in html
    assert "Email Sales Rep" in html
    assert "Create Payment" in html
    assert "https://ui.test/salesOrder/501" in html
    assert "No WF records" in html
    assert "Results: 1" in html


def test_render_escapes_netsuite_values(queues, settings):
    html = render_dashboard(queues, settings, {"error": "<script>alert(1)</script>"})

    assert "Jane &lt;Doe&gt;" in html
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html


def test_render_credit_memo_refund_manually(fake_client, settings):
    fake_client.add_rows("AS document_number", [{
        "transaction_id": "602",
        "document_number": "CM602",
        "type_code": "CustCred",
        "type_name": "Credit Memo",
        "amount_remaining": "-25",
        "sales_order_id": "501",
    }])

    html = render_dashboard(fake_client, settings, {})

    assert "Refund Manually" in html
    assert "Create Payment" not in html
    assert "https://ui.test/creditMemo/602" in html


def test_render_note_with_edit_link(queues, settings):
    queues.add_rows("FROM transactionnote", [{
        "transaction": "501", "id": "44", "notedate": "1/6/2026", "note": "Called", "author": "Ann Lee",
    }])

    html = render_dashboard(queues, settings, {})

    assert "has-note" in html
    assert "Ann Lee" in html
    assert "https://ui.test/note/44?e=T" in html
