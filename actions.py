"""
POST actions triggered from the dashboard.

Each action validates its form parameters, performs the NetSuite calls and
returns the query parameters for the redirect back to the dashboard.
handle_post() turns any failure into an {"error": ...} redirect.
"""

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from config import Settings
from constants import (
    ACTION_CREATE_DEPOSIT,
    ACTION_CREATE_NOTE,
    ACTION_CREATE_PAYMENT,
    ACTION_EMAIL_SALES_REP,
    CUSTOMER_DEPOSIT,
    CUSTOMER_PAYMENT,
    DEPOSIT_WF_AUTH_LINK,
    EMAIL_NOTE_TITLE,
    INVOICE,
    NOTE,
    NOTE_TITLE,
    WF_AUTH,
    WF_AUTH_CHARGED,
    WF_AUTH_DEPOSIT_LINKS,
    WF_AUTH_TO_BE_CHARGED,
)
from errors import InvalidRequestError, NetSuiteError, WFProcessingError
from mailer import send_email
from reconciliation import money, to_decimal
from wf_tools import (
    append_deposit_link,
    find_invoice_by_number,
    load_wf_auth,
    lookup_employees,
    lookup_fulfilling_location,
)

logger = logging.getLogger(__name__)

Params = Mapping[str, Any]


# ----------------------------------------------------------------------
# Input parsing
# ----------------------------------------------------------------------

def _param(params: Params, name: str) -> str:
    value = params.get(name)
    return "" if value is None else str(value).strip()


def _parse_positive_int(raw: str, label: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Invalid {label}: {raw}") from None
    if value <= 0:
        raise InvalidRequestError(f"Invalid {label}: {raw}")
    return value


def _parse_optional_int(raw: str, label: str) -> Optional[int]:
    if not raw:
        return None
    return _parse_positive_int(raw, label)


def _parse_amount(raw: str) -> Decimal:
    amount = to_decimal(raw)
    # Payloads carry floats, so the amount must survive float() as a finite number
    if amount <= 0 or not math.isfinite(float(amount)):
        raise InvalidRequestError(f"Invalid amount: {raw}")
    return amount


def _ref(record_id: Any) -> Dict[str, str]:
    """REST shape for select fields."""
    return {"id": str(record_id)}


def _tran_id(client, record_type: str, record_id: int) -> str:
    """Document number of a freshly saved transaction, falling back to its id."""
    try:
        rec = client.get_record(record_type, record_id, fields=["tranId"])
    except NetSuiteError as e:
        logger.error("Error loading %s %s for tranId: %s", record_type, record_id, e)
        return str(record_id)
    return rec.get("tranId") or str(record_id)


# ----------------------------------------------------------------------
# create_deposit
# ----------------------------------------------------------------------

def _charge_wf_auth(client, wf_auth_id: int, deposit_id: int, amount: Decimal) -> str:
    """
    Link the deposit to the authorization and move the amount from
    "to be charged" to "charged". Both new values come from one read, so
    their sum is unchanged. Returns the authorization name for the banner.
    Failures are logged; the deposit already exists at this point.
    """
    try:
        auth = load_wf_auth(client, wf_auth_id)
        links = append_deposit_link(auth["deposit_links"], deposit_id)
        new_to_be_charged = auth["to_be_charged"] - amount
        new_charged = auth["charged"] + amount

        logger.debug(
            "Updating Wells Fargo Auth %s: to_be_charged %s -> %s, charged %s -> %s",
            wf_auth_id, auth["to_be_charged"], new_to_be_charged, auth["charged"], new_charged,
        )

        client.update_record(WF_AUTH, wf_auth_id, {
            WF_AUTH_DEPOSIT_LINKS: {"items": [_ref(link) for link in links]},
            WF_AUTH_TO_BE_CHARGED: float(new_to_be_charged),
            WF_AUTH_CHARGED: float(new_charged),
        })
    except NetSuiteError as e:
        logger.error(
            "Error updating Wells Fargo Auth record %s after deposit %s: %s",
            wf_auth_id, deposit_id, e,
        )
        return str(wf_auth_id)

    logger.info(
        "Wells Fargo Auth %s (%s) updated: deposit %s linked",
        wf_auth_id, auth["name"], deposit_id,
    )
    return auth["name"]


def create_deposit(client, settings: Settings, params: Params) -> Dict[str, str]:
    customer_raw = _param(params, "customer")
    amount_raw = _param(params, "amount")
    wf_auth_number = _param(params, "wfAuthNumber")

    logger.debug("Creating Customer Deposit - input values: %s", dict(params))

    if not customer_raw or not amount_raw:
        raise InvalidRequestError(
            f"Missing required parameters: customer={customer_raw}, amount={amount_raw}"
        )

    customer_id = _parse_positive_int(customer_raw, "customer ID")
    amount = _parse_amount(amount_raw)
    sales_order_id = _parse_optional_int(_param(params, "salesorder"), "sales order ID")
    wf_auth_id = _parse_optional_int(_param(params, "wfAuthId"), "Wells Fargo Authorization ID")
    department_id = (
        _parse_optional_int(_param(params, "location"), "selling location")
        or settings.default_location_id
    )

    location_id = lookup_fulfilling_location(
        client, department_id, default=settings.default_location_id
    )

    values: Dict[str, Any] = {
        "customer": _ref(customer_id),
        "location": _ref(location_id),
        "department": _ref(department_id),
        "tranDate": date.today().isoformat(),
        "memo": (
            f"Wells Fargo Customer Deposit - WF Auth #: {wf_auth_number}"
            f" - WF Record ID: WF{wf_auth_id or ''}"
        ),
        "payment": float(amount),
        "paymentMethod": _ref(settings.payment_method_id),
    }
    if wf_auth_id:
        values[DEPOSIT_WF_AUTH_LINK] = _ref(wf_auth_id)
    if sales_order_id:
        values["salesOrder"] = _ref(sales_order_id)

    deposit_id = client.create_record(CUSTOMER_DEPOSIT, values)

    logger.info(
        "Customer Deposit %s created: customer=%s amount=%s location=%s department=%s "
        "sales_order=%s wf_auth=%s",
        deposit_id, customer_id, money(amount), location_id, department_id,
        sales_order_id, wf_auth_id,
    )

    deposit_tran_id = _tran_id(client, CUSTOMER_DEPOSIT, deposit_id)

    wf_auth_name = ""
    if wf_auth_id:
        wf_auth_name = _charge_wf_auth(client, wf_auth_id, deposit_id, amount)

    return {
        "success": "true",
        "depositTranId": deposit_tran_id,
        "wfAuthName": wf_auth_name,
    }


# ----------------------------------------------------------------------
# create_payment
# ----------------------------------------------------------------------

def build_apply_sublist(invoice_id: int, amount: Decimal) -> Dict[str, Any]:
    """
    Apply exactly `amount` to the invoice line instead of its full balance.
    NetSuite merges apply lines by the "doc" key.
    """
    return {
        "items": [
            {"doc": _ref(invoice_id), "apply": True, "amount": float(amount)},
        ]
    }


def create_payment(client, settings: Settings, params: Params) -> Dict[str, str]:
    customer_raw = _param(params, "customer")
    amount_raw = _param(params, "amount")
    wf_auth_number = _param(params, "wfAuthNumber")
    invoice_number = _param(params, "invoiceNumber")

    logger.debug("Creating Customer Payment - input values: %s", dict(params))

    if not customer_raw or not amount_raw:
        raise InvalidRequestError(
            f"Missing required parameters: customer={customer_raw}, amount={amount_raw}"
        )

    customer_id = _parse_positive_int(customer_raw, "customer ID")
    amount = _parse_amount(amount_raw)

    invoice_id = None
    if invoice_number:
        invoice_id = find_invoice_by_number(client, customer_id, invoice_number)
        logger.debug("Invoice %s resolved to id %s", invoice_number, invoice_id)

    values: Dict[str, Any] = {
        "tranDate": date.today().isoformat(),
        "paymentMethod": _ref(settings.payment_method_id),
        "memo": f"Wells Fargo Payment - Auth # {wf_auth_number or 'Unknown'}",
        # Header amount must be set for the apply line to take the custom amount
        "payment": float(amount),
    }

    payment_id = None
    if invoice_id:
        try:
            payment_id = client.transform_record(
                INVOICE,
                invoice_id,
                CUSTOMER_PAYMENT,
                {**values, "apply": build_apply_sublist(invoice_id, amount)},
            )
        except NetSuiteError as e:
            logger.error(
                "Error transforming invoice %s to payment, creating standalone payment: %s",
                invoice_id, e,
            )

    transformed = payment_id is not None
    if not transformed:
        payment_id = client.create_record(
            CUSTOMER_PAYMENT, {"customer": _ref(customer_id), **values}
        )

    logger.info(
        "Customer Payment %s created: customer=%s amount=%s invoice=%s (%s) transformed=%s",
        payment_id, customer_id, money(amount), invoice_number, invoice_id, transformed,
    )

    return {
        "success": "true",
        "paymentTranId": _tran_id(client, CUSTOMER_PAYMENT, payment_id),
        "paymentAmount": money(amount),
        # A standalone payment is not applied to any invoice, even when one was named
        "appliedInvoice": invoice_number if transformed else "N/A",
    }


# ----------------------------------------------------------------------
# create_note
# ----------------------------------------------------------------------

def create_note(client, settings: Settings, params: Params) -> Dict[str, str]:
    transaction_raw = _param(params, "transactionId")
    note_text = _param(params, "noteText")

    if not transaction_raw or not note_text:
        raise InvalidRequestError(
            f"Missing required parameters: transactionId={transaction_raw}, noteText={note_text}"
        )

    transaction_id = _parse_positive_int(transaction_raw, "transaction ID")

    # notedate is left to NetSuite so it lands in the account timezone
    note_id = client.create_record(NOTE, {
        "title": NOTE_TITLE,
        "note": note_text,
        "transaction": _ref(transaction_id),
    })

    logger.info("Note %s created on transaction %s", note_id, transaction_id)
    return {"success": "note_created"}


# ----------------------------------------------------------------------
# email_sales_rep
# ----------------------------------------------------------------------

def email_sales_rep(
    client,
    settings: Settings,
    params: Params,
    send: Callable[..., None] = send_email,
) -> Dict[str, str]:
    sales_rep_raw = _param(params, "salesrep")
    sales_order_raw = _param(params, "salesorder")
    sales_order_number = _param(params, "salesordernumber")
    subject = _param(params, "emailSubject")
    body = _param(params, "emailBody")

    logger.debug(
        "Emailing Sales Rep %s about sales order %s (%s)",
        sales_rep_raw, sales_order_raw, sales_order_number,
    )

    if not sales_rep_raw or not sales_order_raw or not subject or not body:
        raise InvalidRequestError("Missing required parameters")

    sales_rep_id = _parse_positive_int(sales_rep_raw, "sales rep ID")
    sales_order_id = _parse_positive_int(sales_order_raw, "sales order ID")

    manager_id = settings.manager_employee_id
    sender_id = settings.sender_employee_id

    cc_ids = [manager_id]
    if sender_id and sender_id not in (sales_rep_id, manager_id):
        cc_ids.append(sender_id)

    employees = lookup_employees(client, [sales_rep_id, *cc_ids])

    rep = employees.get(sales_rep_id)
    if not rep or not rep["email"]:
        raise InvalidRequestError(f"Sales rep {sales_rep_id} has no email address")

    cc_emails = [employees[i]["email"] for i in cc_ids if i in employees and employees[i]["email"]]
    reply_to = employees[sender_id]["email"] if sender_id in employees else ""

    send(settings, rep["email"], subject, body, cc_emails=cc_emails, reply_to=reply_to)

    logger.info(
        "Email sent to sales rep %s (cc %s) for sales order %s: %r",
        sales_rep_id, cc_ids, sales_order_id, subject,
    )

    rep_name = rep["name"] or f"Sales Rep ID {sales_rep_id}"
    manager = employees.get(manager_id)
    manager_name = (manager["name"] if manager else "") or "Manager"

    try:
        note_id = client.create_record(NOTE, {
            "title": EMAIL_NOTE_TITLE,
            "note": (
                f"Short authorization email sent to {rep_name}.\n"
                f"Manager {manager_name} copied on email."
            ),
            "transaction": _ref(sales_order_id),
        })
        logger.info("Note %s created after email on sales order %s", note_id, sales_order_id)
    except NetSuiteError as e:
        # The email is out already; a missing note does not fail the action
        logger.error("Error creating note after email on sales order %s: %s", sales_order_id, e)

    return {"success": "email_sent", "salesOrderNumber": sales_order_number}


# ----------------------------------------------------------------------
# Dispatcher
# ----------------------------------------------------------------------

def handle_post(
    client,
    settings: Settings,
    params: Params,
    send: Callable[..., None] = send_email,
) -> Dict[str, str]:
    """
    Run the requested action and return the redirect query parameters.
    Errors never escape: they become {"error": "Error processing request: ..."}.
    """
    action = _param(params, "action")

    try:
        if action == ACTION_CREATE_DEPOSIT:
            return create_deposit(client, settings, params)
        if action == ACTION_CREATE_PAYMENT:
            return create_payment(client, settings, params)
        if action == ACTION_CREATE_NOTE:
            return create_note(client, settings, params)
        if action == ACTION_EMAIL_SALES_REP:
            return email_sales_rep(client, settings, params, send=send)
        raise InvalidRequestError(f"Unknown action: {action or '(none)'}")

    except (WFProcessingError, RuntimeError, OSError) as e:
        logger.error(
            "Error in POST processing: %s (action=%s customer=%s amount=%s)",
            e, action, params.get("customer"), params.get("amount"),
            exc_info=not isinstance(e, InvalidRequestError),
        )
        return {"error": f"Error processing request: {e}"}
    except Exception as e:
        logger.error(
            "Unexpected error in POST processing: %r (action=%s)", e, action, exc_info=True
        )
        return {"error": f"Error processing request: {e}"}
