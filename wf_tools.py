import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from constants import (
    DEPARTMENT,
    DEPARTMENT_FULFILLING_LOCATION,
    TYPE_CREDIT_MEMO,
    TYPE_DEPOSIT,
    TYPE_INVOICE,
    WF_AUTH,
    WF_AUTH_AMOUNT,
    WF_AUTH_CHARGED,
    WF_AUTH_DEPOSIT_LINKS,
    WF_AUTH_NUMBER,
    WF_AUTH_SALES_ORDER,
    WF_AUTH_TO_BE_CHARGED,
)
from errors import NetSuiteError
from reconciliation import money, to_decimal, validate_deposit

logger = logging.getLogger(__name__)

# Authorizations that still have an amount waiting to be charged as a deposit
DEPOSIT_QUEUE_QUERY = f"""
SELECT
    wf.id                                   AS wf_auth_id,
    wf.name                                 AS wf_auth_name,
    wf.{WF_AUTH_NUMBER}                     AS wf_auth_number,
    wf.{WF_AUTH_AMOUNT}                     AS wf_auth_amount,
    wf.{WF_AUTH_TO_BE_CHARGED}              AS amount,
    so.id                                   AS sales_order_id,
    so.tranid                               AS sales_order_number,
    so.trandate                             AS sales_order_date,
    so.entity                               AS customer_id,
    BUILTIN.DF(so.entity)                   AS customer_name,
    so.department                           AS department_id,
    BUILTIN.DF(so.department)               AS selling_location,
    so.employee                             AS sales_rep_id,
    BUILTIN.DF(so.employee)                 AS sales_rep_name
FROM {WF_AUTH} wf
JOIN transaction so
    ON so.id = wf.{WF_AUTH_SALES_ORDER}
WHERE
    NVL(wf.{WF_AUTH_TO_BE_CHARGED}, 0) > 0
ORDER BY
    so.trandate ASC
"""

# Open invoices / credit memos created from Wells Fargo financed sales orders
RECEIVABLES_QUEUE_QUERY = f"""
SELECT
    t.id                                    AS transaction_id,
    t.tranid                                AS document_number,
    t.type                                  AS type_code,
    BUILTIN.DF(t.type)                      AS type_name,
    t.trandate                              AS trandate,
    t.duedate                               AS duedate,
    t.entity                                AS customer_id,
    BUILTIN.DF(t.entity)                    AS customer_name,
    t.foreignamountunpaid                   AS amount_remaining,
    tl.createdfrom                          AS sales_order_id,
    BUILTIN.DF(tl.createdfrom)              AS sales_order_number
FROM transaction t
JOIN transactionline tl
    ON tl.transaction = t.id
   AND tl.mainline = 'T'
WHERE
    t.type IN ('{TYPE_INVOICE}', '{TYPE_CREDIT_MEMO}')
    AND NVL(t.foreignamountunpaid, 0) <> 0
    AND EXISTS (
        SELECT 1 FROM {WF_AUTH} wf
        WHERE wf.{WF_AUTH_SALES_ORDER} = tl.createdfrom
    )
ORDER BY
    t.duedate ASC
"""


# ----------------------------------------------------------------------
# Small helpers
# ----------------------------------------------------------------------

def _id_list(ids: Iterable[Any]) -> List[int]:
    """Unique positive integer ids, in first-seen order. Junk is dropped."""
    out: List[int] = []
    for raw in ids:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            continue
        if value > 0 and value not in out:
            out.append(value)
    return out


def _in_clause(ids: List[int]) -> str:
    return ", ".join(str(i) for i in ids)


def _escape_sql(text: str) -> str:
    """Escape single quotes for SuiteQL string literals."""
    return str(text).replace("'", "''")


def _ref_id(value: Any) -> Optional[int]:
    """
    Select fields come back from the record API as {"id": "5", "refName": ...}
    and from SuiteQL as plain strings. Return the integer id either way.
    """
    if isinstance(value, dict):
        value = value.get("id")
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def normalize_links(value: Any) -> List[int]:
    """
    Multi-select values show up as a single id, a list, a comma separated
    string, or the REST shape {"items": [{"id": ...}, ...]}.
    """
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        if "items" in value:
            return normalize_links(value.get("items") or [])
        ref = _ref_id(value)
        return [ref] if ref else []
    if isinstance(value, (list, tuple)):
        links: List[int] = []
        for item in value:
            links.extend(normalize_links(item))
        return links
    if isinstance(value, str) and "," in value:
        return normalize_links([part for part in value.split(",") if part.strip()])
    ref = _ref_id(value)
    return [ref] if ref else []


def append_deposit_link(existing_links: List[int], new_deposit_id: Any) -> List[int]:
    """
    Return a copy of the multi-select values with the new deposit appended.
    The input list is left untouched.
    """
    updated = list(existing_links)
    updated.append(int(new_deposit_id))
    return updated


# ----------------------------------------------------------------------
# Lookups used by the actions
# ----------------------------------------------------------------------

def lookup_fulfilling_location(client, department_id: int, default: int) -> int:
    """
    The fulfilling location lives on the department (selling location) record.
    Falls back to the default location when it is empty or the lookup fails.
    """
    logger.debug("Looking up fulfilling location for department %s", department_id)
    try:
        dept = client.get_record(
            DEPARTMENT, department_id, fields=[DEPARTMENT_FULFILLING_LOCATION]
        )
    except NetSuiteError as e:
        logger.error(
            "Error looking up fulfilling location: %s (department_id=%s)", e, department_id
        )
        return default

    location_id = _ref_id(dept.get(DEPARTMENT_FULFILLING_LOCATION))
    if location_id:
        return location_id

    logger.debug("No fulfilling location on department %s, using default", department_id)
    return default


def load_wf_auth(client, wf_auth_id: Any) -> Dict[str, Any]:
    """
    Current state of one Wells Fargo Authorization record.
    Empty amounts count as 0.
    """
    rec = client.get_record(
        WF_AUTH,
        wf_auth_id,
        fields=["name", WF_AUTH_TO_BE_CHARGED, WF_AUTH_CHARGED, WF_AUTH_DEPOSIT_LINKS],
    )
    return {
        "id": int(wf_auth_id),
        "name": rec.get("name") or str(wf_auth_id),
        "to_be_charged": to_decimal(rec.get(WF_AUTH_TO_BE_CHARGED)),
        "charged": to_decimal(rec.get(WF_AUTH_CHARGED)),
        "deposit_links": normalize_links(rec.get(WF_AUTH_DEPOSIT_LINKS)),
    }


def find_invoice_by_number(client, customer_id: int, invoice_number: str) -> Optional[int]:
    """
    Internal id of the customer's invoice with this document number, or None.
    """
    query = f"""
    SELECT
        t.id AS id
    FROM transaction t
    WHERE
        t.type = '{TYPE_INVOICE}'
        AND t.entity = {int(customer_id)}
        AND t.tranid = '{_escape_sql(invoice_number)}'
    """
    try:
        rows = client.suiteql_rows(query, max_rows=1)
    except NetSuiteError as e:
        logger.error(
            "Error finding invoice by number: %s (customer_id=%s, invoice_number=%s)",
            e, customer_id, invoice_number,
        )
        return None

    if not rows:
        return None
    return _ref_id(rows[0].get("id"))


def lookup_employees(client, employee_ids: Iterable[Any]) -> Dict[int, Dict[str, Any]]:
    """
    Name and email for each employee id. Unknown ids are simply missing.
    """
    ids = _id_list(employee_ids)
    if not ids:
        return {}

    query = f"""
    SELECT
        e.id        AS id,
        e.firstname AS firstname,
        e.lastname  AS lastname,
        e.email     AS email
    FROM employee e
    WHERE e.id IN ({_in_clause(ids)})
    """
    rows = client.suiteql_rows(query, max_rows=len(ids))

    employees: Dict[int, Dict[str, Any]] = {}
    for r in rows:
        emp_id = _ref_id(r.get("id"))
        if emp_id is None:
            continue
        full_name = f"{r.get('firstname') or ''} {r.get('lastname') or ''}".strip()
        employees[emp_id] = {
            "id": emp_id,
            "name": full_name,
            "email": r.get("email") or "",
        }
    return employees


# ----------------------------------------------------------------------
# Batch loads for the dashboard
# ----------------------------------------------------------------------

def get_sales_order_totals(client, sales_order_ids: Iterable[Any]) -> Dict[str, Decimal]:
    """
    Sales order id -> transaction total. Orders that fail to load are missing,
    callers treat them as 0.
    """
    ids = _id_list(sales_order_ids)
    if not ids:
        return {}

    query = f"""
    SELECT
        t.id           AS id,
        t.foreigntotal AS total
    FROM transaction t
    WHERE t.id IN ({_in_clause(ids)})
    """
    try:
        rows = client.suiteql_rows(query, max_rows=len(ids))
    except NetSuiteError as e:
        logger.error("Error getting Sales Order totals: %s", e)
        return {}

    return {str(r.get("id")): to_decimal(r.get("total")) for r in rows}


def get_applied_customer_deposits(client, sales_order_ids: Iterable[Any]) -> Dict[str, Decimal]:
    """
    Sales order id -> total of non-voided customer deposits applied to it.
    """
    ids = _id_list(sales_order_ids)
    if not ids:
        return {}

    query = f"""
    SELECT
        tl.createdfrom      AS sales_order_id,
        SUM(t.foreigntotal) AS deposit_total
    FROM transaction t
    JOIN transactionline tl
        ON tl.transaction = t.id
       AND tl.mainline = 'T'
    WHERE
        t.type = '{TYPE_DEPOSIT}'
        AND NVL(t.voided, 'F') = 'F'
        AND tl.createdfrom IN ({_in_clause(ids)})
    GROUP BY
        tl.createdfrom
    """
    try:
        rows = client.suiteql_rows(query, max_rows=len(ids))
    except NetSuiteError as e:
        logger.error("Error getting applied customer deposits: %s", e)
        return {}

    totals = {str(r.get("sales_order_id")): to_decimal(r.get("deposit_total")) for r in rows}
    logger.debug("Applied customer deposits retrieved: %s", totals)
    return totals


def batch_load_most_recent_notes(client, transaction_ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """
    Transaction id -> newest note (date, author, title, text).
    Uses a window function so NetSuite returns one row per transaction.
    """
    ids = _id_list(transaction_ids)
    if not ids:
        return {}

    query = f"""
    SELECT * FROM (
        SELECT
            tn.transaction                              AS transaction,
            tn.id                                       AS id,
            tn.notedate                                 AS notedate,
            tn.note                                     AS note,
            tn.title                                    AS title,
            (e.firstname || ' ' || e.lastname)          AS author,
            ROW_NUMBER() OVER (
                PARTITION BY tn.transaction ORDER BY tn.notedate DESC, tn.id DESC
            )                                           AS rn
        FROM transactionnote tn
        INNER JOIN employee e
            ON e.id = tn.author
        WHERE tn.transaction IN ({_in_clause(ids)})
    ) WHERE rn = 1
    """
    try:
        rows = client.suiteql_rows(query, max_rows=len(ids))
    except NetSuiteError as e:
        logger.error("Error batch loading notes: %s", e)
        return {}

    notes: Dict[str, Dict[str, Any]] = {}
    for r in rows:
        notes[str(r.get("transaction"))] = {
            "id": r.get("id") or "",
            "notedate": r.get("notedate") or "",
            "note": r.get("note") or "",
            "title": r.get("title") or "",
            "author": (r.get("author") or "").strip(),
        }

    logger.debug("Batch loaded notes: %d of %d transactions", len(notes), len(ids))
    return notes


def _empty_auth_summary() -> Dict[str, Any]:
    return {"records": [], "total": Decimal("0"), "auth_numbers": []}


def batch_load_wf_auths(client, sales_order_ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """
    Sales order id -> {records, total, auth_numbers} for every linked
    Wells Fargo Authorization. Every requested id gets an entry.
    """
    ids = _id_list(sales_order_ids)
    auth_map = {str(i): _empty_auth_summary() for i in ids}
    if not ids:
        return auth_map

    query = f"""
    SELECT
        wf.id                       AS id,
        wf.{WF_AUTH_SALES_ORDER}    AS sales_order_id,
        wf.name                     AS name,
        wf.{WF_AUTH_AMOUNT}         AS amount,
        wf.{WF_AUTH_NUMBER}         AS auth_number
    FROM {WF_AUTH} wf
    WHERE wf.{WF_AUTH_SALES_ORDER} IN ({_in_clause(ids)})
    ORDER BY wf.id
    """
    try:
        rows = client.suiteql_rows(query, max_rows=5000)
    except NetSuiteError as e:
        logger.error("Error batch loading Wells Fargo Auths: %s", e)
        return auth_map

    for r in rows:
        summary = auth_map.get(str(r.get("sales_order_id")))
        if summary is None:
            continue
        amount = to_decimal(r.get("amount"))
        summary["records"].append({
            "id": r.get("id"),
            "name": r.get("name") or "",
            "amount": money(amount),
        })
        summary["total"] += amount
        if r.get("auth_number"):
            summary["auth_numbers"].append(r.get("auth_number"))

    return auth_map


# ----------------------------------------------------------------------
# Dashboard datasets
# ----------------------------------------------------------------------

def get_deposit_queue(client, limit: int = 1000) -> List[Dict[str, Any]]:
    """
    Authorizations waiting to be charged as a 50% customer deposit, each with
    its deposit validation and most recent sales order note.
    """
    rows = client.suiteql_rows(DEPOSIT_QUEUE_QUERY, max_rows=limit)

    so_ids = [r.get("sales_order_id") for r in rows]
    totals = get_sales_order_totals(client, so_ids)
    deposits = get_applied_customer_deposits(client, so_ids)
    notes = batch_load_most_recent_notes(client, so_ids)

    result = []
    for r in rows:
        so_id = str(r.get("sales_order_id") or "")
        validation = validate_deposit(
            totals.get(so_id, 0),
            deposits.get(so_id, 0),
            r.get("amount"),
        )
        result.append({
            "wf_auth_id": r.get("wf_auth_id"),
            "wf_auth_name": r.get("wf_auth_name") or "",
            "wf_auth_number": r.get("wf_auth_number") or "",
            "wf_auth_amount": money(r.get("wf_auth_amount")),
            "amount": money(r.get("amount")),
            "sales_order_id": so_id,
            "sales_order_number": r.get("sales_order_number") or "",
            "sales_order_date": r.get("sales_order_date") or "",
            "customer_id": r.get("customer_id") or "",
            "customer_name": r.get("customer_name") or "",
            "department_id": r.get("department_id") or "",
            "selling_location": r.get("selling_location") or "",
            "sales_rep_id": r.get("sales_rep_id") or "",
            "sales_rep_name": r.get("sales_rep_name") or "",
            "validation": validation.as_dict(),
            "is_short": validation.is_short,
            "note": notes.get(so_id),
        })

    logger.debug("Deposit queue loaded: %d rows", len(result))
    return result


def get_receivables_queue(client, limit: int = 1000) -> List[Dict[str, Any]]:
    """
    Open invoices and credit memos on financed sales orders, with linked
    authorizations and the most recent note per document.
    """
    rows = client.suiteql_rows(RECEIVABLES_QUEUE_QUERY, max_rows=limit)

    notes = batch_load_most_recent_notes(client, [r.get("transaction_id") for r in rows])
    auths = batch_load_wf_auths(client, [r.get("sales_order_id") for r in rows])

    result = []
    for r in rows:
        txn_id = str(r.get("transaction_id") or "")
        so_id = str(r.get("sales_order_id") or "")
        summary = auths.get(so_id) or _empty_auth_summary()
        result.append({
            "transaction_id": txn_id,
            "document_number": r.get("document_number") or "",
            "type_code": r.get("type_code") or "",
            "type_name": r.get("type_name") or "",
            "is_credit_memo": r.get("type_code") == TYPE_CREDIT_MEMO,
            "trandate": r.get("trandate") or "",
            "duedate": r.get("duedate") or "",
            "customer_id": r.get("customer_id") or "",
            "customer_name": r.get("customer_name") or "",
            "amount_remaining": money(r.get("amount_remaining")),
            "sales_order_id": so_id,
            "sales_order_number": r.get("sales_order_number") or "",
            "wf_auths": summary["records"],
            "wf_auth_total": money(summary["total"]),
            "wf_auth_numbers": ", ".join(summary["auth_numbers"]),
            "note": notes.get(txn_id),
        })

    logger.debug("Receivables queue loaded: %d rows", len(result))
    return result


def draft_short_auth_email(row: Dict[str, Any]) -> Dict[str, str]:
    """
    Default subject/body for telling the sales rep an authorization is short.
    SAFE: only builds the text, the user edits it before anything is sent.
    """
    v = row["validation"]
    customer_name = row.get("customer_name") or "Customer"
    shortfall = money(abs(to_decimal(v["variance"])))

    subject = f"WF Short Auth - Kitchen Works - {customer_name}"

    body = f"""Wells Fargo Kitchen Works Short Authorization

{row.get("sales_order_number", "")}
Customer: {customer_name}
Selling Location: {row.get("selling_location", "")}

DEPOSIT VALIDATION:
SO Total: {v["sales_order_total"]}
Required (50% CD): {v["required"]}
Prior CDs: {v["prior_deposits"]}
WF To Be Processed: {v["to_be_processed"]}
Total CDs After Processing: {v["after_processing"]}

 SHORT {shortfall}

Please review this authorization and follow up on the deposit shortage.

REMINDER: Authorizations should be for the FULL balance of the Sales Order, allowing us to charge 50% as a Customer Deposit and the remaining balance at the time of invoicing."""

    return {"subject": subject, "body": body}
