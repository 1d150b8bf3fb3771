"""
HTML dashboard for Wells Fargo processing.

Builds the page context (status banner + two work queues) and renders it with
Jinja2. Autoescaping is on, so every NetSuite value is escaped by default.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

import constants
from config import Settings
from errors import NetSuiteError
from wf_tools import draft_short_auth_email, get_deposit_queue, get_receivables_queue

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).with_name("templates")

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

DEPOSIT_SECTION_TITLE = "Kitchen Works Materials: Sales Order 50% Deposit Processing"
DEPOSIT_SECTION_SOURCE = "Source: Wells Fargo Sales Order Customer Deposits To Be Charged"
RECEIVABLES_SECTION_TITLE = "Open A/R Invoice / Credit Memo Processing"
RECEIVABLES_SECTION_SOURCE = "Source: A/R Aging (Wells Fargo Financing)"


def status_message(params: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Banner for the redirect that follows a POST. Returns None when the
    request carries neither success nor error state.
    """
    error = params.get("error")
    if error:
        return {"kind": "error", "title": "Error:", "lines": [str(error)]}

    success = params.get("success")
    if not success:
        return None

    if success == "email_sent":
        so_number = params.get("salesOrderNumber") or "the sales order"
        return {
            "kind": "success",
            "title": "Email Sent Successfully",
            "lines": [
                f"Sales rep has been notified about the short authorization for {so_number}."
            ],
        }

    if success == "note_created":
        return {
            "kind": "success",
            "title": "Note Created Successfully",
            "lines": ["A new note has been added to the transaction."],
        }

    if params.get("depositTranId"):
        return {
            "kind": "success",
            "title": (
                "Customer Deposit Created Successfully and "
                "Wells Fargo Authorization Record Updated"
            ),
            "lines": [
                f"Customer Deposit: {params.get('depositTranId') or 'Unknown'}",
                f"Wells Fargo Authorization: {params.get('wfAuthName') or 'Unknown'}",
            ],
        }

    if params.get("paymentTranId"):
        return {
            "kind": "success",
            "title": "Customer Payment Created Successfully",
            "lines": [
                f"Customer Payment: {params.get('paymentTranId') or 'Unknown'}",
                f"Amount: ${params.get('paymentAmount') or 'Unknown'}",
                f"Applied to Invoice: {params.get('appliedInvoice') or 'N/A'}",
            ],
        }

    return {"kind": "success", "title": "Done", "lines": []}


def load_section(
    key: str,
    title: str,
    source: str,
    loader: Callable[[], List[Dict[str, Any]]],
) -> Dict[str, Any]:
    """
    Load one work queue. A failure only affects this section of the page.
    """
    try:
        rows = loader()
        error = None
    except NetSuiteError as e:
        logger.error("Error loading %s section: %s", key, e)
        rows, error = [], str(e)

    return {"key": key, "title": title, "source": source, "rows": rows, "error": error}


def build_dashboard(client, settings: Settings, params: Mapping[str, Any]) -> Dict[str, Any]:
    def deposit_rows() -> List[Dict[str, Any]]:
        rows = get_deposit_queue(client, limit=settings.row_limit)
        for row in rows:
            if row["is_short"] and row["sales_rep_id"]:
                row["email"] = draft_short_auth_email(row)
        return rows

    return {
        "status": status_message(params),
        "sop_url": settings.sop_url,
        "deposits": load_section(
            "deposit", DEPOSIT_SECTION_TITLE, DEPOSIT_SECTION_SOURCE, deposit_rows
        ),
        "receivables": load_section(
            "payment",
            RECEIVABLES_SECTION_TITLE,
            RECEIVABLES_SECTION_SOURCE,
            lambda: get_receivables_queue(client, limit=settings.row_limit),
        ),
        "record_url": client.record_url,
        "rt": constants,
    }


def render_dashboard(client, settings: Settings, params: Mapping[str, Any]) -> str:
    context = build_dashboard(client, settings, params)
    return _env.get_template("dashboard.html").render(**context)
