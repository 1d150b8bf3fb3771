"""
MCP Server for Wells Fargo processing

This file exposes the dashboard data as MCP tools,
so that an AI client can read the work queues and check deposits.

Tools:
- deposit_queue / receivables_queue (read only)
- validate_deposit (pure arithmetic, no NetSuite call)
- create_note (the only write)
"""

from functools import lru_cache

# FastMCP is a lightweight helper that makes it easy
# to create an MCP-compatible tool server
from mcp.server.fastmcp import FastMCP

import actions
from config import configure_logging, get_settings
from netsuite_client import NetSuiteClient
from reconciliation import validate_deposit as _validate_deposit
from wf_tools import get_deposit_queue, get_receivables_queue

# The name is what AI clients will see
mcp = FastMCP("wells-fargo-processing")


@lru_cache()
def get_client() -> NetSuiteClient:
    # Created on first tool call so the server starts without credentials
    return NetSuiteClient()


@mcp.tool()
def deposit_queue(limit: int = 100) -> dict:
    """
    Wells Fargo authorizations waiting to be charged as a 50% customer
    deposit, with the deposit validation for each sales order.
    """
    rows = get_deposit_queue(get_client(), limit=limit)
    return {"count": len(rows), "rows": rows}


@mcp.tool()
def receivables_queue(limit: int = 100) -> dict:
    """Open invoices and credit memos on Wells Fargo financed sales orders."""
    rows = get_receivables_queue(get_client(), limit=limit)
    return {"count": len(rows), "rows": rows}


@mcp.tool()
def validate_deposit(sales_order_total: str, prior_deposits: str, amount: str) -> dict:
    """Check prior deposits + amount against 50% of the sales order total."""
    return _validate_deposit(sales_order_total, prior_deposits, amount).as_dict()


@mcp.tool()
def create_note(transaction_id: int, note_text: str) -> dict:
    """Add a "Wells Fargo Note" to a sales order, invoice or credit memo."""
    return actions.create_note(
        get_client(),
        get_settings(),
        {"transactionId": str(transaction_id), "noteText": note_text},
    )


# Entry point when running this file directly
if __name__ == "__main__":
    configure_logging(get_settings())
    mcp.run(transport="stdio")
