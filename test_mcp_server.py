import pytest

import mcp_server


@pytest.fixture
def tool_client(fake_client, settings, monkeypatch):
    monkeypatch.setattr(mcp_server, "get_client", lambda: fake_client)
    monkeypatch.setattr(mcp_server, "get_settings", lambda: settings)
    return fake_client


def test_validate_deposit_tool():
    result = mcp_server.validate_deposit("1000", "200", "100")

    assert result["label"] == "SHORT 200.00"
    assert result["required"] == "500.00"


def test_deposit_queue_tool(tool_client):
    tool_client.add_rows("AS wf_auth_id", [{"wf_auth_id": "31", "sales_order_id": "501", "amount": "50"}])

    result = mcp_server.deposit_queue(limit=10)

    assert result["count"] == 1
    assert result["rows"][0]["amount"] == "50.00"


def test_receivables_queue_tool_empty(tool_client):
    assert mcp_server.receivables_queue() == {"count": 0, "rows": []}


def test_create_note_tool(tool_client):
    assert mcp_server.create_note(501, "Left voicemail") == {"success": "note_created"}
    assert tool_client.created[0][1]["transaction"] == {"id": "501"}
