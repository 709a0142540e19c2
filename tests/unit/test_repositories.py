import pytest
from unittest.mock import MagicMock
from postgrest.exceptions import APIError

import boutique.carts.repository as carts_repo
import boutique.orders.repository as orders_repo
import boutique.payments.repository as payments_repo
import boutique.shipments.repository as shipments_repo

class _Resp:
    def __init__(self, data=None):
        self.data = data

def _chain_client(data=None):
    """Client dont chaque appel chaîné renvoie la même requête; execute() renvoie data."""
    client = MagicMock()
    query = MagicMock()
    client.table.return_value = query
    client.rpc.return_value = query
    for name in ("select", "insert", "update", "delete", "eq", "lt", "limit", "order"):
        getattr(query, name).return_value = query
    query.execute.return_value = _Resp(data)
    return client, query

def _use(monkeypatch, client):
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)

# --- orders ---

def test_place_order_calls_rpc_with_payload(monkeypatch):
    client, _ = _chain_client(data="order-1")
    _use(monkeypatch, client)
    items = [{"product_id": "p1", "quantity": 2, "price": "10.00"}]

    oid = orders_repo.place_order(user_id="u1", cart_id="c1", total="20.00", items=items)

    assert oid == "order-1"
    client.rpc.assert_called_once_with("place_order", {
        "p_user_id": "u1",
        "p_cart_id": "c1",
        "p_total": "20.00",
        "p_items": items,
    })

def test_place_order_accepts_list_payload(monkeypatch):
    client, _ = _chain_client(data=[{"place_order": "order-2"}])
    _use(monkeypatch, client)
    assert orders_repo.place_order(user_id="u1", cart_id=None, total="1.00", items=[]) == "order-2"

def test_place_order_changed_cart_raises_cart_changed(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = APIError({"code": "40001", "message": "place_order: panier modifié"})
    _use(monkeypatch, client)

    with pytest.raises(orders_repo.CartChanged):
        orders_repo.place_order(user_id="u1", cart_id="c1", total="1.00", items=[])

def test_place_order_other_error_propagates(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = APIError({"code": "23503", "message": "foreign key violation"})
    _use(monkeypatch, client)

    with pytest.raises(APIError):
        orders_repo.place_order(user_id="u1", cart_id="c1", total="1.00", items=[])

def test_confirm_if_pending_is_conditional(monkeypatch):
    client, query = _chain_client(data=[{"id": "o1", "status": "CONFIRMED"}])
    _use(monkeypatch, client)

    assert orders_repo.confirm_if_pending("o1") is True
    query.update.assert_called_once_with({"status": "CONFIRMED"})
    query.eq.assert_any_call("id", "o1")
    query.eq.assert_any_call("status", "PENDING")

def test_cancel_if_pending_no_row_changed(monkeypatch):
    client, _ = _chain_client(data=[])
    _use(monkeypatch, client)
    assert orders_repo.cancel_if_pending("o1") is False

# --- payments ---

def test_insert_payment_returns_row(monkeypatch):
    row = {"id": "pay-1", "order_id": "o1", "status": "INITIATED"}
    client, query = _chain_client(data=[row])
    _use(monkeypatch, client)

    assert payments_repo.insert_payment(order_id="o1", amount="10.00", provider="MOCK") == row
    query.insert.assert_called_once_with({"order_id": "o1", "amount": "10.00", "status": "INITIATED", "provider": "MOCK"})

def test_insert_payment_duplicate_returns_none(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = APIError({"code": "23505", "message": "duplicate key value"})
    _use(monkeypatch, client)

    assert payments_repo.insert_payment(order_id="o1", amount="10.00", provider="MOCK") is None

def test_insert_payment_other_error_propagates(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = APIError({"code": "23503", "message": "foreign key violation"})
    _use(monkeypatch, client)

    with pytest.raises(APIError):
        payments_repo.insert_payment(order_id="o1", amount="10.00", provider="MOCK")

def test_update_payment_only_from_initiated(monkeypatch):
    client, query = _chain_client(data=[])
    _use(monkeypatch, client)

    assert payments_repo.update_payment("pay-1", status="SUCCESS", reference="MOCK_TXN_1") is None
    query.update.assert_called_once_with({"status": "SUCCESS", "reference": "MOCK_TXN_1"})
    query.eq.assert_any_call("status", "INITIATED")

def test_expire_stale_attempts_targets_old_initiated_rows(monkeypatch):
    client, query = _chain_client(data=[{"id": "pay-1"}])
    _use(monkeypatch, client)

    assert payments_repo.expire_stale_attempts("o1", older_than="2024-01-01T00:00:00+00:00") == 1
    query.update.assert_called_once_with({"status": "FAILED"})
    query.eq.assert_any_call("order_id", "o1")
    query.eq.assert_any_call("status", "INITIATED")
    query.lt.assert_called_once_with("created_at", "2024-01-01T00:00:00+00:00")

def test_list_payments_for_order_error_returns_empty(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = Exception("boom")
    _use(monkeypatch, client)
    assert payments_repo.list_payments_for_order("o1") == []

# --- shipments ---

def test_insert_shipment_duplicate_returns_none(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = APIError({"code": "23505", "message": "duplicate key value"})
    _use(monkeypatch, client)

    assert shipments_repo.insert_shipment(order_id="o1", address="1 rue X", carrier=None, tracking_number=None) is None

# --- carts ---

def test_delete_cart_success(monkeypatch):
    client, query = _chain_client(data=[{"id": "c1"}])
    _use(monkeypatch, client)

    assert carts_repo.delete_cart("c1") is True
    client.table.assert_called_with("carts")
    query.eq.assert_called_with("id", "c1")

def test_delete_cart_already_gone(monkeypatch):
    client, _ = _chain_client(data=[])
    _use(monkeypatch, client)
    assert carts_repo.delete_cart("c1") is False

def test_delete_cart_store_error_is_tolerated(monkeypatch):
    client, query = _chain_client()
    query.execute.side_effect = Exception("boom")
    _use(monkeypatch, client)
    assert carts_repo.delete_cart("c1") is False
