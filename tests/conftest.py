import os

# Pas de Redis pendant les tests: à fixer avant l'import de l'app
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import itertools
from datetime import datetime, timedelta, timezone
import pytest
from typing import Generator, Dict, Any, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from boutique.app import app as fastapi_app
from boutique.utils.security import require_user, require_admin

TEST_USER: Dict[str, Any] = {
    "id": "test-user",
    "email": "test@example.com",
    "role": "user",
    "metadata": {"full_name": "Test User"},
    "token": "fake-token",
}
ADMIN_USER: Dict[str, Any] = {"id": "admin-user-id", "email": "admin@example.com", "role": "admin"}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: TEST_USER
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def authenticated_admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: ADMIN_USER
    yield client
    app.dependency_overrides.pop(require_admin, None)

@pytest.fixture(autouse=True)
def mock_supabase_clients(monkeypatch):
    """Aucun test ne doit joindre un vrai Supabase."""
    monkeypatch.setattr("boutique.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: MagicMock())


class InMemoryStore:
    """
    Remplace les fonctions des modules repository par un stockage en mémoire
    qui reproduit les garanties de la base: transaction place_order, mises à jour
    conditionnelles sur le statut, index unique partiel des paiements, order_id
    unique des expéditions.
    """

    def __init__(self):
        self.products: Dict[str, dict] = {}
        self.carts: Dict[str, dict] = {}
        self.cart_items: Dict[str, dict] = {}
        self.orders: Dict[str, dict] = {}
        self.order_items: list = []
        self.payments: Dict[str, dict] = {}
        self.shipments: Dict[str, dict] = {}
        self.fail_place_order = False
        self._seq = itertools.count(1)
        self._epoch = datetime.now(timezone.utc)

    def _id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._seq)}"

    def _now(self) -> str:
        # Horloge réelle, strictement croissante pour départager les insertions
        return (self._epoch + timedelta(microseconds=next(self._seq))).isoformat(timespec="microseconds")

    # --- Seed helpers ---

    def add_product(self, name: str, price: str, image_url: Optional[str] = None, description: str = "") -> str:
        pid = self._id("prod")
        self.products[pid] = {"id": pid, "name": name, "description": description, "price": price, "image_url": image_url}
        return pid

    def add_cart(self, user_id: Optional[str], items=()) -> str:
        from decimal import Decimal
        cid = self._id("cart")
        self.carts[cid] = {"id": cid, "user_id": user_id, "total": "0.00", "created_at": self._now()}
        total = Decimal("0")
        for product_id, qty in items:
            price = Decimal(self.products[product_id]["price"])
            line = price * qty
            total += line
            self.insert_item(cart_id=cid, product_id=product_id, quantity=qty, unit_price=str(price), line_total=str(line))
        self.carts[cid]["total"] = f"{total:.2f}"
        return cid

    # --- catalog.repository ---

    def get_product(self, product_id):
        p = self.products.get(str(product_id))
        return dict(p) if p else None

    # --- carts.repository ---

    def _items_of(self, cart_id):
        rows = [it for it in self.cart_items.values() if it["cart_id"] == cart_id]
        return sorted(rows, key=lambda r: r["created_at"])

    def get_cart_with_items(self, cart_id):
        cart = self.carts.get(str(cart_id))
        if not cart:
            return None
        row = dict(cart)
        row["cart_items"] = [
            {**it, "products": self.get_product(it["product_id"])}
            for it in self._items_of(cart["id"])
        ]
        return row

    def find_cart_by_user(self, user_id):
        rows = [c for c in self.carts.values() if c["user_id"] == str(user_id)]
        return dict(rows[-1]) if rows else None

    def insert_cart(self, user_id):
        cid = self._id("cart")
        self.carts[cid] = {"id": cid, "user_id": user_id, "total": "0.00", "created_at": self._now()}
        return dict(self.carts[cid])

    def insert_item(self, *, cart_id, product_id, quantity, unit_price, line_total):
        iid = self._id("item")
        self.cart_items[iid] = {
            "id": iid,
            "cart_id": cart_id,
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "line_total": line_total,
            "created_at": self._now(),
        }
        return dict(self.cart_items[iid])

    def update_item(self, item_id, *, quantity, unit_price, line_total):
        it = self.cart_items.get(item_id)
        if not it:
            return False
        it.update({"quantity": quantity, "unit_price": unit_price, "line_total": line_total})
        return True

    def delete_item(self, item_id):
        return self.cart_items.pop(item_id, None) is not None

    def delete_items(self, cart_id):
        ids = [it["id"] for it in self._items_of(cart_id)]
        for iid in ids:
            del self.cart_items[iid]
        return len(ids)

    def update_cart_total(self, cart_id, total):
        if cart_id in self.carts:
            self.carts[cart_id]["total"] = total

    def delete_cart(self, cart_id):
        if cart_id not in self.carts:
            return False
        self.delete_items(cart_id)
        del self.carts[cart_id]
        return True

    def list_item_rows(self, cart_id):
        return [dict(it) for it in self._items_of(cart_id)]

    # --- orders.repository ---

    def place_order(self, *, user_id, cart_id, total, items):
        if self.fail_place_order:
            raise RuntimeError("place_order: transaction annulée")
        if cart_id:
            from boutique.orders.repository import CartChanged
            current = sorted((it["product_id"], it["quantity"]) for it in self._items_of(cart_id))
            expected = sorted((it["product_id"], it["quantity"]) for it in items)
            if current != expected:
                raise CartChanged(cart_id)
        oid = self._id("order")
        self.orders[oid] = {"id": oid, "user_id": user_id, "status": "PENDING", "total_amount": total, "created_at": self._now()}
        for it in items:
            self.order_items.append({"order_id": oid, **it})
        if cart_id:
            self.delete_items(cart_id)
            self.update_cart_total(cart_id, "0.00")
        return oid

    def find_order_by_id(self, order_id):
        o = self.orders.get(str(order_id))
        if not o:
            return None
        row = dict(o)
        row["order_items"] = [
            {"product_id": it["product_id"], "quantity": it["quantity"], "price": it["price"]}
            for it in self.order_items
            if it["order_id"] == o["id"]
        ]
        return row

    def find_orders_by_user(self, user_id, limit=50):
        rows = [self.find_order_by_id(o["id"]) for o in self.orders.values() if o["user_id"] == str(user_id)]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[:limit]

    def _transition_if(self, order_id, expected, new_status):
        o = self.orders.get(str(order_id))
        if not o or o["status"] != expected:
            return False
        o["status"] = new_status
        return True

    def confirm_if_pending(self, order_id):
        return self._transition_if(order_id, "PENDING", "CONFIRMED")

    def cancel_if_pending(self, order_id):
        return self._transition_if(order_id, "PENDING", "CANCELLED")

    # --- payments.repository ---

    def insert_payment(self, *, order_id, amount, provider):
        active = [p for p in self.payments.values() if p["order_id"] == order_id and p["status"] in ("INITIATED", "SUCCESS")]
        if active:
            return None
        pid = self._id("pay")
        self.payments[pid] = {
            "id": pid,
            "order_id": order_id,
            "amount": amount,
            "status": "INITIATED",
            "provider": provider,
            "reference": None,
            "created_at": self._now(),
        }
        return dict(self.payments[pid])

    def update_payment(self, payment_id, *, status, reference=None):
        p = self.payments.get(payment_id)
        if not p or p["status"] != "INITIATED":
            return None
        p["status"] = status
        if reference is not None:
            p["reference"] = reference
        return dict(p)

    def expire_stale_attempts(self, order_id, *, older_than):
        cutoff = datetime.fromisoformat(older_than)
        expired = 0
        for p in self.payments.values():
            if p["order_id"] == order_id and p["status"] == "INITIATED" and datetime.fromisoformat(p["created_at"]) < cutoff:
                p["status"] = "FAILED"
                expired += 1
        return expired

    def exists_successful_payment(self, order_id):
        return any(p["order_id"] == order_id and p["status"] == "SUCCESS" for p in self.payments.values())

    def list_payments_for_order(self, order_id):
        rows = [dict(p) for p in self.payments.values() if p["order_id"] == order_id]
        return sorted(rows, key=lambda r: r["created_at"])

    # --- shipments.repository ---

    def insert_shipment(self, *, order_id, address, carrier, tracking_number):
        if any(s["order_id"] == order_id for s in self.shipments.values()):
            return None
        sid = self._id("ship")
        self.shipments[sid] = {
            "id": sid,
            "order_id": order_id,
            "address": address,
            "carrier": carrier,
            "tracking_number": tracking_number,
            "status": "CREATED",
        }
        return dict(self.shipments[sid])

    def find_shipment_by_id(self, shipment_id):
        s = self.shipments.get(str(shipment_id))
        return dict(s) if s else None

    def find_shipment_by_order(self, order_id):
        for s in self.shipments.values():
            if s["order_id"] == str(order_id):
                return dict(s)
        return None

    def update_status_if(self, shipment_id, expected, new_status):
        s = self.shipments.get(str(shipment_id))
        if not s or s["status"] != expected:
            return None
        s["status"] = new_status
        return dict(s)

    # --- Installation ---

    PATCHES = {
        "boutique.catalog.repository": ["get_product"],
        "boutique.carts.repository": [
            "get_cart_with_items", "find_cart_by_user", "insert_cart", "insert_item", "update_item",
            "delete_item", "delete_items", "update_cart_total", "delete_cart", "list_item_rows",
        ],
        "boutique.orders.repository": [
            "place_order", "find_order_by_id", "find_orders_by_user", "confirm_if_pending", "cancel_if_pending",
        ],
        "boutique.payments.repository": [
            "insert_payment", "update_payment", "expire_stale_attempts", "exists_successful_payment",
            "list_payments_for_order",
        ],
        "boutique.shipments.repository": [
            "insert_shipment", "find_shipment_by_id", "find_shipment_by_order", "update_status_if",
        ],
    }

    def install(self, monkeypatch):
        import importlib
        for module_name, names in self.PATCHES.items():
            module = importlib.import_module(module_name)
            for name in names:
                monkeypatch.setattr(module, name, getattr(self, name))


@pytest.fixture
def store(monkeypatch) -> InMemoryStore:
    s = InMemoryStore()
    s.install(monkeypatch)
    return s

@pytest.fixture
def user() -> Dict[str, Any]:
    return dict(TEST_USER)

@pytest.fixture
def admin() -> Dict[str, Any]:
    return dict(ADMIN_USER)
