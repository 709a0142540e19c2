"""
Registre central des routers (API v1 et health).
"""
from fastapi import FastAPI
from boutique.auth.views import api_router as auth_api_router
from boutique.carts import views as carts_views
from boutique.orders import views as orders_views
from boutique.payments import views as payments_views
from boutique.shipments import views as shipments_views
from boutique.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes)."""
    # API v1
    app.include_router(auth_api_router)
    app.include_router(carts_views.router)
    app.include_router(orders_views.checkout_router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(shipments_views.router)
    # Health & monitoring
    app.include_router(health_router)
