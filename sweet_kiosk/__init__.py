from sweet_kiosk.api import create_app
from sweet_kiosk.orders import OrderService
from sweet_kiosk.store import Store

__all__ = ["create_app", "OrderService", "Store"]
