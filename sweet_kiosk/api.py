import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError

from sweet_kiosk.catalog import SweetCatalog
from sweet_kiosk.config import Settings, get_settings
from sweet_kiosk.errors import InternalError, KioskError, NotFound, OrderNotFound
from sweet_kiosk.inventory import InventoryGuard
from sweet_kiosk.order_ids import OrderIdGenerator
from sweet_kiosk.orders import MAX_TOKEN, OrderService
from sweet_kiosk.schemas import CreateOrderRequest, UpdateOrderStatusRequest, respond
from sweet_kiosk.status import StatusMachine
from sweet_kiosk.store import Store

logger = logging.getLogger(__name__)


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_catalog(request: Request) -> SweetCatalog:
    return request.app.state.catalog


Orders = Annotated[OrderService, Depends(get_order_service)]
Catalog = Annotated[SweetCatalog, Depends(get_catalog)]


def parse_token(raw: str) -> int:
    # "12.5", "-3" and "abc" are all simply unknown tokens
    if not (raw.isascii() and raw.isdigit()) or int(raw) > MAX_TOKEN:
        raise OrderNotFound()
    return int(raw)


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    settings = settings or get_settings()
    store = store or Store(settings.database_url, echo=settings.echo_sql)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.create_schema()
        if settings.seed_catalog:
            app.state.catalog.seed_defaults()
        yield
        store.close()

    app = FastAPI(title="Sweet Kiosk Orders", lifespan=lifespan)
    app.state.store = store
    app.state.catalog = SweetCatalog(store)
    app.state.order_service = OrderService(
        store,
        inventory=InventoryGuard(),
        id_generator=OrderIdGenerator(max_attempts=settings.order_id_attempts),
        status_machine=StatusMachine.strict() if settings.strict_status_transitions else StatusMachine(),
    )

    @app.exception_handler(KioskError)
    async def kiosk_error_handler(request: Request, exc: KioskError):
        return respond(exc.message, status_code=exc.status_code, success=False)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request", extra={"path": request.url.path, "errors": exc.errors()})
        return respond("Invalid request body", status_code=400, success=False)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path, "method": request.method})
        error = InternalError()
        return respond(error.message, status_code=error.status_code, success=False)

    @app.get("/")
    def root():
        return respond("Welcome to the Sweet Shop Management System!")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/orders")
    def create_order(order_request: CreateOrderRequest, orders: Orders):
        order = orders.create_order(order_request.token, order_request.items)
        return respond("Order created successfully", order, status_code=201)

    @app.get("/orders")
    def list_orders(orders: Orders):
        return respond("Orders retrieved successfully", orders.list_orders())

    @app.get("/orders/token/{token}")
    def get_order_by_token(token: str, orders: Orders):
        return respond("Order retrieved successfully", orders.get_order_by_token(parse_token(token)))

    @app.get("/orders/{order_id}")
    def get_order(order_id: str, orders: Orders):
        return respond("Order retrieved successfully", orders.get_order(order_id))

    @app.patch("/orders/{order_id}/status")
    def update_order_status(order_id: str, status_request: UpdateOrderStatusRequest, orders: Orders):
        order = orders.set_status(order_id, status_request.status)
        return respond("Order status updated successfully", order)

    @app.delete("/orders/{order_id}")
    def delete_order(order_id: str, orders: Orders):
        orders.delete_order(order_id)
        return respond("Order deleted successfully and stock restored")

    @app.get("/sweets")
    def list_sweets(catalog: Catalog):
        return respond("All sweets fetched successfully", catalog.list())

    @app.get("/sweets/{sweet_id}")
    def get_sweet(sweet_id: str, catalog: Catalog):
        if not (sweet_id.isascii() and sweet_id.isdigit()):
            raise NotFound("Sweet not found")
        return respond("Sweet fetched successfully", catalog.get(int(sweet_id)))

    return app
