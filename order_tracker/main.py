import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .errors import NotFound, StoreUnavailable, ValidationError
from .schemas import OrderDraft
from .service import OrderService, build_service

logger = logging.getLogger(__name__)


def get_service(request: Request) -> OrderService:
    return request.app.state.service


def create_app(settings: Optional[Settings] = None, service: Optional[OrderService] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is None:
            app.state.service = build_service(settings)
        app.state.service.start()
        logger.info("Order tracker started (polling mode)")
        try:
            yield
        finally:
            await app.state.service.stop()

    app = FastAPI(title="Order Tracker", lifespan=lifespan)
    app.state.service = service
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"error": f"Order {exc} not found"})

    # --- Endpoints ---

    @app.get("/api/orders")
    async def list_orders(service: OrderService = Depends(get_service)):
        orders = await service.list_orders()
        return [o.to_wire() for o in orders]

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str, service: OrderService = Depends(get_service)):
        order = await service.get_order(order_id)
        return order.to_wire()

    @app.post("/api/orders")
    async def create_order(draft: OrderDraft, service: OrderService = Depends(get_service)):
        order = await service.create_order(draft)
        return order.to_wire()

    @app.get("/health")
    async def health(service: OrderService = Depends(get_service)):
        return {
            "status": "ok",
            "polling": service.reconciler.running,
            "subscribers": service.notifier.subscriber_count,
            "cached_orders": len(service.reconciler.cache),
            "pending_advances": len(service.engine.pending_ids()),
        }

    # --- Subscribers ---

    @app.websocket("/ws")
    async def subscribe(websocket: WebSocket):
        notifier = websocket.app.state.service.notifier
        await websocket.accept()
        notifier.connect(websocket)
        try:
            # Inbound messages are ignored, the socket only carries broadcasts
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            notifier.disconnect(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
