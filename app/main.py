import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from redis.asyncio import Redis

from config import Settings, get_settings
from adapters import PaymentAdapter
from adapters.exceptions import ConfigurationError, OrderNotFoundError, ValidationError
from adapters.naboopay import NaboopayAdapter
from adapters.sandbox import SandboxAdapter
from checkout import CheckoutService
from models import Base
from order_store import OrderStore, SqlOrderStore
from schemas import CheckoutRequest, CheckoutResult, GatewayInfo, OrderCreate, OrderRecord
from security import signature_from_headers
from webhook import WebhookHandler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("naboopay-gateway")

GATEWAY_ID = "naboopay"


class EndpointFilter(logging.Filter):
    """Filter out noisy health check access logs."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging filter
        return "GET /health" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(EndpointFilter())


settings = get_settings()


@lru_cache(maxsize=1)
def get_provider() -> PaymentAdapter:
    current = get_settings()
    if current.NABOOPAY_SANDBOX:
        return SandboxAdapter(
            current.NABOOPAY_WEBHOOK_SECRET,
            checkout_base_url=f"{current.STORE_URL.rstrip('/')}/sandbox/checkout",
        )
    return NaboopayAdapter(
        current.NABOOPAY_API_TOKEN,
        current.NABOOPAY_WEBHOOK_SECRET,
        api_url=current.NABOOPAY_API_URL,
        timeout=current.NABOOPAY_TIMEOUT,
    )


def get_order_store(request: Request) -> OrderStore:
    return request.app.state.order_store


# FastAPI App
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine: AsyncEngine = create_async_engine(settings.database_url)
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    redis: Redis | None = None
    try:
        redis = Redis.from_url(
            settings.redis_url, encoding="utf-8", decode_responses=True
        )
        await redis.ping()
    except Exception as exc:  # pragma: no cover - startup warning
        logger.warning("Redis unavailable: %s", exc)
        redis = None

    app.state.order_store = SqlOrderStore(sessionmaker, redis)
    logger.info("Naboopay gateway using %s", get_provider().__class__.__name__)
    try:
        yield
    finally:
        await engine.dispose()
        if redis is not None:
            await redis.aclose()

app = FastAPI(
    title="Naboopay Gateway",
    version="1.0.2",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "naboopay-gateway"}


@app.get("/gateway", response_model=GatewayInfo)
async def gateway_info(current: Settings = Depends(get_settings)):
    """Display settings shown on the checkout page."""
    return GatewayInfo(
        id=GATEWAY_ID,
        title=current.NABOOPAY_TITLE,
        description=current.NABOOPAY_DESCRIPTION,
        method_title="Naboopay Gateway",
        method_description="Payment gateway integrating the Naboopay API.",
        enabled=current.NABOOPAY_ENABLED,
        payment_methods=current.NABOOPAY_PAYMENT_METHODS,
        webhook_url=current.NABOOPAY_WEBHOOK_URL,
    )


@app.post("/orders", response_model=OrderRecord, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate, store: OrderStore = Depends(get_order_store)
):
    return await store.create_order(payload)


@app.get("/orders/{order_id}", response_model=OrderRecord)
async def get_order(order_id: int, store: OrderStore = Depends(get_order_store)):
    order = await store.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
    return order


@app.post("/orders/{order_id}/checkout", response_model=CheckoutResult)
async def checkout(
    order_id: int,
    payload: CheckoutRequest | None = None,
    current: Settings = Depends(get_settings),
    store: OrderStore = Depends(get_order_store),
    provider: PaymentAdapter = Depends(get_provider),
):
    """Create the Naboopay transaction and return the checkout redirect."""
    service = CheckoutService(store, provider, current)
    try:
        result = await service.process_payment(
            order_id, payload.payment_methods if payload else None
        )
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    if result.result == "fail":
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY, content=result.model_dump()
        )
    return result


@app.post("/webhook", response_class=PlainTextResponse)
async def naboopay_webhook(
    request: Request,
    store: OrderStore = Depends(get_order_store),
    provider: PaymentAdapter = Depends(get_provider),
):
    """Handle Naboopay payment notifications and update order status."""
    payload = await request.body()
    handler = WebhookHandler(store, provider)
    result = await handler.handle(payload, signature_from_headers(request.headers))
    return PlainTextResponse(result.body, status_code=result.status_code)


@app.get("/sandbox/checkout/{transaction_id}")
async def sandbox_checkout(
    transaction_id: str, current: Settings = Depends(get_settings)
):
    if not current.NABOOPAY_SANDBOX:
        raise HTTPException(status_code=404, detail="Not Found")
    return {
        "transaction_id": transaction_id,
        "message": "Sandbox checkout: send a signed webhook to /webhook to settle it.",
    }


@app.get("/")
async def root():
    return {"message": "Naboopay Gateway API", "gateway": GATEWAY_ID}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.HTTP_PORT,
        reload=True,
        log_level="info"
    )
