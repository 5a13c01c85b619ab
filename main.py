from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.database import Database

from catalog import CatalogService
from database import Settings, ensure_indexes, get_database
from errors import StoreError, StoreTimeoutError, StorefrontError
from logging_config import configure_logging, get_logger
from orders import OrderPlacementEngine
from schemas import OrderConfirmation, PlaceOrderRequest
from stores import InventoryStore, OrderStore

logger = get_logger(__name__)

MISSING_FIELD_ERRORS = {"missing", "string_too_short", "too_short", "string_type", "list_type",
                        "model_type", "dict_type"}


def describe_validation_error(exc: RequestValidationError) -> str:
    """Pick the message a storefront client expects for a rejected order body"""
    errors = exc.errors()
    for err in errors:
        loc = err.get("loc", ())
        # ("body", "products", <index>, ...) is a problem inside one cart item
        if "products" in loc and len(loc) > 2:
            continue
        if err.get("type") in MISSING_FIELD_ERRORS:
            return "All fields are required."
    for err in errors:
        if "phone" in err.get("loc", ()):
            return "Invalid phone number."
    for err in errors:
        if "products" in err.get("loc", ()):
            return "Invalid product details."
    return "All fields are required."


def create_app(db: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if db is None:
        db = get_database(settings)
        ensure_indexes(db, settings)

    inventory = InventoryStore(db, settings.product_collection)
    orders = OrderStore(db, settings.order_collection)

    app = FastAPI(title="Storefront API")
    app.state.catalog = CatalogService(inventory)
    app.state.engine = OrderPlacementEngine(inventory, orders)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": describe_validation_error(exc)})

    # ----- Health -----
    @app.get("/", response_class=PlainTextResponse)
    def read_root():
        return "Server running successfully"

    app.include_router(build_router())
    return app


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_engine(request: Request) -> OrderPlacementEngine:
    return request.app.state.engine


def _store_failure(exc: StoreError, message: str) -> StoreError:
    if isinstance(exc, StoreTimeoutError):
        return StoreTimeoutError()
    return StoreError(message)


def build_router() -> APIRouter:
    router = APIRouter()

    # ----- Products -----
    @router.get("/products/{category}", response_model=List[dict])
    def list_by_category(category: str, catalog: CatalogService = Depends(get_catalog)):
        try:
            return catalog.list_by_category(category)
        except StoreError as e:
            logger.error("fetch_products_failed", category=category)
            raise _store_failure(e, "Internal Server Error") from e

    @router.get("/product/{product_id}")
    def get_product(product_id: str, catalog: CatalogService = Depends(get_catalog)):
        return catalog.get_product(product_id)

    @router.get("/related/{category}/{exclude_id}", response_model=List[dict])
    def related_products(category: str, exclude_id: str, catalog: CatalogService = Depends(get_catalog)):
        try:
            return catalog.related(category, exclude_id)
        except StoreError as e:
            logger.error("fetch_related_failed", category=category)
            raise _store_failure(e, "Internal Server Error") from e

    @router.get("/search", response_model=List[dict])
    def search_products(q: Optional[str] = None, catalog: CatalogService = Depends(get_catalog)):
        try:
            return catalog.search(q)
        except StoreError as e:
            logger.error("search_failed", q=q)
            raise _store_failure(e, "Internal Server Error") from e

    @router.get("/all-product", response_model=List[dict])
    def all_products(filter: Optional[str] = None, limit: Optional[str] = None, page: Optional[str] = None,
                     catalog: CatalogService = Depends(get_catalog)):
        try:
            return catalog.list_page(filter, limit, page)
        except StoreError as e:
            logger.error("fetch_page_failed", filter=filter)
            raise _store_failure(e, "Error fetching products") from e

    # ----- Orders -----
    @router.post("/place-order", status_code=201, response_model=OrderConfirmation)
    def place_order(req: PlaceOrderRequest, engine: OrderPlacementEngine = Depends(get_engine)):
        try:
            return engine.place_order(req)
        except StoreError as e:
            logger.error("place_order_failed", error=e.message)
            raise _store_failure(e, "Error placing the order.") from e

    return router


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    settings = Settings.from_env()
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)
