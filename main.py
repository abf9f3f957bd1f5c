import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional, Type

from fastapi import FastAPI, File, HTTPException, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

import database
from availability import is_available
from config import PORT, configure_logging
from defaults import FALLBACKS
from pricing import PriceBreakdown, calculate_pricing
from schemas import COLLECTIONS, AppSettings, Booking, Car, Driver, Entity, HighSeason, UtcDateTime, parse_entities
from settings_store import SettingsStore
from store import EMPTY, StoreResult, WriteResult, default_outbox, fetch_all, initialize_data, save
from tabular import export_to_csv, generate_id, merge_data, process_csv_import

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    initialize_data()
    yield


app = FastAPI(title="Rent Car API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings_store = SettingsStore()


# Utilities
def get_model(collection: str) -> Type[Entity]:
    model = COLLECTIONS.get(collection)
    if model is None:
        raise HTTPException(status_code=404, detail=f"Unknown collection '{collection}'")
    return model


def load(collection: str) -> StoreResult[List[Entity]]:
    result = fetch_all(collection, FALLBACKS.get(collection, []))
    return StoreResult(parse_entities(COLLECTIONS[collection], result.data), result.status, result.reason)


def write_response(result: WriteResult, **extra):
    if result.ok:
        return {"ok": True, **extra}
    if result.queued:
        # accepted locally, replayed by /api/outbox/flush
        return JSONResponse(
            status_code=202,
            content=jsonable_encoder({"ok": False, "queued": True, "error": result.error, **extra}),
        )
    raise HTTPException(status_code=503, detail=result.error)


def to_documents(entities: List[Entity]) -> List[Dict[str, Any]]:
    return [e.model_dump(mode="json") for e in entities]


def validation_detail(e: ValidationError):
    return jsonable_encoder(e.errors(include_url=False, include_context=False))


# Health + DB test
@app.get("/")
def read_root():
    return {"message": "Rent Car Backend Running"}


@app.get("/test")
def test_database():
    db = database.db
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available" if db is None else "✅ Connected & Working",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": db.name if db is not None else None,
        "outbox_pending": default_outbox.keys(),
    }
    if db is not None and not database.ping_database(db):
        response["database"] = "⚠️ Connected but not responding"
    return response


# Settings endpoints
@app.get("/api/settings", response_model=AppSettings)
def get_settings(response: Response):
    result = settings_store.get()
    response.headers["X-Data-Source"] = result.status
    return result.data


@app.put("/api/settings")
def replace_settings(payload: AppSettings):
    return write_response(settings_store.replace(payload))


@app.patch("/api/settings")
def update_settings(changes: Dict[str, Any]):
    try:
        merged, result = settings_store.update(changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=validation_detail(e))
    return write_response(result, settings=merged)


# Availability + pricing
class AvailabilityQuery(BaseModel):
    resource_id: Optional[str] = None
    resource_type: Literal["car", "driver"] = "car"
    start_date: UtcDateTime
    end_date: UtcDateTime
    exclude_booking_id: Optional[str] = None


class QuoteRequest(BaseModel):
    car_id: str
    driver_id: Optional[str] = None
    start_date: UtcDateTime
    end_date: UtcDateTime
    package_type: str
    delivery_fee: float = 0


def load_bookings() -> List[Booking]:
    result = fetch_all("bookings", [])
    # an empty collection is fine; an unreadable one can't be checked against
    if result.used_fallback and result.reason != EMPTY:
        raise HTTPException(status_code=503, detail=f"Bookings unavailable: {result.reason}")
    try:
        return parse_entities(Booking, result.data, skip_invalid=False)
    except ValidationError as e:
        # a skipped booking would no longer block its car or driver
        logger.error("Unreadable booking record, refusing availability check: %s", e)
        raise HTTPException(status_code=503, detail="Bookings contain an invalid record")


def find_entity(entities: List[Entity], entity_id: str, label: str):
    for entity in entities:
        if entity.id == entity_id:
            return entity
    raise HTTPException(status_code=404, detail=f"{label} not found")


def quote(req: QuoteRequest) -> PriceBreakdown:
    car: Car = find_entity(load("cars").data, req.car_id, "Car")
    driver: Optional[Driver] = None
    if req.driver_id:
        driver = find_entity(load("drivers").data, req.driver_id, "Driver")
    high_seasons: List[HighSeason] = load("high_seasons").data
    return calculate_pricing(
        car, driver, req.start_date, req.end_date, req.package_type, high_seasons, req.delivery_fee
    )


@app.post("/api/availability")
def check_availability(query: AvailabilityQuery):
    available = is_available(
        load_bookings(),
        query.resource_id,
        query.start_date,
        query.end_date,
        query.resource_type,
        query.exclude_booking_id,
    )
    return {"available": available}


@app.post("/api/pricing/quote", response_model=PriceBreakdown)
def price_quote(req: QuoteRequest):
    return quote(req)


# Booking endpoints
class BookingIn(Booking):
    pass


@app.post("/api/bookings")
def create_booking(payload: BookingIn):
    if payload.end_date <= payload.start_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")
    if not payload.car_id:
        raise HTTPException(status_code=400, detail="A car is required")

    bookings = load_bookings()
    for resource_type, resource_id in (("car", payload.car_id), ("driver", payload.driver_id)):
        if not is_available(bookings, resource_id, payload.start_date, payload.end_date, resource_type, payload.id):
            raise HTTPException(status_code=409, detail=f"Selected {resource_type} is not available for these dates")

    price = quote(QuoteRequest(
        car_id=payload.car_id,
        driver_id=payload.driver_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        package_type=payload.package_type or "",
        delivery_fee=payload.delivery_fee,
    ))

    booking = payload.model_copy(update={"id": payload.id or generate_id(), **price.model_dump()})
    result = save("bookings", to_documents([booking]))
    logger.info("Booking %s for car %s priced at %s", booking.id, booking.car_id, booking.total_price)
    return write_response(result, id=booking.id, total_price=booking.total_price, status=booking.status)


# Outbox
@app.post("/api/outbox/flush")
def flush_outbox():
    results = default_outbox.flush()
    return {key: asdict(result) for key, result in results.items()}


# Generic collections
@app.get("/api/{collection}")
def list_collection(collection: str, response: Response):
    get_model(collection)
    result = load(collection)
    response.headers["X-Data-Source"] = result.status
    return result.data


@app.put("/api/{collection}")
def save_collection(collection: str, items: List[Dict[str, Any]]):
    model = get_model(collection)
    try:
        entities = [model.model_validate(item) for item in items]
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=validation_detail(e))
    for entity in entities:
        entity.id = entity.id or generate_id()
    return write_response(save(collection, to_documents(entities)), count=len(entities))


@app.get("/api/{collection}/export")
def export_collection(collection: str):
    get_model(collection)
    records = to_documents(load(collection).data)
    export = export_to_csv(records, collection)
    if export is None:
        raise HTTPException(status_code=404, detail="No data to export")
    return Response(
        content=export.content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@app.post("/api/{collection}/import")
async def import_collection(collection: str, file: UploadFile = File(...)):
    model = get_model(collection)

    def apply(rows: List[Dict[str, Any]]):
        current = fetch_all(collection, [])
        merged = merge_data(current.data, rows)
        entities = parse_entities(model, merged)
        return len(rows), entities, save(collection, to_documents(entities))

    # store calls are blocking pymongo I/O
    imported, entities, result = await process_csv_import(file, lambda rows: run_in_threadpool(apply, rows))
    return write_response(result, imported=imported, total=len(entities))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
