from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
import time
import uuid
from typing import List
from dishguard.models import (
    CompatibilityMatrix,
    Dish,
    DishSafety,
    DietaryAvailabilityResult,
    SafetyRequest,
)
from dishguard.services.availability_aggregator import dietary_availability_aggregator
from dishguard.services.compatibility_matrix import build_compatibility_matrix
from dishguard.services.menu_service import MenuSourceError, menu_service
from dishguard.services.report_export import allergen_report_csv, matrix_to_csv
from dishguard.services.safety_classifier import safety_classifier
from dishguard.core.logging_config import get_logger

app = FastAPI(title="Dish Safety & Dietary Compatibility API", version="0.1.0")
logger = get_logger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid.uuid4())
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000.0
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} "
        f"{duration_ms:.1f}ms request_id={request_id}"
    )
    response.headers["X-Request-ID"] = request_id
    return response

@app.exception_handler(MenuSourceError)
async def menu_source_error_handler(request: Request, exc: MenuSourceError):
    logger.error(f"Menu source failure: {exc.errors}")
    return JSONResponse(
        status_code=502,
        content={
            "error_code": "MENU_SOURCE_FAILURE",
            "message": "Failed to load the menu from configured sources.",
            "sources": exc.sources,
            "errors": exc.errors
        }
    )

def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@app.get("/")
def read_root():
    return {"message": "Welcome to the Dish Safety API. Visit /docs for documentation."}


@app.get("/api/dishes", response_model=List[Dish])
def list_dishes():
    """
    List the active dishes of the current menu snapshot.
    """
    return menu_service.get_dishes()


@app.post("/api/safety", response_model=List[DishSafety])
def classify_menu_safety(request: SafetyRequest):
    """
    Classify every active dish as safe, safe with modifications, or unsafe for a diner's allergen profile.
    """
    return safety_classifier.classify_menu(menu_service.get_dishes(), request.allergens)


@app.post("/api/dishes/{dish_id}/safety", response_model=DishSafety)
def classify_dish_safety(dish_id: str, request: SafetyRequest):
    dish = menu_service.get_dish(dish_id)
    if dish is None:
        raise HTTPException(
            status_code=404,
            detail={"error_code": "DISH_NOT_FOUND", "message": f"No active dish with id '{dish_id}'."}
        )
    return safety_classifier.classify_dish(dish, request.allergens)


@app.get("/api/compatibility-matrix", response_model=CompatibilityMatrix)
def compatibility_matrix():
    """
    Build the dish × dietary category compatibility matrix for the whole menu.
    """
    return build_compatibility_matrix(menu_service.get_dishes())


@app.get("/api/compatibility-matrix.csv")
def compatibility_matrix_csv():
    matrix = build_compatibility_matrix(menu_service.get_dishes())
    return _csv_response(matrix_to_csv(matrix), "dietary-compatibility-matrix.csv")


@app.get("/api/allergen-report.csv")
def allergen_report():
    return _csv_response(allergen_report_csv(menu_service.get_dishes()), "allergen-report.csv")


@app.post("/api/dietary-availability/analyze", response_model=DietaryAvailabilityResult)
def analyze_dietary_availability():
    """
    Re-run the whole-menu dietary availability analysis.

    A failed analysis keeps the previous report and reports state "analysis_unavailable".
    """
    return dietary_availability_aggregator.analyze(menu_service.get_dishes())


@app.get("/api/dietary-availability", response_model=DietaryAvailabilityResult)
def dietary_availability():
    return dietary_availability_aggregator.current()


@app.delete("/api/dietary-availability", response_model=DietaryAvailabilityResult)
def clear_dietary_availability():
    dietary_availability_aggregator.clear()
    return dietary_availability_aggregator.current()
