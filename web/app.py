"""Web UI and JSON API over the event pipeline."""
from __future__ import annotations

import asyncio
import logging
import time as _t
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (
    CITIES,
    SCHEDULED_CITIES,
    SERVICE_NAME,
    Settings,
    build_source,
    build_store,
)
from pipeline import EventPipeline
from processor.event_processor import ALL_CATEGORIES
from scraper.base import EventSource
from web.scheduler import DailyScheduler

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def _error_page(request: Request, message: str, status_code: int = 500):
    return templates.TemplateResponse(
        request, "error.html", {"message": message}, status_code=status_code
    )


def _pipeline(request: Request) -> EventPipeline:
    return request.app.state.pipeline


def create_app(
    settings: Optional[Settings] = None,
    store=None,
    source: Optional[EventSource] = None,
) -> FastAPI:
    """
    Build the application; the store is opened and closed with its lifespan.

    Args:
        settings: Settings, read from the environment when omitted
        store: Unopened store, built from settings when omitted
        source: Event source, the default source chain when omitted
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_store = store if store is not None else build_store(settings)
        app_store.open()
        pipeline = EventPipeline(
            source=source if source is not None else build_source(settings),
            store=app_store,
        )
        app.state.pipeline = pipeline

        scheduler = None
        if settings.enable_scheduler:
            scheduler = DailyScheduler(
                pipeline,
                SCHEDULED_CITIES,
                hour=settings.schedule_hour,
                delay_seconds=settings.city_delay_seconds,
            )
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()
            app_store.close()

    app = FastAPI(title="city-events-sync", version="1.0.0", lifespan=lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = _t.perf_counter()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((_t.perf_counter() - start) * 1000)
            status = getattr(response, "status_code", "-")
            logger.info(
                "path=%s status=%s dur_ms=%s",
                request.url.path,
                status,
                dur_ms,
            )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_page(request, "Page not found", 404)
        return _error_page(request, str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {exc}")
        return _error_page(request, str(exc) or "Internal Server Error", 500)

    @app.get("/")
    def index(request: Request):
        return templates.TemplateResponse(request, "index.html", {"cities": CITIES})

    @app.post("/scrape")
    async def scrape(request: Request):
        if request.headers.get("content-type", "").startswith("application/json"):
            payload = await request.json()
        else:
            payload = dict(await request.form())

        city = (payload.get("city") or "").strip()
        category = (payload.get("category") or "").strip() or ALL_CATEGORIES
        if not city:
            return _error_page(request, "Error: City is required", 400)

        logger.info(f"Scraping {city} for {category} events...")
        try:
            outcome = await asyncio.to_thread(_pipeline(request).scrape, city, category)
        except Exception as e:
            logger.error(f"Scraping error: {e}", exc_info=True)
            return _error_page(request, f"Error: {e}")

        return templates.TemplateResponse(request, "events.html", {
            "events": [event.to_dict() for event in outcome.events],
            "city": city,
            "category": category,
            "message": outcome.message,
        })

    @app.get("/events/{city}")
    def city_events(request: Request, city: str, category: str = ALL_CATEGORIES):
        logger.info(f"Loading events for {city}...")
        try:
            events = _pipeline(request).events_for_city(city, category)
        except Exception as e:
            logger.error(f"Error fetching events: {e}", exc_info=True)
            return _error_page(request, f"Error: {e}")

        message = (
            f"Showing {len(events)} events in {city}"
            if events else f"No events found for {city}"
        )
        return templates.TemplateResponse(request, "events.html", {
            "events": events,
            "city": city,
            "category": category,
            "message": message,
        })

    @app.get("/api/events")
    def api_events(request: Request, city: Optional[str] = None,
                   category: Optional[str] = None):
        if not city:
            return JSONResponse(
                {"success": False, "error": "City parameter is required"},
                status_code=400,
            )

        category = category or ALL_CATEGORIES
        try:
            batch = _pipeline(request).fetch_events(city, category)
        except Exception as e:
            logger.error(f"API error for {city}: {e}")
            return JSONResponse({"success": False, "error": str(e)}, status_code=500)

        return {
            "success": True,
            "city": city,
            "category": category,
            "count": len(batch.events),
            "events": [event.to_dict() for event in batch.events],
        }

    @app.get("/dashboard")
    def dashboard(request: Request):
        try:
            data = _pipeline(request).dashboard(SCHEDULED_CITIES)
        except Exception as e:
            logger.error(f"Error loading dashboard: {e}", exc_info=True)
            return _error_page(request, f"Error loading dashboard: {e}")

        return templates.TemplateResponse(request, "dashboard.html", {
            "stats": data["stats"],
            "totals": data["totals"],
            "last_checked": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        })

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    @app.get("/test/{city}")
    def test_city(request: Request, city: str):
        try:
            batch = _pipeline(request).fetch_events(city, ALL_CATEGORIES)
        except Exception as e:
            return JSONResponse({"error": str(e)}, status_code=500)

        return {
            "city": city,
            "count": len(batch.events),
            "sample_venues": [
                {"name": e.name, "venue": e.venue, "venue_length": len(e.venue)}
                for e in batch.events[:5]
            ],
        }

    return app


def serve() -> None:
    """Run the web app with uvicorn."""
    import uvicorn

    from log_config import setup_logging

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info(f"Server running on http://localhost:{settings.port}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    serve()
