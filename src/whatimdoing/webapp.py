"""FastAPI application that exposes a local API for the activity tracker."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .models import Activity
from .normalization import normalize_activity_text
from .presenters import (
    StatusTitlePresenter,
    build_context_menu,
    history_view,
    popover_suggestions,
)
from .reporting import format_duration, time_ago, time_range
from .store import ActivityStore

logger = logging.getLogger(__name__)


class ActivityPayload(BaseModel):
    text: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    store: ActivityStore,
    settings: Optional[TrackerSettings] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastAPI:
    """Instantiate the FastAPI application around an existing store.

    Route handlers are coroutines so every store mutation runs on the event
    loop thread, one request at a time.
    """
    resolved_settings = settings or store.settings

    app = FastAPI(title="Whatimdoing", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.title = StatusTitlePresenter(store, max_width=resolved_settings.title_max_width)

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("Dashboard serving activity state from %s", store.adapter.location)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        app.state.title.close()
        store.adapter.close()

    def status_payload(request: Request) -> Dict[str, Any]:
        current = request.app.state.store.current_activity
        title = request.app.state.title
        location = request.app.state.store.adapter.location
        return {
            "current": _activity_payload(current, clock()) if current else None,
            "title": title.title,
            "tooltip": title.tooltip,
            "storage_path": str(location) if location else None,
        }

    @app.get("/api/status")
    async def status(request: Request) -> Dict[str, Any]:
        return status_payload(request)

    @app.post("/api/activity")
    async def start_activity(payload: ActivityPayload, request: Request) -> Dict[str, Any]:
        text = normalize_activity_text(payload.text, resolved_settings.max_input_length)
        request.app.state.store.start_activity(text)
        return status_payload(request)

    @app.delete("/api/activity")
    async def clear_current(request: Request) -> Dict[str, Any]:
        request.app.state.store.clear_current()
        return status_payload(request)

    @app.get("/api/recent")
    async def recent(
        request: Request,
        limit: Optional[int] = Query(default=None, description="Maximum suggestions."),
        q: Optional[str] = Query(default=None, description="Text typed so far."),
    ) -> Dict[str, Any]:
        if limit is not None and limit < 1:
            raise HTTPException(status_code=400, detail="limit must be positive")
        suggestions = popover_suggestions(request.app.state.store, q, limit)
        now = clock()
        return {"activities": [_activity_payload(activity, now) for activity in suggestions]}

    def history_payload(request: Request, search: Optional[str] = None) -> Dict[str, Any]:
        now = clock()
        view = history_view(request.app.state.store, now.date(), search)
        return {
            "current": _activity_payload(view.current, now) if view.current else None,
            "groups": [
                {
                    "label": label,
                    "activities": [_activity_payload(activity, now) for activity in items],
                }
                for label, items in view.groups
            ],
            "count_label": view.count_label,
            "can_clear": view.can_clear,
        }

    @app.get("/api/history")
    async def history(
        request: Request,
        search: Optional[str] = Query(default=None, description="Filter by label text."),
    ) -> Dict[str, Any]:
        return history_payload(request, search)

    @app.post("/api/history/open")
    async def open_history(request: Request) -> Dict[str, Any]:
        request.app.state.store.request_history_window()
        return history_payload(request)

    @app.delete("/api/history")
    async def clear_history(request: Request) -> Dict[str, Any]:
        request.app.state.store.clear_history()
        return {"cleared": True, "current": status_payload(request)["current"]}

    @app.get("/api/menu")
    async def menu(request: Request) -> Dict[str, Any]:
        items = build_context_menu(request.app.state.store, resolved_settings)
        return {"items": [item.to_dict() for item in items]}

    return app


def _activity_payload(activity: Activity, now: datetime) -> Dict[str, Any]:
    payload = activity.to_dict()
    duration = activity.duration
    payload.update(
        {
            "time_range": time_range(activity),
            "started_ago": time_ago(activity.started_at, now),
            "duration_seconds": duration.total_seconds() if duration is not None else None,
            "duration_label": format_duration(duration) if duration is not None else None,
        }
    )
    return payload
