"""FastAPI application for AcroJam."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
from typing import Literal
import re
import tomllib

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .crud import (
    TeacherNotApprovedError,
    approve_event,
    approve_teacher,
    attendee_rows,
    create_event,
    create_location,
    delete_rsvp,
    deny_teacher,
    event_record,
    get_event,
    get_event_detail,
    get_location,
    get_user,
    get_user_by_token,
    list_event_summaries,
    list_locations,
    list_pending_events,
    list_pending_teacher_requests,
    location_hierarchy,
    location_view,
    public_profile,
    reject_event,
    request_teacher_status,
    search_locations,
    update_profile,
    upsert_rsvp,
)
from .database import SessionLocal
from .ics import generate_ics
from .models import User
from .status import APPROVED, InvalidStatusTransition, is_publicly_listed
from .storage import init_db
from .summaries import build_event_summary
from .utils import is_event_fresh, parse_instant, to_iso, utcnow
from .views import EventSummary

# Use uvicorn's error logger so messages get the level prefix in the default log
# format.
logger = logging.getLogger("uvicorn.error")

Role = Literal["Base", "Flyer", "Hybrid"]
Frequency = Literal["none", "daily", "weekly", "monthly"]

MAX_PER_PAGE = 100

_whitespace = re.compile(r"\s+")


def _load_app_version() -> str:
    """Return the current package version, falling back to pyproject for dev runs."""
    try:
        return pkg_version("acrojam")
    except PackageNotFoundError:
        pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            data = tomllib.loads(pyproject_path.read_text())
            project = data.get("project") or {}
            return str(project.get("version") or "dev")
    return "dev"


APP_VERSION = _load_app_version()


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="AcroJam",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.api_docs else None,
    redoc_url=None,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def current_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """Resolve the caller from a bearer token; unknown tokens are anonymous."""
    return get_user_by_token(db, _get_bearer_token(request))


def require_user(user: User | None = Depends(current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# -------- payloads --------


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class RecurrencePayload(BaseModel):
    frequency: Frequency = "none"
    end_date: str | None = None


class EventCreatePayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    date_time: str = Field(..., description="ISO datetime string")
    end_date_time: str = Field(..., description="ISO datetime string after date_time")
    location_id: str = Field(..., min_length=1)
    recurrence: RecurrencePayload | None = None
    skill_level: str | None = Field(None, max_length=32)
    prerequisites: str | None = Field(None, max_length=2000)
    cost_amount: float | None = Field(None, ge=0)
    concession_amount: float | None = Field(None, ge=0)
    cost_currency: str | None = Field(None, min_length=3, max_length=3)
    max_attendees: int | None = Field(None, gt=0)

    @field_validator("title", "description", "location_id")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @model_validator(mode="after")
    def _check_times(self) -> EventCreatePayload:
        start = parse_instant(self.date_time)
        end = parse_instant(self.end_date_time)
        if start is None:
            raise ValueError("date_time must be a valid ISO-8601 date string")
        if end is None:
            raise ValueError("end_date_time must be a valid ISO-8601 date string")
        if end <= start:
            raise ValueError("end_date_time must be after date_time")
        rule = self.recurrence
        if rule is not None and rule.frequency != "none":
            limit = parse_instant(rule.end_date)
            if limit is None:
                raise ValueError("recurrence.end_date is required for repeating events")
            if limit < start:
                raise ValueError("recurrence.end_date must be on or after the event start")
        return self


class RSVPPayload(BaseModel):
    role: Role
    show_name: bool
    is_teaching: bool = False


class LocationPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=120)
    country: str = Field(..., min_length=1, max_length=120)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    what3names: str | None = None
    how_to_find: str | None = Field(None, max_length=2000)

    @field_validator("what3names")
    @classmethod
    def _normalize_what3names(cls, value: str | None) -> str | None:
        cleaned = _blank_to_none(value)
        if cleaned is None:
            return None
        normalized = _whitespace.sub(".", cleaned)
        if len(normalized) > 100:
            raise ValueError("What3Words must be 100 characters or less")
        return normalized

    @field_validator("how_to_find")
    @classmethod
    def _strip_directions(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class ProfilePayload(BaseModel):
    default_role: Role | None = None
    default_show_name: bool | None = None
    facebook_url: str | None = None
    instagram_url: str | None = None
    website_url: str | None = None
    youtube_url: str | None = None
    show_facebook: bool = False
    show_instagram: bool = False
    show_website: bool = False
    show_youtube: bool = False

    @field_validator("facebook_url", "instagram_url", "website_url", "youtube_url")
    @classmethod
    def _strip_url(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


# -------- error handling --------


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    raw = str(exc.orig) if getattr(exc, "orig", None) else str(exc)
    if "database is locked" in raw.lower():
        logger.error(
            "SQLite database is locked while handling %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            {
                "detail": "The database is busy at the moment. Please wait a few seconds and try again."
            },
            status_code=503,
        )
    logger.error(
        "Operational database error on %s %s: %s",
        request.method,
        request.url.path,
        raw,
    )
    return JSONResponse(
        {"detail": "We hit a database issue. Please try again."}, status_code=500
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=422)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Gracefully handle unexpected errors."""
    logger.exception(
        "Unhandled error while processing %s %s", request.method, request.url.path
    )
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


# -------- helpers --------


def _ensure_event(db: Session, event_id: str):
    event = get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _ensure_public_event(db: Session, event_id: str, user: User | None):
    event = _ensure_event(db, event_id)
    if not is_publicly_listed(event.status) and not (user and user.is_admin):
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _serialize_summary(summary: EventSummary, *, since: str | None = None) -> dict:
    payload = asdict(summary)
    if since is not None:
        payload["is_fresh"] = is_event_fresh(summary, since)
    return payload


def _build_pagination(*, page: int, per_page: int, total_events: int) -> dict:
    total_pages = (
        max(1, (total_events + per_page - 1) // per_page) if total_events else 1
    )
    page = max(1, min(page, total_pages)) if total_events else 1
    return {
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "total_events": total_events,
        "has_prev": page > 1,
        "has_next": page < total_pages and total_events > 0,
        "prev_page": page - 1 if page > 1 else None,
        "next_page": page + 1 if page < total_pages and total_events > 0 else None,
    }


# -------- JSON API (v1) --------


@app.get("/api/v1/events")
def api_list_events(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.events_per_page, ge=1, le=MAX_PER_PAGE),
    include_past: bool = Query(False),
    since: str | None = Query(None, description="Flag events added or changed after this instant"),
    db: Session = Depends(get_db),
):
    summaries = list_event_summaries(db, now=utcnow(), include_past=include_past)
    pagination = _build_pagination(
        page=page, per_page=per_page, total_events=len(summaries)
    )
    offset = (pagination["page"] - 1) * per_page
    return {
        "events": [
            _serialize_summary(summary, since=since)
            for summary in summaries[offset : offset + per_page]
        ],
        "pagination": pagination,
    }


@app.get("/api/v1/events/hierarchy")
def api_event_hierarchy(db: Session = Depends(get_db)):
    countries = location_hierarchy(db, now=utcnow())
    return {
        "countries": [asdict(country) for country in countries],
        "total_events": sum(country.event_count for country in countries),
    }


@app.post("/api/v1/events", status_code=201)
def api_create_event(
    payload: EventCreatePayload,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    location = get_location(db, payload.location_id)
    if location is None:
        raise HTTPException(status_code=400, detail="Unknown location")
    recurrence = payload.recurrence or RecurrencePayload()
    event = create_event(
        db,
        title=payload.title,
        description=payload.description,
        start_time=payload.date_time,
        end_time=payload.end_date_time,
        location=location,
        created_by=user,
        recurrence_frequency=recurrence.frequency,
        recurrence_end_date=recurrence.end_date,
        skill_level=payload.skill_level,
        prerequisites=payload.prerequisites,
        cost_amount=payload.cost_amount,
        concession_amount=payload.concession_amount,
        cost_currency=payload.cost_currency,
        max_attendees=payload.max_attendees,
    )
    published = event.status == APPROVED
    return {
        "event_id": event.id,
        "status": event.status,
        "message": (
            "Event created and published."
            if published
            else "Event submitted for admin review."
        ),
    }


@app.get("/api/v1/events/{event_id}")
def api_get_event(
    event_id: str,
    user: User | None = Depends(current_user),
    db: Session = Depends(get_db),
):
    detail = get_event_detail(
        db,
        event_id,
        user.id if user else None,
        bool(user and user.is_admin),
        now=utcnow(),
    )
    if detail is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"event": asdict(detail)}


@app.get("/api/v1/events/{event_id}/event.ics")
def api_get_event_ics(
    event_id: str,
    user: User | None = Depends(current_user),
    db: Session = Depends(get_db),
):
    """Serve the next occurrence of an event as a downloadable ICS file."""
    event = _ensure_public_event(db, event_id, user)
    summary = build_event_summary(
        event_record(event),
        attendee_rows(event),
        now=utcnow(),
        max_iterations=settings.recurrence_iteration_limit,
    )
    headers = {"Content-Disposition": f'attachment; filename="{event.id}.ics"'}
    return Response(
        content=generate_ics(summary),
        media_type="text/calendar; charset=utf-8",
        headers=headers,
    )


def _review_event(db: Session, event_id: str, action: str):
    event = _ensure_event(db, event_id)
    try:
        if action == "approve":
            approve_event(db, event)
        else:
            reject_event(db, event)
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"ok": True, "action": action, "status": event.status}


@app.post("/api/v1/events/{event_id}/approve")
def api_approve_event(
    event_id: str,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _review_event(db, event_id, "approve")


@app.post("/api/v1/events/{event_id}/reject")
def api_reject_event(
    event_id: str,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _review_event(db, event_id, "reject")


@app.get("/api/v1/admin/events/pending")
def api_pending_events(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    now = utcnow()
    return {
        "events": [
            _serialize_summary(
                build_event_summary(
                    event_record(event),
                    attendee_rows(event),
                    now=now,
                    max_iterations=settings.recurrence_iteration_limit,
                )
            )
            for event in list_pending_events(db)
        ]
    }


@app.put("/api/v1/events/{event_id}/rsvp")
def api_upsert_rsvp(
    event_id: str,
    payload: RSVPPayload,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    event = _ensure_public_event(db, event_id, user)
    try:
        rsvp = upsert_rsvp(
            db,
            event=event,
            user=user,
            role=payload.role,
            show_name=payload.show_name,
            is_teaching=payload.is_teaching,
        )
    except TeacherNotApprovedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    return {
        "ok": True,
        "rsvp": {
            "role": rsvp.role,
            "show_name": rsvp.show_name,
            "is_teaching": rsvp.is_teaching,
        },
    }


@app.delete("/api/v1/events/{event_id}/rsvp", status_code=204)
def api_delete_rsvp(
    event_id: str,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    event = _ensure_event(db, event_id)
    if not delete_rsvp(db, event=event, user=user):
        raise HTTPException(status_code=404, detail="RSVP not found")
    return Response(status_code=204)


@app.get("/api/v1/locations")
def api_list_locations(
    q: str | None = Query(None),
    db: Session = Depends(get_db),
):
    locations = search_locations(db, q) if q and q.strip() else list_locations(db)
    return {"locations": [asdict(location_view(location)) for location in locations]}


@app.post("/api/v1/locations", status_code=201)
def api_create_location(
    payload: LocationPayload,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    location = create_location(
        db,
        name=payload.name,
        city=payload.city,
        country=payload.country,
        latitude=payload.latitude,
        longitude=payload.longitude,
        what3names=payload.what3names,
        how_to_find=payload.how_to_find,
        created_by=user,
    )
    return {"location": asdict(location_view(location))}


def _serialize_own_profile(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_admin": user.is_admin,
        "is_teacher_approved": user.is_teacher_approved,
        "teacher_requested_at": (
            to_iso(user.teacher_requested_at) if user.teacher_requested_at else None
        ),
        "default_role": user.default_role,
        "default_show_name": user.default_show_name,
        "facebook_url": user.facebook_url,
        "instagram_url": user.instagram_url,
        "website_url": user.website_url,
        "youtube_url": user.youtube_url,
        "show_facebook": user.show_facebook,
        "show_instagram": user.show_instagram,
        "show_website": user.show_website,
        "show_youtube": user.show_youtube,
    }


@app.get("/api/v1/profile")
def api_get_profile(user: User = Depends(require_user)):
    return {"profile": _serialize_own_profile(user)}


@app.put("/api/v1/profile")
def api_update_profile(
    payload: ProfilePayload,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    update_profile(db, user, **payload.model_dump())
    return {"profile": _serialize_own_profile(user)}


@app.post("/api/v1/profile/teacher-request")
def api_request_teacher_status(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    if user.is_teacher_approved:
        raise HTTPException(status_code=400, detail="You are already an approved teacher")
    request_teacher_status(db, user)
    return {"ok": True, "profile": _serialize_own_profile(user)}


@app.get("/api/v1/admin/teacher-requests")
def api_pending_teacher_requests(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {
        "requests": [
            {
                "user_id": user.id,
                "name": user.name,
                "email": user.email,
                "teacher_requested_at": to_iso(user.teacher_requested_at),
            }
            for user in list_pending_teacher_requests(db)
        ]
    }


def _ensure_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@app.post("/api/v1/admin/teachers/{user_id}/approve")
def api_approve_teacher(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = approve_teacher(db, _ensure_user(db, user_id), approved_by=admin)
    return {"ok": True, "user_id": user.id, "is_teacher_approved": True}


@app.post("/api/v1/admin/teachers/{user_id}/deny")
def api_deny_teacher(
    user_id: str,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = deny_teacher(db, _ensure_user(db, user_id))
    return {"ok": True, "user_id": user.id, "is_teacher_approved": user.is_teacher_approved}


@app.get("/api/v1/profiles/{user_id}")
def api_public_profile(user_id: str, db: Session = Depends(get_db)):
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"profile": public_profile(user)}
