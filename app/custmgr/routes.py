from flask import Blueprint, render_template
from sqlalchemy import text

from app.custmgr.db import db_session

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    """Single-page admin UI; all data comes from /api."""
    return render_template("public/index.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    db_session().execute(text("SELECT 1"))
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for probes. No DB access, minimal overhead.
    """
    return "ok", 200
