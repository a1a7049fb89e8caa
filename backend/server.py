import os
import sys
import time
import threading
import hashlib
import json
from collections import OrderedDict

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from data_loader import load_data, enrollments_for
from feed import collect_recommendation_sets, table_feed, DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_SECONDS
from roadmap import build_roadmap, roadmap_to_payload
from validators import parse_roadmap_body

load_dotenv()

app = Flask(__name__)

VERSION = "1.0.0"

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data")
_env_data_path = os.environ.get("DATA_PATH")
if not _env_data_path:
    DATA_PATH = _DEFAULT_DATA_PATH
elif not os.path.isabs(_env_data_path):
    DATA_PATH = os.path.join(PROJECT_ROOT, _env_data_path)
else:
    DATA_PATH = _env_data_path
_data_lock = threading.Lock()
_data_mtime = None


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)
_REQUEST_CACHE_SIZE = _env_int("REQUEST_CACHE_SIZE", 128, minimum=1)
_FEED_TIMEOUT_SECONDS = _env_float("FEED_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, minimum=0.1)
_FEED_MAX_WORKERS = _env_int("FEED_MAX_WORKERS", DEFAULT_MAX_WORKERS, minimum=1)


class _LruResponseCache:
    """Thread-safe bounded in-memory cache for JSON-serializable responses."""

    def __init__(self, max_size: int):
        self.max_size = max(1, int(max_size))
        self._lock = threading.Lock()
        self._items: OrderedDict[str, dict] = OrderedDict()

    def get(self, key: str):
        with self._lock:
            if key not in self._items:
                return None
            value = self._items.pop(key)
            self._items[key] = value
            return value

    def set(self, key: str, value: dict) -> None:
        with self._lock:
            if key in self._items:
                self._items.pop(key)
            self._items[key] = value
            while len(self._items) > self.max_size:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


_roadmap_response_cache = _LruResponseCache(_REQUEST_CACHE_SIZE)


def _cache_enabled() -> bool:
    return not app.config.get("TESTING", False)


def _stable_payload_hash(payload) -> str:
    normalized = payload if payload is not None else {}
    encoded = json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def _request_cache_key(prefix: str, payload) -> str:
    return f"{prefix}:{_stable_payload_hash(payload)}"


def _data_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            mtimes = [
                os.path.getmtime(os.path.join(path, f))
                for f in os.listdir(path)
                if f.endswith(".csv")
            ]
            return max(mtimes) if mtimes else None
        return os.path.getmtime(path)
    except OSError:
        return None


def _empty_data() -> dict:
    return {
        "courses": [],
        "recommendations_df": None,
        "catalog_ids": set(),
        "enrollments_by_learner": {},
    }


def _error_response(error_code: str, message: str, status: int):
    return jsonify({
        "mode": "error",
        "error": {
            "error_code": error_code,
            "message": message,
        },
    }), status


# ── Startup data load ──────────────────────────────────────────────────────────
try:
    _data = load_data(DATA_PATH)
    _data_mtime = _data_file_mtime(DATA_PATH)
    print(f"[OK] Loaded {len(_data['courses'])} courses from {DATA_PATH}")
except FileNotFoundError:
    # POST /roadmap carries its own catalog, so the service is still useful.
    print(
        f"[WARN] Data not found at {DATA_PATH}; serving request-supplied catalogs only.",
        file=sys.stderr,
    )
    _data = _empty_data()
except Exception as exc:
    print(f"[FATAL] Failed to load data: {exc}", file=sys.stderr)
    sys.exit(1)

_feed = table_feed(_data["recommendations_df"])


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload the dataset when DATA_PATH changes on disk.

    Returns True when a reload occurred, else False.
    """
    global _data, _feed, _data_mtime

    candidate_mtime = _data_file_mtime(DATA_PATH)
    if not force:
        if candidate_mtime is None:
            return False
        if _data_mtime is not None and candidate_mtime <= _data_mtime:
            return False

    with _data_lock:
        latest_mtime = _data_file_mtime(DATA_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = load_data(DATA_PATH)
            new_feed = table_feed(new_data["recommendations_df"])
        except Exception as exc:
            print(f"[WARN] Data reload failed; keeping previous dataset: {exc}", file=sys.stderr)
            return False

        _data = new_data
        _feed = new_feed
        _data_mtime = latest_mtime if latest_mtime is not None else candidate_mtime
        _roadmap_response_cache.clear()
        print(f"[OK] Reloaded {len(new_data['courses'])} courses from {DATA_PATH}")
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Data reload check failed: {exc}", file=sys.stderr)


# -- Security headers ------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": VERSION,
        "courses_loaded": len(_data["courses"]),
    })


# ── 500 handler ────────────────────────────────────────────────────────────────
@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    print(f"[WARN] Unhandled error on {request.method} {request.path}: {e!r}", file=sys.stderr)
    return _error_response("SERVER_ERROR", "An unexpected server error occurred.", 500)


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/courses", methods=["GET"])
def get_courses():
    _refresh_data_if_needed()
    courses = [
        {
            "course_id": course.id,
            "name": course.name,
            "description": course.description,
            "difficulty": course.difficulty,
            "price": course.price,
            "is_published": course.is_published,
            "prerequisites": list(course.prerequisites),
        }
        for course in _data["courses"]
    ]
    return jsonify({"courses": courses})


@app.route("/roadmap", methods=["POST"])
def roadmap_endpoint():
    """Run the engine on a caller-supplied catalog, enrollment set and recommendation sets."""
    body = request.get_json(force=True, silent=True)
    if body is None:
        return _error_response("INVALID_INPUT", "Request body must be valid JSON.", 400)

    cache_key = None
    if _cache_enabled():
        cache_key = _request_cache_key("roadmap", body)
        cached = _roadmap_response_cache.get(cache_key)
        if cached is not None:
            return jsonify(cached)

    try:
        courses, enrollments, recommendation_sets = parse_roadmap_body(body)
    except ValueError as exc:
        return _error_response("INVALID_INPUT", str(exc), 400)

    payload = roadmap_to_payload(build_roadmap(courses, enrollments, recommendation_sets))
    if cache_key is not None:
        _roadmap_response_cache.set(cache_key, payload)
    return jsonify(payload)


@app.route("/learners/<learner_id>/roadmap", methods=["GET"])
def learner_roadmap_endpoint(learner_id):
    """Run the engine on the loaded dataset for one learner."""
    _refresh_data_if_needed()
    data = _data
    enrollments = enrollments_for(data, learner_id)
    recommendation_sets = collect_recommendation_sets(
        [record.course_id for record in enrollments],
        _feed,
        timeout=_FEED_TIMEOUT_SECONDS,
        max_workers=_FEED_MAX_WORKERS,
    )
    roadmap = build_roadmap(data["courses"], enrollments, recommendation_sets)
    if roadmap.unrooted_ids:
        print(
            f"[INFO] Learner {learner_id}: {len(roadmap.unrooted_ids)} course(s) on an unrooted "
            f"prerequisite cycle: {list(roadmap.unrooted_ids)}"
        )
    payload = roadmap_to_payload(roadmap)
    payload["learner_id"] = learner_id
    return jsonify(payload)


# -- Canonical API routes ----------------------------------------------
app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])
app.add_url_rule("/api/courses", endpoint="api_courses", view_func=get_courses, methods=["GET"])
app.add_url_rule("/api/roadmap", endpoint="api_roadmap", view_func=roadmap_endpoint, methods=["POST"])
app.add_url_rule(
    "/api/learners/<learner_id>/roadmap",
    endpoint="api_learner_roadmap",
    view_func=learner_roadmap_endpoint,
    methods=["GET"],
)


# -- API catch-all (404 for unknown /api/* routes) -------------------
@app.route("/api/<path:rest>", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def api_catch_all(rest):
    return jsonify({"error": f"/api/{rest} not found"}), 404


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
