"""HTTP API serving users, chirps, static files and admin metrics."""

from __future__ import annotations

import argparse
import html
import json
import logging
import os
import posixpath
import re
import sqlite3
import threading
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote

from dotenv import load_dotenv
from flask import Flask, Response, redirect, request, send_file

from chirpy.auth import AuthError, check_password_hash, hash_password
from chirpy.database import Chirp, NoRowsError, Queries, User, connect

logger = logging.getLogger(__name__)

MAX_CHIRP_LENGTH = 140
BANNED_WORDS = ("kerfuffle", "sharbert", "fornax")
CENSOR = "****"
DEFAULT_PORT = 8080

_TEXT = "text/plain; charset=utf-8"
_HTML = "text/html; charset=utf-8"
_HEX32 = re.compile(r"[0-9a-fA-F]{32}")
_DB_ERRORS = (NoRowsError, sqlite3.Error)
_STATIC_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]
_ALT_SEPARATORS = [sep for sep in (os.sep, os.path.altsep) if sep and sep != "/"]


@dataclass
class ApiConfig:
    """Shared state of the running API: storage, platform and visit count."""

    database: Queries
    platform: str = ""
    fileserver_hits: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)


def censor_chirp(body: str) -> str:
    """Replace banned words in ``body`` with asterisks."""
    clean = body
    for word in BANNED_WORDS:
        capitalised = word[0].upper() + word[1:]
        if word in clean:
            clean = clean.replace(word, CENSOR)
        elif word.upper() in clean:
            # Only the lower-case spelling is replaced here, which is never present.
            clean = clean.replace(word, CENSOR)
        elif capitalised in clean:
            clean = clean.replace(capitalised, CENSOR)
    return clean


def _reject_constant(name: str) -> object:
    raise ValueError(f"invalid JSON constant {name}")


def _decode_params(raw: bytes, names: Iterable[str]) -> dict[str, str]:
    """Decode a JSON object body into the given string fields."""
    names = list(names)
    text = raw.decode("utf-8").lstrip(" \t\r\n")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    value, _ = decoder.raw_decode(text)
    params = dict.fromkeys(names, "")
    if value is None:
        return params
    if not isinstance(value, dict):
        raise ValueError("request body is not a JSON object")
    lookup = {name.lower(): name for name in names}
    for key, item in value.items():
        name = lookup.get(key.lower())
        if name is None or item is None:
            continue
        if not isinstance(item, str):
            raise ValueError(f"field {key!r} is not a string")
        params[name] = item
    return params


def _parse_uuid(text: str) -> uuid.UUID:
    """Parse the canonical, URN, braced or bare-hex forms of a UUID."""
    length = len(text)
    if length == 32:
        if not _HEX32.fullmatch(text):
            raise ValueError(f"invalid UUID {text!r}")
        return uuid.UUID(hex=text)
    if length == 45:
        if text[:9].lower() != "urn:uuid:":
            raise ValueError(f"invalid UUID prefix in {text!r}")
        text = text[9:]
    elif length == 38:
        if text[0] != "{" or text[-1] != "}":
            raise ValueError(f"invalid UUID format {text!r}")
        text = text[1:-1]
    elif length != 36:
        raise ValueError(f"invalid UUID length {length}")
    if any(text[pos] != "-" for pos in (8, 13, 18, 23)):
        raise ValueError(f"invalid UUID format {text!r}")
    digits = text[:8] + text[9:13] + text[14:18] + text[19:23] + text[24:]
    if not _HEX32.fullmatch(digits):
        raise ValueError(f"invalid UUID {text!r}")
    return uuid.UUID(hex=digits)


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trimmed fractional seconds."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _encode_json(payload: object) -> str:
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    for char, escape in (
        ("&", "\\u0026"),
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escape)
    return text


def _json_response(payload: object, status: int) -> Response:
    return Response(_encode_json(payload), status=status, content_type="application/json")


def _error(message: str, status: int) -> Response:
    return _json_response({"error": message}, status)


def _text_response(text: str, status: int = 200, content_type: str = _TEXT) -> Response:
    response = Response(text, status=status, content_type=content_type)
    response.headers["Cache-Control"] = "no-cache"
    return response


def _user_payload(user: User) -> dict[str, str]:
    return {
        "id": str(user.id),
        "created_at": _format_time(user.created_at),
        "updated_at": _format_time(user.updated_at),
        "email": user.email or "",
        "hashed_password": "",
    }


def _chirp_payload(chirp: Chirp) -> dict[str, str]:
    return {
        "id": str(chirp.id),
        "created_at": _format_time(chirp.created_at),
        "updated_at": _format_time(chirp.updated_at),
        "body": chirp.body,
        "user_id": str(chirp.user_id if chirp.user_id is not None else uuid.UUID(int=0)),
    }


def _directory_listing(directory: Path) -> Response:
    parts = ['<!doctype html>\n<meta name="viewport" content="width=device-width">\n<pre>\n']
    for entry in sorted(directory.iterdir(), key=lambda path: path.name):
        name = entry.name + ("/" if entry.is_dir() else "")
        href = html.escape(quote(name), quote=True)
        parts.append(f'<a href="{href}">{html.escape(name)}</a>\n')
    parts.append("</pre>\n")
    return Response("".join(parts), status=200, content_type=_HTML)


def _safe_join(root: Path, subpath: str) -> Path | None:
    """Join ``subpath`` under ``root``, or return None if it would escape it."""
    normalized = posixpath.normpath(subpath)
    if (
        any(sep in normalized for sep in _ALT_SEPARATORS)
        or os.path.isabs(normalized)
        or normalized.startswith("/")
        or normalized == ".."
        or normalized.startswith("../")
    ):
        return None
    return root / normalized


def _serve_path(root: Path, subpath: str) -> Response:
    target = _safe_join(root, subpath) if subpath else root
    if target is None:
        return _text_response("404 page not found\n", 404)
    if target.is_dir():
        if not request.path.endswith("/"):
            return redirect(request.path + "/", code=301)
        index = target / "index.html"
        if index.is_file():
            return send_file(index)
        return _directory_listing(target)
    if target.is_file():
        return send_file(target)
    return _text_response("404 page not found\n", 404)


def create_app(config: ApiConfig, static_dir: str = ".") -> Flask:
    """Build the web application bound to ``config``."""
    app = Flask(__name__, static_folder=None)
    root = Path(static_dir).resolve()
    db = config.database

    def serve_static(subpath: str = "") -> Response:
        with config._lock:
            config.fileserver_hits += 1
        return _serve_path(root, subpath)

    app.add_url_rule("/app/", "app_root", serve_static, methods=_STATIC_METHODS)
    app.add_url_rule("/app/<path:subpath>", "app_files", serve_static, methods=_STATIC_METHODS)

    @app.get("/api/healthz")
    def health() -> Response:
        return _text_response("OK")

    @app.get("/admin/metrics")
    def metrics() -> Response:
        with config._lock:
            hits = config.fileserver_hits
        page = (
            "<html><body><h1>Welcome, Chirpy Admin</h1>"
            f"<p>Chirpy has been visited {hits} times!</p></body></html>"
        )
        return _text_response(page, content_type=_HTML)

    @app.post("/admin/reset")
    def reset() -> Response:
        if config.platform != "dev":
            return _text_response("403 Forbidden", 403)
        with config._lock:
            try:
                db.delete_users()
            except sqlite3.Error as exc:
                logger.error("Error deleting users: %s", exc)
            config.fileserver_hits = 0
        return _text_response("OK")

    @app.post("/api/users")
    def add_user() -> Response:
        try:
            params = _decode_params(request.get_data(), ("email", "password"))
        except ValueError as exc:
            logger.warning("Error decoding parameters: %s", exc)
            return _error("something went wrong", 400)
        if not params["email"]:
            return _error("Email is empty.", 400)
        if not params["password"]:
            return _error("Password is empty.", 400)
        try:
            hashed = hash_password(params["password"])
        except AuthError as exc:
            logger.warning("Error hashing password: %s", exc)
            return _error("Failed to hash password.", 503)
        try:
            with config._lock:
                user = db.create_user(params["email"], hashed)
        except _DB_ERRORS as exc:
            logger.error("Error adding user to DB: %s", exc)
            return _error("failed to add user to db", 500)
        return _json_response(_user_payload(user), 201)

    @app.post("/api/login")
    def login() -> Response:
        try:
            params = _decode_params(request.get_data(), ("email", "password"))
        except ValueError:
            return _error("Unable to decode json POST request.", 503)
        failure = "Incorrect email or password"
        if not params["email"] or not params["password"]:
            return _error(failure, 401)
        try:
            with config._lock:
                user = db.user_and_hash_lookup(params["email"])
        except _DB_ERRORS:
            return _error(failure, 401)
        try:
            check_password_hash(user.hashed_password, params["password"])
        except AuthError as exc:
            logger.info("Password is incorrect: %s", exc)
            return _error(failure, 401)
        return _json_response(_user_payload(user), 200)

    @app.post("/api/chirps")
    def add_chirp() -> Response:
        try:
            params = _decode_params(request.get_data(), ("body", "user_id"))
        except ValueError as exc:
            logger.warning("Error decoding parameters: %s", exc)
            return _error("something went wrong", 500)
        try:
            user_id = _parse_uuid(params["user_id"])
        except ValueError as exc:
            logger.warning("User id could not be parsed: %s", exc)
            return _error("unable to parse uuid from json POST", 400)
        body = params["body"]
        length = len(body.encode("utf-8"))
        if length > MAX_CHIRP_LENGTH:
            logger.info(
                "%d is greater than %d characters by %d",
                length,
                MAX_CHIRP_LENGTH,
                length - MAX_CHIRP_LENGTH,
            )
            response = _error("chirp is too long", 400)
            response.headers["Cache-Control"] = "no-cache"
            return response
        try:
            with config._lock:
                chirp = db.add_chirp(censor_chirp(body), user_id)
        except _DB_ERRORS as exc:
            logger.error("Error adding chirp to DB: %s", exc)
            return _error("Failed to Add Chirp to DB", 503)
        if chirp.user_id is None:
            logger.error("Chirp %s has no user id", chirp.id)
        return _json_response(_chirp_payload(chirp), 201)

    @app.get("/api/chirps")
    def all_chirps() -> Response:
        try:
            with config._lock:
                chirps = db.get_all_chirps()
        except _DB_ERRORS:
            return _error("Failed to query DB for all chirps", 503)
        payload = [_chirp_payload(chirp) for chirp in chirps if chirp.user_id is not None]
        return _json_response(payload or None, 200)

    @app.get("/api/chirps/<chirp_id>")
    def specific_chirp(chirp_id: str) -> Response:
        try:
            parsed = _parse_uuid(chirp_id)
        except ValueError:
            return _error("Failed to convert string Id from PathValue to uuid.UUID", 500)
        try:
            with config._lock:
                chirp = db.get_specific_chirp(parsed)
        except _DB_ERRORS:
            return _error("Failed to query DB for chirpID", 503)
        if chirp.user_id is None:
            logger.error("Chirp %s has no user id", chirp.id)
        return _json_response(_chirp_payload(chirp), 200)

    return app


def main(argv: list[str] | None = None) -> int:
    """Load the environment, open the database and serve the API."""
    parser = argparse.ArgumentParser(prog="chirpy", description="Run the Chirpy API server.")
    parser.add_argument("--env-file", default=".env", help="environment file to load")
    parser.add_argument("--static-dir", default=".", help="directory served under /app/")
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    env_path = Path(args.env_file)
    if not env_path.is_file():
        raise SystemExit(f"open {env_path}: no such file or directory")
    load_dotenv(env_path)

    queries = Queries(connect(os.environ.get("DB_URL", "")))
    queries.init_schema()
    config = ApiConfig(database=queries, platform=os.environ.get("PLATFORM", ""))
    app = create_app(config, args.static_dir)

    print(f"Attempting to serve at: {args.host}:{args.port}")
    try:
        app.run(host=args.host or "0.0.0.0", port=args.port)
    except OSError as exc:
        print(f"Failed at ListenAndServe: {exc}")
        return 1
    return 0