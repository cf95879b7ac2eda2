"""The API and web servers and the command that starts them."""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path

from flask import Flask, Response, g, jsonify, request, send_from_directory

from .disk import DiskError, DiskStorage
from .handlers import Handler
from .sqlite_store import SQLiteStore
from .store import Store
from .web import DEFAULT_API_URL, fetch_buckets

API_PORT = 9000
WEB_PORT = 9001
DB_FILENAME = "mini-alt.sqlite"
DEFAULT_DIST_DIR = Path(__file__).resolve().parent / "frontend" / "dist"

_OBJECT_METHODS = ["GET", "PUT", "HEAD", "DELETE"]

logger = logging.getLogger(__name__)


def _with_fraction(value: int, digits: int) -> str:
    whole, fraction = divmod(value, 10**digits)
    if not fraction:
        return str(whole)
    return f"{whole}.{fraction:0{digits}d}".rstrip("0")


def _format_duration(latency: timedelta) -> str:
    """Write a duration the way the request log shows it, e.g. 1.5ms or 1m30s."""
    nanos = (latency // timedelta(microseconds=1)) * 1000
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000:
        text = f"{nanos}ns"
    elif nanos < 1_000_000:
        text = _with_fraction(nanos, 3) + "µs"
    elif nanos < 1_000_000_000:
        text = _with_fraction(nanos, 6) + "ms"
    else:
        minutes_total, second_nanos = divmod(nanos, 60 * 1_000_000_000)
        text = _with_fraction(second_nanos, 9) + "s"
        if minutes_total:
            hours, minutes = divmod(minutes_total, 60)
            text = f"{minutes}m{text}"
            if hours:
                text = f"{hours}h{text}"
    return sign + text


def format_log_line(
    server_name: str,
    client_ip: str,
    timestamp: datetime,
    method: str,
    path: str,
    status: int,
    latency: timedelta,
    error_message: str,
) -> str:
    """Return one request log line, ending in a newline."""
    return '[%s] %s - [%s] "%s %s" %d %s %s\n' % (
        server_name,
        client_ip,
        timestamp.strftime("%Y/%m/%d %H:%M:%S"),
        method,
        path,
        status,
        _format_duration(latency),
        error_message,
    )


def _install_request_log(app: Flask, server_name: str) -> None:
    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        started = g.get("request_started")
        elapsed = time.perf_counter() - started if started is not None else 0.0
        path = request.path
        query = request.query_string.decode("latin-1")
        if query:
            path = f"{path}?{query}"
        sys.stdout.write(
            format_log_line(
                server_name,
                request.remote_addr or "",
                datetime.now(),
                request.method,
                path,
                response.status_code,
                timedelta(seconds=elapsed),
                "",
            )
        )
        sys.stdout.flush()
        return response


def create_api_app(store: Store, disk: DiskStorage) -> Flask:
    """Build the S3-compatible API application."""
    app = Flask("minialt.api")
    _install_request_log(app, "API-SERVER")
    handler = Handler(store, disk)

    def dispatch(bucket: str, object_path: str) -> Response:
        method = request.method
        if method == "PUT":
            return handler.put_object_or_bucket(bucket, object_path)
        if method == "DELETE":
            return handler.delete_object_or_bucket(bucket, object_path)
        if method == "HEAD":
            return handler.head_object(bucket, object_path)
        return handler.get_object_or_list(bucket, object_path)

    def bucket_root(bucket: str) -> Response:
        return dispatch(bucket, "")

    def bucket_slash(bucket: str) -> Response:
        return dispatch(bucket, "/")

    def bucket_object(bucket: str, key: str) -> Response:
        return dispatch(bucket, "/" + key)

    app.add_url_rule("/", "list_buckets", handler.list_buckets, methods=["GET"])
    app.add_url_rule("/<bucket>", "bucket", bucket_root, methods=_OBJECT_METHODS)
    app.add_url_rule("/<bucket>/", "bucket_slash", bucket_slash, methods=_OBJECT_METHODS)
    app.add_url_rule(
        "/<bucket>/<path:key>", "object", bucket_object, methods=_OBJECT_METHODS
    )
    return app


def _index_response(dist: Path) -> Response:
    try:
        content = (dist / "index.html").read_bytes()
    except OSError as exc:
        logger.error("Error opening index.html: %s", exc)
        return Response(status=500)
    return Response(content, status=200, content_type="text/html; charset=utf-8")


def create_web_app(dist_dir=DEFAULT_DIST_DIR, api_url: str = DEFAULT_API_URL) -> Flask:
    """Build the web interface application serving the front end from dist_dir."""
    dist = Path(dist_dir)
    app = Flask("minialt.web", static_folder=None)
    _install_request_log(app, "WEB-SERVER")

    def api_buckets():
        try:
            buckets = fetch_buckets(api_url)
        except (OSError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(buckets), 200

    def assets(filepath: str):
        return send_from_directory(dist / "assets", filepath)

    def vite_svg():
        return send_from_directory(dist, "vite.svg")

    def index():
        return _index_response(dist)

    def no_route(_error):
        if request.path.startswith("/api/"):
            return jsonify({"error": "Not found"}), 404
        return _index_response(dist)

    def not_found(error):
        if request.path.startswith("/assets/") or request.path == "/vite.svg":
            return Response("404 page not found\n", status=404, content_type="text/plain; charset=utf-8")
        return no_route(error)

    app.add_url_rule("/api/buckets", "api_buckets", api_buckets, methods=["GET"])
    app.add_url_rule("/assets/<path:filepath>", "assets", assets, methods=["GET"])
    app.add_url_rule("/vite.svg", "vite_svg", vite_svg, methods=["GET"])
    app.add_url_rule("/", "index", index, methods=["GET"])
    app.register_error_handler(404, not_found)
    app.register_error_handler(405, no_route)
    return app


def _start_api_server() -> None:
    db_path = Path(sys.argv[0]).resolve().parent / DB_FILENAME
    try:
        store = SQLiteStore(db_path)
        disk = DiskStorage()
    except (sqlite3.Error, DiskError) as exc:
        logger.critical("%s", exc)
        raise SystemExit(1) from exc
    app = create_api_app(store, disk)
    app.run(host="0.0.0.0", port=API_PORT, threaded=True, use_reloader=False)


def _run_api_in_background() -> None:
    try:
        _start_api_server()
    except (SystemExit, Exception) as exc:
        logger.critical("API server stopped: %s", exc)
        # A failed API server is fatal to the whole program.
        import os

        os._exit(1)


def _start_web_server() -> None:
    app = create_web_app(DEFAULT_DIST_DIR, DEFAULT_API_URL)
    app.run(host="0.0.0.0", port=WEB_PORT, threaded=True, use_reloader=False)


def main(argv=None) -> int:
    """Start the API server and, unless disabled, the web interface."""
    parser = argparse.ArgumentParser(
        prog="mini-alt", description="A local S3-compatible storage server."
    )
    parser.add_argument(
        "--no-web", "-no-web", dest="no_web", action="store_true",
        help="Disable web interface",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    logging.getLogger("werkzeug").setLevel(logging.ERROR)

    if args.no_web:
        _start_api_server()
        print("Starting without web interface")
    else:
        threading.Thread(target=_run_api_in_background, daemon=True).start()
        _start_web_server()
    return 0


if __name__ == "__main__":
    sys.exit(main())