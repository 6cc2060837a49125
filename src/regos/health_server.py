"""
Health check HTTP server for liveness and readiness probes.

Provides endpoints for monitoring the health and readiness of a Regos
deployment backed by a SQLite database.
"""

import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, Response, jsonify

from regos.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

# Global state - set by initialize_health_server()
_db_path: Path | None = None
_regos_instance: Any = None


def initialize_health_server(db_path: str | Path, regos_instance: Any = None) -> None:
    """
    Initialize the health server with the database path.

    Args:
        db_path: Path to SQLite database
        regos_instance: Optional Regos instance for platform statistics
    """
    global _db_path, _regos_instance
    _db_path = Path(db_path)
    _regos_instance = regos_instance
    logger.info("Health server initialized", db_path=str(_db_path))


@app.after_request
def add_security_headers(response: Response) -> Response:
    """Health responses are JSON only; forbid sniffing, framing and scripts."""
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    return response


def _not_ready(reason: str, **detail: Any) -> tuple[Any, int]:
    return jsonify({"status": "not_ready", "reason": reason, **detail}), 503


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    """
    Liveness probe - the process is running.

    Returns:
        JSON response with status and 200 OK
    """
    return jsonify({"status": "alive", "service": "regos"}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """
    Readiness probe - the database is reachable and initialized.

    Returns:
        JSON response with 200 if ready, 503 if not
    """
    if _db_path is None:
        logger.error("Readiness check failed: DB path not initialized")
        return _not_ready("database_path_not_initialized")

    if not _db_path.exists():
        logger.error("Readiness check failed: DB file does not exist", db_path=str(_db_path))
        return _not_ready("database_file_not_found", db_path=str(_db_path))

    try:
        conn = sqlite3.connect(str(_db_path), timeout=1.0)
        try:
            record_count = conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Readiness check failed: DB error", error=str(e))
        return _not_ready("database_operational_error", error=str(e))

    logger.debug("Readiness check passed", record_count=record_count)
    return (
        jsonify({"status": "ready", "database": "accessible", "record_count": record_count}),
        200,
    )


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    """
    Detailed health check - per-collection record counts and, when a
    Regos instance is attached, platform statistics.
    """
    health_data: dict[str, Any] = {
        "status": "healthy",
        "service": "regos",
    }

    if _db_path and _db_path.exists():
        try:
            conn = sqlite3.connect(str(_db_path), timeout=1.0)
            try:
                rows = conn.execute(
                    "SELECT collection, COUNT(*) FROM records GROUP BY collection"
                ).fetchall()
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                page_size = conn.execute("PRAGMA page_size").fetchone()[0]
            finally:
                conn.close()

            health_data["database"] = {
                "status": "healthy",
                "path": str(_db_path),
                "collections": {collection: count for collection, count in rows},
                "size_mb": round((page_count * page_size) / (1024 * 1024), 2),
            }
        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            health_data["database"] = {"status": "unhealthy", "error": str(e)}
            health_data["status"] = "degraded"
    else:
        health_data["database"] = {"status": "not_initialized"}
        health_data["status"] = "degraded"

    if _regos_instance is not None:
        health_data["platform"] = _regos_instance.stats()

    status_code = 200 if health_data["status"] == "healthy" else 503
    return jsonify(health_data), status_code


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    """
    Run the health check server.

    Args:
        port: Port to listen on (default: 8080)
        debug: Enable Flask debug mode (default: False)
    """
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)


if __name__ == "__main__":
    initialize_health_server("/tmp/regos-test.db")
    run_health_server(port=8080, debug=True)
