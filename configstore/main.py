"""
configstore - multi-backend configuration store with maker-checker approval.

Reads one JSON request from a file argument or stdin, runs it and prints a
JSON response. Requests carry an "action":

    test_connection  connect and ping the described backend
    execute          generic verb (query/args or params) on the backend
    inspect          table existence, structure, count or bootstrap DDL
    config           config operation (default)
"""

import json
import sys
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from configstore.config.settings import Settings
from configstore.errors import ConfigStoreError, ValidationError
from configstore.logger.logger import get_logger, init_logger
from configstore.logger.postgres_writer import PostgresWriter
from configstore.logger.types import Category, param
from configstore.service import ConfigService


def load_request(argv: Sequence[str]) -> dict[str, Any]:
    """Request from the file named in argv, or from stdin."""
    if argv:
        with open(argv[0]) as f:
            raw = f.read()
    else:
        raw = sys.stdin.read()
    try:
        request = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"invalid JSON: {e}") from e
    if not isinstance(request, dict):
        raise ValidationError("request must be a JSON object")
    return request


def dispatch(service: ConfigService, request: Mapping[str, Any]) -> tuple[Any, str]:
    """Run a request. Returns (data, message)."""
    action = request.get("action") or "config"
    match action:
        case "test_connection":
            return service.test_connection(request), "Connection test successful"
        case "execute":
            operation = request.get("operation") or ""
            data = service.execute_operation(
                request,
                operation,
                query=request.get("query"),
                args=request.get("args"),
                params=request.get("params"),
            )
            return data, f"Operation '{operation}' executed successfully"
        case "inspect":
            data = service.inspect_table(request, request.get("table_name"))
            return data, "Config table check completed"
        case "config":
            data = service.run(request)
            return data, f"Config operation '{request.get('operation')}' completed"
    raise ValidationError(f"unknown action: {action}")


def response(
    success: bool,
    data: Any = None,
    message: str | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if error:
        body["error"] = error
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    settings = Settings()

    log_writer: PostgresWriter | None = None
    if settings.log_dsn:
        log_writer = PostgresWriter(dsn=settings.log_dsn, batch_size=100)
        log_writer.connect()

    init_logger(
        service_name=settings.service_name,
        environment=settings.environment,
        writer=log_writer,
        level=settings.log_level,
    )
    logger = get_logger().with_category(Category.SERVICE)
    logger.debug(
        "Starting configstore",
        param("environment", settings.environment),
        param("version", settings.service_version),
    )

    exit_code = 0
    try:
        request = load_request(argv if argv is not None else sys.argv[1:])
        data, message = dispatch(ConfigService(settings), request)
        body = response(True, data=data, message=message)
    except (ConfigStoreError, OSError) as e:
        logger.error("Request failed", e, param("error", str(e)))
        body = response(False, error=str(e))
        exit_code = 1
    finally:
        if log_writer is not None:
            log_writer.close()

    print(json.dumps(body, default=str))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
