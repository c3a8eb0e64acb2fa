"""HTTP sidecar server for name-anonymizer.

Runs a small threaded HTTP server on localhost so other processes can
redact through one shared, persisted alias table.

Endpoints:
    GET  /health          — Health check and stats
    GET  /display         — Original → alias (refreshes first when stale)
    GET  /aliases         — Every variant → alias
    POST /redact          — {"text": "..."} → {"text": "..."}
    POST /register        — {"category": "...", "name": "...", "hierarchical": false}
    POST /refresh         — Force a refresh

All endpoints expect/return JSON.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .errors import AnonymizerError

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("NAME_ANONYMIZER_PORT", "18792"))

# Shared state, set by make_server()
_anonymizer = None


class BadRequest(ValueError):
    """Request body is not the shape the endpoint expects."""


def _require_str(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str):
        raise BadRequest(f"{key!r} must be a string")
    return value


class AnonymizerHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the anonymizer sidecar."""

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        data = json.loads(body) if body else {}
        if not isinstance(data, dict):
            raise BadRequest("body must be a JSON object")
        return data

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        try:
            if self.path == "/health":
                self._respond(200, {"status": "ok", **_anonymizer.stats})
            elif self.path == "/display":
                self._respond(200, {"names": dict(_anonymizer.get_display_snapshot())})
            elif self.path == "/aliases":
                self._respond(200, {"aliases": dict(_anonymizer.get_full_alias_table())})
            else:
                self._respond(404, {"error": "not found"})
        except AnonymizerError as e:
            logger.error("Request %s failed: %s", self.path, e)
            self._respond(500, {"error": str(e)})
        except Exception as e:
            logger.exception("Unhandled error on %s", self.path)
            self._respond(500, {"error": str(e)})

    def do_POST(self) -> None:
        try:
            body = self._read_json()

            if self.path == "/redact":
                text = body.get("text", "")
                if not isinstance(text, str):
                    raise BadRequest("'text' must be a string")
                self._respond(200, {"text": _anonymizer.redact(text)})

            elif self.path == "/register":
                name = _require_str(body, "name")
                alias = _anonymizer.register(
                    _require_str(body, "category"),
                    name,
                    hierarchical=bool(body.get("hierarchical", False)),
                )
                self._respond(200, {"name": name, "alias": alias})

            elif self.path == "/refresh":
                registered = _anonymizer.force_refresh()
                self._respond(200, {"status": "refreshed", "registered": registered})

            else:
                self._respond(404, {"error": "not found"})

        except AnonymizerError as e:
            logger.error("Request %s failed: %s", self.path, e)
            self._respond(500, {"error": str(e)})
        except ValueError as e:
            self._respond(400, {"error": f"bad request: {e}"})
        except Exception as e:
            logger.exception("Unhandled error on %s", self.path)
            self._respond(500, {"error": str(e)})


def make_server(anonymizer, port: int = DEFAULT_PORT) -> ThreadingHTTPServer:
    """Bind the sidecar to localhost without starting it.  Port 0 picks a free port."""
    global _anonymizer
    _anonymizer = anonymizer
    return ThreadingHTTPServer(("127.0.0.1", port), AnonymizerHandler)


def serve(anonymizer, port: int = DEFAULT_PORT) -> None:
    """Start the anonymizer HTTP sidecar (blocks)."""
    server = make_server(anonymizer, port)
    print(f"name-anonymizer sidecar listening on http://127.0.0.1:{server.server_address[1]}")
    print(f"  store: {anonymizer.controller.store.location}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
        server.shutdown()


if __name__ == "__main__":
    import argparse
    from .config import create_anonymizer, load_config, load_from_yaml
    from .refresh import static_sources
    from .cli import _load_entities

    parser = argparse.ArgumentParser(description="name-anonymizer HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--entities", help="YAML/JSON file of {category: [names]}")
    parser.add_argument("--log-level", default=os.environ.get("NAME_ANONYMIZER_LOG_LEVEL", "INFO"))
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if not cfg["enabled"]:
        parser.error("anonymization is disabled in the config")
    sources = static_sources(_load_entities(args.entities))
    serve(create_anonymizer(cfg, sources).start(), port=args.port)
