import base64
import datetime
import decimal
import logging
import uuid

from flask import Flask, Response, current_app, jsonify, request
from flask.json.provider import DefaultJSONProvider
from werkzeug.exceptions import InternalServerError

from gatekeeper.db import Database, ExecutionFailed
from gatekeeper.tokens import TokenVerifier

log = logging.getLogger(__name__)


class RowJSONProvider(DefaultJSONProvider):
    """Renders the column types the driver hands back."""

    sort_keys = False

    @staticmethod
    def default(o):
        if isinstance(o, (datetime.datetime, datetime.date, datetime.time)):
            return o.isoformat()
        if isinstance(o, datetime.timedelta):
            return str(o)
        if isinstance(o, decimal.Decimal):
            return str(o)
        if isinstance(o, (bytes, bytearray)):
            try:
                return bytes(o).decode("utf-8")
            except UnicodeDecodeError:
                return base64.b64encode(bytes(o)).decode("ascii")
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return DefaultJSONProvider.default(o)


class GatewayApp(Flask):
    json_provider_class = RowJSONProvider


def strip_semicolons(sql: str) -> str:
    # removes every ';', including ones inside string literals
    return sql.replace(";", "")


def text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def create_app(db: Database, verifier: TokenVerifier) -> Flask:
    app = GatewayApp(__name__)
    app.extensions["gatekeeper.db"] = db
    app.extensions["gatekeeper.verifier"] = verifier

    @app.errorhandler(InternalServerError)
    def internal_error(e):
        original = getattr(e, "original_exception", None)
        return text(str(original) if original else "Internal Server Error", 500)

    @app.get("/health")
    def health():
        return text("OK", 200)

    @app.post("/query")
    def query():
        req_id = str(uuid.uuid4())
        token = request.get_data(as_text=True)

        verdict = current_app.extensions["gatekeeper.verifier"].verify(token)
        if not verdict.ok:
            log.warning("[%s] rejected token: %s", req_id, verdict.reason.value)
            return text("Unauthorized", 401)

        claims = verdict.claims
        sql = strip_semicolons(claims.sql)
        try:
            rows = current_app.extensions["gatekeeper.db"].execute(sql, claims.params, claims.mode)
        except ExecutionFailed as e:
            log.error(
                "[%s] mode=%s exp=%d status=500 error=%s", req_id, claims.mode.value, claims.expires_at, e.message
            )
            return text(e.message, 500)

        log.info("[%s] mode=%s exp=%d status=200 rows=%d", req_id, claims.mode.value, claims.expires_at, len(rows))
        return jsonify(rows)

    return app
