from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest, HTTPException

from .catalog import MAX_FIELDS, CatalogError
from .db import init_db
from .editor import SAVE_STATUS_INVALID, SAVE_STATUS_SAVED, ProductEditor
from .pricing import allowed_pricing_models

APP_NAME = "product-fields"

PRODUCT_PAYLOAD_KEYS = {
    "name": "name",
    "description": "description",
    "basePrice": "base_price",
    "enableSpecialFields": "enable_special_fields",
}
FIELD_PAYLOAD_KEYS = {
    "label": "label",
    "type": "type",
    "required": "required",
    "pricingModel": "pricing_model",
    "price": "price",
    "min": "min",
    "max": "max",
}
OPTION_PAYLOAD_KEYS = {"name": "name", "price": "price"}


def _db_path(app: Flask) -> Path:
    return Path(app.config["DATABASE_PATH"])


def _editor(app: Flask) -> ProductEditor:
    return app.extensions["product_editor"]


def _configure_observability(app: Flask, app_name: str) -> None:
    app.config["APP_NAME"] = app_name
    level_name = os.environ.get("APP_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    app.logger.setLevel(level)


def _configure_error_handlers(app: Flask) -> None:
    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest) -> Any:
        app.logger.warning("bad_request", extra={"path": request.path, "method": request.method, "error": str(error)})
        return jsonify({"error": "invalid request payload"}), 400

    @app.errorhandler(CatalogError)
    def handle_catalog_error(error: CatalogError) -> Any:
        app.logger.warning("catalog_error", extra={"path": request.path, "method": request.method, "error": str(error)})
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Any:
        app.logger.warning(
            "http_error",
            extra={"path": request.path, "method": request.method, "status_code": error.code, "error": error.description},
        )
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Any:
        app.logger.exception("unexpected_error", extra={"path": request.path, "method": request.method})
        return jsonify({"error": "internal server error"}), 500


def _json_body() -> dict[str, Any]:
    body = request.get_json(force=True, silent=False) or {}
    if not isinstance(body, dict):
        raise BadRequest("JSON object expected")
    return body


def _translate(body: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    unknown = set(body) - set(mapping)
    if unknown:
        raise CatalogError(f"unknown attributes: {', '.join(sorted(unknown))}")
    return {mapping[key]: value for key, value in body.items()}


def _state_payload(editor: ProductEditor) -> dict[str, Any]:
    state = editor.state
    return {
        **state.snapshot(),
        "customerInputs": state.customer_inputs,
        "issues": [issue.to_dict() for issue in state.issues],
        "pricing": editor.pricing().to_dict(),
        "catalogActive": state.product.enable_special_fields,
        "canAddField": not state.catalog.is_full,
        "allowedPricingModels": {field.id: allowed_pricing_models(field.type) for field in state.catalog},
    }


def create_app(database_path: str | None = None, editor: ProductEditor | None = None) -> Flask:
    app = Flask(__name__)
    _configure_observability(app, APP_NAME)
    _configure_error_handlers(app)
    app.config["DATABASE_PATH"] = database_path or os.environ.get("PRODUCT_FIELDS_DB_PATH", "./product_fields.db")
    init_db(_db_path(app))
    app.extensions["product_editor"] = editor or ProductEditor(database_path=_db_path(app))

    @app.get("/healthz")
    def healthz() -> Any:
        return jsonify({"status": "ok", "app": app.config["APP_NAME"]})

    @app.get("/api/state")
    def get_state() -> Any:
        return jsonify(_state_payload(_editor(app)))

    @app.put("/api/product")
    def update_product() -> Any:
        editor = _editor(app)
        editor.update_product(**_translate(_json_body(), PRODUCT_PAYLOAD_KEYS))
        return jsonify(_state_payload(editor))

    @app.post("/api/fields")
    def add_field() -> Any:
        editor = _editor(app)
        before = len(editor.catalog)
        if len(editor.add_field().catalog) == before:
            return jsonify({"error": f"a product can have at most {MAX_FIELDS} special fields"}), 409
        return jsonify(_state_payload(editor)), 201

    @app.patch("/api/fields/<field_id>")
    def update_field(field_id: str) -> Any:
        editor = _editor(app)
        editor.update_field(field_id, **_translate(_json_body(), FIELD_PAYLOAD_KEYS))
        return jsonify(_state_payload(editor))

    @app.delete("/api/fields/<field_id>")
    def remove_field(field_id: str) -> Any:
        editor = _editor(app)
        editor.remove_field(field_id)
        return jsonify(_state_payload(editor))

    @app.post("/api/fields/move")
    def move_field() -> Any:
        body = _json_body()
        try:
            index = int(body["index"])
            direction = int(body["direction"])
        except (KeyError, TypeError, ValueError) as error:
            raise BadRequest("index and direction must be integers") from error
        editor = _editor(app)
        editor.move_field(index, direction)
        return jsonify(_state_payload(editor))

    @app.post("/api/fields/<field_id>/options")
    def add_option(field_id: str) -> Any:
        editor = _editor(app)
        editor.add_option(field_id)
        return jsonify(_state_payload(editor)), 201

    @app.patch("/api/fields/<field_id>/options/<option_id>")
    def update_option(field_id: str, option_id: str) -> Any:
        editor = _editor(app)
        editor.update_option(field_id, option_id, **_translate(_json_body(), OPTION_PAYLOAD_KEYS))
        return jsonify(_state_payload(editor))

    @app.delete("/api/fields/<field_id>/options/<option_id>")
    def remove_option(field_id: str, option_id: str) -> Any:
        editor = _editor(app)
        editor.remove_option(field_id, option_id)
        return jsonify(_state_payload(editor))

    @app.put("/api/inputs/<field_id>")
    def set_customer_input(field_id: str) -> Any:
        body = _json_body()
        editor = _editor(app)
        editor.set_customer_input(field_id, body.get("value"))
        return jsonify(
            {
                "field_id": field_id,
                "field_price": editor.field_price(field_id),
                "pricing": editor.pricing().to_dict(),
            }
        )

    @app.get("/api/price")
    def get_price() -> Any:
        return jsonify(_editor(app).pricing().to_dict())

    @app.post("/api/validate")
    def validate() -> Any:
        return jsonify(_editor(app).validate().to_dict())

    @app.post("/api/save")
    def save() -> Any:
        result = _editor(app).save()
        body = {
            "status": result.status,
            "issues": [issue.to_dict() for issue in result.issues],
        }
        if result.status == SAVE_STATUS_SAVED:
            return jsonify({**body, "snapshot": result.payload})
        if result.status == SAVE_STATUS_INVALID:
            return jsonify(body), 422
        return jsonify({**body, "error": "snapshot store unavailable"}), 503

    @app.post("/api/cancel")
    def cancel() -> Any:
        editor = _editor(app)
        editor.cancel()
        return jsonify(_state_payload(editor))

    @app.post("/api/example")
    def load_example() -> Any:
        editor = _editor(app)
        editor.load_example()
        return jsonify(_state_payload(editor))

    return app
