"""
HTTP surface. Thin external entry points over the shared pipelines.

Routes:
  GET|POST /api/news                              - aggregate news for a pair
  GET|POST /api/patents                           - aggregate patents for a pair
  GET      /api/content/<section>/<period>        - fresh cached record
  GET      /api/related/<section>/<period>/<id>   - deep dive (?depth=1..5), id optional
  POST     /api/search                            - free-text search
  POST     /api/refresh                           - trigger a sweep (202)
  POST     /api/connections                       - connect
  DELETE   /api/connections/<id>                  - disconnect
  POST     /api/connections/<id>/messages         - message (echo / ack)
  GET      /health
"""

import threading
import traceback

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

import connections
import refresh
from config import DEFAULT_PATENT_PERIOD
from hub import Hub
from models import AggregationRequest, cache_key
from pipeline import aggregate, patents, related, search

hub_bp = Blueprint("technews_hub", __name__)


def _hub():
    return current_app.config["HUB"]


def _json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _no_store(response, status=200):
    response.status_code = status
    response.headers["Cache-Control"] = "no-store"
    return response


@hub_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@hub_bp.route("/api/news", methods=["GET", "POST"])
def news():
    hub = _hub()
    req = AggregationRequest.from_api(_json_body(), request.args)
    try:
        response, _ = aggregate.run(req, hub.cache, hub.providers("news", req.section))
    except Exception:
        print("  ERROR: failed to aggregate news for {}".format(req.key))
        traceback.print_exc()
        return jsonify({"message": "Failed to aggregate news content"}), 500
    return jsonify(response)


@hub_bp.route("/api/patents", methods=["GET", "POST"])
def patent_insights():
    hub = _hub()
    req = AggregationRequest.from_api(_json_body(), request.args, default_period=DEFAULT_PATENT_PERIOD)
    try:
        response, _ = patents.run(req, hub.cache, hub.providers("patents", req.section))
    except Exception:
        print("  ERROR: failed to aggregate patents for {}".format(req.key))
        traceback.print_exc()
        return jsonify({"message": "Unable to aggregate patent insights"}), 500
    return jsonify(response)


@hub_bp.route("/api/content/<section>/<period>")
def cached_content(section, period):
    req = AggregationRequest.build(section, period)
    record = _hub().cache.read(cache_key(req.section, req.time_period), fresh_only=True)
    if record is None:
        return _no_store(jsonify({"message": "No fresh content for {}".format(req.key)}), 404)
    return jsonify(record.to_dict())


@hub_bp.route("/api/related/<section>/<period>", defaults={"item_id": None})
@hub_bp.route("/api/related/<section>/<period>/", defaults={"item_id": None})
@hub_bp.route("/api/related/<section>/<period>/<path:item_id>", merge_slashes=False)
def deep_dive(section, period, item_id):
    response, _ = related.run(section, period, item_id, request.args.get("depth"), _hub().cache)
    return _no_store(jsonify(response))


@hub_bp.route("/api/search", methods=["POST"])
def search_content():
    hub = _hub()
    query, section, limit = search.normalize(_json_body())
    response, _ = search.run(query, section, limit, hub.providers("search", section))
    return _no_store(jsonify(response))


@hub_bp.route("/api/refresh", methods=["POST"])
def trigger_refresh():
    hub = _hub()
    event = _json_body()
    if current_app.config.get("REFRESH_INLINE"):
        result = refresh.handle_refresh_event(hub, event)
        return jsonify(result.payload()), 202
    worker = threading.Thread(target=refresh.handle_refresh_event, args=(hub, event), daemon=True)
    worker.start()
    return jsonify({"message": "Refresh started"}), 202


@hub_bp.route("/api/connections", methods=["POST"])
def connect():
    body = _json_body()
    payload = connections.handle_connect(
        _hub().registry,
        connection_id=body.get("connectionId"),
        session_id=body.get("sessionId") or request.args.get("sessionId"))
    return jsonify(payload)


@hub_bp.route("/api/connections/<connection_id>", methods=["DELETE"])
def disconnect(connection_id):
    return connections.handle_disconnect(_hub().registry, connection_id)


@hub_bp.route("/api/connections/<connection_id>/messages", methods=["POST"])
def message(connection_id):
    body = request.get_data(as_text=True)
    return connections.handle_message(_hub().registry, connection_id, body)


def create_app(hub=None, refresh_inline=False):
    app = Flask(__name__)
    CORS(app)
    app.config["HUB"] = hub or Hub()
    app.config["REFRESH_INLINE"] = refresh_inline
    app.register_blueprint(hub_bp)
    return app
