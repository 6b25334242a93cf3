# Run locally with: pip install -e . && python -m sitelist_app.app
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, render_template, request, send_from_directory, url_for
from werkzeug.exceptions import RequestEntityTooLarge

from .forms import SiteForm, new_site_id
from .listing import ALL, describe, filter_sites, truncate_description
from .storage import NavigationStore, StorageError
from .tree import (
    Category,
    NotFoundError,
    ValidationError,
    flatten,
    insert,
    move,
    remove,
    remove_many,
    resolve_target,
    tree_from_payload,
    tree_to_payload,
)
from .uploads import save_image

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

app = Flask(
    __name__,
    template_folder=str(BASE_DIR / "templates"),
)

NAVIGATION_FILENAME = "navigation.yml"
MAX_UPLOAD_BYTES = 2 * 1024 * 1024


def _env_path(name: str, default: Path) -> Path:
    """Resolve a path from the environment; relative values hang off the project root."""
    env = os.environ.get(name)
    if env:
        p = Path(env)
        return p if p.is_absolute() else (PROJECT_ROOT / p)
    return default


app.config.update(
    NAVIGATION_PATH=_env_path("NAVIGATION_PATH", PROJECT_ROOT / NAVIGATION_FILENAME),
    UPLOAD_DIR=_env_path("UPLOAD_DIR", PROJECT_ROOT / "uploads"),
    MAX_CONTENT_LENGTH=MAX_UPLOAD_BYTES,
)

app.add_template_filter(truncate_description, "short_description")

# Held across load, mutate, save and reload so concurrent edits cannot drop each other.
NAV_LOCK = threading.RLock()


def _json_error(message: str, status: int = 400, **extra: Any):
    payload: dict[str, Any] = {"error": message}
    payload.update(extra)
    return jsonify(payload), status


@app.errorhandler(RequestEntityTooLarge)
def _too_large(exc: RequestEntityTooLarge):
    limit = app.config.get("MAX_CONTENT_LENGTH") or MAX_UPLOAD_BYTES
    logger.warning("Rejected request body over %d bytes", limit)
    return _json_error(f"Request body exceeds {limit} bytes.", 413)


def _store() -> NavigationStore:
    return NavigationStore(Path(app.config["NAVIGATION_PATH"]))


def _site_list(tree: list[Category], **filters: str) -> list[dict[str, Any]]:
    records = filter_sites(tree, flatten(tree), **filters)
    return [describe(tree, r) for r in records]


def _commit(tree: list[Category], action: str, **extra: Any):
    """Persist the whole tree, then answer from a fresh read of the store."""
    store = _store()
    backup = store.save(tree)
    fresh = store.load()
    logger.info("%s: navigation saved (%d sites)", action, len(flatten(fresh)))
    payload: dict[str, Any] = {
        "status": "ok",
        "sites": _site_list(fresh),
        "backup": str(backup) if backup else None,
    }
    payload.update(extra)
    return jsonify(payload)


@app.route("/")
def index() -> str:
    try:
        tree = _store().load()
    except StorageError as exc:
        logger.exception("Failed to load navigation")
        return render_template("index.html", error=str(exc), categories=[], sites=[], filters={}), 500
    filters = {
        "query": request.args.get("q", ""),
        "category": request.args.get("category", ALL),
        "sub_category": request.args.get("subCategory", ALL),
    }
    return render_template(
        "index.html",
        error=None,
        categories=tree,
        sites=_site_list(tree, **filters),
        filters=filters,
    )


@app.route("/api/navigation", methods=["GET"])
def api_get_navigation():
    try:
        tree = _store().load()
    except StorageError as exc:
        return _json_error(str(exc), 500)
    return jsonify({"navigationItems": tree_to_payload(tree)})


@app.route("/api/navigation", methods=["POST"])
def api_save_navigation():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _json_error("Expected a JSON object.", 400)
    try:
        tree = tree_from_payload(payload.get("navigationItems"))
    except ValidationError as exc:
        logger.warning("Rejected navigation payload: %s", exc)
        return _json_error(f"Invalid navigation: {exc}", 400)
    try:
        with NAV_LOCK:
            return _commit(tree, "replace navigation")
    except StorageError as exc:
        logger.exception("Failed to save navigation")
        return _json_error(str(exc), 500)


@app.route("/api/sites", methods=["GET"])
def api_list_sites():
    try:
        tree = _store().load()
    except StorageError as exc:
        return _json_error(str(exc), 500)
    sites = _site_list(
        tree,
        query=request.args.get("q", ""),
        category=request.args.get("category", ALL),
        sub_category=request.args.get("subCategory", ALL),
    )
    return jsonify({"sites": sites, "total": len(sites)})


@app.route("/api/sites/<site_id>", methods=["GET"])
def api_get_site(site_id: str):
    try:
        tree = _store().load()
    except StorageError as exc:
        return _json_error(str(exc), 500)
    form = SiteForm.for_site(tree, site_id)
    if not form.name and not form.category_id:
        return _json_error(f"Site {site_id!r} not found.", 404)
    return jsonify({"id": site_id, **form.to_dict()})


@app.route("/api/sites", methods=["POST"])
def api_add_site():
    try:
        form = SiteForm.from_payload(request.get_json(silent=True)).validate()
        site = form.to_site(new_site_id())
        with NAV_LOCK:
            tree = _store().load()
            updated = insert(tree, form.category_id, form.sub_category_id, site)
            return _commit(updated, f"add {site.id}", id=site.id)
    except ValidationError as exc:
        logger.warning("Rejected new site: %s", exc)
        return _json_error(str(exc), 400)
    except NotFoundError as exc:
        return _json_error(str(exc), 404)
    except StorageError as exc:
        logger.exception("Failed to add site")
        return _json_error(str(exc), 500)


@app.route("/api/sites/<site_id>", methods=["PUT"])
def api_edit_site(site_id: str):
    try:
        form = SiteForm.from_payload(request.get_json(silent=True)).validate()
        with NAV_LOCK:
            tree = _store().load()
            target = resolve_target(tree, form.category_id, form.sub_category_id)
            updated = move(
                tree,
                site_id,
                form.name,
                form.url,
                form.description or None,
                form.icon or None,
                target,
            )
            return _commit(updated, f"edit {site_id}", id=site_id)
    except ValidationError as exc:
        logger.warning("Rejected edit of %s: %s", site_id, exc)
        return _json_error(str(exc), 400)
    except NotFoundError as exc:
        return _json_error(str(exc), 404)
    except StorageError as exc:
        logger.exception("Failed to edit site %s", site_id)
        return _json_error(str(exc), 500)


@app.route("/api/sites/<site_id>", methods=["DELETE"])
def api_delete_site(site_id: str):
    try:
        with NAV_LOCK:
            tree = _store().load()
            updated = remove(tree, site_id)
            return _commit(updated, f"delete {site_id}", deleted=[site_id])
    except NotFoundError as exc:
        return _json_error(str(exc), 404)
    except StorageError as exc:
        logger.exception("Failed to delete site %s", site_id)
        return _json_error(str(exc), 500)


@app.route("/api/sites/batch-delete", methods=["POST", "DELETE"])
def api_batch_delete():
    payload = request.get_json(silent=True)
    ids = payload.get("ids") if isinstance(payload, dict) else None
    if not isinstance(ids, list) or not ids or not all(isinstance(i, str) for i in ids):
        return _json_error("Expected `ids` to be a non-empty list of strings.", 400)
    try:
        with NAV_LOCK:
            tree = _store().load()
            updated = remove_many(tree, ids)
            return _commit(updated, f"batch delete {len(ids)}", deleted=ids)
    except NotFoundError as exc:
        return _json_error(str(exc), 404)
    except StorageError as exc:
        logger.exception("Failed to batch delete sites")
        return _json_error(str(exc), 500)


@app.route("/api/resource", methods=["POST"])
def api_upload_resource():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _json_error("Expected a JSON object.", 400)
    try:
        filename = save_image(payload.get("image"), Path(app.config["UPLOAD_DIR"]))
    except ValidationError as exc:
        logger.warning("Rejected upload: %s", exc)
        return _json_error(str(exc), 400)
    except OSError as exc:
        logger.exception("Failed to store upload")
        return _json_error(f"Failed to store image: {exc}", 500)
    return jsonify({"imageUrl": url_for("uploaded_file", filename=filename)})


@app.route("/uploads/<path:filename>", methods=["GET"])
def uploaded_file(filename: str):
    response = send_from_directory(Path(app.config["UPLOAD_DIR"]), filename)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Content-Security-Policy"] = "sandbox"
    return response


@app.route("/health", methods=["GET"])
def healthcheck():
    store = _store()
    return jsonify(
        {
            "status": "ok",
            "navigation_path": str(store.path),
            "exists": store.exists(),
        }
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(debug=True)
