from __future__ import annotations

from flask import Response, current_app, jsonify, request

from shelfmark.api import api_bp
from shelfmark.errors import InvalidInputError, NotFoundError
from shelfmark.services.bookmark_export import (
    EXPORT_MIMETYPE,
    export_filename,
    render_bookmark_html,
)
from shelfmark.services.bookmark_import import import_bookmark_file
from shelfmark.services.bookmarks import (
    BookmarkInput,
    BookmarkUpdate,
    create_or_merge,
    delete_bookmark,
    get_bookmark,
    list_all_bookmarks,
    list_bookmarks,
    lookup_bookmark,
    suggest_for_url,
    update_bookmark,
)
from shelfmark.services.common import canonicalize_url, parse_tags
from shelfmark.services.metadata import MetadataFetchError, fetch_metadata
from shelfmark.services.rules import (
    RuleInput,
    create_rule,
    delete_rule,
    list_rules,
    update_rule,
)
from shelfmark.services.taxonomy import (
    clear_all_data,
    create_category,
    create_tag,
    delete_category,
    delete_tag,
    list_categories,
    list_tags,
    rename_category,
    rename_tag,
)


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value)


def _bookmark_input(payload: dict) -> BookmarkInput:
    return BookmarkInput(
        url=_text(payload, "url"),
        title=_text(payload, "title"),
        description=_text(payload, "description"),
        category=_text(payload, "category"),
        tags=parse_tags(payload.get("tags")),
    )


def _rule_input(payload: dict) -> RuleInput:
    position = payload.get("position")
    if position is not None:
        try:
            position = int(position)
        except (TypeError, ValueError):
            raise InvalidInputError("position must be an integer")
    return RuleInput(
        name=_text(payload, "name"),
        host_prefix=_text(payload, "host_prefix"),
        url_prefix=_text(payload, "url_prefix"),
        path_prefix=_text(payload, "path_prefix"),
        title_contains=_text(payload, "title_contains"),
        category=_text(payload, "category"),
        tags=parse_tags(payload.get("tags")),
        position=position,
    )


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@api_bp.route("/bookmarks", methods=["GET"])
def bookmarks_list_api():
    items, pagination = list_bookmarks(
        query=request.args.get("q", ""),
        category=request.args.get("category", ""),
        tags=parse_tags(request.args.get("tags", "")),
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", type=int),
    )
    return jsonify(
        {"items": [item.as_dict() for item in items], "pagination": pagination}
    )


@api_bp.route("/bookmarks", methods=["POST"])
def bookmarks_create_api():
    payload = request.get_json(silent=True) or {}
    bookmark = create_or_merge(_bookmark_input(payload))
    return jsonify(bookmark.as_dict()), 201


@api_bp.route("/bookmarks/lookup", methods=["GET"])
def bookmarks_lookup_api():
    url = (request.args.get("url") or "").strip()
    if not url:
        raise InvalidInputError("url is required")

    try:
        bookmark = lookup_bookmark(url)
    except NotFoundError:
        suggestion = suggest_for_url(url)
        return jsonify(
            {
                "found": False,
                "normalized_url": suggestion.normalized_url,
                "title": suggestion.title,
                "description": suggestion.description,
                "category": suggestion.category,
                "tags": [{"name": name} for name in suggestion.tags],
            }
        )

    return jsonify(
        {
            "found": True,
            "bookmark_id": bookmark.id,
            "normalized_url": bookmark.normalized_url,
            "title": bookmark.title,
            "description": bookmark.description or "",
            "category": bookmark.category_name,
            "tags": [{"id": tag.id, "name": tag.name} for tag in bookmark.tags],
        }
    )


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["GET"])
def bookmarks_get_api(bookmark_id: int):
    return jsonify(get_bookmark(bookmark_id).as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["PUT", "PATCH"])
def bookmarks_update_api(bookmark_id: int):
    payload = request.get_json(silent=True) or {}
    bookmark = update_bookmark(bookmark_id, BookmarkUpdate.from_payload(payload))
    return jsonify(bookmark.as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["DELETE"])
def bookmarks_delete_api(bookmark_id: int):
    delete_bookmark(bookmark_id)
    return "", 204


@api_bp.route("/metadata", methods=["GET"])
def metadata_api():
    normalized = canonicalize_url(request.args.get("url"))
    try:
        metadata = fetch_metadata(
            normalized,
            timeout=current_app.config["METADATA_FETCH_TIMEOUT"],
            max_bytes=current_app.config["METADATA_MAX_BYTES"],
        )
    except MetadataFetchError as exc:
        return jsonify({"error": str(exc), "code": "metadata_unavailable"}), 502
    return jsonify(
        {
            "normalized_url": normalized,
            "title": metadata.title,
            "description": metadata.description,
        }
    )


@api_bp.route("/categories", methods=["GET"])
def categories_list_api():
    return jsonify({"items": [item.as_dict() for item in list_categories()]})


@api_bp.route("/categories", methods=["POST"])
def categories_create_api():
    payload = request.get_json(silent=True) or {}
    return jsonify(create_category(payload.get("name")).as_dict()), 201


@api_bp.route("/categories/<int:category_id>", methods=["PUT", "PATCH"])
def categories_rename_api(category_id: int):
    payload = request.get_json(silent=True) or {}
    return jsonify(rename_category(category_id, payload.get("name")).as_dict())


@api_bp.route("/categories/<int:category_id>", methods=["DELETE"])
def categories_delete_api(category_id: int):
    delete_category(category_id)
    return "", 204


@api_bp.route("/tags", methods=["GET"])
def tags_list_api():
    return jsonify({"items": [item.as_dict() for item in list_tags()]})


@api_bp.route("/tags", methods=["POST"])
def tags_create_api():
    payload = request.get_json(silent=True) or {}
    return jsonify(create_tag(payload.get("name")).as_dict()), 201


@api_bp.route("/tags/<int:tag_id>", methods=["PUT", "PATCH"])
def tags_rename_api(tag_id: int):
    payload = request.get_json(silent=True) or {}
    return jsonify(rename_tag(tag_id, payload.get("name")).as_dict())


@api_bp.route("/tags/<int:tag_id>", methods=["DELETE"])
def tags_delete_api(tag_id: int):
    delete_tag(tag_id)
    return "", 204


@api_bp.route("/rules", methods=["GET"])
def rules_list_api():
    return jsonify({"items": [rule.as_dict() for rule in list_rules()]})


@api_bp.route("/rules", methods=["POST"])
def rules_create_api():
    payload = request.get_json(silent=True) or {}
    return jsonify(create_rule(_rule_input(payload)).as_dict()), 201


@api_bp.route("/rules/<int:rule_id>", methods=["PUT"])
def rules_update_api(rule_id: int):
    payload = request.get_json(silent=True) or {}
    return jsonify(update_rule(rule_id, _rule_input(payload)).as_dict())


@api_bp.route("/rules/<int:rule_id>", methods=["DELETE"])
def rules_delete_api(rule_id: int):
    delete_rule(rule_id)
    return "", 204


@api_bp.route("/import/html", methods=["POST"])
def import_html_api():
    upload = request.files.get("file")
    if not upload:
        raise InvalidInputError("file field is required")

    summary = import_bookmark_file(upload.read())
    return jsonify(
        {
            "count": len(summary.imported),
            "skipped": [
                {"url": entry.url, "reason": entry.reason} for entry in summary.skipped
            ],
        }
    )


@api_bp.route("/export/html", methods=["GET"])
def export_html_api():
    bookmarks = list_all_bookmarks()
    payload = render_bookmark_html(bookmarks)
    current_app.logger.info("Exported %d bookmarks", len(bookmarks))
    return Response(
        payload.encode("utf-8"),
        content_type=EXPORT_MIMETYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@api_bp.route("/settings/clear", methods=["POST"])
def settings_clear_api():
    clear_all_data()
    return jsonify({"status": "cleared"})
