from __future__ import annotations

from shelfmark.errors import NotFoundError, ValidationError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, Category, Rule, Tag, bookmark_tags, rule_tags
from shelfmark.services.common import normalize_name
from shelfmark.services.storage import unit_of_work, upsert_category, upsert_tags


def _required_name(name: str | None) -> str:
    cleaned = normalize_name(name)
    if not cleaned:
        raise ValidationError("name is required")
    return cleaned


def list_categories() -> list[Category]:
    return Category.query.order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("category not found")
    return category


def create_category(name: str | None) -> Category:
    cleaned = _required_name(name)
    with unit_of_work():
        category = upsert_category(cleaned)
    return category


def rename_category(category_id: int, name: str | None) -> Category:
    category = get_category(category_id)
    cleaned = _required_name(name)
    with unit_of_work():
        category.name = cleaned
    return category


def delete_category(category_id: int) -> None:
    category = get_category(category_id)
    with unit_of_work():
        for bookmark in list(category.bookmarks):
            bookmark.category = None
        for rule in list(category.rules):
            rule.category = None
        db.session.delete(category)


def list_tags() -> list[Tag]:
    return Tag.query.order_by(Tag.name.asc()).all()


def get_tag(tag_id: int) -> Tag:
    tag = db.session.get(Tag, tag_id)
    if not tag:
        raise NotFoundError("tag not found")
    return tag


def create_tag(name: str | None) -> Tag:
    cleaned = _required_name(name)
    with unit_of_work():
        (tag,) = upsert_tags([cleaned])
    return tag


def rename_tag(tag_id: int, name: str | None) -> Tag:
    tag = get_tag(tag_id)
    cleaned = _required_name(name)
    with unit_of_work():
        tag.name = cleaned
    return tag


def delete_tag(tag_id: int) -> None:
    tag = get_tag(tag_id)
    with unit_of_work():
        for bookmark in list(tag.bookmarks):
            bookmark.tags.remove(tag)
        for rule in list(tag.rules):
            rule.tags.remove(tag)
        db.session.delete(tag)


def clear_all_data() -> None:
    with unit_of_work():
        db.session.execute(bookmark_tags.delete())
        db.session.execute(rule_tags.delete())
        Rule.query.update({"category_id": None}, synchronize_session=False)
        Bookmark.query.delete(synchronize_session=False)
        Tag.query.delete(synchronize_session=False)
        Category.query.delete(synchronize_session=False)
    db.session.expire_all()
