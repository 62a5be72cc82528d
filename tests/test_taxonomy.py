import pytest

from shelfmark.errors import ConflictError, NotFoundError, ValidationError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, Category, Rule, Tag
from shelfmark.services.bookmarks import BookmarkInput, create_or_merge
from shelfmark.services.rules import RuleInput, create_rule
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


def test_create_category_is_idempotent_and_normalized(app):
    with app.app_context():
        first = create_category(" Work ")
        second = create_category("WORK")

        assert first.id == second.id
        assert [item.name for item in list_categories()] == ["work"]

        with pytest.raises(ValidationError):
            create_category("   ")


def test_rename_category_rejects_existing_name(app):
    with app.app_context():
        work = create_category("work")
        create_category("home")

        renamed = rename_category(work.id, " Office ")
        assert renamed.name == "office"

        with pytest.raises(ConflictError):
            rename_category(work.id, "home")
        assert db.session.get(Category, work.id).name == "office"

        with pytest.raises(NotFoundError):
            rename_category(999, "x")


def test_delete_category_detaches_bookmarks_and_rules(app):
    with app.app_context():
        bookmark = create_or_merge(
            BookmarkInput(url="https://example.com", title="T", category="news")
        )
        rule = create_rule(
            RuleInput(name="r", host_prefix="example.com", category="news")
        )

        delete_category(bookmark.category_id)

        assert Category.query.count() == 0
        assert db.session.get(Bookmark, bookmark.id).category_id is None
        assert db.session.get(Rule, rule.id).category_id is None


def test_tags_create_rename_and_delete(app):
    with app.app_context():
        tag = create_tag("Python")
        assert create_tag("python").id == tag.id

        bookmark = create_or_merge(
            BookmarkInput(url="https://example.com", title="T", tags=["python", "web"])
        )
        rule = create_rule(RuleInput(name="r", title_contains="x", tags=["python"]))

        assert rename_tag(tag.id, "py").name == "py"
        assert db.session.get(Bookmark, bookmark.id).tag_names == ["py", "web"]

        delete_tag(tag.id)

        assert [item.name for item in list_tags()] == ["web"]
        assert db.session.get(Bookmark, bookmark.id).tag_names == ["web"]
        assert db.session.get(Rule, rule.id).tag_names == []

        with pytest.raises(NotFoundError):
            delete_tag(tag.id)


def test_clear_all_data_keeps_rules(app):
    with app.app_context():
        create_or_merge(
            BookmarkInput(url="https://example.com", title="T", category="c", tags=["t"])
        )
        rule = create_rule(
            RuleInput(name="r", host_prefix="example.com", category="c", tags=["t"])
        )

        clear_all_data()

        assert Bookmark.query.count() == 0
        assert Category.query.count() == 0
        assert Tag.query.count() == 0
        stored = db.session.get(Rule, rule.id)
        assert stored.host_prefix == "example.com"
        assert stored.category_id is None
        assert stored.tag_names == []
