import pytest
from sqlalchemy import event, insert

from shelfmark.errors import StorageError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, Category, Tag
from shelfmark.services.bookmarks import BookmarkInput, create_or_merge
from shelfmark.services.storage import unit_of_work, upsert_category, upsert_tags


def _insert_first_on_conflicting_write(session, table_name, name):
    """Insert ``name`` right before the session writes to ``table_name``.

    Stands in for another writer committing the same name between our
    read and our insert.
    """
    fired = []

    def _before_execute(orm_execute_state):
        statement = orm_execute_state.statement
        if fired or not orm_execute_state.is_insert:
            return
        if getattr(statement, "table", None) is None:
            return
        if statement.table.name != table_name:
            return
        fired.append(name)
        table = db.metadata.tables[table_name]
        orm_execute_state.session.connection().execute(
            insert(table).values(name=name)
        )

    event.listen(session, "do_orm_execute", _before_execute)
    return _before_execute, fired


def test_category_inserted_by_another_writer_is_reused(app):
    with app.app_context():
        session = db.session()
        listener, fired = _insert_first_on_conflicting_write(
            session, "categories", "news"
        )
        try:
            bookmark = create_or_merge(
                BookmarkInput(url="https://example.com/a", title="A", category="news")
            )
        finally:
            event.remove(session, "do_orm_execute", listener)

        assert fired == ["news"]
        assert Category.query.count() == 1
        assert bookmark.category_name == "news"
        assert Bookmark.query.one().category_id == Category.query.one().id


def test_tag_inserted_by_another_writer_is_reused(app):
    with app.app_context():
        session = db.session()
        listener, fired = _insert_first_on_conflicting_write(session, "tags", "daily")
        try:
            with unit_of_work():
                tags = upsert_tags(["daily", "world"])
        finally:
            event.remove(session, "do_orm_execute", listener)

        assert fired == ["daily"]
        assert [tag.name for tag in tags] == ["daily", "world"]
        assert sorted(tag.name for tag in Tag.query.all()) == ["daily", "world"]


def test_upsert_touches_existing_row(app):
    with app.app_context():
        with unit_of_work():
            first = upsert_category("work")
        first_id = first.id
        created_at = first.created_at
        touched_before = first.updated_at

        with unit_of_work():
            again = upsert_category("work")

        assert again.id == first_id
        assert again.created_at == created_at
        assert again.updated_at >= touched_before
        assert Category.query.count() == 1


def test_unsupported_dialect_is_a_storage_error(app, monkeypatch):
    monkeypatch.setattr(
        "shelfmark.services.storage._DIALECT_INSERTS", {"postgresql": None}
    )
    with app.app_context():
        with pytest.raises(StorageError):
            with unit_of_work():
                upsert_category("work")
