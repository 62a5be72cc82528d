from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shelfmark.errors import ConflictError, StorageError
from shelfmark.extensions import db
from shelfmark.models import Category, Tag, utcnow


@contextmanager
def unit_of_work():
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Unit of work rejected by constraint: %s", exc.orig)
        raise ConflictError("write conflicts with an existing record") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Unit of work failed")
        raise StorageError("storage failure, changes were rolled back") from exc
    except BaseException:
        db.session.rollback()
        raise


_DIALECT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


def _insert_or_touch(model, name: str):
    dialect = db.session.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise StorageError(f"unsupported database dialect: {dialect}")

    now = utcnow()
    statement = (
        insert(model)
        .values(name=name, created_at=now, updated_at=now)
        .on_conflict_do_update(index_elements=["name"], set_={"updated_at": now})
        .returning(model.id)
    )
    row_id = db.session.execute(statement).scalar_one()
    return db.session.get(model, row_id, populate_existing=True)


def upsert_category(name: str) -> Category:
    return _insert_or_touch(Category, name)


def upsert_tags(names: list[str]) -> list[Tag]:
    return [_insert_or_touch(Tag, name) for name in names]
