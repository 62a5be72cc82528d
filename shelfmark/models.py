from datetime import datetime, timezone

from shelfmark.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


bookmark_tags = db.Table(
    "bookmark_tags",
    db.Column(
        "bookmark_id", db.Integer, db.ForeignKey("bookmarks.id"), primary_key=True
    ),
    db.Column("tag_id", db.Integer, db.ForeignKey("tags.id"), primary_key=True),
)

rule_tags = db.Table(
    "rule_tags",
    db.Column("rule_id", db.Integer, db.ForeignKey("rules.id"), primary_key=True),
    db.Column("tag_id", db.Integer, db.ForeignKey("tags.id"), primary_key=True),
)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def as_dict(self):
        return {"id": self.id, "name": self.name}


class Tag(db.Model):
    __tablename__ = "tags"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def as_dict(self):
        return {"id": self.id, "name": self.name}


class Bookmark(db.Model):
    __tablename__ = "bookmarks"

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True
    )

    url = db.Column(db.Text, nullable=False)
    normalized_url = db.Column(db.Text, nullable=False, unique=True, index=True)
    title = db.Column(db.String(512), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    category = db.relationship("Category", backref="bookmarks")
    tags = db.relationship("Tag", secondary=bookmark_tags, backref="bookmarks")

    __table_args__ = (db.Index("ix_bookmark_created", "created_at"),)

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def tag_names(self) -> list[str]:
        return sorted(tag.name for tag in self.tags)

    def as_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "normalized_url": self.normalized_url,
            "title": self.title,
            "description": self.description or "",
            "category_id": self.category_id,
            "category_name": self.category_name,
            "tags": [
                tag.as_dict() for tag in sorted(self.tags, key=lambda tag: tag.name)
            ],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class Rule(db.Model):
    __tablename__ = "rules"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    host_prefix = db.Column(db.String(512), nullable=False, default="")
    url_prefix = db.Column(db.Text, nullable=False, default="")
    path_prefix = db.Column(db.Text, nullable=False, default="")
    title_contains = db.Column(db.String(512), nullable=False, default="")
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    category = db.relationship("Category", backref="rules")
    tags = db.relationship("Tag", secondary=rule_tags, backref="rules")

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def tag_names(self) -> list[str]:
        return sorted(tag.name for tag in self.tags)

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "host_prefix": self.host_prefix,
            "url_prefix": self.url_prefix,
            "path_prefix": self.path_prefix,
            "title_contains": self.title_contains,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "position": self.position,
            "tags": [
                tag.as_dict() for tag in sorted(self.tags, key=lambda tag: tag.name)
            ],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
