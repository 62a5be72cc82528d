from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func

from shelfmark.errors import NotFoundError, ValidationError
from shelfmark.extensions import db
from shelfmark.models import Rule
from shelfmark.services.common import (
    normalize_name,
    normalize_tags,
    url_host_and_path,
)
from shelfmark.services.storage import unit_of_work, upsert_category, upsert_tags


@dataclass
class RuleInput:
    name: str = ""
    host_prefix: str = ""
    url_prefix: str = ""
    path_prefix: str = ""
    title_contains: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)
    position: int | None = None

    def has_condition(self) -> bool:
        return any(
            (value or "").strip()
            for value in (
                self.host_prefix,
                self.url_prefix,
                self.path_prefix,
                self.title_contains,
            )
        )


@dataclass
class RuleSuggestion:
    category: str = ""
    tags: list[str] = field(default_factory=list)


def _rule_matches(rule, host: str, path: str, url: str, title: str) -> bool:
    host_prefix = normalize_name(rule.host_prefix)
    if host_prefix and not host.startswith(host_prefix):
        return False
    url_prefix = normalize_name(rule.url_prefix)
    if url_prefix and not url.startswith(url_prefix):
        return False
    path_prefix = normalize_name(rule.path_prefix)
    if path_prefix and not path.startswith(path_prefix):
        return False
    title_contains = normalize_name(rule.title_contains)
    if title_contains and title_contains not in title:
        return False
    return True


def match_rules(rules, canonical_url: str, title: str) -> RuleSuggestion:
    host, path = url_host_and_path(canonical_url)
    url_l = canonical_url.lower()
    path_l = path.lower()
    title_l = (title or "").lower()

    category = ""
    matched_tags: list[str] = []
    for rule in rules:
        if not _rule_matches(rule, host, path_l, url_l, title_l):
            continue
        if not category and rule.category_name:
            category = rule.category_name
        matched_tags.extend(rule.tag_names)

    return RuleSuggestion(category=category, tags=normalize_tags(matched_tags))


def load_rules() -> list[Rule]:
    return Rule.query.order_by(Rule.position.asc(), Rule.id.asc()).all()


def list_rules() -> list[Rule]:
    return load_rules()


def get_rule(rule_id: int) -> Rule:
    rule = db.session.get(Rule, rule_id)
    if not rule:
        raise NotFoundError("rule not found")
    return rule


def _validate(data: RuleInput) -> None:
    if not (data.name or "").strip():
        raise ValidationError("name is required")
    if not data.has_condition():
        raise ValidationError("at least one matching condition is required")


def _apply(rule: Rule, data: RuleInput) -> None:
    rule.name = data.name.strip()
    rule.host_prefix = (data.host_prefix or "").strip()
    rule.url_prefix = (data.url_prefix or "").strip()
    rule.path_prefix = (data.path_prefix or "").strip()
    rule.title_contains = (data.title_contains or "").strip()

    category_name = normalize_name(data.category)
    rule.category = upsert_category(category_name) if category_name else None
    rule.tags = upsert_tags(normalize_tags(data.tags))


def _next_position() -> int:
    current = db.session.query(func.max(Rule.position)).scalar()
    return 0 if current is None else current + 1


def create_rule(data: RuleInput) -> Rule:
    _validate(data)
    with unit_of_work():
        position = data.position if data.position is not None else _next_position()
        rule = Rule(name=data.name.strip(), position=position)
        db.session.add(rule)
        _apply(rule, data)
        db.session.flush()
    return rule


def update_rule(rule_id: int, data: RuleInput) -> Rule:
    rule = get_rule(rule_id)
    _validate(data)
    with unit_of_work():
        _apply(rule, data)
        if data.position is not None:
            rule.position = data.position
    return rule


def delete_rule(rule_id: int) -> None:
    rule = get_rule(rule_id)
    with unit_of_work():
        rule.tags = []
        db.session.delete(rule)
