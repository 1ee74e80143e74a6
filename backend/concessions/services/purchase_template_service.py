# backend/concessions/services/purchase_template_service.py
"""
Saved shopping lists.

A template is a named list of lines (menu item or free text, default
quantity). It never touches inventory; to_purchase_lines() expands it into
the line shape create_purchase accepts, leaving costs to be filled in.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import PurchaseTemplate, PurchaseTemplateLine
from concessions.time_utils import utcnow
from .catalog_service import get_menu_item
from .concurrency import run_with_retry


def _normalize_lines(lines: list[dict]) -> list[dict]:
    if not lines:
        raise ValidationError("A template needs at least one line")
    parsed = []
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{index}] must be an object")
        menu_item_id = raw.get("menu_item_id")
        if menu_item_id is not None and (isinstance(menu_item_id, bool) or not isinstance(menu_item_id, int)):
            raise ValidationError(f"lines[{index}].menu_item_id must be an integer")
        quantity = raw.get("default_quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"lines[{index}].default_quantity must be a positive integer")

        item_name = (raw.get("item_name") or "").strip()
        if menu_item_id is not None:
            item = get_menu_item(menu_item_id)
            if item.is_composite:
                raise ValidationError(
                    f"lines[{index}]: composite item {item.name} cannot be purchased",
                    {"menu_item_id": menu_item_id},
                )
            item_name = item_name or item.name
        if not item_name:
            raise ValidationError(f"lines[{index}] needs menu_item_id or item_name")

        parsed.append({"menu_item_id": menu_item_id, "item_name": item_name, "default_quantity": quantity})
    return parsed


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Template name is required")
    return name


def _commit_unique(name: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f"A template named {name!r} already exists", {"name": name})


def get_template(template_id: int) -> PurchaseTemplate:
    template = db.session.get(PurchaseTemplate, template_id)
    if template is None:
        raise NotFoundError(f"Purchase template {template_id} not found", {"template_id": template_id})
    return template


def list_templates() -> list[PurchaseTemplate]:
    return db.session.query(PurchaseTemplate).order_by(PurchaseTemplate.name.asc()).all()


def create_template(name: str, lines: list[dict], *, vendor: str | None = None) -> PurchaseTemplate:
    name = _clean_name(name)

    def _op():
        if db.session.query(PurchaseTemplate).filter_by(name=name).first() is not None:
            raise ValidationError(f"A template named {name!r} already exists", {"name": name})
        template = PurchaseTemplate(name=name, vendor=vendor)
        for line in _normalize_lines(lines):
            template.lines.append(PurchaseTemplateLine(**line))
        db.session.add(template)
        _commit_unique(name)
        return template

    return run_with_retry(_op)


def update_template(
    template_id: int,
    *,
    name: str | None = None,
    vendor: str | None = None,
    lines: list[dict] | None = None,
) -> PurchaseTemplate:
    """Rename and/or replace the lines. Omitted fields are left alone."""
    def _op():
        template = get_template(template_id)
        if name is not None:
            new_name = _clean_name(name)
            clash = (
                db.session.query(PurchaseTemplate)
                .filter(PurchaseTemplate.name == new_name, PurchaseTemplate.id != template_id)
                .first()
            )
            if clash is not None:
                raise ValidationError(f"A template named {new_name!r} already exists", {"name": new_name})
            template.name = new_name
        if vendor is not None:
            template.vendor = vendor
        if lines is not None:
            parsed = _normalize_lines(lines)
            template.lines.clear()
            db.session.flush()
            for line in parsed:
                template.lines.append(PurchaseTemplateLine(**line))
        template.updated_at = utcnow()
        _commit_unique(template.name)
        return template

    return run_with_retry(_op)


def delete_template(template_id: int) -> None:
    def _op():
        template = get_template(template_id)
        db.session.delete(template)
        db.session.commit()

    return run_with_retry(_op)


def to_purchase_lines(template_id: int) -> list[dict]:
    """Template lines as purchase lines; line_total_cents is left for the receipt."""
    template = get_template(template_id)
    return [
        {
            "menu_item_id": line.menu_item_id,
            "item_name": line.item_name,
            "quantity": line.default_quantity,
        }
        for line in template.lines
    ]
