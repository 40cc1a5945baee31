# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

WHY: Suppliers are the counterparties every receivable belongs to.

DESIGN:
- Suppliers are Entity rows with type "supplier"
- Name and address are required; phone and email are optional
- Any staff member may add or edit a supplier; only administrators delete
- A supplier that still has receivables cannot be deleted
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Entity, Receivable
from ..engine import balances
from ..engine.errors import AuthorizationError, ValidationError
from ..engine.snapshots import Actor, ENTITY_TYPE_SUPPLIER
from ..validation import ConflictError, optional_text, require_text
from .audit_service import log_action


logger = logging.getLogger(__name__)


class SupplierNotFoundError(Exception):
    """Raised when a supplier is not found."""
    pass


def _contact_fields(address, phone, email) -> dict:
    fields = {
        "address": require_text(address, "address", max_length=512),
        "phone": optional_text(phone, max_length=64, field="phone"),
        "email": optional_text(email, max_length=255, field="email"),
    }
    if fields["email"] and "@" not in fields["email"]:
        raise ValidationError("email is not a valid address")
    return fields


def create_supplier(
    *,
    actor: Actor,
    name: str,
    address: str,
    phone: str | None = None,
    email: str | None = None,
) -> Entity:
    """
    Create a new supplier.

    Raises:
        ValidationError: If name or address is missing
    """
    name = require_text(name, "name", max_length=255)
    contact = _contact_fields(address, phone, email)

    supplier = Entity(name=name, type=ENTITY_TYPE_SUPPLIER, **contact)
    db.session.add(supplier)
    db.session.flush()

    log_action(
        user_id=actor.id,
        action_type="supplier_created",
        entity_type="entity",
        entity_id=supplier.id,
        details={"name": name},
    )

    db.session.commit()
    logger.info("Supplier %s created by user %s", supplier.id, actor.id)
    return supplier


def update_supplier(
    supplier_id: int,
    *,
    actor: Actor,
    name: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Entity:
    """
    Update name and/or contact info.

    Contact info is replaced as a unit when address is given, matching the
    supplier form (blank phone/email clear those fields).

    Raises:
        SupplierNotFoundError: If supplier not found
        ValidationError: If validation fails
    """
    supplier = get_supplier(supplier_id)
    before = supplier.to_dict()

    new_name = require_text(name, "name", max_length=255) if name is not None else None
    contact = None
    if address is not None:
        contact = _contact_fields(address, phone, email)
    elif phone is not None or email is not None:
        raise ValidationError("address is required when updating contact info")

    if new_name is not None:
        supplier.name = new_name
    if contact is not None:
        supplier.address = contact["address"]
        supplier.phone = contact["phone"]
        supplier.email = contact["email"]

    db.session.flush()

    log_action(
        user_id=actor.id,
        action_type="supplier_updated",
        entity_type="entity",
        entity_id=supplier.id,
        details={"before": before["contact_info"] | {"name": before["name"]}, "after": {
            "name": supplier.name,
            "address": supplier.address,
            "phone": supplier.phone,
            "email": supplier.email,
        }},
    )

    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int, *, actor: Actor) -> None:
    """
    Permanently delete a supplier.

    Raises:
        AuthorizationError: If actor is not an administrator
        SupplierNotFoundError: If supplier not found
        ConflictError: If the supplier still has receivables
    """
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can delete suppliers")

    supplier = get_supplier(supplier_id)

    has_receivables = db.session.query(Receivable.id).filter_by(entity_id=supplier_id).first()
    if has_receivables:
        raise ConflictError("Supplier has receivables; delete them first")

    log_action(
        user_id=actor.id,
        action_type="supplier_deleted",
        entity_type="entity",
        entity_id=supplier.id,
        details={"name": supplier.name},
    )
    db.session.delete(supplier)
    db.session.commit()
    logger.info("Supplier %s deleted by user %s", supplier_id, actor.id)


def get_supplier(supplier_id: int) -> Entity:
    """
    Get a supplier by ID.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    supplier = db.session.query(Entity).filter_by(id=supplier_id, type=ENTITY_TYPE_SUPPLIER).first()
    if not supplier:
        raise SupplierNotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def list_suppliers(
    *,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Entity], int]:
    """
    List suppliers ordered by name.

    Args:
        search: Optional case-insensitive search term for the name
        limit: Maximum number of results
        offset: Offset for pagination

    Returns:
        Tuple of (list of Entity objects, total count)
    """
    query = db.session.query(Entity).filter(Entity.type == ENTITY_TYPE_SUPPLIER)

    if search:
        query = query.filter(Entity.name.ilike(f"%{search.strip()}%"))

    # Get total count before pagination
    total = query.count()

    query = query.order_by(Entity.name.asc())
    query = query.offset(offset).limit(limit)

    return query.all(), total


def outstanding_by_supplier(supplier_ids: list[int]) -> dict[int, int]:
    """Outstanding cents for each of the given suppliers."""
    if not supplier_ids:
        return {}
    rows = db.session.query(Receivable).filter(Receivable.entity_id.in_(supplier_ids)).all()
    snapshots = [r.to_snapshot() for r in rows]
    return {sid: balances.outstanding_for_entity(sid, snapshots) for sid in supplier_ids}


def total_outstanding() -> int:
    """Outstanding across all suppliers."""
    entities = [e.to_snapshot() for e in db.session.query(Entity).all()]
    receivables = [
        r.to_snapshot()
        for r in db.session.query(Receivable).filter(Receivable.remaining_cents > 0).all()
    ]
    return balances.total_outstanding(entities, receivables)
