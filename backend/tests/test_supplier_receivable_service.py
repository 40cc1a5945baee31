"""
Supplier and receivable maintenance tests.

Verifies:
- Supplier validation and search
- Receivable totals move remaining by the same difference
- Deletion is refused while history exists
"""

from datetime import date

import pytest

from payables.engine.errors import AuthorizationError, ValidationError
from payables.models import AuditLog, Entity, Receivable
from payables.services import receivable_service, settlement_service, supplier_service
from payables.validation import ConflictError


class TestSuppliers:

    def test_create(self, db_session, employee):
        supplier = supplier_service.create_supplier(
            actor=employee.to_actor(),
            name="  Al Noor  ",
            address="Jeddah",
            email="sales@alnoor.example",
        )
        assert supplier.name == "Al Noor"
        assert supplier.type == "supplier"
        assert supplier.phone is None
        assert db_session.query(AuditLog).filter_by(action_type="supplier_created").count() == 1

    @pytest.mark.parametrize(
        "name,address,email",
        [("", "Jeddah", None), ("Al Noor", "", None), ("Al Noor", "Jeddah", "not-an-email")],
    )
    def test_create_validation(self, db_session, employee, name, address, email):
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(actor=employee.to_actor(), name=name, address=address, email=email)

    def test_update_contact_requires_address(self, db_session, admin_user, supplier):
        with pytest.raises(ValidationError):
            supplier_service.update_supplier(supplier.id, actor=admin_user.to_actor(), phone="0511111111")
        assert db_session.get(Entity, supplier.id).phone == "0500000000"

    def test_update(self, db_session, admin_user, supplier):
        updated = supplier_service.update_supplier(
            supplier.id, actor=admin_user.to_actor(), name="Gulf Trading Co", address="Dammam",
        )
        assert updated.name == "Gulf Trading Co"
        assert updated.address == "Dammam"
        # Contact info is replaced as a unit
        assert updated.phone is None

    def test_search_is_case_insensitive(self, db_session, employee, supplier):
        supplier_service.create_supplier(actor=employee.to_actor(), name="Al Noor", address="Jeddah")
        rows, total = supplier_service.list_suppliers(search="gulf")
        assert total == 1
        assert rows[0].id == supplier.id

        rows, total = supplier_service.list_suppliers()
        assert [r.name for r in rows] == ["Al Noor", "Gulf Trading"]

    def test_delete_requires_admin(self, db_session, employee, supplier):
        with pytest.raises(AuthorizationError):
            supplier_service.delete_supplier(supplier.id, actor=employee.to_actor())

    def test_delete_refused_with_receivables(self, db_session, admin_user, supplier, two_receivables):
        with pytest.raises(ConflictError):
            supplier_service.delete_supplier(supplier.id, actor=admin_user.to_actor())

    def test_delete(self, db_session, admin_user, supplier):
        supplier_id = supplier.id
        supplier_service.delete_supplier(supplier_id, actor=admin_user.to_actor())
        with pytest.raises(supplier_service.SupplierNotFoundError):
            supplier_service.get_supplier(supplier_id)

    def test_outstanding(self, db_session, supplier, two_receivables):
        assert supplier_service.outstanding_by_supplier([supplier.id]) == {supplier.id: 50000}
        assert supplier_service.total_outstanding() == 50000


class TestReceivables:

    def test_create_starts_fully_open(self, db_session, admin_user, supplier):
        receivable = receivable_service.create_receivable(
            actor=admin_user.to_actor(),
            entity_id=supplier.id,
            description="March invoice",
            total_cents=12000,
            due_date=date(2024, 3, 31),
        )
        assert receivable.remaining_cents == 12000
        assert receivable.purchase_date is not None

    def test_employee_cannot_create(self, db_session, employee, supplier):
        with pytest.raises(AuthorizationError):
            receivable_service.create_receivable(
                actor=employee.to_actor(), entity_id=supplier.id, description="x", total_cents=100,
            )

    @pytest.mark.parametrize("total", [0, -5, 10.5])
    def test_invalid_total(self, db_session, admin_user, supplier, total):
        with pytest.raises(ValidationError):
            receivable_service.create_receivable(
                actor=admin_user.to_actor(), entity_id=supplier.id, description="x", total_cents=total,
            )

    def test_total_change_shifts_remaining(self, db_session, admin_user, supplier, two_receivables):
        first, _ = two_receivables
        settlement_service.settle(
            entity_id=supplier.id, actor=admin_user.to_actor(), amount_cents=10000,
            method="cash", operation_id="op-partial",
        )

        updated = receivable_service.update_receivable(
            first.id, actor=admin_user.to_actor(), total_cents=35000,
        )
        assert updated.total_cents == 35000
        assert updated.remaining_cents == 25000

    def test_total_below_paid_rejected(self, db_session, admin_user, supplier, two_receivables):
        first, _ = two_receivables
        settlement_service.settle(
            entity_id=supplier.id, actor=admin_user.to_actor(), amount_cents=10000,
            method="cash", operation_id="op-partial-2",
        )

        with pytest.raises(ValidationError):
            receivable_service.update_receivable(first.id, actor=admin_user.to_actor(), total_cents=5000)

        row = db_session.get(Receivable, first.id)
        assert (row.total_cents, row.remaining_cents) == (30000, 20000)

    def test_clear_due_date(self, db_session, admin_user, two_receivables):
        first, _ = two_receivables
        updated = receivable_service.update_receivable(first.id, actor=admin_user.to_actor(), clear_due_date=True)
        assert updated.due_date is None

    def test_delete_refused_after_payment(self, db_session, admin_user, supplier, two_receivables):
        first, _ = two_receivables
        settlement_service.settle(
            entity_id=supplier.id, actor=admin_user.to_actor(), amount_cents=100,
            method="cash", operation_id="op-small",
        )
        with pytest.raises(ConflictError):
            receivable_service.delete_receivable(first.id, actor=admin_user.to_actor())

    def test_delete_unpaid(self, db_session, admin_user, two_receivables):
        _, second = two_receivables
        second_id = second.id
        receivable_service.delete_receivable(second_id, actor=admin_user.to_actor())
        assert db_session.get(Receivable, second_id) is None

    def test_open_only_listing_is_due_date_ordered(self, db_session, admin_user, supplier, two_receivables):
        first, second = two_receivables
        undated = receivable_service.create_receivable(
            actor=admin_user.to_actor(), entity_id=supplier.id, description="Undated", total_cents=500,
        )
        rows = receivable_service.list_for_entity(supplier.id, open_only=True)
        assert [r.id for r in rows] == [first.id, second.id, undated.id]
