import pytest

from rally.errors import NotFound
from rally.models import InventoryLine, Product
from rally.services import products_service, sale_service
from rally.validation import ConflictError


def test_delete_unsold_product_removes_its_lines(db_session, hoodie):
    deleted = products_service.delete_product(hoodie.id)

    assert deleted["name"] == "Hoodie"
    assert db_session.get(Product, hoodie.id) is None
    assert db_session.query(InventoryLine).filter_by(product_id=hoodie.id).count() == 0


def test_product_with_sales_history_cannot_be_deleted(db_session, hoodie, student, coach):
    sale = sale_service.sell(
        product_id=hoodie.id, size="M", quantity=1, buyer_id=student.id, coach_id=coach.id,
        payment_method="CASH", amount_paid_cents=4000,
    )

    with pytest.raises(ConflictError):
        products_service.delete_product(hoodie.id)

    assert db_session.get(Product, hoodie.id) is not None
    assert db_session.query(InventoryLine).filter_by(product_id=hoodie.id, size="M").one().quantity == 1

    # Once the only sale is undone the product has no history left
    sale_service.delete_sale(sale.id, coach.id)
    products_service.delete_product(hoodie.id)
    assert db_session.get(Product, hoodie.id) is None


def test_delete_unknown_product(db_session):
    with pytest.raises(NotFound):
        products_service.delete_product(999_999)
