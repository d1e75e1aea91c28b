import pytest

from rally.errors import Forbidden, InsufficientStock, InvalidQuantity, NotFound
from rally.models import InventoryLine
from rally.services import inventory_service


def test_reserve_decrements_and_stops_at_zero(db_session, hoodie):
    inventory_service.reserve(hoodie.id, "m", 2)
    db_session.commit()

    assert inventory_service.get_quantity(hoodie.id, "M") == 0

    with pytest.raises(InsufficientStock) as exc:
        inventory_service.reserve(hoodie.id, "M", 1)
    assert exc.value.details["on_hand"] == 0
    assert exc.value.details["requested_quantity"] == 1


def test_reserve_more_than_on_hand_changes_nothing(db_session, hoodie):
    with pytest.raises(InsufficientStock) as exc:
        inventory_service.reserve(hoodie.id, "M", 3)

    assert exc.value.details["on_hand"] == 2
    db_session.rollback()
    assert inventory_service.get_quantity(hoodie.id, "M") == 2


def test_reserve_unknown_size_is_insufficient(db_session, hoodie):
    with pytest.raises(InsufficientStock) as exc:
        inventory_service.reserve(hoodie.id, "XL", 1)
    assert exc.value.details["on_hand"] == 0


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
def test_reserve_rejects_bad_quantities(db_session, hoodie, quantity):
    with pytest.raises(InvalidQuantity):
        inventory_service.reserve(hoodie.id, "M", quantity)
    assert inventory_service.get_quantity(hoodie.id, "M") == 2


def test_restock_creates_missing_line(db_session, hoodie):
    inventory_service.restock(hoodie.id, "L", 4)
    db_session.commit()

    assert inventory_service.get_quantity(hoodie.id, "L") == 4


def test_restock_is_inverse_of_reserve(db_session, hoodie):
    inventory_service.reserve(hoodie.id, "M", 2)
    inventory_service.restock(hoodie.id, "M", 2)
    db_session.commit()

    assert inventory_service.get_quantity(hoodie.id, "M") == 2


def test_set_quantity_overwrites_and_validates(db_session, hoodie):
    line = inventory_service.set_quantity(hoodie.id, "M", 9)
    assert line.quantity == 9

    with pytest.raises(InvalidQuantity):
        inventory_service.set_quantity(hoodie.id, "M", -1)
    assert inventory_service.get_quantity(hoodie.id, "M") == 9


def test_set_quantity_unknown_product(db_session):
    with pytest.raises(NotFound):
        inventory_service.set_quantity(999_999, "M", 1)


def test_remove_size_requires_empty_line(db_session, hoodie):
    with pytest.raises(Forbidden) as exc:
        inventory_service.remove_size(hoodie.id, "M")
    assert exc.value.details["on_hand"] == 2

    inventory_service.set_quantity(hoodie.id, "M", 0)
    inventory_service.remove_size(hoodie.id, "M")

    assert db_session.query(InventoryLine).filter_by(product_id=hoodie.id, size="M").first() is None


def test_ticket_has_single_onesize_line(db_session, ticket):
    inventory = inventory_service.get_inventory(ticket.id)

    assert [line["size"] for line in inventory["lines"]] == ["ONESIZE"]
    assert inventory["total_quantity"] == 3


def test_list_inventory_totals(db_session, hoodie, ticket):
    items = {item["name"]: item for item in inventory_service.list_inventory()}

    assert items["Hoodie"]["total_quantity"] == 2
    assert items["Gala Ticket"]["total_quantity"] == 3


def test_add_size_is_idempotent(db_session, hoodie):
    line = inventory_service.add_size(hoodie.id, "xl")
    assert (line.size, line.quantity) == ("XL", 0)

    again = inventory_service.add_size(hoodie.id, "XL")
    assert again.id == line.id


def test_tickets_keep_a_single_line(db_session, ticket):
    with pytest.raises(Forbidden):
        inventory_service.add_size(ticket.id, "M")
    with pytest.raises(Forbidden):
        inventory_service.set_quantity(ticket.id, "M", 5)

    assert inventory_service.set_quantity(ticket.id, "onesize", 10).quantity == 10
