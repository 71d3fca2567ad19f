import pytest

from items_table import (
    AMOUNT,
    DESCRIPTION,
    AddColumnResult,
    Column,
    ItemRow,
    ItemTable,
    SchemaError,
    column_id_for,
    default_columns,
)


def _amount(row):
    return row.values["quantity"] * row.values["rate"]


def test_new_table_has_one_default_row():
    table = ItemTable()
    assert [c.id for c in table.columns] == ["serial_no", "description", "quantity", "rate", "amount"]
    assert len(table.rows) == 1
    row = table.rows[0]
    assert (row.serial_no, row.description, row.quantity, row.rate, row.amount) == ("1", "", 1, 0, 0)


def test_add_row_serial_and_unique_ids():
    table = ItemTable()
    second = table.add_row()
    assert second.serial_no == "2"
    assert second.id != table.rows[0].id


def test_remove_row_does_not_renumber():
    table = ItemTable()
    table.add_row()
    third = table.add_row()
    assert table.remove_row(table.rows[1].id) is True
    assert [r.serial_no for r in table.rows] == ["1", "3"]
    # serials are positional, so the next row can repeat one
    assert table.add_row().serial_no == "3"
    assert table.rows[1] is third


def test_removed_row_id_is_not_reused():
    table = ItemTable()
    row = table.add_row()
    table.remove_row(row.id)
    assert table.add_row().id != row.id


def test_remove_unknown_row():
    table = ItemTable()
    assert table.remove_row("missing") is False
    assert len(table.rows) == 1


def test_update_cell_coerces_numbers_and_recalculates():
    table = ItemTable(calculate_amount=_amount)
    row_id = table.rows[0].id
    table.update_cell(row_id, "quantity", "3")
    table.update_cell(row_id, "rate", "250")
    row = table.row(row_id)
    assert row.quantity == 3 and row.rate == 250.0
    assert row.amount == 750


def test_update_cell_non_numeric_becomes_zero():
    table = ItemTable(calculate_amount=_amount)
    row_id = table.rows[0].id
    table.update_cell(row_id, "quantity", "abc")
    table.update_cell(row_id, "rate", "")
    assert table.row(row_id).quantity == 0
    assert table.row(row_id).amount == 0


def test_update_cell_unknown_targets():
    table = ItemTable()
    with pytest.raises(KeyError):
        table.update_cell(table.rows[0].id, "colour", "red")
    with pytest.raises(KeyError):
        table.update_cell("nope", DESCRIPTION, "x")


def test_on_change_called_per_mutation():
    calls = []
    table = ItemTable(on_change=calls.append)
    table.add_row()
    table.update_cell(table.rows[0].id, DESCRIPTION, "Widget")
    table.add_column("Size")
    assert len(calls) == 3


def test_add_column_inserted_after_description():
    table = ItemTable()
    table.add_row()
    assert table.add_column("Delivery City") is AddColumnResult.ADDED
    assert table.column_ids[2] == "delivery_city"
    column = table.column("delivery_city")
    assert column.name == "Delivery City" and column.width == "15%" and not column.required
    assert all(r.values["delivery_city"] == "" for r in table.rows)
    table.validate()


def test_add_column_name_collision_is_case_insensitive():
    table = ItemTable()
    assert table.add_column("Size") is AddColumnResult.ADDED
    before = list(table.column_ids)
    assert table.add_column("size") is AddColumnResult.ALREADY_EXISTS
    assert table.column_ids == before


def test_add_column_empty_name():
    table = ItemTable()
    assert table.add_column("   ") is AddColumnResult.EMPTY_NAME
    assert len(table.columns) == 5


def test_add_then_remove_column_restores_schema():
    table = ItemTable()
    before = [r.to_dict() for r in table.rows]
    table.add_column("City")
    assert table.remove_column("city") is True
    assert table.column_ids == [c.id for c in default_columns()]
    assert [r.to_dict() for r in table.rows] == before


def test_required_and_unknown_columns_cannot_be_removed():
    table = ItemTable()
    assert table.remove_column(AMOUNT) is False
    assert table.remove_column("ghost") is False
    assert len(table.columns) == 5


def test_column_id_for():
    assert column_id_for("  Delivery   City ") == "delivery_city"


def test_mismatched_row_raises_schema_error():
    rows = [ItemRow("1", {"serial_no": "1", "description": "", "quantity": 1, "rate": 0})]
    with pytest.raises(SchemaError):
        ItemTable(rows=rows)


def test_missing_standard_column_raises():
    with pytest.raises(SchemaError):
        ItemTable(columns=[Column("description", "Description")])


def test_dict_round_trip_keeps_counter():
    table = ItemTable()
    table.add_column("Size")
    table.add_row()
    table.remove_row(table.rows[-1].id)
    restored = ItemTable.from_dict(table.to_dict())
    assert restored.column_ids == table.column_ids
    assert [r.to_dict() for r in restored.rows] == [r.to_dict() for r in table.rows]
    assert restored.next_id == table.next_id


def test_from_dict_with_empty_rows():
    assert ItemTable.from_dict({"rows": []}).rows == []
    assert len(ItemTable.from_dict({}).rows) == 1


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf", "1e999"])
def test_non_finite_numbers_become_zero(raw):
    table = ItemTable(calculate_amount=_amount)
    row_id = table.rows[0].id
    table.update_cell(row_id, "rate", raw)
    table.update_cell(row_id, "quantity", raw)
    row = table.row(row_id)
    assert (row.quantity, row.rate, row.amount) == (0, 0.0, 0.0)
