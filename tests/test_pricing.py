from items_table import ItemRow
from pricing import compute_totals, line_amount


def test_line_amount_from_dict_and_row():
    assert line_amount({"quantity": 3, "rate": 250}) == 750
    assert line_amount(ItemRow("1", {"quantity": 2, "rate": "12.5"})) == 25
    assert line_amount({"quantity": "x", "rate": 10}) == 0


def test_totals_with_gst():
    totals = compute_totals([{"amount": 750}], 18)
    assert totals.subtotal == 750
    assert totals.tax_amount == 135
    assert totals.total == 885
    assert totals.amount_in_words == "Eight Hundred Eighty Five Rupees Only"


def test_totals_trust_stored_amount():
    rows = [{"quantity": 10, "rate": 10, "amount": 5}]
    assert compute_totals(rows, 0).subtotal == 5


def test_empty_rows():
    totals = compute_totals([], 18)
    assert (totals.subtotal, totals.tax_amount, totals.total) == (0, 0, 0)
    assert totals.amount_in_words == "Zero Rupees Only"


def test_non_finite_values_count_as_zero():
    assert line_amount({"quantity": 1, "rate": "nan"}) == 0
    assert line_amount({"quantity": 10, "rate": 1e308}) == 0
    totals = compute_totals([{"amount": "inf"}, {"amount": 100}], "1e999")
    assert (totals.subtotal, totals.tax_amount, totals.total) == (100, 0, 100)


def test_overflowing_total_is_zero():
    totals = compute_totals([{"amount": 1e308}, {"amount": 1e308}], 18)
    assert totals.total == 0
    assert totals.amount_in_words == "Zero Rupees Only"
