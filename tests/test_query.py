import pytest

from maintdesk.services.query import ScopedQuery, number_placeholders


def test_number_placeholders_in_order():
    assert number_placeholders("a = ? AND b = ? OR c = ?") == "a = $1 AND b = $2 OR c = $3"
    assert number_placeholders("SELECT 1") == "SELECT 1"


def test_render_orders_params_base_conditions_suffix():
    query = (
        ScopedQuery("UPDATE tickets SET status = ?", ("Completed",))
        .where("id = ?", 3)
        .where("location = ?", "Pune")
        .with_suffix("RETURNING id")
    )

    sql, params = query.render()

    assert sql == "UPDATE tickets SET status = $1\nWHERE (id = $2) AND (location = $3)\nRETURNING id"
    assert params == ["Completed", 3, "Pune"]


def test_where_checks_placeholder_count():
    with pytest.raises(ValueError):
        ScopedQuery("SELECT 1").where("a = ? AND b = ?", 1)


def test_where_returns_new_query():
    base = ScopedQuery("SELECT * FROM tickets")
    scoped = base.where("location = ?", "Pune")
    assert base.conditions == ()
    assert scoped.conditions == ("location = ?",)
