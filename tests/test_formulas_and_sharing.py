import pytest

from models.formula_models import ChartFormulaCreate, ColumnMapping, FormulaFilter, RequiredColumns
from services import formula_service
from services.errors import FormulaMappingError, FormulaNotFoundError, ShareLinkNotFoundError
from services.share_service import ShareLinkStore


@pytest.fixture()
def sales(make_dataset):
    return make_dataset(
        "sales",
        "sales",
        [
            {"category": "Tools", "amount": 10, "note": "bulk order"},
            {"category": "Tools", "amount": 20, "note": "retail"},
            {"category": "Toys", "amount": 3, "note": "bulk"},
        ],
    )


def _formula_by_name(db, name):
    formula_service.ensure_default_formulas(db, "alice")
    return next(f for f in formula_service.list_formulas(db, "alice") if f.name == name)


def test_default_formulas_are_seeded_once(db):
    formula_service.ensure_default_formulas(db, "alice")
    formula_service.ensure_default_formulas(db, "alice")
    names = sorted(f.name for f in formula_service.list_formulas(db, "alice"))
    assert names == sorted(f.name for f in formula_service.DEFAULT_FORMULAS)
    assert formula_service.list_formulas(db, "bob") == []


def test_apply_sum_formula(db, sales):
    formula = _formula_by_name(db, "Sales by Category")
    result = formula_service.apply_formula(
        formula, sales, ColumnMapping(x_axis="category", y_axis="amount")
    )
    assert result.data == [
        {"category": "Tools", "amount": 30.0},
        {"category": "Toys", "amount": 3.0},
    ]
    assert result.chart_config.chart_type == "bar"
    assert result.chart_config.aggregation == "sum"


def test_count_formula_without_y(db, sales):
    formula = _formula_by_name(db, "Distribution Pie Chart")
    result = formula_service.apply_formula(formula, sales, ColumnMapping(x_axis="category"))
    assert result.data == [
        {"category": "Tools", "count": 2.0},
        {"category": "Toys", "count": 1.0},
    ]


def test_required_mapping_is_enforced(db, sales):
    formula = _formula_by_name(db, "Sales by Category")
    with pytest.raises(FormulaMappingError):
        formula_service.apply_formula(formula, sales, ColumnMapping(x_axis="category"))
    with pytest.raises(FormulaMappingError):
        formula_service.apply_formula(
            formula, sales, ColumnMapping(x_axis="category", y_axis="price")
        )


def test_filters_run_before_aggregation(db, sales):
    formula = formula_service.create_formula(
        db,
        "alice",
        ChartFormulaCreate(
            name="Big bulk sales",
            chart_type="bar",
            required_columns=RequiredColumns(
                x_axis={"type": "string", "required": True},
                y_axis={"type": "number", "required": True},
            ),
            aggregation="max",
            filters=[
                FormulaFilter(column="note", operator="contains", value="BULK"),
                FormulaFilter(column="y_axis", operator="greater", value=5),
            ],
        ),
    )
    result = formula_service.apply_formula(
        formula, sales, ColumnMapping(x_axis="category", y_axis="amount")
    )
    assert result.data == [{"category": "Tools", "amount": 10.0}]


def test_formula_without_aggregation_returns_filtered_rows(db, sales):
    formula = _formula_by_name(db, "Correlation Scatter")
    result = formula_service.apply_formula(
        formula, sales, ColumnMapping(x_axis="amount", y_axis="amount")
    )
    assert result.data == sales.rows


def test_formula_lookup_is_per_user(db):
    formula = _formula_by_name(db, "Trend Over Time")
    with pytest.raises(FormulaNotFoundError):
        formula_service.get_formula(db, "bob", formula.id)
    formula_service.delete_formula(db, "alice", formula.id)
    with pytest.raises(FormulaNotFoundError):
        formula_service.get_formula(db, "alice", formula.id)


def test_share_store_lifecycle(sales):
    store = ShareLinkStore("http://example.test/")
    link, response = store.share(sales, "alice")

    assert len(link.id) == 8
    assert link.url == f"http://example.test/dataset/{link.id}"
    assert response.url == link.url
    assert "sales" in response.share_text
    assert store.owner_of(link.id) == "alice"

    assert store.resolve(link.id).access_count == 1
    assert store.resolve(link.id).access_count == 2
    assert [l.id for l in store.for_dataset("sales")] == [link.id]

    store.delete(link.id)
    with pytest.raises(ShareLinkNotFoundError):
        store.resolve(link.id)
    with pytest.raises(ShareLinkNotFoundError):
        store.delete(link.id)


def test_share_links_removed_with_dataset(sales):
    store = ShareLinkStore("http://example.test")
    store.create(sales, "alice")
    store.create(sales, "alice")
    assert store.delete_for_dataset("sales") == 2
    assert store.for_dataset("sales") == []
