import json

import pytest

from services.relationship_service import (
    build_relationship_prompt,
    detect_by_value_overlap,
    detect_relationships,
    join_datasets,
    parse_ai_relationships,
    relationship_id,
)


def _ai_record(**overrides):
    record = {
        "sourceFile": "orders",
        "targetFile": "users",
        "sourceColumn": "userid",
        "targetColumn": "user_id",
        "type": "one-to-one",
        "confidence": 0.9,
        "reasoning": "same identifier",
    }
    record.update(overrides)
    return record


def test_similarity_fallback_links_user_id_columns(users_and_orders):
    result = detect_relationships(users_and_orders)
    assert result.strategy == "similarity"

    users, orders = result.datasets
    assert orders.relationships == []
    assert len(users.relationships) == 1
    rel = users.relationships[0]
    assert (rel.source_column, rel.target_column) == ("user_id", "userid")
    assert (rel.source_dataset_id, rel.target_dataset_id) == ("users", "orders")
    assert rel.kind == "one-to-many"
    assert rel.confidence == pytest.approx(6 / 7)
    assert rel.matching_row_count == 0


def test_detection_is_idempotent_and_does_not_mutate(users_and_orders):
    first = detect_relationships(users_and_orders)
    second = detect_relationships(first.datasets)
    assert first.datasets == second.datasets
    assert all(ds.relationships == [] for ds in users_and_orders)


def test_relationship_ids_are_deterministic():
    assert relationship_id("a", "b", "x", "y") == relationship_id("a", "b", "x", "y")
    assert relationship_id("a", "b", "x", "y") != relationship_id("b", "a", "y", "x")


def test_single_dataset_is_skipped(users_and_orders):
    users, _ = users_and_orders
    result = detect_relationships([users], ai_response_text="[]")
    assert result.strategy == "skipped"
    assert result.datasets == [users]


def test_higher_threshold_finds_nothing(users_and_orders):
    result = detect_relationships(users_and_orders, threshold=0.9)
    assert all(ds.relationships == [] for ds in result.datasets)


def test_ai_text_is_used_and_normalised(users_and_orders):
    text = "Here you go:\n" + json.dumps(
        [_ai_record(type="many-to-one", confidence=1.7, matchingRows=3)]
    )
    result = detect_relationships(users_and_orders, ai_response_text=text)
    assert result.strategy == "ai"

    users, orders = result.datasets
    assert users.relationships == []
    rel = orders.relationships[0]
    assert rel.kind == "one-to-many"
    assert rel.confidence == 1.0
    assert rel.matching_row_count == 3


def test_ai_defaults_confidence(users_and_orders):
    record = _ai_record()
    del record["confidence"]
    by_source = parse_ai_relationships(json.dumps([record]), users_and_orders)
    assert by_source["orders"][0].confidence == 0.8
    assert by_source["orders"][0].kind == "one-to-one"


def test_ai_empty_array_means_no_relationships(users_and_orders):
    result = detect_relationships(users_and_orders, ai_response_text="[]")
    assert result.strategy == "ai"
    assert all(ds.relationships == [] for ds in result.datasets)


def test_ai_drops_invalid_records_individually(users_and_orders):
    text = json.dumps([_ai_record(sourceColumn="nope"), _ai_record(), "junk"])
    by_source = parse_ai_relationships(text, users_and_orders)
    assert [r.source_column for r in by_source["orders"]] == ["userid"]


@pytest.mark.parametrize(
    "text",
    [
        "I could not find anything useful.",
        json.dumps([_ai_record(targetFile="unknown")]),
        json.dumps([{"sourceFile": "orders"}]),
    ],
)
def test_unusable_ai_text_falls_back_to_similarity(users_and_orders, text):
    result = detect_relationships(users_and_orders, ai_response_text=text)
    assert result.strategy == "similarity"
    assert len(result.datasets[0].relationships) == 1


def test_value_overlap(users_and_orders):
    result = detect_by_value_overlap(users_and_orders)
    assert result.strategy == "overlap"

    users, orders = result.datasets
    assert orders.relationships == []
    assert len(users.relationships) == 1
    rel = users.relationships[0]
    assert rel.target_column == "userid"
    assert rel.matching_row_count == 2
    # 2 of 3 distinct values shared, boosted for similar names
    assert rel.confidence == pytest.approx(0.8)
    assert rel.kind == "one-to-many"


def test_value_overlap_one_to_one(make_dataset):
    left = make_dataset("l", "left", [{"code": "A"}, {"code": "b "}])
    right = make_dataset("r", "right", [{"ref": "a"}, {"ref": "B"}])
    rel = detect_by_value_overlap([left, right]).datasets[0].relationships[0]
    assert rel.kind == "one-to-one"
    assert rel.confidence == 1.0


def test_join_follows_relationships(users_and_orders):
    detected = detect_relationships(users_and_orders).datasets
    rows = join_datasets(detected)

    assert len(rows) == 4
    assert [r["name"] for r in rows] == ["Ana", "Ana", "Ben", "Cy"]
    assert [r.get("amount") for r in rows] == [10.0, 5.0, 7.5, None]


def test_join_prefixes_clashing_columns(make_dataset):
    left = make_dataset("l", "left", [{"key": 1, "name": "a"}])
    right = make_dataset("r", "right", [{"key": 1, "name": "b"}])
    detected = detect_relationships([left, right]).datasets
    rows = join_datasets(detected)
    assert rows[0]["name"] == "a"
    assert rows[0]["right_name"] == "b"
    assert rows[0]["right_key"] == 1


def test_join_without_relationships_is_empty(users_and_orders):
    assert join_datasets(users_and_orders) == []


def test_prompt_describes_datasets(users_and_orders):
    prompt = build_relationship_prompt(users_and_orders, sample_rows=1)
    assert '"id": "users"' in prompt
    assert "Ana" in prompt
    assert "Ben" not in prompt


@pytest.fixture()
def wide_pair(make_dataset):
    left = make_dataset("left", "left", [], columns=["code", "name", "region"])
    right = make_dataset("right", "right", [], columns=["code", "name", "regions", "codex", "codes"])
    return left, right


def test_relationships_sorted_by_confidence_then_columns(wide_pair):
    left, right = detect_relationships(wide_pair).datasets
    assert right.relationships == []
    assert [(r.source_column, r.target_column) for r in left.relationships] == [
        ("code", "code"),
        ("name", "name"),
        ("region", "regions"),
        ("code", "codes"),
        ("code", "codex"),
    ]
    assert [r.confidence for r in left.relationships] == pytest.approx([1.0, 1.0, 6 / 7, 0.8, 0.8])


def test_value_overlap_matches_int_and_float_keys(make_dataset):
    users = make_dataset("users", "users", [{"user_id": 1}, {"user_id": 2}])
    orders = make_dataset("orders", "orders", [{"user_id": 1.0}, {"user_id": 2.0}])
    rels = detect_by_value_overlap([users, orders]).datasets[0].relationships
    assert len(rels) == 1
    assert rels[0].kind == "one-to-one"
    assert rels[0].matching_row_count == 2


def test_join_matches_int_and_float_keys(make_dataset):
    users = make_dataset("users", "users", [{"user_id": 1, "name": "Ana"}])
    orders = make_dataset("orders", "orders", [{"userid": 1.0, "amount": 5.0}])
    rows = join_datasets(detect_relationships([users, orders]).datasets)
    assert rows == [{"user_id": 1, "name": "Ana", "userid": 1.0, "amount": 5.0}]


def test_ai_record_with_numeric_column_name(make_dataset):
    left = make_dataset("left", "left", [{"0": 1}])
    right = make_dataset("right", "right", [{"key": 1}])
    text = json.dumps(
        [{"sourceFile": "left", "targetFile": "right", "sourceColumn": 0, "targetColumn": "key"}]
    )
    by_source = parse_ai_relationships(text, [left, right])
    assert by_source["left"][0].source_column == "0"
