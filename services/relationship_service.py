import hashlib
import json
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from config import OVERLAP_MIN_CONFIDENCE, SIMILARITY_THRESHOLD
from models.dataset_models import Dataset, DetectionResult, Relationship, Row
from services.aggregation_service import format_label
from services.json_extraction_service import find_json_fragment
from services.similarity_service import similarity

REQUIRED_AI_FIELDS = ("sourceFile", "targetFile", "sourceColumn", "targetColumn")
DEFAULT_AI_CONFIDENCE = 0.8
# Column-name similarity that boosts value-overlap confidence
OVERLAP_NAME_SIMILARITY = 0.6


def relationship_id(source_id: str, target_id: str, source_column: str, target_column: str) -> str:
    digest = hashlib.sha1(
        "\x1f".join([source_id, target_id, source_column, target_column]).encode("utf-8")
    ).hexdigest()
    return f"rel_{digest[:16]}"


def sort_relationships(relationships: List[Relationship]) -> List[Relationship]:
    return sorted(
        relationships, key=lambda r: (-r.confidence, r.source_column, r.target_column)
    )


def _attach(datasets: Sequence[Dataset], by_source: Dict[str, List[Relationship]]) -> List[Dataset]:
    """Copies of `datasets` with relationship lists replaced wholesale."""
    return [
        ds.model_copy(update={"relationships": sort_relationships(by_source.get(ds.id, []))})
        for ds in datasets
    ]


# ---------------------------------------------------------------------------
# Similarity fallback
# ---------------------------------------------------------------------------
def similarity_relationships(
    datasets: Sequence[Dataset], threshold: float = SIMILARITY_THRESHOLD
) -> Dict[str, List[Relationship]]:
    """
    Pairwise column-name matching over every dataset pair (i < j).
    O(D^2 * C^2) comparisons for D datasets of C columns; D and C are
    upload-sized so this stays cheap.
    """
    by_source: Dict[str, List[Relationship]] = {}
    for i, source in enumerate(datasets):
        for target in datasets[i + 1 :]:
            for source_column in source.columns:
                for target_column in target.columns:
                    score = similarity(source_column, target_column)
                    if score <= threshold:
                        continue
                    by_source.setdefault(source.id, []).append(
                        Relationship(
                            id=relationship_id(source.id, target.id, source_column, target_column),
                            source_dataset_id=source.id,
                            target_dataset_id=target.id,
                            source_column=source_column,
                            target_column=target_column,
                            kind="one-to-many",
                            confidence=score,
                            matching_row_count=0,
                        )
                    )
    return by_source


# ---------------------------------------------------------------------------
# AI path
# ---------------------------------------------------------------------------
def _resolve_dataset(ref: Any, datasets: Sequence[Dataset]) -> Optional[Dataset]:
    """Match an AI-supplied file reference by id first, then by name."""
    if not isinstance(ref, str):
        return None
    for ds in datasets:
        if ds.id == ref:
            return ds
    for ds in datasets:
        if ds.name == ref:
            return ds
    return None


def _clamp_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_AI_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_AI_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _relationship_from_record(record: Any, datasets: Sequence[Dataset]) -> Optional[Relationship]:
    if not isinstance(record, dict):
        return None
    if any(record.get(field) in (None, "") for field in REQUIRED_AI_FIELDS):
        return None

    source = _resolve_dataset(record["sourceFile"], datasets)
    target = _resolve_dataset(record["targetFile"], datasets)
    if source is None or target is None:
        logger.debug("Dropping AI relationship with unknown dataset: {}", record)
        return None

    source_column = str(record["sourceColumn"])
    target_column = str(record["targetColumn"])
    if source_column not in source.columns or target_column not in target.columns:
        logger.debug("Dropping AI relationship with unknown column: {}", record)
        return None

    kind = "one-to-one" if record.get("type") == "one-to-one" else "one-to-many"
    matching = record.get("matchingRows", 0)
    matching = matching if isinstance(matching, int) and not isinstance(matching, bool) and matching >= 0 else 0

    return Relationship(
        id=relationship_id(source.id, target.id, source_column, target_column),
        source_dataset_id=source.id,
        target_dataset_id=target.id,
        source_column=source_column,
        target_column=target_column,
        kind=kind,
        confidence=_clamp_confidence(record.get("confidence", DEFAULT_AI_CONFIDENCE)),
        matching_row_count=matching,
    )


def parse_ai_relationships(
    text: Optional[str], datasets: Sequence[Dataset]
) -> Optional[Dict[str, List[Relationship]]]:
    """
    Relationships grouped by source dataset id, or None when the text holds
    no usable relationship array (the caller then falls back).
    An explicit empty array is a valid answer: no relationships.
    """
    fragment = find_json_fragment(text)
    if fragment is None:
        logger.warning("AI response contained no JSON, using fallback detection")
        return None

    try:
        records = json.loads(fragment)
    except ValueError:
        logger.warning("AI response JSON could not be parsed, using fallback detection")
        return None

    if not isinstance(records, list):
        logger.warning("AI response is not an array, using fallback detection")
        return None

    # {"relationships": [...]} wrapped by the extractor into a one-element array
    if (
        len(records) == 1
        and isinstance(records[0], dict)
        and isinstance(records[0].get("relationships"), list)
    ):
        records = records[0]["relationships"]
    if not records:
        return {}

    by_source: Dict[str, List[Relationship]] = {}
    for record in records:
        rel = _relationship_from_record(record, datasets)
        if rel is not None:
            by_source.setdefault(rel.source_dataset_id, []).append(rel)

    if not by_source:
        logger.warning("No AI relationship record was valid, using fallback detection")
        return None
    return by_source


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------
def detect_relationships(
    datasets: Sequence[Dataset],
    ai_response_text: Optional[str] = None,
    threshold: float = SIMILARITY_THRESHOLD,
) -> DetectionResult:
    """
    Populate each dataset's relationship list, replacing what was there.

    With `ai_response_text`, relationships are read from it; any problem
    with that text degrades to column-name similarity. Fewer than two
    datasets are returned unchanged. Inputs are never mutated.
    """
    datasets = list(datasets)
    if len(datasets) < 2:
        return DetectionResult(strategy="skipped", datasets=datasets)

    if ai_response_text is not None:
        by_source = parse_ai_relationships(ai_response_text, datasets)
        if by_source is not None:
            logger.info(
                "AI relationship detection: {} relationships over {} datasets",
                sum(len(v) for v in by_source.values()),
                len(datasets),
            )
            return DetectionResult(strategy="ai", datasets=_attach(datasets, by_source))

    by_source = similarity_relationships(datasets, threshold=threshold)
    logger.info(
        "Similarity relationship detection: {} relationships over {} datasets",
        sum(len(v) for v in by_source.values()),
        len(datasets),
    )
    return DetectionResult(strategy="similarity", datasets=_attach(datasets, by_source))


# ---------------------------------------------------------------------------
# Value overlap
# ---------------------------------------------------------------------------
def _normalized_values(rows: List[Row], column: str) -> List[str]:
    return [format_label(row[column]).lower().strip() for row in rows if row.get(column) is not None]


def overlap_relationship(
    source: Dataset, target: Dataset, source_column: str, target_column: str
) -> Optional[Relationship]:
    """
    Score a column pair by shared distinct values (lower-cased, trimmed).
    Confidence is shared / max(distinct), boosted 1.2x when names are alike.
    """
    source_set = set(_normalized_values(source.rows, source_column))
    target_set = set(_normalized_values(target.rows, target_column))
    if not source_set or not target_set:
        return None

    shared = source_set & target_set
    if not shared:
        return None

    ratio = len(shared) / max(len(source_set), len(target_set))
    if similarity(source_column, target_column) > OVERLAP_NAME_SIMILARITY:
        ratio = min(ratio * 1.2, 1.0)

    kind = "one-to-one" if shared == source_set and shared == target_set else "one-to-many"
    return Relationship(
        id=relationship_id(source.id, target.id, source_column, target_column),
        source_dataset_id=source.id,
        target_dataset_id=target.id,
        source_column=source_column,
        target_column=target_column,
        kind=kind,
        confidence=ratio,
        matching_row_count=len(shared),
    )


def detect_by_value_overlap(
    datasets: Sequence[Dataset], min_confidence: float = OVERLAP_MIN_CONFIDENCE
) -> DetectionResult:
    datasets = list(datasets)
    if len(datasets) < 2:
        return DetectionResult(strategy="skipped", datasets=datasets)

    by_source: Dict[str, List[Relationship]] = {}
    for i, source in enumerate(datasets):
        for target in datasets[i + 1 :]:
            for source_column in source.columns:
                for target_column in target.columns:
                    rel = overlap_relationship(source, target, source_column, target_column)
                    if rel is not None and rel.confidence >= min_confidence:
                        by_source.setdefault(source.id, []).append(rel)

    logger.info(
        "Value-overlap relationship detection: {} relationships over {} datasets",
        sum(len(v) for v in by_source.values()),
        len(datasets),
    )
    return DetectionResult(strategy="overlap", datasets=_attach(datasets, by_source))


# ---------------------------------------------------------------------------
# Joins
# ---------------------------------------------------------------------------
def _join_key(value: Any) -> str:
    return "" if value is None else format_label(value).lower().strip()


def valid_relationships(datasets: Sequence[Dataset]) -> List[Relationship]:
    """All relationships whose datasets and columns still exist."""
    by_id = {ds.id: ds for ds in datasets}
    result = []
    for ds in datasets:
        for rel in ds.relationships:
            source = by_id.get(rel.source_dataset_id)
            target = by_id.get(rel.target_dataset_id)
            if source is None or target is None:
                continue
            if rel.source_column in source.columns and rel.target_column in target.columns:
                result.append(rel)
    return result


def join_datasets(datasets: Sequence[Dataset], relationships: Optional[List[Relationship]] = None) -> List[Row]:
    """
    Left-join datasets along their relationships, starting from the first
    dataset. A relationship is applied once one of its sides is already in
    the result. Target columns that clash get a "<dataset name>_" prefix.
    """
    datasets = list(datasets)
    if relationships is None:
        relationships = valid_relationships(datasets)
    if len(datasets) < 2 or not relationships:
        return []

    by_id = {ds.id: ds for ds in datasets}
    result: List[Row] = [dict(row) for row in datasets[0].rows]
    joined_ids = {datasets[0].id}

    for rel in relationships:
        source = by_id.get(rel.source_dataset_id)
        target = by_id.get(rel.target_dataset_id)
        if source is None or target is None:
            continue

        if source.id in joined_ids and target.id not in joined_ids:
            other, base_column, join_column = target, rel.source_column, rel.target_column
        elif target.id in joined_ids and source.id not in joined_ids:
            other, base_column, join_column = source, rel.target_column, rel.source_column
        else:
            continue
        joined_ids.add(other.id)

        lookup: Dict[str, List[Row]] = {}
        for row in other.rows:
            lookup.setdefault(_join_key(row.get(join_column)), []).append(row)

        joined: List[Row] = []
        for base_row in result:
            matches = lookup.get(_join_key(base_row.get(base_column)), [])
            if not matches:
                joined.append(base_row)
                continue
            for match in matches:
                merged = dict(base_row)
                for col, value in match.items():
                    name = f"{other.name}_{col}" if col in merged else col
                    merged[name] = value
                joined.append(merged)
        result = joined

    return result


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------
def build_relationship_prompt(datasets: Sequence[Dataset], sample_rows: int = 3) -> str:
    descriptions = [
        {
            "id": ds.id,
            "name": ds.name,
            "columns": ds.columns,
            "sampleData": ds.rows[:sample_rows],
        }
        for ds in datasets
    ]
    return f"""You are an expert data analyst. Analyze the provided datasets and identify potential relationships between them.

IMPORTANT: You must respond with ONLY a valid JSON array, no additional text or explanations.

Look for:
1. Columns with similar names
2. Columns with matching data patterns
3. Foreign key relationships
4. Common identifiers

Return ONLY this JSON array format:
[
  {{
    "sourceFile": "dataset_id",
    "targetFile": "dataset_id",
    "sourceColumn": "column_name",
    "targetColumn": "column_name",
    "type": "one-to-one",
    "confidence": 0.8,
    "reasoning": "explanation"
  }}
]

If no relationships found, return: []

Analyze these datasets for relationships:
{json.dumps(descriptions, indent=2, default=str)}

Return ONLY the JSON array, no other text:"""
