import math
from typing import Optional

from config import CLASSIFIER_SAMPLE_SIZE, CLASSIFIER_FAST_SAMPLE_SIZE
from models.dataset_models import ColumnClassification, Dataset, Scalar


def parse_number(value: Scalar) -> Optional[float]:
    """
    Strict numeric parse used everywhere a cell must become a number.
    Numbers pass through; strings must convert cleanly. Empty strings,
    non-finite values and digit-group underscores ("1_000") fail.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def classify_columns(dataset: Dataset, sample_size: int = CLASSIFIER_SAMPLE_SIZE) -> ColumnClassification:
    """
    Split columns into numeric and categorical from the first `sample_size`
    rows. A column is numeric iff its non-null sample is non-empty and every
    sampled value parses as a number; an all-null sample is categorical.

    Values that only turn non-numeric after the sample window are not seen,
    so late outliers can leave a column classified numeric.
    """
    sample = dataset.rows[:sample_size]
    classification = ColumnClassification()

    for col in dataset.columns:
        values = [row.get(col) for row in sample]
        values = [v for v in values if v is not None]
        if values and all(parse_number(v) is not None for v in values):
            classification.numeric.append(col)
        else:
            classification.categorical.append(col)

    return classification


def classify_columns_fast(dataset: Dataset) -> ColumnClassification:
    return classify_columns(dataset, sample_size=CLASSIFIER_FAST_SAMPLE_SIZE)
