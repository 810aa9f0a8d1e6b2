from typing import List, Optional, Protocol, Sequence, Tuple

from models.chart_models import ChartIntent, ChartType


class IntentClassifier(Protocol):
    def classify_intent(
        self, query: str, numeric_columns: Sequence[str], categorical_columns: Sequence[str]
    ) -> Optional[ChartIntent]:
        ...


# Evaluated in this order; the first satisfiable family wins
KEYWORD_FAMILIES: List[Tuple[ChartType, Tuple[str, ...]]] = [
    ("bar", ("bar", "category", "group")),
    ("line", ("line", "trend", "time")),
    ("pie", ("pie", "proportion", "distribution")),
    ("scatter", ("scatter", "correlation", "relationship")),
]


def _intent_for(
    chart_type: ChartType, numeric: Sequence[str], categorical: Sequence[str]
) -> Optional[ChartIntent]:
    if chart_type == "bar" and categorical and numeric:
        return ChartIntent(chart_type="bar", x_column=categorical[0], y_column=numeric[0])
    if chart_type in ("line", "scatter") and len(numeric) >= 2:
        return ChartIntent(chart_type=chart_type, x_column=numeric[0], y_column=numeric[1])
    if chart_type == "pie" and categorical:
        return ChartIntent(chart_type="pie", x_column=categorical[0])
    return None


class KeywordIntentClassifier:
    """
    Keyword matching on the lower-cased query. No language model involved;
    swap in another IntentClassifier for anything smarter.
    """

    def __init__(self, families: Optional[List[Tuple[ChartType, Tuple[str, ...]]]] = None):
        self.families = KEYWORD_FAMILIES if families is None else families

    def classify_intent(
        self, query: str, numeric_columns: Sequence[str], categorical_columns: Sequence[str]
    ) -> Optional[ChartIntent]:
        text = (query or "").lower()

        for chart_type, keywords in self.families:
            if any(k in text for k in keywords):
                intent = _intent_for(chart_type, numeric_columns, categorical_columns)
                if intent is not None:
                    return intent

        # No satisfiable keyword: bar if possible, then scatter
        return _intent_for("bar", numeric_columns, categorical_columns) or _intent_for(
            "scatter", numeric_columns, categorical_columns
        )


default_classifier = KeywordIntentClassifier()


def select_intent(
    query: str,
    numeric_columns: Sequence[str],
    categorical_columns: Sequence[str],
    classifier: Optional[IntentClassifier] = None,
) -> Optional[ChartIntent]:
    """Returns None when the data cannot be visualised automatically."""
    classifier = classifier or default_classifier
    return classifier.classify_intent(query, numeric_columns, categorical_columns)
