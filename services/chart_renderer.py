import io
import base64
import warnings
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns
from loguru import logger

from models.chart_models import ChartSeries, LabelPoint, XYPoint

warnings.filterwarnings("ignore", category=UserWarning)


def render_series(series: ChartSeries, title: Optional[str] = None) -> Optional[str]:
    """
    Draw an already-aggregated series and return a base64-encoded PNG.
    Returns None for an empty series or when drawing fails.
    """
    if series.is_empty:
        logger.info("Nothing to render for empty {} series", series.chart_type)
        return None

    x_name = series.source_columns.x
    y_name = series.source_columns.y or "count"

    fig, ax = plt.subplots(figsize=(8, 5))
    try:
        if series.chart_type == "scatter":
            points = [p for p in series.points if isinstance(p, XYPoint)]
            sns.scatterplot(x=[p.x for p in points], y=[p.y for p in points], ax=ax)
        else:
            points = [p for p in series.points if isinstance(p, LabelPoint)]
            labels = [p.label for p in points]
            values = [p.value for p in points]

            if series.chart_type == "pie":
                ax.pie(values, labels=labels, autopct="%1.1f%%")
                ax.axis("equal")
            elif series.chart_type == "bar":
                sns.barplot(x=labels, y=values, ax=ax)
                ax.tick_params(axis="x", rotation=45)
            else:
                sns.lineplot(x=list(range(len(values))), y=values, marker="o", ax=ax)
                ax.set_xticks(range(len(labels)))
                ax.set_xticklabels(labels, rotation=45)

        if series.chart_type != "pie":
            ax.set_xlabel(x_name)
            ax.set_ylabel(y_name)
        ax.set_title(title or f"{y_name} by {x_name}")

        buffer = io.BytesIO()
        fig.tight_layout()
        fig.savefig(buffer, format="png")
        buffer.seek(0)
        data = buffer.read()
        logger.debug("Rendered {} chart, PNG bytes: {}", series.chart_type, len(data))
        return base64.b64encode(data).decode("utf-8")

    except (ValueError, TypeError, RuntimeError) as e:
        logger.error("Chart rendering failed: {}", e)
        return None
    finally:
        plt.close(fig)
