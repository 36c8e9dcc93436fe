"""Chart rendering with matplotlib."""

import io
import logging
from collections.abc import Mapping

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from .exceptions import UpstreamServiceError  # noqa: E402

logger = logging.getLogger(__name__)


class ChartRenderer:
    """Render category -> count tables as PNG images."""

    def __init__(self, width: float = 10, height: float = 5, dpi: int = 100):
        self.width = width
        self.height = height
        self.dpi = dpi

    def render_bar_chart(
        self,
        table: Mapping[int | str, int],
        title: str,
        x_label: str,
        y_label: str,
        color: str = "#4472C4",
    ) -> bytes:
        """
        Render a column chart in the table's key order.

        Args:
            table: Category to count mapping
            title: Chart title
            x_label: Horizontal axis label
            y_label: Vertical axis label
            color: Bar color

        Returns:
            PNG image bytes
        """
        labels = [str(key) for key in table]
        values = list(table.values())

        fig, ax = plt.subplots(figsize=(self.width, self.height))
        try:
            bars = ax.bar(labels, values, color=color)
            ax.bar_label(bars, padding=2, fontsize=8)
            ax.set_title(title, fontsize=14)
            ax.set_xlabel(x_label, fontsize=11)
            ax.set_ylabel(y_label, fontsize=11)
            ax.margins(y=0.15)
            if len(labels) > 12:
                ax.tick_params(axis="x", labelsize=8)

            fig.tight_layout()
            buffer = io.BytesIO()
            fig.savefig(buffer, format="png", dpi=self.dpi)
        except (ValueError, RuntimeError) as e:
            logger.error(f"Rendering '{title}' failed: {e}")
            raise UpstreamServiceError(f"Chart rendering failed for '{title}': {e}")
        finally:
            plt.close(fig)

        return buffer.getvalue()


def get_chart_renderer() -> ChartRenderer:
    """Get chart renderer instance."""
    return ChartRenderer()
