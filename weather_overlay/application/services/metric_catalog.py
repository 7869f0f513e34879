"""Metric catalog with the dashboard's default data sources."""

from typing import Iterable, Iterator

from weather_overlay.application.services.color_rules import ensure_valid_rules
from weather_overlay.domain.entities import ColorRule, Metric, SecondaryClause
from weather_overlay.domain.enums import ComparisonOp
from weather_overlay.domain.errors import DuplicateMetricError, UnknownMetricError

GE, GT, LT, EQ = ComparisonOp.GE, ComparisonOp.GT, ComparisonOp.LT, ComparisonOp.EQ


def default_metrics() -> list[Metric]:
    """Temperature, humidity and precipitation with their stock rule sets."""
    return [
        Metric(
            metric_id="temperature",
            name="Temperature",
            provider_field="temperature_2m",
            unit="°C",
            color_rules=[
                ColorRule(LT, 0, "#1890ff"),
                ColorRule(GE, 0, "#52c41a", SecondaryClause(LT, 15)),
                ColorRule(GE, 15, "#faad14", SecondaryClause(LT, 25)),
                ColorRule(GE, 25, "#f5222d"),
            ],
        ),
        Metric(
            metric_id="humidity",
            name="Humidity",
            provider_field="relativehumidity_2m",
            unit="%",
            color_rules=[
                ColorRule(LT, 30, "#f5222d"),
                ColorRule(GE, 30, "#faad14", SecondaryClause(LT, 60)),
                ColorRule(GE, 60, "#52c41a", SecondaryClause(LT, 80)),
                ColorRule(GE, 80, "#1890ff"),
            ],
        ),
        Metric(
            metric_id="precipitation",
            name="Precipitation",
            provider_field="precipitation",
            unit="mm",
            color_rules=[
                ColorRule(EQ, 0, "#d9d9d9"),
                ColorRule(GT, 0, "#91d5ff", SecondaryClause(LT, 1)),
                ColorRule(GE, 1, "#40a9ff", SecondaryClause(LT, 5)),
                ColorRule(GE, 5, "#096dd9"),
            ],
        ),
    ]


class MetricCatalog:
    """Metric set keyed by unique identifier.

    Metrics are held by reference; rule edits made through the catalog are
    visible to the engine at the next evaluation.
    """

    def __init__(self, metrics: Iterable[Metric] | None = None) -> None:
        """Initialize catalog."""
        self._metrics: dict[str, Metric] = {}
        for metric in default_metrics() if metrics is None else metrics:
            self.add(metric)

    def __iter__(self) -> Iterator[Metric]:
        return iter(self._metrics.values())

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, metric_id: object) -> bool:
        return metric_id in self._metrics

    def add(self, metric: Metric) -> None:
        if metric.metric_id in self._metrics:
            raise DuplicateMetricError(f"Metric already defined: {metric.metric_id}")
        ensure_valid_rules(metric.color_rules)
        self._metrics[metric.metric_id] = metric

    def get(self, metric_id: str) -> Metric:
        try:
            return self._metrics[metric_id]
        except KeyError:
            raise UnknownMetricError(f"Metric not found: {metric_id}") from None

    def add_rule(self, metric_id: str, rule: ColorRule) -> None:
        ensure_valid_rules([rule])
        self.get(metric_id).color_rules.append(rule)

    def update_rule(self, metric_id: str, index: int, rule: ColorRule) -> None:
        ensure_valid_rules([rule])
        rules = self.get(metric_id).color_rules
        if not 0 <= index < len(rules):
            raise IndexError(f"Rule index out of range: {index}")
        rules[index] = rule

    def delete_rule(self, metric_id: str, index: int) -> None:
        rules = self.get(metric_id).color_rules
        if not 0 <= index < len(rules):
            raise IndexError(f"Rule index out of range: {index}")
        del rules[index]
