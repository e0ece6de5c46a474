"""
Alert rule engine.

Loads the declarative rule table into immutable ``AlertRule`` objects and
evaluates them, in table order, against an ``AnalysisContext``. Evaluation
is deterministic: metrics are pure functions of the context, results are
stably sorted by severity, and a rule that fails to evaluate is skipped.
"""

import operator
from dataclasses import dataclass
from string import Formatter
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from repriseval.engine.metrics import METRICS, MetricFunction
from repriseval.engine.models import (
    Alert,
    AlertCategory,
    AlertReport,
    AlertSummary,
    AnalysisContext,
    SEVERITY_ORDER,
    Severity,
)
from repriseval.exceptions import RuleDefinitionError
from repriseval.reference.alert_rules import ALERT_RULES

logger = structlog.get_logger(__name__)

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
}


@dataclass(frozen=True)
class Condition:
    """``metric operator threshold``; never holds on an undefined metric."""
    metric: str
    operator: str
    threshold: Any

    def holds(self, value: Any) -> bool:
        if value is None:
            return False
        return OPERATORS[self.operator](value, self.threshold)


@dataclass(frozen=True)
class AlertRule:
    """One row of the rule table."""
    id: str
    category: AlertCategory
    severity: Severity
    conditions: Tuple[Condition, ...]
    values: Tuple[Tuple[str, str], ...]
    title: str
    message_template: str
    impact: str
    recommendation: str


def load_rules(
    table: Iterable[Mapping[str, Any]] = ALERT_RULES,
    metrics: Mapping[str, MetricFunction] = METRICS,
) -> Tuple[AlertRule, ...]:
    """
    Build rule objects from the rule table.

    Raises:
        RuleDefinitionError: a row uses an unknown category, severity,
            operator, metric or message placeholder, or repeats an id.
    """
    rules: List[AlertRule] = []
    seen = set()

    for row in table:
        rule_id = row.get("id", "<missing id>")
        if rule_id in seen:
            raise RuleDefinitionError(rule_id, "duplicate rule id")
        seen.add(rule_id)

        try:
            category = AlertCategory(row["category"])
            severity = Severity(row["severity"])
        except (KeyError, ValueError) as e:
            raise RuleDefinitionError(rule_id, f"bad category or severity: {e}") from e

        conditions = []
        for metric_name, op, threshold in row.get("when", ()):
            if op not in OPERATORS:
                raise RuleDefinitionError(rule_id, f"unknown operator {op!r}")
            if metric_name not in metrics:
                raise RuleDefinitionError(rule_id, f"unknown metric {metric_name!r}")
            conditions.append(Condition(metric_name, op, threshold))
        if not conditions:
            raise RuleDefinitionError(rule_id, "rule has no condition")

        values = tuple(row.get("values", {}).items())
        for placeholder, metric_name in values:
            if metric_name not in metrics:
                raise RuleDefinitionError(rule_id, f"unknown metric {metric_name!r}")

        template = row["message"]
        placeholders = {field for _, field, _, _ in Formatter().parse(template) if field}
        missing = placeholders - {placeholder for placeholder, _ in values}
        if missing:
            raise RuleDefinitionError(rule_id, f"unbound placeholders {sorted(missing)}")

        rules.append(AlertRule(
            id=rule_id,
            category=category,
            severity=severity,
            conditions=tuple(conditions),
            values=values,
            title=row["title"],
            message_template=template,
            impact=row["impact"],
            recommendation=row["recommendation"],
        ))

    return tuple(rules)


class _MetricCache:
    """Evaluates each metric at most once per pass."""

    def __init__(self, context: AnalysisContext, metrics: Mapping[str, MetricFunction]):
        self.context = context
        self.metrics = metrics
        self._values: Dict[str, Any] = {}

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            self._values[name] = self.metrics[name](self.context)
        return self._values[name]


class AlertEngine:
    """
    Evaluates the alert rule table.

    Features:
    - Fixed evaluation order, stable severity sort
    - Per-rule isolation: a failing rule is logged and treated as not firing
    - Summary counts and a plain-text vigilance digest
    """

    VIGILANCE_POINTS_LIMIT = 5

    def __init__(
        self,
        rules: Optional[Iterable[AlertRule]] = None,
        metrics: Mapping[str, MetricFunction] = METRICS,
        vigilance_points_limit: Optional[int] = None,
    ):
        self.metrics = metrics
        self.rules = tuple(rules) if rules is not None else load_rules(metrics=metrics)
        self.vigilance_points_limit = (
            self.VIGILANCE_POINTS_LIMIT
            if vigilance_points_limit is None
            else vigilance_points_limit
        )

    def evaluate(self, context: AnalysisContext) -> AlertReport:
        """Evaluate every rule and build the report."""
        values = _MetricCache(context, self.metrics)
        fired: List[Alert] = []

        for rule in self.rules:
            try:
                alert = self._evaluate_rule(rule, values)
            except Exception as e:
                logger.debug("Alert rule skipped", rule_id=rule.id, error=str(e))
                continue
            if alert is not None:
                fired.append(alert)

        alerts = sorted(fired, key=lambda a: SEVERITY_ORDER[a.severity])
        summary = self._summarize(alerts)

        logger.info(
            "Alerts generated",
            total=summary.total,
            critical=summary.by_severity[Severity.CRITICAL.value],
            warning=summary.by_severity[Severity.WARNING.value],
            info=summary.by_severity[Severity.INFO.value],
        )

        return AlertReport(
            alerts=alerts,
            summary=summary,
            vigilance_points=self.vigilance_points(alerts),
        )

    def _evaluate_rule(self, rule: AlertRule, values: _MetricCache) -> Optional[Alert]:
        for condition in rule.conditions:
            if not condition.holds(values[condition.metric]):
                return None

        extracted = {placeholder: values[metric] for placeholder, metric in rule.values}
        return Alert(
            rule_id=rule.id,
            category=rule.category,
            severity=rule.severity,
            title=rule.title,
            message=rule.message_template.format(**extracted),
            impact=rule.impact,
            recommendation=rule.recommendation,
            values=extracted,
        )

    def vigilance_points(self, alerts: List[Alert]) -> List[str]:
        """Plain-text digest of the most severe non-info alerts."""
        points = [a for a in alerts if a.severity != Severity.INFO][: self.vigilance_points_limit]
        return [
            f"{a.title}\n{a.message}\n\nRecommendation: {a.recommendation}"
            for a in points
        ]

    @staticmethod
    def _summarize(alerts: List[Alert]) -> AlertSummary:
        by_severity = {severity.value: 0 for severity in Severity}
        by_category = {category.value: 0 for category in AlertCategory}
        for alert in alerts:
            by_severity[alert.severity.value] += 1
            by_category[alert.category.value] += 1
        return AlertSummary(total=len(alerts), by_severity=by_severity, by_category=by_category)


def get_alert_engine(vigilance_points_limit: Optional[int] = None) -> AlertEngine:
    """Factory function to get an alert engine over the standard rule table."""
    return AlertEngine(vigilance_points_limit=vigilance_points_limit)
