import pytest

from quant_core.errors import InvalidParameterError
from quant_core.risk.alerts import generate_alerts
from quant_core.risk.models import AlertLevel, RiskMetrics


def metrics(**overrides):
    values = dict(var95=0.02, var99=0.03, cvar95=0.025, sharpe_ratio=1.0, beta=1.0,
                  volatility=0.2, max_drawdown=0.1, liquidity_risk=0.2, credit_risk=0.2)
    values.update(overrides)
    return RiskMetrics(**values)


def levels(alerts):
    return {alert.type: alert.level for alert in alerts}


def test_quiet_metrics_raise_nothing(replay_clock):
    assert generate_alerts(metrics(), clock=replay_clock) == []


@pytest.mark.parametrize("field, value, alert_type, level", [
    ("volatility", 0.35, "Volatility", AlertLevel.HIGH),
    ("volatility", 0.6, "Volatility", AlertLevel.CRITICAL),
    ("var95", 0.07, "Value at Risk", AlertLevel.HIGH),
    ("var95", 0.12, "Value at Risk", AlertLevel.CRITICAL),
    ("max_drawdown", 0.25, "Maximum Drawdown", AlertLevel.HIGH),
    ("max_drawdown", 0.4, "Maximum Drawdown", AlertLevel.CRITICAL),
    ("beta", 2.5, "Market Beta", AlertLevel.MEDIUM),
    ("beta", -3.5, "Market Beta", AlertLevel.HIGH),
    ("sharpe_ratio", 0.3, "Sharpe Ratio", AlertLevel.MEDIUM),
    ("sharpe_ratio", -0.2, "Sharpe Ratio", AlertLevel.HIGH),
])
def test_escalation(replay_clock, field, value, alert_type, level):
    alerts = generate_alerts(metrics(**{field: value}), clock=replay_clock)
    assert levels(alerts) == {alert_type: level}
    assert alerts[0].timestamp == replay_clock.now_ms()


def test_custom_thresholds_override_defaults(replay_clock):
    alerts = generate_alerts(metrics(volatility=0.35), {"volatility": 0.4}, clock=replay_clock)
    assert alerts == []


def test_alert_carries_threshold_and_value(replay_clock):
    alert, = generate_alerts(metrics(var95=0.07), clock=replay_clock)
    assert alert.threshold == 0.05
    assert alert.current_value == 0.07
    assert "7.0%" in alert.message


def test_unknown_threshold_rejected(replay_clock):
    with pytest.raises(InvalidParameterError, match="Unknown alert thresholds"):
        generate_alerts(metrics(), {"vega": 1.0}, clock=replay_clock)
