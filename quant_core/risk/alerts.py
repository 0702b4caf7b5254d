"""
Risk Alerts
-----------
Threshold checks over computed RiskMetrics. Each metric has a configurable
threshold and a fixed harder limit past which the alert escalates.
"""
import logging
from typing import Dict, List, Optional

from config.settings import load_risk_thresholds
from quant_core.clock import Clock, RealTimeClock
from quant_core.errors import InvalidParameterError
from quant_core.risk.models import AlertLevel, RiskAlert, RiskMetrics

logger = logging.getLogger(__name__)

# Escalation limits, independent of the configurable thresholds
CRITICAL_VOLATILITY = 0.5
CRITICAL_VAR95 = 0.1
CRITICAL_DRAWDOWN = 0.3
HIGH_BETA = 3.0


def generate_alerts(
    metrics: RiskMetrics,
    thresholds: Optional[Dict[str, float]] = None,
    clock: Optional[Clock] = None,
) -> List[RiskAlert]:
    active = load_risk_thresholds()
    unknown = set(thresholds or {}) - set(active)
    if unknown:
        raise InvalidParameterError(f"Unknown alert thresholds: {sorted(unknown)}; expected {sorted(active)}")
    active.update(thresholds or {})

    timestamp = (clock or RealTimeClock()).now_ms()
    alerts = []

    def add(level, alert_type, message, threshold, value):
        alerts.append(RiskAlert(level, alert_type, message, timestamp, threshold, value))

    if metrics.volatility > active['volatility']:
        add(AlertLevel.CRITICAL if metrics.volatility > CRITICAL_VOLATILITY else AlertLevel.HIGH,
            "Volatility", f"High volatility detected: {metrics.volatility * 100:.1f}%",
            active['volatility'], metrics.volatility)

    if metrics.var95 > active['var95']:
        add(AlertLevel.CRITICAL if metrics.var95 > CRITICAL_VAR95 else AlertLevel.HIGH,
            "Value at Risk", f"High VaR detected: {metrics.var95 * 100:.1f}%",
            active['var95'], metrics.var95)

    if metrics.max_drawdown > active['max_drawdown']:
        add(AlertLevel.CRITICAL if metrics.max_drawdown > CRITICAL_DRAWDOWN else AlertLevel.HIGH,
            "Maximum Drawdown", f"High drawdown detected: {metrics.max_drawdown * 100:.1f}%",
            active['max_drawdown'], metrics.max_drawdown)

    if abs(metrics.beta) > active['beta']:
        add(AlertLevel.HIGH if abs(metrics.beta) > HIGH_BETA else AlertLevel.MEDIUM,
            "Market Beta", f"Extreme beta detected: {metrics.beta:.2f}",
            active['beta'], abs(metrics.beta))

    if metrics.sharpe_ratio < active['sharpe_ratio']:
        add(AlertLevel.HIGH if metrics.sharpe_ratio < 0 else AlertLevel.MEDIUM,
            "Sharpe Ratio", f"Poor risk-adjusted returns: {metrics.sharpe_ratio:.2f}",
            active['sharpe_ratio'], metrics.sharpe_ratio)

    if alerts:
        logger.info(f"Generated {len(alerts)} risk alerts: {[a.type for a in alerts]}")
    return alerts
