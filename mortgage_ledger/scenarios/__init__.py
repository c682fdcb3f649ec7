"""Simulation scenarios."""

from mortgage_ledger.scenarios.portfolio import PortfolioResult, PortfolioScenario

__all__ = ["PortfolioResult", "PortfolioScenario"]
