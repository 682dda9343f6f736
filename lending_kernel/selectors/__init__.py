"""Read-only selectors."""

from lending_kernel.selectors.capital_selector import CapitalSelector
from lending_kernel.selectors.kpi_selector import DEFAULT_WINDOW_DAYS, KpiSelector

__all__ = ["CapitalSelector", "DEFAULT_WINDOW_DAYS", "KpiSelector"]
