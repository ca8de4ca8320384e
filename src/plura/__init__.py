"""Plura - multi-tenant agency, funnel and marketplace platform API.

Agencies and individual creators manage subaccounts, build funnels and
automation forms, and buy themes and plugins from the marketplace. A
separate admin console governs the whole platform.

Version: 0.1.0
"""

__version__ = "0.1.0"
