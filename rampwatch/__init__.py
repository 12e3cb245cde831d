"""Payment settlement reconciliation and polling engine for fiat on-ramp orders."""

__version__ = "0.1.0"
