"""Web front for supplier feed review and catalog sync."""
