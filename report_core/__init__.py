"""Core (UI-agnostic) report dashboard logic.

This package contains:
- filter selection -> query parameters, dependent user filter
- report API client, token store and fetch adapters (JSON -> typed records -> pandas)
- page compute functions (JSON-serializable payloads)
- sorting, pagination, CSV export
- chart helpers (Altair -> Vega-Lite spec dict)
"""
