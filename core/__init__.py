"""Core (UI-agnostic) density variation logic.

This package contains:
- reference table parsing and loading (CSV text -> ReferenceTable)
- nearest-neighbor density-at-15°C lookup
- dispatch/receiving comparison payloads (JSON-serializable)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
