"""Core (UI-agnostic) table presentation logic.

This package contains:
- cell formatting (raw value + column format -> display string)
- client/server pagination windows
- sort state for table headers
- table config and chart filter normalization
- hierarchical drill-down state and navigation
- dataset loading (CSV/XLSX -> pandas) and drill level aggregation
- CSV export and chart helpers (Altair -> Vega-Lite spec dict)
"""
