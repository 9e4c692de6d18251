"""Core export engine: state, planning, exporters, data sources."""
