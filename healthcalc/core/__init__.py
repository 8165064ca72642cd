"""Core assessment engine, input validation and metric configurations."""
