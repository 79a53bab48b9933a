"""tado_cli - a demonstration CLI for the tadoasync library."""
