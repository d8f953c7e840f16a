"""Jenkins job model, build handlers and failure analysis."""
