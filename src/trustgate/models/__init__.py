"""Models - deterministic scoring models used by the evaluators."""
