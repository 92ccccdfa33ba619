"""Service control orchestration: status parsing, outcome classification, backoff and the controller."""
