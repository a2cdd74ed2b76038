"""Command-line entry points for the consumer and provider roles."""
