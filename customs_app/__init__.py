"""BC20 customs declaration rule-set query service."""
